"""Data models for the review harvesting pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

REVIEW_FIELDS = ("title", "body", "rating", "reviewer")


@dataclass(frozen=True)
class Review:
    """A single product review as reported by the completion service.

    ``rating`` is kept as free-form text (``"5 stars"``, ``"4/5"`` …); no
    normalisation is attempted.  Missing fields are empty strings.
    """

    title: str = ""
    body: str = ""
    rating: str = ""
    reviewer: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Review:
        """Build a :class:`Review` from one decoded JSON object.

        Unknown keys are ignored; ``None`` becomes ``""`` and any other
        non-string scalar (e.g. a numeric rating) is converted with ``str``.
        """
        values: dict[str, str] = {}
        for name in REVIEW_FIELDS:
            value = data.get(name)
            values[name] = "" if value is None else str(value)
        return cls(**values)

    def to_dict(self) -> dict[str, str]:
        return asdict(self)
