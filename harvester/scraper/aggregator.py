"""Append-only collector for the reviews of one scrape invocation."""

from __future__ import annotations

from typing import Iterable

from harvester.scraper.models import Review


class ReviewAggregator:
    """Accumulates :class:`Review` records in discovery order.

    Records are only ever appended.  :attr:`reviews` hands out a copy so the
    caller cannot rewrite what has already been collected.
    """

    def __init__(self) -> None:
        self._reviews: list[Review] = []

    def append(self, review: Review) -> None:
        self._reviews.append(review)

    def extend(self, reviews: Iterable[Review]) -> None:
        for review in reviews:
            self.append(review)

    @property
    def reviews(self) -> list[Review]:
        return list(self._reviews)

    def __len__(self) -> int:
        return len(self._reviews)
