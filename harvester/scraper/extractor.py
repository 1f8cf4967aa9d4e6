"""Structured extraction: one review section → a list of :class:`Review`.

The completion service is treated as a black box that returns free text.
``extract_reviews`` builds the prompt, makes exactly one call, pulls the
bracketed JSON array out of the reply and decodes it.  Every failure is
raised as :class:`ExtractionError` (or its subclass
:class:`ReviewParseError`) so the pagination engine can skip the section
and carry on.
"""

from __future__ import annotations

import json
import re
from typing import Any, List

from harvester.scraper.models import Review

# Greedy on purpose: first "[" to the last "]" in the reply.
_JSON_ARRAY_PATTERN = re.compile(r"\[.*\]", re.DOTALL)

_PROMPT_TEMPLATE = """\
You are an assistant. Extract all review details from the following HTML snippet in strict JSON format.
Identify the title, body, rating, and reviewer for each review. Return only the JSON response.

HTML:
{section_html}

JSON format:
[
  {{
    "title": "Review Title",
    "body": "Review Body",
    "rating": "Rating (e.g., 5 stars, 4/5, etc.)",
    "reviewer": "Reviewer Name"
  }},
  ...
]
"""


class ExtractionError(ValueError):
    """The completion reply did not yield a review list.

    ``raw_reply`` keeps the untouched reply text for diagnostics (empty when
    the completion call itself failed).
    """

    def __init__(self, message: str, raw_reply: str = "") -> None:
        super().__init__(message)
        self.raw_reply = raw_reply


class ReviewParseError(ExtractionError):
    """A bracketed array was found but is not a well-formed list of objects."""


def build_prompt(section_html: str) -> str:
    """Embed *section_html* verbatim in the extraction instruction."""
    return _PROMPT_TEMPLATE.format(section_html=section_html)


def complete(llm: Any, prompt: str) -> str:
    """Run a single completion on *llm* and return the reply as text.

    *llm* is any LangChain-style model exposing ``invoke``; generation
    parameters (temperature, max tokens) are bound when the model is built.
    """
    response = llm.invoke(prompt)
    return response.content if hasattr(response, "content") else str(response)


def parse_reviews(reply: str) -> List[Review]:
    """Locate the JSON array in *reply* and decode it into reviews.

    Raises:
        ExtractionError: No ``[ … ]`` span exists in *reply*.
        ReviewParseError: The span is not valid JSON, or is not a list of
            JSON objects.
    """
    match = _JSON_ARRAY_PATTERN.search(reply)
    if match is None:
        raise ExtractionError(
            f"failed to extract JSON from response: {reply!r:.200}", raw_reply=reply
        )

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise ReviewParseError(f"failed to parse review JSON: {exc}", raw_reply=reply) from exc

    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ReviewParseError(
            "failed to parse review JSON: expected an array of objects", raw_reply=reply
        )

    return [Review.from_dict(item) for item in data]


def extract_reviews(section_html: str, llm: Any) -> List[Review]:
    """Turn one serialised review section into :class:`Review` records.

    Args:
        section_html: The isolated section subtree, as HTML text.
        llm: Completion model (see :func:`complete`).

    Returns:
        The reviews listed in the reply, in reply order (possibly empty).

    Raises:
        ExtractionError: The completion call failed or returned no array.
        ReviewParseError: The array in the reply could not be decoded.
    """
    prompt = build_prompt(section_html)
    try:
        reply = complete(llm, prompt)
    except Exception as exc:
        raise ExtractionError(f"failed to generate completion: {exc}") from exc

    print(f"[LLM] Raw reply ({len(reply)} chars): {reply!r:.500}")
    return parse_reviews(reply)
