"""Review-section discovery and isolation.

Two steps, on two representations of the page:

1. *Discovery* scans the raw markup text for ``id`` attributes whose value
   mentions "review"/"reviews" in any letter case.  Sites name these
   containers inconsistently (``customer-reviews``, ``ReviewsList``,
   ``product_review_123``), so the match is deliberately loose.
2. *Isolation* walks the parsed document and returns the first element
   whose ``id`` equals a discovered value exactly.

Both steps sit behind :class:`ReviewSectionFinder` so the regex heuristic can
be swapped for another strategy (CSS-structural, a classifier …) without
touching the pagination engine.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from bs4 import BeautifulSoup, Tag

# ---------------------------------------------------------------------------
# Discovery heuristic
# ---------------------------------------------------------------------------
_REVIEW_ID_PATTERN = re.compile(
    r"""id=["']([^"'\s]*reviews?[^"']*)["']""",
    re.IGNORECASE,
)


def find_review_ids(html: str) -> List[str]:
    """Return the distinct ``id`` values in *html* that look review-related.

    Each value appears at most once; the first occurrence decides its
    position in the returned list.
    """
    seen: set[str] = set()
    ids: List[str] = []
    for m in _REVIEW_ID_PATTERN.finditer(html):
        value = m.group(1)
        if value not in seen:
            seen.add(value)
            ids.append(value)
    return ids


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------

def parse_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def extract_section(doc: BeautifulSoup, section_id: str) -> Optional[Tag]:
    """Return the first element (document order) whose ``id`` is *section_id*.

    Returns ``None`` when no element carries that exact identifier.
    """
    found = doc.find(attrs={"id": section_id})
    return found if isinstance(found, Tag) else None


def render_section(section: Tag) -> str:
    """Serialise *section* (and its whole subtree) back to HTML."""
    return str(section)


# ---------------------------------------------------------------------------
# Strategy interface
# ---------------------------------------------------------------------------

class ReviewSectionFinder(ABC):
    """Locates review-bearing subtrees in a page snapshot."""

    @abstractmethod
    def find_candidate_ids(self, markup: str) -> List[str]:
        """Return distinct identifiers of containers believed to hold reviews."""

    @abstractmethod
    def parse(self, markup: str) -> Any:
        """Parse *markup* into whatever document form :meth:`extract_subtree` expects."""

    @abstractmethod
    def extract_subtree(self, document: Any, candidate_id: str) -> Optional[str]:
        """Return the serialised subtree for *candidate_id*, or ``None`` if absent."""


class RegexSectionFinder(ReviewSectionFinder):
    """Case-insensitive ``id``-attribute regex discovery + BeautifulSoup lookup."""

    def find_candidate_ids(self, markup: str) -> List[str]:
        return find_review_ids(markup)

    def parse(self, markup: str) -> BeautifulSoup:
        return parse_document(markup)

    def extract_subtree(self, document: BeautifulSoup, candidate_id: str) -> Optional[str]:
        section = extract_section(document, candidate_id)
        if section is None:
            return None
        return render_section(section)
