"""Pagination-aware review harvesting.

``PaginationEngine.run`` walks one product page through its review pages
and/or infinite-scroll states::

    LOADING → PROCESSING → ADVANCING_BY_CONTROL ──(control clicked)──→ LOADING
                                   │
                                   └─(no control)→ ADVANCING_BY_SCROLL ──(markup grew)──→ LOADING
                                                            │
                                                            └─(markup unchanged)──→ DONE

Control-based advancement is always tried first; scrolling is only the
fallback.  ``settings.max_cycles`` and ``settings.time_budget`` cap the walk
so a page whose markup keeps changing trivially cannot loop forever.

Failure handling
----------------
* Browser failures (navigation, markup read, script execution) raise
  :class:`~harvester.scraper.session.BrowserSessionError` out of ``run``.
* A section that cannot be isolated or extracted is reported and skipped.
* No matching "next" control is not an error; it triggers scrolling.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, List, Optional

from harvester.config import Settings
from harvester.scraper.aggregator import ReviewAggregator
from harvester.scraper.extractor import ExtractionError, extract_reviews
from harvester.scraper.locator import RegexSectionFinder, ReviewSectionFinder
from harvester.scraper.models import Review
from harvester.scraper.session import BrowserSession, BrowserSessionError

# ---------------------------------------------------------------------------
# "Next page" / "show more" controls, most specific first
# ---------------------------------------------------------------------------
NEXT_PAGE_SELECTORS = [
    ".pagination a.next",
    "a[rel='next']",
    "a:has-text('Next')",
    "button:has-text('Next')",
    "button:has-text('See more')",
    "a:has-text('See more')",
    "button:has-text('Load more')",
    "a:has-text('Load more')",
]


class PageState(Enum):
    LOADING = "loading"
    PROCESSING = "processing"
    ADVANCING_BY_CONTROL = "advancing_by_control"
    ADVANCING_BY_SCROLL = "advancing_by_scroll"
    DONE = "done"


class PaginationEngine:
    """Drives one :class:`BrowserSession` through successive review pages.

    Args:
        session: Exclusively-owned, already opened browser session.
        llm: Completion model handed to
            :func:`~harvester.scraper.extractor.extract_reviews`.
        settings: Settle delay and traversal limits.
        finder: Review-section strategy; defaults to
            :class:`~harvester.scraper.locator.RegexSectionFinder`.
    """

    def __init__(
        self,
        session: BrowserSession,
        llm: Any,
        settings: Settings,
        finder: Optional[ReviewSectionFinder] = None,
        next_selectors: Optional[List[str]] = None,
    ) -> None:
        self._session = session
        self._llm = llm
        self._settings = settings
        self._finder = finder or RegexSectionFinder()
        self._next_selectors = next_selectors or NEXT_PAGE_SELECTORS

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, url: str) -> List[Review]:
        """Harvest every review reachable from *url*.

        Returns:
            Reviews in the order their sections were processed, page by page.

        Raises:
            BrowserSessionError: Navigation, markup retrieval or scrolling
                failed.
        """
        aggregator = ReviewAggregator()
        state = PageState.LOADING
        navigated = False
        snapshot = ""
        cycles = 0
        started = time.monotonic()

        while state is not PageState.DONE:
            if state is PageState.LOADING:
                if not navigated:
                    print(f"[NAVIGATE] {url}")
                    self._session.navigate(url)
                    navigated = True
                state = PageState.PROCESSING

            elif state is PageState.PROCESSING:
                cycles += 1
                snapshot = self._session.fetch_markup()
                print(f"[PROCESSING] Cycle {cycles}: snapshot of {len(snapshot)} chars.")
                self._process_snapshot(snapshot, aggregator)
                if self._limit_reached(cycles, started):
                    state = PageState.DONE
                else:
                    state = PageState.ADVANCING_BY_CONTROL

            elif state is PageState.ADVANCING_BY_CONTROL:
                if self._advance_by_control():
                    state = PageState.LOADING
                else:
                    state = PageState.ADVANCING_BY_SCROLL

            elif state is PageState.ADVANCING_BY_SCROLL:
                if self._advance_by_scroll(snapshot):
                    state = PageState.LOADING
                else:
                    state = PageState.DONE

        print(f"[DONE] {len(aggregator)} review(s) after {cycles} cycle(s).")
        return aggregator.reviews

    # ------------------------------------------------------------------
    # PROCESSING
    # ------------------------------------------------------------------

    def _process_snapshot(self, markup: str, aggregator: ReviewAggregator) -> None:
        candidate_ids = self._finder.find_candidate_ids(markup)
        if not candidate_ids:
            print("[PROCESSING] No review sections found.")
            return

        document = self._finder.parse(markup)
        for candidate_id in candidate_ids:
            section_html = self._finder.extract_subtree(document, candidate_id)
            if section_html is None:
                print(f"[SECTION] {candidate_id!r} not found in document, skipping.")
                continue
            try:
                reviews = extract_reviews(section_html, self._llm)
            except ExtractionError as exc:
                print(f"[SECTION] ✗ {candidate_id!r}: {exc}")
                continue
            aggregator.extend(reviews)
            print(f"[SECTION] ✓ {candidate_id!r}: {len(reviews)} review(s).")

    def _limit_reached(self, cycles: int, started: float) -> bool:
        if cycles >= self._settings.max_cycles:
            print(f"[DONE] Cycle limit ({self._settings.max_cycles}) reached.")
            return True
        elapsed = time.monotonic() - started
        if elapsed >= self._settings.time_budget:
            print(f"[DONE] Time budget ({self._settings.time_budget:.0f}s) exhausted.")
            return True
        return False

    # ------------------------------------------------------------------
    # ADVANCING
    # ------------------------------------------------------------------

    def _advance_by_control(self) -> bool:
        control = self._session.find_first(self._next_selectors)
        if control is None:
            return False
        try:
            self._session.click(control)
        except BrowserSessionError as exc:
            print(f"[ADVANCE] Control click failed ({exc}); falling back to scroll.")
            return False
        print("[ADVANCE] Clicked pagination control.")
        time.sleep(self._settings.settle_delay)
        return True

    def _advance_by_scroll(self, snapshot: str) -> bool:
        self._session.scroll_to_bottom()
        time.sleep(self._settings.settle_delay)
        current = self._session.fetch_markup()
        if current == snapshot:
            print("[SCROLL] Markup unchanged after scrolling.")
            return False
        print("[SCROLL] New content loaded.")
        return True
