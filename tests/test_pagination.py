"""Tests for the pagination state machine.

Mocking strategy
----------------
* Browser — ``FakeSession`` implements :class:`BrowserSession` over a
  scripted site: a list of pages, each with a list of scroll states and a
  flag saying whether a "next" control is present.  Clicking moves to the
  next page; scrolling moves to the next scroll state (or stays put on the
  last one).
* LLM — ``FakeLLM.invoke`` looks for a marker token inside the prompt and
  replies with the reviews registered for that token.
* ``settle_delay`` is ``0`` so no real sleeping happens.
"""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, Optional, Sequence
from unittest.mock import MagicMock, patch

import pytest

from harvester.config import Settings
from harvester.scraper.locator import ReviewSectionFinder
from harvester.scraper.models import Review
from harvester.scraper.pagination import NEXT_PAGE_SELECTORS, PaginationEngine
from harvester.scraper.session import SCROLL_TO_BOTTOM_JS, BrowserSession, BrowserSessionError


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

_NEXT_CONTROL = object()


class FakeSession(BrowserSession):
    def __init__(self, pages: list[dict[str, Any]]) -> None:
        self.pages = pages
        self.page = 0
        self.scroll = 0
        self.navigated: list[str] = []
        self.fetches = 0
        self.clicks = 0
        self.scripts: list[str] = []
        self.selector_lookups: list[Sequence[str]] = []
        self.closed = 0
        self.fail_click = False

    def navigate(self, url: str) -> None:
        self.navigated.append(url)

    def fetch_markup(self) -> str:
        self.fetches += 1
        states = self.pages[self.page]["states"]
        return states[self.scroll]

    def find_first(self, selectors: Sequence[str]) -> Optional[Any]:
        self.selector_lookups.append(selectors)
        return _NEXT_CONTROL if self.pages[self.page].get("next") else None

    def click(self, element: Any) -> None:
        assert element is _NEXT_CONTROL
        if self.fail_click:
            raise BrowserSessionError("element is not attached to the DOM")
        self.clicks += 1
        self.page += 1
        self.scroll = 0

    def execute_script(self, script: str, arg: Any = None) -> Any:
        self.scripts.append(script)
        if self.scroll < len(self.pages[self.page]["states"]) - 1:
            self.scroll += 1
        return None

    def close(self) -> None:
        self.closed += 1


class FakeLLM:
    def __init__(self, replies: dict[str, str]) -> None:
        self.replies = replies
        self.prompts: list[str] = []

    def invoke(self, prompt: str) -> SimpleNamespace:
        self.prompts.append(prompt)
        for token, reply in self.replies.items():
            if token in prompt:
                return SimpleNamespace(content=reply)
        return SimpleNamespace(content="[]")


def _reviews_json(*titles: str) -> str:
    return json.dumps(
        [
            {"title": t, "body": f"{t} body", "rating": "5/5", "reviewer": f"{t}-author"}
            for t in titles
        ]
    )


def _page_html(*tokens: str, section_id: str = "customer-reviews") -> str:
    """A product page with one review section per token."""
    sections = "".join(
        f'<div id="{section_id}-{i}"><span>{token}</span></div>'
        for i, token in enumerate(tokens)
    )
    return f"<html><body><h1>Product</h1>{sections}</body></html>"


def _settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {"settle_delay": 0.0, "max_cycles": 50, "time_budget": 1000.0}
    values.update(overrides)
    return Settings(**values)


# ---------------------------------------------------------------------------
# End-to-end scenarios
# ---------------------------------------------------------------------------

class TestThreePageSite:
    @pytest.fixture()
    def site(self) -> tuple[FakeSession, FakeLLM]:
        session = FakeSession(
            [
                {"states": [_page_html("TOKEN-P1")], "next": True},
                {"states": [_page_html("TOKEN-P2")], "next": True},
                {"states": [_page_html("TOKEN-P3")], "next": False},
            ]
        )
        llm = FakeLLM(
            {
                "TOKEN-P1": _reviews_json("p1-a", "p1-b"),
                "TOKEN-P2": _reviews_json("p2-a"),
                "TOKEN-P3": "[]",
            }
        )
        return session, llm

    def test_returns_three_reviews_in_page_order(self, site) -> None:
        session, llm = site
        reviews = PaginationEngine(session, llm, _settings()).run("https://shop.test/p/1")

        assert [r.title for r in reviews] == ["p1-a", "p1-b", "p2-a"]
        assert all(isinstance(r, Review) for r in reviews)

    def test_traverses_by_control_then_stops_after_scroll_check(self, site) -> None:
        session, llm = site
        PaginationEngine(session, llm, _settings()).run("https://shop.test/p/1")

        assert session.navigated == ["https://shop.test/p/1"]
        assert session.clicks == 2
        # Page 3 has no control, so one scroll is tried and finds no growth.
        assert session.scripts == [SCROLL_TO_BOTTOM_JS]
        # One fetch per processed page plus the post-scroll comparison fetch.
        assert session.fetches == 4
        assert len(llm.prompts) == 3

    def test_control_selectors_are_tried_on_every_cycle(self, site) -> None:
        session, llm = site
        PaginationEngine(session, llm, _settings()).run("https://shop.test/p/1")

        assert len(session.selector_lookups) == 3
        assert all(list(s) == NEXT_PAGE_SELECTORS for s in session.selector_lookups)


class TestInfiniteScrollSite:
    def test_processes_each_distinct_snapshot_and_stops_on_repeat(self) -> None:
        states = [_page_html(f"TOKEN-SCROLL-{i}") for i in range(4)]
        session = FakeSession([{"states": states, "next": False}])
        llm = FakeLLM({f"TOKEN-SCROLL-{i}": _reviews_json(f"s{i}") for i in range(4)})

        reviews = PaginationEngine(session, llm, _settings()).run("https://shop.test/feed")

        # Three scrolls grow the page; the fourth returns identical markup.
        assert session.scripts == [SCROLL_TO_BOTTOM_JS] * 4
        assert len(llm.prompts) == 4
        assert [r.title for r in reviews] == ["s0", "s1", "s2", "s3"]
        assert session.clicks == 0

    def test_stops_when_first_scroll_changes_nothing(self) -> None:
        session = FakeSession([{"states": [_page_html("TOKEN-ONLY")], "next": False}])
        llm = FakeLLM({"TOKEN-ONLY": _reviews_json("only")})

        reviews = PaginationEngine(session, llm, _settings()).run("https://shop.test/p/2")

        assert [r.title for r in reviews] == ["only"]
        assert len(session.scripts) == 1
        assert session.fetches == 2


# ---------------------------------------------------------------------------
# Advancement ordering
# ---------------------------------------------------------------------------

class TestAdvanceOrdering:
    def test_control_is_preferred_over_scroll(self) -> None:
        # Page 1 could also grow by scrolling, but has a visible control.
        session = FakeSession(
            [
                {"states": [_page_html("TOKEN-ALPHA"), _page_html("TOKEN-ALPHA", "TOKEN-EXTRA")], "next": True},
                {"states": [_page_html("TOKEN-BETA")], "next": False},
            ]
        )
        llm = FakeLLM(
            {
                "TOKEN-EXTRA": _reviews_json("hidden"),
                "TOKEN-ALPHA": _reviews_json("a"),
                "TOKEN-BETA": _reviews_json("b"),
            }
        )

        reviews = PaginationEngine(session, llm, _settings()).run("https://shop.test/p/3")

        assert [r.title for r in reviews] == ["a", "b"]
        assert session.clicks == 1
        # The only scroll happens on page 2, after its control lookup failed.
        assert len(session.scripts) == 1

    def test_failed_click_falls_back_to_scroll(self) -> None:
        session = FakeSession([{"states": [_page_html("TOKEN-X")], "next": True}])
        session.fail_click = True
        llm = FakeLLM({"TOKEN-X": _reviews_json("x")})

        reviews = PaginationEngine(session, llm, _settings()).run("https://shop.test/p/4")

        assert [r.title for r in reviews] == ["x"]
        assert session.clicks == 0
        assert session.scripts == [SCROLL_TO_BOTTOM_JS]


# ---------------------------------------------------------------------------
# Unit-level failures
# ---------------------------------------------------------------------------

class TestSectionFailures:
    def test_bad_reply_skips_only_that_section(self) -> None:
        session = FakeSession([{"states": [_page_html("TOKEN-BAD", "TOKEN-GOOD")], "next": False}])
        llm = FakeLLM({"TOKEN-BAD": "Sorry, I can't help with that.", "TOKEN-GOOD": _reviews_json("good")})

        reviews = PaginationEngine(session, llm, _settings()).run("https://shop.test/p/5")

        assert [r.title for r in reviews] == ["good"]
        assert len(llm.prompts) == 2

    def test_malformed_json_skips_section(self) -> None:
        session = FakeSession([{"states": [_page_html("TOKEN-BROKEN", "TOKEN-GOOD")], "next": False}])
        llm = FakeLLM({"TOKEN-BROKEN": '[{"title": "x",,]', "TOKEN-GOOD": _reviews_json("good")})

        reviews = PaginationEngine(session, llm, _settings()).run("https://shop.test/p/6")

        assert [r.title for r in reviews] == ["good"]

    def test_completion_exception_does_not_abort(self) -> None:
        session = FakeSession([{"states": [_page_html("TOKEN-ANY")], "next": False}])
        llm = MagicMock()
        llm.invoke.side_effect = TimeoutError("completion timed out")

        reviews = PaginationEngine(session, llm, _settings()).run("https://shop.test/p/7")

        assert reviews == []
        assert session.scripts == [SCROLL_TO_BOTTOM_JS]

    def test_candidate_without_real_id_is_skipped(self) -> None:
        html = '<html><body><div data-id="review-42"><p>x</p></div></body></html>'
        session = FakeSession([{"states": [html], "next": False}])
        llm = FakeLLM({})

        reviews = PaginationEngine(session, llm, _settings()).run("https://shop.test/p/8")

        assert reviews == []
        assert llm.prompts == []

    def test_page_without_sections_still_advances(self) -> None:
        session = FakeSession(
            [
                {"states": ["<html><body>No reviews yet</body></html>"], "next": True},
                {"states": [_page_html("TOKEN-LATE")], "next": False},
            ]
        )
        llm = FakeLLM({"TOKEN-LATE": _reviews_json("late")})

        reviews = PaginationEngine(session, llm, _settings()).run("https://shop.test/p/9")

        assert [r.title for r in reviews] == ["late"]


# ---------------------------------------------------------------------------
# Fatal failures
# ---------------------------------------------------------------------------

class TestFatalFailures:
    def test_navigation_error_propagates(self) -> None:
        session = FakeSession([{"states": [_page_html("TOKEN-ALPHA")], "next": False}])
        session.navigate = MagicMock(side_effect=BrowserSessionError("net::ERR_NAME_NOT_RESOLVED"))

        with pytest.raises(BrowserSessionError):
            PaginationEngine(session, FakeLLM({}), _settings()).run("https://nope.invalid/")

    def test_script_error_propagates(self) -> None:
        session = FakeSession([{"states": [_page_html("TOKEN-ALPHA")], "next": False}])
        session.execute_script = MagicMock(side_effect=BrowserSessionError("Execution context was destroyed"))

        with pytest.raises(BrowserSessionError):
            PaginationEngine(session, FakeLLM({}), _settings()).run("https://shop.test/p/10")


# ---------------------------------------------------------------------------
# Traversal limits
# ---------------------------------------------------------------------------

class TestTraversalLimits:
    def test_max_cycles_caps_processing(self) -> None:
        pages = [{"states": [_page_html(f"TOKEN-P{i}")], "next": True} for i in range(10)]
        session = FakeSession(pages)
        llm = FakeLLM({f"TOKEN-P{i}": _reviews_json(f"p{i}") for i in range(10)})

        reviews = PaginationEngine(session, llm, _settings(max_cycles=3)).run("https://shop.test/p/11")

        assert [r.title for r in reviews] == ["p0", "p1", "p2"]
        assert session.fetches == 3
        assert session.clicks == 2

    def test_time_budget_stops_traversal(self) -> None:
        pages = [{"states": [_page_html(f"TOKEN-P{i}")], "next": True} for i in range(10)]
        session = FakeSession(pages)
        llm = FakeLLM({f"TOKEN-P{i}": _reviews_json(f"p{i}") for i in range(10)})

        with patch("harvester.scraper.pagination.time") as mock_time:
            mock_time.monotonic.side_effect = [0.0, 100.0, 200.0]
            reviews = PaginationEngine(
                session, llm, _settings(time_budget=150.0)
            ).run("https://shop.test/p/12")

        assert [r.title for r in reviews] == ["p0", "p1"]
        assert session.clicks == 1

    def test_settle_delay_used_after_click_and_scroll(self) -> None:
        session = FakeSession(
            [
                {"states": [_page_html("TOKEN-ALPHA")], "next": True},
                {"states": [_page_html("TOKEN-BETA")], "next": False},
            ]
        )
        with patch("harvester.scraper.pagination.time") as mock_time:
            mock_time.monotonic.return_value = 0.0
            PaginationEngine(
                session, FakeLLM({}), _settings(settle_delay=1.5)
            ).run("https://shop.test/p/13")

        assert [c.args for c in mock_time.sleep.call_args_list] == [(1.5,), (1.5,)]


# ---------------------------------------------------------------------------
# Pluggable section finder
# ---------------------------------------------------------------------------

class _FixedFinder(ReviewSectionFinder):
    def find_candidate_ids(self, markup: str) -> list[str]:
        return ["whole-page"]

    def parse(self, markup: str) -> str:
        return markup

    def extract_subtree(self, document: str, candidate_id: str) -> Optional[str]:
        return document


class TestCustomFinder:
    def test_engine_uses_injected_finder(self) -> None:
        session = FakeSession([{"states": ["<p>TOKEN-CUSTOM</p>"], "next": False}])
        llm = FakeLLM({"TOKEN-CUSTOM": _reviews_json("custom")})

        reviews = PaginationEngine(session, llm, _settings(), finder=_FixedFinder()).run(
            "https://shop.test/p/14"
        )

        assert [r.title for r in reviews] == ["custom"]
