"""Browser session abstraction with a Playwright implementation.

``BrowserSession`` is the capability set the pagination engine relies on:
navigate, read the rendered markup, look up an element by a prioritised list
of selectors, click, run a script and scroll.  ``PlaywrightSession`` backs it
with Chromium, either on a remote host over CDP (``settings.browser_host``)
or launched locally when no host is configured.

Each scrape must own its session exclusively; use :func:`open_session` so
the session is released exactly once, whatever happens inside the block.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Sequence

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from harvester.config import Settings

SCROLL_TO_BOTTOM_JS = "window.scrollTo(0, document.body.scrollHeight)"


class BrowserSessionError(RuntimeError):
    """The remote browser could not be reached or a page operation failed."""


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class BrowserSession(ABC):
    """One exclusively-held automation connection."""

    @abstractmethod
    def navigate(self, url: str) -> None:
        """Load *url*.  Raises :class:`BrowserSessionError` on failure."""

    @abstractmethod
    def fetch_markup(self) -> str:
        """Return the full markup of the currently rendered document."""

    @abstractmethod
    def find_first(self, selectors: Sequence[str]) -> Optional[Any]:
        """Try *selectors* in order; return the first matching element or ``None``."""

    @abstractmethod
    def click(self, element: Any) -> None:
        """Click *element*.  Raises :class:`BrowserSessionError` if it is gone."""

    @abstractmethod
    def execute_script(self, script: str, arg: Any = None) -> Any:
        """Evaluate *script* in the page context and return its result."""

    @abstractmethod
    def close(self) -> None:
        """Release the session.  Safe to call more than once."""

    def scroll_to_bottom(self) -> None:
        self.execute_script(SCROLL_TO_BOTTOM_JS)


# ---------------------------------------------------------------------------
# Playwright implementation
# ---------------------------------------------------------------------------

class PlaywrightSession(BrowserSession):
    """Chromium page driven through Playwright's synchronous API.

    ``settings.implicit_wait`` bounds every element lookup: a selector that
    has not matched a visible element within that time counts as not found.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None
        self._page: Any = None
        self._closed = False

    @property
    def _wait_ms(self) -> int:
        return int(self._settings.implicit_wait * 1000)

    def open(self) -> PlaywrightSession:
        """Start Playwright and attach a fresh browser context + page."""
        try:
            self._playwright = sync_playwright().start()
            chromium = self._playwright.chromium
            if self._settings.browser_host:
                print(f"[SESSION] Connecting to {self._settings.browser_endpoint} …")
                self._browser = chromium.connect_over_cdp(
                    self._settings.browser_endpoint,
                    timeout=int(self._settings.page_load_timeout * 1000),
                )
            else:
                print("[SESSION] Launching local Chromium …")
                self._browser = chromium.launch(headless=self._settings.headless)

            self._context = self._browser.new_context()
            self._page = self._context.new_page()
            self._page.set_default_timeout(self._wait_ms)
            self._page.set_default_navigation_timeout(
                int(self._settings.page_load_timeout * 1000)
            )
        except PlaywrightError as exc:
            self.close()
            raise BrowserSessionError(f"Could not start browser session: {exc}") from exc
        return self

    def navigate(self, url: str) -> None:
        try:
            self._page.goto(url, wait_until="load")
        except PlaywrightError as exc:
            raise BrowserSessionError(f"Navigation to {url!r} failed: {exc}") from exc

    def fetch_markup(self) -> str:
        try:
            return self._page.content()
        except PlaywrightError as exc:
            raise BrowserSessionError(f"Could not read page markup: {exc}") from exc

    def find_first(self, selectors: Sequence[str]) -> Optional[Any]:
        for selector in selectors:
            try:
                handle = self._page.wait_for_selector(
                    selector, state="visible", timeout=self._wait_ms
                )
            except PlaywrightTimeoutError:
                continue
            except PlaywrightError as exc:
                print(f"[SESSION] Selector {selector!r} rejected: {exc!r:.120}")
                continue
            if handle is not None:
                return handle
        return None

    def click(self, element: Any) -> None:
        try:
            element.click(timeout=self._wait_ms)
        except PlaywrightError as exc:
            raise BrowserSessionError(f"Click failed: {exc}") from exc

    def execute_script(self, script: str, arg: Any = None) -> Any:
        try:
            return self._page.evaluate(script, arg)
        except PlaywrightError as exc:
            raise BrowserSessionError(f"Script execution failed: {exc}") from exc

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            if self._context is not None:
                self._context.close()
            if self._browser is not None:
                self._browser.close()
        except PlaywrightError as exc:
            print(f"[SESSION] Error while closing browser: {exc!r:.120}")
        finally:
            if self._playwright is not None:
                self._playwright.stop()


@contextmanager
def open_session(settings: Settings) -> Iterator[PlaywrightSession]:
    """Yield an open :class:`PlaywrightSession`; close it on exit.

    Usage::

        with open_session(settings) as session:
            session.navigate("https://shop.example.com/p/123")
    """
    session = PlaywrightSession(settings).open()
    try:
        yield session
    finally:
        session.close()
