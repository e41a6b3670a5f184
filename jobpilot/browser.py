"""
Browser access for the seeker.

``BrowserActions`` is the only code that touches a live Playwright page; the
orchestrator and the site plug-ins speak in selectors through it.
``BrowserSession`` owns the Playwright/browser/context handles and tears them
down one by one.
"""
from __future__ import annotations

import os
import random
from pathlib import Path
from typing import Any

from jobpilot.log import get_logger
from jobpilot.retry import call_with_retry

log = get_logger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
LAUNCH_ARGS: list[str] = [
    "--window-position=0,0",
    "--window-size=1920,1080",
    "--disable-popup-blocking",
    "--disable-notifications",
    "--noerrdialogs",
    "--disable-session-crashed-bubble",
]


class BrowserActions:
    """Selector-level operations on one page. ``safe_*`` variants retry with linear backoff."""

    def __init__(self, page: Any, *, retry_times: int = 3, retry_delay: float = 5.0,
                 timeout_ms: int = 20_000) -> None:
        self.page = page
        self.retry_times = retry_times
        self.retry_delay = retry_delay
        self.timeout_ms = timeout_ms

    @property
    def url(self) -> str:
        return self.page.url

    # -- plain primitives, no retry --

    def navigate(self, url: str) -> None:
        self.page.goto(url, wait_until="domcontentloaded", timeout=self.timeout_ms * 2)

    def wait_for_load(self, state: str = "networkidle") -> None:
        self.page.wait_for_load_state(state, timeout=self.timeout_ms * 2)

    def click(self, selector: str) -> None:
        self.page.locator(selector).first.click(timeout=self.timeout_ms)

    def fill(self, selector: str, text: str) -> None:
        self.page.locator(selector).first.fill(text, timeout=self.timeout_ms)

    def type_sequentially(self, selector: str, text: str,
                          delay_ms: float | tuple[float, float] = 100) -> None:
        """Type key by key. A ``(low, high)`` delay draws a fresh pause for every character."""
        loc = self.page.locator(selector).first
        if not isinstance(delay_ms, tuple):
            loc.press_sequentially(text, delay=delay_ms, timeout=self.timeout_ms)
            return
        low, high = delay_ms
        loc.click(timeout=self.timeout_ms)
        for ch in text:
            loc.press_sequentially(ch, timeout=self.timeout_ms)
            self.page.wait_for_timeout(random.uniform(low, high))

    def exists(self, selector: str) -> bool:
        return self.page.query_selector(selector) is not None

    def is_visible(self, selector: str) -> bool:
        """Safe visibility check that never throws."""
        try:
            loc = self.page.locator(selector)
            return loc.count() > 0 and loc.first.is_visible()
        except Exception:
            return False

    def get_text(self, selector: str) -> str:
        return (self.page.locator(selector).first.text_content(timeout=self.timeout_ms) or "").strip()

    def get_attribute(self, selector: str, name: str) -> str | None:
        return self.page.locator(selector).first.get_attribute(name, timeout=self.timeout_ms)

    def wait_for_selector(self, selector: str, timeout_ms: int | None = None) -> None:
        self.page.wait_for_selector(selector, timeout=timeout_ms or self.timeout_ms)

    def count(self, selector: str) -> int:
        return self.page.locator(selector).count()

    def scroll_to_bottom(self) -> None:
        self.page.evaluate("window.scrollTo(0, document.body.scrollHeight)")

    def close(self) -> None:
        self.page.close()

    # -- retrying primitives --

    def _retrying(self, label: str, fn) -> None:
        call_with_retry(fn, max_attempts=self.retry_times, base_delay=self.retry_delay, label=label)

    def safe_click(self, selector: str) -> None:
        def attempt() -> None:
            self.wait_for_selector(selector)
            self.click(selector)
        self._retrying(f"click {selector}", attempt)

    def safe_fill(self, selector: str, text: str) -> None:
        def attempt() -> None:
            self.wait_for_selector(selector)
            self.fill(selector, text)
        self._retrying(f"fill {selector}", attempt)

    def safe_type(self, selector: str, text: str,
                  delay_ms: float | tuple[float, float] = 100) -> None:
        def attempt() -> None:
            self.wait_for_selector(selector)
            self.type_sequentially(selector, text, delay_ms)
        self._retrying(f"type {selector}", attempt)


class BrowserSession:
    """Playwright → Chromium → context → page, created by ``start`` and released by ``close``."""

    def __init__(self, *, headless: bool = False, user_agent: str = DEFAULT_USER_AGENT,
                 retry_times: int = 3, retry_delay: float = 5.0) -> None:
        self.headless = headless
        self.user_agent = user_agent
        self.retry_times = retry_times
        self.retry_delay = retry_delay
        self._playwright = None
        self.browser = None
        self.context = None
        self.page: BrowserActions | None = None

    def _wrap(self, page: Any) -> BrowserActions:
        page.set_default_timeout(20_000)
        return BrowserActions(page, retry_times=self.retry_times, retry_delay=self.retry_delay)

    def start(self) -> BrowserActions:
        _pw = os.environ.get("PLAYWRIGHT_BROWSERS_PATH", "")
        if _pw and not Path(_pw).exists():
            os.environ.pop("PLAYWRIGHT_BROWSERS_PATH", None)
        from playwright.sync_api import sync_playwright

        log.info("Starting Playwright...")
        self._playwright = sync_playwright().start()
        log.info("Launching Chromium (headless=%s)...", self.headless)
        self.browser = self._playwright.chromium.launch(headless=self.headless, args=LAUNCH_ARGS)
        self.context = self.browser.new_context(
            viewport={"width": 1920, "height": 1080},
            user_agent=self.user_agent,
        )
        self.page = self._wrap(self.context.new_page())
        log.info("Browser ready")
        return self.page

    def open_page(self) -> BrowserActions:
        if self.context is None:
            raise RuntimeError("Browser session not started")
        return self._wrap(self.context.new_page())

    def close(self) -> None:
        """Release every handle that exists; failures are logged, never raised."""
        handles = (
            ("page", self.page, lambda h: h.close()),
            ("context", self.context, lambda h: h.close()),
            ("browser", self.browser, lambda h: h.close()),
            ("playwright", self._playwright, lambda h: h.stop()),
        )
        for name, handle, release in handles:
            if handle is None:
                continue
            try:
                release(handle)
            except Exception as e:
                log.warning("Error closing %s: %s", name, str(e)[:150])
        self.page = self.context = self.browser = self._playwright = None
