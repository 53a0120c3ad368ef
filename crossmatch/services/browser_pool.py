"""Ephemeral browsing contexts for loading target marketplace pages.

Each `open()` creates a fresh isolated Playwright context (own cookies and
storage, heavy resources blocked), loads one URL and closes the context on
every exit path, including load timeouts, errors raised by the caller and
cancellation. A single headless Chromium is shared by all contexts.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Protocol

from playwright.async_api import Browser, Page, Playwright, Route, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..config import BrowserSettings
from ..errors import LoadTimeout
from ..extractors.page import PageSnapshot

logger = logging.getLogger(__name__)

BLOCKED_RESOURCES = (
    ".jpg",
    ".jpeg",
    ".png",
    ".gif",
    ".svg",
    ".webp",
    ".woff",
    ".woff2",
    ".ttf",
    ".eot",
    ".mp4",
    ".mp3",
    "google-analytics",
    "googletagmanager",
    "facebook.net",
    "doubleclick.net",
)

SCROLL_TO_BOTTOM_JS = """
() => {
    window.scrollTo(0, document.body.scrollHeight);
    return document.body.scrollHeight;
}
"""


class BrowsingContext(Protocol):
    """Handle on a loaded page, valid only inside `open()`."""

    @property
    def url(self) -> str:
        ...

    async def snapshot(self) -> PageSnapshot:
        ...

    async def scroll_to_bottom(self) -> int:
        """Scroll to the end of the page and return its height."""
        ...


class BrowsingContextFactory(Protocol):
    def open(self, url: str, timeout: float) -> AbstractAsyncContextManager[BrowsingContext]:
        ...


def _should_block(url: str) -> bool:
    lowered = url.lower()
    return any(marker in lowered for marker in BLOCKED_RESOURCES)


async def _abort_route(route: Route) -> None:
    await route.abort()


class PlaywrightBrowsingContext:
    """BrowsingContext backed by a Playwright page."""

    def __init__(self, page: Page):
        self._page = page

    @property
    def url(self) -> str:
        return self._page.url

    async def snapshot(self) -> PageSnapshot:
        html = await self._page.content()
        return PageSnapshot.from_html(self._page.url, html)

    async def scroll_to_bottom(self) -> int:
        return int(await self._page.evaluate(SCROLL_TO_BOTTOM_JS))


class PlaywrightContextFactory:
    """Creates one isolated browsing context per `open()` call."""

    def __init__(self, settings: BrowserSettings):
        """Initialize the factory.

        Args:
            settings: Headless mode, user agent and viewport.
        """
        self.settings = settings
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._launching: asyncio.Future[Browser] | None = None
        self._stats = {"opened": 0, "timeouts": 0}

    async def _launch(self) -> Browser:
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.settings.headless,
            args=[
                "--disable-dev-shm-usage",
                "--disable-gpu",
                "--disable-background-timer-throttling",
                "--disable-renderer-backgrounding",
                "--disable-backgrounding-occluded-windows",
                "--no-sandbox",
                "--disable-setuid-sandbox",
                "--disable-extensions",
            ],
        )
        logger.info("Headless browser started")
        return self._browser

    async def _get_browser(self) -> Browser:
        """Shared browser, launched once however many callers wait for it."""
        if self._browser is not None:
            return self._browser
        if self._launching is None:
            self._launching = asyncio.ensure_future(self._launch())
        launching = self._launching
        try:
            return await asyncio.shield(launching)
        finally:
            if launching.done():
                self._launching = None

    @asynccontextmanager
    async def open(self, url: str, timeout: float) -> AsyncIterator[BrowsingContext]:
        """Load `url` in a fresh context and yield a handle on it.

        Args:
            url: Page to load.
            timeout: Seconds allowed for navigation.

        Raises:
            LoadTimeout: The page did not load in time.
        """
        browser = await self._get_browser()
        context = await browser.new_context(
            viewport={"width": self.settings.viewport_width, "height": self.settings.viewport_height},
            user_agent=self.settings.user_agent,
            java_script_enabled=True,
            accept_downloads=False,
        )
        self._stats["opened"] += 1
        try:
            await context.route(_should_block, _abort_route)
            page = await context.new_page()
            try:
                await page.goto(url, wait_until="domcontentloaded", timeout=timeout * 1000)
            except PlaywrightTimeoutError as e:
                self._stats["timeouts"] += 1
                raise LoadTimeout(f"Timed out after {timeout}s loading {url}", e) from e
            logger.debug(f"Loaded {url}")
            yield PlaywrightBrowsingContext(page)
        finally:
            await context.close()
            logger.debug(f"Closed browsing context for {url}")

    def get_stats(self) -> dict[str, int]:
        return dict(self._stats)

    async def shutdown(self) -> None:
        """Close the shared browser and stop Playwright."""
        if self._launching is not None:
            await asyncio.gather(self._launching, return_exceptions=True)
            self._launching = None

        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None
        if browser is not None:
            await browser.close()
        if playwright is not None:
            await playwright.stop()
        logger.info(f"Headless browser closed. Stats: {self.get_stats()}")
