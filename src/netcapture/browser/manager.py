"""Browser session for Playwright-driven capture.

Owns the Playwright driver, a Chromium browser, one context and one page.
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import TYPE_CHECKING

from playwright.async_api import Page, async_playwright

from netcapture.config import get_headless_mode

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Playwright

logger = logging.getLogger(__name__)


class BrowserSession:
    """Chromium page whose network traffic is captured.

    Usage:
        async with BrowserSession() as page:
            receiver = await start_page_event_stream(page, config)
            await page.goto(url)
    """

    def __init__(self, headless: bool | None = None) -> None:
        """Initialize the session.

        Args:
            headless: Run without a window. Defaults to NETCAPTURE_HEADLESS.
        """
        self.headless = get_headless_mode() if headless is None else headless
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    @property
    def page(self) -> Page:
        """Current page.

        Raises:
            RuntimeError: If the session is not started or the page was closed
        """
        if self._page is None or self._page.is_closed():
            raise RuntimeError("Browser session not started")
        return self._page

    @property
    def is_open(self) -> bool:
        return self._page is not None and not self._page.is_closed()

    async def start(self) -> Page:
        """Launch the browser and open a page.

        Returns:
            Playwright Page instance
        """
        if self.is_open:
            return self.page

        if self._playwright is None:
            self._playwright = await async_playwright().start()
        if self._browser is None:
            self._browser = await self._playwright.chromium.launch(headless=self.headless)
        if self._context is None:
            self._context = await self._browser.new_context()
        self._page = await self._context.new_page()

        logger.info(f"Browser session started (headless={self.headless})")
        return self._page

    async def close(self) -> None:
        """Close the browser and stop Playwright, ignoring cleanup errors."""
        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None
        self._context = None
        self._page = None

        if browser is not None:
            try:
                await browser.close()
            except Exception as e:  # noqa: BLE001 - intentionally broad for cleanup
                logger.debug(f"Browser close failed: {e}")
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:  # noqa: BLE001
                logger.debug(f"Playwright stop failed: {e}")

    async def __aenter__(self) -> Page:
        return await self.start()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
