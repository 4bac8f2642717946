"""Headless browser session used for referral probes."""

from typing import Any

from playwright.async_api import Browser, Page, Playwright, async_playwright

from cafe_credits.logging_config import get_logger
from cafe_credits.settings import settings

logger = get_logger(__name__)


class BrowserSession:
    """One browser with a single reusable page.

    Use as an async context manager so the browser is closed on every exit
    path, including errors raised half-way through a batch:

        async with BrowserSession(headless=True) as session:
            await session.page.goto(url)
    """

    def __init__(self, headless: bool | None = None, channel: str | None = None):
        """Initialize session.

        Args:
            headless: Hide the browser window (defaults to settings)
            channel: Playwright browser channel (defaults to settings)
        """
        self.headless = settings.headless if headless is None else headless
        self.channel = channel if channel is not None else settings.browser_channel
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._page: Page | None = None

    @property
    def is_open(self) -> bool:
        return self._page is not None

    @property
    def page(self) -> Page:
        """The shared page. Raises if the session has not been started."""
        if self._page is None:
            raise RuntimeError("Browser session is not initialized")
        return self._page

    async def init(self) -> None:
        """Launch the browser and open the page. Calling twice is a no-op."""
        if self._page is not None:
            return

        launch_args: dict[str, Any] = {"headless": self.headless}
        if self.channel:
            launch_args["channel"] = self.channel

        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(**launch_args)
            context = await self._browser.new_context()
            self._page = await context.new_page()
        except Exception:
            await self.close()
            raise

        logger.info("browser_started", headless=self.headless, channel=self.channel)

    async def close(self) -> None:
        """Close the browser and clear the page reference."""
        browser, playwright = self._browser, self._playwright
        self._page = None
        self._browser = None
        self._playwright = None

        if browser is not None:
            try:
                await browser.close()
            except Exception as e:
                logger.warning("browser_close_error", error=str(e))
        if playwright is not None:
            await playwright.stop()
            logger.info("browser_closed")

    async def __aenter__(self) -> "BrowserSession":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
