"""
Browser lifecycle management for BrowserBot.

Launches Chromium through async Playwright, hands out one page wrapped in
BrowserTools, and closes everything when the run is over.
"""

import logging
from typing import Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    async_playwright,
)

from .config import AgentConfig
from .tools import BrowserTools

logger = logging.getLogger(__name__)


CONTEXT_OPTIONS = {
    "viewport": {"width": 1280, "height": 800},
    "user_agent": "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
                  "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
}


class BrowserManager:
    """Owns the Playwright browser for one run.

    Uses a persistent context when a user data directory is configured so
    existing logins and cookies are available to the agent.

    Usage:
        async with BrowserManager(config) as tools:
            await tools.invoke("browser_navigate", {"url": "https://example.com"})
    """

    def __init__(self, config: AgentConfig):
        """Initialize the browser manager.

        Args:
            config: Agent configuration with headless and profile settings
        """
        self.config = config
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._browser_tools: Optional[BrowserTools] = None

    async def start(self) -> BrowserTools:
        """Launch the browser and open a page.

        Everything started so far is closed again if the launch fails.

        Returns:
            BrowserTools bound to the page
        """
        if self._browser_tools is not None:
            return self._browser_tools

        logger.debug("BrowserManager: launching Chromium")
        self._playwright = await async_playwright().start()
        try:
            await self._launch()
        except BaseException:
            logger.debug("BrowserManager: launch failed, cleaning up")
            await self.close()
            raise

        self._browser_tools = BrowserTools(
            self._page,
            default_timeout=self.config.action_timeout,
            screenshots_dir=self.config.screenshots_dir,
        )
        logger.debug("BrowserManager: browser ready")
        return self._browser_tools

    async def _launch(self) -> None:
        if self.config.user_data_dir:
            self.config.user_data_dir.mkdir(parents=True, exist_ok=True)
            self._context = await self._playwright.chromium.launch_persistent_context(
                user_data_dir=str(self.config.user_data_dir),
                headless=self.config.headless,
                **CONTEXT_OPTIONS,
            )
        else:
            self._browser = await self._playwright.chromium.launch(headless=self.config.headless)
            self._context = await self._browser.new_context(**CONTEXT_OPTIONS)

        self._context.set_default_navigation_timeout(self.config.navigation_timeout)

        if self._context.pages:
            self._page = self._context.pages[0]
        else:
            self._page = await self._context.new_page()

    async def close(self) -> None:
        """Close browser and cleanup resources.

        Safe to call multiple times.
        """
        # Close in reverse order
        if self._context is not None:
            try:
                await self._context.close()
            except PlaywrightError as e:
                logger.debug(f"BrowserManager: context close failed: {e}")
            self._context = None

        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as e:
                logger.debug(f"BrowserManager: browser close failed: {e}")
            self._browser = None

        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

        self._browser_tools = None
        self._page = None

    async def __aenter__(self) -> BrowserTools:
        return await self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
