"""Headless browser session shared by the renderer and the artifact generator.

The browser is launched lazily on first acquire() and reused until
shutdown(). Every render or print gets its own browser context, so
concurrent documents sharing one session never see each other's pages.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from vizpdf.config import Settings
from vizpdf.core.errors import RenderError
from vizpdf.core.models import ErrorKind


logger = logging.getLogger(__name__)

Launcher = Callable[[Settings], Awaitable[tuple[Any, Any]]]


async def launch_chromium(settings: Settings) -> tuple[Any, Any]:
    """Start the Playwright driver and a Chromium browser. Returns (driver, browser)."""
    driver = await async_playwright().start()
    try:
        browser = await driver.chromium.launch(
            headless=settings.headless,
            args=settings.browser_args,
            executable_path=settings.browser_executable,
            timeout=settings.render_timeout_ms,
        )
    except BaseException:
        await driver.stop()
        raise
    return driver, browser


class EngineSession:
    """Owns one browser; hands out isolated pages."""

    def __init__(self, settings: Settings, launcher: Optional[Launcher] = None):
        self._settings = settings
        self._launcher = launcher or launch_chromium
        self._driver = None
        self._browser = None
        self._launch_error: Optional[RenderError] = None
        self._lock = asyncio.Lock()

    @property
    def started(self) -> bool:
        return self._browser is not None

    async def acquire(self):
        """Return the live browser, launching it on first use.

        A failed launch is remembered until shutdown(), so the remaining
        blocks of a batch fail fast instead of relaunching each time.
        """
        async with self._lock:
            if self._launch_error is not None:
                raise self._launch_error
            if self._browser is None:
                logger.info("Launching headless browser")
                try:
                    self._driver, self._browser = await self._launcher(self._settings)
                except (PlaywrightError, OSError) as e:
                    logger.error("Failed to launch browser: %s", e)
                    self._launch_error = RenderError(ErrorKind.engine_unavailable, f"Browser could not start: {e}")
                    raise self._launch_error from e
                logger.info("Browser launched")
        return self._browser

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Any]:
        """Open a page in a fresh context; the context is released on exit."""
        browser = await self.acquire()
        try:
            context = await browser.new_context(viewport={
                "width": self._settings.viewport_width,
                "height": self._settings.viewport_height,
            })
        except PlaywrightError as e:
            raise RenderError(ErrorKind.engine_unavailable, f"Browser context unavailable: {e}") from e
        try:
            yield await context.new_page()
        finally:
            await self.release(context)

    async def release(self, context) -> None:
        try:
            await context.close()
        except PlaywrightError as e:
            logger.warning("Failed to close browser context: %s", e)

    async def shutdown(self) -> None:
        """Close the browser and driver. Safe to call repeatedly or before any launch."""
        async with self._lock:
            browser, driver = self._browser, self._driver
            self._browser = self._driver = None
            self._launch_error = None
        if browser is None:
            return
        try:
            await browser.close()
        except PlaywrightError as e:
            logger.error("Failed to close browser: %s", e)
        if driver is not None:
            await driver.stop()
        logger.info("Browser closed")
