"""
Screenshotter
=============

Playwright-based PNG capture of live web pages.
Owns the browser lifetime and creates one isolated context per capture.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Set, Union

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Page,
    Playwright,
    Error as PlaywrightError,
)

from pagecap.config.logging import get_logger
from pagecap.config.settings import Settings, get_settings
from pagecap.core.cancellation import CancellationToken
from pagecap.core.errors import (
    BrowserNotStartedError,
    BrowserStartError,
    CaptureError,
    ContextCreationError,
    NavigationError,
    PageCreationError,
)
from pagecap.models.schemas import ScreenshotRequest

logger = get_logger(__name__)


class Screenshotter(ABC):
    """Capability the HTTP layer depends on: turn a request into PNG bytes."""

    async def start(self) -> None:
        """Acquire long-lived resources. Called once before serving."""

    async def close(self) -> None:
        """Release long-lived resources. Called once at shutdown."""

    @abstractmethod
    async def capture(self, request: ScreenshotRequest, token: CancellationToken) -> bytes:
        """
        Capture a PNG screenshot of ``request.url``.

        Args:
            request: Normalized screenshot parameters
            token: Cancellation signal for this capture

        Returns:
            PNG image bytes

        Raises:
            ScreenshotError: If the capture fails or is cancelled
        """


class PlaywrightScreenshotter(Screenshotter):
    """Screenshotter backed by a single shared Playwright browser."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(
            component="screenshotter", browser=self.settings.browser_type
        )  # structlog.BoundLoggerBase
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._active: Set[CancellationToken] = set()

    @property
    def started(self) -> bool:
        return self._browser is not None

    async def start(self) -> None:
        """Start Playwright and launch the configured browser."""
        if self._browser is not None:
            return

        browser_type = self.settings.browser_type
        try:
            self._playwright = await async_playwright().start()
            launcher = getattr(self._playwright, browser_type)
            self._browser = await launcher.launch(headless=self.settings.playwright_headless)
        except Exception as e:
            self.logger.error("Failed to start browser", error=str(e))
            await self._stop_playwright()
            raise BrowserStartError(f"launching {browser_type}: {e}") from e

        self.logger.info("Browser started", headless=self.settings.playwright_headless)

    async def close(self) -> None:
        """Cancel in-flight captures, close the browser and stop Playwright."""
        for token in list(self._active):
            token.cancel("server shutting down")

        browser, self._browser = self._browser, None
        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError as e:
                self.logger.warning("Error closing browser", error=str(e))

        await self._stop_playwright()
        self.logger.info("Screenshotter closed")

    async def capture(self, request: ScreenshotRequest, token: CancellationToken) -> bytes:
        browser = self._browser
        if browser is None:
            raise BrowserNotStartedError("browser not started")

        self._active.add(token)
        try:
            return await self._capture_in_context(browser, request, token)
        finally:
            self._active.discard(token)

    async def _capture_in_context(
        self, browser: Browser, request: ScreenshotRequest, token: CancellationToken
    ) -> bytes:
        try:
            context = await browser.new_context(
                viewport={"width": request.width, "height": request.height}
            )
        except PlaywrightError as e:
            raise ContextCreationError(f"creating browser context: {e}") from e

        try:
            try:
                page = await context.new_page()
            except PlaywrightError as e:
                raise PageCreationError(f"creating page: {e}") from e

            try:
                return await self._load_and_capture(page, request, token)
            finally:
                await self._close_quietly(page, "page")
        finally:
            await self._close_quietly(context, "context")

    async def _load_and_capture(
        self, page: Page, request: ScreenshotRequest, token: CancellationToken
    ) -> bytes:
        token.raise_if_cancelled()

        try:
            await token.run(
                page.goto(
                    request.url,
                    wait_until="domcontentloaded",
                    timeout=float(self.settings.navigation_timeout),
                )
            )
        except PlaywrightError as e:
            raise NavigationError(f"navigating to {request.url}: {e}") from e

        if request.delay_ms > 0:
            await token.sleep(request.delay_ms / 1000)

        token.raise_if_cancelled()

        try:
            png = await token.run(page.screenshot(type="png"))
        except PlaywrightError as e:
            raise CaptureError(f"taking screenshot: {e}") from e

        self.logger.debug("Screenshot captured", url=request.url, file_size=len(png))
        return png

    async def _close_quietly(self, resource: Union[BrowserContext, Page], kind: str) -> None:
        try:
            await resource.close()
        except PlaywrightError as e:
            self.logger.warning("Error closing browser resource", resource=kind, error=str(e))

    async def _stop_playwright(self) -> None:
        playwright, self._playwright = self._playwright, None
        if playwright is None:
            return
        try:
            await playwright.stop()
        except Exception as e:
            self.logger.warning("Error stopping Playwright", error=str(e))
