"""
Screenshot Errors
=================

One exception type per failure cause. The HTTP layer treats them all as a
failed render; the concrete type is kept for logging.
"""


class ScreenshotError(Exception):
    """Base class for every screenshot failure."""

    pass


class BrowserStartError(ScreenshotError):
    """Playwright or the browser process could not be started."""

    pass


class BrowserNotStartedError(ScreenshotError):
    """A capture was attempted before the browser was started."""

    pass


class ContextCreationError(ScreenshotError):
    """An isolated browser context could not be created."""

    pass


class PageCreationError(ScreenshotError):
    """A page could not be opened in the browser context."""

    pass


class NavigationError(ScreenshotError):
    """Navigation failed (DNS, refused connection, timeout)."""

    pass


class ScreenshotCancelledError(ScreenshotError):
    """The caller cancelled the capture or its deadline passed."""

    pass


class CaptureError(ScreenshotError):
    """The page loaded but the image could not be captured."""

    pass
