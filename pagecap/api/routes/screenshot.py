"""
Screenshot Routes
=================

The single ``GET /`` endpoint: landing page without ``url``, PNG screenshot
with it. Parameters are normalized here before any browser work starts.
"""

import asyncio
import contextlib
import re
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

import jinja2
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, Response

from pagecap.config.logging import get_logger
from pagecap.config.settings import Settings
from pagecap.core.cancellation import CancellationToken
from pagecap.core.rendering.screenshotter import Screenshotter
from pagecap.models.schemas import (
    DEFAULT_DELAY_MS,
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    MAX_DELAY_MS,
    ScreenshotRequest,
)

router = APIRouter(tags=["Screenshots"])
logger = get_logger(__name__)

ALLOWED_SCHEMES = {"http", "https"}
TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

_INTEGER = re.compile(r"[+-]?[0-9]+")
_MAX_INT64 = 2**63 - 1

_templates = jinja2.Environment(
    loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=jinja2.select_autoescape(["html", "xml"]),
)


class InvalidURLError(ValueError):
    """The target URL is unparsable or uses a scheme other than http(s)."""

    pass


def parse_int_or(value: Optional[str], fallback: int) -> int:
    """Parse a positive integer, returning ``fallback`` for anything else."""
    if not value or not _INTEGER.fullmatch(value):
        return fallback
    try:
        number = int(value)
    except ValueError:
        # Longer than the interpreter's integer string limit.
        return fallback
    if number <= 0 or number > _MAX_INT64:
        return fallback
    return number


def normalize_url(raw_url: str) -> str:
    """
    Add a missing scheme and reject anything that is not http(s).

    Args:
        raw_url: URL as given by the client

    Returns:
        URL with an explicit scheme

    Raises:
        InvalidURLError: If the URL cannot be parsed or its scheme is not allowed
    """
    if "://" not in raw_url:
        raw_url = "https://" + raw_url

    try:
        scheme = urlsplit(raw_url).scheme
    except ValueError as e:
        raise InvalidURLError(str(e)) from e

    if scheme not in ALLOWED_SCHEMES:
        raise InvalidURLError(f"scheme {scheme!r} is not allowed")
    return raw_url


def build_screenshot_request(
    url: str,
    width: Optional[str] = None,
    height: Optional[str] = None,
    delay: Optional[str] = None,
) -> ScreenshotRequest:
    """Normalize raw query parameters into a ``ScreenshotRequest``."""
    return ScreenshotRequest(
        url=normalize_url(url),
        width=parse_int_or(width, DEFAULT_WIDTH),
        height=parse_int_or(height, DEFAULT_HEIGHT),
        delay_ms=min(parse_int_or(delay, DEFAULT_DELAY_MS), MAX_DELAY_MS),
    )


def render_landing_page(settings: Settings) -> str:
    template = _templates.get_template("index.html")
    return template.render(
        app_name=settings.app_name,
        default_width=DEFAULT_WIDTH,
        default_height=DEFAULT_HEIGHT,
        max_delay=MAX_DELAY_MS,
    )


def get_screenshotter(request: Request) -> Screenshotter:
    """Dependency returning the screenshotter owned by the application."""
    return request.app.state.screenshotter


def get_app_settings(request: Request) -> Settings:
    """Dependency returning the settings the application was built with."""
    return request.app.state.settings


async def watch_disconnect(request: Request, token: CancellationToken, interval: float) -> None:
    """Cancel ``token`` once the client goes away."""
    while not token.cancelled:
        if await request.is_disconnected():
            token.cancel("client disconnected")
            return
        await asyncio.sleep(interval)


async def stop_watcher(watcher: "asyncio.Task[None]") -> None:
    """Cancel the disconnect watcher and wait for it to finish."""
    watcher.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await watcher


@router.get("/", response_class=Response)
async def screenshot(
    request: Request,
    url: Optional[str] = None,
    width: Optional[str] = None,
    height: Optional[str] = None,
    delay: Optional[str] = None,
    screenshotter: Screenshotter = Depends(get_screenshotter),
    settings: Settings = Depends(get_app_settings),
) -> Response:
    """
    Capture a PNG screenshot of ``url``.

    Without ``url`` the landing page is returned instead and no browser work
    is done. Capture failures are turned into 502 responses by the
    application's ``ScreenshotError`` handler.
    """
    if not url:
        return HTMLResponse(render_landing_page(settings))

    try:
        screenshot_request = build_screenshot_request(url, width, height, delay)
    except InvalidURLError as e:
        logger.info("Rejected screenshot URL", url=url, reason=str(e))
        raise HTTPException(status_code=400, detail="only http and https URLs are allowed")

    logger.info(
        "Screenshot requested",
        url=screenshot_request.url,
        width=screenshot_request.width,
        height=screenshot_request.height,
        delay=screenshot_request.delay_ms,
    )

    token = CancellationToken()
    token.cancel_after(settings.request_timeout)
    watcher = asyncio.create_task(
        watch_disconnect(request, token, settings.disconnect_poll_interval)
    )
    try:
        png = await screenshotter.capture(screenshot_request, token)
    finally:
        token.dispose()
        await stop_watcher(watcher)

    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Length": str(len(png))},
    )
