"""
FastAPI Application
==================

Application factory, lifespan and server runner for the screenshot service.
"""

from contextlib import asynccontextmanager
import uuid
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send
import structlog
import uvicorn

from pagecap.api.routes.screenshot import router as screenshot_router
from pagecap.config.logging import get_logger, setup_logging
from pagecap.config.settings import Settings, get_settings
from pagecap.core.errors import ScreenshotError
from pagecap.core.rendering.screenshotter import PlaywrightScreenshotter, Screenshotter

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Start the browser before serving and close it after the last request."""
    screenshotter: Screenshotter = app.state.screenshotter

    logger.info("Starting screenshot service")
    # A failure here aborts startup: the server never serves without a browser.
    await screenshotter.start()
    logger.info("Screenshotter started")

    try:
        yield
    finally:
        logger.info("Shutting down screenshot service")
        await screenshotter.close()
        logger.info("Stopped")


class RequestIDMiddleware:
    """
    Add a request ID to every response and bind it to the log context.

    Plain ASGI so the endpoint keeps the server's own ``receive`` channel and
    can see client disconnects.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers.append("X-Request-ID", request_id)
            await send(message)

        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")


async def screenshot_error_handler(request: Request, exc: Exception) -> PlainTextResponse:
    """Map every capture failure to 502 Bad Gateway."""
    settings: Settings = request.app.state.settings
    error_message = str(exc)

    logger.error(
        "Screenshot failed",
        error=error_message,
        error_type=type(exc).__name__,
        request_id=getattr(request.state, "request_id", None),
    )

    body = error_message if settings.expose_error_details else "screenshot failed"
    return PlainTextResponse(body, status_code=502)


def create_app(
    settings: Optional[Settings] = None, screenshotter: Optional[Screenshotter] = None
) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Settings to use; defaults to the global settings
        screenshotter: Screenshot capability; defaults to a Playwright-backed one

    Returns:
        FastAPI application instance
    """
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Render web pages in a headless browser and return PNG screenshots",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.screenshotter = screenshotter or PlaywrightScreenshotter(settings)

    app.add_middleware(RequestIDMiddleware)
    app.add_exception_handler(ScreenshotError, screenshot_error_handler)
    app.include_router(screenshot_router)

    return app


def run_server() -> None:
    """Run the service until SIGINT/SIGTERM, then drain and stop."""
    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
        log_level=settings.log_level.lower(),
        access_log=True,
        timeout_keep_alive=settings.keep_alive_timeout,
        timeout_graceful_shutdown=settings.shutdown_timeout,
    )


if __name__ == "__main__":
    run_server()
