"""
Pydantic Models and Schemas
===========================

Per-request data passed from the HTTP layer to the screenshot engine.
"""

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_WIDTH = 640
DEFAULT_HEIGHT = 480
DEFAULT_DELAY_MS = 0
MAX_DELAY_MS = 10000


class ScreenshotRequest(BaseModel):
    """Normalized parameters for one screenshot."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., min_length=1, description="Absolute http(s) URL to capture")
    width: int = Field(DEFAULT_WIDTH, gt=0, description="Viewport width in pixels")
    height: int = Field(DEFAULT_HEIGHT, gt=0, description="Viewport height in pixels")
    delay_ms: int = Field(
        DEFAULT_DELAY_MS,
        ge=0,
        le=MAX_DELAY_MS,
        description="Pause after DOM content loaded, in milliseconds",
    )
