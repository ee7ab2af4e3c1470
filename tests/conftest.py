"""
Test Configuration
==================

Pytest configuration with fixtures shared by the unit tests.
Provides test settings, a recording screenshotter and an HTTP test client.
"""

from typing import Generator
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic_settings import SettingsConfigDict

from pagecap.api.main import create_app
from pagecap.config.settings import Settings
from pagecap.core.rendering.screenshotter import PlaywrightScreenshotter

from tests.utils.mocks import MockScreenshotter, PNG_BYTES


# Test settings override
class TestSettings(Settings):
    """Test-specific settings."""

    environment: str = "testing"
    log_level: str = "DEBUG"
    disconnect_poll_interval: float = 0.01

    model_config = SettingsConfigDict(env_file=".env.test", env_prefix="PAGECAP_TEST_")


@pytest.fixture
def test_settings() -> TestSettings:
    """Test settings fixture."""
    return TestSettings()


@pytest.fixture
def mock_screenshotter() -> MockScreenshotter:
    """Screenshotter double that records every capture."""
    return MockScreenshotter()


@pytest.fixture
def app(test_settings: TestSettings, mock_screenshotter: MockScreenshotter) -> FastAPI:
    """Application wired to the mock screenshotter."""
    return create_app(settings=test_settings, screenshotter=mock_screenshotter)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """FastAPI test client with the lifespan running."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def mock_page() -> AsyncMock:
    """Playwright page that loads instantly and returns a fixed PNG."""
    page = AsyncMock()
    page.screenshot.return_value = PNG_BYTES
    return page


@pytest.fixture
def mock_context(mock_page: AsyncMock) -> AsyncMock:
    """Playwright browser context handing out ``mock_page``."""
    context = AsyncMock()
    context.new_page.return_value = mock_page
    return context


@pytest.fixture
def mock_browser(mock_context: AsyncMock) -> AsyncMock:
    """Playwright browser handing out ``mock_context``."""
    browser = AsyncMock()
    browser.new_context.return_value = mock_context
    return browser


@pytest.fixture
def screenshotter(test_settings: TestSettings, mock_browser: AsyncMock) -> PlaywrightScreenshotter:
    """Playwright screenshotter with an already launched mock browser."""
    instance = PlaywrightScreenshotter(test_settings)
    instance._browser = mock_browser
    return instance
