"""
Application Settings
===================

Service settings and environment configuration using Pydantic Settings.
Supports development, testing, and production environments.
"""

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="PageCap", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(
        default=8080,
        description="Server port",
        validation_alias=AliasChoices("PORT", "PAGECAP_PORT"),
    )
    shutdown_timeout: int = Field(
        default=5, description="Grace period for in-flight requests on shutdown, in seconds"
    )
    keep_alive_timeout: int = Field(default=120, description="Idle keep-alive timeout in seconds")

    # Browser Configuration
    browser_type: str = Field(default="webkit", description="Playwright browser engine")
    playwright_headless: bool = Field(default=True, description="Run browser in headless mode")
    navigation_timeout: int = Field(
        default=30000, description="Navigation timeout in milliseconds"
    )

    # Request Configuration
    request_timeout: float = Field(
        default=40.0, description="Deadline for a single screenshot request in seconds"
    )
    disconnect_poll_interval: float = Field(
        default=0.5, description="How often to check for client disconnects, in seconds"
    )
    expose_error_details: bool = Field(
        default=True, description="Return engine error text to clients on 502"
    )

    # Monitoring Configuration
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("browser_type")
    @classmethod
    def validate_browser_type(cls, v: str) -> str:
        """Validate browser engine name."""
        allowed = {"chromium", "firefox", "webkit"}
        if v.lower() not in allowed:
            raise ValueError(f"Browser type must be one of: {allowed}")
        return v.lower()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="PAGECAP_",
        populate_by_name=True,
        extra="ignore",
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
