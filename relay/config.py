"""
Configuration module for the Room Relay service.

This module uses Pydantic Settings to load and validate environment variables
for the listening socket, logging, typing throttle and the optional admin
directory lookup.

Environment variables are loaded from .env file or system environment.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every setting has a default, so the relay starts with an empty
    environment and listens on port 3000.
    """

    # =========================================================================
    # Server Configuration
    # =========================================================================

    HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the relay server",
    )

    PORT: int = Field(
        default=3000,
        description="Port to bind the relay server",
        ge=1,
        le=65535,
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    ALLOWED_ORIGINS: Optional[str] = Field(
        None,
        description="Comma-separated list of allowed CORS origins (leave empty for no CORS)",
    )

    # =========================================================================
    # Typing Indicator Configuration
    # =========================================================================

    TYPING_THROTTLE_MS: int = Field(
        default=2000,
        description="Minimum interval between accepted typing updates per user and room",
        ge=0,
    )

    # =========================================================================
    # Admin Directory Configuration
    # =========================================================================

    ADMIN_DIRECTORY_URL: Optional[HttpUrl] = Field(
        None,
        description="Endpoint returning {\"admins\": [...]} for a ?room= query",
    )

    ADMIN_DIRECTORY_TIMEOUT_SECONDS: float = Field(
        default=5.0,
        description="Timeout for admin directory lookups in seconds",
        gt=0,
        le=60,
    )

    ADMIN_DIRECTORY_ON_CREATE: bool = Field(
        default=False,
        description="Seed new rooms with admins from the directory",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def allowed_origins_list(self) -> List[str]:
        """
        Parse and return ALLOWED_ORIGINS as a list.

        Returns:
            List of allowed origin URLs, or empty list if not configured.
        """
        if not self.ALLOWED_ORIGINS:
            return []

        return [
            origin.strip()
            for origin in self.ALLOWED_ORIGINS.split(",")
            if origin.strip()
        ]

    @property
    def admin_directory_url_str(self) -> Optional[str]:
        if self.ADMIN_DIRECTORY_URL is None:
            return None
        return str(self.ADMIN_DIRECTORY_URL)

    @property
    def typing_throttle_seconds(self) -> float:
        return self.TYPING_THROTTLE_MS / 1000.0

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """
        Validate and normalize the logging level name.

        Raises:
            ValueError: If the level is not a standard logging level
        """
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        level = v.strip().upper()

        if level not in allowed_levels:
            raise ValueError(
                f"LOG_LEVEL must be one of {allowed_levels}, got: {v}"
            )

        return level


@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    This function is cached so that the settings are loaded only once
    during the application lifecycle.

    Returns:
        Settings instance with all configuration loaded and validated.
    """
    return Settings()


def validate_configuration(settings: Settings) -> dict:
    """
    Check settings combinations and return a status report.

    Called during application startup so that surprising configurations
    show up in the logs.

    Returns:
        Dictionary with validation status and any warnings.
    """
    warnings = []

    if settings.ADMIN_DIRECTORY_ON_CREATE and settings.ADMIN_DIRECTORY_URL is None:
        warnings.append(
            "ADMIN_DIRECTORY_ON_CREATE is enabled but ADMIN_DIRECTORY_URL is not set"
        )

    if settings.TYPING_THROTTLE_MS == 0:
        warnings.append("TYPING_THROTTLE_MS is 0; typing updates are not rate limited")

    return {
        "valid": True,
        "warnings": warnings,
        "port": settings.PORT,
        "admin_directory_enabled": (
            settings.ADMIN_DIRECTORY_ON_CREATE and settings.ADMIN_DIRECTORY_URL is not None
        ),
    }
