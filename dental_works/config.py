"""Configuration management for Dental Works."""

from functools import lru_cache
from typing import Literal
from zoneinfo import ZoneInfo

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./dental_works.db",
        description="Async SQLAlchemy URL for the patients/appointments store",
    )

    # Calendar
    timezone: str = Field(
        default="Europe/Moscow",
        description="Clinic timezone used for week boundaries and day buckets",
    )

    # API Settings
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8080)
    api_base_url: str = Field(
        default="",
        description="Base URL of a running Dental Works API for remote CLI use",
    )

    # CORS
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="Allowed CORS origins",
    )

    # Auth
    jwt_secret: str = Field(
        default="change-me",
        description="Secret used to sign session tokens",
    )
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60 * 12)

    # Debug
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode (exposes error details in responses)",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    @property
    def tzinfo(self) -> ZoneInfo:
        """Clinic timezone as a tzinfo object."""
        return ZoneInfo(self.timezone)

    @property
    def has_remote_api(self) -> bool:
        """Check if a remote API base URL is configured."""
        return bool(self.api_base_url)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
