"""Application configuration loaded from the environment."""
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """YouTrack connection and server settings.

    Values are read from environment variables (YOUTRACK_URL, YOUTRACK_TOKEN, ...)
    or from a local .env file.
    """

    youtrack_url: str = "http://localhost:8080"
    youtrack_token: Optional[str] = None
    youtrack_default_project: Optional[str] = None

    request_timeout: float = Field(30.0, gt=0)
    max_retries: int = Field(3, ge=0)
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("youtrack_url")
    @classmethod
    def normalize_api_url(cls, value: str) -> str:
        """Ensure the base URL points at the REST root (ends with /api)."""
        value = value.rstrip("/")
        if not value.endswith("/api"):
            value = f"{value}/api"
        return value

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
