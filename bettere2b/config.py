"""Configuration management for the BetterE2B SDK."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SERVER_URL = "http://localhost:8083"


class Settings(BaseSettings):
    """SDK settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: str = Field(default="", alias="BETTERE2B_API_KEY")
    server_url: str = Field(default=DEFAULT_SERVER_URL, alias="BETTERE2B_SERVER_URL")

    # HTTP request timeout in seconds
    timeout: float = Field(default=30.0, alias="BETTERE2B_TIMEOUT")

    # Sandbox lifetime tracked by Sandbox objects, in milliseconds
    sandbox_timeout_ms: int = Field(default=60 * 60 * 1000, alias="BETTERE2B_SANDBOX_TIMEOUT_MS")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
