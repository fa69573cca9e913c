"""
Application settings using Pydantic.

Provides environment-based defaults for command-line flags with the
PROMTESTGEN_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Prometheus endpoint
    url: str | None = None

    # Authentication / TLS
    token_file: str | None = None
    ca_file: str | None = None
    insecure: bool = False

    # HTTP client settings
    timeout: float = 30.0

    # Logging
    log_level: str = "WARNING"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "PROMTESTGEN_"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
