"""
Provider settings using Pydantic.

Provides environment-based configuration loading with FUSIONAUTH_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Provider settings."""

    # FusionAuth
    host: str = "http://localhost:9011"
    api_key: str | None = None
    tenant_id: str | None = None

    # HTTP client settings
    http_timeout: float = 30.0
    http_max_retries: int = 3
    http_retry_backoff_factor: float = 0.5

    # Convergence polling (delete confirmation)
    convergence_timeout: float = 30.0
    convergence_interval: float = 2.0

    # Orchestration
    state_path: str = "fusionauth.state.json"
    concurrency: int = 4

    # Logging
    log_level: str = "WARNING"
    log_json: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "FUSIONAUTH_"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
