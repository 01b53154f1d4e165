"""Configuration module using pydantic-settings.

This module provides environment variable management for tensorprep.
Every variable is read with the ``TENSORPREP_`` prefix (for example
``TENSORPREP_LOG_LEVEL``) and may also come from a ``.env`` file.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Library settings loaded from environment variables.

    Attributes:
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        DISPATCH_WORKERS: Size of the shared process pool used by ``run_async``
        DISPATCH_TIMEOUT_SECONDS: Default timeout for one dispatched pipeline run
        PRESETS_PATH: Alternative preset catalog (defaults to the bundled presets.yaml)
    """

    LOG_LEVEL: str = "INFO"
    DISPATCH_WORKERS: int = 2
    DISPATCH_TIMEOUT_SECONDS: Optional[float] = 30.0
    PRESETS_PATH: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="TENSORPREP_",
        env_file=".env",
        extra="ignore",
        case_sensitive=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance (singleton pattern).

    Returns:
        Settings instance loaded from environment
    """
    return Settings()
