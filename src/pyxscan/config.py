"""Runtime configuration for pyxscan.

Settings are read from ``PYX_``-prefixed environment variables and an
optional ``.env`` file in the working directory. A few widely used
variables (``GITHUB_TOKEN``, ``DATABASE_URL``) are also accepted without
the prefix.

Usage::

    from pyxscan.config import get_settings

    settings = get_settings()
    settings.model            # "sonnet"
    settings.max_code_bytes   # 204800
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Model identifiers accepted by the analysis engine.
MODEL_CHOICES: tuple[str, ...] = ("opus", "sonnet", "haiku")
DEFAULT_MODEL = "sonnet"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PYX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Result sink
    api_url: str = "https://scanner.pyxmate.com"
    admin_api_key: str | None = None

    # Sources
    github_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("PYX_GITHUB_TOKEN", "GITHUB_TOKEN", "github_token"),
    )
    clawhub_min_interval_seconds: float = 0.5

    # Job store
    database_url: str = Field(
        default="sqlite:///pyxscan.db",
        validation_alias=AliasChoices("PYX_DATABASE_URL", "DATABASE_URL", "database_url"),
    )
    stale_job_minutes: int = 30
    queue_batch_limit: int = 50
    error_message_limit: int = 2000

    # Analysis engine
    model: str = DEFAULT_MODEL
    claude_binary: str = "claude"
    analysis_timeout_seconds: float = 600.0

    # Network
    http_timeout_seconds: float = 8.0
    prescan_timeout_seconds: float = 10.0
    retry_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 10.0

    # Byte budgets
    max_code_bytes: int = 200 * 1024
    max_skill_code_bytes: int = 150 * 1024
    max_file_bytes: int = 100_000

    @field_validator("model")
    @classmethod
    def _check_model(cls, value: str) -> str:
        if value not in MODEL_CHOICES:
            raise ValueError(f"model must be one of {', '.join(MODEL_CHOICES)}")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
