"""
Centralized settings for row-spine.

Every value the engine needs from its environment lives on
:class:`RowSpineSettings`: logging, the remote row store endpoint, the
default id policy and the migrations directory. Components receive the
values explicitly; nothing reads the working directory behind the
caller's back.

Examples:
    >>> from rowspine.core.settings import RowSpineSettings
    >>> settings = RowSpineSettings(remote_base_url="https://rows.example.com")
    >>> settings.migrations_dir
    PosixPath('migrations')

Environment:
    ROWSPINE_LOG_LEVEL, ROWSPINE_JSON_LOGS, ROWSPINE_MIGRATIONS_DIR,
    ROWSPINE_REMOTE_BASE_URL, ROWSPINE_REMOTE_TOKEN, ROWSPINE_REMOTE_TIMEOUT,
    ROWSPINE_ID_POLICY

Tags:
    settings, configuration, pydantic, row-spine
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rowspine.core.adapters.types import IdPolicy


class RowSpineSettings(BaseSettings):
    """row-spine configuration.

    All fields can be set via ``ROWSPINE_*`` environment variables or a
    ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="ROWSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    json_logs: bool | None = Field(
        default=None,
        description="True for JSON, False for console, unset to auto-detect from the tty",
    )

    # ── Migrations ───────────────────────────────────────────────
    migrations_dir: Path = Field(default=Path("migrations"))

    # ── Remote row store ─────────────────────────────────────────
    remote_base_url: str | None = Field(default=None)
    remote_token: SecretStr | None = Field(default=None)
    remote_timeout: float = Field(default=10.0, gt=0)

    # ── Storage defaults ─────────────────────────────────────────
    id_policy: IdPolicy = Field(default=IdPolicy.SEQUENTIAL)

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level


_settings_cache: dict[str, RowSpineSettings] = {}


def get_settings(*, _force_reload: bool = False) -> RowSpineSettings:
    """Load, validate, and cache a :class:`RowSpineSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = RowSpineSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = [
    "RowSpineSettings",
    "get_settings",
    "clear_settings_cache",
]
