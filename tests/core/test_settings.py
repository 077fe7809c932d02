"""Tests for RowSpineSettings."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from rowspine.core.adapters import IdPolicy
from rowspine.core.settings import RowSpineSettings, clear_settings_cache, get_settings


class TestSettings:
    def test_defaults(self):
        settings = RowSpineSettings()
        assert settings.log_level == "INFO"
        assert settings.migrations_dir == Path("migrations")
        assert settings.remote_base_url is None
        assert settings.id_policy is IdPolicy.SEQUENTIAL

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("ROWSPINE_MIGRATIONS_DIR", "/srv/migrations")
        monkeypatch.setenv("ROWSPINE_ID_POLICY", "client")
        monkeypatch.setenv("ROWSPINE_REMOTE_TOKEN", "secret")
        settings = RowSpineSettings()
        assert settings.migrations_dir == Path("/srv/migrations")
        assert settings.id_policy is IdPolicy.CLIENT
        assert settings.remote_token.get_secret_value() == "secret"
        assert "secret" not in repr(settings)

    def test_log_level_normalized_and_checked(self):
        assert RowSpineSettings(log_level="debug").log_level == "DEBUG"
        with pytest.raises(PydanticValidationError):
            RowSpineSettings(log_level="loud")

    def test_get_settings_is_cached(self):
        first = get_settings()
        assert get_settings() is first
        clear_settings_cache()
        assert get_settings() is not first
