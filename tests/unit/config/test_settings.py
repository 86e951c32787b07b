"""Unit tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from sqbind.config import Settings, get_settings, resolve_dialect


@pytest.mark.unit
class TestSettings:
    def test_defaults(self):
        settings = Settings()

        assert settings.default_dialect == ""
        assert settings.LOG_LEVEL == "INFO"
        assert settings.log_interpolate is True
        assert settings.log_include_time is True
        assert settings.log_include_caller is False
        assert settings.log_include_results == 0
        assert settings.log_hide_args is False

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("SQBIND_DEFAULT_DIALECT", " Postgres ")
        monkeypatch.setenv("SQBIND_LOG_LEVEL", "debug")

        settings = Settings()

        assert settings.default_dialect == "postgres"
        assert settings.LOG_LEVEL == "DEBUG"

    def test_unknown_dialect_rejected(self, monkeypatch):
        monkeypatch.setenv("SQBIND_DEFAULT_DIALECT", "oracle")

        with pytest.raises(ValidationError, match="unsupported dialect 'oracle'"):
            Settings()

    def test_negative_result_count_rejected(self, monkeypatch):
        monkeypatch.setenv("SQBIND_LOG_INCLUDE_RESULTS", "-1")

        with pytest.raises(ValidationError):
            Settings()

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


@pytest.mark.unit
class TestResolveDialect:
    def test_explicit_dialect_wins(self, monkeypatch):
        monkeypatch.setenv("SQBIND_DEFAULT_DIALECT", "mysql")

        assert resolve_dialect("sqlite") == "sqlite"

    def test_falls_back_to_default(self, monkeypatch):
        monkeypatch.setenv("SQBIND_DEFAULT_DIALECT", "mysql")

        assert resolve_dialect("") == "mysql"
        assert resolve_dialect(None) == "mysql"

    def test_no_default(self):
        assert resolve_dialect("") == ""
