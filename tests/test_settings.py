"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from expense_tracker.config import (
    AppSettings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)


class TestStorageSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("EXPENSE_STORAGE_BACKEND", raising=False)
        monkeypatch.delenv("EXPENSE_STORAGE_STORAGE_KEY", raising=False)
        settings = StorageSettings(_env_file=None)
        assert settings.backend == "file"
        assert settings.storage_key == "expense-tracker-data"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("EXPENSE_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("EXPENSE_STORAGE_DATA_DIR", "/tmp/expenses")
        settings = StorageSettings(_env_file=None)
        assert settings.backend == "memory"
        assert str(settings.data_path) == "/tmp/expenses"

    @pytest.mark.parametrize("key", ["../escape", "a/b", "", " spaced"])
    def test_storage_key_must_be_plain(self, key):
        with pytest.raises(ValidationError):
            StorageSettings(storage_key=key, _env_file=None)

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValidationError):
            StorageSettings(backend="sheets", _env_file=None)


class TestAppSettings:

    def test_log_level_normalised(self):
        assert AppSettings(log_level="debug", _env_file=None).log_level == "DEBUG"

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValidationError):
            AppSettings(log_level="loud", _env_file=None)

    def test_debug_mode_forces_debug_logging(self):
        settings = AppSettings(log_level="WARNING", debug_mode=True, _env_file=None)
        assert settings.effective_log_level == "DEBUG"
        assert AppSettings(log_level="WARNING", _env_file=None).effective_log_level == "WARNING"

    def test_strict_persistence_from_environment(self, monkeypatch):
        monkeypatch.setenv("STRICT_PERSISTENCE", "true")
        assert AppSettings(_env_file=None).strict_persistence is True


class TestGetSettings:

    def test_cached(self):
        assert get_settings() is get_settings()

    def test_validate_all_settings(self, monkeypatch):
        monkeypatch.setenv("EXPENSE_STORAGE_BACKEND", "memory")
        results = validate_all_settings()
        assert results["storage"] is True
        assert results["app"] is True

    def test_validate_all_settings_reports_errors(self, monkeypatch):
        monkeypatch.setenv("EXPENSE_STORAGE_BACKEND", "nowhere")
        results = validate_all_settings()
        assert results["storage"] is False
        assert "storage_error" in results
