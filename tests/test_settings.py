"""Tests for configuration."""

import pytest

from duwit.config import AppSettings


class TestAppSettings:
    """Tests for AppSettings."""

    def test_defaults(self):
        settings = AppSettings(_env_file=None)
        assert settings.near_limit_percent == 80.0
        assert settings.chart_days == 7
        assert settings.dashboard_recent_count == 5

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        monkeypatch.setenv("NEAR_LIMIT_PERCENT", "90")
        settings = AppSettings(_env_file=None)
        assert settings.storage_backend == "memory"
        assert settings.near_limit_percent == 90.0

    def test_rejects_unknown_backend(self):
        with pytest.raises(ValueError):
            AppSettings(_env_file=None, storage_backend="postgres")

    def test_rejects_bad_threshold(self):
        with pytest.raises(ValueError):
            AppSettings(_env_file=None, near_limit_percent=0)
