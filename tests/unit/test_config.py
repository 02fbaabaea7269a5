"""
Unit tests for application settings.

Run: pytest tests/unit/test_config.py -v
"""

from datetime import datetime, timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from config import Settings, get_settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("DB_PATH", "DEFAULT_USER_ID", "DAILY_REVIEW_LIMIT", "TIMEZONE", "LOG_LEVEL", "LOG_FILE"):
            monkeypatch.delenv(f"LEXIMEMO_{name}", raising=False)
        settings = Settings(_env_file=None)

        assert settings.db_path == Path.home() / ".leximemo" / "items.db"
        assert settings.default_user_id == "local"
        assert settings.daily_review_limit == 50
        assert settings.timezone is None
        assert settings.get_tzinfo() is None
        assert settings.log_level == "WARNING"

    def test_environment_prefix(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LEXIMEMO_DB_PATH", str(tmp_path / "env.db"))
        monkeypatch.setenv("LEXIMEMO_DAILY_REVIEW_LIMIT", "7")
        monkeypatch.setenv("LEXIMEMO_TIMEZONE", "Asia/Shanghai")

        settings = Settings(_env_file=None)

        assert settings.db_path == tmp_path / "env.db"
        assert settings.daily_review_limit == 7
        assert str(settings.get_tzinfo()) == "Asia/Shanghai"

    def test_named_zone_offset(self):
        tz = Settings(timezone="Asia/Shanghai", _env_file=None).get_tzinfo()
        assert datetime(2024, 3, 15, tzinfo=tz).utcoffset() == timedelta(hours=8)

    def test_empty_timezone_means_local(self):
        assert Settings(timezone="", _env_file=None).timezone is None

    def test_unknown_timezone(self):
        with pytest.raises(ValidationError):
            Settings(timezone="Mars/Olympus_Mons", _env_file=None)

    def test_negative_limit(self):
        with pytest.raises(ValidationError):
            Settings(daily_review_limit=-1, _env_file=None)

    def test_get_settings_is_cached(self, isolated_settings):
        assert get_settings() is isolated_settings
