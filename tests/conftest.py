"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import Settings, get_settings  # noqa: E402
from leximemo.review import DAY_MS, ItemStore, SM2Scheduler  # noqa: E402

# 2024-03-15 12:00:00 UTC, midday so +-1 hour never crosses a calendar day
NOON_UTC = int(datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc).timestamp() * 1000)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """A fixed reference time (ms) at midday UTC."""
    return NOON_UTC


@pytest.fixture
def day_ms():
    return DAY_MS


@pytest.fixture
def scheduler():
    return SM2Scheduler()


@pytest.fixture
def make_item(scheduler, now):
    """Factory for items created at ``now`` (or ``created_at``)."""

    def _make(content="converge", translation="to come together", created_at=None, **kwargs):
        return scheduler.create_item(
            content,
            translation,
            now=now if created_at is None else created_at,
            **kwargs,
        )

    return _make


@pytest.fixture
def settings(tmp_path):
    """Deterministic settings pointing at a temporary database."""
    return Settings(
        db_path=tmp_path / "items.db",
        default_user_id="local",
        daily_review_limit=50,
        timezone="UTC",
        _env_file=None,
    )


@pytest.fixture
def store(tmp_path):
    """A fresh SQLite item store."""
    item_store = ItemStore(tmp_path / "items.db")
    yield item_store
    item_store.close()


@pytest.fixture
def isolated_settings(tmp_path, monkeypatch):
    """Point the cached application settings at a temporary database."""
    monkeypatch.setenv("LEXIMEMO_DB_PATH", str(tmp_path / "items.db"))
    monkeypatch.setenv("LEXIMEMO_TIMEZONE", "UTC")
    monkeypatch.delenv("LEXIMEMO_LOG_FILE", raising=False)
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()
