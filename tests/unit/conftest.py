"""
Pytest configuration and shared fixtures for unit tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from bot_detection_engine.config import clear_settings_cache
from bot_detection_engine.detection import SignatureRegistry
from bot_detection_engine.schemas import LogEntry

BASE_TIME = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36"
)


@pytest.fixture
def base_time():
    """Fixed reference time for building entries."""
    return BASE_TIME


@pytest.fixture
def make_entry():
    """Factory for LogEntry objects offset from BASE_TIME."""

    def _make(
        offset_ms: float = 0,
        ip: str = "203.0.113.7",
        user_agent: str = CHROME_UA,
        path: str = "/",
        **kwargs,
    ) -> LogEntry:
        return LogEntry(
            timestamp=BASE_TIME + timedelta(milliseconds=offset_ms),
            ip=ip,
            user_agent=user_agent,
            path=path,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_series(make_entry):
    """Factory for evenly spaced entries from one requester."""

    def _make(count: int, interval_ms: float, paths=None, **kwargs) -> list[LogEntry]:
        entries = []
        for i in range(count):
            path = paths[i % len(paths)] if paths else "/"
            entries.append(make_entry(offset_ms=i * interval_ms, path=path, **kwargs))
        return entries

    return _make


@pytest.fixture
def builtin_registry():
    """Registry holding only the built-in signatures."""
    return SignatureRegistry.builtin()


@pytest.fixture(autouse=True)
def clean_settings_env(monkeypatch):
    """Keep BOT_DETECTION_* variables and the settings cache out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith("BOT_DETECTION_"):
            monkeypatch.delenv(key, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()
