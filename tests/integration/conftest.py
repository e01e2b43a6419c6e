"""
Shared fixtures for integration tests.

Provides:
- A fixed reference time for recency windows
- Seeded sample traffic: humans, verified crawlers, spoofers and scrapers
- Engine fixtures using the packaged signature catalog
"""

import random
from datetime import datetime, timedelta, timezone

import pytest

from bot_detection_engine import DetectionEngine
from bot_detection_engine.config import (
    DetectionSettings,
    ProcessingSettings,
    clear_settings_cache,
)
from bot_detection_engine.monitoring import NullResourceMonitor

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

BROWSER_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_1) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64; rv:120.0) Gecko/20100101 Firefox/120.0",
]

GPTBOT_UA = "Mozilla/5.0 AppleWebKit/537.36 (KHTML, like Gecko; compatible; GPTBot/1.0; +https://openai.com/gptbot)"
GOOGLEBOT_UA = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"

SITE_PAGES = ["/", "/about", "/pricing", "/blog/launch", "/blog/roadmap", "/docs/start"]
ASSETS = ["/static/app.css", "/static/app.js", "/img/logo.png"]


# =============================================================================
# SAMPLE DATA
# =============================================================================


def _record(ts, ip, user_agent, path, rng, referer=None):
    return {
        "timestamp": ts.isoformat(),
        "ip": ip,
        "userAgent": user_agent,
        "path": path,
        "status": 200,
        "bytes": rng.randint(2_000, 80_000),
        "responseTime": rng.uniform(20, 400),
        "referer": referer,
    }


def generate_sample_records(seed: int = 42, now: datetime = NOW) -> list[dict]:
    """
    Generate mixed traffic within the last few hours before ``now``.

    Args:
        seed: Random seed for reproducibility (default: 42)
        now: Reference time; every record is earlier than this

    Returns:
        List of record dictionaries, sorted by timestamp
    """
    rng = random.Random(seed)
    records = []

    # Human visitors: a few pages with assets, tens of seconds apart
    for visitor in range(20):
        ip = f"198.51.100.{visitor + 10}"
        user_agent = rng.choice(BROWSER_USER_AGENTS)
        ts = now - timedelta(hours=rng.uniform(1, 6))
        referer = "https://www.google.com/"
        for _ in range(rng.randint(3, 10)):
            page = rng.choice(SITE_PAGES)
            records.append(_record(ts, ip, user_agent, page, rng, referer))
            records.append(
                _record(ts + timedelta(milliseconds=200), ip, user_agent, rng.choice(ASSETS), rng, page)
            )
            referer = f"https://example.com{page}"
            ts += timedelta(seconds=rng.uniform(10, 90))

    # Verified GPTBot walking paginated content
    ts = now - timedelta(hours=3)
    for page in range(1, 41):
        records.append(_record(ts, "20.171.12.34", GPTBOT_UA, f"/blog/page/{page}", rng))
        ts += timedelta(milliseconds=rng.uniform(150, 250))

    # Verified Googlebot reading the sitemap then pages
    ts = now - timedelta(hours=2)
    for path in ["/robots.txt", "/sitemap.xml"] + SITE_PAGES:
        records.append(_record(ts, "66.249.66.1", GOOGLEBOT_UA, path, rng))
        ts += timedelta(seconds=rng.uniform(1, 3))

    # GPTBot user agent from outside OpenAI's ranges
    records.append(_record(now - timedelta(hours=1), "45.33.10.20", "GPTBot/1.0", "/", rng))

    # Fast scraper
    ts = now - timedelta(minutes=30)
    for product in range(100):
        records.append(
            _record(ts, "185.220.101.5", "python-requests/2.31.0", f"/product/{product}", rng)
        )
        ts += timedelta(milliseconds=rng.uniform(50, 150))

    records.sort(key=lambda r: r["timestamp"])
    return records


# =============================================================================
# ENGINE FIXTURES
# =============================================================================


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


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def settings():
    """Small chunks so every run exercises several batches."""
    return DetectionSettings(processing=ProcessingSettings(chunk_size=50))


@pytest.fixture
def engine(settings):
    """Engine over the packaged catalog with memory readings disabled."""
    return DetectionEngine(settings=settings, resource_monitor=NullResourceMonitor())


@pytest.fixture
def sample_records():
    return generate_sample_records()
