"""
Unit tests for record types: timestamps, log entries, enums and signatures.
"""

from datetime import datetime, timedelta, timezone

import pytest

from bot_detection_engine.exceptions import InvalidLogEntryError, InvalidSignatureError
from bot_detection_engine.schemas import (
    BotCategory,
    BotSignature,
    DetectionLogEntry,
    Impact,
    LogEntry,
    SignatureVerification,
    TimeRange,
    compute_fingerprint,
    parse_timestamp,
)

EXPECTED = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class TestParseTimestamp:
    """Tests for parse_timestamp."""

    def test_iso_with_z(self):
        assert parse_timestamp("2024-01-15T12:00:00Z") == EXPECTED

    def test_iso_with_offset(self):
        """Offsets are converted to UTC."""
        assert parse_timestamp("2024-01-15T14:00:00+02:00") == EXPECTED

    @pytest.mark.parametrize(
        "value",
        ["2024-01-15T12:00:00.123456789Z", "2024-01-15T12:00:00.1234567+00:00"],
    )
    def test_long_fraction_truncated_to_microseconds(self, value):
        """CDN nanosecond fractions parse instead of being dropped."""
        assert parse_timestamp(value) == EXPECTED.replace(microsecond=123456)

    def test_short_fraction(self):
        assert parse_timestamp("2024-01-15T12:00:00.5Z") == EXPECTED.replace(microsecond=500000)

    def test_naive_datetime_assumed_utc(self):
        result = parse_timestamp(datetime(2024, 1, 15, 12, 0, 0))
        assert result == EXPECTED
        assert result.tzinfo is not None

    @pytest.mark.parametrize(
        "value",
        [
            1705320000,
            1705320000.0,
            "1705320000",
            1705320000000,
            1705320000000000,
            1705320000000000000,
        ],
    )
    def test_epoch_units(self, value):
        """Seconds, milliseconds, microseconds and nanoseconds are detected."""
        assert parse_timestamp(value) == EXPECTED

    @pytest.mark.parametrize("value", [None, "", "yesterday", True, object()])
    def test_unparseable(self, value):
        assert parse_timestamp(value) is None


class TestLogEntry:
    """Tests for LogEntry."""

    def test_from_dict_aliases(self):
        """camelCase and alternate field names are accepted."""
        entry = LogEntry.from_dict(
            {
                "timestamp": "2024-01-15T12:00:00Z",
                "client_ip": "198.51.100.4",
                "userAgent": "TestAgent/1.0",
                "url": "/docs",
                "status": "200",
                "response_bytes": 2048,
                "responseTime": 35.5,
                "referrer": "https://example.com/",
            }
        )

        assert entry.timestamp == EXPECTED
        assert entry.ip == "198.51.100.4"
        assert entry.user_agent == "TestAgent/1.0"
        assert entry.path == "/docs"
        assert entry.status_code == 200
        assert entry.bytes_transferred == 2048
        assert entry.response_time_ms == 35.5
        assert entry.referer == "https://example.com/"

    def test_defaults(self):
        """Missing IP and user agent read as 'unknown'; missing bytes as 0."""
        entry = LogEntry.from_dict({"timestamp": "2024-01-15T12:00:00Z"})
        assert entry.ip is None
        assert entry.ip_or_unknown == "unknown"
        assert entry.user_agent_or_unknown == "unknown"
        assert entry.bytes_transferred == 0
        assert entry.identity == "unknown|unknown"

    def test_missing_timestamp(self):
        with pytest.raises(InvalidLogEntryError) as exc_info:
            LogEntry.from_dict({"ip": "1.2.3.4"})
        assert exc_info.value.field == "timestamp"

    def test_bad_timestamp(self):
        with pytest.raises(InvalidLogEntryError) as exc_info:
            LogEntry.from_dict({"timestamp": "not a time"})
        assert exc_info.value.value == "not a time"

    def test_negative_bytes_clamped(self):
        entry = LogEntry.from_dict({"timestamp": 1705320000, "bytes": -5})
        assert entry.bytes_transferred == 0

    def test_to_dict(self):
        entry = LogEntry(timestamp=EXPECTED, ip="1.2.3.4", path="/")
        data = entry.to_dict()
        assert data["timestamp"] == EXPECTED.isoformat()
        assert data["ip"] == "1.2.3.4"
        assert data["bytes_transferred"] == 0


class TestFingerprint:
    """Tests for compute_fingerprint and DetectionLogEntry."""

    def test_sub_second_jitter_ignored(self):
        """Timestamps are truncated to the second."""
        a = LogEntry(timestamp=EXPECTED, ip="1.2.3.4", path="/a")
        b = LogEntry(
            timestamp=EXPECTED + timedelta(milliseconds=400), ip="1.2.3.4", path="/a"
        )
        assert compute_fingerprint(a, "site") == compute_fingerprint(b, "site")

    def test_identity_key_changes_fingerprint(self):
        entry = LogEntry(timestamp=EXPECTED, ip="1.2.3.4", path="/a")
        assert compute_fingerprint(entry, "site-a") != compute_fingerprint(
            entry, "site-b"
        )

    def test_fingerprint_is_sha256_hex(self):
        entry = LogEntry(timestamp=EXPECTED)
        fingerprint = compute_fingerprint(entry, "site")
        assert len(fingerprint) == 64
        int(fingerprint, 16)

    def test_detection_entry_defaults(self):
        entry = LogEntry(timestamp=EXPECTED, ip="1.2.3.4")
        row = DetectionLogEntry.from_entry(entry, "site")
        assert row.is_bot is False
        assert row.bot_name is None
        assert row.session_id is None
        assert row.fingerprint == compute_fingerprint(entry, "site")

    def test_mark_bot_and_flatten(self):
        row = DetectionLogEntry.from_entry(LogEntry(timestamp=EXPECTED), "site")
        row.mark_bot("GPTBot", "ai_training")

        data = row.to_dict()
        assert data["is_bot"] is True
        assert data["bot_name"] == "GPTBot"
        assert data["bot_category"] == "ai_training"
        assert data["identity_key"] == "site"

    def test_copy_is_independent(self):
        row = DetectionLogEntry.from_entry(LogEntry(timestamp=EXPECTED), "site")
        clone = row.copy()
        clone.mark_bot("X", "y")
        clone.extra["k"] = "v"
        assert row.is_bot is False
        assert row.extra == {}


class TestEnums:
    """Tests for closed value sets."""

    def test_category_parse_fallback(self):
        assert BotCategory.parse("Beneficial") == BotCategory.BENEFICIAL
        assert BotCategory.parse("aggressive") == BotCategory.UNKNOWN
        assert BotCategory.parse(None) == BotCategory.UNKNOWN

    def test_impact_parse_fallback(self):
        assert Impact.parse("EXTREME") == Impact.EXTREME
        assert Impact.parse("critical") == Impact.MEDIUM

    def test_impact_rank(self):
        ranks = [i.rank for i in (Impact.LOW, Impact.MEDIUM, Impact.HIGH, Impact.EXTREME)]
        assert ranks == [0, 1, 2, 3]

    def test_enums_serialize_as_values(self):
        assert BotCategory.EXTRACTIVE == "extractive"
        assert Impact.HIGH.value == "high"


class TestTimeRange:
    def test_duration(self):
        time_range = TimeRange(start=EXPECTED, end=EXPECTED + timedelta(minutes=2))
        assert time_range.duration_seconds == 120
        assert time_range.to_dict()["start"] == EXPECTED.isoformat()


class TestBotSignature:
    """Tests for BotSignature.from_dict."""

    def _record(self, **overrides):
        record = {
            "name": "ExampleBot",
            "category": "extractive",
            "subcategory": "ai_training",
            "patterns": [r"ExampleBot/[\d.]+"],
            "impact": "high",
            "metadata": {
                "operator": "Example Inc",
                "purpose": "Testing",
                "respectsRobotsTxt": True,
                "averageCrawlRate": 10,
            },
            "ipRanges": ["198.51.100.0/24"],
            "verification": {"reverseDns": [r".*\.example\.com$"]},
        }
        record.update(overrides)
        return record

    def test_from_dict(self):
        signature = BotSignature.from_dict(self._record())

        assert signature.name == "ExampleBot"
        assert signature.category == BotCategory.EXTRACTIVE
        assert signature.impact == Impact.HIGH
        assert signature.metadata.operator == "Example Inc"
        assert signature.metadata.respects_robots_txt is True
        assert signature.metadata.average_crawl_rate == 10.0
        assert signature.ip_ranges == ("198.51.100.0/24",)
        assert signature.verification.reverse_dns == (r".*\.example\.com$",)

    def test_patterns_case_insensitive(self):
        signature = BotSignature.from_dict(self._record())
        assert signature.matches("Mozilla/5.0 (compatible; examplebot/2.1)")
        assert not signature.matches("Mozilla/5.0 Chrome/119")

    def test_bad_regex_skipped(self):
        """One bad pattern is dropped; the rest still work."""
        signature = BotSignature.from_dict(
            self._record(patterns=["(unclosed", "ExampleBot"])
        )
        assert signature.patterns == ("ExampleBot",)

    def test_all_bad_patterns_rejected(self):
        with pytest.raises(InvalidSignatureError) as exc_info:
            BotSignature.from_dict(self._record(patterns=["(unclosed", "[bad"]))
        assert exc_info.value.name == "ExampleBot"

    def test_missing_name_rejected(self):
        with pytest.raises(InvalidSignatureError):
            BotSignature.from_dict(self._record(name=""))

    def test_unknown_category_rejected(self):
        with pytest.raises(InvalidSignatureError, match="category"):
            BotSignature.from_dict(self._record(category="unknown"))

    def test_snake_case_keys(self):
        signature = BotSignature.from_dict(
            self._record(
                ipRanges=None,
                ip_ranges=["10.0.0.0/8"],
                verification={"reverse_dns": r".*\.example\.org$"},
            )
        )
        assert signature.ip_ranges == ("10.0.0.0/8",)
        assert signature.verification.reverse_dns == (r".*\.example\.org$",)

    def test_empty_verification_is_none(self):
        assert SignatureVerification.from_dict({"reverseDns": [], "headers": {}}) is None

    @pytest.mark.parametrize(
        "overrides",
        [
            {"patterns": 42},
            {"metadata": "fast crawler"},
            {"verification": {"headers": ["user-agent"]}},
            {"verification": "openai.com"},
            {"ipRanges": 10},
        ],
    )
    def test_badly_typed_fields_rejected(self, overrides):
        with pytest.raises(InvalidSignatureError) as exc_info:
            BotSignature.from_dict(self._record(**overrides))
        assert exc_info.value.name == "ExampleBot"

    @pytest.mark.parametrize("rate", ["fast", [1, 2], True])
    def test_unusable_crawl_rate_is_none(self, rate):
        record = self._record()
        record["metadata"]["averageCrawlRate"] = rate
        assert BotSignature.from_dict(record).metadata.average_crawl_rate is None

    def test_numeric_string_crawl_rate(self):
        record = self._record()
        record["metadata"]["averageCrawlRate"] = "250"
        assert BotSignature.from_dict(record).metadata.average_crawl_rate == 250.0

    def test_to_dict_layout(self):
        data = BotSignature.from_dict(self._record()).to_dict()
        assert data["ipRanges"] == ["198.51.100.0/24"]
        assert data["metadata"]["respectsRobotsTxt"] is True
        assert data["verification"] == {"reverseDns": [r".*\.example\.com$"]}
