"""
Unit tests for session grouping.
"""

from datetime import timedelta

from bot_detection_engine.config import SessionWindows
from bot_detection_engine.detection import (
    SessionGrouper,
    epoch_millis,
    group_by_identity,
    make_session_id,
)

MINUTE_MS = 60_000


class TestSessionIds:
    """Tests for session id construction."""

    def test_epoch_millis(self, base_time):
        assert epoch_millis(base_time) == int(base_time.timestamp() * 1000)

    def test_make_session_id(self, base_time):
        session_id = make_session_id("1.2.3.4", 2, base_time)
        assert session_id == f"1.2.3.4_2_{epoch_millis(base_time)}"


class TestGroupByIdentity:
    """Tests for group_by_identity."""

    def test_groups_by_ip_and_user_agent(self, make_entry):
        entries = [
            make_entry(0, ip="1.1.1.1", user_agent="A"),
            make_entry(1000, ip="1.1.1.1", user_agent="B"),
            make_entry(2000, ip="2.2.2.2", user_agent="A"),
            make_entry(3000, ip="1.1.1.1", user_agent="A"),
        ]
        groups = group_by_identity(entries)

        assert set(groups) == {"1.1.1.1|A", "1.1.1.1|B", "2.2.2.2|A"}
        assert len(groups["1.1.1.1|A"]) == 2

    def test_missing_fields_group_as_unknown(self, make_entry):
        entries = [make_entry(0, ip=None, user_agent=None)]
        assert list(group_by_identity(entries)) == ["unknown|unknown"]

    def test_groups_sorted_by_timestamp(self, make_entry):
        entries = [make_entry(5000, path="/b"), make_entry(0, path="/a")]
        group = next(iter(group_by_identity(entries).values()))
        assert [e.path for e in group] == ["/a", "/b"]


class TestSessionGrouper:
    """Tests for gap-based session splitting."""

    def test_single_session_within_gap(self, make_entry):
        entries = [make_entry(i * 10 * MINUTE_MS) for i in range(5)]
        sessions = SessionGrouper().group(entries)

        assert len(sessions) == 1
        assert sessions[0].request_count == 5
        assert sessions[0].duration_ms == 40 * MINUTE_MS

    def test_split_on_gap(self, make_entry):
        """A gap longer than 30 minutes starts a new session."""
        entries = [
            make_entry(0),
            make_entry(10 * MINUTE_MS),
            make_entry(45 * MINUTE_MS),
        ]
        sessions = SessionGrouper().group(entries)

        assert [s.request_count for s in sessions] == [2, 1]
        assert sessions[0].session_id.startswith("203.0.113.7_1_")
        assert sessions[1].session_id.startswith("203.0.113.7_2_")

    def test_gap_exactly_at_limit_does_not_split(self, make_entry):
        entries = [make_entry(0), make_entry(30 * MINUTE_MS)]
        assert len(SessionGrouper().group(entries)) == 1

    def test_long_session_not_split_by_duration(self, make_entry):
        """max_duration_hours is not a split trigger."""
        entries = [make_entry(i * 20 * MINUTE_MS) for i in range(40)]
        sessions = SessionGrouper(SessionWindows(max_duration_hours=1)).group(entries)
        assert len(sessions) == 1
        assert sessions[0].duration_ms > timedelta(hours=8).total_seconds() * 1000

    def test_custom_gap(self, make_entry):
        entries = [make_entry(0), make_entry(6 * MINUTE_MS)]
        sessions = SessionGrouper(SessionWindows(max_gap_minutes=5)).group(entries)
        assert len(sessions) == 2

    def test_empty(self):
        assert SessionGrouper().group([]) == []
        assert SessionGrouper().assign_session_ids([]) == []

    def test_completeness(self, make_entry):
        """Every entry lands in exactly one session."""
        entries = [
            make_entry(i * 7 * MINUTE_MS, ip=f"10.0.0.{i % 3}", user_agent=f"UA{i % 2}")
            for i in range(30)
        ]
        sessions = SessionGrouper().group(entries)
        grouped = [e for s in sessions for e in s.entries]

        assert len(grouped) == len(entries)
        assert sorted(map(id, grouped)) == sorted(map(id, entries))

    def test_assign_session_ids_aligned_with_input(self, make_entry):
        entries = [
            make_entry(45 * MINUTE_MS, path="/late"),
            make_entry(0, path="/early"),
        ]
        ids = SessionGrouper().assign_session_ids(entries)
        sessions = SessionGrouper().group(entries)

        assert ids[1] == sessions[0].session_id
        assert ids[0] == sessions[1].session_id
