"""
Unit tests for session behavior scoring.
"""

import pytest

from bot_detection_engine.detection import BehaviorAnalyzer
from bot_detection_engine.detection.behavior import (
    assets_loaded,
    has_referer,
    realistic_session_length,
    varying_response_times,
)
from bot_detection_engine.schemas import BehaviorStats, SessionBehavior

SECOND_MS = 1000


class TestSignals:
    """Tests for the individual browsing cues."""

    def test_assets_loaded(self, make_entry):
        assert assets_loaded([make_entry(path="/"), make_entry(path="/static/app.css")])
        assert assets_loaded([make_entry(path="/logo.PNG")])
        assert not assets_loaded([make_entry(path="/about")])

    def test_has_referer(self, make_entry):
        assert has_referer([make_entry(referer="https://example.com/")])
        assert not has_referer([make_entry()])

    def test_varying_response_times(self, make_entry):
        def times(*values):
            return [make_entry(response_time_ms=v) for v in values]

        assert varying_response_times(times(10, 200, 50))
        assert not varying_response_times(times(100, 100, 100))
        assert not varying_response_times(times(10, 500))
        # Zero and missing values are ignored
        assert not varying_response_times(times(10, 500, 0, None))

    @pytest.mark.parametrize(
        "minutes,expected",
        [(0.5, False), (1, True), (90, True), (240, True), (241, False)],
    )
    def test_realistic_session_length(self, minutes, expected):
        assert realistic_session_length(minutes * 60_000) is expected


class TestHumanScore:
    """Tests for BehaviorAnalyzer.human_score."""

    def test_single_homepage_visit(self, make_entry):
        """A lone request skips pacing: 0.5 + referer + homepage - short session."""
        behaviors = BehaviorAnalyzer().analyze(
            [make_entry(path="/", referer="https://www.google.com/")]
        )

        assert len(behaviors) == 1
        assert behaviors[0].pages_viewed == 1
        assert behaviors[0].human_score == pytest.approx(0.5)

    def test_rapid_homepage_hits(self, make_series):
        """50 homepage requests 200ms apart score 0.2."""
        entries = make_series(50, 200, ip="192.168.1.100", user_agent="RapidBot/1.0")
        behavior = BehaviorAnalyzer().analyze(entries)[0]

        assert behavior.avg_time_per_page == pytest.approx(200)
        assert behavior.human_score == pytest.approx(0.2)

    def test_fast_deep_scrape_floors_at_zero(self, make_series):
        paths = [f"/page/{i}" for i in range(60)]
        entries = make_series(60, 100, paths=paths)
        behavior = BehaviorAnalyzer().analyze(entries)[0]
        assert behavior.human_score == 0.0

    def test_browsing_session_scores_high(self, make_entry):
        """Assets, referers, homepage, varied timings and steady pacing."""
        paths = ["/", "/static/app.css", "/about", "/pricing", "/blog/launch",
                 "/blog/roadmap", "/contact", "/docs/start"]
        response_times = [10, 50, 200, 30, 400, 80, 20, 300]
        entries = [
            make_entry(
                i * 30 * SECOND_MS,
                path=path,
                response_time_ms=rt,
                referer="https://example.com/" if i else None,
            )
            for i, (path, rt) in enumerate(zip(paths, response_times))
        ]
        behavior = BehaviorAnalyzer().analyze(entries)[0]

        assert behavior.assets_loaded is True
        assert behavior.has_referer is True
        assert behavior.patterns.views_homepage is True
        assert behavior.patterns.varying_response_times is True
        assert behavior.patterns.realistic_session_length is True
        assert behavior.human_score == 1.0

    def test_score_is_clamped(self):
        behavior = SessionBehavior(pages_viewed=200, avg_time_per_page=10)
        assert BehaviorAnalyzer.human_score(behavior) == 0.0


class TestBehaviorAnalyzer:
    """Tests for session splitting and aggregation."""

    def test_one_behavior_per_session(self, make_entry):
        entries = [
            make_entry(0),
            make_entry(10 * SECOND_MS),
            make_entry(2 * 60 * 60 * SECOND_MS),
        ]
        behaviors = BehaviorAnalyzer().analyze(entries)

        assert [b.pages_viewed for b in behaviors] == [2, 1]
        assert behaviors[0].session_id != behaviors[1].session_id

    def test_analyze_ip_behavior(self, make_entry):
        entries = [make_entry(0, ip="10.0.0.1"), make_entry(0, ip="10.0.0.2")]
        behaviors = BehaviorAnalyzer().analyze_ip_behavior("10.0.0.1", entries)
        assert len(behaviors) == 1
        assert behaviors[0].session_id.startswith("10.0.0.1_")

    def test_aggregate_stats(self):
        behaviors = [
            SessionBehavior(human_score=0.9, session_duration=1000, pages_viewed=4),
            SessionBehavior(human_score=0.2, session_duration=3000, pages_viewed=10),
        ]
        stats = BehaviorAnalyzer.aggregate_stats(behaviors)

        assert stats.total_sessions == 2
        assert stats.human_sessions == 1
        assert stats.bot_sessions == 1
        assert stats.avg_human_score == pytest.approx(0.55)
        assert stats.avg_session_duration == 2000
        assert stats.avg_pages_per_session == 7

    def test_aggregate_stats_empty(self):
        assert BehaviorAnalyzer.aggregate_stats([]) == BehaviorStats()
