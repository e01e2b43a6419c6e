"""
Session behavior analysis.

Estimates how human a session looks from browsing cues: asset loading,
referers, homepage visits, response-time variance and pacing. Scores are
additive adjustments around a neutral 0.5, clamped to [0, 1].
"""

import logging
from typing import Optional, Sequence

import numpy as np

from ..config import constants as c
from ..config.settings import SessionWindows
from ..schemas import (
    BehaviorPatterns,
    BehaviorStats,
    LogEntry,
    Session,
    SessionBehavior,
    clamp,
)
from ..utils.url_utils import is_homepage, is_static_asset
from .sessions import SessionGrouper

logger = logging.getLogger(__name__)

# Realistic human session length, in minutes
REALISTIC_MIN_MINUTES = 1
REALISTIC_MAX_MINUTES = 240


def assets_loaded(entries: Sequence[LogEntry]) -> bool:
    return any(is_static_asset(e.path or "") for e in entries)


def has_referer(entries: Sequence[LogEntry]) -> bool:
    return any(e.referer for e in entries)


def varying_response_times(entries: Sequence[LogEntry]) -> bool:
    """Population variance of positive response times above 100 (3+ samples)."""
    times = [e.response_time_ms for e in entries if e.response_time_ms and e.response_time_ms > 0]
    if len(times) < 3:
        return False
    return float(np.var(np.asarray(times, dtype=float))) > 100


def realistic_session_length(duration_ms: float) -> bool:
    minutes = duration_ms / 60000
    return REALISTIC_MIN_MINUTES <= minutes <= REALISTIC_MAX_MINUTES


class BehaviorAnalyzer:
    """
    Scores sessions for human-likeness.

    Sessions are formed by the same gap rule as ``SessionGrouper``; when a
    single value per ip|user_agent is needed, callers use the first
    chronological session.

    Example:
        >>> behaviors = BehaviorAnalyzer().analyze(entries)
        >>> 0.0 <= behaviors[0].human_score <= 1.0
        True
    """

    def __init__(self, windows: Optional[SessionWindows] = None):
        self.windows = windows or SessionWindows()
        self.grouper = SessionGrouper(self.windows)

    def analyze(self, entries: Sequence[LogEntry]) -> list[SessionBehavior]:
        """Split entries into sessions and score each one."""
        return [self.analyze_session(s) for s in self.grouper.group(entries)]

    def analyze_ip_behavior(
        self, ip: str, entries: Sequence[LogEntry]
    ) -> list[SessionBehavior]:
        return self.analyze([e for e in entries if e.ip_or_unknown == ip])

    def analyze_session(self, session: Session) -> SessionBehavior:
        """Score a single session."""
        duration = session.duration_ms
        pages = session.request_count
        avg_time = duration / (pages - 1) if pages > 1 else duration

        patterns = BehaviorPatterns(
            views_homepage=any(is_homepage(e.path) for e in session.entries),
            varying_response_times=varying_response_times(session.entries),
            realistic_session_length=realistic_session_length(duration),
        )
        behavior = SessionBehavior(
            session_id=session.session_id,
            session_duration=duration,
            pages_viewed=pages,
            avg_time_per_page=avg_time,
            assets_loaded=assets_loaded(session.entries),
            has_referer=has_referer(session.entries),
            patterns=patterns,
        )
        behavior.human_score = self.human_score(behavior)
        return behavior

    @staticmethod
    def human_score(behavior: SessionBehavior) -> float:
        """
        Additive human-likeness score.

        Pacing per page is only judged when more than one page was viewed;
        a lone request has no inter-page time to measure.
        """
        score = 0.5

        if behavior.assets_loaded:
            score += 0.15
        if behavior.has_referer:
            score += 0.1
        if behavior.patterns.views_homepage:
            score += 0.1
        if behavior.patterns.varying_response_times:
            score += 0.1
        if behavior.patterns.realistic_session_length:
            score += 0.1

        if behavior.pages_viewed > 1:
            seconds_per_page = behavior.avg_time_per_page / 1000
            if 5 <= seconds_per_page <= 300:
                score += 0.1
            elif seconds_per_page < 1:
                score -= 0.2

        if 3 <= behavior.pages_viewed <= 20:
            score += 0.05
        elif behavior.pages_viewed > 50:
            score -= 0.15

        minutes = behavior.session_duration / 60000
        if 2 <= minutes <= 60:
            score += 0.1
        elif minutes < 0.5:
            score -= 0.2

        return clamp(score)

    @staticmethod
    def aggregate_stats(behaviors: Sequence[SessionBehavior]) -> BehaviorStats:
        """Averages and human/bot session counts over many sessions."""
        if not behaviors:
            return BehaviorStats()

        n = len(behaviors)
        human = sum(1 for b in behaviors if b.human_score > c.HUMAN_SCORE_THRESHOLD)
        return BehaviorStats(
            avg_human_score=sum(b.human_score for b in behaviors) / n,
            total_sessions=n,
            human_sessions=human,
            bot_sessions=n - human,
            avg_session_duration=sum(b.session_duration for b in behaviors) / n,
            avg_pages_per_session=sum(b.pages_viewed for b in behaviors) / n,
        )
