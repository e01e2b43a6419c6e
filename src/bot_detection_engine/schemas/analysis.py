"""
Result records produced by the analyzers and the classifier.

Every analyzer returns a fixed-shape dataclass; the classifier consumes them
through ``AnalyzerOutputs`` and emits ``BotClassification`` and
``DetectionResult`` values, aggregated per batch into ``BotAnalysis``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .entries import LogEntry
from .enums import BotCategory, Impact, PatternType


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp a score into [low, high]."""
    return max(low, min(high, value))


# =============================================================================
# Sessions
# =============================================================================


@dataclass
class Session:
    """
    A contiguous run of requests from one ip|user_agent pair.

    Entries are ordered by timestamp ascending and never empty.
    """

    session_id: str
    ip: str
    user_agent: str
    entries: list[LogEntry]

    @property
    def start_time(self) -> datetime:
        return self.entries[0].timestamp

    @property
    def end_time(self) -> datetime:
        return self.entries[-1].timestamp

    @property
    def duration_ms(self) -> float:
        return (self.end_time - self.start_time).total_seconds() * 1000.0

    @property
    def request_count(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class TimeRange:
    """Closed time interval."""

    start: datetime
    end: datetime

    @property
    def duration_seconds(self) -> float:
        return (self.end - self.start).total_seconds()

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


# =============================================================================
# Analyzer outputs
# =============================================================================


@dataclass
class VelocityAnalysis:
    """Request-rate statistics for one IP across a batch."""

    requests_per_second: float = 0.0
    requests_per_minute: float = 0.0
    burst_score: float = 0.0
    is_bot: bool = False
    confidence: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "requests_per_second": self.requests_per_second,
            "requests_per_minute": self.requests_per_minute,
            "burst_score": self.burst_score,
            "is_bot": self.is_bot,
            "confidence": self.confidence,
        }


@dataclass
class PatternIndicators:
    sequential_score: float = 0.0
    systematic_score: float = 0.0
    sitemap_access: bool = False
    depth_consistency: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequential_score": self.sequential_score,
            "systematic_score": self.systematic_score,
            "sitemap_access": self.sitemap_access,
            "depth_consistency": self.depth_consistency,
        }


@dataclass
class CrawlPattern:
    """Crawl-pattern verdict for a session's path sequence."""

    type: PatternType = PatternType.RANDOM
    confidence: float = 0.0
    paths: list[str] = field(default_factory=list)
    indicators: PatternIndicators = field(default_factory=PatternIndicators)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "confidence": self.confidence,
            "paths": list(self.paths),
            "indicators": self.indicators.to_dict(),
        }


@dataclass
class BehaviorPatterns:
    views_homepage: bool = False
    varying_response_times: bool = False
    realistic_session_length: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "views_homepage": self.views_homepage,
            "varying_response_times": self.varying_response_times,
            "realistic_session_length": self.realistic_session_length,
        }


@dataclass
class SessionBehavior:
    """Human-likeness heuristics for one session."""

    session_id: str = ""
    session_duration: float = 0.0
    pages_viewed: int = 0
    avg_time_per_page: float = 0.0
    assets_loaded: bool = False
    has_referer: bool = False
    human_score: float = 0.5
    patterns: BehaviorPatterns = field(default_factory=BehaviorPatterns)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "session_duration": self.session_duration,
            "pages_viewed": self.pages_viewed,
            "avg_time_per_page": self.avg_time_per_page,
            "assets_loaded": self.assets_loaded,
            "has_referer": self.has_referer,
            "human_score": self.human_score,
            "patterns": self.patterns.to_dict(),
        }


@dataclass
class BehaviorStats:
    """Aggregate over many session behaviors."""

    avg_human_score: float = 0.0
    total_sessions: int = 0
    human_sessions: int = 0
    bot_sessions: int = 0
    avg_session_duration: float = 0.0
    avg_pages_per_session: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "avg_human_score": self.avg_human_score,
            "total_sessions": self.total_sessions,
            "human_sessions": self.human_sessions,
            "bot_sessions": self.bot_sessions,
            "avg_session_duration": self.avg_session_duration,
            "avg_pages_per_session": self.avg_pages_per_session,
        }


# =============================================================================
# Classification
# =============================================================================


@dataclass
class BotMetadata:
    operator: str = "Unknown"
    purpose: str = "Unknown"
    respects_robots_txt: bool = False
    average_crawl_rate: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "operator": self.operator,
            "purpose": self.purpose,
            "respects_robots_txt": self.respects_robots_txt,
            "average_crawl_rate": self.average_crawl_rate,
        }


@dataclass
class BotClassification:
    """Final verdict for one requester."""

    bot_name: Optional[str]
    category: BotCategory
    confidence: float
    impact: Impact
    subcategory: Optional[str] = None
    verified: bool = False
    metadata: BotMetadata = field(default_factory=BotMetadata)

    @property
    def category_key(self) -> str:
        """Subcategory if set, otherwise the category value."""
        return self.subcategory or self.category.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "bot_name": self.bot_name,
            "category": self.category.value,
            "subcategory": self.subcategory,
            "confidence": self.confidence,
            "verified": self.verified,
            "impact": self.impact.value,
            "metadata": self.metadata.to_dict(),
        }


@dataclass
class AnalyzerOutputs:
    """
    The four analyzer results for one ip|user_agent group.

    ``signature`` is None when no signature (or legacy detector) matched.
    """

    velocity: VelocityAnalysis
    pattern: CrawlPattern
    behavior: SessionBehavior
    signature: Optional[BotClassification] = None


@dataclass
class DetectionResult:
    """A requester whose fused confidence survived the threshold."""

    ip: str
    user_agent: str
    classification: BotClassification
    request_count: int
    bandwidth: int
    time_range: TimeRange
    velocity: VelocityAnalysis
    pattern: CrawlPattern
    behavior: SessionBehavior

    def to_dict(self) -> dict[str, Any]:
        return {
            "ip": self.ip,
            "user_agent": self.user_agent,
            "classification": self.classification.to_dict(),
            "request_count": self.request_count,
            "bandwidth": self.bandwidth,
            "time_range": self.time_range.to_dict(),
            "velocity": self.velocity.to_dict(),
            "pattern": self.pattern.to_dict(),
            "behavior": self.behavior.to_dict(),
        }


# =============================================================================
# Batch output
# =============================================================================


@dataclass
class TrafficBucket:
    requests: int = 0
    bandwidth: int = 0

    def add(self, requests: int, bandwidth: int) -> None:
        self.requests += requests
        self.bandwidth += bandwidth

    def to_dict(self) -> dict[str, int]:
        return {"requests": self.requests, "bandwidth": self.bandwidth}


@dataclass
class AnalysisSummary:
    total_requests: int
    bot_requests: int
    human_requests: int
    total_bandwidth: int
    time_range: TimeRange

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "bot_requests": self.bot_requests,
            "human_requests": self.human_requests,
            "total_bandwidth": self.total_bandwidth,
            "time_range": self.time_range.to_dict(),
        }


@dataclass
class Aggregations:
    by_category: dict[str, TrafficBucket] = field(default_factory=dict)
    by_impact: dict[str, TrafficBucket] = field(default_factory=dict)
    top_offenders: list[DetectionResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "by_category": {k: v.to_dict() for k, v in self.by_category.items()},
            "by_impact": {k: v.to_dict() for k, v in self.by_impact.items()},
            "top_offenders": [r.to_dict() for r in self.top_offenders],
        }


@dataclass
class BotAnalysis:
    """Classification output for one batch."""

    summary: AnalysisSummary
    bots: list[DetectionResult] = field(default_factory=list)
    aggregations: Aggregations = field(default_factory=Aggregations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "bots": [b.to_dict() for b in self.bots],
            "aggregations": self.aggregations.to_dict(),
        }
