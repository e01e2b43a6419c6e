"""Record types for log entries, analyzer outputs and bot signatures."""

from .analysis import (
    AnalysisSummary,
    AnalyzerOutputs,
    Aggregations,
    BehaviorPatterns,
    BehaviorStats,
    BotAnalysis,
    BotClassification,
    BotMetadata,
    CrawlPattern,
    DetectionResult,
    PatternIndicators,
    Session,
    SessionBehavior,
    TimeRange,
    TrafficBucket,
    VelocityAnalysis,
    clamp,
)
from .entries import (
    UNKNOWN,
    DetectionLogEntry,
    LogEntry,
    compute_fingerprint,
    parse_timestamp,
)
from .enums import SIGNATURE_CATEGORIES, BotCategory, Impact, PatternType
from .signatures import BotSignature, SignatureVerification

__all__ = [
    # Enums
    "BotCategory",
    "Impact",
    "PatternType",
    "SIGNATURE_CATEGORIES",
    # Entries
    "LogEntry",
    "DetectionLogEntry",
    "UNKNOWN",
    "compute_fingerprint",
    "parse_timestamp",
    # Analyzer outputs
    "Session",
    "TimeRange",
    "VelocityAnalysis",
    "CrawlPattern",
    "PatternIndicators",
    "SessionBehavior",
    "BehaviorPatterns",
    "BehaviorStats",
    "AnalyzerOutputs",
    "clamp",
    # Classification
    "BotClassification",
    "BotMetadata",
    "DetectionResult",
    "BotAnalysis",
    "AnalysisSummary",
    "Aggregations",
    "TrafficBucket",
    # Signatures
    "BotSignature",
    "SignatureVerification",
]
