"""
Bot classification by analyzer fusion.

For every ip|user_agent group in a batch the four analyzers run
independently; their results are fused into one ``BotClassification``:

- a signature match is taken as-is and its confidence nudged by the other
  analyzers
- otherwise a weighted vote of the analyzers whose own verdict crossed a
  threshold decides confidence, and category, name, impact and purpose are
  inferred from velocity and crawl pattern

Groups whose final confidence does not exceed the threshold are treated as
human traffic. Classification is deterministic for a given input order.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence, TypeVar

from ..config import constants as c
from ..config.settings import ConfidenceWeights, DetectionSettings
from ..schemas import (
    AnalysisSummary,
    AnalyzerOutputs,
    Aggregations,
    BotAnalysis,
    BotCategory,
    BotClassification,
    BotMetadata,
    CrawlPattern,
    DetectionResult,
    Impact,
    LogEntry,
    PatternType,
    SessionBehavior,
    TimeRange,
    TrafficBucket,
    VelocityAnalysis,
)
from .behavior import BehaviorAnalyzer
from .patterns import PatternAnalyzer
from .sessions import group_by_identity, make_session_id
from .signature_matcher import SignatureMatcher
from .velocity import VelocityAnalyzer

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Fusion
# =============================================================================


def adjust_signature_confidence(base: float, outputs: AnalyzerOutputs) -> float:
    """Nudge a signature match's confidence by the other analyzers' verdicts."""
    confidence = base

    if outputs.velocity.is_bot:
        confidence += 0.1
    elif outputs.velocity.confidence > 0.7:
        confidence -= 0.1

    if outputs.pattern.confidence > 0.7:
        confidence += 0.1

    human_score = outputs.behavior.human_score
    if human_score < 0.3:
        confidence += 0.1
    elif human_score > 0.7:
        confidence -= 0.15

    return max(0.1, min(1.0, confidence))


def weighted_confidence(outputs: AnalyzerOutputs, weights: ConfidenceWeights) -> float:
    """
    Weighted mean over the analyzers whose verdict points at a bot.

    Velocity contributes when it flags a bot, pattern when its confidence
    exceeds 0.5 and behavior when ``1 - human_score`` exceeds 0.5.
    """
    total = 0.0
    weight_sum = 0.0

    if outputs.velocity.is_bot:
        total += outputs.velocity.confidence * weights.velocity
        weight_sum += weights.velocity

    if outputs.pattern.confidence > 0.5:
        total += outputs.pattern.confidence * weights.pattern
        weight_sum += weights.pattern

    bot_score = 1 - outputs.behavior.human_score
    if bot_score > 0.5:
        total += bot_score * weights.behavior
        weight_sum += weights.behavior

    return total / weight_sum if weight_sum > 0 else 0.0


def infer_category(
    velocity: VelocityAnalysis, pattern: CrawlPattern
) -> tuple[BotCategory, str]:
    if pattern.type == PatternType.SYSTEMATIC and velocity.requests_per_second > 2:
        return BotCategory.EXTRACTIVE, "scraper"
    if velocity.requests_per_second > 10:
        return BotCategory.MALICIOUS, "aggressive_scraper"
    if pattern.type == PatternType.SEQUENTIAL:
        return BotCategory.EXTRACTIVE, "crawler"
    return BotCategory.UNKNOWN, "unknown"


def infer_bot_name(velocity: VelocityAnalysis, pattern: CrawlPattern) -> str:
    if velocity.requests_per_second > 10:
        return "Aggressive Bot"
    if pattern.type == PatternType.SYSTEMATIC:
        return "Systematic Crawler"
    if pattern.type == PatternType.SEQUENTIAL:
        return "Sequential Bot"
    return "Unknown Bot"


def infer_impact(
    velocity: VelocityAnalysis, pattern: CrawlPattern, confidence: float
) -> Impact:
    if velocity.requests_per_second > 10 or velocity.requests_per_minute > 500:
        return Impact.EXTREME
    if velocity.requests_per_second > 5 or confidence > 0.8:
        return Impact.HIGH
    if pattern.confidence > 0.7:
        return Impact.MEDIUM
    return Impact.LOW


def infer_purpose(velocity: VelocityAnalysis, pattern: CrawlPattern) -> str:
    if pattern.type == PatternType.SYSTEMATIC and pattern.indicators.sitemap_access:
        return "Search Engine Crawling"
    if pattern.type == PatternType.SEQUENTIAL:
        return "Content Extraction"
    if velocity.requests_per_second > 5:
        return "Mass Data Collection"
    return "Unknown"


def fuse(outputs: AnalyzerOutputs, weights: ConfidenceWeights) -> BotClassification:
    """
    Combine the four analyzer results into one classification.

    Pure function of its arguments.
    """
    if outputs.signature is not None:
        sig = outputs.signature
        return BotClassification(
            bot_name=sig.bot_name,
            category=sig.category,
            subcategory=sig.subcategory,
            confidence=adjust_signature_confidence(sig.confidence, outputs),
            verified=sig.verified,
            impact=sig.impact,
            metadata=sig.metadata,
        )

    velocity = outputs.velocity
    pattern = outputs.pattern
    confidence = weighted_confidence(outputs, weights)
    category, subcategory = infer_category(velocity, pattern)

    return BotClassification(
        bot_name=infer_bot_name(velocity, pattern),
        category=category,
        subcategory=subcategory,
        confidence=confidence,
        verified=False,
        impact=infer_impact(velocity, pattern, confidence),
        metadata=BotMetadata(
            operator="Unknown",
            purpose=infer_purpose(velocity, pattern),
            respects_robots_txt=False,
            average_crawl_rate=velocity.requests_per_minute,
        ),
    )


# =============================================================================
# Batch classification
# =============================================================================


def empty_analysis(reference_time: Optional[datetime] = None) -> BotAnalysis:
    """Zero-valued analysis with a point time range at ``reference_time``."""
    now = reference_time or datetime.now(timezone.utc)
    return BotAnalysis(
        summary=AnalysisSummary(
            total_requests=0,
            bot_requests=0,
            human_requests=0,
            total_bandwidth=0,
            time_range=TimeRange(start=now, end=now),
        )
    )


def aggregate_results(
    results: list[DetectionResult], entries: Sequence[LogEntry]
) -> BotAnalysis:
    """Summarise surviving detections against the whole batch."""
    total_requests = len(entries)
    bot_requests = sum(r.request_count for r in results)
    timestamps = [e.timestamp for e in entries]

    aggregations = Aggregations()
    for result in results:
        category_key = result.classification.category_key
        impact_key = result.classification.impact.value
        aggregations.by_category.setdefault(category_key, TrafficBucket()).add(
            result.request_count, result.bandwidth
        )
        aggregations.by_impact.setdefault(impact_key, TrafficBucket()).add(
            result.request_count, result.bandwidth
        )
    aggregations.top_offenders = sorted(
        results, key=lambda r: r.bandwidth, reverse=True
    )[: c.TOP_OFFENDERS_LIMIT]

    return BotAnalysis(
        summary=AnalysisSummary(
            total_requests=total_requests,
            bot_requests=bot_requests,
            human_requests=total_requests - bot_requests,
            total_bandwidth=sum(e.bytes_transferred for e in entries),
            time_range=TimeRange(start=min(timestamps), end=max(timestamps)),
        ),
        bots=results,
        aggregations=aggregations,
    )


class BotClassifier:
    """
    Runs the analyzers over a batch and fuses their results.

    Example:
        >>> registry = SignatureLoader().load()
        >>> classifier = BotClassifier(SignatureMatcher(registry))
        >>> analysis = classifier.classify(entries)
        >>> analysis.summary.total_requests == len(entries)
        True
    """

    def __init__(
        self,
        matcher: SignatureMatcher,
        settings: Optional[DetectionSettings] = None,
    ):
        self.settings = settings or DetectionSettings()
        self.matcher = matcher
        self.velocity_analyzer = VelocityAnalyzer(self.settings.velocity)
        self.pattern_analyzer = PatternAnalyzer()
        self.behavior_analyzer = BehaviorAnalyzer(self.settings.sessions)

    def classify(
        self,
        entries: Sequence[LogEntry],
        reference_time: Optional[datetime] = None,
    ) -> BotAnalysis:
        """
        Classify every ip|user_agent group in a batch.

        Args:
            entries: Log entries in any order
            reference_time: Time range used when the batch is empty

        Returns:
            BotAnalysis with detections above the confidence threshold
        """
        if not entries:
            return empty_analysis(reference_time)

        velocity_by_ip = self._safe_call(
            "velocity", lambda: self.velocity_analyzer.analyze(entries), {}
        )

        results = []
        for group in group_by_identity(entries).values():
            result = self.classify_group(group, velocity_by_ip)
            if result.classification.confidence > self.settings.confidence_threshold:
                results.append(result)

        logger.debug(
            f"Classified {len(entries)} entries: {len(results)} bot groups above "
            f"{self.settings.confidence_threshold}"
        )
        return aggregate_results(results, entries)

    def classify_group(
        self,
        group: Sequence[LogEntry],
        velocity_by_ip: dict[str, VelocityAnalysis],
    ) -> DetectionResult:
        """
        Classify one ip|user_agent group.

        Args:
            group: Entries sharing ip and user agent, in timestamp order
            velocity_by_ip: Batch-wide velocity results

        Raises:
            ValueError: If the group is empty
        """
        if not group:
            raise ValueError("Cannot classify an empty session group")

        first = group[0]
        ip = first.ip_or_unknown
        outputs = self.run_analyzers(group, velocity_by_ip.get(ip, VelocityAnalysis()))
        classification = fuse(outputs, self.settings.weights)

        return DetectionResult(
            ip=ip,
            user_agent=first.user_agent_or_unknown,
            classification=classification,
            request_count=len(group),
            bandwidth=sum(e.bytes_transferred for e in group),
            time_range=TimeRange(
                start=min(e.timestamp for e in group),
                end=max(e.timestamp for e in group),
            ),
            velocity=outputs.velocity,
            pattern=outputs.pattern,
            behavior=outputs.behavior,
        )

    def run_analyzers(
        self, group: Sequence[LogEntry], velocity: VelocityAnalysis
    ) -> AnalyzerOutputs:
        """Pattern, behavior and signature results for a group."""
        first = group[0]
        neutral_behavior = SessionBehavior(
            session_id=make_session_id(first.ip_or_unknown, 1, first.timestamp),
            pages_viewed=len(group),
        )

        pattern = self._safe_call(
            "pattern", lambda: self.pattern_analyzer.analyze(group), CrawlPattern()
        )
        behaviors = self._safe_call(
            "behavior", lambda: self.behavior_analyzer.analyze(group), []
        )
        signature = self._safe_call("signature", lambda: self.matcher.match(first), None)

        return AnalyzerOutputs(
            velocity=velocity,
            pattern=pattern,
            behavior=behaviors[0] if behaviors else neutral_behavior,
            signature=signature,
        )

    @staticmethod
    def _safe_call(name: str, func: Callable[[], T], fallback: T) -> T:
        try:
            return func()
        except Exception:
            logger.exception(f"{name} analyzer failed; using neutral result")
            return fallback
