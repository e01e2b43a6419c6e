"""
Velocity analysis.

Detects automation from request cadence alone. Velocity is evaluated per IP
across the whole batch, pooling every user agent seen from that address.
"""

import logging
import math
from collections import Counter
from typing import Optional, Sequence

import numpy as np

from ..config import constants as c
from ..config.settings import VelocityThresholds
from ..schemas import LogEntry, VelocityAnalysis, clamp

logger = logging.getLogger(__name__)


def compute_intervals(entries: Sequence[LogEntry]) -> list[float]:
    """Milliseconds between consecutive entries (entries must be sorted)."""
    return [
        (b.timestamp - a.timestamp).total_seconds() * 1000.0
        for a, b in zip(entries, entries[1:])
    ]


def coefficient_of_variation(intervals: Sequence[float]) -> float:
    """Population stddev / mean, or 0 when the mean is 0."""
    if not intervals:
        return 0.0
    values = np.asarray(intervals, dtype=float)
    mean = float(values.mean())
    if mean == 0:
        return 0.0
    return float(values.std()) / mean


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class VelocityAnalyzer:
    """
    Computes request-rate and burst statistics per IP.

    Example:
        >>> analyzer = VelocityAnalyzer()
        >>> by_ip = analyzer.analyze(entries)
        >>> by_ip["203.0.113.7"].is_bot
        True
    """

    def __init__(self, thresholds: Optional[VelocityThresholds] = None):
        self.thresholds = thresholds or VelocityThresholds()

    def analyze(self, entries: Sequence[LogEntry]) -> dict[str, VelocityAnalysis]:
        """
        Analyze every IP in a batch.

        Args:
            entries: Log entries in any order

        Returns:
            Mapping of IP (``"unknown"`` when absent) to its analysis
        """
        groups: dict[str, list[LogEntry]] = {}
        for entry in entries:
            groups.setdefault(entry.ip_or_unknown, []).append(entry)

        return {ip: self._analyze_requests(requests) for ip, requests in groups.items()}

    def analyze_ip(self, ip: str, entries: Sequence[LogEntry]) -> VelocityAnalysis:
        """Analyze only the entries that came from ``ip``."""
        return self._analyze_requests([e for e in entries if e.ip_or_unknown == ip])

    def _analyze_requests(self, requests: Sequence[LogEntry]) -> VelocityAnalysis:
        if len(requests) < 2:
            return VelocityAnalysis()

        ordered = sorted(requests, key=lambda e: e.timestamp)
        span_seconds = (ordered[-1].timestamp - ordered[0].timestamp).total_seconds()
        intervals = compute_intervals(ordered)

        rps = len(ordered) / span_seconds if span_seconds > 0 else 0.0
        rpm = rps * 60

        burst_score = self.burst_score(intervals)
        is_bot = self._is_bot_like(rps, rpm, intervals, burst_score)
        confidence = self._confidence(len(ordered), span_seconds, intervals)

        return VelocityAnalysis(
            requests_per_second=rps,
            requests_per_minute=rpm,
            burst_score=burst_score,
            is_bot=is_bot,
            confidence=confidence,
        )

    def burst_score(self, intervals: Sequence[float]) -> float:
        """
        Blend of timing regularity, speed and burst runs, in [0, 1].

        Weights are 0.4 consistency, 0.4 share of sub-minimum intervals and
        0.2 burst-run density.
        """
        if not intervals:
            return 0.0

        consistency = max(0.0, 1 - coefficient_of_variation(intervals) * 2)
        fast = sum(1 for i in intervals if i < self.thresholds.min_interval_ms)
        speed = fast / len(intervals)
        runs = self._burst_runs(intervals)

        return clamp(consistency * 0.4 + speed * 0.4 + runs * 0.2)

    @staticmethod
    def _burst_runs(intervals: Sequence[float]) -> float:
        """Runs of >= 3 consecutive sub-second intervals per 10 intervals."""
        if len(intervals) < 5:
            return 0.0

        bursts = 0
        run = 0
        for interval in intervals:
            if interval < c.BURST_INTERVAL_MS:
                run += 1
            else:
                if run >= c.BURST_MIN_RUN:
                    bursts += 1
                run = 0
        if run >= c.BURST_MIN_RUN:
            bursts += 1

        return min(1.0, bursts / math.ceil(len(intervals) / 10))

    def _is_bot_like(
        self,
        rps: float,
        rpm: float,
        intervals: Sequence[float],
        burst_score: float,
    ) -> bool:
        if rps > self.thresholds.max_requests_per_second:
            return True
        if rpm > self.thresholds.max_requests_per_minute:
            return True
        if burst_score > c.BURST_SCORE_BOT_THRESHOLD:
            return True
        if not intervals:
            return False

        fast = sum(1 for i in intervals if i < self.thresholds.min_interval_ms)
        if fast > len(intervals) * c.FAST_INTERVAL_SHARE:
            return True

        # Near-exact periodic timing
        buckets = Counter(
            _round_half_up(i / c.INTERVAL_BUCKET_MS) * c.INTERVAL_BUCKET_MS
            for i in intervals
        )
        return max(buckets.values()) > len(intervals) * c.PERIODIC_BUCKET_SHARE

    @staticmethod
    def _confidence(
        sample_size: int, span_seconds: float, intervals: Sequence[float]
    ) -> float:
        confidence = 0.5

        if sample_size >= 10:
            confidence += 0.2
        if sample_size >= 50:
            confidence += 0.1
        if sample_size >= 100:
            confidence += 0.1

        if span_seconds >= 60:
            confidence += 0.1
        if span_seconds >= 300:
            confidence += 0.1

        if len(intervals) > 5:
            cov = coefficient_of_variation(intervals)
            if cov < 0.1:
                confidence += 0.1
            if cov < 0.2:
                confidence += 0.05

        return min(1.0, confidence)
