"""
Crawl-pattern analysis.

Scores the path sequence of one session for sequential enumeration
(``/page/1``, ``/page/2``, ...) and systematic crawling (breadth-first
depth, parameter sweeps, feed/data extensions, well-known crawler paths),
then settles on a single pattern type.
"""

import logging
import re
from collections import Counter
from typing import Optional, Sequence

import numpy as np

from ..config import constants as c
from ..schemas import (
    CrawlPattern,
    LogEntry,
    PatternIndicators,
    PatternType,
    clamp,
)
from ..utils.url_utils import file_extension, path_depth, query_params

logger = logging.getLogger(__name__)

# Pre-compiled regex patterns for efficient matching
_SEQUENTIAL_RES = [re.compile(p, re.IGNORECASE) for p in c.SEQUENTIAL_PATH_TEMPLATES]
_ALPHA_RE = re.compile(c.ALPHABETICAL_PATH_TEMPLATE, re.IGNORECASE)
_CRAWLER_PATH_RES = [re.compile(p, re.IGNORECASE) for p in c.CRAWLER_PATH_PATTERNS]
_SITEMAP_RES = [re.compile(p, re.IGNORECASE) for p in c.SITEMAP_PATTERNS]


def _longest_run_ratio(values: list, step) -> float:
    """Longest run of consecutive values (after sorting) over the value count."""
    values = sorted(values)
    longest = current = 1
    for prev, cur in zip(values, values[1:]):
        if step(cur) == step(prev) + 1:
            current += 1
            longest = max(longest, current)
        else:
            current = 1
    return longest / len(values)


def sequential_score(paths: Sequence[str]) -> float:
    """
    Best consecutive-run ratio across the numeric and alphabetical templates.

    A template only counts when it matches at least three paths.
    """
    if len(paths) < 3:
        return 0.0

    score = 0.0
    for regex in _SEQUENTIAL_RES:
        numbers = []
        for path in paths:
            match = regex.search(path)
            if match:
                numbers.append(int(match.group(1)))
        if len(numbers) >= 3:
            score = max(score, _longest_run_ratio(numbers, int))

    letters = []
    for path in paths:
        match = _ALPHA_RE.search(path)
        if match:
            letters.append(match.group(1).lower())
    if len(letters) >= 3:
        score = max(score, _longest_run_ratio(letters, ord))

    return min(1.0, score)


def _hierarchical_score(paths: Sequence[str]) -> float:
    depth_counts = Counter(path_depth(p) for p in paths)
    depths = sorted(depth_counts)
    if len(depths) < 3:
        return 0.0

    score = 0.0
    # Breadth-first: most requests at the shallowest level
    if depth_counts[depths[0]] / len(paths) > 0.6:
        score += 0.5
    if all(b == a + 1 for a, b in zip(depths, depths[1:])):
        score += 0.3
    return score


def _parameter_sweep_score(paths: Sequence[str]) -> float:
    values_by_key: dict[str, set[str]] = {}
    for path in paths:
        for key, value in query_params(path):
            values_by_key.setdefault(key, set()).add(value)

    variety = max((len(v) / len(paths) for v in values_by_key.values()), default=0.0)
    return min(1.0, variety * 2)


def _extension_score(paths: Sequence[str]) -> float:
    hits = sum(1 for p in paths if file_extension(p) in c.CRAWLER_FILE_EXTENSIONS)
    return hits / len(paths)


def _crawler_path_score(paths: Sequence[str]) -> float:
    hits = sum(1 for p in paths if any(r.search(p) for r in _CRAWLER_PATH_RES))
    return hits / len(paths)


def systematic_score(paths: Sequence[str]) -> float:
    """Maximum of the four systematic-crawl signals; needs five paths."""
    if len(paths) < 5:
        return 0.0

    return min(
        1.0,
        max(
            _hierarchical_score(paths),
            _parameter_sweep_score(paths),
            _extension_score(paths),
            _crawler_path_score(paths),
        ),
    )


def has_sitemap_access(paths: Sequence[str]) -> bool:
    return any(r.search(p) for p in paths for r in _SITEMAP_RES)


def depth_consistency(paths: Sequence[str]) -> float:
    """1 - stddev/mean of path depth, floored at 0 (0 when mean depth is 0)."""
    if not paths:
        return 0.0
    depths = np.asarray([path_depth(p) for p in paths], dtype=float)
    mean = float(depths.mean())
    if mean == 0:
        return 0.0
    return max(0.0, 1 - float(depths.std()) / mean)


def sample_paths(paths: Sequence[str], limit: int = c.SAMPLE_PATH_LIMIT) -> list[str]:
    """Up to ``limit`` evenly strided paths."""
    if len(paths) <= limit:
        return list(paths)
    step = len(paths) // limit
    return list(paths[::step][:limit])


class PatternAnalyzer:
    """
    Classifies the crawl pattern of a session's requests.

    Example:
        >>> pattern = PatternAnalyzer().analyze(session.entries)
        >>> pattern.type
        <PatternType.SEQUENTIAL: 'sequential'>
    """

    def analyze(self, entries: Sequence[LogEntry]) -> CrawlPattern:
        """
        Analyze the paths requested by one session.

        Args:
            entries: Entries in request order

        Returns:
            CrawlPattern; the ``random`` zero result for empty input
        """
        if not entries:
            return CrawlPattern()

        paths = [e.path or "/" for e in entries]

        indicators = PatternIndicators(
            sequential_score=sequential_score(paths),
            systematic_score=systematic_score(paths),
            sitemap_access=has_sitemap_access(paths),
            depth_consistency=depth_consistency(paths),
        )
        pattern_type = self._pattern_type(indicators, len(paths))
        confidence = self._confidence(indicators, len(paths))

        return CrawlPattern(
            type=pattern_type,
            confidence=confidence,
            paths=sample_paths(paths),
            indicators=indicators,
        )

    def analyze_ip_pattern(
        self, ip: str, entries: Sequence[LogEntry], user_agent: Optional[str] = None
    ) -> CrawlPattern:
        """Analyze the entries from one IP, optionally narrowed to one user agent."""
        selected = [
            e
            for e in entries
            if e.ip_or_unknown == ip
            and (user_agent is None or e.user_agent_or_unknown == user_agent)
        ]
        return self.analyze(selected)

    @staticmethod
    def _pattern_type(indicators: PatternIndicators, path_count: int) -> PatternType:
        if indicators.sequential_score > 0.6:
            return PatternType.SEQUENTIAL
        if indicators.systematic_score > 0.5 or indicators.sitemap_access:
            return PatternType.SYSTEMATIC
        if path_count < 10 and indicators.depth_consistency > 0.8:
            return PatternType.TARGETED
        return PatternType.RANDOM

    @staticmethod
    def _confidence(indicators: PatternIndicators, path_count: int) -> float:
        confidence = max(
            indicators.sequential_score,
            indicators.systematic_score,
            0.3 if indicators.sitemap_access else 0.0,
        )
        if path_count >= 20:
            confidence += 0.1
        if path_count >= 50:
            confidence += 0.1
        if indicators.depth_consistency > 0.7:
            confidence += 0.1
        return clamp(confidence)
