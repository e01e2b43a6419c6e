"""
Closed value sets used across the detection engine.

Categories, impact levels and crawl-pattern types are plain string enums so
they serialise as their values. ``parse`` maps anything unrecognised to the
documented fallback member instead of raising.
"""

from enum import Enum
from typing import Optional


class BotCategory(str, Enum):
    """Top-level bot category."""

    BENEFICIAL = "beneficial"
    EXTRACTIVE = "extractive"
    MALICIOUS = "malicious"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "BotCategory":
        """Map a raw value to a category, falling back to UNKNOWN."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.UNKNOWN


# Categories a signature may declare (UNKNOWN is only produced by fusion)
SIGNATURE_CATEGORIES = frozenset(
    [BotCategory.BENEFICIAL, BotCategory.EXTRACTIVE, BotCategory.MALICIOUS]
)


class Impact(str, Enum):
    """Coarse resource-cost severity of a bot."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXTREME = "extreme"

    @property
    def rank(self) -> int:
        """Ordinal position, LOW=0 .. EXTREME=3."""
        return _IMPACT_ORDER.index(self)

    @classmethod
    def parse(cls, value: Optional[str]) -> "Impact":
        """Map a raw value to an impact level, falling back to MEDIUM."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.MEDIUM


_IMPACT_ORDER = [Impact.LOW, Impact.MEDIUM, Impact.HIGH, Impact.EXTREME]


class PatternType(str, Enum):
    """Crawl-pattern verdict for one session's path sequence."""

    SEQUENTIAL = "sequential"
    SYSTEMATIC = "systematic"
    RANDOM = "random"
    TARGETED = "targeted"
