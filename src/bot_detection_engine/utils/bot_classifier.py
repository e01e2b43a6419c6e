"""
Legacy bot detection from user-agent strings.

A name-based detector over a fixed table of well-known crawlers, previews,
monitors, SEO tools and HTTP libraries. The signature matcher uses it as a
fallback when no catalog signature matches, then maps its category and
severity vocabulary onto the engine's categories and impact levels.
"""

import re
from dataclasses import dataclass
from typing import Optional

from ..config.constants import LEGACY_BOT_CLASSIFICATION, LEGACY_MATCH_CONFIDENCE


@dataclass
class LegacyBotMatch:
    """Result of legacy bot detection."""

    bot_name: str
    category: str
    severity: str
    description: str
    confidence: float = LEGACY_MATCH_CONFIDENCE

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary."""
        return {
            "bot_name": self.bot_name,
            "category": self.category,
            "severity": self.severity,
            "description": self.description,
            "confidence": self.confidence,
        }


# Pre-compiled regex patterns for efficient matching
# Word-bounded and case-insensitive; table order decides ties
_BOT_PATTERNS: dict[str, re.Pattern] = {
    bot_name: re.compile(rf"\b{re.escape(bot_name)}\b", re.IGNORECASE)
    for bot_name in LEGACY_BOT_CLASSIFICATION.keys()
}


def detect_bot(user_agent: Optional[str]) -> Optional[LegacyBotMatch]:
    """
    Detect a known bot from its user-agent string.

    Args:
        user_agent: The HTTP User-Agent header value

    Returns:
        LegacyBotMatch, or None if no known bot name appears

    Examples:
        >>> detect_bot("Mozilla/5.0 (compatible; AhrefsBot/7.0)").category
        'seo_tool'
        >>> detect_bot("curl/8.4.0").severity
        'medium'
        >>> detect_bot("Mozilla/5.0 (Windows NT 10.0) Chrome/120") is None
        True
    """
    if not user_agent:
        return None

    for bot_name, pattern in _BOT_PATTERNS.items():
        if pattern.search(user_agent):
            info = LEGACY_BOT_CLASSIFICATION[bot_name]
            return LegacyBotMatch(
                bot_name=bot_name,
                category=info["category"],
                severity=info["severity"],
                description=info["description"],
            )

    return None


def get_bot_names_by_category(category: str) -> list[str]:
    """
    Get list of legacy bot names for a legacy category.

    Args:
        category: e.g. 'search_engine', 'ai_training', 'scraper'

    Returns:
        List of bot names in that category
    """
    return [
        name
        for name, info in LEGACY_BOT_CLASSIFICATION.items()
        if info["category"] == category
    ]
