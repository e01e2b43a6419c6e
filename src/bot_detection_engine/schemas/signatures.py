"""
Bot signature records.

A signature is a named bot identity: ordered user-agent regexes, optional
published CIDR ranges and verification hints. Catalog files use the camelCase
layout below; snake_case keys are accepted as well.

    {
      "name": "GPTBot",
      "category": "extractive",
      "subcategory": "ai_training",
      "patterns": ["GPTBot/[\\\\d.]+"],
      "impact": "extreme",
      "metadata": {"operator": "OpenAI", "purpose": "...",
                   "respectsRobotsTxt": false, "averageCrawlRate": 1000},
      "ipRanges": ["20.171.0.0/16"],
      "verification": {"reverseDns": [".*\\\\.openai\\\\.com$"],
                       "headers": {"user-agent": "GPTBot"}}
    }
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from ..exceptions import InvalidSignatureError
from .analysis import BotMetadata
from .enums import SIGNATURE_CATEGORIES, BotCategory, Impact

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignatureVerification:
    """Hints for confirming a bot's identity beyond its user agent."""

    reverse_dns: tuple[str, ...] = ()
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.reverse_dns and not self.headers

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.reverse_dns:
            result["reverseDns"] = list(self.reverse_dns)
        if self.headers:
            result["headers"] = dict(self.headers)
        return result

    @classmethod
    def from_dict(
        cls, data: Optional[dict[str, Any]], name: Optional[str] = None
    ) -> Optional["SignatureVerification"]:
        """Raises InvalidSignatureError if the block or its headers are not objects."""
        if not data:
            return None
        if not isinstance(data, dict):
            raise InvalidSignatureError("verification must be an object", name=name)
        reverse_dns = _string_list(
            data.get("reverseDns", data.get("reverse_dns")), "verification.reverseDns", name
        )
        headers = data.get("headers") or {}
        if not isinstance(headers, dict):
            raise InvalidSignatureError("verification.headers must be an object", name=name)
        verification = cls(
            reverse_dns=tuple(reverse_dns),
            headers={str(k): str(v) for k, v in headers.items()},
        )
        return None if verification.is_empty else verification


@dataclass(frozen=True)
class BotSignature:
    """
    A named, pattern-matchable bot identity.

    ``patterns`` keeps the regex sources in catalog order; ``compiled`` holds
    the case-insensitive compiled forms in the same order.
    """

    name: str
    category: BotCategory
    patterns: tuple[str, ...]
    impact: Impact
    subcategory: Optional[str] = None
    metadata: BotMetadata = field(default_factory=BotMetadata)
    ip_ranges: tuple[str, ...] = ()
    verification: Optional[SignatureVerification] = None
    compiled: tuple[re.Pattern, ...] = field(default=(), compare=False, repr=False)

    def __post_init__(self):
        if not self.compiled:
            object.__setattr__(self, "compiled", _compile_patterns(self.name, self.patterns))

    def matches(self, user_agent: str) -> bool:
        """True if any pattern matches the user agent (first hit wins)."""
        return any(p.search(user_agent) for p in self.compiled)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the catalog record layout."""
        record: dict[str, Any] = {
            "name": self.name,
            "category": self.category.value,
            "subcategory": self.subcategory,
            "patterns": list(self.patterns),
            "impact": self.impact.value,
            "metadata": {
                "operator": self.metadata.operator,
                "purpose": self.metadata.purpose,
                "respectsRobotsTxt": self.metadata.respects_robots_txt,
                "averageCrawlRate": self.metadata.average_crawl_rate,
            },
        }
        if self.ip_ranges:
            record["ipRanges"] = list(self.ip_ranges)
        if self.verification:
            record["verification"] = self.verification.to_dict()
        return record

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BotSignature":
        """
        Build a signature from a catalog record.

        Individual regexes that fail to compile are dropped with a warning.

        Raises:
            InvalidSignatureError: If the record has no name, an unsupported
                category or no usable pattern
        """
        if not isinstance(data, dict):
            raise InvalidSignatureError(f"record must be an object, got {type(data).__name__}")

        name = data.get("name")
        if not name or not isinstance(name, str):
            raise InvalidSignatureError("missing name")

        category = BotCategory.parse(data.get("category"))
        if category not in SIGNATURE_CATEGORIES:
            raise InvalidSignatureError(
                f"unsupported category {data.get('category')!r}", name=name
            )

        raw_patterns = data.get("patterns")
        if raw_patterns is None and data.get("pattern"):
            raw_patterns = data["pattern"]
        raw_patterns = _string_list(raw_patterns, "patterns", name)
        if not raw_patterns:
            raise InvalidSignatureError("no patterns", name=name)

        compiled = _compile_patterns(name, raw_patterns)
        if not compiled:
            raise InvalidSignatureError("no valid patterns", name=name)

        meta = data.get("metadata") or {}
        if not isinstance(meta, dict):
            raise InvalidSignatureError("metadata must be an object", name=name)
        crawl_rate = _optional_rate(
            meta.get("averageCrawlRate", meta.get("average_crawl_rate"))
        )
        metadata = BotMetadata(
            operator=meta.get("operator") or "Unknown",
            purpose=meta.get("purpose") or "Unknown",
            respects_robots_txt=bool(
                meta.get("respectsRobotsTxt", meta.get("respects_robots_txt", False))
            ),
            average_crawl_rate=crawl_rate,
        )

        ip_ranges = _string_list(
            data.get("ipRanges") or data.get("ip_ranges"), "ipRanges", name
        )

        return cls(
            name=name,
            category=category,
            subcategory=data.get("subcategory") or None,
            patterns=tuple(p.pattern for p in compiled),
            impact=Impact.parse(data.get("impact")),
            metadata=metadata,
            ip_ranges=tuple(ip_ranges),
            verification=SignatureVerification.from_dict(data.get("verification"), name),
            compiled=tuple(compiled),
        )


def _string_list(value: Any, field_name: str, name: Optional[str]) -> list[str]:
    """A string or list of strings as a list; anything else is invalid."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)):
        raise InvalidSignatureError(
            f"{field_name} must be a string or list, got {type(value).__name__}", name=name
        )
    return [str(v) for v in value]


def _optional_rate(value: Any) -> Optional[float]:
    """Crawl rate as a float; missing, non-numeric or boolean values become None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _compile_patterns(name: str, sources) -> tuple[re.Pattern, ...]:
    compiled = []
    for source in sources:
        try:
            compiled.append(re.compile(source, re.IGNORECASE))
        except re.error as e:
            logger.warning(f"Skipping invalid pattern {source!r} for signature {name}: {e}")
    return tuple(compiled)
