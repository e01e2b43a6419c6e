"""
Signature matching with IP-range verification.

Identifies known bots by user agent, then checks the request IP against the
signature's published ranges to separate genuine crawlers from spoofers:

    IP inside a declared range      -> 0.95, verified
    IP present but outside ranges   -> 0.30 (suspected spoof)
    no IP to check                  -> 0.60
    signature declares no ranges    -> 0.75

Heuristic user-agent adjustments follow. If no signature matches, the legacy
name table is consulted.
"""

import logging
import re
import threading
from dataclasses import dataclass, replace
from typing import Optional

from ..config.constants import (
    GENERIC_CLIENT_PATTERNS,
    LEGACY_CATEGORY_MAP,
    LEGACY_SEVERITY_MAP,
)
from ..schemas import (
    BotCategory,
    BotClassification,
    BotMetadata,
    BotSignature,
    Impact,
    LogEntry,
)
from ..utils.bot_classifier import LegacyBotMatch, detect_bot
from .ip_ranges import CidrCache
from .signature_registry import SignatureRegistry

logger = logging.getLogger(__name__)

CONFIDENCE_PATTERN_ONLY = 0.75
CONFIDENCE_IP_VERIFIED = 0.95
CONFIDENCE_IP_MISMATCH = 0.3
CONFIDENCE_NO_IP = 0.6

_VERSION_SUFFIX_RE = re.compile(r"/[\d.]+$")
_GENERIC_CLIENT_RES = [
    re.compile(GENERIC_CLIENT_PATTERNS[0]),
    *(re.compile(p, re.IGNORECASE) for p in GENERIC_CLIENT_PATTERNS[1:]),
]


@dataclass(frozen=True)
class _UserAgentMatch:
    signature: Optional[BotSignature] = None
    legacy: Optional[LegacyBotMatch] = None


def legacy_to_classification(match: LegacyBotMatch) -> BotClassification:
    """Map a legacy detection onto engine categories and impact levels."""
    category = BotCategory.parse(LEGACY_CATEGORY_MAP.get(match.category))
    impact = Impact.parse(LEGACY_SEVERITY_MAP.get(match.severity, "medium"))
    return BotClassification(
        bot_name=match.bot_name,
        category=category,
        subcategory=match.category or None,
        confidence=match.confidence,
        verified=False,
        impact=impact,
        metadata=BotMetadata(
            operator="Unknown",
            purpose=match.description or "Unknown",
            respects_robots_txt=category == BotCategory.BENEFICIAL,
        ),
    )


def adjust_for_user_agent(
    confidence: float, signature: BotSignature, user_agent: str
) -> float:
    """
    Apply user-agent heuristics to a signature match.

    Structured or complete user agents stand in for reverse-DNS and header
    checks the engine does not perform; generic HTTP-library agents are
    penalised.
    """
    verification = signature.verification
    if verification and verification.reverse_dns:
        if _VERSION_SUFFIX_RE.search(user_agent):
            confidence += 0.05

    if verification and verification.headers:
        if len(user_agent) > 20 and "/" in user_agent:
            confidence += 0.05

    for pattern in _GENERIC_CLIENT_RES:
        if pattern.search(user_agent):
            confidence = max(0.1, confidence - 0.2)
            break

    return min(1.0, confidence)


class SignatureMatcher:
    """
    Matches log entries against a signature registry.

    The registry is injected and never modified. User-agent lookups are
    memoised; IP verification runs per call.

    Example:
        >>> matcher = SignatureMatcher(SignatureRegistry.builtin())
        >>> result = matcher.match_user_agent("Googlebot/2.1", "66.249.64.50")
        >>> result.verified, result.confidence
        (True, 1.0)
    """

    def __init__(self, registry: SignatureRegistry, use_legacy: bool = True):
        self.registry = registry
        self.use_legacy = use_legacy
        self.cidr_cache = CidrCache()
        self._ua_cache: dict[str, _UserAgentMatch] = {}
        self._lock = threading.Lock()

    def match(self, entry: LogEntry) -> Optional[BotClassification]:
        """Classify an entry by its user agent and IP, or None if unknown."""
        return self.match_user_agent(entry.user_agent, entry.ip)

    def match_user_agent(
        self, user_agent: Optional[str], ip: Optional[str] = None
    ) -> Optional[BotClassification]:
        user_agent = user_agent or ""
        found = self._lookup(user_agent)

        if found.signature is not None:
            return self._classify_signature(found.signature, user_agent, ip)
        if found.legacy is not None:
            return legacy_to_classification(found.legacy)
        return None

    def _lookup(self, user_agent: str) -> _UserAgentMatch:
        cached = self._ua_cache.get(user_agent)
        if cached is not None:
            return cached

        found = _UserAgentMatch()
        for signature in self.registry:
            if signature.matches(user_agent):
                found = _UserAgentMatch(signature=signature)
                break
        else:
            if self.use_legacy:
                legacy = detect_bot(user_agent)
                if legacy is not None:
                    found = _UserAgentMatch(legacy=legacy)

        with self._lock:
            self._ua_cache[user_agent] = found
        return found

    def _classify_signature(
        self, signature: BotSignature, user_agent: str, ip: Optional[str]
    ) -> BotClassification:
        verified = False
        confidence = CONFIDENCE_PATTERN_ONLY

        if signature.ip_ranges:
            if ip:
                verified = self.cidr_cache.contains(ip, signature.ip_ranges)
                confidence = CONFIDENCE_IP_VERIFIED if verified else CONFIDENCE_IP_MISMATCH
                if not verified:
                    logger.debug(
                        f"{signature.name} user agent from {ip} outside published ranges"
                    )
            else:
                confidence = CONFIDENCE_NO_IP

        confidence = adjust_for_user_agent(confidence, signature, user_agent)

        return BotClassification(
            bot_name=signature.name,
            category=signature.category,
            subcategory=signature.subcategory,
            confidence=confidence,
            verified=verified,
            impact=signature.impact,
            metadata=replace(signature.metadata),
        )

    def clear_cache(self) -> None:
        """Drop memoised user-agent and CIDR lookups."""
        with self._lock:
            self._ua_cache.clear()
        self.cidr_cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._ua_cache)
