"""
Bot signature registry.

The registry is an ordered, name-keyed collection of ``BotSignature``
records. It is built once by ``SignatureLoader`` from a JSON or YAML catalog
and handed to the matcher; it is read-only during analysis.

Catalog problems degrade gracefully:
- a malformed record is logged and skipped
- an unreadable or empty catalog falls back to the built-in signatures
"""

import json
import logging
import re
import threading
from pathlib import Path
from typing import Any, Iterator, Optional, Union

import yaml

from ..config.constants import KNOWN_IP_RANGES, KNOWN_VERIFICATION_RULES
from ..exceptions import InvalidSignatureError, SignatureCatalogError
from ..schemas import BotCategory, BotSignature, Impact

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent.parent / "data" / "bot_signatures.json"

# Used when the catalog cannot be loaded. Order is match order.
BUILTIN_SIGNATURES: list[dict[str, Any]] = [
    {
        "name": "GPTBot",
        "category": "extractive",
        "subcategory": "ai_training",
        "patterns": [r"GPTBot/[\d.]+"],
        "ipRanges": ["20.171.0.0/16", "20.163.0.0/16"],
        "impact": "extreme",
        "metadata": {
            "operator": "OpenAI",
            "purpose": "LLM Training Data Collection",
            "respectsRobotsTxt": False,
            "averageCrawlRate": 1000,
        },
        "verification": {
            "reverseDns": [r".*\.openai\.com$"],
            "headers": {"user-agent": "GPTBot"},
        },
    },
    {
        "name": "ChatGPT-User",
        "category": "extractive",
        "subcategory": "ai_training",
        "patterns": [r"ChatGPT-User"],
        "ipRanges": ["20.171.0.0/16", "40.84.180.0/22"],
        "impact": "high",
        "metadata": {
            "operator": "OpenAI",
            "purpose": "ChatGPT Web Browsing",
            "respectsRobotsTxt": True,
            "averageCrawlRate": 50,
        },
    },
    {
        "name": "Googlebot",
        "category": "beneficial",
        "subcategory": "search_engine",
        "patterns": [r"Googlebot/[\d.]+", r"Googlebot-Image", r"Googlebot-News"],
        "ipRanges": ["66.249.64.0/19", "66.249.64.0/27", "209.85.128.0/17"],
        "impact": "low",
        "metadata": {
            "operator": "Google",
            "purpose": "Search Index Crawling",
            "respectsRobotsTxt": True,
            "averageCrawlRate": 30,
        },
        "verification": {
            "reverseDns": [r".*\.googlebot\.com$", r".*\.google\.com$"],
        },
    },
    {
        "name": "CCBot",
        "category": "malicious",
        "subcategory": "ai_scraper",
        "patterns": [r"CCBot/[\d.]+"],
        "ipRanges": ["54.36.148.0/22", "54.36.149.0/24"],
        "impact": "extreme",
        "metadata": {
            "operator": "Common Crawl",
            "purpose": "Mass Data Collection",
            "respectsRobotsTxt": False,
            "averageCrawlRate": 2000,
        },
    },
    {
        "name": "Claude-Web",
        "category": "extractive",
        "subcategory": "ai_training",
        "patterns": [r"Claude-Web", r"anthropic-ai"],
        "ipRanges": ["52.70.0.0/15"],
        "impact": "high",
        "metadata": {
            "operator": "Anthropic",
            "purpose": "AI Training and Web Browsing",
            "respectsRobotsTxt": True,
            "averageCrawlRate": 100,
        },
    },
]

_KNOWN_IP_RANGES_LOWER = {k.lower(): v for k, v in KNOWN_IP_RANGES.items()}
_KNOWN_VERIFICATION_LOWER = {k.lower(): v for k, v in KNOWN_VERIFICATION_RULES.items()}


def enrich_record(record: dict[str, Any]) -> dict[str, Any]:
    """
    Fill in published IP ranges and verification rules for well-known bots.

    Only keys the record does not already set are added.
    """
    name = str(record.get("name", "")).lower()
    enriched = dict(record)
    if not (enriched.get("ipRanges") or enriched.get("ip_ranges")):
        ranges = _KNOWN_IP_RANGES_LOWER.get(name)
        if ranges:
            enriched["ipRanges"] = list(ranges)
    if not enriched.get("verification"):
        rules = _KNOWN_VERIFICATION_LOWER.get(name)
        if rules:
            enriched["verification"] = dict(rules)
    return enriched


def read_catalog(path: Union[str, Path]) -> list[dict[str, Any]]:
    """
    Read raw signature records from a JSON or YAML catalog.

    The file may hold a list of records or a mapping with a ``signatures``
    list.

    Raises:
        SignatureCatalogError: If the file is missing, unparseable or has no
            record list
    """
    path = Path(path)
    if not path.exists():
        raise SignatureCatalogError("Signature catalog not found", path=str(path))

    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise SignatureCatalogError(
            "Signature catalog could not be parsed", path=str(path), reason=str(e)
        ) from e

    if isinstance(data, dict):
        data = data.get("signatures")
    if not isinstance(data, list):
        raise SignatureCatalogError(
            "Signature catalog must contain a list of records", path=str(path)
        )
    return data


class SignatureRegistry:
    """
    Ordered collection of bot signatures, keyed by name.

    Iteration order is registration order, which is also match order.
    Re-adding an existing name replaces the record in place.
    """

    def __init__(
        self,
        signatures: Optional[list[BotSignature]] = None,
        source: str = "memory",
        is_fallback: bool = False,
    ):
        self._signatures: dict[str, BotSignature] = {}
        self.source = source
        self.is_fallback = is_fallback
        for signature in signatures or []:
            self.add(signature)

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def from_records(
        cls,
        records: list[dict[str, Any]],
        source: str = "memory",
        enrich: bool = True,
    ) -> "SignatureRegistry":
        """
        Build a registry from raw catalog records, skipping invalid ones.
        """
        registry = cls(source=source)
        skipped = 0
        for record in records:
            try:
                if enrich and isinstance(record, dict):
                    record = enrich_record(record)
                registry.add(BotSignature.from_dict(record))
            except InvalidSignatureError as e:
                skipped += 1
                logger.warning(f"Skipping signature record: {e}")

        if skipped:
            logger.warning(f"Skipped {skipped} invalid signature records from {source}")
        return registry

    @classmethod
    def builtin(cls) -> "SignatureRegistry":
        """Registry holding only the built-in fallback signatures."""
        registry = cls.from_records(BUILTIN_SIGNATURES, source="builtin", enrich=False)
        registry.is_fallback = True
        return registry

    @classmethod
    def from_catalog(cls, path: Optional[Union[str, Path]] = None) -> "SignatureRegistry":
        """
        Load a registry from a catalog file, falling back to built-ins.

        Args:
            path: Catalog location (defaults to the packaged catalog)

        Returns:
            SignatureRegistry; never raises for catalog problems
        """
        catalog_path = Path(path) if path else DEFAULT_CATALOG_PATH
        try:
            records = read_catalog(catalog_path)
        except SignatureCatalogError as e:
            logger.warning(f"{e}; using built-in signatures")
            return cls.builtin()

        registry = cls.from_records(records, source=str(catalog_path))
        if len(registry) == 0:
            logger.warning(
                f"No valid signatures in {catalog_path}; using built-in signatures"
            )
            return cls.builtin()

        logger.info(f"Loaded {len(registry)} bot signatures from {catalog_path}")
        return registry

    # -------------------------------------------------------------------------
    # Mutation (before analysis starts)
    # -------------------------------------------------------------------------

    def add(self, signature: BotSignature) -> None:
        if signature.name in self._signatures:
            logger.debug(f"Replacing signature {signature.name}")
        self._signatures[signature.name] = signature

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._signatures)

    def __iter__(self) -> Iterator[BotSignature]:
        return iter(self._signatures.values())

    def __contains__(self, name: object) -> bool:
        return name in self._signatures

    def get(self, name: str) -> Optional[BotSignature]:
        return self._signatures.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._signatures)

    def by_category(self, category: Union[str, BotCategory]) -> list[BotSignature]:
        wanted = BotCategory.parse(category)
        return [s for s in self if s.category == wanted]

    def by_subcategory(self, subcategory: str) -> list[BotSignature]:
        return [s for s in self if s.subcategory == subcategory]

    def high_impact(self) -> list[BotSignature]:
        """Signatures with high or extreme impact."""
        return [s for s in self if s.impact in (Impact.HIGH, Impact.EXTREME)]

    def search(self, name_pattern: str) -> list[BotSignature]:
        """Signatures whose name matches a case-insensitive regex."""
        regex = re.compile(name_pattern, re.IGNORECASE)
        return [s for s in self if regex.search(s.name)]

    def statistics(self) -> dict[str, Any]:
        """Counts by category, subcategory and impact, plus enrichment coverage."""
        by_category: dict[str, int] = {}
        by_subcategory: dict[str, int] = {}
        by_impact: dict[str, int] = {}
        with_ranges = 0
        with_verification = 0

        for sig in self:
            by_category[sig.category.value] = by_category.get(sig.category.value, 0) + 1
            if sig.subcategory:
                by_subcategory[sig.subcategory] = by_subcategory.get(sig.subcategory, 0) + 1
            by_impact[sig.impact.value] = by_impact.get(sig.impact.value, 0) + 1
            if sig.ip_ranges:
                with_ranges += 1
            if sig.verification:
                with_verification += 1

        return {
            "total": len(self),
            "by_category": by_category,
            "by_subcategory": by_subcategory,
            "by_impact": by_impact,
            "with_ip_ranges": with_ranges,
            "with_verification": with_verification,
            "source": self.source,
            "is_fallback": self.is_fallback,
        }


class SignatureLoader:
    """
    Loads a registry once and returns the same instance thereafter.

    ``load`` is safe to call from several threads at once: exactly one
    thread reads the catalog, the others wait and receive the same registry.

    Example:
        >>> loader = SignatureLoader("data/bot_signatures.json")
        >>> registry = loader.load()
        >>> registry is loader.load()
        True
    """

    def __init__(self, catalog_path: Optional[Union[str, Path]] = None):
        self.catalog_path = catalog_path
        self._registry: Optional[SignatureRegistry] = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._registry is not None

    def load(self) -> SignatureRegistry:
        registry = self._registry
        if registry is not None:
            return registry

        with self._lock:
            if self._registry is None:
                self._registry = SignatureRegistry.from_catalog(self.catalog_path)
            return self._registry
