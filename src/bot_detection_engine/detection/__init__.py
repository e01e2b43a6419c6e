"""Session grouping, the four analyzers and classification fusion."""

from .behavior import BehaviorAnalyzer
from .classifier import BotClassifier, aggregate_results, empty_analysis, fuse
from .ip_ranges import CidrCache, ip_in_ranges, ip_to_int, parse_cidr
from .patterns import PatternAnalyzer
from .sessions import (
    SessionGrouper,
    epoch_millis,
    group_by_identity,
    make_session_id,
)
from .signature_matcher import SignatureMatcher, legacy_to_classification
from .signature_registry import (
    BUILTIN_SIGNATURES,
    DEFAULT_CATALOG_PATH,
    SignatureLoader,
    SignatureRegistry,
    read_catalog,
)
from .velocity import VelocityAnalyzer

__all__ = [
    # Sessions
    "SessionGrouper",
    "group_by_identity",
    "make_session_id",
    "epoch_millis",
    # Analyzers
    "VelocityAnalyzer",
    "PatternAnalyzer",
    "BehaviorAnalyzer",
    # Signatures
    "SignatureRegistry",
    "SignatureLoader",
    "SignatureMatcher",
    "BUILTIN_SIGNATURES",
    "DEFAULT_CATALOG_PATH",
    "read_catalog",
    "legacy_to_classification",
    # CIDR
    "CidrCache",
    "ip_in_ranges",
    "ip_to_int",
    "parse_cidr",
    # Fusion
    "BotClassifier",
    "fuse",
    "aggregate_results",
    "empty_analysis",
]
