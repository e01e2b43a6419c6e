"""Configuration module."""

from .constants import (
    KNOWN_IP_RANGES,
    KNOWN_VERIFICATION_RULES,
    LEGACY_BOT_CLASSIFICATION,
    LEGACY_CATEGORY_MAP,
    LEGACY_SEVERITY_MAP,
    PROVIDER_PRICE_PER_GB,
)
from .loader import load_settings_file, load_yaml_file
from .settings import (
    ConfidenceWeights,
    DetectionSettings,
    ProcessingSettings,
    SessionWindows,
    VelocityThresholds,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Legacy bot table
    "LEGACY_BOT_CLASSIFICATION",
    "LEGACY_CATEGORY_MAP",
    "LEGACY_SEVERITY_MAP",
    # Published ranges
    "KNOWN_IP_RANGES",
    "KNOWN_VERIFICATION_RULES",
    # Cost
    "PROVIDER_PRICE_PER_GB",
    # Settings
    "DetectionSettings",
    "VelocityThresholds",
    "SessionWindows",
    "ConfidenceWeights",
    "ProcessingSettings",
    "get_settings",
    "clear_settings_cache",
    # Config loading
    "load_settings_file",
    "load_yaml_file",
]
