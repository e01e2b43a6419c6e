"""Bot detection and classification for HTTP request logs."""

from .config import DetectionSettings, get_settings
from .exceptions import (
    ConfigurationError,
    DetectionError,
    InvalidLogEntryError,
    InvalidSignatureError,
    MissingIdentityKeyError,
    SignatureCatalogError,
)
from .pipeline import DetectionEngine, EngineResult, setup_logging
from .schemas import BotAnalysis, DetectionLogEntry, LogEntry

__version__ = "0.1.0"

__all__ = [
    "DetectionEngine",
    "EngineResult",
    "DetectionSettings",
    "get_settings",
    "setup_logging",
    "LogEntry",
    "DetectionLogEntry",
    "BotAnalysis",
    # Exceptions
    "DetectionError",
    "ConfigurationError",
    "SignatureCatalogError",
    "InvalidSignatureError",
    "InvalidLogEntryError",
    "MissingIdentityKeyError",
]
