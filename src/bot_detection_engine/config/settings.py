"""
Detection settings and configuration management.

Supports loading from:
1. An explicit DetectionSettings object
2. A YAML file (path argument or BOT_DETECTION_CONFIG)
3. Environment variables (BOT_DETECTION_*)
4. Built-in defaults
"""

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Optional

from ..exceptions import ConfigurationError
from . import constants as c

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "BOT_DETECTION_CONFIG"
ENV_PREFIX = "BOT_DETECTION_"


def _env_key(name: str) -> str:
    return f"{ENV_PREFIX}{name}"


def safe_int(key: str, default: int) -> int:
    """Safely parse int from env var, using default on error."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


def safe_float(key: str, default: float) -> float:
    """Safely parse float from env var, using default on error."""
    try:
        return float(os.environ.get(key, str(default)))
    except ValueError:
        return default


def safe_bool(key: str, default: bool) -> bool:
    """Safely parse bool from env var."""
    return os.environ.get(key, str(default).lower()).lower() in ("true", "1", "yes")


# =============================================================================
# Velocity
# =============================================================================


@dataclass
class VelocityThresholds:
    """Request-rate limits above which an IP looks automated."""

    max_requests_per_second: float = c.DEFAULT_MAX_REQUESTS_PER_SECOND
    max_requests_per_minute: float = c.DEFAULT_MAX_REQUESTS_PER_MINUTE
    min_interval_ms: float = c.DEFAULT_MIN_INTERVAL_MS

    def validate(self) -> list[str]:
        """Validate settings values. Returns list of errors."""
        errors = []
        if self.max_requests_per_second <= 0:
            errors.append(
                f"max_requests_per_second must be > 0, got {self.max_requests_per_second}"
            )
        if self.max_requests_per_minute <= 0:
            errors.append(
                f"max_requests_per_minute must be > 0, got {self.max_requests_per_minute}"
            )
        if self.min_interval_ms < 0:
            errors.append(f"min_interval_ms must be >= 0, got {self.min_interval_ms}")
        return errors

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "max_requests_per_second": self.max_requests_per_second,
            "max_requests_per_minute": self.max_requests_per_minute,
            "min_interval_ms": self.min_interval_ms,
        }

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "VelocityThresholds":
        """Create from configuration dictionary."""
        return cls(
            max_requests_per_second=config.get(
                "max_requests_per_second", c.DEFAULT_MAX_REQUESTS_PER_SECOND
            ),
            max_requests_per_minute=config.get(
                "max_requests_per_minute", c.DEFAULT_MAX_REQUESTS_PER_MINUTE
            ),
            min_interval_ms=config.get("min_interval_ms", c.DEFAULT_MIN_INTERVAL_MS),
        )

    @classmethod
    def from_env(cls) -> "VelocityThresholds":
        """Create from environment variables."""
        return cls(
            max_requests_per_second=safe_float(
                _env_key("MAX_REQUESTS_PER_SECOND"), c.DEFAULT_MAX_REQUESTS_PER_SECOND
            ),
            max_requests_per_minute=safe_float(
                _env_key("MAX_REQUESTS_PER_MINUTE"), c.DEFAULT_MAX_REQUESTS_PER_MINUTE
            ),
            min_interval_ms=safe_float(
                _env_key("MIN_INTERVAL_MS"), c.DEFAULT_MIN_INTERVAL_MS
            ),
        )


# =============================================================================
# Sessions
# =============================================================================


@dataclass
class SessionWindows:
    """
    Session boundaries.

    ``max_duration_hours`` is informational: sessions are only split on
    inactivity gaps, never on total length.
    """

    max_gap_minutes: float = c.DEFAULT_MAX_GAP_MINUTES
    max_duration_hours: float = c.DEFAULT_MAX_DURATION_HOURS

    def validate(self) -> list[str]:
        errors = []
        if self.max_gap_minutes <= 0:
            errors.append(f"max_gap_minutes must be > 0, got {self.max_gap_minutes}")
        if self.max_duration_hours <= 0:
            errors.append(
                f"max_duration_hours must be > 0, got {self.max_duration_hours}"
            )
        return errors

    def to_dict(self) -> dict:
        return {
            "max_gap_minutes": self.max_gap_minutes,
            "max_duration_hours": self.max_duration_hours,
        }

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "SessionWindows":
        return cls(
            max_gap_minutes=config.get("max_gap_minutes", c.DEFAULT_MAX_GAP_MINUTES),
            max_duration_hours=config.get(
                "max_duration_hours", c.DEFAULT_MAX_DURATION_HOURS
            ),
        )

    @classmethod
    def from_env(cls) -> "SessionWindows":
        return cls(
            max_gap_minutes=safe_float(
                _env_key("MAX_GAP_MINUTES"), c.DEFAULT_MAX_GAP_MINUTES
            ),
            max_duration_hours=safe_float(
                _env_key("MAX_DURATION_HOURS"), c.DEFAULT_MAX_DURATION_HOURS
            ),
        )


# =============================================================================
# Fusion weights
# =============================================================================


@dataclass
class ConfidenceWeights:
    """
    Per-analyzer fusion weights.

    Weights need not sum to 1; fusion divides by the weight of the analyzers
    that actually contributed.
    """

    velocity: float = c.DEFAULT_VELOCITY_WEIGHT
    pattern: float = c.DEFAULT_PATTERN_WEIGHT
    signature: float = c.DEFAULT_SIGNATURE_WEIGHT
    behavior: float = c.DEFAULT_BEHAVIOR_WEIGHT

    def validate(self) -> list[str]:
        errors = []
        for name, value in self.to_dict().items():
            if value < 0:
                errors.append(f"{name} weight must be >= 0, got {value}")
        return errors

    def to_dict(self) -> dict:
        return {
            "velocity": self.velocity,
            "pattern": self.pattern,
            "signature": self.signature,
            "behavior": self.behavior,
        }

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "ConfidenceWeights":
        return cls(
            velocity=config.get("velocity", c.DEFAULT_VELOCITY_WEIGHT),
            pattern=config.get("pattern", c.DEFAULT_PATTERN_WEIGHT),
            signature=config.get("signature", c.DEFAULT_SIGNATURE_WEIGHT),
            behavior=config.get("behavior", c.DEFAULT_BEHAVIOR_WEIGHT),
        )

    @classmethod
    def from_env(cls) -> "ConfidenceWeights":
        return cls(
            velocity=safe_float(_env_key("WEIGHT_VELOCITY"), c.DEFAULT_VELOCITY_WEIGHT),
            pattern=safe_float(_env_key("WEIGHT_PATTERN"), c.DEFAULT_PATTERN_WEIGHT),
            signature=safe_float(
                _env_key("WEIGHT_SIGNATURE"), c.DEFAULT_SIGNATURE_WEIGHT
            ),
            behavior=safe_float(_env_key("WEIGHT_BEHAVIOR"), c.DEFAULT_BEHAVIOR_WEIGHT),
        )


# =============================================================================
# Chunked processing
# =============================================================================


@dataclass
class ProcessingSettings:
    """Chunking, concurrency and memory limits for the pipeline."""

    chunk_size: int = c.DEFAULT_CHUNK_SIZE
    max_concurrent_chunks: int = c.DEFAULT_MAX_CONCURRENT_CHUNKS
    time_window_hours: float = c.DEFAULT_TIME_WINDOW_HOURS
    max_memory_mb: float = c.DEFAULT_MAX_MEMORY_MB
    memory_wait_seconds: float = c.DEFAULT_MEMORY_WAIT_SECONDS
    enable_progress: bool = True

    def validate(self) -> list[str]:
        errors = []
        if self.chunk_size < 1:
            errors.append(f"chunk_size must be >= 1, got {self.chunk_size}")
        if self.max_concurrent_chunks < 1:
            errors.append(
                f"max_concurrent_chunks must be >= 1, got {self.max_concurrent_chunks}"
            )
        if self.time_window_hours <= 0:
            errors.append(
                f"time_window_hours must be > 0, got {self.time_window_hours}"
            )
        if self.max_memory_mb <= 0:
            errors.append(f"max_memory_mb must be > 0, got {self.max_memory_mb}")
        if self.memory_wait_seconds < 0:
            errors.append(
                f"memory_wait_seconds must be >= 0, got {self.memory_wait_seconds}"
            )
        return errors

    def to_dict(self) -> dict:
        return {
            "chunk_size": self.chunk_size,
            "max_concurrent_chunks": self.max_concurrent_chunks,
            "time_window_hours": self.time_window_hours,
            "max_memory_mb": self.max_memory_mb,
            "memory_wait_seconds": self.memory_wait_seconds,
            "enable_progress": self.enable_progress,
        }

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "ProcessingSettings":
        return cls(
            chunk_size=config.get("chunk_size", c.DEFAULT_CHUNK_SIZE),
            max_concurrent_chunks=config.get(
                "max_concurrent_chunks", c.DEFAULT_MAX_CONCURRENT_CHUNKS
            ),
            time_window_hours=config.get(
                "time_window_hours", c.DEFAULT_TIME_WINDOW_HOURS
            ),
            max_memory_mb=config.get("max_memory_mb", c.DEFAULT_MAX_MEMORY_MB),
            memory_wait_seconds=config.get(
                "memory_wait_seconds", c.DEFAULT_MEMORY_WAIT_SECONDS
            ),
            enable_progress=config.get("enable_progress", True),
        )

    @classmethod
    def from_env(cls) -> "ProcessingSettings":
        return cls(
            chunk_size=safe_int(_env_key("CHUNK_SIZE"), c.DEFAULT_CHUNK_SIZE),
            max_concurrent_chunks=safe_int(
                _env_key("MAX_CONCURRENT_CHUNKS"), c.DEFAULT_MAX_CONCURRENT_CHUNKS
            ),
            time_window_hours=safe_float(
                _env_key("TIME_WINDOW_HOURS"), c.DEFAULT_TIME_WINDOW_HOURS
            ),
            max_memory_mb=safe_float(_env_key("MAX_MEMORY_MB"), c.DEFAULT_MAX_MEMORY_MB),
            memory_wait_seconds=safe_float(
                _env_key("MEMORY_WAIT_SECONDS"), c.DEFAULT_MEMORY_WAIT_SECONDS
            ),
            enable_progress=safe_bool(_env_key("ENABLE_PROGRESS"), True),
        )


# =============================================================================
# Main Settings
# =============================================================================


@dataclass
class DetectionSettings:
    """All detection-engine settings."""

    velocity: VelocityThresholds = field(default_factory=VelocityThresholds)
    sessions: SessionWindows = field(default_factory=SessionWindows)
    weights: ConfidenceWeights = field(default_factory=ConfidenceWeights)
    processing: ProcessingSettings = field(default_factory=ProcessingSettings)

    # None means the catalog shipped with the package
    signature_catalog_path: Optional[str] = None
    confidence_threshold: float = c.DEFAULT_CONFIDENCE_THRESHOLD

    def validate(self) -> list[str]:
        """Validate all settings. Returns list of errors."""
        errors = []
        if not 0.0 <= self.confidence_threshold <= 1.0:
            errors.append(
                f"confidence_threshold must be 0-1, got {self.confidence_threshold}"
            )

        # Validate nested settings
        errors.extend(self.velocity.validate())
        errors.extend(self.sessions.validate())
        errors.extend(self.weights.validate())
        errors.extend(self.processing.validate())

        return errors

    def ensure_valid(self) -> "DetectionSettings":
        """Raise ConfigurationError if any setting is invalid."""
        errors = self.validate()
        if errors:
            raise ConfigurationError(errors)
        return self

    def to_dict(self) -> dict:
        return {
            "velocity": self.velocity.to_dict(),
            "sessions": self.sessions.to_dict(),
            "weights": self.weights.to_dict(),
            "processing": self.processing.to_dict(),
            "signature_catalog_path": self.signature_catalog_path,
            "confidence_threshold": self.confidence_threshold,
        }

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "DetectionSettings":
        """Create settings from a configuration dictionary (e.g. parsed YAML)."""
        config = config or {}
        return cls(
            velocity=VelocityThresholds.from_dict(config.get("velocity") or {}),
            sessions=SessionWindows.from_dict(config.get("sessions") or {}),
            weights=ConfidenceWeights.from_dict(config.get("weights") or {}),
            processing=ProcessingSettings.from_dict(config.get("processing") or {}),
            signature_catalog_path=config.get("signature_catalog_path"),
            confidence_threshold=config.get(
                "confidence_threshold", c.DEFAULT_CONFIDENCE_THRESHOLD
            ),
        )

    @classmethod
    def from_env(cls) -> "DetectionSettings":
        """Create settings from environment variables."""
        return cls(
            velocity=VelocityThresholds.from_env(),
            sessions=SessionWindows.from_env(),
            weights=ConfidenceWeights.from_env(),
            processing=ProcessingSettings.from_env(),
            signature_catalog_path=os.environ.get(_env_key("SIGNATURE_CATALOG")) or None,
            confidence_threshold=safe_float(
                _env_key("CONFIDENCE_THRESHOLD"), c.DEFAULT_CONFIDENCE_THRESHOLD
            ),
        )


@lru_cache
def get_settings(config_path: Optional[str] = None) -> DetectionSettings:
    """
    Get cached settings instance.

    Loads from a YAML file if one is given (or named by BOT_DETECTION_CONFIG),
    otherwise from environment variables.

    Args:
        config_path: Optional path to a YAML settings file

    Returns:
        DetectionSettings instance

    Raises:
        ConfigurationError: If the resolved settings are invalid
    """
    path = config_path or os.environ.get(CONFIG_PATH_ENV)

    if path:
        from .loader import load_settings_file

        return load_settings_file(path).ensure_valid()

    return DetectionSettings.from_env().ensure_valid()


def clear_settings_cache() -> None:
    """Clear the cached settings (useful for testing)."""
    get_settings.cache_clear()
