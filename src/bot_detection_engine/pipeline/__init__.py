"""Chunked processing pipeline and the engine facade."""

from .detection_pipeline import (
    DetectionPipeline,
    ProcessingProgress,
    ProcessingResult,
    annotate_logs,
    chunked,
    coerce_entries,
    normalize_chunk,
)
from .engine import DetectionEngine, EngineResult
from .logging_setup import setup_logging

__all__ = [
    # Pipeline
    "DetectionPipeline",
    "ProcessingProgress",
    "ProcessingResult",
    "annotate_logs",
    "chunked",
    "coerce_entries",
    "normalize_chunk",
    # Engine
    "DetectionEngine",
    "EngineResult",
    # Logging
    "setup_logging",
]
