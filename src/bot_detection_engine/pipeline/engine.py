"""
Detection engine facade.

Composition root for the library: loads the signature registry once, builds
the matcher, classifier and pipeline, and exposes batch analysis plus cost
reporting.

Usage:
    engine = DetectionEngine()
    result = engine.analyze(records, identity_key="example.com")
    print(result.classification_summary.summary.bot_requests)
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from ..config.settings import DetectionSettings, get_settings
from ..detection.classifier import BotClassifier
from ..detection.signature_matcher import SignatureMatcher
from ..detection.signature_registry import SignatureLoader, SignatureRegistry
from ..exceptions import MissingIdentityKeyError
from ..monitoring import ProcessResourceMonitor, ResourceMonitor
from ..reporting import CostImpactAnalysis, CostIntegrator
from ..schemas import BotAnalysis, DetectionLogEntry
from .detection_pipeline import (
    DetectionPipeline,
    ProcessingResult,
    ProgressCallback,
    RawRecord,
)

logger = logging.getLogger(__name__)


@dataclass
class EngineResult:
    """Output of ``DetectionEngine.analyze``."""

    classification_summary: BotAnalysis
    annotated_entries: list[DetectionLogEntry] = field(default_factory=list)
    processing_stats: dict[str, Any] = field(default_factory=dict)
    cost_analysis: Optional[CostImpactAnalysis] = None

    def to_dict(self, include_entries: bool = True) -> dict:
        """Convert to dictionary for logging/serialization."""
        data = {
            "classification_summary": self.classification_summary.to_dict(),
            "processing_stats": dict(self.processing_stats),
            "cost_analysis": (
                self.cost_analysis.to_dict() if self.cost_analysis else None
            ),
        }
        if include_entries:
            data["annotated_entries"] = [e.to_dict() for e in self.annotated_entries]
        return data


class DetectionEngine:
    """
    Batch bot detection over request logs.

    Settings are validated once at construction; an invalid configuration
    raises ``ConfigurationError`` here rather than degrading later.
    """

    def __init__(
        self,
        settings: Optional[DetectionSettings] = None,
        registry: Optional[SignatureRegistry] = None,
        resource_monitor: Optional[ResourceMonitor] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the engine.

        Args:
            settings: Detection settings (defaults to ``get_settings()``)
            registry: Pre-loaded signature registry (defaults to the catalog
                named by the settings, or the packaged catalog)
            resource_monitor: Memory monitor for the pipeline
            sleep: Sleep function used by the memory wait

        Raises:
            ConfigurationError: If the settings are invalid
        """
        self.settings = (settings or get_settings()).ensure_valid()
        self._loader = SignatureLoader(self.settings.signature_catalog_path)
        self.registry = registry if registry is not None else self._loader.load()
        self.resource_monitor = resource_monitor or ProcessResourceMonitor()
        self._sleep = sleep

        self.matcher = SignatureMatcher(self.registry)
        self._build_components()
        self.cost_integrator = CostIntegrator()

        logger.info(
            f"DetectionEngine initialized with {len(self.registry)} signatures "
            f"from {self.registry.source}"
        )

    def analyze(
        self,
        entries: Iterable[RawRecord],
        identity_key: str,
        provider: Optional[str] = None,
        price_per_gb: Optional[float] = None,
        include_costs: bool = False,
        on_progress: Optional[ProgressCallback] = None,
        now: Optional[datetime] = None,
    ) -> EngineResult:
        """
        Analyze entries inside the recency window.

        Args:
            entries: LogEntry objects or dicts
            identity_key: Site or tenant the batch belongs to
            provider: Hosting provider, used for cost analysis
            price_per_gb: Explicit egress price for cost analysis
            include_costs: Attach a cost analysis (requires a provider)
            on_progress: Optional progress listener
            now: End of the recency window (defaults to the current time)

        Returns:
            EngineResult

        Raises:
            MissingIdentityKeyError: If identity_key is empty
        """
        self._check_identity_key(identity_key)
        initial_mb = self.resource_monitor.current_usage_mb()
        result = self.pipeline.process_recent_logs(
            entries, identity_key, on_progress=on_progress, now=now
        )
        return self._to_engine_result(
            result, initial_mb, provider, price_per_gb, include_costs
        )

    def analyze_time_range(
        self,
        entries: Iterable[RawRecord],
        identity_key: str,
        start: datetime,
        end: datetime,
        provider: Optional[str] = None,
        price_per_gb: Optional[float] = None,
        include_costs: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> EngineResult:
        """
        Analyze entries with ``start <= timestamp <= end``.

        The explicit window replaces the recency cutoff.
        """
        self._check_identity_key(identity_key)
        initial_mb = self.resource_monitor.current_usage_mb()
        result = self.pipeline.process_time_range(
            entries, identity_key, start, end, on_progress=on_progress
        )
        return self._to_engine_result(
            result, initial_mb, provider, price_per_gb, include_costs
        )

    def calculate_costs(
        self,
        analysis: BotAnalysis,
        provider: str,
        price_per_gb: Optional[float] = None,
    ) -> CostImpactAnalysis:
        return self.cost_integrator.calculate_cost_impact(
            analysis, provider, price_per_gb
        )

    def generate_cost_report(
        self,
        analysis: BotAnalysis,
        provider: str,
        price_per_gb: Optional[float] = None,
    ) -> dict:
        return self.cost_integrator.generate_cost_report(
            analysis, provider, price_per_gb
        )

    def get_config(self) -> dict:
        return self.settings.to_dict()

    def update_settings(self, settings: DetectionSettings) -> None:
        """
        Swap in new settings between runs.

        The classifier and pipeline are rebuilt with the new thresholds,
        weights and processing limits. The loaded registry and the matcher's
        caches are kept unless the catalog path changes, in which case the
        new catalog is loaded.

        Raises:
            ConfigurationError: If the settings are invalid; the current
                settings stay in effect
        """
        settings = settings.ensure_valid()
        if settings.signature_catalog_path != self.settings.signature_catalog_path:
            self._loader = SignatureLoader(settings.signature_catalog_path)
            self.registry = self._loader.load()
            self.matcher = SignatureMatcher(self.registry)
            logger.info(
                f"Reloaded {len(self.registry)} signatures from {self.registry.source}"
            )

        self.settings = settings
        self._build_components()
        logger.info(
            f"Settings updated (confidence_threshold={settings.confidence_threshold})"
        )

    def get_system_status(self) -> dict:
        """Memory usage, cache sizes and registry state."""
        return {
            "memory_usage_mb": round(self.resource_monitor.current_usage_mb(), 2),
            "user_agent_cache_size": self.matcher.cache_size,
            "cidr_cache_size": len(self.matcher.cidr_cache),
            "registry": self.registry.statistics(),
            "config": self.get_config(),
        }

    def reset(self) -> None:
        """Clear the matcher's user-agent and CIDR caches."""
        self.matcher.clear_cache()
        logger.info("Detection caches cleared")

    def _build_components(self) -> None:
        self.classifier = BotClassifier(self.matcher, self.settings)
        self.pipeline = DetectionPipeline(
            self.classifier,
            self.settings.processing,
            resource_monitor=self.resource_monitor,
            sleep=self._sleep,
        )

    @staticmethod
    def _check_identity_key(identity_key: str) -> None:
        if not identity_key or not str(identity_key).strip():
            raise MissingIdentityKeyError(identity_key)

    def _to_engine_result(
        self,
        result: ProcessingResult,
        initial_mb: float,
        provider: Optional[str],
        price_per_gb: Optional[float],
        include_costs: bool,
    ) -> EngineResult:
        cost_analysis = None
        if include_costs:
            if provider:
                cost_analysis = self.calculate_costs(
                    result.analysis, provider, price_per_gb
                )
            else:
                logger.warning("Cost analysis requested without a provider; skipped")

        stats = result.processing_stats()
        stats["memory_usage_mb"] = round(max(0.0, result.memory_peak_mb - initial_mb), 2)

        return EngineResult(
            classification_summary=result.analysis,
            annotated_entries=result.logs,
            processing_stats=stats,
            cost_analysis=cost_analysis,
        )
