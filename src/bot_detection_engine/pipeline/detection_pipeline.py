"""
Chunked detection pipeline.

Makes full-batch classification tractable over large inputs:

1. Coerce: accept LogEntry objects or loosely-shaped dicts
2. Filter: drop entries outside the recency window (or an explicit range)
3. Normalize: fingerprint entries in fixed-size chunks, several at a time
4. Classify: run the classifier once over the reassembled batch
5. Annotate: copy surviving detections onto the rows of their session

Chunking only parallelizes normalization. Grouping and classification always
see the whole batch so no session is split by a chunk boundary.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Union

from ..config.settings import ProcessingSettings
from ..detection.classifier import BotClassifier, empty_analysis
from ..exceptions import InvalidLogEntryError
from ..monitoring import ProcessResourceMonitor, ResourceMonitor, wait_for_memory
from ..schemas import BotAnalysis, DetectionLogEntry, LogEntry, TimeRange

logger = logging.getLogger(__name__)

RawRecord = Union[LogEntry, Mapping[str, Any]]


# =============================================================================
# Results
# =============================================================================


@dataclass
class ProcessingProgress:
    """Snapshot passed to progress listeners after each chunk."""

    processed: int
    total: int
    current_chunk: int
    total_chunks: int
    started_at: datetime
    memory_usage_mb: float = 0.0
    estimated_completion: Optional[datetime] = None

    @property
    def percent_complete(self) -> float:
        if self.total == 0:
            return 100.0
        return self.processed / self.total * 100.0

    def to_dict(self) -> dict:
        return {
            "processed": self.processed,
            "total": self.total,
            "current_chunk": self.current_chunk,
            "total_chunks": self.total_chunks,
            "started_at": self.started_at.isoformat(),
            "memory_usage_mb": round(self.memory_usage_mb, 2),
            "estimated_completion": (
                self.estimated_completion.isoformat()
                if self.estimated_completion
                else None
            ),
        }


ProgressCallback = Callable[[ProcessingProgress], None]


@dataclass
class ProcessingResult:
    """Result of a pipeline run."""

    analysis: BotAnalysis
    processing_time_ms: float = 0.0
    chunks_processed: int = 0
    total_logs: int = 0
    memory_peak_mb: float = 0.0
    logs: list[DetectionLogEntry] = field(default_factory=list)
    # Stats
    input_records: int = 0
    filtered_out: int = 0
    skipped_entries: int = 0
    stage_timings_ms: dict[str, float] = field(default_factory=dict)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get pipeline duration in seconds."""
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @property
    def bot_rows(self) -> int:
        return sum(1 for log in self.logs if log.is_bot)

    def processing_stats(self) -> dict:
        """Run statistics, without the analysis or the rows."""
        return {
            "processing_time_ms": round(self.processing_time_ms, 3),
            "chunks_processed": self.chunks_processed,
            "total_logs": self.total_logs,
            "input_records": self.input_records,
            "filtered_out": self.filtered_out,
            "skipped_entries": self.skipped_entries,
            "bot_rows": self.bot_rows,
            "memory_peak_mb": round(self.memory_peak_mb, 2),
            "stage_timings_ms": {
                stage: round(ms, 3) for stage, ms in self.stage_timings_ms.items()
            },
            "started_at": self.started_at.isoformat(),
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
        }

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/serialization."""
        return {
            "analysis": self.analysis.to_dict(),
            "processing_stats": self.processing_stats(),
            "logs": [log.to_dict() for log in self.logs],
        }


# =============================================================================
# Helpers
# =============================================================================


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def _record_stage(timings: dict[str, float], stage: str, stage_start: float) -> float:
    """Store the elapsed ms since ``stage_start`` under ``stage``; return now."""
    now = time.monotonic()
    timings[stage] = (now - stage_start) * 1000.0
    logger.debug(f"Stage {stage} took {timings[stage]:.1f}ms")
    return now


def coerce_entries(records: Iterable[RawRecord]) -> tuple[list[LogEntry], int]:
    """
    Turn raw records into LogEntry objects.

    Dicts without a parseable timestamp and values of unsupported types are
    skipped and counted.

    Returns:
        Tuple of (entries, skipped count)
    """
    entries: list[LogEntry] = []
    skipped = 0
    for record in records:
        if isinstance(record, LogEntry):
            if record.timestamp.tzinfo is None:
                record = replace(record, timestamp=_as_utc(record.timestamp))
            entries.append(record)
        elif isinstance(record, Mapping):
            try:
                entries.append(LogEntry.from_dict(dict(record)))
            except InvalidLogEntryError as e:
                skipped += 1
                logger.debug(f"Skipping record: {e}")
        else:
            skipped += 1
            logger.debug(f"Skipping record of type {type(record).__name__}")

    if skipped:
        logger.warning(f"Skipped {skipped} records without a usable timestamp")
    return entries, skipped


def chunked(items: Sequence[Any], size: int) -> list[Sequence[Any]]:
    """Split a sequence into consecutive slices of at most ``size`` items."""
    if size < 1:
        raise ValueError(f"chunk size must be >= 1, got {size}")
    return [items[i : i + size] for i in range(0, len(items), size)]


def normalize_chunk(
    chunk: Sequence[LogEntry], identity_key: str
) -> list[DetectionLogEntry]:
    """Fingerprint one chunk of entries."""
    return [DetectionLogEntry.from_entry(entry, identity_key) for entry in chunk]


def annotate_logs(logs: Sequence[DetectionLogEntry], analysis: BotAnalysis) -> int:
    """
    Mark rows whose session has a surviving detection.

    Each detection is attached through its primary behavior session, so
    only rows from that session are marked.

    Returns:
        Number of rows marked as bot traffic
    """
    by_session = {}
    for result in analysis.bots:
        session_id = result.behavior.session_id
        if session_id:
            by_session[session_id] = result

    marked = 0
    for log in logs:
        result = by_session.get(log.session_id)
        if result is None:
            continue
        classification = result.classification
        log.mark_bot(
            classification.bot_name,
            classification.subcategory or classification.category.value,
        )
        marked += 1
    return marked


# =============================================================================
# Pipeline
# =============================================================================


class DetectionPipeline:
    """
    Runs normalization in bounded-parallel chunks and classification once.

    Example:
        >>> pipeline = DetectionPipeline(classifier)
        >>> result = pipeline.process_recent_logs(records, "example.com")
        >>> result.total_logs == len(result.logs)
        True
    """

    def __init__(
        self,
        classifier: BotClassifier,
        settings: Optional[ProcessingSettings] = None,
        resource_monitor: Optional[ResourceMonitor] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the pipeline.

        Args:
            classifier: Full-batch classifier
            settings: Chunking, concurrency, recency and memory settings
            resource_monitor: Memory monitor (defaults to this process)
            sleep: Sleep function used by the memory wait
        """
        self.classifier = classifier
        self.settings = settings or classifier.settings.processing
        self.resource_monitor = resource_monitor or ProcessResourceMonitor()
        self._sleep = sleep
        self._grouper = classifier.behavior_analyzer.grouper

    def process_recent_logs(
        self,
        records: Iterable[RawRecord],
        identity_key: str,
        on_progress: Optional[ProgressCallback] = None,
        now: Optional[datetime] = None,
    ) -> ProcessingResult:
        """
        Process entries inside the recency window ending at ``now``.

        Args:
            records: LogEntry objects or dicts
            identity_key: Site or tenant the batch belongs to
            on_progress: Optional listener called after each chunk
            now: End of the recency window (defaults to the current time)

        Returns:
            ProcessingResult with analysis and annotated rows
        """
        now = _as_utc(now) if now else datetime.now(timezone.utc)
        cutoff = now - timedelta(hours=self.settings.time_window_hours)
        return self._run(
            records,
            identity_key,
            keep=lambda ts: ts >= cutoff,
            window=TimeRange(start=cutoff, end=now),
            on_progress=on_progress,
        )

    def process_time_range(
        self,
        records: Iterable[RawRecord],
        identity_key: str,
        start: datetime,
        end: datetime,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ProcessingResult:
        """
        Process entries with ``start <= timestamp <= end``.

        The recency window is not applied.

        Raises:
            ValueError: If start is after end
        """
        start, end = _as_utc(start), _as_utc(end)
        if start > end:
            raise ValueError(f"start {start.isoformat()} is after end {end.isoformat()}")
        return self._run(
            records,
            identity_key,
            keep=lambda ts: start <= ts <= end,
            window=TimeRange(start=start, end=end),
            on_progress=on_progress,
        )

    def _run(
        self,
        records: Iterable[RawRecord],
        identity_key: str,
        keep: Callable[[datetime], bool],
        window: TimeRange,
        on_progress: Optional[ProgressCallback],
    ) -> ProcessingResult:
        started_at = datetime.now(timezone.utc)
        clock_start = time.monotonic()

        timings: dict[str, float] = {}
        stage_start = clock_start

        logger.info("[1/4] Coercing and filtering records...")
        coerced, skipped = coerce_entries(records)
        entries = [e for e in coerced if keep(e.timestamp)]
        filtered_out = len(coerced) - len(entries)
        stage_start = _record_stage(timings, "coerce", stage_start)
        logger.info(
            f"  {len(entries)} entries in window, {filtered_out} filtered, "
            f"{skipped} skipped"
        )

        result = ProcessingResult(
            analysis=empty_analysis(),
            input_records=len(coerced) + skipped,
            filtered_out=filtered_out,
            skipped_entries=skipped,
            started_at=started_at,
            stage_timings_ms=timings,
        )

        if not entries:
            logger.info("No entries to process")
            result.analysis.summary.time_range = window
            result.memory_peak_mb = self.resource_monitor.current_usage_mb()
            return self._finish(result, clock_start)

        logger.info(f"[2/4] Normalizing {len(entries)} entries...")
        logs, chunk_count, peak_mb = self._normalize(
            entries, identity_key, on_progress, started_at, clock_start
        )

        for log, session_id in zip(
            logs, self._grouper.assign_session_ids([log.entry for log in logs])
        ):
            log.session_id = session_id
        stage_start = _record_stage(timings, "normalize", stage_start)

        logger.info("[3/4] Classifying batch...")
        analysis = self.classifier.classify([log.entry for log in logs])
        stage_start = _record_stage(timings, "classify", stage_start)

        logger.info("[4/4] Annotating rows...")
        marked = annotate_logs(logs, analysis)
        _record_stage(timings, "annotate", stage_start)
        logger.info(
            f"  {len(analysis.bots)} detections, {marked}/{len(logs)} rows marked"
        )

        result.analysis = analysis
        result.logs = logs
        result.total_logs = len(logs)
        result.chunks_processed = chunk_count
        result.memory_peak_mb = max(peak_mb, self.resource_monitor.current_usage_mb())
        return self._finish(result, clock_start)

    def _normalize(
        self,
        entries: list[LogEntry],
        identity_key: str,
        on_progress: Optional[ProgressCallback],
        started_at: datetime,
        clock_start: float,
    ) -> tuple[list[DetectionLogEntry], int, float]:
        chunks = chunked(entries, self.settings.chunk_size)
        workers = self.settings.max_concurrent_chunks
        total = len(entries)
        processed = 0
        peak_mb = 0.0
        logs: list[DetectionLogEntry] = []

        with ThreadPoolExecutor(max_workers=workers) as executor:
            for batch_start in range(0, len(chunks), workers):
                batch = chunks[batch_start : batch_start + workers]
                futures = []
                for chunk in batch:
                    wait_for_memory(
                        self.resource_monitor,
                        self.settings.max_memory_mb,
                        self.settings.memory_wait_seconds,
                        sleep=self._sleep,
                    )
                    futures.append(
                        executor.submit(normalize_chunk, chunk, identity_key)
                    )

                # Reassemble in chunk order
                for offset, future in enumerate(futures):
                    chunk_logs = future.result()
                    logs.extend(chunk_logs)
                    processed += len(chunk_logs)

                    usage_mb = self.resource_monitor.current_usage_mb()
                    peak_mb = max(peak_mb, usage_mb)
                    chunk_index = batch_start + offset
                    logger.debug(
                        f"Chunk {chunk_index + 1}/{len(chunks)}: "
                        f"{processed}/{total} entries"
                    )
                    if on_progress and self.settings.enable_progress:
                        on_progress(
                            ProcessingProgress(
                                processed=processed,
                                total=total,
                                current_chunk=chunk_index,
                                total_chunks=len(chunks),
                                started_at=started_at,
                                memory_usage_mb=usage_mb,
                                estimated_completion=self._estimate_completion(
                                    processed, total, time.monotonic() - clock_start
                                ),
                            )
                        )

        return logs, len(chunks), peak_mb

    @staticmethod
    def _estimate_completion(
        processed: int, total: int, elapsed_seconds: float
    ) -> Optional[datetime]:
        if processed <= 0 or elapsed_seconds <= 0:
            return None
        rate = processed / elapsed_seconds
        remaining = (total - processed) / rate
        return datetime.now(timezone.utc) + timedelta(seconds=remaining)

    @staticmethod
    def _finish(result: ProcessingResult, clock_start: float) -> ProcessingResult:
        result.processing_time_ms = (time.monotonic() - clock_start) * 1000.0
        result.completed_at = datetime.now(timezone.utc)
        logger.info(
            f"Pipeline finished in {result.processing_time_ms:.1f}ms "
            f"({result.chunks_processed} chunks)"
        )
        return result
