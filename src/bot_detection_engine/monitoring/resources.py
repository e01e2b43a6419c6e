"""
Process resource monitoring for the chunked pipeline.

The pipeline only needs two capabilities: read current memory usage and ask
the runtime to reclaim memory. Reclaim is advisory; on some runtimes it frees
nothing, and the pipeline proceeds regardless once its wait budget is spent.
"""

import gc
import logging
import os
import resource
import sys
import time
from abc import ABC, abstractmethod
from typing import Callable

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024


class ResourceMonitor(ABC):
    """Memory reader used by the pipeline between chunks."""

    @abstractmethod
    def current_usage(self) -> int:
        """Current memory usage in bytes."""

    def peak_usage(self) -> int:
        """Peak memory usage in bytes (defaults to current usage)."""
        return self.current_usage()

    def request_reclaim(self) -> None:
        """Best-effort request to free memory. May do nothing."""

    def current_usage_mb(self) -> float:
        return self.current_usage() / BYTES_PER_MB

    def peak_usage_mb(self) -> float:
        return self.peak_usage() / BYTES_PER_MB


class ProcessResourceMonitor(ResourceMonitor):
    """
    Reads this process's resident memory.

    Current usage comes from ``/proc/self/statm`` where available, otherwise
    from the peak RSS reported by ``getrusage``. Reclaim runs a full garbage
    collection.
    """

    def current_usage(self) -> int:
        try:
            with open("/proc/self/statm", "r") as f:
                resident_pages = int(f.read().split()[1])
            return resident_pages * os.sysconf("SC_PAGE_SIZE")
        except (OSError, ValueError, IndexError, AttributeError):
            return self.peak_usage()

    def peak_usage(self) -> int:
        try:
            usage = resource.getrusage(resource.RUSAGE_SELF)
            # ru_maxrss is in kilobytes on Linux, bytes on macOS
            if sys.platform == "darwin":
                return int(usage.ru_maxrss)
            return int(usage.ru_maxrss) * 1024
        except Exception as e:
            logger.debug(f"Failed to get memory usage: {e}")
            return 0

    def request_reclaim(self) -> None:
        collected = gc.collect()
        logger.debug(f"Garbage collection freed {collected} objects")


class NullResourceMonitor(ResourceMonitor):
    """Reports zero usage; for environments where probing is unwanted."""

    def current_usage(self) -> int:
        return 0


def wait_for_memory(
    monitor: ResourceMonitor,
    limit_mb: float,
    max_wait_seconds: float,
    poll_interval: float = 0.1,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """
    Reclaim and pause until usage drops under ``limit_mb`` or time runs out.

    Args:
        monitor: Memory monitor
        limit_mb: Ceiling in MB
        max_wait_seconds: Total pause budget
        poll_interval: Pause between checks
        sleep: Sleep function (injectable for tests)

    Returns:
        True if usage is under the ceiling, False if the wait gave up
    """
    usage_mb = monitor.current_usage_mb()
    if usage_mb <= limit_mb:
        return True

    logger.warning(
        f"Memory usage {usage_mb:.1f}MB exceeds {limit_mb:.1f}MB, requesting reclaim"
    )
    waited = 0.0
    while True:
        monitor.request_reclaim()
        usage_mb = monitor.current_usage_mb()
        if usage_mb <= limit_mb:
            return True
        if waited >= max_wait_seconds or poll_interval <= 0:
            logger.warning(
                f"Memory still at {usage_mb:.1f}MB after {waited:.1f}s; continuing"
            )
            return False
        step = min(poll_interval, max_wait_seconds - waited)
        sleep(step)
        waited += step
