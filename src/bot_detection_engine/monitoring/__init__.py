"""Resource monitoring for chunked processing."""

from .resources import (
    NullResourceMonitor,
    ProcessResourceMonitor,
    ResourceMonitor,
    wait_for_memory,
)

__all__ = [
    "ResourceMonitor",
    "ProcessResourceMonitor",
    "NullResourceMonitor",
    "wait_for_memory",
]
