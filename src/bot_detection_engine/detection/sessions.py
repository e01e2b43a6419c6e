"""
Session grouping.

Partitions log entries by ``ip|user_agent`` and splits each group into
sessions on inactivity gaps. Grouping is a pure function of its input; a
session never has zero entries.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from ..config.settings import SessionWindows
from ..schemas import LogEntry, Session

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def epoch_millis(ts: datetime) -> int:
    """Whole milliseconds since the Unix epoch."""
    return (ts - _EPOCH) // timedelta(milliseconds=1)


def make_session_id(ip: str, ordinal: int, start: datetime) -> str:
    """Deterministic session id: ``{ip}_{ordinal}_{start_ms}``."""
    return f"{ip}_{ordinal}_{epoch_millis(start)}"


def sort_indices(entries: Sequence[LogEntry]) -> list[int]:
    """Indices of entries in stable ascending timestamp order."""
    return sorted(range(len(entries)), key=lambda i: entries[i].timestamp)


def group_indices_by_identity(entries: Sequence[LogEntry]) -> dict[str, list[int]]:
    """
    Group entry indices by ``ip|user_agent``.

    Each group's indices are in ascending timestamp order. Groups appear in
    the order their earliest entry appears.
    """
    groups: dict[str, list[int]] = {}
    for i in sort_indices(entries):
        groups.setdefault(entries[i].identity, []).append(i)
    return groups


def group_by_identity(entries: Sequence[LogEntry]) -> dict[str, list[LogEntry]]:
    """Group entries by ``ip|user_agent`` without splitting on gaps."""
    return {
        key: [entries[i] for i in indices]
        for key, indices in group_indices_by_identity(entries).items()
    }


class SessionGrouper:
    """
    Splits traffic into per-identity sessions.

    A new session starts whenever the gap to the previous request from the
    same ip|user_agent exceeds ``max_gap_minutes``. ``max_duration_hours`` is
    not a split trigger.

    Example:
        >>> grouper = SessionGrouper()
        >>> sessions = grouper.group(entries)
    """

    def __init__(self, windows: Optional[SessionWindows] = None):
        self.windows = windows or SessionWindows()
        self._max_gap = timedelta(minutes=self.windows.max_gap_minutes)

    def _split_group(
        self, entries: Sequence[LogEntry], indices: list[int]
    ) -> list[list[int]]:
        runs: list[list[int]] = []
        current = [indices[0]]
        for prev, cur in zip(indices, indices[1:]):
            if entries[cur].timestamp - entries[prev].timestamp > self._max_gap:
                runs.append(current)
                current = [cur]
            else:
                current.append(cur)
        runs.append(current)
        return runs

    def _partition(
        self, entries: Sequence[LogEntry]
    ) -> list[tuple[str, list[int]]]:
        partitions = []
        for indices in group_indices_by_identity(entries).values():
            first = entries[indices[0]]
            ip = first.ip_or_unknown
            for ordinal, run in enumerate(self._split_group(entries, indices), start=1):
                session_id = make_session_id(ip, ordinal, entries[run[0]].timestamp)
                partitions.append((session_id, run))
        return partitions

    def group(self, entries: Sequence[LogEntry]) -> list[Session]:
        """
        Group entries into sessions.

        Args:
            entries: Log entries in any order

        Returns:
            Sessions with entries in ascending timestamp order
        """
        if not entries:
            return []

        sessions = []
        for session_id, run in self._partition(entries):
            first = entries[run[0]]
            sessions.append(
                Session(
                    session_id=session_id,
                    ip=first.ip_or_unknown,
                    user_agent=first.user_agent_or_unknown,
                    entries=[entries[i] for i in run],
                )
            )

        logger.debug(f"Grouped {len(entries)} entries into {len(sessions)} sessions")
        return sessions

    def assign_session_ids(self, entries: Sequence[LogEntry]) -> list[str]:
        """Session id for each entry, aligned with the input order."""
        ids: list[str] = [""] * len(entries)
        for session_id, run in self._partition(entries):
            for i in run:
                ids[i] = session_id
        return ids
