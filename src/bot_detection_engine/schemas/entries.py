"""
Log entry records consumed and produced by the detection engine.

``LogEntry`` is the normalized request shape handed over by whatever layer
parses provider logs. ``DetectionLogEntry`` is the annotated row the pipeline
returns: the original entry plus fingerprint, session id and bot verdict.
"""

import hashlib
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Optional

from ..exceptions import InvalidLogEntryError

UNKNOWN = "unknown"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp value into a UTC timezone-aware datetime.

    Supports:
    - datetime objects (assumed UTC if naive)
    - ISO 8601 formatted strings, including a trailing ``Z``
    - Unix timestamps in seconds, milliseconds, microseconds or nanoseconds
      (int, float or numeric string)

    Returns:
        Parsed datetime, or None if the value cannot be interpreted
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return _to_utc(value)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return _to_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            pass
        if not _is_number(text):
            # Fallback for fractions other than 3 or 6 digits on older Pythons
            from dateutil import parser

            try:
                return _to_utc(parser.isoparse(text))
            except (ValueError, OverflowError):
                return None

    try:
        if isinstance(value, str):
            ts = float(value)
        elif isinstance(value, (int, float)):
            ts = float(value)
        else:
            return None

        # Detect unit by magnitude
        if ts > 1e18:
            ts = ts / 1e9
        elif ts > 1e15:
            ts = ts / 1e6
        elif ts > 1e12:
            ts = ts / 1e3

        return datetime.fromtimestamp(ts, tz=timezone.utc)
    except (ValueError, OSError, OverflowError):
        return None


def _to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _is_number(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text else None


# Alternate field names accepted by LogEntry.from_dict
_FIELD_ALIASES = {
    "ip": ("ip", "client_ip", "clientIp", "ip_address"),
    "user_agent": ("user_agent", "userAgent", "ua"),
    "path": ("path", "url", "uri"),
    "status_code": ("status_code", "statusCode", "status"),
    "bytes_transferred": (
        "bytes_transferred",
        "bytesTransferred",
        "response_bytes",
        "bytes",
    ),
    "response_time_ms": ("response_time_ms", "responseTime", "response_time"),
    "referer": ("referer", "referrer"),
}


def _pick(data: dict[str, Any], name: str) -> Any:
    for key in _FIELD_ALIASES.get(name, (name,)):
        if key in data and data[key] is not None:
            return data[key]
    return None


@dataclass(frozen=True)
class LogEntry:
    """
    One HTTP request as seen by the engine.

    Only ``timestamp`` is required. A missing IP or user agent is treated as
    ``"unknown"`` wherever entries are grouped; missing bytes count as 0.
    """

    timestamp: datetime
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    path: Optional[str] = None
    method: Optional[str] = None
    status_code: Optional[int] = None
    bytes_transferred: int = 0
    response_time_ms: Optional[float] = None
    referer: Optional[str] = None

    @property
    def ip_or_unknown(self) -> str:
        return self.ip or UNKNOWN

    @property
    def user_agent_or_unknown(self) -> str:
        return self.user_agent or UNKNOWN

    @property
    def identity(self) -> str:
        """Composite ``ip|user_agent`` grouping key."""
        return f"{self.ip_or_unknown}|{self.user_agent_or_unknown}"

    @property
    def timestamp_ms(self) -> float:
        """Milliseconds since the Unix epoch."""
        return self.timestamp.timestamp() * 1000.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "ip": self.ip,
            "user_agent": self.user_agent,
            "path": self.path,
            "method": self.method,
            "status_code": self.status_code,
            "bytes_transferred": self.bytes_transferred,
            "response_time_ms": self.response_time_ms,
            "referer": self.referer,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LogEntry":
        """
        Create a LogEntry from a loosely-shaped record.

        Accepts snake_case and camelCase field names. Numeric fields that
        cannot be parsed fall back to their defaults.

        Raises:
            InvalidLogEntryError: If the timestamp is missing or unparseable
        """
        raw_ts = data.get("timestamp")
        if raw_ts is None:
            raise InvalidLogEntryError("Missing required field", field="timestamp")

        timestamp = parse_timestamp(raw_ts)
        if timestamp is None:
            raise InvalidLogEntryError(
                "Invalid timestamp format", field="timestamp", value=raw_ts
            )

        bytes_transferred = _optional_int(_pick(data, "bytes_transferred")) or 0
        response_time = _optional_float(_pick(data, "response_time_ms"))

        return cls(
            timestamp=timestamp,
            ip=_optional_str(_pick(data, "ip")),
            user_agent=_optional_str(_pick(data, "user_agent")),
            path=_optional_str(_pick(data, "path")),
            method=_optional_str(data.get("method")),
            status_code=_optional_int(_pick(data, "status_code")),
            bytes_transferred=max(0, bytes_transferred),
            response_time_ms=(
                max(0.0, response_time) if response_time is not None else None
            ),
            referer=_optional_str(_pick(data, "referer")),
        )


def compute_fingerprint(entry: LogEntry, identity_key: str) -> str:
    """
    Compute a stable SHA-256 fingerprint for a request row.

    The timestamp is truncated to the second so that re-ingesting the same
    log with sub-second jitter produces the same fingerprint.
    """
    second = entry.timestamp.astimezone(timezone.utc).replace(microsecond=0)
    parts = [
        identity_key,
        second.isoformat(),
        entry.method or "",
        entry.path or "",
        str(entry.status_code or ""),
        str(entry.bytes_transferred or 0),
        (entry.user_agent or "")[:200],
        entry.ip or "",
    ]
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()


@dataclass
class DetectionLogEntry:
    """
    An entry after normalization and annotation by the pipeline.

    Attributes:
        entry: The original request
        identity_key: Site or tenant the batch belongs to
        fingerprint: Stable hash of the request (see ``compute_fingerprint``)
        session_id: Gap-split session the request belongs to
        is_bot: Whether a surviving detection claimed this row's session
        bot_name: Name from the detection, if any
        bot_category: Subcategory (or category) from the detection, if any
    """

    entry: LogEntry
    identity_key: str
    fingerprint: str
    session_id: Optional[str] = None
    is_bot: bool = False
    bot_name: Optional[str] = None
    bot_category: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_entry(cls, entry: LogEntry, identity_key: str) -> "DetectionLogEntry":
        return cls(
            entry=entry,
            identity_key=identity_key,
            fingerprint=compute_fingerprint(entry, identity_key),
        )

    def mark_bot(self, bot_name: Optional[str], bot_category: Optional[str]) -> None:
        self.is_bot = True
        self.bot_name = bot_name
        self.bot_category = bot_category

    def copy(self) -> "DetectionLogEntry":
        return replace(self, extra=dict(self.extra))

    def to_dict(self) -> dict[str, Any]:
        """Flatten into a single row for serialization."""
        row = self.entry.to_dict()
        row.update(
            {
                "identity_key": self.identity_key,
                "fingerprint": self.fingerprint,
                "session_id": self.session_id,
                "is_bot": self.is_bot,
                "bot_name": self.bot_name,
                "bot_category": self.bot_category,
            }
        )
        if self.extra:
            row["extra"] = dict(self.extra)
        return row
