"""
IPv4 CIDR containment.

Ranges are parsed once into integer ``(start, end)`` bounds and memoised per
CIDR string. Malformed addresses or ranges never raise; they simply do not
match. IPv6 is not supported and is always reported as outside a range.
"""

import ipaddress
import logging
import threading
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


def ip_to_int(ip: Optional[str]) -> Optional[int]:
    """
    Convert a dotted IPv4 address to an integer.

    Returns:
        Integer value, or None for IPv6 or malformed input
    """
    if not ip:
        return None
    try:
        return int(ipaddress.IPv4Address(ip.strip()))
    except ValueError:
        return None


def parse_cidr(cidr: str) -> Optional[tuple[int, int]]:
    """
    Parse ``a.b.c.d/prefix`` into inclusive integer bounds.

    Host bits are masked off, so ``66.249.64.50/19`` covers the same range as
    ``66.249.64.0/19``.

    Returns:
        (start, end), or None if the address or prefix (0-32) is invalid
    """
    if not isinstance(cidr, str) or "/" not in cidr:
        return None
    address, _, prefix_text = cidr.strip().partition("/")
    try:
        prefix = int(prefix_text)
    except ValueError:
        return None
    if not 0 <= prefix <= 32:
        return None
    if ip_to_int(address) is None:
        return None

    network = ipaddress.IPv4Network(f"{address}/{prefix}", strict=False)
    return int(network.network_address), int(network.broadcast_address)


class CidrCache:
    """
    Memoised CIDR parsing shared by signature lookups.

    Cache entries are derived only from their key, so concurrent first writes
    are harmless.
    """

    def __init__(self):
        self._ranges: dict[str, Optional[tuple[int, int]]] = {}
        self._lock = threading.Lock()

    def get(self, cidr: str) -> Optional[tuple[int, int]]:
        try:
            return self._ranges[cidr]
        except KeyError:
            pass

        bounds = parse_cidr(cidr)
        if bounds is None:
            logger.debug(f"Ignoring invalid CIDR range {cidr!r}")
        with self._lock:
            self._ranges[cidr] = bounds
        return bounds

    def contains(self, ip: Optional[str], cidrs: Iterable[str]) -> bool:
        """True if ``ip`` falls inside any of ``cidrs``."""
        value = ip_to_int(ip)
        if value is None:
            return False
        for cidr in cidrs:
            bounds = self.get(cidr)
            if bounds and bounds[0] <= value <= bounds[1]:
                return True
        return False

    def clear(self) -> None:
        with self._lock:
            self._ranges.clear()

    def __len__(self) -> int:
        return len(self._ranges)


def ip_in_ranges(ip: Optional[str], cidrs: Iterable[str]) -> bool:
    """Uncached convenience check."""
    return CidrCache().contains(ip, cidrs)
