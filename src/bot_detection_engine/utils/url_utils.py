"""
URL path helpers.

Small helpers for reading request paths from access logs: depth, query
parameters, file extension and static-asset detection.
"""

import re
from typing import Optional
from urllib.parse import parse_qsl, urlsplit

from ..config.constants import (
    HOMEPAGE_PATHS,
    STATIC_ASSET_DIRECTORIES,
    STATIC_ASSET_PATTERN,
)

_EXTENSION_RE = re.compile(r"\.([a-z0-9]+)$", re.IGNORECASE)
_STATIC_ASSET_RE = re.compile(STATIC_ASSET_PATTERN, re.IGNORECASE)


def path_depth(path: str) -> int:
    """
    Count the slashes in a request path.

    Examples:
        >>> path_depth("/")
        1
        >>> path_depth("/blog/2024/post")
        3
    """
    return path.count("/")


def query_params(path: str) -> list[tuple[str, str]]:
    """
    Extract query parameters from a request path, keeping blank values.

    Examples:
        >>> query_params("/search?q=bots&page=2")
        [('q', 'bots'), ('page', '2')]
        >>> query_params("/about")
        []
    """
    query = urlsplit(path).query
    if not query:
        return []
    return parse_qsl(query, keep_blank_values=True)


def file_extension(path: str) -> Optional[str]:
    """
    Lower-cased trailing extension of a path, if any.

    The whole path is inspected, so an extension followed by a query string
    does not count.

    Examples:
        >>> file_extension("/feed.XML")
        'xml'
        >>> file_extension("/feed.xml?x=1") is None
        True
    """
    match = _EXTENSION_RE.search(path)
    return match.group(1).lower() if match else None


def is_static_asset(path: str) -> bool:
    """True for stylesheet, script, image and font requests."""
    if _STATIC_ASSET_RE.search(path):
        return True
    return any(directory in path for directory in STATIC_ASSET_DIRECTORIES)


def is_homepage(path: Optional[str]) -> bool:
    return (path or "") in HOMEPAGE_PATHS
