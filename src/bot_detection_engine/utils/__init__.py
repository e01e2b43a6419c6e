"""Utility functions for bot detection."""

from .bot_classifier import LegacyBotMatch, detect_bot, get_bot_names_by_category
from .url_utils import (
    file_extension,
    is_homepage,
    is_static_asset,
    path_depth,
    query_params,
)

__all__ = [
    # Legacy bot detection
    "LegacyBotMatch",
    "detect_bot",
    "get_bot_names_by_category",
    # URL utilities
    "path_depth",
    "query_params",
    "file_extension",
    "is_static_asset",
    "is_homepage",
]
