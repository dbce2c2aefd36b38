"""Catalog domain - search, stream resolution and recommendations via yt-dlp.

This domain handles:
- Track model shared across the application
- Catalog search
- Direct stream URL resolution with short-lived caching
- Radio recommendations from auto-generated mixes
"""

from .exceptions import (
    CatalogError,
    CatalogTimeoutError,
    ResolutionError,
    SearchError,
)
from .models import Track, parse_duration
from .recommendations import get_recommendations
from .search import search
from .stream_resolver import clear_stream_cache, fallback_url, resolve_stream_url
from .ytdlp import is_ytdlp_available

__all__ = [
    "CatalogError",
    "CatalogTimeoutError",
    "ResolutionError",
    "SearchError",
    "Track",
    "parse_duration",
    "get_recommendations",
    "search",
    "clear_stream_cache",
    "fallback_url",
    "resolve_stream_url",
    "is_ytdlp_available",
]
