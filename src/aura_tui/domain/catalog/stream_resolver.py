"""Stream URL resolution for catalog tracks using yt-dlp.

Extracts a direct best-audio URL for a track ID with short-lived caching,
since stream URLs expire.
"""

import threading
from time import time
from typing import Optional

import yt_dlp
from loguru import logger

from . import ytdlp
from .exceptions import CatalogError, ResolutionError

# Stream URLs expire after a few hours; 10 minutes keeps well clear of that
CACHE_TTL_SECONDS = 600
DEFAULT_RESOLVE_TIMEOUT = 20.0

_stream_cache: dict[str, tuple[str, float]] = {}  # track_id -> (stream_url, expires_at)
_cache_lock = threading.Lock()


def fallback_url(track_id: str) -> str:
    """Generic catalog page URL; mpv resolves it through its own yt-dlp hook."""
    return ytdlp.music_url(track_id)


def _pick_stream_url(info: dict) -> Optional[str]:
    stream_url = info.get("url")
    if stream_url:
        return stream_url

    # Some extractors put URLs only in the formats list
    formats = info.get("formats") or []
    audio_formats = [
        f for f in formats if f.get("acodec") not in (None, "none") and f.get("url")
    ]
    if audio_formats:
        return audio_formats[-1]["url"]
    if formats and formats[-1].get("url"):
        return formats[-1]["url"]
    return None


def resolve_stream_url(track_id: str, timeout: float = DEFAULT_RESOLVE_TIMEOUT) -> str:
    """Resolve a track ID to a direct, playable audio stream URL.

    Args:
        track_id: Catalog track identifier
        timeout: Overall deadline in seconds

    Returns:
        Direct stream URL

    Raises:
        ResolutionError: No stream URL could be obtained
    """
    if not track_id:
        raise ResolutionError(track_id, "Empty track id")

    with _cache_lock:
        cached = _stream_cache.get(track_id)
        if cached:
            stream_url, expires_at = cached
            if time() < expires_at:
                logger.debug(f"Stream URL cache hit for {track_id}")
                return stream_url
            del _stream_cache[track_id]

    try:
        info = ytdlp.extract_info(
            ytdlp.music_url(track_id), timeout, format="bestaudio/best"
        )
    except yt_dlp.utils.DownloadError as e:
        raise ResolutionError(track_id, f"yt-dlp error for {track_id}: {e}") from e
    except CatalogError as e:
        raise ResolutionError(track_id, str(e)) from e

    if not info:
        raise ResolutionError(track_id, f"yt-dlp returned no info for {track_id}")

    stream_url = _pick_stream_url(info)
    if not stream_url:
        raise ResolutionError(track_id, f"No stream URL in yt-dlp response for {track_id}")

    prune_expired_cache()
    with _cache_lock:
        _stream_cache[track_id] = (stream_url, time() + CACHE_TTL_SECONDS)

    logger.debug(f"Resolved stream URL for {track_id}")
    return stream_url


def clear_stream_cache() -> None:
    """Clear the stream URL cache."""
    with _cache_lock:
        _stream_cache.clear()
    logger.debug("Stream URL cache cleared")


def prune_expired_cache() -> int:
    """Remove expired entries from cache.

    Returns:
        Number of entries removed
    """
    now = time()
    with _cache_lock:
        expired_keys = [k for k, (_, exp) in _stream_cache.items() if exp <= now]
        for key in expired_keys:
            del _stream_cache[key]

    if expired_keys:
        logger.debug(f"Pruned {len(expired_keys)} expired stream URL cache entries")

    return len(expired_keys)
