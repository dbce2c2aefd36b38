"""Catalog search using yt-dlp's YouTube search extractor."""

import yt_dlp
from loguru import logger

from . import ytdlp
from .exceptions import CatalogError, SearchError
from .models import Track

DEFAULT_SEARCH_TIMEOUT = 15.0


def search(
    query: str, limit: int = 15, timeout: float = DEFAULT_SEARCH_TIMEOUT
) -> list[Track]:
    """Search the catalog for music tracks.

    Results are best-effort and may hold fewer than ``limit`` tracks.

    Failures raise ``SearchError`` rather than returning an empty list so the
    caller can tell "no matches" from "search broken". Callers never let it
    escape to the user: the ``search``/``play`` commands catch it, keep the
    previous results and show a transient error.

    Args:
        query: Free-text search query
        limit: Maximum number of results
        timeout: Overall deadline in seconds

    Returns:
        List of tracks in catalog relevance order

    Raises:
        SearchError: yt-dlp failed or timed out
    """
    query = query.strip()
    if not query or limit <= 0:
        return []

    search_url = f"ytsearch{limit}:{query} music"

    try:
        info = ytdlp.extract_info(search_url, timeout, extract_flat=True)
    except yt_dlp.utils.DownloadError as e:
        raise SearchError(f"Search failed: {e}") from e
    except CatalogError as e:
        raise SearchError(str(e)) from e

    if not info:
        return []

    tracks = []
    for entry in info.get("entries") or []:
        if not entry:
            continue  # Unavailable videos come back as None
        track = Track.from_ytdlp_entry(entry)
        if track:
            tracks.append(track)

    logger.debug(f"Search {query!r} returned {len(tracks)} tracks")
    return tracks[:limit]

