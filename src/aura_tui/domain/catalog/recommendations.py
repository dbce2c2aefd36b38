"""Radio recommendations from the catalog's auto-generated mix for a seed track."""

from loguru import logger

from . import ytdlp
from .models import Track

DEFAULT_RECOMMENDATION_TIMEOUT = 20.0


def mix_url(seed_id: str) -> str:
    return f"https://www.youtube.com/watch?v={seed_id}&list=RD{seed_id}"


def get_recommendations(
    seed_id: str,
    limit: int = 15,
    timeout: float = DEFAULT_RECOMMENDATION_TIMEOUT,
) -> list[Track]:
    """Get tracks related to ``seed_id``.

    The seed itself is excluded and the result is truncated to ``limit``.
    Never raises: timeouts, yt-dlp failures and malformed output all
    resolve to an empty list, since radio is non-critical.
    """
    if not seed_id or limit <= 0:
        return []

    try:
        # +1 because the mix starts with the seed itself
        info = ytdlp.extract_info(
            mix_url(seed_id), timeout, extract_flat=True, playlistend=limit + 1
        )
    except Exception as e:
        logger.warning(f"Recommendation fetch failed for {seed_id}: {e}")
        return []

    if not isinstance(info, dict):
        return []

    tracks = []
    for entry in info.get("entries") or []:
        if not isinstance(entry, dict):
            continue
        track = Track.from_ytdlp_entry(entry)
        if track is None or track.id == seed_id:
            continue
        tracks.append(track)

    logger.debug(f"Got {len(tracks)} recommendations for {seed_id}")
    return tracks[:limit]
