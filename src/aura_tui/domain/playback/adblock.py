"""
Heuristic ad detection for catalog tracks.

Flags a track as an ad when it is very short (under 6 seconds), or short
(under 15 seconds) with an ad-related word in the title. This is a heuristic:
legitimate sub-6-second tracks are flagged too.
"""

import re
from typing import Iterable

from ..catalog.models import Track

SHORT_CLIP_SECONDS = 15
CERTAIN_AD_SECONDS = 6

AD_KEYWORDS = re.compile(
    r"\b(ad|ads|advert|advertisement|commercial|sponsored|promo|promoted)\b",
    re.IGNORECASE,
)


def is_ad(track: Track) -> bool:
    """Return True if the track looks like an ad."""
    duration = track.duration or 0

    if duration < SHORT_CLIP_SECONDS and AD_KEYWORDS.search(track.title or ""):
        return True

    return 0 < duration < CERTAIN_AD_SECONDS


class AdFilter:
    """Switchable wrapper around ``is_ad``."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def is_ad(self, track: Track) -> bool:
        return self.enabled and is_ad(track)

    def filter_tracks(self, tracks: Iterable[Track]) -> list[Track]:
        """Drop ad-like tracks from a result list."""
        return [t for t in tracks if not self.is_ad(t)]
