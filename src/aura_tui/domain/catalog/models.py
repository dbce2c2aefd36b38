"""
Catalog domain models.

Contains the immutable track value type shared by search, playback and playlists.
"""

import dataclasses
import math
from dataclasses import dataclass
from typing import Any, Optional


def parse_duration(value: Any) -> int:
    """Coerce a duration to whole seconds.

    Finite positive numbers are floored; anything else (None, NaN, negative,
    unparseable strings) becomes 0, meaning "unknown".
    """
    try:
        num = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(num) or num <= 0:
        return 0
    return int(math.floor(num))


@dataclass(frozen=True)
class Track:
    """A catalog track.

    ``id`` is the opaque catalog identifier (a YouTube video ID).
    ``duration`` is in whole seconds, 0 when unknown; it may be corrected
    after the audio engine inspects the real stream (see ``with_duration``).
    """

    id: str
    title: str
    artist: str
    album: Optional[str] = None
    duration: int = 0
    thumbnail: Optional[str] = None

    @property
    def display_name(self) -> str:
        return f"{self.artist} - {self.title}"

    @property
    def duration_str(self) -> str:
        if not self.duration:
            return "--:--"
        minutes, seconds = divmod(self.duration, 60)
        return f"{minutes}:{seconds:02d}"

    def with_duration(self, duration: float) -> "Track":
        return dataclasses.replace(self, duration=parse_duration(duration))

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Track":
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "Unknown Title",
            artist=data.get("artist") or "Unknown Artist",
            album=data.get("album"),
            duration=parse_duration(data.get("duration")),
            thumbnail=data.get("thumbnail"),
        )

    @classmethod
    def from_ytdlp_entry(cls, entry: dict[str, Any]) -> Optional["Track"]:
        """Build a track from a yt-dlp info dict or flat playlist entry.

        Returns None for entries without an identifier.
        """
        track_id = entry.get("id") or entry.get("url")
        if not track_id:
            return None

        thumbnail = entry.get("thumbnail")
        if not thumbnail:
            thumbnails = entry.get("thumbnails") or []
            if thumbnails:
                thumbnail = thumbnails[0].get("url")

        return cls(
            id=str(track_id),
            title=entry.get("title") or "Unknown Title",
            artist=entry.get("channel") or entry.get("uploader") or "Unknown Artist",
            album=entry.get("album"),
            duration=parse_duration(entry.get("duration")),
            thumbnail=thumbnail,
        )
