"""
Playlist management for Aura TUI
Functional approach with explicit store passing
"""

import random
import re
import string
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from loguru import logger

from aura_tui.core.store import Store

from ..catalog import ytdlp
from ..catalog.models import Track

PLAYLISTS_KEY = "playlists"
IMPORT_TIMEOUT = 60.0

_PLAYLIST_ID_PATTERNS = [
    re.compile(r"[?&]list=([a-zA-Z0-9_-]+)"),
    re.compile(r"playlist\?list=([a-zA-Z0-9_-]+)"),
]

# Serializes read-modify-write of the playlists document
_write_lock = threading.Lock()


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_playlist_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{_now_ms()}{suffix}"


@dataclass
class Playlist:
    id: str
    name: str
    tracks: list[Track] = field(default_factory=list)
    created_at: int = 0
    updated_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "tracks": [track.to_dict() for track in self.tracks],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Playlist":
        tracks = []
        for item in data.get("tracks") or []:
            try:
                tracks.append(Track.from_dict(item))
            except (KeyError, TypeError):
                logger.warning(f"Skipping malformed track in playlist {data.get('id')}")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            tracks=tracks,
            created_at=int(data.get("created_at") or 0),
            updated_at=int(data.get("updated_at") or 0),
        )


@dataclass
class ImportResult:
    success: bool
    playlist: Optional[Playlist] = None
    error: Optional[str] = None


def _load(store: Store) -> list[Playlist]:
    playlists = []
    for item in store.get(PLAYLISTS_KEY, []) or []:
        try:
            playlists.append(Playlist.from_dict(item))
        except (KeyError, TypeError, ValueError):
            logger.warning(f"Skipping malformed playlist: {item!r}")
    return playlists


def _save(store: Store, playlists: list[Playlist]) -> None:
    store.set(PLAYLISTS_KEY, [playlist.to_dict() for playlist in playlists])


def get_all_playlists(store: Store) -> list[Playlist]:
    """All playlists in creation order."""
    return _load(store)


def get_playlist(store: Store, playlist_id: str) -> Optional[Playlist]:
    for playlist in _load(store):
        if playlist.id == playlist_id:
            return playlist
    return None


def find_playlist_by_name(store: Store, name: str) -> Optional[Playlist]:
    """Case-insensitive lookup by name; first match wins."""
    wanted = name.strip().lower()
    for playlist in _load(store):
        if playlist.name.lower() == wanted:
            return playlist
    return None


def create_playlist(store: Store, name: str, tracks: Optional[list[Track]] = None) -> Playlist:
    """
    Create a new playlist.

    Args:
        store: Persistent store
        name: Playlist name
        tracks: Initial tracks (used by imports)

    Returns:
        The created playlist

    Raises:
        ValueError: If name is empty
    """
    name = name.strip()
    if not name:
        raise ValueError("Playlist name cannot be empty")

    now = _now_ms()
    playlist = Playlist(
        id=_new_playlist_id(),
        name=name,
        tracks=list(tracks or []),
        created_at=now,
        updated_at=now,
    )
    with _write_lock:
        playlists = _load(store)
        playlists.append(playlist)
        _save(store, playlists)

    logger.info(f"Created playlist '{name}' ({playlist.id}) with {len(playlist.tracks)} tracks")
    return playlist


def delete_playlist(store: Store, playlist_id: str) -> bool:
    with _write_lock:
        playlists = _load(store)
        remaining = [p for p in playlists if p.id != playlist_id]
        if len(remaining) == len(playlists):
            return False
        _save(store, remaining)

    logger.info(f"Deleted playlist {playlist_id}")
    return True


def rename_playlist(store: Store, playlist_id: str, new_name: str) -> bool:
    new_name = new_name.strip()
    if not new_name:
        raise ValueError("Playlist name cannot be empty")

    with _write_lock:
        playlists = _load(store)
        for playlist in playlists:
            if playlist.id == playlist_id:
                playlist.name = new_name
                playlist.updated_at = _now_ms()
                _save(store, playlists)
                return True
    return False


def add_track_to_playlist(store: Store, playlist_id: str, track: Track) -> bool:
    """Append a track. Returns False if the playlist is missing or already has it."""
    with _write_lock:
        playlists = _load(store)
        for playlist in playlists:
            if playlist.id != playlist_id:
                continue
            if any(t.id == track.id for t in playlist.tracks):
                return False
            playlist.tracks.append(track)
            playlist.updated_at = _now_ms()
            _save(store, playlists)
            return True
    return False


def remove_track_from_playlist(store: Store, playlist_id: str, track_id: str) -> bool:
    with _write_lock:
        playlists = _load(store)
        for playlist in playlists:
            if playlist.id != playlist_id:
                continue
            kept = [t for t in playlist.tracks if t.id != track_id]
            if len(kept) == len(playlist.tracks):
                return False
            playlist.tracks = kept
            playlist.updated_at = _now_ms()
            _save(store, playlists)
            return True
    return False


def extract_playlist_id(url: str) -> Optional[str]:
    """Pull the playlist ID out of a YouTube or YouTube Music URL."""
    for pattern in _PLAYLIST_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def import_youtube_playlist(
    store: Store, url: str, name: Optional[str] = None, timeout: float = IMPORT_TIMEOUT
) -> ImportResult:
    """
    Import a YouTube playlist as a new local playlist.

    Args:
        store: Persistent store
        url: Playlist URL (must contain a ``list=`` parameter)
        name: Playlist name; defaults to the remote title
        timeout: Seconds allowed for fetching the playlist

    Returns:
        ImportResult; failures are reported in ``error`` rather than raised
    """
    playlist_id = extract_playlist_id(url)
    if not playlist_id:
        return ImportResult(success=False, error="Invalid playlist URL")

    try:
        info = ytdlp.extract_info(
            f"https://www.youtube.com/playlist?list={playlist_id}",
            timeout,
            extract_flat=True,
        )
    except Exception as e:
        logger.warning(f"Playlist import failed for {playlist_id}: {e}")
        return ImportResult(success=False, error=str(e) or "Failed to import playlist")

    entries = (info or {}).get("entries") or []
    tracks = [
        track
        for track in (Track.from_ytdlp_entry(e) for e in entries if isinstance(e, dict))
        if track is not None
    ]
    if not tracks:
        return ImportResult(
            success=False, error="Could not fetch playlist or playlist is empty"
        )

    title = name or (info or {}).get("title") or "Imported Playlist"
    playlist = create_playlist(store, title, tracks)
    return ImportResult(success=True, playlist=playlist)
