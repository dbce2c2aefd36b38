"""Playlists domain - locally stored playlists and YouTube playlist import."""

from .crud import (
    ImportResult,
    Playlist,
    add_track_to_playlist,
    create_playlist,
    delete_playlist,
    extract_playlist_id,
    find_playlist_by_name,
    get_all_playlists,
    get_playlist,
    import_youtube_playlist,
    remove_track_from_playlist,
    rename_playlist,
)

__all__ = [
    "ImportResult",
    "Playlist",
    "add_track_to_playlist",
    "create_playlist",
    "delete_playlist",
    "extract_playlist_id",
    "find_playlist_by_name",
    "get_all_playlists",
    "get_playlist",
    "import_youtube_playlist",
    "remove_track_from_playlist",
    "rename_playlist",
]
