"""
Playlist command handlers for Aura TUI.

Handles: playlist list/new/delete/rename/show/play/add/remove/import
"""

from typing import List, Optional, Tuple

from rich.table import Table

from aura_tui.context import AppContext, run_background
from aura_tui.core.output import get_console, log
from aura_tui.domain import playlists
from aura_tui.utils.parsers import parse_index

from .playback import print_tracks


def _resolve_playlist(ctx: AppContext, name: str) -> Optional[playlists.Playlist]:
    playlist = playlists.find_playlist_by_name(ctx.store, name)
    if playlist is None:
        log(f"❌ Playlist '{name}' not found", level="error")
    return playlist


def handle_playlist_list_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    all_playlists = playlists.get_all_playlists(ctx.store)
    if not all_playlists:
        log("No playlists yet. Create one with: playlist new <name>", level="warning")
        return ctx, True

    active_id = ctx.orchestrator.snapshot().current_playlist_id
    table = Table(title="Playlists", header_style="bold cyan")
    table.add_column("Name")
    table.add_column("Tracks", justify="right")
    for playlist in all_playlists:
        marker = " ▶" if playlist.id == active_id else ""
        table.add_row(playlist.name + marker, str(len(playlist.tracks)))
    (ctx.console or get_console()).print(table)
    return ctx, True


def handle_playlist_new_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    name = " ".join(args).strip()
    if not name:
        log("Usage: playlist new <name>", level="warning")
        return ctx, True

    if playlists.find_playlist_by_name(ctx.store, name):
        log(f"❌ Playlist '{name}' already exists", level="error")
        return ctx, True

    playlists.create_playlist(ctx.store, name)
    log(f"✅ Created playlist: {name}", level="success")
    return ctx, True


def handle_playlist_delete_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    name = " ".join(args).strip()
    playlist = _resolve_playlist(ctx, name) if name else None
    if playlist is None:
        if not name:
            log("Usage: playlist delete <name>", level="warning")
        return ctx, True

    if playlists.delete_playlist(ctx.store, playlist.id):
        ctx.orchestrator.forget_playlist(playlist.id)
        log(f"🗑 Deleted playlist: {playlist.name}", level="success")
    return ctx, True


def handle_playlist_rename_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    """playlist rename <old> <new> - quote names containing spaces"""
    if len(args) != 2:
        log('Usage: playlist rename "old name" "new name"', level="warning")
        return ctx, True

    playlist = _resolve_playlist(ctx, args[0])
    if playlist is None:
        return ctx, True

    try:
        playlists.rename_playlist(ctx.store, playlist.id, args[1])
    except ValueError as e:
        log(f"❌ {e}", level="error")
        return ctx, True

    log(f"✅ Renamed '{args[0]}' to '{args[1]}'", level="success")
    return ctx, True


def handle_playlist_show_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    playlist = _resolve_playlist(ctx, " ".join(args))
    if playlist is None:
        return ctx, True

    if not playlist.tracks:
        log(f"Playlist '{playlist.name}' is empty", level="warning")
        return ctx, True

    print_tracks(playlist.name, playlist.tracks, ctx)
    # Numbers shown can be used with play/queue add
    return ctx.with_results(playlist.tracks), True


def handle_playlist_play_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    """playlist play <name> [start]"""
    if not args:
        log("Usage: playlist play <name> [start position]", level="warning")
        return ctx, True

    start = 0
    if len(args) > 1 and args[-1].isdigit():
        name_parts, start_arg = args[:-1], args[-1]
    else:
        name_parts, start_arg = args, None

    playlist = _resolve_playlist(ctx, " ".join(name_parts))
    if playlist is None:
        return ctx, True
    if not playlist.tracks:
        log(f"Playlist '{playlist.name}' is empty", level="warning")
        return ctx, True

    if start_arg is not None:
        index = parse_index(start_arg, len(playlist.tracks))
        if index is None:
            log(f"Start must be between 1 and {len(playlist.tracks)}", level="error")
            return ctx, True
        start = index

    log(f"▶ Playing playlist: {playlist.name}", level="success")
    run_background(ctx.orchestrator.play_playlist, playlist.tracks, start, playlist.id)
    return ctx, True


def handle_playlist_add_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    """playlist add <name> - add the current track"""
    track = ctx.orchestrator.snapshot().current_track
    if track is None:
        log("❌ Nothing is playing", level="error")
        return ctx, True

    playlist = _resolve_playlist(ctx, " ".join(args))
    if playlist is None:
        return ctx, True

    if playlists.add_track_to_playlist(ctx.store, playlist.id, track):
        log(f"✅ Added to {playlist.name}: {track.display_name}", level="success")
    else:
        log(f"Already in {playlist.name}: {track.display_name}", level="warning")
    return ctx, True


def handle_playlist_remove_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    """playlist remove <name> <position>"""
    if len(args) < 2:
        log("Usage: playlist remove <name> <position>", level="warning")
        return ctx, True

    playlist = _resolve_playlist(ctx, " ".join(args[:-1]))
    if playlist is None:
        return ctx, True

    index = parse_index(args[-1], len(playlist.tracks))
    if index is None:
        log(f"Position must be between 1 and {len(playlist.tracks)}", level="error")
        return ctx, True

    track = playlist.tracks[index]
    playlists.remove_track_from_playlist(ctx.store, playlist.id, track.id)
    log(f"➖ Removed from {playlist.name}: {track.display_name}")
    return ctx, True


def handle_playlist_import_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    """playlist import <url> [name]"""
    if not args:
        log("Usage: playlist import <url> [name]", level="warning")
        return ctx, True

    url, name = args[0], " ".join(args[1:]) or None
    log(f"📥 Importing {url}...")
    result = playlists.import_youtube_playlist(ctx.store, url, name)

    if not result.success:
        log(f"❌ Import failed: {result.error}", level="error")
        return ctx, True

    log(
        f"✅ Imported '{result.playlist.name}' ({len(result.playlist.tracks)} tracks)",
        level="success",
    )
    return ctx, True
