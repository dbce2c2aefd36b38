"""
Playback command handlers for Aura TUI.

Handles: search, play, pause, resume, toggle, stop, next, prev, seek, volume,
mute, shuffle, repeat, autoplay, adblock, status
"""

from typing import List, Optional, Tuple

from rich.table import Table

from aura_tui.context import AppContext, run_background
from aura_tui.core.output import get_console, log
from aura_tui.domain import catalog
from aura_tui.domain.catalog.models import Track
from aura_tui.domain.playback import PlayerSnapshot, RepeatMode
from aura_tui.utils.parsers import parse_index, parse_signed_number

REPEAT_ICONS = {RepeatMode.OFF: "", RepeatMode.ALL: "🔁", RepeatMode.ONE: "🔂"}


def format_time(seconds: float) -> str:
    seconds = max(0, int(seconds))
    minutes, seconds = divmod(seconds, 60)
    return f"{minutes}:{seconds:02d}"


def status_line(snapshot: PlayerSnapshot) -> str:
    """One-line now-playing summary for the prompt toolbar."""
    if snapshot.error:
        return f"⚠ {snapshot.error}"

    track = snapshot.current_track
    if track is None:
        return "Nothing playing" + (" (no audio engine)" if snapshot.degraded else "")

    if snapshot.is_loading or snapshot.is_transitioning:
        state = "⏳"
    elif snapshot.is_playing:
        state = "▶"
    else:
        state = "⏸"

    flags = [
        "🔀" if snapshot.shuffle else "",
        REPEAT_ICONS[snapshot.repeat_mode],
        "📻" if snapshot.radio_mode else "",
        "🔇" if snapshot.muted else "",
    ]
    timing = f"{format_time(snapshot.position)}/{format_time(snapshot.duration)}"
    extra = " ".join(flag for flag in flags if flag)
    return (
        f"{state} {track.display_name}  {timing}  vol {snapshot.volume}"
        f"  queue {len(snapshot.queue)}"
        + (f"  {extra}" if extra else "")
    )


def print_tracks(title: str, tracks: List[Track], ctx: Optional[AppContext] = None) -> None:
    """Render a numbered track table, marking tracks the ad filter would skip."""
    table = Table(title=title, show_lines=False, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Title")
    table.add_column("Artist", style="magenta")
    table.add_column("Time", justify="right")

    ad_filter = ctx.orchestrator.ad_filter if ctx else None
    for number, track in enumerate(tracks, 1):
        title_text = track.title
        if ad_filter is not None and ad_filter.is_ad(track):
            title_text += " [ad]"
        table.add_row(str(number), title_text, track.artist, track.duration_str)

    (ctx.console if ctx and ctx.console else get_console()).print(table)


def _search(ctx: AppContext, query: str) -> Optional[List[Track]]:
    try:
        return catalog.search(
            query,
            limit=ctx.config.catalog.search_limit,
            timeout=ctx.config.catalog.search_timeout,
        )
    except catalog.CatalogError as e:
        log(f"❌ Search failed: {e}", level="error")
        ctx.orchestrator.report_error(f"Search failed: {query}")
        return None


def handle_search_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    """Search the catalog and remember the results for ``play <n>``."""
    if not args:
        log("Usage: search <query>", level="warning")
        return ctx, True

    query = " ".join(args)
    log(f"🔍 Searching for: {query}")
    tracks = _search(ctx, query)
    if tracks is None:
        return ctx, True
    if not tracks:
        log("No results", level="warning")
        return ctx.with_results([]), True

    print_tracks(f"Results for '{query}'", tracks, ctx)
    log("Use 'play <n>' to play or 'queue add <n>' to queue a result", level="debug")
    return ctx.with_results(tracks), True


def start_track(ctx: AppContext, track: Track) -> None:
    """Hand a track to the orchestrator without blocking the prompt."""
    if ctx.orchestrator.ad_filter.is_ad(track):
        log(f"⏭ Skipping ad: {track.title}", level="warning")
    else:
        log(f"▶ {track.display_name}", level="success")
    run_background(ctx.orchestrator.play_song, track)


def handle_play_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    """
    play            Toggle play/pause (or replay the stopped track)
    play <n>        Play result n of the last search
    play <query>    Search and play the best match
    """
    if not args:
        if ctx.orchestrator.snapshot().current_track is None:
            log("Nothing to play. Try 'play <query>'", level="warning")
        else:
            ctx.orchestrator.toggle_play()
        return ctx, True

    if len(args) == 1 and args[0].isdigit():
        index = parse_index(args[0], len(ctx.last_results))
        if index is None:
            log(f"No search result #{args[0]}", level="error")
            return ctx, True
        start_track(ctx, ctx.last_results[index])
        return ctx, True

    query = " ".join(args)
    tracks = _search(ctx, query)
    if not tracks:
        if tracks is not None:
            log(f"No results for: {query}", level="warning")
        return ctx, True

    playable = ctx.orchestrator.ad_filter.filter_tracks(tracks)
    if not playable:
        log("Only ads found for that query", level="warning")
        return ctx.with_results(tracks), True

    start_track(ctx, playable[0])
    return ctx.with_results(tracks), True


def handle_pause_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    ctx.orchestrator.pause()
    log("⏸ Paused")
    return ctx, True


def handle_resume_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    ctx.orchestrator.resume()
    log("▶ Resumed")
    return ctx, True


def handle_toggle_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    ctx.orchestrator.toggle_play()
    return ctx, True


def handle_stop_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    ctx.orchestrator.stop()
    log("■ Stopped")
    return ctx, True


def handle_next_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    if not ctx.orchestrator.snapshot().queue:
        log("Queue is empty", level="warning")
        return ctx, True
    run_background(ctx.orchestrator.next_track)
    log("⏭ Next")
    return ctx, True


def handle_prev_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    if not ctx.orchestrator.snapshot().history:
        log("No previous track", level="warning")
        return ctx, True
    run_background(ctx.orchestrator.prev_track)
    log("⏮ Previous")
    return ctx, True


def handle_seek_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    """seek <+/-seconds>"""
    seconds, _ = parse_signed_number(args[0]) if args else (None, False)
    if seconds is None:
        log("Usage: seek <+/-seconds>", level="warning")
        return ctx, True
    ctx.orchestrator.seek(seconds)
    return ctx, True


def handle_volume_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    """volume [n|+n|-n]"""
    if not args:
        log(f"🔊 Volume: {ctx.orchestrator.snapshot().volume}")
        return ctx, True

    value, relative = parse_signed_number(args[0])
    if value is None:
        log("Usage: volume <0-100|+n|-n>", level="warning")
        return ctx, True

    if relative:
        volume = ctx.orchestrator.change_volume(int(value))
    else:
        volume = ctx.orchestrator.set_volume(int(value))
    log(f"🔊 Volume: {volume}")
    return ctx, True


def handle_mute_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    muted = ctx.orchestrator.toggle_mute()
    log("🔇 Muted" if muted else "🔊 Unmuted")
    return ctx, True


def handle_shuffle_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    shuffle = ctx.orchestrator.toggle_shuffle()
    log(f"🔀 Shuffle {'on' if shuffle else 'off'}")
    return ctx, True


def handle_repeat_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    mode = ctx.orchestrator.cycle_repeat_mode()
    log(f"🔁 Repeat: {mode.value}")
    return ctx, True


def handle_autoplay_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    autoplay = ctx.orchestrator.toggle_autoplay()
    log(f"📻 Autoplay {'on' if autoplay else 'off'}")
    return ctx, True


def handle_adblock_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    ad_filter = ctx.orchestrator.ad_filter
    ad_filter.enabled = not ad_filter.enabled
    log(f"🛡 Ad blocking {'on' if ad_filter.enabled else 'off'}")
    return ctx, True


def handle_status_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    snapshot = ctx.orchestrator.snapshot()
    console = ctx.console or get_console()

    console.print(status_line(snapshot))
    console.print(
        f"  shuffle: {'on' if snapshot.shuffle else 'off'}"
        f" | repeat: {snapshot.repeat_mode.value}"
        f" | autoplay: {'on' if snapshot.autoplay else 'off'}"
        f" | radio: {'on' if snapshot.radio_mode else 'off'}"
        f" | ad block: {'on' if ctx.orchestrator.ad_filter.enabled else 'off'}",
        style="dim",
    )

    stats = ctx.cache.get_stats()
    console.print(
        f"  cache: {stats['ready']} ready, {stats['downloading']} downloading,"
        f" {stats['error']} failed",
        style="dim",
    )
    if snapshot.degraded:
        console.print("  mpv is not running - playback is silent", style="yellow")
    return ctx, True
