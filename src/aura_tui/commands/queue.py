"""
Queue command handlers for Aura TUI.

Handles: queue (show/add/remove/move/clear/play), history
"""

from typing import List, Tuple

from aura_tui.context import AppContext, run_background
from aura_tui.core.output import log
from aura_tui.utils.parsers import parse_index

from .playback import print_tracks


def handle_queue_show_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    snapshot = ctx.orchestrator.snapshot()
    if not snapshot.queue:
        log("Queue is empty", level="warning")
        return ctx, True

    title = "Queue (radio)" if snapshot.radio_mode else "Queue"
    print_tracks(title, list(snapshot.queue), ctx)
    return ctx, True


def handle_queue_add_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    """queue add <n>... - queue results from the last search"""
    if not args:
        log("Usage: queue add <result number>...", level="warning")
        return ctx, True

    for value in args:
        index = parse_index(value, len(ctx.last_results))
        if index is None:
            log(f"No search result #{value}", level="error")
            continue
        track = ctx.last_results[index]
        if ctx.orchestrator.add_to_queue(track):
            log(f"➕ Queued: {track.display_name}", level="success")
        else:
            log(f"Already playing: {track.display_name}", level="warning")
    return ctx, True


def handle_queue_remove_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    """queue rm <position>"""
    size = len(ctx.orchestrator.snapshot().queue)
    index = parse_index(args[0], size) if args else None
    if index is None:
        log(f"Usage: queue rm <1-{size}>", level="warning")
        return ctx, True

    removed = ctx.orchestrator.remove_from_queue(index)
    if removed:
        log(f"➖ Removed: {removed.display_name}")
    return ctx, True


def handle_queue_move_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    """queue mv <from> <to>"""
    size = len(ctx.orchestrator.snapshot().queue)
    if len(args) != 2:
        log("Usage: queue mv <from> <to>", level="warning")
        return ctx, True

    from_index, to_index = parse_index(args[0], size), parse_index(args[1], size)
    if from_index is None or to_index is None:
        log(f"Positions must be between 1 and {size}", level="error")
        return ctx, True

    ctx.orchestrator.move_queue_item(from_index, to_index)
    log(f"Moved {args[0]} → {args[1]}")
    return ctx, True


def handle_queue_clear_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    ctx.orchestrator.clear_queue()
    log("Queue cleared")
    return ctx, True


def handle_queue_play_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    """queue play <position> - jump to a queued track"""
    size = len(ctx.orchestrator.snapshot().queue)
    index = parse_index(args[0], size) if args else None
    if index is None:
        log(f"Usage: queue play <1-{size}>", level="warning")
        return ctx, True

    run_background(ctx.orchestrator.play_from_queue, index)
    return ctx, True


def handle_history_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    history = list(ctx.orchestrator.snapshot().history)
    if not history:
        log("No history yet", level="warning")
        return ctx, True

    # Most recent first
    print_tracks("Recently played", history[::-1], ctx)
    return ctx, True
