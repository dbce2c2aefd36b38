"""
Admin command handlers for Aura TUI.

Handles: doctor, cache, config
"""

from typing import List, Tuple

from aura_tui.context import AppContext
from aura_tui.core import config
from aura_tui.core.output import log
from aura_tui.domain.catalog import is_ytdlp_available
from aura_tui.domain.playback import check_mpv_available

SETUP_COMPLETED_KEY = "setup_completed"


def run_dependency_checks() -> bool:
    """Report whether mpv and yt-dlp are usable. Returns True if both are."""
    mpv_ok = check_mpv_available()
    ytdlp_ok = is_ytdlp_available()

    log(f"{'✅' if mpv_ok else '❌'} mpv", level="success" if mpv_ok else "error")
    if not mpv_ok:
        log("   Install mpv to hear audio (e.g. apt install mpv / brew install mpv)", level="warning")

    log(f"{'✅' if ytdlp_ok else '❌'} yt-dlp", level="success" if ytdlp_ok else "error")
    if not ytdlp_ok:
        log("   yt-dlp executable not on PATH - prefetching is disabled", level="warning")

    return mpv_ok and ytdlp_ok


def handle_doctor_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    run_dependency_checks()
    log(f"Config: {config.get_config_path()}")
    log(f"Data:   {config.get_data_dir()}")
    log(f"Cache:  {ctx.cache.cache_dir}")
    return ctx, True


def handle_cache_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    """cache [clear]"""
    if args and args[0] == "clear":
        ctx.cache.cancel_all()
        log("Cancelled in-flight downloads")
        return ctx, True

    stats = ctx.cache.get_stats()
    log(
        f"Cache: {stats['total']} tracks ({stats['ready']} ready, "
        f"{stats['downloading']} downloading, {stats['error']} failed, "
        f"{stats['active']} active downloads)"
    )
    return ctx, True


def handle_config_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    """Show where configuration lives and write a default file if missing."""
    path = config.get_config_path()
    if not path.exists():
        config.ensure_directories()
        path.write_text(config.create_default_config())
        log(f"✅ Wrote default configuration to {path}", level="success")
    else:
        log(f"Configuration: {path}")
    return ctx, True


def ensure_first_run(ctx: AppContext) -> None:
    """Run the dependency checks once, the first time the app starts."""
    if ctx.store.get(SETUP_COMPLETED_KEY, False):
        return
    log("Welcome to Aura TUI! Checking dependencies...")
    run_dependency_checks()
    ctx.store.set(SETUP_COMPLETED_KEY, True)
