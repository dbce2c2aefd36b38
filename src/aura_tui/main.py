"""
Interactive command loop for Aura TUI.
"""

import atexit
import signal
import sys
from pathlib import Path
from typing import Optional

from loguru import logger
from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console

from aura_tui import router
from aura_tui.commands import admin
from aura_tui.commands.playback import status_line
from aura_tui.completers import AuraCompleter
from aura_tui.context import AppContext
from aura_tui.core import config
from aura_tui.core.output import setup_loguru
from aura_tui.utils.parsers import parse_command

TOOLBAR_REFRESH_SECONDS = 0.5


def setup_logging(cfg: config.Config, level: Optional[str] = None) -> Path:
    """Initialize loguru from config; returns the log file path."""
    log_file = (
        Path(cfg.logging.log_file).expanduser()
        if cfg.logging.log_file
        else (config.get_data_dir() / "aura-tui.log")
    )
    setup_loguru(log_file, level=level or cfg.logging.level)
    return log_file


def install_shutdown_handlers(ctx: AppContext) -> None:
    """Make SIGINT, SIGTERM and interpreter exit all release mpv and the cache."""
    atexit.register(ctx.shutdown)

    def handle_signal(signum, frame) -> None:
        logger.info(f"Received signal {signum}, shutting down")
        ctx.shutdown()
        sys.exit(128 + signum)

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            signal.signal(sig, handle_signal)
        except ValueError:
            # Not on the main thread (e.g. embedded); atexit still covers us
            logger.debug(f"Could not install handler for signal {sig}")


def interactive_mode(log_level: Optional[str] = None) -> None:
    """Run the interactive command loop."""
    current_config = config.load_config()
    setup_logging(current_config, log_level)
    config.ensure_directories()

    console = Console(no_color=not current_config.ui.use_colors)
    console.print("[bold green]Starting Aura TUI...[/bold green]")

    ctx = AppContext.create(current_config, console)
    install_shutdown_handlers(ctx)
    admin.ensure_first_run(ctx)

    orchestrator = ctx.orchestrator
    session = PromptSession(
        history=FileHistory(str(config.get_data_dir() / "command_history")),
        completer=AuraCompleter(lambda: ctx.store),
        complete_while_typing=False,
        bottom_toolbar=lambda: status_line(orchestrator.snapshot()),
        refresh_interval=TOOLBAR_REFRESH_SECONDS,
    )

    console.print("Type 'help' for available commands, or 'quit' to exit.")
    console.print()

    try:
        should_continue = True
        with patch_stdout(raw=True):
            while should_continue:
                user_input = ""
                try:
                    user_input = session.prompt("aura> ").strip()
                    command, args = parse_command(user_input)
                    ctx, should_continue = router.handle_command(ctx, command, args)

                except KeyboardInterrupt:
                    console.print("[yellow]Use 'quit' or 'exit' to leave gracefully.[/yellow]")
                except EOFError:
                    console.print("[green]Goodbye![/green]")
                    break
                except Exception as e:
                    logger.exception(f"Command failed: {user_input}")
                    console.print(f"[red]Error: {e}[/red]")
    finally:
        ctx.shutdown()
