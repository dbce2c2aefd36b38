"""
Unified output system using Loguru.
User-facing messages go to the log file and the console; errors can also be
held as a transient, auto-dismissing message for the status line.
"""

import threading
import time
from pathlib import Path
from typing import Callable, Optional

from loguru import logger
from rich.console import Console

_console: Optional[Console] = None
_console_lock = threading.Lock()

# Color used for console output per log level
LEVEL_STYLES = {
    "debug": "cyan",
    "info": "white",
    "success": "green",
    "warning": "yellow",
    "error": "red",
}


def setup_loguru(log_file: Path, level: str = "INFO") -> None:
    """
    Configure loguru for file-only logging (the command loop owns the console).

    Args:
        log_file: Path to log file
        level: Minimum level for file logging (DEBUG, INFO, WARNING, ERROR)
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Remove default stderr handler
    logger.remove()

    logger.add(
        log_file,
        rotation="10 MB",
        retention=5,
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}",
        enqueue=False,
    )

    logger.info(f"Loguru initialized: {log_file} (level={level})")


def get_console() -> Console:
    """Get or create the shared Rich Console instance."""
    global _console
    with _console_lock:
        if _console is None:
            _console = Console(highlight=False)
        return _console


def log(message: str, level: str = "info") -> None:
    """
    Unified logging: writes to file AND prints to the console.

    Threads that set ``silent_logging = True`` on themselves only log to file,
    so background work does not interleave with the prompt.

    Args:
        message: User-facing message
        level: Log level (debug, info, success, warning, error)
    """
    log_func = getattr(logger, level, logger.info)
    log_func(message)

    if getattr(threading.current_thread(), "silent_logging", False):
        return

    get_console().print(message, style=LEVEL_STYLES.get(level, "white"), markup=False)


class TransientMessage:
    """A single user-visible message that expires after a fixed interval.

    Setting a new message replaces the old one and restarts the interval.
    """

    def __init__(
        self,
        display_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.display_seconds = display_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._message: Optional[str] = None
        self._expires_at = 0.0

    def set(self, message: str) -> None:
        with self._lock:
            self._message = message
            self._expires_at = self._clock() + self.display_seconds

    def clear(self) -> None:
        with self._lock:
            self._message = None
            self._expires_at = 0.0

    @property
    def current(self) -> Optional[str]:
        """The active message, or None once it has expired."""
        with self._lock:
            if self._message is not None and self._clock() >= self._expires_at:
                self._message = None
            return self._message
