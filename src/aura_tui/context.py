"""Application context for explicit state passing.

This module provides the AppContext dataclass that owns the long-lived
services (store, audio engine, prefetch cache, playback orchestrator) and
the bits of UI state command handlers share, such as the last search results.
"""

import threading
from dataclasses import dataclass, field, replace
from functools import partial
from pathlib import Path
from typing import Any, Callable, List, Optional

from loguru import logger
from rich.console import Console

from aura_tui.core.config import Config
from aura_tui.core.store import Store
from aura_tui.domain.catalog import get_recommendations, resolve_stream_url
from aura_tui.domain.catalog.models import Track
from aura_tui.domain.playback import (
    AdFilter,
    AudioEngine,
    PlaybackOrchestrator,
    PlaybackSettings,
    PrefetchCache,
    RepeatMode,
    create_engine,
)


def run_background(fn: Callable[..., Any], *args: Any) -> threading.Thread:
    """Run ``fn`` on a daemon thread that logs to file only."""

    def runner() -> None:
        try:
            fn(*args)
        except Exception:
            logger.exception(f"Background task {getattr(fn, '__name__', fn)} failed")

    thread = threading.Thread(target=runner, daemon=True, name="AuraBackground")
    thread.silent_logging = True
    thread.start()
    return thread


@dataclass
class AppContext:
    """Application context passed to all command handlers.

    Services are shared (the orchestrator is internally synchronized);
    ``last_results`` is replaced through ``with_results``.

    Attributes:
        config: Application configuration
        store: Persistent key/value store
        engine: Audio engine adapter
        cache: Prefetch cache for upcoming tracks
        orchestrator: Playback queue state machine
        console: Rich Console for formatted output
        last_results: Tracks from the most recent search, addressable by number
    """

    config: Config
    store: Store
    engine: AudioEngine
    cache: PrefetchCache
    orchestrator: PlaybackOrchestrator
    console: Optional[Console] = None
    last_results: List[Track] = field(default_factory=list)
    _shutdown_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _shut_down: List[bool] = field(default_factory=lambda: [False], repr=False)

    @classmethod
    def create(
        cls,
        config: Config,
        console: Optional[Console] = None,
        store: Optional[Store] = None,
        engine: Optional[AudioEngine] = None,
    ) -> "AppContext":
        """Build and initialize every service from configuration.

        Args:
            config: Application configuration
            console: Optional Rich Console instance
            store: Store to use (default: the database in the data directory)
            engine: Engine to use (default: start mpv, degrading to silence)

        Returns:
            Ready-to-use AppContext
        """
        store = store or Store()
        store.init()

        engine = engine or create_engine(config.player)

        config.cache.validate()
        cache = PrefetchCache(
            cache_dir=Path(config.cache.directory) if config.cache.directory else None,
            window_size=config.cache.window_size,
            max_concurrent=config.cache.max_concurrent,
            download_timeout=config.cache.download_timeout,
            enabled=config.cache.enabled,
        )
        cache.init()

        orchestrator = PlaybackOrchestrator(
            engine,
            cache,
            store,
            ad_filter=AdFilter(enabled=config.playback.ad_block),
            resolve_stream=partial(
                resolve_stream_url, timeout=config.catalog.resolve_timeout
            ),
            recommend=partial(
                get_recommendations, timeout=config.catalog.recommendation_timeout
            ),
            settings=PlaybackSettings(
                shuffle=False,
                repeat_mode=RepeatMode.OFF,
                autoplay=config.playback.autoplay,
                volume=config.player.volume,
            ),
            recommendation_limit=config.playback.recommendation_limit,
            load_timeout=config.playback.load_timeout,
            advance_timeout=config.playback.advance_timeout,
            error_display_seconds=config.ui.error_display_seconds,
        )
        orchestrator.init()

        return cls(
            config=config,
            store=store,
            engine=engine,
            cache=cache,
            orchestrator=orchestrator,
            console=console,
        )

    def with_results(self, tracks: List[Track]) -> "AppContext":
        """Return new context with updated search results.

        Args:
            tracks: Tracks from the latest search

        Returns:
            New AppContext sharing the same services
        """
        return replace(self, last_results=list(tracks))

    def shutdown(self) -> None:
        """Stop playback, kill downloads, remove cached files and stop mpv.

        Safe to call from signal handlers and atexit; only the first call
        does anything.
        """
        with self._shutdown_lock:
            if self._shut_down[0]:
                return
            self._shut_down[0] = True

        logger.info("Shutting down")
        try:
            self.orchestrator.destroy()
        except Exception:
            logger.exception("Error during shutdown")
