"""Playback domain - audio engine, prefetch cache, ad filtering and queue orchestration.

This domain handles:
- mpv process control and lifecycle events
- Sliding-window prefetch of upcoming queue tracks
- Ad detection on track metadata
- Current track, queue, history and play modes
"""

from .adblock import AdFilter, is_ad
from .cache import CacheEntry, CacheStatus, PrefetchCache
from .engine import (
    AudioEngine,
    EngineSnapshot,
    EngineState,
    MpvTransport,
    NullTransport,
    check_mpv_available,
    create_engine,
)
from .exceptions import EngineCommandError, EngineError
from .history import load_play_history, save_play_history
from .orchestrator import PlaybackOrchestrator
from .state import PlaybackSettings, PlayerSnapshot, RepeatMode, load_settings, save_settings

__all__ = [
    "AdFilter",
    "is_ad",
    "CacheEntry",
    "CacheStatus",
    "PrefetchCache",
    "AudioEngine",
    "EngineSnapshot",
    "EngineState",
    "MpvTransport",
    "NullTransport",
    "check_mpv_available",
    "create_engine",
    "EngineCommandError",
    "EngineError",
    "load_play_history",
    "save_play_history",
    "PlaybackOrchestrator",
    "PlaybackSettings",
    "PlayerSnapshot",
    "RepeatMode",
    "load_settings",
    "save_settings",
]
