"""
Playback state and mode settings for Aura TUI

Holds the observable player snapshot and persists shuffle/repeat/autoplay/volume.
"""

import enum
from dataclasses import dataclass
from typing import Any, Optional

from loguru import logger

from aura_tui.core.store import Store

from ..catalog.models import Track

SETTINGS_KEY = "settings"


class RepeatMode(str, enum.Enum):
    OFF = "off"
    ALL = "all"
    ONE = "one"

    def next(self) -> "RepeatMode":
        """off -> all -> one -> off"""
        order = [RepeatMode.OFF, RepeatMode.ALL, RepeatMode.ONE]
        return order[(order.index(self) + 1) % len(order)]


@dataclass(frozen=True)
class PlayerSnapshot:
    """Immutable view of everything the UI shows about playback."""

    current_track: Optional[Track] = None
    is_playing: bool = False
    is_loading: bool = False
    is_transitioning: bool = False
    position: float = 0.0
    duration: float = 0.0
    volume: int = 50
    muted: bool = False
    queue: tuple[Track, ...] = ()
    history: tuple[Track, ...] = ()
    autoplay: bool = True
    shuffle: bool = False
    repeat_mode: RepeatMode = RepeatMode.OFF
    radio_mode: bool = False
    current_playlist_id: Optional[str] = None
    error: Optional[str] = None
    degraded: bool = False


@dataclass
class PlaybackSettings:
    """User-controlled modes that survive restarts."""

    shuffle: bool = False
    repeat_mode: RepeatMode = RepeatMode.OFF
    autoplay: bool = True
    volume: int = 50

    def to_dict(self) -> dict[str, Any]:
        return {
            "shuffle": self.shuffle,
            "repeat_mode": self.repeat_mode.value,
            "autoplay": self.autoplay,
            "volume": self.volume,
        }


def load_settings(store: Store, defaults: Optional[PlaybackSettings] = None) -> PlaybackSettings:
    """
    Load persisted playback settings.

    Args:
        store: Persistent store
        defaults: Values for settings that were never saved

    Returns:
        PlaybackSettings with stored values over defaults
    """
    defaults = defaults or PlaybackSettings()
    data = store.get(SETTINGS_KEY, {}) or {}

    try:
        repeat_mode = RepeatMode(data.get("repeat_mode", defaults.repeat_mode.value))
    except ValueError:
        logger.warning(f"Unknown repeat mode {data.get('repeat_mode')!r}, using default")
        repeat_mode = defaults.repeat_mode

    volume = data.get("volume", defaults.volume)
    if not isinstance(volume, int):
        volume = defaults.volume

    return PlaybackSettings(
        shuffle=bool(data.get("shuffle", defaults.shuffle)),
        repeat_mode=repeat_mode,
        autoplay=bool(data.get("autoplay", defaults.autoplay)),
        volume=max(0, min(100, volume)),
    )


def save_settings(store: Store, settings: PlaybackSettings) -> None:
    """Persist playback settings."""
    store.set(SETTINGS_KEY, settings.to_dict())
