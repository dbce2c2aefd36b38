"""Play history persistence, capped at the most recent entries."""

from typing import Sequence

from loguru import logger

from aura_tui.core.store import Store

from ..catalog.models import Track

HISTORY_KEY = "play_history"
MAX_HISTORY = 50


def load_play_history(store: Store) -> list[Track]:
    """Load saved history, oldest first. Malformed entries are skipped."""
    tracks = []
    for item in store.get(HISTORY_KEY, []) or []:
        try:
            tracks.append(Track.from_dict(item))
        except (KeyError, TypeError):
            logger.warning(f"Skipping malformed history entry: {item!r}")
    return tracks[-MAX_HISTORY:]


def save_play_history(store: Store, history: Sequence[Track]) -> list[Track]:
    """Save the last ``MAX_HISTORY`` tracks and return what was kept."""
    trimmed = list(history)[-MAX_HISTORY:]
    store.set(HISTORY_KEY, [track.to_dict() for track in trimmed])
    return trimmed
