"""
Playback orchestration: current track, queue, history and play modes.

The orchestrator is the only component that decides what plays next. It drives
the audio engine and the prefetch cache, reacts to engine lifecycle events,
and runs the advance algorithm when a track ends naturally.

Concurrency: user commands, engine events, timers and background fetches all
meet here. Every state change happens under ``_lock``. Work that can block
(stream resolution, recommendation fetches) runs outside the lock and
re-checks the play token before committing, so results that arrive after the
user moved on are dropped instead of clobbering newer state.
"""

import random
import threading
from typing import Callable, Optional, Sequence

from loguru import logger

from aura_tui.core.output import TransientMessage
from aura_tui.core.store import Store

from ..catalog.exceptions import ResolutionError
from ..catalog.models import Track
from ..catalog.recommendations import get_recommendations
from ..catalog.stream_resolver import fallback_url, resolve_stream_url
from .adblock import AdFilter
from .cache import PrefetchCache
from .engine import AudioEngine, EngineState
from .history import load_play_history, save_play_history
from .state import (
    PlaybackSettings,
    PlayerSnapshot,
    RepeatMode,
    load_settings,
    save_settings,
)

LOAD_TIMEOUT = 15.0
ADVANCE_TIMEOUT = 30.0
RECOMMENDATION_LIMIT = 15

SnapshotListener = Callable[[PlayerSnapshot], None]


def _spawn_thread(fn: Callable[..., None], *args) -> None:
    thread = threading.Thread(target=fn, args=args, daemon=True, name="PlaybackTask")
    thread.silent_logging = True
    thread.start()


def _start_timer(seconds: float, fn: Callable[..., None], *args) -> threading.Timer:
    timer = threading.Timer(seconds, fn, args=args)
    timer.daemon = True
    timer.start()
    return timer


class PlaybackOrchestrator:
    """Queue state machine driving the audio engine and prefetch cache.

    Collaborators are passed in explicitly so tests can build isolated
    instances. ``spawn`` runs background work and ``timer_factory`` arms
    one-shot timers; both default to daemon threads.
    """

    def __init__(
        self,
        engine: AudioEngine,
        cache: PrefetchCache,
        store: Store,
        *,
        ad_filter: Optional[AdFilter] = None,
        resolve_stream: Callable[[str], str] = resolve_stream_url,
        fallback: Callable[[str], str] = fallback_url,
        recommend: Callable[[str, int], list[Track]] = get_recommendations,
        settings: Optional[PlaybackSettings] = None,
        recommendation_limit: int = RECOMMENDATION_LIMIT,
        load_timeout: float = LOAD_TIMEOUT,
        advance_timeout: float = ADVANCE_TIMEOUT,
        error_display_seconds: float = 5.0,
        spawn: Callable[..., None] = _spawn_thread,
        timer_factory: Callable[..., threading.Timer] = _start_timer,
        rng: Optional[random.Random] = None,
    ):
        self.engine = engine
        self.cache = cache
        self.store = store
        self.ad_filter = ad_filter or AdFilter()
        self._resolve_stream = resolve_stream
        self._fallback = fallback
        self._recommend = recommend
        self.recommendation_limit = recommendation_limit
        self.load_timeout = load_timeout
        self.advance_timeout = advance_timeout
        self._spawn = spawn
        self._timer_factory = timer_factory
        self._rng = rng or random.Random()
        self._default_settings = settings or PlaybackSettings()

        self._lock = threading.RLock()
        self._listeners: list[SnapshotListener] = []
        self._unsubscribers: list[Callable[[], None]] = []
        self.errors = TransientMessage(error_display_seconds)

        # Track and queue state
        self._current: Optional[Track] = None
        self._queue: list[Track] = []
        self._history: list[Track] = []

        # Observable playback state
        self._playing = False
        self._loading = False
        self._transitioning = False
        self._position = 0.0
        self._duration = 0.0
        self._volume = self._default_settings.volume
        self._muted = False

        # Modes
        self._autoplay = self._default_settings.autoplay
        self._shuffle = self._default_settings.shuffle
        self._repeat_mode = self._default_settings.repeat_mode
        self._radio_mode = False
        self._current_playlist_id: Optional[str] = None

        # Race guards
        self._play_token = 0
        self._history_recorded_token = -1
        self._advancing = False
        self._advance_timer: Optional[threading.Timer] = None
        self._load_timer: Optional[threading.Timer] = None

    # Lifecycle

    def init(self) -> None:
        """Restore persisted history and settings and subscribe to the engine."""
        try:
            settings = load_settings(self.store, self._default_settings)
            history = load_play_history(self.store)
        except Exception:
            logger.exception("Failed to restore playback state, using defaults")
            settings, history = self._default_settings, []

        with self._lock:
            self._history = history
            self._shuffle = settings.shuffle
            self._repeat_mode = settings.repeat_mode
            self._autoplay = settings.autoplay
            self._volume = settings.volume

        self.engine.set_volume(settings.volume)
        self.engine.set_loop(settings.repeat_mode is RepeatMode.ONE)

        self._unsubscribers = [
            self.engine.on("started", self._on_started),
            self.engine.on("stopped", self._on_stopped),
            self.engine.on("paused", self._on_paused),
            self.engine.on("resumed", self._on_resumed),
            self.engine.on("progress", self._on_progress),
            self.engine.on("song_end", self._on_song_end),
        ]
        logger.info(
            f"Playback restored: {len(history)} history entries, "
            f"shuffle={settings.shuffle}, repeat={settings.repeat_mode.value}, "
            f"autoplay={settings.autoplay}"
        )

    def destroy(self) -> None:
        """Cancel timers, drop engine subscriptions and release cache and engine."""
        with self._lock:
            self._play_token += 1
            self._cancel_timer("_load_timer")
            self._cancel_timer("_advance_timer")
            unsubscribers, self._unsubscribers = self._unsubscribers, []

        for unsubscribe in unsubscribers:
            unsubscribe()
        self.cache.cleanup()
        self.engine.destroy()

    # Observation

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Call ``listener`` with a fresh snapshot after every state change."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> PlayerSnapshot:
        with self._lock:
            return PlayerSnapshot(
                current_track=self._current,
                is_playing=self._playing,
                is_loading=self._loading,
                is_transitioning=self._transitioning,
                position=self._position,
                duration=self._duration,
                volume=self._volume,
                muted=self._muted,
                queue=tuple(self._queue),
                history=tuple(self._history),
                autoplay=self._autoplay,
                shuffle=self._shuffle,
                repeat_mode=self._repeat_mode,
                radio_mode=self._radio_mode,
                current_playlist_id=self._current_playlist_id,
                error=self.errors.current,
                degraded=self.engine.degraded,
            )

    def _notify(self) -> None:
        snapshot = self.snapshot()
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Playback listener failed")

    def report_error(self, message: str) -> None:
        """Surface a transient, auto-dismissing error message."""
        logger.error(message)
        self.errors.set(message)
        self._notify()

    # Playing tracks

    def play_song(self, track: Track, fetch_recommendations: bool = True) -> None:
        """Start playing ``track``.

        Ad-like tracks are skipped (advancing if there is a queue). When the
        queue is empty and autoplay is on, related tracks are fetched in the
        background to start radio mode.
        """
        self._play(track, fetch_recommendations)

    def _play(
        self, track: Track, fetch_recommendations: bool, keep_radio: bool = False
    ) -> None:
        if self.ad_filter.is_ad(track):
            logger.info(f"Skipping ad: {track.title} ({track.duration}s)")
            with self._lock:
                has_queue = bool(self._queue)
            if has_queue:
                self.next_track()
            return

        token = None
        try:
            cached_path = self.cache.get_cached_path(track.id)

            with self._lock:
                self._play_token += 1
                token = self._play_token
                self._cancel_timer("_load_timer")

                self._current = track
                # Current track never lives in the queue
                self._queue = [t for t in self._queue if t.id != track.id]
                self._playing = False
                self._loading = cached_path is None
                self._transitioning = True
                self._position = 0.0
                self._duration = float(track.duration)
                if not keep_radio:
                    self._radio_mode = self._radio_mode and bool(self._queue)

            self._notify()
            logger.info(
                f"Playing {track.display_name} [{track.id}]"
                f" ({'cached' if cached_path else 'stream'})"
            )

            source = cached_path or self._resolve_source(track)

            with self._lock:
                if token != self._play_token:
                    logger.debug(f"Play of {track.id} superseded during resolution")
                    return
                self.engine.play(source, track.duration or None)
                self._arm_load_timeout(token)
                fetch = fetch_recommendations and self._autoplay and not self._queue
                queue_snapshot = list(self._queue)

            self.cache.update_window(queue_snapshot, current_id=track.id)
            if fetch:
                self._spawn(self._populate_radio, track, token)

        except Exception as e:
            logger.exception(f"Failed to play {track.id}")
            with self._lock:
                if token is None or token == self._play_token:
                    self._loading = False
                    self._playing = False
                    self._transitioning = False
                    self._cancel_timer("_load_timer")
            self.report_error(f"Playback failed: {track.title} ({e})")

    def _resolve_source(self, track: Track) -> str:
        try:
            return self._resolve_stream(track.id)
        except ResolutionError as e:
            logger.warning(f"{e}; falling back to catalog URL")
            return self._fallback(track.id)

    def _arm_load_timeout(self, token: int) -> None:
        self._cancel_timer("_load_timer")
        self._load_timer = self._timer_factory(
            self.load_timeout, self._on_load_timeout, token
        )

    def _on_load_timeout(self, token: int) -> None:
        with self._lock:
            if token != self._play_token or not (self._loading or self._transitioning):
                return
            title = self._current.title if self._current else "track"
            logger.warning(f"{title} did not start within {self.load_timeout}s")
            self._loading = False
            self._transitioning = False
            self._load_timer = None
            should_advance = not self._playing and bool(self._queue)

        self.report_error(f"Could not start {title}")
        if should_advance:
            self.next_track()

    def _populate_radio(self, seed: Track, token: int) -> None:
        """Background: fill an empty queue with tracks related to ``seed``."""
        try:
            tracks = self.ad_filter.filter_tracks(
                self._recommend(seed.id, self.recommendation_limit)
            )
        except Exception:
            logger.exception(f"Recommendation fetch for {seed.id} failed")
            return

        with self._lock:
            if (
                token != self._play_token
                or self._current is None
                or self._current.id != seed.id
                or self._queue
            ):
                logger.debug(f"Discarding recommendations for {seed.id}: state moved on")
                return
            tracks = [t for t in tracks if t.id != seed.id]
            if not tracks:
                return
            if self._shuffle:
                self._rng.shuffle(tracks)
            self._queue = tracks
            self._radio_mode = True
            self._current_playlist_id = None
            queue_snapshot = list(self._queue)

        logger.info(f"Radio: queued {len(queue_snapshot)} tracks related to {seed.title}")
        self._notify()
        self.cache.update_window(queue_snapshot, current_id=seed.id)

    # Navigation

    def next_track(self) -> bool:
        """Play the head of the queue, moving the outgoing track to history."""
        with self._lock:
            if not self._queue:
                return False
            next_song = self._queue.pop(0)
            self._record_current_in_history()

        self._play(next_song, fetch_recommendations=True, keep_radio=False)
        return True

    def prev_track(self) -> bool:
        """Play the last history entry, putting the current track back in front."""
        with self._lock:
            if not self._history:
                return False
            prev_song = self._history.pop()
            if self._current is not None:
                self._queue.insert(0, self._current)
            self._persist_history()

        self._play(prev_song, fetch_recommendations=True)
        return True

    def play_from_queue(self, index: int) -> bool:
        """Jump to a queued track, dropping it from the queue."""
        with self._lock:
            if not 0 <= index < len(self._queue):
                return False
            chosen = self._queue.pop(index)
            self._record_current_in_history()

        self._play(chosen, fetch_recommendations=True)
        return True

    def play_playlist(
        self, tracks: Sequence[Track], start_index: int = 0, playlist_id: Optional[str] = None
    ) -> bool:
        """Replace the queue with a playlist and start at ``start_index``."""
        if not tracks:
            return False
        start_index = max(0, min(start_index, len(tracks) - 1))
        start = tracks[start_index]
        rest = [t for i, t in enumerate(tracks) if i != start_index and t.id != start.id]

        with self._lock:
            if self._shuffle:
                self._rng.shuffle(rest)
            self._queue = rest
            self._radio_mode = False
            self._current_playlist_id = playlist_id
            queue_snapshot = list(self._queue)

        self.cache.update_window(queue_snapshot, current_id=start.id)
        self._play(start, fetch_recommendations=False)
        return True

    def _record_current_in_history(self) -> None:
        # An ad skipped on the way keeps the same token, so the outgoing
        # track is recorded only once per advance
        if self._current is None or self._history_recorded_token == self._play_token:
            return
        self._history.append(self._current)
        self._history_recorded_token = self._play_token
        self._persist_history()

    # Natural end

    def _on_song_end(self) -> None:
        with self._lock:
            if self._transitioning:
                logger.debug("Ignoring song end from a replaced track")
                return
            if self._advancing:
                logger.debug("Advance already in progress, dropping song end")
                return
            self._advancing = True
            self._cancel_timer("_advance_timer")
            self._advance_timer = self._timer_factory(
                self.advance_timeout, self._force_release_advance
            )

        self._spawn(self._run_advance)

    def _run_advance(self) -> None:
        try:
            self._advance_after_end()
        except Exception:
            logger.exception("Auto-advance failed")
            self.report_error("Could not continue playback")
        finally:
            with self._lock:
                self._advancing = False
                self._cancel_timer("_advance_timer")

    def _force_release_advance(self) -> None:
        with self._lock:
            if self._advancing:
                logger.warning(f"Auto-advance stuck for {self.advance_timeout}s, releasing")
            self._advancing = False
            self._advance_timer = None

    def _advance_after_end(self) -> None:
        with self._lock:
            repeat_mode = self._repeat_mode
            current = self._current
            autoplay = self._autoplay
            has_queue = bool(self._queue)
            has_history = bool(self._history)

        if repeat_mode is RepeatMode.ONE:
            # Normally mpv's loop-file replays without ending; if the track
            # ended anyway (e.g. an expired stream), play it again
            if current is not None:
                self._play(current, fetch_recommendations=False, keep_radio=True)
                self.engine.set_loop(True)
            return

        if not autoplay:
            return

        if has_queue:
            self.next_track()
            return

        if repeat_mode is RepeatMode.ALL and has_history:
            with self._lock:
                replay = list(self._history)
                if self._current is not None:
                    replay.append(self._current)
                self._history = []
                self._persist_history()
                first, self._queue = replay[0], replay[1:]
                # The outgoing track is already part of the replay
                self._history_recorded_token = self._play_token
            logger.info(f"Repeat all: replaying {len(replay)} tracks")
            self._play(first, fetch_recommendations=False, keep_radio=True)
            return

        if current is not None:
            self._start_radio_from(current)

    def _start_radio_from(self, seed: Track) -> None:
        with self._lock:
            token = self._play_token

        tracks = self.ad_filter.filter_tracks(
            self._recommend(seed.id, self.recommendation_limit)
        )
        tracks = [t for t in tracks if t.id != seed.id]

        with self._lock:
            if token != self._play_token:
                logger.debug("Radio fallback superseded by user action")
                return
            if self._queue:
                # Filled meanwhile by the background radio fill or a user add
                logger.debug("Queue filled during radio fallback, advancing")
            elif not tracks:
                logger.info(f"No recommendations for {seed.title}; stopping")
                return
            else:
                if self._shuffle:
                    self._rng.shuffle(tracks)
                self._queue = tracks
                self._radio_mode = True
                self._current_playlist_id = None

        self.next_track()

    # Engine events

    def _on_started(self) -> None:
        with self._lock:
            if self._current is None:
                return
            self._cancel_timer("_load_timer")
            self._transitioning = False
            self._loading = False
            self._playing = True
            self._position = 0.0
        self._notify()

    def _on_stopped(self) -> None:
        with self._lock:
            if self._transitioning:
                return
            self._playing = False
            self._position = 0.0
        self._notify()

    def _on_paused(self) -> None:
        with self._lock:
            if self._transitioning:
                return
            self._playing = False
        self._notify()

    def _on_resumed(self) -> None:
        with self._lock:
            if self._transitioning:
                return
            self._playing = True
        self._notify()

    def _on_progress(self, position: float, duration: float) -> None:
        with self._lock:
            if self._transitioning or self._current is None:
                return
            self._position = position
            if duration and duration > 0:
                self._duration = duration
                if abs(self._current.duration - duration) >= 1:
                    self._current = self._current.with_duration(duration)
        self._notify()

    # Transport controls

    def toggle_play(self) -> None:
        with self._lock:
            current, playing = self._current, self._playing
            idle = not playing and not self._loading and not self._transitioning
            engine_idle = self.engine.get_state().state is EngineState.IDLE

        if current is None:
            return
        if playing:
            self.engine.pause()
        elif idle and engine_idle:
            self._play(current, fetch_recommendations=False, keep_radio=True)
        else:
            self.engine.resume()

    def pause(self) -> None:
        self.engine.pause()

    def resume(self) -> None:
        self.engine.resume()

    def stop(self) -> None:
        """Stop playback and forget the current track."""
        with self._lock:
            self._play_token += 1
            self._cancel_timer("_load_timer")
            if self._current is not None:
                self._record_current_in_history()
            self._current = None
            self._playing = False
            self._loading = False
            self._transitioning = False
            self._position = 0.0
            self._duration = 0.0
        self.engine.stop()
        self._notify()

    def seek(self, delta_seconds: float) -> None:
        with self._lock:
            if self._current is None or self._transitioning:
                return
        position = self.engine.seek(delta_seconds)
        with self._lock:
            self._position = position
        self._notify()

    def set_volume(self, volume: int) -> int:
        volume = self.engine.set_volume(volume)
        with self._lock:
            self._volume = volume
            self._persist_settings()
        self._notify()
        return volume

    def change_volume(self, delta: int) -> int:
        with self._lock:
            target = self._volume + delta
        return self.set_volume(target)

    def toggle_mute(self) -> bool:
        with self._lock:
            self._muted = not self._muted
            muted = self._muted
        self.engine.set_muted(muted)
        self._notify()
        return muted

    # Modes

    def toggle_shuffle(self) -> bool:
        """Flip shuffle. Turning it on reshuffles the queue in place; turning it
        off keeps the shuffled order."""
        with self._lock:
            self._shuffle = not self._shuffle
            if self._shuffle:
                self._rng.shuffle(self._queue)
            self._persist_settings()
            shuffle, queue_snapshot = self._shuffle, list(self._queue)
            current_id = self._current.id if self._current else None

        self.cache.update_window(queue_snapshot, current_id=current_id)
        self._notify()
        return shuffle

    def cycle_repeat_mode(self) -> RepeatMode:
        """off -> all -> one -> off, engaging the engine loop for "one"."""
        with self._lock:
            previous = self._repeat_mode
            self._repeat_mode = previous.next()
            self._persist_settings()
            mode = self._repeat_mode

        if mode is RepeatMode.ONE:
            self.engine.set_loop(True)
        elif previous is RepeatMode.ONE:
            self.engine.set_loop(False)
        self._notify()
        return mode

    def toggle_autoplay(self) -> bool:
        with self._lock:
            self._autoplay = not self._autoplay
            self._persist_settings()
            autoplay = self._autoplay
        self._notify()
        return autoplay

    # Queue editing (no playback side effects; the cache catches up on the next play)

    def add_to_queue(self, track: Track) -> bool:
        with self._lock:
            if self._current is not None and self._current.id == track.id:
                return False
            self._queue.append(track)
        self._notify()
        return True

    def remove_from_queue(self, index: int) -> Optional[Track]:
        with self._lock:
            if not 0 <= index < len(self._queue):
                return None
            removed = self._queue.pop(index)
        self._notify()
        return removed

    def move_queue_item(self, from_index: int, to_index: int) -> bool:
        with self._lock:
            size = len(self._queue)
            if not (0 <= from_index < size and 0 <= to_index < size):
                return False
            track = self._queue.pop(from_index)
            self._queue.insert(to_index, track)
        self._notify()
        return True

    def clear_queue(self) -> None:
        with self._lock:
            self._queue = []
            self._radio_mode = False
        self._notify()

    def forget_playlist(self, playlist_id: str) -> None:
        """Drop the reference to a playlist that no longer exists."""
        with self._lock:
            if self._current_playlist_id == playlist_id:
                self._current_playlist_id = None
        self._notify()

    # Helpers

    def _cancel_timer(self, attr: str) -> None:
        timer = getattr(self, attr)
        if timer is not None:
            timer.cancel()
            setattr(self, attr, None)

    def _persist_history(self) -> None:
        try:
            self._history = save_play_history(self.store, self._history)
        except Exception:
            logger.exception("Failed to save play history")

    def _persist_settings(self) -> None:
        try:
            save_settings(
                self.store,
                PlaybackSettings(
                    shuffle=self._shuffle,
                    repeat_mode=self._repeat_mode,
                    autoplay=self._autoplay,
                    volume=self._volume,
                ),
            )
        except Exception:
            logger.exception("Failed to save playback settings")
