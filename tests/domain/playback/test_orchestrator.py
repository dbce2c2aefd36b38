"""Tests for the playback orchestrator: queue, history, modes and auto-advance."""

import random
from unittest.mock import MagicMock, patch

import pytest

from aura_tui.domain.catalog.exceptions import ResolutionError
from aura_tui.domain.playback.cache import PrefetchCache
from aura_tui.domain.playback.engine import AudioEngine
from aura_tui.domain.playback.history import load_play_history, save_play_history
from aura_tui.domain.playback.orchestrator import PlaybackOrchestrator
from aura_tui.domain.playback.state import RepeatMode, load_settings

from conftest import make_track, run_inline

A, B, C, D = (make_track(i) for i in "abcd")
W, X, Y, Z = (make_track(i) for i in "wxyz")
AD = make_track("ad1", duration=4, title="Skip this")


def stream(track_id: str) -> str:
    return f"https://stream.example/{track_id}"


@pytest.fixture
def engine(transport, clock) -> AudioEngine:
    return AudioEngine(transport, clock=clock)


@pytest.fixture
def cache() -> MagicMock:
    mock = MagicMock(spec=PrefetchCache)
    mock.get_cached_path.return_value = None
    return mock


@pytest.fixture
def resolver() -> MagicMock:
    return MagicMock(side_effect=stream)


@pytest.fixture
def recommend() -> MagicMock:
    return MagicMock(return_value=[])


@pytest.fixture
def make_orchestrator(engine, cache, store, resolver, recommend, timers):
    """Factory so tests can seed the store before the orchestrator restores from it."""

    def factory(**overrides) -> PlaybackOrchestrator:
        kwargs = dict(
            resolve_stream=resolver,
            fallback=lambda track_id: f"https://fallback.example/{track_id}",
            recommend=recommend,
            spawn=run_inline,
            timer_factory=timers,
            rng=random.Random(7),
        )
        kwargs.update(overrides)
        orch = PlaybackOrchestrator(engine, cache, store, **kwargs)
        orch.init()
        return orch

    return factory


@pytest.fixture
def orch(make_orchestrator) -> PlaybackOrchestrator:
    return make_orchestrator()


def started(engine: AudioEngine) -> None:
    engine.handle_event({"event": "playback-restart"})


def ended_naturally(engine: AudioEngine, clock, seconds: float = 30) -> None:
    clock.advance(seconds)
    engine.handle_event({"event": "end-file", "reason": "eof"})


def ids(tracks) -> list:
    return [t.id for t in tracks]


class TestPlaySong:
    """Tests for starting a track."""

    def test_basic_playback(self, orch, engine, transport) -> None:
        """Test loading state until the engine reports started."""
        orch.play_song(make_track("abc", 180))

        snap = orch.snapshot()
        assert snap.current_track.id == "abc"
        assert snap.is_loading is True
        assert snap.is_playing is False
        assert snap.duration == 180
        assert transport.loaded_sources() == [stream("abc")]

        started(engine)

        snap = orch.snapshot()
        assert snap.is_loading is False
        assert snap.is_playing is True
        assert snap.is_transitioning is False
        assert snap.position == 0

    def test_cache_hit_skips_resolution(self, orch, cache, resolver, transport) -> None:
        """Test a ready cached file plays without resolving a stream."""
        cache.get_cached_path.return_value = "/tmp/aura-tui-cache/t.audio"

        orch.play_song(make_track("t"))

        assert orch.snapshot().is_loading is False
        resolver.assert_not_called()
        assert transport.loaded_sources() == ["/tmp/aura-tui-cache/t.audio"]

    def test_resolution_failure_uses_fallback(self, orch, resolver, transport) -> None:
        """Test a failed stream resolution falls back to the catalog URL."""
        resolver.side_effect = ResolutionError("a")

        orch.play_song(A)

        assert transport.loaded_sources() == ["https://fallback.example/a"]
        assert orch.snapshot().error is None

    def test_unexpected_failure_surfaces_error(self, orch, resolver) -> None:
        """Test an exception leaves flags cleared and shows an error."""
        resolver.side_effect = RuntimeError("network down")

        orch.play_song(A)

        snap = orch.snapshot()
        assert snap.is_loading is False
        assert snap.is_playing is False
        assert snap.is_transitioning is False
        assert "Playback failed" in snap.error

    def test_updates_cache_window(self, orch, cache) -> None:
        """Test the cache window follows the queue on every play."""
        orch.add_to_queue(B)
        orch.add_to_queue(C)

        orch.play_song(A)

        cache.update_window.assert_called_with([B, C], current_id="a")

    def test_radio_mode_cleared_once_queue_drained(self, orch, recommend) -> None:
        """Test a manual pick with an emptied radio queue leaves radio mode."""
        recommend.return_value = [X, Y]
        orch.play_song(A)
        assert orch.snapshot().radio_mode is True

        orch.remove_from_queue(0)
        orch.remove_from_queue(0)
        assert orch.snapshot().radio_mode is True
        orch.play_song(B, fetch_recommendations=False)

        assert orch.snapshot().radio_mode is False

    def test_current_track_removed_from_queue(self, orch) -> None:
        """Test picking a queued track takes it out of the queue."""
        orch.add_to_queue(B)
        orch.add_to_queue(C)

        orch.play_song(B)

        assert ids(orch.snapshot().queue) == ["c"]


class TestAdSkip:
    """Tests for skipping ad-like tracks."""

    def test_ad_with_queue_advances_once(self, orch, transport) -> None:
        """Test an ad is never played and triggers exactly one advance."""
        orch.add_to_queue(B)

        with patch.object(orch, "next_track", wraps=orch.next_track) as spy:
            orch.play_song(AD)

        assert spy.call_count == 1
        assert orch.snapshot().current_track == B
        assert stream("ad1") not in transport.loaded_sources()

    def test_ad_without_queue_is_noop(self, orch, engine, transport) -> None:
        """Test an ad with nothing queued leaves the current track alone."""
        orch.play_song(A)
        started(engine)

        orch.play_song(AD)

        snap = orch.snapshot()
        assert snap.current_track == A
        assert snap.is_playing is True
        assert transport.loaded_sources() == [stream("a")]

    def test_ad_skipped_during_advance_records_history_once(self, orch, engine) -> None:
        """Test skipping an ad on the way does not duplicate the outgoing track."""
        orch.play_song(A)
        started(engine)
        orch.add_to_queue(AD)
        orch.add_to_queue(B)

        orch.next_track()

        snap = orch.snapshot()
        assert snap.current_track == B
        assert ids(snap.history) == ["a"]
        assert snap.queue == ()

    def test_radio_results_filtered(self, orch, recommend) -> None:
        """Test ad-like recommendations never enter the queue."""
        recommend.return_value = [AD, X]

        orch.play_song(A)

        assert ids(orch.snapshot().queue) == ["x"]


class TestNavigation:
    """Tests for next/previous and queue jumps."""

    def test_skip_to_next(self, orch, engine, resolver) -> None:
        """Test next moves the outgoing track to history and plays the head."""
        orch.play_song(A)
        started(engine)
        orch.add_to_queue(B)
        orch.add_to_queue(C)
        resolver.reset_mock()

        assert orch.next_track() is True

        snap = orch.snapshot()
        assert ids(snap.history) == ["a"]
        assert ids(snap.queue) == ["c"]
        assert snap.current_track == B
        resolver.assert_called_once_with("b")

    def test_next_with_empty_queue(self, orch) -> None:
        """Test next does nothing without a queue."""
        orch.play_song(A)

        assert orch.next_track() is False
        assert orch.snapshot().current_track == A

    def test_prev_restores_current_to_queue_front(self, orch, engine) -> None:
        """Test previous pops history and pushes current back to the front."""
        orch.play_song(A)
        orch.add_to_queue(B)
        orch.add_to_queue(C)
        orch.next_track()

        assert orch.prev_track() is True

        snap = orch.snapshot()
        assert snap.current_track == A
        assert ids(snap.queue) == ["b", "c"]
        assert snap.history == ()

    def test_prev_without_history(self, orch) -> None:
        """Test previous does nothing without history."""
        assert orch.prev_track() is False

    def test_play_from_queue(self, orch) -> None:
        """Test jumping to a queued track drops it from the queue."""
        orch.play_song(A)
        for track in (B, C, D):
            orch.add_to_queue(track)

        assert orch.play_from_queue(1) is True

        snap = orch.snapshot()
        assert snap.current_track == C
        assert ids(snap.queue) == ["b", "d"]
        assert ids(snap.history) == ["a"]

    def test_history_persisted(self, orch, store) -> None:
        """Test history is written through to the store."""
        orch.play_song(A)
        orch.add_to_queue(B)
        orch.next_track()

        assert ids(load_play_history(store)) == ["a"]

    def test_queue_invariant_under_random_operations(self, orch) -> None:
        """Test the current track is never in the queue for any command sequence."""
        rng = random.Random(1234)
        pool = [make_track(i) for i in "abcdefg"]

        for _ in range(300):
            op = rng.choice(["next", "prev", "add", "play"])
            if op == "next":
                orch.next_track()
            elif op == "prev":
                orch.prev_track()
            elif op == "add":
                orch.add_to_queue(rng.choice(pool))
            else:
                orch.play_song(rng.choice(pool), fetch_recommendations=False)

            snap = orch.snapshot()
            if snap.current_track is not None:
                assert snap.current_track.id not in ids(snap.queue)


class TestRadio:
    """Tests for recommendation-driven queue population."""

    def test_fetch_when_queue_empty(self, orch, recommend) -> None:
        """Test an empty queue is populated from recommendations."""
        recommend.return_value = [X, Y]

        orch.play_song(A)

        snap = orch.snapshot()
        recommend.assert_called_once_with("a", 15)
        assert ids(snap.queue) == ["x", "y"]
        assert snap.radio_mode is True

    def test_no_fetch_when_autoplay_off(self, orch, recommend) -> None:
        """Test autoplay off never fetches recommendations."""
        orch.toggle_autoplay()

        orch.play_song(A)

        recommend.assert_not_called()

    def test_results_discarded_if_user_queued(self, orch, recommend) -> None:
        """Test results are dropped when the user filled the queue meanwhile."""

        def user_adds_while_fetching(seed_id, limit):
            orch.add_to_queue(D)
            return [X, Y]

        recommend.side_effect = user_adds_while_fetching

        orch.play_song(A)

        snap = orch.snapshot()
        assert ids(snap.queue) == ["d"]
        assert snap.radio_mode is False

    def test_results_discarded_if_track_changed(self, make_orchestrator, recommend) -> None:
        """Test results for a superseded track are dropped."""
        pending = []
        orch = make_orchestrator(spawn=lambda fn, *args: pending.append((fn, args)))
        recommend.return_value = [X, Y]

        orch.play_song(A)
        orch.play_song(B, fetch_recommendations=False)
        for fn, args in pending:
            fn(*args)

        snap = orch.snapshot()
        assert snap.current_track == B
        assert snap.queue == ()

    def test_shuffled_when_shuffle_on(self, make_orchestrator, recommend) -> None:
        """Test radio results are shuffled with shuffle enabled."""
        rng = MagicMock()
        orch = make_orchestrator(rng=rng)
        orch.toggle_shuffle()
        recommend.return_value = [X, Y]

        orch.play_song(A)

        rng.shuffle.assert_called_with([X, Y])


class TestNaturalEnd:
    """Tests for the auto-advance algorithm."""

    def test_advances_to_queue_head(self, orch, engine, clock) -> None:
        """Test a natural end plays the next queued track."""
        orch.play_song(A)
        orch.add_to_queue(B)
        started(engine)

        ended_naturally(engine, clock)

        snap = orch.snapshot()
        assert snap.current_track == B
        assert ids(snap.history) == ["a"]

    def test_radio_fallback_on_empty_queue(self, orch, engine, clock, recommend) -> None:
        """Test an exhausted queue falls back to recommendations seeded on current."""
        orch.play_song(A, fetch_recommendations=False)
        started(engine)
        recommend.return_value = [X, Y]

        ended_naturally(engine, clock)

        snap = orch.snapshot()
        recommend.assert_called_once_with("a", 15)
        assert snap.current_track == X
        assert ids(snap.queue) == ["y"]
        assert snap.radio_mode is True
        assert ids(snap.history) == ["a"]

    def test_radio_fallback_advances_into_queue_filled_meanwhile(
        self, orch, engine, clock, recommend
    ) -> None:
        """Test a queue filled while the fallback fetch runs still advances."""
        calls = []

        def fill_meanwhile(seed_id, limit):
            if not calls:
                orch.add_to_queue(Y)
            calls.append(seed_id)
            return []

        orch.play_song(A, fetch_recommendations=False)
        started(engine)
        recommend.side_effect = fill_meanwhile

        ended_naturally(engine, clock)

        snap = orch.snapshot()
        assert snap.current_track == Y
        assert snap.queue == ()
        assert ids(snap.history) == ["a"]

    def test_repeat_all_replays_history(self, make_orchestrator, store, engine, clock) -> None:
        """Test repeat-all rebuilds the queue from history plus current."""
        save_play_history(store, [Z, W])
        orch = make_orchestrator()
        orch.cycle_repeat_mode()
        assert orch.snapshot().repeat_mode is RepeatMode.ALL

        orch.play_song(A, fetch_recommendations=False)
        started(engine)
        ended_naturally(engine, clock)

        snap = orch.snapshot()
        assert snap.current_track == Z
        assert ids(snap.queue) == ["w", "a"]
        assert snap.history == ()
        assert load_play_history(store) == []

    def test_repeat_one_replays_same_track(self, orch, engine, clock, transport) -> None:
        """Test repeat-one plays the same track again without touching queue or history."""
        orch.cycle_repeat_mode()
        orch.cycle_repeat_mode()
        assert orch.snapshot().repeat_mode is RepeatMode.ONE
        orch.add_to_queue(B)

        orch.play_song(A, fetch_recommendations=False)
        started(engine)
        ended_naturally(engine, clock)

        snap = orch.snapshot()
        assert transport.loaded_sources() == [stream("a"), stream("a")]
        assert snap.current_track == A
        assert ids(snap.queue) == ["b"]
        assert snap.history == ()

    def test_autoplay_off_stops_at_end(self, orch, engine, clock) -> None:
        """Test nothing advances with autoplay disabled."""
        orch.toggle_autoplay()
        orch.play_song(A)
        orch.add_to_queue(B)
        started(engine)

        ended_naturally(engine, clock)

        assert orch.snapshot().current_track == A

    def test_manual_stop_does_not_advance(self, orch, engine, clock) -> None:
        """Test a user stop is never treated as a natural end."""
        orch.play_song(A)
        orch.add_to_queue(B)
        started(engine)
        clock.advance(30)

        orch.stop()
        engine.handle_event({"event": "end-file", "reason": "stop"})

        snap = orch.snapshot()
        assert snap.current_track is None
        assert ids(snap.queue) == ["b"]

    def test_concurrent_end_dropped_while_advancing(self, make_orchestrator, timers) -> None:
        """Test a second end signal during an advance is dropped, not queued."""
        pending = []
        orch = make_orchestrator(spawn=lambda fn, *args: pending.append(fn))
        orch.play_song(A, fetch_recommendations=False)
        orch._on_started()
        orch.add_to_queue(B)
        orch.add_to_queue(C)

        orch._on_song_end()
        orch._on_song_end()

        assert len(pending) == 1
        pending[0]()
        snap = orch.snapshot()
        assert snap.current_track == B
        assert ids(snap.queue) == ["c"]

    def test_advance_flag_released_by_safety_timer(self, make_orchestrator, timers) -> None:
        """Test a stuck advance is force-released after the safety timeout."""
        pending = []
        orch = make_orchestrator(spawn=lambda fn, *args: pending.append(fn))
        orch.play_song(A, fetch_recommendations=False)
        orch._on_started()

        orch._on_song_end()
        for timer in timers.pending(30.0):
            timer.fire()
        orch._on_song_end()

        assert len(pending) == 2

    def test_end_of_replaced_track_ignored(self, orch, engine) -> None:
        """Test a song end arriving while the next track loads is ignored."""
        orch.play_song(A)
        orch.add_to_queue(B)
        orch.add_to_queue(C)
        orch.next_track()

        orch._on_song_end()

        assert orch.snapshot().current_track == B
        assert ids(orch.snapshot().queue) == ["c"]


class TestLoadTimeout:
    """Tests for the safety timeout on tracks that never start."""

    def test_timeout_advances_when_queue_nonempty(self, orch, timers) -> None:
        """Test a track that never starts is abandoned for the next one."""
        orch.play_song(A)
        orch.add_to_queue(B)

        timers.pending(15.0)[-1].fire()

        snap = orch.snapshot()
        assert snap.current_track == B
        assert "Could not start" in snap.error

    def test_timeout_clears_loading_without_queue(self, orch, timers) -> None:
        """Test the timeout clears loading even with nothing to advance to."""
        orch.play_song(A)

        timers.pending(15.0)[-1].fire()

        snap = orch.snapshot()
        assert snap.is_loading is False
        assert snap.current_track == A

    def test_timeout_cancelled_on_start(self, orch, engine, timers) -> None:
        """Test a started track disarms its timeout."""
        orch.play_song(A)
        started(engine)

        assert timers.pending(15.0) == []

    def test_stale_timeout_ignored(self, orch, timers) -> None:
        """Test a timeout for a superseded track does nothing."""
        orch.play_song(A)
        stale = timers.timers[-1]
        orch.play_song(B)
        orch.add_to_queue(C)

        stale.cancelled = False
        stale.fire()

        assert orch.snapshot().current_track == B
        assert orch.snapshot().is_loading is True


class TestModes:
    """Tests for shuffle, repeat, autoplay and volume."""

    def test_shuffle_preserves_tracks(self, orch) -> None:
        """Test shuffling keeps the same multiset of tracks."""
        queue = [make_track(str(i)) for i in range(12)] + [make_track("0")]
        for track in queue:
            orch.add_to_queue(track)

        assert orch.toggle_shuffle() is True

        assert sorted(ids(orch.snapshot().queue)) == sorted(ids(queue))

    def test_shuffle_off_keeps_order(self, orch) -> None:
        """Test turning shuffle off does not restore the original order."""
        for track in (A, B, C, D):
            orch.add_to_queue(track)
        orch.toggle_shuffle()
        shuffled = ids(orch.snapshot().queue)

        orch.toggle_shuffle()

        assert ids(orch.snapshot().queue) == shuffled

    def test_repeat_cycle_sets_engine_loop(self, orch, transport) -> None:
        """Test repeat cycles off -> all -> one -> off with the engine loop."""
        assert orch.cycle_repeat_mode() is RepeatMode.ALL
        assert orch.cycle_repeat_mode() is RepeatMode.ONE
        assert transport.commands[-1] == ["set_property", "loop-file", "inf"]
        assert orch.cycle_repeat_mode() is RepeatMode.OFF
        assert transport.commands[-1] == ["set_property", "loop-file", "no"]

    def test_settings_persist(self, make_orchestrator, store) -> None:
        """Test mode changes survive a restart."""
        orch = make_orchestrator()
        orch.toggle_shuffle()
        orch.cycle_repeat_mode()
        orch.toggle_autoplay()
        orch.set_volume(80)

        settings = load_settings(store)
        assert settings.shuffle is True
        assert settings.repeat_mode is RepeatMode.ALL
        assert settings.autoplay is False
        assert settings.volume == 80

        restored = make_orchestrator().snapshot()
        assert restored.shuffle is True
        assert restored.volume == 80

    def test_change_volume_clamps(self, orch) -> None:
        """Test relative volume changes stay within 0-100."""
        orch.set_volume(95)

        assert orch.change_volume(10) == 100
        assert orch.change_volume(-150) == 0

    def test_toggle_mute(self, orch, transport) -> None:
        """Test mute toggles the engine mute property."""
        assert orch.toggle_mute() is True
        assert transport.commands[-1] == ["set_property", "mute", True]
        assert orch.toggle_mute() is False


class TestQueueEditing:
    """Tests for index-checked queue mutations."""

    def test_move(self, orch) -> None:
        """Test moving a queued track."""
        for track in (A, B, C):
            orch.add_to_queue(track)

        assert orch.move_queue_item(0, 2) is True
        assert ids(orch.snapshot().queue) == ["b", "c", "a"]

    def test_move_out_of_range(self, orch) -> None:
        """Test out-of-range moves are rejected."""
        orch.add_to_queue(A)

        assert orch.move_queue_item(0, 3) is False
        assert orch.move_queue_item(-1, 0) is False

    def test_remove(self, orch) -> None:
        """Test removing by index returns the removed track."""
        orch.add_to_queue(A)
        orch.add_to_queue(B)

        assert orch.remove_from_queue(0) == A
        assert orch.remove_from_queue(5) is None
        assert ids(orch.snapshot().queue) == ["b"]

    def test_add_current_rejected(self, orch) -> None:
        """Test the playing track cannot be queued."""
        orch.play_song(A, fetch_recommendations=False)

        assert orch.add_to_queue(A) is False
        assert orch.snapshot().queue == ()

    def test_mutations_do_not_touch_cache(self, orch, cache) -> None:
        """Test queue edits leave the cache window for the next play."""
        orch.add_to_queue(A)
        orch.add_to_queue(B)
        orch.move_queue_item(0, 1)
        orch.remove_from_queue(0)

        cache.update_window.assert_not_called()


class TestPlaylistsAndLifecycle:
    """Tests for playlist playback, stop, subscriptions and teardown."""

    def test_play_playlist(self, orch, cache, recommend) -> None:
        """Test the start track plays and the rest becomes the queue."""
        orch.play_playlist([A, B, C, D], start_index=2, playlist_id="pl1")

        snap = orch.snapshot()
        assert snap.current_track == C
        assert ids(snap.queue) == ["a", "b", "d"]
        assert snap.radio_mode is False
        assert snap.current_playlist_id == "pl1"
        cache.update_window.assert_any_call([A, B, D], current_id="c")
        recommend.assert_not_called()

    def test_play_empty_playlist(self, orch) -> None:
        """Test an empty playlist is ignored."""
        assert orch.play_playlist([], 0, "pl1") is False
        assert orch.snapshot().current_track is None

    def test_forget_playlist(self, orch) -> None:
        """Test deleting the active playlist clears the reference."""
        orch.play_playlist([A, B], 0, "pl1")

        orch.forget_playlist("other")
        assert orch.snapshot().current_playlist_id == "pl1"
        orch.forget_playlist("pl1")
        assert orch.snapshot().current_playlist_id is None

    def test_subscribe_and_unsubscribe(self, orch) -> None:
        """Test listeners receive snapshots until unsubscribed."""
        seen = []
        unsubscribe = orch.subscribe(seen.append)

        orch.add_to_queue(A)
        unsubscribe()
        orch.add_to_queue(B)

        assert len(seen) == 1
        assert ids(seen[0].queue) == ["a"]

    def test_error_expires(self, make_orchestrator) -> None:
        """Test transient errors disappear after their display time."""
        orch = make_orchestrator(error_display_seconds=5.0)
        now = [0.0]
        orch.errors._clock = lambda: now[0]

        orch.report_error("Search failed")
        assert orch.snapshot().error == "Search failed"
        now[0] = 5.1
        assert orch.snapshot().error is None

    def test_destroy_releases_everything(self, orch, cache, transport, timers) -> None:
        """Test destroy cancels timers and tears down cache and engine."""
        orch.play_song(A)

        orch.destroy()

        assert timers.pending() == []
        cache.cleanup.assert_called_once()
        assert transport.stopped is True


class TestWithPrefetchCache:
    """Tests driving a real prefetch cache with fake downloads."""

    @pytest.fixture
    def prefetch(self, tmp_path, downloads) -> PrefetchCache:
        c = PrefetchCache(
            cache_dir=tmp_path / "cache",
            downloader=downloads.downloader,
            spawn=downloads.spawn,
        )
        c.init()
        return c

    @pytest.fixture
    def orch(self, engine, prefetch, store, resolver, recommend, timers) -> PlaybackOrchestrator:
        orch = PlaybackOrchestrator(
            engine,
            prefetch,
            store,
            resolve_stream=resolver,
            recommend=recommend,
            spawn=run_inline,
            timer_factory=timers,
        )
        orch.init()
        return orch

    def test_cache_hit_file_survives_until_next_track(
        self, orch, engine, prefetch, downloads, resolver, transport
    ) -> None:
        """Test the cached file handed to the player is not evicted by its own play."""
        T, U = make_track("t"), make_track("u")
        orch.add_to_queue(T)
        orch.add_to_queue(U)
        orch.play_song(A, fetch_recommendations=False)
        downloads.complete("t")
        resolver.reset_mock()

        orch.next_track()

        cached = prefetch.file_path_for("t")
        assert transport.loaded_sources()[-1] == str(cached)
        assert cached.exists()
        resolver.assert_not_called()
        assert orch.snapshot().is_loading is False

        started(engine)
        orch.next_track()

        assert orch.snapshot().current_track == U
        assert not cached.exists()

    def test_radio_fill_keeps_playing_file(
        self, orch, prefetch, downloads, recommend
    ) -> None:
        """Test recommendations arriving for a cached track leave its file alone."""
        orch.add_to_queue(B)
        orch.play_song(A, fetch_recommendations=False)
        downloads.complete("b")
        recommend.return_value = [X, Y]

        orch.next_track()

        assert ids(orch.snapshot().queue) == ["x", "y"]
        assert prefetch.file_path_for("b").exists()
        assert downloads.started == ["b", "x", "y"]
        assert prefetch.is_caching("x") is True
