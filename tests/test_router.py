"""Tests for command routing and handler argument handling."""

import io
from unittest.mock import MagicMock, patch

import pytest
from rich.console import Console

from aura_tui import router
from aura_tui.commands.playback import status_line
from aura_tui.context import AppContext
from aura_tui.core.config import Config
from aura_tui.domain.catalog.exceptions import SearchError
from aura_tui.domain.playback import AdFilter, PlayerSnapshot, RepeatMode

from conftest import make_track

A, B = make_track("a"), make_track("b")


@pytest.fixture
def ctx(store) -> AppContext:
    orchestrator = MagicMock()
    orchestrator.ad_filter = AdFilter()
    orchestrator.snapshot.return_value = PlayerSnapshot(current_track=A, queue=(A, B))
    return AppContext(
        config=Config(),
        store=store,
        engine=MagicMock(),
        cache=MagicMock(),
        orchestrator=orchestrator,
        console=Console(file=io.StringIO()),
    )


class TestRouting:
    """Tests for dispatch to handlers."""

    def test_quit_stops_loop(self, ctx) -> None:
        _, should_continue = router.handle_command(ctx, "quit", [])

        assert should_continue is False

    def test_unknown_command_continues(self, ctx, capsys) -> None:
        _, should_continue = router.handle_command(ctx, "dance", [])

        assert should_continue is True
        assert "Unknown command" in capsys.readouterr().out

    def test_relative_and_absolute_volume(self, ctx) -> None:
        """Test signed values change volume, plain values set it."""
        router.handle_command(ctx, "volume", ["+10"])
        router.handle_command(ctx, "vol", ["40"])

        ctx.orchestrator.change_volume.assert_called_once_with(10)
        ctx.orchestrator.set_volume.assert_called_once_with(40)

    def test_queue_positions_are_one_based(self, ctx) -> None:
        router.handle_command(ctx, "queue", ["rm", "2"])
        router.handle_command(ctx, "queue", ["mv", "1", "2"])

        ctx.orchestrator.remove_from_queue.assert_called_once_with(1)
        ctx.orchestrator.move_queue_item.assert_called_once_with(0, 1)

    def test_queue_out_of_range_rejected(self, ctx) -> None:
        router.handle_command(ctx, "queue", ["rm", "9"])

        ctx.orchestrator.remove_from_queue.assert_not_called()


class TestSearchAndPlay:
    """Tests for search results feeding play and queue commands."""

    def test_search_stores_results(self, ctx) -> None:
        with patch("aura_tui.domain.catalog.search", return_value=[A, B]):
            new_ctx, _ = router.handle_command(ctx, "search", ["daft", "punk"])

        assert new_ctx.last_results == [A, B]
        assert ctx.last_results == []

    def test_search_failure_reports_error(self, ctx) -> None:
        """Test a failed search shows a transient error and keeps old results."""
        with patch("aura_tui.domain.catalog.search", side_effect=SearchError("down")):
            new_ctx, should_continue = router.handle_command(ctx, "search", ["x"])

        assert should_continue is True
        assert new_ctx.last_results == []
        ctx.orchestrator.report_error.assert_called_once_with("Search failed: x")

    def test_play_result_number(self, ctx) -> None:
        ctx = ctx.with_results([A, B])

        with patch("aura_tui.commands.playback.run_background") as background:
            router.handle_command(ctx, "play", ["2"])

        background.assert_called_once_with(ctx.orchestrator.play_song, B)

    def test_play_query_skips_ads(self, ctx) -> None:
        """Test the best non-ad match is played."""
        ad = make_track("ad", duration=3)
        with patch("aura_tui.domain.catalog.search", return_value=[ad, B]), patch(
            "aura_tui.commands.playback.run_background"
        ) as background:
            router.handle_command(ctx, "play", ["some", "song"])

        background.assert_called_once_with(ctx.orchestrator.play_song, B)


class TestStatusLine:
    def test_nothing_playing(self) -> None:
        assert status_line(PlayerSnapshot()) == "Nothing playing"
        assert "no audio engine" in status_line(PlayerSnapshot(degraded=True))

    def test_error_takes_precedence(self) -> None:
        snapshot = PlayerSnapshot(current_track=A, error="Search failed: x")

        assert status_line(snapshot) == "⚠ Search failed: x"

    def test_playing_with_modes(self) -> None:
        snapshot = PlayerSnapshot(
            current_track=A,
            is_playing=True,
            position=65,
            duration=180,
            shuffle=True,
            repeat_mode=RepeatMode.ONE,
            radio_mode=True,
        )

        line = status_line(snapshot)
        assert line.startswith("▶ Artist a - Song a  1:05/3:00")
        assert "🔀" in line and "🔂" in line and "📻" in line
