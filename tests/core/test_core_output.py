"""Tests for console/file output helpers."""

import threading

from aura_tui.core import output
from aura_tui.core.output import TransientMessage

from conftest import FakeClock


class TestTransientMessage:
    """Tests for auto-dismissing messages."""

    def test_expires_after_interval(self) -> None:
        clock = FakeClock()
        message = TransientMessage(5.0, clock=clock)

        message.set("Search failed")
        clock.advance(4)
        assert message.current == "Search failed"
        clock.advance(1)
        assert message.current is None

    def test_new_message_restarts_interval(self) -> None:
        """Test a replacement message gets a full display interval."""
        clock = FakeClock()
        message = TransientMessage(5.0, clock=clock)

        message.set("first")
        clock.advance(4)
        message.set("second")
        clock.advance(4)

        assert message.current == "second"

    def test_clear(self) -> None:
        message = TransientMessage(5.0, clock=FakeClock())
        message.set("oops")

        message.clear()

        assert message.current is None


class TestLog:
    """Tests for the unified log function."""

    def test_prints_to_console(self, capsys, monkeypatch) -> None:
        monkeypatch.setattr(output, "_console", None)

        output.log("Queued 3 tracks", level="success")

        assert "Queued 3 tracks" in capsys.readouterr().out

    def test_silent_thread_skips_console(self, capsys, monkeypatch) -> None:
        """Test background threads marked silent only log to file."""
        monkeypatch.setattr(output, "_console", None)

        def work() -> None:
            output.log("from background")

        thread = threading.Thread(target=work)
        thread.silent_logging = True
        thread.start()
        thread.join()

        assert "from background" not in capsys.readouterr().out
