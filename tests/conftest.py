"""Shared fixtures: temporary store, fake mpv transport, fake downloads, manual clock and timers."""

import subprocess
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from aura_tui.core.store import Store
from aura_tui.domain.catalog.models import Track


class FakeTransport:
    """Records mpv commands instead of sending them."""

    degraded = False
    socket_path = "/tmp/fake-mpv"

    def __init__(self, accept: bool = True):
        self.accept = accept
        self.commands: list[list[Any]] = []
        self.properties: dict[str, Any] = {}
        self.stopped = False

    def is_running(self) -> bool:
        return not self.stopped

    def send_command(self, command: list[Any]) -> bool:
        self.commands.append(command)
        return self.accept

    def get_property(self, name: str) -> Any:
        return self.properties.get(name)

    def open_event_stream(self) -> None:
        return None

    def stop(self) -> None:
        self.stopped = True

    def loaded_sources(self) -> list[str]:
        return [c[1] for c in self.commands if c[0] == "loadfile"]


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ManualTimer:
    def __init__(self, seconds: float, fn: Callable[..., None], args: tuple):
        self.seconds = seconds
        self.fn = fn
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.fn(*self.args)


class ManualTimers:
    """timer_factory that hands timers back to the test instead of starting threads."""

    def __init__(self):
        self.timers: list[ManualTimer] = []

    def __call__(self, seconds: float, fn: Callable[..., None], *args) -> ManualTimer:
        timer = ManualTimer(seconds, fn, args)
        self.timers.append(timer)
        return timer

    def pending(self, seconds: Optional[float] = None) -> list[ManualTimer]:
        return [
            t
            for t in self.timers
            if not t.cancelled and (seconds is None or t.seconds == seconds)
        ]


class FakeProcess:
    def __init__(self, path: Path):
        self.path = path
        self.returncode = None
        self.terminated = False
        self.hang = False

    def wait(self, timeout=None):
        if self.hang:
            raise subprocess.TimeoutExpired("yt-dlp", timeout)
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True

    def finish(self, ok: bool = True) -> None:
        self.returncode = 0 if ok else 1
        if ok:
            self.path.write_bytes(b"audio")


class FakeDownloads:
    """Downloader and watcher spawner whose processes finish on demand."""

    def __init__(self):
        self.procs: dict[str, FakeProcess] = {}
        self.started: list[str] = []
        self.watchers: list = []

    def downloader(self, track_id: str, path: Path) -> FakeProcess:
        proc = FakeProcess(path)
        self.procs[track_id] = proc
        self.started.append(track_id)
        return proc

    def spawn(self, fn, *args) -> None:
        self.watchers.append((fn, args))

    def complete(self, track_id: str, ok: bool = True) -> None:
        proc = self.procs[track_id]
        proc.finish(ok)
        self._run_watcher(proc)

    def expire(self, track_id: str) -> None:
        proc = self.procs[track_id]
        proc.hang = True
        self._run_watcher(proc)

    def _run_watcher(self, proc: FakeProcess) -> None:
        for fn, args in list(self.watchers):
            if args[1] is proc:
                self.watchers.remove((fn, args))
                fn(*args)


def run_inline(fn: Callable[..., None], *args) -> None:
    fn(*args)


def make_track(track_id: str, duration: int = 180, title: Optional[str] = None) -> Track:
    return Track(
        id=track_id,
        title=title or f"Song {track_id}",
        artist=f"Artist {track_id}",
        duration=duration,
    )


@pytest.fixture
def store(tmp_path) -> Store:
    """Initialized store backed by a temporary database."""
    s = Store(tmp_path / "aura-tui.db")
    s.init()
    return s


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture
def downloads() -> FakeDownloads:
    return FakeDownloads()
