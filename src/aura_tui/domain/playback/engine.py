"""
MPV audio engine adapter using JSON IPC.

One mpv process is owned for the lifetime of the application. Commands go over
short-lived socket connections; lifecycle events arrive over a persistent
connection read by a background thread and are normalized into
``started``/``stopped``/``paused``/``resumed``/``progress``/``song_end``.

Natural end of a track is decided from the stop event alone: a stop that was
not requested by us, after playback actually progressed, is a natural end.
Position is polled because mpv's pushed position updates are not reliable
across versions; a failed poll is expected and falls back to extrapolating
from wall time.
"""

import enum
import json
import os
import socket
import subprocess
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from loguru import logger

from aura_tui.core.config import PlayerConfig

from .exceptions import EngineCommandError

# Minimum playback progress (seconds) before a stop can count as a natural end
MIN_PLAYBACK_TIME = 1.0

# Position poll period (seconds)
POLL_INTERVAL = 0.2

SOCKET_TIMEOUT = 2.0
STARTUP_TIMEOUT = 5.0

EVENTS = ("started", "stopped", "paused", "resumed", "progress", "song_end")

Listener = Callable[..., None]


class EngineState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(frozen=True)
class EngineSnapshot:
    """Point-in-time view of the engine."""

    playing: bool
    position: int
    precise_position: float
    duration: float
    volume: int
    muted: bool
    transitioning: bool
    state: EngineState


def check_mpv_available() -> bool:
    """Check if MPV is available on the system."""
    try:
        result = subprocess.run(
            ["mpv", "--version"], capture_output=True, text=True, timeout=5
        )
        return result.returncode == 0
    except (subprocess.SubprocessError, FileNotFoundError, OSError):
        return False


class MpvTransport:
    """Owns the mpv process and speaks its JSON IPC protocol."""

    degraded = False

    def __init__(self, socket_path: Optional[str] = None):
        if socket_path is None:
            socket_path = str(Path(tempfile.gettempdir()) / f"aura-tui-mpv-{os.getpid()}")
        self.socket_path = socket_path
        self.process: Optional[subprocess.Popen] = None

    def start(self, volume: int = 50) -> bool:
        """Start MPV with JSON IPC. Returns False if it could not be brought up."""
        logger.info(f"Starting MPV player with socket: {self.socket_path}")

        try:
            if os.path.exists(self.socket_path):
                logger.debug(f"Removing existing socket: {self.socket_path}")
                os.unlink(self.socket_path)

            cmd = [
                "mpv",
                "--idle=yes",
                "--no-video",
                "--no-terminal",
                f"--input-ipc-server={self.socket_path}",
                f"--volume={volume}",
                "--load-scripts=no",
            ]

            self.process = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
            )

            start_time = time.time()
            while not os.path.exists(self.socket_path):
                if time.time() - start_time > STARTUP_TIMEOUT:
                    logger.error(f"MPV socket creation timeout after {STARTUP_TIMEOUT}s")
                    self.stop()
                    return False
                time.sleep(0.1)

            if self.get_property("idle-active") is None:
                logger.error("MPV socket connection test failed")
                self.stop()
                return False

            logger.info("MPV started successfully")
            return True

        except (subprocess.SubprocessError, OSError) as e:
            logger.error(f"Failed to start MPV: {e}")
            self.process = None
            return False

    def is_running(self) -> bool:
        if not self.process or self.process.poll() is not None:
            return False
        return os.path.exists(self.socket_path)

    def _request(self, command: list[Any]) -> Optional[dict[str, Any]]:
        """Send one command and return mpv's reply, skipping interleaved events."""
        if not self.is_running():
            return None

        try:
            with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
                sock.settimeout(SOCKET_TIMEOUT)
                sock.connect(self.socket_path)
                sock.sendall((json.dumps({"command": command}) + "\n").encode("utf-8"))

                buffer = b""
                while True:
                    chunk = sock.recv(4096)
                    if not chunk:
                        return None
                    buffer += chunk
                    while b"\n" in buffer:
                        line, buffer = buffer.split(b"\n", 1)
                        try:
                            message = json.loads(line)
                        except json.JSONDecodeError:
                            continue
                        if "error" in message:
                            return message

        except (socket.error, OSError):
            return None

    def send_command(self, command: list[Any]) -> bool:
        reply = self._request(command)
        return reply is not None and reply.get("error") == "success"

    def get_property(self, name: str) -> Any:
        reply = self._request(["get_property", name])
        if reply and reply.get("error") == "success":
            return reply.get("data")
        return None

    def open_event_stream(self) -> Optional[socket.socket]:
        """Open the persistent connection used for events."""
        if not self.is_running():
            return None
        try:
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            sock.connect(self.socket_path)
            sock.sendall(
                (json.dumps({"command": ["observe_property", 1, "pause"]}) + "\n").encode(
                    "utf-8"
                )
            )
            return sock
        except (socket.error, OSError) as e:
            logger.warning(f"Could not open MPV event stream: {e}")
            return None

    def stop(self) -> None:
        """Kill the MPV process and remove its socket."""
        if self.process:
            try:
                self.process.kill()
                self.process.wait(timeout=2.0)
            except (OSError, subprocess.TimeoutExpired):
                pass  # Already gone
            self.process = None

        if self.socket_path and os.path.exists(self.socket_path):
            try:
                os.unlink(self.socket_path)
            except OSError:
                pass


class NullTransport:
    """Stand-in used when mpv cannot be started: every operation is a no-op."""

    degraded = True
    socket_path = None

    def is_running(self) -> bool:
        return False

    def send_command(self, command: list[Any]) -> bool:
        return False

    def get_property(self, name: str) -> Any:
        return None

    def open_event_stream(self) -> None:
        return None

    def stop(self) -> None:
        pass


class AudioEngine:
    """Single point of control over the external playback process.

    Args:
        transport: ``MpvTransport`` or ``NullTransport``
        volume: Initial volume (0-100)
        clock: Monotonic clock, injectable for tests
        poll_interval: Seconds between position polls
    """

    def __init__(
        self,
        transport,
        volume: int = 50,
        clock: Callable[[], float] = time.monotonic,
        poll_interval: float = POLL_INTERVAL,
    ):
        self.transport = transport
        self._clock = clock
        self._poll_interval = poll_interval
        self._lock = threading.RLock()
        self._listeners: dict[str, list[Listener]] = {name: [] for name in EVENTS}

        self._state = EngineState.IDLE
        self._manual_stop = False
        self._replaced_ends = 0  # end-file events still owed by replaced loads
        self._end_emitted = False
        self._position = 0.0
        self._position_updated_at = clock()
        self._duration = 0.0
        self._duration_known = False
        self._volume = max(0, min(100, volume))
        self._muted = False

        self._shutdown = threading.Event()
        self._threads: list[threading.Thread] = []
        self._event_sock: Optional[socket.socket] = None

    @property
    def degraded(self) -> bool:
        return self.transport.degraded

    # Lifecycle

    def init(self) -> None:
        """Start the event reader and position poller threads."""
        if self.degraded:
            logger.warning("Audio engine unavailable - running without sound")
            return

        self._event_sock = self.transport.open_event_stream()
        if self._event_sock is not None:
            self._start_thread(self._read_events, "MpvEventReader")
        self._start_thread(self._poll_loop, "MpvPositionPoller")

    def _start_thread(self, target: Callable[[], None], name: str) -> None:
        thread = threading.Thread(target=target, daemon=True, name=name)
        thread.silent_logging = True
        thread.start()
        self._threads.append(thread)

    def destroy(self) -> None:
        """Stop background threads and tear down the mpv process."""
        self._shutdown.set()
        if self._event_sock is not None:
            try:
                self._event_sock.close()
            except OSError:
                pass
            self._event_sock = None
        self.transport.stop()
        for thread in self._threads:
            thread.join(timeout=1.0)
        self._threads.clear()
        logger.debug("Audio engine destroyed")

    # Subscriptions

    def on(self, event: str, listener: Listener) -> Callable[[], None]:
        """Register a listener for an engine event. Returns an unsubscribe callable."""
        if event not in self._listeners:
            raise ValueError(f"Unknown engine event: {event}")
        with self._lock:
            self._listeners[event].append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners[event]:
                    self._listeners[event].remove(listener)

        return unsubscribe

    def _emit(self, event: str, *args: Any) -> None:
        with self._lock:
            listeners = list(self._listeners[event])
        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                logger.exception(f"Engine listener for {event!r} failed")

    # Commands

    def play(self, source: str, known_duration: Optional[float] = None) -> None:
        """Stop whatever is playing and issue a load for ``source``.

        Returns once the load has been issued; the ``started`` event reports
        when audio actually begins. Raises ``EngineCommandError`` if a running
        mpv refuses the load; a degraded engine accepts silently.
        """
        with self._lock:
            if self._state is not EngineState.IDLE:
                # The old track's end-file belongs to it, not to the new load
                self._replaced_ends += 1
                self.transport.send_command(["stop"])

            self._manual_stop = False
            self._state = EngineState.LOADING
            self._end_emitted = False
            self._position = 0.0
            self._position_updated_at = self._clock()
            self._duration = float(known_duration or 0)
            self._duration_known = bool(known_duration)

            self.transport.send_command(["set_property", "pause", False])
            ok = self.transport.send_command(["loadfile", source, "replace"])
            if not ok and not self.degraded:
                self._state = EngineState.IDLE

        if ok:
            logger.debug(f"Loading {source}")
        elif self.degraded:
            logger.debug(f"Engine degraded, not loading {source}")
        else:
            raise EngineCommandError("loadfile", f"Engine did not accept load for {source}")

    def pause(self) -> None:
        if not self.transport.send_command(["set_property", "pause", True]):
            logger.debug("Pause ignored by engine")

    def resume(self) -> None:
        if not self.transport.send_command(["set_property", "pause", False]):
            logger.debug("Resume ignored by engine")

    def stop(self) -> None:
        """Stop playback; the resulting stop event is not a natural end."""
        with self._lock:
            if self._state is not EngineState.IDLE:
                self._manual_stop = True
            self.transport.send_command(["stop"])

    def seek(self, delta_seconds: float) -> float:
        """Seek relative to the current position and return the new estimate."""
        with self._lock:
            target = max(0.0, self._current_position() + delta_seconds)
            if self._duration_known and self._duration > 0:
                target = min(target, self._duration)
            self._position = target
            self._position_updated_at = self._clock()

        self.transport.send_command(["seek", target, "absolute"])
        return target

    def set_volume(self, volume: int) -> int:
        volume = max(0, min(100, int(volume)))
        with self._lock:
            self._volume = volume
        self.transport.send_command(["set_property", "volume", volume])
        return volume

    def set_muted(self, muted: bool) -> None:
        with self._lock:
            self._muted = muted
        self.transport.send_command(["set_property", "mute", muted])

    def set_loop(self, enabled: bool) -> None:
        """Engine-level infinite loop of the current file (repeat-one)."""
        self.transport.send_command(
            ["set_property", "loop-file", "inf" if enabled else "no"]
        )

    def get_state(self) -> EngineSnapshot:
        with self._lock:
            position = self._current_position()
            return EngineSnapshot(
                playing=self._state is EngineState.PLAYING,
                position=int(position),
                precise_position=position,
                duration=self._duration,
                volume=self._volume,
                muted=self._muted,
                transitioning=self._state is EngineState.LOADING,
                state=self._state,
            )

    # Position tracking

    def _current_position(self) -> float:
        """Last known position, extrapolated while playing."""
        if self._state is EngineState.PLAYING:
            elapsed = self._clock() - self._position_updated_at
            position = self._position + max(0.0, elapsed)
            if self._duration_known and self._duration > 0:
                position = min(position, self._duration)
            return position
        return self._position

    def poll_position(self) -> None:
        """Query mpv for position and duration once."""
        with self._lock:
            if self._state is not EngineState.PLAYING:
                return

        position = self.transport.get_property("time-pos")
        duration = self.transport.get_property("duration")

        with self._lock:
            if self._state is not EngineState.PLAYING:
                return
            if isinstance(position, (int, float)) and position >= 0:
                self._position = float(position)
                self._position_updated_at = self._clock()
            else:
                # Poll failures are routine; keep extrapolating
                self._position = self._current_position()
                self._position_updated_at = self._clock()
            if isinstance(duration, (int, float)) and duration > 0:
                self._duration = float(duration)
                self._duration_known = True
            position_now, duration_now = self._position, self._duration

        self._emit("progress", position_now, duration_now)

    def _poll_loop(self) -> None:
        while not self._shutdown.wait(self._poll_interval):
            try:
                self.poll_position()
            except Exception:
                logger.exception("Position poll failed")

    # Event handling

    def _read_events(self) -> None:
        sock = self._event_sock
        buffer = b""
        while not self._shutdown.is_set() and sock is not None:
            try:
                chunk = sock.recv(4096)
            except OSError:
                break
            if not chunk:
                break
            buffer += chunk
            while b"\n" in buffer:
                line, buffer = buffer.split(b"\n", 1)
                try:
                    message = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if "event" in message:
                    try:
                        self.handle_event(message)
                    except Exception:
                        logger.exception(f"Failed to handle MPV event {message!r}")

        if not self._shutdown.is_set():
            logger.warning("MPV event stream closed")

    def handle_event(self, message: dict[str, Any]) -> None:
        """Translate one raw mpv event into the normalized lifecycle."""
        event = message.get("event")

        if event == "playback-restart":
            self._on_started()
        elif event == "end-file":
            self._on_end_file(message.get("reason"))
        elif event == "property-change" and message.get("name") == "pause":
            self._on_pause_changed(bool(message.get("data")))

    def _on_started(self) -> None:
        with self._lock:
            # playback-restart also follows seeks; only the first one after a load counts
            if self._state is not EngineState.LOADING:
                return
            self._state = EngineState.PLAYING
            self._replaced_ends = 0
            self._position = 0.0
            self._position_updated_at = self._clock()
        logger.debug("Playback started")
        self._emit("started")

    def _on_end_file(self, reason: Optional[str]) -> None:
        with self._lock:
            if self._replaced_ends:
                # Stop of the previous track while the next one loads
                self._replaced_ends -= 1
                logger.debug("Ignoring stop event from previous track")
                return

            was_manual = self._manual_stop
            self._manual_stop = False

            had_started = self._state in (EngineState.PLAYING, EngineState.PAUSED)
            progressed = self._current_position() >= MIN_PLAYBACK_TIME
            natural = (
                not was_manual and had_started and progressed and not self._end_emitted
            )
            if natural:
                self._end_emitted = True

            self._state = EngineState.IDLE
            self._position = 0.0

        logger.debug(f"Playback stopped (reason={reason}, manual={was_manual}, natural={natural})")
        self._emit("stopped")
        if natural:
            self._emit("song_end")

    def _on_pause_changed(self, paused: bool) -> None:
        with self._lock:
            if paused and self._state is EngineState.PLAYING:
                self._position = self._current_position()
                self._state = EngineState.PAUSED
                event = "paused"
            elif not paused and self._state is EngineState.PAUSED:
                self._position_updated_at = self._clock()
                self._state = EngineState.PLAYING
                event = "resumed"
            else:
                return
        self._emit(event)


def create_engine(config: PlayerConfig) -> AudioEngine:
    """Start mpv and wrap it, falling back to a silent engine if mpv is unusable."""
    transport = MpvTransport(config.mpv_socket_path)
    if not check_mpv_available() or not transport.start(config.volume):
        logger.warning("MPV not available - playback will be silent")
        transport = NullTransport()

    engine = AudioEngine(transport, volume=config.volume)
    engine.init()
    return engine
