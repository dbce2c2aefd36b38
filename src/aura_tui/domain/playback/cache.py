"""
Sliding-window prefetch cache for upcoming queue tracks.

Keeps the first ``window_size`` queue tracks downloaded to a local directory
with at most ``max_concurrent`` yt-dlp processes running at once. Tracks that
leave the window have their download killed and their file deleted, so disk
usage and process count stay bounded however long the queue grows.
"""

import enum
import shutil
import subprocess
import tempfile
import threading
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from loguru import logger

from ..catalog.models import Track
from ..catalog.ytdlp import watch_url

WINDOW_SIZE = 5
MAX_CONCURRENT = 3
DOWNLOAD_TIMEOUT = 120.0  # Seconds before a stuck download is killed


class CacheStatus(enum.Enum):
    DOWNLOADING = "downloading"
    READY = "ready"
    ERROR = "error"


@dataclass
class CacheEntry:
    """One track in the window. ``process`` is set while its download runs."""

    track_id: str
    file_path: Path
    status: CacheStatus = CacheStatus.DOWNLOADING
    process: Optional[subprocess.Popen] = None


def default_cache_dir() -> Path:
    return Path(tempfile.gettempdir()) / "aura-tui-cache"


def spawn_downloader(track_id: str, file_path: Path) -> subprocess.Popen:
    """Start a yt-dlp process fetching best audio for ``track_id`` to ``file_path``."""
    return subprocess.Popen(
        [
            "yt-dlp",
            "-f",
            "bestaudio",
            "--no-warnings",
            "--quiet",
            "--no-playlist",
            "-o",
            str(file_path),
            watch_url(track_id),
        ],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        stdin=subprocess.DEVNULL,
    )


def _spawn_thread(fn: Callable[..., None], *args) -> None:
    thread = threading.Thread(target=fn, args=args, daemon=True, name="CacheDownloadWatcher")
    thread.silent_logging = True
    thread.start()


class PrefetchCache:
    """Prefetch cache for the head of the play queue.

    Args:
        cache_dir: Directory for downloaded files (created on ``init``)
        window_size: Number of leading queue tracks to keep cached
        max_concurrent: Maximum simultaneous downloads
        download_timeout: Seconds before a download is killed
        enabled: When False the cache never downloads anything
        downloader: ``(track_id, path) -> Popen``; injectable for tests
        spawn: ``(fn, *args)`` runner for download watchers; injectable for tests
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        window_size: int = WINDOW_SIZE,
        max_concurrent: int = MAX_CONCURRENT,
        download_timeout: float = DOWNLOAD_TIMEOUT,
        enabled: bool = True,
        downloader: Callable[[str, Path], subprocess.Popen] = spawn_downloader,
        spawn: Callable[..., None] = _spawn_thread,
    ):
        self.cache_dir = Path(cache_dir) if cache_dir else default_cache_dir()
        self.window_size = window_size
        self.max_concurrent = max_concurrent
        self.download_timeout = download_timeout
        self.enabled = enabled
        self._downloader = downloader
        self._spawn = spawn

        self._lock = threading.RLock()
        self._entries: dict[str, CacheEntry] = {}
        self._active: dict[str, subprocess.Popen] = {}
        self._pending: deque[str] = deque()
        self._window_ids: set[str] = set()

    def init(self) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def file_path_for(self, track_id: str) -> Path:
        return self.cache_dir / f"{track_id}.audio"

    # Window management

    def update_window(self, queue: Sequence[Track], current_id: Optional[str] = None) -> None:
        """Slide the window to the first ``window_size`` tracks of ``queue``.

        ``current_id`` names the track being played. Its ready file may be
        open in the player, so it is kept outside the window until a later
        update names a different current track.
        """
        if not self.enabled:
            return

        desired: list[str] = []
        for track in queue[: self.window_size]:
            if track.id not in desired:
                desired.append(track.id)
        desired_ids = set(desired)

        with self._lock:
            for track_id, entry in list(self._entries.items()):
                if track_id in desired_ids:
                    continue
                if track_id == current_id and entry.status is CacheStatus.READY:
                    continue
                self._remove_entry(track_id)

            self._pending = deque(tid for tid in self._pending if tid in desired_ids)
            self._window_ids = desired_ids

            added = 0
            for track_id in desired:
                if track_id in self._entries:
                    continue
                self._entries[track_id] = CacheEntry(
                    track_id=track_id, file_path=self.file_path_for(track_id)
                )
                self._pending.append(track_id)
                added += 1

            if added:
                logger.debug(f"Cache window now {desired}, {added} new")

            self._drain()

    def _remove_entry(self, track_id: str) -> None:
        """Kill the download (if any), delete files and forget the entry."""
        entry = self._entries.pop(track_id, None)
        proc = self._active.pop(track_id, None)
        if proc is not None:
            self._terminate(proc)
        if entry is not None:
            self._delete_files(entry.file_path)
            logger.debug(f"Evicted {track_id} from cache ({entry.status.value})")

    @staticmethod
    def _terminate(proc: subprocess.Popen) -> None:
        try:
            proc.terminate()
        except OSError:
            pass  # Already exited

    @staticmethod
    def _delete_files(file_path: Path) -> None:
        """Delete a cached file and any partial/temporary siblings yt-dlp left."""
        for path in [file_path, *file_path.parent.glob(f"{file_path.name}.*")]:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not delete cache file {path}: {e}")

    # Downloads

    def _drain(self) -> None:
        """Start pending downloads until the concurrency limit is reached."""
        with self._lock:
            while len(self._active) < self.max_concurrent and self._pending:
                track_id = self._pending.popleft()
                entry = self._entries.get(track_id)
                if (
                    entry is None
                    or track_id not in self._window_ids
                    or entry.status is not CacheStatus.DOWNLOADING
                    or entry.process is not None
                ):
                    continue
                self._start_download(entry)

    def _start_download(self, entry: CacheEntry) -> None:
        try:
            proc = self._downloader(entry.track_id, entry.file_path)
        except OSError as e:
            logger.warning(f"Could not start download for {entry.track_id}: {e}")
            entry.status = CacheStatus.ERROR
            self._delete_files(entry.file_path)
            return

        entry.process = proc
        self._active[entry.track_id] = proc
        logger.debug(f"Downloading {entry.track_id} -> {entry.file_path}")
        self._spawn(self._watch_download, entry.track_id, proc)

    def _watch_download(self, track_id: str, proc: subprocess.Popen) -> None:
        """Wait for a download process, enforcing the timeout, then record the result."""
        try:
            returncode = proc.wait(timeout=self.download_timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"Download of {track_id} timed out after {self.download_timeout}s")
            self._terminate(proc)
            returncode = None
        except Exception:
            logger.exception(f"Download watcher for {track_id} failed")
            returncode = None

        self._on_download_finished(track_id, proc, returncode)

    def _on_download_finished(
        self, track_id: str, proc: subprocess.Popen, returncode: Optional[int]
    ) -> None:
        with self._lock:
            if self._active.get(track_id) is proc:
                del self._active[track_id]

            entry = self._entries.get(track_id)
            if entry is None or entry.process is not proc:
                # The track left the window mid-download; never populate from it
                if entry is None:
                    self._delete_files(self.file_path_for(track_id))
                logger.debug(f"Discarded stale download result for {track_id}")
            else:
                entry.process = None
                if returncode == 0 and entry.file_path.exists():
                    entry.status = CacheStatus.READY
                    logger.debug(f"Cached {track_id}")
                else:
                    entry.status = CacheStatus.ERROR
                    self._delete_files(entry.file_path)
                    logger.debug(f"Download failed for {track_id} (code={returncode})")

            self._drain()

    # Queries

    def get_cached_path(self, track_id: str) -> Optional[str]:
        """Local file for a ready track, verified to still exist, else None."""
        with self._lock:
            entry = self._entries.get(track_id)
            if entry is None or entry.status is not CacheStatus.READY:
                return None
            path = entry.file_path

        if path.exists():
            return str(path)
        return None

    def is_caching(self, track_id: str) -> bool:
        with self._lock:
            entry = self._entries.get(track_id)
            return entry is not None and entry.status is CacheStatus.DOWNLOADING

    def active_downloads(self) -> int:
        with self._lock:
            return len(self._active)

    def get_stats(self) -> dict[str, int]:
        """Counts by status, for display and debugging."""
        with self._lock:
            statuses = [entry.status for entry in self._entries.values()]
            return {
                "total": len(statuses),
                "ready": statuses.count(CacheStatus.READY),
                "downloading": statuses.count(CacheStatus.DOWNLOADING),
                "error": statuses.count(CacheStatus.ERROR),
                "active": len(self._active),
            }

    # Teardown

    def cancel_all(self) -> None:
        """Kill every running download and drop unfinished entries.

        Ready files are kept, so the next ``update_window`` only has to
        re-queue what was in flight.
        """
        with self._lock:
            for proc in self._active.values():
                self._terminate(proc)
            self._active.clear()
            self._pending.clear()
            for track_id, entry in list(self._entries.items()):
                if entry.status is CacheStatus.DOWNLOADING:
                    del self._entries[track_id]
                    self._delete_files(entry.file_path)

    def cleanup(self) -> None:
        """Cancel downloads and remove the whole cache directory. Call on exit."""
        with self._lock:
            self.cancel_all()
            self._entries.clear()
            self._window_ids = set()

        if self.cache_dir.exists():
            shutil.rmtree(self.cache_dir, ignore_errors=True)
        logger.debug(f"Cache cleaned up: {self.cache_dir}")
