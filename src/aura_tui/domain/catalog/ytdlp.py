"""Thin yt-dlp wrapper shared by the catalog collaborators.

yt-dlp's own ``socket_timeout`` only bounds individual socket reads, so every
extraction also runs on a worker thread with an overall deadline.
"""

import shutil
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Optional

import yt_dlp
from loguru import logger

from .exceptions import CatalogTimeoutError

# Extractions that blew their deadline keep running here until yt-dlp gives up;
# the pool size bounds how many can pile up.
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="ytdlp")

BASE_OPTIONS: dict[str, Any] = {
    "quiet": True,
    "no_warnings": True,
    "noprogress": True,
}


def watch_url(track_id: str) -> str:
    return f"https://www.youtube.com/watch?v={track_id}"


def music_url(track_id: str) -> str:
    return f"https://music.youtube.com/watch?v={track_id}"


def _extract(url: str, options: dict[str, Any]) -> Optional[dict[str, Any]]:
    with yt_dlp.YoutubeDL(options) as ydl:
        return ydl.extract_info(url, download=False)


def extract_info(
    url: str, timeout: float, **options: Any
) -> Optional[dict[str, Any]]:
    """Run ``YoutubeDL.extract_info`` without downloading, bounded by ``timeout``.

    Raises:
        CatalogTimeoutError: The extraction did not finish in time
        yt_dlp.utils.DownloadError: yt-dlp reported a failure
    """
    opts = {**BASE_OPTIONS, "socket_timeout": max(1, int(timeout)), **options}
    future = _executor.submit(_extract, url, opts)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        future.cancel()
        logger.warning(f"yt-dlp extraction timed out after {timeout}s: {url}")
        raise CatalogTimeoutError(f"Timed out after {timeout}s: {url}")


def is_ytdlp_available() -> bool:
    """Check whether the yt-dlp executable (used for cache downloads) is on PATH."""
    return shutil.which("yt-dlp") is not None
