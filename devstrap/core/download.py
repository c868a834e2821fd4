"""
Atomic fetch-to-cache download manager.

This module provides the download pipeline used by every installer:
- Cache hit by filename: a finalized file in the cache is reused as-is
- Streaming download into ``<filename>.tmp`` followed by one atomic rename
- Cleanup of the partial ``.tmp`` file on any error
- Retry logic with exponential backoff for network failures
- Progress reporting (bytes, percentage, speed, ETA)
- Small JSON/text fetch helpers for version descriptors

The final cache filename only ever exists as a complete download. Callers that
need "always latest" content under a stable filename call :func:`invalidate`
before :func:`download`.
"""

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Union

import requests
from requests.exceptions import RequestException

from devstrap.core.exceptions import DownloadError

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".tmp"
CHUNK_SIZE = 8192
USER_AGENT = "devstrap"


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: int
    percentage: float
    speed_bps: float  # bytes per second
    eta_seconds: float  # estimated time remaining

    def __str__(self) -> str:
        """Format progress for display."""
        return format_progress(self)


def cache_path(cache_dir: Union[str, Path], filename: str) -> Path:
    """Final cache location for ``filename``."""
    return Path(cache_dir) / filename


def invalidate(cache_dir: Union[str, Path], filename: str) -> bool:
    """
    Delete a cache entry so the next :func:`download` re-fetches it.

    Returns:
        True if an entry was removed

    Raises:
        DownloadError: If the entry exists but cannot be removed
    """
    path = cache_path(cache_dir, filename)
    if not path.exists():
        return False
    try:
        path.unlink()
    except OSError as e:
        raise DownloadError(f"Failed to invalidate cache entry {path}: {e}") from e
    logger.debug(f"Invalidated cache entry {path}")
    return True


def download(
    url: str,
    cache_dir: Union[str, Path],
    filename: str,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    timeout: int = 30,
    max_retries: int = 3,
) -> Path:
    """
    Download ``url`` into ``cache_dir/filename`` unless it is already cached.

    Args:
        url: URL to download from
        cache_dir: Cache directory (created if missing)
        filename: Deterministic cache filename
        progress_callback: Optional callback for progress updates
        timeout: Request timeout in seconds
        max_retries: Maximum number of attempts for network failures

    Returns:
        Path to the finalized cache file

    Raises:
        DownloadError: If the download fails after retries or the cache
            cannot be written

    Example:
        >>> path = download(
        ...     "https://go.dev/dl/go1.24.0.linux-amd64.tar.gz",
        ...     Path("~/devstrap/cache").expanduser(),
        ...     "go1.24.0.linux-amd64.tar.gz",
        ... )
    """
    if not url:
        raise ValueError("URL cannot be empty")
    if not filename:
        raise ValueError("Filename cannot be empty")

    destination = cache_path(cache_dir, filename)
    if destination.exists():
        logger.debug(f"Cache hit: {destination}")
        return destination

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DownloadError(f"Cannot create cache directory {destination.parent}: {e}") from e

    temp_path = destination.with_name(destination.name + TEMP_SUFFIX)

    for attempt in range(max_retries):
        try:
            _stream_to_file(url, temp_path, progress_callback, timeout)
            break
        except RequestException as e:
            _discard(temp_path)
            if attempt == max_retries - 1:
                raise DownloadError(
                    f"Download of {url} failed after {max_retries} attempts: {e}"
                ) from e

            backoff_seconds = 2**attempt
            logger.warning(
                f"Download attempt {attempt + 1} failed: {e}. "
                f"Retrying in {backoff_seconds}s..."
            )
            time.sleep(backoff_seconds)
        except OSError as e:
            _discard(temp_path)
            raise DownloadError(f"Failed to write {temp_path}: {e}") from e
        except BaseException:
            _discard(temp_path)
            raise

    try:
        os.replace(temp_path, destination)
    except OSError as e:
        _discard(temp_path)
        raise DownloadError(f"Failed to finalize {destination}: {e}") from e

    logger.info(f"Download complete: {destination.name}")
    return destination


def _discard(temp_path: Path) -> None:
    try:
        temp_path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug(f"Could not remove partial download {temp_path}: {e}")


def _stream_to_file(
    url: str,
    destination: Path,
    progress_callback: Optional[Callable[[DownloadProgress], None]],
    timeout: int,
) -> None:
    """Stream the response body into ``destination`` (overwritten)."""
    logger.info(f"Downloading {url}")

    response = requests.get(
        url,
        stream=True,
        timeout=timeout,
        allow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )
    response.raise_for_status()

    content_length = response.headers.get("content-length")
    total_size = int(content_length) if content_length else 0

    downloaded = 0
    start_time = time.time()
    last_progress_time = start_time

    with open(destination, "wb") as f:
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            if not chunk:
                continue
            f.write(chunk)
            downloaded += len(chunk)

            # Report progress (max once per 0.5 seconds to avoid spam)
            current_time = time.time()
            if progress_callback and (
                current_time - last_progress_time >= 0.5 or downloaded == total_size
            ):
                elapsed = current_time - start_time
                speed = downloaded / elapsed if elapsed > 0 else 0
                remaining = total_size - downloaded if total_size > 0 else 0
                eta = remaining / speed if speed > 0 else 0

                progress_callback(
                    DownloadProgress(
                        bytes_downloaded=downloaded,
                        total_bytes=total_size if total_size > 0 else downloaded,
                        percentage=(downloaded / total_size * 100) if total_size > 0 else 0,
                        speed_bps=speed,
                        eta_seconds=eta,
                    )
                )
                last_progress_time = current_time


def fetch_json(url: str, timeout: int = 15) -> Any:
    """
    Fetch and decode a JSON document.

    Raises:
        DownloadError: On network, HTTP or decoding errors
    """
    try:
        response = requests.get(url, timeout=timeout, headers={"User-Agent": USER_AGENT})
        response.raise_for_status()
        return response.json()
    except (RequestException, ValueError) as e:
        raise DownloadError(f"Failed to fetch {url}: {e}") from e


def fetch_text(url: str, timeout: int = 15) -> str:
    """
    Fetch a small text document, stripped of surrounding whitespace.

    Raises:
        DownloadError: On network or HTTP errors
    """
    try:
        response = requests.get(url, timeout=timeout, headers={"User-Agent": USER_AGENT})
        response.raise_for_status()
        return response.text.strip()
    except RequestException as e:
        raise DownloadError(f"Failed to fetch {url}: {e}") from e


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Example:
        >>> progress = DownloadProgress(52428800, 104857600, 50.0, 1048576, 50)
        >>> print(format_progress(progress))
        50.0/100.0 MB (50.0%) at 1.0 MB/s ETA: 50s
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024
    speed_mbps = progress.speed_bps / 1024 / 1024

    if progress.total_bytes > 0:
        return (
            f"{mb_downloaded:.1f}/{mb_total:.1f} MB "
            f"({progress.percentage:.1f}%) "
            f"at {speed_mbps:.1f} MB/s "
            f"ETA: {progress.eta_seconds:.0f}s"
        )
    return f"{mb_downloaded:.1f} MB at {speed_mbps:.1f} MB/s"


__all__ = [
    "DownloadProgress",
    "cache_path",
    "invalidate",
    "download",
    "fetch_json",
    "fetch_text",
    "format_progress",
]
