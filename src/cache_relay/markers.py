# SPDX-License-Identifier: MIT
"""Filesystem markers that pace and serialize reconciliation passes.

Two sibling files of the cache root carry all cross-process state:

- ``<cacheRoot>.last-sync``: its mtime is the time of the last completed pass
- ``<cacheRoot>.run-sync``: its presence and mtime mark a pass in flight

Neither is a real lock. A run marker older than the staleness window is
treated as abandoned, and the resulting double work is safe because replay
is idempotent.
"""

import os
import time
from pathlib import Path

from .constants import LAST_SYNC_SUFFIX, RUN_SYNC_SUFFIX
from .exceptions import FilesystemUnavailableError
from .logging_config import get_detail_logger


detail_logger = get_detail_logger()


def is_filesystem_root(path: Path | str) -> bool:
    """Check whether a path names a filesystem root such as "/" or "C:\\"."""
    path = Path(path)
    return bool(path.anchor) and path == Path(path.anchor)


def marker_path(cache_root: Path, suffix: str) -> Path:
    """Build the path of a marker that sits next to the cache root.

    Args:
        cache_root: Cache engine base directory
        suffix: Marker suffix, e.g. ".last-sync"

    Returns:
        ``<cacheRoot><suffix>``
    """
    if is_filesystem_root(cache_root):
        raise ValueError(f"Cache root {cache_root!s} has no parent for markers")
    return Path(str(cache_root).rstrip("/\\") + suffix)


class FileMarker:
    """A file whose existence and modification time carry the signal."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def mtime(self) -> float | None:
        """Modification time in epoch seconds, or None if the marker is absent."""
        try:
            return self.path.stat().st_mtime
        except FileNotFoundError:
            return None
        except OSError as e:
            raise FilesystemUnavailableError(
                f"Cannot stat marker: {e}", path=str(self.path)
            ) from e

    def age(self, now: float | None = None) -> float | None:
        """Seconds since the marker was last touched, or None if absent."""
        mtime = self.mtime()
        if mtime is None:
            return None
        return (time.time() if now is None else now) - mtime

    def touch(self, at: float | None = None) -> None:
        """Create the marker if needed and set its mtime.

        Args:
            at: Epoch seconds to record; defaults to the current time
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch(exist_ok=True)
            if at is not None:
                os.utime(self.path, (at, at))
        except OSError as e:
            raise FilesystemUnavailableError(
                f"Cannot touch marker: {e}", path=str(self.path)
            ) from e

    def remove(self) -> None:
        """Delete the marker; an already-absent marker is not an error."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise FilesystemUnavailableError(
                f"Cannot remove marker: {e}", path=str(self.path)
            ) from e


def try_claim(marker: FileMarker, stale_after: float, now: float | None = None) -> bool:
    """Claim a marker unless another holder touched it recently.

    Args:
        marker: Marker used as a best-effort mutual-exclusion flag
        stale_after: Seconds after which an existing claim counts as abandoned
        now: Current epoch seconds; defaults to time.time()

    Returns:
        True if the caller now holds the claim
    """
    now = time.time() if now is None else now
    age = marker.age(now)
    if age is not None and age < stale_after:
        detail_logger.debug(f"Marker {marker.path} held ({age:.1f}s old)")
        return False
    if age is not None:
        detail_logger.info(
            f"Taking over stale marker {marker.path} ({age:.1f}s old)"
        )
    marker.touch(now)
    return True


class SyncMarkers:
    """The last-sync and run-sync markers for one cache root."""

    def __init__(self, cache_root: Path):
        self.cache_root = Path(cache_root)
        self.last = FileMarker(marker_path(self.cache_root, LAST_SYNC_SUFFIX))
        self.run = FileMarker(marker_path(self.cache_root, RUN_SYNC_SUFFIX))

    def last_sync_time(self) -> float | None:
        return self.last.mtime()

    def is_running(self, stale_after: float, now: float | None = None) -> bool:
        """Whether a non-stale run marker is present."""
        age = self.run.age(now)
        return age is not None and age < stale_after

    def claim_run(self, stale_after: float, now: float | None = None) -> bool:
        return try_claim(self.run, stale_after, now)

    def release_run(self) -> None:
        self.run.remove()

    def mark_synced(self, at: float) -> None:
        self.last.touch(at)
