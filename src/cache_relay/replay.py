# SPDX-License-Identifier: MIT
"""Applies recorded clear events against the local cache.

Every branch is safe to run twice with the same arguments: clearing an
already-cleared page, or deleting a file that is already gone, is a no-op.
Reconciliation relies on that to tolerate overlapping passes.
"""

import shutil
from pathlib import Path

from .constants import OPTION_FILES_CLEARED, OPTION_PATHS_CLEARED
from .enums import ClearMethod
from .logging_config import get_detail_logger
from .models import ClearEvent, Page
from .protocols import CacheEngine, PageLookup


detail_logger = get_detail_logger()


def resolve_under(root: Path, relative: str) -> Path | None:
    """Resolve a recorded path inside a root directory.

    Leading separators are ignored so that ``/cache/foo.html`` refers to
    ``<root>/cache/foo.html``.

    Returns:
        The resolved path, or None if it would escape the root
    """
    root = root.resolve()
    candidate = (root / str(relative).lstrip("/\\")).resolve()
    if candidate == root or not candidate.is_relative_to(root):
        return None
    return candidate


class ReplayExecutor:
    """Dispatches ClearEvents to the cache engine and mirrors file cleanup."""

    def __init__(
        self,
        engine: CacheEngine,
        pages: PageLookup,
        deployment_root: Path,
        cache_root: Path,
    ):
        self.engine = engine
        self.pages = pages
        self.deployment_root = Path(deployment_root)
        self.cache_root = Path(cache_root)

    def apply(self, event: ClearEvent) -> bool:
        """Replay one event.

        Args:
            event: Event recorded by a peer instance

        Returns:
            True if the engine was invoked, False if the event was skipped
            because its page no longer resolves
        """
        if event.method == ClearMethod.CLEAR_ALL:
            self.engine.clear_all()
            detail_logger.debug("Replayed clearAll")
            return True

        page = self._resolve(event)
        if page is None:
            return False

        if event.method == ClearMethod.CLEAR_BEHAVIORS:
            counts = self.engine.clear_behaviors_for(page)
            detail_logger.debug(
                f"Replayed clearBehaviors for page {page.id}: "
                f"children={counts.children} family={counts.family} site={counts.site}"
            )
            return True

        options = event.options
        self._remove_files(options.get(OPTION_FILES_CLEARED) or [])
        self._remove_directories(options.get(OPTION_PATHS_CLEARED) or [])
        self.engine.clear_page(page, event.engine_options())
        detail_logger.debug(f"Replayed clearPage for page {page.id}")
        return True

    def _resolve(self, event: ClearEvent) -> Page | None:
        page_id = event.page_id
        page = self.pages.resolve(page_id) if page_id is not None else None
        if page is None:
            # Deleted since the event was recorded
            detail_logger.debug(
                f"Skipping {event.method.value}: page {page_id} not found"
            )
        return page

    def _remove_files(self, files: list[str]) -> int:
        removed = 0
        for name in files:
            path = resolve_under(self.deployment_root, name)
            if path is None:
                detail_logger.warning(f"Refusing to delete file outside root: {name}")
                continue
            try:
                if path.is_file():
                    path.unlink(missing_ok=True)
                    removed += 1
            except OSError as e:
                detail_logger.warning(f"Cannot delete {path}: {e}")
        return removed

    def _remove_directories(self, directories: list[str]) -> int:
        removed = 0
        for name in directories:
            path = resolve_under(self.cache_root, name)
            if path is None:
                detail_logger.warning(
                    f"Refusing to remove directory outside cache root: {name}"
                )
                continue
            try:
                if path.is_dir():
                    shutil.rmtree(path)
                    removed += 1
            except FileNotFoundError:
                # Removed concurrently by another pass
                continue
            except OSError as e:
                detail_logger.warning(f"Cannot remove {path}: {e}")
        return removed
