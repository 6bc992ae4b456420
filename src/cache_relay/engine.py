# SPDX-License-Identifier: MIT
"""Directory-backed page cache and page lookups.

``FilesystemPageCache`` stores each page under ``<cacheRoot>/pages/<id>``
and reports every clear it performs to registered listeners, which is how
cache relay learns about local clears.
"""

import shutil
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .enums import ClearMethod
from .logging_config import get_detail_logger
from .models import BehaviorCounts, Page
from .protocols import ClearListener


detail_logger = get_detail_logger()

PAGES_DIR = "pages"

# Clear behaviors a page can be configured with
BEHAVIOR_SELF = "self"
BEHAVIOR_CHILDREN = "children"
BEHAVIOR_SITE = "site"


class FilesystemPageCache:
    """Minimal page cache engine rooted at a directory."""

    def __init__(
        self,
        cache_root: Path,
        behaviors: Mapping[int, str] | None = None,
        children: Mapping[int, list[int]] | None = None,
    ):
        """Initialize the engine.

        Args:
            cache_root: Base directory of the cache
            behaviors: Clear behavior per page id ("self", "children", "site")
            children: Child page ids per page id, used by the "children" behavior
        """
        self.cache_root = Path(cache_root)
        self.behaviors = dict(behaviors or {})
        self.children = {key: list(value) for key, value in (children or {}).items()}
        self._listeners: list[ClearListener] = []

    def add_listener(self, listener: ClearListener) -> None:
        self._listeners.append(listener)

    def page_dir(self, page_id: int) -> Path:
        return self.cache_root / PAGES_DIR / str(page_id)

    def store(self, page_id: int, content: str, name: str = "index.html") -> Path:
        """Write a cached rendition of a page."""
        path = self.page_dir(page_id) / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def is_cached(self, page_id: int) -> bool:
        directory = self.page_dir(page_id)
        return directory.is_dir() and any(directory.iterdir())

    def clear_all(self) -> None:
        self._remove_all()
        self._emit(ClearMethod.CLEAR_ALL, {})

    def clear_page(self, page: Page, options: dict[str, Any]) -> None:
        self._remove_page(page.id)
        relative = f"{PAGES_DIR}/{page.id}"
        self._emit(
            ClearMethod.CLEAR_PAGE,
            {"pageId": page.id, "options": {**options, "pathsCleared": [relative]}},
        )

    def clear_behaviors_for(self, page: Page) -> BehaviorCounts:
        behavior = self.behaviors.get(page.id, BEHAVIOR_SELF)
        if behavior == BEHAVIOR_SITE:
            self._remove_all()
            counts = BehaviorCounts(site=1)
        elif behavior == BEHAVIOR_CHILDREN:
            child_ids = self.children.get(page.id, [])
            self._remove_page(page.id)
            for child_id in child_ids:
                self._remove_page(child_id)
            counts = BehaviorCounts(children=len(child_ids), family=len(child_ids) + 1)
        else:
            self._remove_page(page.id)
            counts = BehaviorCounts(family=1)

        self._emit(
            ClearMethod.CLEAR_BEHAVIORS,
            {"pageId": page.id, "counts": counts.model_dump()},
        )
        return counts

    def _remove_page(self, page_id: int) -> None:
        shutil.rmtree(self.page_dir(page_id), ignore_errors=True)

    def _remove_all(self) -> None:
        if not self.cache_root.is_dir():
            return
        for child in self.cache_root.iterdir():
            if child.is_dir():
                shutil.rmtree(child, ignore_errors=True)
            else:
                child.unlink(missing_ok=True)
        detail_logger.debug(f"Cleared all cached content under {self.cache_root}")

    def _emit(self, method: ClearMethod, data: dict[str, Any]) -> None:
        for listener in self._listeners:
            listener(method.value, data)


class DirectoryPageLookup:
    """Resolves every positive page id."""

    def resolve(self, page_id: int) -> Page | None:
        return Page(id=page_id) if page_id > 0 else None


class MappingPageLookup:
    """Resolves only the page ids it was given."""

    def __init__(self, pages: Mapping[int, Page] | None = None):
        self.pages = dict(pages or {})

    def add(self, page: Page) -> None:
        self.pages[page.id] = page

    def remove(self, page_id: int) -> None:
        self.pages.pop(page_id, None)

    def resolve(self, page_id: int) -> Page | None:
        return self.pages.get(page_id)
