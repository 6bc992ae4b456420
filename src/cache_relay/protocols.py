# SPDX-License-Identifier: MIT
"""Protocol definitions for the collaborators cache relay consumes."""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable


if TYPE_CHECKING:
    from .models import BehaviorCounts, Page


ClearListener = Callable[[str, dict[str, Any]], None]
"""Post-clear callback receiving ``(method, data)``."""


@runtime_checkable
class CacheEngine(Protocol):
    """Local page cache that can be cleared and observed.

    The engine owns the cached content. Cache relay only asks it to clear
    things and listens for the clears it performs on its own.
    """

    def clear_all(self) -> None:
        """Clear the entire local cache."""
        ...

    def clear_page(self, page: "Page", options: dict[str, Any]) -> None:
        """Clear one page.

        Args:
            page: Resolved page
            options: Sparse mapping of non-default clear options
        """
        ...

    def clear_behaviors_for(self, page: "Page") -> "BehaviorCounts":
        """Clear whatever the page's configured clear behaviors select.

        Returns:
            Counts of children, family, and site-wide clears performed
        """
        ...

    def add_listener(self, listener: ClearListener) -> None:
        """Register a callback invoked after every local clear."""
        ...


@runtime_checkable
class PageLookup(Protocol):
    """Resolves recorded page ids to live pages."""

    def resolve(self, page_id: int) -> "Page | None":
        """Get the page with this id, or None if it no longer exists."""
        ...
