# SPDX-License-Identifier: MIT
"""Pytest configuration and shared fixtures."""

import os
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from cache_relay.config import (
    AppConfig,
    CacheConfig,
    StoreConfig,
    SyncConfig,
    reset_config_manager,
)
from cache_relay.models import BehaviorCounts, Page
from cache_relay.service import CacheSyncService, reset_sync_service
from cache_relay.store.schema import init_database


class RecordingEngine:
    """Cache engine double that records calls and notifies listeners."""

    def __init__(self, site_wide_pages: set[int] | None = None) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.listeners: list[Callable[[str, dict[str, Any]], None]] = []
        self.site_wide_pages = site_wide_pages or set()

    def add_listener(self, listener: Callable[[str, dict[str, Any]], None]) -> None:
        self.listeners.append(listener)

    def clear_all(self) -> None:
        self.calls.append(("clear_all",))
        self._emit("clearAll", {})

    def clear_page(self, page: Page, options: dict[str, Any]) -> None:
        self.calls.append(("clear_page", page.id, dict(options)))
        self._emit("clearPage", {"pageId": page.id, "options": dict(options)})

    def clear_behaviors_for(self, page: Page) -> BehaviorCounts:
        self.calls.append(("clear_behaviors_for", page.id))
        counts = BehaviorCounts(site=1 if page.id in self.site_wide_pages else 0)
        self._emit(
            "clearBehaviors", {"pageId": page.id, "counts": counts.model_dump()}
        )
        return counts

    def _emit(self, method: str, data: dict[str, Any]) -> None:
        for listener in self.listeners:
            listener(method, data)


def age_file(path: Path, seconds: float) -> None:
    """Set a file's mtime to `seconds` in the past."""
    past = time.time() - seconds
    os.utime(path, (past, past))


@pytest.fixture(scope="function", autouse=True)
def isolated_globals():
    """Reset global config and service instances around every test."""
    reset_config_manager()
    reset_sync_service()
    yield
    reset_config_manager()
    reset_sync_service()


@pytest.fixture
def db_path(tmp_path) -> Path:
    """Initialized shared event log database."""
    path = tmp_path / "shared" / "sync.db"
    path.parent.mkdir(parents=True, exist_ok=True)
    init_database(path)
    return path


@pytest.fixture
def make_config(tmp_path, db_path) -> Callable[..., AppConfig]:
    """Factory for per-instance configs sharing one event log."""

    def _make(name: str = "a", **sync: Any) -> AppConfig:
        instance_dir = tmp_path / name
        (instance_dir / "site").mkdir(parents=True, exist_ok=True)
        return AppConfig(
            store=StoreConfig(db_path=str(db_path)),
            cache=CacheConfig(
                root=str(instance_dir / "cache"),
                deployment_root=str(instance_dir / "site"),
            ),
            sync=SyncConfig(**sync),
        )

    return _make


@pytest.fixture
def make_service(make_config) -> Callable[..., CacheSyncService]:
    """Factory for sync services backed by a RecordingEngine."""

    def _make(name: str = "a", engine: Any = None, **kwargs: Any) -> CacheSyncService:
        return CacheSyncService(
            config=make_config(name),
            engine=engine if engine is not None else RecordingEngine(),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_engine() -> type[RecordingEngine]:
    """The RecordingEngine class, for tests that need their own instances."""
    return RecordingEngine


@pytest.fixture
def backdate() -> Callable[[Path, float], None]:
    """Helper that ages a file's mtime by a number of seconds."""
    return age_file
