# SPDX-License-Identifier: MIT
"""Wiring of the sync components around a cache engine.

``CacheSyncService`` listens to the engine's post-clear callbacks, buffers
local clears per request, flushes them to the shared log at request end,
and runs reconciliation from the periodic tick or opportunistically after
a request.
"""

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .buffer import (
    EventBuffer,
    collapse_redundant,
    get_current_buffer,
    is_recording_suppressed,
    request_scope,
)
from .config import AppConfig, get_config_manager
from .coordinator import ReconciliationCoordinator
from .engine import DirectoryPageLookup, FilesystemPageCache
from .enums import ClearMethod
from .exceptions import FilesystemUnavailableError, StoreUnavailableError
from .identity import IdentityProvider
from .logging_config import get_detail_logger, get_status_logger
from .markers import SyncMarkers
from .models import BehaviorCounts, ClearEvent, EventBatch, ReconciliationResult
from .protocols import CacheEngine, PageLookup
from .replay import ReplayExecutor
from .store import EventLog


class CacheSyncService:
    """Keeps one instance's cache in step with its peers."""

    def __init__(
        self,
        config: AppConfig | None = None,
        engine: CacheEngine | None = None,
        pages: PageLookup | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or get_config_manager().load_config()
        self.settings = self.config.sync
        self.clock = clock
        self.detail_logger = get_detail_logger()
        self.status_logger = get_status_logger()

        cache_root = Path(self.config.cache.root)
        self.engine: CacheEngine = engine or FilesystemPageCache(cache_root)
        self.pages: PageLookup = pages or DirectoryPageLookup()
        self.identity = IdentityProvider(self.config.identity_path())
        self.event_log = EventLog(
            Path(self.config.store.db_path),
            timeout=self.config.store.timeout,
            enable_wal=self.config.store.enable_wal,
        )
        self.markers = SyncMarkers(cache_root)
        self.executor = ReplayExecutor(
            self.engine,
            self.pages,
            deployment_root=Path(self.config.cache.deployment_root),
            cache_root=cache_root,
        )
        self.coordinator = ReconciliationCoordinator(
            self.identity,
            self.event_log,
            self.markers,
            self.executor,
            settings=self.settings,
            clock=clock,
        )

        self.engine.add_listener(self.on_local_clear)

    def on_local_clear(self, method: str, data: dict[str, Any]) -> None:
        """Engine listener: record a clear the local engine just performed.

        Args:
            method: Clear method name as reported by the engine
            data: Method-specific payload
        """
        if is_recording_suppressed():
            return

        try:
            clear_method = ClearMethod(method)
            if clear_method == ClearMethod.CLEAR_BEHAVIORS and "counts" in data:
                event = self.behaviors_event(
                    data["pageId"], BehaviorCounts(**data["counts"])
                )
            else:
                event = ClearEvent(method=clear_method, data=dict(data))
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            self.detail_logger.warning(f"Ignoring unrecognized clear {method!r}: {e}")
            return

        self.record(event)

    def behaviors_event(self, page_id: int, counts: BehaviorCounts) -> ClearEvent:
        """Choose the event to record for a behavior-based clear.

        A clear that reached the whole site is recorded as clearAll so peers
        do not have to re-evaluate the page's behaviors.
        """
        if counts.site > 0:
            return ClearEvent.clear_all()
        return ClearEvent.clear_behaviors(page_id)

    def record_behaviors_clear(self, page_id: int, counts: BehaviorCounts) -> None:
        self.record(self.behaviors_event(page_id, counts))

    def record(self, event: ClearEvent) -> None:
        """Buffer an event for the current request, or flush it right away."""
        buffer = get_current_buffer()
        if buffer is None:
            self.flush([event])
        else:
            buffer.record(event)

    @contextmanager
    def request(self, reconcile: bool = True) -> Iterator[EventBuffer]:
        """Scope one inbound request.

        Local clears made inside the block are flushed as one batch when it
        exits, followed by an opportunistic reconciliation pass.
        """
        with request_scope() as buffer:
            try:
                yield buffer
            finally:
                self.flush(buffer.drain_and_reset())
                if reconcile:
                    self.reconcile()

    def flush(self, events: list[ClearEvent]) -> int | None:
        """Write buffered events to the shared log as one batch.

        Nothing is written for an empty list or while a reconciliation pass
        is running. Store failures are logged, not raised: the clears already
        happened locally and peers will merely miss them.

        Returns:
            Sequence id of the written row, or None if nothing was written
        """
        if not events:
            return None
        if self.settings.collapse_redundant:
            events = collapse_redundant(events)

        try:
            if self.markers.is_running(self.settings.stale_after_seconds, self.clock()):
                self.detail_logger.debug(
                    f"Reconciliation running; discarding {len(events)} buffered event(s)"
                )
                return None
            identity = self.identity.get_identity()
        except FilesystemUnavailableError as e:
            self.status_logger.warning(f"Cannot record local clears: {e}")
            return None

        batch = EventBatch(instance_id=identity, events=events)
        try:
            return self.event_log.append(batch)
        except StoreUnavailableError as e:
            self.status_logger.warning(
                f"Failed to record {len(events)} clear event(s) for peers: {e}"
            )
            return None

    def reconcile(self, force: bool = False) -> ReconciliationResult:
        return self.coordinator.reconcile(force=force)

    def tick(self) -> ReconciliationResult:
        """Entry point for the periodic trigger."""
        return self.reconcile()

    def prune(self) -> int:
        """Delete log rows older than the retention window."""
        cutoff = self.clock() - self.settings.retention_hours * 3600
        return self.event_log.prune_older_than(cutoff)

    def status(self) -> dict[str, Any]:
        """Summarize the sync state of this instance."""
        now = self.clock()
        last_sync = self.markers.last_sync_time()
        run_age = self.markers.run.age(now)
        latest = self.event_log.latest_timestamp()
        return {
            "instance_id": self.identity.get_identity(),
            "cache_root": str(self.markers.cache_root),
            "last_sync": _format_time(last_sync),
            "seconds_since_sync": round(now - last_sync, 1) if last_sync is not None else None,
            "sync_in_progress": self.markers.is_running(
                self.settings.stale_after_seconds, now
            ),
            "run_marker_age": round(run_age, 1) if run_age is not None else None,
            "log_rows": self.event_log.count(),
            "latest_log_entry": _format_time(latest),
        }


def _format_time(timestamp: float | None) -> str | None:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp).isoformat(timespec="seconds")


# Global sync service instance with factory pattern
_sync_service_instance: CacheSyncService | None = None


def get_sync_service() -> CacheSyncService:
    """Get or create the global sync service instance.

    Returns:
        The global CacheSyncService instance
    """
    global _sync_service_instance
    if _sync_service_instance is None:
        _sync_service_instance = CacheSyncService()
    return _sync_service_instance


def set_sync_service(service: CacheSyncService) -> None:
    """Set the sync service instance (primarily for testing).

    Args:
        service: CacheSyncService instance to use globally
    """
    global _sync_service_instance
    _sync_service_instance = service


def reset_sync_service() -> None:
    """Reset the sync service instance (primarily for testing)."""
    global _sync_service_instance
    _sync_service_instance = None
