# SPDX-License-Identifier: MIT
"""Reconciliation of peer clear events into the local cache.

A pass moves Idle -> Checking -> Running -> Idle and always ends in Idle;
failures degrade to a skipped or failed result, never an exception.

Checking:
    1. Too soon since the ``last`` marker -> skip.
    2. A fresh ``run`` marker -> skip; a stale one is taken over.
    3. Claim the ``run`` marker.
Running:
    4. Read log rows newer than the ``last`` marker.
    5. Drop batches this instance wrote itself.
    6. Replay the remaining events in read order.
    7. Prune rows older than the retention window.
    8. Advance ``last`` to the pass start, remove ``run``.
"""

import time
from collections.abc import Callable

from .buffer import suppress_recording
from .config import SyncConfig
from .enums import SkipReason, SyncStatus
from .exceptions import FilesystemUnavailableError, StoreUnavailableError
from .identity import IdentityProvider
from .logging_config import get_detail_logger, get_status_logger
from .markers import SyncMarkers
from .models import LogRecord, ReconciliationResult
from .replay import ReplayExecutor
from .store import EventLog


class ReconciliationCoordinator:
    """Pulls peer events from the shared log and replays them locally."""

    def __init__(
        self,
        identity: IdentityProvider,
        event_log: EventLog,
        markers: SyncMarkers,
        executor: ReplayExecutor,
        settings: SyncConfig | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.identity = identity
        self.event_log = event_log
        self.markers = markers
        self.executor = executor
        self.settings = settings or SyncConfig()
        self.clock = clock
        self.detail_logger = get_detail_logger()
        self.status_logger = get_status_logger()

    def reconcile(self, force: bool = False) -> ReconciliationResult:
        """Run one reconciliation pass if the markers allow it.

        Args:
            force: Ignore the minimum interval since the last pass. A fresh
                run marker is still respected.

        Returns:
            Result describing what the pass did, including every replayed event
        """
        now = self.clock()

        try:
            last_sync = self.markers.last_sync_time()
        except FilesystemUnavailableError as e:
            self.detail_logger.warning(f"Cannot read last-sync marker: {e}")
            return ReconciliationResult.skipped(SkipReason.MARKER_UNAVAILABLE)

        if last_sync is None:
            # Nothing cached before now can be stale relative to the log
            self.detail_logger.info("No last-sync marker; starting history at now")
            try:
                self.markers.mark_synced(now)
            except FilesystemUnavailableError as e:
                self.detail_logger.warning(f"Cannot create last-sync marker: {e}")
                return ReconciliationResult.skipped(SkipReason.MARKER_UNAVAILABLE)
            return ReconciliationResult.skipped(SkipReason.INITIALIZED)

        if not force and now - last_sync < self.settings.interval_seconds:
            self.detail_logger.debug(
                f"Last sync {now - last_sync:.1f}s ago; skipping reconciliation"
            )
            return ReconciliationResult.skipped(SkipReason.TOO_SOON)

        try:
            claimed = self.markers.claim_run(self.settings.stale_after_seconds, now)
        except FilesystemUnavailableError as e:
            self.detail_logger.warning(f"Cannot claim run marker: {e}")
            return ReconciliationResult.skipped(SkipReason.MARKER_UNAVAILABLE)
        if not claimed:
            self.detail_logger.info("Reconciliation already in progress, skipping")
            return ReconciliationResult.skipped(SkipReason.SYNC_IN_PROGRESS)

        try:
            return self._run(last_sync, now)
        finally:
            self._release()

    def _run(self, last_sync: float, started_at: float) -> ReconciliationResult:
        try:
            records = self.event_log.read_since(last_sync)
        except StoreUnavailableError as e:
            self.status_logger.warning(f"Event log unavailable, will retry: {e}")
            return ReconciliationResult(status=SyncStatus.FAILED, reason=str(e))

        result = ReconciliationResult(
            status=SyncStatus.SUCCESS, records_read=len(records)
        )
        try:
            self_id = self.identity.get_identity()
        except FilesystemUnavailableError as e:
            self.status_logger.warning(f"Instance identity unavailable, will retry: {e}")
            return ReconciliationResult(status=SyncStatus.FAILED, reason=str(e))

        with suppress_recording():
            for record in records:
                if record.batch.instance_id == self_id:
                    self.detail_logger.debug(
                        f"Skipping self-originated log row #{record.sequence_id}"
                    )
                    result.records_skipped += 1
                    continue
                self._replay_record(record, result)

        cutoff = started_at - self.settings.retention_hours * 3600
        try:
            result.records_pruned = self.event_log.prune_older_than(cutoff)
        except StoreUnavailableError as e:
            self.detail_logger.warning(f"Pruning failed, will retry next pass: {e}")

        try:
            self.markers.mark_synced(started_at)
        except FilesystemUnavailableError as e:
            self.detail_logger.warning(f"Cannot advance last-sync marker: {e}")

        if result.replayed or result.failures:
            self.status_logger.info(
                f"Replayed {len(result.replayed)} peer clear event(s) "
                f"from {result.records_read - result.records_skipped} log row(s)"
                + (f", {result.failures} failed" if result.failures else "")
            )
        return result

    def _replay_record(self, record: LogRecord, result: ReconciliationResult) -> None:
        for event in record.batch.events:
            try:
                applied = self.executor.apply(event)
            except Exception as e:
                # One bad event must not stall the rest of the log
                result.failures += 1
                self.detail_logger.exception(
                    f"Replay of {event.method.value} from row #{record.sequence_id} "
                    f"failed: {e}"
                )
                continue
            if applied:
                result.replayed.append(event)

    def _release(self) -> None:
        try:
            self.markers.release_run()
        except FilesystemUnavailableError as e:
            self.detail_logger.warning(f"Cannot remove run marker: {e}")
