# SPDX-License-Identifier: MIT
"""Append-only event log shared by every instance."""

import sqlite3
from pathlib import Path

from ..constants import EVENT_LOG_TABLE
from ..exceptions import MalformedRecordError, StoreUnavailableError
from ..logging_config import get_detail_logger, get_status_logger
from ..models import EventBatch, LogRecord
from .connection_utils import get_configured_connection
from .schema import init_database


detail_logger = get_detail_logger()
status_logger = get_status_logger()


class EventLog:
    """Timestamp-ordered log of clear-event batches in the shared row store."""

    def __init__(
        self,
        db_path: Path | None = None,
        timeout: float = 5.0,
        enable_wal: bool = True,
    ):
        """Initialize the event log.

        The schema is created on first use, so construction never touches
        the store.

        Args:
            db_path: Path to the SQLite database file. If None, gets from config.
            timeout: Busy timeout for store connections in seconds
            enable_wal: Whether to enable WAL mode on connections
        """
        if db_path is None:
            # Local import to avoid circular dependency (config -> store)
            from ..config import get_config_manager

            db_path = Path(get_config_manager().load_config().store.db_path)
            detail_logger.debug(f"Using database path from config: {db_path}")

        self.db_path = Path(db_path)
        self.timeout = timeout
        self.enable_wal = enable_wal
        self._schema_ready = False

    def _ensure_schema(self) -> None:
        """Create the database and table on first use.

        Raises:
            sqlite3.Error, OSError: If the database cannot be initialized
        """
        if self._schema_ready:
            return
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        init_database(self.db_path)
        self._schema_ready = True

    def append(self, batch: EventBatch) -> int:
        """Persist one batch with the store-assigned current timestamp.

        Args:
            batch: Non-empty batch of local clear events

        Returns:
            The sequence id of the new row

        Raises:
            ValueError: If the batch has no events
            StoreUnavailableError: If the write cannot complete
        """
        if not batch.events:
            raise ValueError("Refusing to persist an empty event batch")

        payload = batch.to_payload()
        try:
            self._ensure_schema()
            with get_configured_connection(
                self.db_path, self.timeout, self.enable_wal
            ) as conn:
                cursor = conn.execute(
                    f"INSERT INTO {EVENT_LOG_TABLE} (payload) VALUES (?)",
                    (payload,),
                )
                conn.commit()
                sequence_id = cursor.lastrowid
        except (sqlite3.Error, OSError) as e:
            raise StoreUnavailableError(str(e), operation="append") from e

        detail_logger.debug(
            f"Appended batch #{sequence_id} with {len(batch.events)} event(s)"
        )
        return int(sequence_id or 0)

    def read_since(self, timestamp: float) -> list[LogRecord]:
        """Read all records written after a timestamp, oldest first.

        Rows whose payload is malformed are logged and skipped.

        Args:
            timestamp: Exclusive lower bound, epoch seconds

        Returns:
            Records ordered by timestamp ascending

        Raises:
            StoreUnavailableError: If the read fails
        """
        try:
            self._ensure_schema()
            with get_configured_connection(
                self.db_path, self.timeout, self.enable_wal
            ) as conn:
                rows = conn.execute(
                    f"""
                    SELECT sequence_id, timestamp, payload FROM {EVENT_LOG_TABLE}
                    WHERE timestamp > ?
                    ORDER BY timestamp ASC, sequence_id ASC
                    """,
                    (timestamp,),
                ).fetchall()
        except (sqlite3.Error, OSError) as e:
            raise StoreUnavailableError(str(e), operation="read") from e

        records: list[LogRecord] = []
        for sequence_id, row_timestamp, payload in rows:
            try:
                batch = EventBatch.from_payload(payload, sequence_id=sequence_id)
            except MalformedRecordError as e:
                detail_logger.warning(f"Skipping log row #{sequence_id}: {e}")
                continue
            records.append(
                LogRecord(
                    sequence_id=sequence_id,
                    timestamp=float(row_timestamp),
                    batch=batch,
                )
            )

        detail_logger.debug(
            f"Read {len(records)} of {len(rows)} log row(s) newer than {timestamp:.3f}"
        )
        return records

    def prune_older_than(self, cutoff: float) -> int:
        """Delete records older than a cutoff.

        Args:
            cutoff: Epoch seconds; rows with an earlier timestamp are removed

        Returns:
            Number of rows removed

        Raises:
            StoreUnavailableError: If the delete fails
        """
        try:
            self._ensure_schema()
            with get_configured_connection(
                self.db_path, self.timeout, self.enable_wal
            ) as conn:
                cursor = conn.execute(
                    f"DELETE FROM {EVENT_LOG_TABLE} WHERE timestamp < ?", (cutoff,)
                )
                conn.commit()
                removed = cursor.rowcount
        except (sqlite3.Error, OSError) as e:
            raise StoreUnavailableError(str(e), operation="prune") from e

        if removed:
            detail_logger.info(f"Pruned {removed} expired log row(s)")
        return removed

    def count(self) -> int:
        """Get the number of rows currently retained."""
        try:
            self._ensure_schema()
            with get_configured_connection(
                self.db_path, self.timeout, self.enable_wal
            ) as conn:
                row = conn.execute(f"SELECT COUNT(*) FROM {EVENT_LOG_TABLE}").fetchone()
        except (sqlite3.Error, OSError) as e:
            raise StoreUnavailableError(str(e), operation="count") from e
        return int(row[0])

    def latest_timestamp(self) -> float | None:
        """Get the timestamp of the newest row, or None if the log is empty."""
        try:
            self._ensure_schema()
            with get_configured_connection(
                self.db_path, self.timeout, self.enable_wal
            ) as conn:
                row = conn.execute(
                    f"SELECT MAX(timestamp) FROM {EVENT_LOG_TABLE}"
                ).fetchone()
        except (sqlite3.Error, OSError) as e:
            raise StoreUnavailableError(str(e), operation="latest") from e
        return float(row[0]) if row and row[0] is not None else None
