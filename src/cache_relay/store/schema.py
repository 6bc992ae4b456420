# SPDX-License-Identifier: MIT
"""Database schema initialization for the shared event log."""

import sqlite3
from pathlib import Path

from ..constants import EVENT_LOG_TABLE


# Store clock as epoch seconds with millisecond precision
STORE_NOW_SQL = "((julianday('now') - 2440587.5) * 86400.0)"


def init_database(db_path: Path) -> None:
    """Create the event log table and its index if they do not exist.

    Args:
        db_path: Path to the SQLite database file
    """
    with sqlite3.connect(db_path) as conn:
        conn.executescript(
            f"""
            -- Append-only log of clear-event batches shared by all instances
            -- payload: {{"id": "<instanceId>", "cleared": [{{"method": ..., "data": ...}}]}}
            CREATE TABLE IF NOT EXISTS {EVENT_LOG_TABLE} (
                sequence_id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp REAL NOT NULL DEFAULT {STORE_NOW_SQL},
                payload TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_{EVENT_LOG_TABLE}_timestamp
                ON {EVENT_LOG_TABLE}(timestamp);
        """
        )
    conn.close()
