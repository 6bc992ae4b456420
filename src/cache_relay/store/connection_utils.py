# SPDX-License-Identifier: MIT
"""Centralized SQLite connection configuration for the shared event log.

Every instance opens the same database file, so all access goes through
``get_configured_connection()`` to get consistent WAL mode and busy
timeouts instead of calling ``sqlite3.connect()`` directly.
"""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..logging_config import get_detail_logger


detail_logger = get_detail_logger()


def configure_sqlite_connection(
    conn: sqlite3.Connection,
    enable_wal: bool = True,
) -> None:
    """Configure SQLite connection PRAGMAs.

    Args:
        conn: SQLite database connection to configure
        enable_wal: Whether to enable WAL mode (default: True)
    """
    if enable_wal:
        conn.execute("PRAGMA journal_mode = WAL")

    conn.execute("PRAGMA synchronous = NORMAL")
    conn.execute("PRAGMA temp_store = MEMORY")
    detail_logger.debug(f"Configured SQLite connection (wal={enable_wal})")


@contextmanager
def get_configured_connection(
    db_path: str | Path,
    timeout: float = 5.0,
    enable_wal: bool = True,
) -> Iterator[sqlite3.Connection]:
    """Get a configured SQLite connection with proper timeout and settings.

    Args:
        db_path: Path to the SQLite database file
        timeout: Busy timeout in seconds (default: 5.0)
        enable_wal: Whether to enable WAL mode (default: True)

    Yields:
        Configured SQLite connection, closed on exit

    Example:
        ```python
        with get_configured_connection(event_log.db_path) as conn:
            rows = conn.execute("SELECT COUNT(*) FROM sync_events").fetchone()
        ```
    """
    conn = sqlite3.connect(str(db_path), timeout=timeout)
    try:
        configure_sqlite_connection(conn, enable_wal=enable_wal)
        yield conn
    finally:
        conn.close()
