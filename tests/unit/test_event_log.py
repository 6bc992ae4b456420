# SPDX-License-Identifier: MIT
"""Tests for the shared event log."""

import sqlite3
import time
from unittest.mock import patch

import pytest

from cache_relay.exceptions import StoreUnavailableError
from cache_relay.models import ClearEvent, EventBatch
from cache_relay.store import EventLog


def _insert_row(db_path, timestamp, payload):
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            "INSERT INTO sync_events (timestamp, payload) VALUES (?, ?)",
            (timestamp, payload),
        )
    conn.close()


def _batch(instance_id="peer", *events):
    return EventBatch(
        instance_id=instance_id, events=list(events) or [ClearEvent.clear_all()]
    )


@pytest.fixture
def event_log(db_path):
    return EventLog(db_path)


class TestEventLog:
    """Test cases for EventLog."""

    def test_append_assigns_store_timestamp(self, event_log):
        before = time.time()
        sequence_id = event_log.append(_batch())
        after = time.time()

        records = event_log.read_since(0)

        assert [r.sequence_id for r in records] == [sequence_id]
        assert before - 1 <= records[0].timestamp <= after + 1

    def test_append_round_trips_batch(self, event_log):
        batch = _batch("peer", ClearEvent.clear_page(42, {"children": True}))
        event_log.append(batch)

        assert event_log.read_since(0)[0].batch == batch

    def test_read_since_is_exclusive_and_ordered_by_timestamp(self, event_log, db_path):
        now = time.time()
        _insert_row(db_path, now - 10, _batch("late").to_payload())
        _insert_row(db_path, now - 30, _batch("early").to_payload())
        _insert_row(db_path, now - 20, _batch("middle").to_payload())

        records = event_log.read_since(now - 30)

        assert [r.batch.instance_id for r in records] == ["middle", "late"]

    def test_read_since_skips_malformed_rows(self, event_log, db_path):
        now = time.time()
        _insert_row(db_path, now - 3, "{broken")
        _insert_row(db_path, now - 2, '{"id": "peer", "cleared": []}')
        _insert_row(db_path, now - 1, _batch("good").to_payload())

        records = event_log.read_since(0)

        assert [r.batch.instance_id for r in records] == ["good"]

    def test_prune_older_than(self, event_log, db_path):
        now = time.time()
        _insert_row(db_path, now - 25 * 3600, _batch("old").to_payload())
        event_log.append(_batch("new"))

        removed = event_log.prune_older_than(now - 24 * 3600)

        assert removed == 1
        assert [r.batch.instance_id for r in event_log.read_since(0)] == ["new"]

    def test_count_and_latest_timestamp(self, event_log):
        assert event_log.count() == 0
        assert event_log.latest_timestamp() is None

        event_log.append(_batch())
        event_log.append(_batch())

        assert event_log.count() == 2
        assert event_log.latest_timestamp() is not None

    def test_append_failure_raises_store_unavailable(self, event_log):
        with patch(
            "cache_relay.store.event_log.get_configured_connection",
            side_effect=sqlite3.OperationalError("database is locked"),
        ):
            with pytest.raises(StoreUnavailableError, match="append"):
                event_log.append(_batch())

    def test_read_failure_raises_store_unavailable(self, event_log):
        with patch(
            "cache_relay.store.event_log.get_configured_connection",
            side_effect=sqlite3.OperationalError("disk I/O error"),
        ):
            with pytest.raises(StoreUnavailableError, match="read"):
                event_log.read_since(0)

    def test_creates_database_on_first_use(self, tmp_path):
        db_path = tmp_path / "fresh" / "sync.db"
        log = EventLog(db_path)
        assert not db_path.exists()

        assert log.count() == 0
        assert db_path.exists()

    def test_unreachable_store_fails_per_operation(self, tmp_path):
        blocker = tmp_path / "notadir"
        blocker.write_text("")
        log = EventLog(blocker / "sync.db")

        with pytest.raises(StoreUnavailableError, match="append"):
            log.append(_batch())
        with pytest.raises(StoreUnavailableError, match="read"):
            log.read_since(0)

    def test_skips_rows_with_invalid_auxiliary_paths(self, event_log, db_path):
        now = time.time()
        _insert_row(
            db_path,
            now - 2,
            '{"id": "peer", "cleared": [{"method": "clearPage", '
            '"data": {"pageId": 5, "options": {"filesCleared": "ab"}}}]}',
        )
        _insert_row(db_path, now - 1, _batch("good").to_payload())

        assert [r.batch.instance_id for r in event_log.read_since(0)] == ["good"]

    def test_uses_config_path_when_none(self, tmp_path):
        from cache_relay.config import AppConfig, StoreConfig

        config = AppConfig(store=StoreConfig(db_path=str(tmp_path / "cfg.db")))
        with patch("cache_relay.config.ConfigManager.load_config", return_value=config):
            log = EventLog()
        assert log.db_path == tmp_path / "cfg.db"
