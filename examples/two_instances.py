#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Two cache instances kept in step through a shared event log.

This script demonstrates:
1. Recording a local page clear on instance A inside a request
2. Replaying it on instance B with a reconciliation pass
3. B skipping its own events on the next pass
"""

import tempfile
import time
from pathlib import Path

from cache_relay import CacheSyncService
from cache_relay.config import AppConfig, CacheConfig, StoreConfig
from cache_relay.engine import FilesystemPageCache
from cache_relay.models import Page


def make_instance(base: Path, name: str) -> tuple[CacheSyncService, FilesystemPageCache]:
    config = AppConfig(
        store=StoreConfig(db_path=str(base / "shared" / "sync.db")),
        cache=CacheConfig(root=str(base / name / "cache"), deployment_root=str(base / name)),
    )
    engine = FilesystemPageCache(Path(config.cache.root))
    return CacheSyncService(config=config, engine=engine), engine


def main():
    with tempfile.TemporaryDirectory() as tmp:
        base = Path(tmp)
        service_a, engine_a = make_instance(base, "a")
        service_b, engine_b = make_instance(base, "b")

        for engine in (engine_a, engine_b):
            engine.store(42, "<html>About us</html>")

        # Pretend B last synchronized a minute ago
        service_b.markers.mark_synced(time.time() - 60)

        print("=== Instance A clears page 42 ===")
        with service_a.request(reconcile=False):
            engine_a.clear_page(Page(id=42), {})
        print(f"A cached: {engine_a.is_cached(42)}, B cached: {engine_b.is_cached(42)}")

        print("=== Instance B reconciles ===")
        result = service_b.tick()
        print(f"Status: {result.status.value}, replayed: {len(result.replayed)}")
        print(f"A cached: {engine_a.is_cached(42)}, B cached: {engine_b.is_cached(42)}")

        print("=== Instance B reconciles again right away ===")
        again = service_b.tick()
        print(f"Status: {again.status.value}, reason: {getattr(again.reason, 'value', again.reason)}")


if __name__ == "__main__":
    main()
