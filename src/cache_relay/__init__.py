# SPDX-License-Identifier: MIT
"""Cache relay - keep page caches of independent instances in step."""

from importlib.metadata import PackageNotFoundError, version

from .enums import ClearMethod, SyncStatus
from .models import ClearEvent, EventBatch, ReconciliationResult
from .service import CacheSyncService, get_sync_service


__all__: list[str] = [
    "CacheSyncService",
    "ClearEvent",
    "ClearMethod",
    "EventBatch",
    "ReconciliationResult",
    "SyncStatus",
    "get_sync_service",
    "__version__",
]

# Get version from installed package metadata
__version__: str
try:
    __version__ = version("cache-relay")
except PackageNotFoundError:
    # Package is not installed, use development fallback
    __version__ = "development"
