# SPDX-License-Identifier: MIT
"""Constants used throughout cache relay.

This module centralizes protocol timings, marker naming, identity token
shape, and option keys that only exist to mirror filesystem side effects.
"""

# Reconciliation cadence and lock staleness (seconds)
DEFAULT_SYNC_INTERVAL_SECONDS: float = 30.0
DEFAULT_STALE_AFTER_SECONDS: float = 30.0

# Log retention window
DEFAULT_RETENTION_HOURS: float = 24.0

# Marker file suffixes appended to the cache root path
LAST_SYNC_SUFFIX = ".last-sync"
RUN_SYNC_SUFFIX = ".run-sync"
IDENTITY_SUFFIX = ".instance-id"

# Instance identity token
IDENTITY_TOKEN_LENGTH: int = 40
IDENTITY_MIN_LENGTH: int = 32

# clearPage options that the engine does not accept
OPTION_FILES_CLEARED = "filesCleared"
OPTION_PATHS_CLEARED = "pathsCleared"
AUXILIARY_OPTION_KEYS: frozenset[str] = frozenset(
    {OPTION_FILES_CLEARED, OPTION_PATHS_CLEARED}
)

# Shared log table
EVENT_LOG_TABLE = "sync_events"

# Default locations
DEFAULT_DB_PATH = ".cache-relay/sync.db"
DEFAULT_CACHE_ROOT = ".cache-relay/cache"
