# SPDX-License-Identifier: MIT
"""Enums for cache relay."""

from enum import Enum


class ClearMethod(str, Enum):
    """Cache-clear operations that can be recorded and replayed."""

    CLEAR_ALL = "clearAll"
    CLEAR_BEHAVIORS = "clearBehaviors"
    CLEAR_PAGE = "clearPage"


class SyncStatus(str, Enum):
    """Outcome of a reconciliation pass."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


class SkipReason(str, Enum):
    """Why a reconciliation pass returned without doing any work."""

    TOO_SOON = "too_soon"
    SYNC_IN_PROGRESS = "sync_in_progress"
    INITIALIZED = "initialized"
    MARKER_UNAVAILABLE = "marker_unavailable"
