# SPDX-License-Identifier: MIT
"""Standard exceptions for cache relay synchronization."""


class SyncError(Exception):
    """Base class for all synchronization-related exceptions."""


class StoreUnavailableError(SyncError):
    """Raised when the shared row store cannot be read or written."""

    def __init__(self, message: str, operation: str | None = None) -> None:
        self.operation = operation
        msg = f"{message} (during {operation})" if operation else message
        super().__init__(msg)


class MalformedRecordError(SyncError):
    """Raised when a log payload fails to parse or misses required fields."""

    def __init__(self, message: str, sequence_id: int | None = None) -> None:
        self.sequence_id = sequence_id
        super().__init__(message)


class FilesystemUnavailableError(SyncError):
    """Raised when marker, identity, or artifact file operations fail."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(message)
