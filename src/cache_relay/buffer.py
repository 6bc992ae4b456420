# SPDX-License-Identifier: MIT
"""Request-scoped accumulation of local clear events.

A fresh EventBuffer is bound to the current context at request start
(``request_scope``) and drained once at request end. ContextVars keep
concurrent requests and asyncio tasks from sharing a buffer.

Replay of peer events runs inside ``suppress_recording`` so that the
engine's post-clear callbacks do not echo replayed clears back into the log.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from .enums import ClearMethod
from .models import ClearEvent


class EventBuffer:
    """Ordered, non-deduplicating accumulator of ClearEvents."""

    def __init__(self) -> None:
        self._events: list[ClearEvent] = []

    def record(self, event: ClearEvent) -> None:
        self._events.append(event)

    def drain_and_reset(self) -> list[ClearEvent]:
        """Return the accumulated events and clear the buffer."""
        events = self._events
        self._events = []
        return events

    def __len__(self) -> int:
        return len(self._events)


def collapse_redundant(events: list[ClearEvent]) -> list[ClearEvent]:
    """Collapse a batch to a single clearAll if one is present.

    Replaying clearAll subsumes every other clear, so the rest of the batch
    carries no information.
    """
    for event in events:
        if event.method == ClearMethod.CLEAR_ALL:
            return [event]
    return list(events)


_current_buffer: ContextVar[EventBuffer | None] = ContextVar(
    "current_event_buffer", default=None
)
_recording_suppressed: ContextVar[bool] = ContextVar(
    "recording_suppressed", default=False
)


def get_current_buffer() -> EventBuffer | None:
    """Get the buffer bound to the current request, or None outside a request."""
    return _current_buffer.get()


@contextmanager
def request_scope() -> Iterator[EventBuffer]:
    """Bind a fresh EventBuffer for the duration of one unit of work."""
    buffer = EventBuffer()
    token = _current_buffer.set(buffer)
    try:
        yield buffer
    finally:
        _current_buffer.reset(token)


def is_recording_suppressed() -> bool:
    return _recording_suppressed.get()


@contextmanager
def suppress_recording() -> Iterator[None]:
    """Ignore local clear notifications while replaying peer events."""
    token = _recording_suppressed.set(True)
    try:
        yield
    finally:
        _recording_suppressed.reset(token)
