# SPDX-License-Identifier: MIT
"""Shared row store backing the cross-instance event log."""

from .event_log import EventLog
from .schema import init_database


__all__ = ["EventLog", "init_database"]
