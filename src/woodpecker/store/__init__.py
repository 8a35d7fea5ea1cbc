"""Woodpecker Store - persisted state and event log."""

from woodpecker.store.event_log import EventLogWriter
from woodpecker.store.kv import (
    ALL_ADDRESSES,
    EXPERIMENT_DATA_ADDRESS,
    MOMENT_DATA_ADDRESS,
    TIMER_DATA_ADDRESS,
    KeyValueStore,
    MemoryKeyValueStore,
    SQLiteKeyValueStore,
)

__all__ = [
    "ALL_ADDRESSES",
    "EXPERIMENT_DATA_ADDRESS",
    "MOMENT_DATA_ADDRESS",
    "TIMER_DATA_ADDRESS",
    "EventLogWriter",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SQLiteKeyValueStore",
]
