"""Tests for store module."""

import pytest

from woodpecker.contracts.events import EngineEvent, EventKind
from woodpecker.exceptions import PersistenceError
from woodpecker.store.event_log import EventLogWriter
from woodpecker.store.kv import (
    ALL_ADDRESSES,
    EXPERIMENT_DATA_ADDRESS,
    MOMENT_DATA_ADDRESS,
    MemoryKeyValueStore,
    SQLiteKeyValueStore,
)


class TestMemoryKeyValueStore:
    def test_get_missing_returns_none(self):
        kv = MemoryKeyValueStore()
        assert kv.get(EXPERIMENT_DATA_ADDRESS) is None

    def test_set_get_delete(self):
        kv = MemoryKeyValueStore()
        kv.set(MOMENT_DATA_ADDRESS, {"startup": {"count": 1}})

        assert kv.get(MOMENT_DATA_ADDRESS) == {"startup": {"count": 1}}
        assert kv.keys() == [MOMENT_DATA_ADDRESS]

        kv.delete(MOMENT_DATA_ADDRESS)
        assert kv.get(MOMENT_DATA_ADDRESS) is None

    def test_values_are_copies(self):
        kv = MemoryKeyValueStore()
        value = {"rates": [1, 2]}
        kv.set("x", value)

        value["rates"].append(3)
        assert kv.get("x") == {"rates": [1, 2]}

    def test_delete_missing_is_noop(self):
        kv = MemoryKeyValueStore()
        kv.delete("nothing")


class TestSQLiteKeyValueStore:
    def test_round_trip(self, tmp_path):
        kv = SQLiteKeyValueStore(tmp_path / "kv.db")
        kv.set(EXPERIMENT_DATA_ADDRESS, {"stage": "obs1", "stage_forced": False})

        assert kv.get(EXPERIMENT_DATA_ADDRESS) == {"stage": "obs1", "stage_forced": False}

    def test_overwrite(self, tmp_path):
        kv = SQLiteKeyValueStore(tmp_path / "kv.db")
        kv.set("k", 1)
        kv.set("k", 2)

        assert kv.get("k") == 2
        assert kv.keys() == ["k"]

    def test_persists_across_instances(self, tmp_path):
        db_path = tmp_path / "kv.db"
        SQLiteKeyValueStore(db_path).set(MOMENT_DATA_ADDRESS, {"*": {"count": 3}})

        reopened = SQLiteKeyValueStore(db_path)
        assert reopened.get(MOMENT_DATA_ADDRESS) == {"*": {"count": 3}}

    def test_delete_all_addresses(self, tmp_path):
        kv = SQLiteKeyValueStore(tmp_path / "kv.db")
        for address in ALL_ADDRESSES:
            kv.set(address, {})

        for address in ALL_ADDRESSES:
            kv.delete(address)

        assert kv.keys() == []

    def test_creates_parent_directory(self, tmp_path):
        kv = SQLiteKeyValueStore(tmp_path / "nested" / "dir" / "kv.db")
        kv.set("k", "v")
        assert (tmp_path / "nested" / "dir" / "kv.db").exists()

    def test_unopenable_path_raises_persistence_error(self, tmp_path):
        # A directory cannot be opened as a database file
        with pytest.raises(PersistenceError):
            SQLiteKeyValueStore(tmp_path)


class TestEventLogWriter:
    def test_emit_and_replay(self, tmp_path):
        log = EventLogWriter(tmp_path / "events.db")

        log.emit(EventKind.ENGINE_LOADED, {"first_run": True})
        log.emit(EventKind.MOMENT_TRIGGERED, {"name": "startup", "admit": False}, ett=12)

        events = list(log.replay())
        assert len(events) == 2
        assert events[0].kind == EventKind.ENGINE_LOADED
        assert events[1].kind == EventKind.MOMENT_TRIGGERED
        assert events[1].ett == 12
        assert events[1].payload == {"name": "startup", "admit": False}

    def test_next_seq(self, tmp_path):
        log = EventLogWriter(tmp_path / "events.db")

        assert log.next_seq() == 0
        assert log.next_seq() == 1
        assert log.next_seq() == 2

    def test_seq_continues_after_reopen(self, tmp_path):
        db_path = tmp_path / "events.db"
        log = EventLogWriter(db_path)
        log.emit(EventKind.ENGINE_LOADED, {})
        log.emit(EventKind.ENGINE_LOADED, {})

        reopened = EventLogWriter(db_path)
        event = reopened.emit(EventKind.ENGINE_LOADED, {})
        assert event.seq == 2

    def test_append_explicit_event(self, tmp_path):
        log = EventLogWriter(tmp_path / "events.db")
        event = EngineEvent(
            seq=0,
            ts_monotonic=1000.0,
            kind=EventKind.STAGE_ADVANCED,
            payload={"newstage": "intervention"},
        )
        log.append(event)

        replayed = list(log.replay())
        assert replayed[0].payload == {"newstage": "intervention"}

    def test_get_events_by_kind(self, tmp_path):
        log = EventLogWriter(tmp_path / "events.db")
        log.emit(EventKind.MOMENT_TRIGGERED, {"name": "a"})
        log.emit(EventKind.STAGE_ADVANCED, {"newstage": "obs2"})
        log.emit(EventKind.MOMENT_TRIGGERED, {"name": "b"})

        events = log.get_events_by_kind(EventKind.MOMENT_TRIGGERED)
        assert [e.payload["name"] for e in events] == ["b", "a"]  # Most recent first

        limited = log.get_events_by_kind(EventKind.MOMENT_TRIGGERED, limit=1)
        assert len(limited) == 1

    def test_count_events(self, tmp_path):
        log = EventLogWriter(tmp_path / "events.db")
        log.emit(EventKind.MOMENT_TRIGGERED, {})
        log.emit(EventKind.MOMENT_DELIVERED, {})
        log.emit(EventKind.MOMENT_TRIGGERED, {})

        assert log.count_events() == 3
        assert log.count_events(EventKind.MOMENT_TRIGGERED) == 2
        assert log.count_events(EventKind.SELF_DESTRUCTED) == 0


class TestEngineEvent:
    def test_event_is_frozen(self):
        event = EngineEvent(seq=0, ts_monotonic=0.0, kind=EventKind.ENGINE_LOADED)
        with pytest.raises(Exception):
            event.seq = 5

    def test_negative_seq_rejected(self):
        with pytest.raises(ValueError):
            EngineEvent(seq=-1, ts_monotonic=0.0, kind=EventKind.ENGINE_LOADED)
