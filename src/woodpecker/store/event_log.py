"""Event log - append-only analytics sink for engine events."""

import json
import sqlite3
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from woodpecker.contracts.events import EngineEvent, EventKind


class EventLogWriter:
    """Single-writer append-only event log.

    Invariants:
    - seq is monotonically increasing per writer
    - Events are never deleted or modified
    """

    def __init__(self, db_path: Path | str):
        """Initialize event log.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()
        self._seq = self._last_seq() + 1

    def _init_schema(self) -> None:
        """Create tables and indexes if they don't exist."""
        with self._conn() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    seq INTEGER NOT NULL UNIQUE,
                    ts_monotonic REAL NOT NULL,
                    ts_wall TEXT NOT NULL,
                    ett INTEGER NOT NULL,
                    kind TEXT NOT NULL,
                    payload_json TEXT NOT NULL,
                    schema_version INTEGER NOT NULL DEFAULT 1
                );

                CREATE INDEX IF NOT EXISTS idx_events_kind
                    ON events(kind);
            """)

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        """Get a database connection with automatic commit/rollback."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _last_seq(self) -> int:
        with self._conn() as conn:
            row = conn.execute("SELECT MAX(seq) FROM events").fetchone()
            return row[0] if row[0] is not None else -1

    def next_seq(self) -> int:
        """Get next sequence number."""
        seq = self._seq
        self._seq += 1
        return seq

    def emit(self, kind: EventKind, payload: dict[str, Any], ett: int = 0) -> EngineEvent:
        """Create and append an event."""
        event = EngineEvent(
            seq=self.next_seq(),
            ts_monotonic=time.monotonic(),
            ett=ett,
            kind=kind,
            payload=payload,
        )
        self.append(event)
        return event

    def append(self, event: EngineEvent) -> None:
        """Append an event to the log.

        Args:
            event: The event to append
        """
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO events
                    (seq, ts_monotonic, ts_wall, ett, kind, payload_json, schema_version)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.seq,
                    event.ts_monotonic,
                    event.ts_wall.isoformat(),
                    event.ett,
                    event.kind.value,
                    json.dumps(event.payload, default=str),
                    event.schema_version,
                ),
            )

    # ─────────────────────────────────────────────────────────────────────
    # Query Methods
    # ─────────────────────────────────────────────────────────────────────

    @staticmethod
    def _row_to_event(row: sqlite3.Row) -> EngineEvent:
        return EngineEvent(
            seq=row["seq"],
            ts_monotonic=row["ts_monotonic"],
            ts_wall=datetime.fromisoformat(row["ts_wall"]),
            ett=row["ett"],
            kind=EventKind(row["kind"]),
            payload=json.loads(row["payload_json"]),
            schema_version=row["schema_version"],
        )

    def replay(self) -> Iterator[EngineEvent]:
        """Replay all events in sequence order."""
        with self._conn() as conn:
            cursor = conn.execute(
                """
                SELECT seq, ts_monotonic, ts_wall, ett, kind, payload_json, schema_version
                FROM events
                ORDER BY seq
                """
            )
            for row in cursor:
                yield self._row_to_event(row)

    def get_events_by_kind(self, kind: EventKind, limit: int = 100) -> list[EngineEvent]:
        """Get the most recent events of a specific kind."""
        with self._conn() as conn:
            cursor = conn.execute(
                """
                SELECT seq, ts_monotonic, ts_wall, ett, kind, payload_json, schema_version
                FROM events
                WHERE kind = ?
                ORDER BY seq DESC
                LIMIT ?
                """,
                (kind.value, limit),
            )
            return [self._row_to_event(row) for row in cursor]

    def count_events(self, kind: EventKind | None = None) -> int:
        """Count events, optionally filtered by kind."""
        with self._conn() as conn:
            if kind is not None:
                cursor = conn.execute(
                    "SELECT COUNT(*) FROM events WHERE kind = ?", (kind.value,)
                )
            else:
                cursor = conn.execute("SELECT COUNT(*) FROM events")
            return cursor.fetchone()[0]
