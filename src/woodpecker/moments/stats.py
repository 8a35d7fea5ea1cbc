"""
Moment Statistics Store

Per-signal and aggregate counters, updated on every occurrence, every
delivery and every tick. All read-modify-write sequences run under one lock;
callers receive copies, never the live records.
"""

import logging
import threading
from typing import Any

from woodpecker.contracts.moments import AGGREGATE, TIMEOUT, MomentRecord, StageStats
from woodpecker.store.kv import MOMENT_DATA_ADDRESS, KeyValueStore

logger = logging.getLogger(__name__)


class MomentStatsStore:
    """Owns every MomentRecord, including the aggregate record "*".

    Records are created lazily on first occurrence and never deleted.
    timestamps/rates are capped at `history_limit` entries (oldest dropped).
    """

    def __init__(
        self,
        kv: KeyValueStore | None = None,
        history_limit: int = 500,
        recent_window: int = 3600,
        recent_decay: float = 0.0,
    ):
        """Initialize the store.

        Args:
            kv: Key-value store for persistence (None keeps everything in memory)
            history_limit: Max timestamps/rates kept per record
            recent_window: Ticks between r_eff_count decays
            recent_decay: Factor applied to r_eff_count on decay (0 resets)
        """
        self.kv = kv
        self.history_limit = history_limit
        self.recent_window = recent_window
        self.recent_decay = recent_decay

        self._records: dict[str, MomentRecord] = {}
        self._lock = threading.RLock()

    # ─────────────────────────────────────────────────────────────────────
    # Persistence
    # ─────────────────────────────────────────────────────────────────────

    def load(self) -> None:
        """Load records from the key-value store, replacing memory."""
        if self.kv is None:
            return
        data = self.kv.get(MOMENT_DATA_ADDRESS) or {}
        with self._lock:
            self._records = {
                name: MomentRecord.model_validate(record)
                for name, record in data.items()
            }
        logger.debug(f"Loaded statistics for {len(self._records)} moments")

    def save(self) -> None:
        """Persist all records. Failures propagate to the caller."""
        if self.kv is None:
            return
        with self._lock:
            self.kv.set(MOMENT_DATA_ADDRESS, self.snapshot())

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """JSON-ready copy of every record."""
        with self._lock:
            return {
                name: record.model_dump(mode="json")
                for name, record in self._records.items()
            }

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    # ─────────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────────

    def get(self, name: str) -> MomentRecord | None:
        """Copy of a record, or None (with a warning) if never recorded."""
        with self._lock:
            record = self._records.get(name)
            if record is None:
                logger.warning(f"No moment data for {name}")
                return None
            return record.model_copy(deep=True)

    def names(self) -> list[str]:
        with self._lock:
            return list(self._records)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._records

    # ─────────────────────────────────────────────────────────────────────
    # Updates
    # ─────────────────────────────────────────────────────────────────────

    def _pair(self, name: str) -> tuple[MomentRecord, MomentRecord]:
        record = self._records.setdefault(name, MomentRecord())
        aggregate = self._records.setdefault(AGGREGATE, MomentRecord())
        return record, aggregate

    def record_occurrence(self, name: str, et: int, ett: int, stage: str) -> MomentRecord:
        """Count an occurrence of `name` and refresh its ratios.

        Returns:
            Copy of the updated named record
        """
        with self._lock:
            for record in self._pair(name):
                record.count += 1
                record.stages.setdefault(stage, StageStats()).count += 1
                record.refresh(et, ett)
            return self._records[name].model_copy(deep=True)

    def record_delivery(
        self, name: str, et: int, ett: int, stage: str, timestamp_ms: int
    ) -> MomentRecord:
        """Count a delivery of `name`.

        Must follow a record_occurrence for the same name so that
        eff_count <= count holds.
        """
        with self._lock:
            if name not in self._records:
                raise ValueError(f"Delivery of {name} without a matching occurrence")
            pair = self._pair(name)
            if any(record.eff_count >= record.count for record in pair):
                raise ValueError(f"Delivery of {name} without a matching occurrence")
            for record in pair:
                record.eff_count += 1
                record.r_eff_count += 1
                record.eff_stages.setdefault(stage, StageStats()).count += 1
                record.timestamps.append(timestamp_ms)
                self._cap(record.timestamps)
                record.refresh(et, ett)
            return self._records[name].model_copy(deep=True)

    def record_rate(self, name: str, value: Any) -> None:
        """Append a user rating, or TIMEOUT, for a delivered moment."""
        with self._lock:
            for record in self._pair(name):
                record.rates.append(value)
                self._cap(record.rates)

    def record_timeout(self, name: str) -> None:
        self.record_rate(name, TIMEOUT)

    def update_frequencies(self, et: int, ett: int, name: str | None = None) -> None:
        """Recompute ratios from current ticks for one record or all of them."""
        with self._lock:
            if name is not None:
                record = self._records.get(name)
                if record is not None:
                    record.refresh(et, ett)
                return
            for record in self._records.values():
                record.refresh(et, ett)

    def decay_recent(self, ett: int) -> bool:
        """Decay r_eff_count of every record once per recent window.

        Returns:
            True if a decay was applied on this tick
        """
        if ett <= 0 or ett % self.recent_window != 0:
            return False
        with self._lock:
            for record in self._records.values():
                record.r_eff_count = int(record.r_eff_count * self.recent_decay)
        logger.debug(f"Recent effective counts decayed at tick {ett}")
        return True

    def _cap(self, history: list) -> None:
        overflow = len(history) - self.history_limit
        if overflow > 0:
            del history[:overflow]
