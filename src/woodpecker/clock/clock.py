"""Tick clock - discrete engine time, activity tracking and global silence."""

import logging
import threading
from collections import deque
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

TickCallback = Callable[[int, int], None]


class Clock(Protocol):
    """Time source consumed by the engine.

    et is ticks since the last delivery, ett ticks since engine start.
    """

    def elapsed_ticks(self) -> int: ...

    def elapsed_total_ticks(self) -> int: ...

    def is_recently_active(self, window_ticks: int, lookback_ticks: int = 0) -> bool: ...

    def is_silent(self) -> bool: ...

    def silence(self) -> None: ...

    def end_silence(self) -> None: ...

    def on_tick(self, callback: TickCallback) -> None: ...

    def off_tick(self, callback: TickCallback) -> None: ...


class TickClock:
    """In-memory Clock advanced explicitly (by a Ticker or by tests).

    silence() resets et and holds the silence for `silence_length` ticks;
    None keeps it until end_silence().

    Every read and write goes through `lock`, which advance() also holds
    while tick callbacks run. Callers that share it see ticks as atomic.
    """

    ACTIVITY_HISTORY = 4096

    def __init__(
        self,
        silence_length: int | None = None,
        start_et: int = 0,
        start_ett: int = 0,
        lock: "threading.RLock | None" = None,
    ):
        self.lock = lock or threading.RLock()
        self.silence_length = silence_length
        self._et = start_et
        self._ett = start_ett
        self._silent = False
        self._silent_until: int | None = None
        self._activity: deque[int] = deque(maxlen=self.ACTIVITY_HISTORY)
        self._callbacks: list[TickCallback] = []

    def elapsed_ticks(self) -> int:
        with self.lock:
            return self._et

    def elapsed_total_ticks(self) -> int:
        with self.lock:
            return self._ett

    def advance(self, ticks: int = 1) -> None:
        """Advance the clock, firing tick callbacks once per tick."""
        for _ in range(ticks):
            with self.lock:
                self._et += 1
                self._ett += 1

                if self._silent and self._silent_until is not None and self._ett >= self._silent_until:
                    self.end_silence()

                for callback in list(self._callbacks):
                    callback(self._et, self._ett)

    def on_tick(self, callback: TickCallback) -> None:
        with self.lock:
            if callback not in self._callbacks:
                self._callbacks.append(callback)

    def off_tick(self, callback: TickCallback) -> None:
        with self.lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    # ─────────────────────────────────────────────────────────────────────
    # Silence
    # ─────────────────────────────────────────────────────────────────────

    def is_silent(self) -> bool:
        with self.lock:
            return self._silent

    def silence(self) -> None:
        with self.lock:
            self._silent = True
            self._et = 0
            if self.silence_length is not None:
                self._silent_until = self._ett + self.silence_length
            else:
                self._silent_until = None
            logger.debug(f"Silence engaged at tick {self._ett} until {self._silent_until}")

    def end_silence(self) -> None:
        with self.lock:
            if self._silent:
                logger.debug(f"Silence ended at tick {self._ett}")
            self._silent = False
            self._silent_until = None

    # ─────────────────────────────────────────────────────────────────────
    # Activity
    # ─────────────────────────────────────────────────────────────────────

    def record_activity(self) -> None:
        """Mark the current tick as having user activity."""
        with self.lock:
            if not self._activity or self._activity[-1] != self._ett:
                self._activity.append(self._ett)

    def is_recently_active(self, window_ticks: int, lookback_ticks: int = 0) -> bool:
        """True if there was activity in [ett - lookback - window, ett - lookback]."""
        with self.lock:
            upper = self._ett - lookback_ticks
            lower = upper - window_ticks
            return any(lower <= tick <= upper for tick in self._activity)

    # ─────────────────────────────────────────────────────────────────────
    # Persistence
    # ─────────────────────────────────────────────────────────────────────

    def snapshot(self) -> dict[str, int]:
        with self.lock:
            return {"et": self._et, "ett": self._ett}

    def restore(self, data: dict[str, int]) -> None:
        with self.lock:
            self._et = int(data.get("et", 0))
            self._ett = int(data.get("ett", 0))
