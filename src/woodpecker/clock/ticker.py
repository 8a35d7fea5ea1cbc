"""Ticker - background asyncio loop that advances a TickClock."""

import asyncio
import logging
import time
from typing import Optional

from woodpecker.clock.clock import TickClock

logger = logging.getLogger(__name__)


class Ticker:
    """Background loop calling clock.advance() once per interval.

    Tick callbacks run inside advance(); an exception from one tick is
    logged and the loop keeps running.
    """

    DEFAULT_TICK_INTERVAL = 1.0  # seconds

    def __init__(self, clock: TickClock, tick_interval: float = DEFAULT_TICK_INTERVAL):
        """Initialize the ticker.

        Args:
            clock: Clock to advance
            tick_interval: Seconds between ticks
        """
        self.clock = clock
        self.tick_interval = tick_interval

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._tick_count = 0
        self._error_count = 0

    async def start(self) -> None:
        """Start the background tick loop."""
        if self._running:
            return

        self._running = True
        self._tick_count = 0
        self._task = asyncio.create_task(self._tick_loop())

    async def stop(self) -> None:
        """Stop the background tick loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _tick_loop(self) -> None:
        """Main loop."""
        while self._running:
            try:
                await asyncio.sleep(self.tick_interval)
                if not self._running:
                    break
                self._tick()
            except asyncio.CancelledError:
                break
            except Exception as e:
                # Log error but keep running
                self._error_count += 1
                logger.error(f"Tick {self._tick_count} failed: {e}")

    def _tick(self) -> None:
        """Execute a single tick."""
        self._tick_count += 1
        tick_start = time.monotonic()

        self.clock.advance()

        tick_duration = time.monotonic() - tick_start
        if tick_duration > self.tick_interval:
            logger.warning(f"Slow tick: {int(tick_duration * 1000)}ms")

    @property
    def is_running(self) -> bool:
        """Check if the ticker is running."""
        return self._running and self._task is not None

    def get_status(self) -> dict:
        """Get ticker status for diagnostics."""
        return {
            "running": self.is_running,
            "tick_count": self._tick_count,
            "tick_interval": self.tick_interval,
            "errors": self._error_count,
        }
