"""
Delivery Coordinator

Presents an admitted moment, records the delivery, and manages the global
silence. Exactly one prompt may be outstanding; the engine reports an
outstanding prompt to the gate as silence, so a second admission is
rejected rather than queued.
"""

import logging
import threading
import time
from typing import Any, Callable

from woodpecker.clock.clock import Clock
from woodpecker.contracts.events import EventKind
from woodpecker.contracts.experiment import Policy
from woodpecker.contracts.moments import TIMEOUT
from woodpecker.delivery.presenter import PresentationResult, Presenter
from woodpecker.moments.stats import MomentStatsStore

logger = logging.getLogger(__name__)


class DeliveryCoordinator:
    """Glue between an admission and the presenter."""

    def __init__(
        self,
        stats: MomentStatsStore,
        clock: Clock,
        presenter: Presenter,
        policy: Callable[[], Policy],
        stage: Callable[[], str],
        on_event: Callable[[EventKind, dict[str, Any]], None] | None = None,
        lock: "threading.RLock | None" = None,
    ):
        """Initialize delivery.

        Args:
            stats: Statistics store to record deliveries and rates in
            clock: Clock providing ticks and the global silence
            presenter: Shows the prompt
            policy: Returns the current policy (read at callback time)
            stage: Returns the current stage name
            on_event: Receives the delivery-logged event
            lock: Serialization boundary shared with the engine
        """
        self.stats = stats
        self.clock = clock
        self.presenter = presenter
        self._policy = policy
        self._stage = stage
        self._on_event = on_event
        self._lock = lock or threading.RLock()

        self._outstanding: str | None = None
        self._closed = False
        self.delivered = 0
        self.completed = 0

    @property
    def is_presenting(self) -> bool:
        return self._outstanding is not None

    def deliver(self, name: str) -> None:
        """Present moment `name` and record the delivery.

        Raises:
            RuntimeError: delivery is closed or a prompt is already outstanding
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("Delivery is closed")
            if self._outstanding is not None:
                raise RuntimeError(f"Prompt for {self._outstanding} is still outstanding")

            logger.info(f"Moment notification delivered -> {name}")

            self._outstanding = name
            self.clock.silence()
            try:
                self.presenter.present(lambda result: self._on_result(name, result))
            except Exception:
                self._outstanding = None
                self.clock.end_silence()
                raise

            self.stats.record_delivery(
                name,
                self.clock.elapsed_ticks(),
                self.clock.elapsed_total_ticks(),
                self._stage(),
                int(time.time() * 1000),
            )
            self.stats.save()
            self.delivered += 1

    def _on_result(self, name: str, result: PresentationResult | dict[str, Any]) -> None:
        if isinstance(result, dict):
            result = PresentationResult.from_dict(result)

        with self._lock:
            if self._closed:
                # Late answer after shutdown: nothing may be written back
                logger.info(f"Ignoring result for {name} after close")
                self._outstanding = None
                return

            if result.type == "rate":
                logger.info(f"Rate submitted for {name}: {result.value}")
                self.stats.record_rate(name, result.value)
            else:
                logger.info(f"Panel for {name} timed out")
                self.stats.record_rate(name, TIMEOUT)

            self._outstanding = None
            self.completed += 1

            if self._policy().no_silence:
                self.clock.end_silence()

            self.stats.save()
            if self._on_event:
                self._on_event(EventKind.MOMENT_DELIVERED, {"name": name, **result.to_dict()})

    def stop(self) -> None:
        """Ask the presenter to end the outstanding prompt, if any."""
        with self._lock:
            if self._outstanding is not None:
                logger.info(f"Requesting stop of prompt for {self._outstanding}")
            self.presenter.stop()

    def close(self) -> None:
        """Stop the outstanding prompt and drop any result that arrives later."""
        with self._lock:
            self._closed = True
            self.stop()

    @property
    def is_closed(self) -> bool:
        return self._closed
