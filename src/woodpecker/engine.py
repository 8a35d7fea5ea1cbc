"""
Nudge Engine

Wires the statistics store, admission gate, experiment controller and
delivery coordinator behind a single lock. Occurrence handling, tick
processing and presentation callbacks never interleave.
"""

import logging
import random
import threading
from typing import Any, Callable

from woodpecker.clock.clock import Clock, TickClock
from woodpecker.config.loader import Config
from woodpecker.contracts.events import EventKind
from woodpecker.contracts.experiment import Policy
from woodpecker.contracts.moments import MomentRecord, StageStats
from woodpecker.delivery.coordinator import DeliveryCoordinator
from woodpecker.delivery.presenter import Presenter
from woodpecker.exceptions import EngineTerminatedError
from woodpecker.experiment.controller import ExperimentController
from woodpecker.moments.gate import AdmissionDecision, MomentOptions, Reason, decide
from woodpecker.moments.signals import SignalKind, resolve
from woodpecker.moments.stats import MomentStatsStore
from woodpecker.store.event_log import EventLogWriter
from woodpecker.store.kv import ALL_ADDRESSES, TIMER_DATA_ADDRESS, KeyValueStore

logger = logging.getLogger(__name__)


class NudgeEngine:
    """Moment admission engine coordinated with the experiment stages.

    Signal detectors call moment(); the clock calls on_tick() once per tick.
    """

    def __init__(
        self,
        config: Config,
        kv: KeyValueStore,
        clock: Clock,
        presenter: Presenter,
        event_log: EventLogWriter | None = None,
        on_self_destruct: Callable[[str], None] | None = None,
        rand: Callable[[], float] = random.random,
    ):
        """Initialize the engine.

        Args:
            config: Engine configuration
            kv: Persistent key-value store
            clock: Tick source and global silence
            presenter: User-facing prompt
            event_log: Analytics sink (optional)
            on_self_destruct: Uninstall hook, called with the reason
            rand: Uniform [0, 1) source for sampling and mode assignment
        """
        self.config = config
        self.kv = kv
        self.clock = clock
        self.event_log = event_log
        self._on_self_destruct = on_self_destruct
        self._rand = rand

        # Ticks and occurrences share one lock so they never interleave
        self._lock = clock.lock if isinstance(clock, TickClock) else threading.RLock()
        self.terminated = False
        self.started = False

        self.stats = MomentStatsStore(
            kv,
            history_limit=config.HISTORY_LIMIT,
            recent_window=config.RECENT_WINDOW_TICK,
            recent_decay=config.RECENT_DECAY_FACTOR,
        )
        self.experiment = ExperimentController(
            kv,
            config,
            on_event=self._emit,
            on_stop_presentation=self._stop_presentation,
            on_end=self.self_destruct,
            rand=rand,
        )
        self.delivery = DeliveryCoordinator(
            self.stats,
            clock,
            presenter,
            policy=lambda: self.experiment.policy,
            stage=lambda: self.experiment.stage.value,
            on_event=self._emit,
            lock=self._lock,
        )

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    def start(self) -> bool:
        """Load persisted state and attach to the clock.

        Returns:
            True if this was the first run
        """
        with self._lock:
            if isinstance(self.clock, TickClock):
                timer_data = self.kv.get(TIMER_DATA_ADDRESS)
                if timer_data:
                    self.clock.restore(timer_data)

            self.stats.load()
            first_run = self.experiment.initialize()

            self.started = True
            self._emit(EventKind.ENGINE_LOADED, {"first_run": first_run})

            if self.experiment.check_lifetime():
                return first_run

            self.clock.on_tick(self.on_tick)
            self.stats.update_frequencies(
                self.clock.elapsed_ticks(), self.clock.elapsed_total_ticks()
            )
            logger.info(
                f"Engine started (first_run={first_run}, stage={self.experiment.stage.value})"
            )
            return first_run

    def self_destruct(self, reason: str) -> None:
        """Irreversibly shut the engine down and erase its persisted state."""
        with self._lock:
            if self.terminated:
                return
            self.terminated = True
            logger.info(f"Self-destructing: {reason}")

            self.clock.off_tick(self.on_tick)
            self.delivery.close()

            for address in ALL_ADDRESSES:
                self.kv.delete(address)
            self.stats.clear()

            self._emit(EventKind.SELF_DESTRUCTED, {"reason": reason})

        if self._on_self_destruct:
            self._on_self_destruct(reason)

    # ─────────────────────────────────────────────────────────────────────
    # Moments
    # ─────────────────────────────────────────────────────────────────────

    def moment(
        self,
        name: "str | SignalKind",
        reject: bool = False,
        force: bool = False,
    ) -> AdmissionDecision:
        """Handle one occurrence of a moment.

        Counts the occurrence, runs the admission gate and, on admission,
        presents the prompt.

        Raises:
            UnknownSignalError: name is not a registered signal
            EngineTerminatedError: the engine already self-destructed
        """
        kind = resolve(name)
        with self._lock:
            self._ensure_running()
            key = kind.value
            logger.info(f"Moment triggered -> {key}")

            record = self.stats.record_occurrence(
                key,
                self.clock.elapsed_ticks(),
                self.clock.elapsed_total_ticks(),
                self.experiment.stage.value,
            )
            decision = decide(
                record,
                self.experiment.policy,
                self.is_silent(),
                MomentOptions(reject=reject, force=force),
                self._rand,
            )

            if decision.admit and self.delivery.is_presenting:
                # Forced over an outstanding prompt: ask it to end first
                self.delivery.stop()
                if self.delivery.is_presenting:
                    logger.warning(f"Prompt still outstanding, {key} not delivered")
                    decision = AdmissionDecision(False, Reason.SILENCE, decision.probability)

            if decision.admit:
                self.delivery.deliver(key)
            else:
                self.stats.save()

            self._emit(
                EventKind.MOMENT_TRIGGERED,
                {"name": key, "admit": decision.admit, "reason": decision.reason.value},
            )
            return decision

    def dry_run(
        self,
        name: "str | SignalKind",
        reject: bool = False,
        force: bool = False,
    ) -> AdmissionDecision:
        """Evaluate the gate for `name` without recording anything.

        The gate sees the record as moment() would: with this occurrence
        counted and the ratios refreshed.
        """
        kind = resolve(name)
        with self._lock:
            record = self.stats.get(kind.value) if kind.value in self.stats else MomentRecord()
            stage = self.experiment.stage.value
            record.count += 1
            record.stages.setdefault(stage, StageStats()).count += 1
            record.refresh(self.clock.elapsed_ticks(), self.clock.elapsed_total_ticks())
            return decide(
                record,
                self.experiment.policy,
                self.is_silent(),
                MomentOptions(reject=reject, force=force),
                self._rand,
            )

    def is_silent(self) -> bool:
        """Global cooldown active or a prompt outstanding."""
        return self.clock.is_silent() or self.delivery.is_presenting

    @property
    def policy(self) -> Policy:
        return self.experiment.policy

    def set_observation_only(self, observation_only: bool) -> None:
        with self._lock:
            self.experiment.set_observation_only(observation_only)

    def force_stage(self, name: str) -> str:
        with self._lock:
            self._ensure_running()
            return self.experiment.force_stage(name)

    # ─────────────────────────────────────────────────────────────────────
    # Ticks
    # ─────────────────────────────────────────────────────────────────────

    def on_tick(self, et: int, ett: int) -> None:
        """Per-tick maintenance: decay, ratios, lifetime, stage."""
        with self._lock:
            if self.terminated:
                return

            if isinstance(self.clock, TickClock):
                self.kv.set(TIMER_DATA_ADDRESS, self.clock.snapshot())

            if self.stats.decay_recent(ett):
                self.stats.save()
            self.stats.update_frequencies(et, ett)

            if self.experiment.check_lifetime():
                return
            self.experiment.check_stage(et, ett)

    # ─────────────────────────────────────────────────────────────────────
    # Introspection
    # ─────────────────────────────────────────────────────────────────────

    def status(self) -> dict[str, Any]:
        with self._lock:
            ett = self.clock.elapsed_total_ticks()
            return {
                "terminated": self.terminated,
                "et": self.clock.elapsed_ticks(),
                "ett": ett,
                "silent": self.is_silent(),
                "presenting": self.delivery.is_presenting,
                "delivered": self.delivery.delivered,
                "moments": len(self.stats.names()),
                "experiment": None if self.terminated else self.experiment.status(ett),
            }

    # ─────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────

    def _ensure_running(self) -> None:
        if self.terminated:
            raise EngineTerminatedError("Engine has self-destructed")
        if not self.started:
            raise RuntimeError("NudgeEngine.start() has not run")

    def _stop_presentation(self) -> None:
        self.delivery.stop()

    def _emit(self, kind: EventKind, payload: dict[str, Any]) -> None:
        if self.event_log is not None:
            self.event_log.emit(kind, payload, ett=self.clock.elapsed_total_ticks())
