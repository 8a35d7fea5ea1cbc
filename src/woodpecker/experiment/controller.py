"""
Experiment Stage Controller

Runs the obs1 -> intervention -> obs2 -> end lifecycle on clock ticks and
owns the delivery Policy that the admission gate reads. Each stage has an
entry action that replaces the policy; entering `end` hands control to the
engine's self-destruct hook.
"""

import logging
import random
import time
from datetime import datetime
from typing import Any, Callable

from woodpecker.config.loader import Config
from woodpecker.contracts.events import EventKind
from woodpecker.contracts.experiment import ExperimentState, Policy, Stage
from woodpecker.experiment.modes import assign_mode
from woodpecker.experiment.schedule import stage_for_tick, time_until_next_stage
from woodpecker.store.kv import EXPERIMENT_DATA_ADDRESS, KeyValueStore

logger = logging.getLogger(__name__)

EventSink = Callable[[EventKind, dict[str, Any]], None]


class ExperimentController:
    """Tick-bounded finite-state experiment lifecycle.

    Automatic advancement is suspended while `stage_forced` is set.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        config: Config,
        on_event: EventSink | None = None,
        on_stop_presentation: Callable[[], None] | None = None,
        on_end: Callable[[str], None] | None = None,
        rand: Callable[[], float] = random.random,
    ):
        """Initialize the controller.

        Args:
            kv: Key-value store holding the experiment state
            config: Stage lengths, mode weights, rate-limit presets
            on_event: Receives stage/policy events
            on_stop_presentation: Cooperative stop of an outstanding prompt
            on_end: Self-destruct hook, called with a reason
            rand: Uniform [0, 1) source for mode assignment
        """
        self.kv = kv
        self.config = config
        self._on_event = on_event
        self._on_stop_presentation = on_stop_presentation
        self._on_end = on_end
        self._rand = rand

        self._state: ExperimentState | None = None
        self._policy = Policy(no_silence=config.NO_SILENCE)

        self._entry_actions: dict[Stage, Callable[[], None]] = {
            Stage.OBS1: self._enter_obs1,
            Stage.INTERVENTION: self._enter_intervention,
            Stage.OBS2: self._enter_obs2,
            Stage.END: self._enter_end,
        }

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    def initialize(self) -> bool:
        """Load the experiment state, creating it on first run.

        Returns:
            True if this was the first run
        """
        data = self.kv.get(EXPERIMENT_DATA_ADDRESS)
        if data is not None:
            self._state = ExperimentState.model_validate(data)
            self._policy = self._mode_policy(
                observation_only=self._state.stage is not Stage.INTERVENTION
            )
            logger.info(
                f"Experiment loaded: stage={self._state.stage.value} "
                f"mode={self._state.mode_code} forced={self._state.stage_forced}"
            )
            return False

        code, mode = assign_mode(self.config.DEFAULT_DELMODE_WEIGHTS, self._rand)
        self._state = ExperimentState(
            mode=mode,
            mode_code=code,
            stage=Stage.OBS1,
            stage_forced=False,
            start_time_ms=int(time.time() * 1000),
        )
        self._save()
        logger.info(f"Assigned experimental mode: {mode.model_dump()} code: {code}")

        self._entry_actions[Stage.OBS1]()
        self._emit(EventKind.EXPERIMENT_STARTED, {"mode": mode.model_dump(), "code": code})
        return True

    @property
    def state(self) -> ExperimentState:
        if self._state is None:
            raise RuntimeError("ExperimentController.initialize() has not run")
        return self._state

    @property
    def stage(self) -> Stage:
        return self.state.stage

    @property
    def policy(self) -> Policy:
        return self._policy

    def check_stage(self, et: int, ett: int) -> Stage | None:
        """Advance the stage if `ett` crossed a boundary.

        Returns:
            The new stage, or None if nothing changed
        """
        state = self.state
        if state.stage_forced or state.stage is Stage.END:
            return None

        new_stage = stage_for_tick(ett, self.config.stage_lengths)
        if new_stage is state.stage:
            return None

        state.stage = new_stage
        self._save()

        # Announce before preparing: the end stage self-destructs
        self._emit(EventKind.STAGE_ADVANCED, {"newstage": new_stage.value})
        logger.info(f"Starting new experiment stage: {new_stage.value}")
        self._entry_actions[new_stage]()
        return new_stage

    def force_stage(self, name: str) -> str:
        """Manually set the stage, or clear the override with "none".

        Returns:
            Human-readable status; unknown stages are reported, not applied
        """
        state = self.state

        if name == "none":
            state.stage_forced = False
            self._save()
            return "back to normal stage determination"

        try:
            stage = Stage(name)
        except ValueError:
            return "error: no such stage exists."

        state.stage = stage
        state.stage_forced = True
        self._save()

        self._emit(EventKind.STAGE_FORCED, {"newstage": stage.value})
        self._entry_actions[stage]()

        return f"warning: experiment stage forced to {stage.value}"

    def set_observation_only(self, observation_only: bool) -> None:
        """Directly override the observation-only flag."""
        self._set_policy(self._policy.model_copy(update={"observation_only": observation_only}))

    def check_lifetime(self, now_ms: int | None = None) -> bool:
        """Self-destruct if the study outlived STUDY_LIFETIME_MS.

        Returns:
            True if the lifetime expired
        """
        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        if now_ms - self.state.start_time_ms < self.config.STUDY_LIFETIME_MS:
            return False
        logger.info("Study lifetime expired")
        if self._on_end:
            self._on_end("lifetime")
        return True

    # ─────────────────────────────────────────────────────────────────────
    # Introspection
    # ─────────────────────────────────────────────────────────────────────

    def time_until_next_stage(self, ett: int) -> int:
        return time_until_next_stage(self.stage, ett, self.config.stage_lengths)

    @property
    def next_stage(self) -> Stage | None:
        return self.stage.next

    def info(self) -> dict[str, Any]:
        state = self.state
        return {
            "startTimeMs": state.start_time_ms,
            "startLocaleTime": datetime.fromtimestamp(state.start_time_ms / 1000).strftime("%c"),
            "name": self.config.EXPERIMENT_NAME,
            "stage": state.stage.value,
            "mode": state.mode.model_dump(),
        }

    def status(self, ett: int) -> dict[str, Any]:
        """Debug snapshot of the experiment."""
        next_stage = self.next_stage
        return {
            "stage": self.stage.value,
            "nextStage": next_stage.value if next_stage else None,
            "stageForced": self.state.stage_forced,
            "timeUntilNextStage": self.time_until_next_stage(ett),
            "mode": self.state.mode.model_dump(),
            "policy": self._policy.model_dump(),
        }

    # ─────────────────────────────────────────────────────────────────────
    # Stage entry actions
    # ─────────────────────────────────────────────────────────────────────

    def _enter_obs1(self) -> None:
        self._set_policy(self._mode_policy(observation_only=True))

    def _enter_intervention(self) -> None:
        self._set_policy(self._policy.model_copy(update={"observation_only": False}))
        logger.info("Intervention stage started.")

    def _enter_obs2(self) -> None:
        self._set_policy(self._policy.model_copy(update={"observation_only": True}))
        if self._on_stop_presentation:
            self._on_stop_presentation()

    def _enter_end(self) -> None:
        if self._on_end:
            self._on_end("end")

    # ─────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────

    def _mode_policy(self, observation_only: bool) -> Policy:
        mode = self.state.mode
        preset = self.config.rate_limit_preset(mode.rate_limit)
        return Policy(
            observation_only=observation_only,
            no_silence=self.config.NO_SILENCE,
            d_eff_frequency_i=preset["d_eff_frequency_i"],
            min_eff_frequency_i=preset["min_eff_frequency_i"],
            max_r_eff_count=int(preset["max_r_eff_count"]),
            rate_limit=mode.rate_limit,
            moment=mode.moment,
            coefficient=mode.coeff,
        )

    def _set_policy(self, policy: Policy) -> None:
        if policy == self._policy:
            return
        self._policy = policy
        self._emit(EventKind.POLICY_CHANGED, {"policy": policy.model_dump()})

    def _save(self) -> None:
        self.kv.set(EXPERIMENT_DATA_ADDRESS, self.state.model_dump(mode="json"))

    def _emit(self, kind: EventKind, payload: dict[str, Any]) -> None:
        if self._on_event:
            self._on_event(kind, payload)
