"""Experiment contracts - stages, delivery modes and policy."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from woodpecker.config.defaults import RATE_LIMITS


class Stage(str, Enum):
    """Experiment stages, in the only order they can occur."""

    OBS1 = "obs1"
    INTERVENTION = "intervention"
    OBS2 = "obs2"
    END = "end"

    @property
    def next(self) -> "Stage | None":
        order = list(Stage)
        index = order.index(self)
        return order[index + 1] if index + 1 < len(order) else None


RateLimit = Literal["easy", "strict"]
MomentSelection = Literal["random", "in-context", "interruptible"]


class DeliveryMode(BaseModel):
    """One of the 12 experiment arms."""

    rate_limit: RateLimit
    moment: MomentSelection
    coeff: Literal[1, 2]

    model_config = {"frozen": True}


class ExperimentState(BaseModel):
    """Process-wide experiment state, persisted across restarts."""

    mode: DeliveryMode
    mode_code: int = Field(ge=0, le=11)
    stage: Stage = Stage.OBS1
    stage_forced: bool = False
    start_time_ms: int = Field(ge=0)


class Policy(BaseModel):
    """Delivery policy consumed by the admission gate.

    Replaced as a whole by the stage controller, never mutated in place.
    """

    observation_only: bool = True
    no_silence: bool = False

    # Target interval (ticks) between deliveries; target frequency is 1/d_eff_frequency_i.
    # Defaults are the easy preset until a mode is assigned.
    d_eff_frequency_i: float = Field(default=RATE_LIMITS["easy"]["d_eff_frequency_i"], gt=0)
    min_eff_frequency_i: float = Field(default=RATE_LIMITS["easy"]["min_eff_frequency_i"], ge=0)
    max_r_eff_count: int = Field(default=RATE_LIMITS["easy"]["max_r_eff_count"], ge=0)

    rate_limit: RateLimit = "easy"
    moment: MomentSelection = "random"
    coefficient: int = 1

    model_config = {"frozen": True}

    @property
    def target_frequency(self) -> float:
        return 1.0 / self.d_eff_frequency_i
