"""Woodpecker contracts - pydantic models shared across components."""

from woodpecker.contracts.events import EngineEvent, EventKind
from woodpecker.contracts.experiment import (
    DeliveryMode,
    ExperimentState,
    Policy,
    Stage,
)
from woodpecker.contracts.moments import AGGREGATE, TIMEOUT, MomentRecord, StageStats

__all__ = [
    "AGGREGATE",
    "TIMEOUT",
    "DeliveryMode",
    "EngineEvent",
    "EventKind",
    "ExperimentState",
    "MomentRecord",
    "Policy",
    "Stage",
    "StageStats",
]
