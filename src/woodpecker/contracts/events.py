"""Event definitions for the analytics sink."""

from enum import Enum
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class EventKind(str, Enum):
    """All event kinds emitted by the engine."""

    # ─────────────────────────────────────────────────────────────────────
    # Moments
    # ─────────────────────────────────────────────────────────────────────
    MOMENT_TRIGGERED = "moment_triggered"
    MOMENT_DELIVERED = "moment_delivered"

    # ─────────────────────────────────────────────────────────────────────
    # Experiment
    # ─────────────────────────────────────────────────────────────────────
    EXPERIMENT_STARTED = "experiment_started"
    STAGE_ADVANCED = "stage_advanced"
    STAGE_FORCED = "stage_forced"
    POLICY_CHANGED = "policy_changed"

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────
    ENGINE_LOADED = "engine_loaded"
    SELF_DESTRUCTED = "self_destructed"


class EngineEvent(BaseModel):
    """Immutable event envelope.

    Every event has:
    - seq: Monotonically increasing per engine instance
    - ts_monotonic: time.monotonic() for duration calculations
    - ts_wall: Wall clock time for display
    - ett: Elapsed total ticks when the event was emitted
    - kind: Event type from EventKind enum
    - payload: Data specific to event kind
    - schema_version: For forward compatibility
    """

    seq: int = Field(ge=0, description="Sequence number")
    ts_monotonic: float = Field(description="time.monotonic() timestamp")
    ts_wall: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Wall clock timestamp"
    )
    ett: int = Field(default=0, ge=0, description="Elapsed total ticks")
    kind: EventKind = Field(description="Event type")
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Event-specific data"
    )
    schema_version: int = Field(default=1, description="Schema version for migrations")

    model_config = {"frozen": True}


"""
Payload schemas by event kind:

MOMENT_TRIGGERED:
    name: str
    admit: bool
    reason: str

MOMENT_DELIVERED:
    name: str
    type: "rate" | "timeout"
    value: Any | None

STAGE_ADVANCED / STAGE_FORCED:
    newstage: str

POLICY_CHANGED:
    policy: dict

SELF_DESTRUCTED:
    reason: str
"""
