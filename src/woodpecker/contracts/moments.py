"""Moment statistics contracts."""

from typing import Any

from pydantic import BaseModel, Field

AGGREGATE = "*"
TIMEOUT = "timeout"


def _ratios(count: int, et: int, ett: int) -> tuple[float, float | None, float, float | None]:
    """Return (freq, ifreq, tfreq, tifreq) for a count at the given ticks.

    The `et + 1` term keeps the ratio finite on the very first tick after a
    delivery and is part of the estimate, not a guard. `ett` is floored at 1.
    """
    window = et + 1
    total = max(ett, 1)
    if count == 0:
        return 0.0, None, 0.0, None
    return count / window, window / count, count / total, total / count


class StageStats(BaseModel):
    """Per-stage breakdown of a counter."""

    count: int = Field(default=0, ge=0)
    freq: float = 0.0
    ifreq: float | None = None
    tfreq: float = 0.0
    tifreq: float | None = None

    def refresh(self, et: int, ett: int) -> None:
        self.freq, self.ifreq, self.tfreq, self.tifreq = _ratios(self.count, et, ett)


class MomentRecord(BaseModel):
    """Statistics for one named moment (or the aggregate record "*").

    Invariant: eff_count <= count.
    """

    count: int = Field(default=0, ge=0, description="Occurrences ever observed")
    eff_count: int = Field(default=0, ge=0, description="Occurrences delivered")
    r_eff_count: int = Field(default=0, ge=0, description="Recent deliveries (decayed)")

    # Raw occurrence ratios
    frequency: float = 0.0
    ifreq: float | None = None
    tfreq: float = 0.0
    tifreq: float | None = None

    # Effective (delivered) ratios
    eff_frequency: float = 0.0
    eff_ifreq: float | None = None
    eff_total_frequency: float = 0.0
    eff_total_ifreq: float | None = None

    stages: dict[str, StageStats] = Field(default_factory=dict)
    eff_stages: dict[str, StageStats] = Field(default_factory=dict)

    timestamps: list[int] = Field(default_factory=list, description="Delivery times (ms)")
    rates: list[Any] = Field(default_factory=list, description="Ratings or 'timeout'")

    def refresh(self, et: int, ett: int) -> None:
        """Recompute every ratio field from the counters."""
        self.frequency, self.ifreq, self.tfreq, self.tifreq = _ratios(self.count, et, ett)
        (
            self.eff_frequency,
            self.eff_ifreq,
            self.eff_total_frequency,
            self.eff_total_ifreq,
        ) = _ratios(self.eff_count, et, ett)
        for stats in self.stages.values():
            stats.refresh(et, ett)
        for stats in self.eff_stages.values():
            stats.refresh(et, ett)

    def ratio_fields(self) -> dict[str, Any]:
        """Ratio fields only, for comparing recomputations."""
        return self.model_dump(
            include={
                "frequency",
                "ifreq",
                "tfreq",
                "tifreq",
                "eff_frequency",
                "eff_ifreq",
                "eff_total_frequency",
                "eff_total_ifreq",
                "stages",
                "eff_stages",
            }
        )
