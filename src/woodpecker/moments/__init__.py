"""
Moment admission

Provides:
- SignalKind: The fixed registry of moments detectors may report
- MomentStatsStore: Per-signal and aggregate occurrence statistics
- decide: Pure admission gate over statistics and policy
"""

from woodpecker.moments.gate import (
    AdmissionDecision,
    MomentOptions,
    Reason,
    decide,
    sampling_probability,
)
from woodpecker.moments.signals import ALIASES, SIGNALS, SignalKind, SignalSpec, resolve
from woodpecker.moments.stats import MomentStatsStore

__all__ = [
    "ALIASES",
    "SIGNALS",
    "AdmissionDecision",
    "MomentOptions",
    "MomentStatsStore",
    "Reason",
    "SignalKind",
    "SignalSpec",
    "decide",
    "resolve",
    "sampling_probability",
]
