"""
Experiment

Provides:
- MODES: The 12 delivery modes (experiment arms)
- ExperimentController: Stage lifecycle and delivery policy owner
- stage_for_tick: Pure stage schedule
"""

from woodpecker.experiment.controller import ExperimentController
from woodpecker.experiment.modes import MODES, assign_mode, weighted_random_int
from woodpecker.experiment.schedule import stage_for_tick, time_until_next_stage

__all__ = [
    "MODES",
    "ExperimentController",
    "assign_mode",
    "stage_for_tick",
    "time_until_next_stage",
    "weighted_random_int",
]
