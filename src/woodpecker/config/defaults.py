"""Default configuration values for Woodpecker."""

from typing import Literal

# Experiment
EXPERIMENT_NAME: str = "woodpecker-moments"
OBS1_LENGTH_TICK: int = 3 * 24 * 60 * 60
INTERVENTION_LENGTH_TICK: int = 7 * 24 * 60 * 60
OBS2_LENGTH_TICK: int = 4 * 24 * 60 * 60

# Weights for the 12 delivery modes, indexed like experiment.modes.MODES
DEFAULT_DELMODE_WEIGHTS: list[float] = [1.0] * 12

# Hard backstop on the study length (14 days)
STUDY_LIFETIME_MS: int = 14 * 86400 * 1000

# Clock
TICK_INTERVAL: float = 1.0
SILENCE_LENGTH_TICK: int = 60 * 60

# Moment admission
NO_SILENCE: bool = False

# Gate presets selected by the assigned mode's rate limit
RATE_LIMITS: dict[Literal["easy", "strict"], dict[str, float]] = {
    "easy": {
        "d_eff_frequency_i": 60 * 60,
        "min_eff_frequency_i": 30 * 60,
        "max_r_eff_count": 3,
    },
    "strict": {
        "d_eff_frequency_i": 4 * 60 * 60,
        "min_eff_frequency_i": 2 * 60 * 60,
        "max_r_eff_count": 1,
    },
}

# Recent effective count decay
RECENT_WINDOW_TICK: int = 60 * 60
RECENT_DECAY_FACTOR: float = 0.0

# Cap on per-moment timestamps/rates history
HISTORY_LIMIT: int = 500

# Paths
DATA_DIR: str = "data"

# All configurable keys (for validation)
CONFIG_KEYS = {
    "EXPERIMENT_NAME",
    "OBS1_LENGTH_TICK",
    "INTERVENTION_LENGTH_TICK",
    "OBS2_LENGTH_TICK",
    "DEFAULT_DELMODE_WEIGHTS",
    "STUDY_LIFETIME_MS",
    "TICK_INTERVAL",
    "SILENCE_LENGTH_TICK",
    "NO_SILENCE",
    "RATE_LIMITS",
    "RECENT_WINDOW_TICK",
    "RECENT_DECAY_FACTOR",
    "HISTORY_LIMIT",
    "DATA_DIR",
}
