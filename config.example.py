"""
Woodpecker Configuration

Copy this file to config.py and adjust the values.
config.py is gitignored so local experiments stay local.
"""

# =============================================================================
# Experiment
# =============================================================================

EXPERIMENT_NAME = "woodpecker-moments"

# Stage lengths in ticks (one tick per second by default)
OBS1_LENGTH_TICK = 3 * 24 * 60 * 60          # Observation before intervention
INTERVENTION_LENGTH_TICK = 7 * 24 * 60 * 60  # Prompts may be delivered
OBS2_LENGTH_TICK = 4 * 24 * 60 * 60          # Observation after intervention

# Relative weights of the 12 delivery modes:
# easy/strict x random/in-context/interruptible x coefficient 1/2
DEFAULT_DELMODE_WEIGHTS = [1.0] * 12

# Hard stop regardless of ticks (milliseconds)
STUDY_LIFETIME_MS = 14 * 86400 * 1000

# =============================================================================
# Clock
# =============================================================================

TICK_INTERVAL = 1.0               # Seconds between ticks
SILENCE_LENGTH_TICK = 60 * 60     # Global cooldown after each delivery

# =============================================================================
# Moment Admission
# =============================================================================

NO_SILENCE = False                # End the cooldown as soon as the prompt is answered

# Presets chosen by the assigned mode's rate limit
RATE_LIMITS = {
    "easy": {"d_eff_frequency_i": 60 * 60, "min_eff_frequency_i": 30 * 60, "max_r_eff_count": 3},
    "strict": {"d_eff_frequency_i": 4 * 60 * 60, "min_eff_frequency_i": 2 * 60 * 60, "max_r_eff_count": 1},
}

# Recent deliveries decay once per window (0.0 resets the count)
RECENT_WINDOW_TICK = 60 * 60
RECENT_DECAY_FACTOR = 0.0

# Max delivery timestamps / rates kept per moment
HISTORY_LIMIT = 500

# =============================================================================
# Paths
# =============================================================================

DATA_DIR = "data"
