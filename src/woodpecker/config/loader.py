"""Configuration loader for Woodpecker.

Loads config.py from the project root, falling back to defaults.
"""

import copy
import importlib.util
import sys
from pathlib import Path
from types import ModuleType
from typing import Any

from . import defaults

STAGE_LENGTH_KEYS = (
    "OBS1_LENGTH_TICK",
    "INTERVENTION_LENGTH_TICK",
    "OBS2_LENGTH_TICK",
)


class Config:
    """Configuration object with attribute access."""

    def __init__(self, load_user_config: bool = True, **overrides: Any) -> None:
        # Start with defaults
        for key in defaults.CONFIG_KEYS:
            setattr(self, key, copy.deepcopy(getattr(defaults, key)))

        if load_user_config:
            self._load_user_config()

        # Explicit overrides win over config.py (used by tests and the CLI)
        for key, value in overrides.items():
            if key not in defaults.CONFIG_KEYS:
                raise KeyError(f"Unknown config key: {key}")
            setattr(self, key, value)

    def _load_user_config(self) -> None:
        """Load config.py from project root."""
        config_path = self._find_config_file()

        if config_path is None:
            return

        user_config = self._load_module_from_path(config_path)

        # Override defaults with user values
        for key in defaults.CONFIG_KEYS:
            if hasattr(user_config, key):
                setattr(self, key, getattr(user_config, key))

    def _find_config_file(self) -> Path | None:
        """Find config.py in current dir or parents."""
        current = Path.cwd()
        search_paths = [current]

        # Walk up from cwd
        while current != current.parent:
            current = current.parent
            search_paths.append(current)

        for path in search_paths:
            config_path = path / "config.py"
            if config_path.exists():
                return config_path

        return None

    def _load_module_from_path(self, path: Path) -> ModuleType:
        """Load a Python module from a file path."""
        spec = importlib.util.spec_from_file_location("woodpecker_user_config", path)
        if spec is None or spec.loader is None:
            raise RuntimeError(f"Could not load config from {path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules["woodpecker_user_config"] = module
        spec.loader.exec_module(module)
        return module

    def get(self, key: str, default: Any = None) -> Any:
        """Get config value with optional default."""
        return getattr(self, key, default)

    @property
    def stage_lengths(self) -> tuple[int, int, int]:
        """Tick lengths of obs1, intervention and obs2."""
        return (
            self.OBS1_LENGTH_TICK,
            self.INTERVENTION_LENGTH_TICK,
            self.OBS2_LENGTH_TICK,
        )

    def rate_limit_preset(self, rate_limit: str) -> dict[str, float]:
        """Gate parameters for a rate-limit strictness.

        Raises:
            KeyError: no preset named `rate_limit` in RATE_LIMITS
        """
        return dict(self.RATE_LIMITS[rate_limit])

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        for key in STAGE_LENGTH_KEYS:
            value = getattr(self, key)
            if not isinstance(value, int) or value < 0:
                errors.append(f"{key} must be a non-negative int")

        weights = self.DEFAULT_DELMODE_WEIGHTS
        if not isinstance(weights, (list, tuple)) or len(weights) != 12:
            errors.append("DEFAULT_DELMODE_WEIGHTS must list 12 weights")
        elif any(w < 0 for w in weights) or sum(weights) <= 0:
            errors.append("DEFAULT_DELMODE_WEIGHTS must be non-negative with a positive sum")

        if not 0.0 <= self.RECENT_DECAY_FACTOR < 1.0:
            errors.append("RECENT_DECAY_FACTOR must be in [0, 1)")

        if self.RECENT_WINDOW_TICK <= 0:
            errors.append("RECENT_WINDOW_TICK must be positive")

        if self.HISTORY_LIMIT <= 0:
            errors.append("HISTORY_LIMIT must be positive")

        for name in ("easy", "strict"):
            preset = self.RATE_LIMITS.get(name)
            if preset is None:
                errors.append(f"RATE_LIMITS missing '{name}' preset")
            elif preset.get("d_eff_frequency_i", 0) <= 0:
                errors.append(f"RATE_LIMITS['{name}'] d_eff_frequency_i must be positive")

        return errors

    def __repr__(self) -> str:
        return f"<Config experiment={self.EXPERIMENT_NAME!r} data_dir={self.DATA_DIR!r}>"


# Global config instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reload_config() -> Config:
    """Reload configuration from disk."""
    global _config
    _config = Config()
    return _config
