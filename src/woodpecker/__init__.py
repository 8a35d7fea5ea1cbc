"""Woodpecker - moment admission engine for behavioral nudge experiments."""

from woodpecker.engine import NudgeEngine

__version__ = "0.3.0"

__all__ = ["NudgeEngine", "__version__"]
