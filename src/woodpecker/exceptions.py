"""Exceptions raised across component boundaries.

Admission rejections are not exceptions; see moments.gate.AdmissionDecision.
"""


class WoodpeckerError(Exception):
    """Base class for engine errors."""


class UnknownSignalError(WoodpeckerError, KeyError):
    """A moment name that is not in the signal registry."""


class PersistenceError(WoodpeckerError):
    """A read or write against the key-value store failed."""


class EngineTerminatedError(WoodpeckerError):
    """The engine already self-destructed."""
