"""Signal registry - the fixed set of moments detectors may report.

Unknown names fail immediately with UnknownSignalError instead of silently
creating a record.
"""

from dataclasses import dataclass
from enum import Enum

from woodpecker.clock.clock import Clock
from woodpecker.exceptions import UnknownSignalError


class SignalKind(str, Enum):
    """All moments known to the engine."""

    STARTUP = "startup"
    TAB_NEW = "tab-new"
    ACTIVE_TAB_HOSTNAME_PROGRESS = "active-tab-hostname-progress"
    WINDOW_OPEN = "window-open"
    TAB_NEW_RECENTLY_ACTIVE_0S = "tab-new-recently-active0s"
    TAB_NEW_RECENTLY_ACTIVE_5S = "tab-new-recently-active5s"
    TAB_NEW_RECENTLY_ACTIVE_5S_NO_TAB = "tab-new-recently-active5s-no-tab"
    TAB_NEW_RECENTLY_ACTIVE_10S = "tab-new-recently-active10s"
    TAB_NEW_RECENTLY_ACTIVE_10S_NO_TAB = "tab-new-recently-active10s-no-tab"
    TAB_NEW_RECENTLY_ACTIVE_10M = "tab-new-recently-active10m"
    TAB_NEW_RECENTLY_ACTIVE_10M_NO_TAB = "tab-new-recently-active10m-no-tab"
    TAB_NEW_RECENTLY_ACTIVE_20M = "tab-new-recently-active20m"
    TAB_NEW_RECENTLY_ACTIVE_20M_NO_TAB = "tab-new-recently-active20m-no-tab"
    TAB_NEW_RECENTLY_ACTIVE_30M = "tab-new-recently-active30m"
    TAB_NEW_RECENTLY_ACTIVE_30M_NO_TAB = "tab-new-recently-active30m-no-tab"


@dataclass(frozen=True)
class SignalSpec:
    """How a detector reports a signal.

    reject: the detector pre-vetoes delivery (statistics only).
    activity: (window, lookback) ticks the user must have been active in
        before the signal counts; None means no activity requirement.
    """

    kind: SignalKind
    trigger: str
    reject: bool = False
    activity: tuple[int, int] | None = None

    def is_ready(self, clock: Clock) -> bool:
        if self.activity is None:
            return True
        window, lookback = self.activity
        return clock.is_recently_active(window, lookback)


_TAB = "new tab command"
_ACTIVITY = "user activity"

SIGNALS: dict[SignalKind, SignalSpec] = {
    spec.kind: spec
    for spec in [
        SignalSpec(SignalKind.STARTUP, "engine start"),
        SignalSpec(SignalKind.TAB_NEW, _TAB, reject=True),
        SignalSpec(SignalKind.ACTIVE_TAB_HOSTNAME_PROGRESS, "active tab navigated to a new host"),
        SignalSpec(SignalKind.WINDOW_OPEN, "new window command"),
        SignalSpec(SignalKind.TAB_NEW_RECENTLY_ACTIVE_0S, _TAB, reject=True, activity=(5, 0)),
        SignalSpec(SignalKind.TAB_NEW_RECENTLY_ACTIVE_5S, _TAB, reject=True, activity=(5, 5)),
        SignalSpec(SignalKind.TAB_NEW_RECENTLY_ACTIVE_5S_NO_TAB, _ACTIVITY, reject=True, activity=(5, 5)),
        SignalSpec(SignalKind.TAB_NEW_RECENTLY_ACTIVE_10S, _TAB, activity=(5, 10)),
        SignalSpec(SignalKind.TAB_NEW_RECENTLY_ACTIVE_10S_NO_TAB, _ACTIVITY, reject=True, activity=(10, 10)),
        SignalSpec(SignalKind.TAB_NEW_RECENTLY_ACTIVE_10M, _TAB, reject=True, activity=(10, 10 * 60)),
        SignalSpec(SignalKind.TAB_NEW_RECENTLY_ACTIVE_10M_NO_TAB, _ACTIVITY, reject=True, activity=(10, 10 * 60)),
        SignalSpec(SignalKind.TAB_NEW_RECENTLY_ACTIVE_20M, _TAB, reject=True, activity=(10, 20 * 60)),
        SignalSpec(SignalKind.TAB_NEW_RECENTLY_ACTIVE_20M_NO_TAB, _ACTIVITY, activity=(10, 20 * 60)),
        SignalSpec(SignalKind.TAB_NEW_RECENTLY_ACTIVE_30M, _TAB, reject=True, activity=(10, 30 * 60)),
        SignalSpec(SignalKind.TAB_NEW_RECENTLY_ACTIVE_30M_NO_TAB, _ACTIVITY, reject=True, activity=(10, 30 * 60)),
    ]
}

# Short names accepted by the debug console
ALIASES: dict[str, SignalKind] = {
    "s": SignalKind.STARTUP,
    "athp": SignalKind.ACTIVE_TAB_HOSTNAME_PROGRESS,
    "tnra10s": SignalKind.TAB_NEW_RECENTLY_ACTIVE_10S,
    "tnra10m": SignalKind.TAB_NEW_RECENTLY_ACTIVE_10M,
    "wo": SignalKind.WINDOW_OPEN,
}


def resolve(name: "str | SignalKind") -> SignalKind:
    """Resolve a signal name or alias.

    Raises:
        UnknownSignalError: name is neither a registered signal nor an alias
    """
    if isinstance(name, SignalKind):
        return name
    if name in ALIASES:
        return ALIASES[name]
    try:
        return SignalKind(name)
    except ValueError:
        raise UnknownSignalError(name) from None


def get_spec(name: "str | SignalKind") -> SignalSpec:
    return SIGNALS[resolve(name)]
