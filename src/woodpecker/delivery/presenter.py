"""
Presenters

The presenter shows the user-facing prompt; the engine only needs
present(callback) and a cooperative stop(). Rendering lives in the host.
"""

import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, Literal, Protocol, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PresentationResult:
    """Outcome of one prompt: a user rating or a timeout."""

    type: Literal["rate", "timeout"]
    value: Any = None

    @classmethod
    def rate(cls, value: Any) -> "PresentationResult":
        return cls("rate", value)

    @classmethod
    def timeout(cls) -> "PresentationResult":
        return cls("timeout")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PresentationResult":
        """Accept {"type": "rate", "value"|"rate": v} or {"type": "timeout"}."""
        kind = data.get("type")
        if kind == "rate":
            return cls.rate(data.get("value", data.get("rate")))
        if kind == "timeout":
            return cls.timeout()
        raise ValueError(f"Unknown presentation result type: {kind!r}")

    def to_dict(self) -> dict[str, Any]:
        if self.type == "rate":
            return {"type": "rate", "value": self.value}
        return {"type": "timeout"}


ResultCallback = Callable[[PresentationResult], None]


class Presenter(Protocol):
    """User-facing prompt collaborator."""

    def present(self, callback: ResultCallback) -> None: ...

    def stop(self) -> None: ...


class CallbackPresenter:
    """Presenter driven by the host application.

    present() hands the prompt to `on_present` (for UI integration) and
    keeps the callback until the host calls resolve(). stop() resolves an
    outstanding prompt as a timeout.
    """

    def __init__(self, on_present: Callable[[], None] | None = None):
        self._on_present = on_present
        self._pending: ResultCallback | None = None
        self.presented = 0

    @property
    def is_pending(self) -> bool:
        return self._pending is not None

    def present(self, callback: ResultCallback) -> None:
        if self._pending is not None:
            raise RuntimeError("A prompt is already outstanding")
        self._pending = callback
        self.presented += 1
        if self._on_present:
            self._on_present()

    def resolve(self, result: PresentationResult | dict[str, Any]) -> None:
        """Deliver the user's response (or a timeout) for the outstanding prompt."""
        if isinstance(result, dict):
            result = PresentationResult.from_dict(result)
        callback, self._pending = self._pending, None
        if callback is None:
            logger.warning("Presentation result with no outstanding prompt")
            return
        callback(result)

    def stop(self) -> None:
        if self._pending is not None:
            logger.info("Stopping outstanding prompt")
            self.resolve(PresentationResult.timeout())


class AutoPresenter:
    """Headless presenter that answers immediately.

    Used by simulations: each prompt times out with probability
    `timeout_rate`, otherwise it is rated with a value drawn from `ratings`.
    """

    def __init__(
        self,
        ratings: Sequence[Any] = (1, 2, 3, 4, 5),
        timeout_rate: float = 0.3,
        rng: random.Random | None = None,
    ):
        self.ratings = list(ratings)
        self.timeout_rate = timeout_rate
        self._rng = rng or random.Random()
        self.presented = 0

    def present(self, callback: ResultCallback) -> None:
        self.presented += 1
        if not self.ratings or self._rng.random() < self.timeout_rate:
            callback(PresentationResult.timeout())
        else:
            callback(PresentationResult.rate(self._rng.choice(self.ratings)))

    def stop(self) -> None:
        pass
