"""The 12 delivery modes and weighted random assignment."""

import random
from typing import Callable, Sequence

from woodpecker.contracts.experiment import DeliveryMode

MODES: list[DeliveryMode] = [
    DeliveryMode(rate_limit=rate_limit, moment=moment, coeff=coeff)
    for rate_limit in ("easy", "strict")
    for moment in ("random", "in-context", "interruptible")
    for coeff in (1, 2)
]


def weighted_random_int(
    weights: Sequence[float],
    rand: Callable[[], float] = random.random,
) -> int:
    """Pick an index with probability proportional to its weight.

    Raises:
        ValueError: weights are empty, negative or sum to zero
    """
    if not weights or any(w < 0 for w in weights):
        raise ValueError(f"Invalid weights: {list(weights)}")

    total = sum(weights)
    if total <= 0:
        raise ValueError("Weights must sum to a positive value")

    point = rand() * total
    cumulative = 0.0
    for index, weight in enumerate(weights):
        cumulative += weight
        if point < cumulative:
            return index

    # rand() close to 1.0 with float rounding; last index with weight
    return max(i for i, w in enumerate(weights) if w > 0)


def assign_mode(
    weights: Sequence[float],
    rand: Callable[[], float] = random.random,
) -> tuple[int, DeliveryMode]:
    """Choose a mode code and its mode."""
    if len(weights) != len(MODES):
        raise ValueError(f"Expected {len(MODES)} weights, got {len(weights)}")
    code = weighted_random_int(weights, rand)
    return code, MODES[code]
