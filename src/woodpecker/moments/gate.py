"""
Admission Gate

Decides whether a moment occurrence is delivered. decide() is a pure
function of its arguments: it never touches the statistics store, the clock
or the policy holder, so it can be called repeatedly for a dry run.
"""

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from woodpecker.contracts.experiment import Policy
from woodpecker.contracts.moments import MomentRecord

logger = logging.getLogger(__name__)


class Reason(str, Enum):
    """Why a decision came out the way it did."""

    ADMITTED = "admitted"
    FORCED = "forced"
    REJECTED_BY_SOURCE = "rejected_by_source"
    OBSERVATION_ONLY = "observation_only"
    SILENCE = "silence"
    EFF_FREQUENCY = "eff_frequency"
    RECENT_COUNT = "recent_count"
    SAMPLING = "sampling"


@dataclass(frozen=True)
class MomentOptions:
    """Per-call options supplied by the signal source."""

    reject: bool = False
    force: bool = False


@dataclass(frozen=True)
class AdmissionDecision:
    """Result of decide(). Rejection is a normal outcome, not an error."""

    admit: bool
    reason: Reason
    probability: float = 1.0

    def __bool__(self) -> bool:
        return self.admit


def sampling_probability(frequency: float, policy: Policy) -> float:
    """Admission probability for probabilistic thinning.

    p = min(1, target / frequency): the faster the raw signal fires relative
    to the target delivery rate, the lower the chance of admission.
    """
    target = policy.target_frequency
    if frequency <= target:
        return 1.0
    return target / frequency


def decide(
    record: MomentRecord,
    policy: Policy,
    silent: bool,
    options: MomentOptions | None = None,
    rand: Callable[[], float] = random.random,
) -> AdmissionDecision:
    """Evaluate one occurrence against current statistics and policy.

    Causes are checked in order and the first one wins; options.force
    overrides every cause.

    Args:
        record: Statistics of the named moment (after counting this occurrence)
        policy: Current delivery policy
        silent: Global cooldown active or a presentation outstanding
        options: Source-supplied reject/force flags
        rand: Uniform [0, 1) source, injectable for tests

    Returns:
        AdmissionDecision
    """
    options = options or MomentOptions()
    probability = sampling_probability(record.frequency, policy)

    reason: Reason | None = None
    if options.reject:
        reason = Reason.REJECTED_BY_SOURCE
    elif policy.observation_only:
        reason = Reason.OBSERVATION_ONLY
    elif silent:
        reason = Reason.SILENCE
    elif record.eff_frequency and 1 / record.eff_frequency < policy.min_eff_frequency_i:
        reason = Reason.EFF_FREQUENCY
    elif record.r_eff_count > policy.max_r_eff_count:
        reason = Reason.RECENT_COUNT
    elif rand() > probability:
        reason = Reason.SAMPLING

    if options.force:
        if reason is not None:
            logger.debug(f"Delivery forced over {reason.value}")
        return AdmissionDecision(True, Reason.FORCED, probability)

    if reason is not None:
        logger.debug(f"Delivery rejected due to: {reason.value} (prob = {probability:.3f})")
        return AdmissionDecision(False, reason, probability)

    return AdmissionDecision(True, Reason.ADMITTED, probability)
