"""Tick schedule of the experiment stages."""

from woodpecker.contracts.experiment import Stage


def stage_for_tick(ett: int, lengths: tuple[int, int, int]) -> Stage:
    """Stage that should be active at `ett` elapsed total ticks.

    Args:
        ett: Elapsed total ticks
        lengths: Tick lengths of obs1, intervention and obs2
    """
    obs1, intervention, obs2 = lengths
    if ett < obs1:
        return Stage.OBS1
    if ett < obs1 + intervention:
        return Stage.INTERVENTION
    if ett < obs1 + intervention + obs2:
        return Stage.OBS2
    return Stage.END


def stage_end_tick(stage: Stage, lengths: tuple[int, int, int]) -> int:
    """First tick after `stage` ends."""
    obs1, intervention, obs2 = lengths
    return {
        Stage.OBS1: obs1,
        Stage.INTERVENTION: obs1 + intervention,
        Stage.OBS2: obs1 + intervention + obs2,
        Stage.END: obs1 + intervention + obs2,
    }[stage]


def time_until_next_stage(stage: Stage, ett: int, lengths: tuple[int, int, int]) -> int:
    """Ticks left in `stage`; 0 once the experiment has ended."""
    if stage is Stage.END:
        return 0
    return stage_end_tick(stage, lengths) - ett
