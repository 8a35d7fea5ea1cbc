"""Debug console commands.

Line-oriented protocol: `<name> <params>`. Each handler returns a status
string; handle_command() returns None for commands nobody registered.
"""

import json
import re
from typing import TYPE_CHECKING, Callable

from woodpecker.exceptions import EngineTerminatedError, UnknownSignalError
from woodpecker.moments.signals import resolve

if TYPE_CHECKING:
    from woodpecker.engine import NudgeEngine

# Type alias for command handlers
CommandHandler = Callable[["NudgeEngine", str], str]

# Command registry
COMMANDS: dict[str, CommandHandler] = {}

_PATTERN = re.compile(r"([^ ]*) *(.*)")


def command(name: str):
    """Decorator to register a debug command."""

    def decorator(func: CommandHandler) -> CommandHandler:
        COMMANDS[name] = func
        return func

    return decorator


def handle_command(engine: "NudgeEngine", line: str) -> str | None:
    """Run one command line against the engine.

    Returns:
        Status string, or None if the command is not recognized
    """
    match = _PATTERN.match(line.strip())
    if not match or not match.group(1):
        return None

    handler = COMMANDS.get(match.group(1))
    if handler is None:
        return None

    try:
        return handler(engine, match.group(2).strip())
    except EngineTerminatedError:
        return "engine has self-destructed."


@command("moment")
def cmd_moment(engine: "NudgeEngine", args: str) -> str:
    """Fire a moment: moment <name> [-force]"""
    sub_args = args.split()
    if not sub_args:
        return "error: incorrect use of moment command."

    name = sub_args[0]
    force = len(sub_args) > 1 and sub_args[1] == "-force"

    try:
        kind = resolve(name)
    except UnknownSignalError:
        return f"moment '{name}' does not exist."

    decision = engine.moment(kind, force=force)
    outcome = "delivered" if decision.admit else f"rejected: {decision.reason.value}"
    return f"{name} triggered ({outcome})."


@command("delmode")
def cmd_delmode(engine: "NudgeEngine", args: str) -> str:
    """Set delivery mode flags: delmode observ_only <true|false>"""
    sub_args = args.split()
    if not sub_args:
        return "error: incorrect use of delmode command."

    if sub_args[0] != "observ_only":
        return "error: incorrect use of delmode command."

    if len(sub_args) < 2 or sub_args[1] not in ("true", "false"):
        return "error: incorrect use of delmode observ_only command."

    observation_only = sub_args[1] == "true"
    engine.set_observation_only(observation_only)
    return f"observ_only mode is now {'on' if observation_only else 'off'}"


@command("stage")
def cmd_stage(engine: "NudgeEngine", args: str) -> str:
    """Force the experiment stage: stage force <stage|none>"""
    sub_args = args.split()
    if len(sub_args) < 2 or sub_args[0] != "force":
        return "error: incorrect use of stage command."
    return engine.force_stage(sub_args[1])


@command("stats")
def cmd_stats(engine: "NudgeEngine", args: str) -> str:
    """Show moment statistics: stats [name]"""
    name = args.strip()

    if not name:
        names = engine.stats.names()
        if not names:
            return "no moment data yet."
        lines = []
        for moment in sorted(names):
            record = engine.stats.get(moment)
            lines.append(f"{moment}: count={record.count} effCount={record.eff_count}")
        return "\n".join(lines)

    if name != "*":
        try:
            name = resolve(name).value
        except UnknownSignalError:
            return f"moment '{name}' does not exist."

    record = engine.stats.get(name)
    if record is None:
        return f"no moment data for {name}."
    return json.dumps(record.model_dump(mode="json"), indent=2)


@command("experiment")
def cmd_experiment(engine: "NudgeEngine", args: str) -> str:
    """Show experiment info and stage status."""
    experiment = engine.experiment
    info = experiment.info()
    info.update(experiment.status(engine.clock.elapsed_total_ticks()))
    return json.dumps(info, indent=2)
