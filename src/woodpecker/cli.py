"""Command-line interface for Woodpecker."""

import argparse
import asyncio
import logging
import random
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from woodpecker.clock import TickClock, Ticker
from woodpecker.config import Config, get_config
from woodpecker.debug import handle_command
from woodpecker.delivery import AutoPresenter
from woodpecker.engine import NudgeEngine
from woodpecker.moments.signals import SIGNALS
from woodpecker.store import (
    ALL_ADDRESSES,
    EXPERIMENT_DATA_ADDRESS,
    EventLogWriter,
    KeyValueStore,
    MemoryKeyValueStore,
    SQLiteKeyValueStore,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

console = Console()


def _kv(config: Config) -> SQLiteKeyValueStore:
    return SQLiteKeyValueStore(Path(config.DATA_DIR) / "woodpecker.db")


def _event_log(config: Config) -> EventLogWriter:
    return EventLogWriter(Path(config.DATA_DIR) / "events.db")


def _build_engine(
    config: Config,
    kv: KeyValueStore,
    event_log: EventLogWriter | None = None,
    seed: int | None = None,
) -> NudgeEngine:
    rng = random.Random(seed)
    clock = TickClock(silence_length=config.SILENCE_LENGTH_TICK)
    return NudgeEngine(
        config,
        kv,
        clock,
        AutoPresenter(rng=rng),
        event_log=event_log,
        on_self_destruct=lambda reason: console.print(f"[red]Engine self-destructed ({reason})[/red]"),
        rand=rng.random,
    )


def render_status(engine: NudgeEngine) -> Table:
    """Rich table of engine, experiment and moment state."""
    status = engine.status()

    table = Table(title="Woodpecker", box=None, padding=(0, 1))
    table.add_column("Key", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("et / ett", f"{status['et']} / {status['ett']}")
    table.add_row("silent", str(status["silent"]))
    table.add_row("presenting", str(status["presenting"]))

    experiment = status["experiment"]
    if experiment:
        table.add_row("stage", experiment["stage"])
        table.add_row("next stage", str(experiment["nextStage"]))
        table.add_row("stage forced", str(experiment["stageForced"]))
        table.add_row("ticks to next stage", str(experiment["timeUntilNextStage"]))
        mode = experiment["mode"]
        table.add_row("mode", f"{mode['rate_limit']} / {mode['moment']} / x{mode['coeff']}")
        table.add_row("observation only", str(experiment["policy"]["observation_only"]))

    return table


def render_moments(engine: NudgeEngine) -> Table:
    """Rich table of per-moment counters."""
    table = Table(title="Moments", box=None, padding=(0, 1))
    table.add_column("Moment", style="cyan")
    table.add_column("count", justify="right")
    table.add_column("effCount", justify="right")
    table.add_column("freq", justify="right")
    table.add_column("rates", justify="right")

    for name in sorted(engine.stats.names()):
        record = engine.stats.get(name)
        rated = [r for r in record.rates if r != "timeout"]
        table.add_row(
            name,
            str(record.count),
            str(record.eff_count),
            f"{record.frequency:.4f}",
            f"{len(rated)} rated / {len(record.rates) - len(rated)} timeout",
        )

    return table


def cmd_status(args: argparse.Namespace) -> int:
    """Show persisted engine state."""
    config = get_config()
    kv = _kv(config)

    if kv.get(EXPERIMENT_DATA_ADDRESS) is None:
        console.print("No experiment has started in this data directory.")
        return 0

    engine = _build_engine(config, kv)
    engine.start()
    console.print(render_status(engine))
    console.print(render_moments(engine))
    return 0


def cmd_debug(args: argparse.Namespace) -> int:
    """Run one debug console command against persisted state."""
    config = get_config()
    engine = _build_engine(config, _kv(config), _event_log(config))
    engine.start()

    result = handle_command(engine, " ".join(args.line))
    if result is None:
        console.print(f"Unrecognized command: {' '.join(args.line)}")
        return 1

    console.print(result)
    return 0


def _fire_random_moments(
    engine: NudgeEngine, clock: TickClock, rng: random.Random, rate: float
) -> None:
    """Synthetic detectors: each signal fires with probability `rate` per tick."""
    if engine.terminated:
        return
    if rng.random() < 0.5:
        clock.record_activity()
    for spec in SIGNALS.values():
        if rng.random() < rate and spec.is_ready(clock):
            engine.moment(spec.kind, reject=spec.reject)


def cmd_simulate(args: argparse.Namespace) -> int:
    """Run a synthetic experiment with headless detectors and presenter."""
    config = Config(
        OBS1_LENGTH_TICK=args.obs1,
        INTERVENTION_LENGTH_TICK=args.intervention,
        OBS2_LENGTH_TICK=args.obs2,
        SILENCE_LENGTH_TICK=args.silence,
        RECENT_WINDOW_TICK=max(1, args.silence),
    )
    errors = config.validate()
    if errors:
        for error in errors:
            console.print(f"[red]config error:[/red] {error}")
        return 1

    rng = random.Random(args.seed)
    kv = MemoryKeyValueStore()
    engine = _build_engine(config, kv, seed=args.seed)
    clock = engine.clock
    engine.start()

    if args.realtime:
        ticker = Ticker(clock, tick_interval=args.tick_interval or config.TICK_INTERVAL)
        clock.on_tick(lambda et, ett: _fire_random_moments(engine, clock, rng, args.rate))

        async def run() -> None:
            await ticker.start()
            try:
                while not engine.terminated and clock.elapsed_total_ticks() < args.ticks:
                    await asyncio.sleep(ticker.tick_interval)
            finally:
                await ticker.stop()

        asyncio.run(run())
    else:
        for _ in range(args.ticks):
            if engine.terminated:
                break
            clock.advance()
            _fire_random_moments(engine, clock, rng, args.rate)

    console.print(render_status(engine))
    console.print(render_moments(engine))
    return 0


def cmd_reset(args: argparse.Namespace) -> int:
    """Delete persisted engine state."""
    config = get_config()

    if not args.yes:
        confirm = input("This will delete ALL experiment data. Continue? [y/N] ")
        if confirm.lower() != "y":
            console.print("Cancelled")
            return 0

    kv = _kv(config)
    for address in ALL_ADDRESSES:
        kv.delete(address)
    logger.info(f"Cleared experiment data in {config.DATA_DIR}")
    console.print("Cleared all experiment data")
    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="woodpecker",
        description="Woodpecker - moment admission engine for nudge experiments",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.3.0",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # woodpecker status
    subparsers.add_parser("status", help="Show persisted engine state")

    # woodpecker cmd <line...>
    debug_parser = subparsers.add_parser("cmd", help="Run a debug console command")
    debug_parser.add_argument("line", nargs="+", help="Command line, e.g. stage force none")

    # woodpecker simulate
    sim_parser = subparsers.add_parser("simulate", help="Run a synthetic experiment")
    sim_parser.add_argument("--ticks", type=int, default=400, help="Ticks to run (default: 400)")
    sim_parser.add_argument("--rate", type=float, default=0.05, help="Per-signal fire probability per tick")
    sim_parser.add_argument("--obs1", type=int, default=100, help="obs1 length in ticks")
    sim_parser.add_argument("--intervention", type=int, default=200, help="intervention length in ticks")
    sim_parser.add_argument("--obs2", type=int, default=80, help="obs2 length in ticks")
    sim_parser.add_argument("--silence", type=int, default=10, help="Silence length in ticks")
    sim_parser.add_argument("--seed", type=int, default=None, help="Random seed")
    sim_parser.add_argument("--realtime", action="store_true", help="Drive ticks with the asyncio ticker")
    sim_parser.add_argument("--tick-interval", type=float, default=None, help="Seconds per tick in realtime mode (default: TICK_INTERVAL)")

    # woodpecker reset
    reset_parser = subparsers.add_parser("reset", help="Delete persisted experiment data")
    reset_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    commands = {
        "status": cmd_status,
        "cmd": cmd_debug,
        "simulate": cmd_simulate,
        "reset": cmd_reset,
    }

    if args.command is None:
        parser.print_help()
        return 0

    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
