"""Tests for debug console commands."""

import json

from woodpecker.clock.clock import TickClock
from woodpecker.config import Config
from woodpecker.contracts.experiment import Stage
from woodpecker.debug.commands import COMMANDS, handle_command
from woodpecker.delivery.presenter import AutoPresenter
from woodpecker.engine import NudgeEngine
from woodpecker.store.kv import MemoryKeyValueStore


def make_engine() -> NudgeEngine:
    config = Config(
        load_user_config=False,
        OBS1_LENGTH_TICK=10,
        INTERVENTION_LENGTH_TICK=5,
        OBS2_LENGTH_TICK=5,
        EXPERIMENT_NAME="debug-test",
    )
    engine = NudgeEngine(
        config,
        MemoryKeyValueStore(),
        TickClock(silence_length=3),
        AutoPresenter(ratings=[4], timeout_rate=0.0),
        rand=lambda: 0.0,
    )
    engine.start()
    return engine


class TestHandleCommand:
    def test_registry(self):
        assert {"moment", "delmode", "stage", "stats", "experiment"} <= set(COMMANDS)

    def test_unknown_command(self):
        assert handle_command(make_engine(), "launch rockets") is None

    def test_empty_line(self):
        assert handle_command(make_engine(), "   ") is None

    def test_after_self_destruct(self):
        engine = make_engine()
        engine.force_stage("end")
        assert engine.terminated

        assert handle_command(engine, "moment s") == "engine has self-destructed."
        assert handle_command(engine, "stage force obs1") == "engine has self-destructed."


class TestMomentCommand:
    def test_rejected_in_observation(self):
        engine = make_engine()
        assert handle_command(engine, "moment s") == "s triggered (rejected: observation_only)."
        assert engine.stats.get("startup").count == 1

    def test_force(self):
        engine = make_engine()
        assert handle_command(engine, "moment startup -force") == "startup triggered (delivered)."
        assert engine.stats.get("startup").eff_count == 1
        assert engine.stats.get("startup").rates == [4]

    def test_unknown_moment(self):
        assert handle_command(make_engine(), "moment bogus") == "moment 'bogus' does not exist."

    def test_missing_name(self):
        assert handle_command(make_engine(), "moment") == "error: incorrect use of moment command."


class TestDelmodeCommand:
    def test_observation_only_off_and_on(self):
        engine = make_engine()

        assert handle_command(engine, "delmode observ_only false") == "observ_only mode is now off"
        assert not engine.policy.observation_only

        assert handle_command(engine, "delmode observ_only true") == "observ_only mode is now on"
        assert engine.policy.observation_only

    def test_incorrect_use(self):
        engine = make_engine()
        assert handle_command(engine, "delmode") == "error: incorrect use of delmode command."
        assert handle_command(engine, "delmode turbo on") == "error: incorrect use of delmode command."
        assert (
            handle_command(engine, "delmode observ_only maybe")
            == "error: incorrect use of delmode observ_only command."
        )
        assert engine.policy.observation_only


class TestStageCommand:
    def test_force_and_release(self):
        engine = make_engine()

        assert (
            handle_command(engine, "stage force intervention")
            == "warning: experiment stage forced to intervention"
        )
        assert engine.experiment.stage is Stage.INTERVENTION
        assert handle_command(engine, "stage force none") == "back to normal stage determination"

    def test_unknown_stage(self):
        engine = make_engine()
        assert handle_command(engine, "stage force bogus") == "error: no such stage exists."
        assert engine.experiment.stage is Stage.OBS1

    def test_incorrect_use(self):
        engine = make_engine()
        assert handle_command(engine, "stage") == "error: incorrect use of stage command."
        assert handle_command(engine, "stage set obs2") == "error: incorrect use of stage command."


class TestStatsCommand:
    def test_no_data(self):
        assert handle_command(make_engine(), "stats") == "no moment data yet."

    def test_summary(self):
        engine = make_engine()
        handle_command(engine, "moment s")

        lines = handle_command(engine, "stats").splitlines()
        assert "startup: count=1 effCount=0" in lines
        assert "*: count=1 effCount=0" in lines

    def test_single_record(self):
        engine = make_engine()
        handle_command(engine, "moment wo")

        data = json.loads(handle_command(engine, "stats wo"))
        assert data["count"] == 1
        assert data["eff_count"] == 0

    def test_unrecorded_moment(self):
        assert handle_command(make_engine(), "stats tab-new") == "no moment data for tab-new."

    def test_unknown_moment(self):
        assert handle_command(make_engine(), "stats bogus") == "moment 'bogus' does not exist."


class TestExperimentCommand:
    def test_experiment_info(self):
        engine = make_engine()
        data = json.loads(handle_command(engine, "experiment"))

        assert data["name"] == "debug-test"
        assert data["stage"] == "obs1"
        assert data["nextStage"] == "intervention"
        assert data["timeUntilNextStage"] == 10
