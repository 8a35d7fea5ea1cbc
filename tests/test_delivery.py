"""Tests for delivery module."""

import random
import threading

import pytest

from woodpecker.clock.clock import TickClock
from woodpecker.contracts.events import EventKind
from woodpecker.contracts.experiment import Policy
from woodpecker.contracts.moments import TIMEOUT
from woodpecker.delivery.coordinator import DeliveryCoordinator
from woodpecker.delivery.presenter import (
    AutoPresenter,
    CallbackPresenter,
    PresentationResult,
)
from woodpecker.moments.stats import MomentStatsStore
from woodpecker.store.kv import MOMENT_DATA_ADDRESS, MemoryKeyValueStore


class FailingPresenter:
    """Presenter whose UI cannot be shown."""

    def present(self, callback):
        raise RuntimeError("no window")

    def stop(self):
        pass


class DeferredPresenter:
    """Presenter whose stop() only records the request; the answer comes later."""

    def __init__(self):
        self.callback = None
        self.stops = 0

    def present(self, callback):
        self.callback = callback

    def stop(self):
        self.stops += 1


class MockEvents:
    def __init__(self):
        self.events = []

    def __call__(self, kind, payload):
        self.events.append((kind, payload))


def make_delivery(presenter=None, no_silence=False, lock=None):
    kv = MemoryKeyValueStore()
    stats = MomentStatsStore(kv)
    clock = TickClock()
    clock.advance(5)
    stats.record_occurrence("startup", clock.elapsed_ticks(), clock.elapsed_total_ticks(), "intervention")

    presenter = presenter or CallbackPresenter()
    events = MockEvents()
    policy = Policy(observation_only=False, no_silence=no_silence)
    delivery = DeliveryCoordinator(
        stats,
        clock,
        presenter,
        policy=lambda: policy,
        stage=lambda: "intervention",
        on_event=events,
        lock=lock,
    )
    return delivery, stats, clock, presenter, events, kv


class TestDeliveryCoordinator:
    def test_deliver_records_and_silences(self):
        delivery, stats, clock, presenter, _, kv = make_delivery()

        delivery.deliver("startup")

        assert delivery.is_presenting
        assert presenter.is_pending
        assert clock.is_silent()
        assert clock.elapsed_ticks() == 0
        record = stats.get("startup")
        assert record.eff_count == 1
        assert len(record.timestamps) == 1
        assert kv.get(MOMENT_DATA_ADDRESS)["startup"]["eff_count"] == 1
        assert delivery.delivered == 1

    def test_rating_recorded(self):
        delivery, stats, clock, presenter, events, _ = make_delivery()
        delivery.deliver("startup")

        presenter.resolve(PresentationResult.rate(4))

        assert not delivery.is_presenting
        assert stats.get("startup").rates == [4]
        assert clock.is_silent()  # Silence outlives the prompt
        assert events.events == [
            (EventKind.MOMENT_DELIVERED, {"name": "startup", "type": "rate", "value": 4})
        ]

    def test_dict_result(self):
        delivery, stats, _, presenter, _, _ = make_delivery()
        delivery.deliver("startup")

        presenter.resolve({"type": "rate", "rate": 2})

        assert stats.get("startup").rates == [2]

    def test_no_silence_ends_cooldown_on_result(self):
        delivery, _, clock, presenter, _, _ = make_delivery(no_silence=True)
        delivery.deliver("startup")
        assert clock.is_silent()

        presenter.resolve(PresentationResult.timeout())
        assert not clock.is_silent()

    def test_second_delivery_while_outstanding_raises(self):
        delivery, stats, *_ = make_delivery()
        stats.record_occurrence("startup", 0, 5, "intervention")
        delivery.deliver("startup")

        with pytest.raises(RuntimeError):
            delivery.deliver("startup")
        assert stats.get("startup").eff_count == 1

    def test_stop_records_timeout(self):
        delivery, stats, _, presenter, _, _ = make_delivery()
        delivery.deliver("startup")

        delivery.stop()

        assert not delivery.is_presenting
        assert stats.get("startup").rates == [TIMEOUT]
        assert delivery.completed == 1

    def test_shared_lock(self):
        lock = threading.RLock()
        delivery, *_ = make_delivery(lock=lock)

        assert delivery._lock is lock

    def test_result_after_close_is_dropped(self):
        presenter = DeferredPresenter()
        delivery, stats, _, _, events, kv = make_delivery(presenter=presenter)
        delivery.deliver("startup")

        delivery.close()
        assert presenter.stops == 1
        assert delivery.is_presenting  # Presenter has not answered yet

        presenter.callback(PresentationResult.timeout())

        assert delivery.is_closed
        assert not delivery.is_presenting
        assert stats.get("startup").rates == []
        assert kv.get(MOMENT_DATA_ADDRESS)["startup"]["rates"] == []
        assert events.events == []
        assert delivery.completed == 0

    def test_deliver_after_close_raises(self):
        delivery, stats, *_ = make_delivery()
        delivery.close()

        with pytest.raises(RuntimeError):
            delivery.deliver("startup")
        assert stats.get("startup").eff_count == 0

    def test_stop_without_prompt_is_noop(self):
        delivery, stats, *_ = make_delivery()
        delivery.stop()
        assert stats.get("startup").rates == []

    def test_presenter_failure_rolls_back(self):
        delivery, stats, clock, *_ = make_delivery(presenter=FailingPresenter())

        with pytest.raises(RuntimeError):
            delivery.deliver("startup")

        assert not delivery.is_presenting
        assert not clock.is_silent()
        assert stats.get("startup").eff_count == 0

    def test_auto_presenter_rating(self):
        presenter = AutoPresenter(ratings=[3], timeout_rate=0.0)
        delivery, stats, *_ = make_delivery(presenter=presenter)

        delivery.deliver("startup")

        assert not delivery.is_presenting
        assert stats.get("startup").rates == [3]
        assert stats.get("startup").eff_count == 1

    def test_auto_presenter_timeout(self):
        presenter = AutoPresenter(timeout_rate=1.0, rng=random.Random(0))
        delivery, stats, *_ = make_delivery(presenter=presenter)

        delivery.deliver("startup")

        assert stats.get("startup").rates == [TIMEOUT]


class TestPresentationResult:
    def test_from_dict(self):
        assert PresentationResult.from_dict({"type": "rate", "value": 5}) == PresentationResult.rate(5)
        assert PresentationResult.from_dict({"type": "rate", "rate": 1}) == PresentationResult.rate(1)
        assert PresentationResult.from_dict({"type": "timeout"}) == PresentationResult.timeout()

    def test_from_dict_unknown_type(self):
        with pytest.raises(ValueError):
            PresentationResult.from_dict({"type": "dismissed"})

    def test_to_dict(self):
        assert PresentationResult.rate(3).to_dict() == {"type": "rate", "value": 3}
        assert PresentationResult.timeout().to_dict() == {"type": "timeout"}


class TestCallbackPresenter:
    def test_present_calls_hook(self):
        shown = []
        presenter = CallbackPresenter(on_present=lambda: shown.append(True))
        presenter.present(lambda result: None)

        assert shown == [True]
        assert presenter.presented == 1

    def test_double_present_raises(self):
        presenter = CallbackPresenter()
        presenter.present(lambda result: None)
        with pytest.raises(RuntimeError):
            presenter.present(lambda result: None)

    def test_resolve_without_prompt_is_ignored(self):
        presenter = CallbackPresenter()
        presenter.resolve(PresentationResult.timeout())
        assert not presenter.is_pending
