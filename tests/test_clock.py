"""Tests for clock module."""

import asyncio
import threading

import pytest

from woodpecker.clock.clock import TickClock
from woodpecker.clock.ticker import Ticker


class TestTickClock:
    def test_advance_increments_both_counters(self):
        clock = TickClock()
        clock.advance(3)

        assert clock.elapsed_ticks() == 3
        assert clock.elapsed_total_ticks() == 3

    def test_callbacks_fire_once_per_tick(self):
        clock = TickClock()
        seen = []
        clock.on_tick(lambda et, ett: seen.append((et, ett)))

        clock.advance(3)

        assert seen == [(1, 1), (2, 2), (3, 3)]

    def test_on_tick_registers_once(self):
        clock = TickClock()
        seen = []

        def callback(et, ett):
            seen.append(ett)

        clock.on_tick(callback)
        clock.on_tick(callback)
        clock.advance()

        assert seen == [1]

    def test_off_tick(self):
        clock = TickClock()
        seen = []

        def callback(et, ett):
            seen.append(ett)

        clock.on_tick(callback)
        clock.advance()
        clock.off_tick(callback)
        clock.advance()

        assert seen == [1]

    def test_silence_resets_elapsed_ticks(self):
        clock = TickClock(start_et=7, start_ett=20)
        clock.silence()

        assert clock.is_silent()
        assert clock.elapsed_ticks() == 0
        assert clock.elapsed_total_ticks() == 20

    def test_silence_releases_after_length(self):
        clock = TickClock(silence_length=3)
        clock.advance(5)
        clock.silence()

        clock.advance(2)
        assert clock.is_silent()

        clock.advance()
        assert not clock.is_silent()

    def test_silence_without_length_held_until_ended(self):
        clock = TickClock()
        clock.silence()
        clock.advance(1000)
        assert clock.is_silent()

        clock.end_silence()
        assert not clock.is_silent()

    def test_is_recently_active(self):
        clock = TickClock()
        clock.advance(2)
        clock.record_activity()
        clock.advance(8)  # ett = 10

        assert not clock.is_recently_active(5)  # [5, 10]
        assert clock.is_recently_active(5, 5)  # [0, 5]
        assert not clock.is_recently_active(5, 9)  # [-4, 1]

    def test_snapshot_restore(self):
        clock = TickClock()
        clock.advance(12)
        clock.silence()
        clock.advance(4)

        restored = TickClock()
        restored.restore(clock.snapshot())

        assert restored.elapsed_ticks() == 4
        assert restored.elapsed_total_ticks() == 16

    def test_shared_lock(self):
        lock = threading.RLock()
        clock = TickClock(lock=lock)

        assert clock.lock is lock

    def test_callbacks_run_under_lock(self):
        clock = TickClock()
        acquired = []

        def acquire_elsewhere(et, ett):
            thread = threading.Thread(target=lambda: acquired.append(clock.lock.acquire(blocking=False)))
            thread.start()
            thread.join()

        clock.on_tick(acquire_elsewhere)
        clock.advance()

        assert acquired == [False]

    def test_silence_from_other_thread_is_atomic(self):
        clock = TickClock(silence_length=1000)

        def silence_repeatedly():
            for _ in range(500):
                clock.silence()

        thread = threading.Thread(target=silence_repeatedly)
        thread.start()
        clock.advance(500)
        thread.join()

        assert clock.elapsed_total_ticks() == 500
        assert clock.elapsed_ticks() <= 500
        assert clock.is_silent()


class TestTicker:
    @pytest.mark.asyncio
    async def test_ticker_advances_clock(self):
        clock = TickClock()
        ticker = Ticker(clock, tick_interval=0.01)

        await ticker.start()
        assert ticker.is_running
        await asyncio.sleep(0.1)
        await ticker.stop()

        assert not ticker.is_running
        assert clock.elapsed_total_ticks() > 0
        assert ticker.get_status()["tick_count"] == clock.elapsed_total_ticks()

    @pytest.mark.asyncio
    async def test_failing_callback_keeps_loop_running(self):
        clock = TickClock()

        def explode(et, ett):
            raise RuntimeError("boom")

        clock.on_tick(explode)
        ticker = Ticker(clock, tick_interval=0.01)

        await ticker.start()
        await asyncio.sleep(0.1)
        status = ticker.get_status()
        await ticker.stop()

        assert status["errors"] > 1
        assert status["tick_count"] > 1

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self):
        ticker = Ticker(TickClock(), tick_interval=0.01)
        await ticker.start()
        task = ticker._task
        await ticker.start()

        assert ticker._task is task
        await ticker.stop()
