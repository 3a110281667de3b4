"""Tests for asyncio tick delivery."""

import pytest

from earntime.timers import AsyncTicker, EarningPhase, EarningTimer, SpendingPhase, SpendingTimer


class FakeSleep:
    """Records sleeps and advances a ManualClock instead of waiting."""

    def __init__(self, clock=None, before_wake=None):
        self.clock = clock
        self.before_wake = before_wake
        self.calls = 0

    async def __call__(self, seconds: float) -> None:
        self.calls += 1
        if self.clock is not None:
            self.clock.advance(seconds=seconds)
        if self.before_wake is not None:
            self.before_wake(self.calls)


class TestAsyncTicker:
    @pytest.mark.asyncio
    async def test_runs_earning_timer_to_completion(self, clock):
        timer = EarningTimer(clock)
        timer.configure(duration_minutes=1)
        timer.start()

        ticks = await AsyncTicker(timer, sleep=FakeSleep(clock)).run()

        assert ticks == 61
        assert timer.phase == EarningPhase.COMPLETED
        assert timer.result.earned_minutes == 1

    @pytest.mark.asyncio
    async def test_idle_timer_gets_no_ticks(self, clock):
        sleep = FakeSleep(clock)
        ticks = await AsyncTicker(EarningTimer(clock), sleep=sleep).run()
        assert ticks == 0
        assert sleep.calls == 0

    @pytest.mark.asyncio
    async def test_cancel_during_sleep_drops_pending_tick(self, clock):
        timer = SpendingTimer(clock)
        timer.configure(5)
        timer.start()

        def cancel_on_third(calls):
            if calls == 3:
                timer.cancel()

        ticks = await AsyncTicker(timer, sleep=FakeSleep(clock, cancel_on_third)).run()

        assert ticks == 2
        assert timer.phase == SpendingPhase.IDLE

    @pytest.mark.asyncio
    async def test_stop_ends_loop(self, clock):
        timer = EarningTimer(clock)
        timer.start()
        ticker = AsyncTicker(timer)

        def stop_on_fifth(calls):
            if calls == 5:
                ticker.stop()

        ticker._sleep = FakeSleep(clock, stop_on_fifth)
        ticks = await ticker.run()

        assert ticks == 4
        assert timer.phase == EarningPhase.RUNNING
        assert timer.remaining_seconds == 1500 - 4

    @pytest.mark.asyncio
    async def test_on_tick_callback(self, clock):
        timer = SpendingTimer(clock)
        timer.configure(1)
        timer.start()
        seen = []

        await AsyncTicker(
            timer,
            sleep=FakeSleep(clock),
            on_tick=lambda: seen.append(timer.remaining_seconds),
        ).run()

        assert seen[0] == 59
        assert len(seen) == 61
        assert timer.phase == SpendingPhase.COMPLETED
