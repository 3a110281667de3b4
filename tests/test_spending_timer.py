"""Tests for the spending timer state machine."""

import pytest

from earntime.exceptions import StateTransitionError, ValidationError
from earntime.models import SPEND_TIMER_SOURCE
from earntime.timers.spending import (
    DEFAULT_SPEND_MINUTES,
    SpendingEvent,
    SpendingPhase,
    SpendingTimer,
    SpendingTimerState,
    transition,
)

from helpers import REFERENCE, run_ticks


def count_down(timer: SpendingTimer, clock, minutes: int) -> None:
    """Configure, start and tick a spend countdown through to COMPLETED."""
    timer.configure(minutes)
    timer.start()
    run_ticks(timer, minutes * 60 + 1, clock)


class TestTransitionFunction:
    def test_start_sets_countdown(self):
        state = SpendingTimerState(minutes_to_spend=10)
        step = transition(state, SpendingEvent.START, REFERENCE)
        assert step.state.phase == SpendingPhase.COUNTING_DOWN
        assert step.state.remaining_seconds == 600
        assert step.state.started_at == REFERENCE
        assert step.log is None

    def test_start_with_zero_minutes_rejected(self):
        state = SpendingTimerState(minutes_to_spend=0)
        with pytest.raises(ValidationError):
            transition(state, SpendingEvent.START, REFERENCE)

    def test_tick_at_zero_completes(self):
        state = SpendingTimerState(
            phase=SpendingPhase.COUNTING_DOWN,
            minutes_to_spend=1,
            remaining_seconds=0,
            started_at=REFERENCE,
        )
        step = transition(state, SpendingEvent.TICK, REFERENCE)
        assert step.state.phase == SpendingPhase.COMPLETED

    def test_commit_outside_completed_is_ignored(self):
        state = SpendingTimerState()
        step = transition(state, SpendingEvent.COMMIT, REFERENCE)
        assert step.state is state
        assert step.log is None


class TestSpendingTimer:
    """Tests for the stateful spend countdown."""

    def test_defaults(self, clock):
        timer = SpendingTimer(clock)
        assert timer.phase == SpendingPhase.IDLE
        assert timer.minutes_to_spend == DEFAULT_SPEND_MINUTES
        assert not timer.is_active

    def test_start_counts_down(self, clock):
        timer = SpendingTimer(clock)
        timer.configure(15)
        timer.start()
        assert timer.phase == SpendingPhase.COUNTING_DOWN
        assert timer.remaining_seconds == 900
        run_ticks(timer, 60, clock)
        assert timer.remaining_seconds == 840

    def test_start_with_zero_minutes_stays_idle(self, clock):
        timer = SpendingTimer(clock)
        timer.configure(0)
        with pytest.raises(ValidationError):
            timer.start()
        assert timer.phase == SpendingPhase.IDLE

    def test_start_is_idempotent(self, clock):
        timer = SpendingTimer(clock)
        timer.configure(5)
        timer.start()
        run_ticks(timer, 30, clock)
        timer.start()
        assert timer.remaining_seconds == 270
        assert timer.state.started_at == REFERENCE

    def test_runs_to_completion(self, clock):
        timer = SpendingTimer(clock)
        timer.configure(1)
        timer.start()
        run_ticks(timer, 60, clock)
        assert timer.phase == SpendingPhase.COUNTING_DOWN
        timer.tick()
        assert timer.phase == SpendingPhase.COMPLETED

    def test_commit_emits_log(self, clock):
        timer = SpendingTimer(clock)
        count_down(timer, clock, 15)
        log = timer.commit()
        assert log is not None
        assert log.minutes_used == 15
        assert log.source == SPEND_TIMER_SOURCE
        assert log.created_at == REFERENCE
        assert log.is_archived is False
        assert timer.phase == SpendingPhase.IDLE

    def test_commit_twice_emits_once(self, clock):
        timer = SpendingTimer(clock)
        count_down(timer, clock, 2)
        assert timer.commit() is not None
        assert timer.commit() is None

    def test_cancel_costs_nothing(self, clock):
        timer = SpendingTimer(clock)
        timer.configure(15)
        timer.start()
        run_ticks(timer, 120, clock)
        timer.cancel()
        assert timer.phase == SpendingPhase.IDLE
        assert timer.remaining_seconds == 0
        assert timer.commit() is None

    def test_cancel_when_completed_is_noop(self, clock):
        timer = SpendingTimer(clock)
        count_down(timer, clock, 1)
        timer.cancel()
        assert timer.phase == SpendingPhase.COMPLETED

    def test_stale_tick_after_cancel_ignored(self, clock):
        timer = SpendingTimer(clock)
        timer.start()
        timer.cancel()
        timer.tick()
        assert timer.phase == SpendingPhase.IDLE

    def test_cannot_configure_while_counting(self, clock):
        timer = SpendingTimer(clock)
        timer.start()
        with pytest.raises(StateTransitionError):
            timer.configure(30)
