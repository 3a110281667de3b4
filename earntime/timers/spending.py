"""
EarnTime - Spending Timer State Machine

Counts down screen time the user is spending. A spend is all or
nothing: cancelling costs nothing, and only a countdown that ran to
zero can be committed as a SpendLog.

State transitions:
IDLE -> COUNTING_DOWN (start, minutes > 0)
COUNTING_DOWN -> COMPLETED (countdown reached zero)
COUNTING_DOWN -> IDLE (cancel, no record)
COMPLETED -> IDLE (commit, emits one SpendLog)

The balance check happens before start() and belongs to the caller
(see earntime.ledger.ensure_can_spend); the timer has no access to the
ledger's inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum, auto

from earntime.clock import Clock, SystemClock
from earntime.exceptions import StateTransitionError, ValidationError
from earntime.logging import TimerLogEntry, now_iso, timer_logger
from earntime.models import SPEND_TIMER_SOURCE, SpendLog


class SpendingPhase(Enum):
    """Phases of the spend countdown."""

    IDLE = auto()
    COUNTING_DOWN = auto()
    COMPLETED = auto()


class SpendingEvent(Enum):
    """Inputs the spending machine reacts to."""

    START = auto()
    TICK = auto()
    CANCEL = auto()
    COMMIT = auto()


# Phase changes allowed by transition(); staying in place is always allowed
VALID_TRANSITIONS: dict[SpendingPhase, set[SpendingPhase]] = {
    SpendingPhase.IDLE: {SpendingPhase.COUNTING_DOWN},
    SpendingPhase.COUNTING_DOWN: {SpendingPhase.COMPLETED, SpendingPhase.IDLE},
    SpendingPhase.COMPLETED: {SpendingPhase.IDLE},
}

DEFAULT_SPEND_MINUTES = 15


@dataclass(frozen=True)
class SpendingTimerState:
    """Snapshot of the spending machine and its configuration."""

    phase: SpendingPhase = SpendingPhase.IDLE
    minutes_to_spend: int = DEFAULT_SPEND_MINUTES
    remaining_seconds: int = 0
    started_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.phase == SpendingPhase.COUNTING_DOWN


@dataclass(frozen=True)
class Transition:
    """Next state plus the log emitted by the step (if any)."""

    state: SpendingTimerState
    log: SpendLog | None = None


def configure(state: SpendingTimerState, minutes_to_spend: int) -> SpendingTimerState:
    """
    Set the minutes the next countdown will spend.

    Raises:
        StateTransitionError: If a countdown is running or awaiting commit
    """
    if state.phase != SpendingPhase.IDLE:
        raise StateTransitionError(
            "Cannot change the spend amount while a countdown is in progress",
            from_state=state.phase.name,
            to_state=state.phase.name,
        )
    return replace(state, minutes_to_spend=minutes_to_spend)


def transition(state: SpendingTimerState, event: SpendingEvent, now: datetime) -> Transition:
    """
    Apply one event to the spending machine.

    Raises:
        ValidationError: On START from IDLE with no minutes to spend
    """
    phase = state.phase

    if event == SpendingEvent.START:
        if phase != SpendingPhase.IDLE:
            return Transition(state)
        if state.minutes_to_spend <= 0:
            raise ValidationError(
                "Choose how many minutes to spend first",
                {"minutes_to_spend": state.minutes_to_spend},
            )
        return Transition(
            replace(
                state,
                phase=SpendingPhase.COUNTING_DOWN,
                remaining_seconds=state.minutes_to_spend * 60,
                started_at=now,
            )
        )

    if event == SpendingEvent.TICK:
        if phase != SpendingPhase.COUNTING_DOWN:
            return Transition(state)
        if state.remaining_seconds > 0:
            return Transition(replace(state, remaining_seconds=state.remaining_seconds - 1))
        return Transition(replace(state, phase=SpendingPhase.COMPLETED))

    if event == SpendingEvent.CANCEL:
        if phase != SpendingPhase.COUNTING_DOWN:
            return Transition(state)
        return Transition(replace(state, phase=SpendingPhase.IDLE, remaining_seconds=0, started_at=None))

    if event == SpendingEvent.COMMIT:
        if phase != SpendingPhase.COMPLETED:
            return Transition(state)
        log = SpendLog(
            created_at=state.started_at or now,
            minutes_used=state.minutes_to_spend,
            source=SPEND_TIMER_SOURCE,
        )
        idle = replace(state, phase=SpendingPhase.IDLE, remaining_seconds=0, started_at=None)
        return Transition(idle, log)

    raise ValueError(f"Unknown spending event: {event!r}")


class SpendingTimer:
    """The spend countdown for the running process."""

    def __init__(self, clock: Clock | None = None, state: SpendingTimerState | None = None):
        self.clock = clock or SystemClock()
        self._state = state or SpendingTimerState()

    @property
    def state(self) -> SpendingTimerState:
        return self._state

    @property
    def phase(self) -> SpendingPhase:
        return self._state.phase

    @property
    def minutes_to_spend(self) -> int:
        return self._state.minutes_to_spend

    @property
    def remaining_seconds(self) -> int:
        return self._state.remaining_seconds

    @property
    def is_active(self) -> bool:
        return self._state.is_active

    def configure(self, minutes_to_spend: int) -> SpendingTimerState:
        self._state = configure(self._state, minutes_to_spend)
        return self._state

    def _apply(self, event: SpendingEvent) -> SpendLog | None:
        before = self._state.phase
        step = transition(self._state, event, self.clock.now())
        if step.state.phase != before and step.state.phase not in VALID_TRANSITIONS[before]:
            raise StateTransitionError(
                f"Invalid spending transition: {before.name} -> {step.state.phase.name}",
                from_state=before.name,
                to_state=step.state.phase.name,
            )
        self._state = step.state
        if step.state.phase != before:
            self._log_transition(event, before, step.log)
        return step.log

    def start(self) -> None:
        self._apply(SpendingEvent.START)

    def tick(self) -> None:
        self._apply(SpendingEvent.TICK)

    def cancel(self) -> None:
        self._apply(SpendingEvent.CANCEL)

    def commit(self) -> SpendLog | None:
        """Turn a completed countdown into a SpendLog; None from any other phase."""
        return self._apply(SpendingEvent.COMMIT)

    def _log_transition(self, event: SpendingEvent, before: SpendingPhase, log: SpendLog | None) -> None:
        entry = TimerLogEntry(
            timestamp=now_iso(),
            timer="spending",
            event=event.name.lower(),
            from_state=before.name,
            to_state=self._state.phase.name,
            minutes=self._state.minutes_to_spend,
            remaining_seconds=self._state.remaining_seconds,
        )
        if log is not None:
            entry.record_id = log.id
        timer_logger.info(entry.to_json())
