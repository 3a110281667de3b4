"""
EarnTime - Earning Timer State Machine

Counts down a planned activity and produces a SessionResult when it
finishes, either naturally or early.

State transitions:
IDLE -> RUNNING (start)
RUNNING -> COMPLETED (countdown reached zero, or finish early)
RUNNING -> IDLE (cancel, no record)
COMPLETED -> RUNNING (start again before the result was collected)
Any -> IDLE (reset)

The machine is a frozen value; transition() returns the next value plus
the result emitted by that step, if any. EarningTimer wraps one value
for the running process.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum, auto

from earntime.clock import Clock, SystemClock
from earntime.exceptions import StateTransitionError, ValidationError
from earntime.logging import TimerLogEntry, now_iso, timer_logger
from earntime.models import EarnedSession, TaskCategory, earned_minutes_for


class EarningPhase(Enum):
    """Phases of the earning countdown."""

    IDLE = auto()  # Configurable, nothing running
    RUNNING = auto()  # Counting down
    COMPLETED = auto()  # Result waiting to be persisted


class EarningEvent(Enum):
    """Inputs the earning machine reacts to."""

    START = auto()
    TICK = auto()
    FINISH_EARLY = auto()
    CANCEL = auto()
    RESET = auto()


# Phase changes allowed by transition(); staying in place is always allowed
VALID_TRANSITIONS: dict[EarningPhase, set[EarningPhase]] = {
    EarningPhase.IDLE: {EarningPhase.RUNNING},
    EarningPhase.RUNNING: {EarningPhase.COMPLETED, EarningPhase.IDLE},
    EarningPhase.COMPLETED: {EarningPhase.RUNNING, EarningPhase.IDLE},
}


@dataclass(frozen=True)
class SessionResult:
    """Outcome of a finished earning countdown, ready to be persisted."""

    category: TaskCategory
    custom_label: str | None
    start_date: datetime
    end_date: datetime
    duration_seconds: float
    earned_minutes: int

    def to_session(self, notes: str | None = None) -> EarnedSession:
        """Build the record to store for this result."""
        return EarnedSession(
            category=self.category,
            custom_label=self.custom_label,
            start_date=self.start_date,
            end_date=self.end_date,
            duration_seconds=self.duration_seconds,
            earned_minutes=self.earned_minutes,
            notes=notes,
        )


@dataclass(frozen=True)
class EarningTimerState:
    """Snapshot of the earning machine and its configuration."""

    phase: EarningPhase = EarningPhase.IDLE
    category: TaskCategory = TaskCategory.FOCUS_SESSION
    custom_label: str = ""
    duration_minutes: int = TaskCategory.FOCUS_SESSION.default_duration_minutes
    remaining_seconds: int = 0
    started_at: datetime | None = None
    result: SessionResult | None = None

    @property
    def total_duration_seconds(self) -> int:
        return self.duration_minutes * 60

    @property
    def elapsed_seconds(self) -> int:
        if self.phase != EarningPhase.RUNNING:
            return 0
        return self.total_duration_seconds - self.remaining_seconds

    @property
    def is_active(self) -> bool:
        return self.phase == EarningPhase.RUNNING


@dataclass(frozen=True)
class Transition:
    """Next state plus the result emitted by the step (if any)."""

    state: EarningTimerState
    result: SessionResult | None = None


def configure(
    state: EarningTimerState,
    category: TaskCategory | None = None,
    custom_label: str | None = None,
    duration_minutes: int | None = None,
) -> EarningTimerState:
    """
    Change what the next countdown will run.

    Picking a category resets the duration to that category's default
    unless a duration is given too.

    Raises:
        ValidationError: If the duration is not a positive integer
        StateTransitionError: If the countdown is running
    """
    if state.phase == EarningPhase.RUNNING:
        raise StateTransitionError(
            "Cannot change the earning timer while it is running",
            from_state=state.phase.name,
            to_state=state.phase.name,
        )
    changes: dict = {}
    if category is not None:
        changes["category"] = category
        changes["duration_minutes"] = category.default_duration_minutes
    if custom_label is not None:
        changes["custom_label"] = custom_label
    if duration_minutes is not None:
        if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int) or duration_minutes <= 0:
            raise ValidationError(
                "Duration must be a positive number of minutes",
                {"duration_minutes": duration_minutes},
            )
        changes["duration_minutes"] = duration_minutes
    return replace(state, **changes)


def _finalize(state: EarningTimerState, elapsed_seconds: float, now: datetime) -> Transition:
    end_date = now
    start_date = state.started_at or end_date - timedelta(seconds=elapsed_seconds)
    label = state.custom_label.strip()
    result = SessionResult(
        category=state.category,
        custom_label=label or None,
        start_date=start_date,
        end_date=end_date,
        duration_seconds=float(elapsed_seconds),
        earned_minutes=earned_minutes_for(elapsed_seconds),
    )
    completed = replace(
        state,
        phase=EarningPhase.COMPLETED,
        remaining_seconds=0,
        started_at=None,
        result=result,
    )
    return Transition(completed, result)


def transition(state: EarningTimerState, event: EarningEvent, now: datetime) -> Transition:
    """
    Apply one event to the earning machine.

    Events that do not apply to the current phase (a tick after cancel,
    finish early while idle, ...) return the state unchanged.
    """
    phase = state.phase

    if event == EarningEvent.START:
        if phase == EarningPhase.RUNNING:
            return Transition(state)
        return Transition(
            replace(
                state,
                phase=EarningPhase.RUNNING,
                remaining_seconds=state.total_duration_seconds,
                started_at=now,
                result=None,
            )
        )

    if event == EarningEvent.TICK:
        if phase != EarningPhase.RUNNING:
            return Transition(state)
        if state.remaining_seconds > 0:
            return Transition(replace(state, remaining_seconds=state.remaining_seconds - 1))
        # Natural completion credits the planned duration, not wall-clock drift
        return _finalize(state, state.total_duration_seconds, now)

    if event == EarningEvent.FINISH_EARLY:
        if phase != EarningPhase.RUNNING:
            return Transition(state)
        return _finalize(state, state.elapsed_seconds, now)

    if event == EarningEvent.CANCEL:
        if phase != EarningPhase.RUNNING:
            return Transition(state)
        return Transition(replace(state, phase=EarningPhase.IDLE, remaining_seconds=0, started_at=None))

    if event == EarningEvent.RESET:
        return Transition(
            replace(state, phase=EarningPhase.IDLE, remaining_seconds=0, started_at=None, result=None)
        )

    raise ValueError(f"Unknown earning event: {event!r}")


class EarningTimer:
    """
    The earning countdown for the running process.

    Ticks are delivered from outside (see earntime.timers.ticker), once
    per elapsed second. The caller persists a completed result and then
    calls reset().
    """

    def __init__(self, clock: Clock | None = None, state: EarningTimerState | None = None):
        self.clock = clock or SystemClock()
        self._state = state or EarningTimerState()

    @property
    def state(self) -> EarningTimerState:
        return self._state

    @property
    def phase(self) -> EarningPhase:
        return self._state.phase

    @property
    def remaining_seconds(self) -> int:
        return self._state.remaining_seconds

    @property
    def result(self) -> SessionResult | None:
        return self._state.result

    @property
    def is_active(self) -> bool:
        return self._state.is_active

    def configure(
        self,
        category: TaskCategory | None = None,
        custom_label: str | None = None,
        duration_minutes: int | None = None,
    ) -> EarningTimerState:
        self._state = configure(self._state, category, custom_label, duration_minutes)
        return self._state

    def _apply(self, event: EarningEvent) -> SessionResult | None:
        before = self._state.phase
        step = transition(self._state, event, self.clock.now())
        if step.state.phase != before and step.state.phase not in VALID_TRANSITIONS[before]:
            raise StateTransitionError(
                f"Invalid earning transition: {before.name} -> {step.state.phase.name}",
                from_state=before.name,
                to_state=step.state.phase.name,
            )
        self._state = step.state
        if step.state.phase != before:
            self._log_transition(event, before, step.result)
        return step.result

    def require_phase(self, phase: EarningPhase) -> None:
        """Raise StateTransitionError unless the timer is in `phase`."""
        if self._state.phase != phase:
            raise StateTransitionError(
                f"Earning timer is {self._state.phase.name}, expected {phase.name}",
                from_state=self._state.phase.name,
                to_state=phase.name,
            )

    def start(self) -> None:
        self._apply(EarningEvent.START)

    def tick(self) -> SessionResult | None:
        return self._apply(EarningEvent.TICK)

    def finish_early(self) -> SessionResult | None:
        return self._apply(EarningEvent.FINISH_EARLY)

    def cancel(self) -> None:
        self._apply(EarningEvent.CANCEL)

    def reset(self) -> None:
        self._apply(EarningEvent.RESET)

    def _log_transition(
        self,
        event: EarningEvent,
        before: EarningPhase,
        result: SessionResult | None,
    ) -> None:
        entry = TimerLogEntry(
            timestamp=now_iso(),
            timer="earning",
            event=event.name.lower(),
            from_state=before.name,
            to_state=self._state.phase.name,
            minutes=self._state.duration_minutes,
            remaining_seconds=self._state.remaining_seconds,
            category=self._state.category.value,
        )
        if result is not None:
            entry.elapsed_seconds = result.duration_seconds
            entry.earned_minutes = result.earned_minutes
        timer_logger.info(entry.to_json())
