"""
Per-second tick delivery for the timers.

The timers never read the wall clock to decide when to count down;
something outside has to call tick() once per elapsed second. AsyncTicker
does that on an asyncio loop. Tests pass a fake sleep to fast-forward.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Protocol


class Tickable(Protocol):
    """A timer that can be ticked."""

    @property
    def is_active(self) -> bool: ...

    def tick(self) -> object: ...


SleepFunc = Callable[[float], Awaitable[None]]


class AsyncTicker:
    """
    Drives one timer until it leaves its active phase.

    Usage:
        ticker = AsyncTicker(timer)
        await ticker.run()
    """

    def __init__(
        self,
        timer: Tickable,
        interval: float = 1.0,
        sleep: SleepFunc | None = None,
        on_tick: Callable[[], None] | None = None,
    ):
        self.timer = timer
        self.interval = interval
        self._sleep = sleep or asyncio.sleep
        self._on_tick = on_tick
        self._stopped = False
        self.ticks_delivered = 0

    def stop(self) -> None:
        """Stop delivering ticks after the current sleep."""
        self._stopped = True

    async def run(self) -> int:
        """
        Tick the timer once per interval while it is active.

        Returns:
            Number of ticks delivered
        """
        while not self._stopped and self.timer.is_active:
            await self._sleep(self.interval)
            # cancel() or finish_early() may have landed during the sleep
            if self._stopped or not self.timer.is_active:
                break
            self.timer.tick()
            self.ticks_delivered += 1
            if self._on_tick is not None:
                self._on_tick()
        return self.ticks_delivered
