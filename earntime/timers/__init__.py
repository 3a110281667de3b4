"""
EarnTime timers.

- earning.py: countdown that credits minutes when it finishes
- spending.py: countdown that debits minutes when committed
- ticker.py: asyncio tick source driving either timer
"""

from earntime.timers.earning import (
    EarningEvent,
    EarningPhase,
    EarningTimer,
    EarningTimerState,
    SessionResult,
)
from earntime.timers.spending import (
    SpendingEvent,
    SpendingPhase,
    SpendingTimer,
    SpendingTimerState,
)
from earntime.timers.ticker import AsyncTicker

__all__ = [
    "EarningEvent",
    "EarningPhase",
    "EarningTimer",
    "EarningTimerState",
    "SessionResult",
    "SpendingEvent",
    "SpendingPhase",
    "SpendingTimer",
    "SpendingTimerState",
    "AsyncTicker",
]
