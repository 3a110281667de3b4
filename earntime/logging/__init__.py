"""
EarnTime Logging System.

Structured JSONL logs for:
- Timer phase changes (start, completion, cancel, commit)
- Ledger writes (saved sessions and spends, soft deletes, archival runs)

Usage:
    from earntime.logging import timer_logger, TimerLogEntry, now_iso

    entry = TimerLogEntry(
        timestamp=now_iso(),
        timer="earning",
        event="start",
        from_state="IDLE",
        to_state="RUNNING",
    )
    timer_logger.info(entry.to_json())

Logs are written to ~/.earntime/logs/:
    - timer.jsonl
    - ledger.jsonl
"""

import threading
from typing import Any

from .config import LogConfig, get_config, set_config
from .entries import LedgerLogEntry, TimerLogEntry, now_iso
from .handlers import create_jsonl_logger

# Lazy-initialized loggers to avoid creating files before needed
_timer_logger: Any = None
_ledger_logger: Any = None
_init_lock = threading.Lock()


def _ensure_loggers() -> None:
    """Initialize loggers on first use."""
    global _timer_logger, _ledger_logger

    if _timer_logger is not None:
        return

    with _init_lock:
        if _timer_logger is not None:
            return

        config = get_config()

        _ledger_logger = create_jsonl_logger(
            "earntime.ledger",
            config.ledger_log_path,
            level=config.ledger_level,
            max_bytes=config.max_file_size_bytes,
            backup_count=config.backup_count,
        )

        _timer_logger = create_jsonl_logger(
            "earntime.timer",
            config.timer_log_path,
            level=config.timer_level,
            max_bytes=config.max_file_size_bytes,
            backup_count=config.backup_count,
        )


def reset_loggers() -> None:
    """Drop the cached loggers so the next use picks up a new config."""
    global _timer_logger, _ledger_logger
    with _init_lock:
        _timer_logger = None
        _ledger_logger = None


class _LazyLogger:
    """Lazy wrapper that initializes the actual logger on first use."""

    def __init__(self, name: str):
        self._name = name

    def _get_logger(self) -> Any:
        _ensure_loggers()
        if self._name == "timer":
            return _timer_logger
        return _ledger_logger

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._get_logger().debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._get_logger().info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._get_logger().warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._get_logger().error(msg, *args, **kwargs)


timer_logger = _LazyLogger("timer")
ledger_logger = _LazyLogger("ledger")


__all__ = [
    # Loggers
    "timer_logger",
    "ledger_logger",
    "reset_loggers",
    # Log entries
    "TimerLogEntry",
    "LedgerLogEntry",
    # Utilities
    "now_iso",
    # Config
    "LogConfig",
    "get_config",
    "set_config",
]
