"""
EarnTime - earn screen-time minutes by finishing timed tasks.

Completed earning sessions credit minutes to a running balance,
spend countdowns debit it, and old history is archived weekly.
"""

__version__ = "0.1.0"

from earntime.exceptions import (
    ConfigError,
    EarnTimeError,
    InsufficientCreditsError,
    PersistenceError,
    SerializationError,
    ValidationError,
)

__all__ = [
    "__version__",
    "EarnTimeError",
    "ConfigError",
    "ValidationError",
    "InsufficientCreditsError",
    "PersistenceError",
    "SerializationError",
]
