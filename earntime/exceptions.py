"""
EarnTime - Exception Hierarchy

All EarnTime-specific exceptions inherit from EarnTimeError.
Stale timer signals are not errors and never raise.
"""

from typing import Any


class EarnTimeError(Exception):
    """Base exception for all EarnTime errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# Configuration Errors
class ConfigError(EarnTimeError):
    """Raised when configuration is invalid or missing."""

    pass


# Validation Errors
class ValidationError(EarnTimeError):
    """Raised when an operation is refused before any state change."""

    pass


class InsufficientCreditsError(ValidationError):
    """Raised when a spend is requested for more minutes than are available."""

    def __init__(self, message: str, required: int, available: int):
        super().__init__(message, {"required": required, "available": available})
        self.required = required
        self.available = available


# Persistence Errors
class PersistenceError(EarnTimeError):
    """Raised when the storage collaborator fails to read or write records.

    The in-memory change that triggered the write has already been
    rolled back when this is raised.
    """

    pass


class RecordNotFoundError(PersistenceError):
    """Raised when a record id does not exist in the store."""

    pass


# Export Errors
class SerializationError(EarnTimeError):
    """Raised when an export payload cannot be encoded."""

    def __init__(self, message: str, export_format: str):
        super().__init__(message, {"format": export_format})
        self.export_format = export_format


# State Errors
class StateTransitionError(EarnTimeError):
    """Raised when an invalid state transition is required.

    Includes the current state and the attempted target state for debugging.
    """

    def __init__(self, message: str, from_state: str, to_state: str):
        super().__init__(message, {"from_state": from_state, "to_state": to_state})
        self.from_state = from_state
        self.to_state = to_state
