"""
EarnTime Persistence Layer

SQLite storage for earned sessions and spend logs.
"""

from earntime.persistence.repository import DEFAULT_DB_PATH, EarnTimeRepository

__all__ = [
    "DEFAULT_DB_PATH",
    "EarnTimeRepository",
]
