"""
Persistence: async SQLAlchemy engine, ORM models and repositories.
"""

from worldwatch.datastore.engine import Database
from worldwatch.datastore.repositories import (
    BaselineRepository,
    SignalHistoryRepository,
    SnapshotRepository,
)

__all__ = [
    "Database",
    "BaselineRepository",
    "SignalHistoryRepository",
    "SnapshotRepository",
]
