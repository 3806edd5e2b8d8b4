"""
Service layer - durable stores and source isolation.

Provides:
- BaselineStore: Running per-metric statistics
- SignalHistory: Ordered log of emitted signals
- SnapshotStore: Point-in-time captures for playback
- CircuitBreaker: Skips ingestion sources that keep failing
"""

from worldwatch.services.errors import (
    ServiceError,
    SourceFetchError,
    CircuitOpenError,
    PersistenceError,
)
from worldwatch.services.baseline_store import BaselineStore
from worldwatch.services.signal_history import SignalHistory
from worldwatch.services.snapshot_store import SnapshotStore
from worldwatch.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitState,
)

__all__ = [
    # Errors
    "ServiceError",
    "SourceFetchError",
    "CircuitOpenError",
    "PersistenceError",
    # Stores
    "BaselineStore",
    "SignalHistory",
    "SnapshotStore",
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerRegistry",
    "CircuitState",
]
