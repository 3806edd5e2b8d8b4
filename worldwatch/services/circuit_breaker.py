"""
CircuitBreaker - stops polling an ingestion source that keeps failing.

States:
- CLOSED: Normal operation, fetches go through
- OPEN: Source is failing, fetches are skipped
- HALF_OPEN: One trial fetch is allowed after the reset timeout

Transitions:
- CLOSED → OPEN: When failure_threshold consecutive failures are reached
- OPEN → HALF_OPEN: After reset_timeout expires
- HALF_OPEN → CLOSED: On a successful fetch
- HALF_OPEN → OPEN: On a failed fetch
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from loguru import logger

from worldwatch.clock import Clock, SystemClock


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker."""

    failure_threshold: int = 3
    reset_timeout: timedelta = timedelta(minutes=5)


class CircuitBreaker:
    """
    Circuit breaker for a single ingestion source.

    Usage:
        cb = registry.get("news:politics")

        if not cb.can_request():
            raise CircuitOpenError(cb.source_id, cb.get_time_until_reset() or 0)

        try:
            items = await source.fetch_items(...)
            cb.record_success()
        except Exception:
            cb.record_failure()
            raise
    """

    def __init__(
        self,
        source_id: str,
        config: CircuitBreakerConfig | None = None,
        clock: Clock | None = None,
    ):
        self.source_id = source_id
        self.config = config or CircuitBreakerConfig()
        self.clock = clock or SystemClock()

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: datetime | None = None
        self._opened_at: datetime | None = None

    @property
    def state(self) -> CircuitState:
        """Current state, moving OPEN → HALF_OPEN once the timeout has passed."""
        if self._state == CircuitState.OPEN and self._opened_at:
            if self.clock.now() >= self._opened_at + self.config.reset_timeout:
                self._state = CircuitState.HALF_OPEN
                logger.info(f"Circuit breaker '{self.source_id}' transitioned to HALF_OPEN")
        return self._state

    def can_request(self) -> bool:
        return self.state != CircuitState.OPEN

    def record_success(self) -> None:
        if self._state != CircuitState.CLOSED:
            logger.info(f"Circuit breaker '{self.source_id}' CLOSED (recovered)")
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = None

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = self.clock.now()

        if self._state == CircuitState.HALF_OPEN:
            self._open()
        elif (
            self._state == CircuitState.CLOSED
            and self._failure_count >= self.config.failure_threshold
        ):
            self._open()

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = self.clock.now()
        logger.warning(
            f"Circuit breaker '{self.source_id}' OPENED after {self._failure_count} failures"
        )

    def get_time_until_reset(self) -> float | None:
        """Seconds until the circuit goes HALF_OPEN, None unless OPEN."""
        if self._state != CircuitState.OPEN or not self._opened_at:
            return None
        reset_at = self._opened_at + self.config.reset_timeout
        return max(0.0, (reset_at - self.clock.now()).total_seconds())

    def get_status(self) -> dict[str, Any]:
        return {
            "source_id": self.source_id,
            "state": self.state.value,
            "failure_count": self._failure_count,
            "last_failure": (
                self._last_failure_time.isoformat() if self._last_failure_time else None
            ),
            "time_until_reset": self.get_time_until_reset(),
        }


class CircuitBreakerRegistry:
    """One circuit breaker per ingestion source, created on first use."""

    def __init__(
        self,
        default_config: CircuitBreakerConfig | None = None,
        clock: Clock | None = None,
    ):
        self._breakers: dict[str, CircuitBreaker] = {}
        self._default_config = default_config or CircuitBreakerConfig()
        self.clock = clock or SystemClock()

    def get(self, source_id: str) -> CircuitBreaker:
        if source_id not in self._breakers:
            self._breakers[source_id] = CircuitBreaker(
                source_id, self._default_config, self.clock
            )
        return self._breakers[source_id]

    def get_all_status(self) -> dict[str, dict[str, Any]]:
        return {source_id: cb.get_status() for source_id, cb in self._breakers.items()}

    def get_open_circuits(self) -> list[str]:
        return [
            source_id
            for source_id, cb in self._breakers.items()
            if cb.state == CircuitState.OPEN
        ]
