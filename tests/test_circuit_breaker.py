from datetime import timedelta

from worldwatch.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitState,
)


def _breaker(clock) -> CircuitBreaker:
    config = CircuitBreakerConfig(failure_threshold=3, reset_timeout=timedelta(minutes=5))
    return CircuitBreaker("news:politics", config, clock)


def test_opens_after_threshold(clock):
    cb = _breaker(clock)
    cb.record_failure()
    cb.record_failure()
    assert cb.can_request()

    cb.record_failure()
    assert cb.state == CircuitState.OPEN
    assert not cb.can_request()
    assert cb.get_time_until_reset() == 300.0


def test_half_open_after_timeout_then_recovers(clock):
    cb = _breaker(clock)
    for _ in range(3):
        cb.record_failure()

    clock.advance(timedelta(minutes=5))
    assert cb.state == CircuitState.HALF_OPEN
    assert cb.can_request()

    cb.record_success()
    assert cb.state == CircuitState.CLOSED
    assert cb.get_status()["failure_count"] == 0


def test_half_open_failure_reopens(clock):
    cb = _breaker(clock)
    for _ in range(3):
        cb.record_failure()
    clock.advance(timedelta(minutes=6))
    assert cb.state == CircuitState.HALF_OPEN

    cb.record_failure()
    assert cb.state == CircuitState.OPEN


def test_success_resets_failure_count(clock):
    cb = _breaker(clock)
    cb.record_failure()
    cb.record_failure()
    cb.record_success()
    cb.record_failure()
    assert cb.state == CircuitState.CLOSED


def test_registry_reuses_breakers(clock):
    registry = CircuitBreakerRegistry(clock=clock)
    assert registry.get("Markets") is registry.get("Markets")

    for _ in range(3):
        registry.get("Markets").record_failure()
    registry.get("USGS").record_success()

    assert registry.get_open_circuits() == ["Markets"]
    assert set(registry.get_all_status()) == {"Markets", "USGS"}
