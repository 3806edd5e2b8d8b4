"""
Service layer exceptions.
"""


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class SourceFetchError(ServiceError):
    """An ingestion source failed to deliver."""

    def __init__(self, service_id: str, cause: BaseException):
        self.cause = cause
        super().__init__(
            f"Fetch from '{service_id}' failed: {type(cause).__name__}: {cause}",
            service_id=service_id,
        )


class CircuitOpenError(ServiceError):
    """Circuit breaker is open, fetch skipped."""

    def __init__(self, service_id: str, reset_after_seconds: float):
        self.reset_after_seconds = reset_after_seconds
        super().__init__(
            f"Circuit breaker open for source '{service_id}', "
            f"retry after {reset_after_seconds:.1f}s",
            service_id=service_id,
        )


class PersistenceError(ServiceError):
    """Durable storage is unavailable; callers fall back to memory."""

    pass
