"""Custom exceptions for reconscan."""


class ReconError(Exception):
    """Base exception for all reconscan errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ReconError):
    """Raised when configuration is invalid (bad target, port list, resolver or wordlist)."""

    pass


class RetryExhaustedError(ReconError):
    """Raised when every retry attempt of an operation failed."""

    def __init__(self, retries: int, last_error: BaseException) -> None:
        super().__init__(
            f"max retries ({retries}) exceeded: {last_error}",
            details={"retries": retries},
        )
        self.retries = retries
        self.last_error = last_error


class CircuitOpenError(ReconError):
    """Raised when a call is rejected by an open circuit breaker."""

    def __init__(self, message: str = "circuit breaker is open") -> None:
        super().__init__(message)


class PoolClosedError(ReconError):
    """Raised when submitting work to a worker pool that was closed."""

    pass


class AggregateError(ReconError):
    """Raised when several concurrent operations failed."""

    def __init__(self, errors: list[BaseException]) -> None:
        super().__init__(
            f"{len(errors)} operation(s) failed: {errors[0] if errors else ''}",
            details={"count": len(errors)},
        )
        self.errors = errors
