"""Retry with backoff, retry policies, and a circuit breaker."""

import asyncio
import random
import threading
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from reconscan.core.exceptions import CircuitOpenError, RetryExhaustedError

T = TypeVar("T")

RetryableFunc = Callable[[], Awaitable[T]]

# Jitter never moves a delay by more than this fraction either way
JITTER_FACTOR = 0.3


class RetryConfig(BaseModel):
    """Retry configuration."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    max_retries: int = Field(default=3, ge=0)
    initial_delay: float = Field(default=0.1, gt=0)
    max_delay: float = Field(default=10.0, gt=0)
    backoff_factor: float = Field(default=2.0, gt=0)
    jitter: bool = True
    retryable_errors: tuple[type[BaseException], ...] = ()


def is_retryable(error: BaseException, retryable_errors: tuple[type[BaseException], ...]) -> bool:
    """Without an explicit retryable set every error is retried."""
    if not retryable_errors:
        return True
    return isinstance(error, retryable_errors)


def jitter_duration(delay: float, factor: float = JITTER_FACTOR) -> float:
    """Add uniform noise within +/- factor of the delay."""
    if factor <= 0 or factor > 1:
        factor = JITTER_FACTOR
    spread = delay * factor
    return delay + random.uniform(-spread, spread)


def exponential_backoff(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay for a zero-based attempt, doubling each time."""
    return min(base_delay * (2 ** attempt), max_delay)


async def retry_with_backoff(config: RetryConfig, fn: RetryableFunc[T]) -> T:
    """Call fn until it succeeds, retrying failures with exponential backoff.

    Cancellation of the calling task interrupts both the attempt and the
    sleep between attempts.
    """
    delay = config.initial_delay
    last_error: BaseException | None = None

    for attempt in range(config.max_retries + 1):
        try:
            return await fn()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            last_error = e
            if not is_retryable(e, config.retryable_errors):
                raise

        if attempt == config.max_retries:
            break

        current = jitter_duration(delay) if config.jitter else delay
        await asyncio.sleep(current)

        delay = min(delay * config.backoff_factor, config.max_delay)

    assert last_error is not None
    raise RetryExhaustedError(config.max_retries, last_error) from last_error


@dataclass
class RetryResult:
    """Outcome of a retried call with its metadata."""

    attempts: int
    duration: float
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


async def retry_with_result(config: RetryConfig, fn: RetryableFunc[object]) -> RetryResult:
    """Retry fn and report how many attempts it took instead of raising."""
    start = time.monotonic()
    attempts = 0

    async def counted() -> object:
        nonlocal attempts
        attempts += 1
        return await fn()

    error: BaseException | None = None
    try:
        await retry_with_backoff(config, counted)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        error = e

    return RetryResult(attempts=attempts, duration=time.monotonic() - start, error=error)


@dataclass(frozen=True)
class RetryPolicy:
    """Custom retry behaviour: which errors to retry and how long to wait."""

    should_retry: Callable[[BaseException], bool]
    delay: Callable[[int], float]


def linear_retry_policy(
    base_delay: float,
    should_retry: Callable[[BaseException], bool] | None = None,
) -> RetryPolicy:
    """Wait base_delay * (attempt + 1) after each failed attempt."""
    return RetryPolicy(
        should_retry=should_retry or (lambda e: True),
        delay=lambda attempt: base_delay * (attempt + 1),
    )


def exponential_retry_policy(
    base_delay: float,
    max_delay: float,
    should_retry: Callable[[BaseException], bool] | None = None,
) -> RetryPolicy:
    """Wait exponentially longer after each failed attempt."""
    return RetryPolicy(
        should_retry=should_retry or (lambda e: True),
        delay=lambda attempt: exponential_backoff(attempt, base_delay, max_delay),
    )


async def retry_with_policy(policy: RetryPolicy, max_retries: int, fn: RetryableFunc[T]) -> T:
    """Call fn up to max_retries + 1 times following a retry policy."""
    last_error: BaseException | None = None

    for attempt in range(max_retries + 1):
        try:
            return await fn()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            last_error = e
            if not policy.should_retry(e):
                raise

        if attempt < max_retries:
            await asyncio.sleep(policy.delay(attempt))

    assert last_error is not None
    raise RetryExhaustedError(max_retries, last_error) from last_error


class CircuitBreaker:
    """Circuit breaker: stop calling a failing dependency for a while."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"

    def __init__(
        self,
        max_failures: int,
        reset_timeout: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_failures = max_failures
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._failures = 0
        self._last_failure = 0.0
        self._state = self.CLOSED
        self._trial_in_flight = False
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        """Current state; an open breaker past its reset timeout reads half-open."""
        with self._lock:
            self._maybe_half_open()
            return self._state

    @property
    def failures(self) -> int:
        with self._lock:
            return self._failures

    def _maybe_half_open(self) -> None:
        if self._state == self.OPEN and self._clock() - self._last_failure >= self.reset_timeout:
            self._state = self.HALF_OPEN
            self._trial_in_flight = False

    def _before_call(self) -> None:
        with self._lock:
            self._maybe_half_open()
            if self._state == self.OPEN:
                raise CircuitOpenError()
            if self._state == self.HALF_OPEN:
                if self._trial_in_flight:
                    raise CircuitOpenError("circuit breaker is half-open, trial call in progress")
                self._trial_in_flight = True

    def _on_success(self) -> None:
        with self._lock:
            self._failures = 0
            self._state = self.CLOSED
            self._trial_in_flight = False

    def _on_failure(self) -> None:
        with self._lock:
            self._failures += 1
            self._last_failure = self._clock()
            self._trial_in_flight = False
            if self._state == self.HALF_OPEN or self._failures >= self.max_failures:
                self._state = self.OPEN

    async def execute(self, fn: RetryableFunc[T]) -> T:
        """Run an async callable through the breaker."""
        self._before_call()
        try:
            result = await fn()
        except asyncio.CancelledError:
            with self._lock:
                self._trial_in_flight = False
            raise
        except Exception:
            self._on_failure()
            raise
        self._on_success()
        return result

    def call(self, fn: Callable[[], T]) -> T:
        """Run a synchronous callable through the breaker."""
        self._before_call()
        try:
            result = fn()
        except Exception:
            self._on_failure()
            raise
        self._on_success()
        return result
