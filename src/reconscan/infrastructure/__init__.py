"""Infrastructure layer."""

from reconscan.infrastructure.concurrency import (
    ErrorPolicy,
    Semaphore,
    WaitGroup,
    WorkerPool,
    fan_out,
    parallel_map,
)
from reconscan.infrastructure.http import CappedResponse, HTTPClient
from reconscan.infrastructure.ratelimit import (
    AdaptiveRateLimiter,
    PerHostRateLimiter,
    RateLimiter,
    SourceThrottle,
)
from reconscan.infrastructure.retry import (
    CircuitBreaker,
    RetryConfig,
    RetryPolicy,
    retry_with_backoff,
    retry_with_policy,
    retry_with_result,
)
from reconscan.infrastructure.seen import HostSeenSet, SeenSet, URLSeenSet

__all__ = [
    "AdaptiveRateLimiter",
    "CappedResponse",
    "CircuitBreaker",
    "ErrorPolicy",
    "HTTPClient",
    "HostSeenSet",
    "PerHostRateLimiter",
    "RateLimiter",
    "RetryConfig",
    "RetryPolicy",
    "SeenSet",
    "Semaphore",
    "SourceThrottle",
    "URLSeenSet",
    "WaitGroup",
    "WorkerPool",
    "fan_out",
    "parallel_map",
    "retry_with_backoff",
    "retry_with_policy",
    "retry_with_result",
]
