"""Rate limiting implementation.

Token buckets refill lazily: every call computes the tokens earned since the
previous call, so no background timer is ever needed. A single lock guards
the whole read-modify-write sequence, which keeps the buckets safe for
coroutines and for executor threads alike.
"""

import asyncio
import threading
import time
from collections import deque
from typing import Any, Callable

from aiolimiter import AsyncLimiter

from reconscan.core.interfaces import ILimiter


class RateLimiter(ILimiter):
    """Rate limiter using token bucket algorithm."""

    def __init__(
        self,
        rate: float,
        burst: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize rate limiter.

        Args:
            rate: Tokens added per second (defaults to 10 when not positive)
            burst: Bucket capacity (defaults to the rate when not positive)
            clock: Monotonic time source in seconds
        """
        if rate <= 0:
            rate = 10.0
        if burst <= 0:
            burst = max(1, int(rate))

        self._rate = float(rate)
        self._burst = burst
        self._tokens = float(burst)
        self._clock = clock
        self._last_update = clock()
        self._lock = threading.Lock()

    @property
    def rate(self) -> float:
        with self._lock:
            return self._rate

    @property
    def burst(self) -> int:
        with self._lock:
            return self._burst

    @property
    def tokens(self) -> float:
        """Current token count after refill, without consuming anything."""
        with self._lock:
            self._refill()
            return self._tokens

    def _refill(self) -> None:
        # Caller must hold the lock.
        now = self._clock()
        elapsed = max(0.0, now - self._last_update)
        self._tokens = min(float(self._burst), self._tokens + elapsed * self._rate)
        self._last_update = now

    def allow(self) -> bool:
        """Consume one token if available."""
        return self.allow_n(1)

    def allow_n(self, n: int) -> bool:
        """Consume n tokens if all of them are available."""
        with self._lock:
            self._refill()
            if self._tokens >= n:
                self._tokens -= n
                return True
            return False

    def reserve(self) -> float:
        """Reserve a token and return how many seconds the caller must wait."""
        with self._lock:
            self._refill()
            if self._tokens >= 1:
                self._tokens -= 1
                return 0.0

            wait_time = (1.0 - self._tokens) / self._rate
            self._tokens = 0.0
            return wait_time

    async def wait(self) -> None:
        """Block until a token is available (cancellable)."""
        while not self.allow():
            await asyncio.sleep(1.0 / self.rate)

    def set_rate(self, rate: float) -> None:
        """Update the refill rate."""
        with self._lock:
            self._refill()
            self._rate = float(rate)

    def set_burst(self, burst: int) -> None:
        """Update the bucket capacity, clamping stored tokens."""
        with self._lock:
            self._burst = burst
            if self._tokens > burst:
                self._tokens = float(burst)

    async def __aenter__(self) -> "RateLimiter":
        await self.wait()
        return self

    async def __aexit__(self, *args: Any) -> None:
        pass


class AdaptiveRateLimiter(ILimiter):
    """Rate limiter that slows down or speeds up with observed latency."""

    MAX_SAMPLES = 100
    MIN_SAMPLES = 10

    def __init__(
        self,
        initial_rate: float,
        min_rate: float,
        max_rate: float,
        target_latency: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._limiter = RateLimiter(initial_rate, int(initial_rate), clock=clock)
        self.min_rate = min_rate
        self.max_rate = max_rate
        self.target_latency = target_latency
        self._samples: deque[float] = deque(maxlen=self.MAX_SAMPLES)
        self._lock = threading.Lock()

    @property
    def rate(self) -> float:
        return self._limiter.rate

    @property
    def sample_count(self) -> int:
        with self._lock:
            return len(self._samples)

    def allow(self) -> bool:
        return self._limiter.allow()

    async def wait(self) -> None:
        await self._limiter.wait()

    def record_latency(self, latency: float) -> None:
        """Record a response latency in seconds and adapt the rate."""
        with self._lock:
            self._samples.append(latency)
            if len(self._samples) >= self.MIN_SAMPLES:
                average = sum(self._samples) / len(self._samples)
                self._adjust_rate(average)

    def _adjust_rate(self, average: float) -> None:
        current = self._limiter.rate

        if average > self.target_latency * 2:
            self._limiter.set_rate(max(current * 0.5, self.min_rate))
        elif average > self.target_latency:
            self._limiter.set_rate(max(current * 0.8, self.min_rate))
        elif average < self.target_latency / 2:
            self._limiter.set_rate(min(current * 1.2, self.max_rate))


class PerHostRateLimiter:
    """Independent token bucket per host, created on first use."""

    def __init__(self, rate_per_host: float, burst_per_host: int = 0) -> None:
        self._rate = rate_per_host
        self._burst = burst_per_host
        self._limiters: dict[str, RateLimiter] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._limiters)

    def limiter_for(self, host: str) -> RateLimiter:
        """Get or create the limiter for a host."""
        limiter = self._limiters.get(host)
        if limiter is not None:
            return limiter

        with self._lock:
            # Double check after acquiring the lock
            limiter = self._limiters.get(host)
            if limiter is None:
                limiter = RateLimiter(self._rate, self._burst)
                self._limiters[host] = limiter
            return limiter

    def allow(self, host: str) -> bool:
        return self.limiter_for(host).allow()

    async def wait(self, host: str) -> None:
        await self.limiter_for(host).wait()


class SourceThrottle:
    """Per-minute quotas for third-party APIs, keyed by source name."""

    def __init__(self, queries_per_minute: int) -> None:
        self._queries_per_minute = queries_per_minute
        self._limiters: dict[str, AsyncLimiter] = {}

    def get(self, name: str) -> AsyncLimiter:
        """Get limiter by source name."""
        limiter = self._limiters.get(name)
        if limiter is None:
            limiter = AsyncLimiter(self._queries_per_minute, 60.0)
            self._limiters[name] = limiter
        return limiter

    async def acquire(self, name: str) -> None:
        """Acquire a slot from the named source quota."""
        await self.get(name).acquire()
