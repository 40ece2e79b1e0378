"""HTTP/HTTPS prober."""

import re
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from reconscan.core.exceptions import ConfigurationError, ReconError
from reconscan.infrastructure.concurrency import WorkerPool
from reconscan.infrastructure.http import CappedResponse, HTTPClient
from reconscan.infrastructure.ratelimit import AdaptiveRateLimiter, RateLimiter
from reconscan.infrastructure.retry import linear_retry_policy, retry_with_policy
from reconscan.models.http import ProbeResult
from reconscan.models.options import ProbeOptions
from reconscan.scanners.base import BaseScanner
from reconscan.scanners.http.fingerprints import detect_technologies

BODY_LIMIT = 100 * 1024
RETRY_BASE_DELAY = 0.5
MAX_TITLE_LENGTH = 100

TITLE_PATTERN = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)


def extract_title(body: str) -> str:
    """First <title> text, stripped and truncated."""
    match = TITLE_PATTERN.search(body)
    if not match:
        return ""
    title = match.group(1).strip()
    if len(title) > MAX_TITLE_LENGTH:
        title = title[:MAX_TITLE_LENGTH] + "..."
    return title


def candidate_urls(target: str) -> list[str]:
    """URLs to try for a target: as given with a scheme, else HTTPS then HTTP."""
    target = target.strip()
    if target.startswith(("http://", "https://")):
        return [target]
    return [f"https://{target}", f"http://{target}"]


class HTTPProber(BaseScanner[ProbeResult]):
    """Finds live web services and fingerprints them."""

    def __init__(
        self,
        options: ProbeOptions | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__()
        self.options = options or ProbeOptions()
        self.limiter: RateLimiter | AdaptiveRateLimiter
        if self.options.adaptive_rate:
            rate = self.options.rate_limit
            self.limiter = AdaptiveRateLimiter(
                initial_rate=rate,
                min_rate=max(1.0, rate / 10),
                max_rate=rate * 2,
                target_latency=self.options.target_latency,
            )
        else:
            self.limiter = RateLimiter(self.options.rate_limit, self.options.rate_limit)
        self._policy = linear_retry_policy(RETRY_BASE_DELAY)
        self._transport = transport

    @property
    def name(self) -> str:
        return "http"

    @property
    def description(self) -> str:
        return "HTTP/HTTPS probing with title, server and technology detection"

    def get_capabilities(self) -> list[str]:
        return [
            "HTTPS-first probing",
            "Title extraction",
            "Technology fingerprinting",
            "Redirect tracking",
            "Adaptive rate limiting",
        ]

    @asynccontextmanager
    async def client(self) -> AsyncIterator[HTTPClient]:
        """HTTP client configured from the probe options."""
        async with HTTPClient(
            timeout=self.options.timeout,
            verify=self.options.tls_verify,
            follow_redirects=self.options.follow_redirects,
            max_redirects=self.options.max_redirects,
            user_agent=self.options.user_agent,
            headers=self.options.headers,
            max_connections=self.options.workers,
            transport=self._transport,
        ) as http:
            yield http

    async def probe(self) -> list[ProbeResult]:
        """Probe every target and return those that responded."""
        if not self.options.targets:
            raise ConfigurationError("At least one target is required")

        start_time = time.monotonic()
        results: list[ProbeResult] = []

        self.logger.info(
            "http_probe_started",
            targets=len(self.options.targets),
            workers=self.options.workers,
        )

        async def body() -> None:
            async with self.client() as http:

                async def worker(worker_id: int, target: str) -> ProbeResult | None:
                    result = await self.probe_target(target, http)
                    if not result.success:
                        self.logger.debug("http_probe_no_response", target=target)
                        return None
                    return result

                pool: WorkerPool[str, ProbeResult] = WorkerPool(self.options.workers)
                async for result in pool.stream(self.options.targets, worker):
                    results.append(result)

        await self._run_with_deadline(body, self.options.deadline_seconds)

        self.logger.info(
            "http_probe_completed",
            alive=len(results),
            total=len(self.options.targets),
            duration=time.monotonic() - start_time,
        )
        return results

    async def probe_target(self, target: str, http: HTTPClient | None = None) -> ProbeResult:
        """Probe the candidate URLs of a target, keeping the first that responds."""
        result = ProbeResult(url=target)
        for url in candidate_urls(target):
            result = await self.probe_url(url, http)
            if result.success:
                break
        return result

    async def probe_url(self, url: str, http: HTTPClient | None = None) -> ProbeResult:
        """Probe one URL with retries. status_code is 0 when nothing answered."""
        if http is None:
            async with self.client() as http:
                return await self.probe_url(url, http)

        start = time.monotonic()
        try:
            response = await retry_with_policy(
                self._policy,
                self.options.retries,
                lambda: self._fetch(http, url, BODY_LIMIT),
            )
        except (httpx.HTTPError, OSError, ReconError) as e:
            self.logger.debug("http_probe_failed", url=url, error=str(e))
            return ProbeResult(
                url=url,
                response_time_ms=int((time.monotonic() - start) * 1000),
            )

        return self._build_result(url, response)

    async def _fetch(self, http: HTTPClient, url: str, limit: int) -> CappedResponse:
        await self.limiter.wait()
        response = await http.fetch(url, limit)
        if isinstance(self.limiter, AdaptiveRateLimiter):
            self.limiter.record_latency(response.elapsed)
        return response

    def _build_result(self, url: str, response: CappedResponse) -> ProbeResult:
        title = extract_title(response.body)
        technologies = detect_technologies(response.headers, response.body)

        return ProbeResult(
            url=url,
            status_code=response.status_code,
            content_length=response.content_length,
            content_type=response.header("Content-Type") or None,
            title=title or None,
            server=response.header("Server") or None,
            technologies=technologies or None,
            headers=response.headers or None,
            redirected=True if response.redirected else None,
            final_url=response.final_url if response.redirected else None,
            response_time_ms=int(response.elapsed * 1000),
        )

    async def fetch_page(
        self,
        url: str,
        limit: int,
        http: HTTPClient | None = None,
    ) -> CappedResponse | None:
        """Single rate-limited GET of a page body up to limit bytes."""
        if http is None:
            async with self.client() as http:
                return await self.fetch_page(url, limit, http)

        try:
            return await self._fetch(http, url, limit)
        except (httpx.HTTPError, OSError) as e:
            self.logger.debug("http_fetch_failed", url=url, error=str(e))
            return None

    async def fetch_body(self, url: str, limit: int, http: HTTPClient | None = None) -> str:
        """Body text of a page, empty when it could not be fetched."""
        response = await self.fetch_page(url, limit, http)
        return response.body if response is not None else ""
