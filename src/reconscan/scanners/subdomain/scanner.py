"""Subdomain enumeration from passive sources and DNS bruteforce."""

import asyncio
import time
from collections.abc import Iterator

import dns.exception
import httpx

from reconscan.core.config import get_settings
from reconscan.core.exceptions import ConfigurationError, ReconError
from reconscan.infrastructure.concurrency import ErrorPolicy, WorkerPool, fan_out
from reconscan.infrastructure.http import HTTPClient
from reconscan.infrastructure.ratelimit import SourceThrottle
from reconscan.infrastructure.retry import CircuitBreaker
from reconscan.infrastructure.seen import HostSeenSet
from reconscan.infrastructure.targets import check_readable, iter_lines
from reconscan.models.options import SubdomainOptions
from reconscan.models.subdomain import SubdomainResult
from reconscan.scanners.base import BaseScanner
from reconscan.scanners.dns.resolver import DNSResolver
from reconscan.scanners.subdomain.sources import query_source, select_sources

SOURCE_MAX_FAILURES = 3
SOURCE_RESET_TIMEOUT = 300.0


class SubdomainScanner(BaseScanner[SubdomainResult]):
    """Enumerates subdomains of one domain."""

    def __init__(
        self,
        options: SubdomainOptions,
        resolver: DNSResolver | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__()
        self.options = options
        self.resolver = resolver or DNSResolver(options.resolver)
        self.throttle = SourceThrottle(get_settings().passive_queries_per_minute)
        self.breakers: dict[str, CircuitBreaker] = {}
        self._transport = transport

    @property
    def name(self) -> str:
        return "subdomain"

    @property
    def description(self) -> str:
        return "Passive and bruteforce subdomain enumeration"

    def get_capabilities(self) -> list[str]:
        return [
            "Certificate Transparency (crt.sh)",
            "HackerTarget",
            "ThreatCrowd",
            "AlienVault OTX",
            "Anubis-DB",
            "Wordlist bruteforce",
        ]

    def breaker_for(self, source: str) -> CircuitBreaker:
        """Per-source breaker, kept across enumerations by this scanner."""
        if source not in self.breakers:
            self.breakers[source] = CircuitBreaker(SOURCE_MAX_FAILURES, SOURCE_RESET_TIMEOUT)
        return self.breakers[source]

    def _check_config(self) -> None:
        if not self.options.bruteforce:
            return
        if not self.options.wordlist:
            raise ConfigurationError("Bruteforce requires a wordlist")
        check_readable(self.options.wordlist)

    def _add_result(
        self,
        seen: HostSeenSet,
        results: list[SubdomainResult],
        subdomain: str,
        source: str,
        ips: list[str] | None = None,
    ) -> bool:
        """Record a subdomain unless it was already found by any source."""
        if not seen.mark(subdomain):
            return False
        subdomain = seen.normalize(subdomain) or subdomain
        results.append(SubdomainResult(subdomain=subdomain, source=source, ips=ips))
        self.logger.debug("subdomain_found", subdomain=subdomain, source=source)
        return True

    async def enumerate(self) -> list[SubdomainResult]:
        """Run the enabled enumeration methods and return unique subdomains."""
        self._check_config()

        domain = self.options.domain
        start_time = time.monotonic()
        seen = HostSeenSet()
        results: list[SubdomainResult] = []

        self.logger.info(
            "subdomain_enum_started",
            domain=domain,
            passive=self.options.passive,
            bruteforce=self.options.bruteforce,
        )

        async def passive() -> None:
            await self._passive_enumerate(seen, results)

        async def bruteforce() -> None:
            await self._bruteforce_enumerate(seen, results)

        async def body() -> None:
            tasks = []
            if self.options.passive:
                tasks.append(passive)
            if self.options.bruteforce:
                tasks.append(bruteforce)
            await fan_out(*tasks, policy=ErrorPolicy.COLLECT)

        await self._run_with_deadline(body, self.options.deadline_seconds, target=domain)

        self.logger.info(
            "subdomain_enum_completed",
            domain=domain,
            total_subdomains=len(results),
            duration=time.monotonic() - start_time,
        )
        return results

    async def _passive_enumerate(
        self,
        seen: HostSeenSet,
        results: list[SubdomainResult],
    ) -> None:
        sources = select_sources(self.options.sources)
        domain = self.options.domain

        async with HTTPClient(
            timeout=self.options.http_timeout,
            transport=self._transport,
        ) as http:

            async def run(name: str) -> None:
                try:
                    names = await query_source(
                        name,
                        sources[name],
                        http.client,
                        domain,
                        self.throttle,
                        self.breaker_for(name),
                    )
                except Exception as e:
                    # Sources fail independently
                    self.logger.debug("source_failed", source=name, error=str(e))
                    return
                for subdomain in sorted(names):
                    self._add_result(seen, results, subdomain, name)

            await asyncio.gather(*(run(name) for name in sources))

    def _candidates(self) -> Iterator[str]:
        assert self.options.wordlist is not None
        for word in iter_lines(self.options.wordlist):
            yield f"{word.lower()}.{self.options.domain}"

    async def _bruteforce_enumerate(
        self,
        seen: HostSeenSet,
        results: list[SubdomainResult],
    ) -> None:

        async def worker(worker_id: int, subdomain: str) -> tuple[str, list[str]] | None:
            try:
                ips = await self.resolver.lookup(subdomain, worker_id)
            except (dns.exception.DNSException, ReconError, OSError):
                return None
            return subdomain, ips

        pool: WorkerPool[str, tuple[str, list[str]]] = WorkerPool(self.options.workers)
        async for subdomain, ips in pool.stream(self._candidates(), worker):
            self._add_result(seen, results, subdomain, "bruteforce", ips)
