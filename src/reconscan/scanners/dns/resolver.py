"""Concurrent DNS resolution against a fixed set of upstream servers."""

import asyncio
import time

import dns.asyncresolver
import dns.exception
import dns.resolver

from reconscan.core.exceptions import ReconError
from reconscan.infrastructure.concurrency import WorkerPool
from reconscan.infrastructure.retry import linear_retry_policy, retry_with_policy
from reconscan.infrastructure.targets import parse_server
from reconscan.models.options import ResolverOptions
from reconscan.models.subdomain import ResolutionResult
from reconscan.scanners.base import BaseScanner

RETRY_BASE_DELAY = 0.1

# Failures worth another attempt; NXDOMAIN and NoAnswer are final answers.
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    dns.exception.Timeout,
    dns.resolver.NoNameservers,
    OSError,
)


def is_transient(error: BaseException) -> bool:
    return isinstance(error, TRANSIENT_ERRORS)


class DNSResolver(BaseScanner[ResolutionResult]):
    """Resolves names to A/AAAA addresses with a worker pool."""

    def __init__(self, options: ResolverOptions | None = None) -> None:
        super().__init__()
        self.options = options or ResolverOptions()
        self._resolvers = [self._build_resolver(s) for s in self.options.resolvers]
        self._policy = linear_retry_policy(RETRY_BASE_DELAY, should_retry=is_transient)

    @property
    def name(self) -> str:
        return "dns"

    @property
    def description(self) -> str:
        return "Concurrent A/AAAA resolution with per-worker resolver pinning"

    def get_capabilities(self) -> list[str]:
        return [
            "A/AAAA record lookup",
            "Round-robin resolver assignment",
            "Transient failure retry",
            "Alive filtering",
        ]

    def _build_resolver(self, server: str) -> dns.asyncresolver.Resolver:
        host, port = parse_server(server)
        resolver = dns.asyncresolver.Resolver(configure=False)
        # Port first: nameservers capture it when assigned
        resolver.port = port
        resolver.nameservers = [host]
        resolver.timeout = self.options.timeout
        resolver.lifetime = self.options.timeout
        return resolver

    def resolver_for(self, worker_id: int) -> dns.asyncresolver.Resolver:
        """Resolver pinned to a worker."""
        return self._resolvers[worker_id % len(self._resolvers)]

    async def _query(self, resolver: dns.asyncresolver.Resolver, name: str) -> list[str]:
        answers = await asyncio.gather(
            resolver.resolve(name, "A"),
            resolver.resolve(name, "AAAA"),
            return_exceptions=True,
        )

        ips: list[str] = []
        errors: list[BaseException] = []
        for answer in answers:
            if isinstance(answer, BaseException):
                errors.append(answer)
                continue
            for rdata in answer:
                if rdata.address not in ips:
                    ips.append(rdata.address)

        if ips:
            return ips

        # Prefer reporting a transient error so the lookup gets retried
        for error in errors:
            if is_transient(error):
                raise error
        if errors:
            raise errors[0]
        raise dns.resolver.NoAnswer()

    async def lookup(self, name: str, worker_id: int = 0) -> list[str]:
        """Resolve a name to its addresses, retrying transient failures.

        Raises the DNS error (or RetryExhaustedError) when nothing resolved.
        """
        resolver = self.resolver_for(worker_id)
        return await retry_with_policy(
            self._policy,
            self.options.retries,
            lambda: self._query(resolver, name),
        )

    async def resolve_one(self, subdomain: str, worker_id: int = 0) -> ResolutionResult:
        """Resolve a single subdomain into a result record."""
        try:
            ips = await self.lookup(subdomain, worker_id)
        except (dns.exception.DNSException, ReconError, OSError) as e:
            return ResolutionResult(subdomain=subdomain, alive=False, error=str(e))

        return ResolutionResult(subdomain=subdomain, ips=ips, alive=True)

    async def resolve(self, subdomains: list[str]) -> list[ResolutionResult]:
        """Resolve every subdomain and return the alive ones."""
        start_time = time.monotonic()
        results: list[ResolutionResult] = []

        self.logger.info(
            "dns_resolve_started",
            subdomains=len(subdomains),
            resolvers=len(self._resolvers),
            workers=self.options.workers,
        )

        async def worker(worker_id: int, subdomain: str) -> ResolutionResult | None:
            result = await self.resolve_one(subdomain, worker_id)
            if not result.alive:
                self.logger.debug("dns_resolve_failed", subdomain=subdomain, error=result.error)
                return None
            return result

        async def body() -> None:
            pool: WorkerPool[str, ResolutionResult] = WorkerPool(self.options.workers)
            async for result in pool.stream(subdomains, worker):
                results.append(result)

        await self._run_with_deadline(body, self.options.deadline_seconds)

        self.logger.info(
            "dns_resolve_completed",
            alive=len(results),
            total=len(subdomains),
            duration=time.monotonic() - start_time,
        )
        return results

    async def filter_alive(self, subdomains: list[str]) -> list[str]:
        """Names from the input that resolve to at least one address."""
        return [r.subdomain for r in await self.resolve(subdomains)]
