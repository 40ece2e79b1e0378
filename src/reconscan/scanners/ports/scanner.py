"""TCP connect port scanner."""

import asyncio
import time
from collections.abc import Iterator
from dataclasses import dataclass

from reconscan.core.exceptions import ConfigurationError
from reconscan.infrastructure.concurrency import WorkerPool
from reconscan.infrastructure.ratelimit import RateLimiter
from reconscan.models.options import PortScanOptions
from reconscan.models.ports import PortResult
from reconscan.scanners.base import BaseScanner
from reconscan.scanners.ports.service import ServiceDetector

DEFAULT_PORTS = "1-1000"


@dataclass(frozen=True)
class PortJob:
    host: str
    port: int


def parse_ports(value: str) -> list[int]:
    """Parse "80,443,8080" and "1-1000" style port lists.

    Malformed or out-of-range entries are skipped; duplicates are dropped.
    """
    ports: list[int] = []
    seen: set[int] = set()

    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            start_s, _, end_s = part.partition("-")
            try:
                start, end = int(start_s), int(end_s)
            except ValueError:
                continue
            candidates = range(max(start, 1), min(end, 65535) + 1)
        else:
            try:
                candidates = range(int(part), int(part) + 1)
            except ValueError:
                continue

        for port in candidates:
            if 1 <= port <= 65535 and port not in seen:
                seen.add(port)
                ports.append(port)

    if not ports:
        raise ConfigurationError(f"No valid ports in {value!r}")
    return ports


class PortScanner(BaseScanner[PortResult]):
    """TCP port scanner over the host x port product."""

    def __init__(self, options: PortScanOptions) -> None:
        super().__init__()
        self.options = options
        self.limiter = RateLimiter(options.rate_limit, options.rate_limit)
        self.detector = ServiceDetector(options.timeout)

    @property
    def name(self) -> str:
        return "ports"

    @property
    def description(self) -> str:
        return "TCP port scanning and service detection"

    def get_capabilities(self) -> list[str]:
        return [
            "TCP connect scan",
            "Rate-limited probing",
            "Service detection",
            "Banner grabbing",
        ]

    def _jobs(self) -> Iterator[PortJob]:
        for host in self.options.targets:
            for port in self.options.ports:
                yield PortJob(host=host, port=port)

    async def scan(self) -> list[PortResult]:
        """Scan every target/port pair and return the open ports."""
        if not self.options.targets:
            raise ConfigurationError("At least one target is required")

        start_time = time.monotonic()
        results: list[PortResult] = []

        self.logger.info(
            "port_scan_started",
            targets=len(self.options.targets),
            ports=len(self.options.ports),
            workers=self.options.workers,
        )

        async def worker(worker_id: int, job: PortJob) -> PortResult | None:
            await self.limiter.wait()
            result = await self.scan_port(job.host, job.port)
            if not result.open:
                return None
            if self.options.service_detect:
                info = await self.detector.detect(job.host, job.port)
                result = result.model_copy(update={"service": info.name, "banner": info.banner})
            return result

        async def body() -> None:
            pool: WorkerPool[PortJob, PortResult] = WorkerPool(self.options.workers)
            async for result in pool.stream(self._jobs(), worker):
                self.logger.debug("port_open", host=result.host, port=result.port)
                results.append(result)

        await self._run_with_deadline(body, self.options.deadline_seconds)

        self.logger.info(
            "port_scan_completed",
            open_ports=len(results),
            duration=time.monotonic() - start_time,
        )
        return results

    async def scan_port(self, host: str, port: int) -> PortResult:
        """Check whether a TCP connect to host:port completes in time."""
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port),
                timeout=self.options.timeout,
            )
        except (OSError, asyncio.TimeoutError):
            return PortResult(host=host, port=port, open=False)

        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return PortResult(host=host, port=port, open=True)
