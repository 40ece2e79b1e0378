"""Passive subdomain sources.

Each fetcher takes a shared client and the target domain and returns the raw
names the source knows about. Filtering to the target domain happens once,
in ``query_source``.
"""

import re
from types import MappingProxyType
from typing import Awaitable, Callable, Iterable

import httpx

from reconscan.core.exceptions import CircuitOpenError
from reconscan.core.logging import get_logger
from reconscan.infrastructure.ratelimit import SourceThrottle
from reconscan.infrastructure.retry import CircuitBreaker

logger = get_logger("subdomain_sources")

HOSTNAME_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9\-.]*[a-z0-9])?$")

SourceFunc = Callable[[httpx.AsyncClient, str], Awaitable[set[str]]]


def normalize_name(name: str) -> str:
    """Lowercase, drop a wildcard prefix and the trailing dot."""
    name = name.strip().lower()
    if name.startswith("*."):
        name = name[2:]
    return name.rstrip(".")


def filter_subdomains(names: Iterable[object], domain: str) -> set[str]:
    """Keep valid hostnames that are the domain or one of its subdomains.

    Sources return decoded JSON, so non-string entries are skipped.
    """
    domain = domain.lower()
    valid = set()

    for name in names:
        if not isinstance(name, str):
            continue
        name = normalize_name(name)
        if name != domain and not name.endswith("." + domain):
            continue
        if "*" in name or not HOSTNAME_PATTERN.match(name):
            continue
        valid.add(name)

    return valid


async def fetch_crtsh(client: httpx.AsyncClient, domain: str) -> set[str]:
    """Certificate Transparency logs via crt.sh."""
    subdomains: set[str] = set()
    response = await client.get("https://crt.sh/", params={"q": f"%.{domain}", "output": "json"})
    if response.status_code == 200:
        for entry in response.json():
            for name in entry.get("name_value", "").split("\n"):
                subdomains.add(name)
    return subdomains


async def fetch_hackertarget(client: httpx.AsyncClient, domain: str) -> set[str]:
    """HackerTarget host search (CSV lines of host,ip)."""
    subdomains: set[str] = set()
    response = await client.get("https://api.hackertarget.com/hostsearch/", params={"q": domain})
    if response.status_code == 200 and "error" not in response.text.lower():
        for line in response.text.splitlines():
            host = line.split(",")[0].strip()
            if host:
                subdomains.add(host)
    return subdomains


async def fetch_threatcrowd(client: httpx.AsyncClient, domain: str) -> set[str]:
    """ThreatCrowd domain report."""
    response = await client.get(
        "https://www.threatcrowd.org/searchApi/v2/domain/report/",
        params={"domain": domain},
    )
    if response.status_code != 200:
        return set()
    return set(response.json().get("subdomains") or [])


async def fetch_alienvault(client: httpx.AsyncClient, domain: str) -> set[str]:
    """AlienVault OTX passive DNS."""
    response = await client.get(
        f"https://otx.alienvault.com/api/v1/indicators/domain/{domain}/passive_dns"
    )
    if response.status_code != 200:
        return set()
    return {
        record.get("hostname", "")
        for record in response.json().get("passive_dns") or []
    }


async def fetch_anubis(client: httpx.AsyncClient, domain: str) -> set[str]:
    """Anubis-DB subdomain list."""
    response = await client.get(f"https://jldc.me/anubis/subdomains/{domain}")
    if response.status_code != 200:
        return set()
    data = response.json()
    return set(data) if isinstance(data, list) else set()


SOURCES: MappingProxyType[str, SourceFunc] = MappingProxyType({
    "crtsh": fetch_crtsh,
    "hackertarget": fetch_hackertarget,
    "threatcrowd": fetch_threatcrowd,
    "alienvault": fetch_alienvault,
    "anubis": fetch_anubis,
})


def select_sources(names: list[str] | None) -> dict[str, SourceFunc]:
    """Sources restricted to the given names, or all of them."""
    if not names:
        return dict(SOURCES)
    return {name: fn for name, fn in SOURCES.items() if name in names}


async def query_source(
    name: str,
    fn: SourceFunc,
    client: httpx.AsyncClient,
    domain: str,
    throttle: SourceThrottle | None = None,
    breaker: CircuitBreaker | None = None,
) -> set[str]:
    """Run one source; any failure yields an empty set.

    A source whose breaker is open is skipped without a request.
    """

    async def fetch() -> set[str]:
        if throttle is not None:
            await throttle.acquire(name)
        return await fn(client, domain)

    try:
        names = await (breaker.execute(fetch) if breaker is not None else fetch())
        found = filter_subdomains(names, domain)
    except CircuitOpenError:
        logger.debug("source_skipped", source=name, reason="circuit_open")
        return set()
    except (httpx.HTTPError, ValueError, TypeError, AttributeError) as e:
        logger.debug("source_failed", source=name, error=str(e))
        return set()

    logger.debug("source_completed", source=name, subdomains=len(found))
    return found
