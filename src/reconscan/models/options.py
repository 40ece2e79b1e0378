"""Per-scanner options. Unset values fall back to the environment settings."""

import re

from pydantic import Field, field_validator

from reconscan.core.config import get_settings
from reconscan.core.exceptions import ConfigurationError
from reconscan.infrastructure.targets import parse_server
from reconscan.models.base import BaseSchema

DOMAIN_PATTERN = re.compile(
    r"^(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,}$"
)


def _deadline() -> float:
    return get_settings().scan_deadline_minutes


class ScanOptions(BaseSchema):
    """Options common to every scanner."""

    workers: int = Field(default=10, ge=1)
    deadline_minutes: float = Field(default_factory=_deadline, gt=0)

    @property
    def deadline_seconds(self) -> float:
        return self.deadline_minutes * 60


class ResolverOptions(ScanOptions):
    """DNS resolver options."""

    resolvers: list[str] = Field(default_factory=lambda: list(get_settings().dns_resolvers))
    timeout: float = Field(default_factory=lambda: get_settings().dns_timeout, gt=0)
    retries: int = Field(default_factory=lambda: get_settings().dns_retries, ge=0)
    workers: int = Field(default_factory=lambda: get_settings().dns_workers, ge=1)

    @field_validator("resolvers")
    @classmethod
    def validate_resolvers(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one DNS resolver is required")
        for server in v:
            try:
                parse_server(server)
            except ConfigurationError as e:
                raise ValueError(e.message) from None
        return v


class SubdomainOptions(ScanOptions):
    """Subdomain enumeration options."""

    domain: str
    wordlist: str | None = None
    passive: bool = True
    bruteforce: bool = False
    sources: list[str] | None = None
    workers: int = Field(default_factory=lambda: get_settings().subdomain_workers, ge=1)
    http_timeout: float = Field(default_factory=lambda: get_settings().passive_timeout, gt=0)
    resolver: ResolverOptions = Field(default_factory=ResolverOptions)

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        v = v.strip().lower().rstrip(".")
        if len(v) > 253:
            raise ValueError("Domain too long (max 253 characters)")
        if not DOMAIN_PATTERN.match(v):
            raise ValueError(f"Invalid domain format: {v}")
        return v


class PortScanOptions(ScanOptions):
    """TCP port scan options."""

    targets: list[str]
    ports: list[int]
    workers: int = Field(default_factory=lambda: get_settings().port_scan_workers, ge=1)
    timeout: float = Field(default_factory=lambda: get_settings().port_scan_timeout, gt=0)
    rate_limit: int = Field(default_factory=lambda: get_settings().port_scans_per_second, ge=1)
    service_detect: bool = False

    @field_validator("ports")
    @classmethod
    def validate_ports(cls, v: list[int]) -> list[int]:
        for port in v:
            if not 1 <= port <= 65535:
                raise ValueError(f"Invalid port: {port}")
        return v


class ProbeOptions(ScanOptions):
    """HTTP probe options."""

    targets: list[str] = Field(default_factory=list)
    workers: int = Field(default_factory=lambda: get_settings().http_workers, ge=1)
    timeout: float = Field(default_factory=lambda: get_settings().http_timeout, gt=0)
    follow_redirects: bool = True
    max_redirects: int = Field(default_factory=lambda: get_settings().http_max_redirects, ge=0)
    tls_verify: bool = False
    retries: int = Field(default_factory=lambda: get_settings().http_retries, ge=0)
    rate_limit: int = Field(
        default_factory=lambda: get_settings().http_requests_per_second, ge=1
    )
    adaptive_rate: bool = False
    target_latency: float = Field(default=1.0, gt=0)
    user_agent: str = Field(default_factory=lambda: get_settings().user_agent)
    headers: dict[str, str] = Field(default_factory=dict)


class CrawlOptions(ScanOptions):
    """Web crawler options."""

    start_urls: list[str]
    max_depth: int = Field(default_factory=lambda: get_settings().crawl_max_depth, ge=0)
    max_urls: int = Field(default_factory=lambda: get_settings().crawl_max_urls, ge=1)
    workers: int = Field(default_factory=lambda: get_settings().crawl_workers, ge=1)
    timeout: float = Field(default_factory=lambda: get_settings().http_timeout, gt=0)
    rate_limit: int = Field(
        default_factory=lambda: get_settings().crawl_requests_per_second, ge=1
    )
    per_host_rate: int = Field(
        default_factory=lambda: get_settings().crawl_requests_per_host, ge=1
    )
    same_host: bool = True
    js_parse: bool = True
    user_agent: str = Field(default_factory=lambda: get_settings().crawl_user_agent)
