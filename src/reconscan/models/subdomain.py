"""Subdomain enumeration and DNS resolution result models."""

from pydantic import Field

from reconscan.models.base import ResultRecord


class SubdomainResult(ResultRecord):
    """Discovered subdomain."""

    subdomain: str
    ips: list[str] | None = None
    source: str

    def to_text(self) -> str:
        return self.subdomain


class ResolutionResult(ResultRecord):
    """Outcome of resolving one subdomain."""

    subdomain: str
    ips: list[str] = Field(default_factory=list)
    alive: bool = False
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.alive

    def to_text(self) -> str:
        return self.subdomain
