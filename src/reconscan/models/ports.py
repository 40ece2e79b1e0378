"""Port scan result models."""

from reconscan.models.base import BaseSchema, ResultRecord


class ServiceInfo(BaseSchema):
    """Detected service information."""

    name: str = "unknown"
    version: str | None = None
    product: str | None = None
    banner: str | None = None


class PortResult(ResultRecord):
    """Single host:port scan result."""

    host: str
    port: int
    open: bool = False
    service: str | None = None
    banner: str | None = None

    @property
    def success(self) -> bool:
        return self.open

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def to_text(self) -> str:
        return f"{self.address} {self.service or ''}".rstrip()
