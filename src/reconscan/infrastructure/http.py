"""HTTP client wrapper."""

import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from reconscan.core.config import get_settings

DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


@dataclass
class CappedResponse:
    """Response whose body was read up to a byte limit."""

    url: str
    final_url: str
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""
    content_length: int = -1
    elapsed: float = 0.0
    truncated: bool = False
    redirected: bool = False

    def header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default


def collect_headers(headers: httpx.Headers) -> dict[str, str]:
    """Headers keyed by their original spelling, repeated values joined."""
    collected: dict[str, str] = {}
    for raw_name, raw_value in headers.raw:
        name = raw_name.decode("latin-1")
        value = raw_value.decode("latin-1")
        if name in collected:
            collected[name] = f"{collected[name]}, {value}"
        else:
            collected[name] = value
    return collected


class HTTPClient:
    """Async HTTP client wrapper."""

    def __init__(
        self,
        timeout: float | None = None,
        verify: bool = True,
        follow_redirects: bool = True,
        max_redirects: int | None = None,
        user_agent: str | None = None,
        headers: dict[str, str] | None = None,
        max_connections: int = 100,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.timeout = timeout or settings.http_timeout
        self.verify = verify
        self.follow_redirects = follow_redirects
        self.max_redirects = (
            settings.http_max_redirects if max_redirects is None else max_redirects
        )
        self.headers = {
            "User-Agent": user_agent or settings.user_agent,
            "Accept": DEFAULT_ACCEPT,
            "Accept-Language": "en-US,en;q=0.5",
        }
        self.headers.update(headers or {})
        self.max_connections = max_connections
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPClient":
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            verify=self.verify,
            follow_redirects=self.follow_redirects,
            max_redirects=self.max_redirects,
            headers=self.headers,
            limits=httpx.Limits(
                max_connections=self.max_connections,
                max_keepalive_connections=min(self.max_connections, 20),
                keepalive_expiry=90.0,
            ),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("Client not initialized. Use async with.")
        return self._client

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Make GET request."""
        return await self.client.get(url, **kwargs)

    async def fetch(self, url: str, body_limit: int) -> CappedResponse:
        """GET a URL, reading at most body_limit bytes of the body."""
        start = time.monotonic()
        async with self.client.stream("GET", url) as response:
            # Measured up to the response headers
            elapsed = time.monotonic() - start
            chunks: list[bytes] = []
            size = 0
            truncated = False
            async for chunk in response.aiter_bytes():
                remaining = body_limit - size
                if len(chunk) >= remaining:
                    chunks.append(chunk[:remaining])
                    size = body_limit
                    truncated = len(chunk) > remaining
                    break
                chunks.append(chunk)
                size += len(chunk)

            try:
                content_length = int(response.headers.get("Content-Length", "-1"))
            except ValueError:
                content_length = -1

            encoding = response.charset_encoding or "utf-8"
            try:
                body = b"".join(chunks).decode(encoding, errors="replace")
            except LookupError:
                body = b"".join(chunks).decode("utf-8", errors="replace")

            return CappedResponse(
                url=url,
                final_url=str(response.url),
                status_code=response.status_code,
                headers=collect_headers(response.headers),
                body=body,
                content_length=content_length,
                elapsed=elapsed,
                truncated=truncated,
                redirected=bool(response.history),
            )
