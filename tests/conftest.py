"""Pytest configuration and fixtures."""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Iterator

import pytest
import pytest_asyncio

from reconscan.core.config import get_settings
from reconscan.core.logging import setup_logging

ConnectionHandler = Callable[[asyncio.StreamReader, asyncio.StreamWriter], Awaitable[None]]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session", autouse=True)
def quiet_logging() -> None:
    """Route structured logs through stdlib logging at WARNING."""
    setup_logging(level="WARNING", log_format="text")


@pytest.fixture(autouse=True)
def fresh_settings() -> Iterator[None]:
    """Re-read settings from the environment for every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def wordlist(tmp_path):
    """Small bruteforce wordlist with blanks and comments."""
    path = tmp_path / "words.txt"
    path.write_text("www\n\n# comment\napi\n  Mail  \nmissing\n", encoding="utf-8")
    return path


async def start_tcp_server(handler: ConnectionHandler) -> tuple[asyncio.AbstractServer, int]:
    """Listen on an ephemeral localhost port."""
    server = await asyncio.start_server(handler, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    return server, port


@pytest_asyncio.fixture
async def tcp_server() -> AsyncIterator[Callable[[ConnectionHandler], Awaitable[int]]]:
    """Factory starting localhost servers that are closed after the test."""
    servers: list[asyncio.AbstractServer] = []

    async def start(handler: ConnectionHandler) -> int:
        server, port = await start_tcp_server(handler)
        servers.append(server)
        return port

    yield start
    for server in servers:
        server.close()
        await server.wait_closed()


async def _close_quietly(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    writer.close()


@pytest_asyncio.fixture
async def open_port() -> AsyncIterator[int]:
    """A localhost port that accepts connections and closes them at once."""
    server, port = await start_tcp_server(_close_quietly)
    yield port
    server.close()
    await server.wait_closed()


@pytest_asyncio.fixture
async def closed_port() -> int:
    """A localhost port with nothing listening on it."""
    server, port = await start_tcp_server(_close_quietly)
    server.close()
    await server.wait_closed()
    return port
