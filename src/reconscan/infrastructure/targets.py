"""Readers for the newline-delimited target lists and wordlists."""

from collections.abc import Iterator
from pathlib import Path

from reconscan.core.exceptions import ConfigurationError


def iter_lines(path: str | Path) -> Iterator[str]:
    """Yield non-blank lines that are not # comments, stripped."""
    with open(path, encoding="utf-8", errors="replace") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#"):
                yield line


def read_lines(path: str | Path) -> list[str]:
    """Read a target list or wordlist, failing with a configuration error."""
    try:
        return list(iter_lines(path))
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read {path}: {e.strerror or e}",
            details={"path": str(path)},
        ) from e


def check_readable(path: str | Path) -> None:
    """Fail fast when a list file cannot be opened."""
    try:
        with open(path, encoding="utf-8"):
            pass
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read {path}: {e.strerror or e}",
            details={"path": str(path)},
        ) from e


def parse_targets(value: str) -> list[str]:
    """A path to an existing list file, or else a single target value."""
    value = value.strip()
    if not value:
        raise ConfigurationError("Target is required")
    if Path(value).is_file():
        return read_lines(value)
    return [value]


def _server_port(value: str, server: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise ConfigurationError(f"Invalid resolver port in {server!r}") from None
    if not 1 <= port <= 65535:
        raise ConfigurationError(f"Resolver port out of range in {server!r}")
    return port


def parse_server(server: str) -> tuple[str, int]:
    """Split "host[:port]" (IPv6 as "[addr]:port") into host and port."""
    server = server.strip()
    if server.startswith("["):
        host, _, rest = server[1:].partition("]")
        port = rest.lstrip(":")
        return host, _server_port(port, server) if port else 53
    if server.count(":") == 1:
        host, port = server.split(":")
        return host, _server_port(port, server)
    return server, 53
