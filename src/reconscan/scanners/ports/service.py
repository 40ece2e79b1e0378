"""Service fingerprinting for open TCP ports."""

import asyncio
from types import MappingProxyType

from reconscan.core.logging import get_logger
from reconscan.models.ports import ServiceInfo

logger = get_logger("service_detect")

WELL_KNOWN_PORTS: MappingProxyType[int, str] = MappingProxyType({
    20: "ftp-data",
    21: "ftp",
    22: "ssh",
    23: "telnet",
    25: "smtp",
    53: "dns",
    67: "dhcp",
    68: "dhcp",
    69: "tftp",
    80: "http",
    110: "pop3",
    111: "rpcbind",
    123: "ntp",
    135: "msrpc",
    137: "netbios-ns",
    138: "netbios-dgm",
    139: "netbios-ssn",
    143: "imap",
    161: "snmp",
    162: "snmptrap",
    389: "ldap",
    443: "https",
    445: "microsoft-ds",
    465: "smtps",
    514: "syslog",
    515: "printer",
    587: "submission",
    636: "ldaps",
    873: "rsync",
    993: "imaps",
    995: "pop3s",
    1080: "socks",
    1433: "mssql",
    1434: "mssql-m",
    1521: "oracle",
    1723: "pptp",
    2049: "nfs",
    2082: "cpanel",
    2083: "cpanel-ssl",
    2181: "zookeeper",
    3306: "mysql",
    3389: "ms-wbt-server",
    4369: "epmd",
    5432: "postgresql",
    5672: "amqp",
    5900: "vnc",
    5984: "couchdb",
    6379: "redis",
    6667: "irc",
    8000: "http-alt",
    8080: "http-proxy",
    8443: "https-alt",
    8888: "http-alt",
    9000: "cslistener",
    9090: "zeus-admin",
    9200: "elasticsearch",
    9300: "elasticsearch",
    11211: "memcached",
    27017: "mongodb",
    27018: "mongodb",
    28017: "mongodb-web",
})

# Checked in order, case-insensitively
BANNER_SIGNATURES: tuple[tuple[str, str], ...] = (
    ("ssh", "ssh"),
    ("http", "http"),
    ("smtp", "smtp"),
    ("ftp", "ftp"),
    ("mysql", "mysql"),
    ("postgresql", "postgresql"),
    ("mongodb", "mongodb"),
    ("redis", "redis"),
    ("nginx", "nginx"),
    ("apache", "apache"),
)

PROBES: tuple[bytes, ...] = (
    b"\r\n",
    b"HEAD / HTTP/1.0\r\n\r\n",
    b"HELP\r\n",
)

MAX_BANNER_LENGTH = 256
READ_SIZE = 4096


def clean_banner(raw: bytes | str) -> str:
    """Keep printable ASCII plus CR, LF and TAB; truncate to 256 characters."""
    if isinstance(raw, bytes):
        raw = raw.decode("latin-1")
    kept = [c for c in raw if 32 <= ord(c) < 127 or c in "\r\n\t"]
    return "".join(kept)[:MAX_BANNER_LENGTH]


def _header_value(banner: str, header: str) -> str | None:
    lowered = banner.lower()
    idx = lowered.find(header.lower() + ":")
    if idx == -1:
        return None
    value = banner[idx + len(header) + 1:]
    value = value.split("\r", 1)[0].split("\n", 1)[0].strip()
    return value[:100] or None


def parse_banner(banner: str) -> ServiceInfo | None:
    """Structured parse of well-formed protocol greetings."""
    if not banner:
        return None
    lowered = banner.lower()

    if banner.startswith("SSH-"):
        version = banner[4:50].split("\r", 1)[0].split("\n", 1)[0]
        return ServiceInfo(name="ssh", version=version or None)

    if lowered.startswith("http"):
        return ServiceInfo(name="http", product=_header_value(banner, "Server"))

    if "mysql" in lowered or "mariadb" in lowered:
        return ServiceInfo(name="mysql", product="MariaDB" if "mariadb" in lowered else "MySQL")

    if "postgresql" in lowered:
        return ServiceInfo(name="postgresql")

    if "redis" in lowered or banner[0] in "+-":
        return ServiceInfo(name="redis")

    if banner.startswith(("220", "250 ")):
        if "smtp" in lowered or "mail" in lowered:
            return ServiceInfo(name="smtp")
        if banner.startswith("220"):
            return ServiceInfo(name="ftp")

    return None


def identify_from_banner(banner: str) -> str:
    """Map a banner to a service label by signature substring."""
    lowered = banner.lower()
    for signature, service in BANNER_SIGNATURES:
        if signature in lowered:
            return service
    return "unknown"


class ServiceDetector:
    """Identifies the service listening on an open port."""

    def __init__(self, timeout: float = 5.0) -> None:
        self.timeout = timeout if timeout > 0 else 5.0

    async def grab_banner(self, host: str, port: int) -> str:
        """Read the service greeting, sending generic probes on silence."""
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port),
                timeout=self.timeout,
            )
        except (OSError, asyncio.TimeoutError):
            return ""

        data = b""
        try:
            data = await self._read(reader)
            if not data:
                for probe in PROBES:
                    writer.write(probe)
                    await writer.drain()
                    data = await self._read(reader)
                    if data or reader.at_eof():
                        break
        except OSError as e:
            logger.debug("banner_grab_failed", host=host, port=port, error=str(e))
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass

        return clean_banner(data) if data else ""

    async def _read(self, reader: asyncio.StreamReader) -> bytes:
        try:
            return await asyncio.wait_for(reader.read(READ_SIZE), timeout=self.timeout)
        except asyncio.TimeoutError:
            return b""

    async def detect(self, host: str, port: int) -> ServiceInfo:
        """Well-known port first, then banner parsing, then signatures."""
        name = WELL_KNOWN_PORTS.get(port)
        if name:
            return ServiceInfo(name=name)

        banner = await self.grab_banner(host, port)
        if not banner:
            return ServiceInfo()

        parsed = parse_banner(banner)
        if parsed is not None:
            return parsed.model_copy(update={"banner": banner})

        return ServiceInfo(name=identify_from_banner(banner), banner=banner)
