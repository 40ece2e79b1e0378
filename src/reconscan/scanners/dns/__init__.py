"""DNS resolution scanner."""

from reconscan.scanners.dns.resolver import DNSResolver, parse_server

__all__ = ["DNSResolver", "parse_server"]
