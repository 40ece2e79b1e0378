"""Subdomain enumeration scanner."""

from reconscan.scanners.subdomain.scanner import SubdomainScanner
from reconscan.scanners.subdomain.sources import SOURCES, filter_subdomains

__all__ = ["SOURCES", "SubdomainScanner", "filter_subdomains"]
