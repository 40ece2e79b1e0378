"""Scanner modules."""

from reconscan.scanners.base import BaseScanner
from reconscan.scanners.dns import DNSResolver
from reconscan.scanners.http import HTTPProber, WebCrawler, analyze
from reconscan.scanners.ports import PortScanner, ServiceDetector
from reconscan.scanners.subdomain import SubdomainScanner

__all__ = [
    "BaseScanner",
    "DNSResolver",
    "HTTPProber",
    "PortScanner",
    "ServiceDetector",
    "SubdomainScanner",
    "WebCrawler",
    "analyze",
]
