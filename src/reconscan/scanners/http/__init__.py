"""HTTP probing, crawling, and response analysis."""

from reconscan.scanners.http.analyzer import analyze
from reconscan.scanners.http.crawler import WebCrawler, discover_links
from reconscan.scanners.http.fingerprints import Fingerprint, detect_technologies
from reconscan.scanners.http.prober import HTTPProber, candidate_urls, extract_title

__all__ = [
    "Fingerprint",
    "HTTPProber",
    "WebCrawler",
    "analyze",
    "candidate_urls",
    "detect_technologies",
    "discover_links",
    "extract_title",
]
