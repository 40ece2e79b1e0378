"""Pydantic data models for reconscan."""

from reconscan.models.base import BaseSchema, ResultRecord, utc_now
from reconscan.models.http import (
    AnalysisResult,
    CrawlResult,
    FormDetails,
    ProbeResult,
    SecurityHeaders,
)
from reconscan.models.options import (
    CrawlOptions,
    PortScanOptions,
    ProbeOptions,
    ResolverOptions,
    ScanOptions,
    SubdomainOptions,
)
from reconscan.models.ports import PortResult, ServiceInfo
from reconscan.models.subdomain import ResolutionResult, SubdomainResult

__all__ = [
    # Base
    "BaseSchema",
    "ResultRecord",
    "utc_now",
    # Options
    "ScanOptions",
    "ResolverOptions",
    "SubdomainOptions",
    "PortScanOptions",
    "ProbeOptions",
    "CrawlOptions",
    # Subdomain / DNS
    "SubdomainResult",
    "ResolutionResult",
    # Ports
    "ServiceInfo",
    "PortResult",
    # HTTP
    "ProbeResult",
    "CrawlResult",
    "FormDetails",
    "SecurityHeaders",
    "AnalysisResult",
]
