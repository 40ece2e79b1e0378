"""Port scanner and service detection."""

from reconscan.scanners.ports.scanner import DEFAULT_PORTS, PortJob, PortScanner, parse_ports
from reconscan.scanners.ports.service import ServiceDetector

__all__ = ["DEFAULT_PORTS", "PortJob", "PortScanner", "ServiceDetector", "parse_ports"]
