"""Core module - configuration, logging, and interfaces."""

from reconscan.core.config import Settings, get_settings
from reconscan.core.exceptions import (
    AggregateError,
    CircuitOpenError,
    ConfigurationError,
    PoolClosedError,
    ReconError,
    RetryExhaustedError,
)

__all__ = [
    "Settings",
    "get_settings",
    "ReconError",
    "ConfigurationError",
    "RetryExhaustedError",
    "CircuitOpenError",
    "PoolClosedError",
    "AggregateError",
]
