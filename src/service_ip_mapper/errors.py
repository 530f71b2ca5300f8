"""
Exception types for Service IP Mapper.
"""

from typing import Optional


class ServiceIpMapperError(Exception):
    """Base class for all mapper errors."""


class ConfigurationError(ServiceIpMapperError, ValueError):
    """Raised when required run parameters are missing or invalid."""


class UpstreamFetchError(ServiceIpMapperError, RuntimeError):
    """Raised when a remote provider call fails or returns a malformed response."""

    def __init__(self, operation: str, message: str, unit: Optional[str] = None):
        self.operation = operation
        self.unit = unit
        super().__init__(f"{operation} failed: {message}")
