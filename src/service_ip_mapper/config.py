"""
Configuration module for Service IP Mapper.
"""

import os
from dataclasses import dataclass
from typing import Final, Optional

from .errors import ConfigurationError


class DefaultConfiguration:
    """Provides default configuration values."""

    DEFAULT_REGION: Final[str] = "us-west-2"
    DEFAULT_BATCH_SIZE: Final[int] = 5
    DEFAULT_TICK_INTERVAL: Final[float] = 1.5  # seconds between queue drains
    DEFAULT_MAX_LINES: Final[int] = 5000  # retained lines per stream
    DEFAULT_TOP_LIMIT: Final[int] = 10
    DEFAULT_JOB_TIMEOUT: Final[Optional[float]] = None


class LogPatterns:
    """Access-log matching patterns and constants."""

    # Method token, optionally opened by the quote of a combined-log request field
    API_REQUEST_PATTERN: Final[str] = r'(?:^|[\s"])(?:GET|PUT|POST)(?=[\s"])'
    CONNECTION_FAILURE_MARKER: Final[str] = "connect() failed"

    # 3 to 5 dotted digit groups; tolerates compound forwarded-for fields
    IP_PATTERN: Final[str] = r"(?<![\d.])\d+(?:\.\d+){2,4}(?![\d.]*\d)"

    REQUEST_PATH_PATTERN: Final[str] = r"((?:/[\w-]+)+)\s+HTTP"


class RegionResolver:
    """Handles AWS region resolution logic."""

    @staticmethod
    def resolve_region(region: Optional[str] = None) -> str:
        """Resolve AWS region from parameter, environment, or default."""
        if region:
            return region

        return (
            os.environ.get("AWS_REGION")
            or os.environ.get("AWS_DEFAULT_REGION")
            or DefaultConfiguration.DEFAULT_REGION
        )


@dataclass
class MapperConfig:
    """Structured configuration for a single correlation run."""

    group_name: Optional[str]
    stream_prefix: Optional[str] = None
    profile: Optional[str] = None
    region: Optional[str] = None
    batch_size: int = DefaultConfiguration.DEFAULT_BATCH_SIZE
    tick_interval: float = DefaultConfiguration.DEFAULT_TICK_INTERVAL
    max_lines: int = DefaultConfiguration.DEFAULT_MAX_LINES
    top_limit: int = DefaultConfiguration.DEFAULT_TOP_LIMIT
    job_timeout: Optional[float] = DefaultConfiguration.DEFAULT_JOB_TIMEOUT
    debug: bool = False

    def validate(self) -> None:
        """Validate configuration parameters."""
        if not self.group_name:
            raise ConfigurationError("Missing required log group name parameter")
        if self.batch_size <= 0:
            raise ConfigurationError("Batch size must be positive")
        if self.tick_interval < 0:
            raise ConfigurationError("Tick interval cannot be negative")
        if self.max_lines <= 0:
            raise ConfigurationError("Line cap must be positive")
        if self.top_limit <= 0:
            raise ConfigurationError("Top path limit must be positive")
        if self.job_timeout is not None and self.job_timeout <= 0:
            raise ConfigurationError("Job timeout must be positive")

    @property
    def resolved_region(self) -> str:
        return RegionResolver.resolve_region(self.region)
