"""
Service IP Mapper package.

Correlates client IPs seen in CloudWatch access-log streams with the
addresses of our own infrastructure (Route53 records and load balancer
network interfaces).
"""

from typing import Final

# Package metadata
__version__: Final[str] = "1.0.0"
__description__: Final[str] = "Correlate access-log client IPs with known infrastructure"

# Public API exports
from .aggregator import LogLineExtractor, TrafficAggregator, aggregate_lines
from .config import DefaultConfiguration, LogPatterns, MapperConfig
from .errors import ConfigurationError, ServiceIpMapperError, UpstreamFetchError
from .harvester import HarvestResult, StreamHarvester, is_api_request
from .mapper import MappingReport, ServiceIpMapper
from .models import CorrelationResult, InfrastructureIpEntry, IpSource, Page
from .paging import PagedFetcher
from .registry import IpRegistry, IpRegistryBuilder
from .reporter import CorrelationReporter
from .work_queue import ThrottledWorkQueue

__all__ = [
    # Pipeline
    "ServiceIpMapper",
    "MappingReport",
    "MapperConfig",
    # Components
    "PagedFetcher",
    "ThrottledWorkQueue",
    "StreamHarvester",
    "HarvestResult",
    "IpRegistry",
    "IpRegistryBuilder",
    "LogLineExtractor",
    "TrafficAggregator",
    "CorrelationReporter",
    "aggregate_lines",
    "is_api_request",
    # Types
    "CorrelationResult",
    "InfrastructureIpEntry",
    "IpSource",
    "Page",
    # Configuration and errors
    "DefaultConfiguration",
    "LogPatterns",
    "ConfigurationError",
    "ServiceIpMapperError",
    "UpstreamFetchError",
]
