"""
End-to-end correlation run.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from .aggregator import TrafficAggregator
from .config import MapperConfig
from .harvester import HarvestResult, StreamHarvester
from .models import CorrelationResult, FetchFailure
from .registry import IpRegistryBuilder, RegistryBuild
from .reporter import CorrelationReporter
from .work_queue import ThrottledWorkQueue

logger = logging.getLogger(__name__)


@dataclass
class MappingReport:
    results: list[CorrelationResult]
    oldest_markers: dict[str, str]
    failures: list[FetchFailure] = field(default_factory=list)
    streams_listed: int = 0
    streams_with_requests: int = 0
    lines_retained: int = 0
    registry_size: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [asdict(result) for result in self.results],
            "oldest_timestamps": dict(self.oldest_markers),
            "failures": [asdict(failure) for failure in self.failures],
            "streams_listed": self.streams_listed,
            "streams_with_requests": self.streams_with_requests,
            "lines_retained": self.lines_retained,
            "registry_size": self.registry_size,
        }


class ServiceIpMapper:
    """Correlates a log group's client IPs with known infrastructure addresses."""

    def __init__(
        self,
        config: MapperConfig,
        log_provider: Any,
        dns_provider: Any,
        load_balancer_provider: Any,
        interface_provider: Any,
    ):
        config.validate()
        self.config = config
        self.queue = ThrottledWorkQueue(
            batch_size=config.batch_size,
            tick_interval=config.tick_interval,
            job_timeout=config.job_timeout,
        )
        self.harvester = StreamHarvester(log_provider, self.queue, config.max_lines)
        self.registry_builder = IpRegistryBuilder(
            dns_provider, load_balancer_provider, interface_provider
        )

    async def generate_ip_mapping(self) -> MappingReport:
        """Harvest and build the registry concurrently, then correlate."""
        harvest, build = await asyncio.gather(
            self.harvester.harvest(self.config.group_name, self.config.stream_prefix),  # type: ignore[arg-type]
            self.registry_builder.build(),
        )
        return self.correlate(harvest, build)

    def correlate(self, harvest: HarvestResult, build: RegistryBuild) -> MappingReport:
        lines = harvest.all_lines()
        traffic = TrafficAggregator().add_lines(lines)
        logger.info(
            "Aggregated %d lines into %d client IPs (%d skipped)",
            len(lines),
            len(traffic),
            traffic.skipped,
        )

        reporter = CorrelationReporter(build.registry, self.config.top_limit)
        return MappingReport(
            results=reporter.correlate(traffic),
            oldest_markers=harvest.oldest_markers,
            failures=harvest.failures + build.failures,
            streams_listed=harvest.streams_listed,
            streams_with_requests=len(harvest.streams),
            lines_retained=len(lines),
            registry_size=len(build.registry),
        )
