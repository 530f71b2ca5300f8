"""
Correlation of harvested traffic against the infrastructure registry.
"""

from typing import Iterable, Mapping

from .aggregator import TrafficAggregator
from .config import DefaultConfiguration
from .models import CorrelationResult, FetchFailure
from .registry import IpRegistry


class CorrelationReporter:
    """Joins traffic hit counts with the registry and prints the matches."""

    def __init__(
        self,
        registry: IpRegistry,
        top_limit: int = DefaultConfiguration.DEFAULT_TOP_LIMIT,
    ):
        self.registry = registry
        self.top_limit = top_limit

    def correlate(self, traffic: TrafficAggregator) -> list[CorrelationResult]:
        """Return one result per traffic IP that is also a registry key.

        Results are ordered by total hits, busiest first.
        """
        matches = [ip for ip in traffic.ips() if ip in self.registry]
        matches.sort(key=lambda ip: (-traffic.total_hits(ip), ip))

        return [
            CorrelationResult(
                ip=ip,
                registry_entry=self.registry.get(ip),  # type: ignore[arg-type]
                top_paths=traffic.top_paths(ip, self.top_limit),
            )
            for ip in matches
        ]

    @staticmethod
    def print_matches(results: Iterable[CorrelationResult]) -> None:
        """Print one block per correlated IP."""
        print("\n=== Infrastructure IP Matches ===")

        printed = 0
        for result in results:
            printed += 1
            print(f"\nIP: {result.ip}")
            print("Sources:")
            for source in result.registry_entry.sources:
                print(f"  {source.kind:<10} {source.origin:<30} {source.label}")
            print(f"  {'Path':<50} {'Hits':<10}")
            print("  " + "-" * 60)
            for path, hits in result.top_paths:
                print(f"  {path:<50} {hits:<10}")

        if not printed:
            print("No harvested client IPs matched known infrastructure")

    @staticmethod
    def print_oldest_timestamps(markers: Mapping[str, str]) -> None:
        """Print the oldest-observed date marker of every exhausted stream."""
        print("\n=== Oldest Observed Timestamps ===")
        for stream_name, marker in sorted(markers.items()):
            print(f"{stream_name:<60} {marker}")

    @staticmethod
    def print_failures(failures: Iterable[FetchFailure]) -> None:
        failures = list(failures)
        if not failures:
            return

        print("\n=== Upstream Failures ===")
        for failure in failures:
            print(f"{failure.unit}: {failure.reason}")

    @classmethod
    def print_report(
        cls,
        results: Iterable[CorrelationResult],
        oldest_markers: Mapping[str, str],
        failures: Iterable[FetchFailure] = (),
    ) -> None:
        cls.print_matches(results)
        cls.print_oldest_timestamps(oldest_markers)
        cls.print_failures(failures)
