"""
Traffic aggregation: (IP, request path) hit counts from access-log lines.
"""

import re
from collections import Counter, defaultdict
from typing import Iterable, Optional, Union

from .config import DefaultConfiguration, LogPatterns
from .models import RawLogLine


class LogLineExtractor:
    """Pulls client IPs and the request path out of a raw access-log line."""

    def __init__(
        self,
        ip_pattern: str = LogPatterns.IP_PATTERN,
        path_pattern: str = LogPatterns.REQUEST_PATH_PATTERN,
    ):
        self.ip_pattern = re.compile(ip_pattern)
        self.path_pattern = re.compile(path_pattern)

    def extract_ips(self, message: str) -> list[str]:
        """Every IP-shaped substring, each listed once in order of appearance."""
        return list(dict.fromkeys(self.ip_pattern.findall(message)))

    def extract_path(self, message: str) -> Optional[str]:
        """The run of ``/segment`` components directly before ``HTTP``."""
        if match := self.path_pattern.search(message):
            return match.group(1)
        return None


class TrafficAggregator:
    """Builds the IP -> path -> hit count table.

    Counting is a plain increment per (IP, path), so the result does not
    depend on the order lines arrive in.
    """

    def __init__(self, extractor: Optional[LogLineExtractor] = None):
        self.extractor = extractor or LogLineExtractor()
        self._traffic: defaultdict[str, Counter[str]] = defaultdict(Counter)
        self.skipped = 0

    def add_line(self, line: Union[RawLogLine, str]) -> bool:
        """Count one line. Returns False when the line had no IP or no path."""
        message = line.message if isinstance(line, RawLogLine) else line

        ips = self.extractor.extract_ips(message)
        path = self.extractor.extract_path(message)
        if not ips or path is None:
            self.skipped += 1
            return False

        # Client and forwarded-for addresses are both credited with the request
        for ip in ips:
            self._traffic[ip][path] += 1
        return True

    def add_lines(self, lines: Iterable[Union[RawLogLine, str]]) -> "TrafficAggregator":
        for line in lines:
            self.add_line(line)
        return self

    def __contains__(self, ip: object) -> bool:
        return ip in self._traffic

    def __len__(self) -> int:
        return len(self._traffic)

    def ips(self) -> list[str]:
        return list(self._traffic)

    def hits(self, ip: str) -> dict[str, int]:
        return dict(self._traffic.get(ip, {}))

    def total_hits(self, ip: str) -> int:
        return sum(self._traffic.get(ip, Counter()).values())

    def top_paths(
        self, ip: str, limit: int = DefaultConfiguration.DEFAULT_TOP_LIMIT
    ) -> list[tuple[str, int]]:
        """Largest ``limit`` paths by hit count, ties kept in first-seen order."""
        return self._traffic.get(ip, Counter()).most_common(limit)

    def as_dict(self) -> dict[str, dict[str, int]]:
        return {ip: dict(paths) for ip, paths in self._traffic.items()}


def aggregate_lines(lines: Iterable[Union[RawLogLine, str]]) -> dict[str, dict[str, int]]:
    """Aggregate lines into a plain nested dictionary."""
    return TrafficAggregator().add_lines(lines).as_dict()
