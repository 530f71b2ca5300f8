"""
Pytest configuration and fixtures for Service IP Mapper tests.
"""

import threading
from collections import defaultdict
from datetime import datetime
from typing import Optional

import pytest

from service_ip_mapper.config import MapperConfig
from service_ip_mapper.errors import UpstreamFetchError
from service_ip_mapper.models import (
    DnsZone,
    LoadBalancer,
    LogEvent,
    LogStreamDescriptor,
    NetworkInterface,
    Page,
    RecordSet,
    SecondaryAddress,
)

BASE_TIMESTAMP = int(datetime(2024, 3, 7, 12, 0, 0).timestamp() * 1000)


def make_events(*messages: str, start: int = BASE_TIMESTAMP) -> list[LogEvent]:
    """Build log events one second apart."""
    return [LogEvent(message, start + i * 1000) for i, message in enumerate(messages)]


class FakeLogProvider:
    """In-memory log stream provider.

    ``pages`` maps a stream name to the pages returned on its 1st, 2nd, ...
    ``get_events`` call. Once a stream runs out of scripted pages it keeps
    returning an empty page with the cursor it was given.
    """

    def __init__(
        self,
        pages: dict[str, list[Page[LogEvent]]],
        idle_streams: tuple[str, ...] = (),
        failing_streams: tuple[str, ...] = (),
        list_error: Optional[Exception] = None,
    ):
        self.pages = pages
        self.idle_streams = idle_streams
        self.failing_streams = failing_streams
        self.list_error = list_error
        self.calls: dict[str, list[tuple[Optional[str], bool]]] = defaultdict(list)
        self.listed: list[tuple[str, Optional[str]]] = []
        self._lock = threading.Lock()

    def list_streams(
        self, group_name: str, name_prefix: Optional[str] = None
    ) -> list[LogStreamDescriptor]:
        self.listed.append((group_name, name_prefix))
        if self.list_error:
            raise self.list_error
        names = list(self.pages) + list(self.failing_streams)
        descriptors = [LogStreamDescriptor(name, True) for name in names]
        descriptors += [LogStreamDescriptor(name, False) for name in self.idle_streams]
        return [d for d in descriptors if not name_prefix or d.name.startswith(name_prefix)]

    def get_events(
        self,
        group_name: str,
        stream_name: str,
        cursor: Optional[str] = None,
        start_from_oldest: bool = False,
    ) -> Page[LogEvent]:
        with self._lock:
            self.calls[stream_name].append((cursor, start_from_oldest))
            index = len(self.calls[stream_name]) - 1
        if stream_name in self.failing_streams:
            raise UpstreamFetchError("GetLogEvents", "Rate exceeded", unit=stream_name)
        scripted = self.pages.get(stream_name, [])
        if index < len(scripted):
            return scripted[index]
        return Page([], cursor)


class RepeatingLogProvider(FakeLogProvider):
    """Returns the same non-empty page and the same cursor forever."""

    def __init__(self, stream_name: str, message: str, cursor: str = "tok1"):
        super().__init__({stream_name: []})
        self.message = message
        self.cursor = cursor

    def get_events(self, group_name, stream_name, cursor=None, start_from_oldest=False):
        self.calls[stream_name].append((cursor, start_from_oldest))
        return Page(make_events(self.message), self.cursor)


class FakeDnsProvider:
    def __init__(
        self,
        zones: dict[DnsZone, list[RecordSet]],
        failing_zones: tuple[str, ...] = (),
        list_error: Optional[Exception] = None,
    ):
        self.zones = zones
        self.failing_zones = failing_zones
        self.list_error = list_error

    def list_zones(self) -> list[DnsZone]:
        if self.list_error:
            raise self.list_error
        return list(self.zones)

    def list_record_sets(self, zone_id: str) -> list[RecordSet]:
        if zone_id in self.failing_zones:
            raise UpstreamFetchError("ListResourceRecordSets", "AccessDenied", unit=zone_id)
        for zone, record_sets in self.zones.items():
            if zone.id == zone_id:
                return record_sets
        return []


class FakeLoadBalancerProvider:
    def __init__(self, load_balancers: list[LoadBalancer]):
        self.load_balancers = load_balancers

    def list_load_balancers(self) -> list[LoadBalancer]:
        return list(self.load_balancers)


class FakeInterfaceProvider:
    def __init__(self, interfaces: list[NetworkInterface]):
        self.interfaces = interfaces
        self.requested: list[list[str]] = []

    def list_interfaces(self, network_ids: list[str]) -> list[NetworkInterface]:
        self.requested.append(list(network_ids))
        return list(self.interfaces)


@pytest.fixture
def dns_provider():
    """Two zones; api.example.com has two weighted record sets."""
    return FakeDnsProvider(
        {
            DnsZone("Z1", "example.com."): [
                RecordSet("api.example.com.", ("1.2.3.4",)),
                RecordSet("api.example.com.", ("1.2.3.5",)),
                RecordSet("www.example.com.", ("lb-123.elb.amazonaws.com",)),
            ],
            DnsZone("Z2", "internal."): [
                RecordSet("db.internal.", ("10.0.1.20",)),
            ],
        }
    )


@pytest.fixture
def load_balancer_provider():
    return FakeLoadBalancerProvider(
        [
            LoadBalancer("vpc-1", "public-alb"),
            LoadBalancer("vpc-1", "internal-nlb"),
            LoadBalancer(None, "classic-ec2"),
        ]
    )


@pytest.fixture
def interface_provider():
    return FakeInterfaceProvider(
        [
            NetworkInterface(
                "eni-aaa",
                "ELB app/public-alb/123",
                "10.0.1.10",
                (
                    SecondaryAddress("10.0.1.10", "1.2.3.4"),
                    SecondaryAddress("10.0.1.11"),
                ),
            ),
        ]
    )


@pytest.fixture
def fast_config():
    """Configuration with a near-zero tick interval for quick test runs."""
    return MapperConfig(group_name="svc-logs", stream_prefix="prod-", tick_interval=0.001)
