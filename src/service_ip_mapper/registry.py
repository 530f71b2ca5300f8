"""
Infrastructure IP registry.

Builds the lookup of addresses that belong to our own infrastructure by
merging DNS record data with load balancer network interface data.
"""

import asyncio
import ipaddress
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Optional

from .errors import UpstreamFetchError
from .models import (
    DnsZone,
    FetchFailure,
    InfrastructureIpEntry,
    IpSource,
    NetworkInterface,
    RecordSet,
)

logger = logging.getLogger(__name__)


def looks_like_ip(value: str) -> bool:
    """Check whether a record value is a literal IP address."""
    try:
        ipaddress.ip_address(value.strip())
        return True
    except ValueError:
        return False


class IpRegistry:
    """Mapping of IP -> InfrastructureIpEntry with append-only merge semantics.

    Upserting an IP that already exists appends the new sources to the
    existing entry; no source ever replaces another.
    """

    def __init__(self) -> None:
        self._entries: dict[str, InfrastructureIpEntry] = {}

    def upsert(self, ip: str, sources: Iterable[IpSource]) -> InfrastructureIpEntry:
        new_sources = list(sources)
        if not new_sources:
            raise ValueError(f"Cannot register {ip} without a source")

        if entry := self._entries.get(ip):
            entry.sources.extend(new_sources)
        else:
            entry = self._entries[ip] = InfrastructureIpEntry(ip, new_sources)
        return entry

    def merge(self, other: "IpRegistry") -> None:
        for entry in other:
            self.upsert(entry.ip, entry.sources)

    def get(self, ip: str) -> Optional[InfrastructureIpEntry]:
        return self._entries.get(ip)

    def __contains__(self, ip: object) -> bool:
        return ip in self._entries

    def __iter__(self) -> Iterator[InfrastructureIpEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def ips(self) -> set[str]:
        return set(self._entries)


@dataclass
class RegistryBuild:
    registry: IpRegistry
    failures: list[FetchFailure] = field(default_factory=list)


class DnsRegistryBuilder:
    """Registers every IP-valued DNS record of every zone."""

    def __init__(self, dns_provider: Any):
        self.dns_provider = dns_provider

    async def build(self) -> RegistryBuild:
        build = RegistryBuild(IpRegistry())

        try:
            zones = await asyncio.to_thread(self.dns_provider.list_zones)
        except UpstreamFetchError as e:
            logger.warning("Could not list DNS zones: %s", e)
            build.failures.append(FetchFailure("dns zones", str(e)))
            return build

        outcomes = await asyncio.gather(
            *(self._zone_registry(zone) for zone in zones), return_exceptions=True
        )
        for zone, outcome in zip(zones, outcomes):
            if isinstance(outcome, UpstreamFetchError):
                logger.warning(
                    "Could not list records for %s: %s", zone.display_name, outcome
                )
                build.failures.append(
                    FetchFailure(f"zone {zone.display_name}", str(outcome))
                )
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                build.registry.merge(outcome)

        logger.info(
            "DNS registry: %d IPs from %d zones", len(build.registry), len(zones)
        )
        return build

    async def _zone_registry(self, zone: DnsZone) -> IpRegistry:
        record_sets = await asyncio.to_thread(
            self.dns_provider.list_record_sets, zone.id
        )
        return self.zone_registry(zone, record_sets)

    @staticmethod
    def zone_registry(zone: DnsZone, record_sets: Iterable[RecordSet]) -> IpRegistry:
        """Build the registry slice for one zone."""
        # Record sets sharing a name (e.g. weighted routing) pool their values
        values_by_name: dict[str, list[str]] = {}
        for record_set in record_sets:
            values_by_name.setdefault(record_set.name, []).extend(record_set.values)

        registry = IpRegistry()
        for name, values in values_by_name.items():
            for value in values:
                if looks_like_ip(value):
                    registry.upsert(
                        value.strip(), [IpSource.dns(zone.display_name, name)]
                    )
        return registry


class InterfaceRegistryBuilder:
    """Registers the addresses of network interfaces in load balancer networks."""

    def __init__(self, load_balancer_provider: Any, interface_provider: Any):
        self.load_balancer_provider = load_balancer_provider
        self.interface_provider = interface_provider

    async def build(self) -> RegistryBuild:
        build = RegistryBuild(IpRegistry())

        try:
            load_balancers = await asyncio.to_thread(
                self.load_balancer_provider.list_load_balancers
            )
            network_ids = sorted(
                {lb.network_id for lb in load_balancers if lb.network_id}
            )
            if not network_ids:
                logger.info("No load balancer networks found")
                return build
            interfaces = await asyncio.to_thread(
                self.interface_provider.list_interfaces, network_ids
            )
        except UpstreamFetchError as e:
            logger.warning("Could not list network interfaces: %s", e)
            build.failures.append(FetchFailure("network interfaces", str(e)))
            return build

        for interface in interfaces:
            source = IpSource.interface(interface.interface_id, interface.description)
            for ip in self.interface_addresses(interface):
                build.registry.upsert(ip, [source])

        logger.info(
            "Interface registry: %d IPs from %d interfaces in %d networks",
            len(build.registry),
            len(interfaces),
            len(network_ids),
        )
        return build

    @staticmethod
    def interface_addresses(interface: NetworkInterface) -> list[str]:
        """Primary private address, then each secondary address and its public address."""
        addresses: list[str] = []

        def add(address: Optional[str]) -> None:
            if address and address not in addresses:
                addresses.append(address)

        add(interface.primary_address)
        for secondary in interface.secondary_addresses:
            add(secondary.address)
            add(secondary.public_address)
        return addresses


class IpRegistryBuilder:
    """Runs the DNS and interface sub-builds concurrently and merges them."""

    def __init__(
        self, dns_provider: Any, load_balancer_provider: Any, interface_provider: Any
    ):
        self.dns_builder = DnsRegistryBuilder(dns_provider)
        self.interface_builder = InterfaceRegistryBuilder(
            load_balancer_provider, interface_provider
        )

    async def build(self) -> RegistryBuild:
        dns_build, interface_build = await asyncio.gather(
            self.dns_builder.build(), self.interface_builder.build()
        )
        return merge_builds(dns_build, interface_build)


def merge_builds(*builds: RegistryBuild) -> RegistryBuild:
    """Union sub-builds in the given order; the resulting key set is order independent."""
    merged = RegistryBuild(IpRegistry())
    for build in builds:
        merged.registry.merge(build.registry)
        merged.failures.extend(build.failures)
    return merged
