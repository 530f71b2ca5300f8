"""
Data model for Service IP Mapper.

Remote provider responses are normalised into these dataclasses at the
boto3 boundary so that the harvesting, registry and correlation stages
never touch raw API payloads.
"""

from dataclasses import dataclass, field
from typing import Any, Final, Generic, Optional, TypeVar

T = TypeVar("T")

DNS_SOURCE: Final[str] = "dns"
INTERFACE_SOURCE: Final[str] = "interface"


@dataclass
class Page(Generic[T]):
    """One page of a cursor-paginated collection."""

    items: list[T]
    next_cursor: Optional[Any] = None


# Log stream provider records


@dataclass(frozen=True)
class LogStreamDescriptor:
    name: str
    has_events: bool


@dataclass(frozen=True)
class LogEvent:
    message: str
    timestamp_millis: int


@dataclass(frozen=True)
class RawLogLine:
    stream_name: str
    message: str
    timestamp_millis: int


@dataclass(frozen=True)
class HarvestJob:
    """A single pagination step for one stream."""

    stream_name: str
    cursor_token: Optional[str] = None
    is_first_page: bool = True


# DNS / network provider records


@dataclass(frozen=True)
class DnsZone:
    id: str
    display_name: str


@dataclass(frozen=True)
class RecordSet:
    name: str
    values: tuple[str, ...] = ()


@dataclass(frozen=True)
class LoadBalancer:
    network_id: Optional[str]
    name: str = ""


@dataclass(frozen=True)
class SecondaryAddress:
    address: str
    public_address: Optional[str] = None


@dataclass(frozen=True)
class NetworkInterface:
    interface_id: str
    description: str
    primary_address: Optional[str]
    secondary_addresses: tuple[SecondaryAddress, ...] = ()


# Registry and correlation records


@dataclass(frozen=True)
class IpSource:
    """Where an infrastructure IP was discovered.

    For DNS sources ``origin`` is the zone display name and ``label`` the
    record set name. For interface sources ``origin`` is the network
    interface id and ``label`` its description.
    """

    kind: str
    origin: str
    label: str

    @classmethod
    def dns(cls, zone: str, resource_name: str) -> "IpSource":
        return cls(DNS_SOURCE, zone, resource_name)

    @classmethod
    def interface(cls, interface_id: str, description: str) -> "IpSource":
        return cls(INTERFACE_SOURCE, interface_id, description)


@dataclass
class InfrastructureIpEntry:
    ip: str
    sources: list[IpSource] = field(default_factory=list)


@dataclass(frozen=True)
class FetchFailure:
    """A remote unit (stream, zone, listing) that could not be fetched."""

    unit: str
    reason: str


@dataclass
class CorrelationResult:
    ip: str
    registry_entry: InfrastructureIpEntry
    top_paths: list[tuple[str, int]]

