"""
AWS providers for Service IP Mapper.

Each provider wraps one boto3 client and normalises its responses into
the dataclasses in ``models``. botocore failures and malformed responses
surface as ``UpstreamFetchError``.
"""

from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import RegionResolver
from .errors import UpstreamFetchError
from .models import (
    DnsZone,
    LoadBalancer,
    LogEvent,
    LogStreamDescriptor,
    NetworkInterface,
    Page,
    RecordSet,
    SecondaryAddress,
)

F = TypeVar("F", bound=Callable[..., Any])


def upstream_call(operation: str) -> Callable[[F], F]:
    """Translate botocore errors and missing response keys into UpstreamFetchError."""

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except (BotoCoreError, ClientError) as e:
                raise UpstreamFetchError(operation, str(e)) from e
            except (KeyError, TypeError) as e:
                raise UpstreamFetchError(
                    operation, f"malformed response ({e!r})"
                ) from e

        return wrapper  # type: ignore[return-value]

    return decorator


class AWSClientFactory:
    """Factory for creating AWS clients with consistent configuration."""

    @staticmethod
    def create_session(profile: Optional[str] = None) -> boto3.Session:
        """Create a boto3 session with an optional named profile."""
        return boto3.Session(profile_name=profile) if profile else boto3.Session()

    @staticmethod
    def available_profiles() -> list[str]:
        return sorted(boto3.Session().available_profiles)


class CloudWatchLogStreamProvider:
    """Lists log streams and pages their events."""

    def __init__(self, logs_client: Any):
        self.logs_client = logs_client

    @upstream_call("DescribeLogStreams")
    def list_streams(
        self, group_name: str, name_prefix: Optional[str] = None
    ) -> list[LogStreamDescriptor]:
        """List the group's streams, optionally restricted to a name prefix."""
        params: dict[str, Any] = {"logGroupName": group_name}
        if name_prefix:
            params["logStreamNamePrefix"] = name_prefix

        paginator = self.logs_client.get_paginator("describe_log_streams")
        return [
            LogStreamDescriptor(stream["logStreamName"], "firstEventTimestamp" in stream)
            for page in paginator.paginate(**params)
            for stream in page["logStreams"]
        ]

    @upstream_call("GetLogEvents")
    def get_events(
        self,
        group_name: str,
        stream_name: str,
        cursor: Optional[str] = None,
        start_from_oldest: bool = False,
    ) -> Page[LogEvent]:
        """Fetch one page of events. ``nextForwardToken`` is the cursor."""
        params: dict[str, Any] = {
            "logGroupName": group_name,
            "logStreamName": stream_name,
            "startFromHead": start_from_oldest,
        }
        if cursor:
            params["nextToken"] = cursor

        response = self.logs_client.get_log_events(**params)
        return Page(
            [
                LogEvent(event["message"], int(event["timestamp"]))
                for event in response["events"]
            ],
            response.get("nextForwardToken"),
        )


class Route53DnsProvider:
    """Lists hosted zones and their record sets."""

    def __init__(self, route53_client: Any):
        self.route53_client = route53_client

    @upstream_call("ListHostedZones")
    def list_zones(self) -> list[DnsZone]:
        paginator = self.route53_client.get_paginator("list_hosted_zones")
        return [
            DnsZone(zone["Id"].replace("/hostedzone/", ""), zone["Name"])
            for page in paginator.paginate()
            for zone in page["HostedZones"]
        ]

    @upstream_call("ListResourceRecordSets")
    def list_record_sets(self, zone_id: str) -> list[RecordSet]:
        paginator = self.route53_client.get_paginator("list_resource_record_sets")
        return [
            RecordSet(
                record_set["Name"],
                tuple(
                    record["Value"] for record in record_set.get("ResourceRecords", [])
                ),
            )
            for page in paginator.paginate(HostedZoneId=zone_id)
            for record_set in page["ResourceRecordSets"]
        ]


class LoadBalancerProvider:
    """Lists application/network and classic load balancers."""

    def __init__(self, elbv2_client: Any, elb_client: Optional[Any] = None):
        self.elbv2_client = elbv2_client
        self.elb_client = elb_client

    @upstream_call("DescribeLoadBalancers")
    def list_load_balancers(self) -> list[LoadBalancer]:
        paginator = self.elbv2_client.get_paginator("describe_load_balancers")
        load_balancers = [
            LoadBalancer(lb.get("VpcId"), lb["LoadBalancerName"])
            for page in paginator.paginate()
            for lb in page["LoadBalancers"]
        ]

        if self.elb_client is not None:
            # Classic load balancers spell the key VPCId
            paginator = self.elb_client.get_paginator("describe_load_balancers")
            load_balancers.extend(
                LoadBalancer(lb.get("VPCId"), lb["LoadBalancerName"])
                for page in paginator.paginate()
                for lb in page["LoadBalancerDescriptions"]
            )

        return load_balancers


class NetworkInterfaceProvider:
    """Lists network interfaces attached to the given VPCs."""

    def __init__(self, ec2_client: Any):
        self.ec2_client = ec2_client

    @upstream_call("DescribeNetworkInterfaces")
    def list_interfaces(self, network_ids: list[str]) -> list[NetworkInterface]:
        paginator = self.ec2_client.get_paginator("describe_network_interfaces")
        pages = paginator.paginate(
            Filters=[{"Name": "vpc-id", "Values": list(network_ids)}]
        )
        return [
            self._to_interface(interface)
            for page in pages
            for interface in page["NetworkInterfaces"]
        ]

    @staticmethod
    def _to_interface(interface: dict[str, Any]) -> NetworkInterface:
        return NetworkInterface(
            interface_id=interface["NetworkInterfaceId"],
            description=interface.get("Description", ""),
            primary_address=interface.get("PrivateIpAddress"),
            secondary_addresses=tuple(
                SecondaryAddress(
                    private_ip["PrivateIpAddress"],
                    private_ip.get("Association", {}).get("PublicIp"),
                )
                for private_ip in interface.get("PrivateIpAddresses", [])
            ),
        )


@dataclass
class Providers:
    logs: CloudWatchLogStreamProvider
    dns: Route53DnsProvider
    load_balancers: LoadBalancerProvider
    interfaces: NetworkInterfaceProvider


def build_providers(
    region: Optional[str] = None, profile: Optional[str] = None
) -> Providers:
    """Create all providers from a single boto3 session."""
    resolved_region = RegionResolver.resolve_region(region)
    session = AWSClientFactory.create_session(profile)

    def client(service: str) -> Any:
        return session.client(service, region_name=resolved_region)

    return Providers(
        logs=CloudWatchLogStreamProvider(client("logs")),
        dns=Route53DnsProvider(client("route53")),
        load_balancers=LoadBalancerProvider(client("elbv2"), client("elb")),
        interfaces=NetworkInterfaceProvider(client("ec2")),
    )
