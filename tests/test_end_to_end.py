"""
End-to-end correlation runs against in-memory providers.
"""

import asyncio

from service_ip_mapper.mapper import ServiceIpMapper
from service_ip_mapper.models import DnsZone, LoadBalancer, Page, RecordSet

from conftest import (
    FakeDnsProvider,
    FakeInterfaceProvider,
    FakeLoadBalancerProvider,
    FakeLogProvider,
    make_events,
)


def run_mapper(config, logs, dns, load_balancers=None, interfaces=None):
    mapper = ServiceIpMapper(
        config,
        logs,
        dns,
        load_balancers or FakeLoadBalancerProvider([]),
        interfaces or FakeInterfaceProvider([]),
    )
    return asyncio.run(mapper.generate_ip_mapping())


def test_single_stream_repeated_cursor_scenario(fast_config):
    logs = FakeLogProvider(
        {
            "prod-users": [
                Page(make_events("1.2.3.4 GET /users HTTP/1.1 200"), "tok1"),
                Page([], "tok1"),
            ]
        }
    )
    dns = FakeDnsProvider(
        {DnsZone("Z1", "example.com."): [RecordSet("api.example.com.", ("1.2.3.4",))]}
    )

    report = run_mapper(fast_config, logs, dns)

    assert logs.listed == [("svc-logs", "prod-")]
    assert logs.calls["prod-users"] == [(None, True), ("tok1", False)]
    assert report.lines_retained == 1
    assert len(report.results) == 1
    result = report.results[0]
    assert result.ip == "1.2.3.4"
    assert result.top_paths == [("/users", 1)]
    assert result.registry_entry.sources[0].kind == "dns"
    assert report.oldest_markers == {"prod-users": "2024/3/7"}


def test_partial_results_survive_failures(
    fast_config, dns_provider, load_balancer_provider, interface_provider
):
    logs = FakeLogProvider(
        {
            "prod-web": [
                Page(
                    make_events(
                        '1.2.3.4 "GET /users HTTP/1.1" 200',
                        '10.0.1.11 "POST /internal/sync HTTP/1.1" 200',
                        '198.51.100.1 "GET /users HTTP/1.1" 200',
                    ),
                    "t1",
                )
            ]
        },
        failing_streams=("prod-broken",),
    )
    dns_provider.failing_zones = ("Z2",)

    report = run_mapper(
        fast_config, logs, dns_provider, load_balancer_provider, interface_provider
    )

    assert [result.ip for result in report.results] == ["1.2.3.4", "10.0.1.11"]
    assert {failure.unit for failure in report.failures} == {
        "prod-broken",
        "zone internal.",
    }
    data = report.to_dict()
    assert data["streams_listed"] == 2
    assert data["streams_with_requests"] == 1
    assert data["results"][1]["registry_entry"]["sources"][0]["origin"] == "eni-aaa"


def test_no_streams(fast_config, dns_provider):
    report = run_mapper(fast_config, FakeLogProvider({}), dns_provider)

    assert report.results == []
    assert report.oldest_markers == {}
    assert report.registry_size == 3
