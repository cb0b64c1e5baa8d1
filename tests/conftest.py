"""Shared pytest fixtures for cloudflared wrapper tests."""

from unittest.mock import AsyncMock

import pytest

from cloudflared_wrapper.cloudflare import CloudflareApiClient, DnsRecord, TunnelInfo, ZoneInfo
from cloudflared_wrapper.orchestration import InMemoryStateReporter, StaticParameterSource
from cloudflared_wrapper.tunnels import ServiceTarget, TunnelConfig, TunnelRegistry

TUNNEL_ID = "c1744f8b-faa1-48a4-9e5c-02ac921467fa"
CONNECTOR_TOKEN = "eyJhIjoiYWNjb3VudCIsInQiOiJ0dW5uZWwiLCJzIjoic2VjcmV0In0="


@pytest.fixture
def fake_client():
    """Mock Cloudflare API client for an account with no tunnels yet.

    Every zone lookup succeeds with a zone named after the requested domain.

    Returns:
        AsyncMock: Client mock with CloudflareApiClient's interface
    """
    client = AsyncMock(spec=CloudflareApiClient)
    client.find_tunnel_by_name.return_value = None
    client.create_tunnel.side_effect = lambda name: TunnelInfo(id=TUNNEL_ID, name=name)
    client.get_tunnel_token.return_value = CONNECTOR_TOKEN
    client.find_zone_by_domain.side_effect = lambda domain: ZoneInfo(
        id=f"zone-{domain}", name=domain, status="active"
    )
    client.create_or_update_dns_record.side_effect = (
        lambda zone_id, hostname, target, proxied=True: DnsRecord(
            id=f"rec-{hostname}", type="CNAME", name=hostname, content=target, proxied=proxied
        )
    )
    client.replace_ingress_configuration.return_value = None
    return client


@pytest.fixture
def parameters():
    """Parameters holding API credentials for ``my-tunnel``."""
    return StaticParameterSource(
        {
            "my-tunnel-api-token": "cf-api-token-123456",
            "my-tunnel-account-id": "023e105f4ecef8ad9ca31a8372d0c353",
        }
    )


@pytest.fixture
def registry():
    """Registry with ``my-tunnel`` and two routes."""
    registry = TunnelRegistry()
    registry.add_tunnel(TunnelConfig(name="my-tunnel"))
    registry.add_route("my-tunnel", "a.example.com", ServiceTarget(host="10.0.0.1", port=8080))
    registry.add_route("my-tunnel", "b.example.com", ServiceTarget(host="10.0.0.2", port=9090))
    return registry


@pytest.fixture
def reporter():
    """State reporter recording every transition."""
    return InMemoryStateReporter()
