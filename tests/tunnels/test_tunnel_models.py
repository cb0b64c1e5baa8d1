"""Tests for tunnel, route and configuration models."""

import pytest
from pydantic import ValidationError

from cloudflared_wrapper.common.exceptions import ConfigurationError
from cloudflared_wrapper.tunnels.config import (
    DEFAULT_METRICS_PORT,
    CloudflareCredentials,
    ProvisioningMode,
    TunnelConfig,
)
from cloudflared_wrapper.tunnels.models import (
    ProvisionedTunnel,
    Route,
    RouteStatus,
    ServiceTarget,
    Tunnel,
    TunnelStatus,
)


class TestStatusEnums:
    """Test status enumerations."""

    def test_tunnel_status_values(self):
        assert TunnelStatus.STARTING == "Starting"
        assert TunnelStatus.PROVISIONING == "Provisioning"
        assert TunnelStatus.RUNNING == "Running"
        assert TunnelStatus.FAILED == "Failed"

    def test_route_status_values(self):
        assert RouteStatus.STARTING == "Starting"
        assert RouteStatus.CONFIGURING == "Configuring"
        assert RouteStatus.FINISHED == "Finished"
        assert RouteStatus.FAILED == "Failed"
        assert RouteStatus.SKIPPED == "Skipped"

    def test_terminal_states(self):
        assert TunnelStatus.RUNNING.is_terminal
        assert TunnelStatus.FAILED.is_terminal
        assert not TunnelStatus.PROVISIONING.is_terminal
        assert RouteStatus.SKIPPED.is_terminal
        assert not RouteStatus.CONFIGURING.is_terminal


class TestServiceTarget:
    """Test service URL construction."""

    def test_service_url(self):
        assert ServiceTarget(host="10.0.0.1", port=8080).service_url == "http://10.0.0.1:8080"

    def test_custom_scheme(self):
        target = ServiceTarget(host="api", port=8443, scheme="https")
        assert target.service_url == "https://api:8443"

    def test_unknown_port_falls_back_to_http_80(self):
        """Without a port the target is assumed to be plain HTTP."""
        target = ServiceTarget(host="web", scheme="https")
        assert target.service_url == "http://web:80"

    def test_invalid_port(self):
        with pytest.raises(ValidationError):
            ServiceTarget(host="web", port=0)
        with pytest.raises(ValidationError):
            ServiceTarget(host="web", port=65536)

    def test_ipv6_host_bracketed(self):
        assert ServiceTarget(host="::1", port=8080).service_url == "http://[::1]:8080"
        assert ServiceTarget(host="fd00::5").service_url == "http://[fd00::5]:80"

    def test_empty_host(self):
        with pytest.raises(ValidationError):
            ServiceTarget(host="  ")


class TestRoute:
    """Test route model."""

    def test_route_creation(self):
        route = Route(hostname="API.Example.com", target=ServiceTarget(host="api", port=80), tunnel="t")
        assert route.hostname == "api.example.com"
        assert route.status == RouteStatus.STARTING
        assert not route.dns_record_created
        assert not route.ingress_rule_pushed
        assert route.name == "t-route-api.example.com"

    def test_route_requires_fqdn(self):
        with pytest.raises(ValidationError, match="fully qualified"):
            Route(hostname="api", target=ServiceTarget(host="api"), tunnel="t")

    def test_with_status_is_immutable(self):
        route = Route(hostname="a.example.com", target=ServiceTarget(host="a", port=80), tunnel="t")
        updated = route.with_status(RouteStatus.FAILED, failure_reason="zone_not_found")

        assert route.status == RouteStatus.STARTING
        assert route.failure_reason is None
        assert updated.status == RouteStatus.FAILED
        assert updated.failure_reason == "zone_not_found"

        with pytest.raises(ValidationError):
            route.status = RouteStatus.FINISHED  # type: ignore[misc]


class TestTunnel:
    def test_with_status(self):
        tunnel = Tunnel(name="my-tunnel")
        running = tunnel.with_status(TunnelStatus.RUNNING, tunnel_id="abc", created=True)

        assert tunnel.status == TunnelStatus.STARTING
        assert running.tunnel_id == "abc"
        assert running.created
        assert running.updated_at >= tunnel.updated_at

    def test_provisioned_tunnel_hides_token(self):
        provisioned = ProvisionedTunnel(name="t", tunnel_id="abc", token="eyJsecret")
        assert "eyJsecret" not in repr(provisioned)

    def test_provisioned_tunnel_requires_token(self):
        with pytest.raises(ValidationError):
            ProvisionedTunnel(name="t", tunnel_id="abc", token="")


class TestTunnelConfig:
    """Test tunnel declaration."""

    def test_defaults(self):
        config = TunnelConfig(name="my-tunnel")
        assert config.mode == ProvisioningMode.AUTO
        assert config.is_auto_provisioned
        assert config.proxied
        assert config.metrics_port is None
        assert config.api_token_parameter == "my-tunnel-api-token"
        assert config.account_id_parameter == "my-tunnel-account-id"
        assert config.tunnel_token_parameter == "my-tunnel-tunnel-token"

    def test_explicit_parameter_names(self):
        config = TunnelConfig(
            name="my-tunnel",
            mode=ProvisioningMode.EXTERNAL,
            tunnel_token_parameter="shared-token",
        )
        assert not config.is_auto_provisioned
        assert config.tunnel_token_parameter == "shared-token"
        assert config.api_token_parameter == "my-tunnel-api-token"

    def test_invalid_names(self):
        for name in ["", "my tunnel", "tunnel/1", "a" * 64]:
            with pytest.raises(ValidationError):
                TunnelConfig(name=name)

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            TunnelConfig(name="t", server_addr="x")  # type: ignore[call-arg]

    def test_default_metrics_port(self):
        assert DEFAULT_METRICS_PORT == 60123


class TestCloudflareCredentials:
    """Credentials fail before any network call when incomplete."""

    def test_complete(self):
        credentials = CloudflareCredentials.from_values("cf-secret", "account", "t")
        assert credentials.account_id == "account"
        assert "cf-secret" not in repr(credentials)

    def test_missing_token(self):
        with pytest.raises(ConfigurationError, match="Cloudflare API token required for tunnel 't'"):
            CloudflareCredentials.from_values(None, "account", "t")

    def test_missing_both(self):
        with pytest.raises(ConfigurationError, match="API token and account ID required"):
            CloudflareCredentials.from_values(" ", "", "t")
