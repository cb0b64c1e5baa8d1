"""Tests for parameter sources."""

import pytest

from cloudflared_wrapper.orchestration.parameters import (
    EnvironmentParameterSource,
    StaticParameterSource,
)


class TestStaticParameterSource:
    @pytest.mark.asyncio
    async def test_get_value(self):
        source = StaticParameterSource({"my-tunnel-api-token": "token"})

        assert await source.get_value("my-tunnel-api-token") == "token"
        assert await source.get_value("my-tunnel-account-id") is None


class TestEnvironmentParameterSource:
    """Test environment variable lookup."""

    def test_variable_name(self):
        source = EnvironmentParameterSource()
        assert source.variable_name("my-tunnel-api-token") == "MY_TUNNEL_API_TOKEN"
        assert source.variable_name("edge.tunnel-account-id") == "EDGE_TUNNEL_ACCOUNT_ID"

    def test_prefix(self):
        source = EnvironmentParameterSource(prefix="CLOUDFLARED_")
        assert source.variable_name("my-tunnel-tunnel-token") == "CLOUDFLARED_MY_TUNNEL_TUNNEL_TOKEN"

    @pytest.mark.asyncio
    async def test_get_value(self):
        source = EnvironmentParameterSource(environ={"MY_TUNNEL_API_TOKEN": "token", "EMPTY": ""})

        assert await source.get_value("my-tunnel-api-token") == "token"
        assert await source.get_value("empty") is None
        assert await source.get_value("missing") is None

    @pytest.mark.asyncio
    async def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("MY_TUNNEL_ACCOUNT_ID", "account")

        assert await EnvironmentParameterSource().get_value("my-tunnel-account-id") == "account"
