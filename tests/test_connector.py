"""Tests for the cloudflared connector spec and process launcher."""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import pytest
from pydantic import ValidationError

from cloudflared_wrapper.common.exceptions import BinaryNotFoundError
from cloudflared_wrapper.connector import (
    HEALTH_CHECK_PATH,
    ConnectorSpec,
    ProcessConnectorLauncher,
    find_cloudflared_binary,
)


class TestConnectorSpec:
    """Test connector launch parameters."""

    def test_args(self):
        spec = ConnectorSpec(tunnel_name="my-tunnel", token="eyJtoken")
        assert spec.args == [
            "tunnel",
            "--no-autoupdate",
            "--metrics",
            "0.0.0.0:60123",
            "run",
            "--token",
            "eyJtoken",
        ]

    def test_image(self):
        spec = ConnectorSpec(tunnel_name="my-tunnel", token="eyJtoken")
        assert spec.image == "docker.io/cloudflare/cloudflared:latest"

    def test_health_url(self):
        spec = ConnectorSpec(tunnel_name="my-tunnel", token="eyJtoken")
        assert HEALTH_CHECK_PATH == "/diag/tunnel"
        assert spec.health_url() == "http://localhost:60123/diag/tunnel"

        mapped = ConnectorSpec(tunnel_name="my-tunnel", token="eyJtoken", metrics_port=9100)
        assert mapped.health_url("127.0.0.1") == "http://127.0.0.1:9100/diag/tunnel"
        assert mapped.listen_port == 60123

    def test_token_hidden_from_repr(self):
        spec = ConnectorSpec(tunnel_name="my-tunnel", token="eyJtoken")
        assert "eyJtoken" not in repr(spec)

    def test_token_required(self):
        with pytest.raises(ValidationError):
            ConnectorSpec(tunnel_name="my-tunnel", token="")


class TestFindBinary:
    @patch("shutil.which")
    def test_found(self, mock_which):
        mock_which.return_value = "/usr/local/bin/cloudflared"
        assert find_cloudflared_binary() == "/usr/local/bin/cloudflared"
        mock_which.assert_called_once_with("cloudflared")

    @patch("shutil.which")
    def test_not_found(self, mock_which):
        mock_which.return_value = None
        with pytest.raises(BinaryNotFoundError, match="cloudflared binary not found"):
            find_cloudflared_binary()


def make_process(pid: int = 12345) -> Mock:
    process = Mock()
    process.pid = pid
    process.returncode = None
    process.wait = AsyncMock(return_value=0)
    return process


class TestProcessConnectorLauncher:
    """Test local connector processes."""

    @pytest.mark.asyncio
    @patch("asyncio.create_subprocess_exec")
    async def test_start(self, mock_exec):
        process = make_process()
        mock_exec.return_value = process
        launcher = ProcessConnectorLauncher(binary_path="/usr/bin/cloudflared")
        spec = ConnectorSpec(tunnel_name="my-tunnel", token="eyJtoken")

        assert await launcher.start(spec) is process

        args = mock_exec.call_args.args
        assert args[0] == "/usr/bin/cloudflared"
        assert list(args[1:]) == spec.args

    @pytest.mark.asyncio
    @patch("asyncio.create_subprocess_exec")
    async def test_start_is_idempotent_while_running(self, mock_exec):
        mock_exec.return_value = make_process()
        launcher = ProcessConnectorLauncher(binary_path="/usr/bin/cloudflared")
        spec = ConnectorSpec(tunnel_name="my-tunnel", token="eyJtoken")

        first = await launcher.start(spec)
        second = await launcher.start(spec)

        assert first is second
        mock_exec.assert_called_once()

    @pytest.mark.asyncio
    @patch("asyncio.create_subprocess_exec")
    async def test_stop(self, mock_exec):
        process = make_process()
        mock_exec.return_value = process
        launcher = ProcessConnectorLauncher(binary_path="/usr/bin/cloudflared")
        await launcher.start(ConnectorSpec(tunnel_name="my-tunnel", token="eyJtoken"))

        assert await launcher.stop("my-tunnel")

        process.terminate.assert_called_once()
        process.kill.assert_not_called()

    @pytest.mark.asyncio
    @patch("asyncio.create_subprocess_exec")
    async def test_stop_kills_on_timeout(self, mock_exec):
        process = make_process()
        hung = asyncio.Event()

        async def wait():
            if not process.kill.called:
                await hung.wait()
            return -9

        process.wait = AsyncMock(side_effect=wait)
        mock_exec.return_value = process
        launcher = ProcessConnectorLauncher(binary_path="/usr/bin/cloudflared", stop_timeout=0.01)
        await launcher.start(ConnectorSpec(tunnel_name="my-tunnel", token="eyJtoken"))

        assert await launcher.stop("my-tunnel")

        process.kill.assert_called_once()

    @pytest.mark.asyncio
    async def test_stop_unknown(self):
        launcher = ProcessConnectorLauncher(binary_path="/usr/bin/cloudflared")
        assert await launcher.stop("missing")

    @pytest.mark.asyncio
    @patch("asyncio.create_subprocess_exec")
    async def test_stop_all(self, mock_exec):
        processes = [make_process(1), make_process(2)]
        mock_exec.side_effect = processes
        launcher = ProcessConnectorLauncher(binary_path="/usr/bin/cloudflared")
        await launcher.start(ConnectorSpec(tunnel_name="one", token="eyJa"))
        await launcher.start(ConnectorSpec(tunnel_name="two", token="eyJb"))

        assert await launcher.stop_all()

        for process in processes:
            process.terminate.assert_called_once()

    @patch("cloudflared_wrapper.connector.find_cloudflared_binary")
    def test_binary_lookup(self, mock_find):
        mock_find.return_value = "/opt/cloudflared"
        assert ProcessConnectorLauncher().binary_path == "/opt/cloudflared"
