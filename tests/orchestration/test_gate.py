"""Tests for the connector startup gate."""

import asyncio

import pytest

from cloudflared_wrapper.common.exceptions import StartupBlockedError, TunnelProvisioningError
from cloudflared_wrapper.orchestration.gate import StartupGate


class TestStartupGate:
    """Test gate settlement."""

    @pytest.mark.asyncio
    async def test_release_returns_token(self):
        gate = StartupGate("my-tunnel")
        assert not gate.is_settled

        gate.release("eyJtoken")

        assert gate.is_settled
        assert gate.is_open
        assert await gate.wait() == "eyJtoken"

    @pytest.mark.asyncio
    async def test_waiter_blocks_until_released(self):
        gate = StartupGate("my-tunnel")
        waiter = asyncio.create_task(gate.wait())

        await asyncio.sleep(0)
        assert not waiter.done()

        gate.release("eyJtoken")
        assert await asyncio.wait_for(waiter, timeout=1) == "eyJtoken"

    @pytest.mark.asyncio
    async def test_failed_gate_blocks(self):
        gate = StartupGate("my-tunnel")
        cause = TunnelProvisioningError("Failed to provision tunnel 'my-tunnel'", tunnel_name="my-tunnel")

        gate.fail(cause)

        assert gate.is_settled
        assert not gate.is_open
        assert gate.error is cause
        with pytest.raises(StartupBlockedError) as exc_info:
            await gate.wait()
        assert exc_info.value.tunnel_name == "my-tunnel"
        assert exc_info.value.__cause__ is cause

    def test_settles_once(self):
        gate = StartupGate("my-tunnel")
        gate.release("eyJtoken")

        with pytest.raises(RuntimeError, match="already settled"):
            gate.release("other")
        with pytest.raises(RuntimeError, match="already settled"):
            gate.fail(ValueError("late"))

    def test_empty_token_rejected(self):
        gate = StartupGate("my-tunnel")
        with pytest.raises(ValueError, match="cannot be empty"):
            gate.release("")
        assert not gate.is_settled
