"""cloudflared connector launch parameters and local process launcher."""

import asyncio
import shutil

from pydantic import BaseModel, ConfigDict, Field

from .common.exceptions import BinaryNotFoundError
from .common.logging import get_logger
from .tunnels.config import DEFAULT_METRICS_PORT

logger = get_logger(__name__)

CONNECTOR_IMAGE_REGISTRY = "docker.io"
CONNECTOR_IMAGE = "cloudflare/cloudflared"
CONNECTOR_IMAGE_TAG = "latest"

METRICS_ENDPOINT_NAME = "metrics"
# Reports tunnel connectivity once cloudflared is connected
HEALTH_CHECK_PATH = "/diag/tunnel"


class ConnectorSpec(BaseModel):
    """Everything needed to start cloudflared for one tunnel."""

    model_config = ConfigDict(frozen=True)

    tunnel_name: str = Field(min_length=1)
    token: str = Field(min_length=1, repr=False)
    metrics_port: int | None = Field(
        default=None, ge=1, le=65535, description="Host port mapped to the metrics endpoint"
    )
    metrics_bind: str = Field(default="0.0.0.0")

    @property
    def image(self) -> str:
        return f"{CONNECTOR_IMAGE_REGISTRY}/{CONNECTOR_IMAGE}:{CONNECTOR_IMAGE_TAG}"

    @property
    def listen_port(self) -> int:
        """Port cloudflared serves metrics and health on."""
        return DEFAULT_METRICS_PORT

    @property
    def args(self) -> list[str]:
        """Command-line arguments for ``cloudflared``."""
        return [
            "tunnel",
            "--no-autoupdate",
            "--metrics",
            f"{self.metrics_bind}:{self.listen_port}",
            "run",
            "--token",
            self.token,
        ]

    def health_url(self, host: str = "localhost") -> str:
        port = self.metrics_port or self.listen_port
        return f"http://{host}:{port}{HEALTH_CHECK_PATH}"


def find_cloudflared_binary() -> str:
    """Find cloudflared in system PATH.

    Raises:
        BinaryNotFoundError: If cloudflared is not installed
    """
    binary = shutil.which("cloudflared")
    if binary is None:
        raise BinaryNotFoundError(
            "cloudflared binary not found in system PATH. "
            "Install it from https://github.com/cloudflare/cloudflared/releases "
            "and ensure 'cloudflared' is available in your PATH."
        )
    return binary


class ProcessConnectorLauncher:
    """Runs cloudflared as a local subprocess."""

    def __init__(self, binary_path: str | None = None, stop_timeout: float = 5.0):
        self.binary_path = binary_path or find_cloudflared_binary()
        self.stop_timeout = stop_timeout
        self._processes: dict[str, asyncio.subprocess.Process] = {}

    async def start(self, spec: ConnectorSpec) -> asyncio.subprocess.Process:
        """Start cloudflared for ``spec.tunnel_name``."""
        existing = self._processes.get(spec.tunnel_name)
        if existing is not None and existing.returncode is None:
            logger.debug("Connector already running", tunnel=spec.tunnel_name, pid=existing.pid)
            return existing

        logger.info("Starting connector", tunnel=spec.tunnel_name, binary_path=self.binary_path)
        process = await asyncio.create_subprocess_exec(
            self.binary_path,
            *spec.args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        self._processes[spec.tunnel_name] = process
        logger.info("Connector started", tunnel=spec.tunnel_name, pid=process.pid)
        return process

    async def stop(self, tunnel_name: str) -> bool:
        """Stop the connector of ``tunnel_name``: terminate, then kill on timeout."""
        process = self._processes.pop(tunnel_name, None)
        if process is None or process.returncode is not None:
            return True

        try:
            process.terminate()
            await asyncio.wait_for(process.wait(), timeout=self.stop_timeout)
            return True
        except TimeoutError:
            logger.warning("Connector did not stop in time, killing", tunnel=tunnel_name)
            process.kill()
            await process.wait()
            return True
        except ProcessLookupError:
            return True

    async def stop_all(self) -> bool:
        success = True
        for tunnel_name in list(self._processes):
            if not await self.stop(tunnel_name):
                success = False
        return success
