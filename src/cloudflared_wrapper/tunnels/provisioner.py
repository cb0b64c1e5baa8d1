"""Find-or-create provisioning of Cloudflare tunnels."""

from ..cloudflare.client import CloudflareApiClient
from ..cloudflare.models import TunnelInfo
from ..common.exceptions import (
    CloudflareApiError,
    CloudflaredWrapperError,
    ConfigurationError,
    TunnelProvisioningError,
)
from ..common.logging import get_logger
from ..common.utils import mask_sensitive_data, validate_non_empty_string
from .models import ProvisionedTunnel

logger = get_logger(__name__)


class TunnelProvisioner:
    """Finds or creates a tunnel by name and fetches its connector token.

    No step is retried and nothing is rolled back: a tunnel created just before
    a later failure stays in the account and is found on the next run. Two runs
    racing on the same name may both create it.
    """

    async def provision(self, client: CloudflareApiClient, name: str) -> ProvisionedTunnel:
        """Provision the tunnel called ``name``.

        Args:
            client: Authenticated API client
            name: Tunnel name

        Returns:
            Tunnel id and connector token

        Raises:
            ConfigurationError: If the name is empty
            TunnelProvisioningError: If any step fails
        """
        try:
            name = validate_non_empty_string(name, "Tunnel name")
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        try:
            tunnel, created = await self._find_or_create(client, name)

            logger.info("Retrieving tunnel token", tunnel=name, tunnel_id=tunnel.id)
            token = await client.get_tunnel_token(tunnel.id)
        except CloudflaredWrapperError as e:
            logger.error("Failed to provision tunnel", tunnel=name, error=str(e))
            raise TunnelProvisioningError(
                f"Failed to provision tunnel '{name}': {e}", tunnel_name=name
            ) from e

        logger.info(
            "Tunnel provisioned",
            tunnel=name,
            tunnel_id=tunnel.id,
            created=created,
            connector_token=mask_sensitive_data(token),
        )
        return ProvisionedTunnel(name=name, tunnel_id=tunnel.id, token=token, created=created)

    async def _find_or_create(
        self, client: CloudflareApiClient, name: str
    ) -> tuple[TunnelInfo, bool]:
        logger.info("Looking for existing tunnel", tunnel=name)
        existing = await client.find_tunnel_by_name(name)
        if existing is not None:
            logger.info("Found existing tunnel", tunnel=name, tunnel_id=existing.id)
            return existing, False

        logger.info("Creating new Cloudflare tunnel", tunnel=name)
        try:
            created = await client.create_tunnel(name)
        except CloudflareApiError as e:
            if not e.already_exists:
                raise
            # Another run created it between lookup and create
            concurrent = await client.find_tunnel_by_name(name)
            if concurrent is None:
                raise
            logger.warning(
                "Tunnel appeared concurrently, using it", tunnel=name, tunnel_id=concurrent.id
            )
            return concurrent, False

        return created, True
