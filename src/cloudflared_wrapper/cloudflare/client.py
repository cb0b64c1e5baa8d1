"""Cloudflare API client for tunnel, DNS and ingress operations."""

import base64
import secrets
from types import TracebackType
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..common.exceptions import CloudflareApiError, ConfigurationError, TransportError
from ..common.logging import get_logger
from .models import (
    ApiResponse,
    DnsRecord,
    DnsRecordRequest,
    IngressConfiguration,
    IngressRule,
    TunnelInfo,
    ZoneInfo,
    tunnel_target,
)

logger = get_logger(__name__)

CF_API_BASE = "https://api.cloudflare.com/client/v4"
TUNNEL_SECRET_BYTES = 32

T = TypeVar("T")


class ApiClientConfig(BaseModel):
    """HTTP settings for the Cloudflare API client."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    base_url: str = Field(default=CF_API_BASE, min_length=1)
    timeout: float = Field(default=30.0, gt=0, le=300.0, description="Request timeout in seconds")


def generate_tunnel_secret() -> str:
    """Fresh base64-encoded tunnel secret. Never reused across calls."""
    return base64.b64encode(secrets.token_bytes(TUNNEL_SECRET_BYTES)).decode("ascii")


class CloudflareApiClient:
    """Typed async facade over the Cloudflare v4 API.

    Every call unwraps the ``{success, result, errors, messages}`` envelope.
    Unsuccessful envelopes raise :class:`CloudflareApiError`, whose
    ``already_exists`` flag lets callers treat duplicates as success. Anything
    that never produced an envelope raises :class:`TransportError`.
    """

    def __init__(
        self,
        api_token: str,
        account_id: str,
        *,
        config: ApiClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the client.

        Args:
            api_token: API token with Tunnel:Edit and DNS:Edit permissions
            account_id: Cloudflare account identifier
            config: HTTP settings (base URL, timeout)
            http_client: Pre-built client to use instead of creating one

        Raises:
            ConfigurationError: If token or account id is empty
        """
        if not api_token or not api_token.strip():
            raise ConfigurationError("Cloudflare API token is required")
        if not account_id or not account_id.strip():
            raise ConfigurationError("Cloudflare account ID is required")

        self.config = config or ApiClientConfig()
        self.account_id = account_id.strip()
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self.config.timeout)
        self._headers = {
            "Authorization": f"Bearer {api_token.strip()}",
            "Content-Type": "application/json",
        }

    async def __aenter__(self) -> "CloudflareApiClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._http.aclose()

    def _url(self, path: str) -> str:
        return f"{self.config.base_url.rstrip('/')}{path}"

    async def _send(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> tuple[httpx.Response, dict[str, Any]]:
        """Send a request and decode the JSON body.

        Raises:
            TransportError: On connection failure or a body that is not a JSON envelope
        """
        try:
            response = await self._http.request(
                method,
                self._url(path),
                params=params,
                json=json,
                headers=self._headers,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"{operation}: request failed: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError(
                f"{operation}: HTTP {response.status_code} without JSON body",
                status_code=response.status_code,
            ) from e

        if not isinstance(body, dict) or "success" not in body:
            raise TransportError(
                f"{operation}: HTTP {response.status_code} outside Cloudflare envelope",
                status_code=response.status_code,
            )

        return response, body

    @staticmethod
    def _parse(
        response: httpx.Response, body: dict[str, Any], result_type: Any, operation: str
    ) -> ApiResponse[Any]:
        try:
            envelope = ApiResponse[result_type].model_validate(body)
        except ValidationError as e:
            raise TransportError(
                f"{operation}: malformed response: {e}", status_code=response.status_code
            ) from e

        if not envelope.success:
            raise CloudflareApiError(
                f"{operation} failed: {envelope.error_summary()}",
                errors=[error.model_dump() for error in envelope.errors],
                status_code=response.status_code,
            )

        if response.is_error:
            raise TransportError(
                f"{operation}: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        return envelope

    async def _call(
        self,
        method: str,
        path: str,
        result_type: Any,
        operation: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> ApiResponse[Any]:
        response, body = await self._send(method, path, operation, params=params, json=json)
        return self._parse(response, body, result_type, operation)

    @staticmethod
    def _require(result: T | None, operation: str) -> T:
        if result is None:
            raise CloudflareApiError(f"{operation} failed: no result returned")
        return result

    # Tunnels

    async def find_tunnel_by_name(self, name: str) -> TunnelInfo | None:
        """Find a non-deleted tunnel by exact name. Returns the first match."""
        envelope = await self._call(
            "GET",
            f"/accounts/{self.account_id}/cfd_tunnel",
            list[TunnelInfo],
            "Find tunnel",
            params={"name": name, "is_deleted": "false"},
        )
        tunnels = envelope.result or []
        return tunnels[0] if tunnels else None

    async def create_tunnel(self, name: str) -> TunnelInfo:
        """Create a remotely-configured tunnel with a freshly generated secret."""
        envelope = await self._call(
            "POST",
            f"/accounts/{self.account_id}/cfd_tunnel",
            TunnelInfo,
            "Create tunnel",
            json={
                "name": name,
                "tunnel_secret": generate_tunnel_secret(),
                "config_src": "cloudflare",
            },
        )
        tunnel = self._require(envelope.result, "Create tunnel")
        logger.info("Created Cloudflare tunnel", tunnel_id=tunnel.id, name=name)
        return tunnel

    async def get_tunnel_token(self, tunnel_id: str) -> str:
        """Fetch the connector token of an existing tunnel."""
        envelope = await self._call(
            "GET",
            f"/accounts/{self.account_id}/cfd_tunnel/{tunnel_id}/token",
            str,
            "Get tunnel token",
        )
        token = self._require(envelope.result, "Get tunnel token")
        if not token:
            raise CloudflareApiError("Get tunnel token failed: empty token returned")
        return token

    async def get_tunnel_configuration(self, tunnel_id: str) -> list[IngressRule] | None:
        """Current remote ingress rules, or None when the tunnel has no configuration."""
        operation = "Get tunnel configuration"
        response, body = await self._send(
            "GET",
            f"/accounts/{self.account_id}/cfd_tunnel/{tunnel_id}/configurations",
            operation,
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return None

        envelope = self._parse(response, body, dict[str, Any], operation)
        config = (envelope.result or {}).get("config") or {}
        return [IngressRule.model_validate(rule) for rule in config.get("ingress") or []]

    async def replace_ingress_configuration(
        self, tunnel_id: str, config: IngressConfiguration
    ) -> None:
        """Replace the whole ingress table of a tunnel (last writer wins)."""
        await self._call(
            "PUT",
            f"/accounts/{self.account_id}/cfd_tunnel/{tunnel_id}/configurations",
            dict[str, Any],
            "Update tunnel configuration",
            json=config.to_payload(),
        )
        logger.info(
            "Replaced tunnel ingress configuration",
            tunnel_id=tunnel_id,
            rules=len(config.ingress),
        )

    # Zones and DNS

    async def find_zone_by_domain(self, domain: str) -> ZoneInfo | None:
        """Find the zone named ``domain`` within the account."""
        envelope = await self._call(
            "GET",
            "/zones",
            list[ZoneInfo],
            "Find zone",
            params={"name": domain, "account.id": self.account_id},
        )
        zones = envelope.result or []
        return zones[0] if zones else None

    async def find_dns_record(self, zone_id: str, name: str) -> DnsRecord | None:
        """Find a CNAME record by its full name."""
        envelope = await self._call(
            "GET",
            f"/zones/{zone_id}/dns_records",
            list[DnsRecord],
            "Find DNS record",
            params={"name": name, "type": "CNAME"},
        )
        records = envelope.result or []
        return records[0] if records else None

    async def update_dns_record(
        self, zone_id: str, record_id: str, request: DnsRecordRequest
    ) -> DnsRecord:
        """Overwrite an existing DNS record."""
        envelope = await self._call(
            "PUT",
            f"/zones/{zone_id}/dns_records/{record_id}",
            DnsRecord,
            "Update DNS record",
            json=request.model_dump(),
        )
        return self._require(envelope.result, "Update DNS record")

    async def create_or_update_dns_record(
        self,
        zone_id: str,
        hostname: str,
        target: str,
        proxied: bool = True,
    ) -> DnsRecord:
        """Create a CNAME record, updating it in place if it already exists.

        Args:
            zone_id: Zone owning the hostname
            hostname: Full record name (e.g. api.example.com)
            target: Record content, normally ``<tunnel id>.cfargotunnel.com``
            proxied: Whether traffic goes through Cloudflare's proxy

        Raises:
            CloudflareApiError: If creation fails for another reason, or the
                record exists but cannot be located for update
        """
        operation = "Create DNS record"
        request = DnsRecordRequest(name=hostname, content=target, proxied=proxied)
        response, body = await self._send(
            "POST",
            f"/zones/{zone_id}/dns_records",
            operation,
            json=request.model_dump(),
        )

        try:
            envelope = self._parse(response, body, DnsRecord, operation)
            record = self._require(envelope.result, operation)
            logger.info("Created DNS record", name=hostname, target=target, record_id=record.id)
            return record
        except CloudflareApiError as e:
            conflict = response.status_code == httpx.codes.CONFLICT
            if not (e.already_exists or conflict):
                raise

            existing = await self.find_dns_record(zone_id, hostname)
            if existing is None:
                # Could not locate the duplicate; let the caller classify it
                raise

            logger.info(
                "DNS record already exists, updating in place",
                name=hostname,
                record_id=existing.id,
            )
            return await self.update_dns_record(zone_id, existing.id, request)

    async def create_tunnel_dns_record(
        self, zone_id: str, hostname: str, tunnel_id: str, proxied: bool = True
    ) -> DnsRecord:
        """CNAME ``hostname`` to the canonical address of ``tunnel_id``."""
        return await self.create_or_update_dns_record(
            zone_id, hostname, tunnel_target(tunnel_id), proxied=proxied
        )
