"""Cloudflare API access."""

from .client import CF_API_BASE, ApiClientConfig, CloudflareApiClient, generate_tunnel_secret
from .models import (
    CATCH_ALL_SERVICE,
    TUNNEL_ANCHOR_DOMAIN,
    ApiError,
    ApiResponse,
    DnsRecord,
    DnsRecordRequest,
    IngressConfiguration,
    IngressRule,
    TunnelInfo,
    ZoneInfo,
    tunnel_target,
)

__all__ = [
    "CloudflareApiClient",
    "ApiClientConfig",
    "CF_API_BASE",
    "generate_tunnel_secret",
    # Models
    "ApiResponse",
    "ApiError",
    "TunnelInfo",
    "ZoneInfo",
    "DnsRecord",
    "DnsRecordRequest",
    "IngressRule",
    "IngressConfiguration",
    "CATCH_ALL_SERVICE",
    "TUNNEL_ANCHOR_DOMAIN",
    "tunnel_target",
]
