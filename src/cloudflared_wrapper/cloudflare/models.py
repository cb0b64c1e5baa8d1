"""Cloudflare API models.

This module defines the response envelope shared by every Cloudflare v4 call,
the tunnel/zone/DNS payloads the provisioners consume, and the ingress
configuration pushed to a remotely-managed tunnel.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Domain every tunnel is reachable under as "<tunnel id>.<anchor>"
TUNNEL_ANCHOR_DOMAIN = "cfargotunnel.com"

# Service value of the mandatory catch-all ingress rule
CATCH_ALL_SERVICE = "http_status:404"

# TTL value meaning "automatic"
AUTO_TTL = 1

T = TypeVar("T")


def tunnel_target(tunnel_id: str) -> str:
    """Canonical address DNS records must point at for a tunnel."""
    return f"{tunnel_id}.{TUNNEL_ANCHOR_DOMAIN}"


class ApiError(BaseModel):
    """Single error entry of a Cloudflare response envelope."""

    code: int = 0
    message: str = ""


class ApiResponse(BaseModel, Generic[T]):
    """Uniform Cloudflare v4 response envelope."""

    model_config = ConfigDict(extra="ignore")

    success: bool
    result: T | None = None
    errors: list[ApiError] = Field(default_factory=list)
    messages: list[Any] = Field(default_factory=list)

    def error_summary(self) -> str:
        """Render errors as ``[code] message; ...``."""
        if not self.errors:
            return "Unknown error"
        return "; ".join(f"[{e.code}] {e.message}" for e in self.errors)


class TunnelInfo(BaseModel):
    """A Cloudflare tunnel as returned by the cfd_tunnel endpoints."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    name: str
    status: str | None = None
    created_at: str | None = None
    deleted_at: str | None = None


class ZoneInfo(BaseModel):
    """A DNS zone managed by Cloudflare."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    name: str
    status: str | None = None


class DnsRecord(BaseModel):
    """A DNS record inside a zone."""

    model_config = ConfigDict(extra="ignore")

    id: str
    type: str
    name: str
    content: str
    proxied: bool = False
    ttl: int = AUTO_TTL


class DnsRecordRequest(BaseModel):
    """Body for creating or updating a DNS record."""

    type: str = "CNAME"
    name: str
    content: str
    proxied: bool = True
    ttl: int = AUTO_TTL


class IngressRule(BaseModel):
    """Route incoming traffic for a hostname to a service.

    A rule without hostname matches everything and must be the last one.
    """

    model_config = ConfigDict(extra="ignore")

    hostname: str | None = None
    service: str = Field(min_length=1)
    path: str | None = None

    @property
    def is_catch_all(self) -> bool:
        return self.hostname is None and self.path is None

    @classmethod
    def catch_all(cls) -> "IngressRule":
        """Rule rejecting unmatched traffic with 404."""
        return cls(service=CATCH_ALL_SERVICE)


class IngressConfiguration(BaseModel):
    """Complete ingress table of a tunnel. Always pushed as a whole."""

    ingress: list[IngressRule]

    @model_validator(mode="after")
    def validate_rules(self) -> "IngressConfiguration":
        """Exactly one catch-all, placed last; hostnames unique."""
        if not self.ingress:
            raise ValueError("Ingress configuration needs at least the catch-all rule")

        catch_alls = [rule for rule in self.ingress if rule.is_catch_all]
        if len(catch_alls) != 1:
            raise ValueError(
                f"Ingress configuration must contain exactly one catch-all rule, found {len(catch_alls)}"
            )
        if not self.ingress[-1].is_catch_all:
            raise ValueError("Catch-all rule must be the last ingress rule")

        seen: set[str] = set()
        for rule in self.ingress[:-1]:
            if rule.hostname is None:
                continue
            if rule.hostname in seen:
                raise ValueError(f"Duplicate ingress hostname '{rule.hostname}'")
            seen.add(rule.hostname)

        return self

    @classmethod
    def from_rules(cls, rules: list[IngressRule]) -> "IngressConfiguration":
        """Build a configuration from hostname rules, appending the catch-all."""
        return cls(ingress=[*rules, IngressRule.catch_all()])

    @property
    def hostnames(self) -> list[str]:
        return [rule.hostname for rule in self.ingress if rule.hostname is not None]

    def to_payload(self) -> dict[str, Any]:
        """Body for the configurations PUT endpoint."""
        return {"config": self.model_dump(exclude_none=True)}
