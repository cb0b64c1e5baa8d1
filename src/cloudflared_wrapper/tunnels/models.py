"""Tunnel and route models.

Declared entities are immutable; status changes produce new instances
(``with_status``) which the registry stores in place of the old ones.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..common.utils import validate_hostname

DEFAULT_SERVICE_SCHEME = "http"
DEFAULT_SERVICE_PORT = 80


class TunnelStatus(str, Enum):
    """Tunnel provisioning state."""

    STARTING = "Starting"
    PROVISIONING = "Provisioning"
    RUNNING = "Running"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TunnelStatus.RUNNING, TunnelStatus.FAILED)


class RouteStatus(str, Enum):
    """Route configuration state."""

    STARTING = "Starting"
    CONFIGURING = "Configuring"
    FINISHED = "Finished"
    FAILED = "Failed"
    # Externally-provisioned tunnels: nothing is pushed
    SKIPPED = "Skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (RouteStatus.FINISHED, RouteStatus.FAILED, RouteStatus.SKIPPED)


class ServiceTarget(BaseModel):
    """Internal address a route forwards to."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="forbid")

    host: str = Field(min_length=1, description="Resolved host or container name")
    port: int | None = Field(default=None, ge=1, le=65535, description="Target port")
    scheme: str = Field(default=DEFAULT_SERVICE_SCHEME, pattern=r"^[a-z][a-z0-9+.-]*$")

    @property
    def service_url(self) -> str:
        """Ingress service value, e.g. ``http://10.0.0.1:8080``.

        Without a known port the target is assumed to be plain HTTP on 80.
        IPv6 hosts are bracketed.
        """
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.port is None:
            return f"{DEFAULT_SERVICE_SCHEME}://{host}:{DEFAULT_SERVICE_PORT}"
        return f"{self.scheme}://{host}:{self.port}"


class Route(BaseModel):
    """Public hostname exposed through a tunnel."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="forbid")

    hostname: str = Field(description="Fully-qualified public hostname")
    target: ServiceTarget
    tunnel: str = Field(min_length=1, description="Name of the owning tunnel")
    status: RouteStatus = RouteStatus.STARTING
    dns_record_created: bool = False
    ingress_rule_pushed: bool = False
    service: str | None = Field(default=None, description="Service URL placed in ingress")
    failure_reason: str | None = None

    @field_validator("hostname")
    @classmethod
    def normalize_hostname(cls, v: str) -> str:
        """Require a fully-qualified hostname."""
        return validate_hostname(v)

    @property
    def name(self) -> str:
        """Entity name used for state reporting."""
        return f"{self.tunnel}-route-{self.hostname}"

    def with_status(self, status: RouteStatus, **changes: Any) -> "Route":
        """Create new route instance with updated status (immutable pattern)."""
        return self.model_copy(update={"status": status, **changes})


class Tunnel(BaseModel):
    """Observable state of a declared tunnel."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    status: TunnelStatus = TunnelStatus.STARTING
    tunnel_id: str | None = None
    created: bool = False
    updated_at: datetime = Field(default_factory=datetime.now)

    def with_status(self, status: TunnelStatus, **changes: Any) -> "Tunnel":
        """Create new tunnel instance with updated status (immutable pattern)."""
        return self.model_copy(update={"status": status, "updated_at": datetime.now(), **changes})


class ProvisionedTunnel(BaseModel):
    """Result of provisioning: assigned id and connector token.

    Produced once by the tunnel provisioner and handed explicitly to route
    configuration and connector startup.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    tunnel_id: str = Field(min_length=1)
    token: str = Field(min_length=1, repr=False)
    created: bool = False
