"""Tunnel configuration models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..common.exceptions import ConfigurationError

# Metrics/health port cloudflared listens on inside its container
DEFAULT_METRICS_PORT = 60123


class ProvisioningMode(str, Enum):
    """How the connector token is obtained. Fixed for the lifetime of a run."""

    AUTO = "auto"
    EXTERNAL = "external"


class TunnelConfig(BaseModel):
    """Declaration of a tunnel and where its secrets come from."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str = Field(min_length=1, max_length=63, description="Tunnel name, unique per account")
    mode: ProvisioningMode = Field(default=ProvisioningMode.AUTO)
    metrics_port: int | None = Field(
        default=None, ge=1, le=65535, description="Host port for the metrics endpoint"
    )
    proxied: bool = Field(default=True, description="Proxy DNS records through Cloudflare")
    api_token_parameter: str | None = Field(default=None, description="Parameter holding the API token")
    account_id_parameter: str | None = Field(default=None, description="Parameter holding the account ID")
    tunnel_token_parameter: str | None = Field(
        default=None, description="Parameter holding a pre-obtained connector token"
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate tunnel name format."""
        if not v.replace("-", "").replace("_", "").replace(".", "").isalnum():
            raise ValueError(
                "Tunnel name must contain only alphanumeric characters, dots, hyphens, and underscores"
            )
        return v

    @model_validator(mode="after")
    def default_parameter_names(self) -> "TunnelConfig":
        """Derive parameter names from the tunnel name when not given."""
        if self.api_token_parameter is None:
            self.api_token_parameter = f"{self.name}-api-token"
        if self.account_id_parameter is None:
            self.account_id_parameter = f"{self.name}-account-id"
        if self.tunnel_token_parameter is None:
            self.tunnel_token_parameter = f"{self.name}-tunnel-token"
        return self

    @property
    def is_auto_provisioned(self) -> bool:
        return self.mode == ProvisioningMode.AUTO


class CloudflareCredentials(BaseModel):
    """API credentials resolved from parameters."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    api_token: str = Field(repr=False)
    account_id: str

    @classmethod
    def from_values(
        cls, api_token: str | None, account_id: str | None, tunnel_name: str
    ) -> "CloudflareCredentials":
        """Build credentials, failing before any network call if incomplete.

        Raises:
            ConfigurationError: If token or account id is missing
        """
        missing = []
        if not api_token or not api_token.strip():
            missing.append("API token")
        if not account_id or not account_id.strip():
            missing.append("account ID")
        if missing:
            raise ConfigurationError(
                f"Cloudflare {' and '.join(missing)} required for tunnel '{tunnel_name}'"
            )
        return cls(api_token=api_token, account_id=account_id)  # type: ignore[arg-type]
