"""Custom exceptions for the cloudflared wrapper."""

from typing import Any


class CloudflaredWrapperError(Exception):
    """Base exception for all cloudflared wrapper errors."""
    pass


class ConfigurationError(CloudflaredWrapperError):
    """Raised when configuration or credentials are missing or invalid."""
    pass


class BinaryNotFoundError(CloudflaredWrapperError):
    """Raised when the cloudflared binary is not found or not executable."""
    pass


class TransportError(CloudflaredWrapperError):
    """Raised when the Cloudflare API cannot be reached or answers outside its envelope."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


# Error codes Cloudflare uses for "record already exists"
ALREADY_EXISTS_CODES = frozenset({81053, 81057})


class CloudflareApiError(CloudflaredWrapperError):
    """Raised when the Cloudflare API returns an unsuccessful envelope."""

    def __init__(
        self,
        message: str,
        errors: list[dict[str, Any]] | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.errors = errors or []
        self.status_code = status_code

    @property
    def code(self) -> int | None:
        """Code of the first reported error, if any."""
        if not self.errors:
            return None
        return self.errors[0].get("code")

    @property
    def already_exists(self) -> bool:
        """Whether the failure only says the remote entity already exists."""
        for error in self.errors:
            if error.get("code") in ALREADY_EXISTS_CODES:
                return True
            if "already exists" in str(error.get("message", "")).lower():
                return True
        return False


class ProvisioningError(CloudflaredWrapperError):
    """Raised when a provisioning step fails."""
    pass


class TunnelProvisioningError(ProvisioningError):
    """Raised when a tunnel cannot be found, created or its token fetched."""

    def __init__(self, message: str, tunnel_name: str):
        super().__init__(message)
        self.tunnel_name = tunnel_name


class ZoneNotFoundError(ProvisioningError):
    """Raised when no DNS zone owns a route hostname."""

    def __init__(self, message: str, domain: str, hostname: str):
        super().__init__(message)
        self.domain = domain
        self.hostname = hostname


class RouteProvisioningError(ProvisioningError):
    """Raised when a route batch fails. Carries every route of the batch."""

    def __init__(self, message: str, tunnel_name: str, routes: list[Any]):
        super().__init__(message)
        self.tunnel_name = tunnel_name
        self.routes = routes


class StartupBlockedError(CloudflaredWrapperError):
    """Raised when a connector may not start because provisioning failed."""

    def __init__(self, message: str, tunnel_name: str):
        super().__init__(message)
        self.tunnel_name = tunnel_name


class OrchestrationError(CloudflaredWrapperError):
    """Raised when one or more entities of an orchestration run failed."""

    def __init__(self, message: str, failures: dict[str, BaseException]):
        super().__init__(message)
        self.failures = failures
