"""Common utilities and shared functionality."""

from .exceptions import (
    BinaryNotFoundError,
    CloudflareApiError,
    CloudflaredWrapperError,
    ConfigurationError,
    OrchestrationError,
    ProvisioningError,
    RouteProvisioningError,
    StartupBlockedError,
    TransportError,
    TunnelProvisioningError,
    ZoneNotFoundError,
)
from .logging import get_logger, setup_logging
from .utils import (
    mask_sensitive_data,
    sanitize_log_data,
    validate_hostname,
    validate_non_empty_string,
)

__all__ = [
    # Exceptions
    "CloudflaredWrapperError",
    "ConfigurationError",
    "BinaryNotFoundError",
    "TransportError",
    "CloudflareApiError",
    "ProvisioningError",
    "TunnelProvisioningError",
    "RouteProvisioningError",
    "ZoneNotFoundError",
    "StartupBlockedError",
    "OrchestrationError",
    # Logging
    "get_logger",
    "setup_logging",
    # Utils
    "validate_non_empty_string",
    "validate_hostname",
    "mask_sensitive_data",
    "sanitize_log_data",
]
