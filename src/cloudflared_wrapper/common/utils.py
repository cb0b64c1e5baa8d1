"""Utility functions for the cloudflared wrapper."""

import re
from collections.abc import Mapping
from typing import Any

# RFC 1123 label: alphanumerics and inner hyphens, at most 63 characters
_LABEL_RE = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")
MAX_HOSTNAME_LENGTH = 253

SENSITIVE_FIELDS = frozenset(
    {
        "token",
        "password",
        "secret",
        "api_key",
        "authorization",
        "bearer",
    }
)


def validate_non_empty_string(value: str | None, field_name: str) -> str:
    """Validate that a string is not empty or only whitespace.

    Returns:
        Stripped string value

    Raises:
        ValueError: If string is empty or only whitespace
    """
    if not value or not value.strip():
        raise ValueError(f"{field_name} cannot be empty")
    return value.strip()


def validate_hostname(hostname: str) -> str:
    """Validate and normalize a fully-qualified public hostname.

    Args:
        hostname: Hostname such as ``api.example.com``

    Returns:
        Lower-cased hostname without a trailing dot

    Raises:
        ValueError: If hostname is not a fully-qualified domain name
    """
    value = validate_non_empty_string(hostname, "Hostname").lower().rstrip(".")

    if len(value) > MAX_HOSTNAME_LENGTH:
        raise ValueError(f"Hostname too long (maximum {MAX_HOSTNAME_LENGTH} characters)")

    labels = value.split(".")
    if len(labels) < 2:
        raise ValueError(f"Hostname '{hostname}' must be fully qualified (e.g. app.example.com)")

    for label in labels:
        if not _LABEL_RE.match(label):
            raise ValueError(f"Invalid hostname label '{label}' in '{hostname}'")

    return value


def mask_sensitive_data(
    value: str | None, mask_char: str = "*", show_chars: int = 4
) -> str:
    """Mask sensitive data for logging while preserving some characters for debugging.

    Args:
        value: Sensitive string to mask (e.g., connector token, API token)
        mask_char: Character to use for masking
        show_chars: Number of characters to show at the end

    Returns:
        Masked string safe for logging
    """
    if not value:
        return "<None>"

    if len(value) <= show_chars:
        return mask_char * len(value)

    masked_length = len(value) - show_chars
    return mask_char * masked_length + value[-show_chars:]


def sanitize_log_data(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with sensitive fields masked."""
    sanitized = {}
    for key, value in data.items():
        if any(field in key.lower() for field in SENSITIVE_FIELDS):
            sanitized[key] = mask_sensitive_data(str(value) if value else None)
        else:
            sanitized[key] = value

    return sanitized
