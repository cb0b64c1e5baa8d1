"""Parameter sources for API credentials and connector tokens."""

import os
import re
from collections.abc import Mapping


class StaticParameterSource:
    """Parameters from a fixed mapping."""

    def __init__(self, values: Mapping[str, str | None] | None = None):
        self._values = dict(values or {})

    async def get_value(self, name: str) -> str | None:
        return self._values.get(name)


class EnvironmentParameterSource:
    """Parameters from environment variables.

    ``my-tunnel-api-token`` is read from ``MY_TUNNEL_API_TOKEN`` (with an
    optional prefix, e.g. ``CLOUDFLARED_MY_TUNNEL_API_TOKEN``).
    """

    def __init__(self, prefix: str = "", environ: Mapping[str, str] | None = None):
        self.prefix = prefix
        self._environ = environ if environ is not None else os.environ

    def variable_name(self, name: str) -> str:
        return self.prefix + re.sub(r"[^A-Za-z0-9]", "_", name).upper()

    async def get_value(self, name: str) -> str | None:
        value = self._environ.get(self.variable_name(name))
        return value or None
