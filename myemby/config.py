"""Validation schemas for user-supplied and persisted settings."""

from __future__ import annotations

import voluptuous as vol

from .const import DEFAULT_PORT, DEFAULT_USE_TLS, normalize_host

CONF_HOST = "host"
CONF_PORT = "port"
CONF_USE_TLS = "use_tls"
CONF_USERNAME = "username"


def _host(value: object) -> str:
    """Validate and normalize a host."""
    host = normalize_host(vol.Coerce(str)(value))
    if not host or any(ch in host for ch in " /?#@"):
        raise vol.Invalid(f"invalid host: {value!r}")
    bracketed = host.startswith("[") and host.endswith("]")
    if ":" in host and not bracketed:
        raise vol.Invalid(f"host must not include a port: {value!r}")
    return host


_non_empty_str = vol.All(str, vol.Length(min=1))

SERVER_CONFIG_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_HOST): _host,
        vol.Optional(CONF_PORT, default=DEFAULT_PORT): vol.All(
            vol.Coerce(int), vol.Range(min=1, max=65535)
        ),
        vol.Optional(CONF_USE_TLS, default=DEFAULT_USE_TLS): vol.Boolean(),
        vol.Required(CONF_USERNAME): vol.All(str, vol.Strip, vol.Length(min=1)),
    },
    extra=vol.REMOVE_EXTRA,
)

SESSION_SCHEMA = vol.Schema(
    {
        vol.Required("access_token"): _non_empty_str,
        vol.Required("server_id"): str,
        vol.Required("user_id"): _non_empty_str,
        vol.Required("username"): str,
        vol.Required("device_id"): str,
    },
    extra=vol.REMOVE_EXTRA,
)


__all__ = [
    "CONF_HOST",
    "CONF_PORT",
    "CONF_USERNAME",
    "CONF_USE_TLS",
    "SERVER_CONFIG_SCHEMA",
    "SESSION_SCHEMA",
]
