"""Tests for configuration schemas."""

from __future__ import annotations

import pytest
import voluptuous as vol

from myemby.config import SERVER_CONFIG_SCHEMA, SESSION_SCHEMA
from myemby.const import normalize_host, sanitize_api_key


class TestServerConfigSchema:
    """Test SERVER_CONFIG_SCHEMA."""

    def test_valid(self) -> None:
        """Test valid input passes unchanged."""
        data = SERVER_CONFIG_SCHEMA(
            {"host": "emby.local", "port": 8096, "use_tls": False, "username": "alice"}
        )
        assert data == {"host": "emby.local", "port": 8096, "use_tls": False, "username": "alice"}

    def test_extra_keys_removed(self) -> None:
        """Test unknown keys are dropped."""
        data = SERVER_CONFIG_SCHEMA({"host": "emby.local", "username": "a", "password": "pw"})
        assert "password" not in data

    @pytest.mark.parametrize("host", ["", "   ", "emby local", "emby.local/path", "user@emby"])
    def test_invalid_host(self, host: str) -> None:
        """Test hosts that cannot form a URL."""
        with pytest.raises(vol.Invalid):
            SERVER_CONFIG_SCHEMA({"host": host, "username": "a"})

    @pytest.mark.parametrize("host", ["emby.local:8096", "http://emby.local:8096/", "::1"])
    def test_host_with_port_rejected(self, host: str) -> None:
        """Test a port belongs in the port field, not the host."""
        with pytest.raises(vol.Invalid):
            SERVER_CONFIG_SCHEMA({"host": host, "username": "a"})

    def test_bracketed_ipv6_host(self) -> None:
        """Test a bracketed IPv6 literal is accepted."""
        data = SERVER_CONFIG_SCHEMA({"host": "[::1]", "username": "a"})
        assert data["host"] == "[::1]"

    @pytest.mark.parametrize("port", [0, -1, 65536, "abc"])
    def test_invalid_port(self, port: object) -> None:
        """Test out-of-range and non-numeric ports."""
        with pytest.raises(vol.Invalid):
            SERVER_CONFIG_SCHEMA({"host": "emby.local", "port": port, "username": "a"})

    def test_empty_username(self) -> None:
        """Test a blank username is rejected."""
        with pytest.raises(vol.Invalid):
            SERVER_CONFIG_SCHEMA({"host": "emby.local", "username": "  "})

    def test_missing_username(self) -> None:
        """Test username is required."""
        with pytest.raises(vol.Invalid):
            SERVER_CONFIG_SCHEMA({"host": "emby.local"})


class TestSessionSchema:
    """Test SESSION_SCHEMA."""

    def test_requires_user_id(self) -> None:
        """Test an empty user id is rejected."""
        with pytest.raises(vol.Invalid):
            SESSION_SCHEMA(
                {
                    "access_token": "t",
                    "server_id": "s",
                    "user_id": "",
                    "username": "u",
                    "device_id": "d",
                }
            )


class TestHelpers:
    """Test helper functions."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("emby.local", "emby.local"),
            ("http://emby.local", "emby.local"),
            ("HTTPS://emby.local/", "emby.local"),
            ("  emby.local//  ", "emby.local"),
        ],
    )
    def test_normalize_host(self, raw: str, expected: str) -> None:
        """Test scheme and trailing slashes are removed."""
        assert normalize_host(raw) == expected

    def test_sanitize_long_key(self) -> None:
        """Test a long token is truncated."""
        assert sanitize_api_key("abcdefghijkl") == "abcd...kl"

    def test_sanitize_short_key(self) -> None:
        """Test a short token is fully masked."""
        assert sanitize_api_key("abc") == "***"
