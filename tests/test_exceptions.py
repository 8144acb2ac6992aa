"""Tests for MyEmby exceptions."""

from __future__ import annotations

import pytest

from myemby.exceptions import (
    EmbyAuthenticationError,
    EmbyConnectionError,
    EmbyDecodeError,
    EmbyEncodeError,
    EmbyError,
    EmbyForbiddenError,
    EmbyHTTPError,
    EmbyInvalidURLError,
    EmbyMalformedDateError,
    EmbyMalformedResponseError,
    EmbyNotFoundError,
    EmbyNotLoggedInError,
    EmbyReauthenticationRequiredError,
    EmbyServerError,
    EmbySSLError,
    EmbyStorageError,
    EmbyTimeoutError,
    EmbyTokenExpiredError,
    EmbyTransportError,
    SecureStoreDecodeError,
    SecureStoreKeyNotFoundError,
    classify_status,
)


class TestExceptionHierarchy:
    """Test exception inheritance hierarchy."""

    def test_emby_error_is_base_exception(self) -> None:
        """Test EmbyError is the base exception class."""
        err = EmbyError("test error")
        assert isinstance(err, Exception)
        assert str(err) == "test error"

    def test_ssl_error_is_connection_error(self) -> None:
        """Test EmbySSLError inherits from EmbyConnectionError."""
        assert isinstance(EmbySSLError("bad cert"), EmbyConnectionError)

    def test_timeout_is_transport_error(self) -> None:
        """Test EmbyTimeoutError inherits from EmbyTransportError."""
        assert isinstance(EmbyTimeoutError("slow"), EmbyTransportError)

    def test_status_errors_are_http_errors(self) -> None:
        """Test status-specific errors inherit from EmbyHTTPError."""
        assert isinstance(EmbyAuthenticationError("x"), EmbyHTTPError)
        assert isinstance(EmbyForbiddenError("x"), EmbyHTTPError)
        assert isinstance(EmbyNotFoundError("x"), EmbyHTTPError)
        assert isinstance(EmbyServerError("x"), EmbyHTTPError)

    def test_malformed_date_is_decode_error(self) -> None:
        """Test EmbyMalformedDateError inherits from EmbyDecodeError."""
        err = EmbyMalformedDateError("Items[0].DateCreated", "bogus")
        assert isinstance(err, EmbyDecodeError)
        assert "Items[0].DateCreated" in str(err)

    def test_store_errors_are_storage_errors(self) -> None:
        """Test secure store errors inherit from EmbyStorageError."""
        assert isinstance(SecureStoreKeyNotFoundError("k"), EmbyStorageError)
        assert isinstance(SecureStoreDecodeError("bad"), EmbyStorageError)

    def test_cause_is_kept(self) -> None:
        """Test wrapping errors keep their cause."""
        cause = ValueError("boom")
        assert EmbyTransportError("failed", cause).cause is cause
        assert EmbyDecodeError("failed", cause).cause is cause
        assert EmbyEncodeError("failed", cause).cause is cause


class TestErrorPolicy:
    """Test retry and reauthentication predicates."""

    @pytest.mark.parametrize(
        "err",
        [
            EmbyConnectionError("down"),
            EmbyTransportError("reset"),
            EmbyTimeoutError("slow"),
            EmbyServerError("boom", status=503),
        ],
    )
    def test_retryable(self, err: EmbyError) -> None:
        """Test transient failures offer a retry."""
        assert err.is_retryable is True
        assert err.requires_reauthentication is False

    @pytest.mark.parametrize(
        "err",
        [
            EmbySSLError("bad cert"),
            EmbyInvalidURLError("bad"),
            EmbyMalformedResponseError("bad"),
            EmbyForbiddenError("no"),
            EmbyNotFoundError("gone"),
            EmbyDecodeError("bad"),
            EmbyEncodeError("bad"),
            EmbyNotLoggedInError(),
            EmbyStorageError("disk"),
        ],
    )
    def test_not_retryable(self, err: EmbyError) -> None:
        """Test permanent failures show a static message."""
        assert err.is_retryable is False
        assert err.requires_reauthentication is False

    @pytest.mark.parametrize(
        "err",
        [
            EmbyAuthenticationError("rejected"),
            EmbyTokenExpiredError(),
            EmbyReauthenticationRequiredError(),
        ],
    )
    def test_requires_reauthentication(self, err: EmbyError) -> None:
        """Test rejected sessions route to login."""
        assert err.requires_reauthentication is True
        assert err.is_retryable is False
        assert err.alert_title == "reauth"

    def test_alert_titles(self) -> None:
        """Test alert title categories."""
        assert EmbyConnectionError("down").alert_title == "network"
        assert EmbyTimeoutError("slow").alert_title == "network"
        assert EmbyServerError("boom").alert_title == "server"
        assert EmbyNotFoundError("gone").alert_title == "not_found"
        assert EmbyDecodeError("bad").alert_title == "generic"


class TestTranslationKeys:
    """Test translation keys and placeholders."""

    def test_connection_error_placeholders(self) -> None:
        """Test connection errors carry host and port."""
        err = EmbyConnectionError("down", host="emby.local", port=8096)
        assert err.translation_key == "connection_failed"
        assert err.translation_placeholders == {"host": "emby.local", "port": "8096"}

    def test_ssl_error_key(self) -> None:
        """Test SSL errors use their own key."""
        assert EmbySSLError("bad cert").translation_key == "ssl_error"

    def test_http_error_status_placeholder(self) -> None:
        """Test HTTP errors carry the status."""
        err = EmbyHTTPError("teapot", status=418)
        assert err.status == 418
        assert err.translation_placeholders == {"status": "418"}

    def test_default_placeholders_empty(self) -> None:
        """Test placeholders default to an empty dict."""
        assert EmbyError("x").translation_placeholders == {}


class TestClassifyStatus:
    """Test HTTP status classification."""

    @pytest.mark.parametrize("status", [200, 201, 204, 299])
    def test_success(self, status: int) -> None:
        """Test 2xx yields no error."""
        assert classify_status(status) is None

    def test_unauthorized(self) -> None:
        """Test 401 requires reauthentication."""
        err = classify_status(401, "/Users/u1/Items")
        assert isinstance(err, EmbyAuthenticationError)
        assert err.requires_reauthentication is True
        assert err.status == 401

    def test_forbidden(self) -> None:
        """Test 403."""
        assert isinstance(classify_status(403), EmbyForbiddenError)

    def test_not_found(self) -> None:
        """Test 404 includes the path."""
        err = classify_status(404, "/Users/u1/Items/x")
        assert isinstance(err, EmbyNotFoundError)
        assert "/Users/u1/Items/x" in str(err)

    @pytest.mark.parametrize("status", [408, 500, 502, 503, 599])
    def test_server_error(self, status: int) -> None:
        """Test 408 and 5xx are retryable server errors."""
        err = classify_status(status)
        assert isinstance(err, EmbyServerError)
        assert err.status == status
        assert err.is_retryable is True

    @pytest.mark.parametrize("status", [301, 400, 418, 429])
    def test_other(self, status: int) -> None:
        """Test other codes map to the plain HTTP error."""
        err = classify_status(status)
        assert type(err) is EmbyHTTPError
        assert err.status == status
        assert err.is_retryable is False
