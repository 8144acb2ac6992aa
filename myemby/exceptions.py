"""Exceptions for the MyEmby client core."""

from __future__ import annotations

from typing import ClassVar


class EmbyError(Exception):
    """Base exception for the client core.

    Carries a translation key so the presentation layer can show a
    localized message, plus the two predicates it uses to decide between
    offering a retry, routing to login, or showing a static message.

    Attributes:
        translation_key: Key for looking up the user-facing message.
        translation_placeholders: Values to substitute in that message.
    """

    retryable: ClassVar[bool] = False
    reauthenticate: ClassVar[bool] = False

    def __init__(
        self,
        message: str,
        translation_key: str | None = None,
        translation_placeholders: dict[str, str] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: The error message (English, for logs).
            translation_key: Optional translation key for the UI.
            translation_placeholders: Optional placeholders for translation.
        """
        super().__init__(message)
        self.translation_key = translation_key
        self.translation_placeholders = translation_placeholders or {}

    @property
    def is_retryable(self) -> bool:
        """Return whether the caller may offer a retry."""
        return self.retryable

    @property
    def requires_reauthentication(self) -> bool:
        """Return whether the caller must route to the login flow."""
        return self.reauthenticate

    @property
    def alert_title(self) -> str:
        """Return the message category for the alert title."""
        if self.requires_reauthentication:
            return "reauth"
        return "generic"


class EmbyInvalidURLError(EmbyError):
    """Raised when a request URL cannot be built from the server config."""

    def __init__(self, message: str) -> None:
        """Initialize invalid URL error."""
        super().__init__(message, translation_key="invalid_url")


class EmbyConnectionError(EmbyError):
    """Raised when the server cannot be reached at all.

    This includes DNS resolution failures and refused connections.
    """

    retryable = True

    def __init__(
        self,
        message: str,
        host: str = "",
        port: int = 0,
    ) -> None:
        """Initialize with connection details.

        Args:
            message: The error message.
            host: The server host (for translation placeholder).
            port: The server port (for translation placeholder).
        """
        super().__init__(
            message,
            translation_key="connection_failed",
            translation_placeholders={"host": host, "port": str(port)},
        )

    @property
    def alert_title(self) -> str:
        """Return the message category for the alert title."""
        return "network"


class EmbySSLError(EmbyConnectionError):
    """Raised for SSL/TLS certificate errors.

    Inherits from EmbyConnectionError as SSL errors prevent connection.
    """

    retryable = False

    def __init__(self, message: str, host: str = "", port: int = 0) -> None:
        """Initialize SSL error."""
        super().__init__(message, host=host, port=port)
        self.translation_key = "ssl_error"


class EmbyTransportError(EmbyError):
    """Raised when the HTTP exchange fails after the connection was made.

    Attributes:
        cause: The underlying transport exception, if any.
    """

    retryable = True

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        """Initialize transport error.

        Args:
            message: The error message.
            cause: The underlying transport exception.
        """
        super().__init__(message, translation_key="request_failed")
        self.cause = cause

    @property
    def alert_title(self) -> str:
        """Return the message category for the alert title."""
        return "network"


class EmbyTimeoutError(EmbyTransportError):
    """Raised when a request times out."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        """Initialize timeout error."""
        super().__init__(message, cause=cause)
        self.translation_key = "timeout"


class EmbyMalformedResponseError(EmbyError):
    """Raised when a successful response body is not valid JSON."""

    def __init__(self, message: str) -> None:
        """Initialize malformed response error."""
        super().__init__(message, translation_key="invalid_response")


class EmbyHTTPError(EmbyError):
    """Raised for a non-success HTTP status without a more specific class.

    Attributes:
        status: The HTTP status code.
    """

    def __init__(
        self,
        message: str,
        status: int,
        translation_key: str = "http_error",
    ) -> None:
        """Initialize HTTP error.

        Args:
            message: The error message.
            status: The HTTP status code.
            translation_key: Translation key for the UI.
        """
        super().__init__(
            message,
            translation_key=translation_key,
            translation_placeholders={"status": str(status)},
        )
        self.status = status


class EmbyAuthenticationError(EmbyHTTPError):
    """Raised for HTTP 401 responses: the token was rejected."""

    reauthenticate = True

    def __init__(self, message: str) -> None:
        """Initialize authentication error."""
        super().__init__(message, status=401, translation_key="authentication_failed")


class EmbyForbiddenError(EmbyHTTPError):
    """Raised for HTTP 403 responses."""

    def __init__(self, message: str) -> None:
        """Initialize forbidden error."""
        super().__init__(message, status=403, translation_key="forbidden")


class EmbyNotFoundError(EmbyHTTPError):
    """Raised for HTTP 404 responses, or a lookup that found nothing."""

    def __init__(self, message: str) -> None:
        """Initialize not found error."""
        super().__init__(message, status=404, translation_key="not_found")

    @property
    def alert_title(self) -> str:
        """Return the message category for the alert title."""
        return "not_found"


class EmbyServerError(EmbyHTTPError):
    """Raised for HTTP 408 and 5xx responses."""

    retryable = True

    def __init__(self, message: str, status: int = 500) -> None:
        """Initialize server error."""
        super().__init__(message, status=status, translation_key="server_error")

    @property
    def alert_title(self) -> str:
        """Return the message category for the alert title."""
        return "server"


class EmbyDecodeError(EmbyError):
    """Raised when a response body does not match the expected shape.

    Attributes:
        cause: The underlying decoding exception, if any.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        """Initialize decode error."""
        super().__init__(message, translation_key="decoding_failed")
        self.cause = cause


class EmbyMalformedDateError(EmbyDecodeError):
    """Raised when a date field matches none of the server's date encodings.

    Attributes:
        path: Dotted coding path of the offending field, e.g. ``Items[2].PremiereDate``.
        value: The raw value that failed to parse.
    """

    def __init__(self, path: str, value: object) -> None:
        """Initialize malformed date error.

        Args:
            path: Coding path of the field.
            value: The raw value.
        """
        super().__init__(
            f"Cannot parse date at {path!r}: {value!r} "
            "(expected ISO 8601 or a Unix timestamp)"
        )
        self.translation_key = "malformed_date"
        self.path = path
        self.value = value


class EmbyEncodeError(EmbyError):
    """Raised when a request body cannot be serialized to JSON."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        """Initialize encode error."""
        super().__init__(message, translation_key="encoding_failed")
        self.cause = cause


class EmbyNotLoggedInError(EmbyError):
    """Raised when an operation needs a session and none is stored."""

    def __init__(self, message: str = "Not logged in") -> None:
        """Initialize not logged in error."""
        super().__init__(message, translation_key="not_logged_in")


class EmbyTokenExpiredError(EmbyError):
    """Raised when the stored access token is known to be expired."""

    reauthenticate = True

    def __init__(self, message: str = "Access token expired") -> None:
        """Initialize token expired error."""
        super().__init__(message, translation_key="token_expired")


class EmbyReauthenticationRequiredError(EmbyError):
    """Raised by the repositories after the server rejected the session.

    The session has already been cleared when this is raised.
    """

    reauthenticate = True

    def __init__(self, message: str = "Reauthentication required") -> None:
        """Initialize reauthentication required error."""
        super().__init__(message, translation_key="reauthentication_required")


class EmbyStorageError(EmbyError):
    """Raised when the secure store fails to read, write or delete."""

    def __init__(self, message: str) -> None:
        """Initialize storage error."""
        super().__init__(message, translation_key="storage_failed")


class SecureStoreKeyNotFoundError(EmbyStorageError):
    """Raised when a key is absent from the secure store.

    Attributes:
        key: The missing key.
    """

    def __init__(self, key: str) -> None:
        """Initialize key not found error."""
        super().__init__(f"No value stored for key {key!r}")
        self.key = key


class SecureStoreDecodeError(EmbyStorageError):
    """Raised when stored bytes do not match the requested shape."""


def classify_status(status: int, path: str = "") -> EmbyHTTPError | None:
    """Classify an HTTP status code.

    Args:
        status: The HTTP status code.
        path: Request path, used in the message.

    Returns:
        None for 2xx, otherwise the typed error to raise.
    """
    if 200 <= status <= 299:
        return None
    if status == 401:
        return EmbyAuthenticationError(f"Authentication failed: {status} for {path}")
    if status == 403:
        return EmbyForbiddenError(f"Access forbidden: {path}")
    if status == 404:
        return EmbyNotFoundError(f"Resource not found: {path}")
    if status == 408 or 500 <= status <= 599:
        return EmbyServerError(f"Server error: {status} for {path}", status=status)
    return EmbyHTTPError(f"HTTP error: {status} for {path}", status=status)


__all__ = [
    "EmbyAuthenticationError",
    "EmbyConnectionError",
    "EmbyDecodeError",
    "EmbyEncodeError",
    "EmbyError",
    "EmbyForbiddenError",
    "EmbyHTTPError",
    "EmbyInvalidURLError",
    "EmbyMalformedDateError",
    "EmbyMalformedResponseError",
    "EmbyNotFoundError",
    "EmbyNotLoggedInError",
    "EmbyReauthenticationRequiredError",
    "EmbySSLError",
    "EmbyServerError",
    "EmbyStorageError",
    "EmbyTimeoutError",
    "EmbyTokenExpiredError",
    "EmbyTransportError",
    "SecureStoreDecodeError",
    "SecureStoreKeyNotFoundError",
    "classify_status",
]
