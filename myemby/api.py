"""Emby API client."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Self, TypeVar, TypeAlias
from urllib.parse import urlencode, urlsplit

import aiohttp

from .const import (
    CONTENT_TYPE_JSON,
    DEFAULT_LATEST_LIMIT,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RESOURCE_TIMEOUT,
    DEFAULT_SEARCH_LIMIT,
    FILTER_IS_FAVORITE,
    HEADER_AUTHORIZATION,
    HEADER_CLIENT,
    HEADER_DEVICE_ID,
    HEADER_DEVICE_NAME,
    MAX_SEARCH_TERM_LENGTH,
    QUERY_API_KEY,
    SEARCH_ITEM_TYPES,
    sanitize_api_key,
)
from .endpoints import (
    AddFavoriteItem,
    AuthenticateByName,
    Endpoint,
    GetFavoriteItems,
    GetImage,
    GetItem,
    GetItems,
    GetLatestItems,
    GetPlaybackInfo,
    GetUser,
    GetUserViews,
    RemoveFavoriteItem,
    SearchItems,
    StreamVideo,
)
from .exceptions import (
    EmbyConnectionError,
    EmbyDecodeError,
    EmbyEncodeError,
    EmbyInvalidURLError,
    EmbyMalformedResponseError,
    EmbySSLError,
    EmbyTimeoutError,
    EmbyTransportError,
    classify_status,
)
from .models import (
    AuthResult,
    ClientInfo,
    EmbyUser,
    ImageType,
    MediaItem,
    PagedResult,
    PlaybackInfo,
    ServerConfig,
    parse_auth_result,
    parse_item_list,
    parse_media_item,
    parse_paged_items,
    parse_playback_info,
    parse_user,
)
from .session_store import SessionStore

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

QueryParams: TypeAlias = Sequence[tuple[str, str]]


@dataclass(frozen=True, slots=True)
class EmbyRequest:
    """A fully built request, ready to send.

    Attributes:
        method: HTTP method.
        url: Absolute URL including query string.
        path: Request path, for logs and error messages.
        headers: HTTP headers.
        body: Serialized JSON body, if any.
        requires_auth: Whether the URL carries the access token.
        token_hint: Sanitized token, for logs only.
    """

    method: str
    url: str
    path: str
    headers: dict[str, str]
    body: bytes | None = None
    requires_auth: bool = True
    token_hint: str | None = field(default=None, repr=False)


def _bool_param(value: bool) -> str:
    return "true" if value else "false"


class EmbyApiClient:
    """Async client for the Emby REST API.

    Builds requests from endpoint descriptors, attaches client
    identification to every request and the access token to authenticated
    ones, classifies the HTTP outcome and decodes the body. It never
    retries.

    Example:
        ```python
        async with EmbyApiClient(config, session_store, client_info) as client:
            views = await client.async_get_user_views(user_id)
        ```
    """

    def __init__(
        self,
        server: ServerConfig,
        session_store: SessionStore,
        client_info: ClientInfo,
        session: aiohttp.ClientSession | None = None,
        verify_ssl: bool = True,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        resource_timeout: float = DEFAULT_RESOURCE_TIMEOUT,
    ) -> None:
        """Initialize the client.

        Args:
            server: Server to talk to.
            session_store: Source of the access token.
            client_info: Identification sent with every request.
            session: Optional aiohttp session to reuse. If not provided,
                     a new session will be created.
            verify_ssl: Whether to verify TLS certificates.
            request_timeout: Connect and per-read timeout in seconds.
            resource_timeout: Whole-transfer timeout in seconds.
        """
        self._server = server
        self._session_store = session_store
        self._client_info = client_info
        self._verify_ssl = verify_ssl
        self._timeout = aiohttp.ClientTimeout(
            total=resource_timeout,
            sock_connect=request_timeout,
            sock_read=request_timeout,
        )
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> Self:
        """Enter async context manager."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit async context manager."""
        await self.close()

    @property
    def server(self) -> ServerConfig:
        """Return the server config."""
        return self._server

    @property
    def base_url(self) -> str:
        """Return the base URL for API requests."""
        return self._server.base_url

    @property
    def client_info(self) -> ClientInfo:
        """Return the client identification."""
        return self._client_info

    # -------------------------------------------------------------------------
    # Request construction
    # -------------------------------------------------------------------------

    def _get_headers(self) -> dict[str, str]:
        """Build the headers sent on every request, authenticated or not."""
        info = self._client_info
        return {
            HEADER_CLIENT: info.client_name,
            HEADER_DEVICE_NAME: info.device_name,
            HEADER_DEVICE_ID: info.device_id,
            HEADER_AUTHORIZATION: info.authorization_header(),
            "Accept": CONTENT_TYPE_JSON,
            "Content-Type": CONTENT_TYPE_JSON,
        }

    async def async_build_url(self, endpoint: Endpoint, query: QueryParams = ()) -> str:
        """Resolve an endpoint and query into an absolute URL.

        Raises:
            EmbyInvalidURLError: The result is not a well-formed URL.
            EmbyNotLoggedInError: The endpoint requires auth and no session exists.
        """
        url, _ = await self._resolve_url(endpoint, query)
        return url

    async def _resolve_url(
        self, endpoint: Endpoint, query: QueryParams
    ) -> tuple[str, str | None]:
        """Return the absolute URL and the token it carries, if any."""
        path = endpoint.path
        url = f"{self.base_url}{path}"
        try:
            parts = urlsplit(url)
            port = parts.port
        except ValueError as err:
            raise EmbyInvalidURLError(f"Invalid URL {url!r}: {err}") from err
        if parts.scheme not in ("http", "https") or not parts.hostname or port is None:
            raise EmbyInvalidURLError(f"Invalid URL {url!r}")

        params = list(query)
        token: str | None = None
        if endpoint.requires_auth:
            token = await self._session_store.get_access_token()
            params.append((QUERY_API_KEY, token))
        if params:
            url = f"{url}?{urlencode(params)}"
        return url, token

    async def build_request(
        self,
        endpoint: Endpoint,
        query: QueryParams = (),
        body: object | None = None,
    ) -> EmbyRequest:
        """Turn an endpoint descriptor into an executable request.

        Args:
            endpoint: The endpoint to call.
            query: Extra query parameters, in order.
            body: JSON-serializable request body.

        Raises:
            EmbyInvalidURLError: The URL is not well formed.
            EmbyNotLoggedInError: The endpoint requires auth and no session exists.
            EmbyEncodeError: The body cannot be serialized.
        """
        url, token = await self._resolve_url(endpoint, query)

        payload: bytes | None = None
        if body is not None:
            try:
                payload = json.dumps(body).encode()
            except (TypeError, ValueError) as err:
                raise EmbyEncodeError(f"Cannot encode body for {endpoint.path}: {err}", err) from err

        return EmbyRequest(
            method=endpoint.method,
            url=url,
            path=endpoint.path,
            headers=self._get_headers(),
            body=payload,
            requires_auth=endpoint.requires_auth,
            token_hint=sanitize_api_key(token) if token is not None else None,
        )

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def _get_ssl_context(self) -> bool:
        """Get SSL context for requests.

        Returns:
            True for default verification, False to disable it.
        """
        if not self._server.use_tls:
            return True
        return self._verify_ssl

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def _send(self, request: EmbyRequest) -> tuple[int, bytes]:
        """Perform the HTTP exchange.

        Returns:
            Status code and raw body.

        Raises:
            EmbyConnectionError: The server could not be reached.
            EmbySSLError: TLS handshake or certificate failure.
            EmbyTimeoutError: The request timed out.
            EmbyTransportError: Any other transport failure.
        """
        _LOGGER.debug(
            "Emby API request: %s %s (auth=%s, key=%s)",
            request.method,
            request.path,
            request.requires_auth,
            request.token_hint,
        )

        session = await self._get_session()
        host, port = self._server.host, self._server.port

        try:
            async with session.request(
                request.method,
                request.url,
                headers=request.headers,
                data=request.body,
                ssl=self._get_ssl_context(),
                timeout=self._timeout,
            ) as response:
                _LOGGER.debug(
                    "Emby API response: %s %s for %s %s",
                    response.status,
                    response.reason,
                    request.method,
                    request.path,
                )
                return response.status, await response.read()

        except aiohttp.ClientSSLError as err:
            _LOGGER.error("Emby API SSL error for %s %s: %s", request.method, request.path, err)
            raise EmbySSLError(f"SSL certificate error: {err}", host=host, port=port) from err

        except TimeoutError as err:
            _LOGGER.error("Emby API timeout for %s %s", request.method, request.path)
            raise EmbyTimeoutError(
                f"Request timed out after {self._timeout.sock_read}s", err
            ) from err

        except aiohttp.ClientConnectorError as err:
            _LOGGER.error(
                "Emby API connection error for %s %s: %s", request.method, request.path, err
            )
            raise EmbyConnectionError(
                f"Failed to connect to {host}:{port}: {err}", host=host, port=port
            ) from err

        except aiohttp.ClientError as err:
            _LOGGER.error(
                "Emby API client error for %s %s: %s", request.method, request.path, err
            )
            raise EmbyTransportError(f"Client error: {err}", err) from err

    def _check_status(self, request: EmbyRequest, status: int) -> None:
        """Raise the classified error for a non-success status."""
        error = classify_status(status, request.path)
        if error is None:
            return
        _LOGGER.warning(
            "Emby API error: %s for %s %s", status, request.method, request.path
        )
        raise error

    async def execute(self, request: EmbyRequest, parser: Callable[[object], T]) -> T:
        """Send a request and decode its JSON body.

        Args:
            request: The request to send.
            parser: Turns the decoded JSON into the expected model.

        Raises:
            EmbyHTTPError: Non-success status (subclass per status class).
            EmbyMalformedResponseError: The body is not JSON.
            EmbyDecodeError: The JSON does not match the expected shape.
            EmbyMalformedDateError: A date field could not be decoded.
        """
        status, body = await self._send(request)
        self._check_status(request, status)

        try:
            data = json.loads(body)
        except ValueError as err:
            _LOGGER.error(
                "Emby API returned invalid JSON for %s %s: %s",
                request.method,
                request.path,
                err,
            )
            raise EmbyMalformedResponseError(f"Server returned invalid JSON: {err}") from err

        try:
            return parser(data)
        except EmbyDecodeError as err:
            _LOGGER.error(
                "Emby API response for %s %s did not decode: %s",
                request.method,
                request.path,
                err,
            )
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as err:
            _LOGGER.error(
                "Emby API response for %s %s did not decode: %s",
                request.method,
                request.path,
                err,
            )
            raise EmbyDecodeError(f"Unexpected response shape: {err}", err) from err

    async def execute_void(self, request: EmbyRequest) -> None:
        """Send a request, check its status and discard the body."""
        status, _ = await self._send(request)
        self._check_status(request, status)

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    async def async_authenticate(self, username: str, password: str) -> AuthResult:
        """Authenticate by username and password.

        Works without a session: only client identification is sent.
        """
        request = await self.build_request(
            AuthenticateByName(),
            body={"Username": username, "Pw": password},
        )
        return await self.execute(request, parse_auth_result)

    # -------------------------------------------------------------------------
    # Users and libraries
    # -------------------------------------------------------------------------

    async def async_get_user(self, user_id: str) -> EmbyUser:
        """Get a user."""
        request = await self.build_request(GetUser(user_id=user_id))
        return await self.execute(request, parse_user)

    async def async_get_user_views(self, user_id: str) -> list[MediaItem]:
        """Get the library views (Movies, TV Shows, ...) of a user."""
        request = await self.build_request(GetUserViews(user_id=user_id))
        result = await self.execute(request, parse_paged_items)
        return list(result.items)

    # -------------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------------

    async def async_get_items(
        self,
        user_id: str,
        parent_id: str | None = None,
        include_item_types: Sequence[str] | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
        limit: int | None = None,
        start_index: int | None = None,
        recursive: bool = True,
        filters: Sequence[str] | None = None,
    ) -> PagedResult[MediaItem]:
        """Query items.

        Args:
            user_id: The user ID.
            parent_id: Parent library/folder ID.
            include_item_types: Item types to include, e.g. ("Movie", "Series").
            sort_by: Sort field, e.g. "SortName" or "DateCreated".
            sort_order: "Ascending" or "Descending".
            limit: Max items to return.
            start_index: Pagination offset.
            recursive: Include nested items.
            filters: Filters such as "IsPlayed" or "IsFavorite".

        Returns:
            One page of items with the total count.
        """
        params: list[tuple[str, str]] = []
        if parent_id:
            params.append(("ParentId", parent_id))
        if include_item_types:
            params.append(("IncludeItemTypes", ",".join(include_item_types)))
        if sort_by:
            params.append(("SortBy", sort_by))
        if sort_order:
            params.append(("SortOrder", sort_order))
        if limit is not None:
            params.append(("Limit", str(limit)))
        if start_index is not None:
            params.append(("StartIndex", str(start_index)))
        params.append(("Recursive", _bool_param(recursive)))
        if filters:
            params.append(("Filters", ",".join(filters)))

        request = await self.build_request(GetItems(user_id=user_id), params)
        return await self.execute(request, parse_paged_items)

    async def async_get_item(self, user_id: str, item_id: str) -> MediaItem:
        """Get one item with full detail."""
        request = await self.build_request(GetItem(user_id=user_id, item_id=item_id))
        return await self.execute(request, parse_media_item)

    async def async_get_latest_items(
        self,
        user_id: str,
        parent_id: str | None = None,
        limit: int = DEFAULT_LATEST_LIMIT,
        include_item_types: Sequence[str] | None = None,
    ) -> list[MediaItem]:
        """Get recently added items, optionally within one library."""
        params: list[tuple[str, str]] = [("Limit", str(limit))]
        if parent_id:
            params.append(("ParentId", parent_id))
        if include_item_types:
            params.append(("IncludeItemTypes", ",".join(include_item_types)))

        request = await self.build_request(GetLatestItems(user_id=user_id), params)
        return await self.execute(request, parse_item_list)

    async def async_search_items(
        self,
        user_id: str,
        search_term: str,
        limit: int = DEFAULT_SEARCH_LIMIT,
        include_item_types: Sequence[str] = SEARCH_ITEM_TYPES,
    ) -> PagedResult[MediaItem]:
        """Search the library by name.

        Raises:
            ValueError: Search term is empty or too long.
        """
        if len(search_term) > MAX_SEARCH_TERM_LENGTH:
            raise ValueError(
                f"Search term exceeds maximum length of {MAX_SEARCH_TERM_LENGTH} characters"
            )
        if not search_term.strip():
            raise ValueError("Search term cannot be empty")

        params: list[tuple[str, str]] = [
            ("SearchTerm", search_term.strip()),
            ("Limit", str(limit)),
            ("Recursive", "true"),
            ("SortBy", "SortName"),
            ("SortOrder", "Ascending"),
        ]
        if include_item_types:
            params.append(("IncludeItemTypes", ",".join(include_item_types)))

        request = await self.build_request(SearchItems(user_id=user_id), params)
        return await self.execute(request, parse_paged_items)

    # -------------------------------------------------------------------------
    # Favorites
    # -------------------------------------------------------------------------

    async def async_get_favorite_items(
        self,
        user_id: str,
        include_item_types: Sequence[str] | None = None,
        limit: int | None = None,
        start_index: int | None = None,
    ) -> PagedResult[MediaItem]:
        """Get the user's favorite items."""
        params: list[tuple[str, str]] = [
            ("Filters", FILTER_IS_FAVORITE),
            ("Recursive", "true"),
            ("SortBy", "SortName"),
            ("SortOrder", "Ascending"),
        ]
        if include_item_types:
            params.append(("IncludeItemTypes", ",".join(include_item_types)))
        if limit is not None:
            params.append(("Limit", str(limit)))
        if start_index is not None:
            params.append(("StartIndex", str(start_index)))

        request = await self.build_request(GetFavoriteItems(user_id=user_id), params)
        return await self.execute(request, parse_paged_items)

    async def async_add_favorite(self, user_id: str, item_id: str) -> None:
        """Add an item to the user's favorites."""
        request = await self.build_request(AddFavoriteItem(user_id=user_id, item_id=item_id))
        await self.execute_void(request)

    async def async_remove_favorite(self, user_id: str, item_id: str) -> None:
        """Remove an item from the user's favorites."""
        request = await self.build_request(RemoveFavoriteItem(user_id=user_id, item_id=item_id))
        await self.execute_void(request)

    # -------------------------------------------------------------------------
    # Playback and images
    # -------------------------------------------------------------------------

    async def async_get_playback_info(self, item_id: str, user_id: str) -> PlaybackInfo:
        """Get media sources and tracks available for playback."""
        request = await self.build_request(
            GetPlaybackInfo(item_id=item_id), [("UserId", user_id)]
        )
        return await self.execute(request, parse_playback_info)

    async def async_get_stream_url(self, item_id: str) -> str:
        """Return the direct (static) stream URL for a video.

        The URL carries the access token so an opaque player can fetch it.

        Raises:
            EmbyNotLoggedInError: No session exists.
        """
        return await self.async_build_url(StreamVideo(item_id=item_id), [("Static", "true")])

    async def async_get_image_url(
        self,
        item_id: str,
        image_type: ImageType = ImageType.PRIMARY,
        max_width: int | None = None,
        max_height: int | None = None,
        tag: str | None = None,
    ) -> str:
        """Return the URL of an item image.

        Args:
            item_id: The item ID.
            image_type: Image variant.
            max_width: Optional maximum width.
            max_height: Optional maximum height.
            tag: Optional image tag for cache busting.
        """
        params: list[tuple[str, str]] = []
        if max_width is not None:
            params.append(("maxWidth", str(max_width)))
        if max_height is not None:
            params.append(("maxHeight", str(max_height)))
        if tag is not None:
            params.append(("tag", tag))
        return await self.async_build_url(
            GetImage(item_id=item_id, image_type=image_type), params
        )

    async def close(self) -> None:
        """Close the client session.

        Only closes the session if it was created by this client.
        Sessions provided externally are not closed.
        """
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()


__all__ = ["EmbyApiClient", "EmbyRequest", "QueryParams"]
