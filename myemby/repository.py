"""Repositories composing the session store and the API client."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar, TypeAlias

import aiohttp

from .api import EmbyApiClient
from .cache import ItemCache
from .const import DEFAULT_LATEST_LIMIT, DEFAULT_SEARCH_LIMIT, SEARCH_ITEM_TYPES
from .device import DeviceIdentityProvider
from .exceptions import (
    EmbyError,
    EmbyNotLoggedInError,
    EmbyReauthenticationRequiredError,
    EmbyStorageError,
)
from .models import (
    ClientInfo,
    ImageType,
    MediaItem,
    PagedResult,
    PlaybackInfo,
    ServerConfig,
    Session,
)
from .session_store import SessionStore

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

InvalidationListener: TypeAlias = Callable[[], None]


class AuthRepository:
    """Login, logout and session lifecycle.

    Owns the transitions between logged-out and logged-in. Listeners
    registered with ``add_invalidation_listener`` are told when the server
    rejected the session and the user must log in again.
    """

    def __init__(
        self,
        session_store: SessionStore,
        device_provider: DeviceIdentityProvider,
        http_session: aiohttp.ClientSession | None = None,
        verify_ssl: bool = True,
    ) -> None:
        """Initialize the repository.

        Args:
            session_store: Owner of the persisted session and config.
            device_provider: Source of the device identifier.
            http_session: Optional aiohttp session shared by created clients.
            verify_ssl: Whether created clients verify TLS certificates.
        """
        self._session_store = session_store
        self._device_provider = device_provider
        self._http_session = http_session
        self._verify_ssl = verify_ssl
        self._invalidation_listeners: list[InvalidationListener] = []

    def add_invalidation_listener(self, listener: InvalidationListener) -> Callable[[], None]:
        """Register a listener for server-side session invalidation.

        Returns:
            Function that removes the listener.
        """
        self._invalidation_listeners.append(listener)

        def remove_listener() -> None:
            if listener in self._invalidation_listeners:
                self._invalidation_listeners.remove(listener)

        return remove_listener

    async def create_client(self, config: ServerConfig) -> EmbyApiClient:
        """Build an API client for a server."""
        device_id = await self._device_provider.get_or_create_device_id()
        return EmbyApiClient(
            server=config,
            session_store=self._session_store,
            client_info=ClientInfo(device_id=device_id),
            session=self._http_session,
            verify_ssl=self._verify_ssl,
        )

    async def login(self, config: ServerConfig, password: str) -> Session:
        """Authenticate against a server and persist the result.

        Args:
            config: Candidate server settings, not yet persisted.
            password: The account password. Never stored.

        Returns:
            The persisted session.

        Raises:
            EmbyAuthenticationError: Wrong username or password.
            EmbyConnectionError: The server could not be reached.
            EmbyStorageError: The session could not be persisted; the
                login did not happen.
        """
        client = await self.create_client(config)
        try:
            auth = await client.async_authenticate(config.username, password)
        finally:
            await client.close()

        session = auth.to_session(client.client_info.device_id)
        await self._session_store.login(config, session)
        return session

    async def logout(self) -> None:
        """Forget the session and server config.

        Raises:
            EmbyStorageError: The store failed to delete.
        """
        await self._session_store.logout()

    async def is_logged_in(self) -> bool:
        """Return whether a session is stored."""
        return await self._session_store.is_logged_in()

    async def get_session(self) -> Session:
        """Return the current session.

        Raises:
            EmbyNotLoggedInError: No session is stored.
        """
        return await self._session_store.get_session()

    async def get_server_config(self) -> ServerConfig:
        """Return the persisted server config.

        Raises:
            EmbyNotLoggedInError: No server config is stored.
        """
        return await self._session_store.get_server_config()

    async def restore_session(self) -> EmbyApiClient | None:
        """Return a client for the persisted session, if there is one."""
        if not await self._session_store.is_logged_in():
            return None
        try:
            config = await self._session_store.get_server_config()
        except EmbyNotLoggedInError:
            _LOGGER.warning("Session stored without a server config, ignoring it")
            return None
        _LOGGER.debug("Restored session for %s", config.base_url)
        return await self.create_client(config)

    async def handle_authentication_invalidated(self, access_token: str | None = None) -> bool:
        """Clear the rejected session and notify listeners.

        When ``access_token`` is given, only a session still holding that
        token is cleared. Concurrent rejections of the same token notify
        once, and a session created since the request was sent is kept.

        Never raises; a failure to clear is logged.

        Returns:
            False if the session had already been cleared or replaced.
        """
        try:
            if access_token is None:
                await self._session_store.logout()
            elif not await self._session_store.invalidate_session(access_token):
                return False
        except EmbyStorageError as err:
            _LOGGER.error("Failed to clear rejected session: %s", err)
        _LOGGER.info("Session invalidated by server, reauthentication required")
        for listener in list(self._invalidation_listeners):
            listener()
        return True


class MediaRepository:
    """Catalog browsing and playback on behalf of the logged-in user.

    Every call reads the current user from the session store. When the
    server rejects the session, the session is invalidated through the
    auth repository and EmbyReauthenticationRequiredError is raised. All
    other errors propagate unchanged.
    """

    def __init__(
        self,
        client: EmbyApiClient,
        session_store: SessionStore,
        auth: AuthRepository,
        item_cache: ItemCache | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            client: API client for the logged-in server.
            session_store: Source of the current user id.
            auth: Handles session invalidation.
            item_cache: Item map used to resolve image URLs.
        """
        self._client = client
        self._session_store = session_store
        self._auth = auth
        self._items = item_cache if item_cache is not None else ItemCache()

    @property
    def item_cache(self) -> ItemCache:
        """Return the item cache."""
        return self._items

    async def _guard(self, call: Callable[[str], Awaitable[T]]) -> T:
        """Run a call for the current user, translating session rejection."""
        session = await self._session_store.get_session()
        try:
            return await call(session.user_id)
        except EmbyError as err:
            if not err.requires_reauthentication:
                raise
            _LOGGER.warning("Server rejected the session: %s", err)
            if await self._auth.handle_authentication_invalidated(session.access_token):
                self._items.clear()
            raise EmbyReauthenticationRequiredError() from err

    def _remember(self, items: Sequence[MediaItem]) -> None:
        self._items.put_many(items)

    async def get_user_views(self) -> list[MediaItem]:
        """Return the user's library views."""
        views = await self._guard(self._client.async_get_user_views)
        self._remember(views)
        return views

    async def get_items(
        self,
        parent_id: str | None = None,
        include_item_types: Sequence[str] | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
        limit: int | None = None,
        start_index: int | None = None,
        recursive: bool = True,
        filters: Sequence[str] | None = None,
    ) -> PagedResult[MediaItem]:
        """Return one page of items matching the filters."""
        result = await self._guard(
            lambda user_id: self._client.async_get_items(
                user_id,
                parent_id=parent_id,
                include_item_types=include_item_types,
                sort_by=sort_by,
                sort_order=sort_order,
                limit=limit,
                start_index=start_index,
                recursive=recursive,
                filters=filters,
            )
        )
        self._remember(result.items)
        return result

    async def get_item(self, item_id: str) -> MediaItem:
        """Return one item with full detail.

        Raises:
            EmbyNotLoggedInError: No session; no request is sent.
        """
        item = await self._guard(
            lambda user_id: self._client.async_get_item(user_id, item_id)
        )
        self._items.put(item)
        return item

    async def get_latest_items(
        self,
        parent_id: str | None = None,
        limit: int = DEFAULT_LATEST_LIMIT,
        include_item_types: Sequence[str] | None = None,
    ) -> list[MediaItem]:
        """Return recently added items."""
        items = await self._guard(
            lambda user_id: self._client.async_get_latest_items(
                user_id,
                parent_id=parent_id,
                limit=limit,
                include_item_types=include_item_types,
            )
        )
        self._remember(items)
        return items

    async def search_items(
        self,
        search_term: str,
        limit: int = DEFAULT_SEARCH_LIMIT,
        include_item_types: Sequence[str] = SEARCH_ITEM_TYPES,
    ) -> PagedResult[MediaItem]:
        """Search the library by name."""
        result = await self._guard(
            lambda user_id: self._client.async_search_items(
                user_id,
                search_term,
                limit=limit,
                include_item_types=include_item_types,
            )
        )
        self._remember(result.items)
        return result

    async def get_favorite_items(
        self,
        include_item_types: Sequence[str] | None = None,
        limit: int | None = None,
        start_index: int | None = None,
    ) -> PagedResult[MediaItem]:
        """Return the user's favorite items."""
        result = await self._guard(
            lambda user_id: self._client.async_get_favorite_items(
                user_id,
                include_item_types=include_item_types,
                limit=limit,
                start_index=start_index,
            )
        )
        self._remember(result.items)
        return result

    async def add_favorite(self, item_id: str) -> None:
        """Mark an item as favorite."""
        await self._guard(lambda user_id: self._client.async_add_favorite(user_id, item_id))
        self._items.delete(item_id)

    async def remove_favorite(self, item_id: str) -> None:
        """Unmark an item as favorite."""
        await self._guard(
            lambda user_id: self._client.async_remove_favorite(user_id, item_id)
        )
        self._items.delete(item_id)

    async def get_playback_info(self, item_id: str) -> PlaybackInfo:
        """Return media sources available for playback."""
        return await self._guard(
            lambda user_id: self._client.async_get_playback_info(item_id, user_id)
        )

    async def get_image_url(
        self,
        item_id: str,
        image_type: ImageType = ImageType.PRIMARY,
        max_width: int | None = None,
        max_height: int | None = None,
        tag: str | None = None,
    ) -> str:
        """Return the URL of an item image."""
        return await self._client.async_get_image_url(
            item_id,
            image_type=image_type,
            max_width=max_width,
            max_height=max_height,
            tag=tag,
        )

    async def get_item_image_url(
        self,
        item_id: str,
        image_type: ImageType = ImageType.PRIMARY,
        max_width: int | None = None,
        max_height: int | None = None,
    ) -> str | None:
        """Return the image URL of an item, tagged for cache busting.

        Uses the item cache and only fetches the item on a miss.

        Returns:
            The URL, or None if the item has no image of that type.
        """
        item = self._items.get(item_id)
        if item is None:
            item = await self.get_item(item_id)
        tag = item.image_tags.get(image_type)
        if tag is None:
            return None
        return await self.get_image_url(
            item_id,
            image_type=image_type,
            max_width=max_width,
            max_height=max_height,
            tag=tag,
        )

    async def get_stream_url(self, item_id: str) -> str:
        """Return the direct stream URL for a video.

        Raises:
            EmbyNotLoggedInError: No session is stored.
        """
        return await self._client.async_get_stream_url(item_id)


__all__ = ["AuthRepository", "InvalidationListener", "MediaRepository"]
