"""Serialized access to the current session and server config."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TypeAlias

from .const import (
    CLIENT_NAME,
    CLIENT_VERSION,
    DEFAULT_DEVICE_NAME,
    STORAGE_KEY_SERVER_CONFIG,
    STORAGE_KEY_SESSION,
)
from .exceptions import (
    EmbyNotLoggedInError,
    EmbyStorageError,
    SecureStoreDecodeError,
    SecureStoreKeyNotFoundError,
)
from .models import ClientInfo, ServerConfig, Session
from .store import SecureStore

_LOGGER = logging.getLogger(__name__)

SessionListener: TypeAlias = Callable[[bool], None]


class SessionStore:
    """Single-writer owner of the persisted Session and ServerConfig.

    Every operation holds one lock for its whole duration, so a reader
    never observes a half-written session and no two mutations interleave.
    This is the only component that reads or writes the session and server
    config keys of the secure store.

    Listeners registered with ``add_listener`` are called with the new
    logged-in state after every transition.
    """

    def __init__(
        self,
        store: SecureStore,
        client_name: str = CLIENT_NAME,
        device_name: str = DEFAULT_DEVICE_NAME,
        version: str = CLIENT_VERSION,
    ) -> None:
        """Initialize the session store.

        Args:
            store: Backing secure store.
            client_name: Client name used in the authorization header.
            device_name: Device name used in the authorization header.
            version: Client version used in the authorization header.
        """
        self._store = store
        self._client_name = client_name
        self._device_name = device_name
        self._version = version
        self._lock = asyncio.Lock()
        self._listeners: list[SessionListener] = []

    def add_listener(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener for login state transitions.

        Returns:
            Function that removes the listener.
        """
        self._listeners.append(listener)

        def remove_listener() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove_listener

    def _notify(self, logged_in: bool) -> None:
        for listener in list(self._listeners):
            listener(logged_in)

    async def _load_session(self) -> Session:
        try:
            return await self._store.get(STORAGE_KEY_SESSION, Session)
        except SecureStoreKeyNotFoundError as err:
            raise EmbyNotLoggedInError() from err
        except SecureStoreDecodeError as err:
            _LOGGER.warning("Stored session is unreadable, treating as logged out: %s", err)
            raise EmbyNotLoggedInError("Stored session is unreadable") from err

    # Session

    async def save_session(self, session: Session) -> None:
        """Persist a session, replacing any previous one.

        Raises:
            EmbyStorageError: The store failed to write.
        """
        async with self._lock:
            await self._store.save(STORAGE_KEY_SESSION, session)
        _LOGGER.info("Session saved for user %s", session.username)
        self._notify(True)

    async def get_session(self) -> Session:
        """Return the current session.

        Raises:
            EmbyNotLoggedInError: No session is stored.
        """
        async with self._lock:
            return await self._load_session()

    async def is_logged_in(self) -> bool:
        """Return whether a session is stored. Never raises."""
        try:
            await self.get_session()
        except EmbyNotLoggedInError:
            return False
        except EmbyStorageError as err:
            _LOGGER.warning("Could not read session state: %s", err)
            return False
        return True

    async def clear_session(self) -> None:
        """Delete the stored session. Succeeds when already logged out.

        Raises:
            EmbyStorageError: The store failed to delete.
        """
        async with self._lock:
            await self._store.delete(STORAGE_KEY_SESSION)
        _LOGGER.info("Session cleared")
        self._notify(False)

    async def get_access_token(self) -> str:
        """Return the current access token."""
        return (await self.get_session()).access_token

    async def get_user_id(self) -> str:
        """Return the current user id."""
        return (await self.get_session()).user_id

    async def get_server_id(self) -> str:
        """Return the current server id."""
        return (await self.get_session()).server_id

    async def build_auth_header(self) -> str:
        """Return the authorization header for the current session.

        Raises:
            EmbyNotLoggedInError: No session is stored.
        """
        session = await self.get_session()
        client = ClientInfo(
            device_id=session.device_id,
            client_name=self._client_name,
            device_name=self._device_name,
            version=self._version,
        )
        return session.auth_header(client)

    async def build_auth_query_params(self) -> list[tuple[str, str]]:
        """Return the query parameters that authenticate a URL.

        Raises:
            EmbyNotLoggedInError: No session is stored.
        """
        return (await self.get_session()).query_params

    # Server config

    async def save_server_config(self, config: ServerConfig) -> None:
        """Persist the server config, replacing any previous one."""
        async with self._lock:
            await self._store.save(STORAGE_KEY_SERVER_CONFIG, config)

    async def get_server_config(self) -> ServerConfig:
        """Return the persisted server config.

        Raises:
            EmbyNotLoggedInError: No server config is stored.
        """
        async with self._lock:
            try:
                return await self._store.get(STORAGE_KEY_SERVER_CONFIG, ServerConfig)
            except SecureStoreKeyNotFoundError as err:
                raise EmbyNotLoggedInError("No server configured") from err
            except SecureStoreDecodeError as err:
                _LOGGER.warning("Stored server config is unreadable: %s", err)
                raise EmbyNotLoggedInError("Stored server config is unreadable") from err

    async def clear_server_config(self) -> None:
        """Delete the persisted server config. Succeeds when absent."""
        async with self._lock:
            await self._store.delete(STORAGE_KEY_SERVER_CONFIG)

    # Combined transitions

    async def login(self, config: ServerConfig, session: Session) -> None:
        """Persist config and session together as one transition.

        Any previous session is removed first, so a failed write leaves the
        store logged out rather than holding the old session without its
        config.

        Raises:
            EmbyStorageError: A write failed; nothing is left half-saved.
        """
        cleared = False
        try:
            async with self._lock:
                await self._store.delete(STORAGE_KEY_SESSION)
                cleared = True
                try:
                    await self._store.save(STORAGE_KEY_SERVER_CONFIG, config)
                    await self._store.save(STORAGE_KEY_SESSION, session)
                except EmbyStorageError:
                    await self._store.delete(STORAGE_KEY_SERVER_CONFIG)
                    raise
        except EmbyStorageError:
            if cleared:
                _LOGGER.warning("Login to %s failed to persist", config.base_url)
                self._notify(False)
            raise
        _LOGGER.info("Logged in to %s as %s", config.base_url, session.username)
        self._notify(True)

    async def logout(self) -> None:
        """Delete session and server config as one transition.

        Raises:
            EmbyStorageError: A delete failed.
        """
        async with self._lock:
            await self._store.delete(STORAGE_KEY_SESSION)
            await self._store.delete(STORAGE_KEY_SERVER_CONFIG)
        _LOGGER.info("Logged out")
        self._notify(False)

    async def invalidate_session(self, access_token: str) -> bool:
        """Log out only if the stored session still uses ``access_token``.

        The check and the deletes happen under one lock hold, so a session
        created after the rejected request was sent survives.

        Returns:
            True if this call cleared the session.

        Raises:
            EmbyStorageError: A delete failed.
        """
        async with self._lock:
            try:
                current = await self._load_session()
            except EmbyNotLoggedInError:
                return False
            if current.access_token != access_token:
                _LOGGER.debug("Rejected token is no longer current, keeping session")
                return False
            await self._store.delete(STORAGE_KEY_SESSION)
            await self._store.delete(STORAGE_KEY_SERVER_CONFIG)
        _LOGGER.info("Session invalidated")
        self._notify(False)
        return True


__all__ = ["SessionListener", "SessionStore"]
