"""MyEmby client core.

Session, API and repository layer for an Emby media server client:
device identity, encrypted session persistence, request construction,
response decoding and error classification.
"""

from __future__ import annotations

from .api import EmbyApiClient, EmbyRequest
from .cache import ItemCache
from .catalog import CatalogRefresher, HomeCatalog
from .const import CLIENT_VERSION
from .device import DeviceIdentityProvider
from .exceptions import (
    EmbyAuthenticationError,
    EmbyConnectionError,
    EmbyDecodeError,
    EmbyError,
    EmbyNotLoggedInError,
    EmbyReauthenticationRequiredError,
    EmbyStorageError,
)
from .models import ClientInfo, ImageType, MediaItem, ServerConfig, Session
from .repository import AuthRepository, MediaRepository
from .session_store import SessionStore
from .store import EncryptedFileStore, MemorySecureStore, SecureStore

__version__ = CLIENT_VERSION

__all__ = [
    "AuthRepository",
    "CatalogRefresher",
    "ClientInfo",
    "DeviceIdentityProvider",
    "EmbyApiClient",
    "EmbyAuthenticationError",
    "EmbyConnectionError",
    "EmbyDecodeError",
    "EmbyError",
    "EmbyNotLoggedInError",
    "EmbyReauthenticationRequiredError",
    "EmbyRequest",
    "EmbyStorageError",
    "EncryptedFileStore",
    "HomeCatalog",
    "ImageType",
    "ItemCache",
    "MediaItem",
    "MediaRepository",
    "MemorySecureStore",
    "SecureStore",
    "ServerConfig",
    "Session",
    "SessionStore",
    "__version__",
]
