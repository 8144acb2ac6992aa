"""Fixtures for MyEmby tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from myemby.api import EmbyApiClient
from myemby.models import ClientInfo, ServerConfig, Session
from myemby.session_store import SessionStore
from myemby.store import MemorySecureStore

TEST_DEVICE_ID = "TEST-DEVICE-0001"


@pytest.fixture
def memory_store() -> MemorySecureStore:
    """Return an empty in-memory secure store."""
    return MemorySecureStore()


@pytest.fixture
def session_store(memory_store: MemorySecureStore) -> SessionStore:
    """Return a session store backed by the memory store."""
    return SessionStore(memory_store)


@pytest.fixture
def server_config() -> ServerConfig:
    """Return a server config."""
    return ServerConfig(host="emby.local", port=8096, use_tls=False, username="alice")


@pytest.fixture
def sample_session() -> Session:
    """Return a session."""
    return Session(
        access_token="tok-1234567890",
        server_id="srv1",
        user_id="u1",
        username="alice",
        device_id=TEST_DEVICE_ID,
    )


@pytest.fixture
def client_info() -> ClientInfo:
    """Return client identification."""
    return ClientInfo(device_id=TEST_DEVICE_ID)


@pytest_asyncio.fixture
async def logged_in_store(
    session_store: SessionStore,
    server_config: ServerConfig,
    sample_session: Session,
) -> SessionStore:
    """Return a session store holding a session."""
    await session_store.login(server_config, sample_session)
    return session_store


@pytest.fixture
def mock_item() -> dict[str, Any]:
    """Return a raw movie item."""
    return {
        "Id": "item-1",
        "Name": "Test Movie",
        "Type": "Movie",
        "ProductionYear": 2024,
        "RunTimeTicks": 72000000000,
        "PremiereDate": "2024-03-01T00:00:00.0000000Z",
        "DateCreated": "2025-12-12T05:13:30.8479860Z",
        "ImageTags": {"Primary": "primary-tag", "Logo": "logo-tag"},
        "BackdropImageTags": ["backdrop-tag"],
        "UserData": {
            "PlayedPercentage": 42.5,
            "Played": False,
            "IsFavorite": True,
            "PlaybackPositionTicks": 30600000000,
        },
        "MediaSources": [
            {
                "Id": "source-1",
                "Container": "mkv",
                "MediaStreams": [
                    {"Index": 0, "Type": "Video", "Codec": "h264", "Width": 1920},
                    {"Index": 1, "Type": "Audio", "Codec": "aac", "Language": "eng"},
                    {"Index": 2, "Type": "Subtitle", "Codec": "srt", "Language": "eng"},
                ],
                "SupportsDirectPlay": True,
            }
        ],
    }


@pytest.fixture
def mock_auth_response() -> dict[str, Any]:
    """Return a raw authenticate-by-name response."""
    return {
        "AccessToken": "tok123",
        "ServerId": "srv1",
        "User": {
            "Id": "u1",
            "Name": "alice",
            "ServerId": "srv1",
            "HasPassword": True,
            "LastLoginDate": "2025-12-12T05:13:30Z",
        },
    }


def make_response(status: int = 200, body: object | bytes = b"") -> MagicMock:
    """Build a mock aiohttp response usable as an async context manager."""
    if not isinstance(body, bytes):
        body = json.dumps(body).encode()
    response = MagicMock()
    response.status = status
    response.reason = "OK" if 200 <= status < 300 else "Error"
    response.read = AsyncMock(return_value=body)
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


def make_session(*responses: MagicMock, side_effect: BaseException | None = None) -> MagicMock:
    """Build a mock aiohttp session returning the given responses in order."""
    session = MagicMock()
    if side_effect is not None:
        session.request = MagicMock(side_effect=side_effect)
    elif len(responses) == 1:
        session.request = MagicMock(return_value=responses[0])
    else:
        session.request = MagicMock(side_effect=list(responses))
    session.closed = False
    session.close = AsyncMock()
    return session


@pytest.fixture
def make_client(
    server_config: ServerConfig,
    client_info: ClientInfo,
) -> Callable[..., EmbyApiClient]:
    """Return a factory for clients bound to a mock aiohttp session."""

    def _make(session_store: SessionStore, http_session: MagicMock) -> EmbyApiClient:
        return EmbyApiClient(
            server=server_config,
            session_store=session_store,
            client_info=client_info,
            session=http_session,
        )

    return _make
