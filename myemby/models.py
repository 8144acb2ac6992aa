"""Data models for the MyEmby client core."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Generic, Self, TypeVar

import voluptuous as vol

from .config import SERVER_CONFIG_SCHEMA, SESSION_SCHEMA
from .const import (
    AUTHORIZATION_TEMPLATE,
    CLIENT_NAME,
    CLIENT_VERSION,
    DEFAULT_DEVICE_NAME,
    DEFAULT_DEVICE_PLATFORM,
    EMBY_TICKS_PER_SECOND,
    QUERY_API_KEY,
)
from .dates import parse_optional_date
from .exceptions import EmbyDecodeError

if TYPE_CHECKING:
    from .const import (
        EmbyAuthPayload,
        EmbyItemPayload,
        EmbyItemsPayload,
        EmbyMediaSourcePayload,
        EmbyMediaStreamPayload,
        EmbyPlaybackInfoPayload,
        EmbyUserDataPayload,
        EmbyUserPayload,
    )

T = TypeVar("T")


class ImageType(StrEnum):
    """Image variants served by /Items/{id}/Images/{type}."""

    PRIMARY = "Primary"
    BACKDROP = "Backdrop"
    BANNER = "Banner"
    THUMB = "Thumb"
    LOGO = "Logo"


class StreamType(StrEnum):
    """Track type of a media stream."""

    VIDEO = "Video"
    AUDIO = "Audio"
    SUBTITLE = "Subtitle"


# =============================================================================
# Local state
# =============================================================================


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """Connection settings for one Emby server.

    Immutable once created; replaced wholesale on re-login.

    Attributes:
        host: Server hostname or IP address, without scheme.
        port: Server port number.
        use_tls: Whether to use HTTPS.
        username: Account name used to log in.
    """

    host: str
    port: int
    use_tls: bool
    username: str

    @property
    def base_url(self) -> str:
        """Return the base URL for API requests.

        Returns:
            Full base URL including protocol, host, and port.
        """
        scheme = "https" if self.use_tls else "http"
        return f"{scheme}://{self.host}:{self.port}"

    @classmethod
    def from_input(cls, user_input: dict[str, object]) -> Self:
        """Build a config from unvalidated user input.

        Raises:
            vol.Invalid: The input failed validation.
        """
        data = SERVER_CONFIG_SCHEMA(user_input)
        return cls(
            host=data["host"],
            port=data["port"],
            use_tls=data["use_tls"],
            username=data["username"],
        )

    @classmethod
    def from_dict(cls, data: object) -> Self:
        """Rebuild a config from its persisted form.

        Raises:
            EmbyDecodeError: The stored value has the wrong shape.
        """
        if not isinstance(data, dict):
            raise EmbyDecodeError(f"Server config must be an object, got {type(data).__name__}")
        try:
            return cls.from_input(data)
        except vol.Invalid as err:
            raise EmbyDecodeError(f"Invalid stored server config: {err}", cause=err) from err

    def to_dict(self) -> dict[str, object]:
        """Return the persisted form."""
        return {
            "host": self.host,
            "port": self.port,
            "use_tls": self.use_tls,
            "username": self.username,
        }


@dataclass(frozen=True, slots=True)
class ClientInfo:
    """Identification of this client, sent with every request.

    Attributes:
        device_id: Stable per-install device identifier.
        client_name: Application name.
        device_name: Human-readable device name.
        device_platform: Platform reported in the authorization header.
        version: Application version.
    """

    device_id: str
    client_name: str = CLIENT_NAME
    device_name: str = DEFAULT_DEVICE_NAME
    device_platform: str = DEFAULT_DEVICE_PLATFORM
    version: str = CLIENT_VERSION

    def authorization_header(self, token: str | None = None) -> str:
        """Return the ``MediaBrowser`` authorization string.

        Args:
            token: Access token to append, if any.
        """
        header = AUTHORIZATION_TEMPLATE.format(
            client=self.client_name,
            device=self.device_platform,
            device_id=self.device_id,
            version=self.version,
        )
        if token is not None:
            header += f', Token="{token}"'
        return header


@dataclass(frozen=True, slots=True)
class Session:
    """The authenticated identity currently active.

    Attributes:
        access_token: Token issued by the server at login.
        server_id: Server identifier.
        user_id: Logged-in user's identifier.
        username: Logged-in user's name.
        device_id: Device identifier the token was issued to.
    """

    access_token: str
    server_id: str
    user_id: str
    username: str
    device_id: str

    def auth_header(self, client: ClientInfo | None = None) -> str:
        """Return the authorization header carrying this session's token."""
        info = client or ClientInfo(device_id=self.device_id)
        return info.authorization_header(token=self.access_token)

    @property
    def query_params(self) -> list[tuple[str, str]]:
        """Return the query parameters that authenticate a URL."""
        return [(QUERY_API_KEY, self.access_token)]

    @classmethod
    def from_dict(cls, data: object) -> Self:
        """Rebuild a session from its persisted form.

        Raises:
            EmbyDecodeError: The stored value has the wrong shape.
        """
        try:
            validated = SESSION_SCHEMA(data)
        except vol.Invalid as err:
            raise EmbyDecodeError(f"Invalid stored session: {err}", cause=err) from err
        return cls(**validated)

    def to_dict(self) -> dict[str, str]:
        """Return the persisted form."""
        return {
            "access_token": self.access_token,
            "server_id": self.server_id,
            "user_id": self.user_id,
            "username": self.username,
            "device_id": self.device_id,
        }


# =============================================================================
# Catalog entities
# =============================================================================


@dataclass(frozen=True, slots=True)
class EmbyUser:
    """A server user account."""

    user_id: str
    name: str
    server_id: str | None = None
    has_password: bool = False
    last_login: datetime | None = None
    last_activity: datetime | None = None


@dataclass(frozen=True, slots=True)
class AuthResult:
    """Result of authenticating by name."""

    access_token: str
    server_id: str
    user: EmbyUser

    def to_session(self, device_id: str) -> Session:
        """Derive the session to persist for this login."""
        return Session(
            access_token=self.access_token,
            server_id=self.server_id,
            user_id=self.user.user_id,
            username=self.user.name,
            device_id=device_id,
        )


@dataclass(frozen=True, slots=True)
class UserData:
    """Per-user playback state of an item."""

    played_percentage: float | None = None
    played: bool = False
    is_favorite: bool = False
    last_played: datetime | None = None
    playback_position_ticks: int | None = None


@dataclass(frozen=True, slots=True)
class MediaStream:
    """One audio, video or subtitle track."""

    index: int | None = None
    stream_type: str | None = None
    codec: str | None = None
    language: str | None = None
    display_title: str | None = None
    is_default: bool = False
    is_external: bool = False
    width: int | None = None
    height: int | None = None
    bit_rate: int | None = None
    channels: int | None = None
    sample_rate: int | None = None
    title: str | None = None


@dataclass(frozen=True, slots=True)
class MediaSource:
    """A playable version of an item."""

    source_id: str | None = None
    container: str | None = None
    size: int | None = None
    streams: tuple[MediaStream, ...] = field(default_factory=tuple)
    supports_direct_play: bool = False
    supports_transcoding: bool = False
    live_stream_id: str | None = None

    @property
    def audio_streams(self) -> tuple[MediaStream, ...]:
        """Return the audio tracks."""
        return tuple(s for s in self.streams if s.stream_type == StreamType.AUDIO)

    @property
    def subtitle_streams(self) -> tuple[MediaStream, ...]:
        """Return the subtitle tracks."""
        return tuple(s for s in self.streams if s.stream_type == StreamType.SUBTITLE)

    @property
    def video_streams(self) -> tuple[MediaStream, ...]:
        """Return the video tracks."""
        return tuple(s for s in self.streams if s.stream_type == StreamType.VIDEO)


@dataclass(frozen=True, slots=True)
class ImageTagSet:
    """Cache tags per image variant.

    Attributes:
        tags: Tuple of (image_type, tag) pairs.
        backdrop_tags: Backdrop tags in server order.
    """

    tags: tuple[tuple[str, str], ...] = field(default_factory=tuple)
    backdrop_tags: tuple[str, ...] = field(default_factory=tuple)

    def get(self, image_type: ImageType | str) -> str | None:
        """Return the tag for an image variant, if the item has one."""
        if image_type == ImageType.BACKDROP and self.backdrop_tags:
            return self.backdrop_tags[0]
        for name, tag in self.tags:
            if name == image_type:
                return tag
        return None

    @property
    def primary(self) -> str | None:
        """Return the primary image tag."""
        return self.get(ImageType.PRIMARY)


@dataclass(frozen=True, slots=True)
class MediaItem:
    """A catalog item: library view, folder, movie, series, season or episode.

    Uses frozen=True since items are read-only projections of server state.
    """

    item_id: str
    name: str
    item_type: str | None = None
    collection_type: str | None = None
    original_title: str | None = None
    parent_id: str | None = None
    series_id: str | None = None
    series_name: str | None = None
    season_id: str | None = None
    season_number: int | None = None
    index_number: int | None = None
    date_created: datetime | None = None
    premiere_date: datetime | None = None
    end_date: datetime | None = None
    production_year: int | None = None
    community_rating: float | None = None
    official_rating: str | None = None
    overview: str | None = None
    tags: tuple[str, ...] = field(default_factory=tuple)
    genres: tuple[str, ...] = field(default_factory=tuple)
    run_time_ticks: int | None = None
    user_data: UserData | None = None
    image_tags: ImageTagSet = field(default_factory=ImageTagSet)
    media_sources: tuple[MediaSource, ...] = field(default_factory=tuple)
    is_live: bool = False

    @property
    def run_time_seconds(self) -> float | None:
        """Return the runtime in seconds."""
        if self.run_time_ticks is None:
            return None
        return self.run_time_ticks / EMBY_TICKS_PER_SECOND

    @property
    def can_play(self) -> bool:
        """Return whether the item has at least one media source."""
        return bool(self.media_sources)

    @property
    def is_played(self) -> bool:
        """Return whether the user has played the item."""
        return self.user_data is not None and self.user_data.played

    @property
    def is_favorite(self) -> bool:
        """Return whether the user marked the item as favorite."""
        return self.user_data is not None and self.user_data.is_favorite

    @property
    def played_percentage(self) -> float:
        """Return playback progress, 0-100."""
        if self.user_data is None or self.user_data.played_percentage is None:
            return 0.0
        return self.user_data.played_percentage


@dataclass(frozen=True, slots=True)
class PagedResult(Generic[T]):
    """One page of a larger result set."""

    items: tuple[T, ...]
    total_count: int
    start_index: int = 0


@dataclass(frozen=True, slots=True)
class PlaybackInfo:
    """Playback negotiation result for an item."""

    media_sources: tuple[MediaSource, ...] = field(default_factory=tuple)
    play_session_id: str | None = None


# =============================================================================
# Parsing
# =============================================================================


def _child(path: str, key: str | int) -> str:
    if isinstance(key, int):
        return f"{path}[{key}]"
    return f"{path}.{key}" if path else key


def _require_object(data: object, path: str) -> dict[str, object]:
    if not isinstance(data, dict):
        raise EmbyDecodeError(
            f"Expected object at {path or '<root>'}, got {type(data).__name__}"
        )
    return data


def _require_list(data: object, path: str) -> list[object]:
    if not isinstance(data, list):
        raise EmbyDecodeError(
            f"Expected array at {path or '<root>'}, got {type(data).__name__}"
        )
    return data


def _require_str(data: dict[str, object], key: str, path: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise EmbyDecodeError(f"Missing or invalid string at {_child(path, key)}")
    return value


def parse_user(data: EmbyUserPayload | object, path: str = "") -> EmbyUser:
    """Parse a user object.

    Args:
        data: Raw user from the API response.
        path: Coding path for diagnostics.

    Returns:
        Parsed EmbyUser instance.
    """
    obj = _require_object(data, path)
    return EmbyUser(
        user_id=_require_str(obj, "Id", path),
        name=_require_str(obj, "Name", path),
        server_id=obj.get("ServerId"),  # type: ignore[arg-type]
        has_password=bool(obj.get("HasPassword", False)),
        last_login=parse_optional_date(obj, "LastLoginDate", path),
        last_activity=parse_optional_date(obj, "LastActivityDate", path),
    )


def parse_auth_result(data: EmbyAuthPayload | object) -> AuthResult:
    """Parse the authenticate-by-name response."""
    obj = _require_object(data, "")
    return AuthResult(
        access_token=_require_str(obj, "AccessToken", ""),
        server_id=_require_str(obj, "ServerId", ""),
        user=parse_user(obj.get("User"), "User"),
    )


def parse_user_data(data: EmbyUserDataPayload | object, path: str) -> UserData:
    """Parse per-user playback state."""
    obj = _require_object(data, path)
    return UserData(
        played_percentage=obj.get("PlayedPercentage"),  # type: ignore[arg-type]
        played=bool(obj.get("Played", False)),
        is_favorite=bool(obj.get("IsFavorite", False)),
        last_played=parse_optional_date(obj, "LastPlayedDate", path),
        playback_position_ticks=obj.get("PlaybackPositionTicks"),  # type: ignore[arg-type]
    )


def parse_media_stream(data: EmbyMediaStreamPayload | object, path: str) -> MediaStream:
    """Parse one media stream."""
    obj = _require_object(data, path)
    return MediaStream(
        index=obj.get("Index"),  # type: ignore[arg-type]
        stream_type=obj.get("Type"),  # type: ignore[arg-type]
        codec=obj.get("Codec"),  # type: ignore[arg-type]
        language=obj.get("Language"),  # type: ignore[arg-type]
        display_title=obj.get("DisplayTitle"),  # type: ignore[arg-type]
        is_default=bool(obj.get("IsDefault", False)),
        is_external=bool(obj.get("IsExternal", False)),
        width=obj.get("Width"),  # type: ignore[arg-type]
        height=obj.get("Height"),  # type: ignore[arg-type]
        bit_rate=obj.get("BitRate"),  # type: ignore[arg-type]
        channels=obj.get("Channels"),  # type: ignore[arg-type]
        sample_rate=obj.get("SampleRate"),  # type: ignore[arg-type]
        title=obj.get("Title"),  # type: ignore[arg-type]
    )


def parse_media_source(data: EmbyMediaSourcePayload | object, path: str) -> MediaSource:
    """Parse one media source with its streams."""
    obj = _require_object(data, path)
    streams_path = _child(path, "MediaStreams")
    raw_streams = _require_list(obj.get("MediaStreams", []), streams_path)
    return MediaSource(
        source_id=obj.get("Id"),  # type: ignore[arg-type]
        container=obj.get("Container"),  # type: ignore[arg-type]
        size=obj.get("Size"),  # type: ignore[arg-type]
        streams=tuple(
            parse_media_stream(stream, _child(streams_path, i))
            for i, stream in enumerate(raw_streams)
        ),
        supports_direct_play=bool(obj.get("SupportsDirectPlay", False)),
        supports_transcoding=bool(obj.get("SupportsTranscoding", False)),
        live_stream_id=obj.get("LiveStreamId"),  # type: ignore[arg-type]
    )


def _parse_media_sources(raw: object, path: str) -> tuple[MediaSource, ...]:
    sources = _require_list(raw, path)
    return tuple(parse_media_source(s, _child(path, i)) for i, s in enumerate(sources))


def parse_media_item(data: EmbyItemPayload | object, path: str = "") -> MediaItem:
    """Parse a catalog item.

    Args:
        data: Raw item from the API response.
        path: Coding path for diagnostics.

    Returns:
        Parsed MediaItem instance.

    Raises:
        EmbyDecodeError: A required field is missing or has the wrong type.
        EmbyMalformedDateError: A date field could not be decoded.
    """
    obj = _require_object(data, path)
    raw_tags = obj.get("ImageTags") or {}
    image_tags = ImageTagSet(
        tags=tuple(
            (str(name), str(tag))
            for name, tag in _require_object(raw_tags, _child(path, "ImageTags")).items()
        ),
        backdrop_tags=tuple(obj.get("BackdropImageTags") or ()),  # type: ignore[arg-type]
    )
    user_data_raw = obj.get("UserData")

    return MediaItem(
        item_id=_require_str(obj, "Id", path),
        name=_require_str(obj, "Name", path),
        item_type=obj.get("Type"),  # type: ignore[arg-type]
        collection_type=obj.get("CollectionType"),  # type: ignore[arg-type]
        original_title=obj.get("OriginalTitle"),  # type: ignore[arg-type]
        parent_id=obj.get("ParentId"),  # type: ignore[arg-type]
        series_id=obj.get("SeriesId"),  # type: ignore[arg-type]
        series_name=obj.get("SeriesName"),  # type: ignore[arg-type]
        season_id=obj.get("SeasonId"),  # type: ignore[arg-type]
        season_number=obj.get("ParentIndexNumber"),  # type: ignore[arg-type]
        index_number=obj.get("IndexNumber"),  # type: ignore[arg-type]
        date_created=parse_optional_date(obj, "DateCreated", path),
        premiere_date=parse_optional_date(obj, "PremiereDate", path),
        end_date=parse_optional_date(obj, "EndDate", path),
        production_year=obj.get("ProductionYear"),  # type: ignore[arg-type]
        community_rating=obj.get("CommunityRating"),  # type: ignore[arg-type]
        official_rating=obj.get("OfficialRating"),  # type: ignore[arg-type]
        overview=obj.get("Overview"),  # type: ignore[arg-type]
        tags=tuple(obj.get("Tags") or ()),  # type: ignore[arg-type]
        genres=tuple(obj.get("Genres") or ()),  # type: ignore[arg-type]
        run_time_ticks=obj.get("RunTimeTicks"),  # type: ignore[arg-type]
        user_data=(
            parse_user_data(user_data_raw, _child(path, "UserData"))
            if user_data_raw is not None
            else None
        ),
        image_tags=image_tags,
        media_sources=_parse_media_sources(
            obj.get("MediaSources", []), _child(path, "MediaSources")
        ),
        is_live=bool(obj.get("IsLive", False)),
    )


def parse_item_list(data: object, path: str = "") -> list[MediaItem]:
    """Parse a bare JSON array of items, as returned by /Items/Latest."""
    raw = _require_list(data, path)
    return [parse_media_item(item, _child(path, i)) for i, item in enumerate(raw)]


def parse_paged_items(data: EmbyItemsPayload | object) -> PagedResult[MediaItem]:
    """Parse an ``{Items, TotalRecordCount, StartIndex}`` response."""
    obj = _require_object(data, "")
    items = parse_item_list(obj.get("Items", []), "Items")
    total = obj.get("TotalRecordCount", len(items))
    if not isinstance(total, int):
        raise EmbyDecodeError("Missing or invalid integer at TotalRecordCount")
    start = obj.get("StartIndex", 0)
    return PagedResult(
        items=tuple(items),
        total_count=total,
        start_index=start if isinstance(start, int) else 0,
    )


def parse_playback_info(data: EmbyPlaybackInfoPayload | object) -> PlaybackInfo:
    """Parse the PlaybackInfo response."""
    obj = _require_object(data, "")
    return PlaybackInfo(
        media_sources=_parse_media_sources(obj.get("MediaSources", []), "MediaSources"),
        play_session_id=obj.get("PlaySessionId"),  # type: ignore[arg-type]
    )


__all__ = [
    "AuthResult",
    "ClientInfo",
    "EmbyUser",
    "ImageTagSet",
    "ImageType",
    "MediaItem",
    "MediaSource",
    "MediaStream",
    "PagedResult",
    "PlaybackInfo",
    "ServerConfig",
    "Session",
    "StreamType",
    "UserData",
    "parse_auth_result",
    "parse_item_list",
    "parse_media_item",
    "parse_paged_items",
    "parse_playback_info",
    "parse_user",
]
