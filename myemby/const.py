"""Constants for the MyEmby client core."""

from __future__ import annotations

from typing import Final, NotRequired, TypedDict

# Client identity sent with every request
CLIENT_NAME: Final = "MyEmby"
CLIENT_VERSION: Final = "1.0.0.0"
DEFAULT_DEVICE_NAME: Final = "iPhone"
DEFAULT_DEVICE_PLATFORM: Final = "iOS"

# Default values
DEFAULT_PORT: Final = 8096
DEFAULT_USE_TLS: Final = False
DEFAULT_REQUEST_TIMEOUT: Final = 30  # seconds
DEFAULT_RESOURCE_TIMEOUT: Final = 300  # seconds
DEFAULT_LATEST_LIMIT: Final = 10
DEFAULT_SEARCH_LIMIT: Final = 20
DEFAULT_ITEM_CACHE_TTL: Final = 300.0  # seconds
DEFAULT_ITEM_CACHE_SIZE: Final = 500

# Search validation
MAX_SEARCH_TERM_LENGTH: Final = 200

# API constants
EMBY_TICKS_PER_SECOND: Final = 10_000_000
SEARCH_ITEM_TYPES: Final[tuple[str, ...]] = ("Movie", "Series", "Episode")

# HTTP constants
HTTP_GET: Final = "GET"
HTTP_POST: Final = "POST"
HTTP_DELETE: Final = "DELETE"
CONTENT_TYPE_JSON: Final = "application/json"

HEADER_CLIENT: Final = "X-Emby-Client"
HEADER_DEVICE_NAME: Final = "X-Emby-Device-Name"
HEADER_DEVICE_ID: Final = "X-Emby-Device-Id"
HEADER_AUTHORIZATION: Final = "X-Emby-Authorization"
QUERY_API_KEY: Final = "api_key"

AUTHORIZATION_TEMPLATE: Final = (
    'MediaBrowser Client="{client}", Device="{device}", '
    'DeviceId="{device_id}", Version="{version}"'
)

# Secure store keys
STORAGE_KEY_DEVICE_ID: Final = "com.myemby.device_id"
STORAGE_KEY_SESSION: Final = "emby.session_info"
STORAGE_KEY_SERVER_CONFIG: Final = "emby.server_config"

# Filters
FILTER_IS_FAVORITE: Final = "IsFavorite"


# =============================================================================
# TypedDicts for API Responses
# =============================================================================
# Raw payloads as they arrive from the server, before parsing into models.


class EmbyUserPayload(TypedDict):
    """Raw user object from /Users endpoints."""

    Id: str
    Name: str
    ServerId: NotRequired[str]
    HasPassword: NotRequired[bool]
    LastLoginDate: NotRequired[str]
    LastActivityDate: NotRequired[str]


class EmbyAuthPayload(TypedDict):
    """Response body of /Users/authenticatebyname."""

    AccessToken: str
    ServerId: str
    User: EmbyUserPayload


class EmbyUserDataPayload(TypedDict, total=False):
    """Per-user playback state attached to an item."""

    PlayedPercentage: float
    Played: bool
    IsFavorite: bool
    LastPlayedDate: str | int | float
    PlaybackPositionTicks: int


class EmbyMediaStreamPayload(TypedDict, total=False):
    """Audio, video or subtitle track of a media source."""

    Index: int
    Type: str
    Codec: str
    Language: str
    DisplayTitle: str
    IsDefault: bool
    IsExternal: bool
    Width: int
    Height: int
    BitRate: int
    Channels: int
    SampleRate: int
    Title: str


class EmbyMediaSourcePayload(TypedDict, total=False):
    """Playable media source of an item."""

    Id: str
    Container: str
    Size: int
    MediaStreams: list[EmbyMediaStreamPayload]
    SupportsDirectPlay: bool
    SupportsTranscoding: bool
    LiveStreamId: str


class EmbyItemPayload(TypedDict, total=False):
    """Raw catalog item."""

    Id: str
    Name: str
    OriginalTitle: str
    Type: str
    CollectionType: str
    ParentId: str
    SeriesId: str
    SeriesName: str
    SeasonId: str
    ParentIndexNumber: int
    IndexNumber: int
    DateCreated: str | int | float
    PremiereDate: str | int | float
    EndDate: str | int | float
    ProductionYear: int
    CommunityRating: float
    OfficialRating: str
    Overview: str
    Tags: list[str]
    Genres: list[str]
    RunTimeTicks: int
    UserData: EmbyUserDataPayload
    ImageTags: dict[str, str]
    BackdropImageTags: list[str]
    MediaSources: list[EmbyMediaSourcePayload]
    IsLive: bool


class EmbyItemsPayload(TypedDict):
    """Paged items response."""

    Items: list[EmbyItemPayload]
    TotalRecordCount: int
    StartIndex: NotRequired[int]


class EmbyPlaybackInfoPayload(TypedDict, total=False):
    """Response body of /Items/{id}/PlaybackInfo."""

    MediaSources: list[EmbyMediaSourcePayload]
    PlaySessionId: str


def sanitize_api_key(api_key: str) -> str:
    """Sanitize an access token for safe logging.

    Args:
        api_key: The full token.

    Returns:
        Truncated token safe for logging (first 4 + last 2 chars).
    """
    if len(api_key) <= 6:
        return "***"
    return f"{api_key[:4]}...{api_key[-2:]}"


def normalize_host(host: str) -> str:
    """Normalize host input from the user.

    Removes protocol prefix and trailing slashes.

    Args:
        host: Raw host input.

    Returns:
        Cleaned hostname or IP address.
    """
    host = host.strip()
    for prefix in ("https://", "http://"):
        if host.lower().startswith(prefix):
            host = host[len(prefix) :]
    return host.rstrip("/")
