"""Endpoint descriptors for the Emby REST API.

Each server operation is one frozen dataclass carrying its path
parameters. The path template, HTTP method and auth requirement are
fixed per class, and ``Endpoint`` is the closed union of all of them.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import ClassVar, TypeAlias
from urllib.parse import quote

from .const import HTTP_DELETE, HTTP_GET, HTTP_POST
from .models import ImageType


@dataclass(frozen=True, slots=True)
class _Descriptor:
    """Shared behavior for endpoint descriptors."""

    template: ClassVar[str]
    method: ClassVar[str] = HTTP_GET
    requires_auth: ClassVar[bool] = True

    @property
    def path(self) -> str:
        """Return the path with parameters interpolated."""
        params = {f.name: quote(str(getattr(self, f.name)), safe="") for f in fields(self)}
        return self.template.format(**params)


@dataclass(frozen=True, slots=True)
class AuthenticateByName(_Descriptor):
    """Log in with username and password."""

    template = "/Users/authenticatebyname"
    method = HTTP_POST
    requires_auth = False


@dataclass(frozen=True, slots=True)
class GetUser(_Descriptor):
    """Fetch a user."""

    template = "/Users/{user_id}"
    user_id: str


@dataclass(frozen=True, slots=True)
class GetUserViews(_Descriptor):
    """Fetch the user's library views."""

    template = "/Users/{user_id}/Views"
    user_id: str


@dataclass(frozen=True, slots=True)
class GetItems(_Descriptor):
    """Query items with filters, sorting and paging."""

    template = "/Users/{user_id}/Items"
    user_id: str


@dataclass(frozen=True, slots=True)
class SearchItems(_Descriptor):
    """Search items by name."""

    template = "/Users/{user_id}/Items"
    user_id: str


@dataclass(frozen=True, slots=True)
class GetFavoriteItems(_Descriptor):
    """Query the user's favorite items."""

    template = "/Users/{user_id}/Items"
    user_id: str


@dataclass(frozen=True, slots=True)
class GetItem(_Descriptor):
    """Fetch one item."""

    template = "/Users/{user_id}/Items/{item_id}"
    user_id: str
    item_id: str


@dataclass(frozen=True, slots=True)
class GetLatestItems(_Descriptor):
    """Fetch recently added items."""

    template = "/Users/{user_id}/Items/Latest"
    user_id: str


@dataclass(frozen=True, slots=True)
class GetPlaybackInfo(_Descriptor):
    """Fetch media sources for playback."""

    template = "/Items/{item_id}/PlaybackInfo"
    item_id: str


@dataclass(frozen=True, slots=True)
class AddFavoriteItem(_Descriptor):
    """Mark an item as favorite."""

    template = "/Users/{user_id}/FavoriteItems/{item_id}"
    method = HTTP_POST
    user_id: str
    item_id: str


@dataclass(frozen=True, slots=True)
class RemoveFavoriteItem(_Descriptor):
    """Unmark an item as favorite."""

    template = "/Users/{user_id}/FavoriteItems/{item_id}"
    method = HTTP_DELETE
    user_id: str
    item_id: str


@dataclass(frozen=True, slots=True)
class GetImage(_Descriptor):
    """Fetch an item image."""

    template = "/Items/{item_id}/Images/{image_type}"
    requires_auth = False
    item_id: str
    image_type: ImageType = ImageType.PRIMARY


@dataclass(frozen=True, slots=True)
class StreamVideo(_Descriptor):
    """Raw video stream."""

    template = "/Videos/{item_id}/stream"
    item_id: str


Endpoint: TypeAlias = (
    AuthenticateByName
    | GetUser
    | GetUserViews
    | GetItems
    | SearchItems
    | GetFavoriteItems
    | GetItem
    | GetLatestItems
    | GetPlaybackInfo
    | AddFavoriteItem
    | RemoveFavoriteItem
    | GetImage
    | StreamVideo
)


__all__ = [
    "AddFavoriteItem",
    "AuthenticateByName",
    "Endpoint",
    "GetFavoriteItems",
    "GetImage",
    "GetItem",
    "GetItems",
    "GetLatestItems",
    "GetPlaybackInfo",
    "GetUser",
    "GetUserViews",
    "RemoveFavoriteItem",
    "SearchItems",
    "StreamVideo",
]
