"""Cancellable home catalog refresh.

A refresh loads the library views, then the latest items of every view
concurrently. Starting a new refresh cancels the one in flight, and a
superseded refresh never commits its result.

Example usage:
    refresher = CatalogRefresher(media_repository)
    catalog = await refresher.async_refresh()
    if catalog is not None:
        for view in catalog.views:
            latest = catalog.latest_for(view.item_id)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import TypeAlias
from dataclasses import dataclass, field
from datetime import UTC, datetime

from .const import DEFAULT_LATEST_LIMIT
from .models import MediaItem
from .repository import MediaRepository

_LOGGER = logging.getLogger(__name__)

CatalogListener: TypeAlias = Callable[["HomeCatalog"], None]


@dataclass(frozen=True, slots=True)
class HomeCatalog:
    """Snapshot of the home screen catalog.

    Attributes:
        views: Library views in server order.
        latest_by_view: Latest items keyed by view id.
        refreshed_at: When the snapshot was committed.
    """

    views: tuple[MediaItem, ...]
    latest_by_view: Mapping[str, tuple[MediaItem, ...]]
    refreshed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def latest_for(self, view_id: str) -> tuple[MediaItem, ...]:
        """Return the latest items of a view, empty if unknown."""
        return self.latest_by_view.get(view_id, ())


class CatalogRefresher:
    """Loads and holds the current HomeCatalog.

    Fan-out is one request per view. It is unbounded unless
    ``max_concurrency`` is given.
    """

    def __init__(
        self,
        repository: MediaRepository,
        latest_limit: int = DEFAULT_LATEST_LIMIT,
        max_concurrency: int | None = None,
    ) -> None:
        """Initialize the refresher.

        Args:
            repository: Media repository for the logged-in user.
            latest_limit: Latest items fetched per view.
            max_concurrency: Cap on concurrent per-view requests, or None.

        Raises:
            ValueError: max_concurrency is less than 1.
        """
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._repository = repository
        self._latest_limit = latest_limit
        self._max_concurrency = max_concurrency
        self._task: asyncio.Task[HomeCatalog] | None = None
        self._catalog: HomeCatalog | None = None
        self._listeners: list[CatalogListener] = []

    @property
    def catalog(self) -> HomeCatalog | None:
        """Return the last committed catalog."""
        return self._catalog

    @property
    def is_refreshing(self) -> bool:
        """Return whether a refresh is in flight."""
        return self._task is not None and not self._task.done()

    def add_listener(self, listener: CatalogListener) -> Callable[[], None]:
        """Register a listener called with every committed catalog.

        Returns:
            Function that removes the listener.
        """
        self._listeners.append(listener)

        def remove_listener() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove_listener

    async def _load_latest(
        self, view: MediaItem, semaphore: asyncio.Semaphore | None
    ) -> tuple[MediaItem, ...]:
        if semaphore is None:
            items = await self._repository.get_latest_items(
                parent_id=view.item_id, limit=self._latest_limit
            )
        else:
            async with semaphore:
                items = await self._repository.get_latest_items(
                    parent_id=view.item_id, limit=self._latest_limit
                )
        return tuple(items)

    async def _load(self) -> HomeCatalog:
        views = await self._repository.get_user_views()
        semaphore = (
            asyncio.Semaphore(self._max_concurrency)
            if self._max_concurrency is not None
            else None
        )
        latest = await asyncio.gather(
            *(self._load_latest(view, semaphore) for view in views)
        )
        return HomeCatalog(
            views=tuple(views),
            latest_by_view={view.item_id: items for view, items in zip(views, latest)},
        )

    async def async_refresh(self) -> HomeCatalog | None:
        """Reload the catalog, cancelling any refresh in flight.

        Returns:
            The committed catalog, or None if this refresh was superseded.

        Raises:
            EmbyError: Loading failed; the previous catalog is kept.
        """
        self.cancel()
        task = asyncio.create_task(self._load())
        self._task = task

        try:
            catalog = await task
        except asyncio.CancelledError:
            if self._task is not task:
                _LOGGER.debug("Catalog refresh superseded")
                return None
            raise
        finally:
            if self._task is task and task.done():
                self._task = None

        if self._task is not None and self._task is not task:
            _LOGGER.debug("Catalog refresh superseded, discarding result")
            return None

        self._catalog = catalog
        _LOGGER.debug(
            "Catalog refreshed: %d views, %d latest items",
            len(catalog.views),
            sum(len(items) for items in catalog.latest_by_view.values()),
        )
        for listener in list(self._listeners):
            listener(catalog)
        return catalog

    def cancel(self) -> None:
        """Cancel the refresh in flight, if any."""
        if self._task is not None and not self._task.done():
            _LOGGER.debug("Cancelling in-flight catalog refresh")
            self._task.cancel()
        self._task = None

    def clear(self) -> None:
        """Cancel any refresh and drop the committed catalog."""
        self.cancel()
        self._catalog = None


__all__ = ["CatalogListener", "CatalogRefresher", "HomeCatalog"]
