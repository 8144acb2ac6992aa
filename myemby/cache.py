"""Short-lived item cache keyed by item id."""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from collections.abc import Callable, Iterable

from .const import DEFAULT_ITEM_CACHE_SIZE, DEFAULT_ITEM_CACHE_TTL
from .models import MediaItem

_LOGGER = logging.getLogger(__name__)


class ItemCache:
    """In-memory item-id to item map with TTL and an LRU bound.

    Holds items recently seen in listings so an image URL can be resolved
    without fetching the item again.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_ITEM_CACHE_TTL,
        max_entries: int = DEFAULT_ITEM_CACHE_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the item cache.

        Args:
            ttl_seconds: Time to live for cache entries in seconds.
            max_entries: Maximum number of entries to store.
            clock: Source of the current time in seconds.
        """
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._cache: OrderedDict[str, tuple[float, MediaItem]] = OrderedDict()
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._cache)

    def get(self, item_id: str) -> MediaItem | None:
        """Get an item from the cache.

        Args:
            item_id: The item ID.

        Returns:
            The cached item or None if not found or expired.
        """
        entry = self._cache.get(item_id)
        if entry is None:
            self._misses += 1
            return None

        timestamp, item = entry
        if self._clock() - timestamp > self._ttl:
            del self._cache[item_id]
            self._misses += 1
            return None

        self._cache.move_to_end(item_id)
        self._hits += 1
        return item

    def put(self, item: MediaItem) -> None:
        """Record an item, replacing any older copy."""
        self._cache.pop(item.item_id, None)
        while len(self._cache) >= self._max_entries:
            self._cache.popitem(last=False)
        self._cache[item.item_id] = (self._clock(), item)

    def put_many(self, items: Iterable[MediaItem]) -> None:
        """Record several items."""
        for item in items:
            self.put(item)

    def delete(self, item_id: str) -> None:
        """Delete a specific cache entry."""
        self._cache.pop(item_id, None)

    def clear(self) -> None:
        """Clear all cache entries."""
        if self._cache:
            _LOGGER.debug("Clearing %d cached items", len(self._cache))
        self._cache.clear()

    def get_stats(self) -> dict[str, int]:
        """Get cache statistics.

        Returns:
            Dictionary with hits, misses, and current entry count.
        """
        return {
            "hits": self._hits,
            "misses": self._misses,
            "entries": len(self._cache),
        }


__all__ = ["ItemCache"]
