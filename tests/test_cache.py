"""Tests for the item cache."""

from __future__ import annotations

from myemby.cache import ItemCache
from myemby.models import MediaItem


class FakeClock:
    """Manually advanced clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _item(item_id: str, name: str = "Item") -> MediaItem:
    return MediaItem(item_id=item_id, name=name)


class TestItemCache:
    """Test item cache functionality."""

    def test_cache_get_put(self) -> None:
        """Test storing and reading an item."""
        cache = ItemCache(ttl_seconds=60)
        item = _item("a")
        cache.put(item)

        assert cache.get("a") is item

    def test_cache_miss_returns_none(self) -> None:
        """Test that cache miss returns None."""
        cache = ItemCache(ttl_seconds=60)

        assert cache.get("nonexistent") is None

    def test_cache_expiration(self) -> None:
        """Test that cached items expire after TTL."""
        clock = FakeClock()
        cache = ItemCache(ttl_seconds=10, clock=clock)
        cache.put(_item("a"))

        clock.now += 5
        assert cache.get("a") is not None

        clock.now += 6
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_put_refreshes_timestamp(self) -> None:
        """Test re-recording an item restarts its TTL."""
        clock = FakeClock()
        cache = ItemCache(ttl_seconds=10, clock=clock)
        cache.put(_item("a", "Old"))
        clock.now += 8
        cache.put(_item("a", "New"))
        clock.now += 8

        item = cache.get("a")
        assert item is not None
        assert item.name == "New"

    def test_cache_max_entries(self) -> None:
        """Test the least recently used item is evicted at capacity."""
        cache = ItemCache(ttl_seconds=60, max_entries=2)
        cache.put(_item("a"))
        cache.put(_item("b"))
        cache.get("a")
        cache.put(_item("c"))

        assert cache.get("a") is not None
        assert cache.get("b") is None
        assert cache.get("c") is not None

    def test_put_same_id_does_not_evict(self) -> None:
        """Test replacing an item at capacity keeps the others."""
        cache = ItemCache(ttl_seconds=60, max_entries=2)
        cache.put(_item("a"))
        cache.put(_item("b"))
        cache.put(_item("b", "Again"))

        assert len(cache) == 2
        assert cache.get("a") is not None

    def test_put_many(self) -> None:
        """Test recording several items."""
        cache = ItemCache()
        cache.put_many([_item("a"), _item("b")])

        assert len(cache) == 2

    def test_cache_delete(self) -> None:
        """Test deleting specific cache entry."""
        cache = ItemCache(ttl_seconds=60)
        cache.put(_item("a"))
        cache.put(_item("b"))

        cache.delete("a")
        cache.delete("missing")

        assert cache.get("a") is None
        assert cache.get("b") is not None

    def test_cache_clear(self) -> None:
        """Test clearing the cache."""
        cache = ItemCache(ttl_seconds=60)
        cache.put_many([_item("a"), _item("b")])

        cache.clear()

        assert cache.get("a") is None
        assert len(cache) == 0

    def test_cache_stats(self) -> None:
        """Test cache statistics tracking."""
        cache = ItemCache(ttl_seconds=60)
        cache.put(_item("a"))

        cache.get("a")
        cache.get("a")
        cache.get("missing")

        assert cache.get_stats() == {"hits": 2, "misses": 1, "entries": 1}
