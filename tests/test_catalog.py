"""Tests for the home catalog refresher."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from myemby.catalog import CatalogRefresher, HomeCatalog
from myemby.exceptions import EmbyConnectionError
from myemby.models import MediaItem

VIEWS = [
    MediaItem(item_id="v1", name="Movies", collection_type="movies"),
    MediaItem(item_id="v2", name="Shows", collection_type="tvshows"),
    MediaItem(item_id="v3", name="Music", collection_type="music"),
]


async def _latest(parent_id: str | None = None, limit: int = 10) -> list[MediaItem]:
    return [MediaItem(item_id=f"{parent_id}-new", name="New")]


@pytest.fixture
def repository() -> MagicMock:
    """Return a media repository double."""
    repo = MagicMock()
    repo.get_user_views = AsyncMock(return_value=VIEWS)
    repo.get_latest_items = AsyncMock(side_effect=_latest)
    return repo


class TestRefresh:
    """Test committing refresh results."""

    @pytest.mark.asyncio
    async def test_refresh_commits_catalog(self, repository: MagicMock) -> None:
        """Test a refresh loads views and latest items per view."""
        refresher = CatalogRefresher(repository, latest_limit=5)
        seen: list[HomeCatalog] = []
        refresher.add_listener(seen.append)

        catalog = await refresher.async_refresh()

        assert catalog is not None
        assert refresher.catalog is catalog
        assert seen == [catalog]
        assert [v.item_id for v in catalog.views] == ["v1", "v2", "v3"]
        assert catalog.latest_for("v2")[0].item_id == "v2-new"
        assert catalog.latest_for("unknown") == ()
        assert refresher.is_refreshing is False
        repository.get_latest_items.assert_any_await(parent_id="v1", limit=5)

    @pytest.mark.asyncio
    async def test_refresh_without_views(self, repository: MagicMock) -> None:
        """Test an empty library commits an empty catalog."""
        repository.get_user_views = AsyncMock(return_value=[])
        refresher = CatalogRefresher(repository)

        catalog = await refresher.async_refresh()

        assert catalog is not None
        assert catalog.views == ()
        repository.get_latest_items.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_catalog(self, repository: MagicMock) -> None:
        """Test a failed refresh propagates and keeps the last catalog."""
        refresher = CatalogRefresher(repository)
        first = await refresher.async_refresh()
        repository.get_user_views = AsyncMock(side_effect=EmbyConnectionError("down"))

        with pytest.raises(EmbyConnectionError):
            await refresher.async_refresh()

        assert refresher.catalog is first
        assert refresher.is_refreshing is False

    @pytest.mark.asyncio
    async def test_listener_removal(self, repository: MagicMock) -> None:
        """Test removed listeners are not called."""
        refresher = CatalogRefresher(repository)
        seen: list[HomeCatalog] = []
        remove = refresher.add_listener(seen.append)
        remove()

        await refresher.async_refresh()

        assert seen == []


class TestCancellation:
    """Test superseded and cancelled refreshes."""

    @pytest.mark.asyncio
    async def test_new_refresh_supersedes_old(self, repository: MagicMock) -> None:
        """Test starting a refresh cancels the one in flight."""
        blocker = asyncio.Event()
        calls = 0

        async def views() -> list[MediaItem]:
            nonlocal calls
            calls += 1
            if calls == 1:
                await blocker.wait()
            return VIEWS

        repository.get_user_views = AsyncMock(side_effect=views)
        refresher = CatalogRefresher(repository)
        seen: list[HomeCatalog] = []
        refresher.add_listener(seen.append)

        first = asyncio.create_task(refresher.async_refresh())
        for _ in range(3):
            await asyncio.sleep(0)
        assert refresher.is_refreshing is True

        second = await refresher.async_refresh()

        assert await first is None
        assert second is not None
        assert refresher.catalog is second
        assert seen == [second]

    @pytest.mark.asyncio
    async def test_cancel_in_flight(self, repository: MagicMock) -> None:
        """Test cancel stops the refresh without committing."""
        blocker = asyncio.Event()

        async def views() -> list[MediaItem]:
            await blocker.wait()
            return VIEWS

        repository.get_user_views = AsyncMock(side_effect=views)
        refresher = CatalogRefresher(repository)

        pending = asyncio.create_task(refresher.async_refresh())
        for _ in range(3):
            await asyncio.sleep(0)
        refresher.cancel()

        assert await pending is None
        assert refresher.catalog is None
        assert refresher.is_refreshing is False

    @pytest.mark.asyncio
    async def test_clear(self, repository: MagicMock) -> None:
        """Test clear drops the committed catalog."""
        refresher = CatalogRefresher(repository)
        await refresher.async_refresh()

        refresher.clear()

        assert refresher.catalog is None


class TestConcurrency:
    """Test the per-view fan-out limit."""

    @staticmethod
    def _tracking_latest(counter: dict[str, int]):  # type: ignore[no-untyped-def]
        async def latest(parent_id: str | None = None, limit: int = 10) -> list[MediaItem]:
            counter["in_flight"] += 1
            counter["peak"] = max(counter["peak"], counter["in_flight"])
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            counter["in_flight"] -= 1
            return []

        return latest

    @pytest.mark.asyncio
    async def test_unbounded_by_default(self, repository: MagicMock) -> None:
        """Test every view is requested at once."""
        counter = {"in_flight": 0, "peak": 0}
        repository.get_latest_items = AsyncMock(side_effect=self._tracking_latest(counter))

        await CatalogRefresher(repository).async_refresh()

        assert counter["peak"] == len(VIEWS)

    @pytest.mark.asyncio
    async def test_max_concurrency(self, repository: MagicMock) -> None:
        """Test the limit caps in-flight requests."""
        counter = {"in_flight": 0, "peak": 0}
        repository.get_latest_items = AsyncMock(side_effect=self._tracking_latest(counter))

        catalog = await CatalogRefresher(repository, max_concurrency=1).async_refresh()

        assert counter["peak"] == 1
        assert catalog is not None
        assert set(catalog.latest_by_view) == {"v1", "v2", "v3"}

    @pytest.mark.parametrize("value", [0, -1])
    def test_invalid_max_concurrency(self, repository: MagicMock, value: int) -> None:
        """Test a limit below one is rejected."""
        with pytest.raises(ValueError):
            CatalogRefresher(repository, max_concurrency=value)
