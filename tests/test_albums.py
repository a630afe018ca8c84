"""White-box tests for the album cache."""

import asyncio

import pytest

from gphotos_album_uploader.albums import AlbumCache
from gphotos_album_uploader.exceptions import (
    AlbumResolutionError,
    PhotosAPIError,
    RemoteAuthError,
    ServerError,
)
from gphotos_album_uploader.models import Album

from conftest import FakePhotosClient


class TimeoutAfterCreateClient(FakePhotosClient):
    """Creates the album remotely but loses the response on the first attempt."""

    async def create_album(self, title: str) -> Album:
        album = await super().create_album(title)
        if len(self.created_albums) == 1:
            self.existing_albums.append(album)
            raise ServerError("Network error: read timed out")
        return album


@pytest.mark.asyncio
class TestAlbumCache:
    """Test album lookup and creation."""

    async def test_existing_album_reused(self) -> None:
        """Test that an album already in the library is not created again."""
        client = FakePhotosClient(existing_albums=[Album(id="a1", title="vacation")])
        cache = AlbumCache(client)

        album = await cache.get_or_create("vacation")

        assert album.id == "a1"
        assert client.created_albums == []

    async def test_missing_album_created_once(self) -> None:
        """Test that a new album is created on first use and then cached."""
        client = FakePhotosClient()
        cache = AlbumCache(client)

        first = await cache.get_or_create("vacation")
        second = await cache.get_or_create("vacation")

        assert first == second
        assert client.created_albums == ["vacation"]
        assert "vacation" in cache
        assert len(cache) == 1

    async def test_albums_listed_once(self) -> None:
        """Test that the library is listed a single time."""
        client = FakePhotosClient()
        cache = AlbumCache(client)

        await asyncio.gather(*(cache.get_or_create(f"album {i}") for i in range(10)))
        await cache.get_or_create("album 0")

        assert client.list_calls == 1

    async def test_concurrent_requests_create_once(self) -> None:
        """Test that simultaneous first requests for a name share one creation."""
        client = FakePhotosClient()
        cache = AlbumCache(client)

        albums = await asyncio.gather(*(cache.get_or_create("vacation") for _ in range(5)))

        assert client.created_albums == ["vacation"]
        assert len({album.id for album in albums}) == 1

    async def test_duplicate_remote_titles_keep_first(self) -> None:
        """Test that the first listed album wins for duplicate titles."""
        client = FakePhotosClient(
            existing_albums=[Album(id="first", title="dup"), Album(id="second", title="dup")]
        )
        cache = AlbumCache(client)

        album = await cache.get_or_create("dup")

        assert album.id == "first"

    async def test_listing_failure(self) -> None:
        """Test that a listing failure is reported as AlbumResolutionError."""
        client = FakePhotosClient()

        async def failing_list() -> list[Album]:
            raise PhotosAPIError("boom")

        client.list_albums = failing_list  # type: ignore[method-assign]
        cache = AlbumCache(client)

        with pytest.raises(AlbumResolutionError, match="list albums"):
            await cache.get_or_create("vacation")

    async def test_creation_failure_not_cached(self) -> None:
        """Test that a failed creation can be attempted again later."""
        client = FakePhotosClient(fail_album_creation={"vacation"})
        cache = AlbumCache(client)

        with pytest.raises(AlbumResolutionError, match="vacation"):
            await cache.get_or_create("vacation")

        client.fail_album_creation.clear()
        album = await cache.get_or_create("vacation")

        assert album.title == "vacation"
        assert client.created_albums == ["vacation", "vacation"]

    async def test_lost_creation_response_found_by_relisting(self) -> None:
        """Test that an album created by a failed attempt is not created twice."""
        client = TimeoutAfterCreateClient()
        cache = AlbumCache(client)

        with pytest.raises(AlbumResolutionError, match="vacation"):
            await cache.get_or_create("vacation")

        album = await cache.get_or_create("vacation")

        assert album.id == "album-1"
        assert client.created_albums == ["vacation"]
        assert client.list_calls == 2

    async def test_server_error_relists_then_creates(self) -> None:
        """Test that a title still missing after relisting is created again."""
        client = FakePhotosClient(
            fail_album_creation={"vacation"}, album_creation_error=ServerError
        )
        cache = AlbumCache(client)

        with pytest.raises(AlbumResolutionError):
            await cache.get_or_create("vacation")

        client.fail_album_creation.clear()
        album = await cache.get_or_create("vacation")
        await cache.get_or_create("vacation")

        assert album.title == "vacation"
        assert client.created_albums == ["vacation", "vacation"]
        assert client.list_calls == 2

    async def test_rejected_listing_propagates(self) -> None:
        """Test that rejected credentials are not turned into a per-album failure."""
        client = FakePhotosClient(list_error=RemoteAuthError("rejected"))
        cache = AlbumCache(client)

        with pytest.raises(RemoteAuthError, match="rejected"):
            await cache.get_or_create("vacation")

    async def test_rejected_creation_propagates(self) -> None:
        """Test that rejected credentials during creation propagate unchanged."""
        client = FakePhotosClient(
            fail_album_creation={"vacation"}, album_creation_error=RemoteAuthError
        )
        cache = AlbumCache(client)

        with pytest.raises(RemoteAuthError):
            await cache.get_or_create("vacation")

        assert "vacation" not in cache
