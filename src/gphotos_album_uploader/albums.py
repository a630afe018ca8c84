"""Remote album lookup with a process-wide cache."""

import asyncio
import logging
from typing import Protocol

from gphotos_album_uploader.exceptions import (
    AlbumResolutionError,
    PhotosAPIError,
    RemoteAuthError,
    ServerError,
)
from gphotos_album_uploader.models import Album

logger = logging.getLogger(__name__)


class AlbumClient(Protocol):
    async def list_albums(self) -> list[Album]: ...

    async def create_album(self, title: str) -> Album: ...


class AlbumCache:
    """Resolves album titles to remote albums, creating missing ones.

    Existing albums are listed once, on first use. After that, each unseen
    title triggers exactly one creation request, even when several callers
    ask for it at the same time.

    If a creation fails in a way that may still have reached the server, the
    library is listed again before the title is created a second time.
    """

    def __init__(self, client: AlbumClient) -> None:
        self.client = client
        self._albums: dict[str, Album] = {}
        self._creating: dict[str, asyncio.Task[Album]] = {}
        self._unconfirmed: set[str] = set()
        self._init_lock = asyncio.Lock()
        self._initialized = False

    def __contains__(self, title: object) -> bool:
        return title in self._albums

    def __len__(self) -> int:
        return len(self._albums)

    async def get_or_create(self, title: str) -> Album:
        """Return the album with the given title, creating it if needed.

        Args:
            title: Album title

        Returns:
            The remote album

        Raises:
            AlbumResolutionError: If listing or creating albums fails
            RemoteAuthError: If the credentials are rejected
        """
        if not self._initialized:
            await self._load_existing()

        album = self._albums.get(title)
        if album is not None:
            return album

        task = self._creating.get(title)
        if task is None:
            task = asyncio.create_task(self._create(title))
            self._creating[title] = task
        return await task

    async def _load_existing(self) -> None:
        async with self._init_lock:
            if self._initialized:
                return
            self._remember(await self._list())
            self._initialized = True
            logger.info(f"Loaded {len(self._albums)} existing album(s)")

    async def _list(self) -> list[Album]:
        try:
            return await self.client.list_albums()
        except RemoteAuthError:
            raise
        except PhotosAPIError as e:
            raise AlbumResolutionError(f"Failed to list albums: {e}") from e

    def _remember(self, albums: list[Album]) -> None:
        for album in albums:
            # Titles aren't unique remotely; keep the first one
            self._albums.setdefault(album.title, album)

    async def _create(self, title: str) -> Album:
        try:
            if title in self._unconfirmed:
                # An earlier attempt may have created it before failing
                self._remember(await self._list())
                self._unconfirmed.discard(title)
                album = self._albums.get(title)
                if album is not None:
                    logger.info(f"Found album '{title}' from an earlier attempt")
                    return album

            try:
                album = await self.client.create_album(title)
            except RemoteAuthError:
                raise
            except ServerError as e:
                self._unconfirmed.add(title)
                raise AlbumResolutionError(f"Failed to create album '{title}': {e}") from e
            except PhotosAPIError as e:
                raise AlbumResolutionError(f"Failed to create album '{title}': {e}") from e
        finally:
            # Failures are not cached: a later request may try again
            self._creating.pop(title, None)

        self._albums[title] = album
        logger.info(f"Created album '{title}'")
        return album
