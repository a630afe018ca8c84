"""Pytest configuration and shared fixtures."""

import asyncio
from pathlib import Path

import pytest
from google.oauth2.credentials import Credentials

from gphotos_album_uploader.exceptions import CommitError, PhotosAPIError, UploadTransportError
from gphotos_album_uploader.ledger import ProcessedLedger
from gphotos_album_uploader.models import Album


class FakePhotosClient:
    """In-memory stand-in for GooglePhotosClient that records every call."""

    def __init__(
        self,
        existing_albums: list[Album] | None = None,
        fail_uploads: set[str] | None = None,
        fail_commits: set[str] | None = None,
        fail_album_creation: set[str] | None = None,
        album_creation_error: type[PhotosAPIError] = PhotosAPIError,
        list_error: PhotosAPIError | None = None,
        upload_delay: float = 0.0,
    ) -> None:
        self.existing_albums = list(existing_albums or [])
        self.fail_uploads = fail_uploads or set()
        self.fail_commits = fail_commits or set()
        self.fail_album_creation = fail_album_creation or set()
        self.album_creation_error = album_creation_error
        self.list_error = list_error
        self.upload_delay = upload_delay
        self.list_calls = 0
        self.created_albums: list[str] = []
        self.uploads: list[str] = []
        self.commits: list[tuple[str, str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def list_albums(self) -> list[Album]:
        self.list_calls += 1
        await asyncio.sleep(0)
        if self.list_error is not None:
            raise self.list_error
        return list(self.existing_albums)

    async def create_album(self, title: str) -> Album:
        self.created_albums.append(title)
        await asyncio.sleep(0)
        if title in self.fail_album_creation:
            raise self.album_creation_error(f"cannot create {title}")
        return Album(id=f"album-{len(self.created_albums)}", title=title)

    async def upload_bytes(self, path: Path, mime_type: str) -> str:
        self.uploads.append(path.name)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.upload_delay)
            if path.name in self.fail_uploads or not path.exists():
                raise UploadTransportError(f"upload failed for {path.name}")
            return f"token-{path.name}"
        finally:
            self.in_flight -= 1

    async def commit_media_item(self, album_id: str, file_name: str, upload_token: str) -> str:
        await asyncio.sleep(0)
        if file_name in self.fail_commits:
            raise CommitError(f"commit failed for {file_name}")
        self.commits.append((album_id, file_name, upload_token))
        return f"item-{file_name}"


@pytest.fixture
def temp_media_dir(tmp_path: Path) -> Path:
    """Create a temporary directory tree with test media.

    Structure:
        media/
            vacation/
                beach.jpg
                clip.mov
            family/
                2019/
                    xmas/
                        tree.PNG
            notes.txt
            readme
    """
    root = tmp_path / "media"
    vacation = root / "vacation"
    vacation.mkdir(parents=True)
    (vacation / "beach.jpg").write_bytes(b"fake jpg content")
    (vacation / "clip.mov").write_bytes(b"fake mov content")

    xmas = root / "family" / "2019" / "xmas"
    xmas.mkdir(parents=True)
    (xmas / "tree.PNG").write_bytes(b"fake png content")

    (root / "notes.txt").write_text("not media")
    (root / "readme").write_text("no extension")

    return root


@pytest.fixture
def vacation_dir(tmp_path: Path) -> Path:
    """Root holding only vacation/beach.jpg and vacation/clip.mov."""
    root = tmp_path / "photos"
    vacation = root / "vacation"
    vacation.mkdir(parents=True)
    (vacation / "beach.jpg").write_bytes(b"fake jpg content")
    (vacation / "clip.mov").write_bytes(b"fake mov content")
    return root


@pytest.fixture
def storage_dir(tmp_path: Path) -> Path:
    """Directory for the ledger and token cache."""
    path = tmp_path / "storage"
    path.mkdir()
    return path


@pytest.fixture
def ledger(storage_dir: Path):
    """Processed-file ledger in the temp storage directory."""
    with ProcessedLedger(storage_dir) as processed_ledger:
        yield processed_ledger


@pytest.fixture
def credentials() -> Credentials:
    """Return credentials holding a fake, non-expiring access token."""
    return Credentials(token="test_access_token_123")
