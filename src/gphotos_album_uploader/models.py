"""Data models for the Google Photos album uploader."""

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

LEDGER_FILE_NAME = "gphotos_album_uploader_processed.txt"


@dataclass(frozen=True)
class MediaFile:
    """A discovered media file and the album it belongs to.

    Two media files are equal when they point at the same file; the album
    name is derived from the path and does not take part in comparisons.
    """

    directory_path: str
    album_name: str = field(compare=False)
    file_name: str

    @property
    def complete_path(self) -> Path:
        """Absolute path of the file, also used as its ledger key."""
        return Path(self.directory_path) / self.file_name

    @classmethod
    def from_path(cls, root_dir: Path | str, path: Path | str) -> "MediaFile":
        """Build a media file from its path and the search root.

        The album name is the parent directory's path relative to the root,
        with path separators replaced by spaces. Files directly in the root
        use the root directory's name.

        Args:
            root_dir: Search root directory
            path: Path to the file

        Returns:
            The MediaFile for ``path``
        """
        root = Path(os.path.abspath(root_dir))
        file_path = Path(os.path.abspath(path))
        parent = file_path.parent

        try:
            relative = parent.relative_to(root)
        except ValueError:
            album_name = parent.name
        else:
            album_name = " ".join(relative.parts) if relative.parts else root.name

        return cls(
            directory_path=str(parent),
            album_name=album_name,
            file_name=file_path.name,
        )


@dataclass(frozen=True)
class Album:
    """A remote Google Photos album."""

    id: str
    title: str

    def __post_init__(self) -> None:
        """Validate album data."""
        if not self.id:
            raise ValueError("Album id cannot be empty")


@dataclass(frozen=True)
class UploadConfig:
    """Validated settings for an upload run."""

    root_dir: Path
    temp_storage_path: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))
    credentials_file: Path = Path("google-photos-api-credentials.json")
    token_file: Path | None = None
    include_photos: bool = True
    include_videos: bool = True
    max_parallel_uploads: int = 15
    requests_per_minute: float = 15.0
    album_name_prefix: str = ""

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.include_photos and not self.include_videos:
            raise ValueError("At least one of photos or videos must be included")
        if self.max_parallel_uploads < 1:
            raise ValueError("max_parallel_uploads must be at least 1")
        if self.requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be positive")

    @property
    def ledger_path(self) -> Path:
        """Location of the processed-file ledger."""
        return self.temp_storage_path / LEDGER_FILE_NAME

    @property
    def resolved_token_file(self) -> Path:
        """Token cache file, defaulting to the temp storage directory."""
        return self.token_file or self.temp_storage_path / "gphotos_token.json"


@dataclass(frozen=True)
class UploadProgress:
    """Snapshot of an upload run, reported after each admitted file."""

    admitted: int
    total: int
    in_flight: int
    completed: int
    errors: int
    rate_per_minute: float
    album_name: str
    file_name: str


@dataclass(frozen=True)
class UploadSummary:
    """Result of an upload run."""

    total: int
    admitted: int
    completed: int
    failed: int
    remaining: int = 0
    interrupted: bool = False
