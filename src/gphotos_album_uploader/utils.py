"""Utility functions for discovering media files."""

import logging
import mimetypes
import os
from pathlib import Path

from gphotos_album_uploader.exceptions import DiscoveryError
from gphotos_album_uploader.models import MediaFile

logger = logging.getLogger(__name__)

# Formats accepted by Google Photos
PHOTO_EXTENSIONS = frozenset(
    {
        ".bmp",
        ".gif",
        ".heic",
        ".ico",
        ".jpg",
        ".jpeg",
        ".png",
        ".tif",
        ".tiff",
        ".webp",
        ".raw",
    }
)
VIDEO_EXTENSIONS = frozenset(
    {
        ".3gp",
        ".3g2",
        ".asf",
        ".avi",
        ".divx",
        ".m2t",
        ".m2ts",
        ".m4v",
        ".mkv",
        ".mmv",
        ".mod",
        ".mov",
        ".mp4",
        ".mpg",
        ".mts",
        ".tod",
        ".wmv",
    }
)

# Types mimetypes doesn't know on every platform
_FALLBACK_MIME_TYPES = {
    ".heic": "image/heic",
    ".raw": "image/x-raw",
    ".webp": "image/webp",
    ".3g2": "video/3gpp2",
    ".3gp": "video/3gpp",
    ".divx": "video/divx",
    ".m2t": "video/mp2t",
    ".m2ts": "video/mp2t",
    ".mkv": "video/x-matroska",
    ".mmv": "video/x-mmv",
    ".mod": "video/mpeg",
    ".mts": "video/mp2t",
    ".tod": "video/mpeg",
}


def media_extensions(include_photos: bool = True, include_videos: bool = True) -> frozenset[str]:
    """Return the set of extensions to upload."""
    extensions: set[str] = set()
    if include_photos:
        logger.info("Including photo files")
        extensions |= PHOTO_EXTENSIONS
    if include_videos:
        logger.info("Including video files")
        extensions |= VIDEO_EXTENSIONS
    return frozenset(extensions)


def is_media_file(path: Path, extensions: frozenset[str]) -> bool:
    """Check if a file is a supported media format.

    Args:
        path: Path to the file to check
        extensions: Lower-case extensions (with leading dot) to accept

    Returns:
        True if the file is a regular file with an accepted extension
    """
    return path.is_file() and path.suffix.lower() in extensions


def find_media_files(
    root_dir: Path,
    include_photos: bool = True,
    include_videos: bool = True,
) -> list[MediaFile]:
    """Recursively scan a directory for media files.

    Directories and files are visited in sorted order so the discovery order
    is stable between runs.

    Args:
        root_dir: Root directory to scan
        include_photos: Include photo formats
        include_videos: Include video formats

    Returns:
        List of MediaFile objects in discovery order

    Raises:
        DiscoveryError: If root_dir doesn't exist, isn't a directory or
            can't be listed
    """
    root = Path(os.path.abspath(root_dir))

    if not root.exists():
        raise DiscoveryError(f"Root directory does not exist: {root}")

    if not root.is_dir():
        raise DiscoveryError(f"Path is not a directory: {root}")

    try:
        with os.scandir(root):
            pass
    except OSError as e:
        raise DiscoveryError(f"Cannot read root directory {root}: {e}") from e

    extensions = media_extensions(include_photos, include_videos)

    def _on_error(error: OSError) -> None:
        logger.warning(f"Skipping unreadable directory: {error}")

    media_files: list[MediaFile] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames.sort()
        for filename in sorted(filenames):
            path = Path(dirpath) / filename
            if is_media_file(path, extensions):
                media_files.append(MediaFile.from_path(root, path))
            else:
                logger.debug(f"Skipping unsupported file: {path}")

    logger.info(f"Found {len(media_files)} media file(s) under {root}")
    return media_files


def guess_mime_type(path: Path) -> str:
    """Infer the MIME type of a media file from its extension."""
    mime_type = mimetypes.guess_type(path.name)[0]
    if mime_type:
        return mime_type
    return _FALLBACK_MIME_TYPES.get(path.suffix.lower(), "application/octet-stream")
