"""Build the list of files still waiting to be uploaded."""

import logging
from pathlib import Path

from gphotos_album_uploader.ledger import ProcessedLedger
from gphotos_album_uploader.models import MediaFile
from gphotos_album_uploader.utils import find_media_files

logger = logging.getLogger(__name__)


def build_work_queue(
    root_dir: Path,
    ledger: ProcessedLedger,
    include_photos: bool = True,
    include_videos: bool = True,
) -> list[MediaFile]:
    """Discover media files and drop the ones already uploaded.

    Args:
        root_dir: Root directory to scan
        ledger: Ledger of previously completed uploads
        include_photos: Include photo formats
        include_videos: Include video formats

    Returns:
        Pending files in discovery order

    Raises:
        DiscoveryError: If the root directory or the ledger can't be read
    """
    discovered = find_media_files(root_dir, include_photos, include_videos)
    processed = ledger.processed_files(root_dir)

    pending = [media_file for media_file in discovered if media_file not in processed]

    logger.info(
        f"Total files to process {len(pending)} after removing "
        f"{len(discovered) - len(pending)} already processed file(s)"
    )
    return pending
