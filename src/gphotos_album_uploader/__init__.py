"""Google Photos Album Uploader - Resumable batch upload of folder trees to albums."""

__version__ = "0.1.0"

from gphotos_album_uploader.albums import AlbumCache
from gphotos_album_uploader.api_client import GooglePhotosClient
from gphotos_album_uploader.ledger import ProcessedLedger
from gphotos_album_uploader.models import Album, MediaFile, UploadConfig, UploadSummary
from gphotos_album_uploader.throttle import ConcurrencyGate, SubmissionRateLimiter
from gphotos_album_uploader.uploader import UploadOrchestrator
from gphotos_album_uploader.utils import find_media_files
from gphotos_album_uploader.work_queue import build_work_queue

__all__ = [
    "AlbumCache",
    "GooglePhotosClient",
    "ProcessedLedger",
    "Album",
    "MediaFile",
    "UploadConfig",
    "UploadSummary",
    "ConcurrencyGate",
    "SubmissionRateLimiter",
    "UploadOrchestrator",
    "find_media_files",
    "build_work_queue",
]
