"""Upload orchestration with concurrency, rate limiting and resumable progress."""

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol

from gphotos_album_uploader.albums import AlbumCache
from gphotos_album_uploader.exceptions import AlbumResolutionError, RemoteAuthError
from gphotos_album_uploader.ledger import ProcessedLedger
from gphotos_album_uploader.models import Album, MediaFile, UploadProgress, UploadSummary
from gphotos_album_uploader.throttle import ConcurrencyGate, SubmissionRateLimiter
from gphotos_album_uploader.utils import guess_mime_type

logger = logging.getLogger(__name__)


class PhotosClient(Protocol):
    async def list_albums(self) -> list[Album]: ...

    async def create_album(self, title: str) -> Album: ...

    async def upload_bytes(self, path: Path, mime_type: str) -> str: ...

    async def commit_media_item(self, album_id: str, file_name: str, upload_token: str) -> str: ...


class UploadOrchestrator:
    """Uploads pending media files into folder-named albums.

    The driver loop admits files one at a time, in order: it resolves the
    album, waits for an upload slot, waits for the rate limiter, then starts
    the upload as a background task and moves on. Each task commits the item,
    records it in the ledger and releases its slot, whatever the outcome.

    Failed files are counted and logged but never retried within a run; they
    stay out of the ledger and are picked up again by the next run.
    Rejected credentials end the run instead, since no later file could
    succeed either.
    """

    def __init__(
        self,
        client: PhotosClient,
        ledger: ProcessedLedger,
        max_parallel_uploads: int = 15,
        requests_per_minute: float = 15.0,
        album_name_prefix: str = "",
        shutdown_event: asyncio.Event | None = None,
        progress_callback: Callable[[UploadProgress], None] | None = None,
        rate_limiter: SubmissionRateLimiter | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: Google Photos client (or any object with the same methods)
            ledger: Ledger that successful uploads are appended to
            max_parallel_uploads: Maximum number of uploads in flight
            requests_per_minute: Maximum number of uploads started per minute
            album_name_prefix: Prepended to every derived album name
            shutdown_event: Set to stop admitting new files
            progress_callback: Called after each admitted file
            rate_limiter: Limiter to use instead of one built from
                requests_per_minute
        """
        self.client = client
        self.ledger = ledger
        self.album_name_prefix = album_name_prefix
        self.albums = AlbumCache(client)
        self.gate = ConcurrencyGate(max_parallel_uploads)
        self.rate_limiter = rate_limiter or SubmissionRateLimiter(requests_per_minute)
        self._shutdown = shutdown_event or asyncio.Event()
        self._progress_callback = progress_callback
        self._tasks: set[asyncio.Task[None]] = set()
        self._completed = 0
        self._errors = 0

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown.is_set()

    @property
    def error_count(self) -> int:
        return self._errors

    @property
    def completed_count(self) -> int:
        return self._completed

    @property
    def in_flight(self) -> int:
        return self.gate.in_flight

    def stop(self) -> None:
        """Stop admitting new files; in-flight uploads run to completion."""
        if not self._shutdown.is_set():
            logger.warning("Orderly shutdown initiated. Waiting for active uploads to complete...")
            self._shutdown.set()

    async def run(self, pending: Sequence[MediaFile]) -> UploadSummary:
        """Upload all pending files.

        Args:
            pending: Files to upload, in the order they should be started

        Returns:
            Summary of the run

        Raises:
            RemoteAuthError: If the credentials are rejected while resolving
                albums; uploads already started are allowed to finish first
        """
        queue = deque(pending)
        total = len(queue)
        admitted = 0
        start = time.monotonic()

        logger.info(f"Starting upload of {total} file(s)")

        while queue and not self.shutdown_requested:
            media_file = queue.popleft()
            album_name = f"{self.album_name_prefix}{media_file.album_name}"

            try:
                album = await self.albums.get_or_create(album_name)
            except RemoteAuthError as e:
                logger.error(f"Authentication rejected, stopping: {e}")
                queue.appendleft(media_file)
                self._shutdown.set()
                await self._wait_for_active_uploads()
                raise
            except AlbumResolutionError as e:
                logger.error(f"Skipping {media_file.complete_path}: {e}")
                self._errors += 1
                continue

            await self.gate.acquire()
            if self.shutdown_requested:
                self.gate.release()
                queue.appendleft(media_file)
                break

            await self.rate_limiter.acquire()
            if self.shutdown_requested:
                self.gate.release()
                queue.appendleft(media_file)
                break

            self._submit(album, media_file)
            admitted += 1

            elapsed_minutes = max((time.monotonic() - start) / 60.0, 1.0)
            self._report_progress(
                UploadProgress(
                    admitted=admitted,
                    total=total,
                    in_flight=self.gate.in_flight,
                    completed=self._completed,
                    errors=self._errors,
                    rate_per_minute=admitted / elapsed_minutes,
                    album_name=album_name,
                    file_name=media_file.file_name,
                )
            )

        interrupted = self.shutdown_requested and bool(queue)
        await self._wait_for_active_uploads()

        if interrupted:
            logger.info("Shutdown complete.")
        else:
            logger.info("All uploads complete.")

        return UploadSummary(
            total=total,
            admitted=admitted,
            completed=self._completed,
            failed=self._errors,
            remaining=len(queue),
            interrupted=interrupted,
        )

    def _submit(self, album: Album, media_file: MediaFile) -> None:
        logger.debug(f"Processing file {media_file.file_name} for album {album.title}")
        task = asyncio.create_task(self._upload_file(album, media_file))
        # Keep a reference so the task isn't garbage collected mid-flight
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _upload_file(self, album: Album, media_file: MediaFile) -> None:
        """Upload, commit and record one file. Always releases its slot."""
        path = media_file.complete_path
        try:
            upload_token = await self.client.upload_bytes(path, guess_mime_type(path))
            await self.client.commit_media_item(album.id, media_file.file_name, upload_token)
            # fsync off the event loop
            await asyncio.to_thread(self.ledger.mark_uploaded, media_file)
            self._completed += 1
            logger.info(f"Successfully uploaded {media_file.file_name} to '{album.title}'")
        except Exception as e:
            self._errors += 1
            logger.error(f"Error uploading file {path}: {e}")
        finally:
            self.gate.release()

    async def _wait_for_active_uploads(self) -> None:
        if self.gate.in_flight:
            logger.info(
                f"Waiting for {self.gate.in_flight} upload(s) still in progress to complete..."
            )
        await self.gate.drain()

    def _report_progress(self, progress: UploadProgress) -> None:
        if self._progress_callback is None:
            return
        try:
            self._progress_callback(progress)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")
