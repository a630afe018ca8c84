"""Durable record of files that were uploaded and committed."""

import logging
import os
import threading
from pathlib import Path
from typing import Any, TextIO

from gphotos_album_uploader.exceptions import DiscoveryError, LedgerWriteError
from gphotos_album_uploader.models import LEDGER_FILE_NAME, MediaFile

logger = logging.getLogger(__name__)


class ProcessedLedger:
    """Append-only list of absolute paths whose upload completed.

    Lines are appended in completion order, which is unrelated to discovery
    order, so the ledger is read back as a set. Every write is flushed and
    synced before ``mark_uploaded`` returns.
    """

    def __init__(self, storage_dir: Path) -> None:
        """Initialize the ledger.

        Args:
            storage_dir: Directory holding the ledger file
        """
        self.path = Path(storage_dir) / LEDGER_FILE_NAME
        self._lock = threading.Lock()
        self._handle: TextIO | None = None

    def __enter__(self) -> "ProcessedLedger":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def read_paths(self) -> list[str]:
        """Read the recorded paths in file order.

        Returns:
            Non-blank lines of the ledger; may contain duplicates

        Raises:
            DiscoveryError: If the ledger exists but cannot be read
        """
        logger.info(f"Processed file log path: {self.path}")
        if not self.path.exists():
            return []

        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DiscoveryError(f"Cannot read ledger {self.path}: {e}") from e

        return [line.strip() for line in text.splitlines() if line.strip()]

    def processed_files(self, root_dir: Path) -> set[MediaFile]:
        """Return the recorded files as MediaFile values."""
        return {MediaFile.from_path(root_dir, line) for line in self.read_paths()}

    def mark_uploaded(self, media_file: MediaFile) -> None:
        """Record a completed upload.

        Args:
            media_file: File whose upload and commit succeeded

        Raises:
            LedgerWriteError: If the line cannot be written durably
        """
        with self._lock:
            try:
                handle = self._open()
                handle.write(f"{media_file.complete_path}\n")
                handle.flush()
                os.fsync(handle.fileno())
            except OSError as e:
                raise LedgerWriteError(
                    f"Error marking file as uploaded {media_file.complete_path}: {e}"
                ) from e

    def close(self) -> None:
        """Close the append handle, if open."""
        with self._lock:
            if self._handle is not None:
                self._handle.close()
                self._handle = None

    def _open(self) -> TextIO:
        # Caller holds the lock
        if self._handle is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            torn = False
            if self.path.exists() and self.path.stat().st_size > 0:
                with open(self.path, "rb") as existing:
                    existing.seek(-1, os.SEEK_END)
                    torn = existing.read(1) != b"\n"
            handle = open(self.path, "a", encoding="utf-8")
            if torn:
                # Start a fresh line if a previous run died mid-write
                handle.write("\n")
            self._handle = handle
        return self._handle
