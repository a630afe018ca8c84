"""Command-line interface for the Google Photos album uploader."""

import asyncio
import logging
import signal
import tempfile
from collections import Counter
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from gphotos_album_uploader.api_client import GooglePhotosClient
from gphotos_album_uploader.auth import load_credentials
from gphotos_album_uploader.exceptions import DiscoveryError, RemoteAuthError
from gphotos_album_uploader.ledger import ProcessedLedger
from gphotos_album_uploader.models import UploadConfig, UploadProgress, UploadSummary
from gphotos_album_uploader.progress import format_progress
from gphotos_album_uploader.uploader import UploadOrchestrator
from gphotos_album_uploader.work_queue import build_work_queue

app = typer.Typer(
    name="gphotos-album-uploader",
    help="Upload a folder tree to Google Photos, one album per folder",
    add_completion=False,
)
console = Console()


def setup_logging(verbose: bool) -> None:
    """Configure logging with Rich handler.

    Args:
        verbose: Enable verbose (DEBUG) logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )


def _log_progress(progress: UploadProgress) -> None:
    logging.getLogger(__name__).info(format_progress(progress))


def _install_signal_handlers(orchestrator: UploadOrchestrator) -> list[signal.Signals]:
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, orchestrator.stop)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform or outside the main thread
            continue
        installed.append(sig)
    return installed


def _print_summary(summary: UploadSummary) -> None:
    console.print("\n[bold]Upload Summary:[/bold]")
    console.print(f"  Files to upload: {summary.total}")
    console.print(f"  [green]Successful: {summary.completed}[/green]")
    console.print(f"  [red]Failed: {summary.failed}[/red]")
    if summary.interrupted:
        console.print(
            f"  [yellow]Not started: {summary.remaining} (interrupted, run again to resume)[/yellow]"
        )
    if summary.failed:
        console.print("  Failed files were not recorded and will be retried on the next run.")


async def async_upload(config: UploadConfig, dry_run: bool) -> int:
    """Async upload implementation.

    Args:
        config: Validated upload settings
        dry_run: If True, list pending files without contacting Google Photos

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    logger = logging.getLogger(__name__)

    try:
        with ProcessedLedger(config.temp_storage_path) as ledger:
            logger.info(f"Scanning for media files in: {config.root_dir}")
            pending = build_work_queue(
                config.root_dir,
                ledger,
                include_photos=config.include_photos,
                include_videos=config.include_videos,
            )

            if not pending:
                logger.info("Nothing to upload")
                _print_summary(UploadSummary(total=0, admitted=0, completed=0, failed=0))
                return 0

            if dry_run:
                albums = Counter(
                    f"{config.album_name_prefix}{media_file.album_name}" for media_file in pending
                )
                console.print(f"\n[bold]{len(pending)} file(s) to upload:[/bold]")
                for title, count in albums.items():
                    console.print(
                        f"  [DRY RUN] Would upload {count} file(s) to album '{title}'",
                        markup=False,
                        highlight=False,
                    )
                return 0

            credentials = await asyncio.to_thread(
                load_credentials, config.credentials_file, config.resolved_token_file
            )

            async with GooglePhotosClient(credentials) as client:
                orchestrator = UploadOrchestrator(
                    client,
                    ledger,
                    max_parallel_uploads=config.max_parallel_uploads,
                    requests_per_minute=config.requests_per_minute,
                    album_name_prefix=config.album_name_prefix,
                    progress_callback=_log_progress,
                )
                installed = _install_signal_handlers(orchestrator)
                try:
                    summary = await orchestrator.run(pending)
                finally:
                    loop = asyncio.get_running_loop()
                    for sig in installed:
                        loop.remove_signal_handler(sig)

        _print_summary(summary)
        return 0

    except (DiscoveryError, RemoteAuthError) as e:
        logger.error(f"Cannot start upload: {e}")
        return 1
    except Exception as e:
        logger.error(f"Upload failed: {e}", exc_info=True)
        return 1


@app.command()
def upload(
    root_dir: Path = typer.Argument(
        ...,
        help="Root directory to upload; each folder becomes an album",
        exists=True,
        file_okay=False,
        dir_okay=True,
        readable=True,
    ),
    temp_storage: Path = typer.Option(
        Path(tempfile.gettempdir()),
        "--temp-storage",
        "-t",
        help="Directory for the processed-file log and token cache",
    ),
    credentials_file: Path = typer.Option(
        Path("google-photos-api-credentials.json"),
        "--credentials",
        "-c",
        envvar="GPHOTOS_CREDENTIALS",
        help="OAuth client secrets JSON (or set GPHOTOS_CREDENTIALS env var)",
    ),
    token_file: Path = typer.Option(
        None,
        "--token-file",
        envvar="GPHOTOS_TOKEN_FILE",
        help="Cached OAuth token (default: <temp-storage>/gphotos_token.json)",
    ),
    exclude_photos: bool = typer.Option(
        False,
        "--exclude-photos",
        help="Exclude photos from upload",
    ),
    exclude_videos: bool = typer.Option(
        False,
        "--exclude-videos",
        help="Exclude videos from upload",
    ),
    max_parallel: int = typer.Option(
        15,
        "--max-parallel",
        "-p",
        min=1,
        max=100,
        help="Maximum number of parallel uploads",
    ),
    rate_limit: float = typer.Option(
        15.0,
        "--rate-limit",
        "-r",
        help="Maximum number of uploads started per minute",
    ),
    album_prefix: str = typer.Option(
        "",
        "--album-prefix",
        help="Prefix added to every album name",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="List pending files per album without uploading",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Upload media files to Google Photos albums.

    Scans ROOT_DIR recursively for supported photos and videos. Each file is
    uploaded to an album named after its folder path relative to ROOT_DIR.
    Completed files are recorded so an interrupted run can be resumed.
    """
    setup_logging(verbose)

    try:
        config = UploadConfig(
            root_dir=root_dir,
            temp_storage_path=temp_storage,
            credentials_file=credentials_file,
            token_file=token_file,
            include_photos=not exclude_photos,
            include_videos=not exclude_videos,
            max_parallel_uploads=max_parallel,
            requests_per_minute=rate_limit,
            album_name_prefix=album_prefix,
        )
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    logging.getLogger(__name__).debug(f"Input arguments are {config}")
    exit_code = asyncio.run(async_upload(config, dry_run))
    raise typer.Exit(exit_code)


if __name__ == "__main__":
    app()
