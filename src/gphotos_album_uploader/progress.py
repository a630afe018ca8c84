"""Text rendering of upload progress."""

from gphotos_album_uploader.models import UploadProgress

PROGRESS_WIDTH = 40


def render_progress(
    current: int, total: int, in_progress: int, errors: int, width: int = PROGRESS_WIDTH
) -> str:
    """Render a progress bar line.

    Example: ``[==========>          ] 5 of 10, 2 in progress, 1 errors``
    """
    filled = round(current / total * width) if total else width
    filled = max(0, min(width, filled))
    bar = "=" * filled + ">" + " " * (width - filled)
    errors_msg = f", {errors} errors" if errors > 0 else ""
    return f"[{bar}] {current} of {total}, {in_progress} in progress{errors_msg}"


def format_progress(progress: UploadProgress, width: int = PROGRESS_WIDTH) -> str:
    """Render a progress snapshot with rate and current file."""
    line = render_progress(
        progress.admitted, progress.total, progress.in_flight, progress.errors, width
    )
    return (
        f"{line}\tRate: {progress.rate_per_minute:.2f}/minute"
        f"\tCurrent Album: '{progress.album_name}' Current File: '{progress.file_name}'"
    )
