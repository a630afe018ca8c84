"""Custom exceptions for the Google Photos album uploader."""


class UploaderError(Exception):
    """Base exception for uploader errors."""

    pass


class DiscoveryError(UploaderError):
    """Raised when the work set cannot be built (unreadable root or ledger)."""

    pass


class LedgerWriteError(UploaderError):
    """Raised when a completed upload cannot be recorded in the ledger."""

    pass


class PhotosAPIError(UploaderError):
    """Base exception for Google Photos API errors."""

    pass


class RemoteAuthError(PhotosAPIError):
    """Raised when credentials are missing, invalid or cannot be refreshed."""

    pass


class RateLimitError(PhotosAPIError):
    """Exception raised when hitting rate limits."""

    pass


class ServerError(PhotosAPIError):
    """Exception raised for 5xx server errors and network failures."""

    pass


class AlbumResolutionError(PhotosAPIError):
    """Raised when an album cannot be listed or created."""

    pass


class UploadTransportError(PhotosAPIError):
    """Raised when the binary upload of a file fails."""

    pass


class CommitError(PhotosAPIError):
    """Raised when an uploaded file cannot be committed into an album."""

    pass
