"""Google Photos Library API client using httpx for async HTTP calls."""

import asyncio
import logging
from pathlib import Path
from typing import Any

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from tenacity import (
    retry,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from gphotos_album_uploader.exceptions import (
    CommitError,
    PhotosAPIError,
    RateLimitError,
    RemoteAuthError,
    ServerError,
    UploadTransportError,
)
from gphotos_album_uploader.models import Album

logger = logging.getLogger(__name__)

# Google Photos Library API base URL
PHOTOS_API_BASE_URL = "https://photoslibrary.googleapis.com/v1"

# Largest page the albums endpoint accepts
ALBUMS_PAGE_SIZE = 50


def _request_not_sent(exc: BaseException) -> bool:
    """Whether a failed album creation certainly did not create anything.

    Creating an album is not idempotent, so only a rate limit rejection or a
    failure to connect at all is safe to retry.
    """
    if isinstance(exc, RateLimitError):
        return True
    return isinstance(exc, ServerError) and isinstance(
        exc.__cause__, (httpx.ConnectError, httpx.ConnectTimeout)
    )


class GooglePhotosClient:
    """Client for the Google Photos Library API using httpx."""

    def __init__(self, credentials: Credentials, timeout: float = 60.0) -> None:
        """Initialize Google Photos API client.

        Args:
            credentials: OAuth credentials with the photoslibrary scopes
            timeout: Request timeout in seconds
        """
        self.credentials = credentials
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None
        self._refresh_lock = asyncio.Lock()

    async def __aenter__(self) -> "GooglePhotosClient":
        """Async context manager entry."""
        self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        if self._client:
            await self._client.aclose()
        self._client = None
        logger.info("Photos client closed")

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the httpx AsyncClient instance.

        Raises:
            RuntimeError: If client is used outside of async context manager
        """
        if self._client is None:
            raise RuntimeError("Client must be used within async context manager")
        return self._client

    async def _auth_headers(self) -> dict[str, str]:
        """Return the Authorization header, refreshing the token if needed.

        Raises:
            RemoteAuthError: If the token can't be refreshed
        """
        if not self.credentials.valid:
            async with self._refresh_lock:
                if not self.credentials.valid:
                    logger.debug("Refreshing access token")
                    try:
                        await asyncio.to_thread(self.credentials.refresh, Request())
                    except GoogleAuthError as e:
                        raise RemoteAuthError(f"Failed to refresh access token: {e}") from e
        return {"Authorization": f"Bearer {self.credentials.token}"}

    @retry(
        retry=retry_if_exception_type((RateLimitError, ServerError)),
        wait=wait_exponential(multiplier=1, min=1, max=60),
        stop=stop_after_attempt(5),
        reraise=True,
    )
    async def _list_albums_page(self, page_token: str | None) -> dict[str, Any]:
        params: dict[str, Any] = {"pageSize": ALBUMS_PAGE_SIZE}
        if page_token:
            params["pageToken"] = page_token

        try:
            response = await self.client.get(
                f"{PHOTOS_API_BASE_URL}/albums",
                params=params,
                headers=await self._auth_headers(),
            )
        except httpx.RequestError as e:
            logger.warning(f"Network error while listing albums, will retry: {e}")
            raise ServerError(f"Network error: {e}") from e

        result = self._parse_json_response(response, "listing albums")
        if response.status_code >= 400:
            self._handle_error_response(response.status_code, result, "listing albums")
        return result

    async def list_albums(self) -> list[Album]:
        """List all albums in the library.

        Returns:
            Albums in the order the API returns them

        Raises:
            PhotosAPIError: If listing fails
        """
        albums: list[Album] = []
        page_token: str | None = None

        while True:
            result = await self._list_albums_page(page_token)
            for item in result.get("albums", []):
                albums.append(Album(id=item["id"], title=item.get("title", "")))

            page_token = result.get("nextPageToken")
            if not page_token:
                break

        logger.debug(f"Listed {len(albums)} album(s)")
        return albums

    @retry(
        retry=retry_if_exception(_request_not_sent),
        wait=wait_exponential(multiplier=1, min=1, max=60),
        stop=stop_after_attempt(5),
        reraise=True,
    )
    async def create_album(self, title: str) -> Album:
        """Create a new album.

        Args:
            title: Album title

        Returns:
            The created album

        Raises:
            PhotosAPIError: If album creation fails
            RateLimitError: If rate limit is exceeded
            ServerError: If server error occurs
        """
        try:
            response = await self.client.post(
                f"{PHOTOS_API_BASE_URL}/albums",
                json={"album": {"title": title}},
                headers=await self._auth_headers(),
            )
        except httpx.RequestError as e:
            logger.warning(f"Network error while creating album '{title}': {e}")
            raise ServerError(f"Network error: {e}") from e

        result = self._parse_json_response(response, f"creating album '{title}'")
        if response.status_code >= 400:
            self._handle_error_response(response.status_code, result, f"creating album '{title}'")

        album = Album(id=result["id"], title=result.get("title", title))
        logger.info(f"Created album '{title}' with ID: {album.id}")
        return album

    async def upload_bytes(self, path: Path, mime_type: str) -> str:
        """Upload the contents of a file.

        Args:
            path: Path to the media file
            mime_type: MIME type of the file

        Returns:
            Upload token to pass to ``commit_media_item``

        Raises:
            UploadTransportError: If the file can't be read or the upload fails
            RateLimitError: If rate limit is exceeded
            ServerError: If server error occurs
        """
        try:
            # Read off the event loop; large videos take a while
            content = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise UploadTransportError(f"Cannot read {path}: {e}") from e

        headers = await self._auth_headers()
        headers.update(
            {
                "Content-Type": "application/octet-stream",
                "X-Goog-Upload-Content-Type": mime_type,
                "X-Goog-Upload-File-Name": path.name,
                "X-Goog-Upload-Protocol": "raw",
            }
        )

        try:
            response = await self.client.post(
                f"{PHOTOS_API_BASE_URL}/uploads", content=content, headers=headers
            )
        except httpx.RequestError as e:
            raise ServerError(f"Network error while uploading {path.name}: {e}") from e

        if response.status_code >= 400:
            context = f"uploading {path.name}"
            result = self._parse_json_response(response, context, strict=False)
            self._handle_error_response(
                response.status_code, result, context, default_error=UploadTransportError
            )

        upload_token = response.text.strip()
        if not upload_token:
            raise UploadTransportError(f"No upload token returned for {path.name}")

        logger.debug(f"Uploaded {path.name} ({len(content)} bytes)")
        return upload_token

    async def commit_media_item(self, album_id: str, file_name: str, upload_token: str) -> str:
        """Create a media item from an upload token inside an album.

        Args:
            album_id: Album to add the item to
            file_name: File name shown for the item
            upload_token: Token returned by ``upload_bytes``

        Returns:
            Media item ID

        Raises:
            CommitError: If the item can't be created
            RateLimitError: If rate limit is exceeded
            ServerError: If server error occurs
        """
        body = {
            "albumId": album_id,
            "newMediaItems": [
                {
                    "simpleMediaItem": {
                        "fileName": file_name,
                        "uploadToken": upload_token,
                    }
                }
            ],
        }
        context = f"creating media item {file_name}"

        try:
            response = await self.client.post(
                f"{PHOTOS_API_BASE_URL}/mediaItems:batchCreate",
                json=body,
                headers=await self._auth_headers(),
            )
        except httpx.RequestError as e:
            raise ServerError(f"Network error while {context}: {e}") from e

        result = self._parse_json_response(response, context)
        if response.status_code >= 400:
            self._handle_error_response(
                response.status_code, result, context, default_error=CommitError
            )

        item_results = result.get("newMediaItemResults", [])
        if not item_results:
            raise CommitError(f"Empty response while {context}")

        status = item_results[0].get("status", {})
        # Success is reported with code 0 or no code at all
        if status.get("code", 0) != 0:
            raise CommitError(
                f"Failed {context}: {status.get('message', 'unknown error')}"
            )

        media_item_id = item_results[0].get("mediaItem", {}).get("id", "")
        logger.debug(f"Created media item {media_item_id} in album {album_id}")
        return media_item_id

    def _parse_json_response(
        self, response: httpx.Response, context: str, strict: bool = True
    ) -> dict[str, Any]:
        """Parse JSON response, handling non-JSON responses gracefully.

        Args:
            response: The httpx Response object
            context: Description of what operation was attempted
            strict: Raise on invalid JSON; otherwise return an empty dict

        Returns:
            Parsed JSON as a dictionary

        Raises:
            ServerError: If response is 5xx with non-JSON body
            PhotosAPIError: If response has invalid JSON for non-5xx status
        """
        try:
            return response.json()
        except ValueError:
            # Non-JSON response (e.g., HTML error page during outages)
            if response.status_code >= 500:
                logger.warning(f"Server returned non-JSON response while {context}")
                raise ServerError(
                    f"Server error {response.status_code}: {response.text[:200]}"
                )
            if not strict:
                return {"error": {"message": response.text[:200]}}
            raise PhotosAPIError(
                f"Invalid API response while {context}: {response.text[:200]}"
            )

    def _handle_error_response(
        self,
        status_code: int,
        result: dict[str, Any],
        context: str,
        default_error: type[PhotosAPIError] = PhotosAPIError,
    ) -> None:
        """Handle error responses from the Library API.

        Args:
            status_code: HTTP status code
            result: Response JSON body
            context: Description of what operation failed
            default_error: Exception type for errors that aren't transient

        Raises:
            RemoteAuthError: If the credentials are rejected
            RateLimitError: If rate limit is exceeded
            ServerError: If server error occurs
            PhotosAPIError: For other API errors
        """
        error = result.get("error", {})
        if not isinstance(error, dict):
            error = {"message": str(error)}
        error_message = error.get("message", str(result))
        error_status = error.get("status", "")

        if status_code in (401, 403) or error_status in ("UNAUTHENTICATED", "PERMISSION_DENIED"):
            logger.error(f"Authorization failed while {context}")
            raise RemoteAuthError(f"Google Photos rejected the credentials: {error_message}")

        if status_code == 429 or error_status == "RESOURCE_EXHAUSTED":
            logger.warning(f"Rate limit exceeded while {context}")
            raise RateLimitError(f"Google Photos API rate limit exceeded: {error_message}")

        if status_code >= 500:
            logger.warning(f"Server error while {context}")
            raise ServerError(f"Google Photos API server error: {error_message}")

        error_msg = f"Google Photos API error while {context}: {error_message}"
        logger.error(error_msg)
        raise default_error(error_msg)
