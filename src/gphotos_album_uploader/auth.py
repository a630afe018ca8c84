"""OAuth credential loading for the Google Photos Library API."""

import logging
from pathlib import Path

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from gphotos_album_uploader.exceptions import RemoteAuthError

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/photoslibrary.readonly",
    "https://www.googleapis.com/auth/photoslibrary.appendonly",
]


def load_credentials(credentials_file: Path, token_file: Path) -> Credentials:
    """Load cached credentials or run the installed-app OAuth flow.

    A cached token is refreshed when it has expired. When there is no usable
    token, the browser flow is started with the client secrets in
    ``credentials_file``. The resulting token is written to ``token_file``.

    Args:
        credentials_file: OAuth client secrets JSON downloaded from Google Cloud
        token_file: Where the authorized user token is cached

    Returns:
        Valid credentials

    Raises:
        RemoteAuthError: If no valid credentials can be obtained
    """
    credentials: Credentials | None = None

    try:
        if token_file.exists():
            credentials = Credentials.from_authorized_user_file(str(token_file), SCOPES)

        if credentials is not None and credentials.valid:
            return credentials

        if credentials is not None and credentials.expired and credentials.refresh_token:
            logger.info("Refreshing cached access token")
            credentials.refresh(Request())
        else:
            if not credentials_file.exists():
                raise RemoteAuthError(f"Credentials file not found: {credentials_file}")
            logger.info("Starting OAuth flow in the browser")
            flow = InstalledAppFlow.from_client_secrets_file(str(credentials_file), SCOPES)
            credentials = flow.run_local_server(port=0)

        token_file.parent.mkdir(parents=True, exist_ok=True)
        token_file.write_text(credentials.to_json(), encoding="utf-8")
        logger.debug(f"Saved token to {token_file}")
    except (GoogleAuthError, OSError, ValueError) as e:
        raise RemoteAuthError(f"Authentication failed: {e}") from e

    return credentials
