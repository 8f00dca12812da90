# cloudtunes/services/dropbox/auth.py
"""
Dropbox request signing and credential persistence.

Requests to the v1 API are signed with OAuth 1.0 PLAINTEXT: the signature is
just the app secret and the token secret joined by '&'. The interactive flow
that obtains the token pair lives outside this package; it hands its result
to DropboxService.authentication_finished, which saves it here.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from cloudtunes.core.config import Settings
from cloudtunes.schemas.dropbox import DropboxCredentials

logger = logging.getLogger(__name__)


class DropboxAuthenticator:
    """Builds the Authorization header for signed Dropbox requests."""

    def __init__(self, app_key: str, app_secret: str):
        self.app_key = app_key
        self.app_secret = app_secret

    @classmethod
    def from_settings(cls, settings: Settings) -> "DropboxAuthenticator":
        return cls(settings.DROPBOX_APP_KEY, settings.DROPBOX_APP_SECRET)

    def generate_authorisation_header(self, credentials: DropboxCredentials) -> str:
        """
        Return the header value for the given credentials.

        Returns an empty string when there is no access token; the request is
        then rejected by Dropbox and surfaces as a DropboxAuthError.
        """
        if not credentials.is_authenticated:
            return ""

        signature = quote(f"{self.app_secret}&{credentials.access_token_secret}", safe="")
        params = [
            ("oauth_version", "1.0"),
            ("oauth_signature_method", "PLAINTEXT"),
            ("oauth_consumer_key", self.app_key),
            ("oauth_token", credentials.access_token),
            ("oauth_signature", signature),
        ]
        return "OAuth " + ", ".join(f'{key}="{value}"' for key, value in params)


class CredentialStore:
    """JSON file holding the token pair and account name between runs."""

    def __init__(self, path: Path):
        self.path = Path(path)

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialStore":
        return cls(settings.credentials_path)

    def load(self) -> DropboxCredentials:
        if not self.path.exists():
            return DropboxCredentials()
        try:
            with self.path.open("r") as f:
                data = json.load(f)
            return DropboxCredentials(
                access_token=data.get("access_token", ""),
                access_token_secret=data.get("access_token_secret", ""),
                account_name=data.get("name", ""),
            )
        except (OSError, ValueError, AttributeError) as e:
            logger.error(f"Error loading Dropbox credentials from {self.path}: {e}")
            return DropboxCredentials()

    def save(self, credentials: DropboxCredentials):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "access_token": credentials.access_token,
            "access_token_secret": credentials.access_token_secret,
            "name": credentials.account_name,
        }
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            json.dump(data, f)
        logger.info(f"Saved Dropbox credentials for '{credentials.account_name}'")

    def clear(self):
        if self.path.exists():
            self.path.unlink()
            logger.info("Cleared stored Dropbox credentials")


def load_credentials(settings: Settings, store: Optional[CredentialStore] = None) -> DropboxCredentials:
    """Environment-provided tokens win over the stored ones."""
    if settings.DROPBOX_ACCESS_TOKEN:
        return DropboxCredentials(
            access_token=settings.DROPBOX_ACCESS_TOKEN,
            access_token_secret=settings.DROPBOX_ACCESS_TOKEN_SECRET,
            account_name=settings.DROPBOX_ACCOUNT_NAME,
        )
    if store is None:
        return DropboxCredentials()
    return store.load()
