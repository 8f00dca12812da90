from cloudtunes.services.dropbox.auth import CredentialStore, DropboxAuthenticator, load_credentials
from cloudtunes.services.dropbox.client import DropboxClient
from cloudtunes.services.dropbox.mime import MimeFilter, SUPPORTED_MIME_TYPES
from cloudtunes.services.dropbox.service import DropboxService, PendingRequest, RequestKind
from cloudtunes.services.dropbox.url_handler import DropboxUrlHandler, LoadResult, LoadResultType

__all__ = [
    "CredentialStore",
    "DropboxAuthenticator",
    "DropboxClient",
    "DropboxService",
    "DropboxUrlHandler",
    "LoadResult",
    "LoadResultType",
    "MimeFilter",
    "PendingRequest",
    "RequestKind",
    "SUPPORTED_MIME_TYPES",
    "load_credentials",
]
