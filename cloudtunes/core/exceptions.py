from typing import Optional


class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    pass

class DropboxServiceError(BaseServiceError):
    """Base exception for Dropbox-specific errors."""
    pass

class AuthRequiredError(DropboxServiceError):
    """Raised when no Dropbox credentials are stored and the user must authorize."""
    pass

class DropboxTransportError(DropboxServiceError):
    """Raised when a Dropbox request fails at the network or HTTP level."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

class DropboxAuthError(DropboxTransportError):
    """Raised when Dropbox rejects the request signature (HTTP 401)."""
    pass

class MalformedResponseError(DropboxServiceError):
    """Raised when a Dropbox response is not shaped as expected."""
    pass

class TagReadError(DropboxServiceError):
    """Raised when tags could not be read from a remote file."""
    pass
