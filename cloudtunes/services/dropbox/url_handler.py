# cloudtunes/services/dropbox/url_handler.py
"""
Resolves ``dropbox:`` song URLs at play time.

Discovery hands the player ``dropbox:/path`` identifiers; the direct links
expire, so the player asks for a fresh one right before streaming.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from cloudtunes.core.exceptions import DropboxServiceError
from cloudtunes.schemas.dropbox import URL_SCHEME

logger = logging.getLogger(__name__)


class LoadResultType(Enum):
    TRACK_AVAILABLE = "track_available"
    ERROR = "error"


@dataclass
class LoadResult:
    original_url: str
    type: LoadResultType
    media_url: Optional[str] = None
    error: Optional[str] = None


class DropboxUrlHandler:
    scheme = URL_SCHEME

    def __init__(self, service):
        self.service = service

    def start_loading(self, url: str, timeout: Optional[float] = None) -> LoadResult:
        try:
            media_url = self.service.resolve_sync(url, timeout=timeout)
        except (DropboxServiceError, ValueError, RuntimeError) as e:
            # RuntimeError: called on the event loop thread, where blocking is refused
            logger.warning(f"Could not resolve {url}: {e}")
            return LoadResult(original_url=url, type=LoadResultType.ERROR, error=str(e))

        return LoadResult(original_url=url, type=LoadResultType.TRACK_AVAILABLE, media_url=media_url)
