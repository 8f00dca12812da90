from typing import Iterable, Optional

from cloudtunes.core.config import Settings

SUPPORTED_MIME_TYPES = ("audio/ogg", "audio/mpeg")


class MimeFilter:
    """Allow-list of MIME types the player can stream."""

    def __init__(self, allowed: Optional[Iterable[str]] = None):
        self.allowed = frozenset(SUPPORTED_MIME_TYPES if allowed is None else allowed)

    @classmethod
    def from_settings(cls, settings: Settings) -> "MimeFilter":
        return cls(settings.supported_mime_types or SUPPORTED_MIME_TYPES)

    def accepts(self, mime_type: Optional[str]) -> bool:
        return mime_type in self.allowed
