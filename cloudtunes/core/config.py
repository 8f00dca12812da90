# cloudtunes/core/config.py

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


def _parse_csv(value: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


class Settings(BaseSettings):
    """
    Application settings.
    Loads values from environment variables (.env file)
    """
    # Dropbox app (OAuth consumer)
    DROPBOX_APP_KEY: str = ""
    DROPBOX_APP_SECRET: str = ""

    # Dropbox account tokens (optional, normally read from the credentials file)
    DROPBOX_ACCESS_TOKEN: str = ""
    DROPBOX_ACCESS_TOKEN_SECRET: str = ""
    DROPBOX_ACCOUNT_NAME: str = ""
    DROPBOX_CREDENTIALS_FILE: str = ""

    # API endpoints
    DROPBOX_METADATA_ENDPOINT: str = "https://api.dropbox.com/1/metadata/dropbox/"
    DROPBOX_MEDIA_ENDPOINT: str = "https://api.dropbox.com/1/media/dropbox/"

    # Scanning
    DROPBOX_SUPPORTED_MIME_TYPES: str = "audio/ogg,audio/mpeg"
    DROPBOX_MAX_DEPTH: Optional[int] = None  # None = unlimited
    DROPBOX_REQUEST_TIMEOUT: float = 30.0
    DROPBOX_RESOLVE_TIMEOUT: float = 60.0

    # Tag reading
    TAG_READER_MAX_BYTES: int = 256 * 1024

    # Environment
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    model_config = ConfigDict(
        env_file=os.environ.get('ENV_FILE', '.env') if os.path.exists('.env') else None,
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def supported_mime_types(self) -> Tuple[str, ...]:
        return _parse_csv(self.DROPBOX_SUPPORTED_MIME_TYPES)

    @property
    def credentials_path(self) -> Path:
        if self.DROPBOX_CREDENTIALS_FILE:
            return Path(self.DROPBOX_CREDENTIALS_FILE).expanduser()
        return Path.home() / ".config" / "cloudtunes" / "dropbox.json"


@lru_cache()
def get_settings():
    """Cached settings to avoid loading .env file on every lookup"""
    return Settings()

def clear_settings_cache():
    """Clear the settings cache - useful when switching between environments"""
    get_settings.cache_clear()
