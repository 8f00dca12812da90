from pathlib import PurePosixPath
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


URL_SCHEME = "dropbox"


class DropboxCredentials(BaseModel):
    """Access token pair for one Dropbox account. Empty strings mean unauthenticated."""
    access_token: str = ""
    access_token_secret: str = ""
    account_name: str = ""

    model_config = ConfigDict(frozen=True)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)


class DirectoryEntry(BaseModel):
    """One item of a metadata listing's ``contents`` array."""
    path: str
    is_directory: bool = Field(default=False, alias="is_dir")
    mime_type: str = ""
    size_bytes: int = Field(default=0, alias="bytes")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("mime_type", mode="before")
    @classmethod
    def _null_mime_type(cls, value):
        # folders and some files come back with "mime_type": null
        return "" if value is None else value

    @property
    def filename(self) -> str:
        return PurePosixPath(self.path).name

    @property
    def song_url(self) -> str:
        return f"{URL_SCHEME}:{self.path}"


class ResolvedContent(BaseModel):
    source_url: str
    display_name: str
    size_bytes: int
    mime_type: str
    song_url: str


class TagReadResult(BaseModel):
    success: bool
    filename: str
    tags: Dict[str, List[str]] = {}
    error: Optional[str] = None
