# cloudtunes/services/tag_reader.py
"""
Tag extraction for remote audio files.

The Dropbox service hands every resolved file to a TagReaderClient and only
logs what comes back. MutagenTagReader reads the head of the stream with an
HTTP Range request, which is where ID3v2 tags and Vorbis comments live.
"""

import asyncio
import io
import logging
from abc import ABC, abstractmethod
from typing import Dict, List

import aiohttp
import mutagen

from cloudtunes.schemas.dropbox import TagReadResult

logger = logging.getLogger(__name__)


class TagReaderClient(ABC):

    @abstractmethod
    async def read_cloud_file(self, url: str, filename: str, size: int, mime_type: str) -> TagReadResult:
        """Read tags from the file behind ``url``"""
        pass


class MutagenTagReader(TagReaderClient):

    def __init__(self, max_bytes: int = 256 * 1024, timeout: float = 30.0):
        self.max_bytes = max_bytes
        self.timeout = timeout

    async def read_cloud_file(self, url: str, filename: str, size: int, mime_type: str) -> TagReadResult:
        length = min(size, self.max_bytes) if size > 0 else self.max_bytes
        headers = {"Range": f"bytes=0-{length - 1}"}

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, headers=headers) as response:
                    if response.status not in (200, 206):
                        return TagReadResult(
                            success=False,
                            filename=filename,
                            error=f"HTTP {response.status} fetching {filename}"
                        )
                    data = await self._read_head(response.content, length)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            return TagReadResult(success=False, filename=filename, error=f"Error fetching {filename}: {e}")

        return self.parse_tags(data, filename)

    @staticmethod
    async def _read_head(stream, length: int) -> bytes:
        # StreamReader.read(n) returns what is buffered, possibly fewer than n bytes
        chunks = []
        remaining = length
        while remaining > 0:
            chunk = await stream.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def parse_tags(self, data: bytes, filename: str) -> TagReadResult:
        fileobj = io.BytesIO(data)
        fileobj.name = filename

        try:
            audio = mutagen.File(fileobj, easy=True)
        except Exception as e:
            # mutagen raises assorted errors on truncated streams, not only MutagenError
            return TagReadResult(success=False, filename=filename, error=f"{type(e).__name__}: {e}")

        if audio is None:
            return TagReadResult(success=False, filename=filename, error="Unrecognised audio format")

        tags: Dict[str, List[str]] = {}
        for key in audio.keys():
            value = audio[key]
            values = value if isinstance(value, list) else [value]
            tags[key] = [str(v) for v in values]

        return TagReadResult(success=True, filename=filename, tags=tags)
