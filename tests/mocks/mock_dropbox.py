import asyncio
import copy
from typing import Any, Dict, List, Optional

from cloudtunes.core.exceptions import DropboxTransportError
from cloudtunes.schemas.dropbox import TagReadResult
from cloudtunes.services.dropbox.client import build_endpoint_url


METADATA_ENDPOINT = "https://api.test/1/metadata/dropbox/"
MEDIA_ENDPOINT = "https://api.test/1/media/dropbox/"


class MockDropboxClient:
    """
    In-memory stand-in for DropboxClient.

    Replies are registered per remote path. A reply may be a dict, an
    exception to raise, or gated behind an asyncio.Event so tests control
    completion order.
    """

    def __init__(self):
        self.listings: Dict[str, Any] = {}
        self.media: Dict[str, Any] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self.get_calls: List[Dict[str, Any]] = []
        self.post_calls: List[Dict[str, Any]] = []

    def add_listing(self, path: str, contents: Optional[List[Dict[str, Any]]] = None, response=None):
        self.listings[self._url(METADATA_ENDPOINT, path)] = (
            response if response is not None else {"contents": contents or []}
        )

    def add_media(self, path: str, url: Optional[str] = None, response=None):
        self.media[self._url(MEDIA_ENDPOINT, path)] = (
            response if response is not None else {"url": url, "expires": "Fri, 16 Sep 2011 01:01:25 +0000"}
        )

    def gate(self, path: str) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[self._url(MEDIA_ENDPOINT, path)] = event
        return event

    @property
    def listed_paths(self) -> List[str]:
        return [call["url"][len(METADATA_ENDPOINT) - 1:] for call in self.get_calls]

    @property
    def resolved_paths(self) -> List[str]:
        return [call["url"][len(MEDIA_ENDPOINT) - 1:] for call in self.post_calls]

    async def get_json(self, url: str, headers: Dict[str, str]) -> Dict[str, Any]:
        self.get_calls.append({"url": url, "headers": dict(headers)})
        await asyncio.sleep(0)
        return self._reply(self.listings, url)

    async def post_json(self, url: str, headers: Dict[str, str], data: bytes = b"") -> Dict[str, Any]:
        self.post_calls.append({"url": url, "headers": dict(headers), "data": data})
        gate = self.gates.get(url)
        if gate is not None:
            await gate.wait()
        else:
            await asyncio.sleep(0)
        return self._reply(self.media, url)

    async def wait_for_posts(self, count: int, timeout: float = 2.0):
        async def _wait():
            while len(self.post_calls) < count:
                await asyncio.sleep(0.01)
        await asyncio.wait_for(_wait(), timeout)

    @staticmethod
    def _url(endpoint: str, path: str) -> str:
        return build_endpoint_url(endpoint, path)

    @staticmethod
    def _reply(replies: Dict[str, Any], url: str) -> Dict[str, Any]:
        if url not in replies:
            raise DropboxTransportError(f"404 for {url}", status=404)
        reply = replies[url]
        if isinstance(reply, Exception):
            raise reply
        return copy.deepcopy(reply)


class RecordingTagReader:
    """Records every tag read and answers with a canned result."""

    def __init__(self, success: bool = True, error: Optional[Exception] = None):
        self.calls: List[Dict[str, Any]] = []
        self.success = success
        self.error = error

    async def read_cloud_file(self, url: str, filename: str, size: int, mime_type: str) -> TagReadResult:
        self.calls.append({"url": url, "filename": filename, "size": size, "mime_type": mime_type})
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        if not self.success:
            return TagReadResult(success=False, filename=filename, error="Unrecognised audio format")
        return TagReadResult(success=True, filename=filename, tags={"title": [filename]})
