# cloudtunes/services/dropbox/client.py
"""
Thin asynchronous transport for the Dropbox v1 REST API.

Every call opens its own aiohttp session, so the client can be awaited from
any event loop (including the private loop used by the blocking resolver).
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import aiohttp

from cloudtunes.core.exceptions import (
    DropboxAuthError,
    DropboxTransportError,
    MalformedResponseError,
)

logger = logging.getLogger(__name__)


def build_endpoint_url(endpoint: str, path: str) -> str:
    """Join an API endpoint and a remote path, e.g. ('.../dropbox/', '/Music/a b.mp3')."""
    return endpoint.rstrip("/") + "/" + quote(path.lstrip("/"), safe="/")


class DropboxClient:
    """Issues authenticated GET/POST requests and decodes JSON object replies."""

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    async def get_json(self, url: str, headers: Dict[str, str]) -> Dict[str, Any]:
        return await self._request("GET", url, headers)

    async def post_json(self, url: str, headers: Dict[str, str], data: bytes = b"") -> Dict[str, Any]:
        return await self._request("POST", url, headers, data=data)

    async def _request(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        data: Optional[bytes] = None
    ) -> Dict[str, Any]:
        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(method, url, headers=headers, data=data) as response:
                    text = await response.text()
                    if response.status == 401:
                        raise DropboxAuthError(f"{method} {url} unauthorized: {text}", status=401)
                    if response.status != 200:
                        raise DropboxTransportError(
                            f"{method} {url} failed with status {response.status}: {text}",
                            status=response.status
                        )
        except aiohttp.ClientError as e:
            raise DropboxTransportError(f"{method} {url} failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise DropboxTransportError(f"{method} {url} timed out after {self.timeout}s") from e

        try:
            payload = json.loads(text)
        except ValueError as e:
            raise MalformedResponseError(f"{method} {url} returned invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise MalformedResponseError(f"{method} {url} returned {type(payload).__name__}, expected an object")
        return payload
