# cloudtunes/services/dropbox/service.py
"""
Dropbox music source.

Walks the account's folder tree through the metadata endpoint and turns every
supported audio file into a short-lived streaming URL plus a tag read.

Scheduling model:
- connect() lists the root. Each listing reply fans out one listing request
  per sub-folder and one resolution request per supported file.
- Every request runs as its own asyncio task and is tracked by a
  PendingRequest record until it finishes. Nothing waits for the tree as a
  whole; the scan is over when no request is outstanding.
- Failures stay with the request that hit them. They are logged at DEBUG,
  counted in ``error_counts`` and passed to ``on_failure``; the rest of the
  tree carries on.
- resolve_sync() is the only blocking call. It parks the calling thread on
  the future of its own request while the event loop keeps running.
"""

import asyncio
import concurrent.futures
import itertools
import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Coroutine, Dict, Optional

from pydantic import ValidationError

from cloudtunes.core.config import Settings, get_settings
from cloudtunes.core.exceptions import (
    AuthRequiredError,
    DropboxServiceError,
    DropboxTransportError,
    MalformedResponseError,
    TagReadError,
)
from cloudtunes.schemas.dropbox import (
    URL_SCHEME,
    DirectoryEntry,
    DropboxCredentials,
    ResolvedContent,
)
from cloudtunes.services.dropbox.auth import CredentialStore, DropboxAuthenticator
from cloudtunes.services.dropbox.client import DropboxClient, build_endpoint_url
from cloudtunes.services.dropbox.mime import MimeFilter
from cloudtunes.services.tag_reader import TagReaderClient

logger = logging.getLogger(__name__)


class RequestKind(Enum):
    LIST_DIRECTORY = "list_directory"
    RESOLVE_CONTENT = "resolve_content"
    READ_TAGS = "read_tags"


@dataclass
class PendingRequest:
    """
    One in-flight request and the context its completion needs.

    Headers are captured when the request is issued, so a credential change
    while it is in flight does not affect it.
    """
    request_id: int
    kind: RequestKind
    path: str
    url: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    entry: Optional[DirectoryEntry] = None
    content: Optional[ResolvedContent] = None
    depth: int = 0
    task: Optional["asyncio.Task[None]"] = None


class DropboxService:
    SERVICE_NAME = "Dropbox"
    SERVICE_ID = "dropbox"

    def __init__(
        self,
        credentials: DropboxCredentials,
        tag_reader: TagReaderClient,
        settings: Optional[Settings] = None,
        client: Optional[DropboxClient] = None,
        authenticator: Optional[DropboxAuthenticator] = None,
        credential_store: Optional[CredentialStore] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        on_resolved: Optional[Callable[[ResolvedContent], None]] = None,
        on_connected: Optional[Callable[[DropboxCredentials], None]] = None,
        on_failure: Optional[Callable[[PendingRequest, Exception], None]] = None,
    ):
        self.settings = settings or get_settings()
        self.credentials = credentials
        self.tag_reader = tag_reader
        self.client = client or DropboxClient(timeout=self.settings.DROPBOX_REQUEST_TIMEOUT)
        self.authenticator = authenticator or DropboxAuthenticator.from_settings(self.settings)
        self.credential_store = credential_store
        self.mime_filter = MimeFilter.from_settings(self.settings)
        self.max_depth = self.settings.DROPBOX_MAX_DEPTH

        self.on_resolved = on_resolved
        self.on_connected = on_connected
        self.on_failure = on_failure

        self.error_counts: Counter = Counter()
        self._loop = loop
        self._pending: Dict[int, PendingRequest] = {}
        self._request_ids = itertools.count(1)

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def has_credentials(self) -> bool:
        return self.credentials.is_authenticated

    def connect(self) -> PendingRequest:
        """
        Start a scan from the root folder.

        Must be called from a running event loop. Raises AuthRequiredError,
        without touching the network, when no account is linked.
        """
        if not self.has_credentials():
            logger.info("No Dropbox credentials stored, authorization required")
            raise AuthRequiredError("Dropbox account is not linked")
        return self.list_directory("")

    def authentication_finished(self, access_token: str, access_token_secret: str, name: str) -> PendingRequest:
        """Store the token pair from a completed authorization and scan the account."""
        self.credentials = DropboxCredentials(
            access_token=access_token,
            access_token_secret=access_token_secret,
            account_name=name,
        )
        if self.credential_store is not None:
            self.credential_store.save(self.credentials)

        logger.info(f"Connected to Dropbox account '{name}'")
        if self.on_connected is not None:
            self.on_connected(self.credentials)

        return self.list_directory("")

    def generate_authorisation_header(self) -> str:
        return self.authenticator.generate_authorisation_header(self.credentials)

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": self.generate_authorisation_header()}

    # ------------------------------------------------------------------
    # Directory walk
    # ------------------------------------------------------------------

    def list_directory(self, path: str, depth: int = 0) -> PendingRequest:
        pending = PendingRequest(
            request_id=next(self._request_ids),
            kind=RequestKind.LIST_DIRECTORY,
            path=path,
            url=build_endpoint_url(self.settings.DROPBOX_METADATA_ENDPOINT, path),
            headers=self._auth_headers(),
            depth=depth,
        )
        return self._spawn(pending, self._list_directory_finished)

    async def _list_directory_finished(self, pending: PendingRequest):
        try:
            response = await self.client.get_json(pending.url, pending.headers)
        except DropboxServiceError as e:
            self._record_failure(pending, e)
            return

        contents = response.get("contents")
        if not isinstance(contents, list):
            self._record_failure(
                pending, MalformedResponseError(f"Listing of '{pending.path}' has no contents")
            )
            return

        for item in contents:
            try:
                entry = DirectoryEntry.model_validate(item)
            except ValidationError as e:
                self._record_failure(
                    pending, MalformedResponseError(f"Bad entry in listing of '{pending.path}': {e}")
                )
                continue

            if entry.is_directory:
                if self.max_depth is not None and pending.depth >= self.max_depth:
                    logger.debug(f"Not descending into {entry.path}: depth limit {self.max_depth}")
                    continue
                self.list_directory(entry.path, depth=pending.depth + 1)
            elif self.mime_filter.accepts(entry.mime_type):
                logger.debug(f"Found: {entry.path}")
                self.resolve_async(entry)

    # ------------------------------------------------------------------
    # Content resolution
    # ------------------------------------------------------------------

    def resolve_async(self, entry: DirectoryEntry) -> PendingRequest:
        pending = PendingRequest(
            request_id=next(self._request_ids),
            kind=RequestKind.RESOLVE_CONTENT,
            path=entry.path,
            url=build_endpoint_url(self.settings.DROPBOX_MEDIA_ENDPOINT, entry.path),
            headers=self._auth_headers(),
            entry=entry,
        )
        return self._spawn(pending, self._resolve_finished)

    async def _resolve_finished(self, pending: PendingRequest):
        entry = pending.entry
        try:
            url = await self._fetch_content_url(pending.url, pending.headers)
        except DropboxServiceError as e:
            self._record_failure(pending, e)
            return

        content = ResolvedContent(
            source_url=url,
            display_name=entry.filename,
            size_bytes=entry.size_bytes,
            mime_type=entry.mime_type,
            song_url=entry.song_url,
        )
        logger.debug(f"Resolved {content.song_url} -> {url} ({content.size_bytes} bytes, {content.mime_type})")

        if self.on_resolved is not None:
            self.on_resolved(content)
        self.dispatch(content)

    async def fetch_content_url(self, path: str) -> str:
        """Request a direct download URL for ``path`` and wait for that reply only."""
        url = build_endpoint_url(self.settings.DROPBOX_MEDIA_ENDPOINT, path)
        return await self._fetch_content_url(url, self._auth_headers())

    async def _fetch_content_url(self, url: str, headers: Dict[str, str]) -> str:
        response = await self.client.post_json(url, headers, data=b"")
        link = response.get("url")
        if not isinstance(link, str) or not link:
            raise MalformedResponseError(f"No url in media response for {url}")
        return link

    def resolve_sync(self, song_url: str, timeout: Optional[float] = None) -> str:
        """
        Blocking resolution for callers outside the event loop, e.g. playback.

        ``song_url`` is either ``dropbox:/path`` or a bare remote path. The
        request runs on the service's loop while this thread waits for its
        result. Errors are raised to the caller.
        """
        path = self.path_from_song_url(song_url)
        if timeout is None:
            timeout = self.settings.DROPBOX_RESOLVE_TIMEOUT

        loop = self._loop
        if loop is None or not loop.is_running() or loop.is_closed():
            try:
                return asyncio.run(asyncio.wait_for(self.fetch_content_url(path), timeout))
            except asyncio.TimeoutError as e:
                raise DropboxTransportError(f"Timed out resolving {song_url} after {timeout}s") from e

        if self._running_loop() is loop:
            raise RuntimeError(
                "resolve_sync() would block the event loop; await fetch_content_url() instead"
            )

        future = asyncio.run_coroutine_threadsafe(self.fetch_content_url(path), loop)
        try:
            return future.result(timeout)
        except concurrent.futures.TimeoutError as e:
            future.cancel()
            raise DropboxTransportError(f"Timed out resolving {song_url} after {timeout}s") from e

    @staticmethod
    def path_from_song_url(song_url: str) -> str:
        # paths can contain '?' and '#'
        prefix = f"{URL_SCHEME}:"
        if song_url.startswith(prefix):
            return song_url[len(prefix):]
        if song_url.startswith("/") or not song_url:
            return song_url
        raise ValueError(f"Not a {URL_SCHEME} URL: {song_url}")

    # ------------------------------------------------------------------
    # Tag reading
    # ------------------------------------------------------------------

    def dispatch(self, content: ResolvedContent) -> PendingRequest:
        pending = PendingRequest(
            request_id=next(self._request_ids),
            kind=RequestKind.READ_TAGS,
            path=content.song_url,
            url=content.source_url,
            content=content,
        )
        return self._spawn(pending, self._read_tags_finished)

    async def _read_tags_finished(self, pending: PendingRequest):
        content = pending.content
        try:
            result = await self.tag_reader.read_cloud_file(
                content.source_url,
                content.display_name,
                content.size_bytes,
                content.mime_type,
            )
        except Exception as e:
            self._record_failure(pending, TagReadError(f"Tag reader raised for {content.display_name}: {e}"))
            return

        if result.success:
            logger.debug(f"Tags for {content.display_name}: {result.tags}")
        else:
            self._record_failure(pending, TagReadError(result.error or f"No tags for {content.display_name}"))

    # ------------------------------------------------------------------
    # Pending request bookkeeping
    # ------------------------------------------------------------------

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def wait_for_pending(self):
        """Wait until every request, including ones spawned meanwhile, has finished."""
        while self._pending:
            tasks = [p.task for p in list(self._pending.values()) if p.task is not None]
            await asyncio.gather(*tasks, return_exceptions=True)

    def _spawn(
        self,
        pending: PendingRequest,
        handler: Callable[[PendingRequest], Coroutine[Any, Any, None]]
    ) -> PendingRequest:
        loop = asyncio.get_running_loop()
        self._loop = loop

        task = loop.create_task(handler(pending))
        pending.task = task
        self._pending[pending.request_id] = pending
        task.add_done_callback(lambda t: self._release(pending, t))
        return pending

    def _release(self, pending: PendingRequest, task: "asyncio.Task[None]"):
        self._pending.pop(pending.request_id, None)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Unexpected error in {pending.kind.value} for '{pending.path}': {error!r}")
            self._record_failure(pending, error)

    def _record_failure(self, pending: PendingRequest, error: Exception):
        self.error_counts[type(error).__name__] += 1
        logger.debug(f"{pending.kind.value} for '{pending.path}' abandoned: {error}")
        if self.on_failure is not None:
            try:
                self.on_failure(pending, error)
            except Exception as e:
                logger.error(f"on_failure hook raised: {e}")

    @staticmethod
    def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None
