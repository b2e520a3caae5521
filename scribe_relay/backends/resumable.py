"""Resumable, chunked uploads using the tus 1.0.0 protocol over httpx.

WHY: Media files can be hundreds of megabytes. Storage endpoints that
speak tus accept them in fixed-size chunks and let an interrupted
upload continue from the last acknowledged byte instead of starting
over, which matters on flaky connections.

HOW: ResumableUpload creates the upload with POST (sending the first
chunk in the same request), then sends the remaining chunks with PATCH.
After a transient failure it waits for the next delay in the retry
schedule, asks the server for the current offset with HEAD, and
continues from there. Progress is reported after every acknowledged
chunk.

RULES:
- Every request carries ``Tus-Resumable: 1.0.0`` plus the caller's headers
- Metadata values are base64 encoded in ``Upload-Metadata``
- Retried: transport errors, 5xx, 409 and 423; other 4xx fail at once
- The retry counter resets once an attempt made progress
- A HEAD answering 404/410 means the upload is gone: create a new one
"""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import Callable, Dict, Optional, Sequence

import httpx

logger = logging.getLogger(__name__)

TUS_VERSION = "1.0.0"
DEFAULT_CHUNK_SIZE = 6 * 1024 * 1024
DEFAULT_RETRY_DELAYS = (0.0, 3.0, 5.0, 10.0, 20.0)

_OFFSET_CONTENT_TYPE = "application/offset+octet-stream"
_RETRYABLE_CLIENT_STATUSES = (409, 423)

ProgressCallback = Callable[[int, int], None]


class ResumableUploadError(Exception):
    """Raised when the server answers outside the tus protocol."""


def encode_metadata(metadata: Dict[str, str]) -> str:
    """Encode metadata as ``key base64(value)`` pairs joined by commas."""
    return ",".join(
        "{} {}".format(key, base64.b64encode(value.encode("utf-8")).decode("ascii"))
        for key, value in metadata.items()
    )


def _should_retry(exc: Exception) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return not (400 <= status < 500) or status in _RETRYABLE_CLIENT_STATUSES
    return False


class ResumableUpload:
    """One tus upload of an in-memory payload.

    Usage::

        upload = ResumableUpload(client, endpoint, data, metadata={...})
        url = await upload.start()
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        endpoint: str,
        data: bytes,
        headers: Optional[Dict[str, str]] = None,
        metadata: Optional[Dict[str, str]] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        retry_delays: Sequence[float] = DEFAULT_RETRY_DELAYS,
        upload_data_during_creation: bool = True,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        self._client = client
        self._endpoint = endpoint
        self._data = data
        self._headers = dict(headers or {})
        self._metadata = dict(metadata or {})
        self._chunk_size = chunk_size
        self._retry_delays = tuple(retry_delays)
        self._during_creation = upload_data_during_creation
        self._on_progress = on_progress
        self.url: Optional[str] = None
        self.offset = 0

    @property
    def total(self) -> int:
        return len(self._data)

    async def start(self) -> str:
        """Upload the whole payload and return the upload URL.

        Raises:
            httpx.HTTPError: the last transport/status error once the
                retry schedule is exhausted, or a non-retryable one.
            ResumableUploadError: the server broke the protocol.
        """
        attempt = 0
        resuming = False
        while True:
            offset_before = self.offset
            try:
                if self.url is None:
                    await self._create()
                elif resuming:
                    await self._sync_offset()
                while self.offset < self.total:
                    await self._patch_chunk()
                return self.url
            except (httpx.TransportError, httpx.HTTPStatusError) as exc:
                if self.offset > offset_before:
                    attempt = 0
                if attempt >= len(self._retry_delays) or not _should_retry(exc):
                    raise
                delay = self._retry_delays[attempt]
                attempt += 1
                resuming = True
                logger.warning(
                    "Upload to %s failed at byte %d (%s); retry %d in %.0fs",
                    self._endpoint, self.offset, exc, attempt, delay,
                )
                await asyncio.sleep(delay)

    def _request_headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {"Tus-Resumable": TUS_VERSION}
        headers.update(self._headers)
        headers.update(extra or {})
        return headers

    def _next_chunk(self) -> bytes:
        return self._data[self.offset:self.offset + self._chunk_size]

    def _advance(self, response: httpx.Response) -> None:
        raw = response.headers.get("Upload-Offset")
        if raw is None:
            raise ResumableUploadError("Response is missing the Upload-Offset header")
        try:
            offset = int(raw)
        except ValueError:
            raise ResumableUploadError("Invalid Upload-Offset header: {!r}".format(raw)) from None
        self.offset = offset
        if self._on_progress is not None:
            self._on_progress(self.offset, self.total)

    async def _create(self) -> None:
        headers = self._request_headers({"Upload-Length": str(self.total)})
        if self._metadata:
            headers["Upload-Metadata"] = encode_metadata(self._metadata)

        content = b""
        if self._during_creation and self.total:
            content = self._next_chunk()
            headers["Content-Type"] = _OFFSET_CONTENT_TYPE

        response = await self._client.post(self._endpoint, headers=headers, content=content)
        response.raise_for_status()

        location = response.headers.get("Location")
        if not location:
            raise ResumableUploadError("Upload creation response has no Location header")
        self.url = str(httpx.URL(self._endpoint).join(location))
        self.offset = 0
        if content and "Upload-Offset" in response.headers:
            self._advance(response)
        logger.debug("Created upload %s (%d bytes)", self.url, self.total)

    async def _sync_offset(self) -> None:
        response = await self._client.head(self.url, headers=self._request_headers())
        if response.status_code in (404, 410):
            logger.debug("Upload %s no longer exists; starting over", self.url)
            self.url = None
            self.offset = 0
            await self._create()
            return
        response.raise_for_status()
        self._advance(response)

    async def _patch_chunk(self) -> None:
        chunk = self._next_chunk()
        headers = self._request_headers({
            "Upload-Offset": str(self.offset),
            "Content-Type": _OFFSET_CONTENT_TYPE,
        })
        response = await self._client.patch(self.url, headers=headers, content=chunk)
        response.raise_for_status()
        self._advance(response)
