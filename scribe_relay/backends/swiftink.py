"""Swiftink transcription backend (selector ``swiftink``).

WHY: Swiftink transcribes media that already sits in its cloud storage
and, once fully complete, adds a summary, an outline and keywords on
top of the timed transcript.

HOW: Four steps, each a method:
  1. session  — the SessionProvider must return a logged-in user
  2. upload   — tus resumable upload into the user's folder of the
                swiftink-upload bucket, progress shown on the job notice
  3. create   — POST /transcripts/ with the public object URL
  4. poll     — GET /transcripts/{id} every poll interval until the
                status is in the completed set, failed, or the cap is hit
The completed transcript is rendered with format_transcript_result().

RULES:
- No session → AuthenticationError before any request
- Object names: runs of characters outside [A-Za-z0-9.] become "-"
- Completed set is {"transcribed", "complete"}, narrowed to {"complete"}
  when summary, outline or keywords are requested (they only exist then)
- "failed" / "validation_failed" end the job with a provider message
- language is omitted from the create request when set to "auto"
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, FrozenSet, Optional, Sequence

import httpx

from scribe_relay.auth import Session
from scribe_relay.backends.base import TranscriptionBackend
from scribe_relay.backends.resumable import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_RETRY_DELAYS,
    ResumableUpload,
    ResumableUploadError,
)
from scribe_relay.backends.schemas import SWIFTINK_TRANSCRIPT_SCHEMA, decode_json
from scribe_relay.config import SWIFTINK_API_BASE, SWIFTINK_BUCKET, SWIFTINK_STORAGE_URL
from scribe_relay.core.models import Job, MediaFile, TranscriptResult
from scribe_relay.errors import (
    AuthenticationError,
    JobCreationError,
    JobFailedError,
    UploadError,
)
from scribe_relay.formatters import FormatOptions, format_transcript_result
from scribe_relay.notices import NoticeHandle

logger = logging.getLogger(__name__)

NO_SESSION_MESSAGE = "No user session found. Please log in and try again."

COMPLETED_STATUSES: FrozenSet[str] = frozenset({"transcribed", "complete"})
INSIGHT_COMPLETED_STATUSES: FrozenSet[str] = frozenset({"complete"})

FAILURE_MESSAGES: Dict[str, str] = {
    "failed": "Swiftink failed to transcribe the file",
    "validation_failed": "Swiftink has detected an invalid file",
}

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9.]+")


def sanitize_object_name(filename: str) -> str:
    """Make a storage-safe object name from a media filename.

    >>> sanitize_object_name("My Talk (final).mp3")
    'My-Talk-final-.mp3'
    """
    return _UNSAFE_NAME_CHARS.sub("-", filename)


class SwiftinkBackend(TranscriptionBackend):
    """Upload to Swiftink storage, then create and poll a transcript."""

    key = "swiftink"
    display_name = "Swiftink"

    def __init__(
        self,
        *args,
        api_base: Optional[str] = None,
        storage_url: Optional[str] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        retry_delays: Sequence[float] = DEFAULT_RETRY_DELAYS,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._api_base = (api_base or SWIFTINK_API_BASE).rstrip("/")
        self._storage_url = (storage_url or SWIFTINK_STORAGE_URL).rstrip("/")
        self._chunk_size = chunk_size
        self._retry_delays = retry_delays
        self._headers: Dict[str, str] = {}
        self._notice: Optional[NoticeHandle] = None
        self._display_name = ""

    @property
    def completed_statuses(self) -> FrozenSet[str]:
        if self.settings.wants_insights:
            return INSIGHT_COMPLETED_STATUSES
        return COMPLETED_STATUSES

    def object_url(self, session: Session, object_name: str) -> str:
        return "{}/storage/v1/object/public/{}/{}/{}".format(
            self._storage_url, SWIFTINK_BUCKET, session.user_id, object_name
        )

    async def transcribe(self, media: MediaFile) -> str:
        session = None
        if self.session_provider is not None:
            session = await self.session_provider.get_session()
        if session is None:
            raise AuthenticationError(NO_SESSION_MESSAGE)

        self._headers = {"Authorization": "Bearer {}".format(session.access_token)}
        self._notice = NoticeHandle(self.notifier)
        object_name = sanitize_object_name(media.name)
        self._display_name = object_name

        try:
            await self.upload(media, session, object_name)
            job = await self.create_transcript(session, object_name)
            return await self._poll(job)
        finally:
            self._notice.hide()

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def _on_upload_progress(self, object_name: str, uploaded: int, total: int) -> None:
        percentage = (uploaded / total * 100) if total else 100.0
        self._notice.update("Uploading {}: {:.2f}%".format(object_name, percentage))
        self.debug("%d %d %.2f%%", uploaded, total, percentage)

    async def upload(self, media: MediaFile, session: Session, object_name: str) -> str:
        """Upload the media bytes and return the tus upload URL.

        Raises:
            UploadError: the upload failed after the retry schedule.
        """
        upload = ResumableUpload(
            self.client,
            endpoint="{}/storage/v1/upload/resumable".format(self._storage_url),
            data=media.data,
            headers={
                "authorization": "Bearer {}".format(session.access_token),
                "x-upsert": "true",
            },
            metadata={
                "bucketName": SWIFTINK_BUCKET,
                "objectName": "{}/{}".format(session.user_id, object_name),
            },
            chunk_size=self._chunk_size,
            retry_delays=self._retry_delays,
            upload_data_during_creation=True,
            on_progress=lambda uploaded, total: self._on_upload_progress(
                object_name, uploaded, total
            ),
        )
        try:
            url = await upload.start()
        except (httpx.HTTPError, ResumableUploadError) as exc:
            self.debug("Failed to upload to Swiftink: %r", exc)
            raise UploadError(
                "Failed to upload {} to Swiftink".format(object_name)
            ) from exc

        self.debug("Successfully uploaded %s to Swiftink", object_name)
        self._notice.update("Successfully uploaded {} to Swiftink".format(object_name))
        return url

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_transcript(self, session: Session, object_name: str) -> Job:
        """Request a transcript for the uploaded object.

        Raises:
            JobCreationError: transport failure or an error status.
            ResponseFormatError: the response is not a transcript resource.
        """
        body: Dict[str, Any] = {
            "name": object_name,
            "url": self.object_url(session, object_name),
        }
        if self.settings.language != "auto":
            body["language"] = self.settings.language
        self.debug("Create transcript request: %s", body)

        try:
            response = await self.client.post(
                "{}/transcripts/".format(self._api_base),
                headers=self._headers,
                json=body,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            self.debug("Failed to create transcript: %r", exc)
            raise JobCreationError(
                "Failed to create a Swiftink transcript for {}: {}".format(object_name, exc)
            ) from exc

        payload = decode_json(response.content, SWIFTINK_TRANSCRIPT_SCHEMA, "Swiftink transcript")
        self.debug("Created transcript: %s", payload)
        self._display_name = payload.get("name") or object_name
        return Job(provider=self.key, remote_id=str(payload["id"]), status=payload.get("status"))

    # ------------------------------------------------------------------
    # Poll
    # ------------------------------------------------------------------

    async def poll_once(self, job: Job) -> Optional[str]:
        try:
            response = await self.client.get(
                "{}/transcripts/{}".format(self._api_base, job.remote_id),
                headers=self._headers,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise JobFailedError(
                "Swiftink transcript {} could not be fetched: {}".format(job.remote_id, exc)
            ) from exc

        payload = decode_json(response.content, SWIFTINK_TRANSCRIPT_SCHEMA, "Swiftink transcript")
        status = payload.get("status")
        job.record_poll(status)
        self.debug("Swiftink transcript %s poll %d: %s", job.remote_id, job.attempts, status)

        if status in self.completed_statuses:
            result = TranscriptResult.from_dict(payload)
            self._notice.hide()
            self.notifier.show(
                "Successfully transcribed {} with Swiftink".format(self._display_name)
            )
            return format_transcript_result(result, FormatOptions.from_settings(self.settings))

        if status in FAILURE_MESSAGES:
            message = FAILURE_MESSAGES[status]
            self.debug(message)
            raise JobFailedError(message)

        self._notice.update("Transcribing {}...".format(self._display_name))
        return None
