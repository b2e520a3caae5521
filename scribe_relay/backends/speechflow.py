"""Speechflow file transcription backend (selector ``whisper_asr``).

WHY: Speechflow transcribes an uploaded file as a queued task: one
request creates the task, then a query endpoint reports a numeric
status code until the sentences are ready.

HOW: The configured key ``keyId:keySecret`` is split into the two
header credentials. The media is sent as a hand-built single-part
multipart body to POST /asr/file/v1/create. A 10000 code with a task id
starts polling GET /asr/file/v1/query every poll interval: 11000 means
done (the ``result`` field is itself a JSON document of sentences),
11001 means still processing, anything else is a failure.

RULES:
- Create code other than 10000 (or a missing taskId) fails without polling
- Finished text is the sentences' ``s`` fields joined with single spaces
- Language "auto" falls back to SPEECHFLOW_DEFAULT_LANGUAGE
- Polling is capped by settings.max_poll_attempts like every backend
"""

from __future__ import annotations

import logging
import uuid
from typing import Dict, Optional, Tuple

import httpx

from scribe_relay.backends.base import TranscriptionBackend
from scribe_relay.backends.schemas import (
    SPEECHFLOW_CREATE_SCHEMA,
    SPEECHFLOW_QUERY_SCHEMA,
    SPEECHFLOW_SENTENCES_SCHEMA,
    decode_json,
)
from scribe_relay.config import SPEECHFLOW_BASE_URL, SPEECHFLOW_DEFAULT_LANGUAGE
from scribe_relay.core.models import Job, MediaFile
from scribe_relay.errors import (
    ConfigurationError,
    JobCreationError,
    JobFailedError,
    ResponseFormatError,
)
from scribe_relay.notices import NoticeHandle

logger = logging.getLogger(__name__)

CREATE_SUCCESS_CODE = 10000
QUERY_COMPLETE_CODE = 11000
QUERY_PROCESSING_CODE = 11001


def split_api_key(api_key: str) -> Tuple[str, str]:
    """Split ``keyId:keySecret`` into its two parts.

    Raises:
        ConfigurationError: the key has no colon or an empty part.
    """
    key_id, sep, key_secret = api_key.partition(":")
    if not sep or not key_id or not key_secret:
        raise ConfigurationError(
            "Speechflow API key must have the form 'keyId:keySecret'."
        )
    return key_id, key_secret


def build_multipart_body(filename: str, data: bytes, boundary: str) -> bytes:
    """Encode ``data`` as a single ``file`` part of a multipart/form-data body."""
    head = (
        "--{boundary}\r\n"
        'Content-Disposition: form-data; name="file"; filename="{filename}"\r\n'
        "Content-Type: application/octet-stream\r\n\r\n"
    ).format(boundary=boundary, filename=filename)
    tail = "\r\n--{}--\r\n".format(boundary)
    return head.encode("utf-8") + data + tail.encode("utf-8")


def join_sentences(result: Optional[str]) -> str:
    """Join the sentence texts of a finished query ``result`` document."""
    if result is None:
        raise ResponseFormatError("Speechflow query result is missing")
    sentences = decode_json(result, SPEECHFLOW_SENTENCES_SCHEMA, "Speechflow sentences")
    return " ".join(sentence["s"] for sentence in sentences["sentences"])


class SpeechflowBackend(TranscriptionBackend):
    """Create-then-query transcription against the Speechflow file API."""

    key = "whisper_asr"
    display_name = "Speechflow"

    def __init__(self, *args, base_url: Optional[str] = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._base_url = (base_url or SPEECHFLOW_BASE_URL).rstrip("/")
        self._auth_headers: Dict[str, str] = {}
        self._notice: Optional[NoticeHandle] = None
        self._media_name = ""

    @property
    def language(self) -> str:
        if self.settings.language == "auto":
            return SPEECHFLOW_DEFAULT_LANGUAGE
        return self.settings.language

    async def transcribe(self, media: MediaFile) -> str:
        key_id, key_secret = split_api_key(self.settings.whisper_asr_api_key)
        self._auth_headers = {"keyId": key_id, "keySecret": key_secret}
        self._notice = NoticeHandle(self.notifier)
        self._media_name = media.name

        try:
            job = await self.create_task(media)
            text = await self._poll(job)
        finally:
            self._notice.hide()
        self.debug("Speechflow result for %s: %s", media.name, text)
        return text

    async def create_task(self, media: MediaFile) -> Job:
        """Upload ``media`` and return the queued job.

        Raises:
            JobCreationError: transport failure or a non-success code.
            ResponseFormatError: the response is not the expected JSON.
        """
        boundary = uuid.uuid4().hex
        body = build_multipart_body(media.name, media.data, boundary)
        headers = {"Content-Type": "multipart/form-data; boundary={}".format(boundary)}
        headers.update(self._auth_headers)

        self.debug("Submitting %s (%d bytes) to Speechflow", media.name, media.size)
        try:
            response = await self.client.post(
                "{}/asr/file/v1/create".format(self._base_url),
                params={"lang": self.language},
                headers=headers,
                content=body,
            )
        except httpx.HTTPError as exc:
            raise JobCreationError(
                "Failed to submit {} to Speechflow: {}".format(media.name, exc)
            ) from exc

        payload = decode_json(response.content, SPEECHFLOW_CREATE_SCHEMA, "Speechflow create response")
        task_id = payload.get("taskId")
        if payload["code"] != CREATE_SUCCESS_CODE or not task_id:
            message = payload.get("msg") or "Speechflow rejected the file (code {})".format(
                payload["code"]
            )
            logger.warning("Speechflow create error: %s", message)
            raise JobCreationError(message)

        self.debug("Speechflow task %s created", task_id)
        return Job(provider=self.key, remote_id=task_id, status=payload["code"])

    async def poll_once(self, job: Job) -> Optional[str]:
        try:
            response = await self.client.get(
                "{}/asr/file/v1/query".format(self._base_url),
                params={"taskId": job.remote_id, "resultType": self.settings.result_type},
                headers=self._auth_headers,
            )
        except httpx.HTTPError as exc:
            raise JobFailedError(
                "Speechflow query for task {} failed: {}".format(job.remote_id, exc)
            ) from exc

        payload = decode_json(response.content, SPEECHFLOW_QUERY_SCHEMA, "Speechflow query response")
        code = payload["code"]
        job.record_poll(code)
        self.debug("Speechflow task %s poll %d: code %s", job.remote_id, job.attempts, code)

        if code == QUERY_COMPLETE_CODE:
            return join_sentences(payload.get("result"))
        if code == QUERY_PROCESSING_CODE:
            if self._notice is not None:
                self._notice.update("Transcribing {}...".format(self._media_name))
            return None

        message = payload.get("msg") or "Speechflow transcription failed (code {})".format(code)
        logger.warning("Speechflow transcription error: %s", message)
        raise JobFailedError(message)
