"""Abstract transcription backend and the shared poll loop.

WHY: Every provider follows the same outline (submit media, then poll a
remote job until it settles) but speaks a different protocol. The
orchestrator should be able to call any of them the same way, and the
termination rules of polling (fixed cadence, attempt cap, exactly one
terminal outcome) should be written once.

HOW: Subclasses implement ``transcribe()`` and, for polling, a
``poll_once(job)`` coroutine that performs one status request. The
base class ``_poll()`` sleeps for the configured interval, calls
``poll_once``, and settles the Job: a returned string completes it, a
raised TranscriptionError fails it, and a still-running job past the
attempt cap times out.

RULES:
- Poll rounds are serialized: one request in flight at a time
- The first poll happens one interval after submission
- A job is settled exactly once (Job.finish enforces it)
- Attempt cap: the job times out when a non-terminal response arrives
  after more than ``max_poll_attempts`` polls
- Debug-only logging is gated on settings.debug
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Optional

import httpx

from scribe_relay.auth import SessionProvider
from scribe_relay.config import Settings
from scribe_relay.core.models import Job, JobState, MediaFile
from scribe_relay.errors import JobTimeoutError, TranscriptionError
from scribe_relay.notices import Notifier

logger = logging.getLogger(__name__)


class TranscriptionBackend(ABC):
    """Base class for remote transcription providers.

    To add a provider:
    1. Create a module in backends/
    2. Subclass TranscriptionBackend, set ``key`` and ``display_name``
    3. Implement transcribe() (and poll_once() if it uses _poll())
    4. Register the class in BACKENDS in backends/__init__.py
    """

    key: ClassVar[str]
    display_name: ClassVar[str]

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient,
        notifier: Optional[Notifier] = None,
        session_provider: Optional[SessionProvider] = None,
    ) -> None:
        self.settings = settings
        self.client = client
        self.notifier = notifier or Notifier()
        self.session_provider = session_provider

    @abstractmethod
    async def transcribe(self, media: MediaFile) -> str:
        """Submit ``media`` and return the finished transcript text.

        Raises:
            TranscriptionError: any failure, see scribe_relay.errors.
        """

    async def poll_once(self, job: Job) -> Optional[str]:
        """Issue one status request.

        Returns:
            The finished transcript, or None while the job is still running.
        """
        raise NotImplementedError

    def timeout_message(self, job: Job) -> str:
        return "{} took too long to transcribe the file".format(self.display_name)

    def debug(self, msg: str, *args: Any) -> None:
        if self.settings.debug:
            logger.debug(msg, *args)

    async def _poll(self, job: Job) -> str:
        """Poll ``job`` until it completes, fails, or exceeds the attempt cap."""
        while True:
            await asyncio.sleep(self.settings.poll_interval)
            try:
                result = await self.poll_once(job)
            except TranscriptionError:
                job.finish(JobState.FAILED)
                raise

            if result is not None:
                job.finish(JobState.COMPLETED)
                return result

            if job.attempts > self.settings.max_poll_attempts:
                job.finish(JobState.TIMED_OUT)
                message = self.timeout_message(job)
                self.debug("%s (job %s, %d polls)", message, job.remote_id, job.attempts)
                raise JobTimeoutError(message)
