"""Transcription orchestrator — picks the configured backend and runs one job.

WHY: Callers (CLI, HTTP API) should not care which provider is active.
They hand over a media file and get the finished document back, or a
TranscriptionError describing what went wrong.

HOW: The backend class is looked up by settings.transcription_engine.
One httpx.AsyncClient is opened per job and closed when the job
settles. Duration is measured with time.monotonic() and only logged.

RULES:
- The backend's result is returned unmodified
- Backend errors propagate unchanged; there is no cross-backend retry
- Debug diagnostics (engine, result, duration, raw error) only when
  settings.debug is set
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import httpx

from scribe_relay.auth import EnvSessionProvider, SessionProvider
from scribe_relay.backends import get_backend
from scribe_relay.config import Settings
from scribe_relay.core.models import MediaFile
from scribe_relay.errors import TranscriptionError
from scribe_relay.notices import Notifier

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], httpx.AsyncClient]


def default_client_factory() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=httpx.Timeout(300.0, connect=30.0))


class TranscriptionEngine:
    """Runs transcription jobs against the configured backend.

    Usage::

        engine = TranscriptionEngine(load_settings().validate())
        text = await engine.get_transcription(MediaFile.from_path(path))
    """

    def __init__(
        self,
        settings: Settings,
        session_provider: Optional[SessionProvider] = None,
        notifier: Optional[Notifier] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.settings = settings
        self.session_provider = session_provider or EnvSessionProvider()
        self.notifier = notifier or Notifier()
        self._client_factory = client_factory or default_client_factory

    async def get_transcription(self, media: MediaFile) -> str:
        """Transcribe ``media`` with the configured backend.

        Raises:
            ConfigurationError: the configured engine is unknown.
            TranscriptionError: the backend failed.
        """
        backend_cls = get_backend(self.settings.transcription_engine)
        debug = self.settings.debug
        if debug:
            logger.debug("Transcription engine: %s", self.settings.transcription_engine)

        start = time.monotonic()
        try:
            async with self._client_factory() as client:
                backend = backend_cls(
                    self.settings,
                    client=client,
                    notifier=self.notifier,
                    session_provider=self.session_provider,
                )
                transcription = await backend.transcribe(media)
        except TranscriptionError as exc:
            if debug:
                logger.debug("Transcription of %s failed: %r", media.name, exc)
            raise

        if debug:
            logger.debug("Transcription: %s", transcription)
            logger.debug(
                "Transcription took %d ms", int((time.monotonic() - start) * 1000)
            )
        return transcription
