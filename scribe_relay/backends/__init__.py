"""Transcription backend registry — one class per remote provider.

WHY: The orchestrator picks the provider from configuration by name.
A central dict makes adding a provider a one-line change here.

HOW: BACKENDS maps the configuration selector to the backend *class*;
the orchestrator instantiates it per job with an open HTTP client.

RULES:
- Keys are the values accepted by settings.transcription_engine
- Values are TranscriptionBackend subclasses (not instances)
"""

from __future__ import annotations

from typing import Dict, Type

from scribe_relay.backends.base import TranscriptionBackend
from scribe_relay.backends.speechflow import SpeechflowBackend
from scribe_relay.backends.swiftink import SwiftinkBackend
from scribe_relay.errors import ConfigurationError

BACKENDS: Dict[str, Type[TranscriptionBackend]] = {
    SwiftinkBackend.key: SwiftinkBackend,
    SpeechflowBackend.key: SpeechflowBackend,
}


def get_backend(key: str) -> Type[TranscriptionBackend]:
    """Look up a backend class by selector.

    Raises:
        ConfigurationError: no backend is registered under ``key``.
    """
    try:
        return BACKENDS[key]
    except KeyError:
        raise ConfigurationError(
            "Unknown transcription engine '{}'. Available: {}".format(
                key, ", ".join(sorted(BACKENDS))
            )
        ) from None


__all__ = ["BACKENDS", "SpeechflowBackend", "SwiftinkBackend", "TranscriptionBackend", "get_backend"]
