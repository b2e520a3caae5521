"""Exception types raised by the transcription pipeline.

WHY: Callers (CLI, HTTP API, tests) need to tell a missing login apart
from a rejected upload, a provider-side failure, or a job that never
finished. One typed exception per failure category keeps that decision
out of string matching.

HOW: Every pipeline failure derives from TranscriptionError, which
carries a human-readable ``message``. Configuration problems derive from
ValueError so they can be reported like any other bad input.

RULES:
- Backends raise only TranscriptionError subclasses for job failures
- Transport errors are chained (``raise ... from exc``), never swallowed
- ConfigurationError is raised before any network call is made
"""

from __future__ import annotations


class TranscriptionError(Exception):
    """Base class for every failure that ends a transcription job."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AuthenticationError(TranscriptionError):
    """Raised when the backend needs a user session and none exists.

    RULES:
    - Raised before any upload or API request is attempted
    """


class UploadError(TranscriptionError):
    """Raised when the media upload fails after all retries.

    The underlying transport error is available as ``__cause__``.
    """


class JobCreationError(TranscriptionError):
    """Raised when the provider refuses to create a transcription job."""


class JobFailedError(TranscriptionError):
    """Raised when a polled job reaches a terminal failure status."""


class JobTimeoutError(TranscriptionError, TimeoutError):
    """Raised when polling exceeds the maximum number of attempts.

    RULES:
    - Message is provider specific and human readable
    """


class ResponseFormatError(TranscriptionError, ValueError):
    """Raised when a provider response cannot be decoded or validated."""


class ConfigurationError(ValueError):
    """Raised for unusable settings: unknown backend, malformed key, bad pattern."""


class JobStateError(RuntimeError):
    """Raised when a job is moved out of a terminal state."""
