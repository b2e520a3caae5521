"""Configuration constants, environment loading, and the Settings snapshot.

WHY: Every transcription call reads the same handful of options (which
backend, credentials, language, timestamp format, embed flags, debug).
Keeping defaults and endpoints as plain module-level values makes them
easy to find and override, and a frozen Settings object gives each job a
consistent read-only view.

HOW: python-dotenv loads the .env file on import. Endpoint constants are
read with os.getenv at import time. load_settings() reads the per-call
options from the environment and returns a frozen Settings dataclass;
Settings.with_overrides() produces a modified copy for CLI flags and
HTTP form fields.

RULES:
- Secrets come from the environment (.env), never from source code
- Settings is immutable; use with_overrides() to change a field
- validate() raises ConfigurationError before any network call
- Boolean env vars accept true/1/yes/on (case-insensitive)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

from dotenv import load_dotenv

from scribe_relay.errors import ConfigurationError

# Load .env from the project root (where the script is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Remote endpoints
# ---------------------------------------------------------------------------

SWIFTINK_API_BASE = os.getenv("SWIFTINK_API_BASE", "https://api.swiftink.io")
SWIFTINK_STORAGE_URL = os.getenv(
    "SWIFTINK_STORAGE_URL", "https://vcdeqgrsqaexpnogauly.supabase.co"
)
SWIFTINK_BUCKET = "swiftink-upload"
SPEECHFLOW_BASE_URL = os.getenv("SPEECHFLOW_BASE_URL", "https://api.speechflow.io")
SPEECHFLOW_DEFAULT_LANGUAGE = os.getenv("SPEECHFLOW_DEFAULT_LANGUAGE", "en")

# ---------------------------------------------------------------------------
# Job defaults
# ---------------------------------------------------------------------------

DEFAULT_ENGINE = "swiftink"
DEFAULT_POLL_INTERVAL_S = 3.0
DEFAULT_MAX_POLL_ATTEMPTS = 100

# Speechflow result types:
# 1 sentences and words with timing (JSON), 2 subtitles (JSON),
# 3 subtitles (SRT), 4 plain text. Only 1 is parsed.
DEFAULT_RESULT_TYPE = 1
SUPPORTED_RESULT_TYPES = frozenset({DEFAULT_RESULT_TYPE})

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(
            "{} must be an integer, got {!r}".format(name, raw)
        ) from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(
            "{} must be a number, got {!r}".format(name, raw)
        ) from None


@dataclass(frozen=True)
class Settings:
    """Read-only configuration snapshot consumed by one transcription call.

    RULES:
    - transcription_engine: backend key ("swiftink" or "whisper_asr")
    - whisper_asr_api_key: "keyId:keySecret" for the Speechflow backend
    - language: ISO 639-1 code, or "auto" to let the provider detect it
    - timestamp_format: "auto" or an explicit pattern such as "HH:mm:ss"
    - embed_*: optional result sections; debug enables verbose logging
    """

    transcription_engine: str = DEFAULT_ENGINE
    whisper_asr_api_key: str = ""
    language: str = "auto"
    result_type: int = DEFAULT_RESULT_TYPE
    timestamps: bool = False
    timestamp_format: str = "auto"
    embed_summary: bool = False
    embed_outline: bool = False
    embed_keywords: bool = False
    embed_additional_functionality: bool = False
    debug: bool = False
    poll_interval: float = DEFAULT_POLL_INTERVAL_S
    max_poll_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS

    @property
    def wants_insights(self) -> bool:
        """True when any section that only exists on fully complete jobs is requested."""
        return self.embed_summary or self.embed_outline or self.embed_keywords

    def with_overrides(self, **changes) -> Settings:
        """Return a copy with the given fields replaced. None values are ignored."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def validate(self) -> Settings:
        """Check the snapshot and return it unchanged.

        Raises:
            ConfigurationError: unknown engine, bad timestamp pattern,
                unsupported result type, or non-positive attempt cap.
        """
        # Local imports: both modules import from config indirectly.
        from scribe_relay.backends import get_backend
        from scribe_relay.core.timestamps import parse_pattern

        get_backend(self.transcription_engine)
        if self.timestamp_format != "auto":
            try:
                parse_pattern(self.timestamp_format)
            except ValueError as exc:
                raise ConfigurationError(str(exc)) from exc
        if self.result_type not in SUPPORTED_RESULT_TYPES:
            raise ConfigurationError(
                "Unsupported Speechflow result type {}; supported: {}".format(
                    self.result_type, ", ".join(str(t) for t in sorted(SUPPORTED_RESULT_TYPES))
                )
            )
        if self.max_poll_attempts < 1:
            raise ConfigurationError("max_poll_attempts must be at least 1")
        if self.poll_interval < 0:
            raise ConfigurationError("poll_interval must not be negative")
        return self


def load_settings() -> Settings:
    """Build a Settings snapshot from the environment (populated by python-dotenv).

    Returns:
        A Settings instance. It is not validated; call validate() once all
        overrides are applied.
    """
    return Settings(
        transcription_engine=os.getenv("SCRIBE_ENGINE", DEFAULT_ENGINE).strip(),
        whisper_asr_api_key=os.getenv("WHISPER_ASR_API_KEY", "").strip(),
        language=os.getenv("SCRIBE_LANGUAGE", "auto").strip() or "auto",
        result_type=_env_int("SCRIBE_RESULT_TYPE", DEFAULT_RESULT_TYPE),
        timestamps=_env_flag("SCRIBE_TIMESTAMPS"),
        timestamp_format=os.getenv("SCRIBE_TIMESTAMP_FORMAT", "auto").strip() or "auto",
        embed_summary=_env_flag("SCRIBE_EMBED_SUMMARY"),
        embed_outline=_env_flag("SCRIBE_EMBED_OUTLINE"),
        embed_keywords=_env_flag("SCRIBE_EMBED_KEYWORDS"),
        embed_additional_functionality=_env_flag(
            "SCRIBE_EMBED_ADDITIONAL_FUNCTIONALITY"
        ),
        debug=_env_flag("SCRIBE_DEBUG"),
        poll_interval=_env_float("SCRIBE_POLL_INTERVAL", DEFAULT_POLL_INTERVAL_S),
        max_poll_attempts=_env_int("SCRIBE_MAX_POLL_ATTEMPTS", DEFAULT_MAX_POLL_ATTEMPTS),
    )
