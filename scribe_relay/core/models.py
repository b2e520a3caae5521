"""Dataclasses for media input, remote jobs, and transcript results.

WHY: Both providers speak different wire formats, but the renderer and
formatter only need timed text, a summary, an outline, and keywords.
These types are the stable contract between the backends and the
formatting code, and Job tracks one in-flight remote request.

HOW: TimedSegment and TranscriptResult are parsed from provider JSON via
from_dict(). Job records every poll and enforces that a finished job
never becomes active again. MediaFile holds the bytes read once per job.

RULES:
- All times are float seconds
- TimedSegment is immutable and end >= start
- TranscriptResult list fields default to empty lists (null in JSON → [])
- Job state only moves forward: pending → processing → terminal
"""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from scribe_relay.errors import JobStateError, ResponseFormatError

INSUFFICIENT_SUMMARY = "Insufficient information for a summary."
"""Summary value the provider returns when it could not summarize."""


@dataclass(frozen=True)
class TimedSegment:
    """A span of text with start/end offsets in seconds.

    Used for both body transcription segments and outline headings.
    """

    start: float
    end: float
    text: str

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(
                "Segment end ({}) is before its start ({})".format(self.end, self.start)
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TimedSegment:
        return cls(
            start=float(data["start"]),
            end=float(data["end"]),
            text=str(data.get("text") or ""),
        )


@dataclass
class TranscriptResult:
    """A completed transcript resource, normalized across providers.

    RULES:
    - id is used to build the deep-link reference
    - summary equal to INSUFFICIENT_SUMMARY means "no summary"
    - segments / outline_segments are ordered by start time
    """

    id: str
    name: str = ""
    status: Optional[str] = None
    text: Optional[str] = None
    segments: List[TimedSegment] = field(default_factory=list)
    summary: Optional[str] = None
    outline_segments: List[TimedSegment] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)

    @property
    def has_summary(self) -> bool:
        return bool(self.summary) and self.summary != INSUFFICIENT_SUMMARY

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TranscriptResult:
        """Parse a transcript resource (``GET /transcripts/{id}``) into a result.

        Raises:
            ResponseFormatError: a field is missing, mistyped, or a segment
                ends before it starts.
        """
        try:
            return cls._parse(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise ResponseFormatError(
                "Unexpected transcript resource: {}".format(exc)
            ) from exc

    @classmethod
    def _parse(cls, data: Dict[str, Any]) -> TranscriptResult:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            status=data.get("status"),
            text=data.get("text"),
            segments=[TimedSegment.from_dict(s) for s in data.get("text_segments") or []],
            summary=data.get("summary"),
            outline_segments=[
                TimedSegment.from_dict(s) for s in data.get("heading_segments") or []
            ],
            keywords=[str(k) for k in data.get("keywords") or []],
        )


class JobState(str, enum.Enum):
    """Lifecycle of a remote transcription job.

    Inherits from str so values serialize cleanly to JSON.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED, JobState.TIMED_OUT)


@dataclass
class Job:
    """One remote transcription request tracked by its provider id.

    RULES:
    - status holds the raw provider status (string or numeric code)
    - attempts counts poll responses received so far
    - Once state is terminal, any further transition raises JobStateError
    """

    provider: str
    remote_id: str
    status: Any = None
    state: JobState = JobState.PENDING
    created_at: float = field(default_factory=time.time)
    attempts: int = 0

    def record_poll(self, status: Any) -> None:
        """Register one poll response and mark the job as processing."""
        self._ensure_active()
        self.attempts += 1
        self.status = status
        self.state = JobState.PROCESSING

    def finish(self, state: JobState) -> None:
        """Move the job into a terminal state."""
        if not state.is_terminal:
            raise JobStateError("{} is not a terminal state".format(state.value))
        self._ensure_active()
        self.state = state

    def _ensure_active(self) -> None:
        if self.state.is_terminal:
            raise JobStateError(
                "Job {} already finished as {}".format(self.remote_id, self.state.value)
            )


@dataclass
class MediaFile:
    """A named media payload, read once per job."""

    name: str
    data: bytes

    @classmethod
    def from_path(cls, path: Path) -> MediaFile:
        path = Path(path)
        return cls(name=path.name, data=path.read_bytes())

    @property
    def size(self) -> int:
        return len(self.data)
