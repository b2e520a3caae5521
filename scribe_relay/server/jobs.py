"""In-memory store of HTTP transcription requests with TTL cleanup.

WHY: The HTTP API accepts a file, returns immediately, and runs the
transcription in the background (seconds to many minutes). Clients then
poll for status and fetch the finished markdown. An in-memory store is
enough for a single-process service with no persistence requirements.

HOW: Three components work together:
  JobStatus  — enum of request states
  JobRecord  — dataclass holding request metadata, progress and result
  JobStore   — thread-safe dict-based store with create/update/get/list/
               delete and TTL cleanup of finished requests

RULES:
- All store mutations are protected by threading.Lock
- A finished record (completed/failed) never changes status again
- TTL is measured from completed_at; only finished records expire
- Job IDs are UUID4 hex strings generated at creation time
- Default TTL is 1 hour (3600 seconds)
"""

from __future__ import annotations

import enum
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Default time-to-live for completed/failed jobs (seconds)
DEFAULT_TTL_SECONDS = 3600


class JobStatus(str, enum.Enum):
    """States of an HTTP transcription request.

    - pending: accepted, background task not started yet
    - running: upload, remote transcription or polling in progress
    - completed: transcript available
    - failed: the pipeline raised; ``error`` holds the message
    """

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_finished(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


@dataclass
class JobRecord:
    """Metadata, progress and result of one HTTP transcription request."""

    id: str
    status: JobStatus
    filename: str
    created_at: float
    updated_at: float
    completed_at: Optional[float] = None
    error: Optional[str] = None
    progress: Optional[str] = None
    config: Dict[str, Any] = field(default_factory=dict)
    transcript: Optional[str] = None


class JobStore:
    """Thread-safe in-memory store for transcription requests.

    WHY: Request handlers and background tasks (which run in worker
    threads) read and write the same records concurrently.

    HOW: Records live in a dict keyed by id; every access holds
    self._lock.

    RULES:
    - get_job() returns None for unknown ids (no exceptions)
    - update_job() ignores changes to finished records and returns None
    - create_job() raises ValueError when max_jobs is reached
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_jobs: int = 100,
    ) -> None:
        self._jobs: Dict[str, JobRecord] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self.max_jobs = max_jobs

    def create_job(
        self,
        filename: str,
        config: Optional[Dict[str, Any]] = None,
    ) -> JobRecord:
        """Create a new record in PENDING state."""
        with self._lock:
            if len(self._jobs) >= self.max_jobs:
                raise ValueError(
                    "Maximum number of concurrent jobs ({}) reached".format(
                        self.max_jobs
                    )
                )

            job_id = uuid.uuid4().hex
            now = time.time()
            job = JobRecord(
                id=job_id,
                status=JobStatus.PENDING,
                filename=filename,
                created_at=now,
                updated_at=now,
                config=config or {},
            )
            self._jobs[job_id] = job

        logger.info("Created job %s for file %s", job_id, filename)
        return job

    def get_job(self, job_id: str) -> Optional[JobRecord]:
        """Return the live record for ``job_id``, or None."""
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self) -> List[JobRecord]:
        """Return all records, oldest first."""
        with self._lock:
            return sorted(self._jobs.values(), key=lambda j: j.created_at)

    def update_job(
        self,
        job_id: str,
        status: Optional[JobStatus] = None,
        error: Optional[str] = None,
        progress: Optional[str] = None,
        transcript: Optional[str] = None,
    ) -> Optional[JobRecord]:
        """Apply the non-None changes to a record.

        Returns:
            The updated record, or None if it is unknown or already finished.
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status.is_finished:
                return None

            now = time.time()
            if status is not None:
                job.status = status
            if error is not None:
                job.error = error
            if progress is not None:
                job.progress = progress
            if transcript is not None:
                job.transcript = transcript

            job.updated_at = now
            if job.status.is_finished:
                job.completed_at = now
            return job

    def delete_job(self, job_id: str) -> bool:
        """Remove a record. Returns True if it existed."""
        with self._lock:
            job = self._jobs.pop(job_id, None)

        if job is None:
            return False
        logger.info("Deleted job %s", job_id)
        return True

    def cleanup_expired(self) -> int:
        """Remove finished records older than the TTL and return how many went."""
        now = time.time()
        expired: List[JobRecord] = []

        with self._lock:
            for job_id, job in list(self._jobs.items()):
                if not job.status.is_finished or job.completed_at is None:
                    continue
                if now - job.completed_at > self._ttl_seconds:
                    expired.append(self._jobs.pop(job_id))

        for job in expired:
            logger.info("Expired job %s (completed %.0fs ago)", job.id, now - job.completed_at)
        return len(expired)
