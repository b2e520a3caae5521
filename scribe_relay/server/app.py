"""FastAPI application exposing transcription jobs over HTTP.

WHY: Tools other than the CLI (automation, web front ends) need to
submit a media file, follow its progress, and fetch the finished
markdown without holding a connection open for the whole job.

HOW: POST /transcriptions stores a JobRecord and schedules the
TranscriptionEngine as a background task. Progress notices from the
backend are written into the record, so GET /transcriptions/{id} shows
the latest one. The finished document is served by
GET /transcriptions/{id}/transcript.

RULES:
- Per-job options come from form fields layered over the env Settings
- Invalid options are rejected with 400 before the job is created
- The background runner never raises; failures mark the job failed
- The job store is a module-level singleton, cleaned every 5 minutes
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, List, Optional

from fastapi import BackgroundTasks, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import Response

from scribe_relay import __version__
from scribe_relay.auth import EnvSessionProvider, SessionProvider
from scribe_relay.backends import BACKENDS
from scribe_relay.config import Settings, load_settings
from scribe_relay.core.models import MediaFile
from scribe_relay.engine import TranscriptionEngine
from scribe_relay.notices import Notifier
from scribe_relay.server.jobs import JobRecord, JobStatus, JobStore
from scribe_relay.server.models import (
    BackendInfo,
    ErrorResponse,
    HealthResponse,
    JobCreatedResponse,
    JobResponse,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App and store setup
# ---------------------------------------------------------------------------

job_store = JobStore()
session_provider: SessionProvider = EnvSessionProvider()


async def _periodic_cleanup() -> None:
    """Run job cleanup every 5 minutes."""
    while True:
        await asyncio.sleep(300)
        job_store.cleanup_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start periodic cleanup on startup, cancel on shutdown."""
    task = asyncio.create_task(_periodic_cleanup())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    lifespan=lifespan,
    title="scribe_relay API",
    description=(
        "Submit a media file for remote transcription, poll the job, and "
        "download the finished markdown transcript."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _job_to_response(job: JobRecord) -> JobResponse:
    return JobResponse(
        id=job.id,
        status=job.status.value,
        filename=job.filename,
        created_at=job.created_at,
        config=job.config,
        progress=job.progress,
        error=job.error,
    )


def _get_job_or_404(job_id: str) -> JobRecord:
    job = job_store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))
    return job


async def _run_transcription_pipeline(
    job_id: str,
    media: MediaFile,
    settings: Settings,
    store: JobStore,
) -> None:
    """Run one transcription and record the outcome on the job."""
    store.update_job(job_id, status=JobStatus.RUNNING)
    notifier = Notifier(sink=lambda message: store.update_job(job_id, progress=message))
    engine = TranscriptionEngine(
        settings,
        session_provider=session_provider,
        notifier=notifier,
    )
    try:
        transcript = await engine.get_transcription(media)
    except Exception as exc:
        logger.exception("Transcription failed for job %s", job_id)
        store.update_job(job_id, status=JobStatus.FAILED, error=str(exc))
        return

    store.update_job(job_id, status=JobStatus.COMPLETED, transcript=transcript)


def _run_transcription_sync(
    job_id: str,
    media: MediaFile,
    settings: Settings,
    store: JobStore,
) -> None:
    """Synchronous wrapper so BackgroundTasks runs the job in a worker thread."""
    asyncio.run(_run_transcription_pipeline(job_id, media, settings, store))


# ---------------------------------------------------------------------------
# Endpoints: Transcriptions
# ---------------------------------------------------------------------------


@app.post(
    "/transcriptions",
    response_model=JobCreatedResponse,
    status_code=201,
    tags=["transcriptions"],
    summary="Submit a transcription job",
    description=(
        "Upload a media file with transcription options. Returns a job ID "
        "immediately; poll GET /transcriptions/{id} for progress."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Invalid options"},
        429: {"model": ErrorResponse, "description": "Too many concurrent jobs"},
    },
)
async def create_transcription(
    background_tasks: BackgroundTasks,
    file: Annotated[UploadFile, File(description="Media file to transcribe")],
    engine: Annotated[
        Optional[str],
        Form(description="Backend selector: {}.".format(", ".join(sorted(BACKENDS)))),
    ] = None,
    language: Annotated[
        Optional[str],
        Form(description="Language code of the speech, or 'auto'."),
    ] = None,
    timestamps: Annotated[
        Optional[bool],
        Form(description="Render the transcript as timestamped segments."),
    ] = None,
    timestamp_format: Annotated[
        Optional[str],
        Form(description="Timestamp pattern such as 'HH:mm:ss', or 'auto'."),
    ] = None,
    summary: Annotated[Optional[bool], Form(description="Include the summary.")] = None,
    outline: Annotated[Optional[bool], Form(description="Include the outline.")] = None,
    keywords: Annotated[Optional[bool], Form(description="Include keywords.")] = None,
    link: Annotated[
        Optional[bool],
        Form(description="Append the transcript functions deep link."),
    ] = None,
) -> JobCreatedResponse:
    filename = Path(file.filename or "upload").name

    try:
        settings = load_settings().with_overrides(
            transcription_engine=engine,
            language=language,
            timestamps=timestamps,
            timestamp_format=timestamp_format,
            embed_summary=summary,
            embed_outline=outline,
            embed_keywords=keywords,
            embed_additional_functionality=link,
        ).validate()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    config = {
        "engine": settings.transcription_engine,
        "language": settings.language,
        "timestamps": settings.timestamps,
        "timestamp_format": settings.timestamp_format,
        "summary": settings.embed_summary,
        "outline": settings.embed_outline,
        "keywords": settings.embed_keywords,
        "link": settings.embed_additional_functionality,
    }

    try:
        job = job_store.create_job(filename=filename, config=config)
    except ValueError as exc:
        raise HTTPException(status_code=429, detail=str(exc))

    media = MediaFile(name=filename, data=await file.read())
    background_tasks.add_task(_run_transcription_sync, job.id, media, settings, job_store)

    return JobCreatedResponse(id=job.id, status=job.status.value, filename=job.filename)


@app.get(
    "/transcriptions/{job_id}",
    response_model=JobResponse,
    tags=["transcriptions"],
    summary="Get transcription job status",
    description="Current status, latest progress notice, and error of a job.",
    responses={404: {"model": ErrorResponse, "description": "Job not found"}},
)
async def get_transcription(job_id: str) -> JobResponse:
    return _job_to_response(_get_job_or_404(job_id))


@app.get(
    "/transcriptions/{job_id}/transcript",
    tags=["transcriptions"],
    summary="Download the finished transcript",
    description="The markdown document of a completed job.",
    responses={
        404: {"model": ErrorResponse, "description": "Job not found"},
        409: {"model": ErrorResponse, "description": "Job not yet completed"},
    },
)
async def download_transcript(job_id: str) -> Response:
    job = _get_job_or_404(job_id)
    if job.status != JobStatus.COMPLETED:
        raise HTTPException(
            status_code=409,
            detail="Job is not completed (current status: {}).".format(job.status.value),
        )

    stem = Path(job.filename).stem or "transcript"
    return Response(
        content=job.transcript or "",
        media_type="text/markdown",
        headers={"Content-Disposition": 'attachment; filename="{}.md"'.format(stem)},
    )


@app.delete(
    "/transcriptions/{job_id}",
    status_code=204,
    tags=["transcriptions"],
    summary="Delete a transcription job",
    description=(
        "Forget a job and its transcript. A running job keeps running "
        "remotely; its result is discarded."
    ),
    responses={404: {"model": ErrorResponse, "description": "Job not found"}},
)
async def delete_transcription(job_id: str) -> Response:
    if not job_store.delete_job(job_id):
        raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Endpoints: Backends, Health
# ---------------------------------------------------------------------------


@app.get(
    "/backends",
    response_model=List[BackendInfo],
    tags=["backends"],
    summary="List transcription backends",
    description="Selectors accepted by the 'engine' form field.",
)
async def list_backends() -> List[BackendInfo]:
    return [
        BackendInfo(key=key, name=backend_cls.display_name)
        for key, backend_cls in sorted(BACKENDS.items())
    ]


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness check for load balancers and orchestrators.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api():
    """Entry point for the scribe-relay-api console script."""
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
