"""Pydantic response models for the HTTP API.

WHY: FastAPI needs typed schemas for response serialization and the
generated OpenAPI docs. Request options arrive as multipart form fields
next to the uploaded file, so only responses are modelled here.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Response models never expose the transcript inline; it has its own endpoint
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class JobResponse(BaseModel):
    """Status of one transcription request."""

    id: str = Field(description="Unique job identifier.")
    status: str = Field(description="pending, running, completed or failed.")
    filename: str = Field(description="Original uploaded filename.")
    created_at: float = Field(description="Job creation timestamp (Unix epoch seconds).")
    config: Dict[str, Any] = Field(description="Options used for this job.")
    progress: Optional[str] = Field(
        default=None,
        description="Latest progress notice, e.g. 'Uploading talk.mp3: 42.00%'.",
    )
    error: Optional[str] = Field(
        default=None,
        description="Error message, only present when status is 'failed'.",
    )

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "id": "550e8400e29b41d4a716446655440000",
                "status": "running",
                "filename": "interview.mp3",
                "created_at": 1739959200.0,
                "config": {"engine": "swiftink", "language": "auto", "timestamps": True},
                "progress": "Transcribing interview.mp3...",
                "error": None,
            }
        ]
    }}


class JobCreatedResponse(BaseModel):
    """Returned when a new transcription request is accepted."""

    id: str = Field(description="Unique job identifier for polling.")
    status: str = Field(description="Initial job status (always 'pending').")
    filename: str = Field(description="Original uploaded filename.")


class BackendInfo(BaseModel):
    """A registered transcription backend."""

    key: str = Field(description="Selector used in the 'engine' form field.")
    name: str = Field(description="Human-readable provider name.")


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
