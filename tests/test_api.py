"""Tests for the FastAPI transcription API.

WHY: Validates the HTTP endpoints: happy paths, error cases and edge
cases. Uses FastAPI TestClient for synchronous in-process testing.

HOW: The background runner is patched out so no backend is contacted.
Tests create jobs via the API, manipulate job state directly through
the store when they need a finished job, and verify status codes,
bodies, and headers.

RULES:
- All tests use the FastAPI TestClient (synchronous)
- No transcription provider is ever called
- The job store is cleared before and after each test
"""

from __future__ import annotations

import io
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from scribe_relay import __version__
from scribe_relay.server.app import app, job_store
from scribe_relay.server.jobs import JobStatus


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_job_store():
    """Clear all jobs before each test to ensure isolation."""
    job_store._jobs.clear()
    yield
    job_store._jobs.clear()


@pytest.fixture
def scheduled():
    """Arguments of every background run that would have started."""
    return []


@pytest.fixture
def client(scheduled):
    """TestClient with the background runner replaced by a recorder."""
    with patch(
        "scribe_relay.server.app._run_transcription_sync",
        new=lambda *args: scheduled.append(args),
    ):
        yield TestClient(app)


def _media(name: str = "talk.mp3", content: bytes = b"fake audio data"):
    return {"file": (name, io.BytesIO(content), "audio/mpeg")}


def _submit(client, **form):
    response = client.post("/transcriptions", files=_media(), data=form)
    assert response.status_code == 201, response.text
    return response.json()["id"]


# ---------------------------------------------------------------------------
# POST /transcriptions
# ---------------------------------------------------------------------------


class TestCreateTranscription:

    def test_submit_job_returns_201(self, client):
        """Submitting a file returns 201 with job ID and pending status."""
        response = client.post("/transcriptions", files=_media())
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["filename"] == "talk.mp3"
        assert len(body["id"]) == 32

    def test_schedules_background_run(self, client, scheduled):
        job_id = _submit(client)
        assert len(scheduled) == 1
        scheduled_id, media, settings, store = scheduled[0]
        assert scheduled_id == job_id
        assert media.name == "talk.mp3"
        assert media.data == b"fake audio data"
        assert store is job_store
        assert settings.transcription_engine == "swiftink"

    def test_default_config_values(self, client):
        job_id = _submit(client)
        config = client.get("/transcriptions/{}".format(job_id)).json()["config"]
        assert config == {
            "engine": "swiftink",
            "language": "auto",
            "timestamps": False,
            "timestamp_format": "auto",
            "summary": False,
            "outline": False,
            "keywords": False,
            "link": False,
        }

    def test_form_fields_override_settings(self, client, scheduled):
        _submit(
            client,
            engine="whisper_asr",
            language="sv",
            timestamps="true",
            timestamp_format="HH:mm:ss",
            summary="true",
            link="true",
        )
        settings = scheduled[0][2]
        assert settings.transcription_engine == "whisper_asr"
        assert settings.language == "sv"
        assert settings.timestamps is True
        assert settings.timestamp_format == "HH:mm:ss"
        assert settings.embed_summary is True
        assert settings.embed_additional_functionality is True
        assert settings.embed_outline is False

    def test_environment_defaults_apply(self, client, scheduled, monkeypatch):
        monkeypatch.setenv("SCRIBE_EMBED_KEYWORDS", "true")
        _submit(client)
        assert scheduled[0][2].embed_keywords is True

    def test_reject_unknown_engine(self, client, scheduled):
        response = client.post("/transcriptions", files=_media(), data={"engine": "nope"})
        assert response.status_code == 400
        assert "Unknown transcription engine" in response.json()["detail"]
        assert scheduled == []
        assert job_store.list_jobs() == []

    def test_reject_bad_timestamp_format(self, client):
        response = client.post(
            "/transcriptions", files=_media(), data={"timestamp_format": "'open"}
        )
        assert response.status_code == 400

    def test_too_many_jobs(self, client, monkeypatch):
        monkeypatch.setattr(job_store, "max_jobs", 1)
        _submit(client)
        response = client.post("/transcriptions", files=_media())
        assert response.status_code == 429

    def test_path_stripped_from_filename(self, client):
        response = client.post("/transcriptions", files=_media(name="../../etc/talk.mp3"))
        assert response.json()["filename"] == "talk.mp3"


# ---------------------------------------------------------------------------
# GET /transcriptions/{id}
# ---------------------------------------------------------------------------


class TestGetTranscription:

    def test_get_pending_job(self, client):
        job_id = _submit(client)
        body = client.get("/transcriptions/{}".format(job_id)).json()
        assert body["id"] == job_id
        assert body["status"] == "pending"
        assert body["progress"] is None
        assert body["error"] is None

    def test_get_running_job_shows_progress(self, client):
        job_id = _submit(client)
        job_store.update_job(job_id, status=JobStatus.RUNNING, progress="Uploading talk.mp3: 50.00%")
        body = client.get("/transcriptions/{}".format(job_id)).json()
        assert body["status"] == "running"
        assert body["progress"] == "Uploading talk.mp3: 50.00%"

    def test_get_failed_job_with_error(self, client):
        job_id = _submit(client)
        job_store.update_job(job_id, status=JobStatus.FAILED, error="Swiftink has detected an invalid file")
        body = client.get("/transcriptions/{}".format(job_id)).json()
        assert body["status"] == "failed"
        assert body["error"] == "Swiftink has detected an invalid file"

    def test_transcript_not_inlined(self, client):
        job_id = _submit(client)
        job_store.update_job(job_id, status=JobStatus.COMPLETED, transcript="## Transcript\n")
        assert "transcript" not in client.get("/transcriptions/{}".format(job_id)).json()

    def test_get_nonexistent_job(self, client):
        response = client.get("/transcriptions/nonexistent")
        assert response.status_code == 404
        assert "nonexistent" in response.json()["detail"]


# ---------------------------------------------------------------------------
# GET /transcriptions/{id}/transcript
# ---------------------------------------------------------------------------


class TestDownloadTranscript:

    def test_download_completed(self, client):
        job_id = _submit(client)
        job_store.update_job(
            job_id, status=JobStatus.COMPLETED, transcript="## Transcript\nHello.\n"
        )
        response = client.get("/transcriptions/{}/transcript".format(job_id))
        assert response.status_code == 200
        assert response.text == "## Transcript\nHello.\n"
        assert response.headers["content-type"].startswith("text/markdown")
        assert 'filename="talk.md"' in response.headers["content-disposition"]

    def test_download_not_completed(self, client):
        job_id = _submit(client)
        response = client.get("/transcriptions/{}/transcript".format(job_id))
        assert response.status_code == 409
        assert "pending" in response.json()["detail"]

    def test_download_failed_job(self, client):
        job_id = _submit(client)
        job_store.update_job(job_id, status=JobStatus.FAILED, error="boom")
        assert client.get("/transcriptions/{}/transcript".format(job_id)).status_code == 409

    def test_download_nonexistent_job(self, client):
        assert client.get("/transcriptions/nope/transcript").status_code == 404


# ---------------------------------------------------------------------------
# DELETE /transcriptions/{id}
# ---------------------------------------------------------------------------


class TestDeleteTranscription:

    def test_delete_job(self, client):
        job_id = _submit(client)
        assert client.delete("/transcriptions/{}".format(job_id)).status_code == 204
        assert client.get("/transcriptions/{}".format(job_id)).status_code == 404

    def test_delete_nonexistent_job(self, client):
        assert client.delete("/transcriptions/nonexistent").status_code == 404


# ---------------------------------------------------------------------------
# GET /backends, GET /health
# ---------------------------------------------------------------------------


class TestBackendsAndHealth:

    def test_list_backends(self, client):
        response = client.get("/backends")
        assert response.status_code == 200
        assert response.json() == [
            {"key": "swiftink", "name": "Swiftink"},
            {"key": "whisper_asr", "name": "Speechflow"},
        ]

    def test_health_returns_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": __version__}


# ---------------------------------------------------------------------------
# OpenAPI schema
# ---------------------------------------------------------------------------


class TestOpenAPISchema:

    def test_all_endpoints_in_schema(self, client):
        paths = client.get("/openapi.json").json()["paths"]
        assert "/transcriptions" in paths
        assert "/transcriptions/{job_id}" in paths
        assert "/transcriptions/{job_id}/transcript" in paths
        assert "/backends" in paths
        assert "/health" in paths

    def test_endpoints_have_descriptions(self, client):
        paths = client.get("/openapi.json").json()["paths"]
        for path, methods in paths.items():
            for method, operation in methods.items():
                assert operation.get("description"), "{} {} lacks a description".format(
                    method.upper(), path
                )
