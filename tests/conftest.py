"""Shared fixtures and fakes for the scribe_relay test suite.

WHY: Backend, engine and API tests all need a provider that answers
HTTP requests without a network, plus realistic transcript payloads.
Centralizing them keeps each test focused on one behaviour.

HOW: FakeService is an httpx.MockTransport handler that dispatches by
(method, path) to queued response specs and records every request.
FakeTusServer is a stateful tus endpoint mounted on a path prefix.

RULES:
- No test talks to a real service
- Response specs are dicts of httpx.Response kwargs (plus "status"),
  or callables taking the request; the last spec of a route repeats
- Environment-driven settings are cleared before every test
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from scribe_relay.auth import Session
from scribe_relay.config import Settings

API_BASE = "https://api.test"
STORAGE_URL = "https://storage.test"
SPEECHFLOW_URL = "https://speechflow.test"
UPLOAD_PATH = "/storage/v1/upload/resumable"

SESSION = Session(access_token="token-123", user_id="user-42")

_ENV_VARS = (
    "SCRIBE_ENGINE",
    "WHISPER_ASR_API_KEY",
    "SCRIBE_LANGUAGE",
    "SCRIBE_RESULT_TYPE",
    "SCRIBE_TIMESTAMPS",
    "SCRIBE_TIMESTAMP_FORMAT",
    "SCRIBE_EMBED_SUMMARY",
    "SCRIBE_EMBED_OUTLINE",
    "SCRIBE_EMBED_KEYWORDS",
    "SCRIBE_EMBED_ADDITIONAL_FUNCTIONALITY",
    "SCRIBE_DEBUG",
    "SCRIBE_POLL_INTERVAL",
    "SCRIBE_MAX_POLL_ATTEMPTS",
    "SWIFTINK_ACCESS_TOKEN",
    "SWIFTINK_USER_ID",
)

Spec = Any


class FakeService:
    """Records requests and answers them from per-route response queues."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self._routes: Dict[Tuple[str, str], List[Spec]] = {}
        self._mounts: List[Tuple[str, Callable[[httpx.Request], httpx.Response]]] = []

    def add(self, method: str, path: str, *specs: Spec) -> FakeService:
        self._routes.setdefault((method.upper(), path), []).extend(specs)
        return self

    def mount(self, prefix: str, handler: Callable[[httpx.Request], httpx.Response]) -> FakeService:
        self._mounts.append((prefix, handler))
        return self

    def count(self, method: str, path: str) -> int:
        return sum(
            1 for r in self.requests
            if r.method == method.upper() and r.url.path == path
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if queue:
            spec = queue.pop(0) if len(queue) > 1 else queue[0]
            if callable(spec):
                return spec(request)
            kwargs = dict(spec)
            status = kwargs.pop("status", 200)
            return httpx.Response(status, **kwargs)
        for prefix, mounted in self._mounts:
            if request.url.path.startswith(prefix):
                return mounted(request)
        return httpx.Response(404, json={"detail": "no route for {} {}".format(
            request.method, request.url.path
        )})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class FakeTusServer:
    """Minimal tus 1.0.0 server holding one upload in memory."""

    def __init__(self, fail_patches: int = 0, fail_status: Optional[int] = None) -> None:
        self.data = bytearray()
        self.length: Optional[int] = None
        self.creations: List[httpx.Request] = []
        self.patches: List[httpx.Request] = []
        self.heads = 0
        self.fail_patches = fail_patches
        self.fail_status = fail_status

    @property
    def location(self) -> str:
        return "{}/upload-1".format(UPLOAD_PATH)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            self.creations.append(request)
            self.length = int(request.headers["Upload-Length"])
            self.data = bytearray(request.content)
            return httpx.Response(
                201,
                headers={"Location": self.location, "Upload-Offset": str(len(self.data))},
            )
        if request.method == "HEAD":
            self.heads += 1
            return httpx.Response(200, headers={
                "Upload-Offset": str(len(self.data)),
                "Upload-Length": str(self.length),
            })
        if request.method == "PATCH":
            self.patches.append(request)
            if self.fail_patches:
                self.fail_patches -= 1
                if self.fail_status is not None:
                    return httpx.Response(self.fail_status)
                raise httpx.ConnectError("connection reset", request=request)
            if int(request.headers["Upload-Offset"]) != len(self.data):
                return httpx.Response(409)
            self.data.extend(request.content)
            return httpx.Response(204, headers={"Upload-Offset": str(len(self.data))})
        return httpx.Response(405)


def transcript_payload(status: str = "complete", **overrides: Any) -> Dict[str, Any]:
    """A Swiftink transcript resource with every optional field populated."""
    payload: Dict[str, Any] = {
        "id": "tr-1",
        "name": "talk.mp3",
        "status": status,
        "text": "Hello world. Goodbye world.",
        "text_segments": [
            {"start": 0, "end": 65, "text": " a"},
            {"start": 70, "end": 130, "text": "b "},
        ],
        "summary": "A short talk.",
        "heading_segments": [{"start": 0, "end": 65, "text": "Intro"}],
        "keywords": ["alpha", "beta"],
    }
    payload.update(overrides)
    return copy.deepcopy(payload)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep a developer's .env or shell from leaking into settings."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fast_settings() -> Settings:
    """Settings that poll without waiting."""
    return Settings(poll_interval=0)


@pytest.fixture
def service() -> FakeService:
    return FakeService()


@pytest.fixture
def tus_server() -> FakeTusServer:
    return FakeTusServer()
