"""Fixtures for backend client tests."""

import json
from collections.abc import AsyncGenerator, Callable
from typing import Any

import httpx
import pytest
import pytest_asyncio

from seawatch.backend.client import BackendClientManager
from seawatch.core.config import Settings

Responder = Callable[[httpx.Request], httpx.Response]


class RecordingBackend:
    """Mock backend that records requests and replays queued responses."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: list[httpx.Response | Responder] = []

    def queue(self, status_code: int = 200, body: Any = None, **kwargs: Any) -> None:
        if body is not None:
            kwargs["json"] = body
        self.responses.append(httpx.Response(status_code, **kwargs))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            return httpx.Response(200, json=[])
        response = self.responses.pop(0)
        if callable(response):
            return response(request)
        return response

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last.content)


@pytest.fixture
def recorder() -> RecordingBackend:
    return RecordingBackend()


@pytest_asyncio.fixture
async def manager(
    test_settings: Settings, recorder: RecordingBackend
) -> AsyncGenerator[BackendClientManager]:
    """Backend client manager wired to the recording transport."""
    client_manager = BackendClientManager()
    client_manager.init(test_settings, transport=httpx.MockTransport(recorder.handler))
    yield client_manager
    await client_manager.close()
