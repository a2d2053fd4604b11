"""Test configuration and fixtures."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from issuecrush.config import Settings
from issuecrush.summary.assistant import AssistantClient, AssistantSession


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeAssistantSession(AssistantSession):
    def __init__(self, owner: FakeAssistant) -> None:
        loop = asyncio.get_running_loop()
        self._owner = owner
        self._message: asyncio.Future[str] = loop.create_future()
        self._error: asyncio.Future[str] = loop.create_future()
        self.prompts: list[str] = []
        self.destroy_calls = 0

    async def send(self, prompt: str) -> None:
        self.prompts.append(prompt)
        if self._owner.send_delay:
            await asyncio.sleep(self._owner.send_delay)
        if self._owner.send_error is not None:
            raise self._owner.send_error
        if self._owner.reply is not None:
            self._message.set_result(self._owner.reply)
        elif self._owner.error is not None:
            self._error.set_result(self._owner.error)
        # Otherwise the session never answers.

    async def wait_for_message(self) -> str:
        return await asyncio.shield(self._message)

    async def wait_for_error(self) -> str:
        return await asyncio.shield(self._error)

    async def destroy(self) -> None:
        self.destroy_calls += 1
        if self._owner.teardown_error is not None:
            raise self._owner.teardown_error


class FakeAssistantClient(AssistantClient):
    def __init__(self, owner: FakeAssistant, token: str) -> None:
        self._owner = owner
        self.token = token
        self.model: str | None = None
        self.session: FakeAssistantSession | None = None
        self.start_calls = 0
        self.stop_calls = 0

    async def start(self) -> None:
        self.start_calls += 1
        if self._owner.start_error is not None:
            raise self._owner.start_error

    async def create_session(self, *, model: str) -> AssistantSession:
        self.model = model
        self.session = FakeAssistantSession(self._owner)
        return self.session

    async def stop(self) -> None:
        self.stop_calls += 1
        if self._owner.teardown_error is not None:
            raise self._owner.teardown_error


class FakeAssistant:
    """Assistant client factory with scripted outcomes.

    Set ``reply`` for an assistant message, ``error`` for an error event, or
    neither for a session that never answers. ``send_delay`` stalls submission.
    """

    def __init__(self) -> None:
        self.reply: str | None = None
        self.error: str | None = None
        self.send_error: Exception | None = None
        self.send_delay: float = 0.0
        self.start_error: Exception | None = None
        self.teardown_error: Exception | None = None
        self.clients: list[FakeAssistantClient] = []

    def __call__(self, token: str) -> AssistantClient:
        client = FakeAssistantClient(self, token)
        self.clients.append(client)
        return client


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_assistant() -> FakeAssistant:
    return FakeAssistant()


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local `.env`."""
    return Settings(
        _env_file=None,
        github_client_id="client-id",
        github_client_secret="client-secret",
        redis_url="",
        ai_enabled=True,
    )


@pytest.fixture
def raw_issue() -> dict[str, Any]:
    """A GitHub issue as returned by the REST API."""
    return {
        "id": 1001,
        "number": 42,
        "title": "Crash when opening settings",
        "state": "open",
        "labels": [
            {"id": 1, "name": "bug", "color": "d73a4a", "description": "Something isn't working"},
            {"id": 2, "name": "ui", "color": "a2eeef", "description": None},
        ],
        "repository_url": "https://api.github.com/repos/octo-org/octo-app",
        "html_url": "https://github.com/octo-org/octo-app/issues/42",
        "user": {"login": "mona", "avatar_url": "https://avatars.example/mona.png"},
        "body": "The app crashes when the settings screen opens. Steps below.",
        "created_at": "2025-01-01T00:00:00Z",
        "updated_at": "2025-01-02T00:00:00Z",
    }
