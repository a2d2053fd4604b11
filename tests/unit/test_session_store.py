"""Unit tests for the session store."""

from __future__ import annotations

import json
import logging
import re
from datetime import timedelta

import pytest

from issuecrush.config import Settings
from issuecrush.sessions import store as store_module
from issuecrush.sessions.backends import (
    InMemorySessionBackend,
    RedisSessionBackend,
    SessionBackend,
    SessionStoreBusy,
    SessionStoreError,
)
from issuecrush.sessions.models import SessionRecord
from issuecrush.sessions.store import (
    SessionStore,
    build_session_store,
    session_id_from_headers,
)

HEX64 = re.compile(r"^[0-9a-f]{64}$")


class FlakyBackend(InMemorySessionBackend):
    """In-memory backend whose first N creates report a rate limit."""

    name = "flaky"

    def __init__(self, busy_times: int, retry_after: float | None = 0.25) -> None:
        super().__init__()
        self.busy_times = busy_times
        self.retry_after = retry_after
        self.create_calls = 0

    async def create(self, record: SessionRecord) -> None:
        self.create_calls += 1
        if self.create_calls <= self.busy_times:
            raise SessionStoreBusy("rate limited", retry_after=self.retry_after)
        await super().create(record)


class UnreachableBackend(SessionBackend):
    name = "unreachable"

    def __init__(self) -> None:
        self.initialize_calls = 0

    async def initialize(self) -> None:
        self.initialize_calls += 1
        raise SessionStoreError("connection refused")

    async def create(self, record: SessionRecord) -> None:
        raise AssertionError("should not be used")

    async def get(self, session_id: str) -> SessionRecord | None:
        raise AssertionError("should not be used")

    async def delete(self, session_id: str) -> None:
        raise AssertionError("should not be used")

    async def exists(self, session_id: str) -> bool:
        raise AssertionError("should not be used")


class BrokenReadBackend(InMemorySessionBackend):
    async def get(self, session_id: str) -> SessionRecord | None:
        raise SessionStoreError("read timed out")


@pytest.fixture
def record_sleeps(monkeypatch) -> list[float]:
    sleeps: list[float] = []

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    monkeypatch.setattr(store_module.asyncio, "sleep", fake_sleep)
    return sleeps


@pytest.mark.asyncio
async def test_create_then_get_returns_token(fake_clock) -> None:
    store = SessionStore(InMemorySessionBackend(), clock=fake_clock)

    session_id = await store.create_session("ghp_secret")

    assert HEX64.match(session_id)
    assert await store.get_token(session_id) == "ghp_secret"


@pytest.mark.asyncio
async def test_session_ids_are_unique() -> None:
    store = SessionStore(InMemorySessionBackend())

    ids = {await store.create_session("tok") for _ in range(20)}

    assert len(ids) == 20


@pytest.mark.asyncio
async def test_destroy_session_invalidates_and_is_idempotent() -> None:
    store = SessionStore(InMemorySessionBackend())
    session_id = await store.create_session("tok")

    await store.destroy_session(session_id)
    await store.destroy_session(session_id)
    await store.destroy_session(None)
    await store.destroy_session("not-a-session")

    assert await store.get_token(session_id) is None


@pytest.mark.asyncio
async def test_expired_session_reads_as_missing_and_is_evicted(fake_clock) -> None:
    store = SessionStore(InMemorySessionBackend(), ttl=timedelta(hours=24), clock=fake_clock)
    session_id = await store.create_session("tok")

    fake_clock.advance(hours=24)
    assert await store.get_token(session_id) == "tok"

    fake_clock.advance(seconds=1)
    assert await store.session_exists(session_id) is True
    assert await store.get_token(session_id) is None
    assert await store.session_exists(session_id) is False


@pytest.mark.parametrize("session_id", [None, "", "abc", "Z" * 64, "A" * 64, "0" * 63])
@pytest.mark.asyncio
async def test_malformed_ids_return_none(session_id) -> None:
    store = SessionStore(InMemorySessionBackend())

    assert await store.get_token(session_id) is None


@pytest.mark.asyncio
async def test_unknown_well_formed_id_returns_none() -> None:
    store = SessionStore(InMemorySessionBackend())

    assert await store.get_token("0" * 64) is None


@pytest.mark.asyncio
async def test_create_rejects_empty_token() -> None:
    store = SessionStore(InMemorySessionBackend())

    with pytest.raises(ValueError):
        await store.create_session("")


@pytest.mark.asyncio
async def test_rate_limited_create_retries_once_after_backoff(record_sleeps) -> None:
    backend = FlakyBackend(busy_times=1, retry_after=0.25)
    store = SessionStore(backend)

    session_id = await store.create_session("tok")

    assert backend.create_calls == 2
    assert record_sleeps == [0.25]
    assert await store.get_token(session_id) == "tok"


@pytest.mark.asyncio
async def test_rate_limited_create_uses_default_backoff(record_sleeps) -> None:
    backend = FlakyBackend(busy_times=1, retry_after=None)
    store = SessionStore(backend, default_retry_after=2.0)

    await store.create_session("tok")

    assert record_sleeps == [2.0]


@pytest.mark.asyncio
async def test_second_rate_limit_propagates(record_sleeps) -> None:
    backend = FlakyBackend(busy_times=2)
    store = SessionStore(backend)

    with pytest.raises(SessionStoreBusy):
        await store.create_session("tok")

    assert backend.create_calls == 2
    assert len(backend) == 0


@pytest.mark.asyncio
async def test_unreachable_backend_falls_back_to_memory_and_logs_once(caplog) -> None:
    primary = UnreachableBackend()
    store = SessionStore(primary)

    with caplog.at_level(logging.ERROR, logger="issuecrush.sessions.store"):
        session_id = await store.create_session("tok")
        assert await store.get_token(session_id) == "tok"
        await store.destroy_session(session_id)

    assert store.backend_name == "memory"
    assert primary.initialize_calls == 1
    failures = [r for r in caplog.records if "falling back" in r.getMessage()]
    assert len(failures) == 1


@pytest.mark.asyncio
async def test_no_primary_uses_memory_backend() -> None:
    store = SessionStore(None)

    await store.create_session("tok")

    assert store.backend_name == "memory"


@pytest.mark.asyncio
async def test_read_connectivity_failure_propagates() -> None:
    store = SessionStore(BrokenReadBackend())

    with pytest.raises(SessionStoreError):
        await store.get_token("a" * 64)


@pytest.mark.asyncio
async def test_resolve_prefers_custom_header() -> None:
    store = SessionStore(InMemorySessionBackend())
    preferred = await store.create_session("tok-preferred")
    other = await store.create_session("tok-other")

    resolved = await store.resolve_from_request(
        {"x-session-token": preferred, "authorization": f"Bearer {other}"}
    )

    assert resolved is not None
    assert resolved.session_id == preferred
    assert resolved.github_token == "tok-preferred"


@pytest.mark.asyncio
async def test_resolve_falls_back_to_bearer_header() -> None:
    store = SessionStore(InMemorySessionBackend())
    session_id = await store.create_session("tok")

    resolved = await store.resolve_from_request({"authorization": f"Bearer {session_id}"})

    assert resolved is not None
    assert resolved.github_token == "tok"
    assert await store.resolve_from_request({"authorization": f"Basic {session_id}"}) is None
    assert await store.resolve_from_request({}) is None


def test_session_id_from_headers() -> None:
    assert session_id_from_headers({"x-session-token": " abc "}) == "abc"
    assert session_id_from_headers({"authorization": "Bearer xyz"}) == "xyz"
    assert session_id_from_headers({"authorization": "Bearer "}) is None
    assert session_id_from_headers({}) is None


def test_record_serializes_with_camel_case_timestamps(fake_clock) -> None:
    record = SessionRecord.new(
        session_id="a" * 64, token="tok", now=fake_clock(), ttl=timedelta(hours=24)
    )

    payload = json.loads(record.to_json())

    assert set(payload) == {"id", "token", "createdAt", "expiresAt"}
    assert SessionRecord.from_json(record.to_json()) == record
    assert record.expires_at - record.created_at == timedelta(hours=24)


def test_build_session_store_selects_backend(settings: Settings) -> None:
    assert build_session_store(settings)._primary is None

    durable = build_session_store(
        settings.model_copy(update={"redis_url": "redis://localhost:6379/0"})
    )
    assert isinstance(durable._primary, RedisSessionBackend)
    assert durable.ttl == timedelta(seconds=settings.session_ttl_seconds)
