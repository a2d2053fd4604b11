"""Storage backends for sessions.

Two implementations share one async interface:
- :class:`InMemorySessionBackend` for local development (no cross-restart persistence)
- :class:`RedisSessionBackend` for durable sessions with native TTL

Both provide per-key atomic create/read/delete, so no in-process locking is needed.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import timedelta

from pydantic import ValidationError
from redis import asyncio as aioredis
from redis.exceptions import BusyLoadingError, RedisError, TryAgainError

from issuecrush.sessions.models import SessionRecord

logger = logging.getLogger(__name__)


class SessionStoreError(Exception):
    """Raised when the backing store cannot be reached or rejects an operation."""


class SessionStoreBusy(SessionStoreError):
    """Raised when the backing store signals a transient rate limit or write conflict."""

    def __init__(self, message: str, *, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class SessionBackend(ABC):
    """Abstract async key-value storage for :class:`SessionRecord` objects."""

    name: str = "abstract"

    async def initialize(self) -> None:
        """Verify the backend is usable. Raises :class:`SessionStoreError` if not."""

    @abstractmethod
    async def create(self, record: SessionRecord) -> None:
        """Write a new record. Existing ids are never overwritten."""

    @abstractmethod
    async def get(self, session_id: str) -> SessionRecord | None:
        """Return the record or None when absent."""

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        """Delete the record. Absence is not an error."""

    @abstractmethod
    async def exists(self, session_id: str) -> bool:
        """Return True if a record is stored under the id."""

    async def close(self) -> None:
        """Release backend resources."""


class InMemorySessionBackend(SessionBackend):
    name = "memory"

    def __init__(self) -> None:
        self._records: dict[str, SessionRecord] = {}

    async def create(self, record: SessionRecord) -> None:
        if record.id in self._records:
            raise SessionStoreError("Session id already exists")
        self._records[record.id] = record

    async def get(self, session_id: str) -> SessionRecord | None:
        return self._records.get(session_id)

    async def delete(self, session_id: str) -> None:
        self._records.pop(session_id, None)

    async def exists(self, session_id: str) -> bool:
        return session_id in self._records

    def __len__(self) -> int:
        return len(self._records)


class RedisSessionBackend(SessionBackend):
    """Redis-backed sessions.

    Records are stored as JSON under ``{key_prefix}{session_id}`` and written with
    ``SET NX EX`` so Redis expires them natively as well.
    """

    name = "redis"

    def __init__(
        self,
        *,
        ttl: timedelta,
        url: str = "",
        key_prefix: str = "issuecrush:session:",
        client: aioredis.Redis | None = None,
        retry_after: float | None = None,
    ) -> None:
        if client is None:
            if not url:
                raise ValueError("Redis URL is required")
            client = aioredis.from_url(url, decode_responses=True)
        self._client = client
        self._ttl_seconds = max(1, int(ttl.total_seconds()))
        self._key_prefix = key_prefix
        self._retry_after = retry_after

    def _key(self, session_id: str) -> str:
        return f"{self._key_prefix}{session_id}"

    def _translate(self, exc: Exception, operation: str) -> SessionStoreError:
        if isinstance(exc, BusyLoadingError | TryAgainError):
            return SessionStoreBusy(
                f"Redis busy during {operation}: {exc}", retry_after=self._retry_after
            )
        return SessionStoreError(f"Redis {operation} failed: {exc}")

    async def initialize(self) -> None:
        try:
            await self._client.ping()
        except (RedisError, OSError) as e:
            raise self._translate(e, "ping") from e

    async def create(self, record: SessionRecord) -> None:
        try:
            written = await self._client.set(
                self._key(record.id), record.to_json(), nx=True, ex=self._ttl_seconds
            )
        except (RedisError, OSError) as e:
            raise self._translate(e, "create") from e
        if not written:
            raise SessionStoreError("Session id already exists")

    async def get(self, session_id: str) -> SessionRecord | None:
        try:
            raw = await self._client.get(self._key(session_id))
        except (RedisError, OSError) as e:
            raise self._translate(e, "read") from e
        if raw is None:
            return None
        try:
            return SessionRecord.from_json(raw)
        except ValidationError:
            # An unreadable record cannot resolve to a token; treat it as absent.
            logger.warning("Discarding unreadable session record", extra={"backend": self.name})
            await self.delete(session_id)
            return None

    async def delete(self, session_id: str) -> None:
        try:
            await self._client.delete(self._key(session_id))
        except (RedisError, OSError) as e:
            raise self._translate(e, "delete") from e

    async def exists(self, session_id: str) -> bool:
        try:
            return bool(await self._client.exists(self._key(session_id)))
        except (RedisError, OSError) as e:
            raise self._translate(e, "exists") from e

    async def close(self) -> None:
        await self._client.aclose()
