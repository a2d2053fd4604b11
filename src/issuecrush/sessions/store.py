"""Session store: opaque session ids mapped to GitHub tokens.

The client only ever holds the session id. Tokens stay on the server and are
never logged; session ids are shortened by the log formatter.
"""

from __future__ import annotations

import asyncio
import logging
import re
import secrets
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from issuecrush.config import DEFAULT_SESSION_TTL_SECONDS, Settings
from issuecrush.sessions.backends import (
    InMemorySessionBackend,
    RedisSessionBackend,
    SessionBackend,
    SessionStoreBusy,
    SessionStoreError,
)
from issuecrush.sessions.models import SessionRecord

logger = logging.getLogger(__name__)

SESSION_HEADER = "x-session-token"
_BEARER_PREFIX = "Bearer "
_SESSION_ID_RE = re.compile(r"^[0-9a-f]{64}$")


def generate_session_id() -> str:
    """Return 256 bits of randomness, hex-encoded."""

    return secrets.token_hex(32)


def is_well_formed_session_id(value: str | None) -> bool:
    return bool(value) and _SESSION_ID_RE.fullmatch(value or "") is not None


def session_id_from_headers(headers: Mapping[str, str]) -> str | None:
    """Extract the session id from request headers.

    ``X-Session-Token`` is preferred; ``Authorization: Bearer <id>`` is the
    compatibility fallback (some hosting front-ends rewrite ``Authorization``).
    """

    session_id = (headers.get(SESSION_HEADER) or "").strip()
    if session_id:
        return session_id

    auth = headers.get("authorization") or ""
    if auth.startswith(_BEARER_PREFIX):
        return auth[len(_BEARER_PREFIX) :].strip() or None
    return None


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True)
class ResolvedSession:
    session_id: str
    github_token: str


class SessionStore:
    """Create, read and destroy sessions over a pluggable backend.

    The primary backend is initialized lazily on first use. If it cannot be
    reached the store degrades to an in-memory map (logged once) and keeps the
    same external contract.
    """

    def __init__(
        self,
        primary: SessionBackend | None = None,
        *,
        ttl: timedelta = timedelta(seconds=DEFAULT_SESSION_TTL_SECONDS),
        clock: Callable[[], datetime] = _utc_now,
        default_retry_after: float = 1.0,
    ) -> None:
        self._primary = primary
        self._ttl = ttl
        self._clock = clock
        self._default_retry_after = default_retry_after
        self._backend: SessionBackend | None = None
        self._init_lock = asyncio.Lock()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    @property
    def backend_name(self) -> str | None:
        """Name of the active backend, or None before first use."""

        return self._backend.name if self._backend is not None else None

    async def _ensure_backend(self) -> SessionBackend:
        if self._backend is not None:
            return self._backend

        async with self._init_lock:
            if self._backend is not None:
                return self._backend

            if self._primary is None:
                logger.warning(
                    "Durable session store not configured; using in-memory sessions "
                    "(sessions will not survive a restart)"
                )
                self._backend = InMemorySessionBackend()
                return self._backend

            try:
                await self._primary.initialize()
            except SessionStoreError as e:
                logger.error(
                    "Session store init failed, falling back to in-memory",
                    extra={"backend": self._primary.name, "error": str(e)},
                )
                self._backend = InMemorySessionBackend()
                return self._backend

            logger.info("Session store ready", extra={"backend": self._primary.name})
            self._backend = self._primary
            return self._backend

    async def create_session(self, token: str) -> str:
        """Store ``token`` under a fresh session id and return the id."""

        if not token:
            raise ValueError("token is required")

        backend = await self._ensure_backend()
        now = self._clock()
        record = SessionRecord.new(
            session_id=generate_session_id(), token=token, now=now, ttl=self._ttl
        )

        try:
            await backend.create(record)
        except SessionStoreBusy as e:
            delay = e.retry_after if e.retry_after is not None else self._default_retry_after
            logger.warning(
                "Session store rate limited, retrying once",
                extra={"retry_after_seconds": delay, "session": record.id},
            )
            await asyncio.sleep(delay)
            await backend.create(record)

        logger.info(
            "Session created", extra={"session": record.id, "backend": backend.name}
        )
        return record.id

    async def get_token(self, session_id: str | None) -> str | None:
        """Return the token for a valid session, else None.

        Expired records are deleted before returning None. Only store connectivity
        failures raise.
        """

        if session_id is None or not is_well_formed_session_id(session_id):
            return None

        backend = await self._ensure_backend()
        record = await backend.get(session_id)
        if record is None:
            logger.debug("Session not found", extra={"session": session_id})
            return None

        if record.is_expired(self._clock()):
            logger.info("Session expired", extra={"session": session_id})
            await backend.delete(session_id)
            return None

        return record.token

    async def destroy_session(self, session_id: str | None) -> None:
        if session_id is None or not is_well_formed_session_id(session_id):
            return

        backend = await self._ensure_backend()
        await backend.delete(session_id)
        logger.info("Session destroyed", extra={"session": session_id})

    async def session_exists(self, session_id: str) -> bool:
        """Raw existence check; does not evaluate expiry."""

        backend = await self._ensure_backend()
        return await backend.exists(session_id)

    async def resolve_from_request(self, headers: Mapping[str, str]) -> ResolvedSession | None:
        session_id = session_id_from_headers(headers)
        if not session_id:
            return None
        token = await self.get_token(session_id)
        if token is None:
            return None
        return ResolvedSession(session_id=session_id, github_token=token)

    async def close(self) -> None:
        if self._primary is not None:
            await self._primary.close()
        if self._backend is not None and self._backend is not self._primary:
            await self._backend.close()


def build_session_store(settings: Settings) -> SessionStore:
    """Select the session backend from configuration."""

    ttl = timedelta(seconds=settings.session_ttl_seconds)
    primary: SessionBackend | None = None
    if settings.redis_url.strip():
        primary = RedisSessionBackend(
            url=settings.redis_url.strip(),
            ttl=ttl,
            key_prefix=settings.redis_key_prefix,
            retry_after=settings.store_retry_after_seconds,
        )
    return SessionStore(
        primary,
        ttl=ttl,
        default_retry_after=settings.store_retry_after_seconds,
    )
