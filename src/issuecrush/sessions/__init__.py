"""Server-side sessions holding GitHub tokens."""

from issuecrush.sessions.backends import (
    InMemorySessionBackend,
    RedisSessionBackend,
    SessionBackend,
    SessionStoreBusy,
    SessionStoreError,
)
from issuecrush.sessions.models import SessionRecord
from issuecrush.sessions.store import (
    ResolvedSession,
    SessionStore,
    build_session_store,
    session_id_from_headers,
)

__all__ = [
    "InMemorySessionBackend",
    "RedisSessionBackend",
    "ResolvedSession",
    "SessionBackend",
    "SessionRecord",
    "SessionStore",
    "SessionStoreBusy",
    "SessionStoreError",
    "build_session_store",
    "session_id_from_headers",
]
