"""FastAPI dependencies shared by the route handlers."""

from __future__ import annotations

from fastapi import Depends, Request

from issuecrush.config import Settings
from issuecrush.server.errors import ApiError, SessionRequired
from issuecrush.sessions.store import ResolvedSession, SessionStore
from issuecrush.summary.orchestrator import SummaryOrchestrator


def get_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    if not isinstance(settings, Settings):
        # This should never happen for the real app, but keeps the API fail-fast.
        raise ApiError(500, "Server settings not configured")
    return settings


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_summarizer(request: Request) -> SummaryOrchestrator:
    return request.app.state.summarizer


async def require_session(
    request: Request, store: SessionStore = Depends(get_session_store)
) -> ResolvedSession:
    """Resolve the request's session or fail with 401."""

    session = await store.resolve_from_request(request.headers)
    if session is None:
        raise SessionRequired()
    return session
