"""Translation of domain errors into JSON error responses.

Every error body carries a human-readable ``error`` field.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from issuecrush.github.client import GitHubProxyError
from issuecrush.github.oauth import OAuthExchangeError
from issuecrush.sessions.backends import SessionStoreError
from issuecrush.summary.orchestrator import (
    COPILOT_REQUIRED_ERROR,
    CopilotAccessRequired,
    MissingIssueError,
)

logger = logging.getLogger(__name__)

SESSION_INVALID_MESSAGE = "Session expired or invalid. Please sign in again."


class ApiError(Exception):
    """An error raised by a route handler with an explicit status and body."""

    def __init__(self, status_code: int, error: str, **extra: Any) -> None:
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.extra = extra

    def to_body(self) -> dict[str, Any]:
        return {"error": self.error, **self.extra}


class SessionRequired(ApiError):
    """No valid session accompanied a request that needs one."""

    def __init__(self) -> None:
        super().__init__(401, SESSION_INVALID_MESSAGE)


def _json_error(status_code: int, body: dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(_request: Request, exc: ApiError) -> JSONResponse:
        return _json_error(exc.status_code, exc.to_body())

    @app.exception_handler(GitHubProxyError)
    async def _github_error(request: Request, exc: GitHubProxyError) -> JSONResponse:
        logger.warning(
            "GitHub proxy error",
            extra={"path": request.url.path, "status": exc.status_code, "error": exc.message},
        )
        return _json_error(exc.status_code, {"error": exc.message})

    @app.exception_handler(OAuthExchangeError)
    async def _oauth_error(_request: Request, exc: OAuthExchangeError) -> JSONResponse:
        body: dict[str, Any] = {"error": exc.error}
        if exc.description:
            body["error_description"] = exc.description
        return _json_error(exc.status_code, body)

    @app.exception_handler(SessionStoreError)
    async def _store_error(request: Request, exc: SessionStoreError) -> JSONResponse:
        logger.error("Session store error", extra={"path": request.url.path, "error": str(exc)})
        return _json_error(503, {"error": "Session store unavailable"})

    @app.exception_handler(MissingIssueError)
    async def _missing_issue(_request: Request, exc: MissingIssueError) -> JSONResponse:
        return _json_error(400, {"error": str(exc)})

    @app.exception_handler(CopilotAccessRequired)
    async def _copilot_required(_request: Request, exc: CopilotAccessRequired) -> JSONResponse:
        return _json_error(
            403,
            {"error": COPILOT_REQUIRED_ERROR, "message": exc.message, "requiresCopilot": True},
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return _json_error(
            400, {"error": "Invalid request", "details": jsonable_encoder(exc.errors())}
        )

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception", extra={"path": request.url.path})
        return _json_error(500, {"error": "Internal server error"})
