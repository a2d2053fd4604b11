"""FastAPI app factory.

Endpoints are intentionally thin wrappers over the session store, the GitHub
proxy and the summary orchestrator.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import APIRouter, Depends, FastAPI, Path, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from issuecrush import __version__
from issuecrush.config import Settings
from issuecrush.github.client import GitHubProxy
from issuecrush.github.models import Issue
from issuecrush.github.oauth import exchange_code
from issuecrush.server.dependencies import (
    get_session_store,
    get_settings,
    get_summarizer,
    require_session,
)
from issuecrush.server.errors import ApiError, register_exception_handlers
from issuecrush.server.models import (
    HealthResponse,
    IssueStateUpdate,
    LogoutResponse,
    SummaryRequest,
    SummaryResponse,
    TokenExchangeRequest,
    TokenExchangeResponse,
)
from issuecrush.sessions.store import (
    ResolvedSession,
    SessionStore,
    build_session_store,
    session_id_from_headers,
)
from issuecrush.summary.assistant import AssistantClient, OpenAIAssistantClient
from issuecrush.summary.orchestrator import AssistantClientFactory, SummaryOrchestrator

logger = logging.getLogger(__name__)


def build_summarizer(settings: Settings) -> SummaryOrchestrator:
    """Summary orchestrator backed by the configured OpenAI-compatible endpoint."""

    factory: AssistantClientFactory | None = None
    if settings.ai_enabled:
        factory = _openai_client_factory(settings)
    return SummaryOrchestrator(
        factory, model=settings.ai_model, timeout=settings.ai_timeout_seconds
    )


def _openai_client_factory(settings: Settings) -> AssistantClientFactory:
    def factory(token: str) -> AssistantClient:
        # Without a dedicated key, the user's own GitHub token authorizes the AI call.
        return OpenAIAssistantClient(
            api_key=settings.ai_api_key or token,
            base_url=settings.ai_base_url,
        )

    return factory


def _github_proxy(request: Request, token: str) -> GitHubProxy:
    settings = get_settings(request)
    return GitHubProxy(
        token,
        base_url=settings.github_base_url,
        page_size=settings.issues_page_size,
        transport=request.app.state.http_transport,
    )


router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(summarizer: SummaryOrchestrator = Depends(get_summarizer)) -> HealthResponse:
    if summarizer.available:
        message = "AI summaries powered by GitHub Copilot"
    else:
        message = "AI summaries disabled; fallback summaries only"
    return HealthResponse(status="ok", copilot_available=summarizer.available, message=message)


@router.post("/github-token", response_model=TokenExchangeResponse)
async def github_token(
    body: TokenExchangeRequest,
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> TokenExchangeResponse:
    if not body.code:
        raise ApiError(400, "No authorization code provided")

    settings = get_settings(request)
    if not settings.oauth_configured:
        logger.error("OAuth client id/secret not configured")
        raise ApiError(500, "Missing GitHub credentials")

    token = await exchange_code(
        body.code,
        client_id=settings.github_client_id,
        client_secret=settings.github_client_secret,
        oauth_url=settings.github_oauth_url,
        transport=request.app.state.http_transport,
    )
    session_id = await store.create_session(token)
    return TokenExchangeResponse(session_id=session_id)


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    request: Request, store: SessionStore = Depends(get_session_store)
) -> LogoutResponse:
    session_id = session_id_from_headers(request.headers)
    if session_id:
        await store.destroy_session(session_id)
    return LogoutResponse(ok=True)


@router.get("/issues", response_model=list[Issue])
async def list_issues(
    request: Request,
    repo: str | None = Query(default=None, description="Repository in the form 'owner/repo'"),
    labels: str | None = Query(default=None, description="Comma-separated label names (AND)"),
    session: ResolvedSession = Depends(require_session),
) -> list[Issue]:
    async with _github_proxy(request, session.github_token) as github:
        return await github.list_issues(repo=repo, labels=labels)


@router.patch("/issues/{owner}/{repo}/{number}", response_model=Issue)
async def update_issue_state(
    owner: str,
    repo: str,
    body: IssueStateUpdate,
    request: Request,
    number: int = Path(gt=0, description="Issue number"),
    session: ResolvedSession = Depends(require_session),
) -> Issue:
    async with _github_proxy(request, session.github_token) as github:
        return await github.set_issue_state(
            owner=owner, repo=repo, number=number, state=body.state
        )


@router.post("/ai-summary", response_model=SummaryResponse, response_model_exclude_none=True)
async def ai_summary(
    body: SummaryRequest,
    session: ResolvedSession = Depends(require_session),
    summarizer: SummaryOrchestrator = Depends(get_summarizer),
) -> SummaryResponse:
    result = await summarizer.summarize(body.issue, token=session.github_token)
    return SummaryResponse(summary=result.summary, fallback=True if result.fallback else None)


def create_app(
    settings: Settings | None = None,
    *,
    session_store: SessionStore | None = None,
    summarizer: SummaryOrchestrator | None = None,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Defaults to ``Settings()`` loaded from the environment.
        session_store: Defaults to the store selected by ``build_session_store``.
        summarizer: Defaults to ``build_summarizer(settings)``.
        http_transport: Optional httpx transport for GitHub calls (used in tests).
    """

    settings = settings or Settings()
    store = session_store or build_session_store(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting IssueCrush API", extra={"version": __version__})
        yield
        await store.close()
        logger.info("Shutting down IssueCrush API")

    app = FastAPI(
        title="IssueCrush API",
        version=__version__,
        description="Session-holding GitHub proxy and AI issue summaries.",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.session_store = store
    app.state.summarizer = summarizer or build_summarizer(settings)
    app.state.http_transport = http_transport

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):  # type: ignore[no-untyped-def]
        response = await call_next(request)
        logger.info(
            "Request handled",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
            },
        )
        return response

    register_exception_handlers(app)

    prefix = settings.normalized_api_prefix
    app.include_router(router, prefix=prefix)
    if prefix:
        # Plain liveness probe at the root as well.
        app.add_api_route("/health", health, methods=["GET"], response_model=HealthResponse)

    return app
