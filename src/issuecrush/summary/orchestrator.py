"""AI summary orchestration.

Per request:

1. validate the issue payload
2. open a fresh assistant client + session and send the prompt
3. race the assistant message, an error, and the timeout; first one wins
4. tear down the session and client (best-effort)
5. on failure either report that Copilot access is required, or fall back to a
   deterministic summary built from the issue itself

Sessions are never pooled across requests.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from issuecrush.github.models import Issue
from issuecrush.summary.assistant import AssistantClient, AssistantSession
from issuecrush.summary.prompts import build_fallback_summary, build_summary_prompt

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
COPILOT_REQUIRED_ERROR = "Copilot access required"
COPILOT_REQUIRED_MESSAGE = "AI summaries require a GitHub Copilot subscription."

_ACCESS_TERMS: tuple[str, ...] = (
    "unauthorized",
    "forbidden",
    "401",
    "403",
    "copilot",
    "subscription",
)

AssistantClientFactory = Callable[[str], AssistantClient]


class MissingIssueError(ValueError):
    """Raised when a summary is requested without an issue payload."""


class AssistantError(Exception):
    """The assistant reported an error or produced nothing usable."""


class AssistantTimeout(AssistantError):
    pass


class CopilotAccessRequired(Exception):
    """The assistant rejected the caller for lack of access or subscription."""

    def __init__(self, message: str = COPILOT_REQUIRED_MESSAGE) -> None:
        super().__init__(message)
        self.message = message


@dataclass(frozen=True, slots=True)
class SummaryResult:
    summary: str
    fallback: bool = False


def requires_copilot_access(failure: str) -> bool:
    lowered = failure.lower()
    return any(term in lowered for term in _ACCESS_TERMS)


class SummaryOrchestrator:
    def __init__(
        self,
        client_factory: AssistantClientFactory | None,
        *,
        model: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._client_factory = client_factory
        self._model = model
        self._timeout = timeout

    @property
    def available(self) -> bool:
        return self._client_factory is not None

    async def summarize(
        self, issue: Issue | Mapping[str, Any] | None, *, token: str
    ) -> SummaryResult:
        """Summarize one issue.

        Raises:
            MissingIssueError: if no issue was provided.
            CopilotAccessRequired: if the assistant rejected the caller.
        """

        if not issue:
            raise MissingIssueError("No issue provided")
        if not isinstance(issue, Issue):
            issue = Issue.from_payload(dict(issue))

        if self._client_factory is None:
            return SummaryResult(summary=build_fallback_summary(issue), fallback=True)

        logger.info(
            "Generating AI summary",
            extra={"issue_number": issue.number, "repo": issue.repository or None},
        )
        try:
            summary = await self._attempt(self._client_factory, issue, token)
        except Exception as e:  # noqa: BLE001 (every AI failure is classified below)
            failure = str(e) or type(e).__name__
            if requires_copilot_access(failure):
                logger.warning("AI summary rejected: access required", extra={"error": failure})
                raise CopilotAccessRequired() from e

            logger.warning(
                "AI summary failed, using fallback",
                extra={"issue_number": issue.number, "error": failure},
            )
            return SummaryResult(summary=build_fallback_summary(issue), fallback=True)

        return SummaryResult(summary=summary, fallback=False)

    async def _attempt(
        self, factory: AssistantClientFactory, issue: Issue, token: str
    ) -> str:
        client: AssistantClient | None = None
        session: AssistantSession | None = None
        try:
            client = factory(token)
            await client.start()
            session = await client.create_session(model=self._model)
            return await self._race(session, build_summary_prompt(issue))
        finally:
            await _teardown(session, client)

    async def _race(self, session: AssistantSession, prompt: str) -> str:
        message = asyncio.ensure_future(session.wait_for_message())
        error = asyncio.ensure_future(session.wait_for_error())
        try:
            # The deadline covers submission too; a stalled send is a timeout.
            async with asyncio.timeout(self._timeout):
                await session.send(prompt)
                done, _pending = await asyncio.wait(
                    {message, error}, return_when=asyncio.FIRST_COMPLETED
                )
        except TimeoutError as e:
            raise AssistantTimeout(
                f"Assistant response timed out after {self._timeout:g}s"
            ) from e
        finally:
            for waiter in (message, error):
                waiter.cancel()
            await asyncio.gather(message, error, return_exceptions=True)

        if message in done:
            content = message.result()
            if not content.strip():
                raise AssistantError("No content received from the assistant")
            return content
        raise AssistantError(error.result() or "Assistant session error")


async def _teardown(session: AssistantSession | None, client: AssistantClient | None) -> None:
    if session is not None:
        try:
            await session.destroy()
        except Exception:  # noqa: BLE001 (teardown is best-effort)
            logger.debug("Assistant session teardown failed", exc_info=True)
    if client is not None:
        try:
            await client.stop()
        except Exception:  # noqa: BLE001 (teardown is best-effort)
            logger.debug("Assistant client teardown failed", exc_info=True)
