"""Short AI summaries of issues, with a deterministic fallback."""

from issuecrush.summary.assistant import (
    AssistantClient,
    AssistantSession,
    OpenAIAssistantClient,
)
from issuecrush.summary.orchestrator import (
    CopilotAccessRequired,
    MissingIssueError,
    SummaryOrchestrator,
    SummaryResult,
)

__all__ = [
    "AssistantClient",
    "AssistantSession",
    "CopilotAccessRequired",
    "MissingIssueError",
    "OpenAIAssistantClient",
    "SummaryOrchestrator",
    "SummaryResult",
]
