"""Prompt and fallback text for issue summaries."""

from __future__ import annotations

import re

from issuecrush.github.models import Issue

FALLBACK_CALL_TO_ACTION = "Review the full issue details to determine next steps."
MAX_FALLBACK_SENTENCE_LENGTH = 200

_SENTENCE_END_RE = re.compile(r"[.!?]\s")


def build_summary_prompt(issue: Issue) -> str:
    labels = ", ".join(issue.label_names) if issue.labels else "None"
    author = issue.author.login if issue.author is not None else "Unknown"
    body = issue.body or "No description provided."

    return f"""You are analyzing a GitHub issue to help a developer quickly understand it and decide how to handle it.

Issue Details:
- Title: {issue.title}
- Number: #{issue.number}
- Repository: {issue.repository or "Unknown"}
- State: {issue.state}
- Labels: {labels}
- Created: {issue.created_at or "Unknown"}
- Author: {author}

Issue Body:
{body}

Provide a concise 2-3 sentence summary that:
1. Explains what the issue is about
2. Identifies the key problem or request
3. Suggests a recommended action (e.g., "needs investigation", "ready to implement", "assign to backend team", "close as duplicate")

Keep it clear, actionable, and helpful for quick triage. No markdown formatting."""


def first_sentence(text: str) -> str:
    return _SENTENCE_END_RE.split(text, maxsplit=1)[0].strip()


def build_fallback_summary(issue: Issue) -> str:
    """Deterministic summary assembled from the issue's own fields."""

    parts = [issue.title]
    if issue.labels:
        parts.append("\nLabels: " + ", ".join(issue.label_names))
    if issue.body:
        sentence = first_sentence(issue.body)
        if sentence and len(sentence) < MAX_FALLBACK_SENTENCE_LENGTH:
            parts.append(f"\n\n{sentence.rstrip('.!?')}.")
    parts.append(f"\n\n{FALLBACK_CALL_TO_ACTION}")
    return "".join(parts)
