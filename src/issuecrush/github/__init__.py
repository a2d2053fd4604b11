"""GitHub access on behalf of a session."""

from issuecrush.github.client import (
    GitHubNotFound,
    GitHubProxy,
    GitHubProxyError,
    GitHubUnauthorized,
)
from issuecrush.github.models import Issue, IssueAuthor, IssueLabel, extract_repo_path
from issuecrush.github.oauth import OAuthExchangeError, exchange_code

__all__ = [
    "GitHubNotFound",
    "GitHubProxy",
    "GitHubProxyError",
    "GitHubUnauthorized",
    "Issue",
    "IssueAuthor",
    "IssueLabel",
    "OAuthExchangeError",
    "exchange_code",
    "extract_repo_path",
]
