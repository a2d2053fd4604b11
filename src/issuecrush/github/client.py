"""GitHub REST proxy.

All upstream calls are made here on behalf of a session, with the token resolved
server-side. No retries: failures are surfaced immediately so the client can
tell the user what did not happen (e.g. "close failed, issue unchanged").
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from issuecrush.github.models import Issue, IssueState

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Unauthorized. Please sign in again."
REPO_NOT_FOUND_MESSAGE = "Repository not found or you lack access."
LIST_FAILED_MESSAGE = "Failed to fetch issues."

_VALID_STATES: frozenset[str] = frozenset({"open", "closed"})


class GitHubProxyError(Exception):
    """An upstream call failed. ``status_code`` is suitable for the HTTP response."""

    def __init__(self, message: str, *, status_code: int = 502) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class GitHubUnauthorized(GitHubProxyError):
    """The upstream token was rejected; the session should be treated as invalid."""

    def __init__(self, message: str = UNAUTHORIZED_MESSAGE) -> None:
        super().__init__(message, status_code=401)


class GitHubNotFound(GitHubProxyError):
    def __init__(self, message: str = REPO_NOT_FOUND_MESSAGE) -> None:
        super().__init__(message, status_code=404)


def parse_label_filter(labels: str | None) -> list[str]:
    """Split a comma-separated label filter into trimmed, non-empty names."""

    if not labels:
        return []
    return [part.strip() for part in labels.split(",") if part.strip()]


def build_search_query(labels: list[str]) -> str:
    """Search query for open issues assigned to the authenticated user.

    Each label is quoted independently; GitHub search ANDs the qualifiers.
    """

    parts = ["is:open", "is:issue", "assignee:@me"]
    parts.extend(f'label:"{label}"' for label in labels)
    return " ".join(parts)


def _upstream_message(resp: httpx.Response) -> str | None:
    try:
        data = resp.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        message = data.get("message")
        if isinstance(message, str) and message.strip():
            return message
    return None


class GitHubProxy:
    """Async wrapper around the GitHub issues endpoints used by the triage client."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = "https://api.github.com",
        page_size: int = 100,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not token:
            raise ValueError("GitHub token is required")
        if not 1 <= page_size <= 100:
            raise ValueError("page_size must be between 1 and 100")

        self._rest_base_url = base_url.rstrip("/")
        self._page_size = page_size
        self._client = httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "issuecrush",
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> GitHubProxy:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _repo_url(self, *, repository: str, path: str = "") -> str:
        repository = repository.strip().strip("/")
        path = path.lstrip("/")
        if not path:
            return f"{self._rest_base_url}/repos/{repository}"
        return f"{self._rest_base_url}/repos/{repository}/{path}"

    def _issue_url(self, *, repository: str, number: int) -> str:
        if number <= 0:
            raise ValueError("issue number must be a positive integer")
        return self._repo_url(repository=repository, path=f"issues/{number}")

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(
                "GitHub request failed", extra={"method": method, "url": url, "error": str(e)}
            )
            raise GitHubProxyError(f"GitHub request failed: {e}", status_code=502) from e

    async def list_issues(self, *, repo: str | None = None, labels: str | None = None) -> list[Issue]:
        """Return open issues, excluding pull requests.

        With ``repo`` ("owner/repo") the repository's open issues are listed;
        otherwise issues assigned to the authenticated user are searched. Only a
        single page is fetched.
        """

        label_names = parse_label_filter(labels)
        repo = (repo or "").strip()

        params: dict[str, str | int]
        if repo:
            url = self._repo_url(repository=repo, path="issues")
            params = {"state": "open", "per_page": self._page_size}
            if label_names:
                params["labels"] = ",".join(label_names)
        else:
            url = f"{self._rest_base_url}/search/issues"
            params = {
                "q": build_search_query(label_names),
                "per_page": self._page_size,
                "sort": "updated",
                "order": "desc",
            }

        resp = await self._send("GET", url, params=params)

        if resp.status_code == 401:
            raise GitHubUnauthorized()
        if resp.status_code == 404:
            raise GitHubNotFound()
        if resp.is_error:
            raise GitHubProxyError(
                _upstream_message(resp) or LIST_FAILED_MESSAGE, status_code=resp.status_code
            )

        data = resp.json()
        raw_items = data if repo else (data.get("items") if isinstance(data, dict) else None)
        if not isinstance(raw_items, list):
            raise GitHubProxyError("Unexpected response from GitHub", status_code=502)

        if len(raw_items) >= self._page_size:
            # TODO: follow the Link header if triage needs more than one page.
            logger.debug(
                "Issue listing hit the page size; further issues are not returned",
                extra={"page_size": self._page_size, "repo": repo or None},
            )

        issues = [
            Issue.from_payload(item)
            for item in raw_items
            if isinstance(item, dict) and "pull_request" not in item
        ]
        logger.info(
            "Fetched issues",
            extra={"repo": repo or None, "labels": label_names, "count": len(issues)},
        )
        return issues

    async def set_issue_state(
        self, *, owner: str, repo: str, number: int, state: IssueState
    ) -> Issue:
        """Open or close a single issue and return its updated representation."""

        if state not in _VALID_STATES:
            raise ValueError(f"Invalid issue state: {state!r}")

        url = self._issue_url(repository=f"{owner}/{repo}", number=number)
        resp = await self._send("PATCH", url, json={"state": state})

        if resp.status_code == 401:
            raise GitHubUnauthorized()
        if resp.status_code == 404:
            raise GitHubNotFound(
                f"Issue not found or you lack access. Unable to set issue to {state}."
            )
        if resp.is_error:
            raise GitHubProxyError(
                _upstream_message(resp) or f"Unable to set issue to {state}.",
                status_code=resp.status_code,
            )

        logger.info(
            "Updated issue state",
            extra={"repo": f"{owner}/{repo}", "issue_number": number, "state": state},
        )
        return Issue.from_payload(resp.json())
