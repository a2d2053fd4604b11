"""Normalized issue schema returned by the proxy.

GitHub's issue and search payloads locate the repository differently
(``repository.full_name`` vs. ``repository_url``). Clients only see this schema,
so they never parse upstream URLs themselves.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

IssueState = Literal["open", "closed"]

_REPOS_MARKER = "/repos/"


def extract_repo_path(repository_url: str) -> str:
    """Return ``owner/repo`` from a GitHub API repository URL.

    URLs without a ``/repos/`` segment are returned unchanged.
    """

    idx = repository_url.find(_REPOS_MARKER)
    if idx == -1:
        return repository_url
    return repository_url[idx + len(_REPOS_MARKER) :].strip("/")


class IssueLabel(BaseModel):
    id: int | None = None
    name: str
    color: str = ""
    description: str | None = None


class IssueAuthor(BaseModel):
    login: str
    avatar_url: str | None = None


class Issue(BaseModel):
    id: int
    number: int
    title: str
    state: IssueState
    labels: list[IssueLabel] = Field(default_factory=list)
    repository: str = ""
    repository_url: str = ""
    html_url: str = ""
    author: IssueAuthor | None = None
    body: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    # Attached by the client after a summary request; the server never stores it.
    ai_summary: str | None = None

    @property
    def owner_and_name(self) -> tuple[str, str]:
        owner, _, name = self.repository.partition("/")
        return owner, name

    @property
    def label_names(self) -> list[str]:
        return [label.name for label in self.labels]

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Issue:
        """Build an issue from a raw GitHub payload or an already-normalized one."""

        return cls(
            id=_as_int(payload.get("id")),
            number=_as_int(payload.get("number")),
            title=str(payload.get("title") or ""),
            state="closed" if payload.get("state") == "closed" else "open",
            labels=_parse_labels(payload.get("labels")),
            repository=_repository_name(payload),
            repository_url=str(payload.get("repository_url") or ""),
            html_url=str(payload.get("html_url") or ""),
            author=_parse_author(payload.get("author") or payload.get("user")),
            body=_optional_str(payload.get("body")),
            created_at=_optional_str(payload.get("created_at")),
            updated_at=_optional_str(payload.get("updated_at")),
            ai_summary=_optional_str(payload.get("ai_summary") or payload.get("aiSummary")),
        )


def _as_int(value: object) -> int:
    # Client-posted issues are not trusted to carry well-typed ids.
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 0


def _optional_str(value: object) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    return None


def _repository_name(payload: dict[str, Any]) -> str:
    repository = payload.get("repository")
    if isinstance(repository, str) and repository.strip():
        return repository.strip()
    if isinstance(repository, dict):
        full_name = repository.get("full_name")
        if isinstance(full_name, str) and full_name.strip():
            return full_name.strip()

    repository_url = payload.get("repository_url")
    if isinstance(repository_url, str) and _REPOS_MARKER in repository_url:
        return extract_repo_path(repository_url)
    return ""


def _parse_labels(value: object) -> list[IssueLabel]:
    if not isinstance(value, list):
        return []

    labels: list[IssueLabel] = []
    for item in value:
        # The REST API may return plain label names in some payloads.
        if isinstance(item, str) and item.strip():
            labels.append(IssueLabel(name=item.strip()))
        elif isinstance(item, dict) and isinstance(item.get("name"), str):
            labels.append(
                IssueLabel(
                    id=item.get("id") if isinstance(item.get("id"), int) else None,
                    name=item["name"],
                    color=str(item.get("color") or ""),
                    description=_optional_str(item.get("description")),
                )
            )
    return labels


def _parse_author(value: object) -> IssueAuthor | None:
    if not isinstance(value, dict):
        return None
    login = value.get("login")
    if not isinstance(login, str) or not login.strip():
        return None
    avatar = value.get("avatar_url")
    return IssueAuthor(login=login, avatar_url=avatar if isinstance(avatar, str) else None)
