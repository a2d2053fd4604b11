"""Pydantic models for the REST server."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from issuecrush.github.models import IssueState


class HealthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = "ok"
    copilot_available: bool = Field(serialization_alias="copilotAvailable")
    message: str


class TokenExchangeRequest(BaseModel):
    code: str | None = None


class TokenExchangeResponse(BaseModel):
    session_id: str


class LogoutResponse(BaseModel):
    ok: bool = True


class IssueStateUpdate(BaseModel):
    state: IssueState


class SummaryRequest(BaseModel):
    # Accepts the normalized issue or a raw GitHub payload.
    issue: dict[str, Any] | None = None


class SummaryResponse(BaseModel):
    summary: str
    fallback: bool | None = None
