"""Session record persisted by the session backends."""

from __future__ import annotations

from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field


class SessionRecord(BaseModel):
    """Server-held mapping from an opaque session id to a GitHub token.

    Serialized (by alias) as ``{"id", "token", "createdAt", "expiresAt"}``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    token: str
    created_at: datetime = Field(alias="createdAt")
    expires_at: datetime = Field(alias="expiresAt")

    @classmethod
    def new(cls, *, session_id: str, token: str, now: datetime, ttl: timedelta) -> SessionRecord:
        return cls(id=session_id, token=token, created_at=now, expires_at=now + ttl)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str | bytes) -> SessionRecord:
        return cls.model_validate_json(raw)
