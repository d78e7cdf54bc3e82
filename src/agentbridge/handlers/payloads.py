"""Structured payloads carried in UI message content."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class UIModel(BaseModel):
    """Base model accepting both camelCase and snake_case keys."""

    model_config = ConfigDict(populate_by_name=True)


class PermissionDecisionPayload(UIModel):
    request_id: str = Field(alias="requestId")
    allow: bool


class LoadHistoryPayload(UIModel):
    session_id: str = Field(alias="sessionId", min_length=1)
    project_path: str | None = Field(default=None, alias="projectPath")


class SendMessagePayload(UIModel):
    text: str
