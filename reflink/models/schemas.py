from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# --- Chats ---


class ChatMessage(BaseModel):
    id: str
    role: Literal["user", "assistant", "system"] = "assistant"
    content: str = ""
    annotations: list[dict[str, Any]] = Field(default_factory=list)


class Chat(BaseModel):
    id: str
    title: str | None = None
    messages: list[ChatMessage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


# --- Requests ---


class AnnotateRequest(BaseModel):
    text: str | None = None


class FinishedAnswer(BaseModel):
    id: str
    content: str


class AnswerFinishedRequest(BaseModel):
    message: FinishedAnswer


# --- Responses ---


class ReferenceEntryModel(BaseModel):
    title: str
    url: str
    confidence: float | None = None


class AnnotationsData(BaseModel):
    annotations: list[ReferenceEntryModel]


class AnnotationsResponse(BaseModel):
    type: str = "reference-annotations"
    data: AnnotationsData
    timestamp: datetime
