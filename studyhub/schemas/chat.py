"""Pydantic schemas for tutor chat."""

from typing import Literal

from pydantic import BaseModel, Field


class ChatTurn(BaseModel):
    """One message in the conversation so far."""

    role: Literal["user", "assistant"]
    content: str = Field(..., min_length=1, max_length=10000)


class ChatRequest(BaseModel):
    """Conversation to continue, optionally focused on a topic."""

    messages: list[ChatTurn] = Field(..., min_length=1)
    topic: str | None = Field(None, max_length=255)


class ChatResponse(BaseModel):
    """Tutor reply."""

    response: str
