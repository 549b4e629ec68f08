"""
Conversation Log: bounded in-process chat transcript per requester.

Supplies the ``history`` argument of the fallback responder and backs the
chat history endpoint.  Not persisted across restarts.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import ClassVar, Literal

from pydantic import BaseModel, Field

TITLE_LENGTH = 30


def _now() -> datetime:
    return datetime.now(timezone.utc)


def make_title(text: str) -> str:
    """First message, cut to 30 chars with an ellipsis if longer."""
    text = text.strip()
    if len(text) > TITLE_LENGTH:
        return f"{text[:TITLE_LENGTH]}..."
    return text


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=_now)


class Conversation(BaseModel):
    conversation_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    requester_id: str
    title: str = ""
    messages: list[ChatMessage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    MAX_MESSAGES: ClassVar[int] = 100

    def add(self, role: str, content: str) -> ChatMessage:
        message = ChatMessage(role=role, content=content)
        self.messages.append(message)
        if len(self.messages) > self.MAX_MESSAGES:
            self.messages = self.messages[-self.MAX_MESSAGES:]
        self.updated_at = message.timestamp
        return message

    def as_history(self) -> list[dict[str, str]]:
        return [{"role": m.role, "content": m.content} for m in self.messages]


class ConversationStore:
    """One running conversation per requester."""

    def __init__(self) -> None:
        self._conversations: dict[str, Conversation] = {}

    def get(self, requester_id: str) -> Conversation | None:
        return self._conversations.get(requester_id)

    def get_or_create(self, requester_id: str, first_text: str = "") -> Conversation:
        conversation = self._conversations.get(requester_id)
        if conversation is None:
            conversation = Conversation(
                requester_id=requester_id, title=make_title(first_text)
            )
            self._conversations[requester_id] = conversation
        return conversation

    def clear(self, requester_id: str) -> bool:
        return self._conversations.pop(requester_id, None) is not None
