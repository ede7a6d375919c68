"""Data models for stored conversations."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

_TICK = datetime.resolution


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    sender: Literal["user", "ai"]
    text: str
    timestamp: datetime = Field(default_factory=utcnow)


class ConversationSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str = ""
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class Conversation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str = ""
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")
    messages: List[Message] = Field(default_factory=list)

    def summary(self) -> ConversationSummary:
        return ConversationSummary(
            id=self.id,
            title=self.title,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def touch(self) -> None:
        """Refresh ``updated_at``, keeping it strictly increasing."""
        now = utcnow()
        if now <= self.updated_at:
            now = self.updated_at + _TICK
        self.updated_at = now

