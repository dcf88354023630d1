"""Conversation, turn and citation models.

A Conversation is a persisted chat session owned by one user.  Turns are
append-only; ``context_sources`` records every Source that has contributed
retrieved context and only ever grows.

Citations are stored on the *user* turn that triggered retrieval, not on
the assistant turn that answered it.  Clients that render an answer's
sources read them from the preceding user turn.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from lorekeeper.models.source import SourceKind


class TurnRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Citation(BaseModel):
    """A reference from an answer back to the chunk that informed it."""

    model_config = ConfigDict(frozen=True)

    source_id: str
    source_type: SourceKind
    title: str
    start_time: float = Field(default=0.0, ge=0.0, description="Chunk offset in seconds.")
    timestamp: str = Field(default="0:00", description="start_time rendered as m:ss.")
    snippet: str = Field(description="Leading excerpt of the chunk text.")
    score: float = Field(ge=0.0, le=1.0)
    url: str | None = None
    thumbnail_url: str | None = None
    author: str | None = None


class ConversationTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: TurnRole
    content: str
    timestamp: datetime
    citations: list[Citation] = Field(default_factory=list)


class ChatMessage(BaseModel):
    """A role-tagged history entry handed to the generation service."""

    model_config = ConfigDict(frozen=True)

    role: TurnRole
    content: str


class Conversation(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    title: str
    custom_prompt: str | None = None
    turns: list[ConversationTurn] = Field(default_factory=list)
    context_sources: list[str] = Field(
        default_factory=list,
        description="Ordered, de-duplicated ids of Sources that supplied context.",
    )
    last_message_at: datetime
    created_at: datetime
    updated_at: datetime

    def history(self) -> list[ChatMessage]:
        return [ChatMessage(role=turn.role, content=turn.content) for turn in self.turns]


class ConversationSummary(BaseModel):
    """Listing row: a conversation without its turns."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    custom_prompt: str | None = None
    message_count: int = 0
    last_message_at: datetime
    created_at: datetime


class ChatReply(BaseModel):
    """What the orchestrator returns for one user message."""

    model_config = ConfigDict(frozen=True)

    answer: str
    citations: list[Citation] = Field(default_factory=list)
    conversation_id: str
    retrieval_performed: bool = False
