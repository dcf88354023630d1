"""Pydantic request/response schemas for the Lorekeeper API.

Defines the public contract for every REST endpoint: imports, the source
library, chat, conversations, preferences, health and corpus stats.

# ─── HOW SCHEMAS WORK (Junior Developer Guide) ────────────────────────
#
# These models define the *shape* of HTTP request and response bodies.
# FastAPI uses them to validate incoming JSON (bad requests get a 422),
# to serialize responses (via response_model=...) and to generate the
# OpenAPI docs at /docs.
#
# Convention: request schemas end with "Request", response schemas with
# "Response".  Where a domain model already has the right shape (Source,
# Conversation, UserPreferences, CorpusStats) the routes return it as-is
# instead of copying it into a look-alike schema.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from lorekeeper.models.conversation import Citation, ConversationSummary
from lorekeeper.models.source import Source, SourceKind


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------


class ImportVideoRequest(BaseModel):
    url: str = Field(..., min_length=1, description="YouTube watch/short/embed URL or video id.")


class ImportPlaylistRequest(BaseModel):
    url: str = Field(..., min_length=1, description="YouTube URL containing a list= parameter.")


class ImportTextRequest(BaseModel):
    """Raw text pasted by the user (an article, notes, a transcript)."""

    content: str = Field(..., min_length=1)
    title: str | None = Field(default=None, max_length=500)
    author: str | None = Field(default=None, max_length=200)
    url: str | None = None


class IngestionResponse(BaseModel):
    """Returned by every single-source import endpoint."""

    source_id: str
    title: str
    kind: SourceKind
    chunks: int = Field(description="Number of chunks written to the vector index.")
    duration: int | None = None
    ingestion_time: float = 0.0


# ---------------------------------------------------------------------------
# Source library
# ---------------------------------------------------------------------------


class SourceListResponse(BaseModel):
    sources: list[Source] = Field(default_factory=list)
    total: int = 0


class UpdateSourceRequest(BaseModel):
    title: str | None = Field(default=None, max_length=500)
    author: str | None = Field(default=None, max_length=200)


class DeleteSourceResponse(BaseModel):
    source_id: str
    chunks_removed: int = 0


# ---------------------------------------------------------------------------
# Chat and conversations
# ---------------------------------------------------------------------------


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)
    conversation_id: str | None = None


class ChatResponse(BaseModel):
    answer: str
    sources: list[Citation] = Field(default_factory=list)
    conversation_id: str
    retrieval_performed: bool = False


class CreateConversationRequest(BaseModel):
    title: str | None = Field(default=None, max_length=200)
    custom_prompt: str | None = Field(default=None, max_length=8000)


class UpdateConversationRequest(BaseModel):
    """Omit a field to keep it; send ``custom_prompt: ""`` to clear the override."""

    title: str | None = Field(default=None, max_length=200)
    custom_prompt: str | None = Field(default=None, max_length=8000)


class ConversationListResponse(BaseModel):
    conversations: list[ConversationSummary] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Operational
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    index_ready: bool = False
    total_chunks: int = 0
    providers: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
