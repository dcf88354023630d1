"""Source models: one imported unit of knowledge.

A Source is whatever the user pulled into the knowledge base: a YouTube
video, a pasted article, an uploaded document or an audio recording.  All
four share one table with a ``kind`` discriminant; kind-specific fields
(``external_id`` for videos, ``file_name``/``file_type`` for uploads) are
simply left empty for the others.

Sources are global: every user can query every source.  Only conversations
and preferences are user-owned.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SourceKind(str, Enum):
    """What kind of content a Source was imported from."""

    VIDEO = "video"
    TEXT = "text"
    DOCUMENT = "document"
    AUDIO = "audio"


# Label used when a source is named inside an LLM context block.
SOURCE_KIND_LABELS: dict[SourceKind, str] = {
    SourceKind.VIDEO: "Video",
    SourceKind.TEXT: "Article",
    SourceKind.DOCUMENT: "Document",
    SourceKind.AUDIO: "Audio",
}


class NewSource(BaseModel):
    """Fields supplied when creating a Source; the store assigns id and timestamp."""

    model_config = ConfigDict(frozen=True)

    kind: SourceKind
    title: str = Field(min_length=1)
    content: str | None = None
    url: str | None = None
    external_id: str | None = Field(
        default=None,
        description="Platform content id (e.g. YouTube video id); globally unique when set.",
    )
    file_name: str | None = None
    file_type: str | None = None
    thumbnail_url: str | None = None
    duration: int | None = Field(default=None, ge=0, description="Length in seconds.")
    author: str | None = None


class Source(NewSource):
    """A persisted Source."""

    id: str = Field(description="Store-assigned identifier.")
    created_at: datetime


class SourceUpdate(BaseModel):
    """Editable Source fields.  ``None`` leaves a field unchanged."""

    model_config = ConfigDict(frozen=True)

    title: str | None = Field(default=None, min_length=1)
    author: str | None = None
