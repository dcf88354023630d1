"""Lorekeeper domain models: re-exports all public model classes.

Organized by concern:
    - source.py        - Source, SourceKind and edit payloads
    - rag.py           - segments, chunks, retrieval hits, ingestion results
    - conversation.py  - conversations, turns, citations, chat replies
    - preferences.py   - per-user generation preferences
"""

from __future__ import annotations

from lorekeeper.models.conversation import (
    ChatMessage,
    ChatReply,
    Citation,
    Conversation,
    ConversationSummary,
    ConversationTurn,
    TurnRole,
)
from lorekeeper.models.preferences import (
    GenerationOptions,
    PreferencesUpdate,
    UserPreferences,
)
from lorekeeper.models.rag import (
    CorpusStats,
    DocumentChunk,
    IngestionResult,
    PlaylistImportResult,
    PlaylistItemResult,
    PlaylistItemStatus,
    RetrievedChunk,
    TextChunk,
    TranscriptSegment,
    VectorHit,
)
from lorekeeper.models.source import NewSource, Source, SourceKind, SourceUpdate

__all__ = [
    "ChatMessage",
    "ChatReply",
    "Citation",
    "Conversation",
    "ConversationSummary",
    "ConversationTurn",
    "CorpusStats",
    "DocumentChunk",
    "GenerationOptions",
    "IngestionResult",
    "NewSource",
    "PlaylistImportResult",
    "PlaylistItemResult",
    "PlaylistItemStatus",
    "PreferencesUpdate",
    "RetrievedChunk",
    "Source",
    "SourceKind",
    "SourceUpdate",
    "TextChunk",
    "TranscriptSegment",
    "TurnRole",
    "UserPreferences",
    "VectorHit",
]
