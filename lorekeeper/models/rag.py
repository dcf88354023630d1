"""RAG pipeline data models for the Lorekeeper knowledge base.

Defines Pydantic v2 models for transcript segments, chunks, retrieval
results, ingestion summaries and corpus statistics.  All models use frozen
config so a chunk cannot be mutated after it has been embedded.

RAG (Retrieval-Augmented Generation) overview for junior developers:

    1. INGESTION: a source's text (transcript, article, document, audio
       transcription) is turned into timed segments.
    2. CHUNKING: segments are packed into ~1200-character overlapping
       chunks (services/ingestion/chunker.py).
    3. EMBEDDING: each chunk becomes a 1536-dimension vector.
    4. STORAGE: chunks + vectors go into the ChromaDB ``vector_index``.
    5. RETRIEVAL: a question is embedded and compared against every chunk;
       the closest ones above the similarity floor become context.
    6. GENERATION: the LLM answers from that context and cites sources.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from lorekeeper.models.source import Source, SourceKind


# ---------------------------------------------------------------------------
# Chunker input / output
# ---------------------------------------------------------------------------
class TranscriptSegment(BaseModel):
    """One timed piece of source text.

    Video transcripts carry real offsets; text, documents and audio use a
    single logical timeline starting at zero.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    offset_ms: float = Field(default=0.0, ge=0.0)
    duration_ms: float = Field(default=0.0, ge=0.0)


class TextChunk(BaseModel):
    """A chunk produced by the chunker, before it belongs to a Source."""

    model_config = ConfigDict(frozen=True)

    text: str
    start_time: float = Field(default=0.0, ge=0.0, description="Start offset in seconds.")
    chunk_index: int = Field(ge=0)


# ---------------------------------------------------------------------------
# DocumentChunk: the fundamental unit of retrieval.
# ---------------------------------------------------------------------------
class DocumentChunk(BaseModel):
    """A chunk of a Source's text as stored in the vector index.

    ``chunk_id`` is ``"{source_id}:{chunk_index}"`` so a (source, index)
    pair can only ever be stored once.
    """

    model_config = ConfigDict(frozen=True)

    chunk_id: str = Field(description="Deterministic id: '<source_id>:<chunk_index>'.")
    source_id: str = Field(description="Identifier of the owning Source.")
    text: str = Field(description="The chunk's textual content.")
    start_time: float = Field(default=0.0, ge=0.0, description="Start offset in seconds.")
    chunk_index: int = Field(ge=0, description="Ordinal position within the Source.")
    created_at: datetime

    @staticmethod
    def make_id(source_id: str, chunk_index: int) -> str:
        return f"{source_id}:{chunk_index}"


class VectorHit(BaseModel):
    """A raw nearest-neighbour result, not yet joined to its Source."""

    model_config = ConfigDict(frozen=True)

    chunk: DocumentChunk
    score: float = Field(ge=0.0, le=1.0, description="Cosine similarity to the query.")


class RetrievedChunk(BaseModel):
    """A retrieval hit joined with the Source that owns it."""

    model_config = ConfigDict(frozen=True)

    chunk: DocumentChunk
    source: Source
    similarity_score: float = Field(default=0.0, ge=0.0, le=1.0)


# ---------------------------------------------------------------------------
# Ingestion results
# ---------------------------------------------------------------------------
class IngestionResult(BaseModel):
    """Summary of one successful import."""

    model_config = ConfigDict(frozen=True)

    source_id: str = Field(description="Identifier assigned to the new Source.")
    source_title: str
    kind: SourceKind
    chunks_created: int = Field(default=0, ge=0)
    duration: int | None = Field(default=None, ge=0, description="Source length in seconds.")
    ingestion_time: float = Field(
        default=0.0, ge=0.0, description="Wall-clock seconds for the import."
    )


class PlaylistItemStatus(str, Enum):
    IMPORTED = "imported"
    SKIPPED = "skipped"
    FAILED = "failed"


class PlaylistItemResult(BaseModel):
    """Outcome of importing one video from a playlist."""

    model_config = ConfigDict(frozen=True)

    external_id: str
    status: PlaylistItemStatus
    source_id: str | None = None
    title: str | None = None
    chunks_created: int = 0
    error: str | None = None


class PlaylistImportResult(BaseModel):
    """Aggregate result of a playlist import; never raised as a whole."""

    model_config = ConfigDict(frozen=True)

    playlist_id: str
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    items: list[PlaylistItemResult] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# CorpusStats: a snapshot of the knowledge base's size and composition.
# ---------------------------------------------------------------------------
class CorpusStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_chunks: int = Field(default=0, ge=0)
    total_sources: int = Field(default=0, ge=0)
    sources_by_kind: dict[str, int] = Field(
        default_factory=dict,
        description='Source count per kind, e.g. {"video": 12, "document": 3}.',
    )
