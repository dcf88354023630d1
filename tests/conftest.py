"""Shared pytest fixtures for the Lorekeeper test suite."""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timezone

import pytest
import structlog

from lorekeeper.interfaces.embedding_provider import IEmbeddingProvider
from lorekeeper.models.rag import DocumentChunk, RetrievedChunk
from lorekeeper.models.source import Source, SourceKind

# ---------------------------------------------------------------------------
# Deterministic embedder
# ---------------------------------------------------------------------------

# One axis per topic; the last axis catches text that mentions none of them.
_TOPICS: tuple[tuple[str, ...], ...] = (
    ("photosynthesis", "chlorophyll", "sunlight", "plants", "plant"),
    ("rust", "ownership", "borrow", "borrowing", "lifetimes"),
    ("coffee", "espresso", "roast", "beans", "brewing"),
    ("volcano", "lava", "magma", "eruption", "eruptions"),
    ("jazz", "saxophone", "improvisation", "bebop", "swing"),
    ("chess", "opening", "gambit", "checkmate", "endgame"),
    ("marathon", "running", "pace", "training", "race"),
)
FAKE_DIMENSION = len(_TOPICS) + 1

_WORD_RE = re.compile(r"[a-z]+")


class KeywordEmbeddingProvider(IEmbeddingProvider):
    """Bag-of-topics embedder: texts about the same topic score ~1.0."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [self._vector(text) for text in texts]

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_dimension(self) -> int:
        return FAKE_DIMENSION

    def get_provider_name(self) -> str:
        return "keyword-fake"

    def is_available(self) -> bool:
        return True

    @staticmethod
    def _vector(text: str) -> list[float]:
        words = _WORD_RE.findall(text.lower())
        vector = [0.0] * FAKE_DIMENSION
        for axis, keywords in enumerate(_TOPICS):
            vector[axis] = float(sum(1 for w in words if w in keywords))
        if not any(vector):
            vector[-1] = 1.0
        norm = math.sqrt(sum(v * v for v in vector))
        return [v / norm for v in vector]


@pytest.fixture
def keyword_embedder() -> KeywordEmbeddingProvider:
    return KeywordEmbeddingProvider()


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------

_CREATED = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_source(
    source_id: str = "src-1",
    kind: SourceKind = SourceKind.VIDEO,
    title: str = "Intro to Photosynthesis",
    **overrides,
) -> Source:
    fields = {
        "id": source_id,
        "kind": kind,
        "title": title,
        "created_at": _CREATED,
    }
    if kind is SourceKind.VIDEO:
        fields.update(
            external_id="dQw4w9WgXcQ",
            url="https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            thumbnail_url="https://img.youtube.com/vi/dQw4w9WgXcQ/maxresdefault.jpg",
            author="Science Channel",
            duration=600,
        )
    fields.update(overrides)
    return Source(**fields)


def make_chunk(
    source_id: str = "src-1",
    chunk_index: int = 0,
    text: str = "Plants turn sunlight into sugar through photosynthesis.",
    start_time: float = 0.0,
) -> DocumentChunk:
    return DocumentChunk(
        chunk_id=DocumentChunk.make_id(source_id, chunk_index),
        source_id=source_id,
        text=text,
        start_time=start_time,
        chunk_index=chunk_index,
        created_at=_CREATED,
    )


def make_hit(
    source: Source | None = None,
    chunk: DocumentChunk | None = None,
    score: float = 0.9,
) -> RetrievedChunk:
    source = source or make_source()
    chunk = chunk or make_chunk(source_id=source.id)
    return RetrievedChunk(chunk=chunk, source=source, similarity_score=score)


@pytest.fixture
def video_source() -> Source:
    return make_source()


@pytest.fixture
def article_source() -> Source:
    return make_source(
        source_id="src-2",
        kind=SourceKind.TEXT,
        title="Borrowing in Rust",
        author="Ferris",
        content="Ownership and borrowing rules.",
    )


@pytest.fixture
def source_factory():
    return make_source


@pytest.fixture
def chunk_factory():
    return make_chunk


@pytest.fixture
def hit_factory():
    return make_hit


# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_logging():
    """Undo configure_logging() so later tests never write to a closed stream."""
    root = logging.getLogger()
    level = root.level
    yield
    structlog.reset_defaults()
    for handler in root.handlers[:]:
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)
    root.setLevel(level)
