"""Unit tests for the ChromaDB vector store provider.

Runs against a real persistent client in a temporary directory with
4-dimension vectors, so index provisioning, cosine scoring and
source-scoped deletes are exercised end to end.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from lorekeeper.providers.vector_store.chromadb_provider import ChromaDBProvider
from lorekeeper.utils.errors import RAGError, VectorIndexNotFoundError
from tests.conftest import make_chunk

_DIM = 4


@pytest.fixture()
def provider(tmp_path: Path) -> ChromaDBProvider:
    return ChromaDBProvider(
        persist_directory=str(tmp_path / "chroma"),
        index_name="vector_index",
        dimension=_DIM,
    )


@pytest.fixture()
async def ready_provider(provider: ChromaDBProvider) -> ChromaDBProvider:
    await provider.ensure_index()
    return provider


def _axis(i: int) -> list[float]:
    vector = [0.0] * _DIM
    vector[i] = 1.0
    return vector


# ======================================================================
# Index lifecycle
# ======================================================================


class TestIndexLifecycle:
    @pytest.mark.asyncio
    async def test_query_without_index_raises(self, provider: ChromaDBProvider) -> None:
        with pytest.raises(VectorIndexNotFoundError):
            await provider.query(_axis(0))

    @pytest.mark.asyncio
    async def test_write_without_index_raises(self, provider: ChromaDBProvider) -> None:
        with pytest.raises(VectorIndexNotFoundError):
            await provider.add_chunks([make_chunk()], [_axis(0)])

    @pytest.mark.asyncio
    async def test_count_and_delete_without_index_are_zero(self, provider: ChromaDBProvider) -> None:
        assert await provider.index_exists() is False
        assert await provider.count() == 0
        assert await provider.delete_by_source("src-1") == 0

    @pytest.mark.asyncio
    async def test_ensure_index_is_idempotent(self, provider: ChromaDBProvider) -> None:
        await provider.ensure_index()
        await provider.ensure_index()
        assert await provider.index_exists() is True
        assert await provider.count() == 0

    @pytest.mark.asyncio
    async def test_empty_index_query_returns_nothing(self, ready_provider: ChromaDBProvider) -> None:
        assert await ready_provider.query(_axis(0)) == []

    @pytest.mark.asyncio
    async def test_reopening_with_other_dimension_fails(self, tmp_path: Path) -> None:
        path = str(tmp_path / "chroma")
        first = ChromaDBProvider(persist_directory=path, dimension=_DIM)
        await first.ensure_index()
        await first.add_chunks([make_chunk()], [_axis(0)])

        second = ChromaDBProvider(persist_directory=path, dimension=3)
        with pytest.raises(RAGError, match="dimension mismatch"):
            await second.ensure_index()

    def test_is_available(self, provider: ChromaDBProvider) -> None:
        assert provider.is_available() is True
        assert provider.get_provider_name() == "chromadb"


# ======================================================================
# add / query / delete
# ======================================================================


class TestChunkOperations:
    @pytest.mark.asyncio
    async def test_query_orders_by_similarity(self, ready_provider: ChromaDBProvider) -> None:
        chunks = [
            make_chunk("src-1", 0, text="about axis zero"),
            make_chunk("src-1", 1, text="about axis one", start_time=42.5),
            make_chunk("src-2", 0, text="mostly axis zero"),
        ]
        embeddings = [_axis(0), _axis(1), [0.8, 0.6, 0.0, 0.0]]
        assert await ready_provider.add_chunks(chunks, embeddings) == 3

        hits = await ready_provider.query(_axis(0), top_k=3)

        assert [h.chunk.chunk_id for h in hits] == ["src-1:0", "src-2:0", "src-1:1"]
        assert hits[0].score == pytest.approx(1.0, abs=1e-4)
        assert hits[1].score == pytest.approx(0.8, abs=1e-3)
        assert hits[2].score == pytest.approx(0.0, abs=1e-4)

    @pytest.mark.asyncio
    async def test_metadata_round_trips(self, ready_provider: ChromaDBProvider) -> None:
        chunk = make_chunk("src-9", 3, text="some words", start_time=75.25)
        await ready_provider.add_chunks([chunk], [_axis(2)])

        (hit,) = await ready_provider.query(_axis(2), top_k=1)

        assert hit.chunk == chunk

    @pytest.mark.asyncio
    async def test_top_k_limits_results(self, ready_provider: ChromaDBProvider) -> None:
        chunks = [make_chunk("src-1", i, text=f"chunk {i}") for i in range(6)]
        await ready_provider.add_chunks(chunks, [_axis(i % _DIM) for i in range(6)])

        assert len(await ready_provider.query(_axis(0), top_k=2)) == 2
        assert len(await ready_provider.query(_axis(0), top_k=50)) == 6

    @pytest.mark.asyncio
    async def test_same_chunk_id_is_upserted(self, ready_provider: ChromaDBProvider) -> None:
        await ready_provider.add_chunks([make_chunk("src-1", 0, text="v1")], [_axis(0)])
        await ready_provider.add_chunks([make_chunk("src-1", 0, text="v2")], [_axis(0)])

        assert await ready_provider.count() == 1
        (hit,) = await ready_provider.query(_axis(0))
        assert hit.chunk.text == "v2"

    @pytest.mark.asyncio
    async def test_delete_by_source_is_scoped(self, ready_provider: ChromaDBProvider) -> None:
        chunks = [make_chunk("src-1", 0), make_chunk("src-1", 1), make_chunk("src-2", 0)]
        await ready_provider.add_chunks(chunks, [_axis(0), _axis(1), _axis(2)])

        assert await ready_provider.delete_by_source("src-1") == 2
        assert await ready_provider.count() == 1
        assert await ready_provider.delete_by_source("src-1") == 0
        remaining = await ready_provider.query(_axis(2))
        assert [h.chunk.source_id for h in remaining] == ["src-2"]

    @pytest.mark.asyncio
    async def test_length_mismatch_raises_value_error(self, ready_provider: ChromaDBProvider) -> None:
        with pytest.raises(ValueError):
            await ready_provider.add_chunks([make_chunk()], [])

    @pytest.mark.asyncio
    async def test_empty_add_is_noop(self, ready_provider: ChromaDBProvider) -> None:
        assert await ready_provider.add_chunks([], []) == 0

    @pytest.mark.asyncio
    async def test_wrong_dimension_is_rejected(self, ready_provider: ChromaDBProvider) -> None:
        with pytest.raises(RAGError):
            await ready_provider.add_chunks([make_chunk()], [[1.0, 0.0]])
        with pytest.raises(RAGError):
            await ready_provider.query([1.0, 0.0])
