"""ChromaDB vector store provider adapter.

Wraps ``chromadb.PersistentClient`` to implement :class:`IVectorStoreProvider`.
All chunks live in one collection, the fixed-name vector index
(``vector_index`` by default), using cosine distance.

The collection is never created implicitly by reads or writes.  Until an
operator (or the app's startup hook with ``AUTO_PROVISION_INDEX=true``)
calls :meth:`ChromaDBProvider.ensure_index`, every query and write raises
:class:`VectorIndexNotFoundError` so a missing index is reported as a
configuration problem instead of "no results".
"""

from __future__ import annotations

import os
from datetime import datetime
from typing import Any

# Disable ChromaDB telemetry before importing chromadb.  A version mismatch
# between ChromaDB's bundled PostHog client and the installed one raises
# "capture() takes 1 positional argument but 3 were given".
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import posthog

posthog.disabled = True

import chromadb
import structlog

from lorekeeper.interfaces.vector_store_provider import IVectorStoreProvider
from lorekeeper.models.rag import DocumentChunk, VectorHit
from lorekeeper.utils.errors import RAGError, VectorIndexNotFoundError

logger = structlog.get_logger(logger_name=__name__)

_UPSERT_BATCH_SIZE = 500


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that keeps ChromaDB from loading a model.

    Lorekeeper always passes pre-computed embeddings, so ChromaDB's default
    ONNX model would only waste memory.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "Lorekeeper uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by ChromaDB with local persistence.

    Parameters
    ----------
    persist_directory:
        Directory ChromaDB persists to.
    index_name:
        Name of the single chunk collection.
    dimension:
        Required length of every stored and queried vector.
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        index_name: str = "vector_index",
        dimension: int = 1536,
    ) -> None:
        self._persist_directory = persist_directory
        self._index_name = index_name
        self._dimension = dimension
        self._client = chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        self._collection: Any = None

    # ------------------------------------------------------------------
    # Index lifecycle
    # ------------------------------------------------------------------

    async def ensure_index(self) -> None:
        """Create the vector index collection if it does not exist yet."""
        try:
            existed = self._collection_exists()
            try:
                self._collection = self._client.get_or_create_collection(
                    name=self._index_name,
                    metadata={"hnsw:space": "cosine"},
                    embedding_function=_NoopEmbeddingFunction(),
                )
            except ValueError:
                # Collection persisted with a different embedding function.
                self._collection = self._client.get_or_create_collection(
                    name=self._index_name,
                    metadata={"hnsw:space": "cosine"},
                )
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB could not provision '{self._index_name}': {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        self._validate_embedding_dimensions()
        logger.info(
            "vector_index_ready",
            index=self._index_name,
            created=not existed,
            chunks=self._collection.count(),
        )

    async def index_exists(self) -> bool:
        try:
            return self._collection_exists()
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB list_collections failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def _collection_exists(self) -> bool:
        for entry in self._client.list_collections():
            name = entry if isinstance(entry, str) else getattr(entry, "name", None)
            if name == self._index_name:
                return True
        return False

    def _require_collection(self) -> Any:
        """Return the collection handle, raising when it is not provisioned."""
        if self._collection is not None:
            return self._collection
        try:
            if not self._collection_exists():
                raise VectorIndexNotFoundError(provider_name=self.get_provider_name())
            try:
                self._collection = self._client.get_collection(
                    name=self._index_name,
                    embedding_function=_NoopEmbeddingFunction(),
                )
            except ValueError:
                self._collection = self._client.get_collection(name=self._index_name)
        except VectorIndexNotFoundError:
            raise
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB could not open '{self._index_name}': {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        self._validate_embedding_dimensions()
        return self._collection

    def _validate_embedding_dimensions(self) -> None:
        """Compare one stored vector against the configured dimension.

        A mismatch means every query would return garbage, so fail loudly.
        """
        try:
            if self._collection.count() == 0:
                return
            sample = self._collection.peek(limit=1)
        except Exception as exc:
            logger.warning("embedding_dimension_check_skipped", error=str(exc))
            return

        embeddings = sample.get("embeddings") if sample else None
        if embeddings is None or len(embeddings) == 0:
            return
        stored_dim = len(embeddings[0])
        if stored_dim != self._dimension:
            logger.error(
                "embedding_dimension_mismatch",
                stored_dim=stored_dim,
                expected_dim=self._dimension,
            )
            raise RAGError(
                message=(
                    f"Embedding dimension mismatch: '{self._index_name}' holds "
                    f"{stored_dim}-dim vectors but EMBEDDING_DIMENSIONS is {self._dimension}."
                ),
                provider_name=self.get_provider_name(),
            )

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def add_chunks(
        self,
        chunks: list[DocumentChunk],
        embeddings: list[list[float]],
    ) -> int:
        """Upsert pre-embedded chunks in batches of 500."""
        if len(chunks) != len(embeddings):
            raise ValueError(
                f"chunks and embeddings length mismatch: {len(chunks)} != {len(embeddings)}"
            )
        if not chunks:
            return 0
        for vector in embeddings:
            self._check_dimension(vector)

        collection = self._require_collection()
        try:
            total_stored = 0
            for start in range(0, len(chunks), _UPSERT_BATCH_SIZE):
                batch_chunks = chunks[start : start + _UPSERT_BATCH_SIZE]
                batch_embeddings = embeddings[start : start + _UPSERT_BATCH_SIZE]
                collection.upsert(
                    ids=[c.chunk_id for c in batch_chunks],
                    embeddings=batch_embeddings,
                    documents=[c.text for c in batch_chunks],
                    metadatas=[self._chunk_to_metadata(c) for c in batch_chunks],
                )
                total_stored += len(batch_chunks)
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB add_chunks failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "chromadb_add_chunks",
            count=total_stored,
            source_id=chunks[0].source_id,
        )
        return total_stored

    async def query(self, query_embedding: list[float], top_k: int = 50) -> list[VectorHit]:
        """Nearest-neighbour search; similarity is ``1 - cosine distance``."""
        self._check_dimension(query_embedding)
        collection = self._require_collection()
        try:
            total = collection.count()
            if total == 0:
                return []

            results = collection.query(
                query_embeddings=[query_embedding],
                n_results=min(top_k, total),
                include=["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not results["ids"] or not results["ids"][0]:
            return []

        ids = results["ids"][0]
        documents = results["documents"][0]
        metadatas = results["metadatas"][0]
        distances = results["distances"][0]

        hits: list[VectorHit] = []
        for chunk_id, doc_text, meta, distance in zip(ids, documents, metadatas, distances, strict=True):
            similarity = max(0.0, min(1.0, 1.0 - distance))
            hits.append(
                VectorHit(
                    chunk=self._metadata_to_chunk(chunk_id, meta, doc_text),
                    score=similarity,
                )
            )
        hits.sort(key=lambda hit: hit.score, reverse=True)

        logger.debug(
            "chromadb_query",
            results_count=len(hits),
            top_score=hits[0].score if hits else 0.0,
        )
        return hits

    async def delete_by_source(self, source_id: str) -> int:
        """Delete all chunks originating from the given source."""
        if not await self.index_exists():
            return 0
        collection = self._require_collection()
        try:
            existing = collection.get(where={"source_id": source_id})
            count = len(existing["ids"]) if existing["ids"] else 0
            if count > 0:
                collection.delete(where={"source_id": source_id})
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB delete_by_source failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_delete_by_source", source_id=source_id, deleted_count=count)
        return count

    async def count(self) -> int:
        if not await self.index_exists():
            return 0
        collection = self._require_collection()
        try:
            return collection.count()
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB count failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        try:
            self._client.heartbeat()
            return True
        except Exception:  # noqa: BLE001
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _check_dimension(self, vector: list[float]) -> None:
        if len(vector) != self._dimension:
            raise RAGError(
                message=f"Vector has {len(vector)} dimensions, index expects {self._dimension}",
                provider_name=self.get_provider_name(),
            )

    @staticmethod
    def _chunk_to_metadata(chunk: DocumentChunk) -> dict[str, Any]:
        # ChromaDB metadata values must be str/int/float/bool.
        return {
            "source_id": chunk.source_id,
            "chunk_index": chunk.chunk_index,
            "start_time": float(chunk.start_time),
            "created_at": chunk.created_at.isoformat(),
        }

    @staticmethod
    def _metadata_to_chunk(chunk_id: str, meta: dict[str, Any], text: str) -> DocumentChunk:
        return DocumentChunk(
            chunk_id=chunk_id,
            source_id=str(meta.get("source_id", "")),
            text=text or "",
            start_time=float(meta.get("start_time", 0.0)),
            chunk_index=int(meta.get("chunk_index", 0)),
            created_at=datetime.fromisoformat(str(meta["created_at"])),
        )
