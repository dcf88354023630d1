"""Abstract base class for vector-store providers.

Defines the contract for storing, querying and deleting embedded chunks.
The store holds one global collection (the fixed-name ``vector_index``);
chunks are filterable by their ``source_id`` so a Source's chunks can be
removed together.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from lorekeeper.models.rag import DocumentChunk, VectorHit


# Concrete implementation: ChromaDBProvider (lorekeeper/providers/vector_store/)
class IVectorStoreProvider(ABC):
    """Contract for vector-store services used by the RAG pipeline.

    All query and mutation methods are async so network-backed stores do
    not block the event loop.
    """

    @abstractmethod
    async def ensure_index(self) -> None:
        """Create the vector index if it does not exist yet (idempotent)."""

    @abstractmethod
    async def index_exists(self) -> bool:
        """Return ``True`` when the vector index has been provisioned."""

    @abstractmethod
    async def add_chunks(
        self,
        chunks: list[DocumentChunk],
        embeddings: list[list[float]],
    ) -> int:
        """Store pre-embedded chunks.

        Parameters
        ----------
        chunks:
            Chunks to store, keyed by ``chunk_id``.
        embeddings:
            Vectors corresponding positionally to *chunks*.

        Returns
        -------
        int
            The number of chunks stored.

        Raises
        ------
        ValueError
            If ``len(chunks) != len(embeddings)``.
        lorekeeper.utils.errors.VectorIndexNotFoundError
            If the index has not been provisioned.
        lorekeeper.utils.errors.RAGError
            If the store operation fails or a vector has the wrong dimension.
        """

    @abstractmethod
    async def query(self, query_embedding: list[float], top_k: int = 50) -> list[VectorHit]:
        """Return up to *top_k* nearest chunks, most similar first.

        Raises
        ------
        lorekeeper.utils.errors.VectorIndexNotFoundError
            If the index has not been provisioned.  An index that exists but
            holds nothing returns an empty list.
        """

    @abstractmethod
    async def delete_by_source(self, source_id: str) -> int:
        """Delete every chunk whose ``source_id`` matches; return how many."""

    @abstractmethod
    async def count(self) -> int:
        """Return the total number of stored chunks (0 if no index)."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"chromadb"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the backing store can be reached."""
