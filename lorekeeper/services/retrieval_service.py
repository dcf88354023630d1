"""Similarity search over the chunk index, joined back to Sources.

Architecture overview for junior developers
--------------------------------------------
The vector store only knows chunks.  A chat answer needs to know which
*Source* each chunk came from (title, author, kind, url), so this service
wraps the raw nearest-neighbour query in three steps:

  1. CANDIDATES -- ask the index for the 50 nearest chunks.
  2. THRESHOLD  -- drop anything below the similarity floor (0.65).
                   Below it, passages are mostly noise and dilute answers.
  3. JOIN       -- fetch the owning Sources in one batched lookup and
                   drop hits whose Source no longer exists (a chunk
                   orphaned by an interrupted delete).

The survivors are returned best-first, capped at 8.
"""

from __future__ import annotations

import structlog

from lorekeeper.interfaces.source_store import ISourceStore
from lorekeeper.interfaces.vector_store_provider import IVectorStoreProvider
from lorekeeper.models.rag import RetrievedChunk
from lorekeeper.utils.errors import VectorIndexNotFoundError

logger = structlog.get_logger(logger_name=__name__)


class RetrievalService:
    """Threshold-filtered top-k retrieval.

    Parameters
    ----------
    vector_store:
        The chunk index.
    source_store:
        Used to join hits to their Sources.
    candidates:
        Nearest neighbours requested from the index.
    limit:
        Default number of hits returned.
    min_score:
        Default similarity floor (inclusive).
    """

    def __init__(
        self,
        vector_store: IVectorStoreProvider,
        source_store: ISourceStore,
        candidates: int = 50,
        limit: int = 8,
        min_score: float = 0.65,
    ) -> None:
        self._vector_store = vector_store
        self._source_store = source_store
        self._candidates = candidates
        self._limit = limit
        self._min_score = min_score

    async def search(
        self,
        query_vector: list[float],
        k: int | None = None,
        min_score: float | None = None,
    ) -> list[RetrievedChunk]:
        """Return up to *k* chunks scoring at least *min_score*, best first.

        Raises
        ------
        VectorIndexNotFoundError
            The index has not been provisioned.  This is never reported
            as an empty result.
        """
        limit = self._limit if k is None else k
        floor = self._min_score if min_score is None else min_score
        if limit <= 0:
            return []

        hits = await self._vector_store.query(query_vector, top_k=self._candidates)
        kept = [hit for hit in hits if hit.score >= floor]
        kept.sort(key=lambda hit: hit.score, reverse=True)

        sources = await self._source_store.get_many(
            list(dict.fromkeys(hit.chunk.source_id for hit in kept))
        )

        results: list[RetrievedChunk] = []
        dangling = 0
        for hit in kept:
            source = sources.get(hit.chunk.source_id)
            if source is None:
                dangling += 1
                continue
            results.append(
                RetrievedChunk(chunk=hit.chunk, source=source, similarity_score=hit.score)
            )
            if len(results) >= limit:
                break

        logger.info(
            "retrieval_complete",
            candidates=len(hits),
            above_threshold=len(kept),
            dangling=dangling,
            returned=len(results),
            top_score=results[0].similarity_score if results else 0.0,
        )
        return results

    async def has_chunks(self) -> bool:
        """Whether the knowledge base holds at least one chunk.

        A missing index raises :class:`VectorIndexNotFoundError` rather than
        reading as an empty knowledge base.
        """
        if not await self._vector_store.index_exists():
            raise VectorIndexNotFoundError(provider_name=self._vector_store.get_provider_name())
        return await self._vector_store.count() > 0
