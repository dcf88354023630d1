"""Source library management: list, inspect, edit, delete, corpus stats."""

from __future__ import annotations

import structlog

from lorekeeper.interfaces.source_store import ISourceStore
from lorekeeper.interfaces.vector_store_provider import IVectorStoreProvider
from lorekeeper.models.rag import CorpusStats
from lorekeeper.models.source import Source, SourceKind, SourceUpdate
from lorekeeper.utils.errors import InvalidInputError, SourceNotFoundError

logger = structlog.get_logger(logger_name=__name__)


class SourceService:
    """CRUD over imported Sources, keeping the chunk index in step."""

    def __init__(self, source_store: ISourceStore, vector_store: IVectorStoreProvider) -> None:
        self._source_store = source_store
        self._vector_store = vector_store

    async def list_sources(self, kind: SourceKind | None = None) -> list[Source]:
        """All Sources, newest first, optionally of one kind."""
        return await self._source_store.list_sources(kind)

    async def get_source(self, source_id: str) -> Source:
        source = await self._source_store.get(source_id)
        if source is None:
            raise SourceNotFoundError()
        return source

    async def update_source(
        self,
        source_id: str,
        title: str | None = None,
        author: str | None = None,
    ) -> Source:
        """Edit the display title and/or author.

        Titles are trimmed and must stay non-empty; an empty author clears it.
        """
        if title is not None:
            title = title.strip()
            if not title:
                raise InvalidInputError(message="Title must not be empty.")
        if author is not None:
            author = author.strip()

        updated = await self._source_store.update(source_id, SourceUpdate(title=title, author=author))
        if updated is None:
            raise SourceNotFoundError()
        return updated

    async def delete_source(self, source_id: str) -> int:
        """Delete a Source and its chunks; returns the number of chunks removed.

        Chunks go first.  If the process dies between the two steps the
        Source is still listed and the delete can simply be retried.
        """
        if await self._source_store.get(source_id) is None:
            raise SourceNotFoundError()

        removed = await self._vector_store.delete_by_source(source_id)
        await self._source_store.delete(source_id)
        logger.info("source_removed", source_id=source_id, chunks_removed=removed)
        return removed

    async def get_corpus_stats(self) -> CorpusStats:
        by_kind = await self._source_store.count_by_kind()
        return CorpusStats(
            total_chunks=await self._vector_store.count(),
            total_sources=sum(by_kind.values()),
            sources_by_kind=by_kind,
        )
