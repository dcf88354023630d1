"""Abstract base class for Source persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod

from lorekeeper.models.source import NewSource, Source, SourceKind, SourceUpdate


# Concrete implementation: SQLiteSourceStore (lorekeeper/providers/store/)
class ISourceStore(ABC):
    """Contract for the Source table.

    ``external_id`` is unique across all Sources; the store itself enforces
    this so two concurrent imports of the same video cannot both succeed.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables and indices if they do not exist."""

    @abstractmethod
    async def create(self, new_source: NewSource) -> Source:
        """Insert a Source and return it with its assigned id.

        Raises
        ------
        lorekeeper.utils.errors.DuplicateSourceError
            If ``external_id`` is already taken.
        """

    @abstractmethod
    async def get(self, source_id: str) -> Source | None:
        """Return one Source or ``None``."""

    @abstractmethod
    async def get_many(self, source_ids: list[str]) -> dict[str, Source]:
        """Return the Sources that exist among *source_ids*, keyed by id."""

    @abstractmethod
    async def get_by_external_id(self, external_id: str) -> Source | None:
        """Return the Source imported from *external_id*, if any."""

    @abstractmethod
    async def list_sources(self, kind: SourceKind | None = None) -> list[Source]:
        """Return all Sources (optionally of one kind), newest first."""

    @abstractmethod
    async def update(self, source_id: str, update: SourceUpdate) -> Source | None:
        """Apply an edit and return the updated Source, or ``None`` if missing."""

    @abstractmethod
    async def delete(self, source_id: str) -> bool:
        """Delete a Source row; return ``True`` if one was removed."""

    @abstractmethod
    async def count_by_kind(self) -> dict[str, int]:
        """Return Source counts keyed by kind value."""
