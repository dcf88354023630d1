"""Vector store provider adapters."""

from lorekeeper.providers.vector_store.chromadb_provider import ChromaDBProvider

__all__ = ["ChromaDBProvider"]
