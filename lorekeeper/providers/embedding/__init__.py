"""Embedding provider adapters.

``OpenAIEmbeddingProvider`` implements IEmbeddingProvider
(lorekeeper/interfaces/embedding_provider.py) with text-embedding-3-small
at 1536 dimensions.  Chunks and queries must be embedded by the same model,
so the configured dimension is checked on every batch.
"""

from lorekeeper.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
