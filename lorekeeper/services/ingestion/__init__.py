"""Source ingestion pipeline for the Lorekeeper knowledge base.

Orchestrates: **extract -> chunk -> embed -> store**.

1. **Extract** -- per-kind steps in IngestionService turn a video id,
   pasted text, an uploaded document or an audio file into timed segments.
2. **Chunk** (chunker.py / TranscriptChunker) -- packs segments into
   ~1200-character windows with a 200-character overlap.
3. **Embed** (via IEmbeddingProvider) -- one batched call per source.
4. **Store** (via IVectorStoreProvider) -- chunks + vectors go to the
   ``vector_index`` collection; the Source row goes to SQLite.
"""

from lorekeeper.services.ingestion.chunker import TranscriptChunker
from lorekeeper.services.ingestion.ingestion_service import IngestionService

__all__ = ["TranscriptChunker", "IngestionService"]
