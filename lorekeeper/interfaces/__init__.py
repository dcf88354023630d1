"""Public interface definitions for all external collaborators.

Every external API, model service and persistence backend is accessed
through the abstract base classes in this package.  Concrete adapters live
in ``lorekeeper/providers/`` and are wired together in ``lorekeeper/main.py``
(and ``lorekeeper/cli/ingest.py`` for the command line).  Services depend only
on these interfaces, so unit tests inject mocks instead of real clients.

CONCRETE PROVIDER MAP:
    Interface                →  Concrete implementation
    ─────────────────────────────────────────────────────────
    IEmbeddingProvider       →  OpenAIEmbeddingProvider
    ILLMProvider             →  OpenAILLMProvider
    IVectorStoreProvider     →  ChromaDBProvider
    ITranscriptionProvider   →  WhisperAPIProvider
    ITranscriptProvider      →  YouTubeTranscriptProvider
    IVideoMetadataProvider   →  YtDlpMetadataProvider
    ITextExtractor           →  DocumentTextExtractor
    ISourceStore             →  SQLiteSourceStore
    IConversationStore       →  SQLiteConversationStore
    IPreferencesStore        →  SQLitePreferencesStore
    IQuestionClassifier      →  HeuristicQuestionClassifier (services/)
"""

from lorekeeper.interfaces.conversation_store import IConversationStore
from lorekeeper.interfaces.embedding_provider import IEmbeddingProvider
from lorekeeper.interfaces.llm_provider import ILLMProvider
from lorekeeper.interfaces.preferences_store import IPreferencesStore
from lorekeeper.interfaces.question_classifier import IQuestionClassifier
from lorekeeper.interfaces.source_store import ISourceStore
from lorekeeper.interfaces.text_extractor import ITextExtractor
from lorekeeper.interfaces.transcript_provider import (
    ITranscriptProvider,
    IVideoMetadataProvider,
    VideoMetadata,
)
from lorekeeper.interfaces.transcription_provider import (
    ITranscriptionProvider,
    TranscriptionResult,
)
from lorekeeper.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IConversationStore",
    "IEmbeddingProvider",
    "ILLMProvider",
    "IPreferencesStore",
    "IQuestionClassifier",
    "ISourceStore",
    "ITextExtractor",
    "ITranscriptProvider",
    "ITranscriptionProvider",
    "IVectorStoreProvider",
    "IVideoMetadataProvider",
    "TranscriptionResult",
    "VideoMetadata",
]
