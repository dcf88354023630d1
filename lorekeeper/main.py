"""Lorekeeper FastAPI application entry point.

Wires together all providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging.

# ─── COMPONENT GRAPH (Junior Developer Guide) ─────────────────────────
#
#   OpenAIEmbeddingProvider ─┐
#   ChromaDBProvider ────────┼─> RetrievalService ─┐
#   SQLiteSourceStore ───────┘                     ├─> ChatService
#   OpenAILLMProvider ─────────────────────────────┤
#   SQLiteConversationStore / SQLitePreferencesStore┘
#
#   YouTubeTranscriptProvider, YtDlpMetadataProvider,
#   DocumentTextExtractor, WhisperAPIProvider, TranscriptChunker
#                       └──> IngestionService
#
#   SQLiteSourceStore + ChromaDBProvider ──> SourceService
#
# Everything is built once in _build_all() and stored on app.state; the
# route dependencies in api/routes.py read it back from there.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from lorekeeper.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from lorekeeper.api.routes import router as api_router
from lorekeeper.config.loader import load_config
from lorekeeper.config.settings import Settings
from lorekeeper.models.preferences import GenerationOptions
from lorekeeper.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from lorekeeper.providers.extraction.document_text_extractor import DocumentTextExtractor
from lorekeeper.providers.llm.openai_provider import OpenAILLMProvider
from lorekeeper.providers.store.sqlite_conversation_store import SQLiteConversationStore
from lorekeeper.providers.store.sqlite_preferences_store import SQLitePreferencesStore
from lorekeeper.providers.store.sqlite_source_store import SQLiteSourceStore
from lorekeeper.providers.transcription.whisper_api_provider import WhisperAPIProvider
from lorekeeper.providers.vector_store.chromadb_provider import ChromaDBProvider
from lorekeeper.providers.video.youtube_transcript_provider import YouTubeTranscriptProvider
from lorekeeper.providers.video.ytdlp_metadata_provider import YtDlpMetadataProvider
from lorekeeper.services.chat_service import ChatService
from lorekeeper.services.citation_service import CitationFormatter
from lorekeeper.services.ingestion.chunker import TranscriptChunker
from lorekeeper.services.ingestion.ingestion_service import IngestionService
from lorekeeper.services.question_classifier import HeuristicQuestionClassifier
from lorekeeper.services.retrieval_service import RetrievalService
from lorekeeper.services.source_service import SourceService
from lorekeeper.utils.errors import ConfigurationError
from lorekeeper.utils.logging import configure_logging, get_logger

_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Component construction
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings, app_config: dict[str, Any]) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.

    Raises
    ------
    ConfigurationError
        If ``OPENAI_API_KEY`` is not set; embeddings, chat and audio
        transcription all depend on it.
    """
    if not app_settings.openai_api_key:
        raise ConfigurationError(
            message="OPENAI_API_KEY is not set. Add it to your environment or .env file."
        )

    chunking = app_config["chunking"]
    retrieval = app_config["retrieval"]
    ingestion = app_config["ingestion"]
    generation = app_config["generation"]

    # -- Providers --
    embedding_provider = OpenAIEmbeddingProvider(app_settings)
    llm_provider = OpenAILLMProvider(
        app_settings,
        model_token_limits=generation.get("model_token_limits") or {},
        fallback_max_tokens=generation["fallback_max_tokens"],
    )
    vector_store = ChromaDBProvider(
        persist_directory=app_settings.chromadb_persist_dir,
        index_name=app_settings.vector_index_name,
        dimension=app_settings.embedding_dimensions,
    )
    source_store = SQLiteSourceStore(db_path=app_settings.database_path)
    conversation_store = SQLiteConversationStore(db_path=app_settings.database_path)
    preferences_store = SQLitePreferencesStore(
        db_path=app_settings.database_path,
        default_model=generation["default_model"],
    )
    transcription_provider = WhisperAPIProvider(app_settings)

    # -- Services --
    chunker = TranscriptChunker(
        chunk_size=chunking["chunk_size"],
        overlap=chunking["overlap"],
        bulk_segment_chars=chunking["bulk_segment_chars"],
    )
    ingestion_service = IngestionService(
        source_store=source_store,
        vector_store=vector_store,
        embedding_provider=embedding_provider,
        chunker=chunker,
        transcript_provider=YouTubeTranscriptProvider(),
        metadata_provider=YtDlpMetadataProvider(),
        text_extractor=DocumentTextExtractor(min_chars=ingestion["min_content_chars"]),
        transcription_provider=transcription_provider,
        llm_provider=llm_provider,
        title_options=GenerationOptions(
            temperature=0.3,
            max_tokens=60,
            model=app_settings.openai_title_model,
        ),
        min_content_chars=ingestion["min_content_chars"],
        title_preview_chars=ingestion["title_preview_chars"],
    )
    retrieval_service = RetrievalService(
        vector_store=vector_store,
        source_store=source_store,
        candidates=retrieval["candidates"],
        limit=retrieval["limit"],
        min_score=retrieval["min_score"],
    )
    chat_service = ChatService(
        embedding_provider=embedding_provider,
        retrieval_service=retrieval_service,
        llm=llm_provider,
        conversation_store=conversation_store,
        preferences_store=preferences_store,
        classifier=HeuristicQuestionClassifier(),
        citation_formatter=CitationFormatter(),
        citation_count=retrieval["citation_count"],
    )
    source_service = SourceService(source_store=source_store, vector_store=vector_store)

    provider_registry = {
        "llm": llm_provider.is_available(),
        "embedding": embedding_provider.is_available(),
        "vector_store": vector_store.is_available(),
        "transcription": transcription_provider.is_available(),
    }

    return {
        "settings": app_settings,
        "config": app_config,
        "embedding_provider": embedding_provider,
        "llm_provider": llm_provider,
        "vector_store": vector_store,
        "source_store": source_store,
        "conversation_store": conversation_store,
        "preferences_store": preferences_store,
        "ingestion_service": ingestion_service,
        "retrieval_service": retrieval_service,
        "chat_service": chat_service,
        "source_service": source_service,
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup."""
    components = _build_all(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    # Create SQLite tables if needed.
    await components["source_store"].initialize()
    await components["conversation_store"].initialize()
    await components["preferences_store"].initialize()

    vector_store: ChromaDBProvider = components["vector_store"]
    if settings.auto_provision_index:
        await vector_store.ensure_index()
    elif not await vector_store.index_exists():
        _logger.warning(
            "vector_index_missing",
            index=settings.vector_index_name,
            hint="run `python -m lorekeeper.cli.ingest provision-index`",
        )

    _logger.info(
        "app_startup",
        version=_VERSION,
        environment=settings.app_env,
        chat_model=config["generation"]["default_model"],
        embedding_model=settings.openai_embedding_model,
    )

    yield

    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="Lorekeeper API",
        version=_VERSION,
        description=(
            "Build a personal knowledge base from YouTube videos, articles, "
            "documents and audio recordings, then chat with it.  Answers are "
            "grounded in retrieved passages and cite their sources."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=settings.get_cors_origins())

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "lorekeeper.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
