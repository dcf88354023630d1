"""FastAPI API routes for Lorekeeper.

Provides REST endpoints for importing sources, managing the source
library, chatting with the knowledge base, conversations, preferences and
operational checks.  Service dependencies are resolved from ``app.state``
via FastAPI's ``Depends`` using the ``Annotated`` pattern.

# ─── API ROUTE MAP (Junior Developer Guide) ───────────────────────────
#
# Endpoint                              Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/sources/video                 POST    Import one YouTube video
# /api/v1/sources/playlist              POST    Import every video of a playlist
# /api/v1/sources/text                  POST    Import pasted text
# /api/v1/sources/document              POST    Upload pdf/docx/txt
# /api/v1/sources/audio                 POST    Upload mp3/wav/m4a/webm
# /api/v1/sources                       GET     List sources (?kind=)
# /api/v1/sources/{id}                  GET     One source
# /api/v1/sources/{id}                  PATCH   Edit title/author
# /api/v1/sources/{id}                  DELETE  Delete source + chunks
# /api/v1/chat                          POST    Ask the knowledge base
# /api/v1/conversations                 GET     List my conversations
# /api/v1/conversations                 POST    Start an empty conversation
# /api/v1/conversations/{id}            GET     Full turn history
# /api/v1/conversations/{id}            PATCH   Rename / set custom prompt
# /api/v1/conversations/{id}            DELETE  Delete a conversation
# /api/v1/preferences                   GET/PUT Generation preferences
# /api/v1/health                        GET     Health + provider status
# /api/v1/corpus/stats                  GET     Chunk/source counts
#
# USER IDENTITY:
# Authentication happens upstream.  The caller's id arrives in the
# X-User-Id header; without it the request acts as DEFAULT_USER_ID.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, UploadFile

from lorekeeper.api.schemas import (
    ChatRequest,
    ChatResponse,
    ConversationListResponse,
    CreateConversationRequest,
    DeleteSourceResponse,
    ErrorResponse,
    HealthResponse,
    ImportPlaylistRequest,
    ImportTextRequest,
    ImportVideoRequest,
    IngestionResponse,
    SourceListResponse,
    UpdateConversationRequest,
    UpdateSourceRequest,
)
from lorekeeper.models.conversation import Conversation
from lorekeeper.models.preferences import PreferencesUpdate, UserPreferences
from lorekeeper.models.rag import CorpusStats, IngestionResult, PlaylistImportResult
from lorekeeper.models.source import Source, SourceKind
from lorekeeper.providers.extraction.document_text_extractor import resolve_document_type
from lorekeeper.services.chat_service import ChatService
from lorekeeper.services.ingestion.ingestion_service import IngestionService
from lorekeeper.services.source_service import SourceService
from lorekeeper.utils.errors import UnsupportedFileTypeError
from lorekeeper.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

# Uploads are streamed to disk in 64 KB increments so an oversized file is
# rejected after buffering at most one increment past the cap.
_UPLOAD_CHUNK_SIZE = 64 * 1024

_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Dependency injection helpers: resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service


def _get_source_service(request: Request) -> SourceService:
    return request.app.state.source_service


def _get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def _get_upload_config(request: Request) -> dict[str, Any]:
    return request.app.state.config["uploads"]


def _get_upload_dir(request: Request) -> Path:
    return Path(request.app.state.settings.upload_dir)


def _get_user_id(
    request: Request,
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    return (x_user_id or "").strip() or request.app.state.settings.default_user_id


IngestionDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
SourceServiceDep = Annotated[SourceService, Depends(_get_source_service)]
ChatServiceDep = Annotated[ChatService, Depends(_get_chat_service)]
UploadConfigDep = Annotated[dict[str, Any], Depends(_get_upload_config)]
UploadDirDep = Annotated[Path, Depends(_get_upload_dir)]
UserIdDep = Annotated[str, Depends(_get_user_id)]


# ---------------------------------------------------------------------------
# Upload helpers
# ---------------------------------------------------------------------------


async def _save_upload(file: UploadFile, upload_dir: Path, max_bytes: int) -> tuple[Path, int]:
    """Stream *file* into *upload_dir*; returns the temp path and its size.

    The partial file is removed when the upload is rejected or fails.
    """
    upload_dir.mkdir(parents=True, exist_ok=True)
    suffix = Path(file.filename or "").suffix.lower()
    destination = upload_dir / f"{uuid.uuid4().hex}{suffix}"

    total_size = 0
    try:
        with open(destination, "wb") as out:
            while True:
                chunk = await file.read(_UPLOAD_CHUNK_SIZE)
                if not chunk:
                    break
                total_size += len(chunk)
                if total_size > max_bytes:
                    raise HTTPException(
                        status_code=413,
                        detail=f"File too large. Maximum size is {max_bytes // (1024 * 1024)} MB.",
                    )
                out.write(chunk)
    except BaseException:
        destination.unlink(missing_ok=True)
        raise

    return destination, total_size


def _ingestion_response(result: IngestionResult) -> IngestionResponse:
    return IngestionResponse(
        source_id=result.source_id,
        title=result.source_title,
        kind=result.kind,
        chunks=result.chunks_created,
        duration=result.duration,
        ingestion_time=result.ingestion_time,
    )


# ---------------------------------------------------------------------------
# Import endpoints
# ---------------------------------------------------------------------------


_IMPORT_ERRORS: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.post(
    "/sources/video",
    response_model=IngestionResponse,
    responses=_IMPORT_ERRORS,
    summary="Import a YouTube video transcript",
)
async def import_video(body: ImportVideoRequest, ingestion: IngestionDep) -> IngestionResponse:
    result = await ingestion.ingest_video(body.url)
    return _ingestion_response(result)


@router.post(
    "/sources/playlist",
    response_model=PlaylistImportResult,
    responses={400: {"model": ErrorResponse}},
    summary="Import every video of a YouTube playlist",
)
async def import_playlist(body: ImportPlaylistRequest, ingestion: IngestionDep) -> PlaylistImportResult:
    """Per-video outcomes are reported in ``items``; one failure never fails the batch."""
    return await ingestion.import_playlist(body.url)


@router.post(
    "/sources/text",
    response_model=IngestionResponse,
    responses=_IMPORT_ERRORS,
    summary="Import pasted text",
)
async def import_text(body: ImportTextRequest, ingestion: IngestionDep) -> IngestionResponse:
    result = await ingestion.ingest_text(
        body.content, title=body.title, author=body.author, url=body.url
    )
    return _ingestion_response(result)


@router.post(
    "/sources/document",
    response_model=IngestionResponse,
    responses={**_IMPORT_ERRORS, 413: {"model": ErrorResponse}, 415: {"model": ErrorResponse}},
    summary="Upload a PDF, DOCX or TXT document",
)
async def import_document(
    file: UploadFile,
    ingestion: IngestionDep,
    upload_config: UploadConfigDep,
    upload_dir: UploadDirDep,
) -> IngestionResponse:
    file_name = file.filename or "document"
    content_type = (file.content_type or "").lower()

    file_type = None
    if content_type in upload_config["document_mime_types"]:
        file_type = resolve_document_type(content_type)
    if file_type is None:
        # Browsers send application/octet-stream for some files.
        file_type = resolve_document_type(Path(file_name).suffix)
    if file_type is None:
        raise UnsupportedFileTypeError(
            message="Only PDF, DOCX, and TXT files are supported."
        )

    path, _ = await _save_upload(file, upload_dir, upload_config["document_max_bytes"])
    result = await ingestion.ingest_document(str(path), file_name, file_type)
    return _ingestion_response(result)


@router.post(
    "/sources/audio",
    response_model=IngestionResponse,
    responses={**_IMPORT_ERRORS, 413: {"model": ErrorResponse}, 415: {"model": ErrorResponse}},
    summary="Upload an audio recording for transcription",
)
async def import_audio(
    file: UploadFile,
    ingestion: IngestionDep,
    upload_config: UploadConfigDep,
    upload_dir: UploadDirDep,
) -> IngestionResponse:
    file_name = file.filename or "audio"
    content_type = (file.content_type or "").lower()
    extension = Path(file_name).suffix.lower().lstrip(".")

    if content_type not in upload_config["audio_mime_types"] and extension not in upload_config["audio_extensions"]:
        raise UnsupportedFileTypeError(
            message="Unsupported audio format. Please upload MP3, WAV, M4A, or WEBM files."
        )

    path, size = await _save_upload(file, upload_dir, upload_config["audio_max_bytes"])
    result = await ingestion.ingest_audio(
        str(path),
        file_name,
        content_type or extension,
        size_bytes=size,
    )
    return _ingestion_response(result)


# ---------------------------------------------------------------------------
# Source library
# ---------------------------------------------------------------------------


@router.get(
    "/sources",
    response_model=SourceListResponse,
    summary="List imported sources, newest first",
)
async def list_sources(
    sources: SourceServiceDep,
    kind: Annotated[SourceKind | None, Query()] = None,
) -> SourceListResponse:
    items = await sources.list_sources(kind)
    return SourceListResponse(sources=items, total=len(items))


@router.get(
    "/sources/{source_id}",
    response_model=Source,
    responses={404: {"model": ErrorResponse}},
    summary="Get one source",
)
async def get_source(source_id: str, sources: SourceServiceDep) -> Source:
    return await sources.get_source(source_id)


@router.patch(
    "/sources/{source_id}",
    response_model=Source,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Edit a source's title or author",
)
async def update_source(
    source_id: str,
    body: UpdateSourceRequest,
    sources: SourceServiceDep,
) -> Source:
    return await sources.update_source(source_id, title=body.title, author=body.author)


@router.delete(
    "/sources/{source_id}",
    response_model=DeleteSourceResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete a source and all of its chunks",
)
async def delete_source(source_id: str, sources: SourceServiceDep) -> DeleteSourceResponse:
    removed = await sources.delete_source(source_id)
    return DeleteSourceResponse(source_id=source_id, chunks_removed=removed)


# ---------------------------------------------------------------------------
# Chat and conversations
# ---------------------------------------------------------------------------


@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    summary="Ask a question about the knowledge base",
)
async def chat(body: ChatRequest, chat_service: ChatServiceDep, user_id: UserIdDep) -> ChatResponse:
    reply = await chat_service.chat(user_id, body.message, conversation_id=body.conversation_id)
    return ChatResponse(
        answer=reply.answer,
        sources=reply.citations,
        conversation_id=reply.conversation_id,
        retrieval_performed=reply.retrieval_performed,
    )


@router.get(
    "/conversations",
    response_model=ConversationListResponse,
    summary="List the caller's conversations, most recent first",
)
async def list_conversations(chat_service: ChatServiceDep, user_id: UserIdDep) -> ConversationListResponse:
    return ConversationListResponse(conversations=await chat_service.list_conversations(user_id))


@router.post(
    "/conversations",
    response_model=Conversation,
    status_code=201,
    summary="Start an empty conversation",
)
async def create_conversation(
    body: CreateConversationRequest,
    chat_service: ChatServiceDep,
    user_id: UserIdDep,
) -> Conversation:
    return await chat_service.create_conversation(
        user_id, title=body.title, custom_prompt=body.custom_prompt
    )


@router.get(
    "/conversations/{conversation_id}",
    response_model=Conversation,
    responses={404: {"model": ErrorResponse}},
    summary="Get a conversation with its full history",
)
async def get_conversation(
    conversation_id: str,
    chat_service: ChatServiceDep,
    user_id: UserIdDep,
) -> Conversation:
    return await chat_service.get_conversation(user_id, conversation_id)


@router.patch(
    "/conversations/{conversation_id}",
    response_model=Conversation,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Rename a conversation or change its custom prompt",
)
async def update_conversation(
    conversation_id: str,
    body: UpdateConversationRequest,
    chat_service: ChatServiceDep,
    user_id: UserIdDep,
) -> Conversation:
    return await chat_service.update_conversation(
        user_id,
        conversation_id,
        title=body.title,
        custom_prompt=body.custom_prompt,
    )


@router.delete(
    "/conversations/{conversation_id}",
    status_code=204,
    responses={404: {"model": ErrorResponse}},
    summary="Delete a conversation",
)
async def delete_conversation(
    conversation_id: str,
    chat_service: ChatServiceDep,
    user_id: UserIdDep,
) -> None:
    await chat_service.delete_conversation(user_id, conversation_id)


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------


@router.get(
    "/preferences",
    response_model=UserPreferences,
    summary="Get the caller's generation preferences (defaults when unset)",
)
async def get_preferences(chat_service: ChatServiceDep, user_id: UserIdDep) -> UserPreferences:
    return await chat_service.get_preferences(user_id)


@router.put(
    "/preferences",
    response_model=UserPreferences,
    summary="Create or update the caller's generation preferences",
)
async def update_preferences(
    body: PreferencesUpdate,
    chat_service: ChatServiceDep,
    user_id: UserIdDep,
) -> UserPreferences:
    return await chat_service.update_preferences(user_id, body)


# ---------------------------------------------------------------------------
# Operational endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, provider availability and index state."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    index_ready = False
    total_chunks = 0
    vector_store = getattr(request.app.state, "vector_store", None)
    if vector_store is not None:
        try:
            index_ready = await vector_store.index_exists()
            total_chunks = await vector_store.count() if index_ready else 0
        except Exception as exc:  # noqa: BLE001 -- health must answer even when the store is down
            _logger.warning("health_vector_store_check_failed", error=str(exc))

    if index_ready and all(providers.values()):
        status = "healthy"
    elif index_ready:
        status = "degraded"
    else:
        status = "unhealthy"

    return HealthResponse(
        status=status,
        version=_VERSION,
        index_ready=index_ready,
        total_chunks=total_chunks,
        providers=providers,
    )


@router.get(
    "/corpus/stats",
    response_model=CorpusStats,
    summary="Knowledge base size and composition",
)
async def corpus_stats(sources: SourceServiceDep) -> CorpusStats:
    return await sources.get_corpus_stats()
