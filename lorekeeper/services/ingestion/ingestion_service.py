"""Orchestrator for the source ingestion pipeline.

Pipeline stages: **extract -> validate -> title -> persist -> chunk -> embed -> index**.

The :class:`IngestionService` implements the **Orchestrator pattern**: it
coordinates the extraction collaborators (transcript provider, document
extractor, speech-to-text), the chunker, the embedding provider and both
stores without any of them knowing about each other.

Every source kind has its own ``_prepare_*`` step that turns a
:data:`~lorekeeper.services.ingestion.inputs.SourceInput` into a
:class:`PreparedSource` (timed segments + Source fields).  From there all
kinds share :meth:`IngestionService._persist_chunk_embed`:

    1. Reject text shorter than ``min_content_chars``
    2. Derive a title from a text preview when none was supplied
    3. Create the Source row (unique ``external_id`` guards duplicates)
    4. Chunk the segments (zero chunks is an error, never an empty source)
    5. Embed every chunk text in one batched call
    6. Write chunks + vectors to the vector index

Any failure after step 3 deletes the Source and whatever chunks reached
the index, so no Source survives without its chunks.  Uploaded temporary
files are removed when :meth:`IngestionService.ingest` returns or raises.
"""

from __future__ import annotations

import asyncio
import os
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

from lorekeeper.models.preferences import GenerationOptions
from lorekeeper.models.rag import (
    DocumentChunk,
    IngestionResult,
    PlaylistImportResult,
    PlaylistItemResult,
    PlaylistItemStatus,
)
from lorekeeper.models.source import NewSource, SourceKind
from lorekeeper.services.ingestion.chunker import TranscriptChunker
from lorekeeper.services.ingestion.inputs import (
    AudioInput,
    DocumentInput,
    PreparedSource,
    SourceInput,
    TextInput,
    VideoInput,
)
from lorekeeper.utils.errors import (
    DuplicateSourceError,
    EmptyContentError,
    InvalidInputError,
    LLMError,
    LorekeeperError,
    TranscriptionError,
)
from lorekeeper.utils.text import title_from_filename, title_from_first_line, truncate_title
from lorekeeper.utils.youtube import (
    extract_playlist_id,
    extract_video_id,
    is_playlist_url,
    thumbnail_url,
    watch_url,
)

if TYPE_CHECKING:
    from lorekeeper.interfaces.embedding_provider import IEmbeddingProvider
    from lorekeeper.interfaces.llm_provider import ILLMProvider
    from lorekeeper.interfaces.source_store import ISourceStore
    from lorekeeper.interfaces.text_extractor import ITextExtractor
    from lorekeeper.interfaces.transcript_provider import (
        ITranscriptProvider,
        IVideoMetadataProvider,
    )
    from lorekeeper.interfaces.transcription_provider import ITranscriptionProvider
    from lorekeeper.interfaces.vector_store_provider import IVectorStoreProvider

logger = structlog.get_logger(logger_name=__name__)

_BYTES_PER_MB = 1024 * 1024
# Rough speech bitrate: one minute of compressed audio per megabyte.
_SECONDS_PER_MB = 60

_TITLE_SYSTEM_PROMPT = (
    "You write short, descriptive titles for documents in a personal knowledge base. "
    "Reply with the title only: at most 10 words, no quotes, no trailing punctuation."
)


class IngestionService:
    """Imports sources of every kind into the knowledge base.

    Parameters
    ----------
    source_store:
        Persists Source rows.
    vector_store:
        Receives embedded chunks.
    embedding_provider:
        Embeds chunk texts.
    chunker:
        Splits segments into overlapping chunks.
    transcript_provider, metadata_provider:
        Video transcript and metadata lookups.
    text_extractor:
        Document-to-text converter.
    transcription_provider:
        Speech-to-text for audio uploads.
    llm_provider:
        Optional; used to title untitled text.  Without it the first line
        of the text becomes the title.
    title_options:
        Sampling options for the title call.
    min_content_chars:
        Sources with less text than this are rejected.
    title_preview_chars:
        How much text the title call sees.
    """

    def __init__(
        self,
        source_store: ISourceStore,
        vector_store: IVectorStoreProvider,
        embedding_provider: IEmbeddingProvider,
        chunker: TranscriptChunker,
        transcript_provider: ITranscriptProvider,
        metadata_provider: IVideoMetadataProvider,
        text_extractor: ITextExtractor,
        transcription_provider: ITranscriptionProvider,
        llm_provider: ILLMProvider | None = None,
        title_options: GenerationOptions | None = None,
        min_content_chars: int = 10,
        title_preview_chars: int = 1000,
    ) -> None:
        self._source_store = source_store
        self._vector_store = vector_store
        self._embedding_provider = embedding_provider
        self._chunker = chunker
        self._transcript_provider = transcript_provider
        self._metadata_provider = metadata_provider
        self._text_extractor = text_extractor
        self._transcription_provider = transcription_provider
        self._llm = llm_provider
        self._title_options = title_options or GenerationOptions(
            temperature=0.3, max_tokens=60, model="gpt-4o-mini"
        )
        self._min_content_chars = min_content_chars
        self._title_preview_chars = title_preview_chars

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(self, source_input: SourceInput) -> IngestionResult:
        """Import one source of any kind.

        Raises
        ------
        InvalidInputError, DuplicateSourceError, ExtractionError, RAGError
            The import is aborted and no Source is left behind.
        """
        start = time.monotonic()
        temp_path = getattr(source_input, "file_path", None)
        try:
            prepared = await self._prepare(source_input)
            return await self._persist_chunk_embed(prepared, start)
        finally:
            if temp_path:
                self._remove_temp_file(temp_path)

    async def ingest_video(self, url: str) -> IngestionResult:
        return await self.ingest(VideoInput(url=url))

    async def ingest_text(
        self,
        content: str,
        title: str | None = None,
        author: str | None = None,
        url: str | None = None,
    ) -> IngestionResult:
        return await self.ingest(TextInput(content=content, title=title, author=author, url=url))

    async def ingest_document(self, file_path: str, file_name: str, file_type: str) -> IngestionResult:
        return await self.ingest(
            DocumentInput(file_path=file_path, file_name=file_name, file_type=file_type)
        )

    async def ingest_audio(
        self,
        file_path: str,
        file_name: str,
        file_type: str,
        size_bytes: int,
    ) -> IngestionResult:
        return await self.ingest(
            AudioInput(
                file_path=file_path,
                file_name=file_name,
                file_type=file_type,
                size_bytes=size_bytes,
            )
        )

    async def import_playlist(self, url: str) -> PlaylistImportResult:
        """Import every video of a playlist, one at a time.

        Items are independent: a duplicate is counted as skipped, any other
        failure as failed, and neither stops the batch.  Videos imported
        before an interruption stay imported.
        """
        playlist_id = extract_playlist_id(url)
        if not playlist_id:
            raise InvalidInputError(
                message="Invalid YouTube playlist URL. Please provide a URL containing a list= parameter."
            )

        video_ids = list(dict.fromkeys(await self._metadata_provider.list_playlist_videos(playlist_id)))
        logger.info("playlist_import_started", playlist_id=playlist_id, videos=len(video_ids))

        items: list[PlaylistItemResult] = []
        for video_id in video_ids:
            try:
                result = await self.ingest(VideoInput(url=video_id))
            except DuplicateSourceError as exc:
                items.append(
                    PlaylistItemResult(
                        external_id=video_id,
                        status=PlaylistItemStatus.SKIPPED,
                        error=exc.message,
                    )
                )
            except LorekeeperError as exc:
                logger.warning("playlist_item_failed", video_id=video_id, error=str(exc))
                items.append(
                    PlaylistItemResult(
                        external_id=video_id,
                        status=PlaylistItemStatus.FAILED,
                        error=exc.message,
                    )
                )
            except Exception as exc:  # noqa: BLE001 -- one bad item must not end the batch
                logger.exception("playlist_item_crashed", video_id=video_id)
                items.append(
                    PlaylistItemResult(
                        external_id=video_id,
                        status=PlaylistItemStatus.FAILED,
                        error=f"Unexpected error: {exc}",
                    )
                )
            else:
                items.append(
                    PlaylistItemResult(
                        external_id=video_id,
                        status=PlaylistItemStatus.IMPORTED,
                        source_id=result.source_id,
                        title=result.source_title,
                        chunks_created=result.chunks_created,
                    )
                )

        summary = PlaylistImportResult(
            playlist_id=playlist_id,
            imported=sum(1 for i in items if i.status is PlaylistItemStatus.IMPORTED),
            skipped=sum(1 for i in items if i.status is PlaylistItemStatus.SKIPPED),
            failed=sum(1 for i in items if i.status is PlaylistItemStatus.FAILED),
            items=items,
        )
        logger.info(
            "playlist_import_complete",
            playlist_id=playlist_id,
            imported=summary.imported,
            skipped=summary.skipped,
            failed=summary.failed,
        )
        return summary

    # ------------------------------------------------------------------
    # Kind-specific extraction
    # ------------------------------------------------------------------

    async def _prepare(self, source_input: SourceInput) -> PreparedSource:
        if isinstance(source_input, VideoInput):
            return await self._prepare_video(source_input)
        if isinstance(source_input, TextInput):
            return self._prepare_text(source_input)
        if isinstance(source_input, DocumentInput):
            return await self._prepare_document(source_input)
        if isinstance(source_input, AudioInput):
            return await self._prepare_audio(source_input)
        raise InvalidInputError(message=f"Unsupported source input: {type(source_input).__name__}")

    async def _prepare_video(self, source_input: VideoInput) -> PreparedSource:
        if is_playlist_url(source_input.url):
            raise InvalidInputError(
                message="This is a playlist URL. Use the playlist import to add all of its videos."
            )
        video_id = extract_video_id(source_input.url)
        if video_id is None:
            raise InvalidInputError(
                message="Invalid YouTube URL. Please provide a valid YouTube video URL."
            )

        # Fast path for a friendly message; the UNIQUE constraint is the guarantee.
        if await self._source_store.get_by_external_id(video_id) is not None:
            raise DuplicateSourceError(
                message="This video has already been added to your knowledge base."
            )

        metadata, segments = await asyncio.gather(
            self._metadata_provider.get_video_metadata(video_id),
            self._transcript_provider.get_transcript(video_id),
        )
        duration = max(self._chunker.calculate_duration(segments), metadata.duration)

        return PreparedSource(
            segments=segments,
            new_source=NewSource(
                kind=SourceKind.VIDEO,
                title=metadata.title,
                url=watch_url(video_id),
                external_id=video_id,
                thumbnail_url=thumbnail_url(video_id),
                duration=duration,
                author=metadata.author,
            ),
        )

    def _prepare_text(self, source_input: TextInput) -> PreparedSource:
        content = source_input.content.strip()
        title = (source_input.title or "").strip()
        return PreparedSource(
            segments=self._chunker.split_bulk_text(content),
            new_source=NewSource(
                kind=SourceKind.TEXT,
                title=title or "Untitled text",
                content=content,
                url=source_input.url,
                author=(source_input.author or "").strip() or None,
            ),
            needs_title=not title,
            title_fallback=title_from_first_line(content, fallback="Untitled text"),
        )

    async def _prepare_document(self, source_input: DocumentInput) -> PreparedSource:
        text = (await self._text_extractor.extract(source_input.file_path, source_input.file_type)).strip()
        fallback = title_from_filename(source_input.file_name)
        return PreparedSource(
            segments=self._chunker.split_bulk_text(text),
            new_source=NewSource(
                kind=SourceKind.DOCUMENT,
                title=title_from_first_line(text, fallback=fallback),
                content=text,
                file_name=source_input.file_name,
                file_type=source_input.file_type,
            ),
        )

    async def _prepare_audio(self, source_input: AudioInput) -> PreparedSource:
        result = await self._transcription_provider.transcribe(source_input.file_path)
        text = result.text.strip()
        if len(text) < self._min_content_chars:
            raise TranscriptionError(
                message="Audio transcription produced no usable text. Is there speech in the recording?"
            )

        if result.duration_seconds:
            duration = round(result.duration_seconds)
        else:
            duration = round(source_input.size_bytes / _BYTES_PER_MB * _SECONDS_PER_MB)

        return PreparedSource(
            segments=self._chunker.split_bulk_text(text),
            new_source=NewSource(
                kind=SourceKind.AUDIO,
                title=title_from_filename(source_input.file_name),
                content=text,
                file_name=source_input.file_name,
                file_type=source_input.file_type,
                duration=duration,
            ),
        )

    # ------------------------------------------------------------------
    # Shared tail
    # ------------------------------------------------------------------

    async def _persist_chunk_embed(self, prepared: PreparedSource, start: float) -> IngestionResult:
        new_source = prepared.new_source
        text_chars = sum(len(segment.text.strip()) for segment in prepared.segments)
        if text_chars < self._min_content_chars:
            if new_source.kind is SourceKind.VIDEO:
                raise EmptyContentError(message="Failed to process video transcript.")
            raise EmptyContentError(
                message=f"Content is too short to import (minimum {self._min_content_chars} characters)."
            )

        if prepared.needs_title:
            title = await self._derive_title(prepared.segments, prepared.title_fallback)
            new_source = new_source.model_copy(update={"title": title})

        source = await self._source_store.create(new_source)
        try:
            text_chunks = self._chunker.chunk(prepared.segments)
            if not text_chunks:
                raise EmptyContentError(
                    message=(
                        "Failed to process video transcript."
                        if source.kind is SourceKind.VIDEO
                        else "No content could be extracted from this source."
                    )
                )

            embeddings = await self._embedding_provider.embed([c.text for c in text_chunks])

            created_at = datetime.now(timezone.utc)
            chunks = [
                DocumentChunk(
                    chunk_id=DocumentChunk.make_id(source.id, c.chunk_index),
                    source_id=source.id,
                    text=c.text,
                    start_time=c.start_time,
                    chunk_index=c.chunk_index,
                    created_at=created_at,
                )
                for c in text_chunks
            ]
            stored = await self._vector_store.add_chunks(chunks, embeddings)
        except (Exception, asyncio.CancelledError):
            await self._rollback(source.id)
            raise

        elapsed = round(time.monotonic() - start, 2)
        logger.info(
            "ingestion_complete",
            source_id=source.id,
            kind=source.kind.value,
            title=source.title,
            chunks=stored,
            elapsed_s=elapsed,
        )
        return IngestionResult(
            source_id=source.id,
            source_title=source.title,
            kind=source.kind,
            chunks_created=stored,
            duration=source.duration,
            ingestion_time=elapsed,
        )

    async def _derive_title(self, segments: list, fallback: str) -> str:
        if self._llm is None:
            return fallback

        preview = " ".join(segment.text for segment in segments)[: self._title_preview_chars]
        try:
            raw = await self._llm.complete(
                system_prompt=_TITLE_SYSTEM_PROMPT,
                user_message=preview,
                options=self._title_options,
            )
        except LLMError as exc:
            logger.warning("title_generation_failed", error=str(exc))
            return fallback

        lines = raw.strip().splitlines()
        title = lines[0].strip().strip("\"'").strip() if lines else ""
        if not title or title.startswith("I couldn't"):
            return fallback
        return truncate_title(title, max_chars=100)

    async def _rollback(self, source_id: str) -> None:
        """Remove a half-imported Source: chunks first, then the row."""
        try:
            await self._vector_store.delete_by_source(source_id)
        except LorekeeperError:
            # The row is still deleted; a chunk without a Source is dropped at query time.
            logger.exception("ingestion_rollback_chunks_failed", source_id=source_id)
        await self._source_store.delete(source_id)
        logger.warning("ingestion_rolled_back", source_id=source_id)

    @staticmethod
    def _remove_temp_file(path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("temp_file_cleanup_failed", path=path, error=str(exc))
