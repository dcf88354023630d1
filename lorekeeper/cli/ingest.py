# =============================================================================
# lorekeeper/cli/ingest.py: CLI Ingest Command (Knowledge Base Management)
# =============================================================================
#
# Standalone CLI for filling and maintaining the Lorekeeper knowledge base
# without running the web server.  It drives the same IngestionService and
# SourceService the API uses, against the same SQLite database and ChromaDB
# vector index.
#
# Supported subcommands:
#
#   video            - Import one YouTube video transcript
#   playlist         - Import every video of a YouTube playlist
#   text             - Import a plain-text file as an article
#   document         - Import a PDF, DOCX or TXT document
#   audio            - Transcribe and import an audio recording
#   list             - List imported sources (optionally by kind)
#   delete           - Delete a source and all of its chunks
#   stats            - Display corpus statistics
#   provision-index  - Create the fixed-name vector index
#
# Usage examples:
#   python -m lorekeeper.cli.ingest video --url https://youtu.be/dQw4w9WgXcQ
#   python -m lorekeeper.cli.ingest playlist --url "https://www.youtube.com/playlist?list=PL..."
#   python -m lorekeeper.cli.ingest text --file notes.txt --title "Notes" --author "Me"
#   python -m lorekeeper.cli.ingest document --file paper.pdf
#   python -m lorekeeper.cli.ingest list --kind video
#   python -m lorekeeper.cli.ingest delete --id 3f2c... --yes
#   python -m lorekeeper.cli.ingest provision-index
# =============================================================================

"""Standalone CLI for building and maintaining the Lorekeeper knowledge base.

Usage::

    python -m lorekeeper.cli.ingest video --url https://youtu.be/dQw4w9WgXcQ

    python -m lorekeeper.cli.ingest document --file /path/to/paper.pdf

    python -m lorekeeper.cli.ingest stats
"""

from __future__ import annotations

import argparse
import asyncio
import shutil
import sys
import tempfile
from pathlib import Path

from lorekeeper.config.loader import load_config
from lorekeeper.config.settings import Settings
from lorekeeper.utils.errors import LorekeeperError
from lorekeeper.utils.logging import configure_logging

_SOURCE_KINDS = ("video", "text", "document", "audio")


# ---------------------------------------------------------------------------
# Component construction (imports deferred so `--help` stays fast)
# ---------------------------------------------------------------------------


def _build_library(app_settings: Settings):  # noqa: ANN202
    """Build the stores and the SourceService (no OpenAI calls needed)."""
    from lorekeeper.providers.store.sqlite_source_store import SQLiteSourceStore
    from lorekeeper.providers.vector_store.chromadb_provider import ChromaDBProvider
    from lorekeeper.services.source_service import SourceService

    source_store = SQLiteSourceStore(db_path=app_settings.database_path)
    vector_store = ChromaDBProvider(
        persist_directory=app_settings.chromadb_persist_dir,
        index_name=app_settings.vector_index_name,
        dimension=app_settings.embedding_dimensions,
    )
    return source_store, vector_store, SourceService(source_store, vector_store)


def _build_ingestion_service(app_settings: Settings, app_config: dict):  # noqa: ANN202
    """Build the full ingestion pipeline, or ``(None, None, reason)``."""
    if not app_settings.openai_api_key:
        return None, None, "OPENAI_API_KEY is not set; embeddings cannot be generated."

    from lorekeeper.models.preferences import GenerationOptions
    from lorekeeper.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
    from lorekeeper.providers.extraction.document_text_extractor import DocumentTextExtractor
    from lorekeeper.providers.llm.openai_provider import OpenAILLMProvider
    from lorekeeper.providers.transcription.whisper_api_provider import WhisperAPIProvider
    from lorekeeper.providers.video.youtube_transcript_provider import YouTubeTranscriptProvider
    from lorekeeper.providers.video.ytdlp_metadata_provider import YtDlpMetadataProvider
    from lorekeeper.services.ingestion.chunker import TranscriptChunker
    from lorekeeper.services.ingestion.ingestion_service import IngestionService

    source_store, vector_store, _ = _build_library(app_settings)
    chunking = app_config["chunking"]
    ingestion = app_config["ingestion"]
    generation = app_config["generation"]

    embedding_provider = OpenAIEmbeddingProvider(app_settings)
    service = IngestionService(
        source_store=source_store,
        vector_store=vector_store,
        embedding_provider=embedding_provider,
        chunker=TranscriptChunker(
            chunk_size=chunking["chunk_size"],
            overlap=chunking["overlap"],
            bulk_segment_chars=chunking["bulk_segment_chars"],
        ),
        transcript_provider=YouTubeTranscriptProvider(),
        metadata_provider=YtDlpMetadataProvider(),
        text_extractor=DocumentTextExtractor(min_chars=ingestion["min_content_chars"]),
        transcription_provider=WhisperAPIProvider(app_settings),
        llm_provider=OpenAILLMProvider(
            app_settings,
            model_token_limits=generation.get("model_token_limits") or {},
            fallback_max_tokens=generation["fallback_max_tokens"],
        ),
        title_options=GenerationOptions(
            temperature=0.3, max_tokens=60, model=app_settings.openai_title_model
        ),
        min_content_chars=ingestion["min_content_chars"],
        title_preview_chars=ingestion["title_preview_chars"],
    )
    status = f"embedding={embedding_provider.get_provider_name()}, vector_store={vector_store.get_provider_name()}"
    return service, source_store, status


def _stage_copy(path: Path) -> str:
    """Copy *path* to a temp file; the pipeline deletes its input when done."""
    handle, staged = tempfile.mkstemp(suffix=path.suffix.lower())
    with open(handle, "wb") as out, open(path, "rb") as src:
        shutil.copyfileobj(src, out)
    return staged


def _print_result(result) -> None:  # noqa: ANN001
    print(f"  Imported:  {result.source_title}")
    print(f"  Source id: {result.source_id}")
    print(f"  Chunks:    {result.chunks_created}")
    print(f"  Time:      {result.ingestion_time:.1f}s")


# ---------------------------------------------------------------------------
# Import handlers
# ---------------------------------------------------------------------------


async def _handle_video(args: argparse.Namespace, service) -> int:  # noqa: ANN001
    print(f"Importing video: {args.url}")
    _print_result(await service.ingest_video(args.url))
    return 0


async def _handle_playlist(args: argparse.Namespace, service) -> int:  # noqa: ANN001
    print(f"Importing playlist: {args.url}")
    summary = await service.import_playlist(args.url)
    for item in summary.items:
        detail = item.title or item.error or ""
        print(f"  [{item.status.value:<8}] {item.external_id}  {detail}")
    print()
    print(f"Imported {summary.imported}, skipped {summary.skipped}, failed {summary.failed}.")
    return 0 if summary.failed == 0 else 1


async def _handle_text(args: argparse.Namespace, service) -> int:  # noqa: ANN001
    path = Path(args.file)
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1
    content = path.read_text(encoding="utf-8-sig", errors="replace")
    print(f"Importing text: {path.name}")
    _print_result(await service.ingest_text(content, title=args.title, author=args.author))
    return 0


async def _handle_document(args: argparse.Namespace, service) -> int:  # noqa: ANN001
    path = Path(args.file)
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1
    print(f"Importing document: {path.name}")
    result = await service.ingest_document(_stage_copy(path), path.name, path.suffix)
    _print_result(result)
    return 0


async def _handle_audio(args: argparse.Namespace, service) -> int:  # noqa: ANN001
    path = Path(args.file)
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1
    print(f"Transcribing audio: {path.name}")
    result = await service.ingest_audio(
        _stage_copy(path),
        path.name,
        path.suffix.lstrip(".").lower(),
        size_bytes=path.stat().st_size,
    )
    _print_result(result)
    return 0


_IMPORT_HANDLERS = {
    "video": _handle_video,
    "playlist": _handle_playlist,
    "text": _handle_text,
    "document": _handle_document,
    "audio": _handle_audio,
}


async def _run_import(args: argparse.Namespace, app_settings: Settings, app_config: dict) -> int:
    service, source_store, status_msg = _build_ingestion_service(app_settings, app_config)
    if service is None:
        print(f"Error: {status_msg}", file=sys.stderr)
        return 1
    print(f"Providers: {status_msg}")
    print()
    await source_store.initialize()
    return await _IMPORT_HANDLERS[args.command](args, service)


# ---------------------------------------------------------------------------
# Library handlers
# ---------------------------------------------------------------------------


async def _handle_list(args: argparse.Namespace, app_settings: Settings) -> int:
    from lorekeeper.models.source import SourceKind

    source_store, _, library = _build_library(app_settings)
    await source_store.initialize()
    sources = await library.list_sources(SourceKind(args.kind) if args.kind else None)

    if not sources:
        print("No sources imported yet.")
        return 0
    for source in sources:
        author = f" by {source.author}" if source.author else ""
        print(f"  {source.id}  [{source.kind.value:<8}] {source.title}{author}")
    print(f"\n{len(sources)} source(s)")
    return 0


async def _handle_delete(args: argparse.Namespace, app_settings: Settings) -> int:
    source_store, _, library = _build_library(app_settings)
    await source_store.initialize()
    source = await library.get_source(args.id)

    if not args.yes:
        answer = input(f"Delete '{source.title}' and all of its chunks? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted.")
            return 1

    removed = await library.delete_source(args.id)
    print(f"Deleted '{source.title}' ({removed} chunks removed).")
    return 0


async def _handle_stats(app_settings: Settings) -> int:
    """Display corpus statistics."""
    source_store, vector_store, library = _build_library(app_settings)
    await source_store.initialize()

    if not await vector_store.index_exists():
        print(f"Vector index '{app_settings.vector_index_name}' has not been provisioned.")
        print("Run: python -m lorekeeper.cli.ingest provision-index")

    stats = await library.get_corpus_stats()

    print("Corpus Statistics")
    print("=" * 40)
    print(f"  Total chunks:     {stats.total_chunks}")
    print(f"  Total sources:    {stats.total_sources}")

    if stats.sources_by_kind:
        print("\n  Sources by kind:")
        for kind, count in sorted(stats.sources_by_kind.items()):
            print(f"    {kind:<15} {count}")

    return 0


async def _handle_provision_index(app_settings: Settings) -> int:
    _, vector_store, _ = _build_library(app_settings)
    existed = await vector_store.index_exists()
    await vector_store.ensure_index()
    state = "already exists" if existed else "created"
    print(f"Vector index '{app_settings.vector_index_name}' {state}.")
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m lorekeeper.cli.ingest",
        description="Import sources into the Lorekeeper knowledge base and manage them.",
    )
    sub = parser.add_subparsers(dest="command")

    video = sub.add_parser("video", help="Import one YouTube video")
    video.add_argument("--url", required=True, help="Video URL or 11-character id")

    playlist = sub.add_parser("playlist", help="Import every video of a YouTube playlist")
    playlist.add_argument("--url", required=True, help="URL containing a list= parameter")

    text = sub.add_parser("text", help="Import a plain-text file as an article")
    text.add_argument("--file", required=True, help="Path to a UTF-8 text file")
    text.add_argument("--title", default=None, help="Title (generated when omitted)")
    text.add_argument("--author", default=None, help="Author name")

    document = sub.add_parser("document", help="Import a PDF, DOCX or TXT document")
    document.add_argument("--file", required=True, help="Path to the document")

    audio = sub.add_parser("audio", help="Transcribe and import an audio recording")
    audio.add_argument("--file", required=True, help="Path to an mp3/wav/m4a/webm file")

    list_cmd = sub.add_parser("list", help="List imported sources")
    list_cmd.add_argument("--kind", choices=_SOURCE_KINDS, default=None)

    delete = sub.add_parser("delete", help="Delete a source and its chunks")
    delete.add_argument("--id", required=True, help="Source id (see `list`)")
    delete.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    sub.add_parser("stats", help="Show corpus statistics")
    sub.add_parser("provision-index", help="Create the vector index if it is missing")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ingestion tool.

    Library commands (list, delete, stats, provision-index) only need the
    stores.  Import commands build the full pipeline and need an OpenAI key.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    app_config = load_config(settings=app_settings)
    configure_logging(log_level=app_settings.log_level, json_output=False)

    try:
        if args.command == "list":
            exit_code = asyncio.run(_handle_list(args, app_settings))
        elif args.command == "delete":
            exit_code = asyncio.run(_handle_delete(args, app_settings))
        elif args.command == "stats":
            exit_code = asyncio.run(_handle_stats(app_settings))
        elif args.command == "provision-index":
            exit_code = asyncio.run(_handle_provision_index(app_settings))
        else:
            exit_code = asyncio.run(_run_import(args, app_settings, app_config))
    except LorekeeperError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
