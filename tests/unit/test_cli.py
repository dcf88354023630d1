"""Unit tests for the lorekeeper.cli.ingest command-line tool."""

from __future__ import annotations

from argparse import Namespace
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from lorekeeper.cli import ingest
from lorekeeper.config.settings import Settings
from lorekeeper.models.rag import (
    IngestionResult,
    PlaylistImportResult,
    PlaylistItemResult,
    PlaylistItemStatus,
)
from lorekeeper.models.source import NewSource, SourceKind
from lorekeeper.providers.store.sqlite_source_store import SQLiteSourceStore


def _settings(tmp_path: Path) -> Settings:
    return Settings(
        openai_api_key="",
        database_path=str(tmp_path / "cli.db"),
        chromadb_persist_dir=str(tmp_path / "chroma"),
        embedding_dimensions=4,
    )


def _result(title: str = "Imported thing") -> IngestionResult:
    return IngestionResult(
        source_id="src-1",
        source_title=title,
        kind=SourceKind.DOCUMENT,
        chunks_created=3,
        ingestion_time=0.42,
    )


# ======================================================================
# Parser
# ======================================================================


class TestParser:
    def test_video_requires_url(self) -> None:
        with pytest.raises(SystemExit):
            ingest._build_parser().parse_args(["video"])

    def test_text_options(self) -> None:
        args = ingest._build_parser().parse_args(
            ["text", "--file", "notes.txt", "--title", "Notes", "--author", "Me"]
        )
        assert (args.command, args.file, args.title, args.author) == ("text", "notes.txt", "Notes", "Me")

    def test_list_kind_is_validated(self) -> None:
        parser = ingest._build_parser()
        assert parser.parse_args(["list", "--kind", "audio"]).kind == "audio"
        with pytest.raises(SystemExit):
            parser.parse_args(["list", "--kind", "podcast"])

    def test_delete_flags(self) -> None:
        args = ingest._build_parser().parse_args(["delete", "--id", "abc", "--yes"])
        assert args.id == "abc"
        assert args.yes is True

    def test_no_command_exits(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            ingest.main([])
        assert exc_info.value.code == 1


# ======================================================================
# Import handlers
# ======================================================================


class TestImportHandlers:
    @pytest.mark.asyncio
    async def test_document_is_staged_not_consumed(self, tmp_path: Path, capsys) -> None:
        original = tmp_path / "paper.PDF"
        original.write_bytes(b"%PDF-1.4")
        service = MagicMock()
        service.ingest_document = AsyncMock(return_value=_result("Paper"))

        code = await ingest._handle_document(Namespace(file=str(original)), service)

        assert code == 0
        assert original.exists()
        staged, name, file_type = service.ingest_document.call_args.args
        assert staged != str(original)
        assert staged.endswith(".pdf")
        assert (name, file_type) == ("paper.PDF", ".PDF")
        assert "Imported:  Paper" in capsys.readouterr().out
        Path(staged).unlink()

    @pytest.mark.asyncio
    async def test_audio_passes_size(self, tmp_path: Path) -> None:
        original = tmp_path / "memo.MP3"
        original.write_bytes(b"x" * 2048)
        service = MagicMock()
        service.ingest_audio = AsyncMock(return_value=_result())

        await ingest._handle_audio(Namespace(file=str(original)), service)

        args = service.ingest_audio.call_args
        assert args.args[1:] == ("memo.MP3", "mp3")
        assert args.kwargs["size_bytes"] == 2048
        Path(args.args[0]).unlink()

    @pytest.mark.asyncio
    async def test_text_reads_file(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.txt"
        path.write_text("Espresso notes", encoding="utf-8")
        service = MagicMock()
        service.ingest_text = AsyncMock(return_value=_result())

        await ingest._handle_text(Namespace(file=str(path), title=None, author="Me"), service)

        service.ingest_text.assert_awaited_once_with("Espresso notes", title=None, author="Me")

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path: Path, capsys) -> None:
        code = await ingest._handle_text(
            Namespace(file=str(tmp_path / "nope.txt"), title=None, author=None), MagicMock()
        )
        assert code == 1
        assert "file not found" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_playlist_with_failures_exits_nonzero(self, capsys) -> None:
        service = MagicMock()
        service.import_playlist = AsyncMock(
            return_value=PlaylistImportResult(
                playlist_id="PL1",
                imported=1,
                failed=1,
                items=[
                    PlaylistItemResult(
                        external_id="aaaaaaaaaaa", status=PlaylistItemStatus.IMPORTED, title="Good"
                    ),
                    PlaylistItemResult(
                        external_id="bbbbbbbbbbb", status=PlaylistItemStatus.FAILED, error="No captions"
                    ),
                ],
            )
        )

        code = await ingest._handle_playlist(Namespace(url="PL1"), service)

        assert code == 1
        out = capsys.readouterr().out
        assert "Imported 1, skipped 0, failed 1." in out
        assert "No captions" in out

    @pytest.mark.asyncio
    async def test_import_without_key_fails(self, tmp_path: Path, capsys) -> None:
        code = await ingest._run_import(Namespace(command="video", url="x"), _settings(tmp_path), {})
        assert code == 1
        assert "OPENAI_API_KEY" in capsys.readouterr().err


# ======================================================================
# Library handlers (real SQLite + ChromaDB under tmp_path)
# ======================================================================


class TestLibraryHandlers:
    @pytest.mark.asyncio
    async def test_list_empty(self, tmp_path: Path, capsys) -> None:
        code = await ingest._handle_list(Namespace(kind=None), _settings(tmp_path))
        assert code == 0
        assert "No sources imported yet." in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_list_and_delete(self, tmp_path: Path, capsys) -> None:
        settings = _settings(tmp_path)
        store = SQLiteSourceStore(db_path=settings.database_path)
        await store.initialize()
        source = await store.create(NewSource(kind=SourceKind.TEXT, title="Roasting", author="Me"))
        await ingest._handle_provision_index(settings)

        await ingest._handle_list(Namespace(kind="text"), settings)
        assert "Roasting by Me" in capsys.readouterr().out

        code = await ingest._handle_delete(Namespace(id=source.id, yes=True), settings)
        assert code == 0
        assert "Deleted 'Roasting' (0 chunks removed)." in capsys.readouterr().out
        assert await store.get(source.id) is None

    @pytest.mark.asyncio
    async def test_delete_can_be_aborted(self, tmp_path: Path, monkeypatch) -> None:
        settings = _settings(tmp_path)
        store = SQLiteSourceStore(db_path=settings.database_path)
        await store.initialize()
        source = await store.create(NewSource(kind=SourceKind.TEXT, title="Keep me"))
        monkeypatch.setattr("builtins.input", lambda prompt: "n")

        code = await ingest._handle_delete(Namespace(id=source.id, yes=False), settings)

        assert code == 1
        assert await store.get(source.id) is not None

    @pytest.mark.asyncio
    async def test_stats_without_index(self, tmp_path: Path, capsys) -> None:
        code = await ingest._handle_stats(_settings(tmp_path))
        out = capsys.readouterr().out
        assert code == 0
        assert "has not been provisioned" in out
        assert "Total chunks:     0" in out

    def test_missing_source_is_reported(self, tmp_path: Path, monkeypatch, capsys) -> None:
        monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "cli.db"))
        monkeypatch.setenv("CHROMADB_PERSIST_DIR", str(tmp_path / "chroma"))

        with pytest.raises(SystemExit) as exc_info:
            ingest.main(["delete", "--id", "missing", "--yes"])

        assert exc_info.value.code == 1
        assert "Error: Source not found" in capsys.readouterr().err
