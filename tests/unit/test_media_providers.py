"""Unit tests for the YouTube transcript, yt-dlp metadata and Whisper providers."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest
from youtube_transcript_api import NoTranscriptFound, TranscriptsDisabled, VideoUnavailable
from yt_dlp.utils import DownloadError

from lorekeeper.config.settings import Settings
from lorekeeper.providers.transcription.whisper_api_provider import WhisperAPIProvider
from lorekeeper.providers.video.youtube_transcript_provider import YouTubeTranscriptProvider
from lorekeeper.providers.video.ytdlp_metadata_provider import YtDlpMetadataProvider
from lorekeeper.utils.errors import (
    CaptionsDisabledError,
    InvalidInputError,
    TranscriptionError,
    TranscriptNotFoundError,
    VideoUnavailableError,
)

VIDEO_ID = "dQw4w9WgXcQ"


def _snippet(text: str, start: float, duration: float) -> MagicMock:
    return MagicMock(text=text, start=start, duration=duration)


# ======================================================================
# YouTubeTranscriptProvider
# ======================================================================


class TestYouTubeTranscriptProvider:
    @pytest.mark.asyncio
    async def test_snippets_become_millisecond_segments(self) -> None:
        client = MagicMock()
        client.fetch.return_value = [_snippet("hello", 1.5, 2.0), _snippet("world", 3.5, 1.25)]

        segments = await YouTubeTranscriptProvider(client=client).get_transcript(VIDEO_ID)

        assert [s.text for s in segments] == ["hello", "world"]
        assert segments[0].offset_ms == 1500.0
        assert segments[1].duration_ms == 1250.0
        assert client.fetch.call_args.kwargs["languages"][0] == "en"

    @pytest.mark.asyncio
    async def test_falls_back_to_any_language(self) -> None:
        client = MagicMock()
        client.fetch.side_effect = NoTranscriptFound(VIDEO_ID, ["en"], MagicMock())
        german = MagicMock()
        german.fetch.return_value = [_snippet("hallo", 0.0, 1.0)]
        client.list.return_value = [german]

        segments = await YouTubeTranscriptProvider(client=client).get_transcript(VIDEO_ID)

        assert [s.text for s in segments] == ["hallo"]

    @pytest.mark.asyncio
    async def test_captions_disabled(self) -> None:
        client = MagicMock()
        client.fetch.side_effect = TranscriptsDisabled(VIDEO_ID)
        with pytest.raises(CaptionsDisabledError):
            await YouTubeTranscriptProvider(client=client).get_transcript(VIDEO_ID)

    @pytest.mark.asyncio
    async def test_video_unavailable(self) -> None:
        client = MagicMock()
        client.fetch.side_effect = VideoUnavailable(VIDEO_ID)
        with pytest.raises(VideoUnavailableError):
            await YouTubeTranscriptProvider(client=client).get_transcript(VIDEO_ID)

    @pytest.mark.asyncio
    async def test_no_transcripts_at_all(self) -> None:
        client = MagicMock()
        client.fetch.side_effect = NoTranscriptFound(VIDEO_ID, ["en"], MagicMock())
        client.list.return_value = []
        with pytest.raises(TranscriptNotFoundError):
            await YouTubeTranscriptProvider(client=client).get_transcript(VIDEO_ID)


# ======================================================================
# YtDlpMetadataProvider
# ======================================================================

_YDL_TARGET = "lorekeeper.providers.video.ytdlp_metadata_provider.YoutubeDL"


def _patched_ydl(info: dict | None = None, error: Exception | None = None) -> MagicMock:
    ydl_cls = MagicMock()
    ydl = ydl_cls.return_value.__enter__.return_value
    if error is not None:
        ydl.extract_info.side_effect = error
    else:
        ydl.extract_info.return_value = info
    return ydl_cls


class TestYtDlpMetadataProvider:
    @pytest.mark.asyncio
    async def test_metadata_mapping(self) -> None:
        ydl_cls = _patched_ydl({"title": "Photosynthesis", "channel": "Science", "duration": 612.4})
        with patch(_YDL_TARGET, ydl_cls):
            meta = await YtDlpMetadataProvider().get_video_metadata(VIDEO_ID)

        assert meta.title == "Photosynthesis"
        assert meta.author == "Science"
        assert meta.duration == 612
        options = ydl_cls.call_args.args[0]
        assert options["skip_download"] is True

    @pytest.mark.asyncio
    async def test_lookup_failure_uses_placeholder(self) -> None:
        with patch(_YDL_TARGET, _patched_ydl(error=DownloadError("private video"))):
            meta = await YtDlpMetadataProvider().get_video_metadata(VIDEO_ID)

        assert meta.title == f"YouTube Video {VIDEO_ID}"
        assert meta.author is None

    @pytest.mark.asyncio
    async def test_playlist_entries(self) -> None:
        info = {"entries": [{"id": "aaaaaaaaaaa"}, None, {"title": "no id"}, {"id": "bbbbbbbbbbb"}]}
        ydl_cls = _patched_ydl(info)
        with patch(_YDL_TARGET, ydl_cls):
            ids = await YtDlpMetadataProvider().list_playlist_videos("PL123")

        assert ids == ["aaaaaaaaaaa", "bbbbbbbbbbb"]
        options = ydl_cls.call_args.args[0]
        assert options["extract_flat"] == "in_playlist"
        assert options["noplaylist"] is False

    @pytest.mark.asyncio
    async def test_playlist_failure_is_invalid_input(self) -> None:
        with patch(_YDL_TARGET, _patched_ydl(error=DownloadError("no such playlist"))):
            with pytest.raises(InvalidInputError):
                await YtDlpMetadataProvider().list_playlist_videos("PLmissing")


# ======================================================================
# WhisperAPIProvider
# ======================================================================

_OPENAI_TARGET = "lorekeeper.providers.transcription.whisper_api_provider.openai.AsyncOpenAI"


def _whisper(create: AsyncMock) -> WhisperAPIProvider:
    client = MagicMock()
    client.audio.transcriptions.create = create
    with patch(_OPENAI_TARGET, return_value=client):
        return WhisperAPIProvider(Settings(openai_api_key="sk-test"))


class TestWhisperAPIProvider:
    @pytest.mark.asyncio
    async def test_transcribe(self, tmp_path: Path) -> None:
        audio = tmp_path / "memo.mp3"
        audio.write_bytes(b"ID3fake")
        create = AsyncMock(return_value=MagicMock(text="Hello there.", duration=12.5, language="english"))

        result = await _whisper(create).transcribe(str(audio))

        assert result.text == "Hello there."
        assert result.duration_seconds == 12.5
        assert create.call_args.kwargs["response_format"] == "verbose_json"
        assert create.call_args.kwargs["model"] == "whisper-1"

    @pytest.mark.asyncio
    async def test_api_error(self, tmp_path: Path) -> None:
        audio = tmp_path / "memo.mp3"
        audio.write_bytes(b"ID3fake")
        request = httpx.Request("POST", "https://api.openai.com/v1/audio/transcriptions")
        create = AsyncMock(side_effect=openai.APIConnectionError(request=request))

        with pytest.raises(TranscriptionError):
            await _whisper(create).transcribe(str(audio))

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(TranscriptionError, match="Could not read"):
            await _whisper(AsyncMock()).transcribe(str(tmp_path / "nope.mp3"))

    @pytest.mark.asyncio
    async def test_oversized_file_is_not_uploaded(self, tmp_path: Path, monkeypatch) -> None:
        audio = tmp_path / "long.wav"
        audio.write_bytes(b"\x00" * 64)
        monkeypatch.setattr(
            "lorekeeper.providers.transcription.whisper_api_provider._MAX_UPLOAD_BYTES", 32
        )
        create = AsyncMock()

        with pytest.raises(TranscriptionError, match="limit is 25 MB"):
            await _whisper(create).transcribe(str(audio))
        create.assert_not_awaited()
