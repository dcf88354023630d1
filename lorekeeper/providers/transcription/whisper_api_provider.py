"""Speech-to-text for audio imports via the hosted Whisper endpoint.

Uploads the recording once with ``response_format="verbose_json"`` so the
reply carries the audio length alongside the text; the ingestion pipeline
prefers that figure over its own file-size estimate.
"""

from __future__ import annotations

from pathlib import Path

import openai
import structlog

from lorekeeper.config.settings import Settings
from lorekeeper.interfaces.transcription_provider import (
    ITranscriptionProvider,
    TranscriptionResult,
)
from lorekeeper.utils.errors import TranscriptionError

logger = structlog.get_logger(logger_name=__name__)

# The hosted endpoint refuses larger request bodies.
_MAX_UPLOAD_BYTES = 25 * 1024 * 1024

# Transcription runs at a fraction of real time, so it gets a longer
# read timeout than chat completions.
_READ_TIMEOUT_FACTOR = 8


class WhisperAPIProvider(ITranscriptionProvider):
    """Transcribes one recording per call; no chunking of long files."""

    def __init__(self, settings: Settings) -> None:
        self._configured = bool(settings.openai_api_key)
        self._model = settings.whisper_model
        self._client = openai.AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url or None,
            timeout=openai.Timeout(
                settings.openai_timeout_seconds * _READ_TIMEOUT_FACTOR,
                connect=settings.openai_connect_timeout_seconds,
            ),
        )

    async def transcribe(self, audio_path: str, language: str | None = None) -> TranscriptionResult:
        path = Path(audio_path)
        try:
            size = path.stat().st_size
        except OSError as exc:
            raise self._error(f"Could not read audio file: {exc}") from exc
        if size > _MAX_UPLOAD_BYTES:
            raise self._error(
                f"Audio file is {size / (1024 * 1024):.1f} MB; the limit is 25 MB."
            )

        request: dict = {"model": self._model, "response_format": "verbose_json"}
        if language:
            request["language"] = language

        try:
            with path.open("rb") as audio:
                reply = await self._client.audio.transcriptions.create(file=audio, **request)
        except OSError as exc:
            raise self._error(f"Could not read audio file: {exc}") from exc
        except openai.APIError as exc:
            raise self._error(f"Failed to transcribe audio: {exc}") from exc

        text = reply.text or ""
        seconds = getattr(reply, "duration", None)
        result = TranscriptionResult(
            text=text,
            language=getattr(reply, "language", None) or language,
            duration_seconds=float(seconds) if seconds else None,
        )
        logger.info(
            "audio_transcribed",
            file=path.name,
            bytes=size,
            seconds=result.duration_seconds,
            chars=len(text),
        )
        return result

    def _error(self, message: str) -> TranscriptionError:
        return TranscriptionError(message=message, provider_name=self.get_provider_name())

    def get_provider_name(self) -> str:
        return "whisper_api"

    def is_available(self) -> bool:
        return self._configured
