"""Abstract base class for speech-to-text providers used by audio imports."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field


class TranscriptionResult(BaseModel):
    """Output of a transcription call."""

    model_config = ConfigDict(frozen=True)

    text: str
    language: str | None = None
    duration_seconds: float | None = Field(
        default=None, description="Audio length reported by the provider, if any."
    )


# Concrete implementation: WhisperAPIProvider (lorekeeper/providers/transcription/)
class ITranscriptionProvider(ABC):
    @abstractmethod
    async def transcribe(self, audio_path: str, language: str | None = None) -> TranscriptionResult:
        """Transcribe an audio file.

        Raises
        ------
        lorekeeper.utils.errors.TranscriptionError
            If the service call fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured."""
