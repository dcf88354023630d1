"""Speech-to-text providers for audio imports."""

from lorekeeper.providers.transcription.whisper_api_provider import WhisperAPIProvider

__all__ = ["WhisperAPIProvider"]
