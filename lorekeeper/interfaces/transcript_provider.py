"""Abstract base classes for video platform collaborators.

Two separate contracts: fetching a timed transcript, and looking up
metadata (title, channel, duration, playlist contents).  Import keeps
working when metadata lookup fails; it never works without a transcript.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict

from lorekeeper.models.rag import TranscriptSegment


class VideoMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    video_id: str
    title: str
    author: str | None = None
    duration: int = 0


# Concrete implementation: YouTubeTranscriptProvider (lorekeeper/providers/video/)
class ITranscriptProvider(ABC):
    @abstractmethod
    async def get_transcript(self, video_id: str) -> list[TranscriptSegment]:
        """Fetch the ordered transcript segments of a video.

        Raises
        ------
        lorekeeper.utils.errors.CaptionsDisabledError
        lorekeeper.utils.errors.VideoUnavailableError
        lorekeeper.utils.errors.TranscriptNotFoundError
        lorekeeper.utils.errors.TranscriptError
            For any other fetch failure.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier."""


# Concrete implementation: YtDlpMetadataProvider (lorekeeper/providers/video/)
class IVideoMetadataProvider(ABC):
    @abstractmethod
    async def get_video_metadata(self, video_id: str) -> VideoMetadata:
        """Best-effort metadata; falls back to ``"YouTube Video <id>"`` and 0s."""

    @abstractmethod
    async def list_playlist_videos(self, playlist_id: str) -> list[str]:
        """Return the playlist's video ids in playlist order.

        Raises
        ------
        lorekeeper.utils.errors.InvalidInputError
            If the playlist cannot be read.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier."""
