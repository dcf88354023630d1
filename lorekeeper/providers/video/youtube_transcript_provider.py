"""YouTube transcript provider backed by ``youtube-transcript-api``.

The ``YouTubeTranscriptApi`` client is constructed once at startup and
injected here.  It holds an HTTP session but no per-video state, so one
instance is shared by every concurrent import.  Its methods are blocking,
so each call runs in a worker thread via :func:`asyncio.to_thread`.

Language fallback: the English variants below in order, then whatever
transcript the video has (manual or auto-generated, any language).
"""

from __future__ import annotations

import asyncio

import structlog
from youtube_transcript_api import (
    CouldNotRetrieveTranscript,
    NoTranscriptFound,
    TranscriptsDisabled,
    VideoUnavailable,
    VideoUnplayable,
    YouTubeTranscriptApi,
)

from lorekeeper.interfaces.transcript_provider import ITranscriptProvider
from lorekeeper.models.rag import TranscriptSegment
from lorekeeper.utils.errors import (
    CaptionsDisabledError,
    TranscriptError,
    TranscriptNotFoundError,
    VideoUnavailableError,
)

logger = structlog.get_logger(logger_name=__name__)

PREFERRED_LANGUAGES: tuple[str, ...] = ("en", "en-US", "en-GB", "en-CA", "en-AU")


class YouTubeTranscriptProvider(ITranscriptProvider):
    """Fetches timed caption segments for a YouTube video id."""

    def __init__(
        self,
        client: YouTubeTranscriptApi | None = None,
        languages: tuple[str, ...] = PREFERRED_LANGUAGES,
    ) -> None:
        self._client = client or YouTubeTranscriptApi()
        self._languages = languages

    async def get_transcript(self, video_id: str) -> list[TranscriptSegment]:
        try:
            snippets = await asyncio.to_thread(self._fetch_blocking, video_id)
        except TranscriptsDisabled as exc:
            raise CaptionsDisabledError(provider_name=self.get_provider_name()) from exc
        except (VideoUnavailable, VideoUnplayable) as exc:
            raise VideoUnavailableError(provider_name=self.get_provider_name()) from exc
        except NoTranscriptFound as exc:
            raise TranscriptNotFoundError(provider_name=self.get_provider_name()) from exc
        except CouldNotRetrieveTranscript as exc:
            raise TranscriptError(
                message=f"Could not fetch transcript. {exc.cause or exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        segments = [
            TranscriptSegment(
                text=snippet.text,
                offset_ms=max(0.0, snippet.start * 1000.0),
                duration_ms=max(0.0, snippet.duration * 1000.0),
            )
            for snippet in snippets
        ]
        if not segments:
            raise TranscriptNotFoundError(provider_name=self.get_provider_name())

        logger.info("transcript_fetched", video_id=video_id, segments=len(segments))
        return segments

    def get_provider_name(self) -> str:
        return "youtube_transcript_api"

    def _fetch_blocking(self, video_id: str) -> list:
        try:
            return list(self._client.fetch(video_id, languages=list(self._languages)))
        except NoTranscriptFound:
            logger.info("transcript_language_fallback", video_id=video_id)

        # No English variant: take the first transcript the video offers.
        for transcript in self._client.list(video_id):
            return list(transcript.fetch())
        return []
