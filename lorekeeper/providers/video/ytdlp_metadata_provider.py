"""Video metadata and playlist listing via ``yt-dlp``.

Only metadata is read (``skip_download``); nothing is downloaded.  Single
video lookups are best effort: any failure is logged and replaced by a
placeholder title so an import with a working transcript still succeeds.
Playlist listing uses ``extract_flat`` so one request returns every entry
id without resolving each video.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError

from lorekeeper.interfaces.transcript_provider import IVideoMetadataProvider, VideoMetadata
from lorekeeper.utils.errors import InvalidInputError
from lorekeeper.utils.youtube import playlist_url, watch_url

logger = structlog.get_logger(logger_name=__name__)

_BASE_OPTIONS: dict[str, Any] = {
    "quiet": True,
    "no_warnings": True,
    "skip_download": True,
    "noplaylist": True,
}


class YtDlpMetadataProvider(IVideoMetadataProvider):
    def __init__(self, socket_timeout: float = 15.0) -> None:
        self._options = {**_BASE_OPTIONS, "socket_timeout": socket_timeout}

    async def get_video_metadata(self, video_id: str) -> VideoMetadata:
        try:
            info = await asyncio.to_thread(self._extract, watch_url(video_id), self._options)
        except DownloadError as exc:
            logger.warning("video_metadata_unavailable", video_id=video_id, error=str(exc))
            return VideoMetadata(video_id=video_id, title=f"YouTube Video {video_id}")

        duration = info.get("duration") or 0
        return VideoMetadata(
            video_id=video_id,
            title=info.get("title") or f"YouTube Video {video_id}",
            author=info.get("channel") or info.get("uploader"),
            duration=int(round(float(duration))),
        )

    async def list_playlist_videos(self, playlist_id: str) -> list[str]:
        options = {**self._options, "noplaylist": False, "extract_flat": "in_playlist"}
        try:
            info = await asyncio.to_thread(self._extract, playlist_url(playlist_id), options)
        except DownloadError as exc:
            raise InvalidInputError(
                message=f"Could not read playlist {playlist_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        video_ids = [entry["id"] for entry in info.get("entries") or [] if entry and entry.get("id")]
        logger.info("playlist_listed", playlist_id=playlist_id, videos=len(video_ids))
        return video_ids

    def get_provider_name(self) -> str:
        return "yt-dlp"

    @staticmethod
    def _extract(url: str, options: dict[str, Any]) -> dict[str, Any]:
        with YoutubeDL(options) as ydl:
            return ydl.extract_info(url, download=False) or {}
