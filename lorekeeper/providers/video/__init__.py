"""YouTube adapters.

    - YouTubeTranscriptProvider - caption tracks via youtube-transcript-api
    - YtDlpMetadataProvider     - title/channel/duration and playlist
                                  listings via yt-dlp (no media download)
"""

from lorekeeper.providers.video.youtube_transcript_provider import YouTubeTranscriptProvider
from lorekeeper.providers.video.ytdlp_metadata_provider import YtDlpMetadataProvider

__all__ = ["YouTubeTranscriptProvider", "YtDlpMetadataProvider"]
