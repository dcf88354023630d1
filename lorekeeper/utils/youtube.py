"""YouTube URL parsing and link building.

Accepted video URL shapes::

    https://www.youtube.com/watch?v=dQw4w9WgXcQ
    https://youtu.be/dQw4w9WgXcQ
    https://www.youtube.com/embed/dQw4w9WgXcQ
    https://www.youtube.com/shorts/dQw4w9WgXcQ
    dQw4w9WgXcQ                        (raw 11-character id)

Playlist URLs (``/playlist?list=...`` or a ``list=`` parameter with no video)
go through the bulk import path instead.
"""

from __future__ import annotations

import math
import re
from urllib.parse import parse_qs, urlparse

_VIDEO_URL_RE = re.compile(
    r"(?:youtube\.com/watch\?(?:.*&)?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/shorts/)"
    r"([A-Za-z0-9_-]{11})"
)
_RAW_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")
_PLAYLIST_ID_RE = re.compile(r"^[A-Za-z0-9_-]{10,}$")


def extract_video_id(url: str) -> str | None:
    """Return the 11-character video id for any supported URL shape, else ``None``."""
    candidate = url.strip()
    if _RAW_ID_RE.match(candidate):
        return candidate
    match = _VIDEO_URL_RE.search(candidate)
    return match.group(1) if match else None


def extract_playlist_id(url: str) -> str | None:
    """Return the ``list=`` id of a playlist URL (or a bare playlist id)."""
    candidate = url.strip()
    if "youtube.com" not in candidate and "youtu.be" not in candidate:
        if candidate.startswith(("PL", "UU", "OL", "FL", "RD")) and _PLAYLIST_ID_RE.match(
            candidate
        ):
            return candidate
        return None
    query = parse_qs(urlparse(candidate if "://" in candidate else f"https://{candidate}").query)
    values = query.get("list")
    return values[0] if values else None


def is_playlist_url(url: str) -> bool:
    """True when *url* names a playlist rather than a single video."""
    candidate = url.strip()
    if "/playlist" in candidate:
        return True
    return extract_playlist_id(candidate) is not None and extract_video_id(candidate) is None


def thumbnail_url(video_id: str) -> str:
    return f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"


def watch_url(video_id: str, timestamp: float | None = None) -> str:
    """Canonical watch URL, deep-linked to *timestamp* seconds when given."""
    url = f"https://youtube.com/watch?v={video_id}"
    if timestamp is not None:
        url += f"&t={int(math.floor(timestamp))}s"
    return url


def playlist_url(playlist_id: str) -> str:
    return f"https://www.youtube.com/playlist?list={playlist_id}"
