"""Unit tests for the text and YouTube URL helpers."""

from __future__ import annotations

import pytest

from lorekeeper.utils.text import (
    format_timestamp,
    title_from_filename,
    title_from_first_line,
    truncate_title,
)
from lorekeeper.utils.youtube import (
    extract_playlist_id,
    extract_video_id,
    is_playlist_url,
    playlist_url,
    thumbnail_url,
    watch_url,
)

VIDEO_ID = "dQw4w9WgXcQ"


# ======================================================================
# truncate_title
# ======================================================================


class TestTruncateTitle:
    def test_short_text_is_unchanged(self) -> None:
        assert truncate_title("What is photosynthesis?") == "What is photosynthesis?"

    def test_whitespace_is_collapsed(self) -> None:
        assert truncate_title("  What   is\nthis  ") == "What is this"

    def test_cuts_at_word_boundary(self) -> None:
        text = "The quick brown fox jumps over the lazy dog"
        assert truncate_title(text, max_chars=20) == "The quick brown fox..."

    def test_single_long_word_is_hard_cut(self) -> None:
        result = truncate_title("a" * 60, max_chars=50)
        assert result == "a" * 50 + "..."

    def test_trailing_punctuation_is_dropped_before_ellipsis(self) -> None:
        text = "First part, second part, third part of a long question"
        result = truncate_title(text, max_chars=11)
        assert result == "First part..."


# ======================================================================
# format_timestamp
# ======================================================================


class TestFormatTimestamp:
    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (0, "0:00"),
            (5, "0:05"),
            (65, "1:05"),
            (59.9, "0:59"),
            (600, "10:00"),
            (3725, "1:02:05"),
        ],
    )
    def test_formats(self, seconds: float, expected: str) -> None:
        assert format_timestamp(seconds) == expected

    def test_negative_clamps_to_zero(self) -> None:
        assert format_timestamp(-3) == "0:00"


# ======================================================================
# Title derivation
# ======================================================================


class TestTitleFromFirstLine:
    def test_uses_first_non_empty_line(self) -> None:
        text = "\n\n   Meeting notes  \nSecond line"
        assert title_from_first_line(text, fallback="fb") == "Meeting notes"

    def test_long_line_is_cut_with_ellipsis(self) -> None:
        title = title_from_first_line("x" * 120, fallback="fb")
        assert len(title) == 100
        assert title.endswith("...")

    def test_blank_text_uses_fallback(self) -> None:
        assert title_from_first_line("  \n \n", fallback="Untitled") == "Untitled"


class TestTitleFromFilename:
    def test_separators_become_spaces(self) -> None:
        assert title_from_filename("my-great_notes.pdf") == "my great notes"

    def test_path_components_are_ignored(self) -> None:
        assert title_from_filename("uploads/lecture_01.mp3") == "lecture 01"


# ======================================================================
# YouTube URLs
# ======================================================================


class TestExtractVideoId:
    @pytest.mark.parametrize(
        "url",
        [
            f"https://www.youtube.com/watch?v={VIDEO_ID}",
            f"https://www.youtube.com/watch?v={VIDEO_ID}&t=30s",
            f"https://www.youtube.com/watch?feature=share&v={VIDEO_ID}",
            f"https://youtu.be/{VIDEO_ID}",
            f"https://www.youtube.com/embed/{VIDEO_ID}",
            f"https://www.youtube.com/shorts/{VIDEO_ID}",
            f"  {VIDEO_ID}  ",
        ],
    )
    def test_supported_shapes(self, url: str) -> None:
        assert extract_video_id(url) == VIDEO_ID

    @pytest.mark.parametrize(
        "url",
        ["https://example.com/video", "not a url", "https://www.youtube.com/watch?v=short"],
    )
    def test_unsupported_returns_none(self, url: str) -> None:
        assert extract_video_id(url) is None


class TestPlaylistUrls:
    def test_extracts_list_parameter(self) -> None:
        url = "https://www.youtube.com/playlist?list=PLabc123456"
        assert extract_playlist_id(url) == "PLabc123456"

    def test_bare_playlist_id(self) -> None:
        assert extract_playlist_id("PLabcdefghij") == "PLabcdefghij"

    def test_non_youtube_url_is_rejected(self) -> None:
        assert extract_playlist_id("https://example.com/?list=PLabc123456") is None

    def test_playlist_page_is_playlist(self) -> None:
        assert is_playlist_url("https://youtube.com/playlist?list=PLabc123456") is True

    def test_video_in_playlist_is_not_playlist(self) -> None:
        url = f"https://www.youtube.com/watch?v={VIDEO_ID}&list=PLabc123456"
        assert is_playlist_url(url) is False

    def test_plain_video_is_not_playlist(self) -> None:
        assert is_playlist_url(f"https://youtu.be/{VIDEO_ID}") is False


class TestLinkBuilders:
    def test_watch_url_without_timestamp(self) -> None:
        assert watch_url(VIDEO_ID) == f"https://youtube.com/watch?v={VIDEO_ID}"

    def test_watch_url_floors_timestamp(self) -> None:
        assert watch_url(VIDEO_ID, timestamp=75.9) == f"https://youtube.com/watch?v={VIDEO_ID}&t=75s"

    def test_watch_url_zero_timestamp_is_kept(self) -> None:
        assert watch_url(VIDEO_ID, timestamp=0.0).endswith("&t=0s")

    def test_thumbnail_and_playlist(self) -> None:
        assert thumbnail_url(VIDEO_ID) == f"https://img.youtube.com/vi/{VIDEO_ID}/maxresdefault.jpg"
        assert playlist_url("PL1").endswith("playlist?list=PL1")
