"""Small text helpers shared by ingestion, chat and the citation formatter."""

from __future__ import annotations

import math
from pathlib import Path

_ELLIPSIS = "..."


def truncate_title(text: str, max_chars: int = 50) -> str:
    """Cut *text* to a word boundary near *max_chars*, appending an ellipsis.

    Whitespace is collapsed first.  Text that already fits is returned as-is.
    When the cut point falls inside a word, the partial word is dropped; a
    single word longer than *max_chars* is hard-cut instead.
    """
    collapsed = " ".join(text.split())
    if len(collapsed) <= max_chars:
        return collapsed

    cut = collapsed[:max_chars]
    if collapsed[max_chars] != " ":
        boundary = cut.rfind(" ")
        if boundary > 0:
            cut = cut[:boundary]
    return cut.rstrip(" ,.;:-") + _ELLIPSIS


def format_timestamp(seconds: float) -> str:
    """Render seconds as ``m:ss`` or ``h:mm:ss``."""
    total = max(0, int(math.floor(seconds)))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def title_from_first_line(text: str, fallback: str, max_chars: int = 100) -> str:
    """Use the first non-empty line of *text* as a title.

    Lines longer than *max_chars* are cut to ``max_chars - 3`` characters
    plus an ellipsis.  *fallback* is returned when there is no such line.
    """
    for line in text.splitlines():
        candidate = line.strip()
        if candidate:
            if len(candidate) <= max_chars:
                return candidate
            return candidate[: max_chars - len(_ELLIPSIS)] + _ELLIPSIS
    return fallback


def title_from_filename(file_name: str) -> str:
    """Derive a readable title from a file name: stem with ``-``/``_`` as spaces."""
    stem = Path(file_name).stem
    return " ".join(stem.replace("-", " ").replace("_", " ").split()) or file_name
