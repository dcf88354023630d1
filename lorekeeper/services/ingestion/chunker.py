"""Transcript chunking with overlapping character windows.

Packs timed segments into :class:`~lorekeeper.models.rag.TextChunk` objects
of at most ~1200 characters.  When the next segment would overflow the
limit, the current chunk is closed and the next one is seeded with the
trailing 200 characters of the closed chunk, so a sentence cut at a
boundary is still retrievable in full from one of the two chunks.

The carried tail has its leading whitespace dropped.  When the 200-character
window starts on a space, chunk N+1 begins with 199 or fewer characters of
chunk N rather than all 200; removing each carried tail from the front of
the following chunk still rebuilds the joined transcript exactly.

A chunk's ``start_time`` is the offset of the first segment that began it,
never the offset of the overlap text carried over from the previous chunk.

Sources without timing (text, documents, audio) arrive as one huge segment.
:meth:`TranscriptChunker.split_bulk_text` first breaks such text into
sentence-packed segments of ~500 characters (words for run-on sentences)
so the main loop always has something it can split.
"""

from __future__ import annotations

import math
import re

import structlog

from lorekeeper.models.rag import TextChunk, TranscriptSegment

logger = structlog.get_logger(logger_name=__name__)

# A run of non-terminal characters followed by terminal punctuation or the
# end of the text.
_SENTENCE_RE = re.compile(r"[^.!?]+(?:[.!?]+|$)")


class TranscriptChunker:
    """Splits ordered segments into overlapping, size-bounded chunks.

    Parameters
    ----------
    chunk_size:
        Maximum characters per chunk (default 1200).
    overlap:
        Characters carried from the end of one chunk into the next (default 200).
    bulk_segment_chars:
        Target size of the sub-segments produced from untimed text (default 500).
    """

    def __init__(
        self,
        chunk_size: int = 1200,
        overlap: int = 200,
        bulk_segment_chars: int = 500,
    ) -> None:
        if overlap >= chunk_size:
            raise ValueError("overlap must be smaller than chunk_size")
        self._chunk_size = chunk_size
        self._overlap = overlap
        self._bulk_segment_chars = bulk_segment_chars

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, segments: list[TranscriptSegment]) -> list[TextChunk]:
        """Pack *segments* into chunks, preserving order and indices 0..N-1."""
        chunks: list[TextChunk] = []
        current = ""
        start_time = 0.0

        for segment in segments:
            text = segment.text.strip()
            if not text:
                continue

            if not current:
                start_time = segment.offset_ms / 1000.0

            if current and len(current) + len(text) + 1 > self._chunk_size:
                chunks.append(
                    TextChunk(text=current.strip(), start_time=start_time, chunk_index=len(chunks))
                )
                tail = current[-self._overlap :].lstrip()
                current = f"{tail} {text}" if tail else text
                start_time = segment.offset_ms / 1000.0
            else:
                current = f"{current} {text}" if current else text

        if current.strip():
            chunks.append(
                TextChunk(text=current.strip(), start_time=start_time, chunk_index=len(chunks))
            )

        logger.debug(
            "chunking_complete",
            segments=len(segments),
            chunks=len(chunks),
        )
        return chunks

    def split_bulk_text(self, text: str) -> list[TranscriptSegment]:
        """Turn one untimed text into sentence-packed segments at offset 0."""
        cap = self._bulk_segment_chars
        pieces: list[str] = []
        buffer = ""

        for match in _SENTENCE_RE.finditer(text):
            sentence = " ".join(match.group(0).split())
            if not sentence:
                continue

            if len(sentence) > cap * 2:
                if buffer:
                    pieces.append(buffer)
                    buffer = ""
                pieces.extend(self._split_words(sentence, cap))
                continue

            if buffer and len(buffer) + len(sentence) + 1 > cap:
                pieces.append(buffer)
                buffer = sentence
            else:
                buffer = f"{buffer} {sentence}" if buffer else sentence

        if buffer:
            pieces.append(buffer)

        return [TranscriptSegment(text=piece) for piece in pieces]

    def chunk_text(self, text: str) -> list[TextChunk]:
        """Chunk an untimed text (article, document, transcription)."""
        return self.chunk(self.split_bulk_text(text))

    @staticmethod
    def calculate_duration(segments: list[TranscriptSegment]) -> int:
        """Whole seconds from zero to the end of the last segment."""
        if not segments:
            return 0
        last = segments[-1]
        return math.ceil((last.offset_ms + last.duration_ms) / 1000.0)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _split_words(sentence: str, cap: int) -> list[str]:
        pieces: list[str] = []
        buffer = ""
        for word in sentence.split():
            # A single "word" longer than the cap (URLs, base64) is hard-cut.
            while len(word) > cap:
                if buffer:
                    pieces.append(buffer)
                    buffer = ""
                pieces.append(word[:cap])
                word = word[cap:]
            if not word:
                continue
            if buffer and len(buffer) + len(word) + 1 > cap:
                pieces.append(buffer)
                buffer = word
            else:
                buffer = f"{buffer} {word}" if buffer else word
        if buffer:
            pieces.append(buffer)
        return pieces
