"""Citation and context-block formatting for chat answers.

Turns :class:`~lorekeeper.models.rag.RetrievedChunk` hits into the two
things the chat orchestrator needs:

* the **context block** appended to the system prompt, one labelled
  entry per hit::

      [Video: Intro to Rust by Jane Doe - 2:05]
      <chunk text>

      ---

      [Article: Ownership explained]
      <chunk text>

* the **citations** returned to the client (and stored on the user turn),
  each pointing back at a Source, with video citations deep-linking to the
  chunk's offset.
"""

from __future__ import annotations

from lorekeeper.models.conversation import Citation
from lorekeeper.models.rag import RetrievedChunk
from lorekeeper.models.source import SOURCE_KIND_LABELS, SourceKind
from lorekeeper.utils import text as text_utils
from lorekeeper.utils.youtube import watch_url

_CONTEXT_SEPARATOR = "\n\n---\n\n"


class CitationFormatter:
    """Formats retrieval hits for the prompt and for the client.

    Parameters
    ----------
    snippet_chars:
        Maximum length of a citation snippet.
    """

    def __init__(self, snippet_chars: int = 300) -> None:
        self._snippet_chars = snippet_chars

    def build_citations(self, hits: list[RetrievedChunk], limit: int = 3) -> list[Citation]:
        """Citations for the *limit* best hits, in the order given."""
        return [self._to_citation(hit) for hit in hits[: max(limit, 0)]]

    def build_context(self, hits: list[RetrievedChunk]) -> str:
        return _CONTEXT_SEPARATOR.join(
            f"{self._context_label(hit)}\n{hit.chunk.text}" for hit in hits
        )

    @staticmethod
    def format_timestamp(seconds: float) -> str:
        return text_utils.format_timestamp(seconds)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _to_citation(self, hit: RetrievedChunk) -> Citation:
        source = hit.source
        start = hit.chunk.start_time
        if source.kind is SourceKind.VIDEO and source.external_id:
            url = watch_url(source.external_id, timestamp=start)
        else:
            url = source.url

        return Citation(
            source_id=source.id,
            source_type=source.kind,
            title=source.title,
            start_time=start,
            timestamp=self.format_timestamp(start),
            snippet=self._snippet(hit.chunk.text),
            score=hit.similarity_score,
            url=url,
            thumbnail_url=source.thumbnail_url,
            author=source.author,
        )

    def _context_label(self, hit: RetrievedChunk) -> str:
        source = hit.source
        label = f"{SOURCE_KIND_LABELS[source.kind]}: {source.title}"
        if source.author:
            label += f" by {source.author}"
        if source.kind is SourceKind.VIDEO or hit.chunk.start_time > 0:
            label += f" - {self.format_timestamp(hit.chunk.start_time)}"
        return f"[{label}]"

    def _snippet(self, text: str) -> str:
        text = " ".join(text.split())
        if len(text) <= self._snippet_chars:
            return text
        return text[: self._snippet_chars].rstrip() + "..."
