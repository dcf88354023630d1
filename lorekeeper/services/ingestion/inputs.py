"""Per-kind ingestion inputs.

``SourceInput`` is a tagged union over the four source kinds.  Each variant
carries only what its extraction step needs; everything after extraction
is shared (see ``IngestionService._persist_chunk_embed``).
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from lorekeeper.models.rag import TranscriptSegment
from lorekeeper.models.source import NewSource


class VideoInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["video"] = "video"
    url: str = Field(min_length=1, description="Watch/short/embed/shorts URL or raw video id.")


class TextInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    content: str
    title: str | None = None
    author: str | None = None
    url: str | None = None


class DocumentInput(BaseModel):
    """An uploaded document already written to a temporary file.

    The pipeline deletes ``file_path`` when it is done, success or failure.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["document"] = "document"
    file_path: str
    file_name: str
    file_type: str = Field(description="Mime type or extension (pdf, docx, txt).")


class AudioInput(BaseModel):
    """An uploaded audio file already written to a temporary file.

    The pipeline deletes ``file_path`` when it is done, success or failure.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["audio"] = "audio"
    file_path: str
    file_name: str
    file_type: str
    size_bytes: int = Field(ge=0)


SourceInput = Annotated[
    Union[VideoInput, TextInput, DocumentInput, AudioInput],
    Field(discriminator="kind"),
]


class PreparedSource(BaseModel):
    """Output of a kind-specific extraction step: text plus Source fields.

    ``new_source.title`` may be a placeholder when ``needs_title`` is set;
    the shared tail then derives a title from the text.
    """

    model_config = ConfigDict(frozen=True)

    segments: list[TranscriptSegment]
    new_source: NewSource
    needs_title: bool = False
    title_fallback: str = ""
