"""Plain-text extraction for uploaded documents.

    pdf   →  PyMuPDF (``fitz``), page by page
    docx  →  python-docx, paragraph by paragraph (tables included)
    txt   →  read as UTF-8

Each failure mode maps to its own error so the caller can tell a scanned
PDF (no text layer) from a password-protected or corrupted file, for
both PDF and DOCX.
Parsing is blocking, so :meth:`DocumentTextExtractor.extract` runs it in a
worker thread.
"""

from __future__ import annotations

import asyncio
import zipfile
from pathlib import Path

import fitz  # PyMuPDF
import structlog
from docx import Document
from docx.opc.exceptions import PackageNotFoundError

from lorekeeper.interfaces.text_extractor import ITextExtractor
from lorekeeper.utils.errors import (
    CorruptedDocumentError,
    DocumentExtractionError,
    EmptyDocumentError,
    EncryptedDocumentError,
    UnsupportedFileTypeError,
)

logger = structlog.get_logger(logger_name=__name__)

_DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
_OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

# Mime types and bare extensions both resolve to one canonical kind.
_TYPE_ALIASES: dict[str, str] = {
    "pdf": "pdf",
    "application/pdf": "pdf",
    "docx": "docx",
    _DOCX_MIME: "docx",
    "txt": "txt",
    "text/plain": "txt",
}


def resolve_document_type(file_type: str) -> str | None:
    """Map a mime type or extension (with or without dot) to pdf/docx/txt."""
    return _TYPE_ALIASES.get(file_type.strip().lower().lstrip("."))


def _is_ole_container(file_path: str) -> bool:
    try:
        with open(file_path, "rb") as handle:
            return handle.read(len(_OLE_MAGIC)) == _OLE_MAGIC
    except OSError:
        return False


class DocumentTextExtractor(ITextExtractor):
    """Converts pdf/docx/txt files to plain text.

    Parameters
    ----------
    min_chars:
        Documents whose stripped text is shorter than this are treated as
        having no text layer.
    """

    def __init__(self, min_chars: int = 10) -> None:
        self._min_chars = min_chars

    async def extract(self, file_path: str, file_type: str) -> str:
        kind = resolve_document_type(file_type)
        if kind is None:
            raise UnsupportedFileTypeError(
                message=f"Unsupported document type: {file_type}",
                provider_name=self.get_provider_name(),
            )

        handler = {"pdf": self._extract_pdf, "docx": self._extract_docx, "txt": self._extract_txt}[kind]
        text = await asyncio.to_thread(handler, file_path)

        if len(text.strip()) < self._min_chars:
            if kind == "pdf":
                raise EmptyDocumentError(provider_name=self.get_provider_name())
            raise EmptyDocumentError(
                message=f"The {kind.upper()} file contains no readable text.",
                provider_name=self.get_provider_name(),
            )

        logger.info(
            "document_text_extracted",
            file=Path(file_path).name,
            kind=kind,
            chars=len(text),
        )
        return text

    def supported_types(self) -> list[str]:
        return sorted(_TYPE_ALIASES)

    def get_provider_name(self) -> str:
        return "document_extractor"

    # ------------------------------------------------------------------
    # Format handlers (blocking)
    # ------------------------------------------------------------------

    def _extract_pdf(self, file_path: str) -> str:
        try:
            doc = fitz.open(file_path)
        except (RuntimeError, ValueError) as exc:
            raise CorruptedDocumentError(provider_name=self.get_provider_name()) from exc

        try:
            if doc.needs_pass:
                raise EncryptedDocumentError(provider_name=self.get_provider_name())
            pages: list[str] = []
            for page in doc:
                page_text = page.get_text("text").strip()
                if page_text:
                    pages.append(page_text)
        except RuntimeError as exc:
            raise CorruptedDocumentError(provider_name=self.get_provider_name()) from exc
        finally:
            doc.close()

        return "\n\n".join(pages)

    def _extract_docx(self, file_path: str) -> str:
        try:
            document = Document(file_path)
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
            # Word saves password-protected files as an OLE container, not a zip.
            if _is_ole_container(file_path):
                raise EncryptedDocumentError(
                    message="This DOCX is password-protected. Please remove the password and try again.",
                    provider_name=self.get_provider_name(),
                ) from exc
            raise CorruptedDocumentError(
                message="Invalid or corrupted DOCX file. Please check the file and try again.",
                provider_name=self.get_provider_name(),
            ) from exc

        parts = [p.text for p in document.paragraphs if p.text.strip()]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    parts.append(" | ".join(cells))
        return "\n".join(parts)

    def _extract_txt(self, file_path: str) -> str:
        try:
            return Path(file_path).read_text(encoding="utf-8-sig", errors="replace")
        except OSError as exc:
            raise DocumentExtractionError(
                message=f"Failed to read TXT file: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
