"""Document-to-text extraction (pdf, docx, txt)."""

from lorekeeper.providers.extraction.document_text_extractor import (
    DocumentTextExtractor,
    resolve_document_type,
)

__all__ = ["DocumentTextExtractor", "resolve_document_type"]
