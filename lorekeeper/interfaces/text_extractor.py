"""Abstract base class for document-to-text converters."""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: DocumentTextExtractor (lorekeeper/providers/extraction/)
class ITextExtractor(ABC):
    @abstractmethod
    async def extract(self, file_path: str, file_type: str) -> str:
        """Return the plain text of a document.

        Parameters
        ----------
        file_path:
            Path to the file on local disk.
        file_type:
            A mime type or bare extension (``"pdf"``, ``"docx"``, ``"txt"``).

        Raises
        ------
        lorekeeper.utils.errors.UnsupportedFileTypeError
        lorekeeper.utils.errors.EmptyDocumentError
            The file contains no extractable text (e.g. a scanned PDF).
        lorekeeper.utils.errors.EncryptedDocumentError
        lorekeeper.utils.errors.CorruptedDocumentError
        lorekeeper.utils.errors.DocumentExtractionError
        """

    @abstractmethod
    def supported_types(self) -> list[str]:
        """Extensions and mime types :meth:`extract` accepts."""
