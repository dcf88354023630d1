"""Custom exception hierarchy for Lorekeeper.

All application exceptions inherit from :class:`LorekeeperError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "youtube", "chromadb") caused the failure.
Each class also declares the HTTP ``status_code`` the API layer answers
with, so routes never translate errors by hand.

The hierarchy is organized by the stage that raises it:

    LorekeeperError  (base -- catch-all for any Lorekeeper error)
    +-- InvalidInputError          (bad request shape, unknown URL, ...)
    +-- DuplicateSourceError       (external id already imported)
    +-- ExtractionError            (could not obtain usable text)
    |   +-- TranscriptError
    |   |   +-- CaptionsDisabledError
    |   |   +-- VideoUnavailableError
    |   |   +-- TranscriptNotFoundError
    |   +-- DocumentExtractionError
    |   |   +-- EmptyDocumentError
    |   |   +-- EncryptedDocumentError
    |   |   +-- CorruptedDocumentError
    |   |   +-- UnsupportedFileTypeError
    |   +-- TranscriptionError
    |   +-- EmptyContentError
    +-- RAGError                   (embedding or vector-store failure)
    |   +-- EmbeddingError
    |   +-- VectorIndexNotFoundError
    +-- LLMError                   (any generation API call failure)
    +-- NotFoundError
    |   +-- SourceNotFoundError
    |   +-- ConversationNotFoundError
    +-- ConfigurationError         (startup / missing config)

Callers catch at exactly the level they care about -- the playlist importer
treats DuplicateSourceError as "skipped" and every other LorekeeperError as
"failed", while the API maps the whole tree through ``status_code``.
"""


class LorekeeperError(Exception):
    """Base exception for all Lorekeeper errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Request validation
# ---------------------------------------------------------------------------

class InvalidInputError(LorekeeperError):
    """Raised when caller input is malformed; no side effects have happened yet."""

    status_code = 400

    def __init__(
        self,
        message: str = "Invalid input",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DuplicateSourceError(LorekeeperError):
    """Raised when an external content id has already been imported."""

    status_code = 409

    def __init__(
        self,
        message: str = "This source has already been added to your knowledge base.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Extraction errors
# ---------------------------------------------------------------------------

class ExtractionError(LorekeeperError):
    """Raised when usable text cannot be obtained from a source."""

    status_code = 422

    def __init__(
        self,
        message: str = "Could not extract text from the source",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class TranscriptError(ExtractionError):
    """Raised when a video transcript cannot be fetched."""

    def __init__(
        self,
        message: str = "Could not fetch transcript.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class CaptionsDisabledError(TranscriptError):
    def __init__(
        self,
        message: str = "Captions are disabled for this video.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class VideoUnavailableError(TranscriptError):
    def __init__(
        self,
        message: str = "This video is private or unavailable.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class TranscriptNotFoundError(TranscriptError):
    def __init__(
        self,
        message: str = "No transcript available for this video.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentExtractionError(ExtractionError):
    """Raised when a document file cannot be converted to text."""

    def __init__(
        self,
        message: str = "Failed to extract document text",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmptyDocumentError(DocumentExtractionError):
    """Raised for documents with no extractable text (e.g. scanned PDFs)."""

    def __init__(
        self,
        message: str = (
            "PDF appears to be empty or contains only images (scanned PDF). "
            "Please use a text-based PDF or OCR the document first."
        ),
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EncryptedDocumentError(DocumentExtractionError):
    def __init__(
        self,
        message: str = (
            "This PDF is password-protected. Please remove the password and try again."
        ),
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class CorruptedDocumentError(DocumentExtractionError):
    def __init__(
        self,
        message: str = "Invalid or corrupted PDF file. Please check the file and try again.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnsupportedFileTypeError(DocumentExtractionError):
    status_code = 415

    def __init__(
        self,
        message: str = "Unsupported document type",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class TranscriptionError(ExtractionError):
    """Raised when speech-to-text fails or yields no usable text."""

    def __init__(
        self,
        message: str = "Audio transcription failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmptyContentError(ExtractionError):
    """Raised when extracted content is too short or produces zero chunks."""

    def __init__(
        self,
        message: str = "Content is empty or too short to import",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(LorekeeperError):
    """Raised when an LLM API call fails (bad response, timeout, parse error)."""

    status_code = 502

    def __init__(
        self,
        message: str = "LLM call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# RAG (Retrieval-Augmented Generation) errors
# ---------------------------------------------------------------------------

class RAGError(LorekeeperError):
    """Raised when an embedding, vector-store, or retrieval operation fails."""

    status_code = 502

    def __init__(
        self,
        message: str = "RAG operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingError(RAGError):
    """Raised when the embedding service fails or returns malformed vectors.

    Callers must never substitute zero-vectors for a failed batch.
    """

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class VectorIndexNotFoundError(RAGError):
    """Raised when the fixed-name vector index has not been provisioned.

    This is an operator configuration problem and is distinct from a query
    that simply finds nothing.
    """

    status_code = 503

    def __init__(
        self,
        message: str = (
            "Vector search index is not ready yet. Please create the "
            "vector_index as described in the setup instructions "
            "(run `python -m lorekeeper.cli.ingest provision-index`)."
        ),
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Lookup errors
# ---------------------------------------------------------------------------

class NotFoundError(LorekeeperError):
    """Raised when a requested record does not exist or is not owned by the caller."""

    status_code = 404

    def __init__(
        self,
        message: str = "Resource not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class SourceNotFoundError(NotFoundError):
    def __init__(
        self,
        message: str = "Source not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConversationNotFoundError(NotFoundError):
    def __init__(
        self,
        message: str = "Conversation not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigurationError(LorekeeperError):
    """Raised when required configuration is missing or invalid."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
