"""Embeddings from the OpenAI ``/embeddings`` endpoint.

The request pins ``dimensions`` to ``EMBEDDING_DIMENSIONS`` so every vector
fits the fixed-dimension index, and each reply is checked before the
caller sees it: a short or malformed reply is an :class:`EmbeddingError`,
never a padded or zero vector.
"""

from __future__ import annotations

import openai
import structlog

from lorekeeper.config.settings import Settings
from lorekeeper.interfaces.embedding_provider import IEmbeddingProvider
from lorekeeper.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

# Maximum inputs per embeddings request.
_MAX_INPUTS_PER_REQUEST = 2048


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Batches inputs and returns vectors in input order.

    The API tags each vector with the ``index`` of its input and does not
    promise to return them in order.
    """

    def __init__(self, settings: Settings) -> None:
        self._configured = bool(settings.openai_api_key)
        self._model = settings.openai_embedding_model
        self._dimension = settings.embedding_dimensions
        self._client = openai.AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url or None,
            timeout=openai.Timeout(
                settings.openai_timeout_seconds,
                connect=settings.openai_connect_timeout_seconds,
            ),
        )

    async def embed(self, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for offset in range(0, len(texts), _MAX_INPUTS_PER_REQUEST):
            batch = texts[offset : offset + _MAX_INPUTS_PER_REQUEST]
            vectors.extend(await self._embed_batch(batch))
        return vectors

    async def embed_single(self, text: str) -> list[float]:
        (vector,) = await self.embed([text])
        return vector

    async def _embed_batch(self, batch: list[str]) -> list[list[float]]:
        # The endpoint rejects empty strings.
        inputs = [text if text.strip() else " " for text in batch]
        try:
            reply = await self._client.embeddings.create(
                input=inputs,
                model=self._model,
                dimensions=self._dimension,
            )
        except openai.APITimeoutError as exc:
            raise self._error("Embedding request timed out") from exc
        except openai.APIError as exc:
            raise self._error(f"Embedding API error: {exc}") from exc

        vectors = [list(item.embedding) for item in sorted(reply.data, key=lambda item: item.index)]
        if len(vectors) != len(batch):
            raise self._error(f"Embedding API returned {len(vectors)} vectors for {len(batch)} inputs")
        bad = next((len(v) for v in vectors if len(v) != self._dimension), None)
        if bad is not None:
            raise self._error(f"Embedding API returned a {bad}-dimension vector, expected {self._dimension}")

        logger.debug(
            "embedding_batch_complete",
            model=self._model,
            inputs=len(batch),
            tokens=getattr(reply.usage, "total_tokens", None),
        )
        return vectors

    def _error(self, message: str) -> EmbeddingError:
        return EmbeddingError(message=message, provider_name=self.get_provider_name())

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return f"openai-{self._model}"

    def is_available(self) -> bool:
        return self._configured
