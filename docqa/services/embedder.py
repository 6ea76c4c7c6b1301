"""Embedder -- maps chunks and queries to vectors.

Sits between the pipelines and an :class:`IEmbeddingProvider`, adding a
per-call timeout, bounded retries for transient failures, and a uniform
:class:`EmbeddingError` for everything else.  A document's chunks are sent
as one batch; the batch succeeds or fails as a whole.
"""

from __future__ import annotations

import structlog

from docqa.interfaces.embedding_provider import IEmbeddingProvider
from docqa.utils.concurrency import call_with_retry
from docqa.utils.errors import EmbeddingError, ProviderUnavailableError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)


class Embedder:
    """Order-preserving embedding with timeout and retry.

    Parameters
    ----------
    provider:
        The embedding backend.
    timeout:
        Seconds allowed per provider call.
    max_attempts:
        Attempts per call for transient failures.  Embedding is
        idempotent, so retrying is always safe.
    backoff:
        Base delay in seconds between attempts.
    """

    def __init__(
        self,
        provider: IEmbeddingProvider,
        timeout: float = 30.0,
        max_attempts: int = 3,
        backoff: float = 0.5,
    ) -> None:
        self._provider = provider
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._backoff = backoff

    @property
    def provider(self) -> IEmbeddingProvider:
        return self._provider

    async def embed_documents(self, chunks: list[str]) -> list[list[float]]:
        """Embed every chunk in a single provider call.

        Returns
        -------
        list[list[float]]
            One vector per chunk, same order.

        Raises
        ------
        EmbeddingError
            If the provider fails or returns the wrong number of vectors.
        """
        if not chunks:
            return []

        vectors = await self._call(lambda: self._provider.embed(chunks), "embed_documents")
        if len(vectors) != len(chunks):
            raise EmbeddingError(
                message=f"Provider returned {len(vectors)} vectors for {len(chunks)} chunks",
                provider_name=self._provider.get_provider_name(),
            )
        logger.info(
            "chunks_embedded",
            provider=self._provider.get_provider_name(),
            count=len(vectors),
        )
        return vectors

    async def embed_query(self, text: str) -> list[float]:
        """Embed a single query string."""
        return await self._call(lambda: self._provider.embed_single(text), "embed_query")

    async def _call(self, operation, operation_name: str):  # noqa: ANN001, ANN202
        provider_name = self._provider.get_provider_name()
        try:
            return await call_with_retry(
                operation,
                operation_name=operation_name,
                timeout=self._timeout,
                attempts=self._max_attempts,
                backoff=self._backoff,
                provider_name=provider_name,
            )
        except EmbeddingError:
            raise
        except (ProviderUnavailableError, RateLimitError) as exc:
            raise EmbeddingError(
                message=f"Embedding provider unavailable: {exc.message}",
                provider_name=provider_name,
            ) from exc
        except Exception as exc:
            raise EmbeddingError(
                message=f"Embedding failed: {exc}",
                provider_name=provider_name,
            ) from exc
