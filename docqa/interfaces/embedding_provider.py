"""Abstract base class for embedding service providers.

Defines the contract for converting text into fixed-dimension vectors for
similarity search.  Implementations wrap the OpenAI embeddings API or a
local Ollama model.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: OpenAIEmbeddingProvider, NomicEmbeddingProvider
# Located in: docqa/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for embedding services used by the ingestion and answer pipelines.

    Every vector a provider returns has the same length,
    :meth:`get_dimension`.  Mixing providers against one collection is not
    supported.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            The input strings to embed.

        Returns
        -------
        list[list[float]]
            One vector per input text, in the same order.

        Raises
        ------
        docqa.utils.errors.EmbeddingError
            If the provider rejects the request.
        docqa.utils.errors.ProviderUnavailableError
            If the provider cannot be reached (transient).
        docqa.utils.errors.RateLimitError
            If the provider throttles the request (transient).
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the vectors this provider produces."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured and reachable."""
