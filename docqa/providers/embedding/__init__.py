"""Embedding provider implementations.

Two implementations of IEmbeddingProvider, in startup priority order:
    1. OpenAIEmbeddingProvider -- text-embedding-ada-002 (1536 dims) or any
       model on an OpenAI-compatible endpoint.  Requires OPENAI_API_KEY.
    2. NomicEmbeddingProvider  -- nomic-embed-text via Ollama (768 dims).
       Free and local, needs a running Ollama server.

A collection built with one provider cannot be queried with the other;
the vector dimensions differ.
"""

from docqa.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from docqa.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider", "NomicEmbeddingProvider"]
