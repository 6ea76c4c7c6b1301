"""Public interface definitions for all external service providers.

Every external service is reached only through the abstract base classes
in this package.  Concrete adapters implement them and are injected at
startup in ``docqa/main.py`` (or ``docqa/cli``), so the pipelines never
import openai, chromadb or aiosqlite directly and tests can pass fakes.

CONCRETE PROVIDER MAP:
    Interface                  ->  Concrete implementations (docqa/providers/)
    ---------------------------------------------------------------------
    ILLMProvider               ->  OpenAILLMProvider, AnthropicLLMProvider,
                                   OllamaLLMProvider
    IEmbeddingProvider         ->  OpenAIEmbeddingProvider, NomicEmbeddingProvider
    IVectorStoreProvider       ->  ChromaDBProvider
    IDocumentRepository        ->  SQLiteDocumentRepository, MemoryDocumentRepository
"""

from docqa.interfaces.document_repository import IDocumentRepository
from docqa.interfaces.embedding_provider import IEmbeddingProvider
from docqa.interfaces.llm_provider import ILLMProvider
from docqa.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IDocumentRepository",
    "IEmbeddingProvider",
    "ILLMProvider",
    "IVectorStoreProvider",
]
