"""Shared pytest fixtures for the docqa test suite."""

from __future__ import annotations

import hashlib
import struct
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from docqa.interfaces.embedding_provider import IEmbeddingProvider
from docqa.interfaces.llm_provider import ILLMProvider
from docqa.interfaces.vector_store_provider import IVectorStoreProvider
from docqa.models.document import Document, FileType
from docqa.models.rag import MetadataValue, SearchHit, VectorRecord, make_vector_id
from docqa.providers.repository.memory_document_repository import MemoryDocumentRepository
from docqa.services.answer_synthesizer import AnswerSynthesizer
from docqa.services.document_service import DocumentService
from docqa.services.embedder import Embedder
from docqa.services.ingestion.chunker import WordChunker
from docqa.services.ingestion.ingestion_pipeline import IngestionPipeline
from docqa.services.ingestion.text_extractor import TextExtractor
from docqa.services.qa_service import QAService
from docqa.services.retriever import Retriever
from docqa.services.vector_index import VectorIndex
from docqa.utils.concurrency import KeyedLock

# ---------------------------------------------------------------------------
# Deterministic embeddings
# ---------------------------------------------------------------------------

_EMBEDDING_DIM = 128


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic unit-length vector by hashing *text*.

    Same text always produces the same vector, so a query identical to a
    chunk's text has cosine distance ~0 to that chunk.
    """
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    raw = digest
    while len(raw) < dim * 4:
        raw += hashlib.sha256(raw).digest()
    raw = raw[: dim * 4]
    # Unpack as unsigned ints and centre them; raw float bit patterns can be NaN.
    values = [v / 2**31 - 1.0 for v in struct.unpack(f"<{dim}I", raw)]
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider for tests."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [_hash_to_vector(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        return _hash_to_vector(text)

    def get_dimension(self) -> int:
        return _EMBEDDING_DIM

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# In-memory vector store
# ---------------------------------------------------------------------------


class MockVectorStore(IVectorStoreProvider):
    """Exact cosine-distance store backed by a dict.

    Filters are exact-match on every key, like the ChromaDB provider.
    Results are ordered by (distance, id).
    """

    def __init__(self) -> None:
        self.records: dict[str, VectorRecord] = {}

    async def upsert(self, records: list[VectorRecord]) -> int:
        for record in records:
            self.records[record.vector_id] = record
        return len(records)

    async def query(
        self,
        query_vector: list[float],
        top_k: int,
        where: dict[str, MetadataValue] | None = None,
    ) -> list[SearchHit]:
        hits: list[SearchHit] = []
        for record in self.records.values():
            if not self._matches(record.metadata, where):
                continue
            dot = sum(a * b for a, b in zip(query_vector, record.embedding, strict=True))
            hits.append(
                SearchHit(
                    id=record.vector_id,
                    text=record.text,
                    metadata=dict(record.metadata),
                    distance=max(0.0, 1.0 - dot),
                )
            )
        hits.sort(key=lambda h: (h.distance, h.id))
        return hits[:top_k]

    async def get_ids(self, where: dict[str, MetadataValue] | None = None) -> list[str]:
        return sorted(vid for vid, rec in self.records.items() if self._matches(rec.metadata, where))

    async def get_records(self, where: dict[str, MetadataValue]) -> list[VectorRecord]:
        return [self.records[vid] for vid in await self.get_ids(where)]

    async def delete_ids(self, ids: list[str]) -> int:
        for vid in ids:
            self.records.pop(vid, None)
        return len(ids)

    async def count(self) -> int:
        return len(self.records)

    def get_provider_name(self) -> str:
        return "mock-vector-store"

    def is_available(self) -> bool:
        return True

    @staticmethod
    def _matches(metadata: dict[str, Any], where: dict[str, Any] | None) -> bool:
        return all(metadata.get(k) == v for k, v in (where or {}).items())


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_words(n: int, prefix: str = "word") -> str:
    """Return *n* distinct space-separated words."""
    return " ".join(f"{prefix}{i}" for i in range(n))


def make_hit(
    text: str = "chunk text",
    *,
    document_id: str = "doc-1",
    owner_id: str = "owner-a",
    filename: str = "report.txt",
    chunk_index: int = 0,
    distance: float = 0.2,
) -> SearchHit:
    return SearchHit(
        id=make_vector_id(document_id, chunk_index),
        text=text,
        metadata={
            "document_id": document_id,
            "owner_id": owner_id,
            "filename": filename,
            "file_type": "txt",
            "chunk_index": chunk_index,
        },
        distance=distance,
    )


def make_document(
    document_id: str = "doc-1",
    owner_id: str = "owner-a",
    filename: str = "report.txt",
    total_chunks: int = 1,
    **overrides: Any,
) -> Document:
    return Document(
        id=document_id,
        filename=filename,
        owner_id=owner_id,
        file_type=overrides.pop("file_type", FileType.TXT),
        total_chunks=total_chunks,
        text_length=overrides.pop("text_length", 100),
        **overrides,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    """Deterministic hash-based IEmbeddingProvider."""
    return MockEmbeddingProvider()


@pytest.fixture
def mock_vector_store() -> MockVectorStore:
    """IVectorStoreProvider backed by an in-memory dict."""
    return MockVectorStore()


@pytest.fixture
def mock_llm_provider() -> ILLMProvider:
    """Mock ILLMProvider.

    Override with ``mock_llm_provider.complete.return_value = "..."`` or
    ``.side_effect`` for specific tests.
    """
    mock = MagicMock(spec=ILLMProvider)
    mock.get_provider_name.return_value = "mock-llm"
    mock.is_available.return_value = True
    mock.complete = AsyncMock(return_value="The answer, per Source 1.")
    return mock


@pytest.fixture
def memory_repository() -> MemoryDocumentRepository:
    return MemoryDocumentRepository()


@pytest.fixture
def vector_index(mock_vector_store: MockVectorStore) -> VectorIndex:
    return VectorIndex(mock_vector_store, timeout=5.0, max_attempts=2, backoff=0.0)


@pytest.fixture
def embedder(mock_embedding_provider: MockEmbeddingProvider) -> Embedder:
    return Embedder(mock_embedding_provider, timeout=5.0, max_attempts=2, backoff=0.0)


@pytest.fixture
def shared_locks() -> KeyedLock:
    return KeyedLock()


@pytest.fixture
def ingestion_pipeline(
    embedder: Embedder,
    vector_index: VectorIndex,
    memory_repository: MemoryDocumentRepository,
    shared_locks: KeyedLock,
) -> IngestionPipeline:
    return IngestionPipeline(
        extractor=TextExtractor(),
        chunker=WordChunker(chunk_size=300),
        embedder=embedder,
        index=vector_index,
        repository=memory_repository,
        locks=shared_locks,
        extraction_timeout=10.0,
    )


@pytest.fixture
def document_service(
    memory_repository: MemoryDocumentRepository,
    vector_index: VectorIndex,
    shared_locks: KeyedLock,
) -> DocumentService:
    return DocumentService(memory_repository, vector_index, locks=shared_locks)


@pytest.fixture
def retriever(embedder: Embedder, vector_index: VectorIndex) -> Retriever:
    return Retriever(embedder, vector_index, top_k=5)


@pytest.fixture
def qa_service(retriever: Retriever, mock_llm_provider: ILLMProvider) -> QAService:
    return QAService(retriever, AnswerSynthesizer(mock_llm_provider, timeout=5.0))


@pytest.fixture
def mock_settings(tmp_path: Path) -> Any:
    """Settings with dummy API keys and temp storage paths."""
    from docqa.config.settings import Settings

    return Settings(
        openai_api_key="sk-test-key",
        anthropic_api_key="test-anthropic-key",
        chromadb_persist_dir=str(tmp_path / "chromadb"),
        document_db_path=str(tmp_path / "documents.db"),
        app_env="test",
    )
