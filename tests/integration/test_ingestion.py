"""Integration tests for the document ingestion pipeline.

Verifies end-to-end ingestion (extract, chunk, embed, index, register)
against the dict-backed vector store and in-memory repository, including
rollback when a stage fails and replacement on re-upload.
"""

from __future__ import annotations

import asyncio
import io
import time
from unittest.mock import AsyncMock

import docx
import pytest

from conftest import MockVectorStore, make_words
from docqa.models.document import DocumentStatus, FileType
from docqa.providers.vector_store.chromadb_provider import ChromaDBProvider
from docqa.services.ingestion.chunker import WordChunker
from docqa.services.ingestion.ingestion_pipeline import IngestionPipeline
from docqa.services.ingestion.text_extractor import TextExtractor
from docqa.services.retriever import Retriever
from docqa.services.vector_index import VectorIndex
from docqa.utils.errors import (
    AccessDeniedError,
    EmbeddingError,
    ExtractionError,
    IndexWriteError,
    UnsupportedFormatError,
)

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _docx_bytes(*paragraphs: str) -> bytes:
    document = docx.Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def _ids_for(store: MockVectorStore, document_id: str) -> set[str]:
    return {vid for vid, rec in store.records.items() if rec.metadata["document_id"] == document_id}


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


class TestIngest:
    @pytest.mark.asyncio
    async def test_txt_chunks_and_metadata(
        self, ingestion_pipeline: IngestionPipeline, mock_vector_store: MockVectorStore, memory_repository
    ) -> None:
        document = await ingestion_pipeline.ingest(make_words(650).encode(), "long.txt", "alice")

        assert document.total_chunks == 3
        assert document.file_type is FileType.TXT
        assert document.status is DocumentStatus.PROCESSED
        assert await memory_repository.get(document.id) == document

        assert _ids_for(mock_vector_store, document.id) == {
            f"{document.id}_chunk_0",
            f"{document.id}_chunk_1",
            f"{document.id}_chunk_2",
        }
        last = mock_vector_store.records[f"{document.id}_chunk_2"]
        assert last.metadata == {
            "document_id": document.id,
            "owner_id": "alice",
            "filename": "long.txt",
            "file_type": "txt",
            "chunk_index": 2,
        }
        assert len(last.text.split()) == 50

    @pytest.mark.asyncio
    async def test_exactly_one_window(self, ingestion_pipeline: IngestionPipeline) -> None:
        document = await ingestion_pipeline.ingest(make_words(300).encode(), "a.txt", "alice")
        assert document.total_chunks == 1

    @pytest.mark.asyncio
    async def test_docx(self, ingestion_pipeline: IngestionPipeline, mock_vector_store: MockVectorStore) -> None:
        document = await ingestion_pipeline.ingest(
            _docx_bytes("First paragraph.", "Second paragraph."), "memo.docx", "alice"
        )

        assert document.file_type is FileType.DOCX
        text = mock_vector_store.records[f"{document.id}_chunk_0"].text
        assert "First paragraph." in text
        assert "Second paragraph." in text

    @pytest.mark.asyncio
    async def test_one_embedding_batch_per_document(
        self, ingestion_pipeline: IngestionPipeline, mock_embedding_provider
    ) -> None:
        await ingestion_pipeline.ingest(make_words(900).encode(), "a.txt", "alice")
        assert [len(batch) for batch in mock_embedding_provider.calls] == [3]

    @pytest.mark.asyncio
    async def test_same_file_twice_gives_two_documents(
        self, ingestion_pipeline: IngestionPipeline, mock_vector_store: MockVectorStore, memory_repository
    ) -> None:
        first = await ingestion_pipeline.ingest(b"same bytes", "a.txt", "alice")
        second = await ingestion_pipeline.ingest(b"same bytes", "a.txt", "alice")

        assert first.id != second.id
        assert len(await memory_repository.list_by_owner("alice")) == 2
        assert len(mock_vector_store.records) == 2

    @pytest.mark.asyncio
    async def test_no_text_registers_zero_chunks(
        self, ingestion_pipeline: IngestionPipeline, mock_vector_store: MockVectorStore, mock_embedding_provider
    ) -> None:
        document = await ingestion_pipeline.ingest(b"   \n\t  ", "blank.txt", "alice")

        assert document.total_chunks == 0
        assert mock_vector_store.records == {}
        assert mock_embedding_provider.calls == []

    @pytest.mark.asyncio
    async def test_unsupported_format(self, ingestion_pipeline: IngestionPipeline, memory_repository) -> None:
        with pytest.raises(UnsupportedFormatError):
            await ingestion_pipeline.ingest(b"data", "archive.zip", "alice")
        assert await memory_repository.list_by_owner("alice") == []

    @pytest.mark.asyncio
    async def test_concurrent_ingests_do_not_interfere(
        self, ingestion_pipeline: IngestionPipeline, mock_vector_store: MockVectorStore
    ) -> None:
        documents = await asyncio.gather(
            *(ingestion_pipeline.ingest(make_words(350, f"d{i}w").encode(), f"{i}.txt", "alice") for i in range(5))
        )

        for document in documents:
            assert len(_ids_for(mock_vector_store, document.id)) == 2
        assert len(mock_vector_store.records) == 10


# ---------------------------------------------------------------------------
# Rollback
# ---------------------------------------------------------------------------


class TestRollback:
    @pytest.mark.asyncio
    async def test_extraction_failure(self, ingestion_pipeline: IngestionPipeline, memory_repository) -> None:
        with pytest.raises(ExtractionError):
            await ingestion_pipeline.ingest(b"this is not a pdf at all", "bad.pdf", "alice")
        assert await memory_repository.list_by_owner("alice") == []

    @pytest.mark.asyncio
    async def test_embedding_failure(
        self, ingestion_pipeline: IngestionPipeline, mock_embedding_provider, mock_vector_store, memory_repository
    ) -> None:
        mock_embedding_provider.embed = AsyncMock(side_effect=EmbeddingError())

        with pytest.raises(EmbeddingError):
            await ingestion_pipeline.ingest(b"hello world", "a.txt", "alice")

        assert mock_vector_store.records == {}
        assert await memory_repository.list_by_owner("alice") == []

    @pytest.mark.asyncio
    async def test_index_failure(
        self, ingestion_pipeline: IngestionPipeline, mock_vector_store, memory_repository
    ) -> None:
        mock_vector_store.upsert = AsyncMock(side_effect=RuntimeError("disk full"))

        with pytest.raises(IndexWriteError):
            await ingestion_pipeline.ingest(b"hello world", "a.txt", "alice")

        assert await memory_repository.list_by_owner("alice") == []

    @pytest.mark.asyncio
    async def test_registry_failure_removes_vectors(
        self, ingestion_pipeline: IngestionPipeline, mock_vector_store: MockVectorStore, memory_repository
    ) -> None:
        memory_repository.create = AsyncMock(side_effect=RuntimeError("database is locked"))

        with pytest.raises(RuntimeError):
            await ingestion_pipeline.ingest(make_words(400).encode(), "a.txt", "alice")

        assert mock_vector_store.records == {}

    @pytest.mark.asyncio
    async def test_rollback_failure_keeps_original_error(
        self, ingestion_pipeline: IngestionPipeline, mock_vector_store: MockVectorStore, memory_repository
    ) -> None:
        memory_repository.create = AsyncMock(side_effect=RuntimeError("database is locked"))
        mock_vector_store.delete_ids = AsyncMock(side_effect=RuntimeError("store offline"))

        with pytest.raises(RuntimeError, match="database is locked"):
            await ingestion_pipeline.ingest(b"hello world", "a.txt", "alice")

    @pytest.mark.asyncio
    async def test_lock_released_after_failure(
        self, ingestion_pipeline: IngestionPipeline, mock_embedding_provider
    ) -> None:
        mock_embedding_provider.embed = AsyncMock(side_effect=EmbeddingError())
        with pytest.raises(EmbeddingError):
            await ingestion_pipeline.ingest(b"x", "a.txt", "alice", document_id="doc-1")
        assert len(ingestion_pipeline.locks) == 0


# ---------------------------------------------------------------------------
# Re-upload and deletion
# ---------------------------------------------------------------------------


class TestReplaceAndDelete:
    @pytest.mark.asyncio
    async def test_reupload_replaces_chunks(
        self, ingestion_pipeline: IngestionPipeline, mock_vector_store: MockVectorStore, memory_repository
    ) -> None:
        await ingestion_pipeline.ingest(make_words(900).encode(), "v1.txt", "alice", document_id="doc-1")
        replaced = await ingestion_pipeline.ingest(b"short now", "v2.txt", "alice", document_id="doc-1")

        assert replaced.total_chunks == 1
        assert _ids_for(mock_vector_store, "doc-1") == {"doc-1_chunk_0"}
        assert mock_vector_store.records["doc-1_chunk_0"].text == "short now"
        assert (await memory_repository.get("doc-1")).filename == "v2.txt"

    @pytest.mark.asyncio
    async def test_reupload_of_foreign_document_denied(
        self, ingestion_pipeline: IngestionPipeline, mock_vector_store: MockVectorStore, memory_repository
    ) -> None:
        await ingestion_pipeline.ingest(b"alice text", "a.txt", "alice", document_id="doc-1")

        with pytest.raises(AccessDeniedError):
            await ingestion_pipeline.ingest(b"bob text", "b.txt", "bob", document_id="doc-1")

        assert (await memory_repository.get("doc-1")).owner_id == "alice"
        assert mock_vector_store.records["doc-1_chunk_0"].text == "alice text"

    @pytest.mark.asyncio
    async def test_failed_reupload_keeps_previous_version(
        self,
        ingestion_pipeline: IngestionPipeline,
        mock_vector_store: MockVectorStore,
        mock_embedding_provider,
        memory_repository,
    ) -> None:
        original = await ingestion_pipeline.ingest(b"original", "a.txt", "alice", document_id="doc-1")
        mock_embedding_provider.embed = AsyncMock(side_effect=EmbeddingError())

        with pytest.raises(EmbeddingError):
            await ingestion_pipeline.ingest(b"replacement", "b.txt", "alice", document_id="doc-1")

        assert await memory_repository.get("doc-1") == original
        assert mock_vector_store.records["doc-1_chunk_0"].text == "original"

    @pytest.mark.asyncio
    async def test_reupload_failing_at_registration_restores_previous_version(
        self,
        ingestion_pipeline: IngestionPipeline,
        mock_vector_store: MockVectorStore,
        memory_repository,
    ) -> None:
        original = await ingestion_pipeline.ingest(make_words(650).encode(), "v1.txt", "alice", document_id="doc-1")
        before = dict(mock_vector_store.records)
        memory_repository.create = AsyncMock(side_effect=[RuntimeError("database is locked"), original])

        with pytest.raises(RuntimeError, match="database is locked"):
            await ingestion_pipeline.ingest(b"short now", "v2.txt", "alice", document_id="doc-1")

        assert await memory_repository.get("doc-1") == original
        assert mock_vector_store.records == before

    @pytest.mark.asyncio
    async def test_deleted_document_not_retrievable(
        self, ingestion_pipeline: IngestionPipeline, document_service, retriever: Retriever
    ) -> None:
        document = await ingestion_pipeline.ingest(b"the secret ingredient is basil", "r.txt", "alice")
        assert await retriever.retrieve("the secret ingredient is basil", "alice")

        await document_service.delete(document.id, "alice")

        assert await retriever.retrieve("the secret ingredient is basil", "alice") == []


# ---------------------------------------------------------------------------
# Interrupted ingestion
# ---------------------------------------------------------------------------


class TestInterrupted:
    @pytest.mark.asyncio
    async def test_cancel_after_index_write(
        self, ingestion_pipeline: IngestionPipeline, mock_vector_store: MockVectorStore, memory_repository
    ) -> None:
        registering = asyncio.Event()

        async def _blocked_create(document):  # noqa: ANN001, ANN202
            registering.set()
            await asyncio.Event().wait()

        memory_repository.create = _blocked_create
        task = asyncio.create_task(ingestion_pipeline.ingest(make_words(650).encode(), "a.txt", "alice"))
        await registering.wait()
        assert len(mock_vector_store.records) == 3

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert mock_vector_store.records == {}
        assert await memory_repository.list_by_owner("alice") == []
        assert len(ingestion_pipeline.locks) == 0

    @pytest.mark.asyncio
    async def test_timed_out_chromadb_write_leaves_no_vectors(
        self, tmp_path, embedder, memory_repository, monkeypatch
    ) -> None:
        store = ChromaDBProvider(persist_directory=str(tmp_path / "chroma"), collection_name="slow")
        original = store._upsert_sync

        def _slow_upsert(records):  # noqa: ANN001, ANN202
            time.sleep(0.5)
            return original(records)

        monkeypatch.setattr(store, "_upsert_sync", _slow_upsert)
        pipeline = IngestionPipeline(
            extractor=TextExtractor(),
            chunker=WordChunker(chunk_size=300),
            embedder=embedder,
            index=VectorIndex(store, timeout=0.1, max_attempts=1, backoff=0.0),
            repository=memory_repository,
        )

        with pytest.raises(IndexWriteError):
            await pipeline.ingest(make_words(650).encode(), "a.txt", "alice")

        assert await store.count() == 0
        await asyncio.sleep(0.6)
        assert await store.count() == 0
        assert await memory_repository.list_by_owner("alice") == []
