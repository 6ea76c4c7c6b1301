"""Orchestrator for document ingestion.

Pipeline stages: **extract -> chunk -> embed -> index -> register**.

:class:`IngestionPipeline` coordinates five collaborators (text extractor,
chunker, embedder, vector index, document repository) without any of them
knowing about each other.  The whole run is one failable unit:

    1. TextExtractor   -- raw text from the upload bytes (worker thread)
    2. WordChunker     -- 300-word windows
    3. Embedder        -- one batched embedding call
    4. VectorIndex     -- upsert ``{document_id}_chunk_{n}`` records
    5. Repository      -- persist the Document with status ``processed``

If any stage fails, vectors already written for the document id are
deleted again and no Document is registered, so the index never holds
vectors without a record and the registry never holds a record without
its vectors.  Nothing is written until extraction and embedding have
succeeded; a re-upload that fails after that puts the replaced version
back.  A document that yields no chunks is still registered with
``total_chunks == 0``; it simply cannot be found by search.

All writes for one document id are serialized through a shared
:class:`KeyedLock`, the same one :class:`DocumentService` uses for deletes.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import TYPE_CHECKING, NamedTuple

import structlog

from docqa.models.document import Document, DocumentStatus
from docqa.models.rag import MetadataValue, VectorRecord, make_vector_id
from docqa.services.ingestion.chunker import WordChunker
from docqa.services.ingestion.text_extractor import TextExtractor, file_type_from_filename
from docqa.utils.concurrency import KeyedLock
from docqa.utils.errors import AccessDeniedError, ExtractionError

if TYPE_CHECKING:
    from docqa.interfaces.document_repository import IDocumentRepository
    from docqa.services.embedder import Embedder
    from docqa.services.vector_index import VectorIndex

logger = structlog.get_logger(logger_name=__name__)


class _PreviousVersion(NamedTuple):
    """A replaced document, kept until its replacement is committed."""

    document: Document
    records: list[VectorRecord]


class IngestionPipeline:
    """Turns an uploaded file into an indexed, registered :class:`Document`."""

    def __init__(
        self,
        extractor: TextExtractor,
        chunker: WordChunker,
        embedder: Embedder,
        index: VectorIndex,
        repository: IDocumentRepository,
        locks: KeyedLock | None = None,
        extraction_timeout: float = 120.0,
    ) -> None:
        self._extractor = extractor
        self._chunker = chunker
        self._embedder = embedder
        self._index = index
        self._repository = repository
        self._locks = locks or KeyedLock()
        self._extraction_timeout = extraction_timeout

    @property
    def locks(self) -> KeyedLock:
        return self._locks

    async def ingest(
        self,
        file_bytes: bytes,
        filename: str,
        owner_id: str,
        document_id: str | None = None,
    ) -> Document:
        """Ingest one file for *owner_id*.

        Parameters
        ----------
        file_bytes:
            Raw upload content.  The caller owns and releases the buffer.
        filename:
            Original filename; its extension selects the extractor.
        owner_id:
            Tenant the document will belong to.
        document_id:
            Re-upload target.  When omitted a fresh UUID is used, so the
            same file ingested twice yields two distinct documents.  When
            it names an existing document of the same owner, that document
            (record and vectors) is replaced once the new content has been
            extracted and embedded.  If the replacement fails, the previous
            version is put back.

        Returns
        -------
        Document
            The registered record.

        Raises
        ------
        UnsupportedFormatError
            If the extension is not pdf, docx, txt or csv.
        AccessDeniedError
            If *document_id* belongs to another owner.
        ExtractionError, EmbeddingError, IndexWriteError
            If a stage fails; the run has been rolled back.
        """
        file_type = file_type_from_filename(filename)
        doc_id = document_id or str(uuid.uuid4())
        log = logger.bind(document_id=doc_id, owner_id=owner_id, filename=filename)

        async with self._locks.hold(doc_id):
            previous = await self._find_previous(doc_id, owner_id) if document_id is not None else None

            start = time.monotonic()
            index_touched = False
            try:
                text, chunks, vectors = await self._prepare(file_bytes, file_type, log)
                index_touched = True
                if document_id is not None:
                    await self._index.delete({"document_id": doc_id})
                document = await self._commit(doc_id, filename, owner_id, file_type, text, chunks, vectors)
            except (Exception, asyncio.CancelledError) as exc:
                log.warning("ingestion_failed", error_type=type(exc).__name__, error=str(exc))
                if index_touched:
                    await self._rollback(doc_id, previous, log)
                raise

        if previous is not None:
            log.info("document_replaced", previous_chunks=len(previous.records))
        log.info(
            "document_ingested",
            file_type=file_type.value,
            total_chunks=document.total_chunks,
            text_length=document.text_length,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
        )
        return document

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _prepare(self, file_bytes, file_type, log) -> tuple[str, list[str], list[list[float]]]:  # noqa: ANN001
        """Extract, chunk and embed.  Touches neither the index nor the registry."""
        text = await self._extract(file_bytes, file_type)
        chunks = self._chunker.chunk(text)
        if not chunks:
            log.warning("document_has_no_text", text_length=len(text))
            return text, [], []
        vectors = await self._embedder.embed_documents(chunks)
        return text, chunks, vectors

    async def _commit(self, doc_id, filename, owner_id, file_type, text, chunks, vectors) -> Document:  # noqa: ANN001
        if chunks:
            ids = [make_vector_id(doc_id, i) for i in range(len(chunks))]
            metadatas: list[dict[str, MetadataValue]] = [
                {
                    "document_id": doc_id,
                    "owner_id": owner_id,
                    "filename": filename,
                    "file_type": file_type.value,
                    "chunk_index": i,
                }
                for i in range(len(chunks))
            ]
            await self._index.add(ids, vectors, chunks, metadatas)

        document = Document(
            id=doc_id,
            filename=filename,
            owner_id=owner_id,
            file_type=file_type,
            total_chunks=len(chunks),
            text_length=len(text),
            status=DocumentStatus.PROCESSED,
        )
        return await self._repository.create(document)

    async def _extract(self, file_bytes: bytes, file_type) -> str:  # noqa: ANN001
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._extractor.extract, file_bytes, file_type),
                timeout=self._extraction_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ExtractionError(
                message=f"Text extraction timed out after {self._extraction_timeout}s",
                provider_name=file_type.value,
            ) from exc

    async def _find_previous(self, doc_id: str, owner_id: str) -> _PreviousVersion | None:
        """Snapshot the version a re-upload is about to replace."""
        existing = await self._repository.get(doc_id)
        if existing is None:
            return None
        if existing.owner_id != owner_id:
            raise AccessDeniedError(message=f"Document {doc_id} belongs to another owner")
        records = await self._index.snapshot({"document_id": doc_id})
        return _PreviousVersion(document=existing, records=records)

    async def _rollback(self, doc_id: str, previous: _PreviousVersion | None, log) -> None:  # noqa: ANN001
        """Remove what this run wrote and put back the replaced version, if any."""
        try:
            removed = await self._index.delete({"document_id": doc_id})
            if previous is not None:
                await self._index.restore(previous.records)
                await self._repository.create(previous.document)
        except Exception as exc:
            log.error("ingestion_rollback_failed", error_type=type(exc).__name__, error=str(exc))
            return
        log.info("ingestion_rolled_back", removed_vectors=removed, restored=previous is not None)
