"""DocumentService -- owner-checked lookup, listing and deletion.

Every access by id checks ownership first.  Deletion removes the vectors
before the record: if the vector delete fails the record stays, so the
caller can see the document and retry.  If the vectors go but the record
delete fails, a retry finds no vectors and removes the record.  Deletes
and id-targeted ingests for the same document are serialized through the
shared :class:`KeyedLock`.
"""

from __future__ import annotations

import structlog

from docqa.interfaces.document_repository import IDocumentRepository
from docqa.models.document import Document
from docqa.services.vector_index import VectorIndex
from docqa.utils.concurrency import KeyedLock
from docqa.utils.errors import AccessDeniedError, DocumentNotFoundError

logger = structlog.get_logger(logger_name=__name__)


class DocumentService:
    """Owner-facing operations on registered documents."""

    def __init__(
        self,
        repository: IDocumentRepository,
        index: VectorIndex,
        locks: KeyedLock | None = None,
    ) -> None:
        self._repository = repository
        self._index = index
        self._locks = locks or KeyedLock()

    async def get(self, document_id: str, owner_id: str) -> Document:
        """Return *document_id* if it belongs to *owner_id*.

        Raises
        ------
        DocumentNotFoundError
            If no such document exists.
        AccessDeniedError
            If it belongs to another owner.
        """
        document = await self._repository.get(document_id)
        if document is None:
            raise DocumentNotFoundError(message=f"Document {document_id} not found")
        if document.owner_id != owner_id:
            logger.warning(
                "document_access_denied",
                document_id=document_id,
                owner_id=owner_id,
            )
            raise AccessDeniedError(message=f"Document {document_id} not accessible")
        return document

    async def list_for_owner(self, owner_id: str) -> list[Document]:
        """All documents of *owner_id*, newest first."""
        return await self._repository.list_by_owner(owner_id)

    async def delete(self, document_id: str, owner_id: str) -> int:
        """Delete a document and all of its vectors.

        Returns
        -------
        int
            Number of vector records removed.

        Raises
        ------
        DocumentNotFoundError, AccessDeniedError
            As for :meth:`get`.
        IndexWriteError
            If the vectors could not be removed; the record is kept.
        """
        async with self._locks.hold(document_id):
            await self.get(document_id, owner_id)
            removed = await self._index.delete({"document_id": document_id})
            await self._repository.delete(document_id)

        logger.info(
            "document_deleted",
            document_id=document_id,
            owner_id=owner_id,
            removed_vectors=removed,
        )
        return removed
