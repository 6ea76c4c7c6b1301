"""In-memory document repository.

Volatile dict-backed store for tests and for embedding the services in
another program.  Not shared across processes.
"""

from __future__ import annotations

from docqa.interfaces.document_repository import IDocumentRepository
from docqa.models.document import Document


class MemoryDocumentRepository(IDocumentRepository):
    """Dict-backed document persistence."""

    def __init__(self) -> None:
        self._documents: dict[str, Document] = {}

    async def initialize(self) -> None:
        return None

    async def create(self, document: Document) -> Document:
        self._documents[document.id] = document
        return document

    async def get(self, document_id: str) -> Document | None:
        return self._documents.get(document_id)

    async def list_by_owner(self, owner_id: str) -> list[Document]:
        owned = [d for d in self._documents.values() if d.owner_id == owner_id]
        # Two stable sorts: id ascending, then newest first.
        owned.sort(key=lambda d: d.id)
        owned.sort(key=lambda d: d.created_at, reverse=True)
        return owned

    async def delete(self, document_id: str) -> bool:
        return self._documents.pop(document_id, None) is not None

    def get_provider_name(self) -> str:
        return "memory_documents"
