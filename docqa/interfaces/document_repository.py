"""Abstract base class for the document registry.

The ingestion pipeline hands a finished :class:`Document` to the repository;
after that the repository owns it.  Implementations: SQLite (persistent)
and in-memory (tests, embedding the services in another program).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from docqa.models.document import Document


# Concrete implementations: SQLiteDocumentRepository, MemoryDocumentRepository
# Located in: docqa/providers/repository/
class IDocumentRepository(ABC):
    """Contract for storing document records."""

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backing store (create tables, directories)."""

    @abstractmethod
    async def create(self, document: Document) -> Document:
        """Persist *document*, replacing any record with the same id.

        Returns
        -------
        Document
            The stored record.
        """

    @abstractmethod
    async def get(self, document_id: str) -> Document | None:
        """Return the document with *document_id*, or ``None``."""

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> list[Document]:
        """Return all documents of *owner_id*, newest ``created_at`` first."""

    @abstractmethod
    async def delete(self, document_id: str) -> bool:
        """Remove the record.  Returns ``True`` if one existed."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this repository."""
