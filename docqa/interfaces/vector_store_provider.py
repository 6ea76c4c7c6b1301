"""Abstract base class for vector-store service providers.

Defines the raw storage contract behind :class:`~docqa.services.vector_index.VectorIndex`:
upsert embedded records, nearest-neighbour query with an exact-match
metadata filter, and id-based enumeration and deletion.  The adapter keeps
the pipelines independent of the chosen backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from docqa.models.rag import MetadataValue, SearchHit, VectorRecord


# Concrete implementation: ChromaDBProvider (docqa/providers/vector_store/)
# Data persists to disk at CHROMADB_PERSIST_DIR in the "documents" collection.
class IVectorStoreProvider(ABC):
    """Contract for the vector store holding document chunks.

    **Filter syntax**: a flat ``{key: value}`` dict; a record matches when
    its metadata equals *every* given value, e.g.
    ``{"owner_id": "u1", "document_id": "d1"}``.  ``None`` or ``{}``
    matches everything.
    """

    @abstractmethod
    async def upsert(self, records: list[VectorRecord]) -> int:
        """Insert or replace records keyed by ``vector_id``.

        Parameters
        ----------
        records:
            Embedded chunks to store.  Re-sending a record with an existing
            id overwrites it, so a retried write never duplicates.

        If the awaiting task is cancelled, implementations must not return
        control until the write has stopped touching the store.

        Returns
        -------
        int
            Number of records written.

        Raises
        ------
        docqa.utils.errors.IndexWriteError
            If the store rejects the write.
        """

    @abstractmethod
    async def query(
        self,
        query_vector: list[float],
        top_k: int,
        where: dict[str, MetadataValue] | None = None,
    ) -> list[SearchHit]:
        """Return up to *top_k* nearest records matching *where*.

        Parameters
        ----------
        query_vector:
            Embedding of the query text.
        top_k:
            Maximum number of hits.
        where:
            Exact-match metadata filter (see class docstring).

        Returns
        -------
        list[SearchHit]
            Zero or more hits, ascending by distance.

        Raises
        ------
        docqa.utils.errors.IndexSearchError
            If the query fails.
        """

    @abstractmethod
    async def get_ids(self, where: dict[str, MetadataValue] | None = None) -> list[str]:
        """Return the ids of every record matching *where*."""

    @abstractmethod
    async def get_records(self, where: dict[str, MetadataValue]) -> list[VectorRecord]:
        """Return every record matching *where*, embeddings included.

        Raises
        ------
        docqa.utils.errors.IndexSearchError
            If the read fails.
        """

    @abstractmethod
    async def delete_ids(self, ids: list[str]) -> int:
        """Delete records by id and return how many were requested.

        Raises
        ------
        docqa.utils.errors.IndexWriteError
            If the store rejects the delete.
        """

    @abstractmethod
    async def count(self) -> int:
        """Return the total number of records in the collection."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the collection is reachable."""
