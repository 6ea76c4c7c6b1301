"""Retriever -- embeds a question and finds the owner's nearest chunks.

The owner filter is pushed down to the vector index, so chunks of other
owners are never candidates.  A document selection is applied afterwards
on the returned hits: the search asks for ``k`` neighbours of the owner
and keeps the ones whose ``document_id`` is in the selection.  A narrow
selection can therefore return fewer than ``k`` hits even when the
selected documents hold more chunks.
"""

from __future__ import annotations

import structlog

from docqa.models.rag import SearchHit
from docqa.services.embedder import Embedder
from docqa.services.vector_index import VectorIndex

logger = structlog.get_logger(logger_name=__name__)


class Retriever:
    """Owner-scoped similarity search over the document collection."""

    def __init__(self, embedder: Embedder, index: VectorIndex, top_k: int = 5) -> None:
        self._embedder = embedder
        self._index = index
        self._top_k = top_k

    async def retrieve(
        self,
        query: str,
        owner_id: str,
        selected_document_ids: list[str] | None = None,
        k: int | None = None,
    ) -> list[SearchHit]:
        """Return up to *k* hits for *query*, nearest first.

        Parameters
        ----------
        query:
            The user's question.
        owner_id:
            Only this owner's chunks are searched.
        selected_document_ids:
            Optional restriction to these documents.  ``None`` and an
            empty list both mean "all of the owner's documents".
        k:
            Maximum number of hits (defaults to the configured top-k).

        Raises
        ------
        EmbeddingError
            If the query cannot be embedded.
        IndexSearchError
            If the similarity search fails.
        """
        limit = self._top_k if k is None else k
        query_vector = await self._embedder.embed_query(query)
        hits = await self._index.search(query_vector, limit, filter={"owner_id": owner_id})

        if selected_document_ids:
            selected = set(selected_document_ids)
            hits = [hit for hit in hits if hit.document_id in selected]

        logger.info(
            "chunks_retrieved",
            owner_id=owner_id,
            k=limit,
            selected_documents=len(selected_document_ids or []),
            hits=len(hits),
        )
        return hits
