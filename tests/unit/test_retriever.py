"""Unit tests for the Retriever -- owner scoping and document selection."""

from __future__ import annotations

import pytest

from conftest import _hash_to_vector
from docqa.models.rag import make_vector_id
from docqa.services.retriever import Retriever
from docqa.services.vector_index import VectorIndex


async def _index_chunks(index: VectorIndex, document_id: str, owner_id: str, texts: list[str]) -> None:
    await index.add(
        [make_vector_id(document_id, i) for i in range(len(texts))],
        [_hash_to_vector(t) for t in texts],
        texts,
        [
            {
                "document_id": document_id,
                "owner_id": owner_id,
                "filename": f"{document_id}.txt",
                "file_type": "txt",
                "chunk_index": i,
            }
            for i in range(len(texts))
        ],
    )


class TestRetrieve:
    @pytest.mark.asyncio
    async def test_exact_chunk_ranks_first(self, retriever: Retriever, vector_index: VectorIndex) -> None:
        await _index_chunks(vector_index, "d1", "alice", ["the cat sat", "dogs bark loudly", "birds sing"])

        hits = await retriever.retrieve("dogs bark loudly", "alice")

        assert hits[0].text == "dogs bark loudly"
        assert hits[0].chunk_index == 1
        assert hits[0].relevance == pytest.approx(1.0, abs=1e-6)

    @pytest.mark.asyncio
    async def test_other_owners_never_returned(self, retriever: Retriever, vector_index: VectorIndex) -> None:
        await _index_chunks(vector_index, "d1", "alice", ["shared secret"])
        await _index_chunks(vector_index, "d2", "bob", ["shared secret"])

        hits = await retriever.retrieve("shared secret", "bob")

        assert [h.document_id for h in hits] == ["d2"]
        assert all(h.metadata["owner_id"] == "bob" for h in hits)

    @pytest.mark.asyncio
    async def test_unknown_owner_gets_nothing(self, retriever: Retriever, vector_index: VectorIndex) -> None:
        await _index_chunks(vector_index, "d1", "alice", ["text"])
        assert await retriever.retrieve("text", "mallory") == []

    @pytest.mark.asyncio
    async def test_default_k_from_constructor(self, embedder, vector_index: VectorIndex) -> None:
        await _index_chunks(vector_index, "d1", "alice", [f"chunk {i}" for i in range(10)])

        assert len(await Retriever(embedder, vector_index, top_k=3).retrieve("chunk", "alice")) == 3
        assert len(await Retriever(embedder, vector_index, top_k=3).retrieve("chunk", "alice", k=7)) == 7


class TestSelection:
    @pytest.mark.asyncio
    async def test_selection_filters_hits(self, retriever: Retriever, vector_index: VectorIndex) -> None:
        await _index_chunks(vector_index, "d1", "alice", ["apples", "pears"])
        await _index_chunks(vector_index, "d2", "alice", ["plums"])

        hits = await retriever.retrieve("apples", "alice", selected_document_ids=["d2"])

        assert [h.document_id for h in hits] == ["d2"]

    @pytest.mark.asyncio
    async def test_empty_selection_means_all(self, retriever: Retriever, vector_index: VectorIndex) -> None:
        await _index_chunks(vector_index, "d1", "alice", ["apples"])
        await _index_chunks(vector_index, "d2", "alice", ["plums"])

        hits = await retriever.retrieve("apples", "alice", selected_document_ids=[])

        assert {h.document_id for h in hits} == {"d1", "d2"}

    @pytest.mark.asyncio
    async def test_selection_of_foreign_document_returns_nothing(
        self, retriever: Retriever, vector_index: VectorIndex
    ) -> None:
        await _index_chunks(vector_index, "d1", "alice", ["apples"])
        await _index_chunks(vector_index, "d9", "bob", ["apples"])

        assert await retriever.retrieve("apples", "alice", selected_document_ids=["d9"]) == []

    @pytest.mark.asyncio
    async def test_selection_applied_after_top_k(self, embedder, vector_index: VectorIndex) -> None:
        # d1's chunks crowd out d2 from the top-2, leaving nothing after filtering.
        await _index_chunks(vector_index, "d1", "alice", ["alpha", "alpha"])
        await _index_chunks(vector_index, "d2", "alice", ["omega"])

        hits = await Retriever(embedder, vector_index, top_k=2).retrieve(
            "alpha", "alice", selected_document_ids=["d2"]
        )

        assert hits == []
