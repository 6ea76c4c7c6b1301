"""Unit tests for docqa domain models."""

from __future__ import annotations

from datetime import timezone

import pytest
from pydantic import ValidationError

from docqa.models.document import Document, DocumentStatus, FileType
from docqa.models.rag import Answer, Citation, SearchHit, make_vector_id


class TestDocument:
    def test_defaults(self) -> None:
        doc = Document(id="d1", filename="a.txt", owner_id="o1", file_type=FileType.TXT)
        assert doc.status is DocumentStatus.PROCESSED
        assert doc.total_chunks == 0
        assert doc.created_at.tzinfo is timezone.utc

    def test_frozen(self) -> None:
        doc = Document(id="d1", filename="a.txt", owner_id="o1", file_type=FileType.TXT)
        with pytest.raises(ValidationError):
            doc.owner_id = "o2"  # type: ignore[misc]

    def test_negative_chunks_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Document(id="d1", filename="a.txt", owner_id="o1", file_type="txt", total_chunks=-1)

    def test_file_type_from_string(self) -> None:
        doc = Document(id="d1", filename="a.csv", owner_id="o1", file_type="csv")
        assert doc.file_type is FileType.CSV


class TestSearchHit:
    def test_metadata_accessors(self) -> None:
        hit = SearchHit(
            id=make_vector_id("doc-9", 3),
            text="t",
            metadata={"document_id": "doc-9", "filename": "f.pdf", "chunk_index": 3},
            distance=0.25,
        )
        assert hit.id == "doc-9_chunk_3"
        assert hit.document_id == "doc-9"
        assert hit.filename == "f.pdf"
        assert hit.chunk_index == 3
        assert hit.relevance == pytest.approx(0.75)

    def test_relevance_clamped_for_far_hits(self) -> None:
        assert SearchHit(id="x", text="t", distance=1.4).relevance == 0.0

    def test_negative_distance_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SearchHit(id="x", text="t", distance=-0.1)


class TestAnswer:
    def test_confidence_bounds(self) -> None:
        with pytest.raises(ValidationError):
            Answer(text="a", confidence=1.5)

    def test_citation_chunk_index_is_one_based(self) -> None:
        with pytest.raises(ValidationError):
            Citation(filename="f", chunk_index=0, relevance=0.5, content_preview="p")
