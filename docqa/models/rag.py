"""Retrieval and answer models.

RAG overview:

    1. INGESTION: an uploaded file is extracted to text and split into
       300-word chunks.
    2. EMBEDDING: each chunk becomes a fixed-dimension vector.
    3. STORAGE: vectors, chunk text and metadata go into the "documents"
       collection as :class:`VectorRecord` tuples.
    4. RETRIEVAL: a question is embedded and the owner's nearest chunks
       come back as :class:`SearchHit` values.
    5. GENERATION: hits become the LLM context; :class:`Citation` and the
       :class:`Answer` confidence are derived from the same hits.

All models are frozen.
"""

from __future__ import annotations

from typing import Union

from pydantic import BaseModel, ConfigDict, Field

from docqa.utils.confidence import relevance_from_distance

# ChromaDB metadata values must be scalars.
MetadataValue = Union[str, int, float, bool]


def make_vector_id(document_id: str, chunk_index: int) -> str:
    """Return the deterministic vector id for a document chunk."""
    return f"{document_id}_chunk_{chunk_index}"


class VectorRecord(BaseModel):
    """One embedded chunk as written to the vector index."""

    model_config = ConfigDict(frozen=True)

    vector_id: str
    embedding: list[float]
    text: str
    metadata: dict[str, MetadataValue] = Field(
        description="document_id, owner_id, filename, file_type, chunk_index"
    )


class SearchHit(BaseModel):
    """A nearest-neighbour result, uniform across vector-store providers."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Vector id of the matched chunk.")
    text: str
    metadata: dict[str, MetadataValue] = Field(default_factory=dict)
    distance: float = Field(ge=0.0, description="Cosine distance, 0 = identical.")

    @property
    def relevance(self) -> float:
        """``1 - distance`` clamped to [0, 1]."""
        return relevance_from_distance(self.distance)

    @property
    def document_id(self) -> str:
        return str(self.metadata.get("document_id", ""))

    @property
    def filename(self) -> str:
        return str(self.metadata.get("filename", ""))

    @property
    def chunk_index(self) -> int:
        return int(self.metadata.get("chunk_index", 0))


class Citation(BaseModel):
    """Display reference from an answer back to a retrieved chunk.

    Derived from retrieval order only; the LLM does not assert which
    sentences came from which chunk.
    """

    model_config = ConfigDict(frozen=True)

    filename: str
    chunk_index: int = Field(ge=1, description="1-based chunk number for display.")
    relevance: float = Field(ge=0.0, le=1.0)
    content_preview: str


class Answer(BaseModel):
    """A grounded answer with citations and a confidence score."""

    model_config = ConfigDict(frozen=True)

    text: str
    citations: list[Citation] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    sources: list[str] = Field(default_factory=list, description="Distinct filenames.")
