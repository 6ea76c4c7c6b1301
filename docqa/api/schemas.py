"""Pydantic request/response schemas for the docqa API.

Defines the public contract for the REST endpoints: document upload,
listing, lookup and deletion, question answering, and health.

Convention: request schemas end with "Request", response schemas end with
"Response".  Responses are built from the domain models with
``from_document`` / ``from_answer`` so the routes stay thin.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from docqa.models.document import Document
from docqa.models.rag import Answer


class DocumentResponse(BaseModel):
    """One registered document."""

    id: str
    filename: str
    file_type: str
    total_chunks: int
    text_length: int
    status: str
    created_at: datetime

    @classmethod
    def from_document(cls, document: Document) -> DocumentResponse:
        return cls(
            id=document.id,
            filename=document.filename,
            file_type=document.file_type.value,
            total_chunks=document.total_chunks,
            text_length=document.text_length,
            status=document.status.value,
            created_at=document.created_at,
        )


class DocumentListResponse(BaseModel):
    """All documents of the requesting owner, newest first."""

    documents: list[DocumentResponse] = Field(default_factory=list)
    total: int = 0


class DeleteDocumentResponse(BaseModel):
    """Result of deleting a document and its vectors."""

    id: str
    deleted: bool = True
    removed_chunks: int = 0


class AskQuestionRequest(BaseModel):
    """A question over the owner's documents, optionally scoped."""

    question: str = Field(min_length=1, description="Trimmed before the length limit is applied.")
    document_ids: list[str] | None = Field(
        default=None,
        description="Restrict retrieval to these documents; omit for all.",
    )

    @field_validator("question")
    @classmethod
    def _question_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("question must not be blank")
        return value.strip()


class CitationResponse(BaseModel):
    filename: str
    chunk_index: int
    relevance: float
    content_preview: str


class AnswerResponse(BaseModel):
    """Generated answer with its supporting citations."""

    answer: str
    citations: list[CitationResponse] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    sources: list[str] = Field(default_factory=list)

    @classmethod
    def from_answer(cls, answer: Answer) -> AnswerResponse:
        return cls(
            answer=answer.text,
            citations=[CitationResponse(**c.model_dump()) for c in answer.citations],
            confidence=answer.confidence,
            sources=list(answer.sources),
        )


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, bool | int | str]


class ErrorResponse(BaseModel):
    """Standard error body returned by the error-handling middleware."""

    error: str
    detail: str | None = None
