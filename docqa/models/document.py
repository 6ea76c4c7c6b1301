"""Document registry models.

A :class:`Document` is created once per successful ingestion and handed
to the document repository.  Its ``id`` is the key that ties the record to
its vector records (``{id}_chunk_{n}``) in the vector index; the two are
created together and deleted together.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DocumentStatus(str, Enum):
    """Lifecycle state of an uploaded document."""

    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"


class FileType(str, Enum):
    """Upload formats accepted by the text extractor."""

    PDF = "pdf"
    DOCX = "docx"
    TXT = "txt"
    CSV = "csv"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(BaseModel):
    """An ingested document owned by exactly one owner."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Globally unique, immutable document id.")
    filename: str = Field(description="Original upload filename.")
    owner_id: str = Field(description="Tenant that owns this document.")
    file_type: FileType
    total_chunks: int = Field(default=0, ge=0, description="Number of indexed chunks.")
    text_length: int = Field(default=0, ge=0, description="Characters of extracted text.")
    created_at: datetime = Field(default_factory=_utcnow)
    status: DocumentStatus = DocumentStatus.PROCESSED
