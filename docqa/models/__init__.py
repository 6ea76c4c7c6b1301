"""docqa domain models -- re-exports all public model classes.

    - document.py -- Document registry record, status and file types
    - rag.py      -- vector records, search hits, citations and answers
"""

from __future__ import annotations

from docqa.models.document import Document, DocumentStatus, FileType
from docqa.models.rag import Answer, Citation, SearchHit, VectorRecord, make_vector_id

__all__ = [
    "Answer",
    "Citation",
    "Document",
    "DocumentStatus",
    "FileType",
    "SearchHit",
    "VectorRecord",
    "make_vector_id",
]
