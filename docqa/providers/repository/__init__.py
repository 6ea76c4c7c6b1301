"""Document repository implementations.

SQLiteDocumentRepository stores Document records in data/documents.db and
is what the API server and the CLI use.  MemoryDocumentRepository keeps
them in a dict for tests.
"""

from docqa.providers.repository.memory_document_repository import MemoryDocumentRepository
from docqa.providers.repository.sqlite_document_repository import SQLiteDocumentRepository

__all__ = ["MemoryDocumentRepository", "SQLiteDocumentRepository"]
