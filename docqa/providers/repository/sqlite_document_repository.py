"""SQLite-backed document repository.

Persists :class:`Document` records to a local SQLite database at
``data/documents.db``.  Uses ``aiosqlite`` for async I/O.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import aiosqlite
import structlog

from docqa.interfaces.document_repository import IDocumentRepository
from docqa.models.document import Document, DocumentStatus, FileType

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/documents.db")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS documents (
    id           TEXT    PRIMARY KEY,
    filename     TEXT    NOT NULL,
    owner_id     TEXT    NOT NULL,
    file_type    TEXT    NOT NULL,
    total_chunks INTEGER NOT NULL DEFAULT 0,
    text_length  INTEGER NOT NULL DEFAULT 0,
    created_at   TEXT    NOT NULL,
    status       TEXT    NOT NULL
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_documents_owner ON documents(owner_id, created_at);",
]

_UPSERT_SQL = """\
INSERT INTO documents (id, filename, owner_id, file_type, total_chunks, text_length, created_at, status)
VALUES (?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id)
DO UPDATE SET filename     = excluded.filename,
              owner_id     = excluded.owner_id,
              file_type    = excluded.file_type,
              total_chunks = excluded.total_chunks,
              text_length  = excluded.text_length,
              created_at   = excluded.created_at,
              status       = excluded.status;
"""

_SELECT_COLUMNS = "id, filename, owner_id, file_type, total_chunks, text_length, created_at, status"


def _format_timestamp(value: datetime) -> str:
    # Fixed-width UTC text so ORDER BY created_at sorts chronologically.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _row_to_document(row: aiosqlite.Row) -> Document:
    return Document(
        id=row["id"],
        filename=row["filename"],
        owner_id=row["owner_id"],
        file_type=FileType(row["file_type"]),
        total_chunks=row["total_chunks"],
        text_length=row["text_length"],
        created_at=datetime.fromisoformat(row["created_at"]),
        status=DocumentStatus(row["status"]),
    )


class SQLiteDocumentRepository(IDocumentRepository):
    """SQLite-backed document persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the documents table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("document_db_initialized", path=str(self._db_path))

    async def create(self, document: Document) -> Document:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                _UPSERT_SQL,
                (
                    document.id,
                    document.filename,
                    document.owner_id,
                    document.file_type.value,
                    document.total_chunks,
                    document.text_length,
                    _format_timestamp(document.created_at),
                    document.status.value,
                ),
            )
            await db.commit()
        return document

    async def get(self, document_id: str) -> Document | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {_SELECT_COLUMNS} FROM documents WHERE id = ?",
                (document_id,),
            )
            row = await cursor.fetchone()
        return _row_to_document(row) if row is not None else None

    async def list_by_owner(self, owner_id: str) -> list[Document]:
        """Return all documents for an owner, newest first."""
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {_SELECT_COLUMNS} FROM documents "
                "WHERE owner_id = ? ORDER BY created_at DESC, id ASC",
                (owner_id,),
            )
            rows = await cursor.fetchall()
        return [_row_to_document(r) for r in rows]

    async def delete(self, document_id: str) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("DELETE FROM documents WHERE id = ?", (document_id,))
            await db.commit()
            deleted = cursor.rowcount > 0
        return deleted

    def get_provider_name(self) -> str:
        return "sqlite_documents"
