"""Format-specific raw-text extraction for uploaded files.

Supported formats and how each is read:

    PDF   -> PyMuPDF (fitz), page text in page order
    DOCX  -> python-docx, paragraph then table-cell text
    TXT   -> UTF-8 decode (BOM stripped, invalid bytes replaced)
    CSV   -> stdlib csv; each row's values joined by one space, rows by newline.
             With a declared header the first row becomes field names and
             is not emitted.

Pattern: Strategy (file type -> reader function dispatch).  Extraction
only reads the given byte buffer; it never touches the filesystem.
"""

from __future__ import annotations

import csv
import io
from pathlib import PurePath
from typing import Callable

import docx
import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from docqa.models.document import FileType
from docqa.utils.errors import ExtractionError, UnsupportedFormatError

logger = structlog.get_logger(logger_name=__name__)

ALLOWED_FILE_TYPES: frozenset[str] = frozenset(t.value for t in FileType)


def file_type_from_filename(filename: str) -> FileType:
    """Derive the file type from the lower-cased filename extension.

    Raises
    ------
    UnsupportedFormatError
        If the extension is missing or not one of pdf, docx, txt, csv.
    """
    suffix = PurePath(filename).suffix.lower().lstrip(".")
    if suffix not in ALLOWED_FILE_TYPES:
        raise UnsupportedFormatError(
            message=(
                f"Unsupported file type '{suffix or filename}'. "
                f"Allowed: {', '.join(sorted(ALLOWED_FILE_TYPES))}"
            )
        )
    return FileType(suffix)


class TextExtractor:
    """Turns raw upload bytes into plain text.

    Parameters
    ----------
    csv_has_header:
        Treat the first CSV row as field names (default ``True``).
    """

    def __init__(self, csv_has_header: bool = True) -> None:
        self._csv_has_header = csv_has_header
        self._readers: dict[FileType, Callable[[bytes], str]] = {
            FileType.PDF: self._extract_pdf,
            FileType.DOCX: self._extract_docx,
            FileType.TXT: self._extract_txt,
            FileType.CSV: self._extract_csv,
        }

    def extract(self, file_bytes: bytes, file_type: FileType | str) -> str:
        """Return the plain text of *file_bytes*.

        Raises
        ------
        UnsupportedFormatError
            If *file_type* is not a supported format.
        ExtractionError
            If the bytes cannot be parsed as that format.
        """
        try:
            kind = FileType(str(getattr(file_type, "value", file_type)).lower())
        except ValueError as exc:
            raise UnsupportedFormatError(message=f"Unsupported file type '{file_type}'") from exc

        reader = self._readers[kind]
        try:
            text = reader(file_bytes)
        except Exception as exc:
            logger.warning("text_extraction_failed", file_type=kind.value, error=str(exc))
            raise ExtractionError(
                message=f"Could not extract text from {kind.value} file: {exc}",
                provider_name=kind.value,
            ) from exc

        logger.debug("text_extracted", file_type=kind.value, text_length=len(text))
        return text

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_pdf(file_bytes: bytes) -> str:
        doc = fitz.open(stream=file_bytes, filetype="pdf")
        try:
            pages = [page.get_text("text").strip() for page in doc]
        finally:
            doc.close()
        return "\n".join(p for p in pages if p)

    @staticmethod
    def _extract_docx(file_bytes: bytes) -> str:
        document = docx.Document(io.BytesIO(file_bytes))
        parts = [para.text for para in document.paragraphs if para.text.strip()]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    parts.append(" ".join(cells))
        return "\n".join(parts)

    @staticmethod
    def _extract_txt(file_bytes: bytes) -> str:
        return file_bytes.decode("utf-8-sig", errors="replace")

    def _extract_csv(self, file_bytes: bytes) -> str:
        text = file_bytes.decode("utf-8-sig", errors="replace")
        buffer = io.StringIO(text, newline="")
        lines: list[str] = []
        if self._csv_has_header:
            for record in csv.DictReader(buffer, strict=True):
                values: list[str] = []
                for value in record.values():
                    # Extra cells beyond the header arrive as a list under
                    # the None key; missing cells arrive as None.
                    if isinstance(value, list):
                        values.extend(value)
                    elif value is not None:
                        values.append(value)
                lines.append(" ".join(values))
        else:
            for row in csv.reader(buffer, strict=True):
                if row:
                    lines.append(" ".join(row))
        return "\n".join(lines)
