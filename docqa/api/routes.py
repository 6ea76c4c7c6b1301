"""FastAPI API routes for docqa.

Provides REST endpoints for document upload, listing, lookup, deletion,
question answering and health.  Service dependencies are resolved from
``app.state`` via FastAPI's ``Depends`` using the ``Annotated`` pattern.

Route map (all prefixed with /api/v1):

    Endpoint                  Method  Description
    /documents/upload         POST    Upload -> extract -> chunk -> embed -> index
    /documents                GET     List the caller's documents
    /documents/{id}           GET     One document (404 for other owners)
    /documents/{id}           DELETE  Delete document and its vectors
    /chat/ask                 POST    Ask a question over the caller's documents
    /health                   GET     Health check + provider status

The caller is identified by the ``X-Owner-Id`` header.  Application errors
raised by the services are turned into JSON responses by
:class:`~docqa.api.middleware.ErrorHandlingMiddleware`.
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Request, UploadFile, status

from docqa.api.schemas import (
    AnswerResponse,
    AskQuestionRequest,
    DeleteDocumentResponse,
    DocumentListResponse,
    DocumentResponse,
    ErrorResponse,
    HealthResponse,
)
from docqa.config.settings import Settings
from docqa.services.document_service import DocumentService
from docqa.services.ingestion.ingestion_pipeline import IngestionPipeline
from docqa.services.ingestion.text_extractor import file_type_from_filename
from docqa.services.qa_service import QAService
from docqa.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_APP_VERSION = "0.1.0"

# Uploads are read in 64 KB increments so oversized files are rejected
# without buffering the whole payload.
_UPLOAD_CHUNK_SIZE = 64 * 1024


# ---------------------------------------------------------------------------
# Dependency injection helpers -- resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_ingestion_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.ingestion_pipeline


def _get_document_service(request: Request) -> DocumentService:
    return request.app.state.document_service


def _get_qa_service(request: Request) -> QAService:
    return request.app.state.qa_service


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _get_owner_id(x_owner_id: Annotated[str, Header(min_length=1)]) -> str:
    """Return the caller's owner id from the ``X-Owner-Id`` header."""
    owner_id = x_owner_id.strip()
    if not owner_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing owner id")
    return owner_id


IngestionDep = Annotated[IngestionPipeline, Depends(_get_ingestion_pipeline)]
DocumentServiceDep = Annotated[DocumentService, Depends(_get_document_service)]
QAServiceDep = Annotated[QAService, Depends(_get_qa_service)]
SettingsDep = Annotated[Settings, Depends(_get_settings)]
OwnerDep = Annotated[str, Depends(_get_owner_id)]


async def _read_upload(file: UploadFile, max_bytes: int) -> bytes:
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = await file.read(_UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File too large. Maximum: {max_bytes} bytes.",
            )
        chunks.append(chunk)
    return b"".join(chunks)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@router.post(
    "/documents/upload",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        413: {"model": ErrorResponse},
        415: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Upload and index a document",
)
async def upload_document(
    file: UploadFile,
    owner_id: OwnerDep,
    pipeline: IngestionDep,
    settings: SettingsDep,
) -> DocumentResponse:
    """Accept a pdf, docx, txt or csv file and index it for *owner_id*."""
    try:
        filename = file.filename or ""
        # Reject unsupported types before reading the body.
        file_type_from_filename(filename)

        file_bytes = await _read_upload(file, settings.max_upload_bytes)
        if not file_bytes:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")

        document = await pipeline.ingest(file_bytes, filename, owner_id)
    finally:
        await file.close()

    return DocumentResponse.from_document(document)


@router.get(
    "/documents",
    response_model=DocumentListResponse,
    summary="List the caller's documents",
)
async def list_documents(owner_id: OwnerDep, documents: DocumentServiceDep) -> DocumentListResponse:
    items = await documents.list_for_owner(owner_id)
    return DocumentListResponse(
        documents=[DocumentResponse.from_document(d) for d in items],
        total=len(items),
    )


@router.get(
    "/documents/{document_id}",
    response_model=DocumentResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get one document",
)
async def get_document(
    document_id: str,
    owner_id: OwnerDep,
    documents: DocumentServiceDep,
) -> DocumentResponse:
    document = await documents.get(document_id, owner_id)
    return DocumentResponse.from_document(document)


@router.delete(
    "/documents/{document_id}",
    response_model=DeleteDocumentResponse,
    responses={404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Delete a document and its indexed chunks",
)
async def delete_document(
    document_id: str,
    owner_id: OwnerDep,
    documents: DocumentServiceDep,
) -> DeleteDocumentResponse:
    removed = await documents.delete(document_id, owner_id)
    return DeleteDocumentResponse(id=document_id, deleted=True, removed_chunks=removed)


# ---------------------------------------------------------------------------
# Question answering
# ---------------------------------------------------------------------------


@router.post(
    "/chat/ask",
    response_model=AnswerResponse,
    responses={502: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="Ask a question over the caller's documents",
)
async def ask_question(
    body: AskQuestionRequest,
    owner_id: OwnerDep,
    qa_service: QAServiceDep,
    settings: SettingsDep,
) -> AnswerResponse:
    """Answer a question via retrieval over the owner's chunks plus one LLM call."""
    if len(body.question) > settings.max_question_length:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Question too long. Maximum: {settings.max_question_length} characters.",
        )

    answer = await qa_service.ask(body.question, owner_id, document_ids=body.document_ids)
    return AnswerResponse.from_answer(answer)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = dict(getattr(request.app.state, "provider_registry", {}))

    vector_index = getattr(request.app.state, "vector_index", None)
    if vector_index is not None:
        try:
            providers["vector_store_chunks"] = await vector_index.provider.count()
            providers["vector_store"] = True
        except Exception as exc:
            _logger.warning("health_vector_store_failed", error=str(exc))
            providers["vector_store"] = False

    critical = ("llm", "embedding", "vector_store")
    if all(providers.get(name, False) for name in critical):
        health = "healthy"
    elif providers.get("vector_store", False):
        health = "degraded"
    else:
        health = "unhealthy"

    return HealthResponse(status=health, version=_APP_VERSION, providers=providers)
