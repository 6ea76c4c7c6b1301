"""docqa API layer -- routes, schemas, and middleware."""

from docqa.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from docqa.api.routes import router
from docqa.api.schemas import (
    AnswerResponse,
    AskQuestionRequest,
    DeleteDocumentResponse,
    DocumentListResponse,
    DocumentResponse,
    ErrorResponse,
    HealthResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "AnswerResponse",
    "AskQuestionRequest",
    "DeleteDocumentResponse",
    "DocumentListResponse",
    "DocumentResponse",
    "ErrorResponse",
    "HealthResponse",
]
