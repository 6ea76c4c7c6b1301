"""docqa FastAPI application entry point.

Wires together all providers, services, and routes via dependency
injection.  Configuration comes from environment variables and ``.env``
(see :class:`~docqa.config.settings.Settings`); logging is configured once
at import time.

Component graph built by :func:`_build_all`::

    IEmbeddingProvider -> Embedder ----+--> IngestionPipeline
    IVectorStoreProvider -> VectorIndex+--> Retriever -> QAService
    ILLMProvider -> AnswerSynthesizer -------------------^
    IDocumentRepository ---------------+--> DocumentService
    KeyedLock (shared by IngestionPipeline and DocumentService)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from docqa.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from docqa.api.routes import router as api_router
from docqa.config.settings import Settings
from docqa.interfaces.document_repository import IDocumentRepository
from docqa.interfaces.embedding_provider import IEmbeddingProvider
from docqa.interfaces.llm_provider import ILLMProvider
from docqa.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from docqa.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from docqa.providers.llm.anthropic_provider import AnthropicLLMProvider
from docqa.providers.llm.ollama_provider import OllamaLLMProvider
from docqa.providers.llm.openai_provider import OpenAILLMProvider
from docqa.providers.repository.sqlite_document_repository import SQLiteDocumentRepository
from docqa.providers.vector_store.chromadb_provider import ChromaDBProvider
from docqa.services.answer_synthesizer import AnswerSynthesizer
from docqa.services.document_service import DocumentService
from docqa.services.embedder import Embedder
from docqa.services.ingestion.chunker import WordChunker
from docqa.services.ingestion.ingestion_pipeline import IngestionPipeline
from docqa.services.ingestion.text_extractor import TextExtractor
from docqa.services.qa_service import QAService
from docqa.services.retriever import Retriever
from docqa.services.vector_index import VectorIndex
from docqa.utils.concurrency import KeyedLock
from docqa.utils.logging import configure_logging, get_logger

_APP_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_llm_provider(app_settings: Settings) -> ILLMProvider:
    """Select the first configured LLM provider.

    Priority order: Anthropic -> OpenAI -> Ollama (always configured).
    """
    if app_settings.anthropic_api_key:
        return AnthropicLLMProvider(settings=app_settings)
    if app_settings.openai_api_key:
        return OpenAILLMProvider(settings=app_settings)
    return OllamaLLMProvider(settings=app_settings)


def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    """Select the embedding provider.

    OpenAI (or an OpenAI-compatible endpoint) when an API key is set,
    otherwise nomic-embed-text on the local Ollama server.
    """
    if app_settings.openai_api_key:
        return OpenAIEmbeddingProvider(settings=app_settings)
    return NomicEmbeddingProvider(settings=app_settings)


def build_services(
    app_settings: Settings,
    *,
    repository: IDocumentRepository | None = None,
    embedding_provider: IEmbeddingProvider | None = None,
    llm_provider: ILLMProvider | None = None,
) -> dict[str, Any]:
    """Construct the service graph.

    Any provider not passed in is built from *app_settings*.  Shared by the
    web app and the CLI.
    """
    embedding = embedding_provider or _build_embedding_provider(app_settings)
    llm = llm_provider or _build_llm_provider(app_settings)
    repo = repository or SQLiteDocumentRepository(db_path=app_settings.document_db_path)

    vector_store = ChromaDBProvider(
        persist_directory=app_settings.chromadb_persist_dir,
        collection_name=app_settings.chromadb_collection,
        expected_dimension=embedding.get_dimension(),
    )

    embedder = Embedder(
        embedding,
        timeout=app_settings.embedding_timeout,
        max_attempts=app_settings.max_retries,
        backoff=app_settings.retry_backoff,
    )
    vector_index = VectorIndex(
        vector_store,
        timeout=app_settings.vector_store_timeout,
        max_attempts=app_settings.max_retries,
        backoff=app_settings.retry_backoff,
    )
    locks = KeyedLock()

    ingestion_pipeline = IngestionPipeline(
        extractor=TextExtractor(csv_has_header=app_settings.csv_has_header),
        chunker=WordChunker(chunk_size=app_settings.chunk_size),
        embedder=embedder,
        index=vector_index,
        repository=repo,
        locks=locks,
        extraction_timeout=app_settings.extraction_timeout,
    )
    retriever = Retriever(embedder, vector_index, top_k=app_settings.retrieval_top_k)
    synthesizer = AnswerSynthesizer(
        llm,
        timeout=app_settings.llm_timeout,
        temperature=app_settings.llm_temperature,
        max_tokens=app_settings.llm_max_tokens,
    )

    return {
        "settings": app_settings,
        "repository": repo,
        "vector_index": vector_index,
        "ingestion_pipeline": ingestion_pipeline,
        "document_service": DocumentService(repo, vector_index, locks=locks),
        "qa_service": QAService(retriever, synthesizer),
        "embedding_provider": embedding,
        "llm_provider": llm,
    }


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every component for the web app, plus the provider registry.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    components = build_services(app_settings)
    embedding: IEmbeddingProvider = components["embedding_provider"]
    llm: ILLMProvider = components["llm_provider"]

    embedding_ok = embedding.is_available()
    if not embedding_ok:
        _logger.warning("embedding_provider_unavailable", provider=embedding.get_provider_name())

    components["provider_registry"] = {
        "llm": llm.is_available(),
        "llm_provider": llm.get_provider_name(),
        "embedding": embedding_ok,
        "embedding_provider": embedding.get_provider_name(),
    }
    return components


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Build all providers and services on startup."""
    components = _build_all(settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["repository"].initialize()

    _logger.info(
        "app_startup",
        version=_APP_VERSION,
        environment=settings.app_env,
        llm=components["llm_provider"].get_provider_name(),
        embedding=components["embedding_provider"].get_provider_name(),
        repository=components["repository"].get_provider_name(),
    )

    yield

    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(app_settings: Settings | None = None, *, lifespan: Any = _lifespan) -> FastAPI:
    """Build and configure the FastAPI application."""
    active_settings = app_settings or settings
    application = FastAPI(
        title="docqa API",
        version=_APP_VERSION,
        description=(
            "Upload pdf, docx, txt or csv documents and ask questions answered "
            "from their content, with citations and a confidence score."
        ),
        lifespan=lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=active_settings.allowed_origins)

    application.include_router(api_router)
    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "docqa.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
