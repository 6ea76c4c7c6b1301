"""Custom exception hierarchy for docqa.

All application exceptions inherit from :class:`DocQAError`, which carries
an optional ``provider_name`` so error handlers can identify which external
service (e.g. "openai", "chromadb", "sqlite") caused the failure.

The hierarchy is organized by pipeline stage:

    DocQAError  (base -- catch-all for any docqa error)
    +-- UnsupportedFormatError   (upload type not in pdf/docx/txt/csv)
    +-- ExtractionError          (raw text extraction failed)
    +-- EmbeddingError           (embedding provider failure)
    +-- IndexWriteError          (vector index upsert/delete failure)
    +-- IndexSearchError         (vector index query failure)
    +-- SynthesisError           (answer generation failed, generic)
    +-- DocumentNotFoundError    (no such document)
    +-- AccessDeniedError        (document owned by someone else)
    +-- LLMError                 (raw LLM API failure, wrapped by synthesis)
    +-- ProviderUnavailableError (transient: timeout / unreachable)
    +-- RateLimitError           (transient: provider throttling)
    +-- ConfigurationError       (startup / missing config)

Only ProviderUnavailableError and RateLimitError are retried by
:func:`docqa.utils.concurrency.call_with_retry`.
"""


class DocQAError(Exception):
    """Base exception for all docqa errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets, e.g.
    ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Ingestion errors
# ---------------------------------------------------------------------------

class UnsupportedFormatError(DocQAError):
    """Raised when a file type is not one of pdf, docx, txt, csv."""

    def __init__(
        self,
        message: str = "Unsupported file format",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ExtractionError(DocQAError):
    """Raised when raw text cannot be extracted from an uploaded file."""

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingError(DocQAError):
    """Raised when the embedding provider fails.  The whole batch fails."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Vector index errors
# ---------------------------------------------------------------------------

class IndexWriteError(DocQAError):
    """Raised when an upsert or delete against the vector index fails.

    Callers must not assume any subset of the write was persisted; the
    operation is retried wholesale.
    """

    def __init__(
        self,
        message: str = "Vector index write failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class IndexSearchError(DocQAError):
    """Raised when a similarity search against the vector index fails."""

    def __init__(
        self,
        message: str = "Vector index search failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Answer errors
# ---------------------------------------------------------------------------

class SynthesisError(DocQAError):
    """Raised when answer generation fails.

    The message is deliberately generic; the provider-specific cause is
    chained via ``__cause__`` and logged server-side only.
    """

    def __init__(
        self,
        message: str = "Failed to generate an answer, please try again",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(DocQAError):
    """Raised when an LLM API call fails or returns an unusable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Document access errors
# ---------------------------------------------------------------------------

class DocumentNotFoundError(DocQAError):
    """Raised when a document id does not exist."""

    def __init__(
        self,
        message: str = "Document not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class AccessDeniedError(DocQAError):
    """Raised when a document exists but belongs to a different owner."""

    def __init__(
        self,
        message: str = "Access denied",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service / provider errors
# ---------------------------------------------------------------------------

class ProviderUnavailableError(DocQAError):
    """Raised when an external service times out or is unreachable.

    Transient -- retried by :func:`~docqa.utils.concurrency.call_with_retry`.
    """

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(DocQAError):
    """Raised when an API rate limit is exceeded.  Transient."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(DocQAError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
