"""Utility modules for docqa.

- **confidence** -- distance-to-relevance conversion and mean confidence.
- **errors** -- exception hierarchy rooted at DocQAError; each pipeline
  stage raises its own subclass.
- **concurrency** -- per-document keyed locks and the timeout + retry
  wrapper used for every external call.
- **logging** -- structlog setup with console output in development and
  JSON in production.
"""

from docqa.utils.concurrency import KeyedLock, call_with_retry
from docqa.utils.confidence import mean_confidence, relevance_from_distance
from docqa.utils.errors import (
    AccessDeniedError,
    ConfigurationError,
    DocQAError,
    DocumentNotFoundError,
    EmbeddingError,
    ExtractionError,
    IndexSearchError,
    IndexWriteError,
    LLMError,
    ProviderUnavailableError,
    RateLimitError,
    SynthesisError,
    UnsupportedFormatError,
)
from docqa.utils.logging import configure_logging, get_logger

__all__ = [
    "AccessDeniedError",
    "ConfigurationError",
    "DocQAError",
    "DocumentNotFoundError",
    "EmbeddingError",
    "ExtractionError",
    "IndexSearchError",
    "IndexWriteError",
    "KeyedLock",
    "LLMError",
    "ProviderUnavailableError",
    "RateLimitError",
    "SynthesisError",
    "UnsupportedFormatError",
    "call_with_retry",
    "configure_logging",
    "get_logger",
    "mean_confidence",
    "relevance_from_distance",
]
