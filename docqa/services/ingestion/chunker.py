"""Fixed-size word-window chunking.

Splits extracted text into consecutive, non-overlapping windows of
``chunk_size`` words.  Words are whitespace-delimited tokens, so re-splitting
the joined chunks reproduces the original word sequence exactly, and the
number of chunks is ``ceil(word_count / chunk_size)``.

Example::

    >>> WordChunker(chunk_size=2).chunk("a b c d e")
    ['a b', 'c d', 'e']
"""

from __future__ import annotations

import structlog

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_CHUNK_SIZE = 300


class WordChunker:
    """Splits text into windows of exactly ``chunk_size`` words.

    The last window may be shorter.  Empty or whitespace-only input yields
    no chunks.

    Parameters
    ----------
    chunk_size:
        Words per chunk (default 300).  Must be positive.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._chunk_size = chunk_size

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def chunk(self, text: str) -> list[str]:
        """Split *text* into word windows joined by single spaces."""
        words = text.split()
        size = self._chunk_size
        chunks = [" ".join(words[start : start + size]) for start in range(0, len(words), size)]
        chunks = [c for c in chunks if c.strip()]

        logger.debug(
            "text_chunked",
            word_count=len(words),
            chunk_size=size,
            chunk_count=len(chunks),
        )
        return chunks
