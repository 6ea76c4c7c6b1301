"""VectorIndex -- add, search and delete embedded chunks in one collection.

Wraps an :class:`IVectorStoreProvider` with the guarantees the pipelines
rely on:

* ``add`` is an upsert keyed by the deterministic vector id
  (``{document_id}_chunk_{n}``), so retrying a failed write never
  duplicates records.
* ``search`` returns at most ``k`` hits ordered by ascending distance with
  ties broken by vector id, so the same index state always yields the same
  order.
* ``delete`` enumerates matching ids and removes exactly those.  A failure
  at either step is reported as :class:`IndexWriteError`; because deleting
  absent ids is a no-op, the caller simply retries the whole delete.

Every provider call gets a timeout and bounded retries for transient
errors.
"""

from __future__ import annotations

from typing import Any

import structlog

from docqa.interfaces.vector_store_provider import IVectorStoreProvider
from docqa.models.rag import MetadataValue, SearchHit, VectorRecord
from docqa.utils.concurrency import call_with_retry
from docqa.utils.errors import (
    IndexSearchError,
    IndexWriteError,
    ProviderUnavailableError,
    RateLimitError,
)

logger = structlog.get_logger(logger_name=__name__)


class VectorIndex:
    """Collection-scoped vector index used by ingestion, retrieval and deletion."""

    def __init__(
        self,
        provider: IVectorStoreProvider,
        timeout: float = 15.0,
        max_attempts: int = 3,
        backoff: float = 0.5,
    ) -> None:
        self._provider = provider
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._backoff = backoff

    @property
    def provider(self) -> IVectorStoreProvider:
        return self._provider

    async def add(
        self,
        ids: list[str],
        vectors: list[list[float]],
        texts: list[str],
        metadatas: list[dict[str, MetadataValue]],
    ) -> int:
        """Upsert records.  All four lists are positional and equal length.

        Raises
        ------
        ValueError
            If the lists differ in length or *ids* contains duplicates.
        IndexWriteError
            If the store rejects the write.  Nothing may be assumed about
            which records were persisted.
        """
        if not (len(ids) == len(vectors) == len(texts) == len(metadatas)):
            raise ValueError(
                "ids, vectors, texts and metadatas length mismatch: "
                f"{len(ids)}/{len(vectors)}/{len(texts)}/{len(metadatas)}"
            )
        if len(set(ids)) != len(ids):
            raise ValueError("ids must be unique within one add() call")
        if not ids:
            return 0

        records = [
            VectorRecord(vector_id=i, embedding=v, text=t, metadata=m)
            for i, v, t, m in zip(ids, vectors, texts, metadatas, strict=True)
        ]
        written = await self._write(lambda: self._provider.upsert(records), "vector_index_add")
        logger.info("vector_index_add", count=written)
        return written

    async def search(
        self,
        query_vector: list[float],
        k: int,
        filter: dict[str, MetadataValue] | None = None,  # noqa: A002
    ) -> list[SearchHit]:
        """Return up to *k* nearest records whose metadata matches *filter*.

        Raises
        ------
        IndexSearchError
            If the query fails after retries.
        """
        if k <= 0:
            return []
        try:
            hits = await call_with_retry(
                lambda: self._provider.query(query_vector, k, filter),
                operation_name="vector_index_search",
                timeout=self._timeout,
                attempts=self._max_attempts,
                backoff=self._backoff,
                provider_name=self._provider.get_provider_name(),
            )
        except IndexSearchError:
            raise
        except Exception as exc:
            raise IndexSearchError(
                message=f"Vector search failed: {exc}",
                provider_name=self._provider.get_provider_name(),
            ) from exc

        ordered = sorted(hits, key=lambda hit: (hit.distance, hit.id))[:k]
        logger.debug("vector_index_search", k=k, filter_keys=sorted(filter or {}), hits=len(ordered))
        return ordered

    async def snapshot(self, filter: dict[str, MetadataValue]) -> list[VectorRecord]:  # noqa: A002
        """Return full copies of the records matching *filter*.

        Used to put a document back if its replacement fails.
        """
        if not filter:
            raise ValueError("snapshot() requires a non-empty filter")
        return await self._write(lambda: self._provider.get_records(filter), "vector_index_snapshot")

    async def restore(self, records: list[VectorRecord]) -> int:
        """Upsert previously snapshotted records unchanged."""
        if not records:
            return 0
        written = await self._write(lambda: self._provider.upsert(records), "vector_index_restore")
        logger.info("vector_index_restore", count=written)
        return written

    async def delete(self, filter: dict[str, MetadataValue]) -> int:  # noqa: A002
        """Remove every record whose metadata matches *filter*.

        Raises
        ------
        ValueError
            If *filter* is empty (refuses to wipe the collection).
        IndexWriteError
            If enumeration or deletion fails; retry the whole call.
        """
        if not filter:
            raise ValueError("delete() requires a non-empty filter")

        ids = await self._write(lambda: self._provider.get_ids(filter), "vector_index_enumerate")
        if not ids:
            return 0
        deleted = await self._write(lambda: self._provider.delete_ids(ids), "vector_index_delete")
        logger.info("vector_index_delete", filter_keys=sorted(filter), deleted=deleted)
        return deleted

    async def _write(self, operation, operation_name: str) -> Any:  # noqa: ANN001
        try:
            return await call_with_retry(
                operation,
                operation_name=operation_name,
                timeout=self._timeout,
                attempts=self._max_attempts,
                backoff=self._backoff,
                provider_name=self._provider.get_provider_name(),
            )
        except IndexWriteError:
            raise
        except (ProviderUnavailableError, RateLimitError, IndexSearchError) as exc:
            raise IndexWriteError(
                message=f"{operation_name} failed: {exc.message}",
                provider_name=self._provider.get_provider_name(),
            ) from exc
        except Exception as exc:
            raise IndexWriteError(
                message=f"{operation_name} failed: {exc}",
                provider_name=self._provider.get_provider_name(),
            ) from exc
