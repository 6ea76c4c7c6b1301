"""ChromaDB vector store provider adapter.

Wraps ``chromadb.PersistentClient`` to implement :class:`IVectorStoreProvider`.
Uses cosine distance.  Fully local: the collection lives on disk under
``CHROMADB_PERSIST_DIR``.

ChromaDB's client is synchronous, so every call runs in a worker thread to
keep the event loop free and to let callers apply ``asyncio.wait_for``.
Writes are never abandoned mid-flight: a caller that times out or is
cancelled still waits for its worker thread before the error propagates,
so a rollback that follows can see (and remove) everything written.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any, Callable, TypeVar

# Must be set before chromadb is imported to silence its telemetry client.
os.environ.setdefault("ANONYMIZED_TELEMETRY", "False")

import chromadb
import structlog

from docqa.interfaces.vector_store_provider import IVectorStoreProvider
from docqa.models.rag import MetadataValue, SearchHit, VectorRecord
from docqa.utils.errors import ConfigurationError, IndexSearchError, IndexWriteError

logger = structlog.get_logger(logger_name=__name__)

_UPSERT_BATCH_SIZE = 500

_T = TypeVar("_T")


async def _run_write(func: Callable[..., _T], *args: Any, **kwargs: Any) -> _T:
    """Run a blocking write in a worker thread that outlives cancellation.

    The thread cannot be interrupted, so on cancellation (including an
    outer ``wait_for`` timeout) this waits for it to finish before
    re-raising.
    """
    future = asyncio.ensure_future(asyncio.to_thread(func, *args, **kwargs))
    try:
        return await asyncio.shield(future)
    except asyncio.CancelledError:
        while not future.done():
            try:
                await asyncio.wait([future])
            except asyncio.CancelledError:
                continue
        if future.exception() is not None:
            logger.warning("chromadb_write_failed_after_cancel", error=str(future.exception()))
        raise


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """Keeps ChromaDB from loading its default ONNX model.

    docqa always passes pre-computed embeddings, so this is never invoked.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "docqa uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by ChromaDB with local persistence.

    Parameters
    ----------
    persist_directory:
        Directory for ChromaDB's SQLite + HNSW files.
    collection_name:
        Collection holding all owners' chunks (default ``"documents"``).
    expected_dimension:
        When given, an existing non-empty collection whose vectors have a
        different length is rejected at startup.
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "documents",
        expected_dimension: int | None = None,
    ) -> None:
        self._persist_directory = persist_directory
        self._collection_name = collection_name
        self._client = chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        # Collections created by older ChromaDB versions carry a persisted
        # default embedding function and reject a different one.
        try:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )

        if expected_dimension is not None:
            self._validate_embedding_dimension(expected_dimension)

    # ------------------------------------------------------------------
    # Startup validation
    # ------------------------------------------------------------------

    def _validate_embedding_dimension(self, expected_dim: int) -> None:
        """Fail fast if stored vectors do not match the embedding provider."""
        if self._collection.count() == 0:
            return

        sample = self._collection.peek(limit=1)
        embeddings = sample.get("embeddings") if sample else None
        if embeddings is None or len(embeddings) == 0:
            return

        stored_dim = len(embeddings[0])
        if stored_dim != expected_dim:
            logger.error(
                "embedding_dimension_mismatch",
                stored_dim=stored_dim,
                expected_dim=expected_dim,
                collection=self._collection_name,
            )
            raise ConfigurationError(
                message=(
                    f"Collection '{self._collection_name}' holds {stored_dim}-dim vectors "
                    f"but the embedding provider produces {expected_dim}-dim vectors"
                ),
                provider_name=self.get_provider_name(),
            )

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def upsert(self, records: list[VectorRecord]) -> int:
        """Upsert records in batches of 500 to bound peak memory."""
        if not records:
            return 0
        try:
            return await _run_write(self._upsert_sync, records)
        except Exception as exc:
            raise IndexWriteError(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def _upsert_sync(self, records: list[VectorRecord]) -> int:
        for start in range(0, len(records), _UPSERT_BATCH_SIZE):
            batch = records[start : start + _UPSERT_BATCH_SIZE]
            self._collection.upsert(
                ids=[r.vector_id for r in batch],
                embeddings=[r.embedding for r in batch],
                documents=[r.text for r in batch],
                metadatas=[dict(r.metadata) for r in batch],
            )
        logger.debug("chromadb_upsert", count=len(records))
        return len(records)

    async def query(
        self,
        query_vector: list[float],
        top_k: int,
        where: dict[str, MetadataValue] | None = None,
    ) -> list[SearchHit]:
        """Nearest-neighbour search, ascending by distance then id."""
        try:
            return await asyncio.to_thread(self._query_sync, query_vector, top_k, where)
        except Exception as exc:
            raise IndexSearchError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def _query_sync(
        self,
        query_vector: list[float],
        top_k: int,
        where: dict[str, MetadataValue] | None,
    ) -> list[SearchHit]:
        total = self._collection.count()
        if total == 0 or top_k <= 0:
            return []

        kwargs: dict[str, Any] = {
            "query_embeddings": [query_vector],
            "n_results": min(top_k, total),
            "include": ["documents", "metadatas", "distances"],
        }
        where_clause = self._translate_filters(where)
        if where_clause:
            kwargs["where"] = where_clause

        results = self._collection.query(**kwargs)
        ids = results["ids"][0] if results.get("ids") else []
        if not ids:
            return []

        documents = results["documents"][0] if results.get("documents") else [""] * len(ids)
        metadatas = results["metadatas"][0] if results.get("metadatas") else [{}] * len(ids)
        distances = results["distances"][0] if results.get("distances") else [0.0] * len(ids)

        hits = [
            SearchHit(
                id=vector_id,
                text=text or "",
                metadata=dict(meta or {}),
                # Float noise can push identical vectors slightly below zero.
                distance=max(0.0, float(distance)),
            )
            for vector_id, text, meta, distance in zip(
                ids, documents, metadatas, distances, strict=True
            )
        ]
        hits.sort(key=lambda hit: (hit.distance, hit.id))
        return hits

    async def get_ids(self, where: dict[str, MetadataValue] | None = None) -> list[str]:
        """Return the ids of every record matching *where*."""
        try:
            return await asyncio.to_thread(self._get_ids_sync, where)
        except Exception as exc:
            raise IndexSearchError(
                message=f"ChromaDB get failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def _get_ids_sync(self, where: dict[str, MetadataValue] | None) -> list[str]:
        kwargs: dict[str, Any] = {"include": ["metadatas"]}
        where_clause = self._translate_filters(where)
        if where_clause:
            kwargs["where"] = where_clause
        existing = self._collection.get(**kwargs)
        return list(existing["ids"] or [])

    async def get_records(self, where: dict[str, MetadataValue]) -> list[VectorRecord]:
        """Return full records (embedding, text, metadata) matching *where*."""
        try:
            return await asyncio.to_thread(self._get_records_sync, where)
        except Exception as exc:
            raise IndexSearchError(
                message=f"ChromaDB get failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def _get_records_sync(self, where: dict[str, MetadataValue]) -> list[VectorRecord]:
        kwargs: dict[str, Any] = {"include": ["embeddings", "documents", "metadatas"]}
        where_clause = self._translate_filters(where)
        if where_clause:
            kwargs["where"] = where_clause
        existing = self._collection.get(**kwargs)
        ids = list(existing["ids"] or [])
        embeddings = existing.get("embeddings")
        documents = existing.get("documents") or [""] * len(ids)
        metadatas = existing.get("metadatas") or [{}] * len(ids)
        if embeddings is None:
            embeddings = [[] for _ in ids]
        return [
            VectorRecord(
                vector_id=vector_id,
                embedding=[float(x) for x in embedding],
                text=text or "",
                metadata=dict(meta or {}),
            )
            for vector_id, embedding, text, meta in zip(ids, embeddings, documents, metadatas, strict=True)
        ]

    async def delete_ids(self, ids: list[str]) -> int:
        """Delete records by id."""
        if not ids:
            return 0
        try:
            await _run_write(self._collection.delete, ids=ids)
        except Exception as exc:
            raise IndexWriteError(
                message=f"ChromaDB delete failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.debug("chromadb_delete", count=len(ids))
        return len(ids)

    async def count(self) -> int:
        return await asyncio.to_thread(self._collection.count)

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the collection is accessible."""
        try:
            self._collection.count()
            return True
        except Exception:
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _translate_filters(
        filters: dict[str, MetadataValue] | None,
    ) -> dict[str, Any] | None:
        """Translate an exact-match filter into a ChromaDB ``where`` clause.

        ChromaDB accepts a single ``{key: value}`` directly but requires
        ``$and`` to combine several keys.
        """
        if not filters:
            return None
        clauses = [{key: value} for key, value in sorted(filters.items())]
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}
