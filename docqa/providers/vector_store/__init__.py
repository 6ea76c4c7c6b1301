"""Vector store provider implementations.

ChromaDB is the sole vector store.  It keeps chunk embeddings on disk and
answers cosine nearest-neighbour queries with exact-match metadata filters.

To use another vector database, implement IVectorStoreProvider and build
it in main.py instead.
"""

from docqa.providers.vector_store.chromadb_provider import ChromaDBProvider

__all__ = ["ChromaDBProvider"]
