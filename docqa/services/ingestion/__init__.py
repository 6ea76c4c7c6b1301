"""Document ingestion pipeline.

Orchestrates: **extract -> chunk -> embed -> index -> register**.

1. **Extract** (text_extractor.py / TextExtractor) -- pdf, docx, txt and
   csv bytes to plain text.

2. **Chunk** (chunker.py / WordChunker) -- 300-word non-overlapping
   windows.

3. **Embed** (docqa/services/embedder.py) -- one batched call per document.

4. **Index** (docqa/services/vector_index.py) -- upsert into the
   "documents" collection with owner and document metadata.

5. **Register** (via IDocumentRepository) -- persist the Document record.

IngestionPipeline runs the stages as a single unit with rollback.
"""

from docqa.services.ingestion.chunker import WordChunker
from docqa.services.ingestion.ingestion_pipeline import IngestionPipeline
from docqa.services.ingestion.text_extractor import TextExtractor, file_type_from_filename

__all__ = [
    "IngestionPipeline",
    "TextExtractor",
    "WordChunker",
    "file_type_from_filename",
]
