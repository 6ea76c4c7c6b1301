"""QAService -- question in, cited answer out.

Two stages, both owner-scoped:

  1. RETRIEVE -- embed the question and fetch the owner's nearest chunks,
                 optionally restricted to selected documents.
  2. SYNTHESIZE -- build the context block and make one LLM call; an empty
                   retrieval short-circuits to the "nothing found" answer.
"""

from __future__ import annotations

import time

import structlog

from docqa.models.rag import Answer
from docqa.services.answer_synthesizer import AnswerSynthesizer
from docqa.services.retriever import Retriever

logger = structlog.get_logger(logger_name=__name__)


class QAService:
    """Answers questions over one owner's documents."""

    def __init__(self, retriever: Retriever, synthesizer: AnswerSynthesizer) -> None:
        self._retriever = retriever
        self._synthesizer = synthesizer

    async def ask(
        self,
        question: str,
        owner_id: str,
        document_ids: list[str] | None = None,
    ) -> Answer:
        """Answer *question* from *owner_id*'s documents.

        Raises
        ------
        EmbeddingError, IndexSearchError
            If retrieval fails.
        SynthesisError
            If the LLM call fails.
        """
        start = time.monotonic()
        hits = await self._retriever.retrieve(question, owner_id, selected_document_ids=document_ids)
        answer = await self._synthesizer.answer(question, hits, scoped=bool(document_ids))

        logger.info(
            "question_answered",
            owner_id=owner_id,
            hits=len(hits),
            sources=len(answer.sources),
            confidence=answer.confidence,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
        )
        return answer
