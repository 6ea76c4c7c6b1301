"""AnswerSynthesizer -- turns retrieved chunks into a cited answer.

Data flow:
  1. NO HITS        -- return a fixed "nothing found" answer without
                       calling the LLM.
  2. CONTEXT BUILD  -- one header line per hit (source number, filename,
                       1-based chunk number, relevance) followed by the
                       chunk text; hits separated by ``---``.
  3. LLM CALL       -- a single completion at low temperature.  Any
                       failure becomes a generic :class:`SynthesisError`;
                       the provider detail is logged, never returned.
  4. ATTRIBUTION    -- citations, sources and confidence are derived from
                       the hits in retrieval order, not from the model's
                       text.  Citations are therefore approximate: they
                       list what the model was shown.
"""

from __future__ import annotations

import asyncio

import structlog

from docqa.interfaces.llm_provider import ILLMProvider
from docqa.models.rag import Answer, Citation, SearchHit
from docqa.utils.confidence import mean_confidence
from docqa.utils.errors import SynthesisError

logger = structlog.get_logger(logger_name=__name__)

NO_INFORMATION_ANSWER = (
    "I couldn't find any relevant information in your documents to answer this "
    "question. Please make sure you have uploaded documents and try asking a "
    "different question."
)

NO_INFORMATION_IN_SELECTION_ANSWER = (
    "I couldn't find any relevant information in the selected documents to answer "
    "this question."
)

_PREVIEW_CHARS = 200


class AnswerSynthesizer:
    """Generates an :class:`Answer` from a question and its search hits.

    Parameters
    ----------
    llm:
        The completion backend.
    timeout:
        Seconds allowed for the single completion call.
    temperature:
        Sampling temperature passed to the model.
    max_tokens:
        Response length cap passed to the model.
    """

    SYSTEM_PROMPT = (
        "Based on the following document excerpts, please answer the user's question. "
        "If the information is not available in the provided context, say so clearly. "
        "Provide specific citations to the source documents when possible."
    )

    def __init__(
        self,
        llm: ILLMProvider,
        timeout: float = 60.0,
        temperature: float = 0.1,
        max_tokens: int = 1000,
    ) -> None:
        self._llm = llm
        self._timeout = timeout
        self._temperature = temperature
        self._max_tokens = max_tokens

    @property
    def llm(self) -> ILLMProvider:
        return self._llm

    async def answer(self, query: str, hits: list[SearchHit], *, scoped: bool = False) -> Answer:
        """Answer *query* from *hits*.

        ``scoped`` selects the "nothing found" wording used when the
        caller restricted the search to chosen documents.

        Raises
        ------
        SynthesisError
            If the LLM call fails or times out.
        """
        if not hits:
            text = NO_INFORMATION_IN_SELECTION_ANSWER if scoped else NO_INFORMATION_ANSWER
            return Answer(text=text, citations=[], confidence=0.0, sources=[])

        user_prompt = f"Context:\n{self.build_context(hits)}\n\nQuestion: {query}\n\nAnswer:"

        try:
            text = await asyncio.wait_for(
                self._llm.complete(
                    system_prompt=self.SYSTEM_PROMPT,
                    user_prompt=user_prompt,
                    temperature=self._temperature,
                    max_tokens=self._max_tokens,
                ),
                timeout=self._timeout,
            )
        except Exception as exc:
            logger.error(
                "answer_synthesis_failed",
                provider=self._llm.get_provider_name(),
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise SynthesisError() from exc

        answer = Answer(
            text=text.strip(),
            citations=[self._citation(hit) for hit in hits],
            confidence=mean_confidence([hit.distance for hit in hits]),
            sources=self._sources(hits),
        )
        logger.info(
            "answer_synthesized",
            provider=self._llm.get_provider_name(),
            hits=len(hits),
            confidence=answer.confidence,
        )
        return answer

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def build_context(hits: list[SearchHit]) -> str:
        """Render *hits* as the numbered context block given to the model."""
        blocks = []
        for n, hit in enumerate(hits, start=1):
            header = (
                f"[Source {n}: {hit.filename}, chunk {hit.chunk_index + 1}, "
                f"relevance {hit.relevance:.3f}]"
            )
            blocks.append(f"{header}\n{hit.text}")
        return "\n---\n".join(blocks)

    @staticmethod
    def _citation(hit: SearchHit) -> Citation:
        return Citation(
            filename=hit.filename,
            chunk_index=hit.chunk_index + 1,
            relevance=round(hit.relevance, 3),
            content_preview=hit.text[:_PREVIEW_CHARS] + "...",
        )

    @staticmethod
    def _sources(hits: list[SearchHit]) -> list[str]:
        # dict keeps first-seen order
        return list(dict.fromkeys(hit.filename for hit in hits))
