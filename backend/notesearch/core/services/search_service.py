from __future__ import annotations
from typing import List, Optional, Sequence
import asyncio
import logging

from notesearch.core.entities import AggregationResult, SearchResult, SectionizedAnswer, AnswerSection
from notesearch.core.errors import InvalidArgument, SynthesisFailed
from notesearch.core.ports.generator import IAnswerGenerator
from notesearch.core.services.coordinator import RetrievalCoordinator
from notesearch.core.services.aggregator import ChunkAggregator
from notesearch.core.services.prompt_builder import build_synthesis_prompt
from notesearch.core.services.sectionizer import sectionize

logger = logging.getLogger("notesearch.search")

# ==========================================================
# Canned answers (no generation call is made for these)
# ==========================================================
ALL_STORES_FAILED_TEXT = (
    "Unable to retrieve information from any selected sources. "
    "Please try again or select different sources."
)
NO_EVIDENCE_TEXT = "No relevant information found in the selected sources for your query."
EMPTY_SYNTHESIS_TEXT = "Unable to generate an answer from the retrieved information."

STATUS_SYNTHESIZED = "synthesized"
STATUS_ALL_FAILED = "all_stores_failed"
STATUS_NO_EVIDENCE = "no_evidence"


def validate_request(query: Optional[str], store_ids: Optional[Sequence[str]]) -> tuple[str, List[str]]:
    if not isinstance(query, str) or not query.strip():
        raise InvalidArgument("Query is required and must be a non-empty string")
    if not store_ids:
        raise InvalidArgument("At least one store must be selected")
    if any(not isinstance(s, str) or not s.strip() for s in store_ids):
        raise InvalidArgument("All store names must be valid strings")
    # Ids are opaque: padded ones are refused, never rewritten
    if any(s != s.strip() for s in store_ids):
        raise InvalidArgument("Store identifiers must not have leading or trailing whitespace")
    ids = list(store_ids)
    if len(set(ids)) != len(ids):
        raise InvalidArgument("Store identifiers must be unique within a request")
    return query.strip(), ids


# ==========================================================
# 🧠 Multi-store search: fan-out → aggregate → synthesize
# ==========================================================
class MultiStoreSearchService:
    """
    Retrieval-augmented search across several independently indexed stores.
      - Retrieval runs per store in parallel with its own deadline
      - Store failures are recorded, never fatal
      - Exactly one generation call, and none at all without evidence
      - Answer is split back into per-source sections with linked citations
    """

    def __init__(
        self,
        coordinator: RetrievalCoordinator,
        aggregator: ChunkAggregator,
        generator: IAnswerGenerator,
        default_timeout: float = 30.0,
    ):
        self.coordinator = coordinator
        self.aggregator = aggregator
        self.generator = generator
        self.default_timeout = default_timeout

    @staticmethod
    def _canned(text: str, status: str, aggregation: AggregationResult) -> SearchResult:
        return SearchResult(
            answer=text,
            status=status,
            aggregation=AggregationResult(chunks=[], outcomes=aggregation.outcomes),
            sections=SectionizedAnswer(unstructured=AnswerSection(label="", body=text, resolved=False)),
        )

    async def search(
        self,
        query: str,
        store_ids: Sequence[str],
        per_store_timeout: Optional[float] = None,
    ) -> SearchResult:
        """Validate → retrieve → aggregate → (synthesize) → sectionize."""
        query, ids = validate_request(query, store_ids)
        timeout = per_store_timeout if per_store_timeout is not None else self.default_timeout

        # Step 1: Resolve display names once, then fan out
        await self.aggregator.refresh_registry()
        stores = self.aggregator.store_refs(ids)
        aggregation = await self.coordinator.retrieve_all(query, stores, timeout)

        # Outcomes carry no order guarantee; re-associate by store id
        by_id = {o.store_id: o for o in aggregation.outcomes}
        aggregation = AggregationResult(chunks=aggregation.chunks, outcomes=[by_id[s] for s in ids])

        failed = [o for o in aggregation.outcomes if not o.success]
        logger.info(
            "📊 Retrieval settled | stores=%d | ok=%d | failed=%d | chunks=%d",
            len(ids), len(ids) - len(failed), len(failed), aggregation.total_chunks,
        )

        # Step 2: Short-circuit without evidence
        if not aggregation.chunks:
            if aggregation.all_failed:
                logger.warning("⚠️ All %d stores failed; skipping synthesis", len(ids))
                return self._canned(ALL_STORES_FAILED_TEXT, STATUS_ALL_FAILED, aggregation)
            logger.info("🫙 No usable evidence after filtering; skipping synthesis")
            return self._canned(NO_EVIDENCE_TEXT, STATUS_NO_EVIDENCE, aggregation)

        # Step 3: One generation call, no retrieval attached
        prompt = build_synthesis_prompt(query, aggregation)
        logger.info("🪶 Synthesizing final answer from %d chunks", aggregation.total_chunks)
        try:
            answer_text = await asyncio.to_thread(self.generator.generate, prompt)
        except SynthesisFailed:
            raise
        except Exception as e:
            logger.error("❌ Synthesis call failed: %s", e)
            raise SynthesisFailed(str(e) or type(e).__name__) from e

        if not answer_text or not answer_text.strip():
            logger.warning("⚠️ Model returned empty response — using fallback text.")
            answer_text = EMPTY_SYNTHESIS_TEXT

        # Step 4: Recover the structure
        answer_text = answer_text.strip()
        return SearchResult(
            answer=answer_text,
            status=STATUS_SYNTHESIZED,
            aggregation=aggregation,
            sections=sectionize(answer_text, aggregation),
        )
