from __future__ import annotations
from dataclasses import dataclass
from typing import List
import logging

from notesearch.core.entities import AggregationResult, Chunk
from notesearch.core.services.answer_grammar import (
    OVERALL_SUMMARY,
    PER_SOURCE_DETAILS,
    SECTION_PREFIX,
    SOURCE_PREFIX,
    NO_INFO_IN_SOURCE,
    document_marker,
)

logger = logging.getLogger("notesearch.prompt")

SYS_PROMPT = "You are an AI assistant helping users search across multiple independent knowledge sources."


@dataclass(frozen=True)
class SourceContext:
    store_id: str
    display_name: str
    chunk_count: int
    context: str


def _render_chunk(chunk: Chunk) -> str:
    return f"{document_marker(chunk.label)}\n{chunk.text}"


def source_contexts(aggregation: AggregationResult) -> List[SourceContext]:
    """
    One block per store that contributed at least one chunk, in outcome order.
    Stores with success=True but chunk_count=0 are left out of the prompt.
    """
    out: List[SourceContext] = []
    for outcome in aggregation.outcomes:
        if not outcome.success or outcome.chunk_count <= 0:
            continue
        chunks = aggregation.chunks_for(outcome.store_id)
        out.append(SourceContext(
            store_id=outcome.store_id,
            display_name=outcome.store_display_name,
            chunk_count=len(chunks),
            context="\n\n".join(_render_chunk(c) for c in chunks),
        ))
    return out


def build_synthesis_prompt(query: str, aggregation: AggregationResult) -> str:
    sources = source_contexts(aggregation)

    evidence = "\n\n".join(
        f"=== SOURCE: {s.display_name} ({s.chunk_count} chunks) ===\n{s.context}\n"
        for s in sources
    )
    layout = "\n\n".join(
        f"{SOURCE_PREFIX}{s.display_name}\n"
        f"[Provide detailed information based ONLY on {s.display_name}'s retrieved content. "
        f"DO NOT mix information from other sources here. If no relevant information exists "
        f"in this source, state \"{NO_INFO_IN_SOURCE}\"]"
        for s in sources
    )

    prompt = f"""{SYS_PROMPT}

USER QUESTION:
{query}

RETRIEVED INFORMATION FROM EACH SOURCE:

{evidence}

CRITICAL INSTRUCTIONS:
1. You MUST provide a response in the following EXACT format:

{SECTION_PREFIX}{OVERALL_SUMMARY}
[Provide a comprehensive summary synthesizing information from ALL sources. Include cross-source insights and connections.]

{SECTION_PREFIX}{PER_SOURCE_DETAILS}

{layout}

2. In the "{OVERALL_SUMMARY}" section:
   - Synthesize insights from all available sources
   - Identify patterns, connections, or conflicts across sources
   - Provide a holistic view of the answer

3. In each "{PER_SOURCE_DETAILS}" section:
   - Use ONLY the information from that specific source
   - Do NOT include information from other sources
   - Be explicit if that source lacks relevant information
   - Use the exact source name shown above as the heading

4. When you cite a document, copy its marker exactly as given, e.g. {document_marker("<label>")}

5. Maintain the markdown format EXACTLY as shown above

Generate your response now:"""

    logger.debug("🧾 Synthesis prompt built | sources=%d | chars=%d", len(sources), len(prompt))
    return prompt
