from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
import logging

from notesearch.core.entities import (
    AggregationResult,
    AnswerSection,
    Chunk,
    LinkedCitation,
    SectionizedAnswer,
)
from notesearch.core.services.answer_grammar import (
    CITATION_RE,
    OVERALL_SUMMARY,
    PER_SOURCE_DETAILS,
    SECTION_HEADING_RE,
    SOURCE_HEADING_RE,
    heading_name,
)

logger = logging.getLogger("notesearch.sectionizer")


@dataclass(frozen=True)
class _Heading:
    level: int   # 2 for "##", 3 for "###"
    name: str
    start: int   # offset of the heading line
    end: int     # offset just past the heading line


def _headings(text: str) -> List[_Heading]:
    found = [
        _Heading(2, heading_name(m.group("name")), m.start(), m.end())
        for m in SECTION_HEADING_RE.finditer(text)
    ] + [
        _Heading(3, heading_name(m.group("name")), m.start(), m.end())
        for m in SOURCE_HEADING_RE.finditer(text)
    ]
    found.sort(key=lambda h: h.start)
    return found


def _is(heading: _Heading, level: int, name: str) -> bool:
    return heading.level == level and heading.name.casefold() == name.casefold()


def _span_end(text: str, headings: List[_Heading], i: int) -> int:
    """Offset where the block opened by headings[i] ends (next heading or end of text)."""
    return headings[i + 1].start if i + 1 < len(headings) else len(text)


# ----------------------------------------------------------
# Citation linking
# ----------------------------------------------------------
def resolve_citation(label: str, chunks: List[Chunk]) -> Optional[Chunk]:
    """documentName first, then title; first match wins."""
    for c in chunks:
        if c.document_name and c.document_name == label:
            return c
    for c in chunks:
        if c.title and c.title == label:
            return c
    return None


def link_citations(section: AnswerSection, chunks: List[Chunk]) -> List[LinkedCitation]:
    out: List[LinkedCitation] = []
    for m in CITATION_RE.finditer(section.body):
        label = m.group("label").strip()
        out.append(LinkedCitation(
            marker=m.group(0),
            label=label,
            section=section.label,
            chunk=resolve_citation(label, chunks),
        ))
    return out


# ----------------------------------------------------------
# Sectionizer
# ----------------------------------------------------------
def _unstructured(text: str, aggregation: AggregationResult) -> SectionizedAnswer:
    section = AnswerSection(label="", body=text, resolved=False)
    return SectionizedAnswer(
        unstructured=section,
        citations=link_citations(section, aggregation.chunks),
    )


def _included_stores(aggregation: AggregationResult) -> List[Tuple[str, str]]:
    """(store_id, display_name) of the stores that were given to the generator."""
    return [
        (o.store_id, o.store_display_name)
        for o in aggregation.outcomes
        if o.success and o.chunk_count > 0
    ]


def _link_spans(text: str, spans: List[Tuple[int, int, str]], chunks: List[Chunk]) -> List[LinkedCitation]:
    """Every marker in the answer, attributed to the section whose span holds it ("" if none)."""
    out: List[LinkedCitation] = []
    for m in CITATION_RE.finditer(text):
        label = m.group("label").strip()
        section = next((name for start, end, name in spans if start <= m.start() < end), "")
        out.append(LinkedCitation(
            marker=m.group(0),
            label=label,
            section=section,
            chunk=resolve_citation(label, chunks),
        ))
    return out


def _structured(text: str, aggregation: AggregationResult) -> Optional[SectionizedAnswer]:
    headings = _headings(text)
    overall_idx = next((i for i, h in enumerate(headings) if _is(h, 2, OVERALL_SUMMARY)), None)
    if overall_idx is None:
        return None

    by_name: Dict[str, str] = {}
    for o in aggregation.outcomes:
        by_name.setdefault(o.store_display_name, o.store_id)

    details_idx = next(
        (i for i, h in enumerate(headings) if i > overall_idx and _is(h, 2, PER_SOURCE_DETAILS)),
        None,
    )

    # The summary runs to the next "##" heading, so its own "###" sub-headings
    # stay inside it. Without a details heading, a "###" naming a store also
    # ends it.
    stop = len(headings)
    for i in range(overall_idx + 1, len(headings)):
        h = headings[i]
        if h.level == 2 or (details_idx is None and h.name in by_name):
            stop = i
            break
    summary_start = headings[overall_idx].end
    summary_end = headings[stop].start if stop < len(headings) else len(text)
    overall = AnswerSection(label=OVERALL_SUMMARY, body=text[summary_start:summary_end].strip())
    spans = [(summary_start, summary_end, OVERALL_SUMMARY)]

    # Every later block becomes a section: "###" blocks are matched to stores,
    # any other "##" block is kept as unresolved rather than dropped.
    per_source: List[AnswerSection] = []
    for i in range(stop, len(headings)):
        if i == details_idx:
            continue
        h = headings[i]
        store_id = by_name.get(h.name) if h.level == 3 else None
        if store_id is None:
            logger.warning("⚠️ Section '%s' does not match any store; kept as unresolved", h.name)
        end = _span_end(text, headings, i)
        per_source.append(AnswerSection(
            label=h.name,
            body=text[h.end:end].strip(),
            store_id=store_id,
            resolved=store_id is not None,
        ))
        spans.append((h.end, end, h.name))

    seen = {s.store_id for s in per_source if s.resolved}
    missing = [name for sid, name in _included_stores(aggregation) if sid not in seen]
    if missing:
        logger.warning("⚠️ Synthesis omitted sections for: %s", missing)

    return SectionizedAnswer(
        overall_summary=overall,
        per_source=per_source,
        citations=_link_spans(text, spans, aggregation.chunks),
        missing_sources=missing,
    )


def sectionize(answer: str, aggregation: AggregationResult) -> SectionizedAnswer:
    """
    Split a synthesized answer into the overall summary and one section per
    source, and link every ``[Document: ...]`` marker to an aggregated chunk.

    Total over its input: text without an "## Overall Summary" heading comes
    back verbatim as a single unlabelled section; nothing here raises.
    """
    text = answer or ""
    try:
        result = _structured(text, aggregation)
    except Exception:
        logger.exception("❌ Sectionizer failed; returning raw answer")
        result = None

    if result is None:
        logger.info("🧩 Answer has no '%s' heading; returning it unstructured", OVERALL_SUMMARY)
        return _unstructured(text, aggregation)

    resolved = sum(1 for c in result.citations if c.resolved)
    logger.info(
        "🧩 Sectionized answer | sources=%d | missing=%d | citations=%d/%d resolved",
        len(result.per_source), len(result.missing_sources), resolved, len(result.citations),
    )
    return result
