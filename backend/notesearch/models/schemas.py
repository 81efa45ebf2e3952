from __future__ import annotations
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from notesearch.core.entities import AnswerSection, Chunk, LinkedCitation, SearchResult, StoreOutcome


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class MultiStoreSearchRequest(_CamelModel):
    # Emptiness is checked by the service so it surfaces as a 400, not a 422
    query: Optional[str] = Field(None, description="User question")
    store_ids: Optional[List[Optional[str]]] = Field(None, alias="storeIds")
    per_store_timeout_ms: Optional[int] = Field(None, alias="perStoreTimeoutMs", gt=0, le=600_000)


class StoreStat(_CamelModel):
    store_id: str = Field(alias="storeId")
    store_display_name: str = Field(alias="storeDisplayName")
    success: bool
    chunk_count: int = Field(alias="chunkCount")
    error: Optional[str] = None
    timed_out: bool = Field(False, alias="timedOut")

    @classmethod
    def of(cls, o: StoreOutcome) -> "StoreStat":
        return cls(
            store_id=o.store_id, store_display_name=o.store_display_name, success=o.success,
            chunk_count=o.chunk_count, error=o.error, timed_out=o.timed_out,
        )


class AggregatedChunk(_CamelModel):
    store_id: str = Field(alias="storeId")
    store_display_name: str = Field(alias="storeDisplayName")
    text: str
    document_name: Optional[str] = Field(None, alias="documentName")
    title: Optional[str] = None

    @classmethod
    def of(cls, c: Chunk) -> "AggregatedChunk":
        return cls(
            store_id=c.store_id, store_display_name=c.store_display_name, text=c.text,
            document_name=c.document_name, title=c.title,
        )


class Section(_CamelModel):
    label: str
    body: str
    store_id: Optional[str] = Field(None, alias="storeId")
    resolved: bool = True

    @classmethod
    def of(cls, s: AnswerSection) -> "Section":
        return cls(label=s.label, body=s.body, store_id=s.store_id, resolved=s.resolved)


class Citation(_CamelModel):
    marker: str
    label: str
    section: str
    resolved: bool
    chunk_index: Optional[int] = Field(None, alias="chunkIndex", description="Index into aggregatedChunks")


class AnswerSections(_CamelModel):
    structured: bool
    overall_summary: Optional[Section] = Field(None, alias="overallSummary")
    per_source: List[Section] = Field(default_factory=list, alias="perSource")
    unstructured: Optional[Section] = None
    missing_sources: List[str] = Field(default_factory=list, alias="missingSources")


class MultiStoreSearchResponse(_CamelModel):
    answer: str
    status: str
    store_stats: List[StoreStat] = Field(alias="storeStats")
    aggregated_chunks: List[AggregatedChunk] = Field(alias="aggregatedChunks")
    total_chunks: int = Field(alias="totalChunks")
    sections: AnswerSections
    citations: List[Citation] = Field(default_factory=list)

    @classmethod
    def of(cls, result: SearchResult) -> "MultiStoreSearchResponse":
        chunks = result.aggregation.chunks
        # Chunk is a frozen dataclass (hashable by value); identity keeps duplicates apart
        positions = {id(c): i for i, c in enumerate(chunks)}

        def _citation(c: LinkedCitation) -> Citation:
            return Citation(
                marker=c.marker, label=c.label, section=c.section, resolved=c.resolved,
                chunk_index=positions.get(id(c.chunk)) if c.chunk is not None else None,
            )

        s = result.sections
        return cls(
            answer=result.answer,
            status=result.status,
            store_stats=[StoreStat.of(o) for o in result.aggregation.outcomes],
            aggregated_chunks=[AggregatedChunk.of(c) for c in chunks],
            total_chunks=len(chunks),
            sections=AnswerSections(
                structured=s.structured,
                overall_summary=Section.of(s.overall_summary) if s.overall_summary else None,
                per_source=[Section.of(p) for p in s.per_source],
                unstructured=Section.of(s.unstructured) if s.unstructured else None,
                missing_sources=s.missing_sources,
            ),
            citations=[_citation(c) for c in s.citations],
        )


class StoreInfo(_CamelModel):
    id: str
    display_name: str = Field(alias="displayName")


class StoreListResponse(_CamelModel):
    stores: List[StoreInfo]
    total: int
