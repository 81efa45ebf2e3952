from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional

@dataclass(frozen=True)
class StoreRef:
    id: str
    display_name: str

@dataclass(frozen=True)
class RawChunk:
    """Fragment as returned by a store retriever, before filtering/tagging."""
    text: str
    document_name: Optional[str] = None
    title: Optional[str] = None

@dataclass(frozen=True)
class Chunk:
    store_id: str
    store_display_name: str
    text: str
    document_name: Optional[str] = None
    title: Optional[str] = None

    @property
    def label(self) -> str:
        return self.document_name or self.title or "Unknown document"

@dataclass(frozen=True)
class StoreOutcome:
    store_id: str
    store_display_name: str
    success: bool
    chunk_count: int = 0
    error: Optional[str] = None
    timed_out: bool = False

@dataclass(frozen=True)
class StoreRetrieval:
    """Settled result of one store's retrieval (success, error or timeout)."""
    store: StoreRef
    chunks: List[RawChunk] = field(default_factory=list)
    error: Optional[str] = None
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.error is None

@dataclass(frozen=True)
class AggregationResult:
    chunks: List[Chunk]
    outcomes: List[StoreOutcome]

    @property
    def total_chunks(self) -> int:
        return len(self.chunks)

    @property
    def all_failed(self) -> bool:
        return bool(self.outcomes) and all(not o.success for o in self.outcomes)

    def chunks_for(self, store_id: str) -> List[Chunk]:
        return [c for c in self.chunks if c.store_id == store_id]

@dataclass(frozen=True)
class LinkedCitation:
    marker: str       # literal "[Document: ...]" text
    label: str
    section: str      # label of the section the marker was found in
    chunk: Optional[Chunk] = None

    @property
    def resolved(self) -> bool:
        return self.chunk is not None

@dataclass(frozen=True)
class AnswerSection:
    label: str
    body: str
    store_id: Optional[str] = None
    resolved: bool = True

@dataclass(frozen=True)
class SectionizedAnswer:
    overall_summary: Optional[AnswerSection] = None
    per_source: List[AnswerSection] = field(default_factory=list)
    citations: List[LinkedCitation] = field(default_factory=list)
    missing_sources: List[str] = field(default_factory=list)
    # Set instead of the fields above when the heading grammar is absent.
    unstructured: Optional[AnswerSection] = None

    @property
    def structured(self) -> bool:
        return self.unstructured is None

@dataclass(frozen=True)
class SearchResult:
    answer: str
    status: str  # "synthesized" | "all_stores_failed" | "no_evidence"
    aggregation: AggregationResult
    sections: SectionizedAnswer
