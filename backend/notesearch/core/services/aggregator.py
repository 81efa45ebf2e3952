from __future__ import annotations
from typing import Iterable, List, Optional, Sequence
import logging

from notesearch.core.entities import (
    AggregationResult,
    Chunk,
    RawChunk,
    StoreOutcome,
    StoreRef,
    StoreRetrieval,
)
from notesearch.core.ports.registry import IStoreRegistry

logger = logging.getLogger("notesearch.aggregator")

DEFAULT_DENYLIST = (".project-metadata", ".metadata")


def derive_display_name(store_id: str, name_prefix: str = "") -> str:
    """
    Deterministic fallback when the registry has no name for a store:
    last path segment, with a well-known prefix stripped.

        derive_display_name("fileSearchStores/Project_acme-1a2b", "Project_")
        -> "acme-1a2b"
    """
    name = store_id.rstrip("/").split("/")[-1]
    if name_prefix and name.startswith(name_prefix):
        name = name[len(name_prefix):]
    return name or store_id


class ChunkAggregator:
    """Filters, tags and counts per-store retrieval results."""

    def __init__(
        self,
        registry: IStoreRegistry | None = None,
        denylist: Iterable[str] = DEFAULT_DENYLIST,
        name_prefix: str = "",
    ):
        self.registry = registry
        self.denylist = tuple(s for s in denylist if s)
        self.name_prefix = name_prefix

    # ------------------------------------------------------
    # Store display names
    # ------------------------------------------------------
    def display_name(self, store_id: str) -> str:
        name: Optional[str] = None
        if self.registry is not None:
            try:
                name = self.registry.resolve_display_name(store_id)
            except Exception as e:
                logger.warning("⚠️ Store registry lookup failed for %s: %s", store_id, e)
        if name and name.strip():
            return name.strip()
        return derive_display_name(store_id, self.name_prefix)

    async def refresh_registry(self) -> None:
        if self.registry is None:
            return
        try:
            await self.registry.refresh()
        except Exception as e:
            logger.warning("⚠️ Store registry refresh failed; using last known names: %s", e)

    def store_refs(self, store_ids: Sequence[str]) -> List[StoreRef]:
        return [StoreRef(id=sid, display_name=self.display_name(sid)) for sid in store_ids]

    # ------------------------------------------------------
    # Filtering
    # ------------------------------------------------------
    def is_bookkeeping(self, raw: RawChunk) -> bool:
        name = raw.document_name or ""
        return any(marker in name for marker in self.denylist)

    def keep(self, raw: RawChunk) -> bool:
        if not raw.text or not raw.text.strip():
            return False
        return not self.is_bookkeeping(raw)

    # ------------------------------------------------------
    # Aggregate
    # ------------------------------------------------------
    def aggregate(self, results: Sequence[StoreRetrieval]) -> AggregationResult:
        chunks: List[Chunk] = []
        outcomes: List[StoreOutcome] = []

        for r in results:
            store = r.store
            if not r.success:
                outcomes.append(StoreOutcome(
                    store_id=store.id,
                    store_display_name=store.display_name,
                    success=False,
                    chunk_count=0,
                    error=r.error or "Unknown error",
                    timed_out=r.timed_out,
                ))
                continue

            valid = [c for c in r.chunks if self.keep(c)]
            dropped = len(r.chunks) - len(valid)
            for c in valid:
                chunks.append(Chunk(
                    store_id=store.id,
                    store_display_name=store.display_name,
                    text=c.text,
                    document_name=c.document_name,
                    title=c.title,
                ))
            outcomes.append(StoreOutcome(
                store_id=store.id,
                store_display_name=store.display_name,
                success=True,
                chunk_count=len(valid),
            ))
            logger.info("📚 Store %s: %d chunks kept (%d filtered)", store.display_name, len(valid), dropped)

        return AggregationResult(chunks=chunks, outcomes=outcomes)
