from __future__ import annotations
from collections import OrderedDict
from typing import Dict, List, Optional
import json
import logging
from pathlib import Path

from notesearch.core.entities import RawChunk, StoreRef
from notesearch.core.ports.embeddings import IEmbeddingModel
from notesearch.core.ports.registry import IStoreRegistry
from notesearch.core.ports.retriever import IStoreRetriever
from notesearch.models.index.np_index import NpCosineIndex

logger = logging.getLogger("notesearch.store.local")

def _pick(obj: dict, keys: list[str]) -> str:
    for k in keys:
        v = obj.get(k)
        if isinstance(v, str) and v.strip():
            return v.strip()
    return ""

def _map_record(obj: dict) -> tuple[str, str, RawChunk] | None:
    store_id = _pick(obj, ["store_id", "storeId", "store"])
    text = obj.get("text") if isinstance(obj.get("text"), str) else _pick(obj, ["content", "body"])
    if not store_id or text is None:
        return None
    display = _pick(obj, ["store_display_name", "storeDisplayName", "project"])
    chunk = RawChunk(
        text=text,
        document_name=_pick(obj, ["document_name", "documentName"]) or None,
        title=_pick(obj, ["title", "name"]) or None,
    )
    return store_id, display, chunk

def load_corpus(path: str) -> List[tuple[str, str, RawChunk]]:
    """Read a JSONL (or JSON array) corpus of store-tagged chunks."""
    p = Path(path)
    records: List[dict] = []
    with p.open("r", encoding="utf-8") as f:
        if p.suffix.lower() == ".jsonl":
            for i, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(json.loads(line))
                except json.JSONDecodeError as e:
                    logger.warning("⚠️ Bad JSON on line %d of %s: %s", i, path, e)
        else:
            data = json.load(f)
            if isinstance(data, list):
                records = [o for o in data if isinstance(o, dict)]
    out = []
    for obj in records:
        mapped = _map_record(obj)
        if mapped:
            out.append(mapped)
    return out


class StaticStoreRegistry(IStoreRegistry):
    """Read-only id → display name map."""

    def __init__(self, names: Dict[str, str] | None = None):
        self.names: Dict[str, str] = dict(names or {})

    def resolve_display_name(self, store_id: str) -> Optional[str]:
        return self.names.get(store_id)

    def list_stores(self) -> List[StoreRef]:
        return [StoreRef(id=k, display_name=v or k) for k, v in self.names.items()]


class LocalStoreRetriever(IStoreRetriever):
    """
    Independently indexed in-memory stores: one cosine index per store_id.
    Unknown store ids raise, which the coordinator records as a failure.
    """

    def __init__(self, embedder: IEmbeddingModel, top_k: int = 8) -> None:
        self.embedder = embedder
        self.top_k = top_k
        self.chunks: Dict[str, List[RawChunk]] = OrderedDict()
        self.indexes: Dict[str, NpCosineIndex] = {}
        self.display_names: Dict[str, str] = {}

    async def add_store(self, store_id: str, chunks: List[RawChunk], display_name: str = "") -> None:
        embeddings = await self.embedder.embed_batch([c.text for c in chunks])
        # Blank texts come back without a vector; a zero row keeps them
        # retrievable (and filtered later) without breaking the matrix shape.
        dim = next((len(e) for e in embeddings if e), 0)
        embeddings = [e if e else [0.0] * dim for e in embeddings] if dim else []
        index = NpCosineIndex()
        index.build(embeddings)
        self.chunks[store_id] = list(chunks)
        self.indexes[store_id] = index
        if display_name:
            self.display_names[store_id] = display_name

    async def load(self, path: str) -> Dict[str, int]:
        grouped: Dict[str, List[RawChunk]] = OrderedDict()
        names: Dict[str, str] = {}
        for store_id, display, chunk in load_corpus(path):
            grouped.setdefault(store_id, []).append(chunk)
            if display:
                names.setdefault(store_id, display)
        for store_id, chunks in grouped.items():
            await self.add_store(store_id, chunks, names.get(store_id, ""))
        counts = {sid: len(c) for sid, c in grouped.items()}
        logger.info("📂 Loaded %d local stores from %s: %s", len(counts), path, counts)
        return counts

    def registry(self) -> StaticStoreRegistry:
        return StaticStoreRegistry({sid: self.display_names.get(sid, "") for sid in self.indexes})

    async def retrieve(self, store_id: str, query: str) -> List[RawChunk]:
        index = self.indexes.get(store_id)
        if index is None:
            raise LookupError(f"Unknown store: {store_id}")
        qv = await self.embedder.embed(query)
        chunks = self.chunks[store_id]
        return [chunks[i] for i, _score in index.search(qv, self.top_k)]
