# backend/notesearch/models/embedding/ollama_embedding.py
from __future__ import annotations
from typing import List
import os, math, logging
import httpx

from notesearch.core.ports.embeddings import IEmbeddingModel

logger = logging.getLogger("notesearch.embedding.ollama")


def resolve_ollama_host(host: str | None = None) -> str:
    """Resolve Ollama host inside/outside Docker with env override."""
    env_host = host or os.getenv("OLLAMA_HOST")
    if env_host:
        return env_host.strip().rstrip("/")
    if os.path.exists("/.dockerenv"):
        return "http://ollama:11434"
    return "http://127.0.0.1:11434"


def _l2_normalize(vec: List[float]) -> List[float]:
    s = sum(x * x for x in vec)
    if s <= 0.0:
        return vec
    inv = 1.0 / math.sqrt(s)
    return [x * inv for x in vec]


class OllamaEmbedding(IEmbeddingModel):
    """
    Query embeddings from Ollama's /api/embed endpoint.

    Async so that a store retrieval abandoned on timeout also aborts its
    embedding request instead of letting it run to completion.
    """

    def __init__(self, host: str | None = None, model: str = "nomic-embed-text", timeout: float = 60.0,
                 client: httpx.AsyncClient | None = None):
        self.host = resolve_ollama_host(host)
        self.model = model.strip()
        if ":" not in self.model:
            self.model += ":latest"
        self.client = client or httpx.AsyncClient(base_url=self.host, timeout=timeout)

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        clean = [(t or "").strip() for t in texts]
        out: List[List[float]] = [[] for _ in texts]
        idxs = [i for i, t in enumerate(clean) if t]
        if not idxs:
            return out

        r = await self.client.post("/api/embed", json={"model": self.model, "input": [clean[i] for i in idxs]})
        r.raise_for_status()
        embs = r.json().get("embeddings") or []
        if len(embs) != len(idxs):
            raise ValueError(f"Embedding batch mismatch: {len(embs)} vs {len(idxs)}")
        for slot, vec in zip(idxs, embs):
            if vec and all(isinstance(x, (int, float)) for x in vec):
                out[slot] = _l2_normalize([float(x) for x in vec])
        return out

    async def embed(self, text: str) -> List[float]:
        return (await self.embed_batch([text]))[0]

    async def aclose(self) -> None:
        await self.client.aclose()
