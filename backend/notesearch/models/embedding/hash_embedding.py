from __future__ import annotations
from typing import List
import math, hashlib, re, struct
from notesearch.core.ports.embeddings import IEmbeddingModel

_WORD = re.compile(r"\w+", re.U)


class HashEmbedding(IEmbeddingModel):
    """
    Deterministic offline embedding (feature hashing over word tokens).
    Texts sharing words land close together, which is enough for local
    stores and tests; it is not semantic.
    """

    def __init__(self, dim: int = 768):
        self.dim = dim

    def _slot(self, token: str) -> tuple[int, float]:
        h = hashlib.blake2b(token.encode("utf-8"), digest_size=16).digest()
        x = struct.unpack("<Q", h[:8])[0]
        sign = 1.0 if h[8] & 1 else -1.0
        return x % self.dim, sign

    def _hash_vec(self, text: str) -> List[float]:
        vec = [0.0] * self.dim
        for tok in _WORD.findall((text or "").lower()):
            i, sign = self._slot(tok)
            vec[i] += sign
        norm = math.sqrt(sum(v * v for v in vec)) or 1.0
        return [v / norm for v in vec]

    async def embed(self, text: str) -> List[float]:
        return self._hash_vec(text)

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        return [self._hash_vec(t) for t in texts]
