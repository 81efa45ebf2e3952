from __future__ import annotations
from typing import List, Tuple
import numpy as np
from notesearch.core.ports.index import IVectorIndex

class NpCosineIndex(IVectorIndex):
    """
    Cosine-similarity index over one store's chunk embeddings.
    Rows are L2-normalized at build time.
    """
    def __init__(self):
        self.mat: np.ndarray | None = None

    def build(self, embeddings: List[List[float]]) -> None:
        if not embeddings:
            self.mat = None
            return
        mat = np.asarray(embeddings, dtype=np.float32)
        n = np.linalg.norm(mat, axis=1, keepdims=True)
        n[n == 0] = 1.0
        self.mat = mat / n

    def search(self, query_vec: List[float], k: int) -> List[Tuple[int, float]]:
        if self.mat is None or k <= 0:
            return []
        q = np.asarray(query_vec, dtype=np.float32)
        qn = q / (np.linalg.norm(q) + 1e-9)
        sims = self.mat @ qn
        if k >= sims.shape[0]:
            idx = np.argsort(-sims, kind="stable")
        else:
            idx = np.argpartition(-sims, k)[:k]
            idx = idx[np.argsort(-sims[idx], kind="stable")]
        return [(int(i), float(sims[i])) for i in idx[:k]]

    def __len__(self) -> int:
        return 0 if self.mat is None else int(self.mat.shape[0])
