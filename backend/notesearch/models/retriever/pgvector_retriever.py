# backend/notesearch/models/retriever/pgvector_retriever.py

from __future__ import annotations
from typing import List, Optional
import os, logging
from psycopg import sql
from psycopg_pool import AsyncConnectionPool
from notesearch.core.entities import RawChunk
from notesearch.core.ports.embeddings import IEmbeddingModel
from notesearch.core.ports.retriever import IStoreRetriever

logger = logging.getLogger("notesearch.retriever.pgvector")

# -----------------------------
# Tunables (env-overridable)
# -----------------------------
IVF_PROBES = int(os.getenv("RAG_IVF_PROBES", "50"))

# -----------------------------
# Helpers
# -----------------------------
def _to_vector_literal(vec: List[float]) -> str:
    return "[" + ",".join(f"{x:.7f}" for x in vec) + "]"

# -----------------------------
# Retriever
# -----------------------------
class PgVectorStoreRetriever(IStoreRetriever):
    """
    One store = the rows of the chunks table with a given store_id.

    Table layout:
        store_id text, document_name text, title text, text text, embedding vector(N)

    Uses the async pool so cancelling the coroutine (per-store timeout)
    cancels the running statement; statement_timeout bounds the server side
    as well when set.
    """

    def __init__(
        self,
        pool_provider,
        embedder: IEmbeddingModel,
        table: str = "store_chunks",
        top_k: int = 8,
        statement_timeout_ms: Optional[int] = None,
    ):
        # pool_provider: zero-arg callable returning the (lazily opened) pool
        self.pool_provider = pool_provider
        self.embedder = embedder
        self.table = table
        self.top_k = top_k
        self.statement_timeout_ms = statement_timeout_ms

    async def _prepare_session(self, cur) -> None:
        await cur.execute(sql.SQL("SET LOCAL ivfflat.probes = {}").format(sql.Literal(IVF_PROBES)))
        if self.statement_timeout_ms:
            await cur.execute(sql.SQL("SET LOCAL statement_timeout = {}").format(sql.Literal(int(self.statement_timeout_ms))))

    async def retrieve(self, store_id: str, query: str) -> List[RawChunk]:
        pool: AsyncConnectionPool | None = self.pool_provider()
        if pool is None:
            raise RuntimeError("Database pool not initialized")

        # 1️⃣ Embed
        qv = await self.embedder.embed(query)
        if not qv:
            raise ValueError("Query embedding is empty")

        # 2️⃣ Nearest chunks within this store only
        query_sql = sql.SQL("""
            SELECT document_name, title, text
            FROM {table}
            WHERE store_id = %s
            ORDER BY embedding <=> %s::vector
            LIMIT %s;
        """).format(table=sql.Identifier(self.table))

        # SET LOCAL keeps the settings off pooled connections once the transaction ends
        async with pool.connection() as conn:
            async with conn.transaction():
                async with conn.cursor() as cur:
                    await self._prepare_session(cur)
                    await cur.execute(query_sql, (store_id, _to_vector_literal(qv), self.top_k))
                    rows = await cur.fetchall()

        logger.debug("🔍 pgvector store=%s returned %d rows", store_id, len(rows))
        return [RawChunk(text=text or "", document_name=doc, title=title) for doc, title, text in rows]
