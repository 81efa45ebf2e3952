# backend/notesearch/models/registry/pg_registry.py
from __future__ import annotations
from typing import Dict, List, Optional
import logging
from psycopg import sql
from notesearch.core.entities import StoreRef
from notesearch.core.ports.registry import IStoreRegistry

logger = logging.getLogger("notesearch.registry.pg")


class PgStoreRegistry(IStoreRegistry):
    """
    Store names from the stores table (id text primary key, display_name text).
    Reads are served from the last snapshot; refresh() reloads it.
    """

    def __init__(self, pool_provider, table: str = "stores"):
        self.pool_provider = pool_provider
        self.table = table
        self.names: Dict[str, str] = {}

    async def refresh(self) -> None:
        pool = self.pool_provider()
        if pool is None:
            raise RuntimeError("Database pool not initialized")
        query = sql.SQL("SELECT id, display_name FROM {table} ORDER BY id;").format(
            table=sql.Identifier(self.table)
        )
        async with pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query)
                rows = await cur.fetchall()
        self.names = {sid: name for sid, name in rows if sid}
        logger.debug("🗂️ Store registry refreshed: %d stores", len(self.names))

    def resolve_display_name(self, store_id: str) -> Optional[str]:
        return self.names.get(store_id)

    def list_stores(self) -> List[StoreRef]:
        return [StoreRef(id=k, display_name=v or k) for k, v in self.names.items()]
