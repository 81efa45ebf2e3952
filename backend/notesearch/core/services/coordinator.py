from __future__ import annotations
from typing import List, Sequence
import asyncio
import logging
import time

from notesearch.core.entities import StoreRef, StoreRetrieval, AggregationResult
from notesearch.core.errors import InvalidArgument, StoreRetrievalFailed, StoreRetrievalTimeout
from notesearch.core.ports.retriever import IStoreRetriever
from notesearch.core.services.aggregator import ChunkAggregator

logger = logging.getLogger("notesearch.coordinator")


class RetrievalCoordinator:
    """
    Fans one query out to N stores and joins on all of them.

    Every store gets its own task and its own deadline, so a slow store only
    ever costs its own timeout. When the deadline elapses the task is
    cancelled (not just ignored); adapters built on async I/O abort their
    in-flight request on cancellation.
    """

    def __init__(self, retriever: IStoreRetriever, aggregator: ChunkAggregator):
        self.retriever = retriever
        self.aggregator = aggregator

    async def _call(self, store: StoreRef, query: str):
        try:
            return await self.retriever.retrieve(store.id, query)
        except (asyncio.TimeoutError, TimeoutError) as e:
            # A timeout raised by the store's own I/O is a failure; only the
            # wait_for deadline below counts as timed_out.
            raise StoreRetrievalFailed(store.id, str(e) or type(e).__name__) from e

    async def _retrieve_one(self, store: StoreRef, query: str, timeout: float) -> StoreRetrieval:
        started = time.perf_counter()
        try:
            chunks = await asyncio.wait_for(self._call(store, query), timeout=timeout)
        except asyncio.TimeoutError:
            err = StoreRetrievalTimeout(store.id, timeout)
            logger.warning("⏱️ Store %s (%s) timed out: %s", store.display_name, store.id, err)
            return StoreRetrieval(store=store, error=str(err), timed_out=True)
        except Exception as e:
            err = StoreRetrievalFailed(store.id, str(e) or type(e).__name__)
            logger.warning("⚠️ Store %s (%s) retrieval failed: %s", store.display_name, store.id, err)
            return StoreRetrieval(store=store, error=str(err))

        elapsed = (time.perf_counter() - started) * 1000
        logger.debug("🔍 Store %s returned %d raw chunks in %.0fms", store.display_name, len(chunks or []), elapsed)
        return StoreRetrieval(store=store, chunks=list(chunks or []))

    async def gather(self, query: str, stores: Sequence[StoreRef], per_store_timeout: float) -> List[StoreRetrieval]:
        """Settle every store (success, error or timeout); one result per store."""
        if not stores:
            raise InvalidArgument("At least one store must be selected")
        if per_store_timeout <= 0:
            raise InvalidArgument("Per-store timeout must be positive")

        logger.info("🚀 Starting parallel retrieval from %d stores (timeout=%.0fms)", len(stores), per_store_timeout * 1000)
        tasks = [
            asyncio.create_task(self._retrieve_one(store, query, per_store_timeout), name=f"retrieve:{store.id}")
            for store in stores
        ]
        # _retrieve_one never raises except on cancellation of the whole request
        return list(await asyncio.gather(*tasks))

    async def retrieve_all(self, query: str, stores: Sequence[StoreRef], per_store_timeout: float) -> AggregationResult:
        results = await self.gather(query, stores, per_store_timeout)
        return self.aggregator.aggregate(results)
