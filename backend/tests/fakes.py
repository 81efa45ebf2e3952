"""Shared fakes for the retrieval / generation / registry ports."""

import asyncio
from typing import Dict, List, Optional, Union

from notesearch.core.entities import RawChunk, StoreRef
from notesearch.core.ports.generator import IAnswerGenerator
from notesearch.core.ports.registry import IStoreRegistry
from notesearch.core.ports.retriever import IStoreRetriever
from notesearch.core.services.aggregator import ChunkAggregator
from notesearch.core.services.coordinator import RetrievalCoordinator
from notesearch.core.services.search_service import MultiStoreSearchService

class Slow:
    """Store behaviour: answer with `chunks` after `delay` seconds."""

    def __init__(self, delay: float, chunks: Optional[List[RawChunk]] = None):
        self.delay = delay
        self.chunks = chunks or []

Behaviour = Union[List[RawChunk], Exception, Slow]

class FakeRetriever(IStoreRetriever):
    def __init__(self, behaviours: Dict[str, Behaviour]):
        self.behaviours = behaviours
        self.calls: List[str] = []
        self.cancelled: List[str] = []

    async def retrieve(self, store_id: str, query: str) -> List[RawChunk]:
        self.calls.append(store_id)
        b = self.behaviours[store_id]
        if isinstance(b, Exception):
            raise b
        if isinstance(b, Slow):
            try:
                await asyncio.sleep(b.delay)
            except asyncio.CancelledError:
                self.cancelled.append(store_id)
                raise
            return list(b.chunks)
        return list(b)

class FakeGenerator(IAnswerGenerator):
    def __init__(self, reply: str = "", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply

class FakeRegistry(IStoreRegistry):
    def __init__(self, names: Dict[str, str]):
        self.names = names
        self.refreshes = 0

    async def refresh(self) -> None:
        self.refreshes += 1

    def resolve_display_name(self, store_id: str) -> Optional[str]:
        return self.names.get(store_id)

    def list_stores(self) -> List[StoreRef]:
        return [StoreRef(id=k, display_name=v) for k, v in self.names.items()]

def chunk(text: str, document_name: Optional[str] = None, title: Optional[str] = None) -> RawChunk:
    return RawChunk(text=text, document_name=document_name, title=title)

def make_service(retriever, generator, registry=None, timeout: float = 1.0) -> MultiStoreSearchService:
    aggregator = ChunkAggregator(registry=registry, name_prefix="Project_")
    coordinator = RetrievalCoordinator(retriever=retriever, aggregator=aggregator)
    return MultiStoreSearchService(coordinator, aggregator, generator, default_timeout=timeout)

