from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List
from notesearch.core.entities import RawChunk

class IStoreRetriever(ABC):
    @abstractmethod
    async def retrieve(self, store_id: str, query: str) -> List[RawChunk]:
        """Return raw evidence fragments for one store; raise on any failure."""
        ...
