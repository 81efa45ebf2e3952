from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional
from notesearch.core.entities import StoreRef

class IStoreRegistry(ABC):
    @abstractmethod
    def resolve_display_name(self, store_id: str) -> Optional[str]: ...
    @abstractmethod
    def list_stores(self) -> List[StoreRef]: ...

    async def refresh(self) -> None:
        """Reload names from the backing source; no-op for static registries."""
        return None
