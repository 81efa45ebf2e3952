from __future__ import annotations
from abc import ABC, abstractmethod

class IAnswerGenerator(ABC):
    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Pure generation, no retrieval tool attached."""
        ...
