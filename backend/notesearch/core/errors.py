from __future__ import annotations


class NoteSearchError(Exception):
    """Base class for pipeline errors."""


class InvalidArgument(NoteSearchError):
    """Empty query, empty/invalid store list; rejected before any fan-out."""


class StoreRetrievalFailed(NoteSearchError):
    """One store's retrieval errored. Always recovered into a StoreOutcome."""

    def __init__(self, store_id: str, message: str):
        super().__init__(message)
        self.store_id = store_id


class StoreRetrievalTimeout(StoreRetrievalFailed):
    def __init__(self, store_id: str, timeout: float):
        super().__init__(store_id, f"Timeout after {timeout * 1000:.0f}ms")
        self.timeout = timeout


class SynthesisFailed(NoteSearchError):
    """The single generation call failed; fatal to the request."""
