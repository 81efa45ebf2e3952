"""Tests for ChunkAggregator: filtering, provenance, counts and display names."""

from unittest.mock import Mock

import pytest

from fakes import chunk
from notesearch.core.entities import StoreRef, StoreRetrieval
from notesearch.core.services.aggregator import ChunkAggregator, derive_display_name


def _ok(store_id, *chunks, name=None):
    return StoreRetrieval(store=StoreRef(store_id, name or store_id), chunks=list(chunks))


def _failed(store_id, error="boom", timed_out=False):
    return StoreRetrieval(store=StoreRef(store_id, store_id), error=error, timed_out=timed_out)


class TestFiltering:

    def test_drops_empty_and_whitespace_chunks(self):
        result = ChunkAggregator().aggregate([
            _ok("a", chunk("real text", "m1.txt"), chunk("", "m2.txt"), chunk("   \n\t", "m3.txt")),
        ])

        assert [c.text for c in result.chunks] == ["real text"]
        assert result.outcomes[0].chunk_count == 1

    def test_drops_bookkeeping_documents(self):
        result = ChunkAggregator().aggregate([
            _ok(
                "a",
                chunk('{"color": "blue"}', ".project-metadata.json"),
                chunk("internal", "store.metadata"),
                chunk("meeting notes", "kickoff.txt"),
            ),
        ])

        assert [c.document_name for c in result.chunks] == ["kickoff.txt"]

    def test_denylist_matches_document_name_only(self):
        result = ChunkAggregator().aggregate([
            _ok("a", chunk("real notes", "notes.txt", "Review of .metadata handling")),
        ])

        assert [c.text for c in result.chunks] == ["real notes"]

    def test_custom_denylist(self):
        aggregator = ChunkAggregator(denylist=["DRAFT"])
        result = aggregator.aggregate([
            _ok("a", chunk("x", "DRAFT-notes.txt"), chunk("y", ".project-metadata.json")),
        ])

        assert [c.document_name for c in result.chunks] == [".project-metadata.json"]

    def test_only_filtered_chunks_is_success_with_zero_count(self):
        result = ChunkAggregator().aggregate([_ok("a", chunk(" "), chunk("m", ".metadata"))])

        outcome = result.outcomes[0]
        assert outcome.success is True
        assert outcome.chunk_count == 0
        assert outcome.error is None


class TestProvenanceAndCounts:

    def test_chunks_tagged_with_originating_store(self):
        result = ChunkAggregator().aggregate([
            _ok("a", chunk("from a", "same.txt"), name="Store A"),
            _ok("b", chunk("from b", "same.txt"), chunk("also b"), name="Store B"),
        ])

        tags = [(c.store_id, c.store_display_name, c.text) for c in result.chunks]
        assert tags == [
            ("a", "Store A", "from a"),
            ("b", "Store B", "from b"),
            ("b", "Store B", "also b"),
        ]

    def test_counts_are_consistent(self):
        result = ChunkAggregator().aggregate([
            _ok("a", chunk("1"), chunk("2"), chunk("")),
            _ok("b", chunk("3")),
            _failed("c"),
        ])

        assert result.total_chunks == 3
        assert sum(o.chunk_count for o in result.outcomes if o.success) == result.total_chunks
        for o in result.outcomes:
            assert o.chunk_count == len(result.chunks_for(o.store_id))

    def test_failed_store_keeps_error_and_timeout_flag(self):
        result = ChunkAggregator().aggregate([_failed("a", "Timeout after 100ms", timed_out=True)])

        o = result.outcomes[0]
        assert (o.success, o.chunk_count, o.error, o.timed_out) == (False, 0, "Timeout after 100ms", True)
        assert result.all_failed


class TestDisplayNames:

    @pytest.mark.parametrize("store_id,expected", [
        ("fileSearchStores/Project_acme-123", "acme-123"),
        ("fileSearchStores/q1-review", "q1-review"),
        ("plain", "plain"),
        ("fileSearchStores/Project_", "fileSearchStores/Project_"),
    ])
    def test_derive_display_name(self, store_id, expected):
        assert derive_display_name(store_id, "Project_") == expected

    def test_registry_name_wins(self, registry):
        aggregator = ChunkAggregator(registry=registry, name_prefix="Project_")

        assert aggregator.display_name("fileSearchStores/acme") == "Acme Kickoff"

    def test_unknown_store_falls_back_to_derivation(self, registry):
        aggregator = ChunkAggregator(registry=registry, name_prefix="Project_")

        refs = aggregator.store_refs(["fileSearchStores/Project_zeta"])
        assert refs == [StoreRef("fileSearchStores/Project_zeta", "zeta")]

    def test_registry_errors_fall_back_instead_of_failing(self):
        broken = Mock()
        broken.resolve_display_name.side_effect = RuntimeError("registry offline")
        aggregator = ChunkAggregator(registry=broken, name_prefix="Project_")

        assert aggregator.display_name("fileSearchStores/Project_beta") == "beta"

    @pytest.mark.asyncio
    async def test_refresh_failure_is_not_fatal(self):
        broken = Mock()
        broken.refresh.side_effect = RuntimeError("db down")
        aggregator = ChunkAggregator(registry=broken)

        await aggregator.refresh_registry()
