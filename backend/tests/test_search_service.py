"""End-to-end tests for MultiStoreSearchService with faked ports."""

import pytest

from fakes import FakeGenerator, FakeRetriever, Slow, chunk, make_service
from notesearch.core.errors import InvalidArgument, SynthesisFailed
from notesearch.core.services.search_service import (
    ALL_STORES_FAILED_TEXT,
    EMPTY_SYNTHESIS_TEXT,
    NO_EVIDENCE_TEXT,
    STATUS_ALL_FAILED,
    STATUS_NO_EVIDENCE,
    STATUS_SYNTHESIZED,
    validate_request,
)

ANSWER = """## Overall Summary
Launch slipped to May [Document: kickoff.txt].

## Per-Source Details
### Acme Kickoff
Launch moved to May [Document: kickoff.txt].

### Q1 Review
Revenue is up [Document: q1.txt].
"""


class TestShortCircuit:

    @pytest.mark.asyncio
    async def test_all_stores_failed(self, registry):
        retriever = FakeRetriever({
            "fileSearchStores/acme": RuntimeError("quota"),
            "fileSearchStores/q1": ConnectionError("reset"),
            "fileSearchStores/ops": Slow(10.0),
        })
        generator = FakeGenerator(reply=ANSWER)
        service = make_service(retriever, generator, registry, timeout=0.05)

        result = await service.search("what happened?", list(registry.names))

        assert result.answer == ALL_STORES_FAILED_TEXT
        assert result.status == STATUS_ALL_FAILED
        assert result.aggregation.total_chunks == 0
        assert len(result.aggregation.outcomes) == 3
        assert all(not o.success for o in result.aggregation.outcomes)
        assert generator.prompts == []

    @pytest.mark.asyncio
    async def test_no_evidence(self, registry):
        retriever = FakeRetriever({
            "fileSearchStores/acme": [],
            "fileSearchStores/q1": [chunk("   "), chunk("{}", ".project-metadata.json")],
        })
        generator = FakeGenerator(reply=ANSWER)
        service = make_service(retriever, generator, registry)

        result = await service.search("what happened?", ["fileSearchStores/acme", "fileSearchStores/q1"])

        assert result.answer == NO_EVIDENCE_TEXT
        assert result.status == STATUS_NO_EVIDENCE
        assert all(o.success and o.chunk_count == 0 for o in result.aggregation.outcomes)
        assert generator.prompts == []
        assert not result.sections.structured
        assert result.sections.unstructured.body == NO_EVIDENCE_TEXT

    @pytest.mark.asyncio
    async def test_mixed_failure_and_empty_is_no_evidence(self, registry):
        retriever = FakeRetriever({
            "fileSearchStores/acme": RuntimeError("down"),
            "fileSearchStores/q1": [],
        })
        service = make_service(retriever, FakeGenerator(reply=ANSWER), registry)

        result = await service.search("q", ["fileSearchStores/acme", "fileSearchStores/q1"])

        assert result.status == STATUS_NO_EVIDENCE


class TestSynthesis:

    @pytest.fixture
    def retriever(self):
        return FakeRetriever({
            "fileSearchStores/acme": [chunk("Launch moved to May.", "kickoff.txt")],
            "fileSearchStores/q1": [chunk("Revenue up 12%.", "q1.txt"), chunk("Hiring paused.", None, "Hiring")],
            "fileSearchStores/ops": RuntimeError("index unavailable"),
        })

    @pytest.mark.asyncio
    async def test_partial_failure_still_synthesizes(self, registry, retriever):
        generator = FakeGenerator(reply=ANSWER)
        service = make_service(retriever, generator, registry)

        result = await service.search("what changed?", list(registry.names))

        assert result.status == STATUS_SYNTHESIZED
        assert len(generator.prompts) == 1
        assert "### Ops Sync" not in generator.prompts[0]
        assert "index unavailable" in next(
            o.error for o in result.aggregation.outcomes if o.store_id == "fileSearchStores/ops"
        )
        assert [s.label for s in result.sections.per_source] == ["Acme Kickoff", "Q1 Review"]
        assert all(c.resolved for c in result.sections.citations)

    @pytest.mark.asyncio
    async def test_counts_are_consistent(self, registry, retriever):
        service = make_service(retriever, FakeGenerator(reply=ANSWER), registry)

        result = await service.search("what changed?", list(registry.names))

        agg = result.aggregation
        assert agg.total_chunks == 3
        assert sum(o.chunk_count for o in agg.outcomes if o.success) == agg.total_chunks

    @pytest.mark.asyncio
    async def test_outcomes_follow_request_order(self, registry, retriever):
        ids = ["fileSearchStores/ops", "fileSearchStores/q1", "fileSearchStores/acme"]
        service = make_service(retriever, FakeGenerator(reply=ANSWER), registry)

        result = await service.search("q", ids)

        assert [o.store_id for o in result.aggregation.outcomes] == ids

    @pytest.mark.asyncio
    async def test_generator_failure_propagates(self, registry, retriever):
        service = make_service(retriever, FakeGenerator(error=RuntimeError("model offline")), registry)

        with pytest.raises(SynthesisFailed, match="model offline"):
            await service.search("q", list(registry.names))

    @pytest.mark.asyncio
    async def test_empty_reply_uses_fallback_text(self, registry, retriever):
        service = make_service(retriever, FakeGenerator(reply="   "), registry)

        result = await service.search("q", list(registry.names))

        assert result.answer == EMPTY_SYNTHESIS_TEXT
        assert not result.sections.structured

    @pytest.mark.asyncio
    async def test_registry_refreshed_per_search(self, registry, retriever):
        service = make_service(retriever, FakeGenerator(reply=ANSWER), registry)

        await service.search("q", ["fileSearchStores/acme"])
        await service.search("q", ["fileSearchStores/acme"])

        assert registry.refreshes == 2

    @pytest.mark.asyncio
    async def test_unregistered_store_gets_derived_name(self):
        retriever = FakeRetriever({"fileSearchStores/Project_beta": [chunk("b", "b.txt")]})
        generator = FakeGenerator(reply="plain answer")
        service = make_service(retriever, generator)

        result = await service.search("q", ["fileSearchStores/Project_beta"])

        assert result.aggregation.outcomes[0].store_display_name == "beta"
        assert "=== SOURCE: beta (1 chunks) ===" in generator.prompts[0]


class TestValidation:

    @pytest.mark.parametrize("query,store_ids,message", [
        ("", ["a"], "Query is required"),
        ("   ", ["a"], "Query is required"),
        (None, ["a"], "Query is required"),
        ("q", [], "At least one store"),
        ("q", None, "At least one store"),
        ("q", ["a", ""], "valid strings"),
        ("q", ["a", None], "valid strings"),
        ("q", ["a", "a"], "unique"),
        ("q", [" a", "b"], "whitespace"),
        ("q", ["a\t"], "whitespace"),
    ])
    def test_rejected(self, query, store_ids, message):
        with pytest.raises(InvalidArgument, match=message):
            validate_request(query, store_ids)

    def test_query_trimmed_ids_untouched(self):
        assert validate_request("  hi ", ["a", "fileSearchStores/b"]) == ("hi", ["a", "fileSearchStores/b"])

    @pytest.mark.asyncio
    async def test_no_retrieval_on_invalid_request(self):
        retriever = FakeRetriever({})
        service = make_service(retriever, FakeGenerator())

        with pytest.raises(InvalidArgument):
            await service.search("", ["a"])
        assert retriever.calls == []
