"""Tests for the synthesis prompt."""

from notesearch.core.entities import AggregationResult, Chunk, StoreOutcome
from notesearch.core.services.prompt_builder import build_synthesis_prompt, source_contexts


def _aggregation():
    chunks = [
        Chunk("acme", "Acme Kickoff", "Launch moved to May.", "kickoff.txt", "Kickoff"),
        Chunk("acme", "Acme Kickoff", "Budget approved.", None, "Budget memo"),
        Chunk("q1", "Q1 Review", "Revenue up 12%.", None, None),
    ]
    outcomes = [
        StoreOutcome("acme", "Acme Kickoff", True, 2),
        StoreOutcome("empty", "Empty Store", True, 0),
        StoreOutcome("down", "Down Store", False, 0, "Timeout after 100ms", True),
        StoreOutcome("q1", "Q1 Review", True, 1),
    ]
    return AggregationResult(chunks=chunks, outcomes=outcomes)


class TestSourceContexts:

    def test_only_stores_with_chunks_are_included(self):
        names = [s.display_name for s in source_contexts(_aggregation())]

        assert names == ["Acme Kickoff", "Q1 Review"]

    def test_chunk_labels_prefer_document_name_then_title(self):
        acme, q1 = source_contexts(_aggregation())

        assert "[Document: kickoff.txt]\nLaunch moved to May." in acme.context
        assert "[Document: Budget memo]\nBudget approved." in acme.context
        assert "[Document: Unknown document]\nRevenue up 12%." in q1.context

    def test_evidence_never_crosses_stores(self):
        acme, q1 = source_contexts(_aggregation())

        assert "Revenue" not in acme.context
        assert "Launch" not in q1.context


class TestBuildPrompt:

    def test_deterministic(self):
        assert build_synthesis_prompt("what changed?", _aggregation()) == build_synthesis_prompt(
            "what changed?", _aggregation()
        )

    def test_contains_output_grammar(self):
        prompt = build_synthesis_prompt("what changed?", _aggregation())

        assert "## Overall Summary" in prompt
        assert "## Per-Source Details" in prompt
        assert "### Acme Kickoff" in prompt
        assert "### Q1 Review" in prompt
        assert prompt.index("## Overall Summary") < prompt.index("## Per-Source Details") < prompt.index("### Acme Kickoff")

    def test_excluded_stores_get_no_section(self):
        prompt = build_synthesis_prompt("what changed?", _aggregation())

        assert "### Empty Store" not in prompt
        assert "### Down Store" not in prompt

    def test_query_and_source_headers_present(self):
        prompt = build_synthesis_prompt("what changed?", _aggregation())

        assert "USER QUESTION:\nwhat changed?" in prompt
        assert "=== SOURCE: Acme Kickoff (2 chunks) ===" in prompt
        assert "=== SOURCE: Q1 Review (1 chunks) ===" in prompt
        assert "No relevant information found in this source." in prompt
