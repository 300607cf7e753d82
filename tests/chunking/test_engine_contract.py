"""
Contract tests for the chunking engine: budgets, fallback, coverage and the
public entry points.
"""

import pytest
from structlog.testing import capture_logs

from adaptive_chunker import Chunk, ChunkingOptions, chunk_records, chunk_text, stream_chunks
from adaptive_chunker.chunking import (
    Strategy,
    TokenEstimateError,
    UnknownStrategyError,
    estimate_tokens,
    iter_chunks,
    resolve_options,
    resolve_strategy,
    segment,
)

pytestmark = pytest.mark.unit


class TestScenarios:
    """End-to-end behaviour on small, fully worked inputs."""

    def test_fixed_words(self):
        assert chunk_text("a b c d e f", "fixed", max_tokens=4) == ["a b c d ", "e f"]

    def test_plain_paragraphs(self):
        text = "First paragraph here.\n\nSecond paragraph here."
        records = chunk_records(text, max_tokens=3)
        assert [r.text for r in records] == [
            "First paragraph here.\n\n",
            "Second paragraph here.",
        ]
        assert {r.strategy for r in records} == {"plain"}

    def test_plain_paragraphs_with_crlf(self):
        text = "First paragraph here.\r\n\r\nSecond paragraph here."
        assert chunk_text(text, "plain", max_tokens=3) == [
            "First paragraph here.\r\n\r\n",
            "Second paragraph here.",
        ]

    def test_single_long_sentence_falls_back_to_words(self):
        text = " ".join(["word"] * 1000) + "."
        records = chunk_records(text, "sentence", max_tokens=50)
        assert len(records) == 20
        assert all(r.strategy == "fixed" for r in records)
        assert all(r.token_count == 50 for r in records)
        assert not any(r.oversized for r in records)
        assert "".join(r.text for r in records) == text

    def test_markdown_detection_and_blocks(self):
        text = "# Title\n\nSome body text."
        assert segment(Strategy.MARKDOWN, text) == ["# Title\n\n", "Some body text."]
        records = chunk_records(text, max_tokens=3)
        assert [r.text for r in records] == ["# Title\n\n", "Some body text."]
        assert records[0].strategy == "markdown"

    def test_fits_in_one_chunk(self, markdown_doc):
        assert chunk_text(markdown_doc) == [markdown_doc]


class TestFallback:
    """Over-budget blocks cascade through the fallback tiers."""

    def test_nested_fallback(self):
        text = "# Heading\n\n" + "Short sentence here. " * 30
        with capture_logs() as logs:
            records = chunk_records(text, max_tokens=10)

        assert len(records) == 7
        assert records[0].text == "# Heading\n\n"
        assert records[0].strategy == "markdown"
        assert [r.strategy for r in records[1:]] == ["sentence"] * 6
        assert all(r.text == "Short sentence here. " * 5 for r in records[1:])
        assert "".join(r.text for r in records) == text

        targets = [e["target"] for e in logs if e["event"] == "chunk.fallback"]
        assert targets == ["paragraph", "sentence"]

    def test_no_fallback_emits_oversized_chunk(self):
        text = "one two three four five six"
        with capture_logs() as logs:
            records = chunk_records(text, "sentence", max_tokens=2, allow_fallback=False)

        assert len(records) == 1
        assert records[0].oversized
        assert records[0].text == text
        assert records[0].token_count == 5
        oversized = [e for e in logs if e["event"] == "chunk.oversized"]
        assert len(oversized) == 1
        assert oversized[0]["log_level"] == "warning"

    def test_final_tier_cannot_split_long_word(self):
        word = "x" * 40
        records = chunk_records(word, "fixed", max_tokens=1, tokenizer=len)
        assert records == [Chunk(word, 40, "fixed", oversized=True, ord=0)]


class TestBudget:
    """Non-oversized chunks never exceed the budget."""

    @pytest.mark.parametrize("strategy", [s.value for s in Strategy] + ["adaptive"])
    def test_budget_and_coverage(self, strategy, mixed_doc):
        records = chunk_records(mixed_doc, strategy, max_tokens=20)
        assert records
        assert all(r.token_count <= 20 for r in records if not r.oversized)
        assert not any(r.oversized for r in records)
        assert "".join(r.text for r in records) == mixed_doc

    def test_budget_counts_block_weights(self):
        # Each three-word sentence weighs 2; the joined text estimates to 5
        records = chunk_records("a b c. d e f.", "sentence", max_tokens=4)
        assert [r.text for r in records] == ["a b c. d e f."]
        assert records[0].token_count == 4
        assert not records[0].oversized

    def test_fixed_tier_chunks_fit_when_re_estimated(self, mixed_doc):
        for chunk in chunk_text(mixed_doc, "fixed", max_tokens=7):
            assert estimate_tokens(chunk) <= 7

    def test_degenerate_budget_emits_each_block(self):
        with capture_logs() as logs:
            records = chunk_records("a b c", "fixed", max_tokens=0)

        assert [r.text for r in records] == ["a", " ", "b", " ", "c"]
        assert [r.oversized for r in records] == [True, False, True, False, True]
        assert any(e["event"] == "chunk.degenerate_budget" for e in logs)

    def test_custom_tokenizer(self):
        assert chunk_text("abcdef ghij", "fixed", max_tokens=6, tokenizer=len) == [
            "abcdef",
            " ghij",
        ]

    def test_empty_text(self):
        assert chunk_text("") == []
        assert list(stream_chunks("", "markdown")) == []


class TestEntryPoints:
    """Validation and laziness of the public API."""

    def test_records_are_numbered(self):
        records = chunk_records("a b c d e f", "fixed", max_tokens=1)
        assert [r.ord for r in records] == list(range(len(records)))

    def test_stream_matches_chunk_text(self, mixed_doc):
        streamed = list(stream_chunks(mixed_doc, max_tokens=15, overlap_tokens=3))
        assert streamed == chunk_text(mixed_doc, max_tokens=15, overlap_tokens=3)

    def test_options_object(self):
        options = ChunkingOptions(max_tokens=4)
        assert chunk_text("a b c d e f", "fixed", options) == ["a b c d ", "e f"]

    def test_unknown_strategy_raises_eagerly(self):
        with pytest.raises(UnknownStrategyError, match="Valid strategies"):
            chunk_text("text", "nope")
        with pytest.raises(UnknownStrategyError):
            stream_chunks("text", "nope")
        with pytest.raises(ValueError):
            iter_chunks("text", "nope")

    def test_resolve_strategy(self):
        assert resolve_strategy("logs") is Strategy.LOGS
        assert resolve_strategy(Strategy.CODE) is Strategy.CODE

    def test_estimator_errors_surface_when_consumed(self):
        stream = stream_chunks("a b", "fixed", tokenizer=lambda text: -1)
        with pytest.raises(TokenEstimateError):
            next(stream)


class TestResolveOptions:
    """Test option merging."""

    def test_defaults(self):
        assert resolve_options() == ChunkingOptions()
        assert resolve_options().max_tokens == 200

    def test_none_overrides_are_ignored(self):
        assert resolve_options(max_tokens=None, overlap_tokens=None) == ChunkingOptions()

    def test_overrides_merge_over_base(self):
        resolved = resolve_options(ChunkingOptions(max_tokens=50), overlap_tokens=5)
        assert resolved.max_tokens == 50
        assert resolved.overlap_tokens == 5

    def test_negative_overlap_is_clamped(self):
        assert resolve_options(overlap_tokens=-3).overlap_tokens == 0

    def test_unknown_option(self):
        with pytest.raises(TypeError, match="bogus"):
            resolve_options(bogus=1)
