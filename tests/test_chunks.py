"""Tests for per-chunk coverage measurement and threshold selection."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from covgate.analyzers.chunks import ChunkCoverageAnalyzer, chunk_threshold
from covgate.config import ThresholdConfig
from covgate.coverage.istanbul import FileCoverage, parse_istanbul
from covgate.parsing.treesitter import ChunkCategory, ChunkRecord, ParseResult


@pytest.fixture
def file_coverage(istanbul_entry: Callable[..., Any]) -> Callable[..., FileCoverage]:
    def _build(statements: list[Any], functions: tuple[Any, ...] = ()) -> FileCoverage:
        entry = istanbul_entry("/p/src/cart.ts", statements, functions)
        return parse_istanbul({"/p/src/cart.ts": entry})["/p/src/cart.ts"]

    return _build


@pytest.fixture
def parsed() -> ParseResult:
    return ParseResult(
        language="typescript",
        functions=[
            ChunkRecord(name="addItem", start_line=1, end_line=4, declaration_line=1),
            ChunkRecord(name="computeTotal", start_line=6, end_line=9, declaration_line=6),
            ChunkRecord(name="typesOnly", start_line=11, end_line=12, declaration_line=11),
        ],
    )


class TestChunkCoverageAnalyzer:
    def test_measures_each_chunk_over_its_span(self, parsed: ParseResult, file_coverage: Callable[..., FileCoverage]) -> None:
        fc = file_coverage([(2, 1), (3, 1), (7, 0), (8, 1)])
        results = ChunkCoverageAnalyzer().analyze(parsed, fc)
        summaries = {r.chunk.name: (r.summary.covered, r.summary.total) for r in results}
        assert summaries == {"addItem": (2, 2), "computeTotal": (1, 2)}

    def test_chunk_without_statements_is_not_evaluated(self, parsed: ParseResult, file_coverage: Callable[..., FileCoverage]) -> None:
        fc = file_coverage([(2, 1)])
        names = [r.chunk.name for r in ChunkCoverageAnalyzer().analyze(parsed, fc)]
        assert names == ["addItem"]

    def test_function_called_from_fn_map(self, parsed: ParseResult, file_coverage: Callable[..., FileCoverage]) -> None:
        fc = file_coverage(
            [(2, 0), (7, 0)],
            functions=[("addItem", 1, 4, 3), ("computeTotal", 6, 9, 0)],
        )
        called = {r.chunk.name: r.function_called for r in ChunkCoverageAnalyzer().analyze(parsed, fc)}
        assert called == {"addItem": True, "computeTotal": False}

    def test_function_called_matches_anonymous_by_line(self, file_coverage: Callable[..., FileCoverage]) -> None:
        parsed = ParseResult(
            language="typescript",
            functions=[ChunkRecord(name="handler", start_line=3, end_line=5)],
        )
        fc = file_coverage([(4, 1)], functions=[("(anonymous_0)", 3, 5, 1)])
        [result] = ChunkCoverageAnalyzer().analyze(parsed, fc)
        assert result.function_called

    def test_nested_chunk_counts_in_parent_span(self, file_coverage: Callable[..., FileCoverage]) -> None:
        parsed = ParseResult(
            language="typescript",
            functions=[
                ChunkRecord(name="useCart", start_line=1, end_line=8),
                ChunkRecord(name="add", start_line=3, end_line=5, parent="useCart"),
            ],
        )
        fc = file_coverage([(2, 1), (4, 0), (7, 1)])
        summaries = {r.chunk.name: r.summary.display for r in ChunkCoverageAnalyzer().analyze(parsed, fc)}
        assert summaries == {"useCart": "66", "add": "0"}

    def test_declaration_statement_does_not_cover_arrow_body(
        self, file_coverage: Callable[..., FileCoverage]
    ) -> None:
        # `const add = (a, b) => {` on line 3: the declaration statement spans the
        # whole arrow and ran, the body statement on line 4 did not
        parsed = ParseResult(
            language="typescript",
            functions=[ChunkRecord(name="add", start_line=3, end_line=5, body_start=(3, 14))],
        )
        fc = file_coverage([(3, 5, 1), (4, 0)])
        [result] = ChunkCoverageAnalyzer().analyze(parsed, fc)
        assert (result.summary.covered, result.summary.total) == (0, 1)

    def test_measured_range_starts_at_function(self) -> None:
        chunk = ChunkRecord(name="add", start_line=3, end_line=5, body_start=(4, 2))
        assert chunk.measured_range == (4, 5, 2)
        assert ChunkRecord(name="sub", start_line=7, end_line=9).measured_range == (7, 9, 0)

    def test_below_threshold_is_strict(self, parsed: ParseResult, file_coverage: Callable[..., FileCoverage]) -> None:
        fc = file_coverage([(2, 1), (3, 1), (7, 0), (8, 1)])
        analyzer = ChunkCoverageAnalyzer()
        results = analyzer.analyze(parsed, fc)

        at_fifty = analyzer.below_threshold(results, ThresholdConfig(chunk_threshold=50))
        assert at_fifty == []

        above = analyzer.below_threshold(results, ThresholdConfig(chunk_threshold=60))
        assert [(r.chunk.name, t) for r, t in above] == [("computeTotal", 60.0)]


class TestChunkThreshold:
    def test_default_uses_chunk_threshold(self) -> None:
        config = ThresholdConfig(chunk_threshold=90, relaxed_threshold=40)
        component = ChunkRecord(name="Panel", start_line=1, end_line=2, is_component_like=True)
        assert chunk_threshold(component, config) == 90

    @pytest.mark.parametrize(
        "chunk",
        [
            ChunkRecord(name="Panel", start_line=1, end_line=2, is_component_like=True),
            ChunkRecord(name="handleClick", start_line=1, end_line=2, category=ChunkCategory.HANDLER),
            ChunkRecord(name="render", start_line=1, end_line=2, category=ChunkCategory.COMPONENT),
        ],
    )
    def test_focus_non_react_relaxes_react_chunks(self, chunk: ChunkRecord) -> None:
        config = ThresholdConfig(chunk_threshold=90, relaxed_threshold=40, focus_non_react=True)
        assert chunk_threshold(chunk, config) == 40

    @pytest.mark.parametrize("category", [ChunkCategory.UTILITY, ChunkCategory.HOOK, ChunkCategory.STORE])
    def test_focus_non_react_keeps_logic_chunks_strict(self, category: str) -> None:
        config = ThresholdConfig(chunk_threshold=90, relaxed_threshold=40, focus_non_react=True)
        chunk = ChunkRecord(name="useThing", start_line=1, end_line=2, category=category)
        assert chunk_threshold(chunk, config) == 90
