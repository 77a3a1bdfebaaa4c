"""Tests for per-line coverage status."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from covgate.coverage.istanbul import FileCoverage, parse_istanbul
from covgate.coverage.lines import LineStatus, build_line_index, status_of_line


@pytest.fixture
def file_coverage(istanbul_entry: Callable[..., Any]) -> FileCoverage:
    # line 1: covered; lines 3-5: one uncovered multi-line statement;
    # line 4: also holds a covered statement; line 8: uncovered
    entry = istanbul_entry("a.ts", [(1, 2), (3, 5, 0), (4, 1), (8, 0)])
    return parse_istanbul({"a.ts": entry})["a.ts"]


class TestStatusOfLine:
    def test_covered_line(self, file_coverage: FileCoverage) -> None:
        assert status_of_line(file_coverage, 1) is LineStatus.COVERED

    def test_uncovered_line(self, file_coverage: FileCoverage) -> None:
        assert status_of_line(file_coverage, 8) is LineStatus.UNCOVERED
        assert status_of_line(file_coverage, 5) is LineStatus.UNCOVERED

    def test_line_without_statement(self, file_coverage: FileCoverage) -> None:
        assert status_of_line(file_coverage, 2) is LineStatus.NO_STATEMENT
        assert status_of_line(file_coverage, 100) is LineStatus.NO_STATEMENT

    def test_covered_wins_over_uncovered_on_shared_line(self, file_coverage: FileCoverage) -> None:
        assert status_of_line(file_coverage, 4) is LineStatus.COVERED

    def test_range_is_inclusive(self, file_coverage: FileCoverage) -> None:
        assert status_of_line(file_coverage, 3) is LineStatus.UNCOVERED

    def test_idempotent(self, file_coverage: FileCoverage) -> None:
        results = {status_of_line(file_coverage, 4) for _ in range(5)}
        assert results == {LineStatus.COVERED}


class TestBuildLineIndex:
    def test_matches_status_of_line(self, file_coverage: FileCoverage) -> None:
        index = build_line_index(file_coverage)
        for line in range(1, 12):
            assert index.get(line, LineStatus.NO_STATEMENT) is status_of_line(file_coverage, line)

    def test_only_statement_lines_are_indexed(self, file_coverage: FileCoverage) -> None:
        assert sorted(build_line_index(file_coverage)) == [1, 3, 4, 5, 8]
