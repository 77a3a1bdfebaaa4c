"""Coverage percentages over whole files, line scopes and range unions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from covgate.coverage.lines import LineStatus, build_line_index

if TYPE_CHECKING:
    from collections.abc import Iterable

    from covgate.coverage.istanbul import FileCoverage
    from covgate.utils.git import LineRange


@dataclass(frozen=True)
class CoverageSummary:
    """Covered/total counts for one measured region."""

    covered: int
    total: int

    @property
    def percentage(self) -> float:
        """Covered share as a percentage; 100.0 when nothing is measurable."""
        if self.total == 0:
            return 100.0
        return self.covered * 100 / self.total

    @property
    def display(self) -> str:
        """Whole-number percentage string, rounded down (``29.99`` -> ``"29"``)."""
        return str(math.floor(self.percentage))

    @property
    def is_applicable(self) -> bool:
        return self.total > 0

    def __add__(self, other: CoverageSummary) -> CoverageSummary:
        return CoverageSummary(self.covered + other.covered, self.total + other.total)

    def is_below(self, threshold: float) -> bool:
        """Strict comparison; a value equal to the threshold passes."""
        return self.percentage < threshold


EMPTY_SUMMARY = CoverageSummary(0, 0)

MeasuredRange = tuple[int, int] | tuple[int, int, int]
"""``(start_line, end_line)`` or ``(start_line, end_line, start_column)``, inclusive."""


def _tally(index: dict[int, LineStatus], lines: Iterable[int]) -> CoverageSummary:
    covered = total = 0
    for line in lines:
        status = index.get(line, LineStatus.NO_STATEMENT)
        if status is LineStatus.NO_STATEMENT:
            continue
        total += 1
        if status is LineStatus.COVERED:
            covered += 1
    return CoverageSummary(covered, total)


def summarize(
    file_coverage: FileCoverage,
    source_line_count: int | None = None,
    scope: set[LineRange] | None = None,
) -> CoverageSummary:
    """Line-based coverage of a file, optionally restricted to *scope*.

    When *source_line_count* is unknown, the highest statement line is used.
    When *scope* contains no statement-bearing line the unscoped summary is
    returned, so an empty diff is never reported as 0% coverage.
    """
    index = build_line_index(file_coverage)
    line_count = source_line_count if source_line_count is not None else file_coverage.last_line
    all_lines = range(1, line_count + 1)

    if scope:
        scoped = _tally(index, (line for line in all_lines if any(r.contains(line) for r in scope)))
        if scoped.total > 0:
            return scoped
    return _tally(index, all_lines)


def summarize_ranges(file_coverage: FileCoverage, ranges: Iterable[MeasuredRange]) -> CoverageSummary:
    """Line-based coverage over the union of *ranges*.

    A statement counts for a range only when it starts at or after the
    range's start position. Statements that begin earlier enclose the range,
    like the declaration in ``const f = () => {...}``, which runs with the
    enclosing scope whether or not the body did.
    """
    index: dict[int, LineStatus] = {}
    for measured in ranges:
        start, end = measured[0], measured[1]
        origin = (start, measured[2] if len(measured) > 2 else 0)
        for stmt_id, rng in file_coverage.statement_map.items():
            if (rng.start.line, rng.start.column) < origin or rng.start.line > end:
                continue
            covered = file_coverage.is_covered(stmt_id)
            for line in range(rng.start.line, min(rng.end.line, end) + 1):
                if covered:
                    index[line] = LineStatus.COVERED
                else:
                    index.setdefault(line, LineStatus.UNCOVERED)
    return _tally(index, sorted(index))


def summarize_statements(file_coverage: FileCoverage) -> CoverageSummary:
    """Raw statement counts, used when combining several files."""
    covered, total = file_coverage.statement_counts()
    return CoverageSummary(covered, total)
