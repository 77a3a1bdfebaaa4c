"""Per-line coverage status derived from statement ranges."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from covgate.coverage.istanbul import FileCoverage


class LineStatus(Enum):
    """Coverage state of a single source line."""

    COVERED = "covered"
    UNCOVERED = "uncovered"
    NO_STATEMENT = "no_statement"


def status_of_line(file_coverage: FileCoverage, line: int) -> LineStatus:
    """Resolve the status of *line* from every statement whose range contains it.

    A line is covered when any containing statement ran, even if other
    statements on the same line did not.
    """
    seen = False
    for stmt_id, rng in file_coverage.statement_map.items():
        if not rng.contains_line(line):
            continue
        if file_coverage.is_covered(stmt_id):
            return LineStatus.COVERED
        seen = True
    return LineStatus.UNCOVERED if seen else LineStatus.NO_STATEMENT


def build_line_index(file_coverage: FileCoverage) -> dict[int, LineStatus]:
    """Compute the status of every statement-bearing line in one pass.

    Lines missing from the result have no statement.
    """
    index: dict[int, LineStatus] = {}
    for stmt_id, rng in file_coverage.statement_map.items():
        covered = file_coverage.is_covered(stmt_id)
        for line in range(rng.start.line, rng.end.line + 1):
            if covered:
                index[line] = LineStatus.COVERED
            else:
                index.setdefault(line, LineStatus.UNCOVERED)
    return index
