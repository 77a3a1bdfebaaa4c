"""Istanbul coverage data: decoding, caching, line status and summaries."""

from covgate.coverage.istanbul import (
    CoverageFormatError,
    CoverageReport,
    FileCoverage,
    FunctionMapping,
    Position,
    SourceRange,
    parse_istanbul,
)
from covgate.coverage.lines import LineStatus, build_line_index, status_of_line
from covgate.coverage.store import (
    CoverageLoadError,
    CoverageNotFoundError,
    CoverageParseError,
    CoverageReportStore,
    find_project_root,
)
from covgate.coverage.summary import (
    CoverageSummary,
    MeasuredRange,
    summarize,
    summarize_ranges,
    summarize_statements,
)

__all__ = [
    "CoverageFormatError",
    "CoverageLoadError",
    "CoverageNotFoundError",
    "CoverageParseError",
    "CoverageReport",
    "CoverageReportStore",
    "CoverageSummary",
    "FileCoverage",
    "FunctionMapping",
    "LineStatus",
    "MeasuredRange",
    "Position",
    "SourceRange",
    "build_line_index",
    "find_project_root",
    "parse_istanbul",
    "status_of_line",
    "summarize",
    "summarize_ranges",
    "summarize_statements",
]
