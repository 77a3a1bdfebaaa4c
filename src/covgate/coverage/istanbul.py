"""Istanbul ``coverage-final.json`` data model and decoder.

Istanbul format (one entry per instrumented file)::

    {
      "/path/to/file.ts": {
        "path": "/path/to/file.ts",
        "statementMap": { "0": {"start": {...}, "end": {...}}, ... },
        "fnMap": { "0": {"name": ..., "decl": {...}, "loc": {...}}, ... },
        "s": { "0": 1, "1": 0, ... },   // statement hit counts
        "f": { "0": 1, ... }            // function hit counts
      }
    }

Only statements and functions are decoded; branch data is not used by any
coverage check.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


class CoverageFormatError(ValueError):
    """Raised when a coverage document does not have the Istanbul shape."""


@dataclass(frozen=True)
class Position:
    """1-based line, 0-based column."""

    line: int
    column: int = 0


@dataclass(frozen=True)
class SourceRange:
    """Start/end positions of an instrumented region."""

    start: Position
    end: Position

    def contains_line(self, line: int) -> bool:
        """Return True if *line* is within ``start.line..=end.line``."""
        return self.start.line <= line <= self.end.line

    def overlaps_lines(self, start_line: int, end_line: int) -> bool:
        """Return True if the line span intersects ``[start_line, end_line]``."""
        return self.start.line <= end_line and start_line <= self.end.line


@dataclass(frozen=True)
class FunctionMapping:
    """One ``fnMap`` entry."""

    name: str
    decl: SourceRange
    loc: SourceRange


@dataclass
class FileCoverage:
    """Statement and function coverage for one source file."""

    path: str
    """Path exactly as recorded by the coverage tool."""

    statement_map: dict[str, SourceRange] = field(default_factory=dict)
    """Statement id → source range."""

    s: dict[str, int] = field(default_factory=dict)
    """Statement id → hit count."""

    fn_map: dict[str, FunctionMapping] = field(default_factory=dict)
    """Function id → declaration/body ranges."""

    f: dict[str, int] = field(default_factory=dict)
    """Function id → call count."""

    def is_covered(self, statement_id: str) -> bool:
        """A statement is covered iff its hit count is positive."""
        return self.s.get(statement_id, 0) > 0

    def statement_counts(self) -> tuple[int, int]:
        """Return ``(covered, total)`` over every statement of the file."""
        total = len(self.s)
        covered = sum(1 for hits in self.s.values() if hits > 0)
        return covered, total

    @property
    def last_line(self) -> int:
        """Highest line touched by any statement (0 when there are none)."""
        return max((rng.end.line for rng in self.statement_map.values()), default=0)

    def find_function(self, name: str, line: int) -> str | None:
        """Return the ``fnMap`` id for a function by name, else by start line."""
        for fn_id, mapping in self.fn_map.items():
            if mapping.name == name:
                return fn_id
        for fn_id, mapping in self.fn_map.items():
            if line in (mapping.decl.start.line, mapping.loc.start.line):
                return fn_id
        return None

    def function_called(self, name: str, line: int) -> bool:
        """Return True if the function matching *name*/*line* ever ran."""
        fn_id = self.find_function(name, line)
        return fn_id is not None and self.f.get(fn_id, 0) > 0


CoverageReport = dict[str, FileCoverage]
"""Coverage-tool path → per-file coverage."""


def parse_istanbul(data: Any) -> CoverageReport:
    """Decode a parsed Istanbul JSON document.

    Raises:
        CoverageFormatError: If the document or any file entry is malformed.
    """
    if not isinstance(data, dict):
        raise CoverageFormatError("Coverage document must be a JSON object")

    report: CoverageReport = {}
    for file_path, entry in data.items():
        if not isinstance(entry, dict):
            raise CoverageFormatError(f"Coverage entry for {file_path!r} must be an object")
        report[file_path] = _parse_file_coverage(file_path, entry)
    logger.debug("Decoded coverage for %d files", len(report))
    return report


def _parse_file_coverage(file_path: str, entry: dict[str, Any]) -> FileCoverage:
    statement_raw = entry.get("statementMap")
    hits_raw = entry.get("s")
    if not isinstance(statement_raw, dict) or not isinstance(hits_raw, dict):
        raise CoverageFormatError(f"{file_path}: 'statementMap' and 's' must be objects")

    statement_map = {
        str(stmt_id): _parse_range(rng, f"{file_path}: statement {stmt_id}")
        for stmt_id, rng in statement_raw.items()
    }
    hits: dict[str, int] = {}
    for stmt_id, count in hits_raw.items():
        key = str(stmt_id)
        if key not in statement_map:
            raise CoverageFormatError(f"{file_path}: statement {key} has no statementMap entry")
        hits[key] = _parse_count(count, f"{file_path}: statement {key}")

    fn_map: dict[str, FunctionMapping] = {}
    fn_raw = entry.get("fnMap") or {}
    if isinstance(fn_raw, dict):
        for fn_id, info in fn_raw.items():
            if not isinstance(info, dict):
                continue
            loc = info.get("loc") or info.get("decl")
            decl = info.get("decl") or loc
            if loc is None:
                continue
            where = f"{file_path}: function {fn_id}"
            fn_map[str(fn_id)] = FunctionMapping(
                name=str(info.get("name", f"anonymous_{fn_id}")),
                decl=_parse_range(decl, where),
                loc=_parse_range(loc, where),
            )

    fn_hits: dict[str, int] = {}
    f_raw = entry.get("f") or {}
    if isinstance(f_raw, dict):
        for fn_id, count in f_raw.items():
            fn_hits[str(fn_id)] = _parse_count(count, f"{file_path}: function {fn_id}")

    return FileCoverage(
        path=str(entry.get("path", file_path)),
        statement_map=statement_map,
        s=hits,
        fn_map=fn_map,
        f=fn_hits,
    )


def _parse_range(raw: Any, where: str) -> SourceRange:
    if not isinstance(raw, dict):
        raise CoverageFormatError(f"{where}: range must be an object")
    return SourceRange(start=_parse_position(raw.get("start"), where), end=_parse_position(raw.get("end"), where))


def _parse_position(raw: Any, where: str) -> Position:
    if not isinstance(raw, dict) or not isinstance(raw.get("line"), int):
        raise CoverageFormatError(f"{where}: position needs an integer 'line'")
    column = raw.get("column")
    return Position(line=raw["line"], column=column if isinstance(column, int) else 0)


def _parse_count(raw: Any, where: str) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise CoverageFormatError(f"{where}: hit count must be an integer (got {raw!r})")
    if raw < 0:
        raise CoverageFormatError(f"{where}: hit count must not be negative (got {raw})")
    return raw
