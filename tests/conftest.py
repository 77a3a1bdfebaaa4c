"""Shared fixtures for building Istanbul coverage data."""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

StatementSpec = tuple[int, int] | tuple[int, int, int]
"""``(line, hits)`` or ``(start_line, end_line, hits)``."""


def build_istanbul_entry(
    path: str,
    statements: Sequence[StatementSpec],
    functions: Sequence[tuple[str, int, int, int]] = (),
) -> dict[str, Any]:
    """Build one ``coverage-final.json`` entry.

    ``functions`` holds ``(name, start_line, end_line, calls)`` tuples.
    """
    statement_map: dict[str, Any] = {}
    hits: dict[str, int] = {}
    for index, spec in enumerate(statements):
        if len(spec) == 2:
            start, count = spec
            end = start
        else:
            start, end, count = spec
        statement_map[str(index)] = {
            "start": {"line": start, "column": 0},
            "end": {"line": end, "column": 40},
        }
        hits[str(index)] = count

    fn_map: dict[str, Any] = {}
    fn_hits: dict[str, int] = {}
    for index, (name, start, end, calls) in enumerate(functions):
        fn_map[str(index)] = {
            "name": name,
            "decl": {"start": {"line": start, "column": 0}, "end": {"line": start, "column": 20}},
            "loc": {"start": {"line": start, "column": 0}, "end": {"line": end, "column": 1}},
        }
        fn_hits[str(index)] = calls

    return {
        "path": path,
        "statementMap": statement_map,
        "s": hits,
        "fnMap": fn_map,
        "f": fn_hits,
        "branchMap": {},
        "b": {},
    }


@pytest.fixture
def istanbul_entry() -> Callable[..., dict[str, Any]]:
    return build_istanbul_entry


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Empty project root with a ``coverage/`` directory."""
    root = tmp_path.resolve() / "project"
    (root / "coverage").mkdir(parents=True)
    (root / "src").mkdir()
    return root


@pytest.fixture
def write_coverage(project: Path) -> Callable[[dict[str, Any]], Path]:
    """Write ``coverage/coverage-final.json`` under the project root."""

    def _write(data: dict[str, Any]) -> Path:
        report = project / "coverage" / "coverage-final.json"
        report.write_text(json.dumps(data), encoding="utf-8")
        return report

    return _write
