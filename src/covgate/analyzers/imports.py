"""Aggregate coverage of a component file and its direct local imports.

Only one level of imports is followed, and only relative specifiers: the
aggregate models "this component plus the hooks and helpers it owns".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from covgate.coverage.summary import EMPTY_SUMMARY, CoverageSummary, summarize_statements

if TYPE_CHECKING:
    from covgate.coverage.istanbul import CoverageReport, FileCoverage
    from covgate.coverage.store import CoverageReportStore
    from covgate.parsing.treesitter import ParseResult

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")
COMPONENT_EXTENSIONS = frozenset({".tsx", ".jsx"})


def _is_declaration_file(path: Path) -> bool:
    return path.name.endswith(".d.ts")


def resolve_import_path(specifier: str, from_file: str | Path) -> Path | None:
    """Resolve a relative import to exactly one existing source file.

    Returns ``None`` for package imports, unresolvable specifiers and
    specifiers matching more than one candidate.
    """
    if not specifier.startswith("."):
        return None

    base = (Path(from_file).parent / specifier).resolve()
    candidates: list[Path] = []
    if base.suffix in SOURCE_EXTENSIONS:
        candidates.append(base)
    candidates.extend(base.with_name(base.name + ext) for ext in SOURCE_EXTENSIONS)
    candidates.extend(base / f"index{ext}" for ext in SOURCE_EXTENSIONS)

    existing = [c for c in dict.fromkeys(candidates) if c.is_file() and not _is_declaration_file(c)]
    if len(existing) == 1:
        return existing[0]
    if existing:
        logger.debug(
            "Import %r from %s is ambiguous (%s); skipping",
            specifier,
            from_file,
            ", ".join(str(c) for c in existing),
        )
    else:
        logger.debug("Import %r from %s does not resolve; skipping", specifier, from_file)
    return None


@dataclass
class FileContribution:
    path: str
    summary: CoverageSummary


@dataclass
class AggregateCoverage:
    """Statement counts summed over a component file and its local imports."""

    summary: CoverageSummary = EMPTY_SUMMARY
    files: list[FileContribution] = field(default_factory=list)

    @property
    def lowest(self) -> FileContribution | None:
        """The measured file with the lowest coverage."""
        measured = [f for f in self.files if f.summary.is_applicable]
        if not measured:
            return None
        return min(measured, key=lambda f: f.summary.percentage)


class ImportGraphAggregator:
    """Combines a component's coverage with that of its direct local imports."""

    def __init__(self, store: CoverageReportStore) -> None:
        self._store = store

    @staticmethod
    def is_applicable(file_path: str | Path, parse_result: ParseResult) -> bool:
        """Only ``.tsx``/``.jsx`` files whose exports render JSX are aggregated."""
        return Path(file_path).suffix.lower() in COMPONENT_EXTENSIONS and parse_result.exports_jsx

    def aggregate(
        self,
        file_path: str | Path,
        parse_result: ParseResult,
        file_coverage: FileCoverage | None,
        report: CoverageReport,
        project_root: Path | None = None,
    ) -> AggregateCoverage | None:
        """Return the aggregate for a component file, or ``None`` when not applicable."""
        if file_coverage is None or not self.is_applicable(file_path, parse_result):
            return None

        entry = Path(file_path).resolve()
        own = summarize_statements(file_coverage)
        result = AggregateCoverage(summary=own, files=[FileContribution(str(entry), own)])

        seen: set[Path] = {entry}
        for info in parse_result.imports:
            if info.is_type_only or not info.is_relative:
                continue
            resolved = resolve_import_path(info.module, entry)
            if resolved is None or resolved in seen:
                continue
            seen.add(resolved)

            imported = self._store.lookup(report, resolved, project_root)
            if imported is None:
                logger.debug("No coverage entry for imported %s; skipping", resolved)
                continue
            contribution = summarize_statements(imported)
            result.summary = result.summary + contribution
            result.files.append(FileContribution(str(resolved), contribution))

        return result
