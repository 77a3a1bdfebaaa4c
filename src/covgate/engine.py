"""Coverage threshold policy engine.

:class:`ThresholdPolicyEngine` analyzes one source file per call:

1. ignore and test-file patterns short-circuit to no findings
2. the coverage report is loaded (missing or malformed -> ``noCoverage``)
3. in ``changed`` mode the git change scope is resolved, falling back to the
   whole file
4. file, chunk, JSX element and aggregate checks run independently, each
   gated by its own severity

Per-file failures never propagate: they are logged and yield fewer findings.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from covgate.analyzers.chunks import ChunkCoverageAnalyzer
from covgate.analyzers.imports import ImportGraphAggregator
from covgate.analyzers.jsx import JSXElementCoverageAnalyzer
from covgate.coverage.store import (
    CoverageNotFoundError,
    CoverageParseError,
    CoverageReportStore,
    find_project_root,
)
from covgate.coverage.summary import summarize
from covgate.models.finding import Finding, FindingKind, Location, Severity
from covgate.parsing.languages import extract_from_source
from covgate.parsing.treesitter import detect_language
from covgate.utils.git import ChangeScopeResolver, GitChangeScopeResolver, GitOperationError, LineRange
from covgate.utils.glob import match_any

if TYPE_CHECKING:
    from collections.abc import Callable

    from covgate.config import ThresholdConfig
    from covgate.coverage.istanbul import CoverageReport, FileCoverage
    from covgate.parsing.treesitter import ParseResult

logger = logging.getLogger(__name__)


def format_threshold(value: float) -> str:
    """Render a threshold without a trailing ``.0``."""
    return f"{value:g}"


class ThresholdPolicyEngine:
    """Applies a :class:`ThresholdConfig` to individual source files.

    Args:
        config: Validated coverage policy.
        store: Shared report cache; one per process is enough.
        change_resolver: Change scope source for ``changed`` mode.
        project_root: Fixed project root. When omitted it is discovered per
            file with :func:`find_project_root`.
    """

    def __init__(
        self,
        config: ThresholdConfig,
        store: CoverageReportStore | None = None,
        change_resolver: ChangeScopeResolver | None = None,
        project_root: Path | None = None,
    ) -> None:
        self.config = config
        self.store = store or CoverageReportStore(project_root)
        self.change_resolver = change_resolver or GitChangeScopeResolver()
        self.project_root = project_root
        self._chunks = ChunkCoverageAnalyzer()
        self._jsx = JSXElementCoverageAnalyzer()
        self._imports = ImportGraphAggregator(self.store)

    def analyze(
        self,
        file_path: str | Path,
        source: str | bytes | None = None,
        parse_result: ParseResult | None = None,
    ) -> list[Finding]:
        """Return the findings for one file. Never raises for per-file failures."""
        try:
            return self._analyze(Path(file_path), source, parse_result)
        except Exception:
            logger.exception("Coverage analysis failed for %s", file_path)
            return []

    def _analyze(
        self,
        path: Path,
        source: str | bytes | None,
        parse_result: ParseResult | None,
    ) -> list[Finding]:
        root = self.project_root or find_project_root(path)
        rel_path = _relative_path(path, root)

        if self._matches(self.config.ignore_patterns, path, rel_path):
            logger.debug("Ignoring %s", rel_path)
            return []
        if self._matches(self.config.test_patterns, path, rel_path):
            logger.debug("Skipping test file %s", rel_path)
            return []

        try:
            report = self.store.load(self.config.coverage_path, root)
        except CoverageNotFoundError as exc:
            logger.info("%s", exc)
            return self._no_coverage(path)
        except CoverageParseError as exc:
            logger.warning("%s", exc)
            return self._no_coverage(path)

        file_coverage = self.store.lookup(report, path, root)
        if file_coverage is None:
            logger.debug("%s is not in the coverage report", rel_path)
            return []

        if parse_result is None:
            parse_result = self._parse(path, source)
        line_count = parse_result.line_count if parse_result is not None else None

        scope = self._resolve_scope(path)
        threshold = self.config.threshold_for(rel_path)

        findings: list[Finding] = []
        findings += self._step("file", lambda: self._check_file(path, file_coverage, line_count, scope, threshold))
        if parse_result is not None:
            findings += self._step("chunk", lambda: self._check_chunks(path, parse_result, file_coverage))
            findings += self._step("jsx", lambda: self._check_jsx(path, parse_result, file_coverage))
            findings += self._step(
                "aggregate", lambda: self._check_aggregate(path, parse_result, file_coverage, report, root)
            )
        return findings

    # ── Helpers ──────────────────────────────────────────────────

    @staticmethod
    def _matches(patterns: list[str], path: Path, rel_path: str) -> bool:
        return bool(patterns) and (
            match_any(patterns, rel_path) is not None or match_any(patterns, path.as_posix()) is not None
        )

    @staticmethod
    def _step(name: str, check: Callable[[], list[Finding]]) -> list[Finding]:
        try:
            return check()
        except Exception:
            logger.exception("Coverage %s check failed", name)
            return []

    def _no_coverage(self, path: Path) -> list[Finding]:
        severity = Severity.parse(self.config.severity.no_coverage)
        if severity is Severity.OFF:
            return []
        return [
            Finding(
                kind=FindingKind.NO_COVERAGE_DATA,
                severity=severity,
                location=Location(file_path=str(path), line=1),
                data={"coveragePath": self.config.coverage_path},
            )
        ]

    def _parse(self, path: Path, source: str | bytes | None) -> ParseResult | None:
        language = detect_language(path)
        if language is None:
            logger.debug("No parser for %s; only file-level checks apply", path)
            return None
        try:
            if source is None:
                source = path.read_bytes()
            data = source.encode("utf-8") if isinstance(source, str) else source
            return extract_from_source(data, language, str(path))
        except (OSError, ValueError) as exc:
            logger.warning("Could not parse %s: %s", path, exc)
            return None

    def _resolve_scope(self, path: Path) -> set[LineRange] | None:
        if self.config.mode != "changed":
            return None
        try:
            scope = self.change_resolver.resolve_changed_lines(path, self.config.base_branch)
        except GitOperationError as exc:
            logger.warning("Changed-lines scope unavailable for %s (%s); checking the whole file", path, exc)
            return None
        if not scope:
            logger.debug("No changed lines in %s; checking the whole file", path)
            return None
        return scope

    # ── Checks ───────────────────────────────────────────────────

    def _check_file(
        self,
        path: Path,
        file_coverage: FileCoverage,
        line_count: int | None,
        scope: set[LineRange] | None,
        threshold: float,
    ) -> list[Finding]:
        severity = Severity.parse(self.config.severity.below_threshold)
        if severity is Severity.OFF:
            return []
        summary = summarize(file_coverage, line_count, scope)
        if not summary.is_below(threshold):
            return []
        return [
            Finding(
                kind=FindingKind.BELOW_THRESHOLD,
                severity=severity,
                location=Location(file_path=str(path), line=1),
                data={
                    "coverage": summary.display,
                    "threshold": format_threshold(threshold),
                    "fileName": path.name,
                },
            )
        ]

    def _check_chunks(self, path: Path, parse_result: ParseResult, file_coverage: FileCoverage) -> list[Finding]:
        if not self.config.chunk_coverage:
            return []
        severity = Severity.parse(self.config.chunk_severity)
        if severity is Severity.OFF:
            return []

        results = self._chunks.analyze(parse_result, file_coverage)
        findings: list[Finding] = []
        for result, threshold in self._chunks.below_threshold(results, self.config):
            chunk = result.chunk
            # a function that never ran gets the untested wording
            kind = FindingKind.CHUNK_BELOW_THRESHOLD if result.function_called else FindingKind.UNTESTED_FUNCTION
            findings.append(
                Finding(
                    kind=kind,
                    severity=severity,
                    location=Location(
                        file_path=str(path), line=chunk.declaration_line or chunk.start_line, end_line=chunk.end_line
                    ),
                    data={
                        "name": chunk.name,
                        "category": chunk.category.capitalize(),
                        "coverage": result.summary.display,
                        "threshold": format_threshold(threshold),
                    },
                )
            )
        return findings

    def _check_jsx(self, path: Path, parse_result: ParseResult, file_coverage: FileCoverage) -> list[Finding]:
        if not parse_result.has_jsx:
            return []
        severity = Severity.parse(self.config.jsx_severity)
        if severity is Severity.OFF or self.config.severity.below_threshold == Severity.OFF.value:
            return []

        threshold = self.config.jsx_threshold
        findings: list[Finding] = []
        for result in self._jsx.analyze(parse_result, file_coverage):
            if not result.summary.is_below(threshold):
                continue
            element = result.element
            findings.append(
                Finding(
                    kind=FindingKind.JSX_BELOW_THRESHOLD,
                    severity=severity,
                    location=Location(file_path=str(path), line=element.opening_start_line, end_line=element.end_line),
                    data={
                        "tagName": element.tag_name,
                        "coverage": result.summary.display,
                        "threshold": format_threshold(threshold),
                    },
                )
            )
        return findings

    def _check_aggregate(
        self,
        path: Path,
        parse_result: ParseResult,
        file_coverage: FileCoverage,
        report: CoverageReport,
        root: Path,
    ) -> list[Finding]:
        severity = Severity.parse(self.config.aggregate_severity)
        if severity is Severity.OFF:
            return []
        aggregate = self._imports.aggregate(path, parse_result, file_coverage, report, root)
        if aggregate is None or not aggregate.summary.is_below(self.config.aggregate_threshold):
            return []

        lowest = aggregate.lowest
        return [
            Finding(
                kind=FindingKind.BELOW_AGGREGATE_THRESHOLD,
                severity=severity,
                location=Location(file_path=str(path), line=1),
                data={
                    "coverage": aggregate.summary.display,
                    "threshold": format_threshold(self.config.aggregate_threshold),
                    "fileName": path.name,
                    "fileCount": str(len(aggregate.files)),
                    "lowestFile": Path(lowest.path).name if lowest else path.name,
                    "lowestCoverage": lowest.summary.display if lowest else aggregate.summary.display,
                },
            )
        ]


def _relative_path(path: Path, root: Path) -> str:
    try:
        return path.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        return path.as_posix()
