"""Loading, caching and path lookup for Istanbul coverage reports."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path, PurePosixPath

from covgate.coverage.istanbul import CoverageFormatError, CoverageReport, FileCoverage, parse_istanbul
from covgate.utils.glob import normalize_path

logger = logging.getLogger(__name__)


class CoverageLoadError(Exception):
    """Base class for coverage report loading failures."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(message)
        self.path = path


class CoverageNotFoundError(CoverageLoadError):
    """Raised when the coverage report file does not exist."""


class CoverageParseError(CoverageLoadError):
    """Raised when the coverage report cannot be read or decoded."""


class CoverageReportStore:
    """Memoizes decoded coverage reports, one per resolved report path.

    Entries remember the report's mtime, so a report rewritten by a fresh
    test run is picked up without an explicit :meth:`invalidate`.

    Args:
        project_root: Directory that relative coverage paths resolve against.
            Defaults to the current working directory.
    """

    def __init__(self, project_root: Path | None = None) -> None:
        self._project_root = project_root
        self._reports: dict[Path, tuple[float, CoverageReport]] = {}
        self._lock = threading.Lock()

    def resolve(self, coverage_path: str | Path, project_root: Path | None = None) -> Path:
        """Resolve *coverage_path* against *project_root* (or the store's root)."""
        path = Path(coverage_path)
        if not path.is_absolute():
            root = project_root or self._project_root or Path.cwd()
            path = root / path
        return path.resolve()

    def load(self, coverage_path: str | Path, project_root: Path | None = None) -> CoverageReport:
        """Return the decoded report at *coverage_path*, reading it at most once.

        Raises:
            CoverageNotFoundError: If the report file does not exist.
            CoverageParseError: If the report is unreadable or malformed.
        """
        path = self.resolve(coverage_path, project_root)
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError as exc:
            raise CoverageNotFoundError(path, f"Coverage report not found: {path}") from exc
        except OSError as exc:
            raise CoverageParseError(path, f"Cannot stat coverage report {path}: {exc}") from exc

        with self._lock:
            cached = self._reports.get(path)
            if cached is not None and cached[0] == mtime:
                return cached[1]

            report = self._read(path)
            self._reports[path] = (mtime, report)
            logger.debug("Loaded coverage report %s (%d files)", path, len(report))
            return report

    def invalidate(self, coverage_path: str | Path | None = None, project_root: Path | None = None) -> None:
        """Forget one cached report, or every report when no path is given."""
        with self._lock:
            if coverage_path is None:
                self._reports.clear()
                return
            self._reports.pop(self.resolve(coverage_path, project_root), None)

    @property
    def size(self) -> int:
        """Number of reports currently cached."""
        return len(self._reports)

    @staticmethod
    def _read(path: Path) -> CoverageReport:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise CoverageNotFoundError(path, f"Coverage report not found: {path}") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise CoverageParseError(path, f"Cannot read coverage report {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise CoverageParseError(path, f"Invalid JSON in coverage report {path}: {exc}") from exc

        try:
            return parse_istanbul(raw)
        except CoverageFormatError as exc:
            raise CoverageParseError(path, f"Malformed coverage report {path}: {exc}") from exc

    def lookup(
        self,
        report: CoverageReport,
        file_path: str | Path,
        project_root: Path | None = None,
    ) -> FileCoverage | None:
        """Find the coverage entry for *file_path*.

        Tries the exact key, the project-relative key (with and without a
        leading ``/``), then a suffix match on whole path components. When
        several keys match by suffix the longest one wins; a tie is treated
        as ambiguous and yields ``None``.
        """
        return lookup_file_coverage(report, file_path, project_root or self._project_root)


def lookup_file_coverage(
    report: CoverageReport,
    file_path: str | Path,
    project_root: Path | None = None,
) -> FileCoverage | None:
    """Module-level form of :meth:`CoverageReportStore.lookup`."""
    target = normalize_path(str(file_path))
    if target in report:
        return report[target]

    relative: str | None = None
    if project_root is not None:
        try:
            relative = Path(file_path).resolve().relative_to(project_root.resolve()).as_posix()
        except ValueError:
            relative = None
    if relative:
        for key in (relative, "/" + relative):
            if key in report:
                return report[key]

    target_parts = PurePosixPath(relative or target).parts
    target_parts = tuple(part for part in target_parts if part not in ("/", "."))
    if not target_parts:
        return None

    best_key: str | None = None
    best_len = 0
    tie = False
    for key in report:
        key_parts = tuple(part for part in PurePosixPath(normalize_path(key)).parts if part != "/")
        matched = _common_suffix_length(key_parts, target_parts)
        # A suffix match must cover the shorter path entirely.
        if matched == 0 or matched < min(len(key_parts), len(target_parts)):
            continue
        if matched > best_len:
            best_key, best_len, tie = key, matched, False
        elif matched == best_len:
            tie = True

    if best_key is None or tie:
        if tie:
            logger.debug("Ambiguous coverage entries for %s; skipping", file_path)
        return None
    return report[best_key]


def _common_suffix_length(left: tuple[str, ...], right: tuple[str, ...]) -> int:
    count = 0
    for a, b in zip(reversed(left), reversed(right)):
        if a != b:
            break
        count += 1
    return count


def find_project_root(file_path: str | Path) -> Path:
    """Locate the project root for a linted file.

    The nearest ancestor holding a ``coverage/`` directory wins; otherwise the
    outermost ancestor holding a ``package.json``; otherwise the file's own
    directory.
    """
    start = Path(file_path).resolve()
    directory = start if start.is_dir() else start.parent

    outermost_package: Path | None = None
    for candidate in (directory, *directory.parents):
        if (candidate / "coverage").is_dir():
            return candidate
        if (candidate / "package.json").is_file():
            outermost_package = candidate
    return outermost_package or directory
