"""Git utilities for restricting coverage checks to changed lines.

The resolver shells out to ``git`` and parses unified-diff hunks for a single
file. Every failure is reported as :class:`GitOperationError`; callers are
expected to treat it as "no change scope available" and check the whole file.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30.0

_HUNK_HEADER_RE = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,\d+)? @@")


def _git_executable() -> str:
    """Resolve the full path to the ``git`` executable."""
    return shutil.which("git") or "git"


class GitOperationError(Exception):
    """Exception raised when git operations fail."""


_GIT_REF_MAX_LENGTH = 255
_GIT_REF_UNSAFE = re.compile(r"[\x00-\x1f\x7f \~\^:\?\*\[\]\\;|&$`()<>{}!#'\"]")


def _validate_git_ref(ref: str) -> None:
    """Validate a git ref to prevent injection and malformed inputs.

    Raises:
        GitOperationError: If the ref is invalid.
    """
    if not ref:
        raise GitOperationError("Git ref must not be empty")
    if len(ref) > _GIT_REF_MAX_LENGTH:
        raise GitOperationError(f"Git ref exceeds {_GIT_REF_MAX_LENGTH} characters")
    if _GIT_REF_UNSAFE.search(ref):
        raise GitOperationError(f"Git ref contains unsafe characters: {ref!r}")
    if ref.startswith("-"):
        raise GitOperationError("Git ref must not start with a dash")
    if ".." in ref:
        raise GitOperationError("Git ref must not contain '..'")


@dataclass(frozen=True, order=True)
class LineRange:
    """Inclusive range of 1-based line numbers."""

    start: int
    end: int

    def contains(self, line: int) -> bool:
        """Return True if *line* falls inside the range."""
        return self.start <= line <= self.end

    def overlaps(self, start: int, end: int) -> bool:
        """Return True if ``[start, end]`` intersects the range."""
        return start <= self.end and self.start <= end

    def lines(self) -> range:
        """Iterate the line numbers covered by the range."""
        return range(self.start, self.end + 1)


def parse_unified_diff(diff_text: str) -> set[LineRange]:
    """Collect the added/modified line ranges (new-file numbering) from a diff.

    Consecutive added lines are merged into one range. Deleted lines take no
    space in the new file and therefore never appear in the result.
    """
    ranges: set[LineRange] = set()
    current_line = 0
    in_hunk = False
    run_start: int | None = None

    def _close_run(last_line: int) -> None:
        nonlocal run_start
        if run_start is not None:
            ranges.add(LineRange(run_start, last_line))
            run_start = None

    for raw in diff_text.splitlines():
        if raw.startswith("diff --git"):
            _close_run(current_line - 1)
            in_hunk = False
            continue

        header = _HUNK_HEADER_RE.match(raw)
        if header:
            _close_run(current_line - 1)
            current_line = int(header.group(1))
            in_hunk = True
            continue

        if not in_hunk:
            continue

        if raw.startswith("+"):
            if run_start is None:
                run_start = current_line
            current_line += 1
        elif raw.startswith("-"):
            continue
        elif raw.startswith("\\"):
            # "\ No newline at end of file"
            continue
        else:
            _close_run(current_line - 1)
            current_line += 1

    _close_run(current_line - 1)
    return ranges


class ChangeScopeResolver(ABC):
    """Computes which lines of a file changed relative to a base branch."""

    @abstractmethod
    def resolve_changed_lines(self, file_path: Path, base_branch: str) -> set[LineRange]:
        """Return added/modified line ranges of *file_path*.

        Raises:
            GitOperationError: If no change scope can be computed.
        """


class GitChangeScopeResolver(ChangeScopeResolver):
    """Change scope backed by ``git diff`` against the merge base of a branch.

    The working tree is compared, so uncommitted edits count as changes.
    """

    def __init__(self, repo_root: Path | None = None, *, timeout: float = _DEFAULT_TIMEOUT) -> None:
        self._repo_root = repo_root
        self._timeout = timeout

    def resolve_changed_lines(self, file_path: Path, base_branch: str) -> set[LineRange]:
        _validate_git_ref(base_branch)
        path = Path(file_path).resolve()
        start_dir = self._repo_root or path.parent

        toplevel = Path(self._run(["rev-parse", "--show-toplevel"], start_dir).strip())
        try:
            rel_path = path.relative_to(toplevel.resolve()).as_posix()
        except ValueError as exc:
            raise GitOperationError(f"{path} is outside repository {toplevel}") from exc

        self._run(["ls-files", "--error-unmatch", "--", rel_path], toplevel)
        base = self._merge_base(base_branch, toplevel)

        diff = self._run(
            ["diff", "--unified=0", "--no-color", "--no-ext-diff", base, "--", rel_path],
            toplevel,
        )
        ranges = parse_unified_diff(diff)
        logger.debug(
            "Changed ranges for %s against %s: %s", rel_path, base_branch, sorted(ranges)
        )
        return ranges

    def _merge_base(self, base_branch: str, repo: Path) -> str:
        """Prefer the merge base so commits on the base branch are not counted."""
        self._run(["rev-parse", "--verify", "--quiet", f"{base_branch}^{{commit}}"], repo)
        try:
            return self._run(["merge-base", base_branch, "HEAD"], repo).strip() or base_branch
        except GitOperationError:
            logger.debug("No merge base for %s and HEAD; diffing against the ref", base_branch)
            return base_branch

    def _run(self, args: list[str], cwd: Path) -> str:
        try:
            result = subprocess.run(  # noqa: S603
                [_git_executable(), *args],
                cwd=cwd,
                capture_output=True,
                text=True,
                check=True,
                timeout=self._timeout,
            )
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or "").strip()
            msg = f"git {args[0]} failed (exit {exc.returncode}): {stderr}"
            raise GitOperationError(msg) from exc
        except subprocess.TimeoutExpired as exc:
            raise GitOperationError(f"git {args[0]} timed out after {self._timeout}s") from exc
        except OSError as exc:
            raise GitOperationError(f"Could not run git: {exc}") from exc
        return result.stdout
