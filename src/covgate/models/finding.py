"""Findings produced by the coverage policy engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class FindingKind(Enum):
    """Kinds of coverage findings; values double as message ids and rule ids."""

    NO_COVERAGE_DATA = "noCoverageData"
    BELOW_THRESHOLD = "belowThreshold"
    BELOW_AGGREGATE_THRESHOLD = "belowAggregateThreshold"
    CHUNK_BELOW_THRESHOLD = "chunkBelowThreshold"
    UNTESTED_FUNCTION = "untestedFunction"
    JSX_BELOW_THRESHOLD = "jsxBelowThreshold"


class Severity(Enum):
    """Severity levels for findings."""

    ERROR = "error"
    WARN = "warn"
    OFF = "off"

    @classmethod
    def parse(cls, value: str) -> Severity:
        return cls(value)


MESSAGE_TEMPLATES: dict[FindingKind, str] = {
    FindingKind.NO_COVERAGE_DATA: (
        "Coverage data not found at '{coveragePath}'. Run tests with coverage first."
    ),
    FindingKind.BELOW_THRESHOLD: (
        "Coverage for '{fileName}' is {coverage}%, below threshold of {threshold}%"
    ),
    FindingKind.BELOW_AGGREGATE_THRESHOLD: (
        "Aggregate coverage ({coverage}%) is below threshold ({threshold}%). "
        "Includes {fileCount} files. Lowest: {lowestFile} ({lowestCoverage}%)"
    ),
    FindingKind.JSX_BELOW_THRESHOLD: (
        "<{tagName}> element coverage is {coverage}%, below threshold of {threshold}%"
    ),
    FindingKind.CHUNK_BELOW_THRESHOLD: (
        "{category} '{name}' has {coverage}% coverage, below {threshold}% threshold"
    ),
    FindingKind.UNTESTED_FUNCTION: "Function '{name}' ({category}) is not covered by tests",
}


@dataclass(frozen=True)
class Location:
    """Where a finding is reported; lines are 1-based."""

    file_path: str
    line: int = 1
    column: int = 0
    end_line: int | None = None


@dataclass
class Finding:
    """One coverage diagnostic.

    ``data`` carries the message placeholders as strings; percentages are
    whole numbers without a ``%`` suffix (``{"coverage": "14", "threshold": "80"}``).
    """

    kind: FindingKind
    severity: Severity
    location: Location
    data: dict[str, str] = field(default_factory=dict)

    @property
    def message(self) -> str:
        template = MESSAGE_TEMPLATES[self.kind]
        try:
            return template.format(**self.data)
        except KeyError:
            return f"{self.kind.value}: {self.data}"

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "location": {
                "file": self.location.file_path,
                "line": self.location.line,
                "column": self.location.column,
                "end_line": self.location.end_line,
            },
            "data": dict(self.data),
        }
