"""SARIF reporter: generates Static Analysis Results Interchange Format output.

Produces SARIF v2.1.0 JSON from coverage findings so they can be uploaded to
code scanning dashboards. Rule ids are the finding kinds.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from covgate import __version__
from covgate.models.finding import FindingKind, Severity

if TYPE_CHECKING:
    from pathlib import Path

    from covgate.models.finding import Finding

logger = logging.getLogger(__name__)

_SARIF_SCHEMA = "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/main/sarif-2.1/schema/sarif-schema-2.1.0.json"
_SARIF_VERSION = "2.1.0"
_TOOL_NAME = "covgate"

_RULE_DESCRIPTIONS: dict[FindingKind, str] = {
    FindingKind.NO_COVERAGE_DATA: "Coverage report is missing or unreadable",
    FindingKind.BELOW_THRESHOLD: "File coverage is below its threshold",
    FindingKind.BELOW_AGGREGATE_THRESHOLD: "Component and its local imports are below the aggregate threshold",
    FindingKind.CHUNK_BELOW_THRESHOLD: "Function coverage is below the chunk threshold",
    FindingKind.UNTESTED_FUNCTION: "Function below the chunk threshold was never called by tests",
    FindingKind.JSX_BELOW_THRESHOLD: "Interactive JSX element coverage is below its threshold",
}


class SARIFReporter:
    """Generate SARIF v2.1.0 reports from coverage findings."""

    def generate(self, findings: list[Finding], output_path: Path) -> Path:
        """Write a SARIF JSON report file.

        Returns:
            The path to the generated SARIF file.
        """
        sarif = _build_sarif(findings)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(sarif, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("SARIF report written to %s", output_path)
        return output_path

    def generate_string(self, findings: list[Finding]) -> str:
        """Return SARIF JSON as a string."""
        return json.dumps(_build_sarif(findings), indent=2, ensure_ascii=False)


def _build_sarif(findings: list[Finding]) -> dict[str, Any]:
    """Build a SARIF v2.1.0 document; findings with severity ``off`` are dropped."""
    rules: dict[str, dict[str, Any]] = {}
    results: list[dict[str, Any]] = []

    for finding in findings:
        if finding.severity is Severity.OFF:
            continue
        rule_id = finding.kind.value
        if rule_id not in rules:
            rules[rule_id] = _build_rule(finding.kind)
        results.append(_build_result(finding))

    return {
        "$schema": _SARIF_SCHEMA,
        "version": _SARIF_VERSION,
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": _TOOL_NAME,
                        "version": __version__,
                        "rules": list(rules.values()),
                    },
                },
                "results": results,
            },
        ],
    }


def _build_rule(kind: FindingKind) -> dict[str, Any]:
    """Build a SARIF ``reportingDescriptor`` for a finding kind."""
    return {
        "id": kind.value,
        "shortDescription": {"text": _RULE_DESCRIPTIONS[kind]},
    }


def _build_result(finding: Finding) -> dict[str, Any]:
    """Build a SARIF ``result`` from a finding."""
    region: dict[str, Any] = {"startLine": finding.location.line}
    if finding.location.end_line is not None:
        region["endLine"] = finding.location.end_line

    return {
        "ruleId": finding.kind.value,
        "level": _map_severity(finding.severity),
        "message": {"text": finding.message},
        "locations": [
            {
                "physicalLocation": {
                    "artifactLocation": {"uri": finding.location.file_path},
                    "region": region,
                },
            },
        ],
        "properties": dict(finding.data),
    }


def _map_severity(severity: Severity) -> str:
    """Map ``Severity`` to a SARIF level string."""
    mapping: dict[Severity, str] = {
        Severity.ERROR: "error",
        Severity.WARN: "warning",
    }
    return mapping.get(severity, "note")
