"""JSON reporter: structured coverage findings for downstream tooling."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from covgate import __version__
from covgate.models.finding import Severity

if TYPE_CHECKING:
    from pathlib import Path

    from covgate.models.finding import Finding

logger = logging.getLogger(__name__)


class JSONReporter:
    """Serialize findings into a single JSON document."""

    def generate(self, findings: list[Finding], output_path: Path, *, files_checked: int = 0) -> Path:
        """Write a JSON report file.

        Args:
            findings: Findings of the run.
            output_path: Path to write the JSON file.
            files_checked: Number of source files analyzed.

        Returns:
            The path to the generated JSON file.
        """
        report = _build_report(findings, files_checked=files_checked)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(report, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("JSON report written to %s", output_path)
        return output_path

    def generate_string(self, findings: list[Finding], *, files_checked: int = 0) -> str:
        """Return the JSON report as a string."""
        return json.dumps(_build_report(findings, files_checked=files_checked), indent=2, ensure_ascii=False)


def _build_report(findings: list[Finding], *, files_checked: int) -> dict[str, Any]:
    return {
        "version": __version__,
        "generated_at": datetime.now(UTC).isoformat(),
        "summary": {
            "files_checked": files_checked,
            "findings": len(findings),
            "errors": sum(1 for f in findings if f.severity is Severity.ERROR),
            "warnings": sum(1 for f in findings if f.severity is Severity.WARN),
        },
        "findings": [finding.to_dict() for finding in findings],
    }
