"""Reporters for coverage findings."""

from __future__ import annotations

from covgate.reporters.json_reporter import JSONReporter
from covgate.reporters.sarif import SARIFReporter
from covgate.reporters.terminal import CLIReporter, reporter

__all__ = [
    "CLIReporter",
    "JSONReporter",
    "SARIFReporter",
    "reporter",
]
