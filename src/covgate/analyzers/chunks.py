"""Per-function ("chunk") coverage.

Every chunk is measured over its own span, starting where the function itself
begins, so the declaration statement around an arrow function does not count.
A nested function counts both on its own and inside its parent's span.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from covgate.coverage.summary import CoverageSummary, summarize_ranges
from covgate.parsing.treesitter import ChunkCategory

if TYPE_CHECKING:
    from covgate.config import ThresholdConfig
    from covgate.coverage.istanbul import FileCoverage
    from covgate.parsing.treesitter import ChunkRecord, ParseResult

logger = logging.getLogger(__name__)

_RELAXED_CATEGORIES = frozenset({ChunkCategory.COMPONENT, ChunkCategory.HANDLER})


@dataclass
class ChunkCoverage:
    """Measured coverage of one chunk."""

    chunk: ChunkRecord
    summary: CoverageSummary
    function_called: bool
    """Whether the coverage tool recorded a call of the chunk's function."""


def chunk_threshold(chunk: ChunkRecord, config: ThresholdConfig) -> float:
    """Threshold that applies to *chunk*.

    With ``focus_non_react`` enabled, component-like and handler chunks are
    judged against the relaxed threshold.
    """
    if config.focus_non_react and (
        chunk.is_component_like or chunk.category in _RELAXED_CATEGORIES
    ):
        return config.relaxed_threshold
    return config.chunk_threshold


class ChunkCoverageAnalyzer:
    """Measures every chunk of a parsed file against a coverage record."""

    def analyze(self, parse_result: ParseResult, file_coverage: FileCoverage) -> list[ChunkCoverage]:
        results: list[ChunkCoverage] = []
        for chunk in parse_result.functions:
            summary = summarize_ranges(file_coverage, [chunk.measured_range])
            if not summary.is_applicable:
                logger.debug("Chunk %s has no statements; not evaluated", chunk.name)
                continue
            results.append(
                ChunkCoverage(
                    chunk=chunk,
                    summary=summary,
                    function_called=file_coverage.function_called(chunk.name, chunk.start_line),
                )
            )
        return results

    def below_threshold(
        self, results: list[ChunkCoverage], config: ThresholdConfig
    ) -> list[tuple[ChunkCoverage, float]]:
        """Return chunks strictly below their applicable threshold, with that threshold."""
        violations: list[tuple[ChunkCoverage, float]] = []
        for result in results:
            threshold = chunk_threshold(result.chunk, config)
            if result.summary.is_below(threshold):
                violations.append((result, threshold))
        return violations
