"""Coverage of interactive JSX elements."""

from __future__ import annotations

from dataclasses import dataclass
from itertools import zip_longest
from typing import TYPE_CHECKING

from covgate.coverage.summary import CoverageSummary, MeasuredRange, summarize_ranges

if TYPE_CHECKING:
    from covgate.coverage.istanbul import FileCoverage
    from covgate.parsing.treesitter import ElementHandlerRecord, ParseResult


@dataclass
class ElementCoverage:
    element: ElementHandlerRecord
    summary: CoverageSummary


def element_ranges(element: ElementHandlerRecord) -> list[MeasuredRange]:
    """Opening tag, handler bodies and guarding conditions of *element*.

    The opening tag and handlers are measured from their start column, so
    the statement that renders the element (a ``return`` or the enclosing
    declaration) is not mistaken for the handler body.
    """
    ranges: list[MeasuredRange] = [(*element.opening_range, element.opening_column)]
    for (start, end), column in zip_longest(element.handler_ranges, element.handler_columns, fillvalue=0):
        ranges.append((start, end, column))
    ranges.extend(element.condition_ranges)
    return ranges


class JSXElementCoverageAnalyzer:
    """Measures elements with ``onX`` handlers over the union of their ranges.

    Elements without handlers never reach this analyzer; elements whose
    union holds no statement are skipped.
    """

    def analyze(self, parse_result: ParseResult, file_coverage: FileCoverage) -> list[ElementCoverage]:
        if not parse_result.jsx_elements:
            return []
        results: list[ElementCoverage] = []
        for element in parse_result.jsx_elements:
            summary = summarize_ranges(file_coverage, element_ranges(element))
            if summary.is_applicable:
                results.append(ElementCoverage(element=element, summary=summary))
        return results
