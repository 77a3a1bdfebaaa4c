"""Chunk, JSX element and import-graph coverage analyzers."""

from covgate.analyzers.chunks import ChunkCoverage, ChunkCoverageAnalyzer, chunk_threshold
from covgate.analyzers.imports import (
    AggregateCoverage,
    FileContribution,
    ImportGraphAggregator,
    resolve_import_path,
)
from covgate.analyzers.jsx import ElementCoverage, JSXElementCoverageAnalyzer

__all__ = [
    "AggregateCoverage",
    "ChunkCoverage",
    "ChunkCoverageAnalyzer",
    "ElementCoverage",
    "FileContribution",
    "ImportGraphAggregator",
    "JSXElementCoverageAnalyzer",
    "chunk_threshold",
    "resolve_import_path",
]
