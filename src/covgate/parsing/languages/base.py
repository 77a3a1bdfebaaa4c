"""Base class and utilities for language-specific AST extractors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from covgate.parsing.treesitter import ParseResult, collect_error_ranges, parse_code

if TYPE_CHECKING:
    import tree_sitter


def _text(node: tree_sitter.Node | None) -> str:
    """Decode node text from bytes, returning empty string for None."""
    if node is None:
        return ""
    return node.text.decode("utf-8", errors="replace") if node.text else ""


def _span(node: tree_sitter.Node) -> tuple[int, int]:
    """Inclusive 1-based line range of *node*."""
    return (node.start_point.row + 1, node.end_point.row + 1)


def _start(node: tree_sitter.Node) -> tuple[int, int]:
    """1-based line and 0-based column where *node* begins."""
    return (node.start_point.row + 1, node.start_point.column)


class LanguageExtractor(ABC):
    """Base class for language-specific AST extractors."""

    @property
    @abstractmethod
    def language(self) -> str:
        """Tree-sitter language name."""

    def extract(self, source: bytes, file_name: str | None = None) -> ParseResult:
        """Parse source and extract chunks, JSX elements and imports.

        Args:
            source: Raw file content.
            file_name: Path or name of the file, used for naming-based
                categories (``*.store.ts``).
        """
        root = parse_code(source, self.language).root_node
        result = ParseResult(
            language=self.language,
            line_count=len(source.splitlines()),
            has_errors=root.has_error,
            error_ranges=collect_error_ranges(root) if root.has_error else [],
        )
        self.extract_structure(root, result, file_name)
        return result

    @abstractmethod
    def extract_structure(
        self, root: tree_sitter.Node, result: ParseResult, file_name: str | None
    ) -> None:
        """Populate *result* from the syntax tree rooted at *root*."""
