"""Tree-sitter wrapper for parsing JavaScript/TypeScript sources and the records extracted from them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, cast

import tree_sitter
import tree_sitter_language_pack as tslp

from covgate.utils.cache import MemoryCache, content_hash

if TYPE_CHECKING:
    from tree_sitter_language_pack import SupportedLanguage

logger = logging.getLogger(__name__)

# Map file extensions to tree-sitter language names
EXTENSION_TO_LANGUAGE: dict[str, str] = {
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
}

SUPPORTED_LANGUAGES = frozenset({"javascript", "typescript", "tsx"})


class ChunkCategory:
    """Chunk categories used in finding messages and threshold selection."""

    UTILITY = "utility"
    HOOK = "hook"
    STORE = "store"
    HANDLER = "handler"
    COMPONENT = "component"


@dataclass
class ChunkRecord:
    """A named function-like unit measured on its own."""

    name: str
    start_line: int
    end_line: int
    is_component_like: bool = False
    """PascalCase name, or the body renders JSX."""

    category: str = ChunkCategory.UTILITY
    declaration_line: int = 0
    """Line of the declaring name; findings are reported here."""

    parent: str | None = None
    """Name of the enclosing chunk, if nested."""

    is_export: bool = False
    contains_jsx: bool = False
    body_start: tuple[int, int] | None = None
    """Line and column where the function itself begins; an enclosing
    declaration statement starts before it."""

    @property
    def measured_range(self) -> tuple[int, int, int]:
        """Range whose statements make up the chunk's own coverage."""
        if self.body_start is None:
            return (self.start_line, self.end_line, 0)
        return (self.body_start[0], self.end_line, self.body_start[1])


@dataclass
class ElementHandlerRecord:
    """A JSX element carrying at least one resolvable ``onX`` handler prop."""

    tag_name: str
    start_line: int
    end_line: int
    opening_start_line: int
    opening_end_line: int
    opening_column: int = 0
    handler_names: list[str] = field(default_factory=list)
    handler_ranges: list[tuple[int, int]] = field(default_factory=list)
    """Inclusive line ranges of handler bodies or handler expressions."""

    handler_columns: list[int] = field(default_factory=list)
    """Start column of each handler range on its first line."""

    condition_ranges: list[tuple[int, int]] = field(default_factory=list)
    """Test expression of an enclosing ``cond && <El/>`` or ternary."""

    @property
    def opening_range(self) -> tuple[int, int]:
        return (self.opening_start_line, self.opening_end_line)


@dataclass
class ImportInfo:
    """Extracted import statement information."""

    module: str
    names: list[str] = field(default_factory=list)
    alias: str | None = None
    start_line: int = 0
    is_wildcard: bool = False
    is_type_only: bool = False

    @property
    def is_relative(self) -> bool:
        return self.module.startswith(".")


@dataclass
class ParseResult:
    """Complete parse result for a source file."""

    language: str
    functions: list[ChunkRecord] = field(default_factory=list)
    jsx_elements: list[ElementHandlerRecord] = field(default_factory=list)
    imports: list[ImportInfo] = field(default_factory=list)
    has_jsx: bool = False
    exports_jsx: bool = False
    """An exported chunk renders JSX (the file is a component file)."""

    line_count: int = 0
    has_errors: bool = False
    error_ranges: list[tuple[int, int]] = field(default_factory=list)


# ── Module-level caches ──────────────────────────────────────────
_parser_cache: dict[str, tree_sitter.Parser] = {}
_code_ast_cache: MemoryCache[tree_sitter.Tree] = MemoryCache(max_size=256)


def detect_language(file_path: str | Path) -> str | None:
    """Detect language from file extension.

    Returns the tree-sitter language name, or None if unsupported.
    """
    ext = Path(file_path).suffix.lower()
    return EXTENSION_TO_LANGUAGE.get(ext)


def get_parser(language: str) -> tree_sitter.Parser:
    """Get a (cached) tree-sitter parser for the given language."""
    if language not in SUPPORTED_LANGUAGES:
        raise ValueError(f"Unsupported language: {language}")
    cached = _parser_cache.get(language)
    if cached is not None:
        return cached
    parser = tslp.get_parser(cast("SupportedLanguage", language))
    _parser_cache[language] = parser
    return parser


def parse_code(source: bytes, language: str) -> tree_sitter.Tree:
    """Parse source code bytes into a tree-sitter AST (cached by content hash)."""
    key = content_hash(source) + ":" + language
    cached = _code_ast_cache.get(key)
    if cached is not None:
        return cached
    tree = get_parser(language).parse(source)
    _code_ast_cache.put(key, tree)
    return tree


def clear_caches() -> None:
    """Drop every cached syntax tree."""
    _code_ast_cache.clear()


def collect_error_ranges(root: tree_sitter.Node) -> list[tuple[int, int]]:
    """Collect line ranges of parse error nodes."""
    errors: list[tuple[int, int]] = []
    _walk_errors(root, errors)
    return errors


def _walk_errors(node: tree_sitter.Node, errors: list[tuple[int, int]]) -> None:
    if node.is_error or node.is_missing:
        errors.append((node.start_point.row + 1, node.end_point.row + 1))
    for child in node.children:
        _walk_errors(child, errors)
