"""Language-specific AST extractors.

Use get_extractor(), extract_from_source(), or extract_from_file()
to work with them.
"""

from __future__ import annotations

from pathlib import Path

from covgate.parsing.languages.base import LanguageExtractor
from covgate.parsing.languages.javascript import (
    JavaScriptExtractor,
    TSXExtractor,
    TypeScriptExtractor,
)
from covgate.parsing.treesitter import ParseResult, detect_language

_EXTRACTORS: dict[str, type[LanguageExtractor]] = {
    "javascript": JavaScriptExtractor,
    "typescript": TypeScriptExtractor,
    "tsx": TSXExtractor,
}


def get_extractor(language: str) -> LanguageExtractor:
    """Get a language extractor instance for the given language."""
    cls = _EXTRACTORS.get(language)
    if cls is None:
        raise ValueError(f"No extractor for language: {language}")
    return cls()


def extract_from_source(source: bytes, language: str, file_name: str | None = None) -> ParseResult:
    """Parse source code and extract chunks, JSX elements and imports."""
    return get_extractor(language).extract(source, file_name)


def extract_from_file(file_path: str | Path) -> ParseResult:
    """Parse a file and extract its structure.

    Detects language from file extension.
    """
    path = Path(file_path)
    language = detect_language(path)
    if language is None:
        raise ValueError(f"Cannot detect language for: {path}")
    return extract_from_source(path.read_bytes(), language, str(path))


__all__ = [
    "JavaScriptExtractor",
    "LanguageExtractor",
    "TSXExtractor",
    "TypeScriptExtractor",
    "extract_from_file",
    "extract_from_source",
    "get_extractor",
]
