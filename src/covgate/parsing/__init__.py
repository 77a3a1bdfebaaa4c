"""Source parsing and structure extraction."""

from covgate.parsing.languages import extract_from_file, extract_from_source, get_extractor
from covgate.parsing.treesitter import (
    ChunkCategory,
    ChunkRecord,
    ElementHandlerRecord,
    ImportInfo,
    ParseResult,
    detect_language,
    parse_code,
)

__all__ = [
    "ChunkCategory",
    "ChunkRecord",
    "ElementHandlerRecord",
    "ImportInfo",
    "ParseResult",
    "detect_language",
    "extract_from_file",
    "extract_from_source",
    "get_extractor",
    "parse_code",
]
