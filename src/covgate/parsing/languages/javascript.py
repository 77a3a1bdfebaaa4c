"""JavaScript / TypeScript / TSX AST extractors.

One recursive descent over the tree collects chunks (named functions, arrow
functions bound to variables, methods), JSX elements with ``onX`` handler
props, and import statements. Handler identifiers are resolved once the walk
is complete, against the declarations of the functions enclosing the element
(innermost first, then module level), so a handler may be declared after the
element that uses it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import TYPE_CHECKING

from covgate.parsing.languages.base import LanguageExtractor, _span, _start, _text
from covgate.parsing.treesitter import (
    ChunkCategory,
    ChunkRecord,
    ElementHandlerRecord,
    ImportInfo,
    ParseResult,
)

if TYPE_CHECKING:
    import tree_sitter

_HANDLER_PROP_RE = re.compile(r"^on[A-Z]")
_HOOK_NAME_RE = re.compile(r"^use[A-Z]")
_HANDLER_NAME_RE = re.compile(r"^(?:handle|on)[A-Z]")
_STORE_FILE_RE = re.compile(r"\.store\.[jt]sx?$")

_FUNCTION_VALUE_TYPES = frozenset(
    {"arrow_function", "function_expression", "function", "generator_function"}
)
_FUNCTION_TYPES = _FUNCTION_VALUE_TYPES | {
    "function_declaration",
    "generator_function_declaration",
    "method_definition",
}
_JSX_NODE_TYPES = frozenset({"jsx_element", "jsx_self_closing_element", "jsx_fragment"})
_CONDITION_BOUNDARY_TYPES = _FUNCTION_TYPES | _JSX_NODE_TYPES | {"jsx_opening_element"}
_FIELD_TYPES = frozenset({"public_field_definition", "field_definition"})
_BINDING_TYPES = frozenset({"function_declaration", "generator_function_declaration", "variable_declarator"})


@dataclass
class _HandlerRef:
    prop: str
    span: tuple[int, int] | None = None
    column: int = 0
    identifier: str | None = None


@dataclass
class _PendingElement:
    record: ElementHandlerRecord
    refs: list[_HandlerRef] = field(default_factory=list)
    scope: list[ChunkRecord] = field(default_factory=list)
    """Chunks enclosing the element, outermost first."""


class _Walker:
    """Single-pass collector; one instance per extracted file."""

    def __init__(self) -> None:
        self.functions: list[ChunkRecord] = []
        self.elements: list[_PendingElement] = []
        self.imports: list[ImportInfo] = []
        self.exported_names: set[str] = set()
        self.has_jsx = False
        self._stack: list[ChunkRecord] = []
        # names bound by declarations, keyed by id() of the enclosing chunk (None at module level)
        self._bindings: dict[int | None, dict[str, ChunkRecord]] = {}

    def visit(self, node: tree_sitter.Node, exported: bool = False) -> None:
        kind = node.type
        if kind == "import_statement":
            self.imports.append(_parse_import(node))
            return
        if kind == "export_statement":
            self._collect_exported_names(node)

        if kind in _JSX_NODE_TYPES:
            self.has_jsx = True
            if self._stack:
                self._stack[-1].contains_jsx = True
            if kind != "jsx_fragment":
                self._record_element(node)

        chunk = self._chunk_for(node, exported)
        if chunk is not None:
            if kind in _BINDING_TYPES:
                owner = id(self._stack[-1]) if self._stack else None
                self._bindings.setdefault(owner, {}).setdefault(chunk.name, chunk)
            self.functions.append(chunk)
            self._stack.append(chunk)

        child_exported = kind == "export_statement" or (
            exported and kind in ("lexical_declaration", "variable_declaration")
        )
        for child in node.children:
            self.visit(child, child_exported)

        if chunk is not None:
            self._stack.pop()

    # -- chunks --

    def _chunk_for(self, node: tree_sitter.Node, exported: bool) -> ChunkRecord | None:
        kind = node.type
        function_node = node
        name_node: tree_sitter.Node | None = None
        is_default = False
        if kind in ("function_declaration", "generator_function_declaration", "method_definition"):
            name_node = node.child_by_field_name("name")
        elif kind == "variable_declarator" or kind == "pair" or kind in _FIELD_TYPES:
            value = node.child_by_field_name("value")
            if value is None or value.type not in _FUNCTION_VALUE_TYPES:
                return None
            function_node = value
            if kind == "variable_declarator":
                name_node = node.child_by_field_name("name")
                if name_node is not None and name_node.type != "identifier":
                    return None
            elif kind == "pair":
                name_node = node.child_by_field_name("key")
            else:
                name_node = node.child_by_field_name("name") or node.child_by_field_name("property")
        elif kind in _FUNCTION_VALUE_TYPES and exported and _is_default_export(node.parent):
            # export default () => ... / export default function () {...}
            name_node = node.child_by_field_name("name")
            is_default = True
        else:
            return None

        name = _text(name_node).strip("'\"") or ("default" if is_default else "")
        if not name:
            return None
        start, end = _span(node)
        return ChunkRecord(
            name=name,
            start_line=start,
            end_line=end,
            declaration_line=(name_node.start_point.row + 1) if name_node else start,
            parent=self._stack[-1].name if self._stack else None,
            is_export=is_default or (exported and kind in ("function_declaration", "variable_declarator")),
            body_start=_start(function_node),
        )

    def _collect_exported_names(self, node: tree_sitter.Node) -> None:
        if node.child_by_field_name("source") is not None:
            return  # re-export from another module
        is_default = any(child.type == "default" for child in node.children)
        for child in node.children:
            if child.type == "export_clause":
                for spec in child.children:
                    if spec.type == "export_specifier":
                        self.exported_names.add(_text(spec.child_by_field_name("name")))
            elif is_default and child.type == "identifier":
                self.exported_names.add(_text(child))

    # -- JSX --

    def _record_element(self, node: tree_sitter.Node) -> None:
        opening = node
        if node.type == "jsx_element":
            opening = node.child_by_field_name("open_tag") or next(
                (c for c in node.children if c.type == "jsx_opening_element"), node
            )

        refs: list[_HandlerRef] = []
        for attr in opening.children:
            if attr.type != "jsx_attribute" or not attr.children:
                continue
            prop = _text(attr.children[0])
            if not _HANDLER_PROP_RE.match(prop):
                continue
            ref = _handler_ref(prop, attr.children[-1] if len(attr.children) > 1 else None)
            if ref is not None:
                refs.append(ref)
        if not refs:
            return

        start, end = _span(node)
        open_start, open_end = _span(opening)
        record = ElementHandlerRecord(
            tag_name=_text(opening.child_by_field_name("name")) or "element",
            start_line=start,
            end_line=end,
            opening_start_line=open_start,
            opening_end_line=open_end,
            opening_column=opening.start_point.column,
            condition_ranges=_condition_ranges(node),
        )
        self.elements.append(_PendingElement(record=record, refs=refs, scope=list(self._stack)))

    # -- post-pass --

    def _resolve(self, name: str, scope: list[ChunkRecord]) -> ChunkRecord | None:
        """Find the declaration *name* refers to, innermost enclosing scope first."""
        for owner in [*(id(chunk) for chunk in reversed(scope)), None]:
            chunk = self._bindings.get(owner, {}).get(name)
            if chunk is not None:
                return chunk
        return None

    def finish(self, result: ParseResult, file_name: str | None) -> None:
        is_store_file = bool(file_name and _STORE_FILE_RE.search(PurePath(file_name).name))
        for chunk in self.functions:
            if chunk.parent is None and chunk.name in self.exported_names:
                chunk.is_export = True
            chunk.is_component_like = chunk.name[:1].isupper() or chunk.contains_jsx
            chunk.category = _categorize(chunk, is_store_file)

        elements: list[ElementHandlerRecord] = []
        for pending in self.elements:
            record = pending.record
            for ref in pending.refs:
                span, column = ref.span, ref.column
                if span is None and ref.identifier is not None:
                    target = self._resolve(ref.identifier, pending.scope)
                    if target is not None:
                        line, end, column = target.measured_range
                        span = (line, end)
                if span is None:
                    continue
                record.handler_names.append(ref.prop)
                record.handler_ranges.append(span)
                record.handler_columns.append(column)
            if record.handler_ranges:
                elements.append(record)

        result.functions = self.functions
        result.jsx_elements = elements
        result.imports = self.imports
        result.has_jsx = self.has_jsx
        result.exports_jsx = any(c.is_export and c.contains_jsx for c in self.functions)


def _categorize(chunk: ChunkRecord, is_store_file: bool) -> str:
    if _HOOK_NAME_RE.match(chunk.name):
        return ChunkCategory.HOOK
    if is_store_file or chunk.name.endswith("Store"):
        return ChunkCategory.STORE
    if _HANDLER_NAME_RE.match(chunk.name):
        return ChunkCategory.HANDLER
    if chunk.contains_jsx:
        return ChunkCategory.COMPONENT
    return ChunkCategory.UTILITY


def _handler_ref(prop: str, value: tree_sitter.Node | None) -> _HandlerRef | None:
    if value is None:
        return None
    if value.type == "jsx_expression":
        value = next((c for c in value.named_children if c.type != "comment"), None)
        if value is None:
            return None
    while value.type == "parenthesized_expression" and value.named_children:
        value = value.named_children[0]

    if value.type in _FUNCTION_VALUE_TYPES:
        return _HandlerRef(prop=prop, span=_span(value), column=value.start_point.column)
    if value.type == "identifier":
        return _HandlerRef(prop=prop, identifier=_text(value))
    if value.type in ("call_expression", "member_expression"):
        return _HandlerRef(prop=prop, span=_span(value), column=value.start_point.column)
    return None


def _is_default_export(node: tree_sitter.Node | None) -> bool:
    return node is not None and node.type == "export_statement" and any(c.type == "default" for c in node.children)


def _condition_ranges(node: tree_sitter.Node) -> list[tuple[int, int]]:
    """Range of the test guarding *node*, up to the nearest JSX or function boundary."""
    child = node
    parent = node.parent
    while parent is not None and parent.type not in _CONDITION_BOUNDARY_TYPES:
        if parent.type == "binary_expression":
            operator = parent.child_by_field_name("operator")
            right = parent.child_by_field_name("right")
            left = parent.child_by_field_name("left")
            if operator is not None and operator.type == "&&" and left is not None and _same(right, child):
                return [_span(left)]
        elif parent.type == "ternary_expression":
            condition = parent.child_by_field_name("condition")
            if condition is not None and not _same(condition, child):
                return [_span(condition)]
        child = parent
        parent = parent.parent
    return []


def _same(left: tree_sitter.Node | None, right: tree_sitter.Node) -> bool:
    return left is not None and left.start_byte == right.start_byte and left.end_byte == right.end_byte


def _parse_import(node: tree_sitter.Node) -> ImportInfo:
    source = ""
    names: list[str] = []
    alias = None
    is_wildcard = False
    is_type_only = False

    for child in node.children:
        if child.type == "string":
            source = _text(child).strip("'\"")
        elif child.type == "type":
            is_type_only = True
        elif child.type == "import_clause":
            for sub in child.children:
                if sub.type == "identifier":
                    alias = _text(sub)
                elif sub.type == "named_imports":
                    for spec in sub.children:
                        if spec.type == "import_specifier":
                            name_node = spec.child_by_field_name("name")
                            if name_node:
                                names.append(_text(name_node))
                elif sub.type == "namespace_import":
                    is_wildcard = True
                    for ns_child in sub.children:
                        if ns_child.type == "identifier":
                            alias = _text(ns_child)

    return ImportInfo(
        module=source,
        names=names,
        alias=alias,
        start_line=node.start_point.row + 1,
        is_wildcard=is_wildcard,
        is_type_only=is_type_only,
    )


class JavaScriptExtractor(LanguageExtractor):
    language = "javascript"

    def extract_structure(
        self, root: tree_sitter.Node, result: ParseResult, file_name: str | None
    ) -> None:
        walker = _Walker()
        walker.visit(root)
        walker.finish(result, file_name)


class TypeScriptExtractor(JavaScriptExtractor):
    language = "typescript"


class TSXExtractor(JavaScriptExtractor):
    language = "tsx"
