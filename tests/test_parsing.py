"""Tests for tree-sitter parsing and JavaScript/TypeScript structure extraction."""

from __future__ import annotations

import pytest

from covgate.parsing.languages import extract_from_file, extract_from_source, get_extractor
from covgate.parsing.treesitter import (
    SUPPORTED_LANGUAGES,
    ChunkCategory,
    ParseResult,
    clear_caches,
    detect_language,
    parse_code,
)

# ---------------------------------------------------------------------------
# treesitter.py: core wrapper tests
# ---------------------------------------------------------------------------


class TestDetectLanguage:
    def test_javascript(self) -> None:
        assert detect_language("app.js") == "javascript"
        assert detect_language("app.mjs") == "javascript"
        assert detect_language("app.cjs") == "javascript"
        assert detect_language("app.jsx") == "javascript"

    def test_typescript(self) -> None:
        assert detect_language("app.ts") == "typescript"
        assert detect_language("app.mts") == "typescript"
        assert detect_language("app.cts") == "typescript"

    def test_tsx(self) -> None:
        assert detect_language("component.tsx") == "tsx"

    def test_unknown(self) -> None:
        assert detect_language("main.py") is None
        assert detect_language("Makefile") is None

    def test_case_insensitive(self) -> None:
        assert detect_language("App.TSX") == "tsx"


class TestParseCode:
    def test_parse_is_cached_by_content(self) -> None:
        source = b"const a = 1;\n"
        assert parse_code(source, "javascript") is parse_code(source, "javascript")

    def test_clear_caches_drops_trees(self) -> None:
        source = b"const b = 2;\n"
        first = parse_code(source, "javascript")
        clear_caches()
        assert parse_code(source, "javascript") is not first

    def test_unsupported_language(self) -> None:
        with pytest.raises(ValueError, match="Unsupported language"):
            parse_code(b"x = 1", "python")

    def test_supported_languages(self) -> None:
        assert {"javascript", "typescript", "tsx"} == SUPPORTED_LANGUAGES


class TestGetExtractor:
    def test_known_languages(self) -> None:
        for language in SUPPORTED_LANGUAGES:
            assert get_extractor(language).language == language

    def test_unknown_language(self) -> None:
        with pytest.raises(ValueError, match="No extractor"):
            get_extractor("cobol")


# ---------------------------------------------------------------------------
# Chunk extraction
# ---------------------------------------------------------------------------

TS_MODULE = b"""\
import { helper } from './helper';

export function useCounter(initial: number) {
  const increment = () => {
    return initial + 1;
  };
  return { increment };
}

export const formatLabel = (value: string): string => value.trim();

class Counter {
  reset() {
    return 0;
  }
}

function handleReset() {
  return 1;
}
"""


@pytest.fixture
def ts_module() -> ParseResult:
    return extract_from_source(TS_MODULE, "typescript", "src/counter.ts")


class TestChunkExtraction:
    def test_chunk_names_in_document_order(self, ts_module: ParseResult) -> None:
        assert [c.name for c in ts_module.functions] == [
            "useCounter",
            "increment",
            "formatLabel",
            "reset",
            "handleReset",
        ]

    def test_line_spans(self, ts_module: ParseResult) -> None:
        spans = {c.name: (c.start_line, c.end_line) for c in ts_module.functions}
        assert spans["useCounter"] == (3, 8)
        assert spans["increment"] == (4, 6)
        assert spans["formatLabel"] == (10, 10)
        assert spans["reset"] == (13, 15)
        assert spans["handleReset"] == (18, 20)

    def test_nesting_records_parent(self, ts_module: ParseResult) -> None:
        chunks = {c.name: c for c in ts_module.functions}
        assert chunks["increment"].parent == "useCounter"
        assert chunks["useCounter"].parent is None
        assert chunks["reset"].parent is None

    def test_exports(self, ts_module: ParseResult) -> None:
        exported = {c.name for c in ts_module.functions if c.is_export}
        assert exported == {"useCounter", "formatLabel"}

    def test_categories(self, ts_module: ParseResult) -> None:
        categories = {c.name: c.category for c in ts_module.functions}
        assert categories["useCounter"] == ChunkCategory.HOOK
        assert categories["handleReset"] == ChunkCategory.HANDLER
        assert categories["formatLabel"] == ChunkCategory.UTILITY
        assert categories["reset"] == ChunkCategory.UTILITY

    def test_measured_range_starts_at_the_function(self, ts_module: ParseResult) -> None:
        chunks = {c.name: c for c in ts_module.functions}
        assert chunks["useCounter"].measured_range == (3, 8, 7)
        assert chunks["increment"].measured_range == (4, 6, 20)
        assert chunks["reset"].measured_range == (13, 15, 2)

    def test_declaration_line_is_name_line(self, ts_module: ParseResult) -> None:
        chunks = {c.name: c for c in ts_module.functions}
        assert chunks["useCounter"].declaration_line == 3
        assert chunks["reset"].declaration_line == 13

    def test_plain_module_has_no_jsx(self, ts_module: ParseResult) -> None:
        assert not ts_module.has_jsx
        assert not ts_module.exports_jsx
        assert ts_module.jsx_elements == []
        assert not any(c.is_component_like for c in ts_module.functions)

    def test_line_count_and_errors(self, ts_module: ParseResult) -> None:
        assert ts_module.line_count == 20
        assert not ts_module.has_errors

    def test_store_file_category(self) -> None:
        result = extract_from_source(b"export function reset() {\n  return 0;\n}\n", "typescript", "src/cart.store.ts")
        assert result.functions[0].category == ChunkCategory.STORE

    def test_store_name_category(self) -> None:
        result = extract_from_source(b"const useless = 1;\nconst cartStore = () => ({});\n", "typescript")
        assert [(c.name, c.category) for c in result.functions] == [("cartStore", ChunkCategory.STORE)]

    def test_object_and_class_field_functions(self) -> None:
        source = b"""\
const api = {
  load: () => fetch('/x'),
  save: function () { return 1; },
};
class Panel {
  onToggle = () => {
    this.open = !this.open;
  };
}
"""
        result = extract_from_source(source, "typescript")
        names = {c.name: c for c in result.functions}
        assert set(names) == {"load", "save", "onToggle"}
        assert names["onToggle"].category == ChunkCategory.HANDLER
        assert (names["onToggle"].start_line, names["onToggle"].end_line) == (6, 8)

    def test_export_clause_marks_chunks_exported(self) -> None:
        source = b"function format() {\n  return 1;\n}\nfunction local() {}\nexport { format };\n"
        result = extract_from_source(source, "javascript")
        assert {c.name: c.is_export for c in result.functions} == {"format": True, "local": False}

    def test_syntax_errors_are_reported(self) -> None:
        result = extract_from_source(b"function broken( {\n", "javascript")
        assert result.has_errors
        assert result.error_ranges


# ---------------------------------------------------------------------------
# Components and JSX elements
# ---------------------------------------------------------------------------

COMPONENT = b"""\
export const Button = ({ onPress }: Props) => {
  return <button onClick={onPress}>Hi</button>;
};
"""

PANEL = b"""\
function Panel() {
  const open = useState(false);
  function handleToggle() {
    setOpen(!open);
  }
  return (
    <div>
      {open && <button onClick={handleToggle}>Close</button>}
      <a onClick={() => track("x")}>Link</a>
      <span onMouseEnter={this.onEnter} />
      <p className="static">Text</p>
      {open ? <Modal onClose={handleToggle} /> : null}
    </div>
  );
}
"""


class TestComponents:
    def test_component_chunk(self) -> None:
        result = extract_from_source(COMPONENT, "tsx", "src/Button.tsx")
        button = result.functions[0]
        assert button.name == "Button"
        assert button.is_component_like
        assert button.contains_jsx
        assert button.category == ChunkCategory.COMPONENT
        assert result.has_jsx
        assert result.exports_jsx

    def test_unresolvable_handler_is_not_recorded(self) -> None:
        result = extract_from_source(COMPONENT, "tsx", "src/Button.tsx")
        assert result.jsx_elements == []

    def test_pascal_case_without_jsx_is_component_like(self) -> None:
        result = extract_from_source(b"function Layout() {\n  return null;\n}\n", "javascript")
        chunk = result.functions[0]
        assert chunk.is_component_like
        assert chunk.category == ChunkCategory.UTILITY

    @pytest.mark.parametrize(
        "source",
        [
            b"export default () => <div onClick={() => helper()}>x</div>;\n",
            b"export default function () {\n  return <div onClick={() => helper()}>x</div>;\n}\n",
        ],
    )
    def test_anonymous_default_export_is_a_component_chunk(self, source: bytes) -> None:
        result = extract_from_source(source, "tsx", "src/Panel.tsx")
        [chunk] = result.functions
        assert chunk.name == "default"
        assert chunk.is_export
        assert chunk.category == ChunkCategory.COMPONENT
        assert result.exports_jsx
        assert [e.tag_name for e in result.jsx_elements] == ["div"]

    def test_named_default_export_keeps_its_name(self) -> None:
        result = extract_from_source(b"export default function Panel() {\n  return <div />;\n}\n", "tsx")
        assert [(c.name, c.is_export) for c in result.functions] == [("Panel", True)]
        assert result.exports_jsx

    def test_non_exported_component_does_not_export_jsx(self) -> None:
        result = extract_from_source(b"const Item = () => <li>x</li>;\n", "javascript")
        assert result.has_jsx
        assert not result.exports_jsx


class TestJSXElements:
    @pytest.fixture
    def elements(self) -> dict[str, object]:
        result = extract_from_source(PANEL, "javascript", "src/Panel.jsx")
        return {e.tag_name: e for e in result.jsx_elements}

    def test_only_elements_with_handlers(self, elements: dict[str, object]) -> None:
        assert set(elements) == {"button", "a", "span", "Modal"}

    def test_identifier_handler_resolves_to_local_function(self, elements: dict[str, object]) -> None:
        button = elements["button"]
        assert button.handler_names == ["onClick"]
        assert button.handler_ranges == [(3, 5)]
        assert button.opening_range == (8, 8)

    def test_logical_and_condition(self, elements: dict[str, object]) -> None:
        assert elements["button"].condition_ranges == [(8, 8)]

    def test_inline_arrow_handler(self, elements: dict[str, object]) -> None:
        link = elements["a"]
        assert link.handler_ranges == [(9, 9)]
        assert link.condition_ranges == []

    def test_member_expression_handler(self, elements: dict[str, object]) -> None:
        assert elements["span"].handler_ranges == [(10, 10)]

    def test_ternary_condition(self, elements: dict[str, object]) -> None:
        modal = elements["Modal"]
        assert modal.handler_ranges == [(3, 5)]
        assert modal.condition_ranges == [(12, 12)]

    def test_multi_line_element(self) -> None:
        source = b"""\
function Form() {
  const submit = () => {
    save();
  };
  return (
    <form
      onSubmit={submit}
    >
      <input />
    </form>
  );
}
"""
        result = extract_from_source(source, "javascript")
        form = result.jsx_elements[0]
        assert form.tag_name == "form"
        assert form.opening_range == (6, 8)
        assert (form.start_line, form.end_line) == (6, 10)
        assert form.handler_ranges == [(2, 4)]
        assert form.handler_columns == [17]
        assert form.opening_column == 4

    def test_handler_resolves_in_enclosing_component(self) -> None:
        source = b"""\
function A() {
  const handleClick = () => {
    a();
  };
  return <button onClick={handleClick}>A</button>;
}
function B() {
  const handleClick = () => {
    b();
  };
  return <button onClick={handleClick}>B</button>;
}
"""
        result = extract_from_source(source, "javascript")
        assert [e.handler_ranges for e in result.jsx_elements] == [[(2, 4)], [(8, 10)]]

    def test_handler_falls_back_to_module_scope(self) -> None:
        source = b"""\
function handleSave() {
  persist();
}
const api = { onReset: () => reset() };
function Toolbar() {
  return <div><b onClick={handleSave} /><i onClick={onReset} /></div>;
}
"""
        result = extract_from_source(source, "javascript")
        [bold] = result.jsx_elements
        assert bold.tag_name == "b"
        assert bold.handler_ranges == [(1, 3)]


class TestImports:
    def test_import_shapes(self) -> None:
        source = b"""\
import React from 'react';
import { useData, useOther as other } from './hooks/useData';
import * as utils from "../utils";
import type { Props } from './types';
import './styles.css';
"""
        imports = extract_from_source(source, "tsx").imports
        assert [i.module for i in imports] == [
            "react",
            "./hooks/useData",
            "../utils",
            "./types",
            "./styles.css",
        ]
        assert imports[0].alias == "React"
        assert not imports[0].is_relative
        assert imports[1].names == ["useData", "useOther"]
        assert imports[2].is_wildcard
        assert imports[2].alias == "utils"
        assert imports[3].is_type_only
        assert not imports[1].is_type_only
        assert imports[4].is_relative
        assert imports[1].start_line == 2


def test_extract_from_file(tmp_path) -> None:
    path = tmp_path / "thing.store.ts"
    path.write_text("export const load = () => 1;\n")
    result = extract_from_file(path)
    assert result.language == "typescript"
    assert result.functions[0].category == ChunkCategory.STORE


def test_extract_from_file_unknown_extension(tmp_path) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("hello")
    with pytest.raises(ValueError, match="Cannot detect language"):
        extract_from_file(path)
