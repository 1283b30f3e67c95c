"""Tests for the Sable LSP server."""

from __future__ import annotations

from lsprotocol import types as lsp

from sable.errors import Severity
from sable.lsp import (
    _SEVERITY_MAP,
    DocumentState,
    _analyze,
    _annotation_text,
    _completion_items,
    _decl_to_symbol,
    _get_word_at,
    _state,
    completion,
    span_to_range,
)
from sable.parser import parse_source
from sable.source import Span

SHAPES = (
    "module Shapes\n"
    "\n"
    "data Shape = [Circle Float, Rect Float Float]\n"
    "\n"
    "@ Shape -> Float\n"
    "area (Circle r) = 3.14 * r * r\n"
    "area (Rect w h) = w * h\n"
    "\n"
    "effect Log = [log @ String -> ()]\n"
    "\n"
    "typeclass Describe a = [describe @ a -> String]\n"
    "\n"
    'instance Describe Shape = [describe s = "shape"]\n'
    "\n"
    "unit = 1.0\n"
)


def _decls(source: str) -> list:
    result = parse_source(source, "<test>")
    assert result.ok
    return result.module.declarations


class TestSpanConversion:
    def test_span_to_range_basic(self):
        span = Span("test.sbl", 1, 1, 1, 6)
        r = span_to_range(span)
        assert r.start.line == 0
        assert r.start.character == 0
        assert r.end.line == 0
        assert r.end.character == 5

    def test_span_to_range_multiline(self):
        span = Span("test.sbl", 5, 3, 7, 10)
        r = span_to_range(span)
        assert r.start.line == 4
        assert r.start.character == 2
        assert r.end.line == 6
        assert r.end.character == 9

    def test_empty_span(self):
        r = span_to_range(Span("test.sbl", 2, 4, 2, 4))
        assert r.start == r.end


class TestSeverityMap:
    def test_error_maps(self):
        assert _SEVERITY_MAP[Severity.ERROR] == lsp.DiagnosticSeverity.Error

    def test_warning_maps(self):
        assert _SEVERITY_MAP[Severity.WARNING] == lsp.DiagnosticSeverity.Warning

    def test_note_maps(self):
        assert _SEVERITY_MAP[Severity.NOTE] == lsp.DiagnosticSeverity.Information


class TestGetWordAt:
    def test_word_middle(self):
        assert _get_word_at("area shape", 0, 2) == "area"

    def test_word_end(self):
        assert _get_word_at("area shape", 0, 4) == "area"

    def test_second_word(self):
        assert _get_word_at("area shape", 0, 7) == "shape"

    def test_underscore_word(self):
        assert _get_word_at("my_var = 42", 0, 3) == "my_var"

    def test_second_line(self):
        assert _get_word_at("a = 1\nbee = 2", 1, 1) == "bee"

    def test_empty(self):
        assert _get_word_at("", 0, 0) == ""

    def test_out_of_range(self):
        assert _get_word_at("hello", 5, 0) == ""


class TestAnalyze:
    def test_analyze_valid_source(self):
        ds = _analyze("file:///shapes.sbl", SHAPES)
        assert ds.module is not None
        assert ds.module.name == "Shapes"
        assert ds.tokens
        assert ds.diagnostics == []

    def test_analyze_parse_error(self):
        ds = _analyze("file:///bad.sbl", "f = = 1\ng = 2\n")
        assert ds.module is not None
        assert len(ds.diagnostics) == 1
        diag = ds.diagnostics[0]
        assert diag.code == "E200"
        assert diag.message.startswith("[E200]")
        assert diag.source == "sable"
        assert diag.range.start.line == 0
        assert diag.range.start.character == 4

    def test_analyze_warning(self):
        ds = _analyze("file:///warn.sbl", "f @ Int\ng = 1\n")
        assert [d.severity for d in ds.diagnostics] == [lsp.DiagnosticSeverity.Warning]

    def test_analyze_lex_error(self):
        ds = _analyze("file:///lex.sbl", 'x = "unterminated\n')
        assert ds.module is None
        assert ds.tokens == []
        assert [d.code for d in ds.diagnostics] == ["E100"]

    def test_analyze_caches_state(self):
        uri = "file:///cache_test.sbl"
        ds = _analyze(uri, "main = 1\n")
        assert _state.get(uri) is ds
        _state.pop(uri, None)


class TestDocumentState:
    def test_default_state(self):
        ds = DocumentState()
        assert ds.source == ""
        assert ds.tokens == []
        assert ds.module is None
        assert ds.diagnostics == []


class TestDocumentSymbols:
    def test_symbol_kinds(self):
        symbols = [_decl_to_symbol(d) for d in _decls(SHAPES)]
        named = [(s.name, s.kind) for s in symbols if s is not None]
        assert named == [
            ("Shape", lsp.SymbolKind.Class),
            ("area", lsp.SymbolKind.Function),
            ("Log", lsp.SymbolKind.Event),
            ("Describe", lsp.SymbolKind.Interface),
            ("instance Describe", lsp.SymbolKind.Object),
            ("unit", lsp.SymbolKind.Constant),
        ]

    def test_annotations_have_no_symbol(self):
        annotation = _decls(SHAPES)[1]
        assert _decl_to_symbol(annotation) is None

    def test_constructors_are_children(self):
        data = _decl_to_symbol(_decls(SHAPES)[0])
        assert [c.name for c in data.children] == ["Circle", "Rect"]
        assert all(c.kind == lsp.SymbolKind.Constructor for c in data.children)

    def test_record_shorthand_has_no_children(self):
        data = _decl_to_symbol(_decls("data Point = [x @ Int, y @ Int]")[0])
        assert data.children is None

    def test_symbol_range(self):
        [decl] = _decls("\nanswer = 42\n")
        sym = _decl_to_symbol(decl)
        assert sym.range.start.line == 1
        assert sym.range.start.character == 0
        assert sym.range.end.character == len("answer = 42")


class TestHoverText:
    def test_annotation_text(self):
        ds = _analyze("file:///hover.sbl", SHAPES)
        assert _annotation_text(ds, "area") == "Shape -> Float"

    def test_unannotated_name(self):
        ds = _analyze("file:///hover.sbl", SHAPES)
        assert _annotation_text(ds, "unit") is None

    def test_no_module(self):
        assert _annotation_text(DocumentState(), "area") is None


def _complete_labels(uri: str) -> set[str]:
    params = lsp.CompletionParams(
        text_document=lsp.TextDocumentIdentifier(uri=uri),
        position=lsp.Position(line=0, character=0),
    )
    return {item.label for item in completion(params).items}


class TestCompletion:
    def test_keywords_always_present(self):
        _analyze("<test://kw>", "")
        labels = _complete_labels("<test://kw>")
        for kw in ("if", "else", "case", "data", "effect", "typeclass",
                   "instance", "module", "for", "in"):
            assert kw in labels, f"keyword '{kw}' missing from completions"

    def test_unknown_document(self):
        labels = {item.label for item in _completion_items(None)}
        assert "case" in labels

    def test_top_level_names(self):
        _analyze("<test://names>", SHAPES)
        labels = _complete_labels("<test://names>")
        for name in ("Shape", "Circle", "Rect", "area", "Log", "log",
                     "Describe", "describe", "unit"):
            assert name in labels, f"'{name}' missing from completions"

    def test_keywords_with_lex_error(self):
        _analyze("<test://broken>", "x = 'ab'\n")
        labels = _complete_labels("<test://broken>")
        assert "case" in labels
        assert "x" not in labels

    def test_no_duplicate_labels(self):
        _analyze("<test://dup>", SHAPES)
        params = lsp.CompletionParams(
            text_document=lsp.TextDocumentIdentifier(uri="<test://dup>"),
            position=lsp.Position(line=0, character=0),
        )
        labels = [item.label for item in completion(params).items]
        assert len(labels) == len(set(labels))

    def test_completion_kinds(self):
        _analyze("<test://kinds>", SHAPES)
        by_label = {item.label: item for item in _completion_items(_state["<test://kinds>"])}
        assert by_label["case"].kind == lsp.CompletionItemKind.Keyword
        assert by_label["Shape"].kind == lsp.CompletionItemKind.Class
        assert by_label["area"].kind == lsp.CompletionItemKind.Function
