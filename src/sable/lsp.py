"""Sable Language Server: pygls-based LSP for .sbl files.

Publishes parse diagnostics and serves document symbols, completion and
hover via stdio transport.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer

from sable import __version__
from sable.ast_nodes import (
    DataDef,
    EffectDef,
    InstanceDef,
    Module,
    Signature,
    TermDef,
    TypeAnnotation,
    TypeClassDef,
)
from sable.errors import Diagnostic, Severity
from sable.parser import parse_source
from sable.source import SourceFile, Span
from sable.tokens import KEYWORDS, Token

# ── Conversion helpers ────────────────────────────────────────────

_SEVERITY_MAP = {
    Severity.ERROR: lsp.DiagnosticSeverity.Error,
    Severity.WARNING: lsp.DiagnosticSeverity.Warning,
    Severity.NOTE: lsp.DiagnosticSeverity.Information,
}

_KEYWORD_COMPLETIONS = sorted(KEYWORDS.keys())


def span_to_range(span: Span) -> lsp.Range:
    """Convert a 1-indexed Sable Span to a 0-indexed LSP Range."""
    return lsp.Range(
        start=lsp.Position(line=span.start_line - 1, character=span.start_col - 1),
        end=lsp.Position(line=span.end_line - 1, character=span.end_col - 1),
    )


def _compile_diag(d: Diagnostic) -> lsp.Diagnostic:
    """Convert a Sable Diagnostic to an LSP Diagnostic."""
    span_range = lsp.Range(start=lsp.Position(0, 0), end=lsp.Position(0, 0))
    if d.span is not None:
        span_range = span_to_range(d.span)
    return lsp.Diagnostic(
        range=span_range,
        severity=_SEVERITY_MAP.get(d.severity, lsp.DiagnosticSeverity.Error),
        source="sable",
        code=d.code,
        message=f"[{d.code}] {d.message}",
    )


# ── Per-document state ────────────────────────────────────────────


@dataclass
class DocumentState:
    """Cached analysis results for a single open document."""

    source: str = ""
    tokens: list[Token] = field(default_factory=list)
    module: Module | None = None
    diagnostics: list[lsp.Diagnostic] = field(default_factory=list)


# ── Server ────────────────────────────────────────────────────────

server = LanguageServer(
    "sable-lsp", __version__,
    text_document_sync_kind=lsp.TextDocumentSyncKind.Full,
)
_state: dict[str, DocumentState] = {}


def _analyze(uri: str, source: str) -> DocumentState:
    """Lex and parse, cache results, return state."""
    result = parse_source(source, uri)
    ds = DocumentState(
        source=source,
        tokens=result.tokens,
        module=result.module,
        diagnostics=[_compile_diag(d) for d in result.diagnostics],
    )
    _state[uri] = ds
    return ds


def _get_word_at(source: str, line: int, character: int) -> str:
    """Extract the word at the given 0-indexed position."""
    lines = source.splitlines()
    if line < 0 or line >= len(lines):
        return ""
    text = lines[line]
    if character < 0 or character >= len(text):
        if 0 < character <= len(text):
            character -= 1
        else:
            return ""

    start = character
    while start > 0 and (text[start - 1].isalnum() or text[start - 1] == "_"):
        start -= 1
    end = character
    while end < len(text) and (text[end].isalnum() or text[end] == "_"):
        end += 1
    return text[start:end]


def _top_level_names(module: Module) -> list[str]:
    names: list[str] = []
    for decl in module.declarations:
        if isinstance(decl, (TermDef, DataDef, EffectDef, TypeClassDef)):
            names.append(decl.name)
        if isinstance(decl, DataDef):
            names.extend(c.name for c in decl.constructors if not c.implicit)
        elif isinstance(decl, EffectDef):
            names.extend(op.name for op in decl.operations)
        elif isinstance(decl, TypeClassDef):
            names.extend(m.name for m in decl.members if isinstance(m, Signature))
    return list(dict.fromkeys(names))


def _annotation_text(ds: DocumentState, name: str) -> str | None:
    """Source text of the annotation for a top-level ``name``, if any."""
    if ds.module is None:
        return None
    for decl in ds.module.declarations:
        if isinstance(decl, TypeAnnotation) and decl.name == name:
            span = decl.type_expr.span
            return SourceFile(Path(span.file), ds.source).span_text(span)
    return None


# ── LSP Feature Handlers ─────────────────────────────────────────


@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: lsp.DidOpenTextDocumentParams) -> None:
    uri = params.text_document.uri
    ds = _analyze(uri, params.text_document.text)
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=ds.diagnostics,
    ))


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: lsp.DidChangeTextDocumentParams) -> None:
    uri = params.text_document.uri
    # Full sync: the last change holds the whole document
    source = params.content_changes[-1].text if params.content_changes else ""
    ds = _analyze(uri, source)
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=ds.diagnostics,
    ))


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
def did_close(params: lsp.DidCloseTextDocumentParams) -> None:
    _state.pop(params.text_document.uri, None)


@server.feature(lsp.TEXT_DOCUMENT_HOVER)
def hover(params: lsp.HoverParams) -> lsp.Hover | None:
    ds = _state.get(params.text_document.uri)
    if ds is None:
        return None
    word = _get_word_at(ds.source, params.position.line, params.position.character)
    if not word:
        return None
    text = _annotation_text(ds, word)
    if text is None:
        return None
    return lsp.Hover(contents=lsp.MarkupContent(
        kind=lsp.MarkupKind.Markdown,
        value=f"`{word} @ {text}`",
    ))


@server.feature(lsp.TEXT_DOCUMENT_COMPLETION)
def completion(params: lsp.CompletionParams) -> lsp.CompletionList:
    ds = _state.get(params.text_document.uri)
    return lsp.CompletionList(is_incomplete=False, items=_completion_items(ds))


def _completion_items(ds: DocumentState | None) -> list[lsp.CompletionItem]:
    items = [
        lsp.CompletionItem(label=kw, kind=lsp.CompletionItemKind.Keyword)
        for kw in _KEYWORD_COMPLETIONS
    ]
    if ds is not None and ds.module is not None:
        for name in _top_level_names(ds.module):
            kind = (lsp.CompletionItemKind.Class if name[:1].isupper()
                    else lsp.CompletionItemKind.Function)
            items.append(lsp.CompletionItem(label=name, kind=kind))
    return items


@server.feature(lsp.TEXT_DOCUMENT_DOCUMENT_SYMBOL)
def document_symbol(params: lsp.DocumentSymbolParams) -> list[lsp.DocumentSymbol]:
    ds = _state.get(params.text_document.uri)
    if ds is None or ds.module is None:
        return []

    symbols: list[lsp.DocumentSymbol] = []
    for decl in ds.module.declarations:
        sym = _decl_to_symbol(decl)
        if sym is not None:
            symbols.append(sym)
    return symbols


def _symbol(name: str, kind: lsp.SymbolKind, span: Span,
            children: list[lsp.DocumentSymbol] | None = None) -> lsp.DocumentSymbol:
    return lsp.DocumentSymbol(
        name=name,
        kind=kind,
        range=span_to_range(span),
        selection_range=span_to_range(span),
        children=children or None,
    )


def _decl_to_symbol(decl: object) -> lsp.DocumentSymbol | None:
    """Convert a top-level declaration to an LSP DocumentSymbol."""
    if isinstance(decl, TermDef):
        kind = lsp.SymbolKind.Function
        if all(not c.patterns for c in decl.clauses):
            kind = lsp.SymbolKind.Constant
        return _symbol(decl.name, kind, decl.span)
    if isinstance(decl, DataDef):
        children = [
            _symbol(c.name, lsp.SymbolKind.Constructor, c.span)
            for c in decl.constructors if not c.implicit
        ]
        return _symbol(decl.name, lsp.SymbolKind.Class, decl.span, children)
    if isinstance(decl, EffectDef):
        children = [
            _symbol(op.name, lsp.SymbolKind.Method, op.span) for op in decl.operations
        ]
        return _symbol(decl.name, lsp.SymbolKind.Event, decl.span, children)
    if isinstance(decl, TypeClassDef):
        children = [
            _symbol(m.name, lsp.SymbolKind.Method, m.span)
            for m in decl.members if isinstance(m, Signature)
        ]
        return _symbol(decl.name, lsp.SymbolKind.Interface, decl.span, children)
    if isinstance(decl, InstanceDef):
        return _symbol(f"instance {decl.class_name}", lsp.SymbolKind.Object, decl.span)
    return None


# ── Entry point ──────────────────────────────────────────────────


def main() -> None:
    """Start the Sable language server on stdio."""
    server.start_io()
