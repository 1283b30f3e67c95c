"""Shared test helpers for the Sable front end test suite."""

from __future__ import annotations

from sable.ast_nodes import Module
from sable.errors import Severity
from sable.parser import ParseResult, parse_source
from sable.source import Span

# Spans are excluded from node equality; expected trees use this one.
S = Span("<test>", 1, 1, 1, 1)


def parse(source: str) -> Module:
    """Parse source, asserting no errors. Returns the module."""
    result = parse_source(source, "<test>")
    errors = [f"{d.code}: {d.message}" for d in result.errors]
    assert not errors, f"Unexpected errors: {errors}"
    return result.module


def parse_result(source: str) -> ParseResult:
    return parse_source(source, "<test>")


def codes(source: str) -> list[str]:
    """Codes of every diagnostic reported for source."""
    return [d.code for d in parse_source(source, "<test>").diagnostics]


def parse_fails(source: str, error_code: str) -> list:
    """Parse source, asserting the given error code appears."""
    result = parse_source(source, "<test>")
    matching = [d for d in result.diagnostics if d.code == error_code]
    assert matching, (
        f"Expected error {error_code} but got: "
        f"{[f'{d.code}: {d.message}' for d in result.diagnostics]}"
    )
    return matching


def warnings(source: str) -> list:
    result = parse_source(source, "<test>")
    return [d for d in result.diagnostics if d.severity == Severity.WARNING]


def body(source: str):
    """Body of the single clause of the only definition in source."""
    module = parse(source)
    decl = module.declarations[-1]
    assert len(decl.clauses) == 1
    return decl.clauses[0].body
