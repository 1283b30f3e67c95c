"""Parser for the Sable programming language.

Recursive descent over a ``TokenStream``, with precedence climbing for
binary operators. The grammar is split across mixins by sublanguage;
``Parser`` combines them and provides the public entry points.

Errors are collected rather than raised: ``Parser.parse`` always returns
a ``Module`` and leaves its diagnostics on the reporter.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from sable.ast_nodes import Expr, Module, TypeExpr
from sable.decl_parser import DeclarationParser
from sable.errors import CompileError, Diagnostic, LexError, Severity
from sable.expr_parser import ExpressionParser
from sable.lexer import Lexer
from sable.parser_base import T, _ParseError
from sable.pattern_parser import PatternParser
from sable.tokens import Token, TokenKind
from sable.type_parser import TypeParser


class Parser(DeclarationParser, ExpressionParser, TypeParser, PatternParser):
    """Parses a Sable token stream into an AST."""

    def parse(self) -> Module:
        """Parse the entire token stream into a Module."""
        return self._parse_module()

    def parse_expression_only(self) -> Expr:
        """Parse the stream as a single expression.

        Raises CompileError on any error or on trailing input.
        """
        return self._parse_whole(self._parse_expression)

    def parse_type_only(self) -> TypeExpr:
        """Parse the stream as a single type. Raises CompileError on failure."""
        return self._parse_whole(self._parse_type)

    def _parse_whole(self, production: Callable[[], T]) -> T:
        result: T | None = None
        self._skip_separators()
        try:
            result = production()
            self._skip_separators()
            if not self._at(TokenKind.EOF):
                self._unexpected(["end of input"])
        except _ParseError:
            result = None
        except RecursionError:
            self._nested_too_deeply()
            result = None
        if result is None or self.reporter.has_errors():
            raise CompileError(_errors(self.diagnostics))
        return result


def _errors(diagnostics: list[Diagnostic]) -> list[Diagnostic]:
    return [d for d in diagnostics if d.severity == Severity.ERROR]


@dataclass
class ParseResult:
    """Outcome of parsing one source unit.

    ``module`` is None only when lexing failed.
    """

    module: Module | None
    diagnostics: list[Diagnostic]
    tokens: list[Token] = field(default_factory=list)

    @property
    def errors(self) -> list[Diagnostic]:
        return _errors(self.diagnostics)

    @property
    def ok(self) -> bool:
        return self.module is not None and not self.errors

    def unwrap(self) -> Module:
        """The module, or CompileError if any error was reported."""
        if not self.ok:
            raise CompileError(self.errors)
        return self.module


def parse_source(source: str, filename: str = "<stdin>") -> ParseResult:
    """Lex and parse a whole source unit."""
    try:
        tokens = Lexer(source, filename).lex()
    except LexError as e:
        return ParseResult(None, list(e.diagnostics))
    parser = Parser(tokens, filename)
    module = parser.parse()
    return ParseResult(module, parser.diagnostics, tokens)


def parse_expression(source: str, filename: str = "<stdin>") -> Expr:
    """Lex and parse a single expression. Raises CompileError."""
    return Parser(Lexer(source, filename).lex(), filename).parse_expression_only()


def parse_type(source: str, filename: str = "<stdin>") -> TypeExpr:
    """Lex and parse a single type. Raises CompileError."""
    return Parser(Lexer(source, filename).lex(), filename).parse_type_only()
