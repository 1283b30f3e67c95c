"""Token access, error reporting and recovery shared by the parser mixins."""

from __future__ import annotations

from collections.abc import Callable
from typing import NoReturn, TypeVar

from sable.errors import Diagnostic, DiagnosticReporter, ErrorKind
from sable.source import Span
from sable.stream import TokenStream
from sable.tokens import (
    CLOSERS,
    SEPARATORS,
    Token,
    TokenKind,
    describe_kind,
    describe_token,
)

T = TypeVar("T")


class _ParseError(Exception):
    """Internal exception for parser error recovery."""


def _join_expected(expected: list[str]) -> str:
    if len(expected) == 1:
        return expected[0]
    return ", ".join(expected[:-1]) + f" or {expected[-1]}"


class ParserBase:
    """State and helpers common to every part of the parser."""

    def __init__(
        self,
        tokens: list[Token],
        filename: str = "<stdin>",
        reporter: DiagnosticReporter | None = None,
    ) -> None:
        self.stream = TokenStream(tokens)
        self.filename = filename
        self.reporter = reporter or DiagnosticReporter()

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return self.reporter.diagnostics

    # ── Token access ─────────────────────────────────────────────

    def _current(self) -> Token:
        return self.stream.current

    def _peek(self, offset: int = 0) -> Token:
        return self.stream.peek(offset)

    def _previous(self) -> Token:
        return self.stream.previous or self.stream.current

    def _at(self, kind: TokenKind) -> bool:
        return self.stream.at(kind)

    def _at_any(self, *kinds: TokenKind) -> bool:
        return self.stream.at_any(*kinds)

    def _at_operator(self, op: str) -> bool:
        tok = self._current()
        return tok.kind == TokenKind.OPERATOR and tok.value == op

    def _at_separator(self, *, commas: bool = False) -> bool:
        kind = self._current().kind
        return kind in SEPARATORS or (commas and kind == TokenKind.COMMA)

    def _advance(self) -> Token:
        return self.stream.advance()

    def _expect(self, kind: TokenKind, context: str = "") -> Token:
        if self._at(kind):
            return self._advance()
        self._unexpected([describe_kind(kind)], context)

    def _expect_operator(self, op: str, context: str = "") -> Token:
        if self._at_operator(op):
            return self._advance()
        self._unexpected([f"`{op}`"], context)

    def _skip_newlines(self) -> None:
        while self._at(TokenKind.NEWLINE):
            self._advance()

    def _skip_separators(self, *, commas: bool = False) -> None:
        while self._at_separator(commas=commas):
            self._advance()

    # ── Diagnostics ──────────────────────────────────────────────

    def _error(self, kind: ErrorKind, message: str, span: Span, **kwargs) -> None:
        self.reporter.error(kind, message, span, **kwargs)

    def _fail(self, kind: ErrorKind, message: str, span: Span, **kwargs) -> NoReturn:
        self.reporter.error(kind, message, span, **kwargs)
        raise _ParseError

    def _unexpected(self, expected: list[str], context: str = "") -> NoReturn:
        tok = self._current()
        message = f"expected {_join_expected(expected)}, found {describe_token(tok)}"
        if context:
            message = f"{message} {context}"
        self._fail(ErrorKind.UNEXPECTED_TOKEN, message, tok.span, expected=expected)

    def _nested_too_deeply(self) -> None:
        """Report the interpreter's recursion limit at the current token."""
        self._error(
            ErrorKind.UNEXPECTED_TOKEN,
            "expression nested too deeply",
            self._current().span,
            notes=["split the expression into smaller named definitions"],
        )

    def _span_from(self, start: Span) -> Span:
        """Span from ``start`` to the end of the last consumed token."""
        return start.to(self._previous().span)

    # ── Recovery and speculation ─────────────────────────────────

    def _synchronize(self, level: int, *, commas: bool = False) -> None:
        """Skip to the next separator at bracket depth ``level``.

        The separator is consumed. Stops without consuming at the closer
        of the enclosing group, or at EOF.
        """
        while not self._at(TokenKind.EOF):
            depth = self.stream.depth
            if depth < level:
                return
            tok = self._current()
            if depth == level:
                if tok.kind in CLOSERS:
                    return
                if tok.kind in SEPARATORS or (commas and tok.kind == TokenKind.COMMA):
                    self._advance()
                    return
            self._advance()

    def _speculate(self, attempt: Callable[[], bool]) -> bool:
        """Run ``attempt`` without side effects and report its verdict."""
        mark = self.stream.mark()
        try:
            with self.reporter.muted():
                return attempt()
        except _ParseError:
            return False
        finally:
            self.stream.reset(mark)

    def _scan_depth_zero(self, stops: frozenset[TokenKind]) -> Token:
        """First token at the current depth whose kind is in ``stops``.

        Separators, the enclosing closer and EOF always stop the scan.
        """
        tokens = self.stream.tokens
        i = self.stream.pos
        depth = 0
        while True:
            tok = tokens[i]
            if tok.kind == TokenKind.EOF:
                return tok
            if tok.kind in CLOSERS:
                if depth == 0:
                    return tok
                depth -= 1
            elif tok.kind in (TokenKind.LPAREN, TokenKind.LBRACKET, TokenKind.LBRACE):
                depth += 1
            elif depth == 0 and (tok.kind in stops or tok.kind in SEPARATORS):
                return tok
            i += 1

    def _parse_items(
        self,
        parse_item: Callable[[], T],
        closer: TokenKind,
        *,
        commas: bool = False,
        what: str = "item",
    ) -> list[T]:
        """Parse separator-delimited items up to (not including) ``closer``.

        A failing item is skipped up to the next separator at this depth
        so that later items still get parsed.
        """
        items: list[T] = []
        level = self.stream.depth
        self._skip_separators(commas=commas)
        while not self._at(closer) and not self._at(TokenKind.EOF):
            try:
                items.append(parse_item())
                if not self._at(closer) and not self._at_separator(commas=commas):
                    expected = ["newline", "`;`"]
                    if commas:
                        expected.append("`,`")
                    expected.append(describe_kind(closer))
                    self._unexpected(expected, f"after {what}")
            except _ParseError:
                self._synchronize(level, commas=commas)
            self._skip_separators(commas=commas)
        return items
