"""Pattern sublanguage shared by definitions, lambdas, case and handlers."""

from __future__ import annotations

from sable.ast_nodes import (
    BindingPattern,
    CharLit,
    ConstructorPattern,
    FieldPattern,
    FloatLit,
    IntegerLit,
    ListConsPattern,
    ListPattern,
    Literal,
    LiteralPattern,
    Pattern,
    StringLit,
    TuplePattern,
    WildcardPattern,
)
from sable.errors import ErrorKind
from sable.parser_base import ParserBase
from sable.tokens import LITERALS, SEPARATORS, Token, TokenKind, adjacent

_PATTERN_ATOM_START = LITERALS | {
    TokenKind.IDENTIFIER,
    TokenKind.TYPE_IDENTIFIER,
    TokenKind.LPAREN,
    TokenKind.LBRACE,
}


def literal_from_token(tok: Token, negate: bool = False) -> Literal:
    """Build a literal node from a literal token."""
    if tok.kind == TokenKind.INTEGER_LIT:
        text = tok.value.replace("_", "")
        if len(text) > 1 and text[0] == "0" and text[1] in "xXbBoO":
            value = int(text[2:], {"x": 16, "b": 2, "o": 8}[text[1].lower()])
        else:
            value = int(text, 10)
        return IntegerLit(-value if negate else value, tok.span)
    if tok.kind == TokenKind.FLOAT_LIT:
        value = float(tok.value.replace("_", ""))
        return FloatLit(-value if negate else value, tok.span)
    if tok.kind == TokenKind.STRING_LIT:
        return StringLit(tok.value, tok.span)
    return CharLit(tok.value, tok.span)


class PatternParser(ParserBase):

    def _starts_pattern_atom(self) -> bool:
        if self._at_any(*_PATTERN_ATOM_START):
            return True
        return self._at_operator("-") and self._peek(1).kind in (
            TokenKind.INTEGER_LIT, TokenKind.FLOAT_LIT)

    def _parse_pattern(self) -> Pattern:
        """Parse a full pattern: a constructor may take argument patterns."""
        tok = self._current()
        if tok.kind == TokenKind.TYPE_IDENTIFIER and not self._record_bracket_follows():
            self._advance()
            args: list[Pattern] = []
            while self._starts_pattern_atom():
                args.append(self._parse_pattern_atom())
            return ConstructorPattern(tok.value, args, None, self._span_from(tok.span))
        return self._parse_pattern_atom()

    def _parse_pattern_atom(self) -> Pattern:
        tok = self._current()

        if tok.kind == TokenKind.IDENTIFIER:
            self._advance()
            if tok.value == "_":
                return WildcardPattern(tok.span)
            return BindingPattern(tok.value, tok.span)

        if tok.kind in LITERALS:
            self._advance()
            return LiteralPattern(literal_from_token(tok), tok.span)

        if self._at_operator("-"):
            self._advance()
            lit_tok = self._current()
            if lit_tok.kind not in (TokenKind.INTEGER_LIT, TokenKind.FLOAT_LIT):
                self._unexpected(["numeric literal"], "after `-` in pattern")
            self._advance()
            span = tok.span.to(lit_tok.span)
            literal = literal_from_token(lit_tok, negate=True)
            return LiteralPattern(type(literal)(literal.value, span), span)

        if tok.kind == TokenKind.TYPE_IDENTIFIER:
            self._advance()
            if self._at(TokenKind.LBRACKET) and adjacent(tok, self._current()):
                return self._parse_record_pattern(tok)
            return ConstructorPattern(tok.value, [], None, tok.span)

        if tok.kind == TokenKind.LPAREN:
            return self._parse_paren_pattern()

        if tok.kind == TokenKind.LBRACE:
            return self._parse_list_pattern()

        self._unexpected(["pattern"])

    def _record_bracket_follows(self) -> bool:
        nxt = self._peek(1)
        return nxt.kind == TokenKind.LBRACKET and adjacent(self._current(), nxt)

    def _parse_paren_pattern(self) -> Pattern:
        start = self._advance().span  # (
        if self._at(TokenKind.RPAREN):
            self._advance()
            return TuplePattern([], self._span_from(start))
        first = self._parse_pattern()
        if not self._at(TokenKind.COMMA):
            self._expect(TokenKind.RPAREN, "to close pattern")
            return first
        elements = [first]
        while self._at(TokenKind.COMMA):
            self._advance()
            elements.append(self._parse_pattern())
        self._expect(TokenKind.RPAREN, "to close tuple pattern")
        return TuplePattern(elements, self._span_from(start))

    def _parse_list_pattern(self) -> Pattern:
        """``{}``, ``{a, b}``, ``{h | t}`` and ``{a, b | t}``."""
        start = self._advance().span  # {
        self._skip_newlines()
        if self._at(TokenKind.RBRACE):
            self._advance()
            return ListPattern([], self._span_from(start))

        elements = [self._parse_pattern()]
        self._skip_newlines()
        while self._at(TokenKind.COMMA):
            self._advance()
            self._skip_newlines()
            elements.append(self._parse_pattern())
            self._skip_newlines()

        if self._at(TokenKind.PIPE):
            self._advance()
            self._skip_newlines()
            tail = self._parse_pattern()
            self._skip_newlines()
            self._expect(TokenKind.RBRACE, "to close list pattern")
            span = self._span_from(start)
            for element in reversed(elements):
                tail = ListConsPattern(element, tail, span)
            return tail

        self._expect(TokenKind.RBRACE, "to close list pattern")
        return ListPattern(elements, self._span_from(start))

    def _parse_record_pattern(self, ctor: Token) -> Pattern:
        """``Ctor[a, b]`` positionally or ``Ctor[x, y = p]`` by field."""
        self._advance()  # [
        items = self._parse_items(self._parse_record_pattern_item, TokenKind.RBRACKET,
                                  commas=True, what="field pattern")
        self._expect(TokenKind.RBRACKET, "to close record pattern")
        span = self._span_from(ctor.span)

        fields = [i for i in items if isinstance(i, FieldPattern)]
        args = [i for i in items if not isinstance(i, FieldPattern)]
        if fields and args:
            self._error(
                ErrorKind.MALFORMED_FIELD_PUN,
                f"`{ctor.value}[...]` mixes named fields with positional patterns",
                args[0].span,
                notes=["write every field as `name` or `name = pattern`"],
            )
        if fields:
            return ConstructorPattern(ctor.value, [], fields, span)
        return ConstructorPattern(ctor.value, args, None, span)

    def _parse_record_pattern_item(self) -> Pattern | FieldPattern:
        tok = self._current()
        if tok.kind == TokenKind.IDENTIFIER and tok.value != "_":
            nxt = self._peek(1)
            if nxt.kind == TokenKind.ASSIGN:
                self._advance()
                self._advance()
                self._skip_newlines()
                pattern = self._parse_pattern()
                return FieldPattern(tok.value, pattern, self._span_from(tok.span))
            if nxt.kind in SEPARATORS or nxt.kind in (TokenKind.COMMA, TokenKind.RBRACKET):
                self._advance()
                return FieldPattern(tok.value, None, tok.span)
        return self._parse_pattern()
