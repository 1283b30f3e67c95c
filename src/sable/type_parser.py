"""Type expressions, constraint contexts and effect rows.

Grammar, loosest first::

    type    ::= [context "=>"] arrow
    context ::= constraint | "(" constraint ("," constraint)* ")"
    arrow   ::= btype ["->" arrow]
    btype   ::= "[" effects "]" [btype] | atype atype*
    atype   ::= var | Con | "(" ")" | "(" type ("," type)* ")"
"""

from __future__ import annotations

from sable.ast_nodes import (
    ArrowType,
    Constraint,
    EffectType,
    QualifiedType,
    TupleType,
    TypeApp,
    TypeCon,
    TypeExpr,
    TypeVar,
)
from sable.errors import ErrorKind
from sable.parser_base import ParserBase
from sable.tokens import CLOSERS, OPENERS, SEPARATORS, TokenKind

_ATYPE_START = frozenset({
    TokenKind.IDENTIFIER,
    TokenKind.TYPE_IDENTIFIER,
    TokenKind.LPAREN,
})

_CONTEXT_STOPS = frozenset({
    TokenKind.ASSIGN,
    TokenKind.BIND,
    TokenKind.AT,
    TokenKind.COMMA,
    TokenKind.EOF,
})


class TypeParser(ParserBase):

    def _starts_atype(self) -> bool:
        return self._at_any(*_ATYPE_START)

    def _parse_type(self) -> TypeExpr:
        start = self._current().span
        if self._constraint_arrow_ahead():
            constraints = self._parse_context()
            self._expect_operator("=>", "after constraint context")
            self._skip_newlines()
            body = self._parse_arrow_type()
            return QualifiedType(constraints, body, self._span_from(start))
        return self._parse_arrow_type()

    def _constraint_arrow_ahead(self) -> bool:
        """True if a ``=>`` appears at this depth before ``=``, ``,`` or a separator."""
        tokens = self.stream.tokens
        depth = 0
        for i in range(self.stream.pos, len(tokens)):
            tok = tokens[i]
            if tok.kind in OPENERS:
                depth += 1
            elif tok.kind in CLOSERS:
                if depth == 0:
                    return False
                depth -= 1
            elif depth == 0:
                if tok.kind == TokenKind.OPERATOR and tok.value == "=>":
                    return True
                if tok.kind in _CONTEXT_STOPS or tok.kind in SEPARATORS:
                    return False
        return False

    def _parse_context(self) -> list[Constraint]:
        if self._at(TokenKind.LPAREN):
            self._advance()
            constraints = [self._parse_constraint()]
            while self._at(TokenKind.COMMA):
                self._advance()
                constraints.append(self._parse_constraint())
            self._expect(TokenKind.RPAREN, "to close constraint context")
            return constraints
        return [self._parse_constraint()]

    def _parse_constraint(self) -> Constraint:
        name_tok = self._expect(TokenKind.TYPE_IDENTIFIER, "as type class name")
        args: list[TypeExpr] = []
        while self._starts_atype():
            args.append(self._parse_atype())
        if not args:
            self._unexpected(["type argument"], f"for constraint `{name_tok.value}`")
        return Constraint(name_tok.value, args, self._span_from(name_tok.span))

    def _parse_arrow_type(self) -> TypeExpr:
        start = self._current().span
        param = self._parse_btype()
        if self._at_operator("->"):
            self._advance()
            self._skip_newlines()
            result = self._parse_arrow_type()
            return ArrowType(param, result, self._span_from(start))
        return param

    def _parse_btype(self) -> TypeExpr:
        if self._at(TokenKind.LBRACKET):
            return self._parse_effect_type()
        start = self._current().span
        fn = self._parse_atype()
        while self._starts_atype():
            arg = self._parse_atype()
            fn = TypeApp(fn, arg, self._span_from(start))
        return fn

    def _parse_atype(self) -> TypeExpr:
        tok = self._current()
        if tok.kind == TokenKind.IDENTIFIER:
            self._advance()
            return TypeVar(tok.value, tok.span)
        if tok.kind == TokenKind.TYPE_IDENTIFIER:
            self._advance()
            return TypeCon(tok.value, tok.span)
        if tok.kind == TokenKind.LPAREN:
            self._advance()
            if self._at(TokenKind.RPAREN):
                self._advance()
                return TupleType([], self._span_from(tok.span))
            first = self._parse_type()
            if not self._at(TokenKind.COMMA):
                self._expect(TokenKind.RPAREN, "to close type")
                return first
            elements = [first]
            while self._at(TokenKind.COMMA):
                self._advance()
                elements.append(self._parse_type())
            self._expect(TokenKind.RPAREN, "to close tuple type")
            return TupleType(elements, self._span_from(tok.span))
        self._unexpected(["type"])

    def _parse_effect_type(self) -> EffectType:
        """``[E1, E2 a, r] T``. Only the last entry may be a row variable."""
        start = self._advance().span  # [
        entries: list[TypeExpr] = []
        self._skip_newlines()
        if not self._at(TokenKind.RBRACKET):
            entries.append(self._parse_btype())
            self._skip_newlines()
            while self._at(TokenKind.COMMA):
                self._advance()
                self._skip_newlines()
                entries.append(self._parse_btype())
                self._skip_newlines()
        self._expect(TokenKind.RBRACKET, "to close effect list")

        row_vars = [e for e in entries if isinstance(e, TypeVar)]
        effects = [e for e in entries if not isinstance(e, TypeVar)]
        row: TypeVar | None = row_vars[0] if row_vars else None
        if len(row_vars) > 1:
            self._error(
                ErrorKind.INVALID_EFFECT_ROW,
                "an effect list may contain at most one row variable",
                row_vars[1].span,
                label="second row variable",
            )
        elif row_vars and entries[-1] is not row_vars[0]:
            self._error(
                ErrorKind.INVALID_EFFECT_ROW,
                f"row variable `{row_vars[0].name}` must be the last entry of the effect list",
                row_vars[0].span,
            )

        result: TypeExpr | None = None
        if self._starts_atype():
            result = self._parse_btype()
        return EffectType(effects, row, result, self._span_from(start))
