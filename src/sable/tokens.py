"""Token kinds and token representation for the Sable lexer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sable.source import Span


class TokenKind(Enum):
    # Keywords
    IF = auto()
    ELSE = auto()
    CASE = auto()
    DATA = auto()
    EFFECT = auto()
    TYPECLASS = auto()
    INSTANCE = auto()
    FOR = auto()
    IN = auto()
    MODULE = auto()

    # Literals
    INTEGER_LIT = auto()
    FLOAT_LIT = auto()
    STRING_LIT = auto()
    CHAR_LIT = auto()

    # Identifiers
    IDENTIFIER = auto()
    TYPE_IDENTIFIER = auto()

    # Operators
    OPERATOR = auto()
    ASSIGN = auto()
    BIND = auto()

    # Punctuation
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    LBRACE = auto()
    RBRACE = auto()
    COMMA = auto()
    COLON = auto()
    PIPE = auto()
    DOT = auto()
    AT = auto()

    # Separators
    NEWLINE = auto()
    SEMICOLON = auto()

    # Special
    EOF = auto()


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    span: Span


@dataclass(frozen=True)
class Trivia:
    """Source text the lexer consumed without producing a token."""

    kind: str  # "whitespace", "newline", "comment" or "block_comment"
    span: Span


KEYWORDS: dict[str, TokenKind] = {
    "if": TokenKind.IF,
    "else": TokenKind.ELSE,
    "case": TokenKind.CASE,
    "data": TokenKind.DATA,
    "effect": TokenKind.EFFECT,
    "typeclass": TokenKind.TYPECLASS,
    "instance": TokenKind.INSTANCE,
    "for": TokenKind.FOR,
    "in": TokenKind.IN,
    "module": TokenKind.MODULE,
}

OPERATOR_CHARS = frozenset("+-*/%<>=!&|^~$?")

# Operator spellings with a dedicated token kind.
RESERVED_OPERATORS: dict[str, TokenKind] = {
    "=": TokenKind.ASSIGN,
    "=!": TokenKind.BIND,
    "|": TokenKind.PIPE,
}

SEPARATORS: frozenset[TokenKind] = frozenset({
    TokenKind.NEWLINE,
    TokenKind.SEMICOLON,
})

OPENERS: dict[TokenKind, TokenKind] = {
    TokenKind.LPAREN: TokenKind.RPAREN,
    TokenKind.LBRACKET: TokenKind.RBRACKET,
    TokenKind.LBRACE: TokenKind.RBRACE,
}

CLOSERS: frozenset[TokenKind] = frozenset(OPENERS.values())

LITERALS: frozenset[TokenKind] = frozenset({
    TokenKind.INTEGER_LIT,
    TokenKind.FLOAT_LIT,
    TokenKind.STRING_LIT,
    TokenKind.CHAR_LIT,
})

_PUNCT_TEXT: dict[TokenKind, str] = {
    TokenKind.LPAREN: "(",
    TokenKind.RPAREN: ")",
    TokenKind.LBRACKET: "[",
    TokenKind.RBRACKET: "]",
    TokenKind.LBRACE: "{",
    TokenKind.RBRACE: "}",
    TokenKind.COMMA: ",",
    TokenKind.COLON: ":",
    TokenKind.PIPE: "|",
    TokenKind.DOT: ".",
    TokenKind.AT: "@",
    TokenKind.ASSIGN: "=",
    TokenKind.BIND: "=!",
    TokenKind.SEMICOLON: ";",
}

_KIND_NAMES: dict[TokenKind, str] = {
    TokenKind.INTEGER_LIT: "integer literal",
    TokenKind.FLOAT_LIT: "float literal",
    TokenKind.STRING_LIT: "string literal",
    TokenKind.CHAR_LIT: "character literal",
    TokenKind.IDENTIFIER: "identifier",
    TokenKind.TYPE_IDENTIFIER: "type or constructor name",
    TokenKind.OPERATOR: "operator",
    TokenKind.NEWLINE: "newline",
    TokenKind.EOF: "end of file",
}


def describe_kind(kind: TokenKind) -> str:
    """Human-readable name of a token kind, for diagnostics."""
    if kind in _PUNCT_TEXT:
        return f"`{_PUNCT_TEXT[kind]}`"
    if kind in _KIND_NAMES:
        return _KIND_NAMES[kind]
    return f"`{kind.name.lower()}`"


def describe_token(tok: Token) -> str:
    if tok.kind in (TokenKind.NEWLINE, TokenKind.EOF):
        return _KIND_NAMES[tok.kind]
    if tok.kind in (TokenKind.STRING_LIT, TokenKind.CHAR_LIT):
        return _KIND_NAMES[tok.kind]
    return f"`{tok.value}`"


def adjacent(left: Token, right: Token) -> bool:
    """True when no whitespace or comment separates the two tokens."""
    return left.span.end == right.span.start
