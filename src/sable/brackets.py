"""Classification of ``[...]`` expressions.

The same bracket pair spells blocks, lambdas, handlers, sections, accessor
lambdas, records and record updates. ``classify_bracket`` looks at the
token before the opener and at most ``BRACKET_LOOKAHEAD_LIMIT`` tokens
after it, and names the production the parser should run from the opener.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

from sable.tokens import (
    CLOSERS,
    LITERALS,
    OPENERS,
    SEPARATORS,
    Token,
    TokenKind,
    adjacent,
)

# Enough for every clause head; raise it if a new form needs more.
BRACKET_LOOKAHEAD_LIMIT = 64


class BracketForm(Enum):
    BLOCK = "block"
    LAMBDA = "lambda"
    HANDLER = "handler"
    SECTION = "section"
    LEFT_SECTION = "left section"
    ACCESSOR_LAMBDA = "accessor lambda"
    RECORD = "record"
    RECORD_UPDATE = "record update"
    AMBIGUOUS = "ambiguous"


_BLOCK_KEYWORDS = frozenset({
    TokenKind.IF,
    TokenKind.CASE,
    TokenKind.DATA,
    TokenKind.EFFECT,
    TokenKind.TYPECLASS,
    TokenKind.INSTANCE,
    TokenKind.MODULE,
})

# First token at the bracket's own depth that settles the form.
_DECISIONS: dict[TokenKind, BracketForm] = {
    TokenKind.COLON: BracketForm.LAMBDA,
    TokenKind.PIPE: BracketForm.HANDLER,
    TokenKind.ASSIGN: BracketForm.BLOCK,
    TokenKind.BIND: BracketForm.BLOCK,
    TokenKind.AT: BracketForm.BLOCK,
    TokenKind.NEWLINE: BracketForm.BLOCK,
    TokenKind.SEMICOLON: BracketForm.BLOCK,
}

_SECTION_OPERANDS = LITERALS | {TokenKind.IDENTIFIER, TokenKind.TYPE_IDENTIFIER}


def classify_bracket(tokens: Sequence[Token], index: int) -> BracketForm:
    """Classify the ``[`` at ``tokens[index]``."""
    opener = tokens[index]
    if opener.kind != TokenKind.LBRACKET:
        raise ValueError(f"expected `[` at index {index}, got {opener.kind.name}")

    if index > 0 and adjacent(tokens[index - 1], opener):
        before = tokens[index - 1].kind
        if before == TokenKind.TYPE_IDENTIFIER:
            return BracketForm.RECORD
        if before == TokenKind.DOT:
            return BracketForm.RECORD_UPDATE

    limit = min(len(tokens), index + 1 + BRACKET_LOOKAHEAD_LIMIT)
    i = index + 1
    while i < limit and tokens[i].kind in SEPARATORS:
        i += 1
    if i >= limit:
        return BracketForm.BLOCK

    first = tokens[i]
    if first.kind == TokenKind.RBRACKET:
        return BracketForm.AMBIGUOUS
    if first.kind == TokenKind.DOT:
        return BracketForm.ACCESSOR_LAMBDA
    if first.kind == TokenKind.OPERATOR:
        return BracketForm.SECTION
    if first.kind in _BLOCK_KEYWORDS:
        return BracketForm.BLOCK
    if (first.kind in _SECTION_OPERANDS and i + 2 < len(tokens)
            and tokens[i + 1].kind == TokenKind.OPERATOR
            and tokens[i + 2].kind == TokenKind.RBRACKET):
        return BracketForm.LEFT_SECTION

    depth = 0
    while i < limit:
        tok = tokens[i]
        if tok.kind in OPENERS:
            depth += 1
        elif tok.kind in CLOSERS:
            if depth == 0:
                return BracketForm.BLOCK
            depth -= 1
        elif tok.kind == TokenKind.EOF:
            break
        elif depth == 0 and tok.kind in _DECISIONS:
            return _DECISIONS[tok.kind]
        i += 1
    # A clause head is short, so a window with no `:` or `|` is a statement.
    return BracketForm.BLOCK
