"""Replayable token cursor with lookahead, checkpoints and bracket depth."""

from __future__ import annotations

from sable.tokens import CLOSERS, OPENERS, Token, TokenKind


def _bracket_depths(tokens: list[Token]) -> list[int]:
    """Number of delimiters enclosing each token.

    A closer counts as inside the group it closes, so an opener and its
    closer differ by one.
    """
    depths: list[int] = []
    depth = 0
    for tok in tokens:
        depths.append(depth)
        if tok.kind in OPENERS:
            depth += 1
        elif tok.kind in CLOSERS:
            depths[-1] = depth
            depth = max(0, depth - 1)
    return depths


class TokenStream:
    """Cursor over a lexed token list ending in EOF."""

    def __init__(self, tokens: list[Token]) -> None:
        if not tokens or tokens[-1].kind != TokenKind.EOF:
            raise ValueError("token list must end with an EOF token")
        self.tokens = tokens
        self.pos = 0
        self.depth_at = _bracket_depths(tokens)

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    @property
    def previous(self) -> Token | None:
        if self.pos == 0:
            return None
        return self.tokens[self.pos - 1]

    @property
    def depth(self) -> int:
        return self.depth_at[self.pos]

    def peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return self.tokens[-1]

    def at(self, kind: TokenKind) -> bool:
        return self.current.kind == kind

    def at_any(self, *kinds: TokenKind) -> bool:
        return self.current.kind in kinds

    def advance(self) -> Token:
        tok = self.current
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def mark(self) -> int:
        return self.pos

    def reset(self, mark: int) -> None:
        self.pos = mark
