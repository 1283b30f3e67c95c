"""Lexer for the Sable programming language.

Produces a stream of tokens from source text. Newlines become NEWLINE
tokens only while the innermost open delimiter is ``[`` or ``{`` (or at
module top level); inside ``(`` they are plain whitespace. Everything the
lexer discards is kept as trivia so the token spans plus trivia spans
cover the source exactly.
"""

from __future__ import annotations

from sable.errors import LexError
from sable.source import Span
from sable.tokens import (
    KEYWORDS,
    OPENERS,
    OPERATOR_CHARS,
    RESERVED_OPERATORS,
    Token,
    TokenKind,
    Trivia,
)

_PUNCT: dict[str, TokenKind] = {
    ",": TokenKind.COMMA,
    ":": TokenKind.COLON,
    ".": TokenKind.DOT,
    "@": TokenKind.AT,
    ";": TokenKind.SEMICOLON,
}

_OPEN_CHARS: dict[str, TokenKind] = {
    "(": TokenKind.LPAREN,
    "[": TokenKind.LBRACKET,
    "{": TokenKind.LBRACE,
}

_CLOSE_CHARS: dict[str, TokenKind] = {
    ")": TokenKind.RPAREN,
    "]": TokenKind.RBRACKET,
    "}": TokenKind.RBRACE,
}

_CLOSER_TEXT: dict[TokenKind, str] = {v: k for k, v in _CLOSE_CHARS.items()}

# Contexts in which a raw newline separates statements.
_NEWLINE_SIGNIFICANT = frozenset({TokenKind.LBRACKET, TokenKind.LBRACE})

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "0": "\0",
    "\\": "\\",
    '"': '"',
    "'": "'",
}

_RADIX_PREFIXES = {
    "x": ("0123456789abcdefABCDEF", 16),
    "b": ("01", 2),
    "o": ("01234567", 8),
}


class Lexer:
    """Tokenizes Sable source code."""

    def __init__(self, source: str, filename: str = "<stdin>") -> None:
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.col = 1
        self.context: list[Token] = []
        self.tokens: list[Token] = []
        self.trivia: list[Trivia] = []

    def lex(self) -> list[Token]:
        """Tokenize the entire source and return the token list.

        Raises LexError on the first malformed construct.
        """
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch == "\n":
                self._lex_newline()
            elif ch in " \t\r":
                self._skip_whitespace()
            elif ch == "#":
                if self._at_block_comment():
                    self._skip_block_comment()
                else:
                    self._skip_line_comment()
            elif ch == '"':
                self._lex_string()
            elif ch == "'":
                self._lex_char()
            elif ch.isdigit():
                self._lex_number()
            elif ch.isalpha() or ch == "_":
                self._lex_identifier()
            elif ch in OPERATOR_CHARS:
                self._lex_operator()
            elif ch in _OPEN_CHARS:
                self._lex_open()
            elif ch in _CLOSE_CHARS:
                self._lex_close()
            elif ch in _PUNCT:
                start = self._mark()
                self._advance()
                self._emit(_PUNCT[ch], ch, start)
            else:
                start = self._mark()
                self._advance()
                self._error(f"illegal character {ch!r}", start)

        if self.context:
            opener = self.context[-1]
            raise LexError(f"unclosed `{opener.value}`", opener.span)

        start = self._mark()
        self._emit(TokenKind.EOF, "", start)
        return self.tokens

    # ── Helpers ───────────────────────────────────────────────────

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return "\0"

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def _mark(self) -> tuple[int, int, int]:
        return (self.pos, self.line, self.col)

    def _span_from(self, start: tuple[int, int, int]) -> Span:
        pos, line, col = start
        return Span(self.filename, line, col, self.line, self.col, pos, self.pos)

    def _emit(self, kind: TokenKind, value: str, start: tuple[int, int, int]) -> Token:
        tok = Token(kind, value, self._span_from(start))
        self.tokens.append(tok)
        return tok

    def _skip(self, kind: str, start: tuple[int, int, int]) -> None:
        self.trivia.append(Trivia(kind, self._span_from(start)))

    def _error(self, message: str, start: tuple[int, int, int]) -> None:
        raise LexError(message, self._span_from(start))

    def _is_ident_char(self, ch: str) -> bool:
        return ch.isalnum() or ch == "_"

    # ── Whitespace and newlines ──────────────────────────────────

    def _skip_whitespace(self) -> None:
        start = self._mark()
        while self.pos < len(self.source) and self.source[self.pos] in " \t\r":
            self._advance()
        self._skip("whitespace", start)

    def _newline_significant(self) -> bool:
        return not self.context or self.context[-1].kind in _NEWLINE_SIGNIFICANT

    def _lex_newline(self) -> None:
        pos, line, col = self._mark()
        self._advance()
        # Keep the span on the line it terminates.
        span = Span(self.filename, line, col, line, col + 1, pos, pos + 1)
        if self._newline_significant():
            self.tokens.append(Token(TokenKind.NEWLINE, "\n", span))
        else:
            self.trivia.append(Trivia("newline", span))

    # ── Comments ─────────────────────────────────────────────────

    def _at_block_comment(self) -> bool:
        """Exactly three hashes open a block comment; four or more do not."""
        return (self._peek(1) == "#" and self._peek(2) == "#"
                and self._peek(3) != "#")

    def _skip_block_comment(self) -> None:
        start = self._mark()
        close = self.source.find("###", self.pos + 3)
        if close < 0:
            self._advance()
            self._advance()
            self._advance()
            self._error("unterminated block comment", start)
        while self.pos < close + 3:
            self._advance()
        self._skip("block_comment", start)

    def _skip_line_comment(self) -> None:
        start = self._mark()
        while self.pos < len(self.source) and self.source[self.pos] != "\n":
            self._advance()
        self._skip("comment", start)

    # ── Strings ──────────────────────────────────────────────────

    def _lex_string(self) -> None:
        start = self._mark()
        self._advance()  # skip opening "
        text = []
        while True:
            if self.pos >= len(self.source) or self.source[self.pos] == "\n":
                self._error("unterminated string literal", start)
            ch = self.source[self.pos]
            if ch == '"':
                self._advance()
                break
            if ch == "\\":
                text.append(self._lex_escape_sequence(start))
            else:
                text.append(self._advance())
        self._emit(TokenKind.STRING_LIT, "".join(text), start)

    def _lex_escape_sequence(self, literal_start: tuple[int, int, int]) -> str:
        esc_start = self._mark()
        self._advance()  # skip backslash
        if self.pos >= len(self.source) or self.source[self.pos] == "\n":
            self._error("unterminated string literal", literal_start)
        ch = self._advance()
        if ch in _ESCAPES:
            return _ESCAPES[ch]
        if ch == "u" and self._peek() == "{":
            self._advance()
            digits = []
            while self._peek() in "0123456789abcdefABCDEF" and self._peek() != "\0":
                digits.append(self._advance())
            if self._peek() != "}" or not 1 <= len(digits) <= 6:
                self._error("invalid unicode escape; expected \\u{HEX}", esc_start)
            self._advance()
            code = int("".join(digits), 16)
            if code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
                self._error(f"invalid unicode scalar value U+{code:X}", esc_start)
            return chr(code)
        self._error(f"invalid escape sequence: \\{ch}", esc_start)
        return ch

    def _lex_char(self) -> None:
        start = self._mark()
        self._advance()  # skip opening '
        ch = self._peek()
        if self.pos >= len(self.source) or ch == "\n":
            self._error("unterminated character literal", start)
        if ch == "'":
            self._advance()
            self._error("empty character literal", start)
        if ch == "\\":
            value = self._lex_escape_sequence(start)
        else:
            value = self._advance()
        if self._peek() != "'":
            self._error("unterminated character literal", start)
        self._advance()
        self._emit(TokenKind.CHAR_LIT, value, start)

    # ── Numbers ──────────────────────────────────────────────────

    def _lex_number(self) -> None:
        start = self._mark()
        text = []

        # 0x, 0b, 0o prefixes
        prefix = self._peek(1).lower()
        if self.source[self.pos] == "0" and prefix in _RADIX_PREFIXES:
            digits, _radix = _RADIX_PREFIXES[prefix]
            text.append(self._advance())
            text.append(self._advance())
            body = self._take_digits(digits)
            text.append(body)
            if not body.strip("_"):
                self._finish_invalid_number(start, "missing digits after radix prefix")
            self._check_digit_groups(body, start)
            self._check_number_end(start)
            self._emit(TokenKind.INTEGER_LIT, "".join(text), start)
            return

        kind = TokenKind.INTEGER_LIT
        whole = self._take_digits("0123456789")
        text.append(whole)
        self._check_digit_groups(whole, start)

        if self._peek() == "." and self._peek(1).isdigit():
            kind = TokenKind.FLOAT_LIT
            text.append(self._advance())
            frac = self._take_digits("0123456789")
            text.append(frac)
            self._check_digit_groups(frac, start)

        if self._peek() in "eE":
            sign = 1 if self._peek(1) in "+-" else 0
            if not self._peek(1 + sign).isdigit():
                self._finish_invalid_number(start, "missing digits in exponent")
            kind = TokenKind.FLOAT_LIT
            text.append(self._advance())
            if sign:
                text.append(self._advance())
            exp = self._take_digits("0123456789")
            text.append(exp)
            self._check_digit_groups(exp, start)

        self._check_number_end(start)
        self._emit(kind, "".join(text), start)

    def _take_digits(self, digits: str) -> str:
        out = []
        while self.pos < len(self.source) and (
                self.source[self.pos] in digits or self.source[self.pos] == "_"):
            out.append(self._advance())
        return "".join(out)

    def _check_digit_groups(self, digits: str, start: tuple[int, int, int]) -> None:
        if digits.startswith("_") or digits.endswith("_") or "__" in digits:
            self._finish_invalid_number(start, "misplaced `_` in numeric literal")

    def _check_number_end(self, start: tuple[int, int, int]) -> None:
        if self._is_ident_char(self._peek()):
            self._finish_invalid_number(start, "invalid numeric literal")

    def _finish_invalid_number(self, start: tuple[int, int, int], message: str) -> None:
        while self.pos < len(self.source) and (
                self._is_ident_char(self.source[self.pos]) or self.source[self.pos] == "."):
            if self.source[self.pos] == "." and not self._peek(1).isdigit():
                break
            self._advance()
        self._error(message, start)

    # ── Identifiers and Keywords ─────────────────────────────────

    def _lex_identifier(self) -> None:
        start = self._mark()
        text = []
        while self.pos < len(self.source) and self._is_ident_char(self.source[self.pos]):
            text.append(self._advance())
        word = "".join(text)

        if word in KEYWORDS:
            self._emit(KEYWORDS[word], word, start)
        elif word[0].isupper():
            self._emit(TokenKind.TYPE_IDENTIFIER, word, start)
        else:
            self._emit(TokenKind.IDENTIFIER, word, start)

    # ── Operators and Punctuation ────────────────────────────────

    def _lex_operator(self) -> None:
        start = self._mark()
        text = []
        while self.pos < len(self.source) and self.source[self.pos] in OPERATOR_CHARS:
            text.append(self._advance())
        op = "".join(text)
        self._emit(RESERVED_OPERATORS.get(op, TokenKind.OPERATOR), op, start)

    def _lex_open(self) -> None:
        start = self._mark()
        ch = self._advance()
        tok = self._emit(_OPEN_CHARS[ch], ch, start)
        self.context.append(tok)

    def _lex_close(self) -> None:
        start = self._mark()
        ch = self._advance()
        kind = _CLOSE_CHARS[ch]
        if not self.context:
            self._error(f"unmatched closing `{ch}`", start)
        opener = self.context[-1]
        expected = OPENERS[opener.kind]
        if expected != kind:
            self._error(
                f"mismatched closing `{ch}`; `{opener.value}` opened at "
                f"{opener.span} is closed by `{_CLOSER_TEXT[expected]}`",
                start,
            )
        self.context.pop()
        self._emit(kind, ch, start)
