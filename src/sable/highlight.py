"""Pygments lexer for the Sable programming language."""

from pygments.lexer import RegexLexer, words
from pygments.token import (
    Comment,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Text,
)

from sable.tokens import KEYWORDS


class SableLexer(RegexLexer):
    """Pygments lexer for the Sable programming language."""

    name = "Sable"
    aliases = ["sable"]
    filenames = ["*.sbl"]
    mimetypes = ["text/x-sable"]

    tokens = {
        "root": [
            # Whitespace
            (r"\s+", Text),
            # Block comments (### ... ###), a fourth # makes a line comment
            (r"###(?!#)[\s\S]*?###", Comment.Multiline),
            # Line comments
            (r"#.*$", Comment.Single),
            # Strings and characters
            (r'"', String, "string"),
            (r"'(\\(u\{[0-9a-fA-F]{1,6}\}|[ntr0\\\"'])|[^'\\])'", String.Char),
            # Numbers
            (r"0[xX][0-9a-fA-F][0-9a-fA-F_]*", Number.Hex),
            (r"0[bB][01][01_]*", Number.Bin),
            (r"0[oO][0-7][0-7_]*", Number.Oct),
            (r"[0-9][0-9_]*(\.[0-9][0-9_]*)?[eE][+-]?[0-9][0-9_]*", Number.Float),
            (r"[0-9][0-9_]*\.[0-9][0-9_]*", Number.Float),
            (r"[0-9][0-9_]*", Number.Integer),
            # Declaration keywords
            (
                words(
                    ("data", "effect", "typeclass", "instance", "module"),
                    prefix=r"\b",
                    suffix=r"\b",
                ),
                Keyword.Declaration,
            ),
            # Remaining keywords
            (
                words(
                    tuple(sorted(k for k in KEYWORDS
                                 if k not in ("data", "effect", "typeclass",
                                              "instance", "module"))),
                    prefix=r"\b",
                    suffix=r"\b",
                ),
                Keyword,
            ),
            # Type annotations and binds
            (r"@", Keyword.Pseudo),
            (r"=!", Keyword.Pseudo),
            # Operators (multi-char before single-char)
            (r"[+\-*/%<>=!&|^~$?]{2,}", Operator),
            (r"[+\-*/%<>!&^~$?]", Operator),
            (r"=", Operator),
            # Types and constructors
            (r"[A-Z][a-zA-Z0-9_]*", Name.Class),
            # Clause heads (word followed by colon)
            (r"[a-z_][a-zA-Z0-9_]*(?=\s*:)", Name.Variable),
            # Identifiers
            (r"[a-z_][a-zA-Z0-9_]*", Name),
            # Punctuation
            (r"[(),;.\[\]{}:|]", Punctuation),
        ],
        # String state handles escape sequences
        "string": [
            (r"\\u\{[0-9a-fA-F]{1,6}\}", String.Escape),
            (r"\\[ntr0\\\"']", String.Escape),
            (r'[^"\\\n]+', String),
            (r'"', String, "#pop"),
        ],
    }
