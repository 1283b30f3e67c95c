"""Sable language front end: lexer, parser and diagnostics."""

__version__ = "0.1.0"
