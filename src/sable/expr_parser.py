"""Expressions and statements.

Binary operators use precedence climbing over a fixed table; application
is juxtaposition and binds tighter than any operator. ``[...]`` is
classified by ``sable.brackets`` and then parsed by one dedicated
production per form.
"""

from __future__ import annotations

from sable.ast_nodes import (
    AccessorLambda,
    ApplyExpr,
    BinaryExpr,
    BindingPattern,
    BindStmt,
    BlockExpr,
    BlockItem,
    CaseExpr,
    Clause,
    ConstructorExpr,
    Expr,
    ExprStmt,
    FieldAssign,
    FieldExpr,
    Filter,
    Generator,
    GuardedBranch,
    HandlerExpr,
    IdentifierExpr,
    IfExpr,
    LambdaExpr,
    ListComprehension,
    ListConsExpr,
    ListLiteral,
    OperationClause,
    RecordExpr,
    RecordUpdateExpr,
    RecordUpdateLambda,
    ReturnClause,
    SectionExpr,
    TupleExpr,
    UnaryExpr,
    WildcardPattern,
)
from sable.brackets import BracketForm, classify_bracket
from sable.errors import ErrorKind
from sable.parser_base import ParserBase, _ParseError
from sable.pattern_parser import literal_from_token
from sable.source import Span
from sable.tokens import (
    CLOSERS,
    KEYWORDS,
    LITERALS,
    SEPARATORS,
    Token,
    TokenKind,
    adjacent,
    describe_kind,
)

# ── Operator precedence ──────────────────────────────────────────

_LEFT, _RIGHT, _NONE = "left", "right", "none"

# Higher binds tighter. Operators not listed get _DEFAULT_FIXITY.
_FIXITY: dict[str, tuple[int, str]] = {
    "|>": (1, _LEFT),
    "||": (2, _RIGHT),
    "&&": (3, _RIGHT),
    "==": (4, _NONE),
    "!=": (4, _NONE),
    "<": (4, _NONE),
    ">": (4, _NONE),
    "<=": (4, _NONE),
    ">=": (4, _NONE),
    "++": (5, _RIGHT),
    "+": (6, _LEFT),
    "-": (6, _LEFT),
    "*": (7, _LEFT),
    "/": (7, _LEFT),
    "%": (7, _LEFT),
    "^": (8, _RIGHT),
}
_DEFAULT_FIXITY = (9, _LEFT)

_PREFIX_OPERATORS = frozenset({"-", "!"})


def binding_power(op: str) -> tuple[int, int]:
    """(left_bp, right_bp) for an infix operator."""
    prec, assoc = _FIXITY.get(op, _DEFAULT_FIXITY)
    if assoc == _RIGHT:
        return (prec * 2, prec * 2 - 1)
    return (prec * 2 - 1, prec * 2)


_ARGUMENT_START = LITERALS | {
    TokenKind.IDENTIFIER,
    TokenKind.TYPE_IDENTIFIER,
    TokenKind.LPAREN,
    TokenKind.LBRACKET,
    TokenKind.LBRACE,
}

_KEYWORD_KINDS = frozenset(KEYWORDS.values())

_DECLARATION_KEYWORDS = frozenset({
    TokenKind.DATA,
    TokenKind.EFFECT,
    TokenKind.TYPECLASS,
    TokenKind.INSTANCE,
})

_STATEMENT_STOPS = frozenset({
    TokenKind.ASSIGN,
    TokenKind.BIND,
    TokenKind.AT,
})

_CONTINUATION_STOPS = frozenset({TokenKind.PIPE, TokenKind.COLON})


class ExpressionParser(ParserBase):

    # ── Operators ────────────────────────────────────────────────

    def _parse_expression(self, min_bp: int = 0) -> Expr:
        """Parse an expression using precedence climbing."""
        left = self._parse_unary()
        chained: int | None = None

        while self._at(TokenKind.OPERATOR):
            op_tok = self._current()
            left_bp, right_bp = binding_power(op_tok.value)
            if left_bp < min_bp:
                break
            prec, assoc = _FIXITY.get(op_tok.value, _DEFAULT_FIXITY)
            if assoc == _NONE and chained == prec:
                self._fail(
                    ErrorKind.UNEXPECTED_TOKEN,
                    f"comparison operators cannot be chained; parenthesize "
                    f"before `{op_tok.value}`",
                    op_tok.span,
                )
            self._advance()
            self._skip_newlines()
            right = self._parse_expression(right_bp)
            left = BinaryExpr(left, op_tok.value, right, left.span.to(right.span))
            chained = prec if assoc == _NONE else None

        return left

    def _parse_unary(self) -> Expr:
        tok = self._current()
        if tok.kind == TokenKind.OPERATOR and tok.value in _PREFIX_OPERATORS:
            self._advance()
            operand = self._parse_unary()
            return UnaryExpr(tok.value, operand, tok.span.to(operand.span))
        return self._parse_application()

    # ── Application and atoms ────────────────────────────────────

    def _starts_argument(self) -> bool:
        tok = self._current()
        if tok.kind in _ARGUMENT_START:
            return True
        # `.[` not glued to the previous token starts a record-update lambda.
        nxt = self._peek(1)
        return (tok.kind == TokenKind.DOT and nxt.kind == TokenKind.LBRACKET
                and adjacent(tok, nxt) and not adjacent(self._previous(), tok))

    def _parse_application(self) -> Expr:
        if self._at(TokenKind.IF):
            return self._parse_if()
        if self._at(TokenKind.CASE):
            return self._parse_case()
        fn = self._parse_postfix()
        while self._starts_argument():
            arg = self._parse_postfix()
            fn = ApplyExpr(fn, arg, fn.span.to(arg.span))
        return fn

    def _parse_postfix(self) -> Expr:
        """An atom followed by glued ``.field`` and ``.[...]`` suffixes."""
        expr = self._parse_atom()
        while self._at(TokenKind.DOT) and adjacent(self._previous(), self._current()):
            dot = self._advance()
            tok = self._current()
            if tok.kind == TokenKind.IDENTIFIER and adjacent(dot, tok):
                self._advance()
                expr = FieldExpr(expr, tok.value, expr.span.to(tok.span))
            elif tok.kind == TokenKind.LBRACKET and adjacent(dot, tok):
                fields = self._parse_update_fields()
                expr = RecordUpdateExpr(expr, fields, self._span_from(expr.span))
            else:
                self._unexpected(["field name", "`[`"], "after `.`")
        return expr

    def _parse_atom(self) -> Expr:
        tok = self._current()

        if tok.kind in LITERALS:
            self._advance()
            return literal_from_token(tok)

        if tok.kind == TokenKind.IDENTIFIER:
            self._advance()
            return IdentifierExpr(tok.value, tok.span)

        if tok.kind == TokenKind.TYPE_IDENTIFIER:
            self._advance()
            if self._at(TokenKind.LBRACKET) and adjacent(tok, self._current()):
                return self._parse_record_expr(tok)
            return ConstructorExpr(tok.value, tok.span)

        if tok.kind == TokenKind.LPAREN:
            return self._parse_paren_expr()

        if tok.kind == TokenKind.LBRACKET:
            return self._parse_bracket_expr()

        if tok.kind == TokenKind.LBRACE:
            return self._parse_brace_expr()

        if tok.kind == TokenKind.DOT and self._peek(1).kind == TokenKind.LBRACKET:
            self._advance()
            fields = self._parse_update_fields()
            return RecordUpdateLambda(fields, self._span_from(tok.span))

        self._unexpected(["expression"])

    def _parse_paren_expr(self) -> Expr:
        start = self._advance().span  # (
        if self._at(TokenKind.RPAREN):
            self._advance()
            return TupleExpr([], self._span_from(start))
        first = self._parse_expression()
        if not self._at(TokenKind.COMMA):
            self._expect(TokenKind.RPAREN, "to close parenthesized expression")
            return first
        elements = [first]
        while self._at(TokenKind.COMMA):
            self._advance()
            elements.append(self._parse_expression())
        self._expect(TokenKind.RPAREN, "to close tuple")
        return TupleExpr(elements, self._span_from(start))

    # ── Square brackets ──────────────────────────────────────────

    def _parse_bracket_expr(self) -> Expr:
        form = classify_bracket(self.stream.tokens, self.stream.pos)
        parsers = {
            BracketForm.BLOCK: self._parse_block,
            BracketForm.LAMBDA: self._parse_clause_set,
            BracketForm.HANDLER: self._parse_clause_set,
            BracketForm.SECTION: self._parse_section,
            BracketForm.LEFT_SECTION: self._parse_left_section,
            BracketForm.ACCESSOR_LAMBDA: self._parse_accessor_lambda,
        }
        return parsers.get(form, self._parse_ambiguous_bracket)()

    def _parse_ambiguous_bracket(self) -> Expr:
        tok = self._current()
        notes = []
        if self._peek(1).kind == TokenKind.RBRACKET:
            notes.append("use `{}` for an empty list or `()` for unit")
        self._fail(
            ErrorKind.AMBIGUOUS_BRACKET_FORM,
            "cannot tell which kind of `[...]` expression this is",
            tok.span,
            notes=notes,
        )

    def _parse_block(self) -> BlockExpr:
        start = self._expect(TokenKind.LBRACKET).span
        errors_before = len(self.diagnostics)
        groups = self._parse_items(self._parse_statement, TokenKind.RBRACKET,
                                   what="statement")
        close = self._expect(TokenKind.RBRACKET, "to close block")
        items = self._group_items([item for group in groups for item in group])

        if not items or not isinstance(items[-1], ExprStmt):
            if len(self.diagnostics) == errors_before:
                self._error(
                    ErrorKind.UNEXPECTED_TOKEN,
                    "block must end with an expression",
                    close.span,
                )
            raise _ParseError
        result = items[-1].expr
        if isinstance(result, IfExpr) and result.else_branch is None:
            self._error(
                ErrorKind.MISSING_ELSE_BRANCH,
                "`if` producing the value of a block needs an `else` branch",
                result.span,
            )
        return BlockExpr(items[:-1], result, self._span_from(start))

    def _parse_clause_set(self) -> LambdaExpr | HandlerExpr:
        start = self._expect(TokenKind.LBRACKET).span
        clauses = self._parse_items(self._parse_lambda_clause, TokenKind.RBRACKET,
                                    what="clause")
        self._expect(TokenKind.RBRACKET, "to close lambda")
        span = self._span_from(start)
        if not any(isinstance(c, OperationClause) for c in clauses):
            return LambdaExpr(clauses, span)

        handler_clauses: list[ReturnClause | OperationClause] = []
        for clause in clauses:
            if isinstance(clause, OperationClause):
                handler_clauses.append(clause)
                continue
            if len(clause.patterns) != 1:
                self._error(
                    ErrorKind.ARITY_MISMATCH,
                    f"handler return clause takes one pattern, found {len(clause.patterns)}",
                    clause.span,
                )
                continue
            binder = clause.patterns[0]
            if not isinstance(binder, (BindingPattern, WildcardPattern)):
                self._error(
                    ErrorKind.UNEXPECTED_TOKEN,
                    "handler return clause must bind a name or `_`",
                    binder.span,
                )
                continue
            handler_clauses.append(ReturnClause(binder, clause.body, clause.span))
        return HandlerExpr(handler_clauses, span)

    def _parse_section(self) -> SectionExpr:
        start = self._expect(TokenKind.LBRACKET).span
        self._skip_newlines()
        op = self._expect(TokenKind.OPERATOR)
        right: Expr | None = None
        if not self._at(TokenKind.RBRACKET):
            right = self._parse_expression()
            self._skip_newlines()
        self._expect(TokenKind.RBRACKET, "to close operator section")
        return SectionExpr(op.value, None, right, self._span_from(start))

    def _parse_left_section(self) -> SectionExpr:
        start = self._expect(TokenKind.LBRACKET).span
        left = self._parse_atom()
        op = self._expect(TokenKind.OPERATOR)
        self._expect(TokenKind.RBRACKET, "to close operator section")
        return SectionExpr(op.value, left, None, self._span_from(start))

    def _parse_accessor_lambda(self) -> AccessorLambda:
        start = self._expect(TokenKind.LBRACKET).span
        self._skip_newlines()
        path: list[str] = []
        while self._at(TokenKind.DOT):
            self._advance()
            path.append(self._expect(TokenKind.IDENTIFIER, "in field accessor").value)
        self._skip_newlines()
        self._expect(TokenKind.RBRACKET, "to close field accessor")
        return AccessorLambda(path, self._span_from(start))

    # ── Clauses ──────────────────────────────────────────────────

    def _parse_lambda_clause(self) -> Clause | OperationClause:
        if self._clause_has_continuation():
            return self._parse_operation_clause()
        return self._parse_clause()

    def _clause_has_continuation(self) -> bool:
        """A ``|`` before the clause's first ``:`` marks a suspended computation."""
        return self._scan_depth_zero(_CONTINUATION_STOPS).kind == TokenKind.PIPE

    def _parse_clause(self) -> Clause:
        """``pat: pat: ... : body``"""
        start = self._current().span
        patterns = [self._parse_pattern()]
        self._expect(TokenKind.COLON, "after clause pattern")
        self._skip_newlines()
        while self._pattern_then_colon():
            patterns.append(self._parse_pattern())
            self._expect(TokenKind.COLON, "after clause pattern")
            self._skip_newlines()
        body = self._parse_expression()
        return Clause(patterns, body, self._span_from(start))

    def _pattern_then_colon(self) -> bool:
        def attempt() -> bool:
            self._parse_pattern()
            return self._at(TokenKind.COLON)
        return self._speculate(attempt)

    def _parse_operation_clause(self) -> OperationClause:
        """``op args | k: body``"""
        start = self._current().span
        op = self._current()
        if op.kind not in (TokenKind.IDENTIFIER, TokenKind.TYPE_IDENTIFIER):
            self._unexpected(["operation name"], "in handler clause")
        self._advance()
        args = []
        while not self._at(TokenKind.PIPE):
            args.append(self._parse_pattern_atom())
        self._advance()  # |
        k = self._expect(TokenKind.IDENTIFIER, "as continuation name")
        self._expect(TokenKind.COLON, "after continuation")
        self._skip_newlines()
        body = self._parse_expression()
        return OperationClause(op.value, args, k.value, body, self._span_from(start))

    # ── Records ──────────────────────────────────────────────────

    def _parse_record_expr(self, ctor: Token) -> RecordExpr:
        """``Ctor[...]``: positional arguments, or named fields and puns."""
        self._advance()  # [
        items = self._parse_items(self._parse_record_item, TokenKind.RBRACKET,
                                  commas=True, what="record field")
        self._expect(TokenKind.RBRACKET, "to close record")
        span = self._span_from(ctor.span)

        fields = [i for i in items if isinstance(i, FieldAssign)]
        args = [i for i in items if not isinstance(i, FieldAssign)]
        if fields and args:
            self._error(
                ErrorKind.MALFORMED_FIELD_PUN,
                f"`{ctor.value}[...]` mixes named fields with positional arguments",
                args[0].span,
                notes=["write every field as `name` or `name = value`"],
            )
        self._check_duplicate_fields(fields)
        if fields:
            return RecordExpr(ctor.value, [], fields, span)
        return RecordExpr(ctor.value, args, [], span)

    def _parse_update_fields(self) -> list[FieldAssign]:
        self._expect(TokenKind.LBRACKET)
        items = self._parse_items(self._parse_record_item, TokenKind.RBRACKET,
                                  commas=True, what="record field")
        self._expect(TokenKind.RBRACKET, "to close record update")
        fields = []
        for item in items:
            if isinstance(item, FieldAssign):
                fields.append(item)
            else:
                self._error(
                    ErrorKind.MALFORMED_FIELD_PUN,
                    "record update fields must be `name` or `name = value`",
                    item.span,
                )
        self._check_duplicate_fields(fields)
        return fields

    def _parse_record_item(self) -> FieldAssign | Expr:
        tok = self._current()
        if tok.kind == TokenKind.IDENTIFIER:
            nxt = self._peek(1)
            if nxt.kind == TokenKind.ASSIGN:
                self._advance()
                self._advance()
                self._skip_newlines()
                value = self._parse_expression()
                return FieldAssign(tok.value, value, self._span_from(tok.span))
            if nxt.kind in SEPARATORS or nxt.kind in (TokenKind.COMMA, TokenKind.RBRACKET):
                self._advance()
                return FieldAssign(tok.value, None, tok.span)
        expr = self._parse_expression()
        if isinstance(expr, FieldExpr):
            self._error(
                ErrorKind.MALFORMED_FIELD_PUN,
                "a field pun must be a bare identifier",
                expr.span,
                notes=[f"write `{expr.name} = ...` to name the field explicitly"],
            )
            return FieldAssign(expr.name, expr, expr.span)
        return expr

    def _check_duplicate_fields(self, fields: list[FieldAssign]) -> None:
        seen: set[str] = set()
        for f in fields:
            if f.name in seen:
                self._error(
                    ErrorKind.ARITY_MISMATCH,
                    f"field `{f.name}` is given more than once",
                    f.span,
                )
            seen.add(f.name)

    # ── Braces ───────────────────────────────────────────────────

    def _parse_brace_expr(self) -> Expr:
        """``{}``, ``{a, b}``, ``{h | t}``, or a comprehension."""
        start = self._advance().span  # {
        self._skip_newlines()
        if self._at(TokenKind.RBRACE):
            self._advance()
            return ListLiteral([], self._span_from(start))
        if self._at_any(TokenKind.FOR, TokenKind.IF):
            return self._parse_comprehension(start)

        elements = [self._parse_expression()]
        self._skip_newlines()
        while self._at(TokenKind.COMMA):
            self._advance()
            self._skip_newlines()
            elements.append(self._parse_expression())
            self._skip_newlines()

        if self._at(TokenKind.PIPE):
            self._advance()
            self._skip_newlines()
            tail = self._parse_expression()
            self._skip_newlines()
            self._expect(TokenKind.RBRACE, "to close list")
            span = self._span_from(start)
            for element in reversed(elements):
                tail = ListConsExpr(element, tail, span)
            return tail

        self._expect(TokenKind.RBRACE, "to close list")
        return ListLiteral(elements, self._span_from(start))

    def _parse_comprehension(self, start: Span) -> ListComprehension:
        clauses: list[Generator | Filter] = []
        while True:
            self._skip_newlines()
            tok = self._current()
            if tok.kind == TokenKind.FOR:
                self._advance()
                pattern = self._parse_pattern()
                self._expect(TokenKind.IN, "in generator")
                self._skip_newlines()
                source = self._parse_expression()
                clauses.append(Generator(pattern, source, self._span_from(tok.span)))
            elif tok.kind == TokenKind.IF:
                self._advance()
                condition = self._parse_expression()
                clauses.append(Filter(condition, self._span_from(tok.span)))
            else:
                break
        self._expect(TokenKind.COLON, "before comprehension body")
        self._skip_newlines()
        body = self._parse_expression()
        self._skip_newlines()
        self._expect(TokenKind.RBRACE, "to close comprehension")
        return ListComprehension(clauses, body, self._span_from(start))

    # ── Conditionals and case ────────────────────────────────────

    def _parse_if(self, *, statement: bool = False) -> IfExpr:
        """``if c: a`` then newline-separated ``c: a`` pairs, then ``else b``.

        Without ``else`` the result is only valid as a block statement.
        """
        start = self._expect(TokenKind.IF).span
        branches = [self._parse_guarded_branch(start)]
        while self._at(TokenKind.NEWLINE) and self._newline_continues_if():
            self._skip_newlines()
            branches.append(self._parse_guarded_branch(self._current().span))

        else_branch: Expr | None = None
        if self._at(TokenKind.ELSE) or (
                self._at(TokenKind.NEWLINE) and self._next_line_starts_with(TokenKind.ELSE)):
            self._skip_newlines()
            self._advance()  # else
            self._skip_newlines()
            else_branch = self._parse_expression()
        elif not statement:
            self._error(
                ErrorKind.MISSING_ELSE_BRANCH,
                "`if` used as an expression needs a final `else` branch",
                self._span_from(start),
            )
        return IfExpr(branches, else_branch, self._span_from(start))

    def _parse_guarded_branch(self, start: Span) -> GuardedBranch:
        condition = self._parse_expression()
        self._expect(TokenKind.COLON, "after `if` condition")
        self._skip_newlines()
        body = self._parse_expression()
        return GuardedBranch(condition, body, self._span_from(start))

    def _next_line_starts_with(self, kind: TokenKind) -> bool:
        i = 0
        while self._peek(i).kind == TokenKind.NEWLINE:
            i += 1
        return self._peek(i).kind == kind

    def _newline_continues_if(self) -> bool:
        """Whether the next line is another ``condition: branch`` pair."""
        i = 0
        while self._peek(i).kind == TokenKind.NEWLINE:
            i += 1
        first = self._peek(i)
        if (first.kind in _KEYWORD_KINDS or first.kind in CLOSERS
                or first.kind in SEPARATORS or first.kind in _STATEMENT_STOPS
                or first.kind == TokenKind.EOF):
            return False
        mark = self.stream.mark()
        self.stream.reset(mark + i)
        try:
            stop = self._scan_depth_zero(_STATEMENT_STOPS | {TokenKind.COLON})
        finally:
            self.stream.reset(mark)
        return stop.kind == TokenKind.COLON

    def _parse_case(self) -> CaseExpr:
        """``case s1: s2: [clauses]``"""
        start = self._expect(TokenKind.CASE).span
        scrutinees = [self._parse_expression()]
        self._expect(TokenKind.COLON, "after case scrutinee")
        self._skip_newlines()
        while not self._at(TokenKind.LBRACKET):
            scrutinees.append(self._parse_expression())
            self._expect(TokenKind.COLON, "after case scrutinee")
            self._skip_newlines()
        self._advance()  # [
        clauses = self._parse_items(self._parse_clause, TokenKind.RBRACKET,
                                    what="case clause")
        self._expect(TokenKind.RBRACKET, "to close case clauses")

        for clause in clauses:
            if len(clause.patterns) != len(scrutinees):
                self._error(
                    ErrorKind.ARITY_MISMATCH,
                    f"case clause has {len(clause.patterns)} pattern(s) but "
                    f"there are {len(scrutinees)} scrutinee(s)",
                    clause.span,
                )
        return CaseExpr(scrutinees, clauses, self._span_from(start))

    # ── Statements ───────────────────────────────────────────────

    def _parse_statement(self) -> list[BlockItem]:
        """One block line. A same-line annotation yields two items."""
        tok = self._current()
        if tok.kind in _DECLARATION_KEYWORDS:
            return [self._parse_keyword_declaration()]
        if tok.kind == TokenKind.MODULE:
            self._fail(
                ErrorKind.UNEXPECTED_TOKEN,
                "`module` may only appear as the first declaration of a file",
                tok.span,
            )
        if tok.kind == TokenKind.AT:
            return [self._parse_pending_annotation()]
        if tok.kind == TokenKind.IF:
            expr = self._parse_if(statement=True)
            return [ExprStmt(expr, expr.span)]

        stop = self._scan_depth_zero(_STATEMENT_STOPS)
        if stop.kind == TokenKind.BIND:
            pattern = self._parse_pattern()
            self._expect(TokenKind.BIND)
            self._skip_newlines()
            value = self._parse_expression()
            return [BindStmt(pattern, value, self._span_from(tok.span))]
        if stop.kind in (TokenKind.ASSIGN, TokenKind.AT):
            if tok.kind != TokenKind.IDENTIFIER:
                self._unexpected(["name"], f"before {describe_kind(stop.kind)}")
            return self._parse_definition()

        expr = self._parse_expression()
        return [ExprStmt(expr, expr.span)]
