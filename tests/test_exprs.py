"""Tests for expressions and the ``[...]`` overloads."""

from __future__ import annotations

import pytest

from sable.ast_nodes import (
    AccessorLambda,
    ApplyExpr,
    BinaryExpr,
    BindingPattern,
    BindStmt,
    BlockExpr,
    CaseExpr,
    Clause,
    ConstructorExpr,
    ConstructorPattern,
    ExprStmt,
    FieldAssign,
    FieldExpr,
    Filter,
    Generator,
    GuardedBranch,
    HandlerExpr,
    IdentifierExpr,
    IfExpr,
    IntegerLit,
    LambdaExpr,
    ListComprehension,
    ListConsExpr,
    ListLiteral,
    LiteralPattern,
    OperationClause,
    RecordExpr,
    RecordUpdateExpr,
    RecordUpdateLambda,
    ReturnClause,
    SectionExpr,
    StringLit,
    TermDef,
    TupleExpr,
    UnaryExpr,
    WildcardPattern,
)
from sable.errors import CompileError
from sable.parser import parse_expression
from tests.helpers import S, body, parse_fails


def ident(name: str) -> IdentifierExpr:
    return IdentifierExpr(name, S)


def lit(value: int) -> IntegerLit:
    return IntegerLit(value, S)


def bind(name: str) -> BindingPattern:
    return BindingPattern(name, S)


def binop(left, op, right) -> BinaryExpr:
    return BinaryExpr(left, op, right, S)


def apply(fn, *args):
    for arg in args:
        fn = ApplyExpr(fn, arg, S)
    return fn


def expr_codes(source: str) -> list[str]:
    with pytest.raises(CompileError) as exc:
        parse_expression(source)
    return [d.code for d in exc.value.diagnostics]


class TestOperators:
    def test_precedence(self):
        assert parse_expression("1 + 2 * 3") == binop(lit(1), "+", binop(lit(2), "*", lit(3)))

    def test_left_associative(self):
        assert parse_expression("a - b - c") == binop(
            binop(ident("a"), "-", ident("b")), "-", ident("c"))

    def test_right_associative(self):
        assert parse_expression("a ++ b ++ c") == binop(
            ident("a"), "++", binop(ident("b"), "++", ident("c")))
        assert parse_expression("2 ^ 3 ^ 4") == binop(lit(2), "^", binop(lit(3), "^", lit(4)))

    def test_pipe_is_loosest(self):
        assert parse_expression("xs |> f && g") == binop(
            ident("xs"), "|>", binop(ident("f"), "&&", ident("g")))

    def test_comparison_between_logic(self):
        assert parse_expression("a < b && c == d") == binop(
            binop(ident("a"), "<", ident("b")), "&&", binop(ident("c"), "==", ident("d")))

    def test_chained_comparison_rejected(self):
        assert expr_codes("a < b < c") == ["E200"]

    def test_unlisted_operator_binds_tightest(self):
        assert parse_expression("a + b <$> c") == binop(
            ident("a"), "+", binop(ident("b"), "<$>", ident("c")))

    def test_operator_continues_on_next_line(self):
        assert parse_expression("1 +\n2") == binop(lit(1), "+", lit(2))

    def test_unary(self):
        assert parse_expression("-x") == UnaryExpr("-", ident("x"), S)
        assert parse_expression("!done") == UnaryExpr("!", ident("done"), S)

    def test_unary_applies_to_application(self):
        assert parse_expression("-f x") == UnaryExpr("-", apply(ident("f"), ident("x")), S)


class TestApplication:
    def test_juxtaposition(self):
        assert parse_expression("f x y") == apply(ident("f"), ident("x"), ident("y"))

    def test_application_binds_tighter_than_operators(self):
        assert parse_expression("f x + g y") == binop(
            apply(ident("f"), ident("x")), "+", apply(ident("g"), ident("y")))

    def test_constructor_application(self):
        assert parse_expression("Circle radius") == apply(
            ConstructorExpr("Circle", S), ident("radius"))

    def test_parens_tuple_unit(self):
        assert parse_expression("(a, b)") == TupleExpr([ident("a"), ident("b")], S)
        assert parse_expression("()") == TupleExpr([], S)
        assert parse_expression("(1 + 2) * 3") == binop(binop(lit(1), "+", lit(2)), "*", lit(3))

    def test_field_access(self):
        assert parse_expression("p.name.first") == FieldExpr(
            FieldExpr(ident("p"), "name", S), "first", S)

    def test_field_access_as_argument(self):
        assert parse_expression("f p.x") == apply(ident("f"), FieldExpr(ident("p"), "x", S))


class TestLambdas:
    def test_curried_lambda(self):
        assert parse_expression("[x: y: x + y]") == LambdaExpr([
            Clause([bind("x"), bind("y")], binop(ident("x"), "+", ident("y")), S),
        ], S)

    def test_multi_clause_lambda(self):
        assert parse_expression("[0: 1; n: n * 2]") == LambdaExpr([
            Clause([LiteralPattern(lit(0), S)], lit(1), S),
            Clause([bind("n")], binop(ident("n"), "*", lit(2)), S),
        ], S)

    def test_constructor_patterns(self):
        lam = parse_expression("[Just x: x\n Nothing: 0]")
        assert [c.patterns for c in lam.clauses] == [
            [ConstructorPattern("Just", [bind("x")], None, S)],
            [ConstructorPattern("Nothing", [], None, S)],
        ]

    def test_lambda_as_argument(self):
        assert parse_expression("map [x: x] xs") == apply(
            ident("map"), LambdaExpr([Clause([bind("x")], ident("x"), S)], S), ident("xs"))

    def test_body_on_next_line(self):
        lam = parse_expression("[x:\n  x + 1]")
        assert lam.clauses[0].body == binop(ident("x"), "+", lit(1))


class TestBlocks:
    def test_block_with_bindings(self):
        block = parse_expression("[x = 1; y =! read; x + y]")
        assert block == BlockExpr([
            TermDef("x", [Clause([], lit(1), S)], S),
            BindStmt(bind("y"), ident("read"), S),
        ], binop(ident("x"), "+", ident("y")), S)

    def test_newline_separated(self):
        block = parse_expression("[\n  print x\n  x\n]")
        assert block == BlockExpr([ExprStmt(apply(ident("print"), ident("x")), S)],
                                  ident("x"), S)

    def test_local_function(self):
        block = parse_expression("[\n  double n = n * 2\n  double 4\n]")
        assert isinstance(block.statements[0], TermDef)
        assert block.statements[0].clauses[0].patterns == [bind("n")]

    def test_block_must_end_with_expression(self):
        assert expr_codes("[x = 1]") == ["E200"]

    def test_long_first_line(self):
        total = " + ".join(f"x{n}" for n in range(40))
        block = body(f"main = [print ({total})\n  0]")
        assert isinstance(block, BlockExpr)
        assert block.result == lit(0)

    def test_deep_nesting_is_a_compile_error(self):
        source = "[" * 1500 + "1" + "]" * 1500
        with pytest.raises(CompileError) as exc:
            parse_expression(source)
        [diag] = exc.value.diagnostics
        assert diag.code == "E200"
        assert diag.message == "expression nested too deeply"

    def test_empty_brackets_are_ambiguous(self):
        with pytest.raises(CompileError) as exc:
            parse_expression("[]")
        diag = exc.value.diagnostics[0]
        assert diag.code == "E201"
        assert any("`{}`" in note for note in diag.notes)

    def test_error_recovery_inside_block(self):
        diags = parse_fails("main = [\n  x = = 1\n  y = 2\n  y\n]", "E200")
        assert len(diags) == 1


class TestSections:
    def test_right_section(self):
        assert parse_expression("[+ 1]") == SectionExpr("+", None, lit(1), S)

    def test_bare_operator(self):
        assert parse_expression("[+]") == SectionExpr("+", None, None, S)

    def test_minus_section(self):
        assert parse_expression("[-1]") == SectionExpr("-", None, lit(1), S)

    def test_left_section(self):
        assert parse_expression("[x +]") == SectionExpr("+", ident("x"), None, S)

    def test_accessor_lambda(self):
        assert parse_expression("[.name.first]") == AccessorLambda(["name", "first"], S)


class TestRecords:
    def test_field_pun(self):
        assert parse_expression("Circle[radius]") == RecordExpr(
            "Circle", [], [FieldAssign("radius", None, S)], S)

    def test_named_fields(self):
        assert parse_expression("Point[x = 1, y]") == RecordExpr(
            "Point", [], [FieldAssign("x", lit(1), S), FieldAssign("y", None, S)], S)

    def test_positional(self):
        assert parse_expression("Pair[1, f 2]") == RecordExpr(
            "Pair", [lit(1), apply(ident("f"), lit(2))], [], S)

    def test_multiline_record(self):
        rec = parse_expression("Point[\n  x = 1\n  y = 2\n]")
        assert [f.name for f in rec.fields] == ["x", "y"]

    def test_record_update(self):
        assert parse_expression("p.[x = 1]") == RecordUpdateExpr(
            ident("p"), [FieldAssign("x", lit(1), S)], S)

    def test_record_update_lambda(self):
        assert parse_expression(".[done = True]") == RecordUpdateLambda(
            [FieldAssign("done", ConstructorExpr("True", S), S)], S)

    def test_record_update_lambda_as_argument(self):
        assert parse_expression("map .[n] xs") == apply(
            ident("map"), RecordUpdateLambda([FieldAssign("n", None, S)], S), ident("xs"))

    def test_field_expression_is_not_a_pun(self):
        assert expr_codes("Point[p.x]") == ["E205"]

    def test_mixed_named_and_positional(self):
        assert expr_codes("Point[x, 2]") == ["E205"]

    def test_duplicate_field(self):
        assert expr_codes("Point[x, x = 1]") == ["E202"]

    def test_update_requires_names(self):
        assert expr_codes("p.[1]") == ["E205"]


class TestLists:
    def test_empty_list(self):
        assert parse_expression("{}") == ListLiteral([], S)

    def test_list_literal(self):
        assert parse_expression("{1, 2}") == ListLiteral([lit(1), lit(2)], S)

    def test_cons(self):
        assert parse_expression("{x | xs}") == ListConsExpr(ident("x"), ident("xs"), S)

    def test_comprehension(self):
        assert parse_expression("{for x in xs for y in ys if x > y: x + y}") == (
            ListComprehension([
                Generator(bind("x"), ident("xs"), S),
                Generator(bind("y"), ident("ys"), S),
                Filter(binop(ident("x"), ">", ident("y")), S),
            ], binop(ident("x"), "+", ident("y")), S))

    def test_multiline_comprehension(self):
        comp = parse_expression("{for (k, v) in pairs\n if v > 0:\n k}")
        assert len(comp.clauses) == 2
        assert comp.body == ident("k")


class TestHandlers:
    def test_handler(self):
        assert parse_expression("[x: x; get | k: k 0]") == HandlerExpr([
            ReturnClause(bind("x"), ident("x"), S),
            OperationClause("get", [], "k", apply(ident("k"), lit(0)), S),
        ], S)

    def test_operation_arguments(self):
        handler = parse_expression("[put s | k: k ()\n _: 0]")
        op = handler.clauses[0]
        assert op == OperationClause("put", [bind("s")], "k",
                                     apply(ident("k"), TupleExpr([], S)), S)
        assert handler.clauses[1] == ReturnClause(WildcardPattern(S), lit(0), S)

    def test_return_clause_takes_one_pattern(self):
        assert expr_codes("[a: b: a; get | k: k 0]") == ["E202"]

    def test_return_clause_must_bind(self):
        assert expr_codes("[0: 1; get | k: k 0]") == ["E200"]


class TestConditionals:
    def test_if_else(self):
        assert parse_expression("if c: 1 else 2") == IfExpr(
            [GuardedBranch(ident("c"), lit(1), S)], lit(2), S)

    def test_multi_branch_block(self):
        block = parse_expression("[\n  if n < 0: -1\n  n > 0: 1\n  else 0\n]")
        result = block.result
        assert isinstance(result, IfExpr)
        assert len(result.branches) == 2
        assert result.else_branch == lit(0)

    def test_missing_else_in_expression(self):
        parse_fails("f = if c: 1", "E203")

    def test_missing_else_as_block_result(self):
        parse_fails("f = [\n  if c: 1\n]", "E203")

    def test_if_statement_may_omit_else(self):
        block = body("f = [\n  if c: log x\n  0\n]")
        assert isinstance(block.statements[0], ExprStmt)
        assert block.statements[0].expr.else_branch is None

    def test_else_on_next_line(self):
        assert body("f = if c: 1\n  else 2").else_branch == lit(2)

    def test_case(self):
        assert parse_expression("case x: [Some a: a; None: 0]") == CaseExpr([ident("x")], [
            Clause([ConstructorPattern("Some", [bind("a")], None, S)], ident("a"), S),
            Clause([ConstructorPattern("None", [], None, S)], lit(0), S),
        ], S)

    def test_case_multiple_scrutinees(self):
        case = parse_expression('case a: b: [0: 0: "zero"; _: _: "other"]')
        assert len(case.scrutinees) == 2
        assert case.clauses[0].body == StringLit("zero", S)

    def test_case_arity_mismatch(self):
        assert expr_codes("case a: b: [x: 1]") == ["E202"]
