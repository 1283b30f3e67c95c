"""Tests for module structure, definitions, annotations and keyword declarations."""

from __future__ import annotations

import pytest

from sable.ast_nodes import (
    ApplyExpr,
    ArrowType,
    Attachment,
    BinaryExpr,
    BindingPattern,
    BlockExpr,
    Clause,
    Constraint,
    ConstructorPattern,
    ConstructorSpec,
    DataDef,
    EffectDef,
    FieldSpec,
    FloatLit,
    IdentifierExpr,
    InstanceDef,
    IntegerLit,
    LiteralPattern,
    OperationSpec,
    Signature,
    StringLit,
    TermDef,
    TupleType,
    TypeAnnotation,
    TypeApp,
    TypeClassDef,
    TypeCon,
    TypeVar,
)
from tests.helpers import S, parse, parse_fails, parse_result, warnings


def con(name: str) -> TypeCon:
    return TypeCon(name, S)


def var(name: str) -> TypeVar:
    return TypeVar(name, S)


def lit(value: int) -> IntegerLit:
    return IntegerLit(value, S)


def decls(source: str) -> list:
    return parse(source).declarations


class TestModule:
    def test_empty_source(self):
        module = parse("")
        assert module.name is None
        assert module.declarations == []

    def test_comments_only(self):
        assert decls("# nothing here\n### or\nhere ###\n") == []

    @pytest.mark.parametrize("with_comment, without", [
        ("f x = x + 1 # inc\ng = 2", "f x = x + 1  \ng = 2"),
        ("g = [ ### one ### 1 ]", "g = [   1 ]"),
        ("main = [\n  x = 1 # first\n  ### a\n  b ###\n  x\n]",
         "main = [\n  x = 1  \n   \n  x\n]"),
        ("h = case n: [0: 1 # zero\n _: 2]", "h = case n: [0: 1  \n _: 2]"),
    ])
    def test_comments_are_transparent(self, with_comment, without):
        assert decls(with_comment) == decls(without)

    def test_module_header(self):
        module = parse("module Main\n\nanswer = 42")
        assert module.name == "Main"
        assert decls("module Main\nanswer = 42") == [
            TermDef("answer", [Clause([], lit(42), S)], S),
        ]

    def test_dotted_module_name(self):
        assert parse("module Geometry.Shapes\narea = 1").name == "Geometry.Shapes"

    def test_module_must_come_first(self):
        parse_fails("x = 1\nmodule Late", "E200")

    def test_expression_at_top_level(self):
        diags = parse_fails('main = 1\nprint "hi"', "E200")
        assert "module level" in diags[0].message
        assert diags[0].notes

    def test_top_level_expression_is_dropped(self):
        result = parse_result("print 1\nmain = 1")
        assert [d.name for d in result.module.declarations] == ["main"]


class TestDefinitions:
    def test_constant(self):
        assert decls("answer = 42") == [TermDef("answer", [Clause([], lit(42), S)], S)]

    def test_function_clauses_are_grouped(self):
        [fact] = decls("fact 0 = 1\nfact n = n * fact (n - 1)")
        assert fact.name == "fact"
        assert [c.patterns for c in fact.clauses] == [
            [LiteralPattern(lit(0), S)],
            [BindingPattern("n", S)],
        ]

    def test_separated_clauses_stay_apart(self):
        names = [d.name for d in decls("f 0 = 1\ng = 2\nf n = n")]
        assert names == ["f", "g", "f"]

    def test_body_on_next_line(self):
        [decl] = decls("double n =\n  n * 2")
        assert decl.clauses[0].body == BinaryExpr(
            IdentifierExpr("n", S), "*", lit(2), S)

    def test_constructor_pattern_parameter(self):
        [decl] = decls("unwrap (Just x) = x")
        assert decl.clauses[0].patterns == [
            ConstructorPattern("Just", [BindingPattern("x", S)], None, S),
        ]

    def test_error_recovery(self):
        result = parse_result("f = = 1\ng = 2")
        assert [d.code for d in result.errors] == ["E200"]
        assert result.module.declarations == [TermDef("g", [Clause([], lit(2), S)], S)]

    def test_each_bad_line_is_reported(self):
        result = parse_result("a = ,\nb = 1\nc = = 2\nd = 3")
        assert [d.code for d in result.errors] == ["E200", "E200"]
        assert [d.name for d in result.module.declarations] == ["b", "d"]


class TestAnnotations:
    def test_annotation_on_previous_line(self):
        annotation, defn = decls("@ Int -> Int\ninc x = x + 1")
        assert annotation == TypeAnnotation("inc", ArrowType(con("Int"), con("Int"), S),
                                            Attachment.NEXT_DECLARATION, S)
        assert defn.name == "inc"

    def test_named_annotation(self):
        annotation, _ = decls("inc @ Int -> Int\ninc x = x + 1")
        assert annotation.name == "inc"
        assert annotation.attachment == Attachment.NEXT_DECLARATION

    def test_anonymous_and_named_forms_agree(self):
        assert decls("@ Int -> Int\ninc x = x + 1") == decls(
            "inc @ Int -> Int\ninc x = x + 1")

    def test_same_line_annotation(self):
        annotation, defn = decls("answer @ Int = 42")
        assert annotation.attachment == Attachment.SAME_LINE
        assert annotation.type_expr == con("Int")
        assert defn == TermDef("answer", [Clause([], lit(42), S)], S)

    def test_same_line_matches_separate_form(self):
        assert decls("answer @ Int = 42") == decls("@ Int\nanswer = 42")

    def test_annotation_with_constraint(self):
        annotation, _ = decls("@ Show a => a -> String\ndescribe x = show x")
        assert annotation.type_expr.constraints == [Constraint("Show", [var("a")], S)]

    def test_annotation_with_effects(self):
        annotation, _ = decls("@ String -> [IO] ()\ngreet name = print name")
        assert annotation.type_expr.result.effects == [con("IO")]

    def test_dangling_annotation(self):
        parse_fails("@ Int", "E206")

    def test_annotation_before_annotation(self):
        result = parse_result("@ Int\n@ Bool\nflag = True")
        assert [d.code for d in result.errors] == ["E206"]
        annotation, _ = result.module.declarations
        assert annotation == TypeAnnotation("flag", con("Bool"),
                                            Attachment.NEXT_DECLARATION, S)

    def test_named_annotation_without_definition(self):
        parse_fails("x = 1\nf @ Int", "E206")

    def test_annotation_name_mismatch_warns(self):
        diags = warnings("f @ Int\ng = 1")
        assert [d.code for d in diags] == ["W300"]
        result = parse_result("f @ Int\ng = 1")
        assert result.ok
        assert [d.name for d in result.module.declarations] == ["f", "g"]


class TestData:
    def test_constructors(self):
        assert decls("data Shape = [Circle Float, Rect Float Float]") == [
            DataDef("Shape", [], [
                ConstructorSpec("Circle", [con("Float")], None, False, S),
                ConstructorSpec("Rect", [con("Float"), con("Float")], None, False, S),
            ], S),
        ]

    def test_type_parameters(self):
        [maybe] = decls("data Maybe a = [Just a, Nothing]")
        assert maybe.params == ["a"]
        assert maybe.constructors[1] == ConstructorSpec("Nothing", [], None, False, S)

    def test_one_constructor_per_line(self):
        [color] = decls("data Color =\n  [ Red\n    Green\n    Blue\n  ]")
        assert [c.name for c in color.constructors] == ["Red", "Green", "Blue"]

    def test_record_constructors(self):
        [shape] = decls("data Shape = [Circle[radius @ Float], Rect[w @ Float, h @ Float]]")
        circle, rect = shape.constructors
        assert circle == ConstructorSpec(
            "Circle", [], [FieldSpec("radius", con("Float"), None, S)], False, S)
        assert [f.name for f in rect.named] == ["w", "h"]

    def test_record_shorthand(self):
        [point] = decls("data Point = [x @ Float, y @ Float = 0.0]")
        assert point.constructors == [
            ConstructorSpec("Point", [], [
                FieldSpec("x", con("Float"), None, S),
                FieldSpec("y", con("Float"), FloatLit(0.0, S), S),
            ], True, S),
        ]

    def test_fields_and_constructors_do_not_mix(self):
        parse_fails("data T = [x @ Int, Foo]", "E200")

    def test_annotation_may_precede_data(self):
        annotation, data = decls("@ Type\ndata Unit = [Unit]")
        assert annotation.name == "Unit"
        assert isinstance(data, DataDef)


class TestEffects:
    def test_effect_operations(self):
        assert decls("effect State s = [get @ s, put @ s -> ()]") == [
            EffectDef("State", ["s"], [
                OperationSpec("get", var("s"), S),
                OperationSpec("put", ArrowType(var("s"), TupleType([], S), S), S),
            ], S),
        ]

    def test_newline_separated_operations(self):
        [console] = decls("effect Console = [\n  read @ String\n  write @ String -> ()\n]")
        assert [op.name for op in console.operations] == ["read", "write"]


class TestTypeClasses:
    def test_signatures(self):
        assert decls("typeclass Show a = [show @ a -> String]") == [
            TypeClassDef("Show", "a", [], [
                Signature("show", ArrowType(var("a"), con("String"), S), S),
            ], S),
        ]

    def test_superclass(self):
        [ord_class] = decls("typeclass Eq a => Ord a = [compare @ a -> a -> Ordering]")
        assert ord_class.name == "Ord"
        assert ord_class.superclasses == [Constraint("Eq", [var("a")], S)]

    def test_default_method(self):
        [eq] = decls("typeclass Eq a = [eq @ a -> a -> Bool; neq x y = !(eq x y)]")
        sig, default = eq.members
        assert isinstance(sig, Signature)
        assert isinstance(default, TermDef)
        assert default.name == "neq"


class TestInstances:
    def test_clauses_are_grouped(self):
        [inst] = decls('instance Show Bool = [show True = "True"; show False = "False"]')
        assert inst == InstanceDef("Show", con("Bool"), [], [
            TermDef("show", [
                Clause([ConstructorPattern("True", [], None, S)], StringLit("True", S), S),
                Clause([ConstructorPattern("False", [], None, S)], StringLit("False", S), S),
            ], S),
        ], S)

    def test_context_and_applied_head(self):
        [inst] = decls('instance Show a => Show (List a) = [show xs = "list"]')
        assert inst.context == [Constraint("Show", [var("a")], S)]
        assert inst.head == TypeApp(con("List"), var("a"), S)

    def test_signature_in_instance_rejected(self):
        parse_fails("instance Show Int = [show @ Int -> String]", "E200")


class TestBlocksAsScopes:
    def test_annotation_inside_block(self):
        block = decls("main = [\n  @ Int\n  x = 1\n  x\n]")[0].clauses[0].body
        assert isinstance(block, BlockExpr)
        annotation, definition = block.statements
        assert annotation == TypeAnnotation("x", con("Int"), Attachment.NEXT_DECLARATION, S)
        assert definition == TermDef("x", [Clause([], lit(1), S)], S)

    def test_data_inside_block(self):
        block = decls("main = [\n  data Pair = [Pair Int Int]\n  Pair 1 2\n]")[0].clauses[0].body
        assert isinstance(block.statements[0], DataDef)
        assert isinstance(block.result, ApplyExpr)

    def test_local_clauses_are_grouped(self):
        block = decls("main = [\n  go 0 = 0\n  go n = go (n - 1)\n  go 3\n]")[0].clauses[0].body
        [go] = block.statements
        assert len(go.clauses) == 2


class TestDeepNesting:
    @pytest.mark.parametrize("nested", [
        "(" * 2000 + "1" + ")" * 2000,
        "{" * 2000 + "1" + "}" * 2000,
        "if a: 1 else " * 2000 + "0",
    ])
    def test_reported_not_raised(self, nested):
        diags = parse_fails(f"main = {nested}\nok = 2", "E200")
        assert len(diags) == 1
        assert diags[0].message == "expression nested too deeply"
        assert diags[0].span.start_line == 1

    def test_later_declarations_survive(self):
        source = "main = " + "(" * 2000 + "1" + ")" * 2000 + "\nok = 2"
        result = parse_result(source)
        assert [d.name for d in result.module.declarations] == ["ok"]

    def test_moderate_nesting_parses(self):
        source = "main = " + "(" * 40 + "1" + ")" * 40
        assert decls(source) == [TermDef("main", [Clause([], lit(1), S)], S)]


class TestPrograms:
    def test_shapes_program(self):
        source = """\
module Shapes

data Shape = [Circle[radius @ Float], Rect[w @ Float, h @ Float]]

@ Shape -> Float
area Circle[radius] = 3.14 * radius * radius
area Rect[w, h] = w * h

effect Log = [log @ String -> ()]

main = [
    shapes = {Circle[radius = 1.0], Rect[w = 2.0, h = 3.0]}
    total = sum (map area shapes)
    log "done"
    total
]
"""
        module = parse(source)
        assert module.name == "Shapes"
        kinds = [type(d).__name__ for d in module.declarations]
        assert kinds == ["DataDef", "TypeAnnotation", "TermDef", "EffectDef", "TermDef"]
        area = module.declarations[2]
        assert len(area.clauses) == 2
        main_block = module.declarations[4].clauses[0].body
        assert main_block.result == IdentifierExpr("total", S)
