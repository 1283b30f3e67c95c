"""AST node definitions for the Sable language.

Every node is a frozen dataclass. Spans are excluded from comparison, so
two trees parsed from differently laid out source compare equal when
their structure does.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from sable.source import Span

# ── Type expressions ─────────────────────────────────────────────


@dataclass(frozen=True)
class TypeVar:
    name: str
    span: Span = field(compare=False)


@dataclass(frozen=True)
class TypeCon:
    name: str
    span: Span = field(compare=False)


@dataclass(frozen=True)
class TypeApp:
    fn: TypeExpr
    arg: TypeExpr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class ArrowType:
    param: TypeExpr
    result: TypeExpr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class TupleType:
    elements: list[TypeExpr]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class EffectType:
    """``[E1, E2, e] T``: a computation performing effects, yielding T.

    ``row`` is the trailing row variable of an open effect list. A bare
    effect list with no result type has ``result`` None.
    """

    effects: list[TypeExpr]
    row: TypeVar | None
    result: TypeExpr | None
    span: Span = field(compare=False)


@dataclass(frozen=True)
class Constraint:
    class_name: str
    args: list[TypeExpr]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class QualifiedType:
    constraints: list[Constraint]
    body: TypeExpr
    span: Span = field(compare=False)


TypeExpr = Union[
    TypeVar, TypeCon, TypeApp, ArrowType, TupleType, EffectType, QualifiedType,
]


# ── Literals ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class IntegerLit:
    value: int
    span: Span = field(compare=False)


@dataclass(frozen=True)
class FloatLit:
    value: float
    span: Span = field(compare=False)


@dataclass(frozen=True)
class StringLit:
    value: str
    span: Span = field(compare=False)


@dataclass(frozen=True)
class CharLit:
    value: str
    span: Span = field(compare=False)


Literal = Union[IntegerLit, FloatLit, StringLit, CharLit]


# ── Patterns ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class WildcardPattern:
    span: Span = field(compare=False)


@dataclass(frozen=True)
class BindingPattern:
    name: str
    span: Span = field(compare=False)


@dataclass(frozen=True)
class LiteralPattern:
    literal: Literal
    span: Span = field(compare=False)


@dataclass(frozen=True)
class FieldPattern:
    name: str
    pattern: Pattern | None  # None for a pun
    span: Span = field(compare=False)


@dataclass(frozen=True)
class ConstructorPattern:
    name: str
    args: list[Pattern]
    fields: list[FieldPattern] | None  # set for Ctor[...] patterns
    span: Span = field(compare=False)


@dataclass(frozen=True)
class ListConsPattern:
    head: Pattern
    tail: Pattern
    span: Span = field(compare=False)


@dataclass(frozen=True)
class ListPattern:
    elements: list[Pattern]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class TuplePattern:
    elements: list[Pattern]
    span: Span = field(compare=False)


Pattern = Union[
    WildcardPattern, BindingPattern, LiteralPattern, ConstructorPattern,
    ListConsPattern, ListPattern, TuplePattern,
]


# ── Expressions ──────────────────────────────────────────────────


@dataclass(frozen=True)
class IdentifierExpr:
    name: str
    span: Span = field(compare=False)


@dataclass(frozen=True)
class ConstructorExpr:
    name: str
    span: Span = field(compare=False)


@dataclass(frozen=True)
class ApplyExpr:
    fn: Expr
    arg: Expr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class BinaryExpr:
    left: Expr
    op: str
    right: Expr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class UnaryExpr:
    op: str
    operand: Expr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class GuardedBranch:
    condition: Expr
    body: Expr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class IfExpr:
    branches: list[GuardedBranch]
    else_branch: Expr | None  # None only in statement position
    span: Span = field(compare=False)


@dataclass(frozen=True)
class BlockExpr:
    statements: list[BlockItem]
    result: Expr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class Clause:
    """Patterns and body shared by definitions, lambdas and case."""

    patterns: list[Pattern]
    body: Expr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class CaseExpr:
    scrutinees: list[Expr]
    clauses: list[Clause]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class LambdaExpr:
    clauses: list[Clause]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class ReturnClause:
    """Handler clause for a computation that finished with a value."""

    binder: Pattern
    body: Expr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class OperationClause:
    """Handler clause for a computation suspended at an operation call."""

    operation: str
    args: list[Pattern]
    continuation: str
    body: Expr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class HandlerExpr:
    clauses: list[ReturnClause | OperationClause]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class ListLiteral:
    elements: list[Expr]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class ListConsExpr:
    head: Expr
    tail: Expr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class Generator:
    pattern: Pattern
    source: Expr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class Filter:
    condition: Expr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class ListComprehension:
    clauses: list[Generator | Filter]
    body: Expr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class TupleExpr:
    elements: list[Expr]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class FieldAssign:
    name: str
    value: Expr | None  # None for a pun
    span: Span = field(compare=False)


@dataclass(frozen=True)
class RecordExpr:
    constructor: str
    args: list[Expr]
    fields: list[FieldAssign]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class RecordUpdateExpr:
    target: Expr
    fields: list[FieldAssign]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class RecordUpdateLambda:
    fields: list[FieldAssign]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class FieldExpr:
    target: Expr
    name: str
    span: Span = field(compare=False)


@dataclass(frozen=True)
class AccessorLambda:
    path: list[str]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class SectionExpr:
    """``[op]``, ``[op right]`` or ``[left op]``."""

    op: str
    left: Expr | None
    right: Expr | None
    span: Span = field(compare=False)


Expr = Union[
    IntegerLit, FloatLit, StringLit, CharLit,
    IdentifierExpr, ConstructorExpr, ApplyExpr, BinaryExpr, UnaryExpr,
    IfExpr, BlockExpr, CaseExpr, LambdaExpr, HandlerExpr,
    ListLiteral, ListConsExpr, ListComprehension, TupleExpr,
    RecordExpr, RecordUpdateExpr, RecordUpdateLambda,
    FieldExpr, AccessorLambda, SectionExpr,
]


# ── Statements ───────────────────────────────────────────────────


@dataclass(frozen=True)
class BindStmt:
    pattern: Pattern
    value: Expr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class ExprStmt:
    expr: Expr
    span: Span = field(compare=False)


# ── Declarations ─────────────────────────────────────────────────


class Attachment(Enum):
    NEXT_DECLARATION = "next-declaration"
    SAME_LINE = "same-line"


@dataclass(frozen=True)
class TypeAnnotation:
    name: str
    type_expr: TypeExpr
    attachment: Attachment = field(compare=False)
    span: Span = field(compare=False)


@dataclass(frozen=True)
class TermDef:
    name: str
    clauses: list[Clause]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type_expr: TypeExpr
    default: Expr | None
    span: Span = field(compare=False)


@dataclass(frozen=True)
class ConstructorSpec:
    name: str
    positional: list[TypeExpr]
    named: list[FieldSpec] | None
    implicit: bool  # synthesized by the record shorthand
    span: Span = field(compare=False)


@dataclass(frozen=True)
class DataDef:
    name: str
    params: list[str]
    constructors: list[ConstructorSpec]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class OperationSpec:
    name: str
    type_expr: TypeExpr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class EffectDef:
    name: str
    params: list[str]
    operations: list[OperationSpec]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class Signature:
    name: str
    type_expr: TypeExpr
    span: Span = field(compare=False)


@dataclass(frozen=True)
class TypeClassDef:
    name: str
    param: str
    superclasses: list[Constraint]
    members: list[Signature | TermDef]
    span: Span = field(compare=False)


@dataclass(frozen=True)
class InstanceDef:
    class_name: str
    head: TypeExpr
    context: list[Constraint]
    members: list[TermDef]
    span: Span = field(compare=False)


Declaration = Union[
    TermDef, TypeAnnotation, DataDef, EffectDef, TypeClassDef, InstanceDef,
]

BlockItem = Union[Declaration, BindStmt, ExprStmt]


@dataclass(frozen=True)
class Module:
    name: str | None
    declarations: list[Declaration]
    span: Span = field(compare=False)
