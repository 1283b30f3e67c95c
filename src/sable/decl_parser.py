"""Declarations: term clauses, annotations and keyword declarations.

The same productions serve module top level and ``[...]`` blocks. Term
clauses sharing a name are grouped, and annotations are attached to the
definition that follows them, once a whole item list has been parsed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sable.ast_nodes import (
    Attachment,
    BindStmt,
    BlockItem,
    Clause,
    ConstructorSpec,
    DataDef,
    Declaration,
    EffectDef,
    ExprStmt,
    FieldSpec,
    InstanceDef,
    Module,
    OperationSpec,
    Signature,
    TermDef,
    TypeAnnotation,
    TypeClassDef,
    TypeExpr,
)
from sable.errors import ErrorKind
from sable.parser_base import ParserBase, _ParseError
from sable.source import Span
from sable.tokens import TokenKind, adjacent


@dataclass(frozen=True)
class _PendingAnnotation:
    """``@ Type`` on its own line; named after the definition that follows."""

    type_expr: TypeExpr
    span: Span = field(compare=False)


_ANNOTATABLE = (TermDef, DataDef)


class DeclarationParser(ParserBase):

    # ── Module ───────────────────────────────────────────────────

    def _parse_module(self) -> Module:
        """Parse the whole token stream. Never raises."""
        start = self._current().span
        name: str | None = None
        self._skip_separators()
        if self._at(TokenKind.MODULE):
            try:
                name = self._parse_module_header()
            except _ParseError:
                self._synchronize(0)

        groups = self._parse_items(self._parse_top_level, TokenKind.EOF,
                                   what="declaration")
        items: list[BlockItem] = []
        for item in (i for group in groups for i in group):
            if isinstance(item, (ExprStmt, BindStmt)):
                self._error(
                    ErrorKind.UNEXPECTED_TOKEN,
                    "expressions are not allowed at module level",
                    item.span,
                    notes=["wrap the expression in a definition such as `main = ...`"],
                )
                continue
            items.append(item)

        declarations = self._group_items(items)
        return Module(name, declarations, start.to(self._current().span))

    def _parse_top_level(self) -> list[BlockItem]:
        # The stack is shallow again here, so recovery can resume.
        try:
            return self._parse_statement()
        except RecursionError:
            self._nested_too_deeply()
            raise _ParseError from None

    def _parse_module_header(self) -> str:
        self._advance()  # module
        parts = [self._expect(TokenKind.TYPE_IDENTIFIER, "as module name").value]
        while self._at(TokenKind.DOT):
            self._advance()
            parts.append(self._expect(TokenKind.TYPE_IDENTIFIER, "in module name").value)
        if not self._at_separator() and not self._at(TokenKind.EOF):
            self._unexpected(["newline"], "after module name")
        return ".".join(parts)

    # ── Term clauses and annotations ─────────────────────────────

    def _parse_pending_annotation(self) -> _PendingAnnotation:
        start = self._advance().span  # @
        type_expr = self._parse_type()
        return _PendingAnnotation(type_expr, self._span_from(start))

    def _parse_definition(self) -> list[BlockItem]:
        """``name @ T``, ``name @ T = e`` or ``name pat* = e``."""
        name_tok = self._expect(TokenKind.IDENTIFIER, "as definition name")

        if self._at(TokenKind.AT):
            self._advance()
            type_expr = self._parse_type()
            if not self._at(TokenKind.ASSIGN):
                return [TypeAnnotation(name_tok.value, type_expr,
                                       Attachment.NEXT_DECLARATION,
                                       self._span_from(name_tok.span))]
            annotation = TypeAnnotation(name_tok.value, type_expr, Attachment.SAME_LINE,
                                        self._span_from(name_tok.span))
            self._advance()  # =
            self._skip_newlines()
            body = self._parse_expression()
            span = self._span_from(name_tok.span)
            return [annotation, TermDef(name_tok.value, [Clause([], body, span)], span)]

        patterns = []
        while self._starts_pattern_atom():
            patterns.append(self._parse_pattern_atom())
        self._expect(TokenKind.ASSIGN, f"in definition of `{name_tok.value}`")
        self._skip_newlines()
        body = self._parse_expression()
        span = self._span_from(name_tok.span)
        return [TermDef(name_tok.value, [Clause(patterns, body, span)], span)]

    def _merge_clauses(self, items: list) -> list:
        """Fold consecutive same-name ``TermDef`` items into one."""
        merged: list = []
        for item in items:
            prev = merged[-1] if merged else None
            if (isinstance(item, TermDef) and isinstance(prev, TermDef)
                    and prev.name == item.name):
                merged[-1] = TermDef(prev.name, prev.clauses + item.clauses,
                                     prev.span.to(item.span))
            else:
                merged.append(item)
        return merged

    def _group_items(self, items: list) -> list:
        """Group term clauses and attach annotations to their definitions."""
        merged = self._merge_clauses(items)
        result: list = []
        for i, item in enumerate(merged):
            following = merged[i + 1] if i + 1 < len(merged) else None
            target = following if isinstance(following, _ANNOTATABLE) else None

            if isinstance(item, _PendingAnnotation):
                if target is None:
                    self._error(
                        ErrorKind.DANGLING_ANNOTATION,
                        "type annotation is not followed by a definition",
                        item.span,
                    )
                    continue
                result.append(TypeAnnotation(target.name, item.type_expr,
                                             Attachment.NEXT_DECLARATION, item.span))
                continue

            if (isinstance(item, TypeAnnotation)
                    and item.attachment == Attachment.NEXT_DECLARATION):
                if target is None:
                    self._error(
                        ErrorKind.DANGLING_ANNOTATION,
                        f"annotation for `{item.name}` is not followed by a definition",
                        item.span,
                    )
                    continue
                if target.name != item.name:
                    self.reporter.warning(
                        ErrorKind.ANNOTATION_MISMATCH,
                        f"annotation names `{item.name}` but the next definition "
                        f"is `{target.name}`",
                        item.span,
                        notes=[f"the annotation is kept for `{item.name}`"],
                    )
            result.append(item)
        return result

    # ── Keyword declarations ─────────────────────────────────────

    def _parse_keyword_declaration(self) -> Declaration:
        kind = self._current().kind
        if kind == TokenKind.DATA:
            return self._parse_data_def()
        if kind == TokenKind.EFFECT:
            return self._parse_effect_def()
        if kind == TokenKind.TYPECLASS:
            return self._parse_typeclass_def()
        return self._parse_instance_def()

    def _parse_type_params(self) -> list[str]:
        params = []
        while self._at(TokenKind.IDENTIFIER):
            params.append(self._advance().value)
        return params

    def _open_body(self, what: str) -> None:
        """Consume ``= [`` in front of a declaration body."""
        self._expect(TokenKind.ASSIGN, f"after {what} header")
        self._skip_newlines()
        self._expect(TokenKind.LBRACKET, f"to open {what} body")

    def _parse_data_def(self) -> DataDef:
        """``data Name params = [Ctor types, Ctor[field @ T], ...]``"""
        start = self._advance().span  # data
        name = self._expect(TokenKind.TYPE_IDENTIFIER, "as data type name")
        params = self._parse_type_params()
        self._open_body("data")
        items = self._parse_items(self._parse_data_item, TokenKind.RBRACKET,
                                  commas=True, what="constructor")
        self._expect(TokenKind.RBRACKET, "to close data body")
        span = self._span_from(start)

        fields = [i for i in items if isinstance(i, FieldSpec)]
        constructors = [i for i in items if isinstance(i, ConstructorSpec)]
        if fields and constructors:
            self._error(
                ErrorKind.UNEXPECTED_TOKEN,
                f"`data {name.value}` mixes record fields with constructors",
                fields[0].span,
                notes=[f"put the fields in a constructor: `{name.value}[...]`"],
            )
        if fields and not constructors:
            constructors = [ConstructorSpec(name.value, [], fields, True, span)]
        return DataDef(name.value, params, constructors, span)

    def _parse_data_item(self) -> FieldSpec | ConstructorSpec:
        if self._at(TokenKind.IDENTIFIER):
            return self._parse_field_spec()
        ctor = self._expect(TokenKind.TYPE_IDENTIFIER, "as constructor name")
        if self._at(TokenKind.LBRACKET) and adjacent(ctor, self._current()):
            self._advance()
            named = self._parse_items(self._parse_field_spec, TokenKind.RBRACKET,
                                      commas=True, what="field")
            self._expect(TokenKind.RBRACKET, "to close constructor fields")
            return ConstructorSpec(ctor.value, [], named, False, self._span_from(ctor.span))
        positional = []
        while self._starts_atype():
            positional.append(self._parse_atype())
        return ConstructorSpec(ctor.value, positional, None, False,
                               self._span_from(ctor.span))

    def _parse_field_spec(self) -> FieldSpec:
        """``name @ Type`` with an optional ``= default``."""
        name = self._expect(TokenKind.IDENTIFIER, "as field name")
        self._expect(TokenKind.AT, f"after field `{name.value}`")
        type_expr = self._parse_type()
        default = None
        if self._at(TokenKind.ASSIGN):
            self._advance()
            self._skip_newlines()
            default = self._parse_expression()
        return FieldSpec(name.value, type_expr, default, self._span_from(name.span))

    def _parse_effect_def(self) -> EffectDef:
        start = self._advance().span  # effect
        name = self._expect(TokenKind.TYPE_IDENTIFIER, "as effect name")
        params = self._parse_type_params()
        self._open_body("effect")
        operations = self._parse_items(self._parse_operation_spec, TokenKind.RBRACKET,
                                       commas=True, what="operation")
        self._expect(TokenKind.RBRACKET, "to close effect body")
        return EffectDef(name.value, params, operations, self._span_from(start))

    def _parse_operation_spec(self) -> OperationSpec:
        tok = self._current()
        if tok.kind not in (TokenKind.IDENTIFIER, TokenKind.TYPE_IDENTIFIER):
            self._unexpected(["operation name"])
        self._advance()
        self._expect(TokenKind.AT, f"after operation `{tok.value}`")
        type_expr = self._parse_type()
        return OperationSpec(tok.value, type_expr, self._span_from(tok.span))

    def _parse_typeclass_def(self) -> TypeClassDef:
        """``typeclass (Eq a) => Ord a = [compare @ a -> a -> Ordering, ...]``"""
        start = self._advance().span  # typeclass
        superclasses = []
        if self._constraint_arrow_ahead():
            superclasses = self._parse_context()
            self._expect_operator("=>", "after superclass context")
        name = self._expect(TokenKind.TYPE_IDENTIFIER, "as type class name")
        param = self._expect(TokenKind.IDENTIFIER, "as type class parameter")
        self._open_body("typeclass")
        groups = self._parse_items(self._parse_class_member, TokenKind.RBRACKET,
                                   commas=True, what="member")
        self._expect(TokenKind.RBRACKET, "to close typeclass body")
        members = self._merge_clauses([m for group in groups for m in group])
        return TypeClassDef(name.value, param.value, superclasses, members,
                            self._span_from(start))

    def _parse_class_member(self) -> list[Signature | TermDef]:
        name_tok = self._current()
        if name_tok.kind == TokenKind.IDENTIFIER and self._peek(1).kind == TokenKind.AT:
            items = self._parse_definition()
            members: list[Signature | TermDef] = []
            for item in items:
                if isinstance(item, TypeAnnotation):
                    members.append(Signature(item.name, item.type_expr, item.span))
                else:
                    members.append(item)
            return members
        return self._parse_definition()

    def _parse_instance_def(self) -> InstanceDef:
        """``instance Show a => Show (List a) = [show xs = ...]``"""
        start = self._advance().span  # instance
        context = []
        if self._constraint_arrow_ahead():
            context = self._parse_context()
            self._expect_operator("=>", "after instance context")
        class_name = self._expect(TokenKind.TYPE_IDENTIFIER, "as type class name")
        head = self._parse_atype()
        self._open_body("instance")
        groups = self._parse_items(self._parse_instance_member, TokenKind.RBRACKET,
                                   commas=True, what="member")
        self._expect(TokenKind.RBRACKET, "to close instance body")
        members = self._merge_clauses([m for group in groups for m in group])
        return InstanceDef(class_name.value, head, context, members,
                           self._span_from(start))

    def _parse_instance_member(self) -> list[TermDef]:
        if self._at(TokenKind.IDENTIFIER) and self._peek(1).kind == TokenKind.AT:
            self._fail(
                ErrorKind.UNEXPECTED_TOKEN,
                "type signatures belong in the typeclass, not the instance",
                self._peek(1).span,
            )
        return self._parse_definition()
