"""
Base reference data models.

This module provides:
  - ExpressionKind: The closed set of expression shapes the resolver understands
  - ReceiverKind: The closed set of receiver shapes the syntactic tier dispatches on
  - Expression: A small, tree-sitter-independent model of a Java expression
  - CallSite: A method invocation with its receiver and arguments
  - MethodReferences: Everything a method body references (calls, fields, names, locals)

These data models are used by RelationBuilder to create:
  - CALLS edges: Method -> Method
  - ACCESSES edges: Method -> Field

Design Principles:
  - Extract raw reference data without resolution (resolution is done later)
  - Keep the Tree-sitter AST ephemeral: expressions are copied into plain dataclasses
  - Include line/column for every call site so resolution failures can be traced
"""

import enum
from dataclasses import dataclass, field


class ExpressionKind(enum.StrEnum):
    """Shape of an expression as seen by call resolution."""

    NAME = "name"
    THIS = "this"
    SUPER = "super"
    FIELD_ACCESS = "field_access"
    METHOD_CALL = "method_call"
    NEW = "new"
    LITERAL = "literal"
    CAST = "cast"
    OTHER = "other"


class ReceiverKind(enum.StrEnum):
    """Shape of a call receiver as seen by the syntactic resolution tier.

    Matched exhaustively: adding a member forces every dispatch site to
    handle it explicitly.
    """

    NONE = "none"
    THIS = "this"
    SUPER = "super"
    NAME = "name"
    FIELD_ACCESS = "field_access"
    OTHER = "other"


@dataclass(frozen=True)
class Expression:
    """A Java expression reduced to what call resolution needs.

    Attributes:
        kind: The expression shape.
        text: Source text of the expression (normalized whitespace).
        name: Identifier for NAME, field name for FIELD_ACCESS, method name for METHOD_CALL.
        type_name: Declared type for NEW and CAST, literal type for LITERAL
            (None for the `null` literal).
        target: Object expression for FIELD_ACCESS and METHOD_CALL, operand for CAST.
        arguments: Argument expressions for METHOD_CALL.

    Examples:
        # helper
        Expression(kind=NAME, text="helper", name="helper")

        # this.repo
        Expression(kind=FIELD_ACCESS, text="this.repo", name="repo",
                   target=Expression(kind=THIS, text="this"))

        # new Foo()
        Expression(kind=NEW, text="new Foo()", type_name="Foo")
    """
    kind: ExpressionKind
    text: str
    name: str | None = None
    type_name: str | None = None
    target: "Expression | None" = None
    arguments: tuple["Expression", ...] = ()


@dataclass(frozen=True)
class CallSite:
    """Represents a method invocation found inside a method body.

    Attributes:
        method_name: The invoked method's simple name.
        receiver: The receiver expression, or None for an unqualified call `foo()`.
        arguments: Argument expressions in source order.
        line_number: 1-indexed line where the call appears.
        column: 0-indexed column where the call starts.

    Examples:
        # helper(x)
        CallSite(method_name="helper", receiver=None, arguments=(<x>,))

        # repo.save(user)
        CallSite(method_name="save", receiver=<repo>, arguments=(<user>,))
    """
    method_name: str
    receiver: Expression | None = None
    arguments: tuple[Expression, ...] = ()
    line_number: int = 0
    column: int = 0

    @property
    def receiver_kind(self) -> ReceiverKind:
        """Classify the receiver for the syntactic tier."""
        if self.receiver is None:
            return ReceiverKind.NONE
        match self.receiver.kind:
            case ExpressionKind.THIS:
                return ReceiverKind.THIS
            case ExpressionKind.SUPER:
                return ReceiverKind.SUPER
            case ExpressionKind.NAME:
                return ReceiverKind.NAME
            case ExpressionKind.FIELD_ACCESS:
                return ReceiverKind.FIELD_ACCESS
            case _:
                return ReceiverKind.OTHER

    @property
    def display(self) -> str:
        if self.receiver is None:
            return f"{self.method_name}()"
        return f"{self.receiver.text}.{self.method_name}()"


@dataclass
class FieldAccess:
    """A `<object>.<field>` expression inside a method body.

    Attributes:
        field_name: The accessed field name.
        on_this: True when the object is `this` (i.e. `this.field`).
        line_number: 1-indexed line of the access.
    """
    field_name: str
    on_this: bool = False
    line_number: int = 0


@dataclass
class MethodReferences:
    """Container for everything referenced from a single method body.

    Attributes:
        call_sites: Method invocations in source order.
        field_accesses: `x.f` expressions in source order.
        name_references: Bare identifiers used as expressions (may be fields or locals).
        local_variables: Local variable name -> declared type (first declaration wins).
    """
    call_sites: list[CallSite] = field(default_factory=list)
    field_accesses: list[FieldAccess] = field(default_factory=list)
    name_references: list[str] = field(default_factory=list)
    local_variables: dict[str, str] = field(default_factory=dict)
