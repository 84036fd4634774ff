"""
Semantic call resolution over the batch's symbol table.

This module provides:
  - MethodContext: where a call site lives (unit, declaring type, method)
  - ResolvedMethod: the statically resolved target of a call
  - SemanticResolver: the protocol the call resolution engine consumes
  - SymbolTableResolver: a resolver built from the batch's parsed units
  - SymbolResolutionError: raised whenever a call cannot be resolved

The resolver infers receiver types from:
  - local variables and parameters of the calling method
  - fields of the calling type, its enclosing types and their project ancestors
  - static type references (`Utils.format(x)`)
  - `new` expressions, casts, literals
  - chained calls whose target is a project method with a known return type

It never guesses: ambiguous overloads and unknown receivers raise
SymbolResolutionError, which the engine treats as a defer.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

from java_kg.graph.helpers.utils import simple_class_name
from java_kg.graph.type_resolution import (
    BOXED_TYPES,
    JAVA_OBJECT,
    JAVA_PRIMITIVE_TYPES,
    ResolvedType,
    TypeNameResolver,
    allowlisted_type,
)
from java_kg.parser.extractor.base_extractor import MethodDeclaration, ParsedUnit, TypeDeclaration
from java_kg.parser.references.base import CallSite, Expression, ExpressionKind

logger = logging.getLogger(__name__)

# Widening primitive conversions: source -> wider targets
PRIMITIVE_WIDENING: dict[str, frozenset[str]] = {
    "byte": frozenset({"short", "int", "long", "float", "double"}),
    "short": frozenset({"int", "long", "float", "double"}),
    "char": frozenset({"int", "long", "float", "double"}),
    "int": frozenset({"long", "float", "double"}),
    "long": frozenset({"float", "double"}),
    "float": frozenset({"double"}),
}

UNBOXED_TYPES: dict[str, str] = {boxed: primitive for primitive, boxed in BOXED_TYPES.items()}


class SymbolResolutionError(Exception):
    """Raised when a call site cannot be statically resolved."""
    pass


@dataclass(frozen=True)
class MethodContext:
    """The method a call site belongs to.

    Attributes:
        unit: The parsed file
        type_decl: The declaring type of the method
        method: The method declaration
        method_id: The method's entity id
    """
    unit: ParsedUnit
    type_decl: TypeDeclaration
    method: MethodDeclaration
    method_id: str


@dataclass(frozen=True)
class ResolvedMethod:
    """Statically resolved call target.

    Attributes:
        declaring_type: Qualified name of the declaring type
        method_name: The method name
        parameter_types: Signature type texts ("String..." for varargs), or None
            when unknown (methods of types outside the batch)
        declaring_simple_name: Simple name of the declaring type
    """
    declaring_type: str
    method_name: str
    parameter_types: tuple[str, ...] | None = None
    declaring_simple_name: str | None = None

    @property
    def simple_name(self) -> str:
        return self.declaring_simple_name or simple_class_name(self.declaring_type)


class SemanticResolver(Protocol):
    """Statically resolves a call site, or raises."""

    def resolve(self, call_site: CallSite, context: MethodContext) -> ResolvedMethod:
        ...


@dataclass(frozen=True)
class _Candidate:
    method: MethodDeclaration
    owner: ResolvedType


class SymbolTableResolver:
    """Semantic resolver backed by the batch's type declarations.

    Example:
        resolver = SymbolTableResolver(TypeNameResolver(TypeIndex(units)))
        target = resolver.resolve(call_site, context)
        target.declaring_type, target.parameter_types
    """

    MAX_CHAIN_DEPTH: int = 8

    def __init__(self, types: TypeNameResolver):
        self.types = types

    def resolve(self, call_site: CallSite, context: MethodContext) -> ResolvedMethod:
        """Resolve the declaration a call site statically targets.

        Raises:
            SymbolResolutionError: If the receiver type, the method or the
                overload cannot be determined
        """
        return self._resolve_call(call_site.method_name, call_site.receiver, call_site.arguments, context, 0)

    # Call resolution
    def _resolve_call(
        self,
        method_name: str,
        receiver: Expression | None,
        arguments: tuple[Expression, ...],
        context: MethodContext,
        depth: int,
    ) -> ResolvedMethod:
        if depth > self.MAX_CHAIN_DEPTH:
            raise SymbolResolutionError(f"Call chain too deep at {method_name}()")

        if receiver is None or receiver.kind == ExpressionKind.THIS:
            owners = [self._self_type(context)]
            if receiver is None:
                # Unqualified calls also see methods of enclosing types
                owners.extend(
                    self.types.index.declared(t.qualified_name)
                    for t in self.types.enclosing_types(context.type_decl)
                )
            return self._resolve_in_owners(method_name, owners, arguments, context, depth)

        if receiver.kind == ExpressionKind.SUPER:
            superclass = self.types.superclass(context.type_decl, context.unit)
            return self._resolve_in_owners(method_name, [superclass], arguments, context, depth)

        receiver_type = self._infer(receiver, context, depth + 1)
        if receiver_type is None:
            raise SymbolResolutionError(f"Cannot infer receiver type of {receiver.text}")
        if receiver_type.is_primitive:
            raise SymbolResolutionError(f"Method call on primitive {receiver_type.qualified_name}")
        return self._resolve_in_owners(method_name, [receiver_type], arguments, context, depth)

    def _resolve_in_owners(
        self,
        method_name: str,
        owners: list[ResolvedType],
        arguments: tuple[Expression, ...],
        context: MethodContext,
        depth: int,
    ) -> ResolvedMethod:
        """Search each owner and its ancestors; the first owner with a match wins.

        When no owner declares the method but one inherits from a type outside
        the batch, the method is attributed to that external type.
        """
        first_external: ResolvedType | None = None
        for owner in owners:
            if not owner.is_declared:
                return ResolvedMethod(declaring_type=owner.qualified_name, method_name=method_name)

            candidates, external = self._collect_candidates(owner, method_name)
            if candidates:
                chosen = self._select_overload(candidates, arguments, context, depth)
                return ResolvedMethod(
                    declaring_type=chosen.owner.qualified_name,
                    method_name=method_name,
                    parameter_types=tuple(chosen.method.parameter_types),
                    declaring_simple_name=chosen.owner.simple_name,
                )
            if first_external is None:
                first_external = external

        if first_external is not None:
            return ResolvedMethod(declaring_type=first_external.qualified_name, method_name=method_name)
        raise SymbolResolutionError(
            f"No method {method_name}() in {', '.join(o.qualified_name for o in owners)}"
        )

    def _collect_candidates(self, owner: ResolvedType, method_name: str) -> tuple[list[_Candidate], ResolvedType | None]:
        """Methods named `method_name` in the owner or its nearest declaring ancestor.

        Returns:
            (candidates, first external ancestor other than java.lang.Object)
        """
        candidates = [
            _Candidate(method=m, owner=owner)
            for m in owner.declaration.methods
            if m.name == method_name
        ]
        external: ResolvedType | None = None
        seen_signatures = {tuple(c.method.parameter_types) for c in candidates}
        for ancestor in self.types.ancestors(owner.declaration, owner.unit):
            if not ancestor.is_declared:
                if external is None and ancestor.qualified_name != JAVA_OBJECT:
                    external = ancestor
                continue
            for m in ancestor.declaration.methods:
                if m.name != method_name:
                    continue
                signature = tuple(m.parameter_types)
                # Overriding declarations hide inherited ones
                if signature in seen_signatures:
                    continue
                seen_signatures.add(signature)
                candidates.append(_Candidate(method=m, owner=ancestor))
        if not candidates and external is None and method_name in _OBJECT_METHODS:
            external = ResolvedType(qualified_name=JAVA_OBJECT)
        return candidates, external

    def _select_overload(
        self,
        candidates: list[_Candidate],
        arguments: tuple[Expression, ...],
        context: MethodContext,
        depth: int,
    ) -> _Candidate:
        arity_matches = [c for c in candidates if _accepts_arity(c.method, len(arguments))]
        if not arity_matches:
            raise SymbolResolutionError(f"No overload of {candidates[0].method.name}() takes {len(arguments)} arguments")
        if len(arity_matches) == 1:
            return arity_matches[0]

        argument_types = [self._infer(arg, context, depth + 1) for arg in arguments]
        # Fixed-arity overloads are applicable before variable-arity ones
        fixed = [c for c in arity_matches if not c.method.is_varargs]
        variable = [c for c in arity_matches if c.method.is_varargs]
        scored = self._score_all(fixed, argument_types) or self._score_all(variable, argument_types)
        if not scored:
            raise SymbolResolutionError(f"No applicable overload of {candidates[0].method.name}()")

        best = max(score for score, _ in scored)
        best_candidates = [c for score, c in scored if score == best]
        if len(best_candidates) > 1:
            raise SymbolResolutionError(f"Ambiguous call to {candidates[0].method.name}()")
        return best_candidates[0]

    def _score_all(
        self,
        candidates: list[_Candidate],
        argument_types: list[ResolvedType | None],
    ) -> list[tuple[int, _Candidate]]:
        scored = []
        for candidate in candidates:
            score = self._match_score(candidate, argument_types)
            if score is not None:
                scored.append((score, candidate))
        return scored

    def _match_score(self, candidate: _Candidate, argument_types: list[ResolvedType | None]) -> int | None:
        """Number of exactly matching arguments, or None when an argument cannot apply."""
        params = candidate.method.parameters
        score = 0
        for i, arg_type in enumerate(argument_types):
            if params[-1].is_varargs and i >= len(params) - 1:
                param = params[-1]
            elif i < len(params):
                param = params[i]
            else:
                return None
            param_type = self.types.resolve(param.type_name, candidate.owner.unit, candidate.owner.declaration)
            if arg_type is None or param_type is None:
                continue
            if arg_type.qualified_name == "null":
                if param_type.is_primitive:
                    return None
                continue
            if arg_type.qualified_name == param_type.qualified_name:
                score += 1
                continue
            if not self._assignable(arg_type.qualified_name, param_type.qualified_name):
                return None
        return score

    def _assignable(self, source: str, target: str) -> bool:
        if target == JAVA_OBJECT:
            return True
        if source in JAVA_PRIMITIVE_TYPES:
            if target in PRIMITIVE_WIDENING.get(source, ()):
                return True
            return BOXED_TYPES.get(source) == target
        if target in JAVA_PRIMITIVE_TYPES:
            unboxed = UNBOXED_TYPES.get(source)
            return unboxed is not None and (unboxed == target or target in PRIMITIVE_WIDENING.get(unboxed, ()))
        if source in self.types.index:
            return self.types.is_subtype(source, target)
        # Unknown relationship between library types
        return True

    # Expression typing
    def _infer(self, expr: Expression, context: MethodContext, depth: int) -> ResolvedType | None:
        if depth > self.MAX_CHAIN_DEPTH:
            return None

        match expr.kind:
            case ExpressionKind.THIS:
                return self._self_type(context)
            case ExpressionKind.SUPER:
                return self.types.superclass(context.type_decl, context.unit)
            case ExpressionKind.NAME:
                return self._infer_name(expr.name or expr.text, context)
            case ExpressionKind.FIELD_ACCESS:
                return self._infer_field_access(expr, context, depth)
            case ExpressionKind.METHOD_CALL:
                return self._infer_call_result(expr, context, depth)
            case ExpressionKind.NEW | ExpressionKind.CAST:
                if not expr.type_name:
                    return None
                return self.types.resolve(expr.type_name, context.unit, context.type_decl)
            case ExpressionKind.LITERAL:
                if expr.type_name is None:
                    return ResolvedType(qualified_name="null")
                return ResolvedType(qualified_name=allowlisted_type(expr.type_name) or expr.type_name)
            case _:
                return None

    def _infer_name(self, name: str, context: MethodContext) -> ResolvedType | None:
        local_type = context.method.local_variables.get(name)
        if local_type is not None:
            return self.types.resolve(local_type, context.unit, context.type_decl)

        for param in context.method.parameters:
            if param.name == name:
                type_name = f"{param.type_name}[]" if param.is_varargs else param.type_name
                return self.types.resolve(type_name, context.unit, context.type_decl)

        field_type = self._find_field_type(self._self_type(context), name)
        if field_type is not None:
            return field_type
        for enclosing in self.types.enclosing_types(context.type_decl):
            field_type = self._find_field_type(self.types.index.declared(enclosing.qualified_name), name)
            if field_type is not None:
                return field_type

        # A type name: static member access
        if name[:1].isupper():
            return self.types.resolve(name, context.unit, context.type_decl)
        return None

    def _infer_field_access(self, expr: Expression, context: MethodContext, depth: int) -> ResolvedType | None:
        if expr.name is None or expr.target is None:
            return None
        owner = self._infer(expr.target, context, depth + 1)
        if owner is not None and owner.is_declared:
            field_type = self._find_field_type(owner, expr.name)
            if field_type is not None:
                return field_type
            # Outer.Inner static member type
            return self.types.resolve(f"{owner.qualified_name}.{expr.name}", context.unit, context.type_decl)
        if owner is None:
            # Fully qualified type reference like java.util.Collections
            return self.types.resolve(expr.text, context.unit, context.type_decl)
        return None

    def _infer_call_result(self, expr: Expression, context: MethodContext, depth: int) -> ResolvedType | None:
        try:
            target = self._resolve_call(expr.name or "", expr.target, expr.arguments, context, depth + 1)
        except SymbolResolutionError:
            return None
        if target.parameter_types is None:
            return None
        entry = self.types.index.get(target.declaring_type)
        if entry is None:
            return None
        type_decl, unit = entry
        for method in type_decl.methods:
            if method.name == target.method_name and tuple(method.parameter_types) == target.parameter_types:
                if method.return_type == "void":
                    return None
                return self.types.resolve(method.return_type, unit, type_decl)
        return None

    def _find_field_type(self, owner: ResolvedType, name: str) -> ResolvedType | None:
        if not owner.is_declared:
            return None
        field_decl = owner.declaration.find_field(name)
        if field_decl is not None:
            return self.types.resolve(field_decl.type_name, owner.unit, owner.declaration)
        for ancestor in self.types.ancestors(owner.declaration, owner.unit):
            if not ancestor.is_declared:
                continue
            field_decl = ancestor.declaration.find_field(name)
            if field_decl is not None:
                return self.types.resolve(field_decl.type_name, ancestor.unit, ancestor.declaration)
        return None

    def _self_type(self, context: MethodContext) -> ResolvedType:
        return ResolvedType(
            qualified_name=context.type_decl.qualified_name,
            declaration=context.type_decl,
            unit=context.unit,
        )


# Methods every reference type inherits from java.lang.Object
_OBJECT_METHODS = frozenset({
    "equals", "hashCode", "toString", "getClass", "notify", "notifyAll", "wait", "clone", "finalize",
})


def _accepts_arity(method: MethodDeclaration, argument_count: int) -> bool:
    if method.is_varargs:
        return argument_count >= len(method.parameters) - 1
    return argument_count == len(method.parameters)


__all__ = [
    "MethodContext",
    "ResolvedMethod",
    "SemanticResolver",
    "SymbolResolutionError",
    "SymbolTableResolver",
]
