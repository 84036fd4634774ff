"""
Java type name resolution over a batch of parsed units.

This module provides:
  - TypeIndex: every type declared in the batch, by qualified and simple name
  - TypeNameResolver: resolving a type name as written in a unit to a qualified name
  - ResolvedType: the result, with the declaration when the type is in the batch

Two resolution modes exist:
  - `resolve_declared_type()` is the conservative lookup used by the syntactic
    call-resolution tier. In order:
      a. fixed allowlist of primitive and base-library types (java.lang, java.util)
      b. exact match against the unit's single-type imports
      c. same-package fallback, only for types declared in the batch
  - `resolve()` additionally understands nested types, qualified names, wildcard
    imports and inherited member types; the semantic resolver uses it.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterator

from java_kg.graph.helpers.utils import erase_type, simple_class_name
from java_kg.parser.extractor.base_extractor import ParsedUnit, TypeDeclaration

logger = logging.getLogger(__name__)

JAVA_PRIMITIVE_TYPES = frozenset({
    "boolean", "byte", "char", "short", "int", "long", "float", "double", "void",
})

JAVA_LANG_PREFIX = "java.lang."
JAVA_UTIL_PREFIX = "java.util."
JAVA_OBJECT = "java.lang.Object"

JAVA_LANG_TYPES = frozenset({
    "Object", "String", "StringBuilder", "StringBuffer", "CharSequence",
    "Boolean", "Byte", "Character", "Short", "Integer", "Long", "Float", "Double",
    "Number", "Math", "System", "Thread", "Runnable", "Class", "Enum", "Record",
    "Iterable", "Comparable", "AutoCloseable", "Void",
    "Exception", "RuntimeException", "Error", "Throwable",
    "IllegalArgumentException", "IllegalStateException", "NullPointerException",
    "UnsupportedOperationException", "IndexOutOfBoundsException",
})

JAVA_UTIL_TYPES = frozenset({
    "List", "ArrayList", "LinkedList", "Map", "HashMap", "LinkedHashMap", "TreeMap",
    "Set", "HashSet", "LinkedHashSet", "TreeSet", "Collection", "Collections",
    "Arrays", "Objects", "Optional", "Iterator", "Queue", "Deque", "ArrayDeque",
    "UUID", "Date", "Random", "Scanner",
})

# Primitive -> boxed type
BOXED_TYPES: dict[str, str] = {
    "boolean": "java.lang.Boolean",
    "byte": "java.lang.Byte",
    "char": "java.lang.Character",
    "short": "java.lang.Short",
    "int": "java.lang.Integer",
    "long": "java.lang.Long",
    "float": "java.lang.Float",
    "double": "java.lang.Double",
}


def allowlisted_type(type_name: str) -> str | None:
    """Qualified name of a primitive or base-library type, else None."""
    if type_name in JAVA_PRIMITIVE_TYPES:
        return type_name
    if type_name in JAVA_LANG_TYPES:
        return JAVA_LANG_PREFIX + type_name
    if type_name in JAVA_UTIL_TYPES:
        return JAVA_UTIL_PREFIX + type_name
    if type_name.startswith((JAVA_LANG_PREFIX, JAVA_UTIL_PREFIX)):
        return type_name
    return None


@dataclass(frozen=True)
class ResolvedType:
    """A type name resolved to its qualified name.

    Attributes:
        qualified_name: Fully qualified name (primitives are their own name)
        declaration: The declaration when the type is declared in the batch
        unit: The unit declaring it
    """
    qualified_name: str
    declaration: TypeDeclaration | None = None
    unit: ParsedUnit | None = None

    @property
    def simple_name(self) -> str:
        if self.declaration is not None:
            return self.declaration.name
        return simple_class_name(self.qualified_name)

    @property
    def is_declared(self) -> bool:
        return self.declaration is not None

    @property
    def is_primitive(self) -> bool:
        return self.qualified_name in JAVA_PRIMITIVE_TYPES


class TypeIndex:
    """Lookup tables over every type declared in a batch.

    Example:
        index = TypeIndex(units)
        decl, unit = index.get("com.acme.UserService")
    """

    def __init__(self, units: list[ParsedUnit]):
        self._by_qualified: dict[str, tuple[TypeDeclaration, ParsedUnit]] = {}
        self._by_simple: dict[str, list[str]] = defaultdict(list)
        self._by_package: dict[str, set[str]] = defaultdict(set)

        for unit in units:
            for type_decl in unit.types:
                if type_decl.qualified_name in self._by_qualified:
                    logger.debug(f"Duplicate type declaration {type_decl.qualified_name} in {unit.file_path}")
                    continue
                self._by_qualified[type_decl.qualified_name] = (type_decl, unit)
                self._by_simple[type_decl.name].append(type_decl.qualified_name)
                self._by_package[unit.package].add(type_decl.qualified_name)

    def get(self, qualified_name: str) -> tuple[TypeDeclaration, ParsedUnit] | None:
        return self._by_qualified.get(qualified_name)

    def __contains__(self, qualified_name: object) -> bool:
        return qualified_name in self._by_qualified

    def __len__(self) -> int:
        return len(self._by_qualified)

    def qualified_names_for(self, simple_name: str) -> list[str]:
        return list(self._by_simple.get(simple_name, ()))

    def in_package(self, package: str, simple_name: str) -> str | None:
        qualified = f"{package}.{simple_name}" if package else simple_name
        if qualified in self._by_package.get(package, ()):
            return qualified
        return None

    def declared(self, qualified_name: str) -> ResolvedType:
        entry = self._by_qualified.get(qualified_name)
        if entry is None:
            return ResolvedType(qualified_name=qualified_name)
        return ResolvedType(qualified_name=qualified_name, declaration=entry[0], unit=entry[1])


class TypeNameResolver:
    """Resolves type names as written in a unit to qualified names.

    Example:
        resolver = TypeNameResolver(TypeIndex(units))
        resolved = resolver.resolve_declared_type("UserRepository", unit)
        resolved.qualified_name  # "com.acme.repo.UserRepository"
    """

    def __init__(self, index: TypeIndex):
        self.index = index

    def resolve_declared_type(self, type_name: str, unit: ParsedUnit) -> ResolvedType | None:
        """Allowlist, then single-type imports, then same-package declared types.

        Returns:
            The resolved type, or None when none of the three steps matches
        """
        base = erase_type(type_name)
        if not base:
            return None

        allowed = allowlisted_type(base)
        if allowed is not None:
            return ResolvedType(qualified_name=allowed)

        for imp in unit.imports:
            if not imp.is_static and not imp.is_wildcard and imp.simple_name == base:
                return self.index.declared(imp.name)

        same_package = self.index.in_package(unit.package, base)
        if same_package is not None:
            return self.index.declared(same_package)
        return None

    def resolve(
        self,
        type_name: str,
        unit: ParsedUnit,
        context: TypeDeclaration | None = None,
        include_inherited: bool = True,
    ) -> ResolvedType | None:
        """Resolve a type name with full Java scoping rules, best effort.

        Args:
            type_name: Type text as written (generics and arrays are erased)
            unit: The unit the text appears in
            context: The type declaration the text appears in, for nested types
            include_inherited: Also search member types inherited by the enclosing types

        Returns:
            The resolved type, or None if the name cannot be resolved
        """
        base = erase_type(type_name)
        if not base:
            return None

        if "." in base:
            return self._resolve_qualified(base, unit, context, include_inherited)

        # Member types of the enclosing chain and their ancestors
        if context is not None:
            for enclosing in self._enclosing_chain(context):
                member = f"{enclosing.qualified_name}.{base}"
                if member in self.index:
                    return self.index.declared(member)
                if not include_inherited:
                    continue
                for ancestor in self.ancestors(enclosing, self._unit_of(enclosing, unit)):
                    member = f"{ancestor.qualified_name}.{base}"
                    if member in self.index:
                        return self.index.declared(member)

        # Top-level types of this unit
        for type_decl in unit.types:
            if type_decl.name == base and type_decl.qualified_name == _join(unit.package, base):
                return self.index.declared(type_decl.qualified_name)

        resolved = self.resolve_declared_type(base, unit)
        if resolved is not None:
            return resolved

        for imp in unit.imports:
            if imp.is_wildcard and not imp.is_static:
                candidate = f"{imp.name}.{base}"
                if candidate in self.index:
                    return self.index.declared(candidate)

        candidates = self.index.qualified_names_for(base)
        if len(candidates) == 1 and not unit.package:
            return self.index.declared(candidates[0])
        return None

    def ancestors(self, type_decl: TypeDeclaration, unit: ParsedUnit | None) -> Iterator[ResolvedType]:
        """Breadth-first supertypes: superclass and interfaces, transitively.

        External supertypes are yielded without a declaration and not expanded.
        Types with no declared superclass end with java.lang.Object.
        """
        seen: set[str] = {type_decl.qualified_name}
        queue: list[tuple[TypeDeclaration, ParsedUnit | None]] = [(type_decl, unit)]
        yielded_object = False
        while queue:
            current, current_unit = queue.pop(0)
            for super_name in [*current.extended_types, *current.implemented_types]:
                resolved = None
                if current_unit is not None:
                    resolved = self.resolve(super_name, current_unit, current, include_inherited=False)
                if resolved is None:
                    resolved = ResolvedType(qualified_name=erase_type(super_name))
                if resolved.qualified_name in seen:
                    continue
                seen.add(resolved.qualified_name)
                if resolved.qualified_name == JAVA_OBJECT:
                    yielded_object = True
                yield resolved
                if resolved.declaration is not None:
                    queue.append((resolved.declaration, resolved.unit))
        if not yielded_object:
            yield ResolvedType(qualified_name=JAVA_OBJECT)

    def superclass(self, type_decl: TypeDeclaration, unit: ParsedUnit) -> ResolvedType:
        """The direct superclass (java.lang.Object when none is declared)."""
        if type_decl.is_interface or not type_decl.extended_types:
            return ResolvedType(qualified_name=JAVA_OBJECT)
        super_name = type_decl.extended_types[0]
        resolved = self.resolve(super_name, unit, type_decl, include_inherited=False)
        return resolved or ResolvedType(qualified_name=erase_type(super_name))

    def is_subtype(self, sub: str, sup: str) -> bool:
        if sub == sup or sup == JAVA_OBJECT:
            return True
        entry = self.index.get(sub)
        if entry is None:
            return False
        return any(a.qualified_name == sup for a in self.ancestors(*entry))

    def _resolve_qualified(
        self,
        base: str,
        unit: ParsedUnit,
        context: TypeDeclaration | None,
        include_inherited: bool,
    ) -> ResolvedType:
        if base in self.index:
            return self.index.declared(base)
        # Outer.Inner where Outer is resolvable
        head, _, rest = base.partition(".")
        outer = self.resolve(head, unit, context, include_inherited)
        if outer is not None and outer.is_declared:
            candidate = f"{outer.qualified_name}.{rest}"
            if candidate in self.index:
                return self.index.declared(candidate)
        return ResolvedType(qualified_name=base)

    def _enclosing_chain(self, type_decl: TypeDeclaration) -> Iterator[TypeDeclaration]:
        """The type itself, then each enclosing type declared in the batch."""
        yield type_decl
        qualified = type_decl.qualified_name
        while "." in qualified:
            qualified = qualified.rsplit(".", 1)[0]
            entry = self.index.get(qualified)
            if entry is None:
                return
            yield entry[0]

    def _unit_of(self, type_decl: TypeDeclaration, fallback: ParsedUnit) -> ParsedUnit:
        entry = self.index.get(type_decl.qualified_name)
        return entry[1] if entry is not None else fallback

    def enclosing_types(self, type_decl: TypeDeclaration) -> list[TypeDeclaration]:
        """Enclosing types of a nested type, innermost first (the type itself excluded)."""
        return list(self._enclosing_chain(type_decl))[1:]


def _join(package: str, name: str) -> str:
    return f"{package}.{name}" if package else name
