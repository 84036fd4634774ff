"""
Base unit extractor interface and data models.

This module provides:
  - ImportDeclaration, ParameterDeclaration, FieldDeclaration, MethodDeclaration,
    TypeDeclaration: plain-data declarations extracted from one source file
  - ParsedUnit: everything a single file contributes to the graph
  - UnitExtractor: Abstract base class for the extractor

The key insight is:
  1. File -> ParsedUnit: Each file produces one ParsedUnit, independent of every other file
  2. Graph entities are built from ParsedUnits (phase 1) without cross-file lookups
  3. Relations are resolved later over the whole batch of ParsedUnits (phase 2)
  4. No raw AST storage: Tree-sitter AST is used ephemerally for extraction

Key Design Decisions:
  - File content is passed as `bytes` (not `str`) because Tree-sitter is a C-based parser
    that operates on byte offsets. The `start_byte` and `end_byte` in Tree-sitter nodes
    are byte positions, not character positions.

  - Type text is normalized the way a Java pretty printer renders it
    (`Map<String, Integer>`, `int[]`). Method ids embed parameter type text, so two
    spellings of the same type must normalize identically.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from tree_sitter import Tree

from java_kg.parser.references.base import CallSite, FieldAccess

_WHITESPACE_RE = re.compile(r"\s+")
_TIGHT_PUNCTUATION_RE = re.compile(r"\s*([<>\[\].?&])\s*")
_COMMA_RE = re.compile(r"\s*,\s*")


def normalize_type_text(text: str) -> str:
    """Normalize Java type text to a canonical spelling.

    Examples:
        "Map< String ,Integer >" -> "Map<String, Integer>"
        "int [ ]"                -> "int[]"
        "java.util . List<T>"    -> "java.util.List<T>"
    """
    text = _WHITESPACE_RE.sub(" ", text).strip()
    text = _TIGHT_PUNCTUATION_RE.sub(r"\1", text)
    text = _COMMA_RE.sub(", ", text)
    # `? extends T` keeps its spaces around the keyword
    text = text.replace("?extends", "? extends").replace("?super", "? super")
    return text


@dataclass
class ImportDeclaration:
    """An import statement.

    Attributes:
        name: The imported name (`java.util.List`, or `java.util` for `java.util.*`)
        is_static: Whether this is an `import static`
        is_wildcard: Whether this ends in `.*`
    """
    name: str
    is_static: bool = False
    is_wildcard: bool = False

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]


@dataclass
class ParameterDeclaration:
    """A formal parameter. `type_name` is the element type for varargs."""
    name: str
    type_name: str
    is_varargs: bool = False

    @property
    def signature_type(self) -> str:
        """Type text as it appears in method signatures: "String..." for varargs."""
        return f"{self.type_name}..." if self.is_varargs else self.type_name


@dataclass
class FieldDeclaration:
    """A field (one per declarator: `int a, b;` yields two fields)."""
    name: str
    type_name: str
    owner: str
    is_static: bool = False


@dataclass
class MethodDeclaration:
    """A method declaration with everything its body references.

    Attributes:
        name: Method name
        owner: Simple name of the declaring type
        parameters: Formal parameters in order
        return_type: Declared return type text (`void` for none)
        thrown_types: Types listed in the `throws` clause
        annotations: Annotation simple names (without `@`)
        javadoc: Cleaned javadoc text, if any
        start_line: 1-indexed inclusive start line
        end_line: 1-indexed inclusive end line
        call_sites: Method invocations found in the body
        field_accesses: `x.f` expressions found in the body
        name_references: Bare identifiers used as expressions in the body
        local_variables: Local variable name -> declared type
    """
    name: str
    owner: str
    parameters: list[ParameterDeclaration] = field(default_factory=list)
    return_type: str = "void"
    thrown_types: list[str] = field(default_factory=list)
    annotations: list[str] = field(default_factory=list)
    javadoc: str | None = None
    start_line: int = 0
    end_line: int = 0
    call_sites: list[CallSite] = field(default_factory=list)
    field_accesses: list[FieldAccess] = field(default_factory=list)
    name_references: list[str] = field(default_factory=list)
    local_variables: dict[str, str] = field(default_factory=dict)

    @property
    def parameter_types(self) -> list[str]:
        return [p.signature_type for p in self.parameters]

    @property
    def has_override_marker(self) -> bool:
        return "Override" in self.annotations or "java.lang.Override" in self.annotations

    @property
    def is_varargs(self) -> bool:
        return bool(self.parameters) and self.parameters[-1].is_varargs


@dataclass
class TypeDeclaration:
    """A class, interface, enum or record declaration.

    Attributes:
        name: Simple name
        qualified_name: Package plus enclosing type chain plus name
        kind: "class", "interface", "enum" or "record"
        extended_types: `extends` clause type names (superclass, or super-interfaces
            for an interface)
        implemented_types: `implements` clause type names
        fields: Declared fields
        methods: Declared methods (constructors excluded)
        javadoc: Cleaned javadoc text, if any
        annotations: Annotation simple names
        start_line: 1-indexed inclusive start line
        end_line: 1-indexed inclusive end line
    """
    name: str
    qualified_name: str
    kind: str = "class"
    extended_types: list[str] = field(default_factory=list)
    implemented_types: list[str] = field(default_factory=list)
    fields: list[FieldDeclaration] = field(default_factory=list)
    methods: list[MethodDeclaration] = field(default_factory=list)
    javadoc: str | None = None
    annotations: list[str] = field(default_factory=list)
    start_line: int = 0
    end_line: int = 0

    @property
    def is_interface(self) -> bool:
        return self.kind == "interface"

    def find_field(self, name: str) -> FieldDeclaration | None:
        for field_decl in self.fields:
            if field_decl.name == name:
                return field_decl
        return None


@dataclass
class ParsedUnit:
    """Everything one source file contributes to the knowledge graph.

    Attributes:
        file_path: Path of the source file
        package: Declared package ("" for the default package)
        imports: Import declarations in order
        types: Type declarations in source order (nested types included)
    """
    file_path: Path
    package: str = ""
    imports: list[ImportDeclaration] = field(default_factory=list)
    types: list[TypeDeclaration] = field(default_factory=list)

    def iter_methods(self):
        """Yield (type_declaration, method_declaration) pairs in source order."""
        for type_decl in self.types:
            for method in type_decl.methods:
                yield type_decl, method


class UnitExtractor(ABC):
    """Abstract interface for turning a syntax tree into a ParsedUnit.

    Subclasses must implement:
      - language (property): Return the language identifier
      - extract_unit(): Extract all declarations from a syntax tree

    The base class provides:
      - _extract_text(): Extract text from byte content
      - _clean_javadoc(): Strip comment markers from a documentation comment
    """

    # Default maximum recursion depth for AST traversal
    DEFAULT_MAX_DEPTH: int = 200

    @property
    @abstractmethod
    def language(self) -> str:
        """Return the language identifier (e.g., 'java')."""
        pass

    @abstractmethod
    def extract_unit(
        self,
        tree: Tree,
        file_path: Path,
        file_content: bytes,
    ) -> ParsedUnit:
        """Extract all declarations from the given syntax tree.

        Args:
            tree: The Tree-sitter syntax tree
            file_path: Path to the source file (for context)
            file_content: Raw file content as bytes

        Returns:
            The ParsedUnit for the file

        Raises:
            UnitExtractionError: If extraction fails
        """
        pass

    def _extract_text(self, content: bytes, start_byte: int, end_byte: int) -> str:
        """Extract text from content bytes.

        Args:
            content: Raw file content as bytes
            start_byte: Starting byte offset
            end_byte: Ending byte offset

        Returns:
            Decoded UTF-8 string from the byte range
        """
        return content[start_byte:end_byte].decode("utf-8", errors="replace")

    def _clean_javadoc(self, raw: str) -> str:
        """Turn `/** ... */` into plain text, one space between lines."""
        body = raw.strip()
        if body.startswith("/**"):
            body = body[3:]
        if body.endswith("*/"):
            body = body[:-2]
        lines = []
        for line in body.splitlines():
            line = line.strip()
            if line.startswith("*"):
                line = line[1:].strip()
            if line:
                lines.append(line)
        return " ".join(lines)
