"""
Java declaration extractor using Tree-sitter.

Extracts the declarations of one Java file into a ParsedUnit:
  - package and imports
  - class / interface / enum / record declarations (nested and local types included)
  - fields, methods (with parameters, return type, throws, annotations, javadoc)
  - per-method references (call sites, field accesses, names, local variables)

Java Tree-sitter grammar reference:
  https://github.com/tree-sitter/tree-sitter-java/blob/master/grammar.js

Key node types used:
  - package_declaration, import_declaration
  - class_declaration, interface_declaration, enum_declaration, record_declaration
  - field_declaration, constant_declaration, method_declaration
  - formal_parameters, formal_parameter, spread_parameter
  - modifiers, marker_annotation, annotation, throws
"""

from pathlib import Path

from tree_sitter import Node, Tree

from java_kg.parser.extractor.base_extractor import (
    FieldDeclaration,
    ImportDeclaration,
    MethodDeclaration,
    ParameterDeclaration,
    ParsedUnit,
    TypeDeclaration,
    UnitExtractor,
    normalize_type_text,
)
from java_kg.parser.extractor.exceptions import UnitExtractionError
from java_kg.parser.references.java_references import JavaReferenceExtractor

# Type declaration node -> kind
TYPE_KINDS: dict[str, str] = {
    "class_declaration": "class",
    "interface_declaration": "interface",
    "enum_declaration": "enum",
    "record_declaration": "record",
}

COMMENT_NODES = frozenset({"block_comment", "comment"})
ANNOTATION_NODES = frozenset({"marker_annotation", "annotation"})
NAME_NODES = frozenset({"scoped_identifier", "identifier"})


class JavaUnitExtractor(UnitExtractor):
    """Java-specific declaration extractor.

    Methods are attributed to their nearest enclosing named type. Methods of
    anonymous classes are not declarations of any named type; their calls are
    attributed to the enclosing method by the reference extractor.
    Constructors are not extracted as methods.
    """

    @property
    def language(self) -> str:
        return "java"

    def extract_unit(
        self,
        tree: Tree,
        file_path: Path,
        file_content: bytes,
    ) -> ParsedUnit:
        """Extract package, imports and type declarations from a Java file.

        Args:
            tree: Tree-sitter syntax tree
            file_path: Path to the source file
            file_content: Raw file content as bytes

        Returns:
            ParsedUnit for the file

        Raises:
            UnitExtractionError: If an unexpected node structure breaks extraction
        """
        try:
            unit = ParsedUnit(file_path=file_path)
            root = tree.root_node

            for child in root.named_children:
                if child.type == "package_declaration":
                    name_node = self._first_child_of(child, NAME_NODES)
                    if name_node is not None:
                        unit.package = self._text(file_content, name_node)
                elif child.type == "import_declaration":
                    unit.imports.append(self._extract_import(child, file_content))

            # Pre-order walk with the chain of enclosing type names
            stack: list[tuple[Node, tuple[str, ...]]] = [(root, ())]
            while stack:
                node, enclosing = stack.pop()
                if node.type in TYPE_KINDS:
                    type_decl = self._extract_type(node, unit.package, enclosing, file_content)
                    unit.types.append(type_decl)
                    enclosing = enclosing + (type_decl.name,)
                for child in reversed(node.named_children):
                    stack.append((child, enclosing))

            return unit
        except UnitExtractionError:
            raise
        except Exception as e:
            raise UnitExtractionError(
                f"Failed to extract declarations: {e}",
                language=self.language,
                file_path=str(file_path),
            ) from e

    # Declarations
    def _extract_import(self, node: Node, content: bytes) -> ImportDeclaration:
        name_node = self._first_child_of(node, NAME_NODES)
        return ImportDeclaration(
            name=self._text(content, name_node) if name_node is not None else "",
            is_static=any(c.type == "static" for c in node.children),
            is_wildcard=any(c.type == "asterisk" for c in node.children),
        )

    def _extract_type(
        self,
        node: Node,
        package: str,
        enclosing: tuple[str, ...],
        content: bytes,
    ) -> TypeDeclaration:
        name_node = node.child_by_field_name("name")
        name = self._text(content, name_node) if name_node is not None else "Unknown"
        qualified = ".".join(part for part in (package, *enclosing, name) if part)

        type_decl = TypeDeclaration(
            name=name,
            qualified_name=qualified,
            kind=TYPE_KINDS[node.type],
            javadoc=self._javadoc(node, content),
            annotations=self._annotations(node, content),
            start_line=node.start_point[0] + 1,
            end_line=node.end_point[0] + 1,
        )

        for child in node.named_children:
            match child.type:
                case "superclass":
                    type_decl.extended_types.extend(self._type_names(child, content))
                case "extends_interfaces":
                    type_decl.extended_types.extend(self._type_names(child, content))
                case "super_interfaces":
                    type_decl.implemented_types.extend(self._type_names(child, content))

        # Record components are implicit fields
        if node.type == "record_declaration":
            params = node.child_by_field_name("parameters")
            if params is not None:
                for param in self._extract_parameters(params, content):
                    type_decl.fields.append(FieldDeclaration(
                        name=param.name, type_name=param.type_name, owner=name,
                    ))

        body = node.child_by_field_name("body")
        if body is not None:
            for member in self._members(body):
                match member.type:
                    case "field_declaration" | "constant_declaration":
                        type_decl.fields.extend(self._extract_fields(member, name, content))
                    case "method_declaration":
                        type_decl.methods.append(self._extract_method(member, name, content))

        return type_decl

    def _members(self, body: Node) -> list[Node]:
        members: list[Node] = []
        for child in body.named_children:
            if child.type == "enum_body_declarations":
                members.extend(child.named_children)
            else:
                members.append(child)
        return members

    def _extract_fields(self, node: Node, owner: str, content: bytes) -> list[FieldDeclaration]:
        type_node = node.child_by_field_name("type")
        if type_node is None:
            return []
        type_name = normalize_type_text(self._text(content, type_node))
        is_static = self._has_modifier(node, "static")
        fields = []
        for declarator in node.children_by_field_name("declarator"):
            name_node = declarator.child_by_field_name("name")
            if name_node is None:
                continue
            fields.append(FieldDeclaration(
                name=self._text(content, name_node),
                type_name=type_name,
                owner=owner,
                is_static=is_static,
            ))
        return fields

    def _extract_method(self, node: Node, owner: str, content: bytes) -> MethodDeclaration:
        name_node = node.child_by_field_name("name")
        type_node = node.child_by_field_name("type")
        params_node = node.child_by_field_name("parameters")
        body = node.child_by_field_name("body")

        thrown: list[str] = []
        throws_node = self._first_child_of(node, frozenset({"throws"}))
        if throws_node is not None:
            thrown = [
                normalize_type_text(self._text(content, t))
                for t in throws_node.named_children
                if t.type not in COMMENT_NODES
            ]

        references = JavaReferenceExtractor(content).extract(body)

        return MethodDeclaration(
            name=self._text(content, name_node) if name_node is not None else "",
            owner=owner,
            parameters=self._extract_parameters(params_node, content) if params_node is not None else [],
            return_type=normalize_type_text(self._text(content, type_node)) if type_node is not None else "void",
            thrown_types=thrown,
            annotations=self._annotations(node, content),
            javadoc=self._javadoc(node, content),
            start_line=node.start_point[0] + 1,
            end_line=node.end_point[0] + 1,
            call_sites=references.call_sites,
            field_accesses=references.field_accesses,
            name_references=references.name_references,
            local_variables={
                name: normalize_type_text(var_type)
                for name, var_type in references.local_variables.items()
            },
        )

    def _extract_parameters(self, node: Node, content: bytes) -> list[ParameterDeclaration]:
        """Extract formal parameters. Varargs keep their element type in `type_name`."""
        params: list[ParameterDeclaration] = []
        for child in node.named_children:
            if child.type == "formal_parameter":
                type_node = child.child_by_field_name("type")
                name_node = child.child_by_field_name("name")
                if type_node is None or name_node is None:
                    continue
                type_name = normalize_type_text(self._text(content, type_node))
                dims = child.child_by_field_name("dimensions")
                if dims is not None:
                    type_name += normalize_type_text(self._text(content, dims))
                params.append(ParameterDeclaration(
                    name=self._text(content, name_node),
                    type_name=type_name,
                ))
            elif child.type == "spread_parameter":
                param = self._extract_spread_parameter(child, content)
                if param is not None:
                    params.append(param)
        return params

    def _extract_spread_parameter(self, node: Node, content: bytes) -> ParameterDeclaration | None:
        type_node = None
        name_node = None
        for child in node.named_children:
            if child.type in ("modifiers",) or child.type in ANNOTATION_NODES:
                continue
            if child.type == "variable_declarator":
                name_node = child.child_by_field_name("name")
            elif child.type == "identifier":
                name_node = child
            elif type_node is None:
                type_node = child
        if type_node is None or name_node is None:
            return None
        return ParameterDeclaration(
            name=self._text(content, name_node),
            type_name=normalize_type_text(self._text(content, type_node)),
            is_varargs=True,
        )

    # Modifiers, annotations and documentation
    def _annotations(self, node: Node, content: bytes) -> list[str]:
        modifiers = self._first_child_of(node, frozenset({"modifiers"}))
        if modifiers is None:
            return []
        names = []
        for child in modifiers.named_children:
            if child.type in ANNOTATION_NODES:
                name_node = child.child_by_field_name("name")
                if name_node is not None:
                    names.append(self._text(content, name_node))
        return names

    def _has_modifier(self, node: Node, keyword: str) -> bool:
        modifiers = self._first_child_of(node, frozenset({"modifiers"}))
        if modifiers is None:
            return False
        return any(c.type == keyword for c in modifiers.children)

    def _javadoc(self, node: Node, content: bytes) -> str | None:
        previous = node.prev_named_sibling
        if previous is None or previous.type not in COMMENT_NODES:
            return None
        raw = self._extract_text(content, previous.start_byte, previous.end_byte)
        if not raw.startswith("/**"):
            return None
        return self._clean_javadoc(raw) or None

    def _type_names(self, node: Node, content: bytes) -> list[str]:
        """Type names under a superclass / super_interfaces / extends_interfaces node."""
        names: list[str] = []
        for child in node.named_children:
            if child.type == "type_list":
                names.extend(
                    normalize_type_text(self._text(content, t)) for t in child.named_children
                )
            elif child.type not in COMMENT_NODES:
                names.append(normalize_type_text(self._text(content, child)))
        return names

    # Helpers
    def _first_child_of(self, node: Node, types: frozenset[str]) -> Node | None:
        for child in node.children:
            if child.type in types:
                return child
        return None

    def _text(self, content: bytes, node: Node) -> str:
        return self._extract_text(content, node.start_byte, node.end_byte)
