"""
Java-specific reference extractor using Tree-sitter.

This module extracts, from a single method body:
  - Call sites (`foo()`, `this.foo()`, `super.foo()`, `obj.foo()`, `a.b.foo()`, `x().foo()`)
  - Field accesses (`this.count`, `other.name`)
  - Bare identifier references (`count`, `repo`)
  - Local variable declarations with their declared types

Supported call patterns:
  - `foo()`                -> method_name="foo", receiver=None
  - `this.foo()`           -> receiver=Expression(THIS)
  - `super.foo()`          -> receiver=Expression(SUPER)
  - `repo.save(u)`         -> receiver=Expression(NAME, name="repo")
  - `this.repo.save(u)`    -> receiver=Expression(FIELD_ACCESS, name="repo", target=THIS)
  - `make().run()`         -> receiver=Expression(METHOD_CALL, name="make")
  - `new Foo().run()`      -> receiver=Expression(NEW, type_name="Foo")

Java Tree-sitter grammar reference:
  https://github.com/tree-sitter/tree-sitter-java/blob/master/grammar.js

Key node types used:
  - method_invocation: fields `object`, `name`, `arguments`
  - field_access: fields `object`, `field`
  - local_variable_declaration: fields `type`, `declarator`
  - object_creation_expression: fields `type`, `arguments`
  - cast_expression: fields `type`, `value`

Nested named type declarations (local classes) are not scanned: their methods
are extracted as methods of their own type. Anonymous class bodies are scanned
and attributed to the enclosing method.
"""

import re

from tree_sitter import Node

from java_kg.parser.references.base import (
    CallSite,
    Expression,
    ExpressionKind,
    FieldAccess,
    MethodReferences,
)

_WHITESPACE_RE = re.compile(r"\s+")

# Declarations whose bodies belong to another type
TYPE_DECLARATION_NODES = frozenset({
    "class_declaration",
    "interface_declaration",
    "enum_declaration",
    "record_declaration",
    "annotation_type_declaration",
})

# Literal node type -> Java type
LITERAL_TYPES: dict[str, str | None] = {
    "decimal_integer_literal": "int",
    "hex_integer_literal": "int",
    "octal_integer_literal": "int",
    "binary_integer_literal": "int",
    "decimal_floating_point_literal": "double",
    "hex_floating_point_literal": "double",
    "true": "boolean",
    "false": "boolean",
    "character_literal": "char",
    "string_literal": "String",
    "text_block": "String",
    "null_literal": None,
}

# (parent node type, field name) pairs where an identifier is a declaration or a
# member name rather than a reference to a variable
_NON_REFERENCE_FIELDS = frozenset({
    ("method_invocation", "name"),
    ("field_access", "field"),
    ("variable_declarator", "name"),
    ("formal_parameter", "name"),
    ("catch_formal_parameter", "name"),
    ("enhanced_for_statement", "name"),
    ("resource", "name"),
    ("method_reference", "name"),
})

_NON_REFERENCE_PARENTS = frozenset({
    "labeled_statement",
    "break_statement",
    "continue_statement",
    "inferred_parameters",
    "lambda_expression",
    "marker_annotation",
    "annotation",
    "scoped_identifier",
    "scoped_type_identifier",
})


class JavaReferenceExtractor:
    """Extracts call sites and other references from Java method bodies.

    The extraction is a single pre-order traversal of the body, so references
    come out in source order. The traversal uses an explicit stack; deeply
    nested expressions cannot overflow the interpreter stack.
    """

    MAX_EXPRESSION_DEPTH: int = 100

    def __init__(self, content: bytes):
        self.content = content

    def extract(self, body: Node | None) -> MethodReferences:
        """Extract all references from a method body.

        Args:
            body: The method's `block` node, or None for abstract/interface methods

        Returns:
            MethodReferences with call sites, field accesses, names and locals
        """
        refs = MethodReferences()
        if body is None:
            return refs

        stack: list[Node] = [body]
        while stack:
            node = stack.pop()

            match node.type:
                case "method_invocation":
                    refs.call_sites.append(self._extract_call(node))
                case "field_access":
                    field_node = node.child_by_field_name("field")
                    object_node = node.child_by_field_name("object")
                    if field_node is not None:
                        refs.field_accesses.append(FieldAccess(
                            field_name=self._text(field_node),
                            on_this=object_node is not None and object_node.type == "this",
                            line_number=node.start_point[0] + 1,
                        ))
                case "identifier":
                    if self._is_reference(node):
                        refs.name_references.append(self._text(node))
                case "local_variable_declaration":
                    self._collect_local_variables(node, refs.local_variables)
                case "enhanced_for_statement" | "resource":
                    self._collect_single_variable(node, refs.local_variables)
                case "catch_formal_parameter":
                    self._collect_catch_parameter(node, refs.local_variables)

            # Push children reversed so they pop in source order
            for child in reversed(node.named_children):
                if child.type in TYPE_DECLARATION_NODES:
                    continue
                stack.append(child)

        return refs

    # Expression model
    def to_expression(self, node: Node, depth: int = 0) -> Expression:
        """Convert a Tree-sitter expression node into an Expression.

        Unknown shapes become ExpressionKind.OTHER so the resolver can defer on them.
        """
        text = self._text(node)
        if depth > self.MAX_EXPRESSION_DEPTH:
            return Expression(kind=ExpressionKind.OTHER, text=text)

        match node.type:
            case "identifier":
                return Expression(kind=ExpressionKind.NAME, text=text, name=text)
            case "this":
                return Expression(kind=ExpressionKind.THIS, text=text)
            case "super":
                return Expression(kind=ExpressionKind.SUPER, text=text)
            case "field_access":
                object_node = node.child_by_field_name("object")
                field_node = node.child_by_field_name("field")
                return Expression(
                    kind=ExpressionKind.FIELD_ACCESS,
                    text=text,
                    name=self._text(field_node) if field_node is not None else None,
                    target=self.to_expression(object_node, depth + 1) if object_node is not None else None,
                )
            case "method_invocation":
                call = self._extract_call(node, depth)
                return Expression(
                    kind=ExpressionKind.METHOD_CALL,
                    text=text,
                    name=call.method_name,
                    target=call.receiver,
                    arguments=call.arguments,
                )
            case "object_creation_expression":
                type_node = node.child_by_field_name("type")
                return Expression(
                    kind=ExpressionKind.NEW,
                    text=text,
                    type_name=self._text(type_node) if type_node is not None else None,
                )
            case "cast_expression":
                type_node = node.child_by_field_name("type")
                value_node = node.child_by_field_name("value")
                return Expression(
                    kind=ExpressionKind.CAST,
                    text=text,
                    type_name=self._text(type_node) if type_node is not None else None,
                    target=self.to_expression(value_node, depth + 1) if value_node is not None else None,
                )
            case "parenthesized_expression":
                inner = node.named_children[0] if node.named_children else None
                if inner is not None:
                    return self.to_expression(inner, depth + 1)
                return Expression(kind=ExpressionKind.OTHER, text=text)
            case literal if literal in LITERAL_TYPES:
                literal_type = LITERAL_TYPES[literal]
                if literal_type == "int" and text.lower().endswith("l"):
                    literal_type = "long"
                elif literal_type == "double" and text.lower().endswith("f"):
                    literal_type = "float"
                return Expression(kind=ExpressionKind.LITERAL, text=text, type_name=literal_type)
            case _:
                return Expression(kind=ExpressionKind.OTHER, text=text)

    # Helpers
    def _extract_call(self, node: Node, depth: int = 0) -> CallSite:
        """Build a CallSite from a method_invocation node."""
        name_node = node.child_by_field_name("name")
        object_node = node.child_by_field_name("object")
        args_node = node.child_by_field_name("arguments")

        arguments: tuple[Expression, ...] = ()
        if args_node is not None:
            arguments = tuple(
                self.to_expression(arg, depth + 1)
                for arg in args_node.named_children
                if arg.type not in ("line_comment", "block_comment", "comment")
            )

        return CallSite(
            method_name=self._text(name_node) if name_node is not None else "",
            receiver=self.to_expression(object_node, depth + 1) if object_node is not None else None,
            arguments=arguments,
            line_number=node.start_point[0] + 1,
            column=node.start_point[1],
        )

    def _is_reference(self, node: Node) -> bool:
        """Whether an identifier is used as a variable/field reference."""
        parent = node.parent
        if parent is None:
            return False
        if parent.type in _NON_REFERENCE_PARENTS:
            return False
        for parent_type, field_name in _NON_REFERENCE_FIELDS:
            if parent.type == parent_type and _is_field(parent, field_name, node):
                return False
        if parent.type == "method_reference" and parent.named_children and not _same_node(parent.named_children[0], node):
            return False
        return True

    def _collect_local_variables(self, node: Node, local_variables: dict[str, str]) -> None:
        type_node = node.child_by_field_name("type")
        if type_node is None:
            return
        declared_type = self._text(type_node)
        for declarator in node.children_by_field_name("declarator"):
            name_node = declarator.child_by_field_name("name")
            if name_node is None:
                continue
            var_type = declared_type
            if declared_type == "var":
                value_node = declarator.child_by_field_name("value")
                if value_node is None or value_node.type != "object_creation_expression":
                    continue
                created = value_node.child_by_field_name("type")
                if created is None:
                    continue
                var_type = self._text(created)
            local_variables.setdefault(self._text(name_node), var_type)

    def _collect_single_variable(self, node: Node, local_variables: dict[str, str]) -> None:
        type_node = node.child_by_field_name("type")
        name_node = node.child_by_field_name("name")
        if type_node is None or name_node is None:
            return
        declared_type = self._text(type_node)
        if declared_type != "var":
            local_variables.setdefault(self._text(name_node), declared_type)

    def _collect_catch_parameter(self, node: Node, local_variables: dict[str, str]) -> None:
        name_node = node.child_by_field_name("name")
        catch_type = next((c for c in node.named_children if c.type == "catch_type"), None)
        if name_node is None or catch_type is None or not catch_type.named_children:
            return
        # Multi-catch `A | B e` is typed by its first alternative
        local_variables.setdefault(self._text(name_node), self._text(catch_type.named_children[0]))

    def _text(self, node: Node) -> str:
        raw = self.content[node.start_byte:node.end_byte].decode("utf-8", errors="replace")
        return _WHITESPACE_RE.sub(" ", raw).strip()


def _same_node(a: Node, b: Node) -> bool:
    return a.start_byte == b.start_byte and a.end_byte == b.end_byte and a.type == b.type


def _is_field(parent: Node, field_name: str, node: Node) -> bool:
    other = parent.child_by_field_name(field_name)
    return other is not None and _same_node(other, node)
