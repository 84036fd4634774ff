"""
Tests for JavaUnitExtractor and the Java reference extractor.
"""

import pytest

from java_kg.parser.extractor import get_supported_languages, get_unit_extractor
from java_kg.parser.extractor.base_extractor import normalize_type_text
from java_kg.parser.extractor.java_extractor import JavaUnitExtractor
from java_kg.parser.references.base import ExpressionKind, ReceiverKind
from java_kg.parser.tree_sitter_parser import ParseError, parse_source


class TestExtractorRegistry:

    def test_java_is_supported(self):
        assert "java" in get_supported_languages()
        assert isinstance(get_unit_extractor("java"), JavaUnitExtractor)

    def test_unknown_language_raises(self):
        with pytest.raises(ValueError):
            get_unit_extractor("cobol")


class TestNormalizeTypeText:

    @pytest.mark.parametrize("raw,expected", [
        ("Map< String ,Integer >", "Map<String, Integer>"),
        ("int [ ]", "int[]"),
        ("List<? extends Number>", "List<? extends Number>"),
    ])
    def test_normalization(self, raw, expected):
        assert normalize_type_text(raw) == expected


class TestDeclarations:

    def test_package_and_imports(self, parse):
        unit = parse("""
package com.acme;

import java.util.List;
import java.util.*;
import static java.util.Collections.emptyList;

class A {}
""")
        assert unit.package == "com.acme"
        single, wildcard, static = unit.imports
        assert single.name == "java.util.List" and single.simple_name == "List"
        assert wildcard.is_wildcard and wildcard.name == "java.util"
        assert static.is_static

    def test_type_kinds_and_supertypes(self, parse):
        unit = parse("""
package p;
interface Shape extends Comparable<Shape> {}
abstract class Base {}
class Circle extends Base implements Shape, Runnable {}
enum Color { RED; void paint() {} }
record Point(int x, int y) {}
""")
        kinds = {t.name: t.kind for t in unit.types}
        assert kinds == {
            "Shape": "interface", "Base": "class", "Circle": "class",
            "Color": "enum", "Point": "record",
        }
        circle = next(t for t in unit.types if t.name == "Circle")
        assert circle.extended_types == ["Base"]
        assert circle.implemented_types == ["Shape", "Runnable"]
        assert circle.qualified_name == "p.Circle"

        shape = next(t for t in unit.types if t.name == "Shape")
        assert shape.is_interface
        assert shape.extended_types == ["Comparable<Shape>"]

        color = next(t for t in unit.types if t.name == "Color")
        assert [m.name for m in color.methods] == ["paint"]

        point = next(t for t in unit.types if t.name == "Point")
        assert [(f.name, f.type_name) for f in point.fields] == [("x", "int"), ("y", "int")]

    def test_nested_types_are_qualified(self, parse):
        unit = parse("""
package p;
class Outer {
    static class Inner {
        void run() {}
    }
}
""")
        inner = next(t for t in unit.types if t.name == "Inner")
        assert inner.qualified_name == "p.Outer.Inner"
        outer = next(t for t in unit.types if t.name == "Outer")
        assert outer.methods == []

    def test_fields_one_per_declarator(self, parse):
        unit = parse("""
class A {
    private int a, b;
    static final String NAME = "x";
}
""")
        fields = unit.types[0].fields
        assert [(f.name, f.type_name) for f in fields] == [("a", "int"), ("b", "int"), ("NAME", "String")]
        assert fields[2].is_static

    def test_method_details(self, parse):
        unit = parse("""
class A {
    /**
     * Loads things.
     */
    @Override
    @Deprecated
    public java.util.List<String> load(int count, String... names) throws java.io.IOException, IllegalStateException {
        return null;
    }

    A() { load(1); }
}
""")
        (method,) = unit.types[0].methods
        assert method.name == "load"
        assert method.owner == "A"
        assert method.return_type == "java.util.List<String>"
        assert method.parameter_types == ["int", "String..."]
        assert method.parameters[-1].type_name == "String"
        assert method.is_varargs
        assert method.thrown_types == ["java.io.IOException", "IllegalStateException"]
        assert method.annotations == ["Override", "Deprecated"]
        assert method.has_override_marker
        assert method.javadoc == "Loads things."

    def test_syntax_error_is_parse_error(self):
        with pytest.raises(ParseError):
            parse_source(b"class A { void broken( }")


class TestReferences:

    def test_call_site_receivers(self, parse):
        unit = parse("""
class A {
    B b;
    void run(int x) {
        foo();
        this.foo();
        super.toString();
        b.go(x, "s", null, 2L);
        this.b.go(x);
        make().go(x);
    }
}
""")
        (method,) = unit.types[0].methods
        kinds = [(c.method_name, c.receiver_kind) for c in method.call_sites]
        assert kinds == [
            ("foo", ReceiverKind.NONE),
            ("foo", ReceiverKind.THIS),
            ("toString", ReceiverKind.SUPER),
            ("go", ReceiverKind.NAME),
            ("go", ReceiverKind.FIELD_ACCESS),
            ("go", ReceiverKind.OTHER),
            ("make", ReceiverKind.NONE),
        ]
        go = method.call_sites[3]
        assert [a.kind for a in go.arguments] == [
            ExpressionKind.NAME, ExpressionKind.LITERAL, ExpressionKind.LITERAL, ExpressionKind.LITERAL,
        ]
        assert [a.type_name for a in go.arguments[1:]] == ["String", None, "long"]
        assert go.display == "b.go()"

    def test_locals_field_accesses_and_names(self, parse):
        unit = parse("""
class A {
    int count;
    void run() {
        String label = "x";
        for (int i : new int[0]) { count++; }
        this.count = 1;
        try { } catch (IllegalStateException | IllegalArgumentException e) { }
    }
}
""")
        (method,) = unit.types[0].methods
        assert method.local_variables == {"label": "String", "i": "int", "e": "IllegalStateException"}
        assert [(a.field_name, a.on_this) for a in method.field_accesses] == [("count", True)]
        assert "count" in method.name_references
        assert "run" not in method.name_references

    def test_anonymous_class_calls_belong_to_enclosing_method(self, parse):
        unit = parse("""
class A {
    void run() {
        Runnable r = new Runnable() {
            public void run() { helper(); }
        };
    }
    void helper() {}
}
""")
        run = unit.types[0].methods[0]
        assert [c.method_name for c in run.call_sites] == ["helper"]
