"""
Tests for SymbolTableResolver.
"""

import pytest

from java_kg.graph.helpers.utils import method_entity_id
from java_kg.graph.semantic_resolver import MethodContext, SymbolResolutionError, SymbolTableResolver
from java_kg.graph.type_resolution import TypeIndex, TypeNameResolver

SOURCES = {
    "Shapes.java": """
package geo;

public class Shapes {
    public static double area(Circle c) { return 0; }
    public static double area(Square s) { return 0; }
    public static int scale(int x) { return x; }
    public static long scale(long x) { return x; }
    public static int pick(Object o) { return 0; }
    public static int pick(String s) { return 0; }
}
""",
    "Circle.java": """
package geo;

public class Circle extends Shape {
    public Circle grow() { return this; }
}
""",
    "Square.java": """
package geo;

public class Square extends Shape {}
""",
    "Shape.java": """
package geo;

import java.util.ArrayList;

public abstract class Shape extends ArrayList<String> {
    protected Shape parent;
    public String label() { return ""; }
}
""",
    "Client.java": """
package geo;

public class Client {
    private Circle circle;

    void run(Square square, String text) {
        Circle local = new Circle();
        Shapes.area(local);
        Shapes.area(square);
        Shapes.scale(1);
        Shapes.scale(1L);
        Shapes.pick(text);
        circle.grow().label();
        circle.parent.label();
        square.add("x");
        ((Circle) circle).grow();
        new Shapes().toString();
        unknown.call();
        Shapes.area(null);
        text.length();
    }
}
""",
}


@pytest.fixture
def setup(parse):
    units = [parse(source, name) for name, source in SOURCES.items()]
    resolver = SymbolTableResolver(TypeNameResolver(TypeIndex(units)))
    client_unit = units[-1]
    client = client_unit.types[0]
    (run,) = client.methods
    context = MethodContext(
        unit=client_unit,
        type_decl=client,
        method=run,
        method_id=method_entity_id("Client", "run", run.parameter_types),
    )
    return resolver, context, run.call_sites


def _resolve(setup, index):
    resolver, context, calls = setup
    return resolver.resolve(calls[index], context)


class TestOverloads:

    def test_overload_by_local_and_parameter_types(self, setup):
        assert _resolve(setup, 0).parameter_types == ("Circle",)
        assert _resolve(setup, 1).parameter_types == ("Square",)

    def test_exact_literal_match_beats_widening(self, setup):
        assert _resolve(setup, 2).parameter_types == ("int",)
        assert _resolve(setup, 3).parameter_types == ("long",)

    def test_most_specific_by_exact_match(self, setup):
        assert _resolve(setup, 4).parameter_types == ("String",)

    def test_ambiguous_null_argument_raises(self, setup):
        resolver, context, calls = setup
        null_call = next(c for c in calls if c.method_name == "area" and c.arguments[0].text == "null")
        with pytest.raises(SymbolResolutionError):
            resolver.resolve(null_call, context)


class TestReceivers:

    def test_chained_project_call(self, setup):
        resolver, context, calls = setup
        label = next(c for c in calls if c.method_name == "label" and c.receiver.text == "circle.grow()")
        target = resolver.resolve(label, context)
        assert target.declaring_type == "geo.Shape"
        assert target.parameter_types == ()

    def test_inherited_field(self, setup):
        resolver, context, calls = setup
        label = next(c for c in calls if c.method_name == "label" and c.receiver.text == "circle.parent")
        assert resolver.resolve(label, context).declaring_type == "geo.Shape"

    def test_method_inherited_from_library_type(self, setup):
        resolver, context, calls = setup
        add = next(c for c in calls if c.method_name == "add")
        target = resolver.resolve(add, context)
        assert target.declaring_type == "java.util.ArrayList"
        assert target.parameter_types is None

    def test_cast_receiver(self, setup):
        resolver, context, calls = setup
        grow = [c for c in calls if c.method_name == "grow"][-1]
        target = resolver.resolve(grow, context)
        assert (target.declaring_type, target.simple_name) == ("geo.Circle", "Circle")

    def test_object_methods(self, setup):
        resolver, context, calls = setup
        to_string = next(c for c in calls if c.method_name == "toString")
        assert resolver.resolve(to_string, context).declaring_type == "java.lang.Object"

    def test_library_receiver(self, setup):
        resolver, context, calls = setup
        length = next(c for c in calls if c.method_name == "length")
        target = resolver.resolve(length, context)
        assert target.declaring_type == "java.lang.String"
        assert target.parameter_types is None

    def test_unknown_receiver_raises(self, setup):
        resolver, context, calls = setup
        call = next(c for c in calls if c.method_name == "call")
        with pytest.raises(SymbolResolutionError):
            resolver.resolve(call, context)
