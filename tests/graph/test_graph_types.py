"""
Tests for the entity model and deterministic id generation.
"""

import pytest

from java_kg.graph.file_graph_builder import FileGraphBuilder
from java_kg.graph.graph_types import DuplicateIdError, Entity, EntityKind, RelationKind
from java_kg.graph.helpers.utils import (
    erase_type,
    method_entity_id,
    parameter_entity_id,
    return_entity_id,
    simple_class_name,
    simple_type_name,
    type_entity_id,
)
from java_kg.graph.knowledge_graph import KnowledgeGraph


class TestIds:

    def test_type_ids(self):
        assert type_entity_id("Foo", is_interface=False) == "class_Foo"
        assert type_entity_id("Repo", is_interface=True) == "iface_Repo"

    def test_method_ids_use_simple_names_and_keep_generics(self):
        assert method_entity_id("Foo", "bar", []) == "method_Foo_bar()"
        assert method_entity_id("Foo", "bar", ["int", "java.util.List<com.acme.User>"]) == (
            "method_Foo_bar(int,List<com.acme.User>)"
        )

    def test_overloads_get_distinct_ids(self):
        assert method_entity_id("Foo", "bar", []) != method_entity_id("Foo", "bar", ["int"])

    def test_varargs_overload_gets_its_own_id(self, parse, call_chain_policy):
        graph = FileGraphBuilder(call_chain_policy).build_file_graph(parse("""
class A {
    void f(String s) {}
    void f(String... s) {}
    void g(java.lang.String... rest) {}
}
"""))
        method_ids = sorted(e.id for e in graph.entities_of_kind(EntityKind.method))
        assert method_ids == ["method_A_f(String)", "method_A_f(String...)", "method_A_g(String...)"]

    def test_child_ids(self):
        assert parameter_entity_id("Foo", "bar", ["int"], "x") == "param_Foo_bar(int)_x"
        assert return_entity_id("Foo", "bar", ["int"]) == "return_Foo_bar(int)"

    @pytest.mark.parametrize("name,simple,cls,erased", [
        ("java.util.List<String>", "List<String>", "List", "java.util.List"),
        ("com.acme.User[]", "User[]", "User", "com.acme.User"),
        ("int", "int", "int", "int"),
        ("com.acme.User...", "User...", "User", "com.acme.User"),
    ])
    def test_type_name_helpers(self, name, simple, cls, erased):
        assert simple_type_name(name) == simple
        assert simple_class_name(name) == cls
        assert erase_type(name) == erased


class TestEntity:

    def test_properties_last_write_wins(self):
        entity = Entity(id="class_Foo", kind=EntityKind.class_or_interface)
        entity.add_property("name", "Foo")
        entity.add_property("name", "Bar")
        assert entity.get_property("name") == "Bar"

    def test_external_dependencies_append_without_duplicates(self):
        entity = Entity(id="method_Foo_bar()", kind=EntityKind.method)
        entity.add_property("external_dependencies", "org.slf4j.Logger.info")
        entity.add_property("external_dependencies", "java.util.List.add")
        entity.add_property("external_dependencies", "org.slf4j.Logger.info")
        assert entity.get_property("external_dependencies") == "org.slf4j.Logger.info, java.util.List.add"

    def test_relations_are_counted(self):
        entity = Entity(id="method_Foo_bar()", kind=EntityKind.method)
        entity.add_relation(RelationKind.calls, "method_Foo_baz()")
        entity.add_relation(RelationKind.calls, "method_Foo_baz()")
        entity.add_relation(RelationKind.calls, "method_Other_missing()")
        assert entity.relation_count(RelationKind.calls, "method_Foo_baz()") == 2
        assert entity.relation_count(RelationKind.calls, "method_Other_missing()") == 1
        assert entity.relation_count(RelationKind.overrides, "method_Foo_baz()") == 0

    def test_to_dict_round_trip_keeps_counts(self):
        entity = Entity(id="method_Foo_bar()", kind=EntityKind.method)
        entity.add_property("name", "bar")
        entity.add_relation(RelationKind.calls, "method_Foo_baz()", count=3)

        data = entity.to_dict()
        assert data == {
            "id": "method_Foo_bar()",
            "kind": "Method",
            "properties": {"name": "bar"},
            "relations": {"calls": [{"target": "method_Foo_baz()", "count": 3}]},
        }
        restored = Entity.from_dict(data)
        assert restored.relation_count(RelationKind.calls, "method_Foo_baz()") == 3


class TestCreate:

    def test_same_kind_reregistration_keeps_first_entity(self):
        graph = KnowledgeGraph()
        first = graph.create("class_Foo", EntityKind.class_or_interface)
        first.add_property("name", "Foo")
        again = graph.create("class_Foo", EntityKind.class_or_interface)
        assert again is first
        assert again.get_property("name") == "Foo"

    def test_kind_conflict_raises(self):
        graph = KnowledgeGraph()
        graph.create("x", EntityKind.field)
        with pytest.raises(DuplicateIdError) as exc_info:
            graph.create("x", EntityKind.method)
        assert exc_info.value.existing == EntityKind.field
