"""
Tests for KnowledgeGraph assembly, lookup and serialization.
"""

import pytest

from java_kg.graph.graph_types import EntityKind, RelationKind
from java_kg.graph.knowledge_graph import KnowledgeGraph


def _graph_with(*method_ids: str) -> KnowledgeGraph:
    graph = KnowledgeGraph()
    for method_id in method_ids:
        graph.create(method_id, EntityKind.method)
    return graph


class TestMerge:

    def test_first_registration_wins_and_counts_accumulate(self):
        first = KnowledgeGraph()
        a = first.create("method_A_run()", EntityKind.method)
        a.add_property("owner", "first")
        a.add_relation(RelationKind.calls, "method_B_go()")

        second = KnowledgeGraph()
        b = second.create("method_A_run()", EntityKind.method)
        b.add_property("owner", "second")
        b.add_relation(RelationKind.calls, "method_B_go()")

        merged = KnowledgeGraph()
        merged.merge(first)
        merged.merge(second)

        entity = merged.get("method_A_run()")
        assert entity.get_property("owner") == "first"
        assert entity.relation_count(RelationKind.calls, "method_B_go()") == 2

    def test_kind_conflict_drops_incoming_entity(self):
        first = KnowledgeGraph()
        first.create("x", EntityKind.field)
        second = KnowledgeGraph()
        second.create("x", EntityKind.method)

        merged = KnowledgeGraph()
        merged.merge(first)
        merged.merge(second)
        assert merged.get("x").kind == EntityKind.field


class TestPrefixLookup:

    def test_requires_frozen_graph(self):
        graph = _graph_with("method_Foo_bar()")
        with pytest.raises(RuntimeError):
            graph.method_ids_with_prefix("method_Foo_bar(")

    def test_prefix_matches_in_lexicographic_order(self):
        graph = _graph_with("method_Foo_bar(int)", "method_Foo_barista()", "method_Foo_bar()")
        graph.freeze()
        assert graph.method_ids_with_prefix("method_Foo_bar(") == ["method_Foo_bar()", "method_Foo_bar(int)"]

    def test_entities_created_after_freeze_stay_out_of_the_index(self):
        graph = _graph_with("method_Foo_bar()", "method_Foo_baz()")
        graph.freeze()
        graph.create("method_Foo_bar(String)", EntityKind.method)
        graph.create("method_Foo_a()", EntityKind.method)

        assert "method_Foo_bar(String)" in graph
        assert graph.method_ids_with_prefix("method_Foo_bar(") == ["method_Foo_bar()"]
        assert graph.method_ids_with_prefix("method_Foo_baz(") == ["method_Foo_baz()"]


class TestSerialization:

    def test_json_round_trip(self, tmp_path):
        graph = _graph_with("method_Foo_bar()", "method_Foo_baz()")
        graph.get("method_Foo_bar()").add_relation(RelationKind.calls, "method_Foo_baz()", count=2)
        graph.get("method_Foo_bar()").add_property("name", "bar")

        path = tmp_path / "out" / "graph.json"
        graph.dump_json(path)
        restored = KnowledgeGraph.load_json(path)

        assert len(restored) == 2
        assert restored.relation_count("method_Foo_bar()", RelationKind.calls, "method_Foo_baz()") == 2
        assert restored.get("method_Foo_bar()").get_property("name") == "bar"
        assert restored.count_relations() == 1
