"""
Tests for RelationBuilder: implements, accesses and overrides.
"""

import logging

import pytest

from java_kg.graph.cross_file_edge_builder import AccessResolutionError, RelationBuilder
from java_kg.graph.extraction_policy import ExtractionPolicy, ResolutionFailurePolicy
from java_kg.graph.graph_types import RelationKind
from java_kg.graph.knowledge_graph import KnowledgeGraph
from java_kg.graph.repo_graph_builder import build_graph

ACCOUNT_SOURCE = """
package bank;

interface Ledger {
    void post(long amount);
    long balance();
}

abstract class Base {
    void audit() {}
}

class Account extends Base implements Ledger, java.io.Serializable {
    private long total;
    private String owner;

    @Override
    public void post(long amount) {
        this.total = total + amount;
        String owner = "shadow";
        owner.length();
    }

    @Override
    public long balance() { return total; }

    @Override
    void audit() {}

    public long balance(int scale) { return this.missing; }
}
"""


class TestImplements:

    def test_class_implements_known_interfaces_only(self, parse, full_policy):
        graph, _ = build_graph([parse(ACCOUNT_SOURCE)], full_policy)
        account = graph.get("class_Account")
        assert account.targets(RelationKind.implements) == ["iface_Ledger"]

    def test_disabled_relation(self, parse):
        policy = ExtractionPolicy.from_scenario("call_chain")
        graph, _ = build_graph([parse(ACCOUNT_SOURCE)], policy)
        assert graph.get("class_Account").targets(RelationKind.implements) == []


class TestAccesses:

    def test_field_accesses_and_names(self, parse):
        policy = ExtractionPolicy.from_scenario("full", on_resolution_failure=ResolutionFailurePolicy.ignore)
        graph, _ = build_graph([parse(ACCOUNT_SOURCE)], policy)
        post = graph.get("method_Account_post(long)")
        # `this.total` and the bare `total`
        assert post.relation_count(RelationKind.accesses, "field_Account_total") == 2
        # the local `owner` shadows the field
        assert post.relation_count(RelationKind.accesses, "field_Account_owner") == 0

    def test_missing_field_warns(self, parse, full_policy, caplog):
        with caplog.at_level(logging.WARNING):
            build_graph([parse(ACCOUNT_SOURCE)], full_policy)
        assert "no field 'missing'" in caplog.text

    def test_missing_field_raises_under_error_policy(self, parse):
        policy = ExtractionPolicy.from_scenario("full", on_resolution_failure=ResolutionFailurePolicy.error)
        with pytest.raises(AccessResolutionError) as exc_info:
            build_graph([parse(ACCOUNT_SOURCE)], policy)
        assert exc_info.value.field_name == "missing"
        assert exc_info.value.method_id == "method_Account_balance(int)"

    def test_missing_field_ignored(self, parse, caplog):
        policy = ExtractionPolicy.from_scenario("full", on_resolution_failure=ResolutionFailurePolicy.ignore)
        with caplog.at_level(logging.WARNING):
            build_graph([parse(ACCOUNT_SOURCE)], policy)
        assert "missing" not in caplog.text


class TestOverrides:

    def test_override_marker_matches_direct_supertypes(self, parse, full_policy):
        graph, _ = build_graph([parse(ACCOUNT_SOURCE)], full_policy)
        assert graph.get("method_Account_post(long)").targets(RelationKind.overrides) == ["method_Ledger_post(long)"]
        assert graph.get("method_Account_balance()").targets(RelationKind.overrides) == ["method_Ledger_balance()"]
        assert graph.get("method_Account_audit()").targets(RelationKind.overrides) == ["method_Base_audit()"]

    def test_methods_without_marker_have_no_overrides(self, parse, full_policy):
        graph, _ = build_graph([parse(ACCOUNT_SOURCE)], full_policy)
        assert graph.get("method_Account_balance(int)").targets(RelationKind.overrides) == []


class TestBarrier:

    def test_requires_frozen_graph(self, full_policy):
        with pytest.raises(ValueError):
            RelationBuilder(KnowledgeGraph(), [], full_policy)

    def test_callee_in_a_later_file_is_linked(self, parse, call_chain_policy):
        caller = parse("""
package app;
class Caller {
    Callee callee;
    void run() { callee.work(); }
}
""", "Caller.java")
        callee = parse("""
package app;
class Callee {
    void work() {}
}
""", "Callee.java")
        graph, _ = build_graph([caller, callee], call_chain_policy, max_workers=2)
        assert graph.relation_count("method_Caller_run()", RelationKind.calls, "method_Callee_work()") == 1
