"""
Tests for environment-driven settings.
"""

from java_kg.core.config import Settings
from java_kg.graph.extraction_policy import DEFAULT_SCENARIO, ResolutionFailurePolicy, ThirdPartyCallPolicy
from java_kg.graph.graph_types import EntityKind, RelationKind


class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("JAVA_KG_SCENARIO", raising=False)
        settings = Settings(_env_file=None)
        assert settings.scenario == DEFAULT_SCENARIO
        assert settings.source_paths == ["src/main/java"]
        assert settings.third_party_call_policy == ThirdPartyCallPolicy.mark
        assert not settings.neo4j_enabled

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("JAVA_KG_SCENARIO", "full")
        monkeypatch.setenv("JAVA_KG_THIRD_PARTY_CALL_POLICY", "ignore")
        monkeypatch.setenv("JAVA_KG_ON_RESOLUTION_FAILURE", "error")
        monkeypatch.setenv("JAVA_KG_PROJECT_PACKAGES", '["com.acme", "org.acme"]')
        monkeypatch.setenv("JAVA_KG_NEO4J_URI", "bolt://localhost:7687")

        settings = Settings(_env_file=None)

        assert settings.scenario == "full"
        assert settings.third_party_call_policy == ThirdPartyCallPolicy.ignore
        assert settings.on_resolution_failure == ResolutionFailurePolicy.error
        assert settings.project_packages == ["com.acme", "org.acme"]
        assert settings.neo4j_enabled


class TestBuildExtractionPolicy:

    def test_policy_reflects_settings(self):
        settings = Settings(
            _env_file=None,
            scenario="impact_analysis",
            project_packages=["com.acme"],
            include_javadoc=False,
        )
        policy = settings.build_extraction_policy()

        assert policy.scenario == "impact_analysis"
        assert policy.project_packages == frozenset({"com.acme"})
        assert policy.include_javadoc is False
        assert policy.is_relation_enabled(RelationKind.returns)
        assert not policy.is_relation_enabled(RelationKind.implements)

    def test_custom_scenario_uses_configured_assignment(self, monkeypatch):
        monkeypatch.setenv("JAVA_KG_SCENARIO", "custom")
        monkeypatch.setenv("JAVA_KG_ENTITIES", '{"ClassOrInterface": true, "Method": true, "Field": false}')
        monkeypatch.setenv("JAVA_KG_RELATIONS", '{"calls": true, "accesses": true, "implements": false}')

        policy = Settings(_env_file=None).build_extraction_policy()

        assert policy.scenario == "custom"
        assert policy.is_relation_enabled(RelationKind.calls)
        assert policy.is_relation_enabled(RelationKind.accesses)
        assert not policy.is_relation_enabled(RelationKind.implements)
        # accesses pulls in Field entities
        assert policy.is_entity_enabled(EntityKind.field)
        assert not policy.is_entity_enabled(EntityKind.parameter)

    def test_custom_scenario_without_assignment_disables_everything(self):
        policy = Settings(_env_file=None, scenario="custom").build_extraction_policy()
        assert policy.scenario == "custom"
        assert policy.enabled_entities == frozenset()
        assert policy.enabled_relations == frozenset()
