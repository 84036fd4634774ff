"""
Tests for IndexingService: build from settings, JSON output and persistence.
"""

import json
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from java_kg.core.config import Settings
from java_kg.models.graph.indexing_stats import PersistenceStats
from java_kg.services.indexing import IndexingService


@pytest.fixture
def project_settings(make_project, service_sources, tmp_path):
    root = make_project(service_sources)
    return Settings(
        _env_file=None,
        project_name="acme",
        project_root=str(root),
        project_packages=["com.acme"],
        scenario="full",
    )


class TestBuild:

    def test_policy_comes_from_settings(self, project_settings):
        service = IndexingService(project_settings)
        assert service.policy.scenario == "full"
        assert service.policy.project_packages == frozenset({"com.acme"})

    def test_build_indexes_configured_root(self, project_settings):
        result = IndexingService(project_settings).build()
        assert result.stats.indexed_files == 4
        assert "class_UserService" in result.graph

    def test_write_json_creates_parent_directories(self, project_settings, tmp_path):
        service = IndexingService(project_settings)
        graph_result = service.build()

        path = service.write_json(graph_result, tmp_path / "out" / "graph.json")

        data = json.loads(path.read_text(encoding="utf-8"))
        assert path.exists()
        assert len(data) == len(graph_result.graph)
        assert data["class_UserService"]["kind"] == "ClassOrInterface"

    def test_write_json_logs_once(self, project_settings, tmp_path, caplog):
        service = IndexingService(project_settings)
        graph_result = service.build()

        with caplog.at_level(logging.INFO, logger="java_kg"):
            service.write_json(graph_result, tmp_path / "graph.json")

        assert [r.getMessage() for r in caplog.records].count(
            f"Wrote {len(graph_result.graph)} entities to {tmp_path / 'graph.json'}"
        ) == 1


class TestIndexProject:

    @pytest.mark.asyncio
    async def test_skips_persistence_without_neo4j(self, project_settings, tmp_path):
        project_settings.output_path = str(tmp_path / "graph.json")

        result = await IndexingService(project_settings).index_project()

        assert result.persistence is None
        assert result.output_path == tmp_path / "graph.json"
        assert result.output_path.exists()

    @pytest.mark.asyncio
    async def test_persists_with_injected_driver(self, project_settings):
        persisted = PersistenceStats(nodes_created=3)
        with patch("java_kg.services.indexing.indexing_service.KnowledgeGraphService") as service_cls:
            kg_service = service_cls.return_value
            kg_service.init_schema = AsyncMock()
            kg_service.persist_graph = AsyncMock(return_value=persisted)
            driver = MagicMock()

            result = await IndexingService(project_settings, driver=driver).index_project()

        service_cls.assert_called_once_with(driver, database="neo4j")
        kg_service.init_schema.assert_awaited_once()
        project, graph = kg_service.persist_graph.await_args.args
        assert project == "acme"
        assert graph is result.graph_result.graph
        assert kg_service.persist_graph.await_args.kwargs == {"replace": True}
        assert result.persistence is persisted
        assert result.output_path is None

    @pytest.mark.asyncio
    async def test_missing_root_propagates(self, tmp_path):
        settings = Settings(_env_file=None, project_root=str(tmp_path / "missing"))
        with pytest.raises(FileNotFoundError):
            await IndexingService(settings).index_project()
