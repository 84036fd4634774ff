"""
Project indexing service: build the knowledge graph and hand it to its sinks.
"""

from dataclasses import dataclass
from pathlib import Path

from neo4j import AsyncDriver

from java_kg.core.config import Settings, settings as default_settings
from java_kg.core.neo4j import get_neo4j_driver
from java_kg.graph.repo_graph_builder import RepoGraphBuilder
from java_kg.models.graph.indexing_stats import PersistenceStats
from java_kg.models.graph.repo_graph_result import RepoGraphResult
from java_kg.services.kg.kg_service import KnowledgeGraphService
from java_kg.utils.logging import Logger


@dataclass
class IndexingResult:
    graph_result: RepoGraphResult
    output_path: Path | None = None
    persistence: PersistenceStats | None = None


class IndexingService:
    """Runs the full pipeline from Settings: build, write JSON, persist."""

    def __init__(self, settings: Settings | None = None, driver: AsyncDriver | None = None):
        self.settings = settings or default_settings
        self.policy = self.settings.build_extraction_policy()
        self._driver = driver
        self.logger = Logger(
            __name__,
            context={"project": self.settings.project_name, "scenario": self.policy.scenario},
        )

    def build(self) -> RepoGraphResult:
        """Build the graph of the configured project (synchronous)."""
        builder = RepoGraphBuilder(
            project_root=Path(self.settings.project_root),
            policy=self.policy,
            source_paths=self.settings.source_paths,
            include_patterns=self.settings.include_patterns,
            exclude_patterns=self.settings.exclude_patterns,
            semantic_resolution=self.settings.semantic_resolution,
            max_workers=self.settings.max_workers,
        )
        return builder.build()

    def write_json(self, graph_result: RepoGraphResult, output_path: Path | str) -> Path:
        path = Path(output_path)
        graph_result.graph.dump_json(path)
        return path

    async def persist(self, graph_result: RepoGraphResult, replace: bool = True) -> PersistenceStats:
        driver = self._driver or get_neo4j_driver(self.settings)
        service = KnowledgeGraphService(driver, database=self.settings.neo4j_database)
        await service.init_schema()
        return await service.persist_graph(self.settings.project_name, graph_result.graph, replace=replace)

    async def index_project(self) -> IndexingResult:
        """Build, then write JSON if `output_path` is set and persist if Neo4j is configured.

        Raises:
            FileNotFoundError: If the project root does not exist.
            AccessResolutionError: Under `on_resolution_failure=error` only.
        """
        self.logger.info(f"Indexing {self.settings.project_root}")
        graph_result = self.build()
        result = IndexingResult(graph_result=graph_result)

        if self.settings.output_path:
            result.output_path = self.write_json(graph_result, self.settings.output_path)

        if self._driver is not None or self.settings.neo4j_enabled:
            result.persistence = await self.persist(graph_result)
        else:
            self.logger.debug("Neo4j not configured, skipping persistence")

        stats = graph_result.stats
        self.logger.info(
            f"Indexing complete: {stats.indexed_files} files, {stats.total_entities} entities, "
            f"{stats.total_relations} relations"
        )
        return result
