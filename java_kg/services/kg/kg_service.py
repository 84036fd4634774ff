"""Knowledge Graph Service - High-level operations for KG persistence.

This module orchestrates the low-level handler operations into project-level
persistence with error handling and statistics tracking.
"""

from __future__ import annotations

from neo4j import AsyncDriver

from java_kg.graph.knowledge_graph import KnowledgeGraph
from java_kg.models.graph.indexing_stats import PersistenceStats
from java_kg.services.kg import kg_handler
from java_kg.utils.logging import get_logger

logger = get_logger(__name__)


class KnowledgeGraphService:
    """High-level service for knowledge graph persistence operations.

    Attributes:
        driver: Neo4j AsyncDriver instance
        database: Name of the Neo4j database (default: "neo4j")
    """

    def __init__(
        self,
        driver: AsyncDriver,
        database: str = "neo4j"
    ):
        self.driver = driver
        self.database = database
        logger.debug(f"KnowledgeGraphService initialized with database={database}")

    async def init_schema(self) -> None:
        await kg_handler.init_database(self.driver, self.database)

    async def persist_graph(
        self,
        project: str,
        graph: KnowledgeGraph,
        replace: bool = False,
    ) -> PersistenceStats:
        """Persist a complete knowledge graph for a project.

        Created and updated counts are derived from the node and relationship
        counts before and after the upserts.

        Args:
            project: Project name scoping the nodes
            graph: The assembled graph
            replace: Delete the project's previous graph first

        Returns:
            PersistenceStats containing counts of created/updated nodes and edges

        Raises:
            neo4j.exceptions.Neo4jError: If persistence operations fail
        """
        entities = list(graph)
        logger.info(f"Persisting knowledge graph for project={project}: {len(entities)} entities")

        stats = PersistenceStats()

        try:
            if replace:
                deleted = await kg_handler.delete_project(self.driver, project, self.database)
                logger.info(f"Deleted {deleted} previous entities for project={project}")

            initial_node_count = await kg_handler.count_entities(self.driver, project, self.database)
            initial_edge_count = await kg_handler.count_relations(self.driver, project, self.database)

            await kg_handler.batch_upsert_entities(self.driver, entities, project, self.database)
            submitted_edges = await kg_handler.batch_upsert_relations(
                self.driver, entities, project, self.database
            )

            final_node_count = await kg_handler.count_entities(self.driver, project, self.database)
            final_edge_count = await kg_handler.count_relations(self.driver, project, self.database)

            stats.nodes_created = max(0, final_node_count - initial_node_count)
            stats.nodes_updated = max(0, len(entities) - stats.nodes_created)
            stats.edges_created = max(0, final_edge_count - initial_edge_count)
            stats.edges_updated = max(0, submitted_edges - stats.edges_created)

            logger.info(
                f"Persistence complete for project={project}: "
                f"nodes_created={stats.nodes_created}, nodes_updated={stats.nodes_updated}, "
                f"edges_created={stats.edges_created}, edges_updated={stats.edges_updated}"
            )

        except Exception as e:
            error_msg = f"Failed to persist knowledge graph for project={project}: {str(e)}"
            logger.error(error_msg, exc_info=True)
            stats.errors.append(error_msg)
            raise

        return stats

    async def clear_project_graph(self, project: str) -> int:
        """Delete all entities and relations of a project.

        Returns:
            Number of nodes deleted
        """
        logger.warning(f"Clearing entire knowledge graph for project={project}")
        try:
            deleted_count = await kg_handler.delete_project(self.driver, project, self.database)
        except Exception as e:
            logger.error(f"Failed to clear graph for project={project}: {str(e)}", exc_info=True)
            raise
        logger.info(f"Graph cleared for project={project}: deleted {deleted_count} nodes")
        return deleted_count
