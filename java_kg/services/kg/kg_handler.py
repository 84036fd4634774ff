"""Knowledge Graph Handler - Low-level Neo4j operations.

This module provides low-level operations for persisting knowledge graph
entities and relations to Neo4j: schema creation, batched upserts and
project-scoped deletion.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

from neo4j import AsyncDriver

from java_kg.graph.graph_types import Entity, EntityKind, RelationKind
from java_kg.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 1000


def relationship_type(kind: RelationKind) -> str:
    """Cypher relationship type for a relation kind, e.g. HAS_PARAMETER."""
    return str(kind).upper()


def _batches(items: list[dict[str, Any]], size: int) -> Iterable[list[dict[str, Any]]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


async def init_database(driver: AsyncDriver, database: str = "neo4j") -> None:
    """Create constraints and indexes for entity nodes.

    All operations are idempotent (IF NOT EXISTS).

    Creates:
        - Uniqueness constraint on (:Entity {project, id})
        - Index on (:Entity {project}) for project-scoped queries

    Args:
        driver: Neo4j AsyncDriver instance
        database: Name of the Neo4j database (default: "neo4j")

    Raises:
        neo4j.exceptions.Neo4jError: If constraint/index creation fails
    """
    logger.info("Initializing Neo4j database schema for Entity")

    async with driver.session(database=database) as session:
        logger.debug("Creating uniqueness constraint on Entity (project, id)")
        await session.run(
            """
            CREATE CONSTRAINT entity_unique IF NOT EXISTS
            FOR (n:Entity)
            REQUIRE (n.project, n.id) IS UNIQUE
            """
        )

        logger.debug("Creating index on Entity (project)")
        await session.run(
            """
            CREATE INDEX entity_project IF NOT EXISTS
            FOR (n:Entity)
            ON (n.project)
            """
        )

    logger.info("Neo4j database schema initialization complete")


async def batch_upsert_entities(
    driver: AsyncDriver,
    entities: list[Entity],
    project: str,
    database: str = "neo4j",
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> None:
    """Batch upsert entities using the UNWIND pattern with MERGE.

    Each entity becomes a node labelled `:Entity:<kind>` keyed by
    (project, id); its string properties are replaced on every upsert.

    Args:
        driver: Neo4j AsyncDriver instance
        entities: Entities to upsert
        project: Project name scoping the nodes
        database: Name of the Neo4j database (default: "neo4j")
        batch_size: Rows per UNWIND statement

    Raises:
        neo4j.exceptions.Neo4jError: If the batch upsert operation fails
    """
    if not entities:
        logger.debug("No entities to upsert")
        return

    logger.info(f"Upserting {len(entities)} entities for project={project}")

    current_time = datetime.now(timezone.utc)
    by_kind: dict[EntityKind, list[dict[str, Any]]] = {}
    for entity in entities:
        by_kind.setdefault(entity.kind, []).append({
            "id": entity.id,
            "project": project,
            "properties": dict(entity.properties),
            "last_indexed_at": current_time,
        })

    async with driver.session(database=database) as session:
        for kind, rows in by_kind.items():
            # Labels cannot be parameters; kinds come from a closed enum
            query = f"""
            UNWIND $rows AS row
            MERGE (n:Entity:{kind} {{project: row.project, id: row.id}})
            SET n += row.properties,
                n.kind = '{kind}',
                n.last_indexed_at = row.last_indexed_at
            """
            for batch in _batches(rows, batch_size):
                logger.debug(f"Upserting {len(batch)} {kind} entities")
                result = await session.run(query, rows=batch)
                await result.consume()

    logger.info(f"Successfully upserted {len(entities)} entities for project={project}")


async def batch_upsert_relations(
    driver: AsyncDriver,
    entities: list[Entity],
    project: str,
    database: str = "neo4j",
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> int:
    """Batch upsert the relations of the given entities.

    One relationship per (source, kind, target); its `count` property holds
    the multiplicity. Relations whose target is not a persisted entity are
    skipped by the MATCH.

    Args:
        driver: Neo4j AsyncDriver instance
        entities: Source entities whose relations are upserted
        project: Project name scoping the nodes
        database: Name of the Neo4j database (default: "neo4j")
        batch_size: Rows per UNWIND statement

    Returns:
        Number of relationship rows submitted

    Raises:
        neo4j.exceptions.Neo4jError: If the batch upsert operation fails
    """
    by_kind: dict[RelationKind, list[dict[str, Any]]] = {}
    for entity in entities:
        for kind, targets in entity.relations.items():
            for target, count in targets.items():
                by_kind.setdefault(kind, []).append({
                    "project": project,
                    "source": entity.id,
                    "target": target,
                    "count": count,
                })

    total = sum(len(rows) for rows in by_kind.values())
    if not total:
        logger.debug("No relations to upsert")
        return 0

    logger.info(f"Upserting {total} relations for project={project}")

    async with driver.session(database=database) as session:
        for kind, rows in by_kind.items():
            query = f"""
            UNWIND $rows AS row
            MATCH (source:Entity {{project: row.project, id: row.source}})
            MATCH (target:Entity {{project: row.project, id: row.target}})
            MERGE (source)-[r:{relationship_type(kind)}]->(target)
            SET r.count = row.count
            """
            for batch in _batches(rows, batch_size):
                logger.debug(f"Upserting {len(batch)} {relationship_type(kind)} relations")
                result = await session.run(query, rows=batch)
                await result.consume()

    logger.info(f"Successfully upserted {total} relations for project={project}")
    return total


async def delete_project(driver: AsyncDriver, project: str, database: str = "neo4j") -> int:
    """Delete every entity (and its relationships) of a project.

    Returns:
        Number of nodes deleted
    """
    async with driver.session(database=database) as session:
        result = await session.run(
            """
            MATCH (n:Entity {project: $project})
            DETACH DELETE n
            RETURN count(n) AS deleted_count
            """,
            project=project,
        )
        record = await result.single()
        return record["deleted_count"] if record else 0


async def count_entities(driver: AsyncDriver, project: str, database: str = "neo4j") -> int:
    async with driver.session(database=database) as session:
        result = await session.run(
            "MATCH (n:Entity {project: $project}) RETURN count(n) AS node_count",
            project=project,
        )
        record = await result.single()
        return record["node_count"] if record else 0


async def count_relations(driver: AsyncDriver, project: str, database: str = "neo4j") -> int:
    async with driver.session(database=database) as session:
        result = await session.run(
            """
            MATCH (:Entity {project: $project})-[r]->(:Entity {project: $project})
            RETURN count(r) AS edge_count
            """,
            project=project,
        )
        record = await result.single()
        return record["edge_count"] if record else 0
