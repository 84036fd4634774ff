"""Knowledge Graph persistence module.

Low-level Neo4j operations (handler) and the high-level service for
persisting an assembled knowledge graph to Neo4j.

Public API:
  - KnowledgeGraphService: High-level service for KG persistence
  - init_database: Initialize Neo4j constraints and indexes
  - batch_upsert_entities: Low-level batch entity upsert
  - batch_upsert_relations: Low-level batch relation upsert
  - delete_project: Low-level deletion of a project's graph
"""

from java_kg.services.kg.kg_handler import (
    batch_upsert_entities,
    batch_upsert_relations,
    delete_project,
    init_database,
)
from java_kg.services.kg.kg_service import KnowledgeGraphService

__all__ = [
    "KnowledgeGraphService",
    "init_database",
    "batch_upsert_entities",
    "batch_upsert_relations",
    "delete_project",
]
