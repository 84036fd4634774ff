"""Knowledge graph building for Java code bases.

Main components:
  - RepoGraphBuilder (repo_graph_builder): file discovery and the two-phase build
  - FileGraphBuilder (file_graph_builder): per-file declaration entities
  - RelationBuilder (cross_file_edge_builder): calls, implements, accesses, overrides
  - CallResolutionEngine (call_resolver): tiered call resolution
  - ExtractionPolicy (extraction_policy): which entity and relation kinds to build
  - KnowledgeGraph, Entity (knowledge_graph, graph_types): the entity model
"""
