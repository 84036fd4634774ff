import threading
from dataclasses import dataclass, field


@dataclass
class ResolutionStats:
    """Per-tier call resolution counts.

    Attributes:
        total_calls: Call sites processed.
        syntactic: Calls settled by the syntactic tier.
        semantic: Calls settled by the semantic tier.
        name_match: Calls settled by the name-matching tier.
        resolved: Calls that produced an edge to a project method.
        external: Calls handled by the third-party policy.
        unresolved: Calls that produced no edge.
        semantic_failures: Semantic resolver failures (each one deferred).
    """
    total_calls: int = 0
    syntactic: int = 0
    semantic: int = 0
    name_match: int = 0
    resolved: int = 0
    external: int = 0
    unresolved: int = 0
    semantic_failures: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, outcome: str, tier: str | None) -> None:
        with self._lock:
            self.total_calls += 1
            if tier is not None:
                setattr(self, str(tier), getattr(self, str(tier)) + 1)
            setattr(self, str(outcome), getattr(self, str(outcome)) + 1)

    def record_semantic_failure(self) -> None:
        with self._lock:
            self.semantic_failures += 1

    def merge(self, other: "ResolutionStats") -> None:
        with self._lock:
            for name in (
                "total_calls", "syntactic", "semantic", "name_match",
                "resolved", "external", "unresolved", "semantic_failures",
            ):
                setattr(self, name, getattr(self, name) + getattr(other, name))


@dataclass
class IndexingStats:
    """Statistics collected while building a knowledge graph.

    Attributes:
        total_files: Number of Java files discovered.
        indexed_files: Number of files successfully parsed and extracted.
        filtered_files: Number of files dropped by include/exclude patterns.
        failed_files: Number of files that failed to parse.
        total_types: Number of type declarations extracted.
        total_methods: Number of method declarations extracted.
        total_entities: Number of entities in the assembled graph.
        total_relations: Number of distinct edges in the assembled graph.
        resolution: Call resolution statistics.
        errors: List of error messages encountered during indexing.
    """
    total_files: int = 0
    indexed_files: int = 0
    filtered_files: int = 0
    failed_files: int = 0
    total_types: int = 0
    total_methods: int = 0
    total_entities: int = 0
    total_relations: int = 0
    resolution: ResolutionStats = field(default_factory=ResolutionStats)
    errors: list[str] = field(default_factory=list)


@dataclass
class PersistenceStats:
    """Statistics from persisting a knowledge graph to Neo4j.

    Attributes:
        nodes_created: Entities that did not exist before.
        nodes_updated: Entities that already existed.
        edges_created: Relationships that did not exist before.
        edges_updated: Relationships that already existed.
        errors: List of error messages encountered during persistence.
    """
    nodes_created: int = 0
    nodes_updated: int = 0
    edges_created: int = 0
    edges_updated: int = 0
    errors: list[str] = field(default_factory=list)
