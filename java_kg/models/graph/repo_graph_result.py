from dataclasses import dataclass, field

from java_kg.graph.knowledge_graph import KnowledgeGraph
from java_kg.models.graph.indexing_stats import IndexingStats
from java_kg.parser.extractor.base_extractor import ParsedUnit


@dataclass
class RepoGraphResult:
    """Result of building a knowledge graph for a Java project.

    Attributes:
        graph: The assembled, id-keyed entity graph with all relations.
        units: Parsed units of every successfully indexed file.
        stats: Statistics about the indexing process.
    """
    graph: KnowledgeGraph
    units: list[ParsedUnit] = field(default_factory=list)
    stats: IndexingStats = field(default_factory=IndexingStats)
