"""Building the knowledge graph for an entire Java project.

This module constructs the complete graph in two phases separated by an
explicit barrier:

  1. Discovery: scan the configured source paths for `*.java` files, skipping
     directories that cannot be package segments (`.git`, `generated-sources`),
     then apply include/exclude glob filters on the
     root-relative path (exclude wins; no include patterns means include all).
  2. Phase 1 (parallel per file): parse with Tree-sitter, extract a ParsedUnit,
     and build the file's declaration entities with FileGraphBuilder. A file
     that fails to parse is skipped and tallied; the batch continues.
  3. Barrier: merge every per-file graph into one id-keyed graph (first
     registration wins) and freeze it.
  4. Phase 2 (parallel per file): RelationBuilder resolves calls, implements,
     accesses and overrides against the frozen graph.

No relation is built before every file's entities are registered, because a
callee may live in any file of the batch.
"""

import functools
import logging
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Sequence

from java_kg.graph.constants import DEFAULT_SOURCE_PATHS, JAVA_FILE_GLOB
from java_kg.graph.cross_file_edge_builder import RelationBuilder
from java_kg.graph.extraction_policy import ExtractionPolicy
from java_kg.graph.file_graph_builder import FileGraphBuilder
from java_kg.graph.knowledge_graph import KnowledgeGraph
from java_kg.graph.semantic_resolver import SemanticResolver, SymbolTableResolver
from java_kg.graph.type_resolution import TypeIndex, TypeNameResolver
from java_kg.models.graph.indexing_stats import IndexingStats, ResolutionStats
from java_kg.models.graph.repo_graph_result import RepoGraphResult
from java_kg.parser.extractor.base_extractor import ParsedUnit
from java_kg.parser.extractor.exceptions import UnitExtractionError
from java_kg.parser.tree_sitter_parser import ParseError, UnsupportedLanguageError

logger = logging.getLogger(__name__)


def build_graph(
    units: Sequence[ParsedUnit],
    policy: ExtractionPolicy,
    semantic_resolver: SemanticResolver | None = None,
    semantic_resolution: bool = True,
    max_workers: int | None = None,
) -> tuple[KnowledgeGraph, ResolutionStats]:
    """Build the graph of already-parsed units: entities, barrier, relations.

    Args:
        units: Parsed units of the whole batch
        policy: Extraction policy
        semantic_resolver: Resolver for the semantic tier; defaults to a
            SymbolTableResolver over `units` when `semantic_resolution` is on
        semantic_resolution: Whether to build the default resolver
        max_workers: Thread pool size for phase 2

    Returns:
        (assembled graph, call resolution statistics)
    """
    file_builder = FileGraphBuilder(policy)
    graph = assemble([file_builder.build_file_graph(unit) for unit in units])
    return graph, build_relations(graph, units, policy, semantic_resolver, semantic_resolution, max_workers)


def assemble(file_graphs: Sequence[KnowledgeGraph]) -> KnowledgeGraph:
    """Merge per-file graphs in order and freeze the result.

    This is the barrier between entity extraction and relation building.
    """
    graph = KnowledgeGraph()
    for file_graph in file_graphs:
        graph.merge(file_graph)
    graph.freeze()
    return graph


def build_relations(
    graph: KnowledgeGraph,
    units: Sequence[ParsedUnit],
    policy: ExtractionPolicy,
    semantic_resolver: SemanticResolver | None = None,
    semantic_resolution: bool = True,
    max_workers: int | None = None,
) -> ResolutionStats:
    """Phase 2 over a frozen graph."""
    types = TypeNameResolver(TypeIndex(list(units)))
    if semantic_resolver is None and semantic_resolution:
        semantic_resolver = SymbolTableResolver(types)
    builder = RelationBuilder(
        graph,
        list(units),
        policy,
        type_resolver=types,
        semantic_resolver=semantic_resolver,
        max_workers=max_workers,
    )
    return builder.build()


class RepoGraphBuilder:
    """Builds a complete knowledge graph from a Java project directory.

    Example:
        builder = RepoGraphBuilder(
            project_root=Path("/path/to/project"),
            policy=ExtractionPolicy.from_scenario("full", project_packages=frozenset({"com.acme"})),
        )
        result = builder.build()
        # result.graph holds every entity and relation, result.stats the counts
    """

    def __init__(
        self,
        project_root: Path | str,
        policy: ExtractionPolicy,
        source_paths: Sequence[str] = DEFAULT_SOURCE_PATHS,
        include_patterns: Sequence[str] = (),
        exclude_patterns: Sequence[str] = (),
        semantic_resolution: bool = True,
        semantic_resolver: SemanticResolver | None = None,
        max_workers: int | None = None,
    ):
        """Initialize the RepoGraphBuilder.

        Args:
            project_root: Root directory of the project.
            policy: Extraction policy.
            source_paths: Source directories relative to the root.
            include_patterns: Glob patterns on the root-relative path; empty includes all.
            exclude_patterns: Glob patterns on the root-relative path; exclusion wins.
            semantic_resolution: Use the built-in SymbolTableResolver for the semantic tier.
            semantic_resolver: A resolver to use instead of the built-in one.
            max_workers: Thread pool size for both phases (None lets the executor decide).
        """
        self.project_root = Path(project_root) if isinstance(project_root, str) else project_root
        self.policy = policy
        self.source_paths = list(source_paths)
        self.include_patterns = list(include_patterns)
        self.exclude_patterns = list(exclude_patterns)
        self.semantic_resolution = semantic_resolution
        self.semantic_resolver = semantic_resolver
        self.max_workers = max_workers
        self.file_builder = FileGraphBuilder(policy)

    def build(self) -> RepoGraphResult:
        """Build the complete knowledge graph for the project.

        Returns:
            RepoGraphResult with the assembled graph, parsed units and statistics.

        Raises:
            FileNotFoundError: If the project root does not exist.
            ValueError: If the project root is not a directory.
            AccessResolutionError: Under `on_resolution_failure=error` only.
        """
        if not self.project_root.exists():
            raise FileNotFoundError(f"Project root does not exist: {self.project_root}")
        if not self.project_root.is_dir():
            raise ValueError(f"Project root is not a directory: {self.project_root}")

        stats = IndexingStats()
        logger.info(f"Building knowledge graph for {self.project_root} ({self.policy.summary()})")

        files = self.discover_files(stats)

        # Phase 1: per-file entity extraction
        extracted = self._extract_files(files, stats)
        units = [unit for unit, _ in extracted]

        # Barrier: every file's entities are registered before any relation is built
        graph = assemble([file_graph for _, file_graph in extracted])
        logger.info(f"Phase 1 complete: {len(graph)} entities from {stats.indexed_files} files")

        # Phase 2: cross-file relations
        stats.resolution = build_relations(
            graph,
            units,
            self.policy,
            semantic_resolver=self.semantic_resolver,
            semantic_resolution=self.semantic_resolution,
            max_workers=self.max_workers,
        )

        stats.total_types = sum(len(unit.types) for unit in units)
        stats.total_methods = sum(len(type_decl.methods) for unit in units for type_decl in unit.types)
        stats.total_entities = len(graph)
        stats.total_relations = graph.count_relations()

        logger.info(
            f"Finished building knowledge graph: "
            f"{stats.indexed_files} files indexed, "
            f"{stats.total_entities} entities, "
            f"{stats.total_relations} relations, "
            f"{stats.filtered_files} filtered, "
            f"{stats.failed_files} failed"
        )

        return RepoGraphResult(graph=graph, units=units, stats=stats)

    def discover_files(self, stats: IndexingStats | None = None) -> list[Path]:
        """Find Java sources under the source paths that pass the filters.

        Returns:
            Sorted list of absolute file paths.
        """
        stats = stats or IndexingStats()
        found: set[Path] = set()
        for source_path in self.source_paths:
            source_dir = self.project_root / source_path
            if not source_dir.is_dir():
                logger.warning(f"Source path does not exist: {source_dir}")
                continue
            for path in source_dir.rglob(JAVA_FILE_GLOB):
                if not path.is_file() or _outside_package_tree(path, source_dir):
                    continue
                found.add(path)

        files: list[Path] = []
        for path in sorted(found):
            stats.total_files += 1
            if self.should_include(path):
                files.append(path)
            else:
                stats.filtered_files += 1

        logger.info(f"Discovered {stats.total_files} Java files, {len(files)} after filtering")
        return files

    def should_include(self, path: Path) -> bool:
        """Apply include/exclude globs to the root-relative POSIX path.

        `*` and `?` stay within one path segment, `**` crosses segments.
        """
        relative_path = self._relative_path(path)
        if any(glob_matches(relative_path, pattern) for pattern in self.exclude_patterns):
            return False
        if not self.include_patterns:
            return True
        return any(glob_matches(relative_path, pattern) for pattern in self.include_patterns)

    def _extract_files(self, files: list[Path], stats: IndexingStats) -> list[tuple[ParsedUnit, KnowledgeGraph]]:
        results: dict[Path, tuple[ParsedUnit, KnowledgeGraph]] = {}

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {executor.submit(self._process_file, path): path for path in files}
            for future in as_completed(futures):
                path = futures[future]
                try:
                    results[path] = future.result()
                    stats.indexed_files += 1
                except (ParseError, UnsupportedLanguageError, UnitExtractionError, OSError) as e:
                    stats.failed_files += 1
                    stats.errors.append(f"{self._relative_path(path)}: {e}")
                    logger.warning(f"Skipping {self._relative_path(path)}: {e}")

        # Merge order follows file order so first-registration-wins is deterministic
        return [results[path] for path in files if path in results]

    def _process_file(self, path: Path) -> tuple[ParsedUnit, KnowledgeGraph]:
        unit = self.file_builder.parse_file(path)
        return unit, self.file_builder.build_file_graph(unit)

    def _relative_path(self, path: Path) -> str:
        try:
            return path.relative_to(self.project_root).as_posix()
        except ValueError:
            return path.as_posix()


def _outside_package_tree(path: Path, source_dir: Path) -> bool:
    """True when a directory between the source root and the file cannot be a package segment.

    Every directory under a source root is a package, so names such as
    `build` or `target` are scanned; `.git` or `generated-sources` are not
    Java identifiers and are skipped.
    """
    parts = path.relative_to(source_dir).parts[:-1]
    return not all(part.replace("$", "_").isidentifier() for part in parts)


def glob_matches(path: str, pattern: str) -> bool:
    """Match a POSIX path against a directory-aware glob.

    Examples:
        glob_matches("src/main/java/com/acme/App.java", "src/main/java/com/acme/*.java") -> True
        glob_matches("src/main/java/com/acme/web/Api.java", "src/main/java/com/acme/*.java") -> False
        glob_matches("src/main/java/com/acme/web/Api.java", "**/web/*.java") -> True
        glob_matches("src/test/java/FooTest.java", "**/*{Test,IT}.java") -> True
    """
    return _compile_glob(pattern).fullmatch(path) is not None


@functools.lru_cache(maxsize=256)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    parts: list[str] = []
    in_group = False
    i, n = 0, len(pattern)
    while i < n:
        char = pattern[i]
        if char == "*":
            if pattern.startswith("**", i):
                parts.append(".*")
                i += 2
                continue
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "[":
            end = pattern.find("]", i + 2)
            if end == -1:
                parts.append(re.escape(char))
            else:
                body = pattern[i + 1:end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                parts.append(f"[{body}]")
                i = end
        elif char == "{" and not in_group:
            parts.append("(?:")
            in_group = True
        elif char == "}" and in_group:
            parts.append(")")
            in_group = False
        elif char == "," and in_group:
            parts.append("|")
        else:
            parts.append(re.escape(char))
        i += 1
    if in_group:
        logger.warning(f"Unclosed group in glob {pattern!r}, it matches nothing")
        return re.compile(r"(?!)")
    return re.compile("".join(parts))
