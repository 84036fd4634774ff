"""
Second-pass relation builder for relations that need the whole batch.

This module creates the relations whose targets may live in any file:
  - calls: Method -> Method, via the tiered CallResolutionEngine
  - implements: ClassOrInterface(class) -> ClassOrInterface(interface)
  - accesses: Method -> Field of the method's own type
  - overrides: Method -> Method of an implemented interface or superclass

The builder runs after every file's entities have been registered and the
graph has been frozen. Per-unit work runs in parallel: each unit only writes
to entities it declares, and entity writes are locked per entity.

Design principles:
  - Count fidelity: every discovery of an edge increments its count
  - No dangling project edges: project targets are linked only if their entity exists
  - Resolution failures never abort the batch, except accesses under
    `on_resolution_failure=error`
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed

from java_kg.graph.call_resolver import CallResolutionEngine
from java_kg.graph.extraction_policy import ExtractionPolicy, ResolutionFailurePolicy
from java_kg.graph.graph_types import Entity, EntityKind, RelationKind
from java_kg.graph.helpers.utils import (
    field_entity_id,
    method_entity_id,
    simple_class_name,
    type_entity_id,
)
from java_kg.graph.knowledge_graph import KnowledgeGraph
from java_kg.graph.semantic_resolver import MethodContext, SemanticResolver
from java_kg.graph.type_resolution import TypeIndex, TypeNameResolver
from java_kg.models.graph.indexing_stats import ResolutionStats
from java_kg.parser.extractor.base_extractor import MethodDeclaration, ParsedUnit, TypeDeclaration

logger = logging.getLogger(__name__)


class AccessResolutionError(RuntimeError):
    """Raised under `on_resolution_failure=error` when a field access matches no field."""

    def __init__(self, method_id: str, field_name: str):
        self.method_id = method_id
        self.field_name = field_name
        super().__init__(f"accesses resolution failed in {method_id}: no field {field_name!r}")


class RelationBuilder:
    """Builds calls, implements, accesses and overrides relations.

    Example:
        graph.freeze()
        builder = RelationBuilder(graph, units, policy, semantic_resolver=resolver)
        resolution_stats = builder.build()
    """

    def __init__(
        self,
        graph: KnowledgeGraph,
        units: list[ParsedUnit],
        policy: ExtractionPolicy,
        type_resolver: TypeNameResolver | None = None,
        semantic_resolver: SemanticResolver | None = None,
        max_workers: int | None = None,
    ):
        """Initialize the RelationBuilder.

        Args:
            graph: The merged graph of every file; must be frozen.
            units: Parsed units of the whole batch.
            policy: Extraction policy.
            type_resolver: Type name resolver over the batch (built from units if omitted).
            semantic_resolver: Optional semantic resolver for the second call tier.
            max_workers: Thread pool size for per-unit building (1 runs inline).

        Raises:
            ValueError: If the graph is not frozen.
        """
        if not graph.is_frozen:
            raise ValueError("RelationBuilder requires a frozen graph: extract every file first")
        self.graph = graph
        self.units = units
        self.policy = policy
        self.types = type_resolver or TypeNameResolver(TypeIndex(units))
        self.max_workers = max_workers
        self.engine = CallResolutionEngine(graph, policy, self.types, semantic_resolver)

    def build(self) -> ResolutionStats:
        """Build every enabled cross-file relation.

        Returns:
            Call resolution statistics.

        Raises:
            AccessResolutionError: Under `on_resolution_failure=error` only.
        """
        if self.policy.is_relation_enabled(RelationKind.implements) and self.policy.is_entity_enabled(EntityKind.class_or_interface):
            for unit in self.units:
                self._build_implements(unit)

        if not self.policy.is_entity_enabled(EntityKind.method):
            return self.engine.stats

        if self.max_workers == 1 or len(self.units) <= 1:
            for unit in self.units:
                self.build_unit(unit)
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = {executor.submit(self.build_unit, unit): unit for unit in self.units}
                for future in as_completed(futures):
                    # Re-raises AccessResolutionError from workers
                    future.result()

        stats = self.engine.stats
        logger.info(
            f"Resolved {stats.total_calls} call sites: "
            f"{stats.resolved} resolved, {stats.external} external, {stats.unresolved} unresolved "
            f"(syntactic={stats.syntactic}, semantic={stats.semantic}, name_match={stats.name_match}, "
            f"semantic_failures={stats.semantic_failures})"
        )
        return stats

    def build_unit(self, unit: ParsedUnit) -> None:
        """Build method-level relations for every method declared in one unit."""
        build_calls = self.policy.is_relation_enabled(RelationKind.calls)
        build_accesses = self.policy.is_relation_enabled(RelationKind.accesses) and self.policy.is_entity_enabled(EntityKind.field)
        build_overrides = self.policy.is_relation_enabled(RelationKind.overrides)

        for type_decl, method in unit.iter_methods():
            method_id = method_entity_id(type_decl.name, method.name, method.parameter_types)
            caller = self.graph.get(method_id)
            if caller is None or caller.kind != EntityKind.method:
                continue

            if build_calls:
                context = MethodContext(unit=unit, type_decl=type_decl, method=method, method_id=method_id)
                for call_site in method.call_sites:
                    self.engine.resolve_and_apply(call_site, context, caller)

            if build_accesses:
                self._build_accesses(type_decl, method, caller)

            if build_overrides:
                self._build_overrides(type_decl, method, caller)

    def _build_implements(self, unit: ParsedUnit) -> None:
        for type_decl in unit.types:
            if type_decl.is_interface:
                continue
            entity = self.graph.get(type_entity_id(type_decl.name, is_interface=False))
            if entity is None:
                continue
            for implemented in type_decl.implemented_types:
                interface_id = type_entity_id(simple_class_name(implemented), is_interface=True)
                if interface_id in self.graph:
                    entity.add_relation(RelationKind.implements, interface_id)

    def _build_accesses(self, type_decl: TypeDeclaration, method: MethodDeclaration, caller: Entity) -> None:
        """Field accesses and bare names matched against the type's own fields."""
        for access in method.field_accesses:
            field_id = field_entity_id(type_decl.name, access.field_name)
            if field_id in self.graph:
                caller.add_relation(RelationKind.accesses, field_id)
            elif access.on_this:
                self._handle_access_failure(caller.id, access.field_name)

        shadowed = set(method.local_variables) | {p.name for p in method.parameters}
        for name in method.name_references:
            if name in shadowed:
                continue
            field_id = field_entity_id(type_decl.name, name)
            if field_id in self.graph:
                caller.add_relation(RelationKind.accesses, field_id)

    def _handle_access_failure(self, method_id: str, field_name: str) -> None:
        match self.policy.on_resolution_failure:
            case ResolutionFailurePolicy.ignore:
                pass
            case ResolutionFailurePolicy.warn:
                logger.warning(f"accesses resolution failed in {method_id}: no field {field_name!r}")
            case ResolutionFailurePolicy.error:
                raise AccessResolutionError(method_id, field_name)

    def _build_overrides(self, type_decl: TypeDeclaration, method: MethodDeclaration, caller: Entity) -> None:
        """@Override methods matched against direct supertypes with the identical signature."""
        if not method.has_override_marker:
            return
        for parent in [*type_decl.implemented_types, *type_decl.extended_types]:
            parent_id = method_entity_id(simple_class_name(parent), method.name, method.parameter_types)
            if parent_id in self.graph:
                caller.add_relation(RelationKind.overrides, parent_id)
