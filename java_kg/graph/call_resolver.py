"""
Tiered call resolution.

Given a call site inside a known method M (declared by type C) and the frozen
entity set of the whole batch, decide which method entity the call targets.

Resolution runs through ordered tiers. A tier either settles the call (edge,
third-party handling, or explicitly no edge) or defers to the next one. No tier
is retried and no tier raises.

  1. SYNTACTIC: receiver shape only, no semantic information
       - `foo()` / `this.foo()`: first `method_<C>_foo(` other than M
       - `super.foo()`: no edge
       - `obj.foo()` where `obj` is a field of C: resolve the field's declared
         type (allowlist, single-type import, same package), then look up
         `method_<Type>_foo(` for project types or apply the third-party policy
       - anything else defers
  2. SEMANTIC: ask the optional SemanticResolver; rebuild the callee id from
     the declaring type and parameter types. Failures defer.
  3. NAME_MATCH: first `method_<C>_foo(` other than M. Lossy by construction:
     under overloading it may pick the wrong overload.

Third-party calls (target type outside the project packages) follow the
policy: `ignore` drops them, `mark` appends "<Type>.<method>" to the caller's
`external_dependencies`, `full` adds a `calls` edge to a synthesized
`is_external` method entity.
"""

import enum
import logging
import threading
from dataclasses import dataclass
from typing import assert_never

from java_kg.graph.extraction_policy import ExtractionPolicy, ThirdPartyCallPolicy
from java_kg.graph.graph_types import Entity, EntityKind, RelationKind
from java_kg.graph.helpers.utils import method_entity_id, method_id_prefix, simple_class_name
from java_kg.graph.knowledge_graph import KnowledgeGraph
from java_kg.graph.semantic_resolver import MethodContext, SemanticResolver
from java_kg.graph.type_resolution import TypeNameResolver
from java_kg.models.graph.indexing_stats import ResolutionStats
from java_kg.parser.references.base import CallSite, ReceiverKind

logger = logging.getLogger(__name__)


class Tier(enum.StrEnum):
    """A strategy in the resolution fallback chain, in order."""

    syntactic = "syntactic"
    semantic = "semantic"
    name_match = "name_match"


class Outcome(enum.StrEnum):
    """How a call site was settled."""

    resolved = "resolved"  # calls edge to a project method
    external = "external"  # third-party call, handled by policy
    unresolved = "unresolved"  # no edge


@dataclass(frozen=True)
class Resolution:
    """The settled outcome of one call site.

    Attributes:
        outcome: How the call was settled
        tier: The tier that settled it (None if every tier deferred)
        target_id: Callee method id for RESOLVED
        external_type: Qualified declaring type for EXTERNAL
        external_method: Method name for EXTERNAL
        external_parameter_types: Parameter types for EXTERNAL, if known
    """
    outcome: Outcome
    tier: Tier | None = None
    target_id: str | None = None
    external_type: str | None = None
    external_method: str | None = None
    external_parameter_types: tuple[str, ...] | None = None

    @classmethod
    def edge(cls, target_id: str, tier: Tier) -> "Resolution":
        return cls(outcome=Outcome.resolved, tier=tier, target_id=target_id)

    @classmethod
    def no_edge(cls, tier: Tier | None) -> "Resolution":
        return cls(outcome=Outcome.unresolved, tier=tier)

    @classmethod
    def third_party(
        cls,
        declaring_type: str,
        method_name: str,
        tier: Tier,
        parameter_types: tuple[str, ...] | None = None,
    ) -> "Resolution":
        return cls(
            outcome=Outcome.external,
            tier=tier,
            external_type=declaring_type,
            external_method=method_name,
            external_parameter_types=parameter_types,
        )


class CallResolutionEngine:
    """Resolves call sites against a frozen KnowledgeGraph.

    The engine only reads the entity set, except for synthesizing external
    method entities under the `full` third-party policy; edges are written to
    the caller entity only. Concurrent use from several threads is safe as long
    as callers are partitioned by caller id.

    Example:
        engine = CallResolutionEngine(graph, policy, type_resolver, semantic_resolver)
        resolution = engine.resolve(call_site, context)
        engine.apply(resolution, graph.get(context.method_id))
    """

    def __init__(
        self,
        graph: KnowledgeGraph,
        policy: ExtractionPolicy,
        types: TypeNameResolver,
        resolver: SemanticResolver | None = None,
    ):
        if not graph.is_frozen:
            raise ValueError("Call resolution requires a frozen graph: extract every file first")
        self.graph = graph
        self.policy = policy
        self.types = types
        self.resolver = resolver
        self.stats = ResolutionStats()
        self._lock = threading.Lock()

    def resolve(self, call_site: CallSite, context: MethodContext) -> Resolution:
        """Run the tiers in order until one settles the call."""
        for tier in Tier:
            match tier:
                case Tier.syntactic:
                    resolution = self._syntactic_tier(call_site, context)
                case Tier.semantic:
                    resolution = self._semantic_tier(call_site, context)
                case Tier.name_match:
                    resolution = self._name_match_tier(call_site, context)
                case _ as unreachable:
                    assert_never(unreachable)
            if resolution is not None:
                self.stats.record(resolution.outcome, resolution.tier)
                return resolution
            logger.debug(f"{tier} tier deferred {call_site.display} in {context.method_id}")

        resolution = Resolution.no_edge(None)
        self.stats.record(resolution.outcome, resolution.tier)
        return resolution

    def apply(self, resolution: Resolution, caller: Entity) -> None:
        """Write a resolution to the caller entity."""
        match resolution.outcome:
            case Outcome.resolved:
                caller.add_relation(RelationKind.calls, resolution.target_id)
            case Outcome.external:
                self._apply_third_party(resolution, caller)
            case Outcome.unresolved:
                pass
            case _ as unreachable:
                assert_never(unreachable)

    def resolve_and_apply(self, call_site: CallSite, context: MethodContext, caller: Entity) -> Resolution:
        resolution = self.resolve(call_site, context)
        self.apply(resolution, caller)
        return resolution

    # Tiers
    def _syntactic_tier(self, call_site: CallSite, context: MethodContext) -> Resolution | None:
        match call_site.receiver_kind:
            case ReceiverKind.NONE | ReceiverKind.THIS:
                target = self._first_method(context.type_decl.name, call_site.method_name, exclude=context.method_id)
                if target is None:
                    return None
                return Resolution.edge(target, Tier.syntactic)
            case ReceiverKind.SUPER:
                return Resolution.no_edge(Tier.syntactic)
            case ReceiverKind.NAME:
                return self._resolve_on_field(call_site, context)
            case ReceiverKind.FIELD_ACCESS | ReceiverKind.OTHER:
                return None
            case _ as unreachable:
                assert_never(unreachable)

    def _resolve_on_field(self, call_site: CallSite, context: MethodContext) -> Resolution | None:
        """`obj.foo()` where `obj` is a field declared by C itself."""
        name = call_site.receiver.name
        if name is None:
            return None
        # A local or parameter with the same name shadows the field
        if name in context.method.local_variables or any(p.name == name for p in context.method.parameters):
            return None
        field_decl = context.type_decl.find_field(name)
        if field_decl is None:
            return None

        resolved = self.types.resolve_declared_type(field_decl.type_name, context.unit)
        if resolved is None:
            return None

        if not self.policy.is_project_type(resolved.qualified_name):
            return Resolution.third_party(resolved.qualified_name, call_site.method_name, Tier.syntactic)
        target = self._first_method(resolved.simple_name, call_site.method_name)
        if target is None:
            return None
        return Resolution.edge(target, Tier.syntactic)

    def _semantic_tier(self, call_site: CallSite, context: MethodContext) -> Resolution | None:
        if self.resolver is None:
            return None
        try:
            target = self.resolver.resolve(call_site, context)
        except Exception as e:
            self.stats.record_semantic_failure()
            logger.debug(f"Semantic resolution failed for {call_site.display} in {context.method_id}: {e}")
            return None

        if not self.policy.is_project_type(target.declaring_type):
            return Resolution.third_party(
                target.declaring_type, target.method_name, Tier.semantic, target.parameter_types
            )
        if target.parameter_types is None:
            return Resolution.no_edge(Tier.semantic)
        callee_id = method_entity_id(target.simple_name, target.method_name, target.parameter_types)
        if callee_id not in self.graph:
            return Resolution.no_edge(Tier.semantic)
        return Resolution.edge(callee_id, Tier.semantic)

    def _name_match_tier(self, call_site: CallSite, context: MethodContext) -> Resolution:
        target = self._first_method(context.type_decl.name, call_site.method_name, exclude=context.method_id)
        if target is None:
            return Resolution.no_edge(Tier.name_match)
        return Resolution.edge(target, Tier.name_match)

    # Helpers
    def _first_method(self, owner: str, method_name: str, exclude: str | None = None) -> str | None:
        for method_id in self.graph.method_ids_with_prefix(method_id_prefix(owner, method_name)):
            if method_id == exclude:
                continue
            entity = self.graph.get(method_id)
            if entity is not None and entity.get_property("is_external") == "true":
                continue
            return method_id
        return None

    def _apply_third_party(self, resolution: Resolution, caller: Entity) -> None:
        match self.policy.third_party_call_policy:
            case ThirdPartyCallPolicy.ignore:
                return
            case ThirdPartyCallPolicy.mark:
                caller.add_property(
                    "external_dependencies",
                    f"{resolution.external_type}.{resolution.external_method}",
                )
            case ThirdPartyCallPolicy.full:
                external_id = self._external_method(resolution)
                caller.add_relation(RelationKind.calls, external_id)
            case _ as unreachable:
                assert_never(unreachable)

    def _external_method(self, resolution: Resolution) -> str:
        """Synthesize the external method entity once, returning its id."""
        owner = simple_class_name(resolution.external_type)
        parameter_types = resolution.external_parameter_types or ()
        external_id = method_entity_id(owner, resolution.external_method, parameter_types)
        with self._lock:
            if external_id not in self.graph:
                entity = self.graph.create(external_id, EntityKind.method)
                entity.add_property("name", resolution.external_method)
                entity.add_property("owner", owner)
                entity.add_property("signature", external_id.removeprefix(f"method_{owner}_"))
                entity.add_property("declaring_type", resolution.external_type)
                entity.add_property("is_external", "true")
                logger.debug(f"Synthesized external method {external_id}")
        return external_id
