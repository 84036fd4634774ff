"""Extraction policy: which entity and relation kinds to materialize.

A policy is an immutable value passed explicitly to every extraction and
resolution step. Scenarios are named presets:

  * call_chain: types and methods, `calls` only
  * impact_analysis: call_chain plus fields, parameters, returns and their bindings
  * full: every entity and relation kind
  * custom: an explicit assignment

After any scenario is applied, dependency completion enables the entity kind a
relation structurally requires (has_parameter -> Parameter, returns -> Return,
throws -> Exception, accesses -> Field).
"""

import enum
import logging
from typing import Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field

from java_kg.graph.graph_types import EntityKind, RelationKind

logger = logging.getLogger(__name__)


class ThirdPartyCallPolicy(enum.StrEnum):
    """What to do with a call whose target type is outside the project."""

    ignore = "ignore"
    mark = "mark"
    full = "full"


class ResolutionFailurePolicy(enum.StrEnum):
    """What to do when an `accesses` field lookup fails."""

    ignore = "ignore"
    warn = "warn"
    error = "error"


# Entity kinds a scenario assigns. Annotation entities follow has_annotation.
POLICY_ENTITY_KINDS: tuple[EntityKind, ...] = (
    EntityKind.class_or_interface,
    EntityKind.method,
    EntityKind.field,
    EntityKind.parameter,
    EntityKind.return_,
    EntityKind.exception,
)

DEFAULT_SCENARIO = "call_chain"
CUSTOM_SCENARIO = "custom"

SCENARIOS: dict[str, tuple[frozenset[EntityKind], frozenset[RelationKind]]] = {
    "call_chain": (
        frozenset({EntityKind.class_or_interface, EntityKind.method}),
        frozenset({RelationKind.calls}),
    ),
    "impact_analysis": (
        frozenset({
            EntityKind.class_or_interface,
            EntityKind.method,
            EntityKind.field,
            EntityKind.parameter,
            EntityKind.return_,
        }),
        frozenset({RelationKind.calls, RelationKind.has_parameter, RelationKind.returns}),
    ),
    "full": (
        frozenset(POLICY_ENTITY_KINDS),
        frozenset(RelationKind),
    ),
}

# relation -> entity kind it cannot exist without
RELATION_DEPENDENCIES: dict[RelationKind, EntityKind] = {
    RelationKind.has_parameter: EntityKind.parameter,
    RelationKind.returns: EntityKind.return_,
    RelationKind.throws: EntityKind.exception,
    RelationKind.accesses: EntityKind.field,
}


class ExtractionPolicy(BaseModel):
    """Immutable extraction configuration.

    Use `from_scenario()` or `custom()` to build one; both apply dependency
    completion unless `auto_complete_entities` is off. Every modification
    returns a new policy.
    """

    model_config = ConfigDict(frozen=True)

    scenario: str = DEFAULT_SCENARIO
    enabled_entities: frozenset[EntityKind] = Field(default_factory=lambda: SCENARIOS[DEFAULT_SCENARIO][0])
    enabled_relations: frozenset[RelationKind] = Field(default_factory=lambda: SCENARIOS[DEFAULT_SCENARIO][1])
    third_party_call_policy: ThirdPartyCallPolicy = ThirdPartyCallPolicy.mark
    on_resolution_failure: ResolutionFailurePolicy = ResolutionFailurePolicy.warn
    include_annotations: bool = True
    include_javadoc: bool = True
    auto_complete_entities: bool = True
    project_packages: frozenset[str] = frozenset()

    @classmethod
    def from_scenario(cls, name: str, **options) -> "ExtractionPolicy":
        """Build a policy from a built-in scenario.

        An unknown name is a configuration warning, not an error: the
        call_chain scenario is used instead.

        Args:
            name: Scenario name
            **options: Any other ExtractionPolicy field

        Returns:
            The completed policy
        """
        if name == CUSTOM_SCENARIO:
            logger.warning(
                f"Scenario {name!r} needs an explicit assignment, use custom(); "
                f"falling back to {DEFAULT_SCENARIO!r}"
            )
            name = DEFAULT_SCENARIO
        elif name not in SCENARIOS:
            logger.warning(f"Unknown scenario {name!r}, falling back to {DEFAULT_SCENARIO!r}")
            name = DEFAULT_SCENARIO
        entities, relations = SCENARIOS[name]
        policy = cls(scenario=name, enabled_entities=entities, enabled_relations=relations, **options)
        return policy.complete_dependencies()

    @classmethod
    def custom(
        cls,
        entities: Mapping[str, bool] | Iterable[str],
        relations: Mapping[str, bool] | Iterable[str],
        **options,
    ) -> "ExtractionPolicy":
        """Build a policy from an explicit assignment.

        Kinds missing from the assignment are disabled.

        Args:
            entities: Entity kind name -> enabled, or the enabled names
            relations: Relation kind name -> enabled, or the enabled names
            **options: Any other ExtractionPolicy field
        """
        policy = cls(
            scenario=CUSTOM_SCENARIO,
            enabled_entities=frozenset(EntityKind(k) for k in _enabled_names(entities)),
            enabled_relations=frozenset(RelationKind(k) for k in _enabled_names(relations)),
            **options,
        )
        return policy.complete_dependencies()

    def complete_dependencies(self) -> "ExtractionPolicy":
        """Enable every entity kind an enabled relation requires. Idempotent."""
        if not self.auto_complete_entities:
            return self
        missing = {
            entity
            for relation, entity in RELATION_DEPENDENCIES.items()
            if relation in self.enabled_relations and entity not in self.enabled_entities
        }
        if not missing:
            return self
        for entity in sorted(missing):
            logger.info(f"Enabling entity kind {entity} required by an enabled relation")
        return self.model_copy(update={"enabled_entities": self.enabled_entities | missing})

    def with_options(self, **options) -> "ExtractionPolicy":
        """Return a copy with some fields replaced, re-running completion."""
        updated = self.model_validate({**self.model_dump(), **options})
        return updated.complete_dependencies()

    def is_entity_enabled(self, kind: EntityKind | str) -> bool:
        kind = EntityKind(kind)
        if kind == EntityKind.annotation:
            return self.include_annotations and RelationKind.has_annotation in self.enabled_relations
        return kind in self.enabled_entities

    def is_relation_enabled(self, kind: RelationKind | str) -> bool:
        return RelationKind(kind) in self.enabled_relations

    def is_project_type(self, qualified_name: str) -> bool:
        """Whether a type is project code. No prefixes means everything is."""
        if not self.project_packages:
            return True
        return any(qualified_name.startswith(prefix) for prefix in self.project_packages)

    def summary(self) -> str:
        entities = ", ".join(k for k in POLICY_ENTITY_KINDS if k in self.enabled_entities)
        relations = ", ".join(k for k in RelationKind if k in self.enabled_relations)
        return (
            f"scenario={self.scenario} entities=[{entities}] relations=[{relations}] "
            f"third_party={self.third_party_call_policy} on_failure={self.on_resolution_failure}"
        )


def _enabled_names(assignment: Mapping[str, bool] | Iterable[str]) -> list[str]:
    if isinstance(assignment, Mapping):
        return [name for name, enabled in assignment.items() if enabled]
    return list(assignment)
