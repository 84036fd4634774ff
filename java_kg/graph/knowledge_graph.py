"""In-memory, id-keyed knowledge graph of a Java code base.

The graph holds the following entity kinds:
* ClassOrInterface: a class, enum, record (`class_<Name>`) or interface (`iface_<Name>`).
* Method: a method declaration, one per overload (`method_<Owner>_<name>(<sig>)`).
* Field: a field declaration (`field_<Owner>_<name>`).
* Parameter / Return: per-method children carrying the declared type.
* Exception / Annotation: one shared entity per distinct name across the batch.

and the following relation kinds, all countable multisets:
* calls, overrides, implements, accesses: built in the second pass over the whole batch.
* has_parameter, returns, throws, has_annotation: built per file with the method entity.

Per-file graphs are merged into one graph (first registration of an id wins),
then frozen before relation building. Freezing builds the lookup indices the
call resolution engine relies on; after that, only properties and relations
change, and entities created later (synthesized external methods) stay out of
the indices.
"""

import json
import logging
import threading
from bisect import bisect_left
from pathlib import Path
from typing import Any, Iterator

from java_kg.graph.graph_types import DuplicateIdError, Entity, EntityKind, RelationKind

logger = logging.getLogger(__name__)


class KnowledgeGraph:
    """Ordered, id-keyed map of entities.

    Example:
        graph = KnowledgeGraph()
        foo = graph.create("method_Foo_bar()", EntityKind.method)
        foo.add_relation(RelationKind.calls, "method_Foo_helper(int)")
        graph.freeze()
        graph.method_ids_with_prefix("method_Foo_helper(")
    """

    def __init__(self):
        self._entities: dict[str, Entity] = {}
        self._lock = threading.Lock()
        self._frozen = False
        self._sorted_method_ids: tuple[str, ...] = ()

    # Registration
    def create(self, entity_id: str, kind: EntityKind) -> Entity:
        """Register an entity, or return the existing one for a same-kind id.

        Raises:
            DuplicateIdError: If the id is already registered with another kind
        """
        kind = EntityKind(kind)
        with self._lock:
            existing = self._entities.get(entity_id)
            if existing is not None:
                if existing.kind != kind:
                    raise DuplicateIdError(entity_id, existing.kind, kind)
                return existing
            entity = Entity(id=entity_id, kind=kind)
            self._entities[entity_id] = entity
            return entity

    def merge(self, other: "KnowledgeGraph") -> None:
        """Merge another graph into this one.

        The first registration of an id keeps its kind and properties; relation
        counts of both sides accumulate. A kind conflict is logged and the
        incoming entity is dropped.
        """
        for entity in other:
            with self._lock:
                existing = self._entities.get(entity.id)
                if existing is None:
                    self._entities[entity.id] = entity
                    continue
            if existing.kind != entity.kind:
                logger.warning(str(DuplicateIdError(entity.id, existing.kind, entity.kind)))
                continue
            for kind, targets in entity.relations.items():
                for target_id, count in targets.items():
                    existing.add_relation(kind, target_id, count)

    def freeze(self) -> None:
        """Mark the end of entity extraction and build lookup indices."""
        with self._lock:
            self._sorted_method_ids = tuple(sorted(
                entity_id for entity_id, entity in self._entities.items()
                if entity.kind == EntityKind.method
            ))
            self._frozen = True
        logger.debug(f"Graph frozen with {len(self._entities)} entities, {len(self._sorted_method_ids)} methods")

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    # Lookup
    def get(self, entity_id: str) -> Entity | None:
        return self._entities.get(entity_id)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities

    def __iter__(self) -> Iterator[Entity]:
        return iter(list(self._entities.values()))

    def __len__(self) -> int:
        return len(self._entities)

    def entities_of_kind(self, kind: EntityKind) -> list[Entity]:
        return [e for e in self._entities.values() if e.kind == kind]

    def method_ids_with_prefix(self, prefix: str) -> list[str]:
        """Method ids starting with `prefix`, in lexicographic order.

        The graph must be frozen; before that the ordering index does not exist.
        Only methods registered before `freeze()` are indexed, so methods
        synthesized during relation building never change a lookup.
        """
        if not self._frozen:
            raise RuntimeError("method_ids_with_prefix() requires a frozen graph")
        ids = self._sorted_method_ids
        start = bisect_left(ids, prefix)
        matches = []
        for entity_id in ids[start:]:
            if not entity_id.startswith(prefix):
                break
            matches.append(entity_id)
        return matches

    def relation_count(self, source_id: str, kind: RelationKind, target_id: str) -> int:
        source = self._entities.get(source_id)
        if source is None:
            return 0
        return source.relation_count(kind, target_id)

    def count_relations(self) -> int:
        """Number of distinct (source, kind, target) edges."""
        return sum(len(targets) for entity in self._entities.values() for targets in entity.relations.values())

    # Serialization
    def to_dict(self) -> dict[str, Any]:
        return {entity_id: entity.to_dict() for entity_id, entity in self._entities.items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KnowledgeGraph":
        graph = cls()
        for entity_id, entity_data in data.items():
            entity = Entity.from_dict({"id": entity_id, **entity_data})
            graph._entities[entity.id] = entity
        return graph

    def dump_json(self, path: Path | str) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        logger.info(f"Wrote {len(self._entities)} entities to {path}")

    @classmethod
    def load_json(cls, path: Path | str) -> "KnowledgeGraph":
        with Path(path).open("r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))
