"""Type definitions for entities and relations in the knowledge graph."""

import enum
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, TypedDict


class EntityKind(enum.StrEnum):
    """The kind of a knowledge graph entity."""

    class_or_interface = "ClassOrInterface"
    method = "Method"
    field = "Field"
    parameter = "Parameter"
    return_ = "Return"
    exception = "Exception"
    annotation = "Annotation"


class RelationKind(enum.StrEnum):
    """The kind of a relation between two entities."""

    calls = "calls"
    overrides = "overrides"
    has_parameter = "has_parameter"
    returns = "returns"
    accesses = "accesses"
    throws = "throws"
    has_annotation = "has_annotation"
    implements = "implements"


# Properties that accumulate instead of being overwritten
APPEND_ONLY_PROPERTIES = frozenset({"external_dependencies"})
APPEND_SEPARATOR = ", "


class DuplicateIdError(ValueError):
    """Raised when an id is registered again with a different entity kind."""

    def __init__(self, entity_id: str, existing: EntityKind, requested: EntityKind):
        self.entity_id = entity_id
        self.existing = existing
        self.requested = requested
        super().__init__(
            f"Entity {entity_id!r} already registered as {existing}, cannot register as {requested}"
        )


class RelationTargetDict(TypedDict):
    target: str
    count: int


class EntityDict(TypedDict):
    id: str
    kind: str
    properties: dict[str, str]
    relations: dict[str, list[RelationTargetDict]]


@dataclass(eq=False)
class Entity:
    """A node in the knowledge graph.

    Attributes:
        id: Deterministic id derived from the declaration (see helpers.utils)
        kind: The entity kind
        properties: String properties
        relations: relation kind -> Counter of target id -> count

    Relations are multisets: discovering the same edge again increments its count.
    Adding a relation never fails, even when the target is not registered yet.
    Writes take a per-entity lock so relation building may run concurrently for
    different callers.
    """

    id: str
    kind: EntityKind
    properties: dict[str, str] = field(default_factory=dict)
    relations: dict[RelationKind, Counter[str]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add_property(self, key: str, value: str) -> None:
        """Set a property. Append-only properties accumulate distinct entries."""
        with self._lock:
            if key not in APPEND_ONLY_PROPERTIES:
                self.properties[key] = value
                return
            current = self.properties.get(key)
            if not current:
                self.properties[key] = value
                return
            if value in current.split(APPEND_SEPARATOR):
                return
            self.properties[key] = f"{current}{APPEND_SEPARATOR}{value}"

    def get_property(self, key: str, default: str | None = None) -> str | None:
        return self.properties.get(key, default)

    def add_relation(self, kind: RelationKind, target_id: str, count: int = 1) -> None:
        with self._lock:
            self.relations.setdefault(RelationKind(kind), Counter())[target_id] += count

    def relation_count(self, kind: RelationKind, target_id: str) -> int:
        targets = self.relations.get(RelationKind(kind))
        if not targets:
            return 0
        return targets.get(target_id, 0)

    def targets(self, kind: RelationKind) -> list[str]:
        """Target ids of one relation kind in insertion order."""
        return list(self.relations.get(RelationKind(kind), ()))

    def to_dict(self) -> EntityDict:
        return {
            "id": self.id,
            "kind": str(self.kind),
            "properties": dict(self.properties),
            "relations": {
                str(kind): [{"target": target, "count": count} for target, count in targets.items()]
                for kind, targets in self.relations.items()
                if targets
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Entity":
        entity = cls(id=data["id"], kind=EntityKind(data["kind"]))
        entity.properties.update({k: str(v) for k, v in (data.get("properties") or {}).items()})
        for kind, targets in (data.get("relations") or {}).items():
            for item in targets:
                entity.add_relation(RelationKind(kind), item["target"], int(item.get("count", 1)))
        return entity
