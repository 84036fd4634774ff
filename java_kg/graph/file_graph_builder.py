"""Building the knowledge graph entities for a single file.

This module turns one ParsedUnit into a KnowledgeGraph holding only the
declaration entities of that file, filtered by the ExtractionPolicy:

  * ClassOrInterface: one per type declaration
  * Method: one per method declaration (constructors excluded)
  * Field: one per field declarator
  * Parameter / Return / Exception / Annotation: per-method children

And the per-method relations that need nothing outside the file:

  * has_parameter: Method -> Parameter
  * returns: Method -> Return
  * throws: Method -> Exception
  * has_annotation: Method -> Annotation

No cross-file lookups happen here. calls, overrides, implements and accesses
are built by RelationBuilder once every file of the batch has been extracted.
"""

import logging
from pathlib import Path

from java_kg.graph.extraction_policy import ExtractionPolicy
from java_kg.graph.graph_types import Entity, EntityKind, RelationKind
from java_kg.graph.helpers.utils import (
    annotation_entity_id,
    exception_entity_id,
    field_entity_id,
    method_entity_id,
    parameter_entity_id,
    return_entity_id,
    type_entity_id,
)
from java_kg.graph.knowledge_graph import KnowledgeGraph
from java_kg.parser import tree_sitter_parser
from java_kg.parser.extractor import get_unit_extractor
from java_kg.parser.extractor.base_extractor import MethodDeclaration, ParsedUnit, TypeDeclaration

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "No description"


class FileGraphBuilder:
    """Builds the entity subgraph of one file.

    `build_file_graph()` is a pure function of (ParsedUnit, policy): the same
    unit always yields the same entities, ids and child relations. When two
    declarations map to the same id, the first one keeps its properties.

    Example:
        builder = FileGraphBuilder(policy)
        unit = builder.parse_file(Path("src/main/java/com/acme/Foo.java"))
        graph = builder.build_file_graph(unit)
    """

    def __init__(self, policy: ExtractionPolicy):
        self.policy = policy

    def support_file(self, file_path: Path) -> bool:
        return tree_sitter_parser.support_file(file_path)

    def parse_file(self, file_path: Path) -> ParsedUnit:
        """Parse a source file into a ParsedUnit.

        Raises:
            FileNotFoundError: If the file does not exist
            UnsupportedLanguageError: If the file is not a Java file
            ParseError: If the source has syntax errors
            UnitExtractionError: If declaration extraction fails
        """
        tree, language = tree_sitter_parser.get_parser(file_path)
        content = file_path.read_bytes()
        return get_unit_extractor(language).extract_unit(tree, file_path, content)

    def build_file_graph(self, unit: ParsedUnit) -> KnowledgeGraph:
        """Build the declaration entities of one parsed unit.

        Args:
            unit: The parsed file

        Returns:
            A KnowledgeGraph containing only this file's entities
        """
        graph = KnowledgeGraph()

        for type_decl in unit.types:
            if self.policy.is_entity_enabled(EntityKind.class_or_interface):
                self._add_type(graph, type_decl, unit.package)

            if self.policy.is_entity_enabled(EntityKind.field):
                for field_decl in type_decl.fields:
                    entity = _register(graph, field_entity_id(type_decl.name, field_decl.name), EntityKind.field)
                    if entity is not None:
                        entity.add_property("name", field_decl.name)
                        entity.add_property("type", field_decl.type_name)
                        entity.add_property("owner", type_decl.name)

            if self.policy.is_entity_enabled(EntityKind.method):
                for method in type_decl.methods:
                    self._add_method(graph, type_decl, method)

        logger.debug(f"Built {len(graph)} entities for {unit.file_path}")
        return graph

    def _add_type(self, graph: KnowledgeGraph, type_decl: TypeDeclaration, package: str) -> None:
        entity_id = type_entity_id(type_decl.name, type_decl.is_interface)
        entity = _register(graph, entity_id, EntityKind.class_or_interface)
        if entity is None:
            return
        entity.add_property("name", type_decl.name)
        entity.add_property("isInterface", str(type_decl.is_interface).lower())
        entity.add_property("qualified_name", type_decl.qualified_name)
        entity.add_property("package", package)
        if self.policy.include_javadoc:
            entity.add_property("purpose", type_decl.javadoc or NO_DESCRIPTION)

    def _add_method(self, graph: KnowledgeGraph, type_decl: TypeDeclaration, method: MethodDeclaration) -> None:
        owner = type_decl.name
        param_types = method.parameter_types
        method_id = method_entity_id(owner, method.name, param_types)

        entity = _register(graph, method_id, EntityKind.method)
        if entity is None:
            logger.debug(f"Skipping duplicate method declaration {method_id}")
            return
        entity.add_property("name", method.name)
        entity.add_property("owner", owner)
        entity.add_property("signature", method_id.removeprefix(f"method_{owner}_"))
        if self.policy.include_javadoc:
            entity.add_property("business_role", method.javadoc or NO_DESCRIPTION)

        if self.policy.is_relation_enabled(RelationKind.has_parameter) and self.policy.is_entity_enabled(EntityKind.parameter):
            for param in method.parameters:
                param_id = parameter_entity_id(owner, method.name, param_types, param.name)
                param_entity = _register(graph, param_id, EntityKind.parameter)
                if param_entity is not None:
                    param_entity.add_property("name", param.name)
                    param_entity.add_property("type", param.signature_type)
                entity.add_relation(RelationKind.has_parameter, param_id)

        if self.policy.is_relation_enabled(RelationKind.returns) and self.policy.is_entity_enabled(EntityKind.return_):
            return_id = return_entity_id(owner, method.name, param_types)
            return_entity = _register(graph, return_id, EntityKind.return_)
            if return_entity is not None:
                return_entity.add_property("name", method.return_type)
                return_entity.add_property("type", method.return_type)
            entity.add_relation(RelationKind.returns, return_id)

        if self.policy.is_relation_enabled(RelationKind.throws) and self.policy.is_entity_enabled(EntityKind.exception):
            for thrown in method.thrown_types:
                exception_id = exception_entity_id(thrown)
                exception_entity = _register(graph, exception_id, EntityKind.exception)
                if exception_entity is not None:
                    exception_entity.add_property("name", thrown)
                    exception_entity.add_property("type", thrown)
                entity.add_relation(RelationKind.throws, exception_id)

        # Annotation entities require both has_annotation and include_annotations
        if self.policy.is_entity_enabled(EntityKind.annotation):
            for annotation in method.annotations:
                annotation_id = annotation_entity_id(annotation)
                annotation_entity = _register(graph, annotation_id, EntityKind.annotation)
                if annotation_entity is not None:
                    annotation_entity.add_property("name", annotation)
                entity.add_relation(RelationKind.has_annotation, annotation_id)


def _register(graph: KnowledgeGraph, entity_id: str, kind: EntityKind) -> Entity | None:
    """Create an entity, or return None when the id is already registered."""
    if entity_id in graph:
        graph.create(entity_id, kind)  # raises on a kind conflict
        return None
    return graph.create(entity_id, kind)
