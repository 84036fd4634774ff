"""
Unit Extractor Module

This module turns Tree-sitter ASTs into ParsedUnits: plain-data declarations
(package, imports, types, fields, methods and everything method bodies
reference) that the graph builders consume.

Public API:
  - get_unit_extractor(language): Factory function to get a language-specific extractor
  - get_supported_languages(): List of languages with extraction support
  - ParsedUnit, TypeDeclaration, MethodDeclaration, FieldDeclaration,
    ParameterDeclaration, ImportDeclaration: extracted declarations
  - UnitExtractor: Abstract base class for extractors

Exceptions:
  - UnitExtractionError: Raised when extraction fails

Usage:
    from java_kg.parser.extractor import get_unit_extractor
    from java_kg.parser.tree_sitter_parser import get_parser

    tree, language = get_parser(file_path)
    unit = get_unit_extractor(language).extract_unit(tree, file_path, file_path.read_bytes())
"""

from .base_extractor import (
    FieldDeclaration,
    ImportDeclaration,
    MethodDeclaration,
    ParameterDeclaration,
    ParsedUnit,
    TypeDeclaration,
    UnitExtractor,
    normalize_type_text,
)
from .exceptions import UnitExtractionError
from .java_extractor import JavaUnitExtractor


# Registry of language-specific extractors
_EXTRACTORS: dict[str, type[UnitExtractor]] = {
    "java": JavaUnitExtractor,
}


def get_unit_extractor(language: str) -> UnitExtractor:
    """Get the unit extractor for the given language.

    Args:
        language: Language identifier (e.g., 'java')

    Returns:
        UnitExtractor instance for the language

    Raises:
        ValueError: If the language is not supported
    """
    extractor_class = _EXTRACTORS.get(language.lower())
    if extractor_class is None:
        supported = ", ".join(sorted(_EXTRACTORS))
        raise ValueError(f"Unsupported language for unit extraction: {language}. Supported languages: {supported}")
    return extractor_class()


def get_supported_languages() -> list[str]:
    return list(_EXTRACTORS.keys())


__all__ = [
    # Factory functions
    "get_unit_extractor",
    "get_supported_languages",
    # Data classes
    "ParsedUnit",
    "TypeDeclaration",
    "MethodDeclaration",
    "FieldDeclaration",
    "ParameterDeclaration",
    "ImportDeclaration",
    "normalize_type_text",
    # Base class and concrete extractor
    "UnitExtractor",
    "JavaUnitExtractor",
    # Exceptions
    "UnitExtractionError",
]
