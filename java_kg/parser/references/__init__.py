"""
Reference extraction for method bodies.

This package provides the data models and the Java extractor for what a
method body references:
  - Call sites (for calls relations)
  - Field accesses and bare names (for accesses relations)
  - Local variable types (for receiver type inference)

Usage:
    from java_kg.parser.references import JavaReferenceExtractor

    refs = JavaReferenceExtractor(content).extract(method_body_node)
    for call in refs.call_sites:
        print(f"Call: {call.display} at line {call.line_number}")
"""

from .base import (
    CallSite,
    Expression,
    ExpressionKind,
    FieldAccess,
    MethodReferences,
    ReceiverKind,
)
from .java_references import JavaReferenceExtractor

__all__ = [
    # Data models
    "CallSite",
    "Expression",
    "ExpressionKind",
    "FieldAccess",
    "MethodReferences",
    "ReceiverKind",
    # Extractor
    "JavaReferenceExtractor",
]
