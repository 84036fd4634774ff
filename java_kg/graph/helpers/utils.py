"""Deterministic entity id generation.

Ids are the contract with every consumer of the graph (persistence, impact
analysis), so their text must be reproduced exactly:

    class_<Name>                                     ClassOrInterface (class, enum, record)
    iface_<Name>                                     ClassOrInterface (interface)
    method_<Owner>_<name>(<T1,T2>)                   Method
    param_<Owner>_<name>(<T1,T2>)_<paramName>        Parameter
    return_<Owner>_<name>(<T1,T2>)                   Return
    field_<Owner>_<fieldName>                        Field
    exception_<TypeName>                             Exception
    annotation_<AnnotationName>                      Annotation

Parameter types in signatures are simple names with generic arguments kept as
written, joined by "," without spaces.
"""

from typing import Iterable


def simple_type_name(type_name: str) -> str:
    """Strip the package from a type name, keeping generic arguments as written.

    Examples:
        "java.util.List<com.acme.User>" -> "List<com.acme.User>"
        "com.acme.User[]"                -> "User[]"
        "int"                            -> "int"
        "com.acme.User..."               -> "User..."
    """
    if type_name.endswith("..."):
        return simple_type_name(type_name[:-3]) + "..."
    generic_start = type_name.find("<")
    if generic_start == -1:
        base, rest = type_name, ""
    else:
        base, rest = type_name[:generic_start], type_name[generic_start:]
    return base.rsplit(".", 1)[-1] + rest


def simple_class_name(type_name: str) -> str:
    """Simple name of the class itself, without generics or array brackets.

    Examples:
        "java.util.List<String>" -> "List"
        "Outer.Inner"            -> "Inner"
        "User[]"                 -> "User"
    """
    base = type_name.split("<", 1)[0]
    base = base.replace("[]", "").replace("...", "").strip()
    return base.rsplit(".", 1)[-1]


def erase_type(type_name: str) -> str:
    """Drop generic arguments and array brackets: "java.util.List<T>[]" -> "java.util.List"."""
    return type_name.split("<", 1)[0].replace("[]", "").replace("...", "").strip()


def method_signature(parameter_types: Iterable[str]) -> str:
    """Parenthesized signature suffix: ["int", "java.util.List<X>"] -> "(int,List<X>)"."""
    return "(" + ",".join(simple_type_name(t) for t in parameter_types) + ")"


def type_entity_id(name: str, is_interface: bool) -> str:
    return f"{'iface' if is_interface else 'class'}_{name}"


def method_entity_id(owner: str, method_name: str, parameter_types: Iterable[str]) -> str:
    return f"method_{owner}_{method_name}{method_signature(parameter_types)}"


def method_id_prefix(owner: str, method_name: str) -> str:
    """Prefix shared by every overload of a method: "method_<Owner>_<name>("."""
    return f"method_{owner}_{method_name}("


def parameter_entity_id(owner: str, method_name: str, parameter_types: Iterable[str], parameter_name: str) -> str:
    return f"param_{owner}_{method_name}{method_signature(parameter_types)}_{parameter_name}"


def return_entity_id(owner: str, method_name: str, parameter_types: Iterable[str]) -> str:
    return f"return_{owner}_{method_name}{method_signature(parameter_types)}"


def field_entity_id(owner: str, field_name: str) -> str:
    return f"field_{owner}_{field_name}"


def exception_entity_id(type_name: str) -> str:
    return f"exception_{type_name}"


def annotation_entity_id(annotation_name: str) -> str:
    return f"annotation_{annotation_name}"
