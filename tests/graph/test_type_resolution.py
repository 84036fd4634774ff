"""
Tests for TypeIndex and TypeNameResolver.
"""

import pytest

from java_kg.graph.type_resolution import JAVA_OBJECT, TypeIndex, TypeNameResolver


@pytest.fixture
def units(parse):
    return [
        parse("""
package com.acme.model;
public class User extends Base { public static class Id {} }
""", "User.java"),
        parse("""
package com.acme.model;
public abstract class Base implements Comparable<Base> {}
""", "Base.java"),
        parse("""
package com.acme.service;

import com.acme.model.User;
import com.acme.model.*;
import org.slf4j.Logger;

public class Service {}
""", "Service.java"),
    ]


@pytest.fixture
def resolver(units):
    return TypeNameResolver(TypeIndex(units))


class TestDeclaredTypeResolution:

    def test_allowlist(self, resolver, units):
        service_unit = units[2]
        assert resolver.resolve_declared_type("int", service_unit).qualified_name == "int"
        assert resolver.resolve_declared_type("String", service_unit).qualified_name == "java.lang.String"
        assert resolver.resolve_declared_type("List<User>", service_unit).qualified_name == "java.util.List"

    def test_single_type_import(self, resolver, units):
        resolved = resolver.resolve_declared_type("User", units[2])
        assert resolved.qualified_name == "com.acme.model.User"
        assert resolved.is_declared

    def test_external_import_is_resolved_without_declaration(self, resolver, units):
        resolved = resolver.resolve_declared_type("Logger", units[2])
        assert resolved.qualified_name == "org.slf4j.Logger"
        assert not resolved.is_declared

    def test_same_package_only_for_declared_types(self, resolver, units):
        assert resolver.resolve_declared_type("Base", units[0]).qualified_name == "com.acme.model.Base"
        assert resolver.resolve_declared_type("Missing", units[0]) is None

    def test_wildcard_import_is_not_used(self, resolver, units):
        assert resolver.resolve_declared_type("Base", units[2]) is None


class TestFullResolution:

    def test_wildcard_import(self, resolver, units):
        assert resolver.resolve("Base", units[2]).qualified_name == "com.acme.model.Base"

    def test_nested_type(self, resolver, units):
        user = units[0].types[0]
        assert resolver.resolve("Id", units[0], user).qualified_name == "com.acme.model.User.Id"
        assert resolver.resolve("User.Id", units[2]).qualified_name == "com.acme.model.User.Id"

    def test_ancestors_end_with_object(self, resolver, units):
        user = units[0].types[0]
        names = [a.qualified_name for a in resolver.ancestors(user, units[0])]
        assert names[0] == "com.acme.model.Base"
        assert "Comparable" in names or "java.lang.Comparable" in names
        assert names[-1] == JAVA_OBJECT

    def test_is_subtype(self, resolver):
        assert resolver.is_subtype("com.acme.model.User", "com.acme.model.Base")
        assert not resolver.is_subtype("com.acme.model.Base", "com.acme.model.User")
        assert resolver.is_subtype("com.acme.model.Base", JAVA_OBJECT)
