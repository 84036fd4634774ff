"""
Global test configuration and fixtures for the Java knowledge graph tests.

Provides Java source snippets, a helper that parses snippets with tree-sitter,
and temporary Maven-style project trees.
"""

from pathlib import Path
from typing import Callable

import pytest

from java_kg.graph.extraction_policy import ExtractionPolicy
from java_kg.graph.knowledge_graph import KnowledgeGraph
from java_kg.graph.repo_graph_builder import build_graph
from java_kg.parser.extractor.base_extractor import ParsedUnit
from java_kg.parser.extractor.java_extractor import JavaUnitExtractor
from java_kg.parser.tree_sitter_parser import parse_source

MAIN_SOURCES = "src/main/java"


def parse_java(source: str, file_name: str = "Test.java") -> ParsedUnit:
    """Parse a Java snippet into a ParsedUnit."""
    content = source.encode("utf-8")
    tree = parse_source(content)
    return JavaUnitExtractor().extract_unit(tree, Path(file_name), content)


def graph_for(policy: ExtractionPolicy, *sources: str, **kwargs) -> KnowledgeGraph:
    """Build the full graph (entities and relations) of some snippets."""
    units = [parse_java(source, f"File{i}.java") for i, source in enumerate(sources)]
    graph, _ = build_graph(units, policy, **kwargs)
    return graph


@pytest.fixture
def parse() -> Callable[..., ParsedUnit]:
    return parse_java


@pytest.fixture
def full_policy() -> ExtractionPolicy:
    return ExtractionPolicy.from_scenario("full")


@pytest.fixture
def call_chain_policy() -> ExtractionPolicy:
    return ExtractionPolicy.from_scenario("call_chain")


@pytest.fixture
def foo_source() -> str:
    """Overloads plus an unqualified call."""
    return """
public class Foo {
    void bar() {}
    void bar(int x) { helper(x); }
    void helper(int x) {}
}
"""


@pytest.fixture
def service_sources() -> dict[str, str]:
    """A small layered project: service -> repository, with a logger."""
    return {
        "com/acme/model/User.java": """
package com.acme.model;

/** A registered user. */
public class User {
    private String name;

    public String getName() { return name; }
}
""",
        "com/acme/repo/UserRepository.java": """
package com.acme.repo;

import com.acme.model.User;

public interface UserRepository {
    User findById(long id);
    void save(User user);
}
""",
        "com/acme/repo/JdbcUserRepository.java": """
package com.acme.repo;

import com.acme.model.User;

public class JdbcUserRepository implements UserRepository {
    @Override
    public User findById(long id) { return null; }

    @Override
    public void save(User user) {}
}
""",
        "com/acme/service/UserService.java": """
package com.acme.service;

import com.acme.model.User;
import com.acme.repo.UserRepository;
import org.slf4j.Logger;
import org.slf4j.LoggerFactory;

public class UserService {
    private static final Logger log = LoggerFactory.getLogger(UserService.class);
    private UserRepository repository;

    /** Renames a user. */
    public User rename(long id, String name) throws IllegalStateException {
        log.info("renaming");
        User user = repository.findById(id);
        repository.save(user);
        repository.save(user);
        log.info("renamed");
        return user;
    }
}
""",
    }


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Write {relative path: source} under a Maven-style source root."""

    def _make(files: dict[str, str], source_root: str = MAIN_SOURCES) -> Path:
        for relative_path, source in files.items():
            path = tmp_path / source_root / relative_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(source, encoding="utf-8")
        return tmp_path

    return _make


@pytest.fixture
def graph_of() -> Callable[..., KnowledgeGraph]:
    return graph_for
