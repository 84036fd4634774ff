"""
Tree-sitter-based code parsing module.

This module parses Java source files with tree-sitter and returns a syntax
tree representation of the source code. Parsers come from the
tree_sitter_language_pack package.

A tree whose root node reports syntax errors is treated as a parse failure:
the extraction pipeline skips such files rather than indexing half a file.
"""

from typing import Tuple
from tree_sitter_language_pack import get_parser as get_ts_parser
from tree_sitter import Tree
from java_kg.parser.file_types import FileTypes
from pathlib import Path

FILE_TYPE_TO_LANG = {
    FileTypes.JAVA: "java",
}

def support_file(file: Path) -> bool:
    """Check if the file is supported by tree-sitter."""
    file_type = FileTypes.from_path(file)
    return file_type in FILE_TYPE_TO_LANG

class ParseError(Exception):
    """Exception raised when parsing a file fails."""
    pass


class UnsupportedLanguageError(Exception):
    """Exception raised when a file's language is not supported."""
    pass


def parse_source(content: bytes, language: str = "java") -> Tree:
    """Parse raw source bytes into a tree-sitter Tree.
    
    Args:
        content: Source code as bytes.
        language: tree-sitter language identifier.
        
    Returns:
        The parsed Tree.
        
    Raises:
        ParseError: If parsing fails or the tree contains syntax errors.
    """
    try:
        tree = get_ts_parser(language).parse(content)
    except Exception as e:
        raise ParseError(f"Failed to parse {language} source: {e}") from e
    
    if tree.root_node.has_error:
        raise ParseError(f"Syntax errors in {language} source")
    return tree


def get_parser(file: Path) -> Tuple[Tree, str]:
    """Get the tree-sitter parser for the file and parse it.
    
    Args:
        file: Path to the source file to parse.
        
    Returns:
        Tuple of (parsed Tree-sitter Tree, language string).
        
    Raises:
        UnsupportedLanguageError: If the file type is not supported.
        ParseError: If the file cannot be read or parsed.
        FileNotFoundError: If the file does not exist.
    """
    if not file.exists():
        raise FileNotFoundError(f"File not found: {file}")
    
    file_type = FileTypes.from_path(file)
    lang = FILE_TYPE_TO_LANG.get(file_type)
    
    if lang is None:
        raise UnsupportedLanguageError(
            f"Unsupported file type for tree-sitter parsing: {file.suffix}"
        )
    
    try:
        with file.open('rb') as f:
            content = f.read()
    except OSError as e:
        raise ParseError(f"Failed to read file {file}: {e}") from e
    
    try:
        return parse_source(content, lang), lang
    except ParseError as e:
        raise ParseError(f"Failed to parse file {file}: {e}") from e
