"""
Custom exceptions for declaration extraction.

This module defines the exceptions raised while turning a tree-sitter syntax
tree into a ParsedUnit.
"""


class UnitExtractionError(Exception):
    """Exception raised when extracting declarations from a syntax tree fails.
    
    This can occur when:
      - Tree-sitter produces an unexpected node structure
      - File content cannot be decoded properly
      - Recursion depth is exceeded during AST traversal
    
    Attributes:
        message: Explanation of the error
        language: The language being parsed (if available)
        file_path: The file being parsed (if available)
    """
    
    def __init__(
        self,
        message: str,
        language: str | None = None,
        file_path: str | None = None,
    ):
        self.message = message
        self.language = language
        self.file_path = file_path
        
        details = []
        if language:
            details.append(f"language={language}")
        if file_path:
            details.append(f"file={file_path}")
        
        full_message = message
        if details:
            full_message = f"{message} [{', '.join(details)}]"
        
        super().__init__(full_message)
