"""Defaults for Java source discovery."""

DEFAULT_SOURCE_PATHS: tuple[str, ...] = ("src/main/java",)

JAVA_FILE_GLOB = "*.java"
