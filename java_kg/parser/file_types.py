from pathlib import Path
import enum

class FileTypes(enum.StrEnum):
    """Enum of the source file types the indexer understands"""
    
    JAVA = "java"
    UNKNOWN = "UNKNOWN"
    
    @classmethod
    def from_path(cls, path: Path):
        match path.suffix:
            case ".java":
                return cls.JAVA
            case _:
                return cls.UNKNOWN
