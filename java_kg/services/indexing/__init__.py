from java_kg.services.indexing.indexing_service import IndexingResult, IndexingService

__all__ = ["IndexingResult", "IndexingService"]
