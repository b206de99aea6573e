"""Service orchestrators."""

from .knowledge_service import CreatedEntry, KnowledgeService, UpdatedEntry
from .search_service import SearchMode, SearchResult, SearchService

__all__ = [
    "CreatedEntry",
    "KnowledgeService",
    "SearchMode",
    "SearchResult",
    "SearchService",
    "UpdatedEntry",
]
