"""API-specific dependencies."""

# Re-export common dependencies
from .dependencies import (
    get_embedding_gateway,
    get_knowledge_service,
    get_search_service,
    get_service_cache,
)

__all__ = [
    "get_embedding_gateway",
    "get_knowledge_service",
    "get_search_service",
    "get_service_cache",
]
