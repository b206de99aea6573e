"""
Dependency injection container.

Factory functions for FastAPI dependencies.

Dependencies: knowledge_engine.configs, knowledge_engine.application, knowledge_engine.boundary
System role: DI container for service injection
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_engine.configs import get_settings
from knowledge_engine.boundary.db import get_async_db
from knowledge_engine.boundary.embeddings import EmbeddingGateway
from knowledge_engine.application.services import KnowledgeService, SearchService


class ServiceCache:
    """Container for cached process-wide instances."""

    def __init__(self):
        self._embedding_gateway = None

    @property
    def embedding_gateway(self) -> EmbeddingGateway:
        """Get cached embedding gateway (owns the shared HTTP client)."""
        if self._embedding_gateway is None:
            self._embedding_gateway = EmbeddingGateway.from_settings(get_settings().embedding)
        return self._embedding_gateway

    async def aclose(self) -> None:
        """Close cached resources and clear the cache."""
        if self._embedding_gateway is not None:
            await self._embedding_gateway.aclose()
        self.clear()

    def clear(self) -> None:
        """Clear all cached instances."""
        self._embedding_gateway = None


# Global service cache
_service_cache = ServiceCache()

def get_service_cache() -> ServiceCache:
    """Get service cache singleton."""
    return _service_cache


def get_embedding_gateway() -> EmbeddingGateway:
    """
    Get the shared embedding gateway.

    Returns:
        EmbeddingGateway: Gateway with every configured provider (possibly none)
    """
    return get_service_cache().embedding_gateway


def get_knowledge_service(
    db: AsyncSession = Depends(get_async_db),
    gateway: EmbeddingGateway = Depends(get_embedding_gateway),
) -> KnowledgeService:
    """
    Get knowledge service instance.

    Args:
        db: Async database session (injected via Depends)
        gateway: Embedding gateway (injected via Depends)

    Returns:
        KnowledgeService: Knowledge store service instance
    """
    return KnowledgeService(db=db, gateway=gateway)


def get_search_service(
    db: AsyncSession = Depends(get_async_db),
    gateway: EmbeddingGateway = Depends(get_embedding_gateway),
) -> SearchService:
    """
    Get search service instance.

    Args:
        db: Async database session (injected via Depends)
        gateway: Embedding gateway (injected via Depends)

    Returns:
        SearchService: Hybrid retrieval service instance
    """
    return SearchService(db=db, gateway=gateway)
