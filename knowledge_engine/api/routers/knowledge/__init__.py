"""
Knowledge router package.

Exports the router for knowledge ingestion and search endpoints.
"""

from .knowledge_router import router

__all__ = ["router"]
