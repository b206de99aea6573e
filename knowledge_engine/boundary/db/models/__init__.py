"""
Database models package.

Exports:
  - KnowledgeEntryModel: Root documents and their chunks
  - KnowledgeSource: Provenance enum

Dependencies: sqlalchemy, pgvector, knowledge_engine.boundary.db.base
System role: Database model definitions for knowledge entries
"""

from knowledge_engine.boundary.db.models.knowledge_entry_model import (
    EMBEDDING_DIMENSIONS,
    KnowledgeEntryModel,
    KnowledgeSource,
)

__all__ = [
    "EMBEDDING_DIMENSIONS",
    "KnowledgeEntryModel",
    "KnowledgeSource",
]
