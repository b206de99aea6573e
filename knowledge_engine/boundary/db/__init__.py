"""
Database boundary layer: ORM models, CRUD operations, and connection management.

Exports:
  - Base, UUIDMixin, TimestampMixin: Model building blocks
  - get_async_engine(), get_async_session_factory(), get_async_db(): Async connection management
  - KnowledgeEntryModel, KnowledgeSource: Knowledge entries (roots and chunks)
  - knowledge_crud: CRUD operation singleton

Dependencies: sqlalchemy, asyncpg, pgvector, knowledge_engine.configs
System role: Database adapter providing persistent storage and native
lexical/vector search for knowledge entries.
"""

from knowledge_engine.boundary.db.base import Base, TimestampMixin, UUIDMixin
from knowledge_engine.boundary.db.connection import (
    dispose_engine,
    get_async_db,
    get_async_engine,
    get_async_session_factory,
)
from knowledge_engine.boundary.db.models.knowledge_entry_model import (
    KnowledgeEntryModel,
    KnowledgeSource,
)
from knowledge_engine.boundary.db.CRUD import (
    BaseCRUD,
    KnowledgeCRUD,
    knowledge_crud,
)

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Connection
    "dispose_engine",
    "get_async_db",
    "get_async_engine",
    "get_async_session_factory",
    # Models
    "KnowledgeEntryModel",
    "KnowledgeSource",
    # CRUD
    "BaseCRUD",
    "KnowledgeCRUD",
    "knowledge_crud",
]
