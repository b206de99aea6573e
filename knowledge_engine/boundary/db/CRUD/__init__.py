"""
CRUD operations for database models.

Exports base CRUD class and model-specific CRUD implementations
with pre-instantiated singletons for direct use.

Usage:
    from knowledge_engine.boundary.db.CRUD import knowledge_crud

    # Use singleton instance
    entry = await knowledge_crud.get_by_id(db, entry_id)

    # Or instantiate the class directly for a different text search config
    from knowledge_engine.boundary.db.CRUD import KnowledgeCRUD
    custom_crud = KnowledgeCRUD(text_search_config="english")
"""

from knowledge_engine.boundary.db.CRUD.base_crud import BaseCRUD
from knowledge_engine.boundary.db.CRUD.knowledge_crud import KnowledgeCRUD, knowledge_crud

__all__ = [
    "BaseCRUD",
    "KnowledgeCRUD",
    "knowledge_crud",
]
