"""
Database schema bootstrap script.

Enables the pgvector extension, then creates all tables and indexes defined
in ORM models using SQLAlchemy metadata.

Dependencies: sqlalchemy, knowledge_engine.configs
System role: Database schema initialization

Usage:
    python -m knowledge_engine.boundary.db.create_tables
"""

import asyncio
import logging

from sqlalchemy import text

from knowledge_engine.boundary.db.base import Base
from knowledge_engine.boundary.db.connection import dispose_engine, get_async_engine

# Import all models to register them with Base.metadata
from knowledge_engine.boundary.db.models.knowledge_entry_model import KnowledgeEntryModel  # noqa: F401
from knowledge_engine.observability.logger import configure_logging

logger = logging.getLogger(__name__)


async def create_all_tables() -> None:
    """
    Create the vector extension and all database tables.

    Idempotent: CREATE EXTENSION IF NOT EXISTS plus CREATE TABLE IF NOT EXISTS
    for each model, so safe to run multiple times. Existing tables remain
    unchanged.

    Raises:
        SQLAlchemyError: If database connection fails or table creation fails
        (e.g., pgvector not installed on the server, permissions denied)

    Usage:
        python -m knowledge_engine.boundary.db.create_tables
        # Or in code:
        await create_all_tables()
    """
    engine = get_async_engine()

    async with engine.begin() as conn:
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Knowledge tables created successfully")


async def _main() -> None:
    try:
        await create_all_tables()
    finally:
        await dispose_engine()


if __name__ == "__main__":
    configure_logging()
    asyncio.run(_main())
