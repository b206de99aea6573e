"""
Knowledge entry CRUD operations.

Extends BaseCRUD with the queries the engine needs: chunk listing and
deletion by parent, row locking of a root, keyword-ranked search over roots,
vector-distance search over every entry, and filtered listing.

Dependencies: sqlalchemy, pgvector, knowledge_engine.boundary.db.models
System role: Knowledge entry persistence and search queries
"""

from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import cast, delete, func, literal, or_, select, update
from sqlalchemy.dialects.postgresql import REGCONFIG
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_engine.boundary.db.CRUD.base_crud import BaseCRUD
from knowledge_engine.boundary.db.models.knowledge_entry_model import (
    TEXT_SEARCH_CONFIG,
    KnowledgeEntryModel,
    KnowledgeSource,
    validate_text_search_config,
)


class KnowledgeCRUD(BaseCRUD[KnowledgeEntryModel]):
    """
    CRUD operations for KnowledgeEntryModel.

    Root entries have parent_entry_id NULL; chunks reference their root.
    """

    def __init__(self, text_search_config: str = TEXT_SEARCH_CONFIG) -> None:
        """
        Initialize KnowledgeCRUD with KnowledgeEntryModel.

        Args:
            text_search_config: PostgreSQL text search configuration; must match
                the one baked into the search_vector column

        Raises:
            ValueError: When text_search_config is not a plain identifier
        """
        super().__init__(KnowledgeEntryModel)
        self.text_search_config = validate_text_search_config(text_search_config)

    async def get_for_update(
        self,
        session: AsyncSession,
        id: UUID,
    ) -> KnowledgeEntryModel | None:
        """
        Retrieve an entry and lock its row until the transaction ends.

        Concurrent re-chunking of the same root (from any process) waits
        here instead of interleaving chunk deletes and inserts.

        Args:
            session: Async database session
            id: Entry UUID

        Returns:
            Locked KnowledgeEntryModel if found, None otherwise
        """
        stmt = (
            select(KnowledgeEntryModel)
            .where(KnowledgeEntryModel.id == id)
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_chunks(
        self,
        session: AsyncSession,
        parent_id: UUID,
    ) -> Sequence[KnowledgeEntryModel]:
        """
        Retrieve all chunks of a root ordered by chunk index.

        Args:
            session: Async database session
            parent_id: Root entry UUID

        Returns:
            Sequence of chunk entries in document order
        """
        stmt = (
            select(KnowledgeEntryModel)
            .where(KnowledgeEntryModel.parent_entry_id == parent_id)
            .order_by(KnowledgeEntryModel.chunk_index)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def delete_chunks(self, session: AsyncSession, parent_id: UUID) -> int:
        """
        Delete every chunk of a root.

        Args:
            session: Async database session
            parent_id: Root entry UUID

        Returns:
            int: Number of chunks deleted
        """
        stmt = delete(KnowledgeEntryModel).where(
            KnowledgeEntryModel.parent_entry_id == parent_id
        )
        result = await session.execute(stmt)
        return result.rowcount or 0

    async def create_chunks(
        self,
        session: AsyncSession,
        chunks: Sequence[dict],
    ) -> list[KnowledgeEntryModel]:
        """
        Insert chunk rows in one flush.

        Args:
            session: Async database session
            chunks: Field dicts, each with parent_entry_id and chunk_index set

        Returns:
            list[KnowledgeEntryModel]: Inserted chunk entries
        """
        instances = [KnowledgeEntryModel(**fields) for fields in chunks]
        session.add_all(instances)
        await session.flush()
        return instances

    async def update_chunks(
        self,
        session: AsyncSession,
        parent_id: UUID,
        **kwargs: Any,
    ) -> int:
        """
        Apply the same field values to every chunk of a root.

        Args:
            session: Async database session
            parent_id: Root entry UUID
            **kwargs: Fields to update

        Returns:
            int: Number of chunks updated
        """
        stmt = (
            update(KnowledgeEntryModel)
            .where(KnowledgeEntryModel.parent_entry_id == parent_id)
            .values(**kwargs)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0

    async def list_roots(
        self,
        session: AsyncSession,
        search: str | None = None,
        source: KnowledgeSource | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> Sequence[KnowledgeEntryModel]:
        """
        List root entries, newest first.

        Args:
            session: Async database session
            search: Case-insensitive substring matched against title and summary
            source: Provenance filter
            limit: Maximum number of entries to return
            offset: Number of entries to skip

        Returns:
            Sequence of root entries
        """
        stmt = select(KnowledgeEntryModel).where(
            KnowledgeEntryModel.parent_entry_id.is_(None)
        )
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(
                    KnowledgeEntryModel.title.ilike(pattern),
                    KnowledgeEntryModel.summary.ilike(pattern),
                )
            )
        if source is not None:
            stmt = stmt.where(KnowledgeEntryModel.source == source)

        stmt = stmt.order_by(KnowledgeEntryModel.created_at.desc()).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def keyword_search(
        self,
        session: AsyncSession,
        tsquery: str,
        limit: int,
    ) -> list[UUID]:
        """
        Rank root entries against a to_tsquery expression.

        Chunks are excluded so near-identical chunk hits cannot crowd out
        their own root.

        Args:
            session: Async database session
            tsquery: Query in to_tsquery syntax built from sanitized terms
            limit: Maximum number of ids to return

        Returns:
            list[UUID]: Root ids by descending ts_rank
        """
        query = func.to_tsquery(
            cast(literal(self.text_search_config), REGCONFIG),
            tsquery,
        )
        rank = func.ts_rank(KnowledgeEntryModel.search_vector, query)
        stmt = (
            select(KnowledgeEntryModel.id)
            .where(KnowledgeEntryModel.parent_entry_id.is_(None))
            .where(KnowledgeEntryModel.search_vector.op("@@")(query))
            .order_by(rank.desc(), KnowledgeEntryModel.created_at.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def vector_search(
        self,
        session: AsyncSession,
        embedding: list[float],
        limit: int,
    ) -> list[UUID]:
        """
        Find the root entries nearest to an embedding by cosine distance.

        Roots and chunks are both compared; every hit is attributed to its
        root and a root is ranked by its closest member, so one long document
        occupies a single slot. Entries without an embedding are skipped.

        Args:
            session: Async database session
            embedding: Query vector of the configured dimension
            limit: Maximum number of distinct roots

        Returns:
            list[UUID]: Root ids by ascending best distance
        """
        root_id = func.coalesce(KnowledgeEntryModel.parent_entry_id, KnowledgeEntryModel.id)
        best_distance = func.min(KnowledgeEntryModel.embedding.cosine_distance(embedding))
        stmt = (
            select(root_id.label("root_id"))
            .where(KnowledgeEntryModel.embedding.is_not(None))
            .group_by(root_id)
            .order_by(best_distance)
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())


knowledge_crud = KnowledgeCRUD()
