"""
Shared test fixtures and configuration for entire test suite.

Provides: Database session mocks, an in-memory knowledge CRUD, a scripted
embedding gateway, and knowledge settings.
Dependencies: pytest, sqlalchemy
System role: Test infrastructure and fixture management
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Sequence
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_engine.boundary.db.models import KnowledgeEntryModel, KnowledgeSource
from knowledge_engine.configs import KnowledgeSettings

DIMENSIONS = 8


class FakeEmbeddingGateway:
    """
    Stand-in for EmbeddingGateway.

    Returns a fixed vector for every text, or None when built with vector=None
    (the "no provider configured" case). Records every text it was asked to embed.
    """

    def __init__(self, vector: list[float] | None = None) -> None:
        self.vector = vector
        self.calls: list[str] = []
        self.providers: list[Any] = []

    @property
    def available(self) -> bool:
        return self.vector is not None

    async def embed(self, text: str) -> list[float] | None:
        self.calls.append(text)
        if self.vector is None or not text.strip():
            return None
        return list(self.vector)

    async def embed_many(self, texts: Sequence[str]) -> list[list[float] | None]:
        return [await self.embed(text) for text in texts]

    async def aclose(self) -> None:
        return None


class FakeKnowledgeCRUD:
    """
    In-memory KnowledgeCRUD with the same method surface.

    Keyword search matches roots containing every term (case-insensitive) and
    ranks title hits above body hits. Vector search walks the scripted
    vector_hits list (nearest first), skipping ids that no longer exist, and
    collapses chunk hits onto their root before applying the limit.

    Row-level calls yield to the event loop like a database round-trip and
    append their name to events, so tests can observe interleaving.
    """

    def __init__(self) -> None:
        self.rows: dict[uuid.UUID, KnowledgeEntryModel] = {}
        self.vector_hits: list[uuid.UUID] = []
        self.fail_on: set[str] = set()
        self.events: list[str] = []
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    async def _roundtrip(self, operation: str) -> None:
        self.events.append(operation)
        await asyncio.sleep(0)
        self._maybe_fail(operation)

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            from sqlalchemy.exc import OperationalError

            raise OperationalError(operation, {}, Exception("connection lost"))

    def _build(self, **fields: Any) -> KnowledgeEntryModel:
        now = self._tick()
        fields.setdefault("summary", "")
        fields.setdefault("tags", [])
        entry = KnowledgeEntryModel(id=uuid.uuid4(), created_at=now, updated_at=now, **fields)
        self.rows[entry.id] = entry
        return entry

    async def create(self, session: AsyncSession, **fields: Any) -> KnowledgeEntryModel:
        self._maybe_fail("create")
        return self._build(**fields)

    async def create_chunks(
        self, session: AsyncSession, chunks: Sequence[dict]
    ) -> list[KnowledgeEntryModel]:
        await self._roundtrip("create_chunks")
        for fields in chunks:
            parent_id = fields["parent_entry_id"]
            assert parent_id in self.rows, "chunk inserted before its root"
            assert not any(
                row.parent_entry_id == parent_id and row.chunk_index == fields["chunk_index"]
                for row in self.rows.values()
            ), "duplicate (parent_entry_id, chunk_index)"
        return [self._build(**fields) for fields in chunks]

    async def get_by_id(self, session: AsyncSession, id: uuid.UUID) -> KnowledgeEntryModel | None:
        await self._roundtrip("get_by_id")
        return self.rows.get(id)

    async def get_for_update(
        self, session: AsyncSession, id: uuid.UUID
    ) -> KnowledgeEntryModel | None:
        await self._roundtrip("get_for_update")
        return self.rows.get(id)

    async def get_by_ids(
        self, session: AsyncSession, ids: Iterable[uuid.UUID]
    ) -> list[KnowledgeEntryModel]:
        # Reverse storage order so callers cannot rely on the input order
        wanted = set(ids)
        return [row for row in reversed(list(self.rows.values())) if row.id in wanted]

    async def exists(self, session: AsyncSession, id: uuid.UUID) -> bool:
        return id in self.rows

    async def delete_by_id(self, session: AsyncSession, id: uuid.UUID) -> bool:
        await self._roundtrip("delete_by_id")
        if id not in self.rows:
            return False
        del self.rows[id]
        for child_id in [r.id for r in self.rows.values() if r.parent_entry_id == id]:
            del self.rows[child_id]
        return True

    async def delete_chunks(self, session: AsyncSession, parent_id: uuid.UUID) -> int:
        await self._roundtrip("delete_chunks")
        doomed = [r.id for r in self.rows.values() if r.parent_entry_id == parent_id]
        for child_id in doomed:
            del self.rows[child_id]
        return len(doomed)

    async def update_chunks(self, session: AsyncSession, parent_id: uuid.UUID, **fields: Any) -> int:
        await self._roundtrip("update_chunks")
        chunks = [r for r in self.rows.values() if r.parent_entry_id == parent_id]
        for chunk in chunks:
            for key, value in fields.items():
                setattr(chunk, key, value)
        return len(chunks)

    async def get_chunks(self, session: AsyncSession, parent_id: uuid.UUID) -> list[KnowledgeEntryModel]:
        chunks = [r for r in self.rows.values() if r.parent_entry_id == parent_id]
        return sorted(chunks, key=lambda r: r.chunk_index)

    async def list_roots(
        self,
        session: AsyncSession,
        search: str | None = None,
        source: KnowledgeSource | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[KnowledgeEntryModel]:
        self._maybe_fail("list_roots")
        roots = [r for r in self.rows.values() if r.parent_entry_id is None]
        if search:
            needle = search.lower()
            roots = [r for r in roots if needle in r.title.lower() or needle in r.summary.lower()]
        if source is not None:
            roots = [r for r in roots if r.source == source]
        roots.sort(key=lambda r: r.created_at, reverse=True)
        roots = roots[offset:]
        return roots[:limit] if limit is not None else roots

    async def keyword_search(
        self, session: AsyncSession, tsquery: str, limit: int
    ) -> list[uuid.UUID]:
        self._maybe_fail("keyword_search")
        terms = [t.lower() for t in tsquery.split(" & ")]
        scored = []
        for row in self.rows.values():
            if row.parent_entry_id is not None:
                continue
            title = row.title.lower()
            body = f"{row.summary} {row.content}".lower()
            if all(t in title or t in body for t in terms):
                score = sum(3 if t in title else 1 for t in terms)
                scored.append((score, row.id))
        scored.sort(key=lambda item: item[0], reverse=True)
        return [entry_id for _, entry_id in scored[:limit]]

    async def vector_search(
        self, session: AsyncSession, embedding: list[float], limit: int
    ) -> list[uuid.UUID]:
        self._maybe_fail("vector_search")
        roots: list[uuid.UUID] = []
        for entry_id in self.vector_hits:
            row = self.rows.get(entry_id)
            if row is None:
                continue
            root_id = row.parent_entry_id or row.id
            if root_id not in roots:
                roots.append(root_id)
        return roots[:limit]

    def chunks_of(self, parent_id: uuid.UUID) -> list[KnowledgeEntryModel]:
        chunks = [r for r in self.rows.values() if r.parent_entry_id == parent_id]
        return sorted(chunks, key=lambda r: r.chunk_index)


@pytest.fixture
def mock_db_session() -> AsyncSession:
    """Provide mock async database session."""
    return AsyncMock(spec=AsyncSession)


@pytest.fixture
def fake_crud() -> FakeKnowledgeCRUD:
    """Provide an empty in-memory knowledge CRUD."""
    return FakeKnowledgeCRUD()


@pytest.fixture
def embedding_vector() -> list[float]:
    """Provide a fixed embedding of the test dimension."""
    return [0.125] * DIMENSIONS


@pytest.fixture
def fake_gateway(embedding_vector: list[float]) -> FakeEmbeddingGateway:
    """Provide a gateway that always embeds."""
    return FakeEmbeddingGateway(vector=embedding_vector)


@pytest.fixture
def offline_gateway() -> FakeEmbeddingGateway:
    """Provide a gateway with no provider configured."""
    return FakeEmbeddingGateway(vector=None)


@pytest.fixture
def knowledge_settings() -> KnowledgeSettings:
    """Provide default knowledge settings, independent of the environment."""
    return KnowledgeSettings(
        chunk_threshold=2000,
        chunk_size=1500,
        chunk_overlap=200,
        rrf_k=60,
        default_search_limit=10,
        max_search_limit=50,
        candidate_multiplier=2,
        text_search_config="simple",
    )


@pytest.fixture
def long_prose() -> str:
    """Provide 2001 characters of prose containing two paragraph breaks."""
    sentence = "Retrieval systems rank documents by relevance to a query. "
    paragraph = sentence * 11
    text = paragraph + "\n\n" + paragraph + "\n\n" + paragraph
    text = (text * 2)[:2001]
    assert len(text) == 2001
    return text
