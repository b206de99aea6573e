"""
Test suite for SearchService.

Tests keyword, semantic and hybrid retrieval, degraded behaviour without
embeddings, chunk-to-root resolution, limit clamping and fused ordering.
Uses an in-memory CRUD and a scripted embedding gateway.

System role: Verification of hybrid retrieval orchestration
"""

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_engine.application.services.knowledge_service import KnowledgeService
from knowledge_engine.application.services.search_service import (
    SearchMode,
    SearchService,
    build_tsquery,
)
from knowledge_engine.configs import KnowledgeSettings
from knowledge_engine.core.exceptions import StorageError, ValidationError


@pytest.fixture
def search_service(
    mock_db_session: AsyncSession, fake_gateway, fake_crud, knowledge_settings: KnowledgeSettings
) -> SearchService:
    """Provide SearchService with a working gateway."""
    return SearchService(
        db=mock_db_session, gateway=fake_gateway, settings=knowledge_settings, crud=fake_crud,
    )


@pytest.fixture
def offline_search_service(
    mock_db_session: AsyncSession, offline_gateway, fake_crud, knowledge_settings: KnowledgeSettings
) -> SearchService:
    """Provide SearchService whose gateway has no provider."""
    return SearchService(
        db=mock_db_session, gateway=offline_gateway, settings=knowledge_settings, crud=fake_crud,
    )


@pytest.fixture
async def corpus(mock_db_session, fake_gateway, fake_crud, knowledge_settings, long_prose):
    """Ingest three roots (one chunked) and return them by short name."""
    store = KnowledgeService(
        db=mock_db_session, gateway=fake_gateway, settings=knowledge_settings, crud=fake_crud,
    )
    postgres = await store.create_entry(
        title="Postgres tuning", content="Vacuum and index maintenance.", source="manual",
    )
    zebra = await store.create_entry(
        title="Zebrafish genome", content="Notes on sequencing runs.", source="external_feed",
    )
    retrieval = await store.create_entry(
        title="Retrieval handbook", content=long_prose, source="agent",
    )
    return {"postgres": postgres.entry, "zebra": zebra.entry, "retrieval": retrieval.entry}


class TestSearchValidation:
    """Test suite for query and limit validation."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", "\n\t"])
    async def test_blank_query_should_raise(self, search_service: SearchService, query: str) -> None:
        """Test a blank query is a validation failure."""
        with pytest.raises(ValidationError):
            await search_service.search(query)

    @pytest.mark.asyncio
    async def test_unknown_mode_should_raise(self, search_service: SearchService) -> None:
        """Test an unsupported mode is a validation failure."""
        with pytest.raises(ValidationError, match="mode"):
            await search_service.search("postgres", mode="fuzzy")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("requested", "expected"), [(None, 10), (0, 1), (-3, 1), (500, 50), (7, 7)])
    async def test_limit_should_be_clamped(
        self, search_service: SearchService, fake_crud, requested, expected
    ) -> None:
        """Test limit defaults to 10 and is clamped to [1, 50]."""
        seen = {}

        async def spy(session, tsquery, limit):
            seen["limit"] = limit
            return []

        fake_crud.keyword_search = spy

        await search_service.search("anything", mode="keyword", limit=requested)

        assert seen["limit"] == expected * 2


class TestKeywordSearch:
    """Test suite for keyword mode."""

    @pytest.mark.asyncio
    async def test_unique_title_term_should_return_only_that_root(
        self, search_service: SearchService, corpus
    ) -> None:
        """Test a term unique to one root's title returns exactly that root."""
        result = await search_service.search("zebrafish", mode="keyword")

        assert result.method is SearchMode.KEYWORD
        assert [e.id for e in result.results] == [corpus["zebra"].id]
        assert result.meta == {"keywordHits": 1}

    @pytest.mark.asyncio
    async def test_should_never_return_chunks(self, search_service: SearchService, corpus) -> None:
        """Test keyword results are roots even when chunk text matches."""
        result = await search_service.search("retrieval systems", mode="keyword")

        assert [e.id for e in result.results] == [corpus["retrieval"].id]
        assert all(e.parent_entry_id is None for e in result.results)

    @pytest.mark.asyncio
    async def test_punctuation_only_query_should_return_empty(
        self, search_service: SearchService, corpus
    ) -> None:
        """Test a query without alphanumeric terms yields no keyword hits."""
        result = await search_service.search("&|!()", mode="keyword")

        assert result.results == []
        assert result.meta == {"keywordHits": 0}


class TestSemanticSearch:
    """Test suite for semantic mode."""

    @pytest.mark.asyncio
    async def test_chunk_hits_should_resolve_to_root(
        self, search_service: SearchService, fake_crud, corpus
    ) -> None:
        """Test chunk hits map to their root and duplicates keep the best rank."""
        retrieval = corpus["retrieval"]
        chunks = fake_crud.chunks_of(retrieval.id)
        fake_crud.vector_hits = [
            chunks[1].id,
            corpus["postgres"].id,
            chunks[0].id,
            retrieval.id,
        ]

        result = await search_service.search("how do rankers work", mode="semantic")

        assert result.method is SearchMode.SEMANTIC
        assert [e.id for e in result.results] == [retrieval.id, corpus["postgres"].id]
        assert result.meta == {"semanticHits": 2}

    @pytest.mark.asyncio
    async def test_long_document_should_not_crowd_out_other_roots(
        self, search_service: SearchService, fake_crud
    ) -> None:
        """Test many near chunks of one document occupy a single result slot."""
        long_doc = fake_crud._build(title="Long document", content="body", source="manual")
        chunk_ids = [
            fake_crud._build(
                title="Long document", content=f"part {i}", source="manual",
                parent_entry_id=long_doc.id, chunk_index=i,
            ).id
            for i in range(25)
        ]
        others = [
            fake_crud._build(title=f"Note {i}", content="text", source="manual").id
            for i in range(10)
        ]
        fake_crud.vector_hits = chunk_ids + others

        result = await search_service.search("anything", mode="semantic", limit=10)

        assert len(result.results) == 10
        assert [e.id for e in result.results] == [long_doc.id] + others[:9]
        assert result.meta == {"semanticHits": 11}

    @pytest.mark.asyncio
    async def test_without_embedding_should_return_empty_with_fallback_hint(
        self, offline_search_service: SearchService, corpus
    ) -> None:
        """Test semantic mode with no provider returns an explicit empty result."""
        result = await offline_search_service.search("zebrafish", mode="semantic")

        assert result.results == []
        assert result.method is SearchMode.SEMANTIC
        assert result.meta == {"semanticHits": 0, "fallback": "keyword"}


class TestHybridSearch:
    """Test suite for hybrid mode."""

    @pytest.mark.asyncio
    async def test_should_fuse_and_return_in_fused_order(
        self, search_service: SearchService, fake_crud, corpus
    ) -> None:
        """Test an id found by both paths outranks ids found by one."""
        fake_crud.vector_hits = [corpus["postgres"].id, corpus["zebra"].id]

        result = await search_service.search("zebrafish", mode="hybrid")

        assert result.method is SearchMode.HYBRID
        assert [e.id for e in result.results] == [corpus["zebra"].id, corpus["postgres"].id]
        assert result.meta == {"keywordHits": 1, "semanticHits": 2, "fusedTotal": 2}

    @pytest.mark.asyncio
    async def test_without_provider_should_degrade_to_keyword(
        self, offline_search_service: SearchService, corpus
    ) -> None:
        """Test hybrid with no embeddings returns keyword results and semanticHits 0."""
        result = await offline_search_service.search("postgres")

        assert result.method is SearchMode.HYBRID
        assert [e.id for e in result.results] == [corpus["postgres"].id]
        assert result.meta["semanticHits"] == 0
        assert result.meta["keywordHits"] == 1

    @pytest.mark.asyncio
    async def test_both_paths_empty_should_return_empty_hybrid(
        self, search_service: SearchService, corpus
    ) -> None:
        """Test no hits anywhere yields an empty hybrid result."""
        result = await search_service.search("nonexistentterm")

        assert result.results == []
        assert result.method is SearchMode.HYBRID
        assert result.meta == {"keywordHits": 0, "semanticHits": 0, "fusedTotal": 0}

    @pytest.mark.asyncio
    async def test_should_truncate_to_limit(
        self, search_service: SearchService, fake_crud, corpus
    ) -> None:
        """Test fused results are cut to the requested limit."""
        fake_crud.vector_hits = [e.id for e in corpus.values()]

        result = await search_service.search("postgres", limit=2)

        assert len(result.results) == 2
        assert result.results[0].id == corpus["postgres"].id
        assert result.meta["fusedTotal"] == 3

    @pytest.mark.asyncio
    async def test_deleted_ids_should_be_skipped(
        self, search_service: SearchService, fake_crud, corpus
    ) -> None:
        """Test an id that disappears between ranking and fetch is dropped."""
        ghost = uuid.uuid4()

        async def keyword_with_ghost(session, tsquery, limit):
            return [ghost, corpus["postgres"].id]

        fake_crud.keyword_search = keyword_with_ghost

        result = await search_service.search("postgres", mode="keyword")

        assert [e.id for e in result.results] == [corpus["postgres"].id]

    @pytest.mark.asyncio
    async def test_database_failure_should_raise_storage_error(
        self, search_service: SearchService, fake_crud
    ) -> None:
        """Test SQLAlchemy errors surface as StorageError."""
        fake_crud.fail_on.add("keyword_search")

        with pytest.raises(StorageError):
            await search_service.search("postgres")


class TestSearchHelpers:
    """Test suite for query building helpers."""

    @pytest.mark.parametrize(
        ("query", "expected"),
        [
            ("vector search", "vector & search"),
            ("  hybrid:RRF | fusion! ", "hybrid & RRF & fusion"),
            ("snake_case words", "snake & case & words"),
            ("Größe über 2048", "Größe & über & 2048"),
            ("&|!()':*", None),
        ],
    )
    def test_build_tsquery_should_keep_only_alphanumeric_terms(self, query: str, expected) -> None:
        """Test tsquery operators and punctuation never reach to_tsquery."""
        assert build_tsquery(query) == expected

