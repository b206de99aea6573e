"""
Hybrid retrieval service.

Answers knowledge queries by keyword ranking (PostgreSQL full-text search),
semantic ranking (pgvector cosine distance) or both fused with Reciprocal
Rank Fusion. Semantic chunk hits are resolved to their root document.

Dependencies: sqlalchemy, knowledge_engine.boundary.db.CRUD, knowledge_engine.boundary.embeddings, knowledge_engine.core
System role: Knowledge search use case orchestration
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_engine.boundary.db.CRUD.knowledge_crud import KnowledgeCRUD, knowledge_crud
from knowledge_engine.boundary.db.models.knowledge_entry_model import KnowledgeEntryModel
from knowledge_engine.boundary.embeddings import EmbeddingGateway
from knowledge_engine.configs import KnowledgeSettings, get_settings
from knowledge_engine.core.exceptions import StorageError, ValidationError
from knowledge_engine.core.rank_fusion import reciprocal_rank_fusion

logger = logging.getLogger(__name__)

# Unicode letters and digits; everything else (tsquery operators included) separates terms
_TERM_PATTERN = re.compile(r"[^\W_]+")


class SearchMode(str, Enum):
    """Retrieval strategy."""

    KEYWORD = "keyword"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"


@dataclass
class SearchResult:
    """Ordered root entries plus the method used and per-path diagnostics."""

    results: list[KnowledgeEntryModel]
    method: SearchMode
    meta: dict[str, Any] = field(default_factory=dict)


def build_tsquery(query: str) -> str | None:
    """
    Build an AND-ed to_tsquery expression from the alphanumeric terms of query.

    Returns:
        str | None: Expression like "vector & search", or None when query has no terms
    """
    terms = _TERM_PATTERN.findall(query)
    if not terms:
        return None
    return " & ".join(terms)


class SearchService:
    """Hybrid retrieval service."""

    def __init__(
        self,
        db: AsyncSession,
        gateway: EmbeddingGateway,
        settings: KnowledgeSettings | None = None,
        crud: KnowledgeCRUD = knowledge_crud,
    ) -> None:
        """
        Initialize search service.

        Args:
            db: Async SQLAlchemy session
            gateway: Embedding gateway for query vectors
            settings: Search limits and RRF constant (defaults to application settings)
            crud: Knowledge entry CRUD
        """
        self.db = db
        self.gateway = gateway
        self.settings = settings or get_settings().knowledge
        self.crud = crud

    async def search(
        self,
        query: str,
        mode: SearchMode | str = SearchMode.HYBRID,
        limit: int | None = None,
    ) -> SearchResult:
        """
        Search root documents.

        Args:
            query: Free-text query
            mode: keyword, semantic or hybrid
            limit: Maximum results, clamped to [1, max_search_limit]

        Returns:
            SearchResult: Entries in rank order, method and meta counters

        Raises:
            ValidationError: Blank query or unknown mode
            StorageError: Database failure
        """
        if not query or not query.strip():
            raise ValidationError("Query is required and cannot be blank", field="q")
        try:
            mode = SearchMode(mode)
        except ValueError:
            raise ValidationError(
                f"Invalid search mode '{mode}'. Must be one of: keyword, semantic, hybrid",
                field="mode",
            ) from None

        limit = self._clamp_limit(limit)
        candidates = limit * self.settings.candidate_multiplier

        try:
            keyword_ids: list[UUID] = []
            if mode in (SearchMode.KEYWORD, SearchMode.HYBRID):
                keyword_ids = await self._keyword_candidates(query, candidates)

            semantic_ids: list[UUID] = []
            embedded = False
            if mode in (SearchMode.SEMANTIC, SearchMode.HYBRID):
                semantic_ids, embedded = await self._semantic_candidates(query, candidates)

            if mode is SearchMode.KEYWORD:
                ranked = keyword_ids[:limit]
                meta = {"keywordHits": len(keyword_ids)}
            elif mode is SearchMode.SEMANTIC:
                if not embedded:
                    logger.info(
                        "Semantic search unavailable: no query embedding",
                        extra={"query_length": len(query)},
                    )
                    return SearchResult(
                        results=[],
                        method=SearchMode.SEMANTIC,
                        meta={"semanticHits": 0, "fallback": "keyword"},
                    )
                ranked = semantic_ids[:limit]
                meta = {"semanticHits": len(semantic_ids)}
            else:
                fused = reciprocal_rank_fusion([keyword_ids, semantic_ids], k=self.settings.rrf_k)
                ranked = [entry_id for entry_id, _ in fused[:limit]]
                meta = {
                    "keywordHits": len(keyword_ids),
                    "semanticHits": len(semantic_ids),
                    "fusedTotal": len(fused),
                }

            results = await self._fetch_in_order(ranked)
        except SQLAlchemyError as e:
            logger.error(
                "Knowledge search failed",
                extra={"error": str(e), "mode": mode.value},
            )
            raise StorageError("Knowledge search failed", operation="search") from e

        logger.info(
            "Knowledge search completed",
            extra={"mode": mode.value, "limit": limit, "results": len(results), **meta},
        )
        return SearchResult(results=results, method=mode, meta=meta)

    def _clamp_limit(self, limit: int | None) -> int:
        if limit is None:
            limit = self.settings.default_search_limit
        return max(1, min(limit, self.settings.max_search_limit))

    async def _keyword_candidates(self, query: str, candidates: int) -> list[UUID]:
        tsquery = build_tsquery(query)
        if tsquery is None:
            return []
        return await self.crud.keyword_search(self.db, tsquery, candidates)

    async def _semantic_candidates(
        self,
        query: str,
        candidates: int,
    ) -> tuple[list[UUID], bool]:
        """Return root ids by vector rank, and whether a query embedding was produced."""
        embedding = await self.gateway.embed(query)
        if embedding is None:
            return [], False
        roots = await self.crud.vector_search(self.db, embedding, candidates)
        return roots, True

    async def _fetch_in_order(self, ranked: list[UUID]) -> list[KnowledgeEntryModel]:
        """Fetch entries by id and restore rank order; ids deleted meanwhile are skipped."""
        if not ranked:
            return []
        entries = await self.crud.get_by_ids(self.db, ranked)
        by_id = {entry.id: entry for entry in entries}
        return [by_id[entry_id] for entry_id in ranked if entry_id in by_id]
