"""
Knowledge search schemas.

Dependencies: pydantic, knowledge_engine.application.services
System role: Search API contract
"""

from typing import Any

from pydantic import Field

from knowledge_engine.application.services.search_service import SearchMode
from knowledge_engine.models.common import CamelModel
from knowledge_engine.models.knowledge import KnowledgeEntryResponse


class SearchResponse(CamelModel):
    """Ranked search results with the retrieval method and per-path counters."""

    results: list[KnowledgeEntryResponse]
    method: SearchMode
    meta: dict[str, Any] = Field(default_factory=dict)
