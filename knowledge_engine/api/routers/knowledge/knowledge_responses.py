"""
Knowledge response mapping utilities.

Transforms ORM entries and service results into Pydantic response models.
Centralizes response construction logic.

Dependencies: knowledge_engine.models, knowledge_engine.application.services
System role: Knowledge response transformation
"""

from typing import Iterable

from knowledge_engine.application.services import CreatedEntry, SearchResult, UpdatedEntry
from knowledge_engine.boundary.db.models import KnowledgeEntryModel
from knowledge_engine.models.knowledge import (
    CreatedKnowledgeResponse,
    DeleteKnowledgeResponse,
    KnowledgeEntryResponse,
    UpdatedKnowledgeResponse,
)
from knowledge_engine.models.search import SearchResponse


def map_entry_to_response(entry: KnowledgeEntryModel) -> KnowledgeEntryResponse:
    """
    Transform an ORM entry into KnowledgeEntryResponse.

    Args:
        entry: Root or chunk entry

    Returns:
        KnowledgeEntryResponse: Pydantic model for API response
    """
    return KnowledgeEntryResponse.model_validate(entry)


def map_entries_to_response(entries: Iterable[KnowledgeEntryModel]) -> list[KnowledgeEntryResponse]:
    """Transform entries into a list of KnowledgeEntryResponse."""
    return [map_entry_to_response(entry) for entry in entries]


def map_created_to_response(created: CreatedEntry) -> CreatedKnowledgeResponse:
    """
    Transform a create result into CreatedKnowledgeResponse.

    Args:
        created: Root entry and chunk count from KnowledgeService.create_entry

    Returns:
        CreatedKnowledgeResponse: Entry fields plus chunksCreated
    """
    entry = map_entry_to_response(created.entry)
    return CreatedKnowledgeResponse(
        **entry.model_dump(),
        chunks_created=created.chunks_created,
    )


def map_updated_to_response(updated: UpdatedEntry) -> UpdatedKnowledgeResponse:
    """
    Transform an update result into UpdatedKnowledgeResponse.

    Args:
        updated: Root entry and re-chunk outcome from KnowledgeService.update_entry

    Returns:
        UpdatedKnowledgeResponse: Entry fields plus chunksCreated and rechunked
    """
    entry = map_entry_to_response(updated.entry)
    return UpdatedKnowledgeResponse(
        **entry.model_dump(),
        chunks_created=updated.chunks_created,
        rechunked=updated.rechunked,
    )


def map_deleted_to_response(chunks_deleted: int) -> DeleteKnowledgeResponse:
    """Build the deletion acknowledgement."""
    return DeleteKnowledgeResponse(ok=True, chunks_deleted=chunks_deleted)


def map_search_to_response(result: SearchResult) -> SearchResponse:
    """
    Transform a SearchResult into SearchResponse.

    Args:
        result: Ordered entries, method and meta from SearchService.search

    Returns:
        SearchResponse: Pydantic model for API response
    """
    return SearchResponse(
        results=map_entries_to_response(result.results),
        method=result.method,
        meta=result.meta,
    )
