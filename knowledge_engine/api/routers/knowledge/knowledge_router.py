"""
Knowledge API endpoints.

Routes:
- POST /knowledge - Ingest a document (chunked when long)
- GET /knowledge - List root entries
- GET /knowledge/search - Keyword, semantic or hybrid search
- GET /knowledge/{id} - Get single entry
- PATCH /knowledge/{id} - Partially update a root entry (re-chunks on text change)
- DELETE /knowledge/{id} - Delete a root entry and its chunks
- GET /knowledge/{id}/chunks - List chunks of an entry in order

Dependencies: knowledge_engine.application.services, knowledge_engine.models
System role: Knowledge ingestion and retrieval HTTP API
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from knowledge_engine.application.services import (
    KnowledgeService,
    SearchMode,
    SearchService,
)
from knowledge_engine.api.deps.dependencies import (
    get_knowledge_service,
    get_search_service,
)
from knowledge_engine.boundary.db.models import KnowledgeSource
from knowledge_engine.models.knowledge import (
    CreateKnowledgeRequest,
    CreatedKnowledgeResponse,
    DeleteKnowledgeResponse,
    KnowledgeEntryResponse,
    UpdateKnowledgeRequest,
    UpdatedKnowledgeResponse,
)
from knowledge_engine.models.search import SearchResponse

from .knowledge_error_handling import handle_knowledge_errors
from .knowledge_responses import (
    map_created_to_response,
    map_deleted_to_response,
    map_entries_to_response,
    map_entry_to_response,
    map_search_to_response,
    map_updated_to_response,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/knowledge", tags=["knowledge"])


@router.post("", response_model=CreatedKnowledgeResponse, status_code=201)
@handle_knowledge_errors
async def create_entry(
    request: CreateKnowledgeRequest,
    knowledge_service: KnowledgeService = Depends(get_knowledge_service),
) -> CreatedKnowledgeResponse:
    """
    Ingest a knowledge document.

    Args:
        request: CreateKnowledgeRequest with title, content, source and optional fields
        knowledge_service: Injected KnowledgeService

    Returns:
        CreatedKnowledgeResponse: Created root entry with chunksCreated

    Raises:
        HTTPException(400): Blank title or content
        HTTPException(500): Storage failure
    """
    logger.info(
        "Creating knowledge entry",
        extra={"source": request.source.value, "content_length": len(request.content)}
    )

    created = await knowledge_service.create_entry(
        title=request.title,
        content=request.content,
        source=request.source,
        url=request.url,
        summary=request.summary,
        tags=request.tags,
        source_message_id=request.source_message_id,
    )

    return map_created_to_response(created)


@router.get("", response_model=list[KnowledgeEntryResponse])
@handle_knowledge_errors
async def list_entries(
    search: str | None = Query(None, description="Substring of title or summary"),
    source: KnowledgeSource | None = Query(None, description="Provenance filter"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    knowledge_service: KnowledgeService = Depends(get_knowledge_service),
) -> list[KnowledgeEntryResponse]:
    """
    List root entries, newest first.

    Args:
        search: Optional case-insensitive substring of title or summary
        source: Optional provenance filter
        limit: Maximum number of entries (default 100)
        offset: Number to skip (default 0)
        knowledge_service: Injected KnowledgeService

    Returns:
        list[KnowledgeEntryResponse]: Root entries
    """
    entries = await knowledge_service.list_entries(
        search=search,
        source=source,
        limit=limit,
        offset=offset,
    )

    logger.info(
        "Knowledge entries listed",
        extra={"count": len(entries), "limit": limit, "offset": offset}
    )

    return map_entries_to_response(entries)


@router.get("/search", response_model=SearchResponse)
@handle_knowledge_errors
async def search_entries(
    q: str = Query(..., description="Search query"),
    mode: SearchMode = Query(SearchMode.HYBRID, description="keyword, semantic or hybrid"),
    limit: int | None = Query(None, description="Maximum results (clamped to 1..50)"),
    search_service: SearchService = Depends(get_search_service),
) -> SearchResponse:
    """
    Search root documents.

    Args:
        q: Free-text query
        mode: Retrieval strategy (default hybrid)
        limit: Maximum results; defaults to 10
        search_service: Injected SearchService

    Returns:
        SearchResponse: results, method and meta counters

    Raises:
        HTTPException(400): Blank query
        HTTPException(500): Storage failure
    """
    result = await search_service.search(q, mode=mode, limit=limit)
    return map_search_to_response(result)


@router.get("/{entry_id}", response_model=KnowledgeEntryResponse)
@handle_knowledge_errors
async def get_entry(
    entry_id: UUID,
    knowledge_service: KnowledgeService = Depends(get_knowledge_service),
) -> KnowledgeEntryResponse:
    """
    Get single entry by ID.

    Raises:
        HTTPException(404): Entry not found
    """
    entry = await knowledge_service.get_entry(entry_id)
    return map_entry_to_response(entry)


@router.patch("/{entry_id}", response_model=UpdatedKnowledgeResponse)
@handle_knowledge_errors
async def update_entry(
    entry_id: UUID,
    request: UpdateKnowledgeRequest,
    knowledge_service: KnowledgeService = Depends(get_knowledge_service),
) -> UpdatedKnowledgeResponse:
    """
    Partially update a root entry.

    Only fields present in the body are applied. Changing title or content
    regenerates the entry's chunks.

    Args:
        entry_id: Root entry UUID
        request: UpdateKnowledgeRequest with the fields to change
        knowledge_service: Injected KnowledgeService

    Returns:
        UpdatedKnowledgeResponse: Updated entry with chunksCreated and rechunked

    Raises:
        HTTPException(400): Blank field or entry_id addresses a chunk
        HTTPException(404): Entry not found
    """
    patch = request.model_dump(exclude_unset=True)

    logger.info(
        "Updating knowledge entry",
        extra={"entry_id": str(entry_id), "fields": sorted(patch)}
    )

    updated = await knowledge_service.update_entry(entry_id, **patch)
    return map_updated_to_response(updated)


@router.delete("/{entry_id}", response_model=DeleteKnowledgeResponse)
@handle_knowledge_errors
async def delete_entry(
    entry_id: UUID,
    knowledge_service: KnowledgeService = Depends(get_knowledge_service),
) -> DeleteKnowledgeResponse:
    """
    Delete a root entry and all of its chunks.

    Raises:
        HTTPException(400): entry_id addresses a chunk
        HTTPException(404): Entry not found
    """
    chunks_deleted = await knowledge_service.delete_entry(entry_id)
    return map_deleted_to_response(chunks_deleted)


@router.get("/{entry_id}/chunks", response_model=list[KnowledgeEntryResponse])
@handle_knowledge_errors
async def get_chunks(
    entry_id: UUID,
    knowledge_service: KnowledgeService = Depends(get_knowledge_service),
) -> list[KnowledgeEntryResponse]:
    """
    List the chunks of an entry ordered by chunk index.

    Raises:
        HTTPException(404): Entry not found
    """
    chunks = await knowledge_service.get_chunks(entry_id)
    return map_entries_to_response(chunks)
