"""
Knowledge domain models and schemas.

Request/response schemas for knowledge entry operations. The raw embedding
never leaves the service; responses expose hasEmbedding instead.

Dependencies: pydantic, knowledge_engine.boundary.db.models
System role: Knowledge API contracts
"""

import uuid
from datetime import datetime

from pydantic import ConfigDict, Field

from knowledge_engine.boundary.db.models.knowledge_entry_model import KnowledgeSource
from knowledge_engine.models.common import CamelModel


class CreateKnowledgeRequest(CamelModel):
    """Request schema for ingesting a knowledge document."""

    title: str = Field(..., min_length=1, max_length=500, description="Document title")
    content: str = Field(..., min_length=1, description="Full document text")
    source: KnowledgeSource = Field(..., description="Provenance of the document")
    url: str | None = Field(None, description="Source URL")
    summary: str = Field("", description="Short summary")
    tags: list[str] = Field(default_factory=list, description="Ordered tags")
    source_message_id: str | None = Field(
        None, max_length=255, description="Originating message reference"
    )


class UpdateKnowledgeRequest(CamelModel):
    """Request schema for partially updating a root entry. Only sent fields change."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(None, min_length=1, max_length=500)
    content: str | None = Field(None, min_length=1)
    source: KnowledgeSource | None = None
    url: str | None = None
    summary: str | None = None
    tags: list[str] | None = None
    source_message_id: str | None = Field(None, max_length=255)


class KnowledgeEntryResponse(CamelModel):
    """Response schema for a knowledge entry (root or chunk)."""

    id: uuid.UUID
    title: str
    url: str | None
    content: str
    summary: str
    tags: list[str]
    source: KnowledgeSource
    source_message_id: str | None
    parent_entry_id: uuid.UUID | None
    chunk_index: int | None
    has_embedding: bool
    created_at: datetime
    updated_at: datetime


class CreatedKnowledgeResponse(KnowledgeEntryResponse):
    """Response schema for a newly ingested entry."""

    chunks_created: int


class UpdatedKnowledgeResponse(KnowledgeEntryResponse):
    """Response schema for an updated entry."""

    chunks_created: int
    rechunked: bool


class DeleteKnowledgeResponse(CamelModel):
    """Response schema for entry deletion."""

    ok: bool = True
    chunks_deleted: int
