"""
Knowledge entry ORM model.

One table holds both root documents and their chunks. A chunk points at its
root through parent_entry_id and carries its position in chunk_index.

Dependencies: sqlalchemy, pgvector, knowledge_engine.boundary.db.base, knowledge_engine.configs
System role: Persistence of knowledge documents, chunks and their search indexes
"""

import enum
import uuid

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    JSON,
    CheckConstraint,
    Computed,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, TSVECTOR, UUID
from sqlalchemy.orm import Mapped, mapped_column

from knowledge_engine.boundary.db.base import Base, UUIDMixin, TimestampMixin
from knowledge_engine.configs import get_settings
from knowledge_engine.configs.knowledge import TEXT_SEARCH_CONFIG_PATTERN


class KnowledgeSource(str, enum.Enum):
    """
    Provenance of a knowledge entry.

    MANUAL: Submitted by a person
    AGENT: Written by an agent
    EXTERNAL_FEED: Pulled from an external feed or fetched URL
    MESSAGING_CHANNEL: Captured from a chat/messaging channel
    EMAIL: Captured from email
    """

    MANUAL = "manual"
    AGENT = "agent"
    EXTERNAL_FEED = "external_feed"
    MESSAGING_CHANNEL = "messaging_channel"
    EMAIL = "email"


_settings = get_settings()
EMBEDDING_DIMENSIONS = _settings.embedding.dimensions
TEXT_SEARCH_CONFIG = _settings.knowledge.text_search_config


def validate_text_search_config(config: str) -> str:
    """
    Reject text search configuration names that are not plain identifiers.

    Raises:
        ValueError: When config is not lowercase letters and underscores
    """
    if not TEXT_SEARCH_CONFIG_PATTERN.fullmatch(config):
        raise ValueError(f"Invalid text search configuration: {config!r}")
    return config


def _search_vector_expression(config: str) -> str:
    """Weighted tsvector over title (A), summary (B) and content (C)."""
    config = validate_text_search_config(config)
    return (
        f"setweight(to_tsvector('{config}', coalesce(title, '')), 'A') || "
        f"setweight(to_tsvector('{config}', coalesce(summary, '')), 'B') || "
        f"setweight(to_tsvector('{config}', coalesce(content, '')), 'C')"
    )


class KnowledgeEntryModel(Base, UUIDMixin, TimestampMixin):
    """
    Knowledge entry ORM model.

    Root documents have parent_entry_id and chunk_index NULL. Chunks reference
    their root and hold a contiguous 0..N-1 index; chunks never have children.
    search_vector is a generated column so lexical indexing can never drift
    from the stored text.

    Attributes:
        id: UUID primary key (auto-generated)
        title: Display title; chunks use "<root title> [chunk i/N]"
        url: Optional source URL
        content: Full text (root) or chunk text (chunk)
        summary: Short summary, empty for chunks
        tags: Ordered list of tag strings
        source: Provenance enum
        source_message_id: Optional reference to the originating message
        embedding: pgvector column of the configured dimension, NULL when no
                   provider produced a vector
        parent_entry_id: Root entry id for chunks (ON DELETE CASCADE)
        chunk_index: Chunk position within its root
        search_vector: Generated weighted tsvector
        created_at: Creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)

    Constraints:
        (parent_entry_id, chunk_index): UNIQUE
        parent_entry_id and chunk_index are both NULL or both set
    """

    __tablename__ = "knowledge_entries"

    title: Mapped[str] = mapped_column(String(500), nullable=False)

    url: Mapped[str | None] = mapped_column(Text, nullable=True)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")

    tags: Mapped[list[str]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=list,
    )

    source: Mapped[KnowledgeSource] = mapped_column(
        Enum(KnowledgeSource, native_enum=False, length=32),
        nullable=False,
    )

    source_message_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(EMBEDDING_DIMENSIONS),
        nullable=True,
    )

    parent_entry_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("knowledge_entries.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    chunk_index: Mapped[int | None] = mapped_column(Integer, nullable=True)

    search_vector: Mapped[str | None] = mapped_column(
        TSVECTOR,
        Computed(_search_vector_expression(TEXT_SEARCH_CONFIG), persisted=True),
        nullable=True,
    )

    __table_args__ = (
        UniqueConstraint("parent_entry_id", "chunk_index", name="uq_knowledge_chunk_position"),
        CheckConstraint(
            "(parent_entry_id IS NULL) = (chunk_index IS NULL)",
            name="chunk_index_with_parent",
        ),
        Index("ix_knowledge_entries_search_vector", "search_vector", postgresql_using="gin"),
        Index(
            "ix_knowledge_entries_embedding_cosine",
            "embedding",
            postgresql_using="hnsw",
            postgresql_ops={"embedding": "vector_cosine_ops"},
        ),
    )

    @property
    def is_chunk(self) -> bool:
        """True when this entry belongs to a root document."""
        return self.parent_entry_id is not None

    @property
    def has_embedding(self) -> bool:
        """True when a vector is stored for this entry."""
        return self.embedding is not None
