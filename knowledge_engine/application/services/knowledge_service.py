"""
Knowledge store service orchestrator.

Coordinates ingestion of knowledge documents: root embedding, chunking,
per-chunk embedding and transactional persistence of the parent/child tree.
Chunks are managed exclusively through their root entry.

Dependencies: sqlalchemy, knowledge_engine.boundary.db.CRUD, knowledge_engine.boundary.embeddings, knowledge_engine.core
System role: Knowledge entry lifecycle (create, update with re-chunking, cascade delete)
"""

import logging
from dataclasses import dataclass
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_engine.boundary.db.CRUD.knowledge_crud import KnowledgeCRUD, knowledge_crud
from knowledge_engine.boundary.db.models.knowledge_entry_model import (
    KnowledgeEntryModel,
    KnowledgeSource,
)
from knowledge_engine.boundary.embeddings import EmbeddingGateway
from knowledge_engine.configs import KnowledgeSettings, get_settings
from knowledge_engine.core.chunker import TextChunker
from knowledge_engine.core.exceptions import (
    EntryConflictError,
    EntryNotFoundError,
    KnowledgeEngineException,
    StorageError,
    ValidationError,
)
from knowledge_engine.core.locks import KeyedLock

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 500

UPDATABLE_FIELDS = frozenset(
    {"title", "content", "url", "summary", "tags", "source", "source_message_id"}
)
_EMBEDDED_FIELDS = frozenset({"title", "summary", "content"})
_CHUNK_SHAPING_FIELDS = frozenset({"title", "content"})
_INHERITED_FIELDS = frozenset({"url", "tags", "source", "source_message_id"})

# Snapshot-then-lock rounds before update_entry gives up with EntryConflictError
UPDATE_ATTEMPTS = 3

# Shared by every service instance in the process
entry_locks = KeyedLock()


@dataclass
class CreatedEntry:
    """Root entry created by create_entry and the number of chunks stored with it."""

    entry: KnowledgeEntryModel
    chunks_created: int


@dataclass
class UpdatedEntry:
    """Root entry after update_entry; rechunked is True when chunks were regenerated."""

    entry: KnowledgeEntryModel
    chunks_created: int
    rechunked: bool


def render_root_text(title: str, summary: str, content: str) -> str:
    """Text sent to the embedding provider for a root document."""
    return f"{title}\n\n{summary}\n\n{content}"


def render_chunk_text(title: str, chunk_text: str) -> str:
    """Text sent to the embedding provider for a chunk."""
    return f"{title}\n\n{chunk_text}"


def chunk_title(title: str, index: int, total: int) -> str:
    """
    Label a chunk as "<title> [chunk i/N]" with a 1-based i.

    The root title is shortened when needed so the label fits the title column.
    """
    suffix = f" [chunk {index + 1}/{total}]"
    return f"{title[: TITLE_MAX_LENGTH - len(suffix)]}{suffix}"


def _snapshot(entry: KnowledgeEntryModel) -> dict[str, Any]:
    """Copy the updatable fields of an entry so they survive session expiry."""
    snapshot = {field: getattr(entry, field) for field in UPDATABLE_FIELDS}
    snapshot["tags"] = list(snapshot["tags"] or [])
    return snapshot


def _require_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required and cannot be blank", field=field)
    return value


def _coerce_source(value: Any) -> KnowledgeSource:
    if isinstance(value, KnowledgeSource):
        return value
    try:
        return KnowledgeSource(value)
    except ValueError:
        allowed = ", ".join(s.value for s in KnowledgeSource)
        raise ValidationError(
            f"Invalid source '{value}'. Must be one of: {allowed}",
            field="source",
        ) from None


class KnowledgeService:
    """Knowledge store service orchestrator."""

    def __init__(
        self,
        db: AsyncSession,
        gateway: EmbeddingGateway,
        settings: KnowledgeSettings | None = None,
        crud: KnowledgeCRUD = knowledge_crud,
        locks: KeyedLock = entry_locks,
    ) -> None:
        """
        Initialize knowledge service.

        Args:
            db: Async SQLAlchemy session; this service owns commit and rollback
            gateway: Embedding gateway (may have zero providers)
            settings: Chunking configuration (defaults to application settings)
            crud: Knowledge entry CRUD
            locks: Per-root lock registry serializing re-chunking
        """
        self.db = db
        self.gateway = gateway
        self.settings = settings or get_settings().knowledge
        self.crud = crud
        self.locks = locks
        self.chunker = TextChunker(
            chunk_size=self.settings.chunk_size,
            overlap=self.settings.chunk_overlap,
        )

    async def create_entry(
        self,
        title: str,
        content: str,
        source: KnowledgeSource | str,
        url: str | None = None,
        summary: str | None = "",
        tags: Sequence[str] | None = None,
        source_message_id: str | None = None,
    ) -> CreatedEntry:
        """
        Ingest a document as a root entry, chunking it when it is long.

        The root is flushed before any chunk is inserted; chunks and root are
        committed together. A missing embedding never fails the ingest.

        Args:
            title: Document title
            content: Full document text
            source: Provenance (enum or its string value)
            url: Optional source URL
            summary: Optional summary
            tags: Optional ordered tags
            source_message_id: Optional originating message reference

        Returns:
            CreatedEntry: Root entry and number of chunks created

        Raises:
            ValidationError: Blank title/content or invalid source
            StorageError: Database failure (transaction rolled back)
        """
        title = _require_text(title, "title")
        content = _require_text(content, "content")
        source = _coerce_source(source)
        summary = summary or ""
        tags = list(tags or [])

        embedding = await self.gateway.embed(render_root_text(title, summary, content))
        chunk_rows = await self._prepare_chunks(
            title,
            content,
            url=url,
            tags=tags,
            source=source,
            source_message_id=source_message_id,
        )

        try:
            entry = await self.crud.create(
                self.db,
                title=title,
                content=content,
                url=url,
                summary=summary,
                tags=tags,
                source=source,
                source_message_id=source_message_id,
                embedding=embedding,
            )
            await self._insert_chunks(entry.id, chunk_rows)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Failed to create knowledge entry",
                extra={"error": str(e), "title": title},
            )
            raise StorageError("Failed to create knowledge entry", operation="create") from e

        logger.info(
            "Knowledge entry created",
            extra={
                "entry_id": str(entry.id),
                "content_length": len(content),
                "chunks_created": len(chunk_rows),
                "embedded": embedding is not None,
            },
        )
        return CreatedEntry(entry=entry, chunks_created=len(chunk_rows))

    async def update_entry(self, entry_id: UUID, **patch: Any) -> UpdatedEntry:
        """
        Apply a partial update to a root entry.

        The root is re-embedded when title, summary or content changes. When
        title or content changes, every chunk is deleted and regenerated from
        the new content (none when it no longer exceeds the threshold).
        Inherited chunk fields (url, tags, source, source_message_id) are
        copied onto existing chunks otherwise.

        Embeddings are computed from a snapshot of the entry before the row
        lock is taken. If the locked row no longer matches the snapshot the
        preparation is repeated, up to UPDATE_ATTEMPTS times.

        Args:
            entry_id: Root entry UUID
            **patch: Fields to change (subset of UPDATABLE_FIELDS)

        Returns:
            UpdatedEntry: Updated root, chunks created and whether re-chunking ran

        Raises:
            ValidationError: Unknown field, blank title/content, invalid source,
                or entry_id addresses a chunk
            EntryNotFoundError: Unknown entry_id
            EntryConflictError: Entry changed by another writer on every attempt
            StorageError: Database failure (transaction rolled back)
        """
        patch = self._validate_patch(patch)

        async with self.locks.hold(entry_id):
            for attempt in range(1, UPDATE_ATTEMPTS + 1):
                snapshot = await self._read_root_snapshot(entry_id)
                changes = {
                    field: value
                    for field, value in patch.items()
                    if snapshot[field] != value
                }
                changed = set(changes)
                target = {**snapshot, **changes}

                reembed = bool(changed & _EMBEDDED_FIELDS)
                rechunked = bool(changed & _CHUNK_SHAPING_FIELDS)
                embedding = None
                if reembed:
                    embedding = await self.gateway.embed(
                        render_root_text(target["title"], target["summary"], target["content"])
                    )
                chunk_rows: list[dict[str, Any]] = []
                if rechunked:
                    chunk_rows = await self._prepare_chunks(
                        target["title"],
                        target["content"],
                        url=target["url"],
                        tags=target["tags"],
                        source=target["source"],
                        source_message_id=target["source_message_id"],
                    )

                try:
                    entry = await self._get_root_for_write(entry_id)
                    if _snapshot(entry) != snapshot:
                        await self.db.rollback()
                        logger.warning(
                            "Knowledge entry changed while preparing update",
                            extra={"entry_id": str(entry_id), "attempt": attempt},
                        )
                        continue

                    for field, value in changes.items():
                        setattr(entry, field, value)
                    if reembed:
                        entry.embedding = embedding

                    if rechunked:
                        deleted = await self.crud.delete_chunks(self.db, entry.id)
                        await self.db.flush()
                        await self._insert_chunks(entry.id, chunk_rows)
                        logger.info(
                            "Knowledge entry re-chunked",
                            extra={
                                "entry_id": str(entry.id),
                                "chunks_deleted": deleted,
                                "chunks_created": len(chunk_rows),
                            },
                        )
                    elif changed & _INHERITED_FIELDS:
                        await self.crud.update_chunks(
                            self.db,
                            entry.id,
                            **{field: changes[field] for field in changed & _INHERITED_FIELDS},
                        )

                    await self.db.commit()
                except KnowledgeEngineException:
                    await self.db.rollback()
                    raise
                except SQLAlchemyError as e:
                    await self.db.rollback()
                    logger.error(
                        "Failed to update knowledge entry",
                        extra={"error": str(e), "entry_id": str(entry_id)},
                    )
                    raise StorageError("Failed to update knowledge entry", operation="update") from e

                logger.info(
                    "Knowledge entry updated",
                    extra={"entry_id": str(entry_id), "fields": sorted(changed)},
                )
                return UpdatedEntry(
                    entry=entry, chunks_created=len(chunk_rows), rechunked=rechunked
                )

        raise EntryConflictError(entry_id, details={"attempts": UPDATE_ATTEMPTS})

    async def delete_entry(self, entry_id: UUID) -> int:
        """
        Delete a root entry and all of its chunks in one transaction.

        Args:
            entry_id: Root entry UUID

        Returns:
            int: Number of chunks deleted

        Raises:
            EntryNotFoundError: Unknown entry_id
            ValidationError: entry_id addresses a chunk
            StorageError: Database failure (transaction rolled back)
        """
        async with self.locks.hold(entry_id):
            try:
                await self._get_root_for_write(entry_id)
                chunks_deleted = await self.crud.delete_chunks(self.db, entry_id)
                await self.crud.delete_by_id(self.db, entry_id)
                await self.db.commit()
            except KnowledgeEngineException:
                await self.db.rollback()
                raise
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(
                    "Failed to delete knowledge entry",
                    extra={"error": str(e), "entry_id": str(entry_id)},
                )
                raise StorageError("Failed to delete knowledge entry", operation="delete") from e

        logger.info(
            "Knowledge entry deleted",
            extra={"entry_id": str(entry_id), "chunks_deleted": chunks_deleted},
        )
        return chunks_deleted

    async def get_entry(self, entry_id: UUID) -> KnowledgeEntryModel:
        """
        Get an entry (root or chunk) by ID.

        Raises:
            EntryNotFoundError: Unknown entry_id
            StorageError: Database failure
        """
        try:
            entry = await self.crud.get_by_id(self.db, entry_id)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to get knowledge entry",
                extra={"error": str(e), "entry_id": str(entry_id)},
            )
            raise StorageError("Failed to get knowledge entry", operation="get") from e

        if entry is None:
            raise EntryNotFoundError(entry_id)
        return entry

    async def list_entries(
        self,
        search: str | None = None,
        source: KnowledgeSource | str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[KnowledgeEntryModel]:
        """
        List root entries, newest first.

        Args:
            search: Case-insensitive substring of title or summary
            source: Provenance filter
            limit: Maximum number of entries
            offset: Number of entries to skip

        Returns:
            list[KnowledgeEntryModel]: Root entries

        Raises:
            ValidationError: Invalid source
            StorageError: Database failure
        """
        source = _coerce_source(source) if source is not None else None
        search = search.strip() if search else None

        try:
            entries = await self.crud.list_roots(
                self.db,
                search=search or None,
                source=source,
                limit=limit,
                offset=offset,
            )
        except SQLAlchemyError as e:
            logger.error("Failed to list knowledge entries", extra={"error": str(e)})
            raise StorageError("Failed to list knowledge entries", operation="list") from e

        return list(entries)

    async def get_chunks(self, entry_id: UUID) -> list[KnowledgeEntryModel]:
        """
        Get the chunks of an entry ordered by chunk index.

        Args:
            entry_id: Root entry UUID

        Returns:
            list[KnowledgeEntryModel]: Chunks (empty for short documents)

        Raises:
            EntryNotFoundError: Unknown entry_id
            StorageError: Database failure
        """
        try:
            if not await self.crud.exists(self.db, entry_id):
                raise EntryNotFoundError(entry_id)
            chunks = await self.crud.get_chunks(self.db, entry_id)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to get chunks",
                extra={"error": str(e), "entry_id": str(entry_id)},
            )
            raise StorageError("Failed to get chunks", operation="get_chunks") from e

        return list(chunks)

    async def _read_root_snapshot(self, entry_id: UUID) -> dict[str, Any]:
        """Read a root without locking it, then end the read transaction."""
        try:
            entry = self._require_root(await self.crud.get_by_id(self.db, entry_id), entry_id)
            return _snapshot(entry)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to read knowledge entry",
                extra={"error": str(e), "entry_id": str(entry_id)},
            )
            raise StorageError("Failed to read knowledge entry", operation="update") from e
        finally:
            # Provider calls follow; no connection is held across them
            await self.db.rollback()

    async def _get_root_for_write(self, entry_id: UUID) -> KnowledgeEntryModel:
        entry = await self.crud.get_for_update(self.db, entry_id)
        return self._require_root(entry, entry_id)

    @staticmethod
    def _require_root(entry: KnowledgeEntryModel | None, entry_id: UUID) -> KnowledgeEntryModel:
        if entry is None:
            raise EntryNotFoundError(entry_id)
        if entry.is_chunk:
            raise ValidationError(
                "Chunks are managed through their root entry",
                field="id",
                details={"entry_id": str(entry_id), "parent_entry_id": str(entry.parent_entry_id)},
            )
        return entry

    def _validate_patch(self, patch: dict[str, Any]) -> dict[str, Any]:
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Unknown fields: {', '.join(sorted(unknown))}",
                details={"allowed": sorted(UPDATABLE_FIELDS)},
            )

        validated = dict(patch)
        if "title" in validated:
            validated["title"] = _require_text(validated["title"], "title")
        if "content" in validated:
            validated["content"] = _require_text(validated["content"], "content")
        if "source" in validated:
            validated["source"] = _coerce_source(validated["source"])
        if "summary" in validated:
            validated["summary"] = validated["summary"] or ""
        if "tags" in validated:
            validated["tags"] = list(validated["tags"] or [])
        return validated

    async def _prepare_chunks(
        self,
        title: str,
        content: str,
        *,
        url: str | None,
        tags: list[str],
        source: KnowledgeSource,
        source_message_id: str | None,
    ) -> list[dict[str, Any]]:
        """Chunk and embed content that exceeds the threshold; rows lack parent_entry_id."""
        if len(content) <= self.settings.chunk_threshold:
            return []

        chunks = self.chunker.chunk(content)
        total = len(chunks)
        embeddings = await self.gateway.embed_many(
            [render_chunk_text(title, chunk.text) for chunk in chunks]
        )

        return [
            {
                "title": chunk_title(title, chunk.index, total),
                "content": chunk.text,
                "summary": "",
                "url": url,
                "tags": list(tags),
                "source": source,
                "source_message_id": source_message_id,
                "embedding": embedding,
                "chunk_index": chunk.index,
            }
            for chunk, embedding in zip(chunks, embeddings)
        ]

    async def _insert_chunks(self, parent_id: UUID, chunk_rows: list[dict[str, Any]]) -> None:
        if not chunk_rows:
            return
        await self.crud.create_chunks(
            self.db,
            [{**row, "parent_entry_id": parent_id} for row in chunk_rows],
        )
