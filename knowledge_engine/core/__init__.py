"""
Core business logic module.

Contains the exception hierarchy and the pure algorithms of the engine:
chunking, rank fusion and per-key locking.
"""

from knowledge_engine.core.exceptions import (
    KnowledgeEngineException,
    ValidationError,
    EntryNotFoundError,
    EntryConflictError,
    EmbeddingProviderError,
    StorageError,
)
from knowledge_engine.core.chunker import Chunk, TextChunker, chunk_text
from knowledge_engine.core.locks import KeyedLock
from knowledge_engine.core.rank_fusion import reciprocal_rank_fusion

__all__ = [
    # Exceptions
    "KnowledgeEngineException",
    "ValidationError",
    "EntryNotFoundError",
    "EntryConflictError",
    "EmbeddingProviderError",
    "StorageError",
    # Algorithms
    "Chunk",
    "TextChunker",
    "chunk_text",
    "KeyedLock",
    "reciprocal_rank_fusion",
]
