"""
Knowledge ingestion and retrieval settings.

Chunking thresholds, rank fusion constant and search limits.

Dependencies: pydantic, pydantic_settings
System role: Tuning knobs for the knowledge store and hybrid search
"""

import re

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Text search configuration names are interpolated into generated-column DDL
TEXT_SEARCH_CONFIG_PATTERN = re.compile(r"^[a-z_]+$")


class KnowledgeSettings(BaseSettings):
    """Knowledge store and hybrid retrieval configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="KNOWLEDGE_",
        case_sensitive=False,
        extra="ignore",
    )

    chunk_threshold: int = Field(
        default=2000,
        gt=0,
        description="Content longer than this many characters is split into chunks",
    )
    chunk_size: int = Field(default=1500, gt=0, description="Maximum chunk size in characters")
    chunk_overlap: int = Field(
        default=200,
        ge=0,
        description="Characters shared between consecutive chunks",
    )

    rrf_k: int = Field(default=60, gt=0, description="Reciprocal Rank Fusion constant")
    default_search_limit: int = Field(default=10, gt=0, description="Default result count")
    max_search_limit: int = Field(default=50, gt=0, description="Upper bound on result count")
    candidate_multiplier: int = Field(
        default=2,
        gt=0,
        description="Each retrieval path fetches limit * multiplier candidates",
    )

    text_search_config: str = Field(
        default="simple",
        pattern=TEXT_SEARCH_CONFIG_PATTERN.pattern,
        description="PostgreSQL text search configuration used by the search_vector column",
    )

    @model_validator(mode="after")
    def _check_chunk_bounds(self) -> "KnowledgeSettings":
        if 2 * self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be less than half of chunk_size")
        if self.default_search_limit > self.max_search_limit:
            raise ValueError("default_search_limit cannot exceed max_search_limit")
        return self
