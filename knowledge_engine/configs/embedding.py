"""
Embedding provider configuration settings.

Controls the ordered provider list, the process-wide vector dimension,
request budgets and per-provider credentials.

Dependencies: pydantic, pydantic_settings
System role: Embedding gateway configuration
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmbeddingSettings(BaseSettings):
    """Embedding gateway configuration (Voyage AI first, OpenAI fallback)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="EMBEDDING_",
        case_sensitive=False,
        extra="ignore",
    )

    dimensions: int = Field(
        default=1024,
        gt=0,
        description="Vector dimension shared by every provider and the embedding column",
    )
    max_input_chars: int = Field(
        default=32000,
        gt=0,
        description="Input is truncated to this many characters before sending",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Per-provider request timeout in seconds",
    )
    max_retries: int = Field(
        default=0,
        ge=0,
        description="Extra attempts per provider before falling through (0 = single attempt)",
    )
    concurrency: int = Field(
        default=4,
        gt=0,
        description="Maximum concurrent provider calls when embedding chunks",
    )
    provider_order: list[str] = Field(
        default=["voyage", "openai"],
        description="Providers tried in order; a provider without an API key is skipped",
    )

    voyage_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("EMBEDDING_VOYAGE_API_KEY", "VOYAGE_API_KEY"),
        description="Voyage AI API key",
    )
    voyage_model: str = Field(default="voyage-3", description="Voyage AI embedding model")
    voyage_url: str = Field(
        default="https://api.voyageai.com/v1/embeddings",
        description="Voyage AI embeddings endpoint",
    )

    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("EMBEDDING_OPENAI_API_KEY", "OPENAI_API_KEY"),
        description="OpenAI API key",
    )
    openai_model: str = Field(
        default="text-embedding-3-small",
        description="OpenAI embedding model",
    )
    openai_url: str = Field(
        default="https://api.openai.com/v1/embeddings",
        description="OpenAI embeddings endpoint",
    )
