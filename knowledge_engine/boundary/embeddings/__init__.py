"""
Embedding boundary layer.

Exports:
  - EmbeddingGateway: Ordered provider fallback returning a vector or None
  - EmbeddingProvider: Provider interface
  - VoyageEmbeddingProvider, OpenAIEmbeddingProvider: HTTPS adapters

Dependencies: httpx, tenacity
System role: Adapter between the engine and external embedding APIs
"""

from knowledge_engine.boundary.embeddings.gateway import EmbeddingGateway
from knowledge_engine.boundary.embeddings.providers import (
    EmbeddingProvider,
    HTTPEmbeddingProvider,
    OpenAIEmbeddingProvider,
    VoyageEmbeddingProvider,
)

__all__ = [
    "EmbeddingGateway",
    "EmbeddingProvider",
    "HTTPEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "VoyageEmbeddingProvider",
]
