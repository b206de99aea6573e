"""
Embedding provider adapters.

Each provider turns one text into one vector with a single HTTPS call.
Any failure (transport error, timeout, non-2xx, malformed body) is raised
as EmbeddingProviderError so the gateway can fall through to the next
provider. The gateway checks the vector dimension for every provider.

Dependencies: httpx, knowledge_engine.core.exceptions
System role: External embedding API clients
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from knowledge_engine.core.exceptions import EmbeddingProviderError

logger = logging.getLogger(__name__)


class EmbeddingProvider(ABC):
    """Interface for a single embedding backend."""

    name: str = "provider"

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """
        Embed text into a fixed-dimension vector.

        Args:
            text: Already-truncated input text

        Returns:
            list[float]: Embedding vector

        Raises:
            EmbeddingProviderError: On any provider failure
        """


class HTTPEmbeddingProvider(EmbeddingProvider):
    """
    Base class for JSON-over-HTTPS providers.

    Subclasses build the request payload; response parsing and error
    mapping are shared. Both supported providers answer
    with ``{"data": [{"embedding": [...]}]}``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        url: str,
        model: str,
        dimensions: int,
        timeout: float = 30.0,
    ) -> None:
        """
        Initialize HTTP provider.

        Args:
            client: Shared async HTTP client (owned by the gateway)
            api_key: Bearer credential
            url: Embeddings endpoint
            model: Model identifier sent in the payload
            dimensions: Expected output dimension
            timeout: Request timeout in seconds
        """
        self._client = client
        self._api_key = api_key
        self.url = url
        self.model = model
        self.dimensions = dimensions
        self.timeout = timeout

    @abstractmethod
    def build_payload(self, text: str) -> dict[str, Any]:
        """Return the JSON request body for text."""

    async def embed(self, text: str) -> list[float]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }
        try:
            response = await self._client.post(
                self.url,
                json=self.build_payload(text),
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as e:
            raise EmbeddingProviderError(
                f"{self.name} embedding request timed out",
                provider=self.name,
                details={"timeout": self.timeout},
            ) from e
        except httpx.HTTPStatusError as e:
            raise EmbeddingProviderError(
                f"{self.name} embedding request failed",
                provider=self.name,
                status_code=e.response.status_code,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise EmbeddingProviderError(
                f"{self.name} embedding request error: {type(e).__name__}",
                provider=self.name,
            ) from e

        return self._extract_vector(body)

    def _extract_vector(self, body: Any) -> list[float]:
        try:
            vector = [float(value) for value in body["data"][0]["embedding"]]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise EmbeddingProviderError(
                f"{self.name} returned a malformed embedding response",
                provider=self.name,
            ) from e
        return vector


class VoyageEmbeddingProvider(HTTPEmbeddingProvider):
    """Voyage AI embeddings (voyage-3 supports 256/512/1024/2048 dimensions)."""

    name = "voyage"

    def build_payload(self, text: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "input": [text],
            "output_dimension": self.dimensions,
        }


class OpenAIEmbeddingProvider(HTTPEmbeddingProvider):
    """OpenAI embeddings (text-embedding-3-* accept a custom dimension)."""

    name = "openai"

    def build_payload(self, text: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "input": text,
            "dimensions": self.dimensions,
        }
