"""
Embedding provider gateway.

Tries an ordered list of providers and returns the first vector produced.
When every provider fails, or none is configured, the result is None:
callers treat that as the expected "no embedding" outcome and fall back to
keyword-only behaviour.

Dependencies: httpx, tenacity, knowledge_engine.configs
System role: Single entry point for all embedding generation
"""

import asyncio
import logging
from typing import Sequence

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from knowledge_engine.boundary.embeddings.providers import (
    EmbeddingProvider,
    OpenAIEmbeddingProvider,
    VoyageEmbeddingProvider,
)
from knowledge_engine.configs.embedding import EmbeddingSettings
from knowledge_engine.core.exceptions import EmbeddingProviderError

logger = logging.getLogger(__name__)

_PROVIDER_CLASSES = {
    "voyage": VoyageEmbeddingProvider,
    "openai": OpenAIEmbeddingProvider,
}


class EmbeddingGateway:
    """
    Ordered-fallback embedding gateway.

    Each provider gets one attempt per call (plus max_retries extra attempts
    when configured). A provider failure is logged and the next provider is
    tried; no exception ever leaves embed().
    """

    def __init__(
        self,
        providers: Sequence[EmbeddingProvider],
        dimensions: int,
        max_input_chars: int = 32000,
        max_retries: int = 0,
        concurrency: int = 4,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize gateway.

        Args:
            providers: Providers in priority order
            dimensions: Process-wide vector dimension
            max_input_chars: Input truncation budget
            max_retries: Extra attempts per provider (0 = single attempt)
            concurrency: Maximum concurrent calls in embed_many
            client: HTTP client shared by the providers, closed by aclose()
        """
        self.providers = list(providers)
        self.dimensions = dimensions
        self.max_input_chars = max_input_chars
        self.max_retries = max_retries
        self.concurrency = max(1, concurrency)
        self._client = client

    @classmethod
    def from_settings(
        cls,
        settings: EmbeddingSettings,
        client: httpx.AsyncClient | None = None,
    ) -> "EmbeddingGateway":
        """
        Build gateway with every provider that has an API key, in configured order.

        Args:
            settings: Embedding settings
            client: Optional HTTP client (created when omitted)

        Returns:
            EmbeddingGateway: Configured gateway (possibly with zero providers)
        """
        client = client or httpx.AsyncClient()
        credentials = {
            "voyage": (settings.voyage_api_key, settings.voyage_url, settings.voyage_model),
            "openai": (settings.openai_api_key, settings.openai_url, settings.openai_model),
        }

        providers: list[EmbeddingProvider] = []
        for name in settings.provider_order:
            if name not in _PROVIDER_CLASSES:
                logger.warning("Unknown embedding provider skipped", extra={"provider": name})
                continue
            api_key, url, model = credentials[name]
            if not api_key:
                continue
            providers.append(
                _PROVIDER_CLASSES[name](
                    client=client,
                    api_key=api_key,
                    url=url,
                    model=model,
                    dimensions=settings.dimensions,
                    timeout=settings.request_timeout,
                )
            )

        if not providers:
            logger.warning("No embedding provider configured; search degrades to keyword-only")
        else:
            logger.info(
                "Embedding gateway initialized",
                extra={"providers": [p.name for p in providers], "dimensions": settings.dimensions},
            )

        return cls(
            providers=providers,
            dimensions=settings.dimensions,
            max_input_chars=settings.max_input_chars,
            max_retries=settings.max_retries,
            concurrency=settings.concurrency,
            client=client,
        )

    @property
    def available(self) -> bool:
        """True when at least one provider is configured."""
        return bool(self.providers)

    async def embed(self, text: str) -> list[float] | None:
        """
        Embed text with the first provider that succeeds.

        Args:
            text: Input text (truncated to max_input_chars)

        Returns:
            list[float] | None: Vector, or None when no provider produced one
        """
        if not text or not text.strip():
            return None

        truncated = text[: self.max_input_chars]
        for provider in self.providers:
            try:
                vector = await self._call_provider(provider, truncated)
            except EmbeddingProviderError as e:
                logger.warning(
                    "Embedding provider failed, trying next",
                    extra={"provider": provider.name, "error": str(e)},
                )
                continue

            if len(vector) != self.dimensions:
                logger.warning(
                    "Embedding dimension mismatch, trying next",
                    extra={
                        "provider": provider.name,
                        "received": len(vector),
                        "expected": self.dimensions,
                    },
                )
                continue
            return vector

        if self.providers:
            logger.error("All embedding providers failed")
        return None

    async def embed_many(self, texts: Sequence[str]) -> list[list[float] | None]:
        """
        Embed a batch of texts concurrently, preserving order.

        Args:
            texts: Input texts

        Returns:
            list: One vector (or None) per input text
        """
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _bounded(text: str) -> list[float] | None:
            async with semaphore:
                return await self.embed(text)

        return list(await asyncio.gather(*(_bounded(text) for text in texts)))

    async def _call_provider(self, provider: EmbeddingProvider, text: str) -> list[float]:
        """Call provider with the configured retry budget."""
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(EmbeddingProviderError),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential_jitter(initial=0.5, max=8, jitter=1),
            before_sleep=lambda retry_state: logger.warning(
                f"{__name__}:embed - Retry {retry_state.attempt_number}/"
                f"{self.max_retries + 1} for {provider.name}"
            ),
            reraise=True,
        ):
            with attempt:
                return await provider.embed(text)
        raise EmbeddingProviderError("Retry loop exited without a result", provider=provider.name)

    async def aclose(self) -> None:
        """Close the shared HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
