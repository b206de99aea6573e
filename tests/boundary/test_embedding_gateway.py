"""
Test suite for the embedding provider gateway.

Tests ordered provider fallback, None on total failure, truncation, dimension
guarding, retries and concurrency of batch embedding. Provider HTTP calls are
served by httpx.MockTransport.

System role: Verification of embedding provider integration
"""

import asyncio
import json

import httpx
import pytest

from knowledge_engine.boundary.embeddings import (
    EmbeddingGateway,
    EmbeddingProvider,
    OpenAIEmbeddingProvider,
    VoyageEmbeddingProvider,
)
from knowledge_engine.configs import EmbeddingSettings
from knowledge_engine.core.exceptions import EmbeddingProviderError

DIMENSIONS = 4
VOYAGE_URL = "https://voyage.test/v1/embeddings"
OPENAI_URL = "https://openai.test/v1/embeddings"


def _vector(value: float) -> list[float]:
    return [value] * DIMENSIONS


def _ok(vector: list[float]) -> httpx.Response:
    return httpx.Response(200, json={"data": [{"embedding": vector}]})


class RecordingTransport:
    """Routes requests per host to scripted handlers and records request bodies."""

    def __init__(self, routes: dict[str, object]) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes[request.url.host]
        if callable(handler):
            return handler(request)
        return handler

    def bodies_for(self, host: str) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.url.host == host]


def _gateway(transport: RecordingTransport, **kwargs) -> EmbeddingGateway:
    client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
    providers = [
        VoyageEmbeddingProvider(
            client=client, api_key="v-key", url=VOYAGE_URL, model="voyage-3",
            dimensions=DIMENSIONS, timeout=1.0,
        ),
        OpenAIEmbeddingProvider(
            client=client, api_key="o-key", url=OPENAI_URL, model="text-embedding-3-small",
            dimensions=DIMENSIONS, timeout=1.0,
        ),
    ]
    return EmbeddingGateway(providers=providers, dimensions=DIMENSIONS, client=client, **kwargs)


class TestEmbeddingGatewayFallback:
    """Test suite for ordered provider fallback."""

    @pytest.mark.asyncio
    async def test_should_return_first_provider_vector(self) -> None:
        """Test the primary provider answers and the secondary is never called."""
        transport = RecordingTransport({
            "voyage.test": _ok(_vector(0.1)),
            "openai.test": _ok(_vector(0.9)),
        })
        gateway = _gateway(transport)

        vector = await gateway.embed("hello")

        assert vector == _vector(0.1)
        assert transport.bodies_for("openai.test") == []
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_should_send_provider_specific_payloads(self) -> None:
        """Test Voyage gets output_dimension and OpenAI gets dimensions, both with Bearer auth."""
        transport = RecordingTransport({
            "voyage.test": httpx.Response(500),
            "openai.test": _ok(_vector(0.2)),
        })
        gateway = _gateway(transport)

        await gateway.embed("payload text")

        assert transport.bodies_for("voyage.test") == [
            {"model": "voyage-3", "input": ["payload text"], "output_dimension": DIMENSIONS}
        ]
        assert transport.bodies_for("openai.test") == [
            {"model": "text-embedding-3-small", "input": "payload text", "dimensions": DIMENSIONS}
        ]
        assert transport.requests[0].headers["Authorization"] == "Bearer v-key"
        assert transport.requests[1].headers["Authorization"] == "Bearer o-key"
        await gateway.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "voyage_response",
        [
            httpx.Response(429, json={"error": "rate limited"}),
            httpx.Response(200, json={"unexpected": True}),
            httpx.Response(200, content=b"not json"),
            _ok([0.5] * (DIMENSIONS + 1)),
        ],
        ids=["non-2xx", "missing-data", "invalid-json", "wrong-dimension"],
    )
    async def test_should_fall_through_on_provider_failure(
        self, voyage_response: httpx.Response
    ) -> None:
        """Test any primary failure falls through to the secondary provider."""
        transport = RecordingTransport({
            "voyage.test": voyage_response,
            "openai.test": _ok(_vector(0.7)),
        })
        gateway = _gateway(transport)

        vector = await gateway.embed("hello")

        assert vector == _vector(0.7)
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_wrong_dimension_from_any_provider_should_fall_through(self) -> None:
        """Test the dimension guard applies to providers that are not HTTP adapters."""

        class FixedProvider(EmbeddingProvider):
            def __init__(self, name: str, vector: list[float]) -> None:
                self.name = name
                self.vector = vector
                self.calls = 0

            async def embed(self, text: str) -> list[float]:
                self.calls += 1
                return self.vector

        short = FixedProvider("short", [0.1] * (DIMENSIONS - 1))
        exact = FixedProvider("exact", _vector(0.3))

        assert await EmbeddingGateway(providers=[short], dimensions=DIMENSIONS).embed("hi") is None
        gateway = EmbeddingGateway(providers=[short, exact], dimensions=DIMENSIONS)

        assert await gateway.embed("hello") == _vector(0.3)
        assert (short.calls, exact.calls) == (2, 1)

    @pytest.mark.asyncio
    async def test_should_fall_through_on_timeout(self) -> None:
        """Test a timed-out primary falls through to the secondary provider."""
        def timeout(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        transport = RecordingTransport({
            "voyage.test": timeout,
            "openai.test": _ok(_vector(0.3)),
        })
        gateway = _gateway(transport)

        assert await gateway.embed("hello") == _vector(0.3)
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_should_return_none_when_all_providers_fail(self) -> None:
        """Test total failure yields None instead of raising."""
        def connect_error(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        transport = RecordingTransport({
            "voyage.test": httpx.Response(503),
            "openai.test": connect_error,
        })
        gateway = _gateway(transport)

        assert await gateway.embed("hello") is None
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_should_return_none_without_providers(self) -> None:
        """Test a gateway with no provider configured returns None."""
        gateway = EmbeddingGateway(providers=[], dimensions=DIMENSIONS)

        assert gateway.available is False
        assert await gateway.embed("hello") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   \n"])
    async def test_blank_text_should_return_none_without_calls(self, text: str) -> None:
        """Test blank input never reaches a provider."""
        transport = RecordingTransport({"voyage.test": _ok(_vector(0.1))})
        gateway = _gateway(transport)

        assert await gateway.embed(text) is None
        assert transport.requests == []
        await gateway.aclose()


class TestEmbeddingGatewayInput:
    """Test suite for input handling and batching."""

    @pytest.mark.asyncio
    async def test_should_truncate_input(self) -> None:
        """Test input longer than max_input_chars is cut before sending."""
        transport = RecordingTransport({"voyage.test": _ok(_vector(0.1))})
        gateway = _gateway(transport, max_input_chars=10)

        await gateway.embed("abcdefghijKLMNOP")

        assert transport.bodies_for("voyage.test")[0]["input"] == ["abcdefghij"]
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_embed_many_should_preserve_order_and_bound_concurrency(self) -> None:
        """Test batch results line up with inputs and concurrency stays under the limit."""
        in_flight = 0
        peak = 0

        class SlowProvider(VoyageEmbeddingProvider):
            async def embed(self, text: str) -> list[float]:
                nonlocal in_flight, peak
                in_flight += 1
                peak = max(peak, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1
                return _vector(float(len(text)))

        provider = SlowProvider(
            client=None, api_key="k", url=VOYAGE_URL, model="voyage-3", dimensions=DIMENSIONS,
        )
        gateway = EmbeddingGateway(providers=[provider], dimensions=DIMENSIONS, concurrency=2)

        vectors = await gateway.embed_many(["a", "bb", "ccc", "dddd", "eeeee"])

        assert [v[0] for v in vectors] == [1.0, 2.0, 3.0, 4.0, 5.0]
        assert peak <= 2

    @pytest.mark.asyncio
    async def test_should_retry_when_configured(self) -> None:
        """Test max_retries gives the same provider extra attempts before falling through."""
        attempts = 0

        def flaky(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            return httpx.Response(502) if attempts == 1 else _ok(_vector(0.4))

        transport = RecordingTransport({"voyage.test": flaky, "openai.test": _ok(_vector(0.9))})
        gateway = _gateway(transport, max_retries=1)

        vector = await gateway.embed("hello")

        assert vector == _vector(0.4)
        assert attempts == 2
        assert transport.bodies_for("openai.test") == []
        await gateway.aclose()


class TestEmbeddingGatewayFromSettings:
    """Test suite for EmbeddingGateway.from_settings()."""

    @pytest.mark.asyncio
    async def test_should_configure_only_providers_with_keys(self) -> None:
        """Test a provider without an API key is skipped."""
        settings = EmbeddingSettings(VOYAGE_API_KEY=None, OPENAI_API_KEY="o-key", dimensions=DIMENSIONS)

        gateway = EmbeddingGateway.from_settings(settings)

        assert [p.name for p in gateway.providers] == ["openai"]
        assert gateway.dimensions == DIMENSIONS
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_should_follow_configured_order(self) -> None:
        """Test provider_order decides fallback priority and unknown names are ignored."""
        settings = EmbeddingSettings(
            VOYAGE_API_KEY="v-key",
            OPENAI_API_KEY="o-key",
            provider_order=["openai", "cohere", "voyage"],
        )

        gateway = EmbeddingGateway.from_settings(settings)

        assert [p.name for p in gateway.providers] == ["openai", "voyage"]
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_should_build_empty_gateway_without_keys(self) -> None:
        """Test no API keys means no providers, not an error."""
        settings = EmbeddingSettings(VOYAGE_API_KEY=None, OPENAI_API_KEY=None)

        gateway = EmbeddingGateway.from_settings(settings)

        assert gateway.available is False
        await gateway.aclose()


class TestProviderErrors:
    """Test suite for provider error mapping."""

    @pytest.mark.asyncio
    async def test_status_error_should_carry_status_code(self) -> None:
        """Test a non-2xx answer raises EmbeddingProviderError with the status code."""
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(401)))
        provider = OpenAIEmbeddingProvider(
            client=client, api_key="bad", url=OPENAI_URL, model="m", dimensions=DIMENSIONS,
        )

        with pytest.raises(EmbeddingProviderError) as exc_info:
            await provider.embed("hello")

        assert exc_info.value.status_code == 401
        assert exc_info.value.provider == "openai"
        await client.aclose()
