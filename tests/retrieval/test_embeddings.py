"""Tests for the embedding service and its local fallback."""

import asyncio
import math

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from unittest.mock import AsyncMock, MagicMock

from marksearch.config import Settings
from marksearch.retrieval.embeddings import (
    FALLBACK_METHOD,
    OPENAI_METHOD,
    EmbeddingService,
    fallback_embedding,
    string_hash,
)


def _provider_vector(value: float = 1.0, dimensions: int = 384) -> list[float]:
    return [value] + [0.0] * (dimensions - 1)


def _mock_client(**kwargs) -> MagicMock:
    client = MagicMock()
    client.embed_text = AsyncMock(**kwargs)
    client.close = AsyncMock()
    return client


class TestFallbackEmbedding:
    """Test the deterministic hash embedding."""

    def test_string_hash_matches_known_values(self):
        """The 32-bit hash follows h * 31 + c."""
        assert string_hash("") == 0
        assert string_hash("a") == 97
        assert string_hash("ab") == 97 * 31 + 98

    def test_string_hash_wraps_to_32_bits(self):
        """Long tokens wrap around and stay non-negative."""
        value = string_hash("supercalifragilisticexpialidocious")

        assert 0 <= value <= 2**31

    def test_vector_length(self):
        assert len(fallback_embedding("hello world again")) == 384
        assert len(fallback_embedding("hello world again", dimensions=64)) == 64

    def test_short_tokens_are_ignored(self):
        """Text without tokens longer than two chars is the zero vector."""
        assert fallback_embedding("a an to of") == [0.0] * 384
        assert fallback_embedding("") == [0.0] * 384

    def test_unit_length(self):
        """Non-empty vectors are L2-normalized."""
        vector = fallback_embedding("machine learning with python and numpy")

        assert math.sqrt(sum(v * v for v in vector)) == pytest.approx(1.0)

    def test_case_and_punctuation_insensitive(self):
        """Tokenization lowercases and splits on non-word characters."""
        assert fallback_embedding("Hello, World!") == fallback_embedding("hello world")

    def test_single_token_bucket(self):
        """A single token lands in its hash bucket with weight 1."""
        vector = fallback_embedding("python")

        assert vector[string_hash("python") % 384] == pytest.approx(1.0)
        assert sum(vector) == pytest.approx(1.0)

    @given(text=st.text(max_size=200))
    @settings(deadline=None)
    def test_determinism(self, text):
        """Identical input always yields an identical vector."""
        assert fallback_embedding(text) == fallback_embedding(text)


class TestEmbeddingService:
    """Test provider calls, caching and fallback."""

    @pytest.mark.asyncio
    async def test_no_client_uses_fallback(self, embedding_service):
        """Without a client every vector comes from the fallback."""
        result = await embedding_service.embed("python asyncio tutorial")

        assert embedding_service.method == FALLBACK_METHOD
        assert result.source == FALLBACK_METHOD
        assert result.vector == fallback_embedding("python asyncio tutorial")

    @pytest.mark.asyncio
    async def test_provider_success(self):
        """Provider vectors are returned and labelled openai."""
        client = _mock_client(return_value=_provider_vector())
        service = EmbeddingService(client=client)

        result = await service.embed("hello world")

        assert service.method == OPENAI_METHOD
        assert result.source == OPENAI_METHOD
        assert result.vector == _provider_vector()
        client.embed_text.assert_awaited_once_with("hello world")

    @pytest.mark.asyncio
    async def test_provider_failure_falls_back(self):
        """Provider errors degrade to the fallback instead of raising."""
        client = _mock_client(side_effect=RuntimeError("provider down"))
        service = EmbeddingService(client=client)

        result = await service.embed("hello world")

        assert result.source == FALLBACK_METHOD
        assert result.vector == fallback_embedding("hello world")
        assert service.provider_failures == 1

    @pytest.mark.asyncio
    async def test_provider_timeout_falls_back(self):
        """A provider call exceeding the timeout degrades to the fallback."""

        async def slow_embed(text):
            await asyncio.sleep(1)
            return _provider_vector()

        client = MagicMock()
        client.embed_text = slow_embed
        service = EmbeddingService(client=client, timeout=0.01)

        result = await service.embed("hello world")

        assert result.source == FALLBACK_METHOD
        assert service.provider_failures == 1

    @pytest.mark.asyncio
    async def test_wrong_dimensions_fall_back(self):
        """A provider vector of the wrong length is not used."""
        client = _mock_client(return_value=[0.1, 0.2, 0.3])
        service = EmbeddingService(client=client)

        result = await service.embed("hello world")

        assert result.source == FALLBACK_METHOD
        assert len(result.vector) == 384

    @pytest.mark.asyncio
    async def test_blank_text_skips_provider(self):
        """Whitespace-only text never reaches the provider."""
        client = _mock_client(return_value=_provider_vector())
        service = EmbeddingService(client=client)

        result = await service.embed("   ")

        assert result.vector == [0.0] * 384
        client.embed_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_input_truncated(self):
        """Provider input is truncated to the configured maximum."""
        client = _mock_client(return_value=_provider_vector())
        service = EmbeddingService(client=client, max_input_chars=10)

        await service.embed("x" * 50)

        client.embed_text.assert_awaited_once_with("x" * 10)

    @pytest.mark.asyncio
    async def test_cache_hits_skip_provider(self):
        """A second embed of the same text is served from cache."""
        client = _mock_client(return_value=_provider_vector())
        service = EmbeddingService(client=client)

        first = await service.embed("hello world")
        second = await service.embed("hello world")

        assert first == second
        assert service.cache_size == 1
        assert client.embed_text.await_count == 1

    @pytest.mark.asyncio
    async def test_prefix_cache_key_collides(self, embedding_service):
        """Texts sharing the key prefix share a cache entry."""
        prefix = "p" * 100
        first = await embedding_service.embed(prefix + " alpha words")
        second = await embedding_service.embed(prefix + " beta words")

        assert first is second
        assert embedding_service.cache_size == 1

    @pytest.mark.asyncio
    async def test_content_cache_key_distinguishes(self):
        """Content-hash keys keep long texts apart."""
        service = EmbeddingService(client=None, cache_key="content")
        prefix = "p" * 100

        await service.embed(prefix + " alpha words")
        await service.embed(prefix + " beta words")

        assert service.cache_size == 2

    @pytest.mark.asyncio
    async def test_fallback_cached_without_client(self, embedding_service):
        """With no provider configured the fallback vector is the final answer."""
        await embedding_service.embed("hello world")
        await embedding_service.embed("hello world")

        assert embedding_service.cache_size == 1

    @pytest.mark.asyncio
    async def test_degraded_fallback_not_cached(self):
        """A fallback caused by a provider failure is retried on the next call."""
        client = _mock_client(side_effect=RuntimeError("provider down"))
        service = EmbeddingService(client=client)

        await service.embed("hello world")
        await service.embed("hello world")

        assert client.embed_text.await_count == 2
        assert service.cache_size == 0

    @pytest.mark.asyncio
    async def test_provider_recovery_replaces_fallback(self):
        """Once the provider is back, texts embedded during the outage get provider vectors."""
        client = _mock_client(
            side_effect=[RuntimeError("provider down"), _provider_vector()]
        )
        service = EmbeddingService(client=client)

        during = await service.embed("python asyncio guide")
        after = await service.embed("python asyncio guide")
        cached = await service.embed("python asyncio guide")

        assert during.source == FALLBACK_METHOD
        assert after.source == OPENAI_METHOD
        assert cached is after
        assert client.embed_text.await_count == 2

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        """No more than max_concurrency provider calls run at once."""
        in_flight = 0
        peak = 0

        async def tracked_embed(text):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return _provider_vector()

        client = MagicMock()
        client.embed_text = tracked_embed
        service = EmbeddingService(client=client, max_concurrency=3)

        results = await service.embed_many([f"text number {i}" for i in range(12)])

        assert len(results) == 12
        assert all(r.source == OPENAI_METHOD for r in results)
        assert peak == 3
        assert service.provider_calls == 12

    @pytest.mark.asyncio
    async def test_close_closes_client(self):
        client = _mock_client(return_value=_provider_vector())
        service = EmbeddingService(client=client)

        await service.close()

        client.close.assert_awaited_once()

    def test_from_settings_without_key(self):
        """No key means no client."""
        service = EmbeddingService.from_settings(Settings(_env_file=None, openai_api_key=None))

        assert service.client is None
        assert service.method == FALLBACK_METHOD

    def test_from_settings_with_key(self):
        """A key builds an OpenAI client with the configured dimensions."""
        service = EmbeddingService.from_settings(
            Settings(
                _env_file=None,
                openai_api_key="sk-test-fake-api-key-for-unit-tests",
                embedding_max_concurrency=4,
            )
        )

        assert service.method == OPENAI_METHOD
        assert service.client.dimensions == 384
        assert service.max_concurrency == 4
