"""Embedding provider adapter with a deterministic local fallback."""

import asyncio
import hashlib
import re
from collections import Counter
from dataclasses import dataclass

import numpy as np

from marksearch.clients.openai_client import OpenAIClient
from marksearch.config import Settings
from marksearch.logging_config import get_logger

logger = get_logger(__name__)

OPENAI_METHOD = "openai"
FALLBACK_METHOD = "fallback"

_TOKEN_SPLIT = re.compile(r"\W+")


@dataclass(frozen=True)
class EmbeddingResult:
    """An embedding vector and where it came from (openai or fallback)."""

    vector: list[float]
    source: str


def string_hash(token: str) -> int:
    """Deterministic 32-bit string hash (``h * 31 + c`` with signed wrap).

    Python's built-in ``hash`` is salted per process, so it cannot be used
    for vectors that must be identical across runs.
    """
    h = 0
    for ch in token:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def fallback_embedding(text: str, dimensions: int = 384) -> list[float]:
    """Bag-of-words pseudo-embedding derived from word frequencies.

    Tokens longer than two characters are hashed into ``dimensions``
    buckets; each bucket accumulates the token's relative frequency and
    the result is L2-normalized. Text without such tokens yields the zero
    vector.

    Args:
        text: Input text
        dimensions: Vector length

    Returns:
        Vector of ``dimensions`` floats
    """
    tokens = [token for token in _TOKEN_SPLIT.split(text.lower()) if len(token) > 2]
    vector = np.zeros(dimensions, dtype=np.float64)
    if not tokens:
        return vector.tolist()

    total = len(tokens)
    for token, count in Counter(tokens).items():
        vector[string_hash(token) % dimensions] += count / total

    magnitude = np.linalg.norm(vector)
    if magnitude > 0:
        vector /= magnitude
    return vector.tolist()


class EmbeddingService:
    """Converts text into fixed-length vectors for cosine comparison.

    Uses the OpenAI client when one is configured and falls back to
    ``fallback_embedding`` when the client is missing, fails or exceeds the
    timeout. Provider calls are bounded by a semaphore. Results are cached
    for the lifetime of the service, keyed by a text prefix (or a full
    content hash when ``cache_key="content"``). A fallback vector produced
    while a client is configured is not cached, so the text is retried
    against the provider on its next use.
    """

    def __init__(
        self,
        client: OpenAIClient | None = None,
        dimensions: int = 384,
        max_input_chars: int = 8000,
        cache_prefix_chars: int = 100,
        cache_key: str = "prefix",
        max_concurrency: int = 8,
        timeout: float = 10.0,
    ):
        """Initialize embedding service.

        Args:
            client: OpenAI client, or None to always use the fallback
            dimensions: Length of every produced vector
            max_input_chars: Provider input is truncated to this length
            cache_prefix_chars: Prefix length used as cache key
            cache_key: ``prefix`` or ``content``
            max_concurrency: Maximum in-flight provider calls
            timeout: Per-call provider deadline in seconds
        """
        self.client = client
        self.dimensions = dimensions
        self.max_input_chars = max_input_chars
        self.cache_prefix_chars = cache_prefix_chars
        self.cache_key_mode = cache_key
        self.max_concurrency = max_concurrency
        self.timeout = timeout

        self.cache: dict[str, EmbeddingResult] = {}
        self.provider_calls = 0
        self.provider_failures = 0
        self._semaphore = asyncio.Semaphore(max_concurrency)

        logger.info(
            f"Initialized EmbeddingService: method={self.method}, "
            f"dimensions={dimensions}, max_concurrency={max_concurrency}, "
            f"timeout={timeout}s, cache_key={cache_key}"
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmbeddingService":
        """Build the service (and its OpenAI client, if a key is set)."""
        client = None
        if settings.embeddings_enabled:
            client = OpenAIClient(
                api_key=settings.openai_api_key,
                embedding_model=settings.openai_embedding_model,
                dimensions=settings.embedding_dimensions,
                timeout=settings.embedding_timeout,
                max_retries=settings.embedding_max_retries,
            )
        return cls(
            client=client,
            dimensions=settings.embedding_dimensions,
            max_input_chars=settings.embedding_max_input_chars,
            cache_prefix_chars=settings.embedding_cache_prefix_chars,
            cache_key=settings.embedding_cache_key,
            max_concurrency=settings.embedding_max_concurrency,
            timeout=settings.embedding_timeout,
        )

    @property
    def method(self) -> str:
        """Configured embedding source."""
        return OPENAI_METHOD if self.client is not None else FALLBACK_METHOD

    @property
    def cache_size(self) -> int:
        return len(self.cache)

    def cache_key(self, text: str) -> str:
        if self.cache_key_mode == "content":
            return hashlib.sha256(text.encode("utf-8")).hexdigest()
        return text[: self.cache_prefix_chars]

    async def embed(self, text: str) -> EmbeddingResult:
        """Embed text, serving from cache when possible.

        Never raises for string input: provider problems degrade to the
        fallback vector.
        """
        key = self.cache_key(text)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        result = await self._compute(text)
        if result.source == OPENAI_METHOD or self.client is None:
            self.cache[key] = result
        return result

    async def embed_many(self, texts: list[str]) -> list[EmbeddingResult]:
        """Embed all texts concurrently; provider width stays bounded."""
        return list(await asyncio.gather(*(self.embed(text) for text in texts)))

    async def _compute(self, text: str) -> EmbeddingResult:
        if self.client is not None and text.strip():
            vector = await self._provider_embed(text[: self.max_input_chars])
            if vector is not None:
                return EmbeddingResult(vector=vector, source=OPENAI_METHOD)
        return EmbeddingResult(
            vector=fallback_embedding(text, self.dimensions),
            source=FALLBACK_METHOD,
        )

    async def _provider_embed(self, text: str) -> list[float] | None:
        async with self._semaphore:
            self.provider_calls += 1
            try:
                vector = await asyncio.wait_for(self.client.embed_text(text), self.timeout)
            except asyncio.TimeoutError:
                self.provider_failures += 1
                logger.warning(
                    f"Embedding provider timed out after {self.timeout}s, using fallback"
                )
                return None
            except Exception as e:
                self.provider_failures += 1
                logger.warning(
                    f"Embedding provider failed ({type(e).__name__}: {e}), using fallback"
                )
                return None

        if len(vector) != self.dimensions:
            self.provider_failures += 1
            logger.warning(
                f"Embedding provider returned {len(vector)} dimensions, "
                f"expected {self.dimensions}; using fallback"
            )
            return None
        return list(vector)

    async def close(self) -> None:
        """Close the underlying client, if any."""
        if self.client is not None:
            await self.client.close()
