"""Async client for the OpenAI embeddings endpoint."""

import asyncio
import logging
from typing import Any

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    RateLimitError,
)

logger = logging.getLogger(__name__)


def is_transient(error: Exception) -> bool:
    """Whether an OpenAI error is worth retrying.

    Timeouts, connection drops, rate limits and 5xx responses are
    transient; other 4xx responses will fail the same way again.
    """
    if isinstance(error, (APITimeoutError, APIConnectionError, RateLimitError)):
        return True
    return isinstance(error, APIStatusError) and error.status_code >= 500


class OpenAIClient:
    """Embeds single texts through OpenAI, retrying transient failures.

    The SDK's own retries are disabled so that the attempt count and the
    backoff schedule are controlled here. Callers that need a hard deadline
    wrap ``embed_text`` in ``asyncio.wait_for``.
    """

    def __init__(
        self,
        api_key: str,
        embedding_model: str = "text-embedding-3-small",
        dimensions: int | None = 384,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_base: float = 1.0,
    ):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key
            embedding_model: Embedding model name
            dimensions: Requested vector length, None for the model default
            timeout: Per-request timeout in seconds
            max_retries: Total attempts per call
            backoff_base: Delay before the first retry; doubles each time
        """
        self.client = AsyncOpenAI(
            api_key=api_key,
            timeout=timeout,
            max_retries=0,
        )
        self.embedding_model = embedding_model
        self.dimensions = dimensions
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_base = backoff_base

    async def embed_text(self, text: str) -> list[float]:
        """Embed one text.

        Raises:
            openai.APIError: The last error once attempts are exhausted, or
                the first non-transient one
        """
        request: dict[str, Any] = {"model": self.embedding_model, "input": text}
        if self.dimensions is not None:
            request["dimensions"] = self.dimensions

        attempt = 1
        while True:
            try:
                response = await self.client.embeddings.create(**request)
                return response.data[0].embedding
            except (APITimeoutError, APIConnectionError, APIStatusError) as e:
                if not is_transient(e) or attempt >= self.max_retries:
                    logger.error(
                        f"Embedding request failed on attempt {attempt}/{self.max_retries}: "
                        f"{type(e).__name__}: {e}"
                    )
                    raise

                delay = self.backoff_base * 2 ** (attempt - 1)
                logger.warning(
                    f"Embedding request failed (attempt {attempt}/{self.max_retries}): "
                    f"{type(e).__name__}. Retrying in {delay}s..."
                )
                await asyncio.sleep(delay)
                attempt += 1

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
