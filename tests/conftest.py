"""Pytest configuration and shared fixtures."""

import os
import time

import pytest

from marksearch.config import Settings
from marksearch.retrieval.embeddings import EmbeddingService
from marksearch.services.search_service import SearchService
from marksearch.storage.bookmark_store import InMemoryBookmarkStore

# Tests never reach the embedding provider
os.environ.pop("OPENAI_API_KEY", None)

DAY_MS = 24 * 60 * 60 * 1000


@pytest.fixture
def now_ms():
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


@pytest.fixture
def test_settings():
    """Settings with defaults only (no .env file, no provider key)."""
    return Settings(_env_file=None, openai_api_key=None)


@pytest.fixture
def sample_bookmarks(now_ms):
    """A small mixed collection covering every bookmark type."""
    return [
        {
            "id": "1",
            "title": "Learning Python the hard way",
            "notes": "Great intro to python scripting",
            "url": "https://learnpythonthehardway.org/book/",
            "tags": ["python", "programming"],
            "collectionId": "dev",
            "metadata": {"appSource": "chrome"},
            "createdAt": now_ms - 2 * DAY_MS,
        },
        {
            "id": "2",
            "title": "Weekly standup notes",
            "notes": "Discussed the release plan",
            "type": "note",
            "tags": ["work"],
            "collectionId": "work",
            "createdAt": now_ms,
        },
        {
            "id": "3",
            "title": "Thread on async python",
            "url": "https://x.com/someone/status/123",
            "tags": ["python"],
            "metadata": {"appSource": "twitter"},
            "createdAt": now_ms - 10 * DAY_MS,
        },
        {
            "id": "4",
            "title": "Banana bread recipe",
            "description": "Moist and easy",
            "url": "https://www.youtube.com/watch?v=abc",
            "tags": ["cooking"],
            "collectionId": "home",
            "createdAt": now_ms - 40 * DAY_MS,
        },
        {
            "id": "5",
            "title": "Sourdough starter guide",
            "url": "https://example.com/sourdough",
            "tags": ["cooking", "baking"],
            "collectionId": "home",
            "metadata": {"ocrText": "feed the starter twice a day"},
            "createdAt": now_ms - 400 * DAY_MS,
        },
    ]


@pytest.fixture
def embedding_service():
    """Embedding service running on the local fallback only."""
    return EmbeddingService(client=None)


@pytest.fixture
def search_service(sample_bookmarks, embedding_service, test_settings):
    """Search service over the sample collection."""
    return SearchService(
        store=InMemoryBookmarkStore(sample_bookmarks),
        embedding_service=embedding_service,
        settings=test_settings,
    )
