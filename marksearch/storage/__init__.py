"""Bookmark storage adapters."""

from marksearch.storage.bookmark_store import (
    BookmarkStore,
    BookmarkStoreError,
    InMemoryBookmarkStore,
    JsonBookmarkStore,
)

__all__ = [
    "BookmarkStore",
    "BookmarkStoreError",
    "InMemoryBookmarkStore",
    "JsonBookmarkStore",
]
