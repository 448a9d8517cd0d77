"""Read-only access to the bookmark collection."""

import asyncio
import json
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from marksearch.logging_config import get_logger
from marksearch.models.bookmark import BookmarkRecord

logger = get_logger(__name__)


class BookmarkStoreError(Exception):
    """Raised when the bookmark store cannot be read."""

    pass


class BookmarkStore(Protocol):
    """Supplies a full snapshot of bookmark records per request."""

    async def load_bookmarks(self) -> list[BookmarkRecord]: ...


def parse_records(raw_records: list[Any]) -> list[BookmarkRecord]:
    """Validate raw records, skipping (and logging) the invalid ones."""
    bookmarks: list[BookmarkRecord] = []
    for position, raw in enumerate(raw_records):
        try:
            bookmarks.append(BookmarkRecord.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"Skipping invalid bookmark at position {position}: {e.error_count()} error(s)")
    return bookmarks


class JsonBookmarkStore:
    """Bookmark store backed by the flat JSON file of the desktop variant.

    The file holds either a list of bookmark objects or an object with a
    ``bookmarks`` list. A missing file is an empty collection.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    async def load_bookmarks(self) -> list[BookmarkRecord]:
        """Read and validate every bookmark in the file.

        Raises:
            BookmarkStoreError: If the file is not valid JSON or has an
                unexpected shape
        """
        raw_records = await asyncio.to_thread(self._read)
        bookmarks = parse_records(raw_records)
        logger.debug(f"Loaded {len(bookmarks)} bookmarks from {self.path}")
        return bookmarks

    def _read(self) -> list[Any]:
        if not self.path.exists():
            logger.info(f"No bookmark file at {self.path}, using empty collection")
            return []

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise BookmarkStoreError(f"Bookmark file {self.path} is not valid JSON: {e}") from e

        if isinstance(data, dict):
            data = data.get("bookmarks", [])
        if not isinstance(data, list):
            raise BookmarkStoreError(
                f"Bookmark file {self.path} must contain a list of bookmarks"
            )
        return data


class InMemoryBookmarkStore:
    """Bookmark store over records held in memory."""

    def __init__(self, records: list[BookmarkRecord | dict[str, Any]] | None = None):
        self.records = parse_records(list(records or []))

    async def load_bookmarks(self) -> list[BookmarkRecord]:
        return list(self.records)
