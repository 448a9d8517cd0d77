"""Bookmark record model as read from the bookmark store."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BookmarkType(str, Enum):
    """Derived bookmark kind, computed per request from url/notes/title."""

    NOTE = "note"
    TWEET = "tweet"
    YOUTUBE = "youtube"
    LINK = "link"


def to_epoch_ms(value: Any) -> int | None:
    """Normalize an instant to epoch milliseconds.

    Accepts epoch milliseconds, ``datetime`` objects and ISO-8601 strings
    (as stored by the Supabase variant of the store).
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("timestamp must not be a boolean")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return int(value.timestamp() * 1000)
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return int(text)
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        return to_epoch_ms(parsed)
    raise ValueError(f"Unsupported timestamp value: {value!r}")


class BookmarkRecord(BaseModel):
    """A bookmark as owned by the external store.

    The search core never mutates records. Field names follow the store's
    camelCase JSON; Python code uses the snake_case attributes.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: str
    title: str | None = None
    notes: str | None = None
    description: str | None = None
    url: str | None = None
    tags: list[str] = Field(default_factory=list)
    collection_id: str | None = Field(default=None, alias="collectionId")
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: int | None = Field(default=None, alias="createdAt")
    updated_at: int | None = Field(default=None, alias="updatedAt")
    type: str | None = None

    @field_validator("id", "collection_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> Any:
        """Store ids may be numeric; the search core compares strings."""
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: Any) -> list[str]:
        """Lowercase tags and drop blanks and duplicates, keeping order."""
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        tags: list[str] = []
        for tag in v:
            tag = str(tag).strip().lower()
            if tag and tag not in tags:
                tags.append(tag)
        return tags

    @field_validator("metadata", mode="before")
    @classmethod
    def default_metadata(cls, v: Any) -> dict[str, Any]:
        return v or {}

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def normalize_timestamp(cls, v: Any) -> int | None:
        return to_epoch_ms(v)

    @property
    def ocr_text(self) -> str:
        """Text extracted from the bookmark's image, if any."""
        return str(self.metadata.get("ocrText") or "")

    @property
    def app_source(self) -> str | None:
        """Application the bookmark was captured from (facet value)."""
        source = self.metadata.get("appSource")
        return str(source) if source is not None else None

    def to_api(self) -> dict[str, Any]:
        """Serialize with the store's camelCase keys."""
        return self.model_dump(by_alias=True)
