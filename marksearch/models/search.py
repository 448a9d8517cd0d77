"""Search request/response models and the internal scored result."""

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from marksearch.models.bookmark import BookmarkRecord, BookmarkType, to_epoch_ms

DatePreset = Literal["today", "yesterday", "week", "month", "quarter", "year"]
SortBy = Literal["relevance", "date", "title"]
SearchMethod = Literal["openai", "fallback"]


class MatchInfo(BaseModel):
    """Where a lexical match landed inside one field."""

    key: str
    value: str
    indices: list[tuple[int, int]] = Field(
        default_factory=list, description="Inclusive [start, end] offsets"
    )


@dataclass
class ScoredResult:
    """A bookmark paired with its ranking score.

    Lower scores are better for both engines: lexical scores are
    Fuse-style distances, semantic scores are ``1 - similarity``.

    Attributes:
        item: The bookmark record
        type: Classified bookmark type for this request
        score: Ranking score (lower is better)
        matches: Lexical match locations (empty for semantic results)
        similarity: Cosine similarity (semantic results only)
    """

    item: BookmarkRecord
    type: BookmarkType
    score: float = 0.0
    matches: list[MatchInfo] = field(default_factory=list)
    similarity: float | None = None

    def item_payload(self) -> dict[str, Any]:
        """Bookmark fields plus the derived type, as sent to clients."""
        return {**self.item.to_api(), "type": self.type.value}


class SearchFilters(BaseModel):
    """Structured filters shared by lexical and semantic search."""

    model_config = ConfigDict(populate_by_name=True)

    types: list[str] = Field(default_factory=list)
    collections: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list, description="OR semantics")
    date_preset: DatePreset | None = Field(default=None, alias="datePreset")
    date_from: int | None = Field(default=None, alias="dateFrom")
    date_to: int | None = Field(default=None, alias="dateTo")
    sources: list[str] = Field(default_factory=list)
    sites: list[str] = Field(default_factory=list, description="URL substrings")
    exclude: list[str] = Field(default_factory=list, description="Excluded terms and phrases")
    phrases: list[str] = Field(default_factory=list, description="Exact phrases, all required")
    any_of: list[list[str]] = Field(
        default_factory=list,
        alias="anyOf",
        description="OR groups; each group needs one matching alternative",
    )
    text_terms: list[str] = Field(
        default_factory=list,
        alias="textTerms",
        description="Terms searched in notes, description and OCR text",
    )

    @field_validator("collections", mode="before")
    @classmethod
    def coerce_collection_ids(cls, v: Any) -> Any:
        if v is None:
            return []
        return [str(item) for item in v]

    @field_validator("types", "tags", "sites", "exclude", "phrases", "text_terms", mode="before")
    @classmethod
    def lowercase_values(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return [str(item).strip().lower() for item in v if str(item).strip()]

    @field_validator("any_of", mode="before")
    @classmethod
    def lowercase_groups(cls, v: Any) -> Any:
        if v is None:
            return []
        groups = []
        for group in v:
            terms = [str(term).strip().lower() for term in group if str(term).strip()]
            if terms:
                groups.append(terms)
        return groups

    @field_validator("sources", mode="before")
    @classmethod
    def default_sources(cls, v: Any) -> Any:
        return v or []

    @field_validator("date_preset", mode="before")
    @classmethod
    def blank_preset(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def normalize_instant(cls, v: Any) -> int | None:
        return to_epoch_ms(v)


class SearchRequest(BaseModel):
    """Lexical search request."""

    model_config = ConfigDict(populate_by_name=True)

    query: str = ""
    filters: SearchFilters = Field(default_factory=SearchFilters)
    page: int = Field(default=1, ge=1, description="1-based page number")
    limit: int | None = Field(
        default=None, ge=1, le=1000, description="Page size; defaults to the configured value"
    )
    sort_by: SortBy = Field(default="relevance", alias="sortBy")
    parse_syntax: bool = Field(
        default=True,
        alias="parseSyntax",
        description="Extract type:/tag:/#/date:/site:/text:/- tokens, quoted phrases and || groups",
    )

    @field_validator("query", mode="before")
    @classmethod
    def default_query(cls, v: Any) -> Any:
        return v or ""


class SemanticSearchRequest(BaseModel):
    """Semantic search request."""

    model_config = ConfigDict(populate_by_name=True)

    query: str = ""
    filters: SearchFilters = Field(default_factory=SearchFilters)
    limit: int | None = Field(default=None, ge=1, le=1000)
    threshold: float | None = Field(
        default=None,
        ge=0.0,
        le=2.0,
        description="Minimum cosine similarity; defaults to the configured value",
    )

    @field_validator("query", mode="before")
    @classmethod
    def default_query(cls, v: Any) -> Any:
        return v or ""


class LexicalResultItem(BaseModel):
    """One lexical search hit."""

    item: dict[str, Any]
    score: float
    matches: list[MatchInfo] = Field(default_factory=list)

    @classmethod
    def from_scored(cls, result: ScoredResult) -> "LexicalResultItem":
        return cls(item=result.item_payload(), score=result.score, matches=result.matches)


class SemanticResultItem(BaseModel):
    """One semantic search hit."""

    item: dict[str, Any]
    score: float
    similarity: float

    @classmethod
    def from_scored(cls, result: ScoredResult) -> "SemanticResultItem":
        return cls(
            item=result.item_payload(),
            score=result.score,
            similarity=result.similarity or 0.0,
        )


class SearchResponse(BaseModel):
    """Paginated lexical search response."""

    model_config = ConfigDict(populate_by_name=True)

    results: list[LexicalResultItem]
    total: int = Field(ge=0)
    page: int = Field(ge=1)
    total_pages: int = Field(ge=0, alias="totalPages")
    suggestions: list[str] = Field(default_factory=list)
    query: str
    filters: SearchFilters


class SemanticSearchResponse(BaseModel):
    """Semantic search response."""

    results: list[SemanticResultItem]
    total: int = Field(ge=0)
    query: str
    method: SearchMethod = Field(
        description="Embedding source actually used for the query"
    )


class Suggestion(BaseModel):
    """Search-box completion entry."""

    type: Literal["tag", "type", "date"]
    value: str
    label: str


class SuggestionsResponse(BaseModel):
    suggestions: list[Suggestion]


class EmbeddingsGenerateResponse(BaseModel):
    """Result of pre-warming the embedding cache."""

    model_config = ConfigDict(populate_by_name=True)

    processed: int = Field(ge=0)
    total: int = Field(ge=0)
    cache_size: int = Field(ge=0, alias="cacheSize")
