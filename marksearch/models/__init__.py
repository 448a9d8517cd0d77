"""Pydantic models for the bookmark search service."""

from marksearch.models.bookmark import BookmarkRecord, BookmarkType
from marksearch.models.error import ErrorResponse
from marksearch.models.search import (
    EmbeddingsGenerateResponse,
    LexicalResultItem,
    MatchInfo,
    ScoredResult,
    SearchFilters,
    SearchRequest,
    SearchResponse,
    SemanticResultItem,
    SemanticSearchRequest,
    SemanticSearchResponse,
    Suggestion,
    SuggestionsResponse,
)

__all__ = [
    # Bookmark models
    "BookmarkRecord",
    "BookmarkType",
    # Search models
    "MatchInfo",
    "ScoredResult",
    "SearchFilters",
    "SearchRequest",
    "SearchResponse",
    "LexicalResultItem",
    "SemanticSearchRequest",
    "SemanticSearchResponse",
    "SemanticResultItem",
    "Suggestion",
    "SuggestionsResponse",
    "EmbeddingsGenerateResponse",
    # Error models
    "ErrorResponse",
]
