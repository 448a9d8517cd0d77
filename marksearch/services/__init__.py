"""Service layer for search requests."""

from marksearch.services.search_service import (
    SearchService,
    SearchServiceError,
    SearchValidationError,
)

__all__ = [
    "SearchService",
    "SearchServiceError",
    "SearchValidationError",
]
