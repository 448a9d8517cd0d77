"""Search service tying the store, the ranking engines and the caches together."""

import time
from typing import Any

from marksearch.config import Settings, get_settings
from marksearch.logging_config import get_logger, log_progress
from marksearch.models.bookmark import BookmarkRecord, BookmarkType
from marksearch.models.search import (
    EmbeddingsGenerateResponse,
    LexicalResultItem,
    SearchRequest,
    SearchResponse,
    SemanticResultItem,
    SemanticSearchRequest,
    SemanticSearchResponse,
    Suggestion,
)
from marksearch.retrieval.assembler import paginate, sort_results, tag_suggestions
from marksearch.retrieval.embeddings import EmbeddingService
from marksearch.retrieval.filters import DATE_PRESET_DAYS, apply_filters
from marksearch.retrieval.fuzzy_index import FuzzyIndex
from marksearch.retrieval.query_parser import parse_query
from marksearch.retrieval.semantic_search import SemanticSearchEngine
from marksearch.storage.bookmark_store import BookmarkStore, BookmarkStoreError, JsonBookmarkStore

logger = get_logger(__name__)

# Bookmarks embedded per progress step during cache warm-up
WARMUP_BATCH_SIZE = 50


class SearchValidationError(Exception):
    """Raised when a search request is semantically invalid."""

    pass


class SearchServiceError(Exception):
    """Raised when a search request cannot be completed."""

    pass


def warmup_text(bookmark: BookmarkRecord) -> str:
    """Title, notes and tags joined with spaces."""
    parts = [bookmark.title or "", bookmark.notes or "", " ".join(bookmark.tags)]
    return " ".join(part.strip() for part in parts if part.strip())


class SearchService:
    """Request-handling context for lexical and semantic search.

    Owns the fuzzy index and the embedding cache for the lifetime of the
    process. Every request reads a fresh snapshot from the bookmark store;
    the index is rebuilt only when that snapshot's fingerprint changes.
    """

    def __init__(
        self,
        store: BookmarkStore,
        embedding_service: EmbeddingService,
        fuzzy_index: FuzzyIndex | None = None,
        settings: Settings | None = None,
    ):
        """Initialize search service.

        Args:
            store: Source of bookmark snapshots
            embedding_service: Embedding provider with cache and fallback
            fuzzy_index: Lexical index (built from settings if omitted)
            settings: Application settings (global settings if omitted)
        """
        self.settings = settings or get_settings()
        self.store = store
        self.embedding_service = embedding_service
        self.fuzzy_index = fuzzy_index or FuzzyIndex(
            threshold=self.settings.fuzzy_threshold,
            min_match_char_length=self.settings.min_match_char_length,
            fingerprint=self.settings.index_fingerprint,
        )
        self.semantic_engine = SemanticSearchEngine(embedding_service)

        logger.info(
            f"SearchService initialized: embeddings={embedding_service.method}, "
            f"fingerprint={self.fuzzy_index.fingerprint_mode}"
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "SearchService":
        """Build a service over the JSON bookmark file named in settings."""
        settings = settings or get_settings()
        return cls(
            store=JsonBookmarkStore(settings.bookmarks_path),
            embedding_service=EmbeddingService.from_settings(settings),
            settings=settings,
        )

    async def _load(self) -> list[BookmarkRecord]:
        try:
            return await self.store.load_bookmarks()
        except BookmarkStoreError as e:
            raise SearchServiceError(str(e)) from e

    def _page_size(self, requested: int | None) -> int:
        """Requested page size, or the configured default, capped at the maximum."""
        return min(requested or self.settings.default_page_size, self.settings.max_page_size)

    async def search(self, request: SearchRequest) -> SearchResponse:
        """Run a lexical search with filters, sorting and pagination.

        Args:
            request: Search request

        Returns:
            One page of results with totals and tag suggestions

        Raises:
            SearchServiceError: If the bookmark snapshot cannot be loaded
        """
        start_time = time.time()
        logger.info(
            f"→ Lexical Search START - page={request.page}, limit={self._page_size(request.limit)}, "
            f"sortBy={request.sort_by}"
        )

        filters = request.filters
        text = request.query
        if request.parse_syntax and text.strip():
            parsed = parse_query(text)
            text = parsed.text
            if parsed.has_filters:
                filters = parsed.merge_into(filters)
                logger.info(f"  Parsed query: text='{text}', filters={filters.model_dump(exclude_defaults=True)}")

        bookmarks = await self._load()
        self.fuzzy_index.ensure_fresh(bookmarks)

        matched = self.fuzzy_index.search(text)
        filtered = apply_filters(matched, filters)
        ordered = sort_results(filtered, request.sort_by)
        suggestions = tag_suggestions(filtered, self.settings.suggestion_count)

        limit = self._page_size(request.limit)
        page = paginate(ordered, request.page, limit)

        elapsed = time.time() - start_time
        logger.info(
            f"✓ Lexical Search COMPLETE: {len(bookmarks)} bookmarks → {len(matched)} matched → "
            f"{len(filtered)} filtered, page {page.page}/{page.total_pages} ({elapsed:.3f}s)"
        )

        return SearchResponse(
            results=[LexicalResultItem.from_scored(result) for result in page.items],
            total=page.total,
            page=page.page,
            total_pages=page.total_pages,
            suggestions=suggestions,
            query=request.query,
            filters=filters,
        )

    async def semantic_search(self, request: SemanticSearchRequest) -> SemanticSearchResponse:
        """Rank bookmarks by embedding similarity to the query.

        Raises:
            SearchValidationError: If the query is empty or whitespace
            SearchServiceError: If the bookmark snapshot cannot be loaded
        """
        if not request.query.strip():
            raise SearchValidationError("Query is required")

        threshold = (
            request.threshold if request.threshold is not None else self.settings.semantic_threshold
        )
        limit = self._page_size(request.limit)

        bookmarks = await self._load()
        outcome = await self.semantic_engine.search(
            query=request.query,
            bookmarks=bookmarks,
            filters=request.filters,
            limit=limit,
            threshold=threshold,
        )

        return SemanticSearchResponse(
            results=[SemanticResultItem.from_scored(result) for result in outcome.results],
            total=len(outcome.results),
            query=request.query,
            method=outcome.method,
        )

    async def suggest(self, q: str) -> list[Suggestion]:
        """Search-box completions for a partial input.

        Tags containing ``q`` come first (most frequent first), then
        bookmark type names, then date preset names.
        """
        needle = (q or "").strip().lower()
        if not needle:
            return []

        bookmarks = await self._load()
        tally: dict[str, int] = {}
        for bookmark in bookmarks:
            for tag in bookmark.tags:
                tally[tag] = tally.get(tag, 0) + 1

        suggestions: list[Suggestion] = []
        for tag in sorted(tally, key=lambda t: tally[t], reverse=True):
            if needle in tag:
                suggestions.append(Suggestion(type="tag", value=tag, label=f"#{tag}"))

        for bookmark_type in BookmarkType:
            if needle in bookmark_type.value:
                suggestions.append(
                    Suggestion(
                        type="type",
                        value=bookmark_type.value,
                        label=f"type:{bookmark_type.value}",
                    )
                )

        for preset in DATE_PRESET_DAYS:
            if needle in preset:
                suggestions.append(Suggestion(type="date", value=preset, label=f"date:{preset}"))

        return suggestions[: self.settings.max_autocomplete_suggestions]

    async def generate_embeddings(self) -> EmbeddingsGenerateResponse:
        """Pre-warm the embedding cache for every bookmark with text."""
        start_time = time.time()
        bookmarks = await self._load()
        texts = [text for text in (warmup_text(b) for b in bookmarks) if text]

        logger.info(f"→ Embedding warm-up START: {len(texts)} of {len(bookmarks)} bookmarks have text")

        processed = 0
        for batch_start in range(0, len(texts), WARMUP_BATCH_SIZE):
            batch = texts[batch_start : batch_start + WARMUP_BATCH_SIZE]
            await self.embedding_service.embed_many(batch)
            processed += len(batch)
            log_progress(
                logger,
                "Embedding warm-up",
                processed,
                len(texts),
                cache_size=self.embedding_service.cache_size,
            )

        elapsed = time.time() - start_time
        logger.info(
            f"✓ Embedding warm-up COMPLETE: {processed} processed, "
            f"cache_size={self.embedding_service.cache_size} ({elapsed:.2f}s)"
        )

        return EmbeddingsGenerateResponse(
            processed=processed,
            total=len(bookmarks),
            cache_size=self.embedding_service.cache_size,
        )

    def health(self) -> dict[str, Any]:
        """Embedding and index state for the health endpoint."""
        return {
            "embeddings": {
                "method": self.embedding_service.method,
                "cacheSize": self.embedding_service.cache_size,
                "providerCalls": self.embedding_service.provider_calls,
                "providerFailures": self.embedding_service.provider_failures,
            },
            "index": {
                "size": len(self.fuzzy_index.records),
                "buildCount": self.fuzzy_index.build_count,
                "fingerprint": self.fuzzy_index.fingerprint_mode,
            },
        }

    async def close(self) -> None:
        """Close service connections."""
        await self.embedding_service.close()
        logger.info("SearchService closed")
