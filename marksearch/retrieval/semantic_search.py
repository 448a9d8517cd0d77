"""Embedding-based semantic search over bookmarks."""

import asyncio
from dataclasses import dataclass

from marksearch.logging_config import get_logger
from marksearch.models.bookmark import BookmarkRecord
from marksearch.models.search import ScoredResult, SearchFilters
from marksearch.retrieval.classifier import classify_bookmark
from marksearch.retrieval.embeddings import (
    FALLBACK_METHOD,
    EmbeddingResult,
    EmbeddingService,
    fallback_embedding,
)
from marksearch.retrieval.filters import apply_filters
from marksearch.retrieval.similarity import cosine_similarity

logger = get_logger(__name__)


@dataclass
class SemanticSearchOutcome:
    """Ranked results and the embedding source they were scored with.

    ``method`` is ``fallback`` when the query or any candidate had to be
    compared using fallback vectors.
    """

    results: list[ScoredResult]
    method: str


def semantic_text(bookmark: BookmarkRecord) -> str:
    """Title, notes, description, tags and OCR text joined with spaces."""
    parts = [
        bookmark.title or "",
        bookmark.notes or "",
        bookmark.description or "",
        " ".join(bookmark.tags),
        bookmark.ocr_text,
    ]
    return " ".join(part.strip() for part in parts if part.strip())


class SemanticSearchEngine:
    """Ranks bookmarks by cosine similarity to the query embedding.

    Candidates are narrowed by type, collection and tag filters only; date
    and source filters do not apply on this path.
    """

    def __init__(self, embedding_service: EmbeddingService):
        self.embedding_service = embedding_service

    async def search(
        self,
        query: str,
        bookmarks: list[BookmarkRecord],
        filters: SearchFilters | None = None,
        limit: int = 20,
        threshold: float = 0.3,
    ) -> SemanticSearchOutcome:
        """Find bookmarks whose similarity to the query reaches the threshold.

        Args:
            query: Non-empty query text
            bookmarks: Candidate bookmarks
            filters: Type/collection/tag filters to pre-apply
            limit: Maximum number of results
            threshold: Minimum cosine similarity

        Returns:
            Results sorted by descending similarity, plus the method label

        Raises:
            ValueError: If the query is empty or whitespace
        """
        if not query or not query.strip():
            raise ValueError("Query is required")

        logger.info(f"→ Semantic Search START - limit={limit}, threshold={threshold}")
        logger.info(f"  Query: {query}")

        candidates = [ScoredResult(item=b, type=classify_bookmark(b)) for b in bookmarks]
        if filters is not None:
            candidate_filters = SearchFilters(
                types=filters.types,
                collections=filters.collections,
                tags=filters.tags,
            )
            candidates = apply_filters(candidates, candidate_filters)

        query_embedding = await self.embedding_service.embed(query)
        query_fallback = query_embedding.vector
        if query_embedding.source != FALLBACK_METHOD:
            query_fallback = fallback_embedding(query, self.embedding_service.dimensions)

        scored = await asyncio.gather(
            *(
                self._similarity(candidate, query_embedding, query_fallback)
                for candidate in candidates
            )
        )

        ranked: list[ScoredResult] = []
        for candidate, (similarity, _) in zip(candidates, scored):
            if similarity >= threshold:
                candidate.similarity = similarity
                candidate.score = 1.0 - similarity
                ranked.append(candidate)

        ranked.sort(key=lambda r: r.similarity, reverse=True)
        ranked = ranked[:limit]

        method = query_embedding.source
        if any(source == FALLBACK_METHOD for _, source in scored):
            method = FALLBACK_METHOD

        logger.info(
            f"✓ Semantic Search COMPLETE: {len(candidates)} candidates → "
            f"{len(ranked)} results (method={method})"
        )
        return SemanticSearchOutcome(results=ranked, method=method)

    async def _similarity(
        self,
        candidate: ScoredResult,
        query_embedding: EmbeddingResult,
        query_fallback: list[float],
    ) -> tuple[float, str | None]:
        """Similarity to the query and the vector space it was measured in.

        Provider and fallback vectors live in unrelated spaces, so a
        candidate that only has a fallback vector is compared against the
        query's fallback vector.
        """
        text = semantic_text(candidate.item)
        if not text:
            # Nothing to embed
            return 0.0, None
        embedding = await self.embedding_service.embed(text)
        if embedding.source == query_embedding.source:
            return cosine_similarity(query_embedding.vector, embedding.vector), embedding.source
        candidate_fallback = fallback_embedding(text, len(query_fallback))
        return cosine_similarity(query_fallback, candidate_fallback), FALLBACK_METHOD
