"""Search and ranking components."""

from marksearch.retrieval.assembler import Page, paginate, sort_results, tag_suggestions
from marksearch.retrieval.classifier import classify_bookmark
from marksearch.retrieval.embeddings import EmbeddingResult, EmbeddingService, fallback_embedding
from marksearch.retrieval.filters import DATE_PRESET_DAYS, apply_filters, date_preset_cutoff
from marksearch.retrieval.fuzzy_index import FIELD_WEIGHTS, FuzzyIndex
from marksearch.retrieval.query_parser import ParsedQuery, parse_query
from marksearch.retrieval.semantic_search import SemanticSearchEngine, SemanticSearchOutcome
from marksearch.retrieval.similarity import cosine_similarity

__all__ = [
    "DATE_PRESET_DAYS",
    "EmbeddingResult",
    "EmbeddingService",
    "FIELD_WEIGHTS",
    "FuzzyIndex",
    "Page",
    "ParsedQuery",
    "SemanticSearchEngine",
    "SemanticSearchOutcome",
    "apply_filters",
    "classify_bookmark",
    "cosine_similarity",
    "date_preset_cutoff",
    "fallback_embedding",
    "paginate",
    "parse_query",
    "sort_results",
    "tag_suggestions",
]
