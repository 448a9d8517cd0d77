"""Weighted fuzzy index over bookmark fields."""

import hashlib
import math
import sys
from dataclasses import dataclass

from rapidfuzz import fuzz

from marksearch.logging_config import get_logger
from marksearch.models.bookmark import BookmarkRecord, BookmarkType
from marksearch.models.search import MatchInfo, ScoredResult
from marksearch.retrieval.classifier import classify_bookmark

logger = get_logger(__name__)

# Field weights sum to 1.0
FIELD_WEIGHTS: dict[str, float] = {
    "title": 0.40,
    "notes": 0.25,
    "description": 0.15,
    "tags": 0.15,
    "metadata.ocrText": 0.05,
}


@dataclass
class _FieldValue:
    key: str
    value: str
    lowered: str
    norm: float


@dataclass
class _IndexedBookmark:
    bookmark: BookmarkRecord
    type: BookmarkType
    fields: list[_FieldValue]


def field_norm(value: str) -> float:
    """Length norm for a field value: 1/sqrt(token count), 3 decimals.

    Matches in short fields weigh more than matches in long ones.
    """
    num_tokens = max(len(value.split()), 1)
    return round(1.0 / math.sqrt(num_tokens), 3)


def structural_fingerprint(bookmarks: list[BookmarkRecord]) -> str:
    """Cheap change detector: record count plus serialized length.

    Two different data sets can collide; that is accepted.
    """
    serialized_length = sum(len(b.model_dump_json(by_alias=True)) for b in bookmarks)
    return f"{len(bookmarks)}:{serialized_length}"


def content_fingerprint(bookmarks: list[BookmarkRecord]) -> str:
    """Fingerprint over record ids and their last-modified timestamps."""
    digest = hashlib.sha1()
    for b in bookmarks:
        stamp = b.updated_at if b.updated_at is not None else b.created_at
        digest.update(f"{b.id}:{stamp};".encode("utf-8"))
    return f"{len(bookmarks)}:{digest.hexdigest()}"


class FuzzyIndex:
    """Fuzzy multi-field search index in the style of Fuse.js.

    Each field value is compared with the query using rapidfuzz's partial
    ratio, ignoring where in the field the match sits. A field matches when
    its normalized distance (``1 - ratio/100``) is within ``threshold`` and
    the aligned span is at least ``min_match_char_length`` characters. The
    record score is the product of ``distance ** (weight * norm)`` over its
    matching fields, so lower is better.
    """

    def __init__(
        self,
        threshold: float = 0.4,
        min_match_char_length: int = 2,
        fingerprint: str = "structural",
        weights: dict[str, float] | None = None,
    ):
        """Initialize fuzzy index.

        Args:
            threshold: Maximum normalized distance for a field match
            min_match_char_length: Minimum matched span length
            fingerprint: Change detection mode (structural, content)
            weights: Per-field weights, defaults to FIELD_WEIGHTS
        """
        self.threshold = threshold
        self.min_match_char_length = min_match_char_length
        self.fingerprint_mode = fingerprint
        self.weights = weights or FIELD_WEIGHTS

        self.records: list[_IndexedBookmark] = []
        self.fingerprint: str | None = None
        self.build_count = 0

        logger.info(
            f"Initialized FuzzyIndex: threshold={threshold}, "
            f"min_match_char_length={min_match_char_length}, fingerprint={fingerprint}"
        )

    def compute_fingerprint(self, bookmarks: list[BookmarkRecord]) -> str:
        if self.fingerprint_mode == "content":
            return content_fingerprint(bookmarks)
        return structural_fingerprint(bookmarks)

    def ensure_fresh(self, bookmarks: list[BookmarkRecord]) -> bool:
        """Rebuild the index if the data fingerprint changed.

        Returns:
            True if the index was rebuilt
        """
        fingerprint = self.compute_fingerprint(bookmarks)
        if fingerprint == self.fingerprint:
            return False
        self.build(bookmarks)
        self.fingerprint = fingerprint
        return True

    def build(self, bookmarks: list[BookmarkRecord]) -> None:
        """Index every bookmark's searchable fields."""
        self.records = [
            _IndexedBookmark(
                bookmark=bookmark,
                type=classify_bookmark(bookmark),
                fields=self._extract_fields(bookmark),
            )
            for bookmark in bookmarks
        ]
        self.build_count += 1
        logger.info(f"Built fuzzy index over {len(self.records)} bookmarks (build #{self.build_count})")

    def _extract_fields(self, bookmark: BookmarkRecord) -> list[_FieldValue]:
        values: list[tuple[str, str]] = [
            ("title", bookmark.title or ""),
            ("notes", bookmark.notes or ""),
            ("description", bookmark.description or ""),
        ]
        values.extend(("tags", tag) for tag in bookmark.tags)
        values.append(("metadata.ocrText", bookmark.ocr_text))

        return [
            _FieldValue(key=key, value=value, lowered=value.lower(), norm=field_norm(value))
            for key, value in values
            if value.strip() and key in self.weights
        ]

    def search(self, query: str) -> list[ScoredResult]:
        """Rank indexed bookmarks against the query.

        An empty or whitespace query returns every bookmark with score 0 in
        index order, so callers filter and paginate the same way either way.

        Args:
            query: Free-text query

        Returns:
            Matching bookmarks, best (lowest score) first
        """
        pattern = query.strip().lower()
        if not pattern:
            return [ScoredResult(item=r.bookmark, type=r.type, score=0.0) for r in self.records]

        if len(pattern) < self.min_match_char_length:
            return []

        scored: list[tuple[float, int, ScoredResult]] = []
        for position, record in enumerate(self.records):
            result = self._score_record(pattern, record)
            if result is not None:
                scored.append((result.score, position, result))

        scored.sort(key=lambda entry: (entry[0], entry[1]))
        logger.debug(f"Fuzzy search '{query}' matched {len(scored)}/{len(self.records)} bookmarks")
        return [entry[2] for entry in scored]

    def _score_record(self, pattern: str, record: _IndexedBookmark) -> ScoredResult | None:
        # Best match per key; tags contribute through their best tag
        best: dict[str, tuple[float, _FieldValue, tuple[int, int]]] = {}
        for field_value in record.fields:
            match = self._match_field(pattern, field_value.lowered)
            if match is None:
                continue
            distance, span = match
            current = best.get(field_value.key)
            if current is None or distance < current[0]:
                best[field_value.key] = (distance, field_value, span)

        if not best:
            return None

        total = 1.0
        matches: list[MatchInfo] = []
        for key, (distance, field_value, span) in best.items():
            base = distance if distance > 0 else sys.float_info.epsilon
            total *= base ** (self.weights[key] * field_value.norm)
            matches.append(MatchInfo(key=key, value=field_value.value, indices=[span]))

        return ScoredResult(item=record.bookmark, type=record.type, score=total, matches=matches)

    def _match_field(self, pattern: str, text: str) -> tuple[float, tuple[int, int]] | None:
        """Distance and inclusive span of the best alignment, or None."""
        if len(pattern) > len(text):
            # Field shorter than the query: compare whole strings
            distance = 1.0 - fuzz.ratio(pattern, text) / 100.0
            start, end = 0, len(text)
        else:
            alignment = fuzz.partial_ratio_alignment(pattern, text)
            if alignment is None:
                return None
            distance = 1.0 - alignment.score / 100.0
            start, end = alignment.dest_start, alignment.dest_end

        if distance > self.threshold:
            return None
        if end - start < self.min_match_char_length:
            return None
        return distance, (start, end - 1)
