"""Structured filters applied to lexical and semantic result sets."""

from datetime import date, datetime, time, timedelta

from marksearch.models.search import ScoredResult, SearchFilters

DATE_PRESET_DAYS: dict[str, int] = {
    "today": 0,
    "yesterday": 1,
    "week": 7,
    "month": 30,
    "quarter": 90,
    "year": 365,
}


def local_midnight(day: date) -> datetime:
    """Start of ``day`` in server local time, using that day's UTC offset."""
    return datetime.combine(day, time.min).astimezone()


def day_bounds(day: date) -> tuple[int, int]:
    """Epoch-ms range covering one local calendar day, both ends inclusive."""
    start = local_midnight(day)
    end = local_midnight(day + timedelta(days=1))
    return int(start.timestamp() * 1000), int(end.timestamp() * 1000) - 1


def date_preset_cutoff(preset: str, now: datetime | None = None) -> int:
    """Epoch-ms cutoff for a named date preset.

    ``today`` is the start of the current local day; the other presets go N
    calendar days back and take the start of that day, so a span crossing a
    DST change still lands on local midnight.

    Raises:
        KeyError: If the preset is unknown
    """
    days = DATE_PRESET_DAYS[preset]
    now = now or datetime.now()
    if now.tzinfo is not None:
        now = now.astimezone()
    return int(local_midnight(now.date() - timedelta(days=days)).timestamp() * 1000)


def searchable_text(result: ScoredResult) -> str:
    """Lowercased text that exclusion terms and phrases are checked against."""
    item = result.item
    parts = [
        item.title or "",
        item.notes or "",
        item.description or "",
        item.url or "",
        " ".join(item.tags),
        item.ocr_text,
    ]
    return " ".join(part for part in parts if part).lower()


def body_text(result: ScoredResult) -> str:
    """Lowercased notes, description and OCR text, searched by ``text:``."""
    item = result.item
    parts = [item.notes or "", item.description or "", item.ocr_text]
    return " ".join(part for part in parts if part).lower()


def apply_filters(
    results: list[ScoredResult],
    filters: SearchFilters,
    now: datetime | None = None,
) -> list[ScoredResult]:
    """Narrow results by the structured filters.

    Every filter is a set intersection and is skipped when empty, so the
    order they run in does not change the outcome. Input order is kept.
    A date preset takes precedence over an explicit dateFrom/dateTo range.

    Args:
        results: Scored results in ranking order
        filters: Filters to apply
        now: Reference time for date presets (default: current local time)

    Returns:
        Filtered results
    """
    filtered = results

    if filters.types:
        types = set(filters.types)
        filtered = [r for r in filtered if r.type.value in types]

    if filters.collections:
        collections = set(filters.collections)
        filtered = [r for r in filtered if r.item.collection_id in collections]

    if filters.tags:
        tags = set(filters.tags)
        filtered = [r for r in filtered if tags.intersection(r.item.tags)]

    if filters.date_preset:
        cutoff = date_preset_cutoff(filters.date_preset, now)
        filtered = [r for r in filtered if (r.item.created_at or 0) >= cutoff]
    elif filters.date_from is not None or filters.date_to is not None:
        filtered = [r for r in filtered if _within_range(r, filters.date_from, filters.date_to)]

    if filters.sources:
        sources = set(filters.sources)
        filtered = [r for r in filtered if r.item.app_source in sources]

    if filters.sites:
        filtered = [
            r for r in filtered if any(site in (r.item.url or "").lower() for site in filters.sites)
        ]

    if filters.exclude:
        filtered = [
            r for r in filtered if not any(term in searchable_text(r) for term in filters.exclude)
        ]

    if filters.phrases:
        filtered = [
            r for r in filtered if all(phrase in searchable_text(r) for phrase in filters.phrases)
        ]

    if filters.any_of:
        filtered = [r for r in filtered if _matches_groups(searchable_text(r), filters.any_of)]

    if filters.text_terms:
        filtered = [
            r for r in filtered if any(term in body_text(r) for term in filters.text_terms)
        ]

    return filtered


def _within_range(result: ScoredResult, date_from: int | None, date_to: int | None) -> bool:
    created = result.item.created_at or 0
    if date_from is not None and created < date_from:
        return False
    if date_to is not None and created > date_to:
        return False
    return True


def _matches_groups(text: str, groups: list[list[str]]) -> bool:
    # Every group needs at least one of its alternatives
    return all(any(term in text for term in group) for group in groups)
