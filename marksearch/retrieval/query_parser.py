"""Inline search syntax: ``type:note #work date:week site:github -draft "exact phrase" a || b``."""

import re
from dataclasses import dataclass, field
from datetime import datetime

from marksearch.models.search import SearchFilters
from marksearch.retrieval.filters import day_bounds

# Card type aliases users type into the search box
TYPE_ALIASES: dict[str, str] = {
    "note": "note",
    "notes": "note",
    "snippet": "note",
    "snippets": "note",
    "tweet": "tweet",
    "tweets": "tweet",
    "post": "tweet",
    "posts": "tweet",
    "youtube": "youtube",
    "video": "youtube",
    "videos": "youtube",
    "link": "link",
    "links": "link",
    "article": "link",
    "articles": "link",
    "website": "link",
    "websites": "link",
}

DATE_ALIASES: dict[str, str] = {
    "today": "today",
    "yesterday": "yesterday",
    "week": "week",
    "lastweek": "week",
    "thisweek": "week",
    "month": "month",
    "lastmonth": "month",
    "thismonth": "month",
    "quarter": "quarter",
    "year": "year",
    "lastyear": "year",
}

_NEGATED_PHRASE = re.compile(r'-"([^"]+)"')
_PHRASE = re.compile(r'"([^"]+)"')
_OR_GROUP = re.compile(r"\S+(?:\s*\|\|\s*\S+)+")
_PREFIXED = re.compile(r"^(type|tag|date|site|text):(\S+)$", re.IGNORECASE)
_HASHTAG = re.compile(r"^#(\w[\w-]*)$")
_EXCLUDE = re.compile(r"^-(\S+)$")


@dataclass
class ParsedQuery:
    """Free text plus the structured filters found in a raw query."""

    text: str = ""
    types: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    date_preset: str | None = None
    date_from: int | None = None
    date_to: int | None = None
    sites: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    phrases: list[str] = field(default_factory=list)
    any_of: list[list[str]] = field(default_factory=list)
    text_terms: list[str] = field(default_factory=list)

    @property
    def has_filters(self) -> bool:
        return bool(
            self.types
            or self.tags
            or self.date_preset
            or self.date_from is not None
            or self.sites
            or self.exclude
            or self.phrases
            or self.any_of
            or self.text_terms
        )

    def merge_into(self, filters: SearchFilters) -> SearchFilters:
        """Union parsed values into request filters.

        An explicit request date preset wins over one from the query text,
        and an explicit request range wins over a ``date:YYYY-MM-DD`` day.
        """
        update = {
            "types": _union(filters.types, self.types),
            "tags": _union(filters.tags, self.tags),
            "date_preset": filters.date_preset or self.date_preset,
            "sites": _union(filters.sites, self.sites),
            "exclude": _union(filters.exclude, self.exclude),
            "phrases": _union(filters.phrases, self.phrases),
            "any_of": filters.any_of + [g for g in self.any_of if g not in filters.any_of],
            "text_terms": _union(filters.text_terms, self.text_terms),
        }
        if filters.date_from is None and filters.date_to is None:
            update["date_from"] = self.date_from
            update["date_to"] = self.date_to
        return filters.model_copy(update=update)


def _union(first: list[str], second: list[str]) -> list[str]:
    merged = list(first)
    merged.extend(value for value in second if value not in merged)
    return merged


def _add(values: list[str], value: str) -> None:
    if value and value not in values:
        values.append(value)


def _parse_day(value: str) -> tuple[int, int] | None:
    try:
        day = datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None
    return day_bounds(day)


def parse_query(raw: str) -> ParsedQuery:
    """Split a raw query into free text and structured filters.

    Quoted phrases are pulled out first (``-"..."`` excludes a phrase,
    ``"..."`` requires it), then ``a || b`` groups, then single tokens.
    Required phrases stay in the free text so they still drive fuzzy
    ranking. Unknown ``type:`` and ``date:`` values are dropped. A lone
    ``-`` or a hyphenated word (``e-mail``) stays in the free text.
    """
    parsed = ParsedQuery()

    def negated_phrase(match: re.Match) -> str:
        _add(parsed.exclude, match.group(1).strip().lower())
        return " "

    def phrase(match: re.Match) -> str:
        _add(parsed.phrases, match.group(1).strip().lower())
        return " "

    def or_group(match: re.Match) -> str:
        group = [term.strip().lower() for term in match.group(0).split("||") if term.strip()]
        if group not in parsed.any_of:
            parsed.any_of.append(group)
        return " "

    remaining = _NEGATED_PHRASE.sub(negated_phrase, raw)
    remaining = _PHRASE.sub(phrase, remaining)
    remaining = _OR_GROUP.sub(or_group, remaining)

    terms: list[str] = []
    for token in remaining.split():
        prefixed = _PREFIXED.match(token)
        if prefixed:
            name, value = prefixed.group(1).lower(), prefixed.group(2).lower()
            if name == "type":
                mapped = TYPE_ALIASES.get(value)
                if mapped:
                    _add(parsed.types, mapped)
            elif name == "tag":
                _add(parsed.tags, value)
            elif name == "date":
                if value in DATE_ALIASES:
                    parsed.date_preset = DATE_ALIASES[value]
                else:
                    bounds = _parse_day(value)
                    if bounds is not None:
                        parsed.date_from, parsed.date_to = bounds
            elif name == "text":
                _add(parsed.text_terms, value)
            else:
                _add(parsed.sites, value)
            continue

        hashtag = _HASHTAG.match(token)
        if hashtag:
            _add(parsed.tags, hashtag.group(1).lower())
            continue

        excluded = _EXCLUDE.match(token)
        if excluded:
            _add(parsed.exclude, excluded.group(1).lower())
            continue

        terms.append(token)

    parsed.text = " ".join(terms + parsed.phrases)
    return parsed
