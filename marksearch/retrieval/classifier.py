"""Bookmark type classification."""

from urllib.parse import urlsplit

from marksearch.models.bookmark import BookmarkRecord, BookmarkType

NOTE_URL_PREFIX = "note://"

TWEET_HOSTS = ("twitter.com", "x.com")
YOUTUBE_HOSTS = ("youtube.com", "youtu.be")


def _host(url: str) -> str:
    try:
        return (urlsplit(url.strip()).hostname or "").lower()
    except ValueError:
        return ""


def _host_matches(host: str, domains: tuple[str, ...]) -> bool:
    return any(host == domain or host.endswith("." + domain) for domain in domains)


def classify_bookmark(bookmark: BookmarkRecord) -> BookmarkType:
    """Derive the bookmark type from its explicit type, url, notes and title.

    Note detection runs first because a note may have no url at all.

    Args:
        bookmark: Record to classify

    Returns:
        One of note, tweet, youtube, link
    """
    url = bookmark.url or ""

    if (
        (bookmark.type or "").lower() == BookmarkType.NOTE.value
        or url.startswith(NOTE_URL_PREFIX)
        or (not url and (bookmark.notes or bookmark.title))
    ):
        return BookmarkType.NOTE

    host = _host(url)
    if _host_matches(host, TWEET_HOSTS):
        return BookmarkType.TWEET
    if _host_matches(host, YOUTUBE_HOSTS):
        return BookmarkType.YOUTUBE

    return BookmarkType.LINK
