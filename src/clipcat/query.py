"""Sorting, filtering and searching the catalog, and URL flagging for display."""

import locale
from collections.abc import Iterable
from urllib.parse import urlparse

from .models import CatalogQuery, CatalogRecord, ReadFilter, SortConfig, UrlEntry


def is_valid_url(url: str) -> bool:
    """An absolute URL with a scheme and a host (or a path for file:/mailto:-like URLs)."""
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
        # Accessing port validates it
        parsed.port
    except ValueError:
        return False
    if not parsed.scheme or not parsed.scheme.isascii():
        return False
    return bool(parsed.netloc or parsed.path)


def extract_domain(url: str) -> str:
    """Host name without a leading "www.", or "" for invalid URLs."""
    if not is_valid_url(url):
        return ""
    hostname = urlparse(url.strip()).hostname or ""
    return hostname.removeprefix("www.")


def url_entries(record: CatalogRecord) -> list[UrlEntry]:
    """Every URL value of a record with its validity flag.

    Invalid values are reported, never dropped, so they can be fixed.
    """
    entries = []
    for property_name, value in record.urls.items():
        values = value if isinstance(value, list) else [value]
        for url in values:
            entries.append(
                UrlEntry(
                    property_name=property_name,
                    url=url,
                    valid=is_valid_url(url),
                    domain=extract_domain(url),
                )
            )
    return entries


def record_domains(record: CatalogRecord) -> list[str]:
    """Domains of the valid URLs of a record, in order, without repeats."""
    domains: list[str] = []
    for entry in url_entries(record):
        if entry.domain and entry.domain not in domains:
            domains.append(entry.domain)
    return domains


def _text_key(value: object) -> str:
    return locale.strxfrm(str(value).lower())


def sort_records(records: Iterable[CatalogRecord], sort: SortConfig) -> list[CatalogRecord]:
    """Stable sort by the configured key and direction.

    Ascending by `read` puts read records first.
    """
    reverse = sort.direction == "desc"
    if sort.key == "date":
        return sorted(records, key=lambda r: r.created_at, reverse=reverse)
    if sort.key == "read":
        return sorted(records, key=lambda r: not r.read, reverse=reverse)
    if sort.key == "title":
        return sorted(records, key=lambda r: _text_key(r.display_title), reverse=reverse)
    return sorted(records, key=lambda r: _text_key(r.id), reverse=reverse)


def filter_by_read_state(records: Iterable[CatalogRecord], read_filter: ReadFilter) -> list[CatalogRecord]:
    if read_filter.hide_read:
        return [r for r in records if not r.read]
    if read_filter.show_only_read:
        return [r for r in records if r.read]
    return list(records)


def matches_search(record: CatalogRecord, term: str) -> bool:
    """Case-insensitive match on the title or any tag.

    A term starting with "#" also matches a tag exactly ("#ai" finds the
    tag "ai" but not "aim" through this rule).
    """
    if not term:
        return True

    needle = term.lower()
    if needle in record.display_title.lower():
        return True

    tags = [tag.lower() for tag in record.all_tags]
    if any(needle in tag for tag in tags):
        return True

    return needle.startswith("#") and needle[1:] in tags


def search_records(records: Iterable[CatalogRecord], term: str) -> list[CatalogRecord]:
    return [r for r in records if matches_search(r, term)]


def apply_query(records: Iterable[CatalogRecord], query: CatalogQuery) -> list[CatalogRecord]:
    """Read-state filter, then search, then sort."""
    visible = filter_by_read_state(records, query.read_filter)
    visible = search_records(visible, query.search)
    return sort_records(visible, query.sort)
