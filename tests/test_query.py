"""Tests for sorting, filtering, searching and URL flagging."""

import pytest
from pydantic import ValidationError

from clipcat.models import CatalogQuery, CatalogRecord, ReadFilter, SortConfig
from clipcat.query import (
    apply_query,
    extract_domain,
    filter_by_read_state,
    is_valid_url,
    matches_search,
    record_domains,
    sort_records,
    url_entries,
)


def make_record(
    id: str,
    title: str | None = None,
    created_at: float = 0,
    tags: list[str] | None = None,
    read: bool = False,
    urls: dict | None = None,
) -> CatalogRecord:
    tags = tags or []
    return CatalogRecord(
        id=id,
        display_title=title or id.rsplit("/", 1)[-1].removesuffix(".md"),
        urls=urls or {"source": "https://example.com"},
        created_at=created_at,
        frontmatter_tags=tags,
        all_tags=tags,
        read=read,
    )


@pytest.fixture
def records() -> list[CatalogRecord]:
    return [
        make_record("b/banana.md", "banana", created_at=2000, tags=["fruit", "yellow"]),
        make_record("a/Apple.md", "Apple", created_at=3000, tags=["fruit"], read=True),
        make_record("c/cherry.md", "cherry", created_at=1000, tags=["aim"]),
    ]


def ids(records: list[CatalogRecord]) -> list[str]:
    return [r.id for r in records]


class TestSortRecords:
    def test_date_descending(self, records):
        assert ids(sort_records(records, SortConfig(key="date", direction="desc"))) == [
            "a/Apple.md",
            "b/banana.md",
            "c/cherry.md",
        ]

    def test_title_ascending_ignores_case(self, records):
        assert ids(sort_records(records, SortConfig(key="title", direction="asc"))) == [
            "a/Apple.md",
            "b/banana.md",
            "c/cherry.md",
        ]

    def test_title_descending(self, records):
        assert ids(sort_records(records, SortConfig(key="title", direction="desc"))) == [
            "c/cherry.md",
            "b/banana.md",
            "a/Apple.md",
        ]

    def test_path(self, records):
        assert ids(sort_records(records, SortConfig(key="path", direction="asc")))[0] == "a/Apple.md"

    def test_read_ascending_puts_read_first(self, records):
        result = sort_records(records, SortConfig(key="read", direction="asc"))
        assert result[0].id == "a/Apple.md"

    def test_read_descending_puts_unread_first(self, records):
        result = sort_records(records, SortConfig(key="read", direction="desc"))
        assert result[-1].id == "a/Apple.md"

    def test_stable_for_equal_keys(self):
        same = [make_record(f"n{i}.md", "Same", created_at=5) for i in range(4)]
        for direction in ("asc", "desc"):
            assert ids(sort_records(same, SortConfig(key="title", direction=direction))) == ids(same)
            assert ids(sort_records(same, SortConfig(key="date", direction=direction))) == ids(same)

    @pytest.mark.parametrize(
        "direction,expected",
        [
            ("asc", ["r2.md", "r4.md", "r1.md", "r3.md", "r5.md"]),
            ("desc", ["r1.md", "r3.md", "r5.md", "r2.md", "r4.md"]),
        ],
    )
    def test_read_keeps_order_within_groups(self, direction, expected):
        mixed = [make_record(f"r{i}.md", read=i % 2 == 0) for i in range(1, 6)]
        assert ids(sort_records(mixed, SortConfig(key="read", direction=direction))) == expected


class TestSortConfigToggle:
    def test_new_column_starts_ascending(self):
        assert SortConfig(key="date", direction="desc").toggled("title") == SortConfig(key="title", direction="asc")

    def test_same_ascending_column_flips(self):
        assert SortConfig(key="title", direction="asc").toggled("title").direction == "desc"

    def test_same_descending_column_flips_back(self):
        assert SortConfig(key="title", direction="desc").toggled("title").direction == "asc"


class TestReadFilter:
    def test_hide_read(self, records):
        assert "a/Apple.md" not in ids(filter_by_read_state(records, ReadFilter(hide_read=True)))

    def test_show_only_read(self, records):
        assert ids(filter_by_read_state(records, ReadFilter(show_only_read=True))) == ["a/Apple.md"]

    def test_no_filter(self, records):
        assert len(filter_by_read_state(records, ReadFilter())) == 3

    def test_toggles_are_exclusive(self):
        with pytest.raises(ValidationError):
            ReadFilter(hide_read=True, show_only_read=True)

    def test_enabling_one_disables_the_other(self):
        only_read = ReadFilter(show_only_read=True)
        assert only_read.with_hide_read(True) == ReadFilter(hide_read=True)
        assert ReadFilter(hide_read=True).with_show_only_read(True) == ReadFilter(show_only_read=True)

    def test_disabling_keeps_other_off(self):
        assert ReadFilter(hide_read=True).with_hide_read(False) == ReadFilter()


class TestSearch:
    def test_empty_term_matches_all(self, records):
        assert all(matches_search(r, "") for r in records)

    def test_title_substring_case_insensitive(self, records):
        assert matches_search(records[1], "APP")

    def test_tag_substring(self, records):
        assert matches_search(records[0], "yell")

    def test_hash_term_matches_tag_exactly(self):
        assert matches_search(make_record("x.md", "Article", tags=["ai"]), "#ai")

    def test_hash_term_is_not_a_tag_substring(self, records):
        # "aim" contains "ai" but "#ai" is neither a substring nor an exact tag
        assert not matches_search(records[2], "#ai")

    def test_no_match(self, records):
        assert not matches_search(records[0], "rust")


class TestApplyQuery:
    def test_filter_search_then_sort(self, records):
        query = CatalogQuery(
            search="fruit",
            sort=SortConfig(key="title", direction="asc"),
            read_filter=ReadFilter(hide_read=True),
        )
        assert ids(apply_query(records, query)) == ["b/banana.md"]

    def test_default_query_sorts_newest_first(self, records):
        assert ids(apply_query(records, CatalogQuery()))[0] == "a/Apple.md"


class TestUrls:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://example.com/a", True),
            ("  https://example.com/a ", True),
            ("http://localhost:8080", True),
            ("mailto:someone@example.com", True),
            ("not a url", False),
            ("example.com", False),
            ("", False),
            ("http://host:99999", False),
        ],
    )
    def test_is_valid_url(self, url, expected):
        assert is_valid_url(url) is expected

    def test_extract_domain_strips_www(self):
        assert extract_domain("https://www.example.com/path") == "example.com"

    def test_extract_domain_invalid(self):
        assert extract_domain("not a url") == ""

    def test_url_entries_flag_invalid_values(self):
        record = make_record(
            "x.md",
            urls={"source": ["https://www.a.com/1", "bogus"], "url": "https://b.org"},
        )
        entries = url_entries(record)
        assert [(e.property_name, e.url, e.valid, e.domain) for e in entries] == [
            ("source", "https://www.a.com/1", True, "a.com"),
            ("source", "bogus", False, ""),
            ("url", "https://b.org", True, "b.org"),
        ]

    def test_record_domains_unique(self):
        record = make_record("x.md", urls={"source": ["https://a.com/1", "https://www.a.com/2"]})
        assert record_domains(record) == ["a.com"]


def test_record_without_urls_rejected():
    with pytest.raises(ValidationError):
        CatalogRecord(id="x.md", display_title="x", urls={}, created_at=0)


@pytest.mark.parametrize("id,folder", [("clip.md", "/"), ("a/b/clip.md", "a/b")])
def test_record_folder(id, folder):
    assert make_record(id).folder == folder
