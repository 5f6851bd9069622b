"""Parsing of clipped notes: front-matter values, tags and Markdown documents."""

from .frontmatter import (
    Absent,
    Boolean,
    FrontmatterValue,
    ListValue,
    Scalar,
    classify_value,
    extract_read_flag,
    extract_urls,
    parse_property_names,
)
from .markdown import display_title, has_frontmatter, set_frontmatter_property, split_document
from .tags import (
    TagOccurrence,
    find_inline_tags,
    merge_tags,
    normalize_content_tags,
    normalize_frontmatter_tags,
)

__all__ = [
    "Absent",
    "Boolean",
    "FrontmatterValue",
    "ListValue",
    "Scalar",
    "TagOccurrence",
    "classify_value",
    "display_title",
    "extract_read_flag",
    "extract_urls",
    "find_inline_tags",
    "has_frontmatter",
    "merge_tags",
    "normalize_content_tags",
    "normalize_frontmatter_tags",
    "parse_property_names",
    "set_frontmatter_property",
    "split_document",
]
