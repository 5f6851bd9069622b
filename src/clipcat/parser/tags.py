"""Tag extraction and normalization.

Tags come from two places: the front-matter `tags` field and inline `#tag`
markers in the body. Both are normalized the same way (leading `#` removed,
whitespace trimmed, empties dropped, duplicates removed in first-seen order).
"""

import re
import string
from dataclasses import dataclass
from typing import Any, Iterable

# Inline tag: `#` at the start of a line or after whitespace, followed by
# letters, digits, `_`, `-` or `/` (nested tags).
_INLINE_TAG = re.compile(r"(?<![^\s(\[])#([\w/-]+)")
_FENCED_CODE = re.compile(r"^(```|~~~).*?^\1", re.MULTILINE | re.DOTALL)
_INLINE_CODE = re.compile(r"`[^`\n]*`")


@dataclass(frozen=True)
class TagOccurrence:
    """A tag found in a document. `tag` keeps the `#` as written."""

    tag: str
    line: int | None = None


def to_tag_occurrence(descriptor: Any) -> TagOccurrence | None:
    """Convert a bare string, a {"tag": ...} mapping or an object with `.tag`."""
    if isinstance(descriptor, TagOccurrence):
        return descriptor
    if isinstance(descriptor, str):
        return TagOccurrence(descriptor)
    if isinstance(descriptor, dict):
        value = descriptor.get("tag")
    else:
        value = getattr(descriptor, "tag", None)
    if isinstance(value, str):
        return TagOccurrence(value)
    return None


def normalize_tag(tag: str) -> str:
    # Leading "#" and whitespace may interleave ("# #a")
    return tag.lstrip("#" + string.whitespace).rstrip()


def dedupe(tags: Iterable[str]) -> list[str]:
    """Drop empties and duplicates, keeping first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for tag in tags:
        if tag and tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


def normalize_frontmatter_tags(raw: Any, include_enabled: bool) -> list[str]:
    """Normalize the front-matter tags value.

    Accepts a list or a comma-separated string ("#news, #ai").
    Returns an empty list when the feature is disabled or the field is absent.
    """
    if not include_enabled or raw is None:
        return []

    if isinstance(raw, str):
        candidates: list[Any] = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        candidates = list(raw)
    else:
        candidates = [raw]

    tags = []
    for item in candidates:
        # YAML turns `tags: [2024]` into ints
        if isinstance(item, (str, int, float)) and not isinstance(item, bool):
            tags.append(normalize_tag(str(item)))
    return dedupe(tags)


def normalize_content_tags(descriptors: Iterable[Any] | None) -> list[str]:
    """Normalize inline tag descriptors reported by the metadata cache."""
    if not descriptors:
        return []

    tags = []
    for descriptor in descriptors:
        occurrence = to_tag_occurrence(descriptor)
        if occurrence is not None:
            tags.append(normalize_tag(occurrence.tag))
    return dedupe(tags)


def merge_tags(frontmatter_tags: list[str], content_tags: list[str]) -> list[str]:
    """Union of both tag lists, front-matter tags first."""
    return dedupe([*frontmatter_tags, *content_tags])


def _blank_out(match: re.Match) -> str:
    # Keep newlines so line numbers stay correct
    return re.sub(r"[^\n]", " ", match.group(0))


def find_inline_tags(body: str) -> list[TagOccurrence]:
    """Find `#tag` markers in Markdown body text.

    Code spans and fenced code blocks are ignored, as are purely numeric
    markers like issue references (#123) and headings (`# Title`).
    """
    text = _FENCED_CODE.sub(_blank_out, body)
    text = _INLINE_CODE.sub(_blank_out, text)

    occurrences: list[TagOccurrence] = []
    for line_number, line in enumerate(text.splitlines()):
        for match in _INLINE_TAG.finditer(line):
            name = match.group(1)
            if name.isdigit():
                continue
            occurrences.append(TagOccurrence(f"#{name}", line=line_number))
    return occurrences
