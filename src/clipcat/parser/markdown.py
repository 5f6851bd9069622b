"""Markdown documents with a YAML front-matter block.

Reading goes through python-frontmatter. Writing the read flag does not: a
full re-serialization would reorder keys and restyle values the user wrote
by hand, so single properties are patched line by line and the result is
checked against a fresh YAML parse.
"""

import re
from typing import Any

import frontmatter
import yaml

from ..errors import FrontmatterUpdateError

# python-frontmatter's YAML boundary
_BOUNDARY = re.compile(r"^-{3,}\s*$")
_UNTITLED = re.compile(r"^Untitled( \d+)?$")
_HEADING = re.compile(r"^#+ (.+)$", re.MULTILINE)


def _frontmatter_bounds(lines: list[str]) -> tuple[int, int] | None:
    """Return (first, closing) line indexes of the front-matter block, if any."""
    if not lines or not _BOUNDARY.match(lines[0].lstrip("\ufeff")):
        return None
    for i in range(1, len(lines)):
        if _BOUNDARY.match(lines[i]):
            return 1, i
    return None


def has_frontmatter(text: str) -> bool:
    return _frontmatter_bounds(text.splitlines(keepends=True)) is not None


def split_document(text: str) -> tuple[dict[str, Any] | None, str]:
    """Split a document into (front-matter, body).

    Front-matter is None when the document has no block at all, and a
    (possibly empty) dict otherwise.

    Raises:
        yaml.YAMLError: If the block is not valid YAML.
    """
    if not has_frontmatter(text):
        return None, text

    post = frontmatter.loads(text.lstrip("\ufeff"))
    metadata = post.metadata if isinstance(post.metadata, dict) else {}
    return dict(metadata), post.content


def display_title(basename: str, content: str) -> str:
    """Title shown for a document.

    Notes still named "Untitled" / "Untitled 3" show their first heading
    instead, when they have one.
    """
    if _UNTITLED.match(basename):
        heading = _HEADING.search(content)
        if heading:
            return heading.group(1).strip()
    return basename


def _yaml_quote_if_needed(value: str) -> str:
    """Quote a string value if it contains YAML special characters.

    Uses PyYAML to determine if quoting is needed by testing if the value
    roundtrips correctly through YAML parsing.
    """
    test_yaml = f"key: {value}"
    try:
        parsed = yaml.safe_load(test_yaml)
        if isinstance(parsed, dict) and parsed.get("key") == value:
            return value  # Roundtrips safely, no quoting needed
    except yaml.YAMLError:
        pass
    # Need quoting - let PyYAML figure out proper escaping
    dumped = yaml.safe_dump({"key": value}, default_flow_style=False).strip()
    # Returns 'key: VALUE' or "key: 'VALUE'" - extract the value part
    return dumped[5:]


def _yaml_scalar(value: Any) -> str:
    if isinstance(value, str):
        return _yaml_quote_if_needed(value)
    dumped = yaml.safe_dump(value, default_flow_style=True).strip()
    return dumped.removesuffix("...").strip()


def _load_block(block: list[str]) -> dict[str, Any]:
    try:
        data = yaml.safe_load("".join(block))
    except yaml.YAMLError as e:
        raise FrontmatterUpdateError(f"Front-matter is not valid YAML: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FrontmatterUpdateError("Front-matter is not a mapping")
    return data


def _belongs_to_value(line: str) -> bool:
    # Indented lines and block sequence items continue the previous key
    return line.startswith((" ", "\t", "-"))


def _value_end(block: list[str], key_index: int) -> int:
    """Index just past the last line of the value starting at key_index."""
    stop = key_index + 1
    while stop < len(block):
        line = block[stop]
        if not line.strip():
            # Blank lines belong to the value only when more of it follows
            nxt = stop + 1
            while nxt < len(block) and not block[nxt].strip():
                nxt += 1
            if nxt < len(block) and _belongs_to_value(block[nxt]):
                stop = nxt
                continue
            break
        if not _belongs_to_value(line):
            break
        stop += 1
    return stop


def set_frontmatter_property(text: str, name: str, value: Any) -> str:
    """Set one top-level front-matter property, leaving everything else untouched.

    Documents without a block get one containing only this property,
    prepended to the existing content. Otherwise the property's lines are
    replaced in place (or appended to the block when missing).

    Raises:
        FrontmatterUpdateError: If the block cannot be parsed, or the patched
            block would change anything besides this property.
    """
    newline = "\r\n" if "\r\n" in text else "\n"
    rendered = f"{_yaml_quote_if_needed(name)}: {_yaml_scalar(value)}{newline}"

    lines = text.splitlines(keepends=True)
    bounds = _frontmatter_bounds(lines)
    if bounds is None:
        return f"---{newline}{rendered}---{newline}{text}"

    start, end = bounds
    block = lines[start:end]
    original = _load_block(block)

    key_line = re.compile(rf"^(?:{re.escape(name)}|\"{re.escape(name)}\"|'{re.escape(name)}')\s*:(?:\s|$)")
    key_index = next((i for i, line in enumerate(block) if key_line.match(line)), None)
    if key_index is None:
        new_block = [*block, rendered]
    else:
        new_block = [*block[:key_index], rendered, *block[_value_end(block, key_index):]]

    expected = dict(original)
    expected[name] = value
    if _load_block(new_block) != expected:
        raise FrontmatterUpdateError(
            f"Refusing to update '{name}': the patched front-matter would change other properties"
        )

    return "".join([*lines[:start], *new_block, *lines[end:]])
