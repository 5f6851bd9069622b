"""Extraction of source URLs and the read flag from parsed front-matter.

Front-matter values arrive untyped from YAML: a property can hold a string,
a list, a boolean, a number, a date, a mapping or nothing at all. Values are
classified once, at this boundary, into a small tagged union so the
extraction rules below match on shape instead of poking at runtime types.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping


@dataclass(frozen=True)
class Scalar:
    value: str


@dataclass(frozen=True)
class ListValue:
    items: tuple[Any, ...]


@dataclass(frozen=True)
class Boolean:
    value: bool


@dataclass(frozen=True)
class Absent:
    pass


FrontmatterValue = Scalar | ListValue | Boolean | Absent


def classify_value(raw: Any) -> FrontmatterValue:
    """Classify a raw YAML value.

    Numbers and dates become scalars (stringified). None, mappings and other
    structured values carry no usable URL and are treated as absent.
    """
    # bool before int: bool is a subclass of int
    if isinstance(raw, bool):
        return Boolean(raw)
    if isinstance(raw, str):
        return Scalar(raw)
    if isinstance(raw, (int, float, date)):
        return Scalar(str(raw))
    if isinstance(raw, (list, tuple)):
        return ListValue(tuple(raw))
    return Absent()


def parse_property_names(setting: str) -> list[str]:
    """Split a comma-separated property setting, e.g. "source, url,,link"."""
    return [name.strip() for name in setting.split(",") if name.strip()]


def extract_urls(
    frontmatter: Mapping[str, Any] | None,
    property_names: list[str],
) -> dict[str, str | list[str]]:
    """Collect source URL values for the configured property names.

    Lists keep their string entries that are not blank (unmodified, in
    order) and are only included when at least one survives. Non-blank
    scalars are kept as-is; validity is checked at display time, not here.

    Returns:
        Mapping of property name to URL or URL list. Empty when the document
        is not a catalog candidate.
    """
    if not frontmatter:
        return {}

    urls: dict[str, str | list[str]] = {}
    for name in property_names:
        value = classify_value(frontmatter.get(name))
        if isinstance(value, ListValue):
            kept = [item for item in value.items if isinstance(item, str) and item.strip()]
            if kept:
                urls[name] = kept
        elif isinstance(value, Scalar) and value.value.strip():
            urls[name] = value.value
    return urls


def extract_read_flag(frontmatter: Mapping[str, Any] | None, read_property_name: str) -> bool:
    """True only when the read property holds the boolean true.

    Truthy strings such as "true" or "yes" do not count.
    """
    if not frontmatter or not read_property_name:
        return False
    return classify_value(frontmatter.get(read_property_name)) == Boolean(True)
