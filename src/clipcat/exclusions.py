"""Excluded directories.

A rule names a directory. It matches a path that is the directory itself or
sits directly inside it; deeper paths need their own rule. Comparison is
case-insensitive and accepts either slash style.
"""

from collections.abc import Sequence


def _segments(path: str) -> list[str]:
    return path.replace("\\", "/").split("/")


def _rule_segments(rule: str) -> list[str]:
    return _segments(rule.replace("\\", "/").removesuffix("/"))


def rule_matches(path: str, rule: str) -> bool:
    rule_parts = _rule_segments(rule)
    path_parts = _segments(path)

    if len(path_parts) < len(rule_parts):
        return False

    for rule_part, path_part in zip(rule_parts, path_parts):
        if rule_part.lower() != path_part.lower():
            return False

    return len(path_parts) in (len(rule_parts), len(rule_parts) + 1)


def is_excluded(path: str, rules: Sequence[str]) -> bool:
    """True if any rule matches the path."""
    return any(rule_matches(path, rule) for rule in rules)


def add_rules(rules: Sequence[str], raw: str) -> list[str]:
    """Add comma-separated directories, skipping ones already present (any case)."""
    updated = list(rules)
    known = {rule.lower() for rule in updated}
    for candidate in raw.split(","):
        candidate = candidate.strip()
        if candidate and candidate.lower() not in known:
            updated.append(candidate)
            known.add(candidate.lower())
    return updated


def remove_rule(rules: Sequence[str], rule: str) -> list[str]:
    return [existing for existing in rules if existing != rule]


def clear_rules() -> list[str]:
    return []
