"""Tests for excluded-directory rules."""

import pytest

from clipcat.exclusions import add_rules, clear_rules, is_excluded, remove_rule, rule_matches


class TestRuleMatches:
    """A rule covers its directory and the entries directly inside it."""

    @pytest.mark.parametrize(
        "path,rule,expected",
        [
            ("work/expenses", "work/expenses", True),
            ("work/expenses/q1.md", "work/expenses", True),
            ("work/expenses/2024/q1.md", "work/expenses", False),
            ("work/expenses/2024", "work/expenses", True),
            ("work", "work/expenses", False),
            ("work/expenses-old/q1.md", "work/expenses", False),
            ("Work/Expenses/Q1.md", "work/expenses", True),
            ("work/expenses/q1.md", "WORK/EXPENSES", True),
            ("work/expenses/q1.md", "work\\expenses", True),
            ("work\\expenses\\q1.md", "work/expenses", True),
            ("work/expenses/q1.md", "work/expenses/", True),
            ("templates/daily.md", "templates", True),
            ("notes/templates/daily.md", "templates", False),
        ],
    )
    def test_rule_matches(self, path, rule, expected):
        assert rule_matches(path, rule) is expected

    def test_is_excluded_any_rule(self):
        rules = ["templates", "work/expenses"]
        assert is_excluded("work/expenses/q1.md", rules)
        assert is_excluded("templates/daily.md", rules)
        assert not is_excluded("inbox/article.md", rules)

    def test_no_rules_excludes_nothing(self):
        assert not is_excluded("anything/at/all.md", [])


class TestRuleEditing:
    """Adding, removing and clearing rules."""

    def test_add_splits_on_commas(self):
        assert add_rules([], "templates, work/expenses ,, archive") == [
            "templates",
            "work/expenses",
            "archive",
        ]

    def test_add_skips_duplicates_in_any_case(self):
        rules = add_rules(["Templates"], "templates, TEMPLATES, inbox")
        assert rules == ["Templates", "inbox"]

    def test_add_blank_input_changes_nothing(self):
        assert add_rules(["a"], "  ,  ") == ["a"]

    def test_add_does_not_mutate_input(self):
        original = ["a"]
        add_rules(original, "b")
        assert original == ["a"]

    def test_remove_exact_rule(self):
        assert remove_rule(["a", "b", "c"], "b") == ["a", "c"]

    def test_remove_unknown_rule_keeps_list(self):
        assert remove_rule(["a"], "z") == ["a"]

    def test_clear(self):
        assert clear_rules() == []
