# tests/core/test_validator.py
"""
Tests for the form Validator and its predicate helpers.
"""

import re

from snippetbox.core.validator import (
    EMAIL_RX,
    Validator,
    matches,
    max_chars,
    min_chars,
    not_blank,
    permitted_value,
)


class TestValidator:
    """Error accumulation"""

    def test_new_validator_is_valid(self):
        assert Validator().valid() is True

    def test_first_field_error_wins(self):
        v = Validator()
        v.add_field_error("email", "E1")
        v.add_field_error("email", "E2")

        assert v.field_errors == {"email": "E1"}
        assert v.valid() is False

    def test_non_field_errors_keep_order(self):
        v = Validator()
        v.add_non_field_error("first")
        v.add_non_field_error("second")
        v.add_non_field_error("first")

        assert v.non_field_errors == ["first", "second", "first"]
        assert v.valid() is False

    def test_check_field_runs_every_check(self):
        """All checks run, so every field gets its first problem reported"""
        v = Validator()
        v.check_field(False, "title", "blank")
        v.check_field(False, "title", "too long")
        v.check_field(True, "content", "blank")
        v.check_field(False, "expires", "not permitted")

        assert v.field_errors == {"title": "blank", "expires": "not permitted"}

    def test_passing_checks_leave_validator_valid(self):
        v = Validator()
        v.check_field(True, "title", "blank")
        assert v.valid() is True


class TestPredicates:
    """Pure helpers"""

    def test_not_blank(self):
        assert not_blank("x") is True
        assert not_blank("   ") is False
        assert not_blank("\t\n") is False
        assert not_blank("") is False

    def test_max_chars_counts_code_points(self):
        assert max_chars("héllo", 5) is True
        assert len("héllo".encode("utf-8")) == 6
        assert max_chars("héllo!", 5) is False

    def test_min_chars(self):
        assert min_chars("password", 8) is True
        assert min_chars("pässwör", 8) is False

    def test_permitted_value_ints(self):
        assert permitted_value(7, 1, 7, 365) is True
        assert permitted_value(30, 1, 7, 365) is False

    def test_permitted_value_strings(self):
        assert permitted_value("b", "a", "b") is True
        assert permitted_value("c", "a", "b") is False

    def test_matches_email(self):
        assert matches("alice@example.com", EMAIL_RX) is True
        assert matches("alice@example", EMAIL_RX) is True
        assert matches("alice.example.com", EMAIL_RX) is False
        assert matches("alice@-example.com", EMAIL_RX) is False
        assert matches("alice@example.com\n", EMAIL_RX) is False

    def test_matches_accepts_pattern_strings(self):
        assert matches("abc123", r"[a-z]+\d+") is True
        assert matches("abc123x", re.compile(r"[a-z]+\d+")) is False
