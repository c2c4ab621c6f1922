# snippetbox/core/validator.py
"""
Form validation helpers.

A Validator collects errors for one form submission. Every check runs, so a
user sees all problems of a submission at once; only the first error per
field is kept.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, List, Pattern, TypeVar, Union

T = TypeVar('T')

EMAIL_RX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


@dataclass
class Validator:
    """Accumulates field errors (first wins) and ordered non-field errors"""
    field_errors: Dict[str, str] = field(default_factory=dict)
    non_field_errors: List[str] = field(default_factory=list)

    def valid(self) -> bool:
        return not self.field_errors and not self.non_field_errors

    def add_field_error(self, key: str, message: str) -> None:
        """Record an error for `key` unless one is already recorded"""
        if key not in self.field_errors:
            self.field_errors[key] = message

    def add_non_field_error(self, message: str) -> None:
        self.non_field_errors.append(message)

    def check_field(self, ok: bool, key: str, message: str) -> None:
        if not ok:
            self.add_field_error(key, message)


def not_blank(value: str) -> bool:
    """True if the value has content after trimming whitespace"""
    return value.strip() != ""


def max_chars(value: str, n: int) -> bool:
    """True if the value has at most n characters (code points, not bytes)"""
    return len(value) <= n


def min_chars(value: str, n: int) -> bool:
    """True if the value has at least n characters"""
    return len(value) >= n


def matches(value: str, rx: Union[Pattern[str], str]) -> bool:
    """True if the whole value matches the pattern"""
    if isinstance(rx, str):
        rx = re.compile(rx)
    return rx.fullmatch(value) is not None


def permitted_value(value: T, *permitted: T) -> bool:
    """True if the value equals one of the permitted values"""
    return value in permitted
