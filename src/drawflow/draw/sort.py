# src/drawflow/draw/sort.py
"""Composite applicant ordering.

The type of each sort field is taken from the first applicant being
sorted. Text fields use a case-insensitive collation that is also
digit-aware when descending; numeric fields compare directly. Later
rules break ties left by earlier ones.
"""

from __future__ import annotations

import functools
import re
from collections.abc import Callable, Sequence
from typing import Any, TypeAlias

from drawflow.contracts.draw import Applicant, DrawSortRule
from drawflow.contracts.enums import DrawSortDirection
from drawflow.contracts.errors import DrawSemanticError

Comparator: TypeAlias = Callable[[Applicant, Applicant], int]

_DIGITS = re.compile(r"(\d+)")


def validate_sort_rules(rules: Sequence[DrawSortRule]) -> None:
    """Check that rules can order applicants.

    Raises:
        DrawSemanticError: No rules, or a field sorted twice
    """
    if not rules:
        raise DrawSemanticError("At least one sort rule is required")
    fields = [rule.field for rule in rules]
    if len(set(fields)) != len(fields):
        raise DrawSemanticError(f"Sort rules must not repeat a field: {', '.join(f.value for f in fields)}")


def collation_key(value: str, *, numeric: bool = False) -> tuple[tuple[Any, ...], str]:
    """Case-insensitive key; the raw value breaks remaining ties.

    With numeric, runs of digits compare by value, so "HC9" sorts before "HC10".
    """
    folded = value.casefold()
    if not numeric:
        return ((1, folded),), value
    parts = tuple((0, int(part)) if part.isdigit() else (1, part) for part in _DIGITS.split(folded) if part)
    return parts, value


def _cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def _rule_comparator(rule: DrawSortRule, sample: Applicant) -> Comparator:
    attr = rule.field.value
    sign = 1 if rule.direction == DrawSortDirection.ASC else -1

    if isinstance(getattr(sample, attr), str):
        # Only descending text order is digit-aware.
        numeric = sign < 0

        def compare_text(a: Applicant, b: Applicant) -> int:
            return sign * _cmp(
                collation_key(str(getattr(a, attr)), numeric=numeric),
                collation_key(str(getattr(b, attr)), numeric=numeric),
            )

        return compare_text

    def compare_number(a: Applicant, b: Applicant) -> int:
        return sign * _cmp(getattr(a, attr), getattr(b, attr))

    return compare_number


def build_comparator(rules: Sequence[DrawSortRule], sample: Applicant) -> Comparator:
    comparators = [_rule_comparator(rule, sample) for rule in rules]

    def compare(a: Applicant, b: Applicant) -> int:
        for comparator in comparators:
            result = comparator(a, b)
            if result != 0:
                return result
        return 0

    return compare


def sort_applicants(applicants: list[Applicant], rules: Sequence[DrawSortRule]) -> None:
    """Sort applicants in place. The sort is stable."""
    if len(applicants) <= 1:
        return
    applicants.sort(key=functools.cmp_to_key(build_comparator(rules, applicants[0])))
