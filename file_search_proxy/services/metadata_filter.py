"""
Metadata filter strings for File Search queries.

A filter is a flat chain of ``field operator value`` conditions joined by
``AND``/``OR``, read left to right with no precedence and no parentheses::

    category = "books" AND year > 2023

The remote API answers an unsupported filter with an opaque error, so
filters are checked here before a query is sent.
"""
from __future__ import annotations

import re
from typing import Iterable, List

from file_search_proxy.schemas.file_search import FilterCondition

_CONDITION = r'[\w\s]+(=|!=|>|<|>=|<=)\s*("[^"]*"|\d+)'
_FILTER_RE = re.compile(rf"{_CONDITION}(\s+(AND|OR)\s+{_CONDITION})*", re.ASCII)

# The grammar only accepts bare integers; anything else is quoted
_NUMBER_RE = re.compile(r"\d+", re.ASCII)


def is_valid_filter(filter_text: str | None) -> bool:
    """Return True when ``filter_text`` is empty or follows the filter grammar."""
    if filter_text is None or not filter_text.strip():
        return True
    return _FILTER_RE.fullmatch(filter_text.strip()) is not None


def is_numeric(value: str) -> bool:
    return _NUMBER_RE.fullmatch(value.strip()) is not None


def format_condition(condition: FilterCondition) -> str:
    value = condition.value.strip() if is_numeric(condition.value) else f'"{condition.value}"'
    return f"{condition.field.strip()} {condition.operator} {value}"


def build_filter(conditions: Iterable[FilterCondition]) -> str:
    """Render conditions into a filter string.

    Conditions with an empty field or value are left out; see
    :func:`condition_errors` for reporting them.
    """
    parts: List[str] = []
    for condition in conditions:
        if not condition.field.strip() or not condition.value.strip():
            continue
        term = format_condition(condition)
        parts.append(f"{condition.logic} {term}" if parts else term)
    return " ".join(parts)


def condition_errors(conditions: Iterable[FilterCondition]) -> List[str]:
    """Human-readable problems with individual conditions, in order."""
    errors: List[str] = []
    for index, condition in enumerate(conditions, start=1):
        if not condition.field.strip():
            errors.append(f"Condition {index}: field name is required")
        if not condition.value.strip():
            errors.append(f"Condition {index}: value is required")
        elif '"' in condition.value:
            errors.append(f"Condition {index}: value must not contain double quotes")
    return errors

