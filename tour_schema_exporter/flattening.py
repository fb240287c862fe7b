from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, Iterable, List, Union

from .accessors import MISSING, resolve_path
from .paths import is_array_path

DEFAULT_SEPARATOR = '; '

# Nested lists deeper than this are kept as JSON text instead of being unpacked.
MAX_FLATTEN_DEPTH = 64

CellValue = Union[str, int, float]


class ArrayRule(str, Enum):
    JOIN = 'join'
    COUNT = 'count'
    FIRST = 'first'
    LAST = 'last'
    JSON = 'json'

    @classmethod
    def coerce(cls, value: Any) -> 'ArrayRule':
        """Map a configuration value to a rule; anything unknown means `join`."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.JOIN


def to_json_text(value: Any) -> str:
    try:
        return json.dumps(value, ensure_ascii=False, separators=(',', ':'))
    except (TypeError, ValueError, RecursionError):
        return str(value)


def stringify_value(value: Any) -> str:
    """Render a JSON value as cell text the way a browser would."""
    if value is None or value is MISSING:
        return ''
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return to_json_text(value)
    return str(value)


def deep_flatten(values: Iterable[Any], max_depth: int = MAX_FLATTEN_DEPTH) -> List[Any]:
    """Flatten nested lists into one level, keeping element order."""
    out: List[Any] = []
    stack = [(iter(values), 0)]
    while stack:
        iterator, depth = stack[-1]
        try:
            item = next(iterator)
        except StopIteration:
            stack.pop()
            continue
        if isinstance(item, list):
            if depth + 1 >= max_depth:
                out.append(to_json_text(item))
            else:
                stack.append((iter(item), depth + 1))
        else:
            out.append(item)
    return out


def _scalar_cell(value: Any) -> CellValue:
    if isinstance(value, (bool, dict, list)):
        return stringify_value(value)
    return value


def apply_array_rule(values: List[Any], rule: ArrayRule, separator: str = DEFAULT_SEPARATOR) -> CellValue:
    if rule is ArrayRule.COUNT:
        return len(values)
    if rule is ArrayRule.FIRST:
        return _scalar_cell(values[0]) if values else ''
    if rule is ArrayRule.LAST:
        return _scalar_cell(values[-1]) if values else ''
    if rule is ArrayRule.JSON:
        return to_json_text(values)
    return separator.join(stringify_value(v) for v in values)


def flatten_value(data: Any, path: str, rule: ArrayRule, separator: str = DEFAULT_SEPARATOR) -> CellValue:
    value = resolve_path(data, path)

    if not is_array_path(path):
        if value is MISSING or value is None:
            return ''
        return _scalar_cell(value)

    if not isinstance(value, list):
        if value is MISSING or value is None:
            return ''
        return _scalar_cell(value)

    values = [v for v in deep_flatten(value) if v is not None]
    return apply_array_rule(values, rule, separator)


def flatten_record(
    data: Any,
    selected_paths: Iterable[str],
    rule: Any = ArrayRule.JOIN,
    separator: str = DEFAULT_SEPARATOR,
) -> Dict[str, CellValue]:
    """Flatten one document into a single row keyed by path.

    Paths that cannot be followed yield an empty string; the row never holds
    objects or raw lists.
    """
    rule = ArrayRule.coerce(rule)
    if separator is None:
        separator = DEFAULT_SEPARATOR
    return {path: flatten_value(data, path, rule, separator) for path in selected_paths}


def flatten_records(
    documents: Iterable[Any],
    selected_paths: List[str],
    rule: Any = ArrayRule.JOIN,
    separator: str = DEFAULT_SEPARATOR,
) -> List[Dict[str, CellValue]]:
    return [flatten_record(doc, selected_paths, rule, separator) for doc in documents]


def flatten_data_for_preview(
    documents: Iterable[Any],
    selected_paths: List[str],
    rule: Any = ArrayRule.JOIN,
    separator: str = DEFAULT_SEPARATOR,
    limit: int = 3,
) -> List[Dict[str, CellValue]]:
    if not selected_paths:
        return []

    rows: List[Dict[str, CellValue]] = []
    for doc in documents:
        rows.append(flatten_record(doc, selected_paths, rule, separator))
        if len(rows) >= max(1, int(limit)):
            break
    return rows
