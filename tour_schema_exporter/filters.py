from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List

from .flattening import stringify_value

ALL_COLUMNS = 'ALL'


class MatchMode(str, Enum):
    CONTAINS = 'contains'
    EQUALS = 'equals'

    @classmethod
    def coerce(cls, value: Any) -> 'MatchMode':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.CONTAINS


def _value_matches(value: Any, keyword: str, mode: MatchMode, case_sensitive: bool) -> bool:
    text = stringify_value(value)
    if not case_sensitive:
        text = text.lower()
        keyword = keyword.lower()
    if mode is MatchMode.EQUALS:
        return text == keyword
    return keyword in text


def match_keyword(
    record: Dict[str, Any],
    keyword: str,
    column: str = ALL_COLUMNS,
    mode: Any = MatchMode.CONTAINS,
    case_sensitive: bool = False,
) -> bool:
    """Check a flattened record against a keyword.

    An empty keyword matches everything. With `column=ALL_COLUMNS` any value in
    the record may match; otherwise only the named column is tested and a
    record without that column does not match.
    """
    if not keyword:
        return True
    mode = MatchMode.coerce(mode)

    if not column or column == ALL_COLUMNS:
        return any(_value_matches(v, keyword, mode, case_sensitive) for v in record.values())

    if column not in record:
        return False
    return _value_matches(record[column], keyword, mode, case_sensitive)


@dataclass(frozen=True)
class KeywordFilter:
    keyword: str = ''
    column: str = ALL_COLUMNS
    mode: MatchMode = MatchMode.CONTAINS
    case_sensitive: bool = False

    @property
    def active(self) -> bool:
        return bool(self.keyword)

    def matches(self, record: Dict[str, Any]) -> bool:
        return match_keyword(record, self.keyword, self.column, self.mode, self.case_sensitive)


def filter_records(records: Iterable[Dict[str, Any]], keyword_filter: KeywordFilter) -> List[Dict[str, Any]]:
    return [r for r in records if keyword_filter.matches(r)]
